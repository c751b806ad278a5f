'''
Exceptions used by capreg, all inheriting from CapErr
'''

class CapErr(Exception):

    def __init__(self, *args, **info):
        self.errinfo = info
        self.errname = self.__class__.__name__
        Exception.__init__(self, self._getExcMsg())

    def _getExcMsg(self):
        props = sorted(self.errinfo.items())
        displ = ' '.join(['%s=%r' % (p, v) for (p, v) in props])
        return '%s: %s' % (self.__class__.__name__, displ)

    def _setExcMesg(self):
        '''Should be called when self.errinfo is modified.'''
        self.args = (self._getExcMsg(),)

    def __setstate__(self, state):
        '''Pickle support.'''
        super(CapErr, self).__setstate__(state)
        self._setExcMesg()

    def items(self):
        return {k: v for k, v in self.errinfo.items()}

    def get(self, name, defv=None):
        '''
        Return a value from the errinfo dict.

        Example:

            try:
                regy.invoke(ref, 'makeSound', {}, 'bob')
            except CapErr as e:
                iden = e.get('iden')

        '''
        return self.errinfo.get(name, defv)

    def set(self, name, valu):
        '''
        Set a value in the errinfo dict.
        '''
        self.errinfo[name] = valu
        self._setExcMesg()

    def setdefault(self, name, valu):
        '''
        Set a value in errinfo dict if it is not already set.
        '''
        if name in self.errinfo:
            return
        self.errinfo[name] = valu
        self._setExcMesg()

    def update(self, items: dict):
        '''Update multiple items in the errinfo dict at once.'''
        self.errinfo.update(items)
        self._setExcMesg()

class AuthorizationError(CapErr):
    '''
    The calling actor is not the controller required by the capability view.
    '''

class ConformanceError(CapErr):
    '''
    The entity type does not implement the requested capability.
    '''
    @classmethod
    def init(cls, name, ifname, mesg=None):
        if mesg is None:
            mesg = f'Entity type {name} does not implement interface {ifname}.'
        return ConformanceError(mesg=mesg, name=name, iface=ifname)

class BadArg(CapErr):
    ''' Improper function arguments '''
    pass

class BadConfValu(CapErr):
    '''
    The configuration value provided is not valid.

    This should contain the config name, valu and mesg.
    '''
    pass

class NeedConfValu(CapErr): pass

class BadEntityDef(CapErr): pass
class BadIfaceDef(CapErr): pass
class BadTypeDef(CapErr): pass
class BadTypeValu(CapErr): pass

class DupIfaceName(CapErr):
    @classmethod
    def init(cls, name, mesg=None):
        if mesg is None:
            mesg = f'Interface already exists: {name}.'
        return DupIfaceName(mesg=mesg, name=name)

class DupTypeName(CapErr):
    @classmethod
    def init(cls, name, mesg=None):
        if mesg is None:
            mesg = f'Type already exists: {name}.'
        return DupTypeName(mesg=mesg, name=name)

class NoSuchEntity(CapErr):
    '''
    The identity does not denote a live entity.
    '''
    @classmethod
    def init(cls, iden, mesg=None):
        if mesg is None:
            mesg = f'No live entity with iden {iden}.'
        return NoSuchEntity(mesg=mesg, iden=iden)

class NoSuchIface(CapErr):
    @classmethod
    def init(cls, name, mesg=None):
        if mesg is None:
            mesg = f'No interface named {name}.'
        return NoSuchIface(mesg=mesg, name=name)

class NoSuchOper(CapErr):
    @classmethod
    def init(cls, ifname, name, mesg=None):
        if mesg is None:
            mesg = f'Interface {ifname} has no operation named {name}.'
        return NoSuchOper(mesg=mesg, iface=ifname, name=name)

class NoSuchProp(CapErr):
    @classmethod
    def init(cls, name, mesg=None):
        if mesg is None:
            mesg = f'No property named {name}.'
        return NoSuchProp(mesg=mesg, name=name)

class NoSuchType(CapErr):
    @classmethod
    def init(cls, name, mesg=None):
        if mesg is None:
            mesg = f'No type named {name}.'
        return NoSuchType(mesg=mesg, name=name)

class NoSuchName(CapErr): pass

class NotMsgpackSafe(CapErr): pass

class SchemaViolation(CapErr): pass
