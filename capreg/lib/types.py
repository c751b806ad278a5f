import logging

import regex

import capreg.exc as c_exc
import capreg.common as c_common

logger = logging.getLogger(__name__)

class Type:

    _opt_defs = ()

    # a fast-access way to determine if the type is an array
    isarray = False

    def __init__(self, modl, name, info, opts):
        '''
        Construct a new Type object.

        Args:
            modl (capreg.datamodel.Model): The data model instance.
            name (str): The name of the type.
            info (dict): The type info (docs etc).
            opts (dict): Options that are specific to the type.
        '''
        self.modl = modl
        self.name = name
        self.info = info

        self.opts = dict(self._opt_defs)
        self.opts.update(opts)

        self._type_norms = {}   # python type to norm function map str: _norm_str

        self.postTypeInit()

    def setNormFunc(self, typo, func):
        '''
        Register a normalizer function for a given python type.

        Args:
            typo (type): A python type/class to normalize.
            func (function): A callback which normalizes a python value.
        '''
        self._type_norms[typo] = func

    def postTypeInit(self):
        pass

    def norm(self, valu):
        '''
        Normalize the value for a given type.

        Args:
            valu (obj): The value to normalize.

        Returns:
            obj: The normalized value.
        '''
        func = self._type_norms.get(type(valu))
        if func is None:
            raise c_exc.BadTypeValu(name=self.name, valu=valu,
                                    mesg='no norm for type: %r.' % (type(valu),))

        return func(valu)

    def clone(self, opts):
        '''
        Create a new instance of this type with the specified options.

        Args:
            opts (dict): The type specific options for the new instance.
        '''
        topt = self.opts.copy()
        topt.update(opts)
        return self.__class__(self.modl, self.name, self.info, topt)

    def pack(self):
        return {
            'info': dict(self.info),
            'opts': dict(self.opts),
        }

class Bool(Type):

    def postTypeInit(self):
        self.setNormFunc(str, self._normPyStr)
        self.setNormFunc(int, self._normPyInt)
        self.setNormFunc(bool, self._normPyInt)

    def _normPyStr(self, valu):

        ival = c_common.intify(valu)
        if ival is not None:
            return bool(ival)

        sval = valu.lower().strip()
        if sval in ('true', 't', 'y', 'yes', 'on'):
            return True

        if sval in ('false', 'f', 'n', 'no', 'off'):
            return False

        raise c_exc.BadTypeValu(name=self.name, valu=valu,
                                mesg='Failed to norm bool')

    def _normPyInt(self, valu):
        return bool(valu)

class Int(Type):

    _opt_defs = (
        ('min', None),  # type: ignore
        ('max', None),
    )

    def postTypeInit(self):
        self.minval = self.opts.get('min')
        self.maxval = self.opts.get('max')

        self.setNormFunc(str, self._normPyStr)
        self.setNormFunc(int, self._normPyInt)
        self.setNormFunc(bool, self._normPyInt)

    def _normPyStr(self, valu):
        ival = c_common.intify(valu.strip())
        if ival is None:
            raise c_exc.BadTypeValu(name=self.name, valu=valu,
                                    mesg='Failed to norm int from string')
        return self._normPyInt(ival)

    def _normPyInt(self, valu):

        valu = int(valu)

        if self.minval is not None and valu < self.minval:
            mesg = f'value is below min={self.minval}'
            raise c_exc.BadTypeValu(valu=valu, name=self.name, mesg=mesg)

        if self.maxval is not None and valu > self.maxval:
            mesg = f'value is above max={self.maxval}'
            raise c_exc.BadTypeValu(valu=valu, name=self.name, mesg=mesg)

        return valu

class Str(Type):

    _opt_defs = (
        ('enums', None),  # type: ignore
        ('regex', None),
        ('lower', False),
        ('strip', True),
    )

    def postTypeInit(self):

        self.setNormFunc(str, self._normPyStr)
        self.setNormFunc(int, self._normPyInt)

        self.regex = None
        restr = self.opts.get('regex')
        if restr is not None:
            self.regex = regex.compile(restr)

        self.envals = None
        enumstr = self.opts.get('enums')
        if enumstr is not None:
            self.envals = enumstr.split(',')

    def _normPyInt(self, valu):
        return self._normPyStr(str(valu))

    def _normPyStr(self, valu):

        norm = valu

        if self.opts['lower']:
            norm = norm.lower()

        if self.opts['strip']:
            norm = norm.strip()

        if self.envals is not None and norm not in self.envals:
            raise c_exc.BadTypeValu(valu=valu, name=self.name, enums=self.opts.get('enums'),
                                    mesg='Value is not a valid enum value.')

        if self.regex is not None and self.regex.match(norm) is None:
            raise c_exc.BadTypeValu(valu=valu, name=self.name, regx=self.opts.get('regex'),
                                    mesg='Value does not match the type regex.')

        return norm

class Actor(Str):
    '''
    An opaque principal identifier which may not be empty.
    '''
    def _normPyStr(self, valu):

        norm = Str._normPyStr(self, valu)
        if not norm:
            raise c_exc.BadTypeValu(valu=valu, name=self.name,
                                    mesg='Actor names may not be empty.')
        return norm

class Array(Type):

    isarray = True

    _opt_defs = (
        ('type', None),  # type: ignore
        ('uniq', True),
        ('sorted', True),
    )

    def postTypeInit(self):

        self.isuniq = self.opts.get('uniq')
        self.issorted = self.opts.get('sorted')

        self.setNormFunc(list, self._normPyTuple)
        self.setNormFunc(tuple, self._normPyTuple)

        # the base array type is only usable through clone()
        self.arraytype = None

        typename = self.opts.get('type')
        if typename is None:
            return

        self.arraytype = self.modl.type(typename)
        if self.arraytype is None:
            raise c_exc.NoSuchType.init(typename)

        if self.arraytype.isarray:
            mesg = 'Array type of array values is not (yet) supported.'
            raise c_exc.BadTypeDef(mesg=mesg)

    def _normPyTuple(self, valu):

        if self.arraytype is None:
            mesg = 'Array type requires type= option.'
            raise c_exc.BadTypeDef(mesg=mesg, name=self.name)

        norms = [self.arraytype.norm(v) for v in valu]

        if self.isuniq:
            uniqs = []
            for norm in norms:
                if norm not in uniqs:
                    uniqs.append(norm)
            norms = uniqs

        if self.issorted:
            norms = sorted(norms)

        return tuple(norms)
