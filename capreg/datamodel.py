'''
An API to assist with the creation and enforcement of capability data models.
'''
import logging
import collections

import regex

import capreg.exc as c_exc
import capreg.common as c_common

import capreg.lib.types as c_types
import capreg.lib.schemas as c_schemas

logger = logging.getLogger(__name__)

namere = regex.compile(r'^[a-z_][a-z0-9_]*(:[a-z0-9_]+)*$')

class Prop:
    '''
    The Prop class represents a named and typed field of an entity type,
    an interface view or an operation argument list.
    '''
    def __init__(self, modl, owner, name, typedef, info):

        self.modl = modl
        self.name = name
        self.info = info
        self.typedef = typedef

        self.full = '%s:%s' % (owner, name)

        self.type = modl.getTypeClone(typedef)
        self.defval = info.get('defval', c_common.novalu)

    def __repr__(self):
        return f'Prop: {self.full}'

    def norm(self, valu):
        try:
            return self.type.norm(valu)
        except c_exc.BadTypeValu as e:
            e.setdefault('prop', self.full)
            raise

    def getPropDef(self):
        return (self.name, self.typedef, self.info)

    def pack(self):
        return {
            'name': self.name,
            'full': self.full,
            'type': self.typedef,
            'info': dict(self.info),
        }

def _normPropVals(props, valu, full):
    '''
    Normalize a dict of values through an ordered dict of Prop instances.
    '''
    if not isinstance(valu, dict):
        mesg = f'Values for {full} must be a dict.'
        raise c_exc.BadTypeValu(mesg=mesg, name=full, valu=valu)

    for name in valu.keys():
        if name not in props:
            raise c_exc.NoSuchProp.init(f'{full}:{name}')

    norms = {}
    for name, prop in props.items():

        item = valu.get(name, c_common.novalu)
        if item is c_common.novalu:
            item = prop.defval

        if item is c_common.novalu:
            mesg = f'Missing required value for {prop.full}.'
            raise c_exc.BadTypeValu(mesg=mesg, name=prop.full)

        norms[name] = prop.norm(item)

    return norms

class Oper:
    '''
    An operation declared by an interface.
    '''
    def __init__(self, modl, iface, name, info):

        self.modl = modl
        self.name = name
        self.info = info
        self.iface = iface

        self.full = f'{iface.name}.{name}'
        self.consuming = info.get('consuming', False)

        self.args = {}
        for argname, typedef, arginfo in info.get('args', ()):
            if argname in self.args:
                mesg = f'Duplicate argument {argname} for operation {self.full}.'
                raise c_exc.BadIfaceDef(mesg=mesg, name=iface.name)
            self.args[argname] = Prop(modl, self.full, argname, typedef, arginfo)

    def normArgs(self, args):
        return _normPropVals(self.args, args, self.full)

    def pack(self):
        return {
            'name': self.name,
            'consuming': self.consuming,
            'doc': self.info.get('doc', ''),
            'args': [a.pack() for a in self.args.values()],
        }

class Iface:
    '''
    A capability descriptor: a named view shape plus the operations an
    implementing entity type must provide.
    '''
    def __init__(self, modl, name, info):

        self.modl = modl
        self.name = name
        self.info = info

        self.ifaces = tuple(info.get('interfaces', ()))
        self.controller = info.get('controller', 'owner')

        # every interface requires itself
        self.reqs = {name}
        for ifname in self.ifaces:
            self.reqs.update(modl.reqIface(ifname).reqs)

        self.view = {}
        for propname, typedef, propinfo in info.get('view', ()):
            if propname in self.view:
                mesg = f'Duplicate view property {propname} for interface {name}.'
                raise c_exc.BadIfaceDef(mesg=mesg, name=name)
            self.view[propname] = Prop(modl, name, propname, typedef, propinfo)

        ctrl = self.view.get(self.controller)
        if ctrl is None:
            mesg = f'Interface {name} controller {self.controller} is not a view property.'
            raise c_exc.BadIfaceDef(mesg=mesg, name=name)

        if not isinstance(ctrl.type, c_types.Actor):
            mesg = f'Interface {name} controller {self.controller} must be an actor.'
            raise c_exc.BadIfaceDef(mesg=mesg, name=name)

        self.opers = {}
        for opername, operinfo in info.get('opers', ()):
            if opername in self.opers:
                mesg = f'Duplicate operation {opername} for interface {name}.'
                raise c_exc.BadIfaceDef(mesg=mesg, name=name)
            self.opers[opername] = Oper(modl, self, opername, operinfo)

    def requires(self, ifname):
        '''
        Returns True if this interface is, or transitively requires, the named interface.
        '''
        return ifname in self.reqs

    def oper(self, name):
        return self.opers.get(name)

    def reqOper(self, name):
        oper = self.opers.get(name)
        if oper is None:
            raise c_exc.NoSuchOper.init(self.name, name)
        return oper

    def normView(self, valu):
        return _normPropVals(self.view, valu, self.name)

    def pack(self):
        return {
            'name': self.name,
            'doc': self.info.get('doc', ''),
            'controller': self.controller,
            'interfaces': self.ifaces,
            'view': [p.pack() for p in self.view.values()],
            'opers': [o.pack() for o in self.opers.values()],
        }

class Conformance:
    '''
    The declaration that an entity type implements an interface.

    Args:
        view (callable): A pure function of the entity props returning the view dict.
        opers (dict): A map of operation name to implementation func(exer, **args).
    '''
    def __init__(self, etype, iface, view, opers):
        self.etype = etype
        self.iface = iface
        self.view = view
        self.opers = opers

    def getView(self, props):
        return self.view(dict(props))

class EntityType:
    '''
    The EntityType class implements data model logic for a concrete entity.
    '''
    def __init__(self, modl, name, info, propdefs):

        self.modl = modl
        self.name = name
        self.info = info

        self.props = {}
        for propname, typedef, propinfo in propdefs:
            if propname in self.props:
                mesg = f'Duplicate property {propname} for entity type {name}.'
                raise c_exc.BadEntityDef(mesg=mesg, name=name)
            self.props[propname] = Prop(modl, name, propname, typedef, propinfo)

        self.ownerprop = self._reqActorProp(info.get('owner', 'owner'), 'owner')

        self.observersprop = None
        if (obsname := info.get('observers')) is not None:
            prop = self.reqProp(obsname)
            if not prop.type.isarray or not isinstance(prop.type.arraytype, c_types.Actor):
                mesg = f'Entity type {name} observers property {obsname} must be an array of actors.'
                raise c_exc.BadEntityDef(mesg=mesg, name=name)
            self.observersprop = prop

        self.ifaces = {}    # name: Conformance()

    def _reqActorProp(self, propname, role):
        prop = self.props.get(propname)
        if prop is None or not isinstance(prop.type, c_types.Actor):
            mesg = f'Entity type {self.name} {role} property {propname} must be an actor.'
            raise c_exc.BadEntityDef(mesg=mesg, name=self.name)
        return prop

    def implements(self, ifname):
        return ifname in self.ifaces

    def conformance(self, ifname):
        return self.ifaces.get(ifname)

    def prop(self, name):
        return self.props.get(name)

    def reqProp(self, name):
        prop = self.props.get(name)
        if prop is None:
            raise c_exc.NoSuchProp.init(f'{self.name}:{name}')
        return prop

    def normProps(self, props):
        return _normPropVals(self.props, props, self.name)

    def getOwner(self, props):
        return props.get(self.ownerprop.name)

    def getObservers(self, props):
        if self.observersprop is None:
            return ()
        return props.get(self.observersprop.name, ())

    def getTypeDef(self):
        info = dict(self.info)
        info['interfaces'] = tuple(self.ifaces.keys())
        propdefs = [p.getPropDef() for p in self.props.values()]
        return (self.name, info, propdefs)

    def pack(self):
        return {
            'name': self.name,
            'doc': self.info.get('doc', ''),
            'owner': self.ownerprop.name,
            'observers': self.observersprop.name if self.observersprop is not None else None,
            'interfaces': tuple(self.ifaces.keys()),
            'props': {p.name: p.pack() for p in self.props.values()},
        }

class Model:
    '''
    The data model of entity types and the interfaces they implement.

    Notes:
        Conformance declarations may only be made while the model is being
        defined. Constructing a Registry locks the model.
    '''
    def __init__(self):

        self.types = {}     # name: Type()
        self.ifaces = {}    # name: Iface()
        self.etypes = {}    # name: EntityType()
        self.modeldefs = []

        self.locked = False

        self.typesbyiface = collections.defaultdict(list)

        info = {'doc': 'The base string type.'}
        self.addBaseType(c_types.Str(self, 'str', info, {}))

        info = {'doc': 'The base 64 bit signed integer type.'}
        self.addBaseType(c_types.Int(self, 'int', info, {}))

        info = {'doc': 'The base boolean type.'}
        self.addBaseType(c_types.Bool(self, 'bool', info, {}))

        info = {'doc': 'An opaque identifier for a principal which may own or control entities.'}
        self.addBaseType(c_types.Actor(self, 'actor', info, {}))

        info = {'doc': 'A base array type.'}
        self.addBaseType(c_types.Array(self, 'array', info, {}))

    def addBaseType(self, item):
        '''
        Add a Type instance to the data model.
        '''
        self.types[item.name] = item

    def type(self, name):
        '''
        Return a capreg.lib.types.Type by name.
        '''
        return self.types.get(name)

    def getTypeClone(self, typedef):

        base = self.types.get(typedef[0])
        if base is None:
            raise c_exc.NoSuchType.init(typedef[0])

        item = base.clone(typedef[1])
        if item.isarray and item.arraytype is None:
            mesg = 'Array type requires type= option.'
            raise c_exc.BadTypeDef(mesg=mesg, name=typedef[0])

        return item

    def lock(self):
        '''
        Lock the model, fixing all entity types and their conformance declarations.
        '''
        if not self.locked:
            logger.debug('locking model with %d entity types and %d interfaces',
                          len(self.etypes), len(self.ifaces))
        self.locked = True

    def _reqNotLocked(self, name):
        if self.locked:
            mesg = f'The model is locked, definitions for {name} may not be changed.'
            raise c_exc.BadEntityDef(mesg=mesg, name=name)

    def _reqNewName(self, name):

        if not isinstance(name, str) or namere.match(name) is None:
            raise c_exc.BadArg(mesg=f'Invalid model element name: {name!r}', name=name)

        if name in self.ifaces:
            raise c_exc.DupIfaceName.init(name)

        if name in self.etypes or name in self.types:
            raise c_exc.DupTypeName.init(name)

    def addDataModels(self, mods):
        '''
        Add a list of (name, mdef) tuples.

        A model definition (mdef) is structured as follows::

            {
                "interfaces":(
                    (ifacename, {
                        'doc': docstr,
                        'interfaces': (ifacename,),
                        'controller': propname,
                        'view': ((propname, (typename, typeopts), {info}),),
                        'opers': (
                            (opername, {'consuming': bool, 'args': ((argname, (typename, typeopts), {info}),)}),
                        ),
                    }),
                ),

                "entities":(
                    (typename, {'owner': propname, 'interfaces': ((ifacename, {'view': func, 'opers': {}}),)}, (
                        (propname, (typename, typeopts), {info}),
                    )),
                ),
            }

        Args:
            mods (list):  The list of tuples.

        Returns:
            None
        '''
        self.modeldefs.extend(mods)

        # load all the interfaces...
        for _, mdef in mods:
            for name, info in mdef.get('interfaces', ()):
                self.addIface(name, info)

        # now we can load all the entity types...
        for _, mdef in mods:
            for name, info, propdefs in mdef.get('entities', ()):
                self.addEntityType(name, info, propdefs)

    def addIface(self, name, info):

        self._reqNotLocked(name)
        self._reqNewName(name)

        try:
            c_schemas.reqValidIfaceDef(info)
        except c_exc.SchemaViolation as e:
            mesg = f'Invalid interface definition for {name}: {e.get("mesg")}'
            raise c_exc.BadIfaceDef(mesg=mesg, name=name) from None

        iface = Iface(self, name, info)
        self.ifaces[name] = iface

        return iface

    def iface(self, name):
        return self.ifaces.get(name)

    def reqIface(self, name):
        iface = self.ifaces.get(name)
        if iface is None:
            raise c_exc.NoSuchIface.init(name)
        return iface

    def addEntityType(self, name, info, propdefs):
        '''
        Add an entity type and declare the interfaces it implements.

        Args:
            name (str): The entity type name.
            info (dict): The entity type info. The "interfaces" key contains
                         (ifname, {'view': func, 'opers': {name: func}}) tuples.
            propdefs (list): A list of (name, (typename, typeopts), info) tuples.

        Notes:
            The entity type is only added if every conformance declaration is valid.

        Returns:
            EntityType: The new entity type.
        '''
        self._reqNotLocked(name)
        self._reqNewName(name)

        try:
            c_schemas.reqValidEntityInfo(info)
            c_schemas.reqValidFieldDefs(propdefs)
        except c_exc.SchemaViolation as e:
            mesg = f'Invalid entity type definition for {name}: {e.get("mesg")}'
            raise c_exc.BadEntityDef(mesg=mesg, name=name) from None

        etype = EntityType(self, name, info, propdefs)

        ifdefs = []
        for ifname, ifinfo in info.get('interfaces', ()):
            ifdefs.append((self.reqIface(ifname), ifinfo))

        # required interfaces have strictly fewer requirements than their dependents
        ifdefs.sort(key=lambda x: len(x[0].reqs))

        for iface, ifinfo in ifdefs:
            self._declareConformance(etype, iface, ifinfo.get('view'), ifinfo.get('opers', {}))

        self.etypes[name] = etype
        for ifname in etype.ifaces.keys():
            self.typesbyiface[ifname].append(name)

        return etype

    def declareConformance(self, typename, ifname, view, opers):
        '''
        Declare that an existing entity type implements an interface.

        Args:
            typename (str): The entity type name.
            ifname (str): The interface name.
            view (callable): A pure function mapping entity props to the interface view.
            opers (dict): A map of operation names to implementation functions.

        Notes:
            Every interface required by ifname must already be declared for the type.
            Declarations are rejected once the model is locked.

        Returns:
            Conformance: The new conformance declaration.
        '''
        self._reqNotLocked(typename)

        etype = self.reqEntityType(typename)
        iface = self.reqIface(ifname)

        conf = self._declareConformance(etype, iface, view, opers)
        self.typesbyiface[ifname].append(typename)

        return conf

    def _declareConformance(self, etype, iface, view, opers):

        if etype.implements(iface.name):
            mesg = f'Entity type {etype.name} already implements interface {iface.name}.'
            raise c_exc.BadEntityDef(mesg=mesg, name=etype.name, iface=iface.name)

        if not callable(view):
            mesg = f'Entity type {etype.name} must provide a view function for interface {iface.name}.'
            raise c_exc.BadEntityDef(mesg=mesg, name=etype.name, iface=iface.name)

        if not isinstance(opers, dict):
            mesg = f'Entity type {etype.name} operations for interface {iface.name} must be a dict.'
            raise c_exc.BadEntityDef(mesg=mesg, name=etype.name, iface=iface.name)

        missing = [name for name in iface.opers.keys() if name not in opers]
        if missing:
            names = ', '.join(missing)
            mesg = f'Entity type {etype.name} is missing operations for interface {iface.name}: {names}'
            raise c_exc.BadEntityDef(mesg=mesg, name=etype.name, iface=iface.name, opers=tuple(missing))

        for name, func in opers.items():

            if iface.oper(name) is None:
                mesg = f'Entity type {etype.name} implements undeclared operation {name} for interface {iface.name}.'
                raise c_exc.BadEntityDef(mesg=mesg, name=etype.name, iface=iface.name)

            if not callable(func):
                mesg = f'Entity type {etype.name} operation {iface.name}.{name} is not callable.'
                raise c_exc.BadEntityDef(mesg=mesg, name=etype.name, iface=iface.name)

        for reqname in sorted(iface.reqs):
            if reqname != iface.name and not etype.implements(reqname):
                mesg = (f'Entity type {etype.name} implements {iface.name} which requires {reqname}'
                        f' but does not implement {reqname}.')
                raise c_exc.BadEntityDef(mesg=mesg, name=etype.name, iface=iface.name)

        conf = Conformance(etype, iface, view, dict(opers))
        etype.ifaces[iface.name] = conf

        return conf

    def etype(self, name):
        return self.etypes.get(name)

    def reqEntityType(self, name):
        etype = self.etypes.get(name)
        if etype is None:
            raise c_exc.NoSuchType.init(name)
        return etype

    def getTypesByIface(self, ifname):
        '''
        Return the names of the entity types which implement an interface.
        '''
        return tuple(self.typesbyiface.get(ifname, ()))

    def getModelDefs(self):
        '''
        Returns:
            A list of one model definition describing the current data model
            with implementation functions omitted.
        '''
        mdef = {
            'interfaces': [(i.name, i.info) for i in self.ifaces.values()],
            'entities': [e.getTypeDef() for e in self.etypes.values()],
        }
        return [('all', mdef)]

    def getModelDict(self):
        return {
            'types': {t.name: t.pack() for t in self.types.values()},
            'interfaces': {i.name: i.pack() for i in self.ifaces.values()},
            'entities': {e.name: e.pack() for e in self.etypes.values()},
        }
