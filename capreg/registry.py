'''
The live entity table and the operations which create, coerce, resolve and
exercise entities through their interfaces.
'''
import logging
import threading
import collections

import capreg.exc as c_exc
import capreg.common as c_common

import capreg.lib.ref as c_ref
import capreg.lib.config as c_config
import capreg.lib.msgpack as c_msgpack

logger = logging.getLogger(__name__)

class Entity:
    '''
    An immutable entity instance.
    '''
    def __init__(self, etype, iden, props, created):
        self.etype = etype
        self.iden = iden
        self.props = props
        self.created = created

        self.owner = etype.getOwner(props)
        self.observers = etype.getObservers(props)

    def __repr__(self):
        return f'Entity: {self.etype.name} {self.iden}'

    def cansee(self, actor):
        return actor == self.owner or actor in self.observers

    def pack(self):
        return {
            'iden': self.iden,
            'type': self.etype.name,
            'props': dict(self.props),
            'created': self.created,
        }

class Exercise:
    '''
    The context passed to an operation implementation.

    Implementations read the entity state and arguments from the exercise
    and may create successor entities. Nothing is applied to the registry
    until the implementation returns.
    '''
    def __init__(self, regy, ref, ent, iface, oper, view, caller, args):

        self.regy = regy
        self.ref = ref
        self.iface = iface
        self.oper = oper
        self.view = view
        self.caller = caller
        self.args = args

        self.iden = ent.iden
        self.etype = ent.etype
        self.owner = ent.owner
        self.props = dict(ent.props)

        # actors whose authority the operation carries
        self.actors = (ent.owner, caller)

        self.edits = []

    def create(self, typename, props, owner=None):
        '''
        Create a successor entity when the operation commits.

        Args:
            typename (str): The entity type to create.
            props (dict): The property values for the new entity.
            owner (str): The owner of the new entity (defaults to the current owner).

        Returns:
            Ref: The entity typed reference to the new entity.
        '''
        if not self.oper.consuming:
            mesg = f'Non-consuming operation {self.oper.full} may not create entities.'
            raise c_exc.BadArg(mesg=mesg, oper=self.oper.full)

        if owner is None:
            owner = self.owner

        etype = self.regy.model.reqEntityType(typename)
        ent = self.regy._initEntity(etype, props, owner, self.actors)

        self.edits.append(('create', ent))
        return c_ref.Ref(c_ref.KIND_TYPE, etype.name, ent.iden)

    def toIfaceRef(self, ref, ifname):
        return self.regy.toIfaceRef(ref, ifname)

class IfaceQuery:
    '''
    A lazy, restartable query for live entities implementing an interface.

    Each iteration enumerates the live entities visible to the actor and
    yields (ref, view) tuples. The view is None if the entity was archived
    between enumeration and resolution.
    '''
    def __init__(self, regy, iface, actor):
        self.regy = regy
        self.iface = iface
        self.actor = actor

    def __iter__(self):

        with self.regy.lock:
            idens = [ent.iden for ent in self.regy.live.values()
                     if ent.etype.implements(self.iface.name) and ent.cansee(self.actor)]

        for iden in idens:
            ref = c_ref.Ref(c_ref.KIND_IFACE, self.iface.name, iden)
            yield ref, self.regy.resolveView(ref)

class Registry:
    '''
    A registry of live entities for a locked capreg.datamodel.Model.

    Args:
        model (capreg.datamodel.Model): The data model. It is locked on construction.
        conf (dict): Optional configuration options.
        confpath (str): Optional path to a yaml file of configuration options.

    Notes:
        Explicit options take precedence over environment variables which
        take precedence over the yaml file.
    '''

    confdefs = {
        'trace': {
            'type': 'boolean',
            'default': True,
            'description': 'Log a trace line for every committed create, archive and operation.',
        },
        'view:check': {
            'type': 'boolean',
            'default': True,
            'description': 'Normalize computed views through the interface view property types.',
        },
        'events:max': {
            'type': 'integer',
            'minimum': 0,
            'default': 0,
            'description': 'The maximum number of events to retain (0 is unlimited).',
        },
    }

    def __init__(self, model, conf=None, confpath=None):

        if conf is None:
            conf = {}

        schema = c_config.getJsSchema(self.confdefs)
        self.conf = c_config.Config(schema, conf=conf, envar_prefixes=('capreg',))
        self.conf.setConfFromEnvs()
        if confpath is not None:
            self.conf.setConfFromFile(confpath)
        self.conf.reqConfValid()

        logger.debug('registry configuration: %r', self.conf.asDict())

        self.model = model
        self.model.lock()

        self.lock = threading.RLock()

        self.live = {}          # iden: Entity()
        self.typebyiden = {}    # iden: typename (live and archived)

        maxevents = self.conf.reqConfValu('events:max')
        self.events = collections.deque(maxlen=maxevents or None)
        self.nextoffs = 0

    def _reqActor(self, actor):
        if not isinstance(actor, str):
            raise c_exc.BadArg(mesg=f'Actor must be a string: {actor!r}', actor=actor)

        actor = actor.strip()
        if not actor:
            raise c_exc.BadArg(mesg='Actor may not be empty.', actor=actor)

        return actor

    def _reqIfaceRef(self, ref):
        ref = c_ref.reqRef(ref)
        if not ref.isiface():
            mesg = f'Reference {ref.iden} is entity typed ({ref.name}), an interface reference is required.'
            raise c_exc.BadArg(mesg=mesg, iden=ref.iden, name=ref.name)
        return ref

    def _initEntity(self, etype, props, owner, actors):

        owner = self._reqActor(owner)

        if props is None:
            props = {}

        if not isinstance(props, dict):
            mesg = f'Props for {etype.name} must be a dict: {props!r}'
            raise c_exc.BadArg(mesg=mesg, name=etype.name)

        props = dict(props)
        ownername = etype.ownerprop.name

        curv = props.get(ownername)
        if curv is not None and etype.ownerprop.norm(curv) != owner:
            mesg = f'Owner property {ownername} does not match the creating owner {owner}.'
            raise c_exc.AuthorizationError(mesg=mesg, name=etype.name, owner=owner)

        if owner not in actors:
            mesg = f'Creating a {etype.name} owned by {owner} is not authorized by {", ".join(actors)}.'
            raise c_exc.AuthorizationError(mesg=mesg, name=etype.name, owner=owner)

        props[ownername] = owner
        props = etype.normProps(props)

        return Entity(etype, c_common.guid(), props, c_common.now())

    def _reqConformance(self, ent, ifname):
        conf = ent.etype.conformance(ifname)
        if conf is None:
            raise c_exc.ConformanceError.init(ent.etype.name, ifname)
        return conf

    def _getView(self, ent, conf):
        view = conf.getView(ent.props)
        if self.conf.get('view:check'):
            return conf.iface.normView(view)
        return dict(view)

    def _commit(self, edits, actor, oper=None):
        '''
        Apply a list of ('create', Entity) / ('archive', Entity) edits.

        Notes:
            The caller must hold the registry lock and every edit must already be valid.
        '''
        tick = c_common.now()

        for edit, ent in edits:

            if edit == 'create':
                self.live[ent.iden] = ent
                self.typebyiden[ent.iden] = ent.etype.name
                info = {'iden': ent.iden, 'type': ent.etype.name, 'props': dict(ent.props),
                        'actor': actor, 'time': tick}

            else:
                self.live.pop(ent.iden, None)
                info = {'iden': ent.iden, 'type': ent.etype.name, 'oper': oper,
                        'actor': actor, 'time': tick}

            self.events.append((self.nextoffs, (edit, info)))
            self.nextoffs += 1

            if self.conf.get('trace'):
                extra = {'iden': ent.iden, 'type': ent.etype.name, 'actor': actor}
                if oper is not None:
                    extra['oper'] = oper
                logger.info('%s %s %s by %s', edit, ent.etype.name, ent.iden, actor,
                            extra={'capreg': extra})

    def create(self, typename, props, owner):
        '''
        Create a new entity owned by the given actor.

        Args:
            typename (str): The entity type name.
            props (dict): The entity property values.
            owner (str): The owning actor.

        Returns:
            Ref: An entity typed reference to the new entity.
        '''
        owner = self._reqActor(owner)
        etype = self.model.reqEntityType(typename)

        with self.lock:
            ent = self._initEntity(etype, props, owner, (owner,))
            self._commit((('create', ent),), ent.owner)

        return c_ref.Ref(c_ref.KIND_TYPE, etype.name, ent.iden)

    def toIfaceRef(self, ref, ifname):
        '''
        Convert a reference to an interface typed reference.

        Entity typed references must be for an entity type which implements
        the interface. Interface typed references convert if the held
        interface is, or transitively requires, the target interface or if
        the entity type recorded for the identity implements the target.

        Raises:
            ConformanceError: If the conversion is not verifiable.

        Returns:
            Ref: A reference with the same identity.
        '''
        ref = c_ref.reqRef(ref)
        iface = self.model.reqIface(ifname)

        if ref.isiface():
            held = self.model.reqIface(ref.name)
            if held.requires(iface.name):
                return ref.retag(c_ref.KIND_IFACE, iface.name)

            with self.lock:
                typename = self.typebyiden.get(ref.iden)

            etype = self.model.etype(typename) if typename is not None else None
            if etype is None or not etype.implements(iface.name):
                mesg = f'Interface {held.name} does not require interface {iface.name}'
                if typename is not None:
                    mesg += f' and entity type {typename} does not implement it.'
                else:
                    mesg += f' and {ref.iden} has no recorded entity type.'
                raise c_exc.ConformanceError(mesg=mesg, name=typename, iface=iface.name)

        else:
            etype = self.model.reqEntityType(ref.name)
            if not etype.implements(iface.name):
                raise c_exc.ConformanceError.init(etype.name, iface.name)

        return ref.retag(c_ref.KIND_IFACE, iface.name)

    def coerceRef(self, ref, name):
        '''
        Retag a reference to an entity type or interface WITHOUT checking conformance.

        This is unsafe. The caller is responsible for knowing that the
        underlying entity implements the target. A wrong assumption raises
        ConformanceError the first time the reference is resolved.

        Args:
            ref (Ref): The reference to retag.
            name (str): The target entity type or interface name.

        Returns:
            Ref: A reference with the same identity.
        '''
        ref = c_ref.reqRef(ref)

        if self.model.etype(name) is not None:
            kind = c_ref.KIND_TYPE
        elif self.model.iface(name) is not None:
            kind = c_ref.KIND_IFACE
        else:
            mesg = f'No entity type or interface named {name}.'
            raise c_exc.NoSuchName(mesg=mesg, name=name)

        logger.debug('unchecked coercion of %s from %s to %s', ref.iden, ref.name, name)
        return ref.retag(kind, name)

    def fromIfaceRef(self, ref, typename):
        '''
        Recover the entity typed reference from an interface typed reference.

        Notes:
            The type recorded for the identity is used, so archived entities
            still convert.

        Raises:
            NoSuchType: If typename is not an entity type in the model.

        Returns:
            Ref: The entity typed reference or None if the identity is not of the given type.
        '''
        ref = c_ref.reqRef(ref)
        etype = self.model.reqEntityType(typename)

        with self.lock:
            name = self.typebyiden.get(ref.iden)

        if name != etype.name:
            return None

        return ref.retag(c_ref.KIND_TYPE, etype.name)

    def getTypeName(self, ref):
        '''
        Return the entity type name recorded for the identity of a reference or None.
        '''
        ref = c_ref.reqRef(ref)
        with self.lock:
            return self.typebyiden.get(ref.iden)

    def isLive(self, ref):
        ref = c_ref.reqRef(ref)
        with self.lock:
            return ref.iden in self.live

    def fetch(self, ref):
        '''
        Return a copy of the props of the live entity for an entity typed reference.

        Returns:
            dict: The entity props or None if the entity is archived.
        '''
        ref = c_ref.reqRef(ref)
        if ref.isiface():
            mesg = f'Reference {ref.iden} is interface typed ({ref.name}), use resolveView().'
            raise c_exc.BadArg(mesg=mesg, iden=ref.iden, name=ref.name)

        with self.lock:

            ent = self.live.get(ref.iden)
            if ent is None:
                return None

            if ent.etype.name != ref.name:
                mesg = f'Reference {ref.iden} is typed {ref.name} but the entity is a {ent.etype.name}.'
                raise c_exc.ConformanceError(mesg=mesg, name=ent.etype.name, iden=ref.iden)

            return dict(ent.props)

    def resolveView(self, ref):
        '''
        Compute the interface view of the live entity behind an interface typed reference.

        Returns:
            dict: The view or None if the entity is archived.
        '''
        ref = self._reqIfaceRef(ref)

        with self.lock:

            ent = self.live.get(ref.iden)
            if ent is None:
                return None

            conf = self._reqConformance(ent, ref.name)
            return self._getView(ent, conf)

    def invoke(self, ref, name, args=None, caller=None):
        '''
        Exercise an interface operation on the entity behind an interface typed reference.

        Args:
            ref (Ref): The interface typed reference.
            name (str): The operation name.
            args (dict): The operation arguments.
            caller (str): The invoking actor. This must be the view controller.

        Notes:
            Consuming operations archive the entity and commit any successor
            entities created by the implementation. An exception from the
            implementation leaves the registry unchanged.

        Returns:
            The result of the operation implementation.
        '''
        ref = self._reqIfaceRef(ref)
        caller = self._reqActor(caller)

        iface = self.model.reqIface(ref.name)
        oper = iface.reqOper(name)

        if args is None:
            args = {}

        args = oper.normArgs(args)

        with self.lock:

            ent = self.live.get(ref.iden)
            if ent is None:
                raise c_exc.NoSuchEntity.init(ref.iden)

            conf = self._reqConformance(ent, iface.name)
            view = self._getView(ent, conf)

            ctrl = view.get(iface.controller)
            if caller != ctrl:
                mesg = f'Actor {caller} is not the controller of {iface.name} operation {name}.'
                raise c_exc.AuthorizationError(mesg=mesg, iden=ref.iden, oper=oper.full,
                                               actor=caller, controller=ctrl)

            exer = Exercise(self, ref, ent, iface, oper, view, caller, args)

            retn = conf.opers[name](exer, **args)

            edits = []
            if oper.consuming:
                edits.append(('archive', ent))

            edits.extend(exer.edits)
            self._commit(edits, caller, oper=oper.full)

        if self.conf.get('trace'):
            logger.info('%s on %s returned %r', oper.full, ref.iden, retn,
                        extra={'capreg': {'iden': ref.iden, 'oper': oper.full, 'actor': caller}})

        return retn

    def queryByIface(self, ifname, actor):
        '''
        Query the live entities visible to an actor which implement an interface.

        Returns:
            IfaceQuery: A restartable iterable of (ref, view) tuples.
        '''
        iface = self.model.reqIface(ifname)
        actor = self._reqActor(actor)
        return IfaceQuery(self, iface, actor)

    def iterEvents(self, offs=0):
        '''
        Yield (offs, (evnt, info)) tuples for committed events starting at the given offset.
        '''
        with self.lock:
            items = [item for item in self.events if item[0] >= offs]

        for item in items:
            yield item

    def exportEvents(self, offs=0):
        '''
        Return the msgpack encoded events starting at the given offset.
        '''
        return b''.join(c_msgpack.en(item) for item in self.iterEvents(offs=offs))
