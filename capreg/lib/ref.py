'''
Typed references to registry entities.
'''
import collections

import capreg.exc as c_exc
import capreg.common as c_common

KIND_TYPE = 'type'
KIND_IFACE = 'iface'

kinds = (KIND_TYPE, KIND_IFACE)

class Ref(collections.namedtuple('Ref', ('kind', 'name', 'iden'))):
    '''
    An identity handle for an entity tagged with the entity type or
    interface name used to address it.

    The string form of a Ref is the identity alone, so the same entity
    prints identically regardless of the tag.
    '''
    __slots__ = ()

    def __str__(self):
        return self.iden

    def isiface(self):
        return self.kind == KIND_IFACE

    def retag(self, kind, name):
        return Ref(kind, name, self.iden)

def reqRef(valu):
    '''
    Require a valid Ref, also accepting (kind, name, iden) tuples.
    '''
    if not isinstance(valu, (list, tuple)) or len(valu) != 3:
        raise c_exc.BadArg(mesg=f'Invalid reference: {valu!r}', valu=valu)

    ref = Ref(*valu)

    if ref.kind not in kinds:
        raise c_exc.BadArg(mesg=f'Invalid reference kind: {ref.kind!r}', valu=valu)

    if not isinstance(ref.iden, str) or not c_common.isguid(ref.iden):
        raise c_exc.BadArg(mesg=f'Invalid reference iden: {ref.iden!r}', valu=valu)

    return ref
