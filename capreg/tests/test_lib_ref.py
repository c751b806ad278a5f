import io

import capreg.exc as c_exc
import capreg.common as c_common

import capreg.lib.ref as c_ref
import capreg.lib.msgpack as c_msgpack

import capreg.tests.utils as c_t_utils

class RefTest(c_t_utils.CapTest):

    def test_lib_ref(self):

        iden = c_common.guid()

        ref = c_ref.Ref(c_ref.KIND_TYPE, 'zoo:cat', iden)
        self.eq(iden, str(ref))
        self.false(ref.isiface())

        iref = ref.retag(c_ref.KIND_IFACE, 'zoo:animal')
        self.true(iref.isiface())
        self.eq(str(ref), str(iref))
        self.ne(ref, iref)

        # refs survive a msgpack round trip as plain tuples
        byts = c_msgpack.en(iref)
        self.eq(iref, c_ref.reqRef(next(c_msgpack.iterfd(io.BytesIO(byts)))))
        self.eq(iref, c_ref.reqRef(['iface', 'zoo:animal', iden]))

    def test_lib_ref_bad(self):

        iden = c_common.guid()

        for valu in (None, 'newp', ('type', 'zoo:cat'), ('newp', 'zoo:cat', iden),
                     ('type', 'zoo:cat', 'newp'), ('type', 'zoo:cat', 10)):
            with self.raises(c_exc.BadArg):
                c_ref.reqRef(valu)
