import io

import capreg.exc as c_exc

import capreg.lib.msgpack as c_msgpack

import capreg.tests.utils as c_t_utils

class MsgPackTest(c_t_utils.CapTest):

    def test_msgpack_en(self):

        item = ('create', {'iden': 'haha', 'props': {'observers': ('bob',)}})
        byts = c_msgpack.en(item)
        self.eq([item], list(c_msgpack.iterfd(io.BytesIO(byts))))

        with self.raises(c_exc.NotMsgpackSafe):
            c_msgpack.en({'func': len})

        with self.raises(c_exc.NotMsgpackSafe):
            c_msgpack.en(object())

        # the packer remains usable after a failure
        self.eq(byts, c_msgpack.en(item))
        self.eq(byts, c_msgpack._fallback_en(item))

        with self.raises(c_exc.NotMsgpackSafe):
            c_msgpack._fallback_en(object())

    def test_msgpack_iterfd(self):

        items = [(0, ('create', {'iden': 'a'})), (1, ('archive', {'iden': 'a'}))]
        buf = io.BytesIO(b''.join(c_msgpack.en(i) for i in items))
        self.eq(items, list(c_msgpack.iterfd(buf)))

        # lists are decoded as tuples
        buf = io.BytesIO(c_msgpack.en(['a', ['b']]))
        self.eq([('a', ('b',))], list(c_msgpack.iterfd(buf)))
