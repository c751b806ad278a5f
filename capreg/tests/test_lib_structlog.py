import io
import json
import logging

import capreg.exc as c_exc

import capreg.lib.ref as c_ref
import capreg.lib.structlog as c_structlog

import capreg.tests.utils as c_t_utils

logger = logging.getLogger(__name__)

class Woot:
    def __repr__(self):
        return '<woot>'

class StructLogTest(c_t_utils.CapTest):

    def test_structlog_base(self):

        stream = io.StringIO()
        handler = logging.StreamHandler(stream=stream)
        handler.setFormatter(c_structlog.JsonFormatter())
        logger.addHandler(handler)
        level = logger.level
        logger.setLevel(logging.DEBUG)

        try:
            logger.info('create %s', 'zoo:cat', extra={'capreg': {'iden': 'haha', 'actor': 'alice', 'level': 'newp'}})

            try:
                raise c_exc.NoSuchEntity.init('haha')
            except c_exc.CapErr:
                logger.exception('invoke failed')

            ref = c_ref.Ref(c_ref.KIND_IFACE, 'zoo:animal', 'haha')
            logger.info('query', extra={'capreg': {'ref': ref, 'query': Woot(), 'message': 'newp'}})

        finally:
            logger.removeHandler(handler)
            logger.setLevel(level)

        lines = [json.loads(line) for line in stream.getvalue().strip().split('\n')]
        self.len(3, lines)

        # extras never replace the record fields
        mesg = lines[2]
        self.eq('query', mesg.get('message'))
        self.eq(['iface', 'zoo:animal', 'haha'], mesg.get('ref'))
        self.eq('<woot>', mesg.get('query'))

        mesg = lines[0]
        self.eq('create zoo:cat', mesg.get('message'))
        self.eq('INFO', mesg.get('level'))
        self.eq('haha', mesg.get('iden'))
        self.eq('alice', mesg.get('actor'))
        self.eq(__name__, mesg['logger']['name'])
        self.nn(mesg.get('time'))

        mesg = lines[1]
        self.eq('ERROR', mesg.get('level'))
        self.eq('NoSuchEntity', mesg['err']['errname'])
        self.eq('haha', mesg['err']['iden'])
        self.isin('Traceback', mesg['err']['etb'])
