import logging

import capreg.exc as c_exc
import capreg.common as c_common

import capreg.tests.utils as c_t_utils

logger = logging.getLogger(__name__)

class CommonTest(c_t_utils.CapTest):

    def test_common_guid(self):

        iden = c_common.guid()
        self.true(c_common.isguid(iden))
        self.ne(iden, c_common.guid())

        self.eq(c_common.guid(('zoo:cat', 10)), c_common.guid(('zoo:cat', 10)))
        self.ne(c_common.guid(('zoo:cat', 10)), c_common.guid(('zoo:dog', 10)))

        self.false(c_common.isguid('newp'))
        self.false(c_common.isguid(iden.upper()))

    def test_common_misc(self):

        self.eq(10, c_common.intify('10'))
        self.none(c_common.intify('newp'))
        self.none(c_common.intify((1,)))

        self.eq('hello', c_common.trimText('hello'))
        self.eq('he...', c_common.trimText('hello world', n=5))

        self.true(c_common.now() > 0)

        self.eq([{'op': 'create'}], c_common.yamlloads('- {op: create}'))
        self.none(c_common.yamlload('/newp/newp.yaml'))

    def test_common_envbool(self):

        with self.setTstEnvars(CAPREG_WOOT='false'):
            self.false(c_common.envbool('CAPREG_WOOT'))

        with self.setTstEnvars(CAPREG_WOOT='1'):
            self.true(c_common.envbool('CAPREG_WOOT'))

        self.false(c_common.envbool('CAPREG_NEWP'))
        self.true(c_common.envbool('CAPREG_NEWP', defval='true'))

    def test_common_err(self):

        try:
            raise c_exc.NoSuchEntity.init('newp')
        except c_exc.CapErr as e:
            name, info = c_common.err(e, fulltb=True)

        self.eq('NoSuchEntity', name)
        self.eq('newp', info.get('iden'))
        self.isin('Traceback', info.get('etb'))

        try:
            raise ValueError('woot')
        except ValueError as e:
            name, info = c_common.err(e)

        self.eq('ValueError', name)
        self.eq('woot', info.get('mesg'))

    def test_common_loglevel(self):

        self.eq(logging.DEBUG, c_common.normLogLevel('debug'))
        self.eq(logging.INFO, c_common.normLogLevel(' 20 '))
        self.eq(logging.WARNING, c_common.normLogLevel(logging.WARNING))

        with self.raises(c_exc.BadArg):
            c_common.normLogLevel('newp')

        with self.raises(c_exc.BadArg):
            c_common.normLogLevel(1)

        with self.raises(c_exc.BadArg):
            c_common.normLogLevel(None)

    def test_common_logconf(self):

        ret = c_common.setlogging(logger)
        self.eq({'defval': None, 'structlog': False, 'datefmt': None}, ret)

        envs = {
            'CAPREG_LOG_LEVEL': 'DEBUG',
            'CAPREG_LOG_STRUCT': 'true',
            'CAPREG_LOG_DATEFORMAT': '%Y',
        }
        with self.setTstEnvars(**envs):
            ret = c_common._getLogConfFromEnv()

        self.eq({'defval': 'DEBUG', 'structlog': True, 'datefmt': '%Y'}, ret)
