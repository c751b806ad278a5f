import os
import tempfile

import capreg.exc as c_exc

import capreg.lib.config as c_config

import capreg.tests.utils as c_t_utils

confdefs = {
    'key:string': {
        'description': 'Key String. I have a defval!',
        'type': 'string',
        'default': 'Default string!'
    },
    'key:integer': {
        'description': 'Key Integer',
        'type': 'integer',
        'minimum': 0,
    },
    'key:bool:defvalfalse': {
        'description': 'Key Bool, defval false.',
        'type': 'boolean',
        'default': False,
    },
}

class ConfTest(c_t_utils.CapTest):

    def test_config_basics(self):

        schema = c_config.getJsSchema(confdefs)
        self.false(schema.get('additionalProperties'))

        conf = c_config.Config(schema)
        self.len(0, conf)

        conf.reqConfValid()
        self.eq('Default string!', conf.get('key:string'))
        self.false(conf.get('key:bool:defvalfalse'))
        self.none(conf.get('key:integer'))

        conf['key:integer'] = 10
        self.eq(10, conf.reqConfValu('key:integer'))

        with self.raises(c_exc.BadConfValu):
            conf['key:integer'] = -1

        with self.raises(c_exc.BadArg):
            conf['key:newp'] = 1

        with self.raises(c_exc.BadArg):
            conf.reqConfValu('key:newp')

        del conf['key:integer']
        with self.raises(c_exc.NeedConfValu):
            conf.reqConfValu('key:integer')

        data = conf.asDict()
        data['key:string'] = 'haha'
        self.eq('Default string!', conf.get('key:string'))
        self.isin('key:string', repr(conf))
        self.sorteq(['key:string', 'key:bool:defvalfalse'], list(conf))

    def test_config_envars(self):

        schema = c_config.getJsSchema(confdefs)

        self.eq('CAPREG_KEY_BOOL_DEFVALFALSE', c_config.make_envar_name('key:bool:defvalfalse', prefix='capreg'))
        self.eq('KEY_STRING', c_config.make_envar_name('key:string'))

        conf = c_config.Config(schema, conf={'key:integer': 1}, envar_prefixes=('capreg',))
        self.eq('CAPREG_KEY_STRING', conf.getEnvarMapping().get('key:string'))

        envs = {
            'CAPREG_KEY_STRING': 'envstring',
            'CAPREG_KEY_INTEGER': '42',
            'CAPREG_KEY_BOOL_DEFVALFALSE': 'true',
        }
        with self.setTstEnvars(**envs):
            with self.getLoggerStream('capreg.lib.config') as stream:
                updates = conf.setConfFromEnvs()

        self.eq({'key:string': 'envstring', 'key:bool:defvalfalse': True}, updates)
        self.eq(1, conf.get('key:integer'))

        stream.seek(0)
        self.isin('CAPREG_KEY_INTEGER', stream.read())

        with self.setTstEnvars(CAPREG_KEY_INTEGER='-1'):
            conf = c_config.Config(schema, envar_prefixes=('capreg',))
            with self.raises(c_exc.BadConfValu):
                conf.setConfFromEnvs()

    def test_config_file(self):

        schema = c_config.getJsSchema(confdefs)
        conf = c_config.Config(schema, conf={'key:string': 'hehe'})

        with tempfile.TemporaryDirectory() as dirn:

            conf.setConfFromFile(os.path.join(dirn, 'newp.yaml'))
            self.eq(1, len(conf))

            path = os.path.join(dirn, 'conf.yaml')
            with open(path, 'w') as fd:
                fd.write('key:string: haha\nkey:integer: 20\n')

            conf.setConfFromFile(path)

        self.eq('hehe', conf.get('key:string'))
        self.eq(20, conf.get('key:integer'))

    def test_config_validator(self):

        func = c_config.getJsValidator({'type': 'object', 'properties': {'x': {'type': 'integer'}}})
        self.eq({'x': 1}, func({'x': 1}))

        with self.raises(c_exc.SchemaViolation):
            func({'x': 'newp'})

        # validators are cached by schema
        self.true(func is c_config.getJsValidator({'type': 'object', 'properties': {'x': {'type': 'integer'}}}))
