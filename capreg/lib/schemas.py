import capreg.lib.config as c_config

_FieldDefSchema = {
    'type': 'array',
    'minItems': 3,
    'maxItems': 3,
    'items': [
        {'type': 'string', 'minLength': 1},
        {
            'type': 'array',
            'minItems': 2,
            'maxItems': 2,
            'items': [
                {'type': 'string', 'minLength': 1},
                {'type': 'object'},
            ],
        },
        {'type': 'object'},
    ],
}

_FieldDefsSchema = {
    'type': 'array',
    'items': _FieldDefSchema,
}

_OperDefSchema = {
    'type': 'array',
    'minItems': 2,
    'maxItems': 2,
    'items': [
        {'type': 'string', 'minLength': 1},
        {
            'type': 'object',
            'properties': {
                'doc': {'type': 'string'},
                'consuming': {'type': 'boolean'},
                'args': _FieldDefsSchema,
            },
            'additionalProperties': False,
        },
    ],
}

_IfaceDefSchema = {
    'type': 'object',
    'properties': {
        'doc': {'type': 'string'},
        'controller': {'type': 'string', 'minLength': 1},
        'interfaces': {
            'type': 'array',
            'items': {'type': 'string', 'minLength': 1},
        },
        'view': _FieldDefsSchema,
        'opers': {
            'type': 'array',
            'items': _OperDefSchema,
        },
    },
    'required': ['view'],
    'additionalProperties': False,
}

_EntityInfoSchema = {
    'type': 'object',
    'properties': {
        'doc': {'type': 'string'},
        'owner': {'type': 'string', 'minLength': 1},
        'observers': {'type': 'string', 'minLength': 1},
        'interfaces': {
            'type': 'array',
            'items': {
                'type': 'array',
                'minItems': 2,
                'maxItems': 2,
                'items': [
                    {'type': 'string', 'minLength': 1},
                    {'type': 'object'},
                ],
            },
        },
    },
    'additionalProperties': False,
}

reqValidFieldDefs = c_config.getJsValidator(dict(_FieldDefsSchema))
reqValidIfaceDef = c_config.getJsValidator(dict(_IfaceDefSchema))
reqValidEntityInfo = c_config.getJsValidator(dict(_EntityInfoSchema))
