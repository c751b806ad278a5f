import logging

import msgspec.json as m_json

import capreg.common as c_common

def _encRepr(valu):
    # values msgspec can not encode are logged as their trimmed repr
    return c_common.trimText(repr(valu))

class JsonFormatter(logging.Formatter):
    '''
    Format log records as single line JSON objects.

    Registry trace lines pass their fields as ``extra={'capreg': {...}}``.
    Those fields are merged into the top level of the object and never
    replace the message, logger, level, time or err keys.
    '''
    def format(self, record: logging.LogRecord):

        record.message = record.getMessage()
        ret = {
            'message': self.formatMessage(record),
            'logger': {
                'name': record.name,
                'process': record.processName,
                'filename': record.filename,
                'func': record.funcName,
            },
            'level': record.levelname,
            'time': self.formatTime(record, self.datefmt),
        }

        if record.exc_info:
            name, info = c_common.err(record.exc_info[1], fulltb=True)
            # ename is the function name, errname is the exception class
            info['errname'] = name
            ret['err'] = info

        extras = getattr(record, 'capreg', None)
        if extras:
            for name, valu in extras.items():
                ret.setdefault(name, valu)

        return m_json.encode(ret, enc_hook=_encRepr).decode()
