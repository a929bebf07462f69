import logging

import msgspec.json as m_json

import signtrust.common as s_common

_cb = lambda x: s_common.trimText(repr(x))

class JsonFormatter(logging.Formatter):
    '''
    Format log records as single line JSON objects.
    '''
    def format(self, record: logging.LogRecord):

        record.message = record.getMessage()
        mesg = self.formatMessage(record)
        ret = {
            'message': mesg,
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
            name, info = s_common.err(record.exc_info[1], fulltb=True)
            # This is the actual exception name. The ename key is the function name.
            info['errname'] = name
            ret['err'] = info

        extras = record.__dict__.get('signtrust')
        if extras:
            ret.update({k: v for k, v in extras.items() if k not in ret})

        return m_json.encode(ret, enc_hook=_cb).decode()
