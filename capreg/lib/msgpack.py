import logging
import msgpack
import msgpack.fallback as m_fallback

import capreg.exc as c_exc

logger = logging.getLogger(__name__)

_packer_kwargs = {
    'use_bin_type': True,
}

# Single Packer object which is reused for performance
pakr = msgpack.Packer(**_packer_kwargs)
if isinstance(pakr, m_fallback.Packer):  # pragma: no cover
    logger.warning('msgpack is using the pure python fallback implementation. This will impact performance negatively.')
    pakr = None

unpacker_kwargs = {
    'raw': False,
    'use_list': False,
    'strict_map_key': False,
    'unicode_errors': 'replace',
}

def en(item):
    '''
    Use msgpack to serialize a compatible python object.

    Args:
        item (obj): The object to serialize

    Notes:
        String objects are encoded using utf8 encoding.

    Returns:
        bytes: The serialized bytes in msgpack format.
    '''
    try:
        return pakr.pack(item)
    except TypeError as e:
        pakr.reset()
        mesg = f'{e.args[0]}: {repr(item)[:20]}'
        raise c_exc.NotMsgpackSafe(mesg=mesg) from e
    except Exception as e:
        pakr.reset()
        mesg = f'Cannot serialize: {repr(e)}:  {repr(item)[:20]}'
        raise c_exc.NotMsgpackSafe(mesg=mesg) from e

def _fallback_en(item):
    try:
        return msgpack.packb(item, **_packer_kwargs)
    except TypeError as e:
        mesg = f'{e.args[0]}: {repr(item)[:20]}'
        raise c_exc.NotMsgpackSafe(mesg=mesg) from e
    except Exception as e:
        mesg = f'Cannot serialize: {repr(e)}:  {repr(item)[:20]}'
        raise c_exc.NotMsgpackSafe(mesg=mesg) from e

# Redefine the en() function if we're in fallback mode.
if pakr is None:  # pragma: no cover
    en = _fallback_en

def iterfd(fd):
    '''
    Generator which unpacks a file object of msgpacked content.

    Yields:
        Objects from a msgpack stream.
    '''
    unpk = msgpack.Unpacker(fd, **unpacker_kwargs)
    for mesg in unpk:
        yield mesg
