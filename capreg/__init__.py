'''
An in-memory ledger of immutable entities addressed through typed capability interfaces.
'''

import sys
if (sys.version_info.major, sys.version_info.minor) < (3, 9):  # pragma: no cover
    raise Exception('capreg is not supported on Python versions < 3.9')

from capreg.lib.version import version, verstring
