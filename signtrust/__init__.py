'''
Local X.509 trust store and signing identity management.
'''

import sys
if (sys.version_info.major, sys.version_info.minor) < (3, 11):  # pragma: no cover
    raise Exception('signtrust is not supported on Python versions < 3.11')

from signtrust.lib.version import version, verstring
