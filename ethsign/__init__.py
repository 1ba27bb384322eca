#
# (c) Copyright 2022 by Coinkite Inc. This file is covered by license found in COPYING-CC.
#

__version__ = '0.9.0'

__all__ = [ 'accounts', 'backend', 'cli', 'compat', 'exceptions', 'keys', 'signer', 'storage',
            'transport', 'constants', 'utils', 'validate' ]
