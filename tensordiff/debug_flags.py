import os
import warnings

_env = dict.fromkeys(filter(None, os.getenv('TENSORDIFF_DEBUG', '').lower().split(':')), True)
_all = _env.pop('all', False)

guards = _env.pop('guards', _all or __debug__)  # check guard indices are bound after normalization
rules = _env.pop('rules', _all)  # check promoted rules match the call they were promoted for

if _env:
    warnings.warn('unused debug flags: {}'.format(', '.join(_env)))
