'Symbolic Differentiation of Tensor Expressions in Index Notation'

__version__ = version = '1.0'

__all__ = [
    'expression',
    'guards',
    'indices',
    'parse',
    'rules',
    'scalar',
    'tderiv',
    'tdiff',
    'testing',
    'warnings',
]

# vim:sw=4:sts=4:et
