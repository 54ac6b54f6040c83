from setuptools import setup

long_description = """
Tensordiff is a Python library for symbolic differentiation of tensor
expressions written in index notation, such as ``z[i] = x[i,j] * y[j]``.
Derivatives are tensor derivatives in the same notation, ``dz[i]/dy[k] =
x[i,k]``, in which Kronecker deltas appear as index equality guards ``(i ==
j)`` that are eliminated wherever an index is summed.

Tensor differentiation rules are derived on demand from elementwise scalar
rules and cached per operator, operand position and index shape. Derivatives
compose through the chain rule and the sum rule, which makes the library a
building block for reverse mode differentiation of programs in index notation.
"""

import os, re
with open(os.path.join('tensordiff', '__init__.py')) as f:
  version = next(filter(None, map(re.compile("^__version__ = version = '([a-zA-Z0-9.]+)'$").match, f))).group(1)

setup(
  name = 'tensordiff',
  version = version,
  description = 'Symbolic Differentiation of Tensor Expressions in Index Notation',
  packages = ['tensordiff'],
  long_description = long_description,
  license = 'MIT',
  python_requires = '>=3.8',
  install_requires = ['numpy>=1.12', 'treelog>=1.0b5', 'stringly'],
  command_options = dict(
    test=dict(test_loader=('setup.py', 'unittest:TestLoader')),
  ),
)
