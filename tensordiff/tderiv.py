'''Tensor derivatives in index notation.

A :class:`TensorDeriv` represents a single partial derivative such as

    dz[i]/dx[j] = y[i] * (i == j)

as a numerator variable ``dz[i]``, a denominator variable ``dx[j]``, a body
``y[i]`` and a tuple of guards ``(i == j)``. Indices that appear in the body
but not in the numerator or denominator are summed (Einstein convention).

Derivatives compose through the chain rule, ``dz/dy * dy/dx``, and the sum
rule, ``dz/dx + dz/dx``:

>>> dzdy = TensorDeriv.parse('dz/dy[i] = v[i]')
>>> dydx = TensorDeriv.parse('dy[i]/dx[j] = w[i,j]')
>>> print(dzdy * dydx)
dz / dx[j] = v[i] * w[i,j]
>>> print(TensorDeriv.parse('dz[i]/dx[j] = a[i,j]') + TensorDeriv.parse('dz[p]/dx[q] = b[p,q]'))
dz[i] / dx[j] = a[i,j] + b[i,j]
'''

from __future__ import annotations

from . import _util as util, expression, guards as _guards, indices, parse as _parse, warnings
from .expression import Expression, Indexed, Literal, Call, Guard, Equation
from dataclasses import dataclass
from typing import Mapping, Tuple
import dataclasses
import typing


@dataclass(frozen=True)
@expression._dataclass_type_checker
class TensorDeriv:
    '''Partial derivative of ``var`` with respect to ``wrt``.

    Args
    ----
    var : :class:`tensordiff.expression.Indexed`
        The numerator, e.g. ``dz[i]``.
    wrt : :class:`tensordiff.expression.Indexed`
        The denominator, e.g. ``dx[j]``.
    body : :class:`tensordiff.expression.Expression`
        The derivative expression without guards.
    guards : :class:`tuple` of :class:`tensordiff.expression.Guard`
        Index equalities that gate the nonzero elements.
    '''

    var: Indexed
    wrt: Indexed
    body: Expression
    guards: typing.Tuple[Guard, ...] = ()

    @classmethod
    def from_equation(cls, equation: Expression) -> 'TensorDeriv':
        '''Create a derivative from a tree ``dvar[...]/dwrt[...] = body [* guard]*``.'''

        if not isinstance(equation, Equation):
            raise ValueError(f'expected a derivative equation but got {equation}')
        lhs, rhs = equation.lhs, equation.rhs
        if not (isinstance(lhs, Call) and lhs.op == '/' and len(lhs.args) == 2 and all(isinstance(arg, Indexed) for arg in lhs.args)):
            raise ValueError(f'expected the left hand side of {equation} to be a quotient of two variables')
        var, wrt = lhs.args
        if isinstance(rhs, Guard):
            return cls(var, wrt, Literal(1), (rhs,))
        if not (isinstance(rhs, Call) and rhs.op == '*'):
            return cls(var, wrt, rhs)
        factors = tuple(arg for arg in rhs.args if not isinstance(arg, Guard))
        guards = tuple(arg for arg in rhs.args if isinstance(arg, Guard))
        if not factors:
            body = Literal(1)
        elif len(factors) == 1:
            body, = factors
        else:
            body = Call('*', factors)
        return cls(var, wrt, body, guards)

    @classmethod
    def parse(cls, s: str) -> 'TensorDeriv':
        '''Create a derivative from a string such as ``dz[i]/dx[j] = 1 * (i == j)``.'''

        return cls.from_equation(_parse.parse(s))

    def to_equation(self) -> Equation:
        '''Return the derivative as an equation; guards reappear as factors.'''

        lhs = Call('/', (self.var, self.wrt))
        if not self.guards:
            return Equation(lhs, self.body)
        factors = self.body.args if isinstance(self.body, Call) and self.body.op == '*' else (self.body,)
        return Equation(lhs, Call('*', (*factors, *self.guards)))

    def __str__(self) -> str:
        return self.to_equation().format()

    @property
    def var_indices(self) -> Tuple[str, ...]:
        return self.var.indices

    @property
    def wrt_indices(self) -> Tuple[str, ...]:
        return self.wrt.indices

    @property
    def deriv_indices(self) -> Tuple[str, ...]:
        '''the bound indices: numerator indices followed by the new denominator indices'''

        return tuple(util.unique(self.var.indices + self.wrt.indices)[0])

    @property
    def all_indices(self) -> Tuple[str, ...]:
        return tuple(util.unique(self.var.indices + self.wrt.indices + self.body.indices + tuple(index for guard in self.guards for index in guard.indices))[0])

    @property
    def free_indices(self) -> Tuple[str, ...]:
        '''the indices of the body that are summed'''

        bound = set(self.deriv_indices)
        return tuple(index for index in util.unique(self.body.indices)[0] if index not in bound)

    def single_var(self) -> Indexed:
        '''Flatten to a single variable, e.g. ``dz[i]/dx[j]`` becomes ``dz_dx[i,j]``.'''

        return Indexed(f'{self.var.name}_{self.wrt.name}', self.var.indices + self.wrt.indices)

    def replace(self, **changes) -> 'TensorDeriv':
        return dataclasses.replace(self, **changes)

    def reindex(self, mapping: Mapping[str, str]) -> 'TensorDeriv':
        '''Rename indices simultaneously in all fields.'''

        return TensorDeriv(
            var=expression.reindex(self.var, mapping),
            wrt=expression.reindex(self.wrt, mapping),
            body=expression.reindex(self.body, mapping),
            guards=tuple(expression.reindex(guard, mapping) for guard in self.guards))

    def normalized(self) -> 'TensorDeriv':
        return _guards.normalize(self)

    def __mul__(self, other):
        if not isinstance(other, TensorDeriv):
            return NotImplemented
        return chain(self, other)

    def __add__(self, other):
        if not isinstance(other, TensorDeriv):
            return NotImplemented
        return add(self, other)


def reindex_to_match(d1: TensorDeriv, d2: TensorDeriv) -> Tuple[TensorDeriv, TensorDeriv]:
    '''Rename ``d2`` for chaining with ``d1``.

    The numerator indices of ``d2`` are identified position by position with
    the denominator indices of ``d1``; every other index of ``d2`` that occurs
    in ``d1`` is replaced by a fresh index.
    '''

    if d1.wrt.name != d2.var.name:
        raise ValueError(f'cannot chain {d1} and {d2}: denominator {d1.wrt.name} differs from numerator {d2.var.name}')
    if len(d1.wrt_indices) != len(d2.var_indices):
        raise ValueError(f'cannot chain {d1} and {d2}: {d1.wrt} and {d2.var} have a different number of indices')
    mapping = indices.replacements(d1.all_indices, d2.all_indices)
    mapping.update(zip(d2.var_indices, d1.wrt_indices))
    return d1, d2.reindex(mapping)


def _with_pseudo_one(body: Expression, bound: Tuple[str, ...]) -> Expression:
    # Attach the summed indices to an identity factor `I[...]`, such that the
    # summation remains visible if the factors carrying them cancel.
    summed = [index for index in util.unique(body.indices)[0] if index not in bound]
    if not summed:
        return body
    return Call('*', (body, Indexed('I', tuple(summed))))


def chain(d1: TensorDeriv, d2: TensorDeriv) -> TensorDeriv:
    '''Chain rule: combine ``dA/dB`` and ``dB/dC`` into ``dA/dC``.

    The denominator indices of ``d1`` are contracted with the numerator
    indices of ``d2``.
    '''

    d1, d2 = reindex_to_match(d1, d2)
    body = expression.multiply(_with_pseudo_one(d1.body, d1.deriv_indices), _with_pseudo_one(d2.body, d2.deriv_indices))
    return TensorDeriv(d1.var, d2.wrt, body, d1.guards + d2.guards).normalized()


def _guard_set(guards):
    return frozenset(frozenset(guard.indices) for guard in guards)


def add(d1: TensorDeriv, d2: TensorDeriv) -> TensorDeriv:
    '''Sum rule: add two derivatives of the same variable with respect to the same variable.

    The indices of ``d2`` are aligned to those of ``d1``; summed indices of
    ``d2`` that collide are renamed.
    '''

    if d1.var.name != d2.var.name or d1.wrt.name != d2.wrt.name:
        raise ValueError(f'cannot add {d1} and {d2}: the derivatives relate different variables')
    if len(d1.var_indices) != len(d2.var_indices) or len(d1.wrt_indices) != len(d2.wrt_indices):
        raise ValueError(f'cannot add {d1} and {d2}: the derivatives have a different number of indices')
    mapping = dict(zip(d2.var_indices, d1.var_indices))
    mapping.update(zip(d2.wrt_indices, d1.wrt_indices))
    existing = set(d1.all_indices).union(mapping.values())
    mapping.update(indices.replacements(existing, d2.free_indices))
    d2 = d2.reindex(mapping)
    if _guard_set(d1.guards) != _guard_set(d2.guards):
        warnings.warn(f'adding derivatives with different guards; the guards of {d1} and {d2} are combined for both terms')
    return TensorDeriv(d1.var, d2.wrt, expression.add(d1.body, d2.body), d1.guards + d2.guards).normalized()


# vim:sw=4:sts=4:et
