'''Expression trees in index notation.

An expression is a tree of frozen dataclasses: :class:`Literal` numbers,
:class:`Indexed` variables such as ``x[i,j]``, :class:`Call` nodes for
operators and functions, :class:`Guard` nodes for index equalities ``(i ==
j)`` and :class:`Equation` nodes for ``lhs = rhs``. Operators are calls with
the operator symbol as name: ``x[i] + y[i]`` is ``Call('+', (x[i], y[i]))``.
Sums and products are n-ary, binary ``-`` and ``/`` are left associative.

Besides the tree types this module provides the structural operations the
differentiation algorithms rely on: :func:`match` for matching a pattern with
placeholders, :func:`substitute` and :func:`reindex` for renaming,
:func:`rewrite` for instantiating templates and :func:`simplify`,
:func:`multiply` and :func:`add` for building products and sums.

>>> from tensordiff.parse import parse
>>> expr = parse('x[i] * 1 * y[j] + 0')
>>> print(simplify(expr))
x[i] * y[j]
>>> print(reindex(expr, {'i': 'k', 'j': 'i'}))
x[k] * 1 * y[i] + 0
'''

from __future__ import annotations

import dataclasses
from dataclasses import dataclass
import functools
import numbers
import operator
import sys
import typing
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Tuple, Union


class Expression:
    '''Node of an expression tree.'''

    @property
    def precedence(self) -> int:
        '''binding strength used to decide on parentheses when formatting'''

        return 100

    @property
    def indices(self) -> Tuple[str, ...]:
        '''all index occurrences in depth-first order, including repetitions'''

        raise NotImplementedError

    @property
    def names(self) -> FrozenSet[str]:
        '''the set of variable names used in this expression'''

        raise NotImplementedError

    def format(self) -> str:
        raise NotImplementedError

    def paren_format(self, precedence: int) -> str:
        '''the formatted expression, enclosed in parentheses if it binds weaker than ``precedence``'''

        s = self.format()
        return f'({s})' if self.precedence < precedence else s

    def __str__(self) -> str:
        return self.format()


def _isinstance(obj, cls):
    origin = typing.get_origin(cls)
    if origin == typing.Union:
        return any(_isinstance(obj, arg) for arg in typing.get_args(cls))
    elif origin == tuple and typing.get_args(cls)[1:] == (...,):
        return isinstance(obj, tuple) and all(_isinstance(item, typing.get_args(cls)[0]) for item in obj)
    elif cls is None:
        return obj is None
    else:
        return isinstance(obj, cls)


def _dataclass_type_checker(cls):
    def __post_init__(self):
        for field in dataclasses.fields(cls):
            field_value = getattr(self, field.name)
            if not _isinstance(field_value, eval(field.type, vars(sys.modules[cls.__module__]))):
                raise ValueError(f'expected {field.name!r} to be a {field.type} but got {field_value!r}')
    cls.__post_init__ = __post_init__
    return cls


@dataclass(frozen=True)
@_dataclass_type_checker
class Literal(Expression):
    '''Literal number.'''

    value: typing.Union[int, float]

    @property
    def precedence(self) -> int:
        return 15 if self.value < 0 else 100

    @property
    def indices(self) -> Tuple[str, ...]:
        return ()

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset()

    def format(self) -> str:
        return repr(self.value)


@dataclass(frozen=True)
@_dataclass_type_checker
class Indexed(Expression):
    '''Variable with zero or more indices, e.g. ``x[i,j]``.'''

    name: str
    indices: typing.Tuple[str, ...] = ()

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset({self.name})

    def format(self) -> str:
        if not self.indices:
            return self.name
        return '{}[{}]'.format(self.name, ','.join(self.indices))


# Operator precedences. Unary minus binds weaker than a product: `-a * b` is
# `-(a * b)`.
_PRECEDENCE = {('+', None): 10, ('-', 2): 10, ('-', 1): 15, ('*', None): 20, ('/', 2): 20, ('^', 2): 30}


@dataclass(frozen=True)
@_dataclass_type_checker
class Call(Expression):
    '''Operator or function call.'''

    op: str
    args: typing.Tuple[Expression, ...]

    @property
    def precedence(self) -> int:
        return _PRECEDENCE.get((self.op, None), _PRECEDENCE.get((self.op, len(self.args)), 100))

    @property
    def indices(self) -> Tuple[str, ...]:
        return tuple(index for arg in self.args for index in arg.indices)

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset().union(*(arg.names for arg in self.args))

    def format(self) -> str:
        if self.op == '+' and len(self.args) >= 2:
            first, *others = self.args
            return ' + '.join([first.paren_format(11), *(arg.paren_format(16) for arg in others)])
        if self.op == '*' and len(self.args) >= 2:
            return ' * '.join(arg.paren_format(21) for arg in self.args)
        if self.op in ('-', '/') and len(self.args) == 2:
            lhs, rhs = self.args
            lhs_precedence, rhs_precedence = (10, 16) if self.op == '-' else (20, 21)
            return f'{lhs.paren_format(lhs_precedence)} {self.op} {rhs.paren_format(rhs_precedence)}'
        if self.op == '^' and len(self.args) == 2:
            base, exponent = self.args
            return f'{base.paren_format(31)} ^ {exponent.paren_format(31)}'
        if self.op == '-' and len(self.args) == 1:
            arg, = self.args
            return f'-{arg.paren_format(20)}'
        return '{}({})'.format(self.op, ', '.join(arg.format() for arg in self.args))


@dataclass(frozen=True)
@_dataclass_type_checker
class Guard(Expression):
    '''Equality of two indices, a Kronecker delta.'''

    left: str
    right: str

    @property
    def indices(self) -> Tuple[str, ...]:
        return self.left, self.right

    @property
    def names(self) -> FrozenSet[str]:
        return frozenset()

    def format(self) -> str:
        return f'({self.left} == {self.right})'


@dataclass(frozen=True)
@_dataclass_type_checker
class Equation(Expression):
    '''Equation ``lhs = rhs``.'''

    lhs: Expression
    rhs: Expression

    @property
    def precedence(self) -> int:
        return 0

    @property
    def indices(self) -> Tuple[str, ...]:
        return self.lhs.indices + self.rhs.indices

    @property
    def names(self) -> FrozenSet[str]:
        return self.lhs.names | self.rhs.names

    def format(self) -> str:
        return f'{self.lhs.format()} = {self.rhs.format()}'


Binding = Union[str, Expression]


class _Matcher:

    def __init__(self, placeholders: FrozenSet[str], allow_ex: bool) -> None:
        self.placeholders = placeholders
        self.allow_ex = allow_ex
        self.names = {}  # type: Dict[str, Binding]
        self.indices = {}  # type: Dict[str, str]

    def bind_name(self, placeholder: str, value: Binding) -> bool:
        if placeholder in self.names:
            return self.names[placeholder] == value
        self.names[placeholder] = value
        return True

    def bind_index(self, pattern: str, index: str) -> bool:
        if pattern not in self.placeholders:
            return pattern == index
        if pattern in self.indices:
            return self.indices[pattern] == index
        # Distinct index placeholders bind distinct indices, otherwise a rule
        # for `x[i] * y[j]` would silently apply to `x[i] * y[i]`.
        if index in self.indices.values():
            return False
        self.indices[pattern] = index
        return True

    def match(self, pattern: Expression, expression: Expression) -> bool:
        if isinstance(pattern, Indexed):
            if pattern.name in self.placeholders and not pattern.indices:
                if isinstance(expression, Indexed) and not expression.indices:
                    return self.bind_name(pattern.name, expression.name)
                if self.allow_ex or isinstance(expression, Literal):
                    return self.bind_name(pattern.name, expression)
                return False
            if not isinstance(expression, Indexed) or len(pattern.indices) != len(expression.indices):
                return False
            if pattern.name in self.placeholders:
                if not self.bind_name(pattern.name, expression.name):
                    return False
            elif pattern.name != expression.name:
                return False
            return all(self.bind_index(p, i) for p, i in zip(pattern.indices, expression.indices))
        if type(pattern) is not type(expression):
            return False
        if isinstance(pattern, Literal):
            return pattern.value == expression.value
        if isinstance(pattern, Guard):
            return self.bind_index(pattern.left, expression.left) and self.bind_index(pattern.right, expression.right)
        if isinstance(pattern, Call):
            return pattern.op == expression.op and len(pattern.args) == len(expression.args) \
                and all(self.match(p, e) for p, e in zip(pattern.args, expression.args))
        if isinstance(pattern, Equation):
            return self.match(pattern.lhs, expression.lhs) and self.match(pattern.rhs, expression.rhs)
        raise NotImplementedError(type(pattern))


def match(pattern: Expression, expression: Expression, placeholders: Iterable[str], allow_ex: bool = False) -> Optional[Dict[str, Binding]]:
    '''Match ``expression`` structurally against ``pattern``.

    Names and indices of ``pattern`` listed in ``placeholders`` bind to the
    corresponding names and indices of ``expression``; everything else must
    be equal. An unindexed placeholder may bind a literal, or, if ``allow_ex``
    is true, any subexpression. Returns the bindings, or ``None`` if the
    expression does not match.

    >>> from tensordiff.parse import parse
    >>> match(parse('X[i] + Y[i]'), parse('a[k] + b[k]'), 'XYi')
    {'X': 'a', 'Y': 'b', 'i': 'k'}
    >>> match(parse('X[i] + Y[i]'), parse('a[k] + b[l]'), 'XYi') is None
    True
    '''

    matcher = _Matcher(frozenset(placeholders), allow_ex)
    if not matcher.match(pattern, expression):
        return None
    return {**matcher.names, **matcher.indices}


def _rename_index(bindings: Mapping[str, Binding], index: str) -> str:
    value = bindings.get(index, index)
    return value if isinstance(value, str) else index


def substitute(expression: Expression, bindings: Mapping[str, Binding]) -> Expression:
    '''Apply ``bindings`` as returned by :func:`match` to ``expression``.'''

    if isinstance(expression, Indexed):
        value = bindings.get(expression.name, expression.name)
        indices = tuple(_rename_index(bindings, index) for index in expression.indices)
        if isinstance(value, Expression):
            if indices:
                raise ValueError(f'cannot index subexpression {value} bound to {expression.name}')
            return value
        return Indexed(value, indices)
    if isinstance(expression, Literal):
        return expression
    if isinstance(expression, Guard):
        return Guard(_rename_index(bindings, expression.left), _rename_index(bindings, expression.right))
    if isinstance(expression, Call):
        return Call(expression.op, tuple(substitute(arg, bindings) for arg in expression.args))
    if isinstance(expression, Equation):
        return Equation(substitute(expression.lhs, bindings), substitute(expression.rhs, bindings))
    raise NotImplementedError(type(expression))


def reindex(expression: Expression, mapping: Mapping[str, str]) -> Expression:
    '''Rename indices simultaneously; variable names are left untouched.'''

    if not mapping:
        return expression
    if isinstance(expression, Indexed):
        return dataclasses.replace(expression, indices=tuple(mapping.get(index, index) for index in expression.indices))
    if isinstance(expression, Literal):
        return expression
    if isinstance(expression, Guard):
        return Guard(mapping.get(expression.left, expression.left), mapping.get(expression.right, expression.right))
    if isinstance(expression, Call):
        return Call(expression.op, tuple(reindex(arg, mapping) for arg in expression.args))
    if isinstance(expression, Equation):
        return Equation(reindex(expression.lhs, mapping), reindex(expression.rhs, mapping))
    raise NotImplementedError(type(expression))


def rewrite(expression: Expression, pattern: Expression, template: Expression, placeholders: Iterable[str], allow_ex: bool = True) -> Expression:
    '''Match ``expression`` against ``pattern`` and instantiate ``template`` with the bindings.'''

    bindings = match(pattern, expression, placeholders, allow_ex=allow_ex)
    if bindings is None:
        raise ValueError(f'expression {expression} does not match pattern {pattern}')
    return substitute(template, bindings)


def _number(value):
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


def _flatten(op: str, args: Iterable[Expression]) -> Iterable[Expression]:
    for arg in args:
        if isinstance(arg, Call) and arg.op == op:
            yield from arg.args
        else:
            yield arg


def _simplify_product(args: Tuple[Expression, ...]) -> Expression:
    args = tuple(_flatten('*', args))
    constant = functools.reduce(operator.mul, (arg.value for arg in args if isinstance(arg, Literal)), 1)
    others = tuple(arg for arg in args if not isinstance(arg, Literal))
    if constant == 0 or not others:
        return Literal(constant)
    if constant != 1:
        others = Literal(constant), *others
    return others[0] if len(others) == 1 else Call('*', others)


def _simplify_sum(args: Tuple[Expression, ...]) -> Expression:
    args = tuple(_flatten('+', args))
    constant = sum(arg.value for arg in args if isinstance(arg, Literal))
    others = tuple(arg for arg in args if not isinstance(arg, Literal))
    if not others:
        return Literal(constant)
    if constant != 0:
        others = *others, Literal(constant)
    return others[0] if len(others) == 1 else Call('+', others)


def _simplify_negate(arg: Expression) -> Expression:
    if isinstance(arg, Literal):
        return Literal(-arg.value)
    if isinstance(arg, Call) and arg.op == '-' and len(arg.args) == 1:
        return arg.args[0]
    return Call('-', (arg,))


def _simplify_call(op: str, args: Tuple[Expression, ...]) -> Expression:
    literal = all(isinstance(arg, Literal) for arg in args)
    if op == '*':
        return _simplify_product(args)
    if op == '+':
        return _simplify_sum(args)
    if op == '-' and len(args) == 1:
        return _simplify_negate(args[0])
    if op == '-' and len(args) == 2:
        lhs, rhs = args
        if literal:
            return Literal(lhs.value - rhs.value)
        if rhs == Literal(0):
            return lhs
        if lhs == Literal(0):
            return _simplify_negate(rhs)
    if op == '/' and len(args) == 2:
        lhs, rhs = args
        if rhs == Literal(1) or lhs == Literal(0):
            return lhs
        if literal and isinstance(lhs.value, numbers.Integral) and isinstance(rhs.value, numbers.Integral) and rhs.value and lhs.value % rhs.value == 0:
            return Literal(lhs.value // rhs.value)
    if op == '^' and len(args) == 2:
        base, exponent = args
        if exponent == Literal(1):
            return base
        if exponent == Literal(0):
            return Literal(1)
        if literal and isinstance(exponent.value, numbers.Integral) and exponent.value > 0:
            return Literal(_number(base.value ** exponent.value))
    return Call(op, args)


def simplify(expression: Expression) -> Expression:
    '''Light algebraic cleanup.

    Flattens nested sums and products, folds numbers, drops multiplicative
    ones and additive zeros and collapses products with a zero factor. Indices
    and guards are never touched.
    '''

    if isinstance(expression, Call):
        return _simplify_call(expression.op, tuple(map(simplify, expression.args)))
    if isinstance(expression, Equation):
        return Equation(expression.lhs, simplify(expression.rhs))
    return expression


def multiply(*args: Expression) -> Expression:
    '''Simplified product of ``args``.'''

    return simplify(Call('*', args))


def add(*args: Expression) -> Expression:
    '''Simplified sum of ``args``.'''

    return simplify(Call('+', args))


def negate(arg: Expression) -> Expression:
    return simplify(Call('-', (arg,)))


# vim:sw=4:sts=4:et
