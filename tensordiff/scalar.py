'''Scalar (elementwise) derivative rules.

A scalar rule states the derivative of an operator with respect to one of its
operands in terms of placeholder operands ``x``, ``y``, ``z``, ``a``, ``b``
and so on:

>>> rules = ScalarRules()
>>> print(rules.get('/', (float, float), 1))
x / y ==> -x / y ^ 2

Rules for the arithmetic operators and a set of common functions are
synthesized on demand by :meth:`ScalarRules.register`; rules for other
functions are added with :meth:`ScalarRules.define`.
'''

from __future__ import annotations

from . import expression, parse as _parse
from .expression import Expression, Indexed, Literal, Call
from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple, Union
import threading
import treelog as log

_OPERANDS = tuple('xyzabcdefgh')

# Derivatives of fixed arity operators per operand position.
_DERIVATIVES = {
    ('-', 1): ('-1',),
    ('-', 2): ('1', '-1'),
    ('/', 2): ('1 / y', '-x / y ^ 2'),
    ('^', 2): ('y * x ^ (y - 1)', 'log(x) * x ^ y'),
    ('exp', 1): ('exp(x)',),
    ('log', 1): ('1 / x',),
    ('sin', 1): ('cos(x)',),
    ('cos', 1): ('-sin(x)',),
    ('tan', 1): ('1 + tan(x) ^ 2',),
    ('tanh', 1): ('1 - tanh(x) ^ 2',),
    ('sqrt', 1): ('1 / (2 * sqrt(x))',),
    ('logistic', 1): ('logistic(x) * (1 - logistic(x))',),
}


class MissingRuleError(LookupError):
    '''Raised when no derivative is known for an operator.'''


@dataclass(frozen=True)
@expression._dataclass_type_checker
class ScalarRule:
    '''Derivative of ``pattern`` with respect to the operand at ``position``.'''

    pattern: Call
    position: int
    derivative: Expression

    @property
    def placeholders(self):
        return self.pattern.names

    def __str__(self) -> str:
        return f'{self.pattern} ==> {self.derivative}'


def _operands(nargs: int) -> Tuple[Indexed, ...]:
    if nargs > len(_OPERANDS):
        raise ValueError(f'scalar rules support at most {len(_OPERANDS)} operands, got {nargs}')
    return tuple(Indexed(name) for name in _OPERANDS[:nargs])


def _synthesize(op: str, nargs: int, position: int) -> ScalarRule:
    operands = _operands(nargs)
    if op == '+':
        derivative = Literal(1)
    elif op == '*':
        derivative = expression.multiply(*operands[:position], *operands[position+1:])
    elif (op, nargs) in _DERIVATIVES:
        derivative = _parse.parse(_DERIVATIVES[op, nargs][position])
    else:
        raise MissingRuleError(f'no derivative known for {op} with {nargs} operand{"s" if nargs != 1 else ""}')
    return ScalarRule(Call(op, operands), position, derivative)


class ScalarRules:
    '''Database of scalar derivative rules keyed by operator, operand types and position.'''

    def __init__(self) -> None:
        self._rules = {}  # type: Dict[Tuple[str, Tuple[type, ...], int], ScalarRule]
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return len(self._rules)

    def find(self, op: str, types: Sequence[type], position: int) -> Optional[ScalarRule]:
        '''Return the registered rule, or ``None``.'''

        rule = self._rules.get((op, tuple(types), position))
        log.debug(f'[scalar {op}:{position}] {"hit" if rule else "miss"}')
        return rule

    def register(self, op: str, types: Sequence[type], position: int) -> ScalarRule:
        '''Synthesize and register the rule for a built-in operator.

        Raises :class:`MissingRuleError` if the derivative of ``op`` is not
        known.
        '''

        if not 0 <= position < len(types):
            raise ValueError(f'operand position {position} out of range for {op} with {len(types)} operands')
        rule = _synthesize(op, len(types), position)
        with self._lock:
            rule = self._rules.setdefault((op, tuple(types), position), rule)
        log.debug(f'[scalar {op}:{position}] register {rule}')
        return rule

    def get(self, op: str, types: Sequence[type], position: int) -> ScalarRule:
        '''Return the registered rule, registering it first if necessary.'''

        return self.find(op, types, position) or self.register(op, types, position)

    def define(self, pattern: Union[str, Expression], *derivatives: Union[str, Expression], types: Optional[Sequence[type]] = None) -> None:
        '''Define the derivatives of a function with respect to each operand.

        >>> rules = ScalarRules()
        >>> rules.define('softplus(x)', 'logistic(x)')
        >>> print(rules.get('softplus', (float,), 0))
        softplus(x) ==> logistic(x)
        '''

        pattern = _parse.parse(pattern)
        if not isinstance(pattern, Call) or not all(isinstance(arg, Indexed) and not arg.indices for arg in pattern.args):
            raise ValueError(f'expected a call with variable operands but got {pattern}')
        if len(pattern.names) != len(pattern.args):
            raise ValueError(f'the operands of {pattern} are not distinct')
        if len(derivatives) != len(pattern.args):
            raise ValueError(f'expected {len(pattern.args)} derivatives for {pattern} but got {len(derivatives)}')
        if types is None:
            types = (float,) * len(pattern.args)
        with self._lock:
            for position, derivative in enumerate(derivatives):
                self._rules[pattern.op, tuple(types), position] = ScalarRule(pattern, position, _parse.parse(derivative))


# vim:sw=4:sts=4:et
