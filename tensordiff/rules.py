'''Tensor differentiation rules.

A :class:`TensorDiffRule` pairs a call pattern such as ``Z[i] = X[i,j] *
Y[j]`` with the derivative of ``Z`` with respect to one operand, e.g.
``dZ[i]/dY[k] = X[i,k]``. The capitals ``Z``, ``X``, ``Y``, ``V``, ``W``,
``A``, ``B`` and ``C`` and all indices of the pattern are placeholders.

A :class:`RuleRegistry` holds rules per operator and operand position. Rules
enter the registry either explicitly through :meth:`RuleRegistry.define`, or
by promotion of a scalar rule to the index shapes of a concrete call:

>>> from tensordiff.scalar import ScalarRules
>>> registry = RuleRegistry()
>>> rule = promote(registry, ScalarRules().get('*', (float, float), 1), [('i',), ('i', 'j'), ('j',)], 1)
>>> print(rule)
Z[i] = X[i,j] * Y[j] ==> dZ[i] / dY[k] = X[i,k]
>>> len(registry)
1
'''

from __future__ import annotations

from . import expression, indices, parse as _parse
from .expression import Expression, Indexed, Call, Guard, Equation
from .scalar import ScalarRule
from .tderiv import TensorDeriv
from dataclasses import dataclass
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple, Union
import threading
import treelog as log

VARIABLES = 'Z', 'X', 'Y', 'V', 'W', 'A', 'B', 'C'
_RESULT, *_OPERANDS = VARIABLES

Key = Tuple[str, int]


@dataclass(frozen=True)
@expression._dataclass_type_checker
class TensorDiffRule:
    '''Derivative template ``deriv`` for calls matching ``pattern``.'''

    pattern: Equation
    deriv: TensorDeriv

    @property
    def op(self) -> str:
        return self.pattern.rhs.op

    @property
    def placeholders(self) -> FrozenSet[str]:
        return frozenset(VARIABLES).union(self.pattern.indices)

    def match(self, equation: Equation) -> Optional[Dict[str, expression.Binding]]:
        '''Bind the placeholders of the pattern to ``equation``, or return ``None``.'''

        return expression.match(self.pattern, equation, self.placeholders)

    def __str__(self) -> str:
        return f'{self.pattern} ==> {self.deriv}'


def _split_call(equation: Expression) -> Tuple[Indexed, Call]:
    if not isinstance(equation, Equation) or not isinstance(equation.lhs, Indexed) or not isinstance(equation.rhs, Call):
        raise ValueError(f'expected an equation of the form `z = f(...)` but got {equation}')
    return equation.lhs, equation.rhs


class RuleRegistry:
    '''Append-only registry of tensor differentiation rules.

    Rules are kept per ``(op, position)`` key in order of registration, which
    is the order in which :meth:`find` tries them.
    '''

    def __init__(self) -> None:
        self._rules = {}  # type: Dict[Key, List[TensorDiffRule]]
        self._lock = threading.Lock()

    def __len__(self) -> int:
        return sum(map(len, self._rules.values()))

    def keys(self) -> Tuple[Key, ...]:
        return tuple(self._rules)

    def rules(self, op: str, position: int) -> Tuple[TensorDiffRule, ...]:
        return tuple(self._rules.get((op, position), ()))

    def push(self, op: str, position: int, rule: TensorDiffRule) -> bool:
        '''Append ``rule``; returns ``False`` if an equal rule is already registered.'''

        with self._lock:
            rules = self._rules.setdefault((op, position), [])
            if rule in rules:
                return False
            rules.append(rule)
        log.debug(f'[registry {op}:{position}] push {rule}')
        return True

    def find(self, equation: Equation, position: int) -> Optional[TensorDiffRule]:
        '''Return the first rule for ``position`` whose pattern matches ``equation``.'''

        lhs, call = _split_call(equation)
        for rule in self.rules(call.op, position):
            if rule.match(equation) is not None:
                log.debug(f'[registry {call.op}:{position}] hit {rule.pattern}')
                return rule
        log.debug(f'[registry {call.op}:{position}] miss')
        return None

    def define(self, pattern: Union[str, Expression], derivative: Union[str, Expression, TensorDeriv]) -> TensorDiffRule:
        '''Define a tensor rule explicitly.

        The operand position follows from the denominator of the derivative:

        >>> registry = RuleRegistry()
        >>> rule = registry.define('Z[i] = sum(X[i,j])', 'dZ[i]/dX[k,l] = 1 * (i == k)')
        >>> registry.keys()
        (('sum', 0),)
        '''

        pattern = _parse.parse(pattern)
        lhs, call = _split_call(pattern)
        deriv = derivative if isinstance(derivative, TensorDeriv) else TensorDeriv.from_equation(_parse.parse(derivative))
        if not deriv.wrt.name.startswith('d') or not deriv.var.name.startswith('d'):
            raise ValueError(f'expected the variables of {deriv} to be prefixed with `d`')
        if deriv.var.name[1:] != lhs.name:
            raise ValueError(f'{deriv} is not a derivative of {lhs}')
        names = [arg.name if isinstance(arg, Indexed) else None for arg in call.args]
        wrt = deriv.wrt.name[1:]
        if wrt not in names:
            raise ValueError(f'{deriv} is not a derivative with respect to an operand of {call}')
        rule = TensorDiffRule(pattern, deriv)
        self.push(call.op, names.index(wrt), rule)
        return rule


def to_tensor_rule(scalar_rule: ScalarRule, index_shapes: Sequence[Sequence[str]], position: int) -> TensorDiffRule:
    '''Promote a scalar rule to a tensor rule.

    Args
    ----
    scalar_rule : :class:`tensordiff.scalar.ScalarRule`
        The elementwise rule.
    index_shapes : sequence of sequences of :class:`str`
        The indices of the result followed by those of every operand, e.g.
        ``[('i',), ('i', 'j'), ('j',)]`` for ``z[i] = x[i,j] * y[j]``.
    position : :class:`int`
        The operand to differentiate with respect to.

    Returns
    -------
    :class:`TensorDiffRule`
    '''

    result_indices, *operand_indices = map(tuple, index_shapes)
    if len(operand_indices) != len(scalar_rule.pattern.args):
        raise ValueError(f'expected index shapes for {len(scalar_rule.pattern.args)} operands but got {len(operand_indices)}')
    if len(operand_indices) > len(_OPERANDS):
        raise ValueError(f'tensor rules support at most {len(_OPERANDS)} operands')
    operands = tuple(Indexed(name, shape) for name, shape in zip(_OPERANDS, operand_indices))
    call = Call(scalar_rule.pattern.op, operands)
    body = expression.simplify(expression.rewrite(call, scalar_rule.pattern, scalar_rule.derivative, scalar_rule.placeholders))
    existing = {index for shape in index_shapes for index in shape}
    wrt_indices = indices.allocate_many(existing, 0, len(operand_indices[position]))
    deriv = TensorDeriv(
        var=Indexed('d' + _RESULT, result_indices),
        wrt=Indexed('d' + _OPERANDS[position], tuple(wrt_indices)),
        body=body,
        guards=tuple(Guard(old, new) for old, new in zip(operand_indices[position], wrt_indices)))
    return TensorDiffRule(Equation(Indexed(_RESULT, result_indices), call), deriv.normalized())


def promote(registry: RuleRegistry, scalar_rule: ScalarRule, index_shapes: Sequence[Sequence[str]], position: int) -> TensorDiffRule:
    '''Promote a scalar rule and register the result.'''

    rule = to_tensor_rule(scalar_rule, index_shapes, position)
    log.info(f'promoted {scalar_rule} to {rule}')
    registry.push(rule.op, position, rule)
    return rule


# vim:sw=4:sts=4:et
