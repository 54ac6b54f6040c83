'''Differentiation of a single tensor operation.

:func:`differentiate` computes the derivative of ``z[...] = op(operands...)``
with respect to one operand. Tensor rules are looked up in a
:class:`tensordiff.rules.RuleRegistry`; on a miss the scalar rule of the
operator is promoted to the index shapes of the call and registered, after
which the lookup is retried once.

>>> differentiate = Differentiator()
>>> print(differentiate('z[i] = x[i] + y[i]', 'x'))
dz[i] / dx[j] = 1 * (i == j)
>>> print(differentiate('z[i] = x[i,j] * y[j]', 'y'))
dz[i] / dy[k] = x[i,k]
>>> print(differentiate('z = exp(x)', 0))
dz / dx = exp(x)
'''

from . import debug_flags, expression, indices, parse as _parse
from .expression import Expression, Indexed, Literal, Call, Equation
from .rules import RuleRegistry, TensorDiffRule, promote
from .scalar import ScalarRules
from .tderiv import TensorDeriv
from typing import Mapping, Optional, Union
import treelog as log


class PromotionError(Exception):
    '''Raised if a freshly promoted rule does not match the call it was promoted for.'''


def _unpack(equation: Equation) -> Equation:
    # dZ[i]/dX[j] = ... ==> Z[i]/X[j] = ...
    var, wrt = equation.lhs.args
    return Equation(Call('/', (Indexed(var.name[1:], var.indices), Indexed(wrt.name[1:], wrt.indices))), equation.rhs)


def _pack(equation: Equation) -> Equation:
    # z[i]/x[j] = ... ==> dz[i]/dx[j] = ...
    var, wrt = equation.lhs.args
    return Equation(Call('/', (Indexed('d' + var.name, var.indices), Indexed('d' + wrt.name, wrt.indices))), equation.rhs)


def _position(call: Call, argument: Union[int, str], equation: Equation) -> int:
    if isinstance(argument, str):
        names = [arg.name if isinstance(arg, Indexed) else None for arg in call.args]
        if argument not in names:
            raise ValueError(f'variable {argument} is not an operand of {equation}')
        return names.index(argument)
    if not 0 <= argument < len(call.args):
        raise ValueError(f'operand position {argument} out of range for {equation}')
    if not isinstance(call.args[argument], Indexed):
        raise ValueError(f'operand {call.args[argument]} of {equation} is not a variable')
    return argument


def _instantiate(rule: TensorDiffRule, equation: Equation, bindings: Mapping[str, expression.Binding]) -> TensorDeriv:
    # Indices of the template that are not bound by the pattern, such as the
    # denominator indices, are renamed if they collide with the call.
    template = _unpack(rule.deriv.to_equation())
    unbound = [index for index in template.indices if index not in bindings]
    existing = set(equation.indices).union(value for key, value in bindings.items() if key in rule.pattern.indices)
    bindings = dict(bindings)
    bindings.update(indices.replacements(existing, unbound))
    derived = _pack(expression.substitute(template, bindings))
    return TensorDeriv.from_equation(expression.simplify(derived))


def _lookup(registry: RuleRegistry, equation: Equation, position: int) -> Optional[TensorDeriv]:
    rule = registry.find(equation, position)
    if rule is None:
        return None
    return _instantiate(rule, equation, rule.match(equation))


def differentiate(equation: Union[str, Expression], argument: Union[int, str], *, registry: RuleRegistry, scalar_rules: ScalarRules) -> TensorDeriv:
    '''Differentiate ``z[...] = op(operands...)`` with respect to an operand.

    Args
    ----
    equation : :class:`str` or :class:`tensordiff.expression.Equation`
        The operation, e.g. ``z[i] = x[i,j] * y[j]``.
    argument : :class:`int` or :class:`str`
        The position of the operand, counting from zero, or its name.
    registry : :class:`tensordiff.rules.RuleRegistry`
        Tensor rules; promoted rules are added to it.
    scalar_rules : :class:`tensordiff.scalar.ScalarRules`
        Scalar rules used for promotion.

    Returns
    -------
    :class:`tensordiff.tderiv.TensorDeriv`
    '''

    equation = _parse.parse(equation)
    if not isinstance(equation, Equation) or not isinstance(equation.lhs, Indexed) or not isinstance(equation.rhs, Call):
        raise ValueError(f'expected an equation of the form `z = f(...)` but got {equation}')
    call = equation.rhs
    if not all(isinstance(arg, (Indexed, Literal)) for arg in call.args):
        raise ValueError(f'expected the operands of {equation} to be variables or numbers')
    position = _position(call, argument, equation)
    deriv = _lookup(registry, equation, position)
    if deriv is not None:
        return deriv
    with log.context(f'promote {call.op}:{position}'):
        scalar_rule = scalar_rules.get(call.op, (float,) * len(call.args), position)
        rule = promote(registry, scalar_rule, [equation.lhs.indices, *(arg.indices for arg in call.args)], position)
        if debug_flags.rules:
            assert rule.match(equation) is not None, f'promoted rule {rule} does not match {equation}'
        deriv = _lookup(registry, equation, position)
    if deriv is None:
        raise PromotionError(f'no rule matches {equation} after promoting {rule}')
    return deriv


class Differentiator:
    '''Differentiation with a private rule registry and scalar rule database.

    >>> differentiate = Differentiator()
    >>> d1 = differentiate('z[i] = x[i] * y[i]', 'x')
    >>> d2 = differentiate('z[k] = x[k] * y[k]', 'x')
    >>> len(differentiate.registry)
    1
    '''

    def __init__(self, registry: Optional[RuleRegistry] = None, scalar_rules: Optional[ScalarRules] = None) -> None:
        self.registry = RuleRegistry() if registry is None else registry
        self.scalar_rules = ScalarRules() if scalar_rules is None else scalar_rules

    def __call__(self, equation: Union[str, Expression], argument: Union[int, str]) -> TensorDeriv:
        return differentiate(equation, argument, registry=self.registry, scalar_rules=self.scalar_rules)


# vim:sw=4:sts=4:et
