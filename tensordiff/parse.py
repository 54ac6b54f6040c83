'''Parser for expressions in index notation.

The syntax of an expression is as follows:

*   **Integers** or **decimal numbers** are denoted in the usual way.
    Examples: ``1``, ``1.2``, ``.2``.

*   **Variables** are denoted by a name, optionally followed by a comma
    separated list of indices in square brackets.  Examples: ``x``, ``x[]``
    (the same scalar), ``A[i,j]``.

*   A **function call** is a name directly followed by parenthesized, comma
    separated arguments.  Example: ``exp(x[i])``, ``f(x[i], 2)``.

*   The operators ``*`` and ``/`` denote **multiplication** and
    **division**, ``^`` denotes **exponentiation**.  Repeated powers are not
    allowed, use parentheses instead.

*   The operators ``+`` and ``-`` denote **add** and **subtract**.  Both
    operators should be surrounded by whitespace, e.g. ``a + b``.  At the
    beginning of an expression ``-`` negates the following term: in ``-a * b
    + c`` the term ``a * b`` is negated before adding ``c``.

*   An index equality, a **guard**, is denoted as ``(i == j)`` and must be
    enclosed in parentheses.

*   An **equation** ``lhs = rhs`` may only appear at the top level.
    Example: ``dz[i]/dx[j] = y[i] * (i == j)``.

Parsing a formatted tree gives back an equal tree:

>>> expr = parse('dz[i]/dx[j] = -2 * exp(x[i]) * (i == j)')
>>> print(expr)
dz[i] / dx[j] = -2 * exp(x[i]) * (i == j)
>>> parse(str(expr)) == expr
True
'''

from typing import Callable, Iterator, List, Optional, Tuple, Union
from .expression import Expression, Literal, Indexed, Call, Guard, Equation


class _Substring:

    def __init__(self, base: str, start: Optional[int] = None, stop: Optional[int] = None) -> None:
        self.base = base
        self.start = 0 if start is None else start
        self.stop = len(base) if stop is None else stop
        assert 0 <= self.start <= self.stop <= len(self.base)

    def __len__(self) -> int:
        return self.stop - self.start

    def __str__(self) -> str:
        return self.base[self.start:self.stop]

    def __getitem__(self, item: Union[int, slice]) -> '_Substring':
        # Since this is for internal use, we use asserts instead of proper
        # exceptions.
        assert isinstance(item, (int, slice))
        if isinstance(item, int):
            assert 0 <= item < len(self)
            return _Substring(self.base, self.start + item, self.start + item + 1)
        else:
            start, stop, stride = item.indices(len(self))
            assert stride == 1
            return _Substring(self.base, self.start + start, self.start + stop)

    def __contains__(self, item: str) -> bool:
        return self._find(_match(item))[0] >= 0

    def trim(self) -> '_Substring':
        return self.trim_end().trim_start()

    def trim_start(self) -> '_Substring':
        start = self.start
        while start < self.stop and self.base[start] == ' ':
            start += 1
        return _Substring(self.base, start, self.stop)

    def trim_end(self) -> '_Substring':
        stop = self.stop
        while stop > self.start and self.base[stop - 1] == ' ':
            stop -= 1
        return _Substring(self.base, self.start, stop)

    def starts_with(self, prefix: str) -> bool:
        return str(self).startswith(prefix)

    def strip_prefix(self, prefix: str) -> Optional['_Substring']:
        return self[len(prefix):] if self.starts_with(prefix) else None

    def _find(self, *matchers: Callable[[str], int]) -> Tuple[int, int, int]:
        # Returns the index of the first successful matcher, the position of the
        # match and the length of the match, or `-1`, the length of the substring
        # and `0` if nothing matches. Only matches outside of brackets count.
        level = 0
        for offset, ch in enumerate(self.base[self.start:self.stop]):
            if ch in (')', ']'):
                level -= 1
            if level == 0:
                tail = self.base[self.start+offset:self.stop]
                for imatcher, matcher in enumerate(matchers):
                    length = matcher(tail)
                    if length:
                        return imatcher, offset, length
            if ch in ('(', '['):
                level += 1
        return -1, len(self), 0

    def split(self, *matchers: Callable[[str], int]) -> Iterator['_Substring']:
        # Split the substring at every non-overlapping match.
        n = 1
        while n:
            _, i, n = self._find(*matchers)
            yield self[:i]
            self = self[i+n:]

    def isplit(self, *matchers: Callable[[str], int], first: int) -> Iterator[Tuple[int, '_Substring']]:
        # Split the substring at every non-overlapping match and yield both the
        # index of the successful matcher and the (subsequently splitted) substring
        # to the *right* of the match. The item to the left of the first match, or
        # the entire substring if nothing matches, gets `first` as matcher index.
        imatcher = first
        n = 1
        while n:
            imatcher_next, i, n = self._find(*matchers)
            yield imatcher, self[:i]
            self = self[i+n:]
            imatcher = imatcher_next

    def partition(self, *matchers: Callable[[str], int]) -> Tuple['_Substring', '_Substring', '_Substring']:
        _, i, n = self._find(*matchers)
        return self[:i], self[i:i+n], self[i+n:]

    def partition_scope(self) -> Tuple['_Substring', '_Substring', '_Substring', '_Substring', '_Substring']:
        _, i, n = self._find(lambda tail: tail[0] in ('(', '['))
        _, j, n = self[i:]._find(lambda tail: tail[0] in (')', ']'))
        j += i
        return self[:i], self[i:i+1], self[i+1:j], self[j:j+1], self[j+1:]


class ExpressionSyntaxError(ValueError):

    def __init__(self, message: str, caret: Optional['_Substring'] = None, tilde: Optional['_Substring'] = None) -> None:
        expression, = {s.base for s in (caret, tilde) if s is not None}
        markers = ' '*len(expression)
        for marker, s in ('^', caret), ('~', tilde):
            if s is not None:
                n = max(1, len(s))
                markers = markers[:s.start] + marker * n + markers[s.start+n:]
        markers = markers.rstrip()
        super().__init__('\n'.join((message, expression, markers)))


def _match(s: str) -> Callable[[str], int]:
    def matcher(tail: str) -> int:
        return len(s) if tail.startswith(s) else 0
    return matcher


def _isname(s: str) -> bool:
    return s.isidentifier()


class _Parser:

    def parse_equation(self, s: _Substring) -> Expression:
        s_lhs, s_eq, s_rhs = s.partition(_match('=='), _match('='))
        if not s_eq:
            return self.parse_expression(s)
        if str(s_eq) == '==':
            raise ExpressionSyntaxError('Guards must be enclosed in parentheses.', s_eq)
        if '=' in str(s_rhs).replace('==', ''):
            raise ExpressionSyntaxError('Repeated equations are not allowed.', s.trim())
        return Equation(self.parse_expression(s_lhs), self.parse_expression(s_rhs))

    def parse_expression(self, s: _Substring) -> Expression:
        s_tail = s
        # Parse optional leading minus. The leading minus applies to the entire
        # first term, e.g. `-a * b` is interpreted as `-(a * b)`.
        negate = False
        s_try_strip = s_tail.trim_start().strip_prefix('-')
        if s_try_strip:
            s_tail = s_try_strip
            negate = True
        # Parse terms separated by ` + ` or ` - `. If the expression is empty,
        # `isplit` yields once and `self.parse_term` will raise an exception.
        # Consecutive additions form a single sum, subtractions fold to the left.
        terms = []  # type: List[Expression]
        for imatcher, s_term in s_tail.isplit(_match(' + '), _match(' - '), first=0):
            term = self.parse_term(s_term)
            if negate:
                term = Literal(-term.value) if isinstance(term, Literal) and term.value >= 0 else Call('-', (term,))
                negate = False
            if imatcher == 1:
                terms = [Call('-', (_join('+', terms), term))]
            else:
                terms.append(term)
        return _join('+', terms)

    def parse_term(self, s: _Substring) -> Expression:
        # Split at `*` and `/`, with products forming a single call and
        # divisions folding to the left.
        factors = []  # type: List[Expression]
        for imatcher, s_factor in s.isplit(_match('*'), _match('/'), first=0):
            factor = self.parse_power(s_factor)
            if imatcher == 1:
                factors = [Call('/', (_join('*', factors), factor))]
            else:
                factors.append(factor)
        return _join('*', factors)

    def parse_power(self, s: _Substring) -> Expression:
        s_parts = tuple(s.split(_match('^')))
        if len(s_parts) > 2:
            raise ExpressionSyntaxError('Repeated powers are not allowed. Use parentheses if necessary.', s.trim())
        base = self.parse_item(s_parts[0])
        if len(s_parts) == 1:
            return base
        return Call('^', (base, self.parse_item(s_parts[1])))

    def parse_item(self, s: _Substring) -> Expression:
        s_trimmed = s.trim()
        msg = 'Expected a number, variable, guard, scope or function call.'
        if any(op in s_trimmed for op in ('+', '-')):
            msg += ' Hint: the operators `+` and `-` must be surrounded by spaces.'
        error = ExpressionSyntaxError(msg, s_trimmed or s)
        if not s_trimmed:
            raise error
        # If the expression starts with a digit or a dot, we assume this is a
        # number. We try to parse the expression as an int or a float, in that
        # order. Otherwise we raise `error`.
        if '0' <= str(s_trimmed[0]) <= '9' or str(s_trimmed[0]) == '.':
            for parse in int, float:
                try:
                    return Literal(parse(str(s_trimmed)))
                except ValueError:
                    pass
            raise error
        # If the expression contains a scope, partition it and verify that opening
        # and closing brackets match.
        s_head, s_open, s_scope, s_close, s_tail = s_trimmed.partition_scope()
        if s_open:
            if not s_close:
                raise ExpressionSyntaxError("Unclosed `{}`.".format(s_open), caret=s_open, tilde=s_close)
            if {'(': ')', '[': ']'}[str(s_open)] != str(s_close):
                raise ExpressionSyntaxError("Parenthesis `{}` closed by `{}`.".format(s_open, s_close), caret=s_open, tilde=s_close)
        # Under no circumstances we allow anything after a scope.
        if s_tail:
            raise ExpressionSyntaxError('Unexpected symbols after scope.', s_tail)
        if not s_head:
            if str(s_open) != '(':
                raise error
            return self.parse_scope(s_scope)
        if not _isname(str(s_head)):
            raise error
        if not s_open:
            return Indexed(str(s_head))
        if str(s_open) == '[':
            return Indexed(str(s_head), tuple(self.parse_indices(s_scope)))
        return Call(str(s_head), tuple(self.parse_expression(s_arg) for s_arg in self.parse_arguments(s_scope)))

    def parse_scope(self, s: _Substring) -> Expression:
        s_left, s_eq, s_right = s.partition(_match('=='))
        if not s_eq:
            return self.parse_expression(s)
        left, right = (str(part.trim()) for part in (s_left, s_right))
        for s_part, part in (s_left, left), (s_right, right):
            if not _isname(part):
                raise ExpressionSyntaxError('Expected an index.', s_part.trim() or s_part)
        return Guard(left, right)

    def parse_indices(self, s: _Substring) -> Iterator[str]:
        if not s.trim():
            return
        for s_index in s.split(_match(',')):
            index = str(s_index.trim())
            if not _isname(index):
                raise ExpressionSyntaxError('Expected an index.', s_index.trim() or s_index)
            yield index

    def parse_arguments(self, s: _Substring) -> Iterator[_Substring]:
        if s.trim():
            yield from s.split(_match(','))


def _join(op: str, items: List[Expression]) -> Expression:
    return items[0] if len(items) == 1 else Call(op, tuple(items))


def parse(expression: str) -> Expression:
    '''Parse ``expression`` into an expression tree.

    Raises :class:`ExpressionSyntaxError` with a marker line pointing at the
    offending part of the expression.

    >>> parse('z[i] = x[i,j] * y[j]')
    Equation(lhs=Indexed(name='z', indices=('i',)), rhs=Call(op='*', args=(Indexed(name='x', indices=('i', 'j')), Indexed(name='y', indices=('j',)))))
    '''

    if isinstance(expression, Expression):
        return expression
    return _Parser().parse_equation(_Substring(expression))


# vim:sw=4:sts=4:et
