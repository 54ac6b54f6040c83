'''Allocation of fresh index symbols.

Indices are drawn from an ordered alphabet; the order defines allocation
priority. The alphabet in effect is :attr:`alphabet.current`, which defaults to
the environment variable ``TENSORDIFF_NAMES`` if set and can be changed
temporarily:

>>> allocate({'i', 'j'})
('k', 3)
>>> with alphabet('abc'):
...     allocate_many({'b'}, 0, 2)
['a', 'c']
'''

from . import _util as util
from typing import Collection, Dict, Iterable, List, Optional, Sequence, Tuple


class IndexExhaustedError(IndexError):
    '''Raised when the alphabet holds no index that is not already in use.'''


@util.set_current
@util.defaults_from_env
def alphabet(names: str = 'ijklmnpqrstuvwxyz'):
    if not isinstance(names, str) or not names:
        raise ValueError('alphabet requires a non-empty string of index names')
    if len(set(names)) != len(names):
        raise ValueError(f'alphabet {names!r} contains duplicate index names')
    if not all('a' <= name <= 'z' for name in names):
        raise ValueError(f'alphabet {names!r} may only contain lower case latin characters')
    return tuple(names)


def allocate(existing: Collection[str], start: int = 0, names: Optional[Sequence[str]] = None) -> Tuple[str, int]:
    '''Return the first index at or after position ``start`` not in ``existing``.

    Returns the index and the position to continue the next allocation from.
    Raises :class:`IndexExhaustedError` if the alphabet is exhausted.
    '''

    if names is None:
        names = alphabet.current
    pos = start
    while pos < len(names) and names[pos] in existing:
        pos += 1
    if pos >= len(names):
        raise IndexExhaustedError(f'no free index left in alphabet {"".join(names)!r} at or after position {start}; in use: {", ".join(sorted(existing))}')
    return names[pos], pos + 1


def allocate_many(existing: Collection[str], start: int, count: int, names: Optional[Sequence[str]] = None) -> List[str]:
    '''Allocate ``count`` distinct indices not in ``existing``, in allocation order.'''

    indices = []
    for i in range(count):
        index, start = allocate(existing, start, names)
        indices.append(index)
    return indices


def replacements(existing: Collection[str], candidates: Iterable[str], names: Optional[Sequence[str]] = None) -> Dict[str, str]:
    '''Find fresh replacements for candidates that collide.

    A candidate collides if it is in ``existing`` or equals a replacement chosen
    earlier in the same call. Replacements avoid ``existing``, all candidates
    and each other. Candidates that do not collide get no entry.

    >>> replacements({'i', 'j'}, ['i', 'k', 'j', 'i'])
    {'i': 'l', 'j': 'm'}
    '''

    candidates = util.unique(candidates)[0]
    taken = set(existing).union(candidates)
    repls = {}
    pos = 0
    for index in candidates:
        if index in existing or index in repls.values():
            repls[index], pos = allocate(taken, pos, names)
            taken.add(repls[index])
    return repls


# vim:sw=4:sts=4:et
