'''Normalization of index equality guards.

A guard ``(i == j)`` is a Kronecker delta. Multiplied with an expression that
sums over ``j`` the guard is eliminated by substituting ``j`` by ``i``; a guard
between two indices that are not summed has to stay. :func:`reduce_equalities`
decides which guards can be eliminated, :func:`normalize` applies this to a
tensor derivative.
'''

from . import _util as util, debug_flags
from .expression import Guard, reindex
from typing import Collection, Dict, Iterable, List, Tuple
import itertools

Pair = Tuple[str, str]


def reduce_equalities(pairs: Iterable[Pair], protected: Collection[str]) -> Tuple[Dict[str, str], List[Pair]]:
    '''Reduce index equalities to a substitution and residual equalities.

    The equalities are merged into equivalence classes. Per class the first
    protected index, in order of appearance, is the representative, or the
    first index if the class holds no protected index. All unprotected indices
    are substituted by their representative; the equalities between the
    representative and the other protected indices are returned as residual.
    Trivial equalities ``(i, i)`` are dropped.

    >>> reduce_equalities([('i', 'k'), ('k', 'j')], protected={'i', 'j'})
    ({'k': 'i'}, [('i', 'j')])
    >>> reduce_equalities([('k', 'l')], protected={'i'})
    ({'l': 'k'}, [])
    '''

    pairs = [(a, b) for a, b in pairs if a != b]
    symbols, _ = util.unique(itertools.chain.from_iterable(pairs))
    position = {symbol: n for n, symbol in enumerate(symbols)}
    index_map, nclasses = util.merge_index_map(len(symbols), ([position[a], position[b]] for a, b in pairs))
    classes = [[] for iclass in range(nclasses)]
    for symbol, iclass in zip(symbols, index_map):
        classes[iclass].append(symbol)
    substitution = {}
    residual = []
    for members in classes:
        anchors = [member for member in members if member in protected]
        representative = anchors[0] if anchors else members[0]
        for member in members:
            if member == representative:
                continue
            if member in protected:
                residual.append((representative, member))
            else:
                substitution[member] = representative
    return substitution, residual


def normalize(td):
    '''Eliminate the guards of tensor derivative ``td`` that relate summed indices.

    The numerator and denominator indices are protected; every other index in
    a guard is substituted in the body.
    '''

    substitution, residual = reduce_equalities(((guard.left, guard.right) for guard in td.guards), set(td.deriv_indices))
    normalized = td.replace(body=reindex(td.body, substitution), guards=tuple(Guard(a, b) for a, b in residual))
    if debug_flags.guards:
        bound = set(normalized.deriv_indices)
        assert all(guard.left in bound and guard.right in bound for guard in normalized.guards), f'unbound guard index in {normalized}'
    return normalized


# vim:sw=4:sts=4:et
