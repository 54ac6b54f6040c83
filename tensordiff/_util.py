"""
The util module provides a collection of general purpose methods.
"""

from . import warnings
import stringly
import os
import numpy
import inspect
import itertools
import functools
import contextlib
from typing import Iterable, Sequence, Tuple


def set_current(f):
    '''Decorator for setting global state.

    The decorator turns a function into a context that holds the return value
    in its ``.current`` attribute. All function arguments are required to have
    a default value, and the corresponding return value is the initial value of
    the ``.current`` attribute.

    Example:

    >>> @set_current
    ... def state(x=1, y=2):
    ...     return f'x={x}, y={y}'
    >>> state.current
    'x=1, y=2'
    >>> with state(10):
    ...     state.current
    'x=10, y=2'
    >>> state.current
    'x=1, y=2'
    '''

    @functools.wraps(f)
    @contextlib.contextmanager
    def set_current(*args, **kwargs):
        previous = set_current.current
        set_current.current = f(*args, **kwargs)
        try:
            yield
        finally:
            set_current.current = previous

    set_current.current = f()
    return set_current


def defaults_from_env(f):
    '''Decorator for changing function defaults based on environment.

    This decorator searches the environment for variables matching the pattern
    ``TENSORDIFF_MYPARAM``, where ``myparam`` is a parameter of the decorated
    function. Only parameters with type annotation and a default value are
    considered, and the string value is deserialized using `Stringly
    <https://pypi.org/project/stringly/>`_. In case deserialization fails, a
    warning is emitted and the original default is maintained.'''

    sig = inspect.signature(f)
    params = []
    changed = False
    for param in sig.parameters.values():
        envname = f'TENSORDIFF_{param.name.upper()}'
        if envname in os.environ and param.annotation != param.empty and param.default != param.empty:
            try:
                v = stringly.loads(param.annotation, os.environ[envname])
            except Exception as e:
                warnings.warn(f'ignoring environment variable {envname}: {e}')
            else:
                param = param.replace(default=v)
                changed = True
        params.append(param)
    if not changed:
        return f
    sig = sig.replace(parameters=params)
    @functools.wraps(f)
    def defaults_from_env(*args, **kwargs):
        bound = sig.bind(*args, **kwargs)
        bound.apply_defaults()
        return f(*bound.args, **bound.kwargs)
    defaults_from_env.__signature__ = sig
    return defaults_from_env


def unique(items, key=None):
    '''Deduplicate items in sequence.

    Return a tuple `(unique, indices)` such that `items[i] == unique[indices[i]]`
    and `unique` does not contain duplicate items. An optional `key` is applied
    to all items before testing for equality.
    '''

    seen = {}
    unique = []
    indices = []
    for item in items:
        k = item if key is None else key(item)
        try:
            index = seen[k]
        except KeyError:
            index = seen[k] = len(unique)
            unique.append(item)
        indices.append(index)
    return unique, indices


def merge_index_map(nin: int, merge_sets: Iterable[Sequence[int]]) -> Tuple[numpy.ndarray, int]:
    '''Returns an index map relating ``nin`` unmerged elements to ``nout`` merged elements.

    The index map, an array of length ``nin``, satisfies the following conditions:

    *   For every merge set in ``merge_sets``: for every pair of indices ``i``
        and ``j`` in a merge set, ``index_map[i] == index_map[j]`` is true.

        In code, the following is true:

            all(index_map[i] == index_map[j] for i, *js in merge_sets for j in js)

    *   Selecting the first occurences of indices in ``index_map`` gives the
        sequence ``range(nout)``.

    Args
    ----
    nin : :class:`int`
        The number of elements before merging.
    merge_sets : iterable of sequences of at least one :class:`int`
        An iterable of merge sets, where each merge set lists the indices of
        input elements that should be merged. Every merge set should have at
        least one index.

    Returns
    -------
    index_map : :class:`numpy.ndarray`
        Index map with satisfying the above conditions.
    nout : :class:`int`
        The number of output indices.
    '''

    index_map = numpy.arange(nin)
    def resolve(index):
        parent = index_map[index]
        while index != parent:
            index = parent
            parent = index_map[index]
        return index
    for merge_set in merge_sets:
        resolved = list(map(resolve, merge_set))
        index_map[resolved] = min(resolved)
    new_indices = itertools.count()
    for iin, ptr in enumerate(index_map):
        index_map[iin] = next(new_indices) if iin == ptr else index_map[ptr]
    return index_map, next(new_indices)


# vim:sw=4:sts=4:et
