"""
Hypergeometric log p-values for set overlaps.

Given a universe of ``all_size`` elements and two sets A and B drawn from it,
the size of their intersection follows a hypergeometric distribution under
the null hypothesis that B was sampled independently of A:

    X ~ Hypergeometric(N=all_size, K=a_size, n=b_size)

All functions here return natural-log probabilities (``<= 0``), with
``-inf`` standing for probability zero. Working in the log domain keeps the
tiny p-values of large, strongly enriched gene sets representable.

Tails:
    left:  log P(X >= isect_size)  (overlap at least as large; enrichment)
    right: log P(X <= isect_size)  (overlap at most as large; depletion)
    both:  two-sided, ``2 * min(left, right, log(0.5))``

Examples:
    >>> from enrichedcover.stats.pvalue import logpvalue
    >>> # 4 elements, two 2-element sets sharing one element
    >>> logpvalue(2, 2, 4, 1)   # log(5/6)
    -0.1823...
"""

from __future__ import annotations

import math
from typing import Literal

import numpy as np
from scipy.stats import hypergeom

__all__ = [
    'Tail',
    'TAILS',
    'logpvalue',
    'exact_logpvalue',
]

Tail = Literal['left', 'right', 'both']
TAILS = ('left', 'right', 'both')

_LOG_HALF = math.log(0.5)


def _check_sizes(a_size: int, b_size: int, all_size: int) -> None:
    if a_size < 0 or b_size < 0 or all_size < 0:
        raise ValueError(
            f"Sets with negative number of elements: "
            f"a_size={a_size}, b_size={b_size}, all_size={all_size}"
        )
    if a_size > all_size or b_size > all_size:
        raise ValueError(
            f"Sets bigger than total number of elements: "
            f"a_size={a_size}, b_size={b_size}, all_size={all_size}"
        )


def _clip(logp: float) -> float:
    # scipy occasionally returns +1e-16 for probabilities that are exactly 1
    return min(float(logp), 0.0)


def logpvalue(
    a_size: int,
    b_size: int,
    all_size: int,
    isect_size: int,
    tail: Tail = 'left',
) -> float:
    """
    Log p-value for the intersection of sets A and B.

    Args:
        a_size: Number of elements in A
        b_size: Number of elements in B
        all_size: Number of elements in the universe
        isect_size: Number of elements shared by A and B
        tail: ``'left'`` (default), ``'right'`` or ``'both'``

    Returns:
        Natural-log probability, ``<= 0``.

    Raises:
        ValueError: Negative sizes, sets larger than the universe, or an
            unsupported tail specifier.

    Boundary cases are resolved before the distribution is consulted:
        - ``isect_size >= min(a_size, b_size)``: ``-inf`` for the right tail,
          ``0.0`` otherwise
        - ``isect_size < min(0, a_size + b_size - all_size)``: ``-inf`` for
          the left tail, ``0.0`` otherwise
    """
    _check_sizes(a_size, b_size, all_size)
    if tail not in TAILS:
        raise ValueError(f"Unsupported tail specifier ({tail!r}), expected one of {TAILS}")

    if isect_size >= min(a_size, b_size):
        return -np.inf if tail == 'right' else 0.0
    elif isect_size < min(0, a_size + b_size - all_size):
        return -np.inf if tail == 'left' else 0.0

    # scipy parameterization: M=population, n=successes, N=draws
    distr = hypergeom(all_size, a_size, b_size)
    if tail == 'left':
        return _clip(distr.logsf(isect_size - 1))
    elif tail == 'right':
        return _clip(distr.logcdf(isect_size))
    else:
        return 2.0 * min(_clip(distr.logcdf(isect_size)),
                         _clip(distr.logsf(isect_size - 1)),
                         _LOG_HALF)


def exact_logpvalue(
    a_size: int,
    b_size: int,
    all_size: int,
    isect_size: int,
) -> float:
    """
    Exact enrichment log p-value, log P(X >= isect_size).

    Unlike :func:`logpvalue`, the maximal attainable overlap is not collapsed
    to ``0.0``: two identical 2-element sets in a 4-element universe score
    ``log(1/6)``, not ``0.0``. Used wherever a set that fully matches its
    partner must still be distinguished from a chance overlap (pairwise
    overlap penalties, per-mask enrichment).

    Returns:
        ``0.0`` when the overlap is guaranteed by the set sizes,
        ``-inf`` when it is impossible, the hypergeometric log survival
        otherwise.
    """
    _check_sizes(a_size, b_size, all_size)
    if isect_size <= max(0, a_size + b_size - all_size):
        return 0.0
    elif isect_size > min(a_size, b_size):
        return -np.inf
    return _clip(hypergeom.logsf(isect_size - 1, all_size, a_size, b_size))
