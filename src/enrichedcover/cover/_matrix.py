"""
Preprocessing of set x set score matrices for numerical optimization.

Overlap log p-values can underflow to ``-inf`` for large, nearly identical
sets. The optimizer needs finite coefficients, so those entries are clamped to
the most negative finite score of the matrix, which keeps them the strongest
penalties without breaking the solver. ``+inf`` and NaN have no such reading
(a log-probability can't be positive) and are rejected.

Every degeneracy is reported to a sink, a callable receiving one
:class:`DegenerateScore` per affected set pair. The default sink logs a
warning; tests and pipelines can pass their own to collect them.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

import numpy as np
from numpy.typing import ArrayLike, NDArray

__all__ = [
    'DegenerateScore',
    'DegenerateScoreSink',
    'fix_setxset_scores',
    'log_degenerate_score',
]

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DegenerateScore:
    """
    A non-finite set x set score.

    Attributes:
        set1: Row index of the entry
        set2: Column index of the entry
        value: Original (non-finite) score
        replacement: Value the entry was clamped to, None if it was rejected
    """
    set1: int
    set2: int
    value: float
    replacement: Optional[float] = None


DegenerateScoreSink = Callable[[DegenerateScore], None]


def log_degenerate_score(entry: DegenerateScore) -> None:
    """Default sink: one warning per degenerate set pair."""
    if entry.replacement is None:
        logger.warning(f"set[{entry.set1}]×set[{entry.set2}] score is {entry.value}")
    else:
        logger.warning(
            f"set[{entry.set1}]×set[{entry.set2}] score is {entry.value}, "
            f"replaced by {entry.replacement}"
        )


def _pair_value(scores: NDArray[np.float64], i: int, j: int) -> float:
    # the offending entry may sit below the diagonal only
    value = scores[i, j]
    return float(value if not np.isfinite(value) else scores[j, i])


def fix_setxset_scores(
    scores: ArrayLike,
    reg: float,
    on_degenerate: Optional[DegenerateScoreSink] = None,
) -> NDArray[np.float64]:
    """
    Copy of a set x set score matrix ready for optimization.

    Steps:
        1. minimum of the finite entries (at most ``0.0``)
        2. ``-inf`` entries replaced by that minimum
        3. diagonal set to ``-reg``

    Args:
        scores: Square matrix of pairwise scores; never modified
        reg: Regularization constant for the diagonal
        on_degenerate: Sink for degenerate entries, defaults to
            :func:`log_degenerate_score`

    Returns:
        Fixed float matrix (new array)

    Raises:
        ValueError: Non-square input, or a ``+inf``/NaN off-diagonal entry
            (reported to the sink before raising)
    """
    report = on_degenerate if on_degenerate is not None else log_degenerate_score
    fixed = np.array(scores, dtype=np.float64, copy=True)
    if fixed.ndim != 2 or fixed.shape[0] != fixed.shape[1]:
        raise ValueError(f"set×set scores must be a square matrix, got shape {fixed.shape}")

    offdiag = ~np.eye(fixed.shape[0], dtype=bool)
    finite = np.isfinite(fixed)
    min_score = min(0.0, float(fixed[finite].min())) if finite.any() else 0.0

    invalid = offdiag & ~finite & ~np.isneginf(fixed)
    if invalid.any():
        pairs = []
        for i, j in zip(*np.nonzero(np.triu(invalid | invalid.T))):
            report(DegenerateScore(int(i), int(j), _pair_value(fixed, i, j)))
            pairs.append((int(i), int(j)))
        raise ValueError(f"set×set scores contain +inf or NaN for set pairs {pairs}")

    neginf = offdiag & np.isneginf(fixed)
    for i, j in zip(*np.nonzero(np.triu(neginf | neginf.T))):
        report(DegenerateScore(int(i), int(j), -np.inf, min_score))
    fixed[neginf] = min_score

    np.fill_diagonal(fixed, -reg)
    return fixed
