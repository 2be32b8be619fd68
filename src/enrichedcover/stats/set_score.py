"""
Per-set enrichment scores.

A set's *independent* score measures how well it lines up with the mask on its
own, ignoring every other set in the collection. Scores are log-domain:
the more negative, the stronger the enrichment, which is the orientation the
cover objectives minimize.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional

import numpy as np
from numpy.typing import ArrayLike, NDArray

from enrichedcover.stats.pvalue import exact_logpvalue, logpvalue

if TYPE_CHECKING:
    from enrichedcover.cover.params import CoverParams

__all__ = [
    'ScoreConsistencyError',
    'independentsetscore',
    'masked_set_scores',
]


class ScoreConsistencyError(ArithmeticError):
    """Raised when set/mask counts are mutually inconsistent and yield a NaN score."""
    pass


def independentsetscore(
    set_size: int,
    masked_count: int,
    universe_size: int,
    total_masked: int,
    params: Optional[CoverParams] = None,
) -> float:
    """
    Linear component of a set score.

    Doesn't take into account the overlap with the other selected sets:

        log P(masked-vs-set overlap >= masked_count)
        - log P(unmasked-vs-set overlap >= set_size - masked_count)

    Args:
        set_size: Number of elements in the set
        masked_count: Number of set elements inside the mask
        universe_size: Number of elements in the universe
        total_masked: Number of masked elements in the universe
        params: Accepted for call-site symmetry with the cover problems;
            the score itself is parameter-free.

    Raises:
        ScoreConsistencyError: The counts do not describe a valid set/mask
            configuration (the score came out NaN).
    """
    res = (logpvalue(set_size, total_masked, universe_size, masked_count)
           - logpvalue(set_size, universe_size - total_masked, universe_size,
                       set_size - masked_count))
    if np.isnan(res):
        raise ScoreConsistencyError(
            f"set={set_size} masked={masked_count} total={universe_size} "
            f"total_masked={total_masked}: score is NaN"
        )
    return res


def masked_set_scores(
    set_sizes: ArrayLike,
    masked_counts: ArrayLike,
    universe_size: int,
    total_masked: int,
    sel_tax: float = 0.0,
) -> NDArray[np.float64]:
    """
    Per-mask enrichment scores of a collection of sets.

    ``sel_tax + log P(X >= masked_count)`` for every set, with the exact
    hypergeometric tail (see :func:`exact_logpvalue`). A set is worth
    selecting for the mask only when its enrichment outweighs the tax, i.e.
    when the score is negative.

    Args:
        set_sizes: Set sizes (n_sets,)
        masked_counts: Masked elements in each set (n_sets,)
        universe_size: Number of elements in the universe
        total_masked: Number of masked elements in the universe
        sel_tax: Cost of selecting a set, log domain (>= 0)

    Returns:
        Score vector (n_sets,)
    """
    set_sizes = np.asarray(set_sizes, dtype=int)
    masked_counts = np.asarray(masked_counts, dtype=int)
    if set_sizes.shape != masked_counts.shape:
        raise ValueError(
            f"set_sizes and masked_counts shapes differ: "
            f"{set_sizes.shape} vs {masked_counts.shape}"
        )
    scores = np.empty(len(set_sizes), dtype=np.float64)
    for i, (set_size, masked) in enumerate(zip(set_sizes, masked_counts)):
        if masked > set_size or masked > total_masked:
            raise ScoreConsistencyError(
                f"set[{i}]: masked={masked} exceeds set={set_size} "
                f"or total_masked={total_masked}"
            )
        scores[i] = sel_tax + exact_logpvalue(int(set_size), total_masked,
                                              universe_size, int(masked))
    return scores
