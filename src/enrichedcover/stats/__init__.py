"""
Overlap statistics for enriched-set cover.

Modules:
    pvalue: Hypergeometric log p-values of set intersections
    set_score: Independent (per-set) enrichment scores
"""

from enrichedcover.stats.pvalue import (
    TAILS,
    exact_logpvalue,
    logpvalue,
)
from enrichedcover.stats.set_score import (
    ScoreConsistencyError,
    independentsetscore,
    masked_set_scores,
)

__all__ = [
    'TAILS',
    'logpvalue',
    'exact_logpvalue',
    'ScoreConsistencyError',
    'independentsetscore',
    'masked_set_scores',
]
