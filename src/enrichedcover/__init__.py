"""
EnrichedCover - Optimal Enriched-Set Cover

Selects a small, non-redundant collection of annotation sets (pathways, GO
terms, complexes) that statistically explains the elements of interest of an
experiment. Each set gets a fuzzy weight in ``[0, 1]``; sets enriched in the
mask are favored, sets overlapping each other too much are penalized.
"""

__version__ = "0.1.0"

from enrichedcover.core.mosaic import SetMosaic, MaskedSetMosaic
from enrichedcover.cover.params import CoverParams
from enrichedcover.cover.problem import CoverProblem, CoverProblemResult
from enrichedcover.cover.quadratic import QuadraticCoverProblem, QuadraticCoverResult
from enrichedcover.cover.optimizer import ScipyQPSolver, SolverError
from enrichedcover.stats.pvalue import logpvalue
from enrichedcover.stats.set_score import independentsetscore, ScoreConsistencyError

__all__ = [
    "SetMosaic",
    "MaskedSetMosaic",
    "CoverParams",
    "CoverProblem",
    "CoverProblemResult",
    "QuadraticCoverProblem",
    "QuadraticCoverResult",
    "ScipyQPSolver",
    "SolverError",
    "logpvalue",
    "independentsetscore",
    "ScoreConsistencyError",
]
