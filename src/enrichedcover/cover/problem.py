"""
Optimal Enriched-Set Cover problem.

Choose the sets from the collection to cover the masked (selected) elements.
The optimal sets cover ``C`` needs to deliver two goals:

    - minimize the P-values of masked elements enrichment for each of ``C`` sets
    - minimize the P-values of the pairwise non-overlap of ``C`` sets with
      each other

Fuzzy set selection is possible: each set is assigned a weight from the
``[0, 1]`` range. The problem is the quadratic program

    minimize   set_scores . w - w . (setXset_scores @ w)
    subject to 0 <= w[i] <= 1

with ``set_scores`` from :func:`independentsetscore` and ``setXset_scores``
the mosaic's pairwise overlap scores, regularized on the diagonal.

Examples:
    >>> from enrichedcover import SetMosaic, CoverProblem, CoverParams
    >>> mosaic = SetMosaic(gene_sets, all_elements=measured_genes)
    >>> problem = CoverProblem(mosaic.mask([significant_genes]), CoverParams(reg=0.1))
    >>> result = problem.optimize(seed=0)
    >>> result.to_frame(problem.set_ids).head()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional, Sequence

import numpy as np
import pandas as pd
from numpy.typing import ArrayLike, NDArray

from enrichedcover.cover._matrix import DegenerateScoreSink, fix_setxset_scores
from enrichedcover.cover.optimizer import (
    QPSolver,
    QuadraticModel,
    ScipyQPSolver,
    initial_point,
    postprocess_weights,
)
from enrichedcover.cover.params import CoverParams
from enrichedcover.stats.set_score import independentsetscore

if TYPE_CHECKING:
    from enrichedcover.core.mosaic import MaskedSetMosaic

__all__ = [
    'CoverProblem',
    'CoverProblemResult',
    'nsets',
    'score',
    'optimize',
]


@dataclass(frozen=True)
class CoverProblemResult:
    """
    Result of :meth:`CoverProblem.optimize`.

    Attributes:
        weights: Set weights in ``[0, 1]``; exactly 0 for pruned sets
        score: Objective value at the solver's point (before weights below
            ``min_weight`` were zeroed)
    """
    weights: NDArray[np.float64]
    score: float

    def rescore(self, problem: CoverProblem) -> float:
        """Objective value of the pruned weights."""
        return problem.score(self.weights)

    def to_frame(self, set_ids: Sequence[str]) -> pd.DataFrame:
        """
        Weights as a table, highest weight first.

        Args:
            set_ids: Identifiers of the problem's sets (``problem.set_ids``)
        """
        if len(set_ids) != len(self.weights):
            raise ValueError(
                f"{len(set_ids)} set ids for {len(self.weights)} weights"
            )
        df = pd.DataFrame({'set_id': list(set_ids), 'weight': self.weights})
        return df.sort_values('weight', ascending=False, kind='stable').reset_index(drop=True)


class CoverProblem:
    """
    Optimal Enriched-Set Cover of a single mask.

    Immutable after construction: the score vector and matrix are private
    copies, later changes to the mosaic can't reach an existing problem.

    Attributes:
        params: CoverParams used to build the problem
        set_scores: Independent score of each set (nsets,)
        setXset_scores: Regularized pairwise scores (nsets x nsets)
        set_ids: Identifiers of the problem's sets
    """

    def __init__(
        self,
        mosaic: MaskedSetMosaic,
        params: Optional[CoverParams] = None,
        *,
        on_degenerate: Optional[DegenerateScoreSink] = None,
    ):
        """
        Args:
            mosaic: Mosaic masked by exactly one mask
            params: Defaults to ``CoverParams()``
            on_degenerate: Sink for non-finite pairwise scores, see
                :func:`fix_setxset_scores`

        Raises:
            ValueError: The mosaic has more or fewer than one mask, or the
                pairwise scores contain ``+inf``/NaN
            ScoreConsistencyError: Inconsistent set/mask counts
        """
        if mosaic.nmasks != 1:
            raise ValueError(
                f"CoverProblem needs exactly one mask, got {mosaic.nmasks}; "
                f"use QuadraticCoverProblem for multiple masks"
            )
        self._params = params if params is not None else CoverParams()

        # preprocess setXset scores matrix for numerical solution
        self._setXset_scores = fix_setxset_scores(
            mosaic.setXset_scores, self._params.reg, on_degenerate)
        set_sizes = mosaic.set_sizes
        nmasked_perset = mosaic.nmasked_perset[:, 0]
        total_masked = int(mosaic.nmasked[0])
        self._set_scores = np.array([
            independentsetscore(int(set_sizes[i]), int(nmasked_perset[i]),
                                mosaic.nelements, total_masked, self._params)
            for i in range(mosaic.nsets)
        ], dtype=np.float64)
        self._set_ids = mosaic.set_ids

        self._setXset_scores.setflags(write=False)
        self._set_scores.setflags(write=False)

    @property
    def params(self) -> CoverParams:
        return self._params

    @property
    def set_scores(self) -> NDArray[np.float64]:
        return self._set_scores

    @property
    def setXset_scores(self) -> NDArray[np.float64]:
        return self._setXset_scores

    @property
    def set_ids(self) -> List[str]:
        return list(self._set_ids)

    @property
    def nsets(self) -> int:
        """Total number of sets in the collection."""
        return len(self._set_scores)

    @property
    def nmasks(self) -> int:
        return 1

    def __repr__(self) -> str:
        return f"CoverProblem(nsets={self.nsets}, params={self._params})"

    def opt_model(self) -> QuadraticModel:
        """Quadratic minimization model with box constraints for this problem."""
        return QuadraticModel(self._set_scores, self._setXset_scores, 0.0, 1.0)

    def score(self, w: ArrayLike) -> float:
        """
        Score of the OESC coverage, the objective minimized by :meth:`optimize`.

        Args:
            w: Probabilities of the sets being covered (nsets,)

        Raises:
            ValueError: ``w`` length differs from ``nsets``
        """
        w = np.asarray(w, dtype=np.float64)
        if w.shape != (self.nsets,):
            raise ValueError(f"weights shape {w.shape} doesn't match nsets={self.nsets}")
        return float(np.dot(self._set_scores - self._setXset_scores @ w, w))

    def optimize(
        self,
        initial_weights: Optional[ArrayLike] = None,
        solver: Optional[QPSolver] = None,
        seed: Optional[int] = None,
    ) -> CoverProblemResult:
        """
        Optimize the cover problem.

        Args:
            initial_weights: Solver starting point, random if None
            solver: Defaults to ``ScipyQPSolver()``
            seed: Seed of the random starting point

        Returns:
            CoverProblemResult; an empty problem gives empty weights and a
            zero score without calling the solver.

        Raises:
            SolverError: The solver did not converge
        """
        if self.nsets == 0:
            return CoverProblemResult(np.zeros(0, dtype=np.float64), 0.0)

        if solver is None:
            solver = ScipyQPSolver()
        x0 = initial_point(self.nsets, initial_weights, seed)
        solution = solver.solve(self.opt_model(), x0)
        # remove small non-zero probabilities due to optimization method errors
        w = postprocess_weights(solution.x, self._params.min_weight)
        return CoverProblemResult(w, float(solution.objective))


def nsets(problem) -> int:
    """Number of sets of a cover problem."""
    return problem.nsets


def score(problem, w: ArrayLike) -> float:
    """Objective value of ``w`` for a cover problem."""
    return problem.score(w)


def optimize(problem, **kwargs):
    """Optimize a cover problem, see :meth:`CoverProblem.optimize`."""
    return problem.optimize(**kwargs)
