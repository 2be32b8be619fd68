"""
Multi-mask Optimal Enriched-Set Cover.

Each retained set ``i`` gets one weight per mask ``m``, ``W[i, m]``. The
linear term rewards per-mask enrichment net of the selection tax,

    s[i, m] = sel_tax + log P(overlap(set_i, mask_m) >= observed)

and the quadratic term penalizes co-selection of overlapping sets for the
same mask:

    minimize   sum_m  s[:, m] . W[:, m] - W[:, m] . (S @ W[:, m])
    subject to 0 <= W[i, m] <= 1
               sum_i W[i, m] <= max_weight_per_mask   (optional)

``S`` is the mosaic's pairwise overlap score matrix scaled by
``setXset_factor``, with ``-reg`` on the diagonal. All masks share the same
``S``; the variables are laid out mask by mask (column-major ``W``), so the
full quadratic term is the block diagonal ``kron(I_nmasks, S)``.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, List, Optional

import numpy as np
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
from enrichedcover.stats.set_score import masked_set_scores

if TYPE_CHECKING:
    from enrichedcover.core.mosaic import MaskedSetMosaic

__all__ = ['QuadraticCoverProblem', 'QuadraticCoverResult']


@dataclass(frozen=True)
class QuadraticCoverResult:
    """
    Result of :meth:`QuadraticCoverProblem.optimize`.

    Attributes:
        weights: ``(nsets, nmasks)`` weights, or a flat ``(nsets,)`` vector
            for a single mask
        total_score: Objective value at the solver's point
    """
    weights: NDArray[np.float64]
    total_score: float


class QuadraticCoverProblem:
    """
    Optimal Enriched-Set Cover of one or several masks.

    Attributes:
        params: CoverParams used to build the problem
        var_scores: Linear term per set and mask (nsets x nmasks)
        setXset_scores: Scaled, regularized pairwise scores (nsets x nsets)
    """

    def __init__(
        self,
        mosaic: MaskedSetMosaic,
        params: Optional[CoverParams] = None,
        *,
        on_degenerate: Optional[DegenerateScoreSink] = None,
    ):
        self._params = params if params is not None else CoverParams()
        self._nmasks = mosaic.nmasks

        setXset_scores = np.asarray(mosaic.setXset_scores, dtype=np.float64)
        if self._params.setXset_factor == 0.0:
            # no overlap penalty, 0 * -inf would be NaN
            setXset_scores = np.zeros_like(setXset_scores)
        else:
            setXset_scores = self._params.setXset_factor * setXset_scores
        self._setXset_scores = fix_setxset_scores(
            setXset_scores, self._params.reg, on_degenerate)

        var_scores = np.zeros((mosaic.nsets, self._nmasks), dtype=np.float64)
        for m in range(self._nmasks):
            var_scores[:, m] = masked_set_scores(
                mosaic.set_sizes, mosaic.nmasked_perset[:, m],
                mosaic.nelements, int(mosaic.nmasked[m]),
                sel_tax=self._params.sel_tax)
        self._var_scores = var_scores
        self._set_ids = mosaic.set_ids

        self._setXset_scores.setflags(write=False)
        self._var_scores.setflags(write=False)

    @property
    def params(self) -> CoverParams:
        return self._params

    @property
    def var_scores(self) -> NDArray[np.float64]:
        return self._var_scores

    @property
    def setXset_scores(self) -> NDArray[np.float64]:
        return self._setXset_scores

    @property
    def set_ids(self) -> List[str]:
        return list(self._set_ids)

    @property
    def nsets(self) -> int:
        return self._var_scores.shape[0]

    @property
    def nmasks(self) -> int:
        return self._nmasks

    @property
    def nvars(self) -> int:
        """Number of optimized weights, ``nsets * nmasks``."""
        return self.nsets * self._nmasks

    def __repr__(self) -> str:
        return (f"QuadraticCoverProblem(nsets={self.nsets}, nmasks={self.nmasks}, "
                f"params={self._params})")

    def _flat_weights(self, w: ArrayLike) -> NDArray[np.float64]:
        w = np.asarray(w, dtype=np.float64)
        if w.shape == (self.nsets, self._nmasks):
            return w.ravel(order='F')
        if w.shape == (self.nvars,):
            return w
        raise ValueError(
            f"weights shape {w.shape} doesn't match ({self.nsets}, {self._nmasks}) "
            f"or ({self.nvars},)"
        )

    def opt_model(self) -> QuadraticModel:
        """Quadratic minimization model with box and per-mask constraints."""
        linear = self._var_scores.ravel(order='F')
        quadratic = np.kron(np.eye(self._nmasks), self._setXset_scores)
        A_ub = b_ub = None
        if self._params.max_weight_per_mask is not None:
            # row m sums the weights of mask m
            A_ub = np.kron(np.eye(self._nmasks), np.ones((1, self.nsets)))
            b_ub = np.full(self._nmasks, self._params.max_weight_per_mask)
        return QuadraticModel(linear, quadratic, 0.0, 1.0, A_ub=A_ub, b_ub=b_ub)

    def score(self, w: ArrayLike) -> float:
        """
        Objective value of the weights.

        Args:
            w: ``(nsets, nmasks)`` matrix or flat vector of ``nvars`` weights
                (mask by mask)

        Raises:
            ValueError: Shape mismatch
        """
        w = self._flat_weights(w)
        total = 0.0
        for m in range(self._nmasks):
            wm = w[m * self.nsets:(m + 1) * self.nsets]
            total += float(np.dot(self._var_scores[:, m] - self._setXset_scores @ wm, wm))
        return total

    def _shape_weights(self, w: NDArray[np.float64]) -> NDArray[np.float64]:
        if self._nmasks == 1:
            return w
        return w.reshape((self.nsets, self._nmasks), order='F')

    def optimize(
        self,
        initial_weights: Optional[ArrayLike] = None,
        solver: Optional[QPSolver] = None,
        seed: Optional[int] = None,
    ) -> QuadraticCoverResult:
        """
        Optimize the cover problem.

        Args:
            initial_weights: Starting point, ``(nsets, nmasks)`` or flat;
                random if None
            solver: Defaults to ``ScipyQPSolver()``
            seed: Seed of the random starting point

        Returns:
            QuadraticCoverResult; weights collapse to 1D for a single mask.
            A problem without sets returns empty weights and a zero score
            without calling the solver.

        Raises:
            SolverError: The solver did not converge
        """
        if self.nsets == 0:
            return QuadraticCoverResult(np.zeros(0, dtype=np.float64), 0.0)

        if solver is None:
            solver = ScipyQPSolver()
        if initial_weights is not None:
            initial_weights = self._flat_weights(initial_weights)
        x0 = initial_point(self.nvars, initial_weights, seed)
        solution = solver.solve(self.opt_model(), x0)
        w = postprocess_weights(solution.x, self._params.min_weight)
        return QuadraticCoverResult(self._shape_weights(w), float(solution.objective))
