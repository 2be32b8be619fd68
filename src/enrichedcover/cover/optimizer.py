"""
Quadratic program solving for the cover problems.

The cover problems reduce to

    minimize   linear . w - w . (quadratic @ w)
    subject to lower <= w <= upper
               A_ub @ w <= b_ub            (optional)

QuadraticModel holds that program, QPSolver is the narrow interface the
problems talk to, and ScipyQPSolver implements it on top of
``scipy.optimize.minimize`` (L-BFGS-B for box constraints only, SLSQP once
linear constraints are added). Any other QP library can be plugged in by
implementing ``solve(model, x0)``.

The objective need not be convex. The solver returns a stationary point
reached from the initial weights, not necessarily the global minimum.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

import numpy as np
from numpy.typing import ArrayLike, NDArray
from scipy.optimize import Bounds, LinearConstraint, minimize

__all__ = [
    'QuadraticModel',
    'QPSolution',
    'QPSolver',
    'ScipyQPSolver',
    'SolverError',
    'initial_point',
    'postprocess_weights',
]

logger = logging.getLogger(__name__)

# scipy.optimize.minimize methods that honor linear constraints
CONSTRAINED_METHODS = frozenset({'SLSQP', 'TRUST-CONSTR', 'COBYLA', 'COBYQA'})

# slack allowed on A_ub @ x <= b_ub in the returned point
FEASIBILITY_TOL = 1e-6


class SolverError(RuntimeError):
    """Raised when the underlying solver fails to produce a solution."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


@dataclass(frozen=True)
class QuadraticModel:
    """
    Box-constrained (optionally linearly constrained) quadratic program.

    Attributes:
        linear: Linear term (n,)
        quadratic: Symmetric quadratic term (n x n), enters with a minus sign
        lower: Lower bound for every variable
        upper: Upper bound for every variable
        A_ub: Optional inequality constraint matrix (k x n)
        b_ub: Optional inequality right-hand side (k,)
    """
    linear: NDArray[np.float64]
    quadratic: NDArray[np.float64]
    lower: float = 0.0
    upper: float = 1.0
    A_ub: Optional[NDArray[np.float64]] = None
    b_ub: Optional[NDArray[np.float64]] = None

    def __post_init__(self):
        linear = np.asarray(self.linear, dtype=np.float64)
        quadratic = np.asarray(self.quadratic, dtype=np.float64)
        if linear.ndim != 1:
            raise ValueError(f"linear term must be 1D, got shape {linear.shape}")
        n = len(linear)
        if quadratic.shape != (n, n):
            raise ValueError(
                f"quadratic term shape {quadratic.shape} doesn't match linear term ({n},)"
            )
        if not (self.lower <= self.upper):
            raise ValueError(f"empty box: lower={self.lower} > upper={self.upper}")
        object.__setattr__(self, 'linear', linear)
        object.__setattr__(self, 'quadratic', quadratic)

        if (self.A_ub is None) != (self.b_ub is None):
            raise ValueError("A_ub and b_ub must be given together")
        if self.A_ub is not None:
            A_ub = np.atleast_2d(np.asarray(self.A_ub, dtype=np.float64))
            b_ub = np.atleast_1d(np.asarray(self.b_ub, dtype=np.float64))
            if A_ub.shape != (len(b_ub), n):
                raise ValueError(
                    f"A_ub shape {A_ub.shape} doesn't match ({len(b_ub)}, {n})"
                )
            object.__setattr__(self, 'A_ub', A_ub)
            object.__setattr__(self, 'b_ub', b_ub)

    @property
    def nvars(self) -> int:
        return len(self.linear)

    @property
    def has_linear_constraints(self) -> bool:
        return self.A_ub is not None

    def objective(self, w: NDArray[np.float64]) -> float:
        return float(self.linear @ w - w @ (self.quadratic @ w))

    def gradient(self, w: NDArray[np.float64]) -> NDArray[np.float64]:
        return self.linear - (self.quadratic + self.quadratic.T) @ w


@dataclass(frozen=True)
class QPSolution:
    """Feasible point returned by a solver and the objective value there."""
    x: NDArray[np.float64]
    objective: float
    niterations: int = 0
    message: str = ""
    info: dict = field(default_factory=dict)


@runtime_checkable
class QPSolver(Protocol):
    """Anything able to minimize a :class:`QuadraticModel` from a starting point."""

    def solve(self, model: QuadraticModel, x0: NDArray[np.float64]) -> QPSolution:
        ...


class ScipyQPSolver:
    """
    QPSolver backed by ``scipy.optimize.minimize``.

    Args:
        method: scipy method; defaults to ``'L-BFGS-B'`` for box-only models
            and ``'SLSQP'`` for models with linear constraints
        maxiter: Iteration limit passed to scipy
        tol: Convergence tolerance passed to scipy
        verbose: Print scipy's convergence messages and log progress

    Examples:
        >>> solver = ScipyQPSolver(maxiter=200, verbose=True)
        >>> res = problem.optimize(solver=solver)
    """

    def __init__(
        self,
        method: Optional[str] = None,
        maxiter: int = 1000,
        tol: float = 1e-9,
        verbose: bool = False,
    ):
        if maxiter <= 0:
            raise ValueError(f"maxiter must be positive, got {maxiter}")
        self.method = method
        self.maxiter = maxiter
        self.tol = tol
        self.verbose = verbose

    def __repr__(self) -> str:
        return (f"ScipyQPSolver(method={self.method!r}, maxiter={self.maxiter}, "
                f"tol={self.tol}, verbose={self.verbose})")

    def solve(self, model: QuadraticModel, x0: NDArray[np.float64]) -> QPSolution:
        """
        Minimize ``model`` starting from ``x0``.

        Raises:
            ValueError: An explicit ``method`` that ignores linear constraints
                was given for a model that has them
            SolverError: scipy reports failure, or the returned point
                violates the linear constraints
        """
        method = self.method
        if method is None:
            method = 'SLSQP' if model.has_linear_constraints else 'L-BFGS-B'

        constraints = ()
        if model.has_linear_constraints:
            if method.upper() not in CONSTRAINED_METHODS:
                raise ValueError(
                    f"Method {method} can't handle linear constraints, "
                    f"use one of {sorted(CONSTRAINED_METHODS)}"
                )
            constraints = (LinearConstraint(model.A_ub, -np.inf, model.b_ub),)

        options = {'maxiter': self.maxiter}
        if self.verbose:
            # L-BFGS-B progress goes to the debug log only
            if method.upper() == 'SLSQP':
                options['disp'] = True
            logger.debug(f"Solving {model.nvars}-variable QP with {method}")
        res = minimize(
            model.objective,
            np.asarray(x0, dtype=np.float64),
            jac=model.gradient,
            method=method,
            bounds=Bounds(np.full(model.nvars, model.lower), np.full(model.nvars, model.upper)),
            constraints=constraints,
            tol=self.tol,
            options=options,
        )
        if not res.success:
            raise SolverError(
                f"{method} failed to solve the cover problem: {res.message}",
                status=int(res.status),
            )

        # rounding noise only, bounds are enforced by the solver
        x = np.clip(res.x, model.lower, model.upper)
        if model.has_linear_constraints:
            excess = float(np.max(model.A_ub @ x - model.b_ub))
            if excess > FEASIBILITY_TOL:
                raise SolverError(
                    f"{method} returned a point violating the linear constraints by {excess:.3g}",
                    status=int(res.status),
                )
        if self.verbose:
            logger.debug(f"{method} converged after {res.nit} iterations: {res.message}")
        return QPSolution(
            x=x,
            objective=model.objective(x),
            niterations=int(getattr(res, 'nit', 0)),
            message=str(res.message),
        )


def initial_point(
    n: int,
    initial_weights: Optional[ArrayLike] = None,
    seed: Optional[int] = None,
) -> NDArray[np.float64]:
    """
    Starting weights for the solver.

    Uses ``initial_weights`` when given (clipped into ``[0, 1]``), otherwise
    draws uniformly from ``[0, 1)``.

    Raises:
        ValueError: ``initial_weights`` of the wrong length
    """
    if initial_weights is None:
        return np.random.default_rng(seed).random(n)
    x0 = np.asarray(initial_weights, dtype=np.float64).ravel(order='F')
    if len(x0) != n:
        raise ValueError(f"initial_weights has {len(x0)} elements, expected {n}")
    return np.clip(x0, 0.0, 1.0)


def postprocess_weights(w: ArrayLike, min_weight: float) -> NDArray[np.float64]:
    """Copy of ``w`` with weights below ``min_weight`` set to exactly 0."""
    w = np.array(w, dtype=np.float64, copy=True)
    w[w < min_weight] = 0.0
    return w
