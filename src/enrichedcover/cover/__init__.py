"""
Cover problems and their optimization.

Modules:
    params: CoverParams
    problem: Single-mask CoverProblem
    quadratic: Multi-mask QuadraticCoverProblem
    optimizer: Quadratic program model and solvers
"""

from enrichedcover.cover._matrix import DegenerateScore, fix_setxset_scores
from enrichedcover.cover.optimizer import (
    QPSolution,
    QPSolver,
    QuadraticModel,
    ScipyQPSolver,
    SolverError,
)
from enrichedcover.cover.params import CoverParams
from enrichedcover.cover.problem import (
    CoverProblem,
    CoverProblemResult,
    nsets,
    optimize,
    score,
)
from enrichedcover.cover.quadratic import QuadraticCoverProblem, QuadraticCoverResult

__all__ = [
    'CoverParams',
    'CoverProblem',
    'CoverProblemResult',
    'QuadraticCoverProblem',
    'QuadraticCoverResult',
    'DegenerateScore',
    'fix_setxset_scores',
    'QuadraticModel',
    'QPSolution',
    'QPSolver',
    'ScipyQPSolver',
    'SolverError',
    'nsets',
    'score',
    'optimize',
]
