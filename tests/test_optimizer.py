"""Tests for the quadratic program model and the scipy solver adapter."""

import logging

import numpy as np
import pytest
from scipy.optimize import OptimizeResult

import enrichedcover.cover.optimizer as optimizer
from enrichedcover.cover.optimizer import (
    QPSolver,
    QuadraticModel,
    ScipyQPSolver,
    SolverError,
    initial_point,
    postprocess_weights,
)


class TestQuadraticModel:
    """Validation and evaluation."""

    def test_shape_mismatch(self):
        with pytest.raises(ValueError, match="quadratic term"):
            QuadraticModel(np.zeros(2), np.zeros((3, 3)))

    def test_linear_must_be_1d(self):
        with pytest.raises(ValueError, match="1D"):
            QuadraticModel(np.zeros((2, 2)), np.zeros((2, 2)))

    def test_scalar_linear_term(self):
        with pytest.raises(ValueError, match="1D"):
            QuadraticModel(1.0, np.zeros((1, 1)))

    def test_empty_box(self):
        with pytest.raises(ValueError, match="empty box"):
            QuadraticModel(np.zeros(2), np.zeros((2, 2)), lower=1.0, upper=0.0)

    def test_constraints_come_in_pairs(self):
        with pytest.raises(ValueError, match="together"):
            QuadraticModel(np.zeros(2), np.zeros((2, 2)), A_ub=np.ones((1, 2)))

    def test_constraint_shape(self):
        with pytest.raises(ValueError, match="A_ub shape"):
            QuadraticModel(np.zeros(2), np.zeros((2, 2)), A_ub=np.ones((1, 3)), b_ub=[1.0])

    def test_objective(self):
        model = QuadraticModel(np.array([1.0, -2.0]), np.array([[-1.0, 0.5], [0.5, -1.0]]))
        w = np.array([0.5, 1.0])
        # 0.5 - 2 - (-0.25 + 0.25 + 0.25 - 1)
        assert model.objective(w) == pytest.approx(-0.75)

    def test_gradient_matches_finite_differences(self):
        rng = np.random.default_rng(0)
        q = rng.normal(size=(4, 4))
        model = QuadraticModel(rng.normal(size=4), q + q.T)
        w = rng.random(4)
        eps = 1e-6
        numeric = np.array([
            (model.objective(w + eps * e) - model.objective(w - eps * e)) / (2 * eps)
            for e in np.eye(4)
        ])
        np.testing.assert_allclose(model.gradient(w), numeric, atol=1e-6)


class TestScipyQPSolver:
    """Solving with scipy.optimize.minimize."""

    def test_is_qp_solver(self):
        assert isinstance(ScipyQPSolver(), QPSolver)

    def test_invalid_maxiter(self):
        with pytest.raises(ValueError, match="maxiter"):
            ScipyQPSolver(maxiter=0)

    def test_defaults(self):
        solver = ScipyQPSolver()
        assert solver.method is None
        assert solver.maxiter == 1000
        assert solver.tol == 1e-9
        assert solver.verbose is False

    def test_box_constrained(self):
        # -w0 + w1 + w0^2 + w1^2 over [0, 1]^2: minimum at (0.5, 0)
        model = QuadraticModel(np.array([-1.0, 1.0]), -np.eye(2))
        sol = ScipyQPSolver().solve(model, np.array([0.9, 0.9]))
        np.testing.assert_allclose(sol.x, [0.5, 0.0], atol=1e-5)
        assert sol.objective == pytest.approx(-0.25, abs=1e-8)

    def test_bounds_respected(self):
        model = QuadraticModel(np.array([-5.0, 5.0]), np.zeros((2, 2)))
        sol = ScipyQPSolver().solve(model, np.array([0.5, 0.5]))
        np.testing.assert_allclose(sol.x, [1.0, 0.0])
        assert np.all((sol.x >= 0.0) & (sol.x <= 1.0))

    def test_linear_constraints(self):
        model = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)),
                               A_ub=np.array([[1.0, 1.0]]), b_ub=np.array([1.0]))
        sol = ScipyQPSolver().solve(model, np.array([0.2, 0.2]))
        assert sol.x.sum() == pytest.approx(1.0, abs=1e-6)
        assert sol.objective == pytest.approx(-1.0, abs=1e-6)

    def test_failure_raises(self, monkeypatch):
        def failing_minimize(fun, x0, **kwargs):
            return OptimizeResult(x=x0, success=False, status=2,
                                  message="ABNORMAL_TERMINATION_IN_LNSRCH", nit=3)

        monkeypatch.setattr(optimizer, 'minimize', failing_minimize)
        model = QuadraticModel(np.array([-1.0]), np.zeros((1, 1)))
        with pytest.raises(SolverError, match="ABNORMAL") as excinfo:
            ScipyQPSolver().solve(model, np.array([0.5]))
        assert excinfo.value.status == 2

    def test_method_selection(self, monkeypatch):
        methods = []

        def recording_minimize(fun, x0, **kwargs):
            methods.append(kwargs['method'])
            return OptimizeResult(x=x0, success=True, status=0, message="ok", nit=1)

        monkeypatch.setattr(optimizer, 'minimize', recording_minimize)
        box = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)))
        constrained = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)),
                                     A_ub=np.ones((1, 2)), b_ub=[1.0])
        ScipyQPSolver().solve(box, np.zeros(2))
        ScipyQPSolver().solve(constrained, np.zeros(2))
        ScipyQPSolver(method='trust-constr').solve(box, np.zeros(2))
        assert methods == ['L-BFGS-B', 'SLSQP', 'trust-constr']

    @pytest.mark.parametrize("method", ['L-BFGS-B', 'TNC', 'Powell', 'l-bfgs-b'])
    def test_box_only_method_with_constraints(self, method):
        constrained = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)),
                                     A_ub=np.ones((1, 2)), b_ub=[1.0])
        with pytest.raises(ValueError, match="can't handle linear constraints"):
            ScipyQPSolver(method=method).solve(constrained, np.zeros(2))

    def test_box_only_method_without_constraints(self):
        box = QuadraticModel(np.array([-1.0, 1.0]), np.zeros((2, 2)))
        sol = ScipyQPSolver(method='TNC').solve(box, np.array([0.5, 0.5]))
        np.testing.assert_allclose(sol.x, [1.0, 0.0], atol=1e-6)

    def test_infeasible_point_raises(self, monkeypatch):
        def ignoring_minimize(fun, x0, **kwargs):
            return OptimizeResult(x=np.ones_like(x0), success=True, status=0,
                                  message="ok", nit=1)

        monkeypatch.setattr(optimizer, 'minimize', ignoring_minimize)
        constrained = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)),
                                     A_ub=np.ones((1, 2)), b_ub=[1.0])
        with pytest.raises(SolverError, match="violating the linear constraints"):
            ScipyQPSolver().solve(constrained, np.zeros(2))

    def test_constraint_rounding_tolerated(self, monkeypatch):
        def rounding_minimize(fun, x0, **kwargs):
            return OptimizeResult(x=np.array([0.5, 0.5 + 1e-9]), success=True,
                                  status=0, message="ok", nit=1)

        monkeypatch.setattr(optimizer, 'minimize', rounding_minimize)
        constrained = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)),
                                     A_ub=np.ones((1, 2)), b_ub=[1.0])
        sol = ScipyQPSolver().solve(constrained, np.zeros(2))
        assert sol.x.sum() == pytest.approx(1.0)

    def test_disp_only_for_slsqp(self, monkeypatch):
        options = []

        def recording_minimize(fun, x0, **kwargs):
            options.append(kwargs['options'])
            return OptimizeResult(x=x0, success=True, status=0, message="ok", nit=1)

        monkeypatch.setattr(optimizer, 'minimize', recording_minimize)
        box = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)))
        constrained = QuadraticModel(np.array([-1.0, -1.0]), np.zeros((2, 2)),
                                     A_ub=np.ones((1, 2)), b_ub=[1.0])
        ScipyQPSolver(verbose=True).solve(box, np.zeros(2))
        ScipyQPSolver(verbose=True).solve(constrained, np.zeros(2))
        ScipyQPSolver().solve(constrained, np.zeros(2))
        assert 'disp' not in options[0]
        assert options[1]['disp'] is True
        assert 'disp' not in options[2]

    def test_verbose_logs(self, caplog):
        model = QuadraticModel(np.array([-1.0]), np.zeros((1, 1)))
        with caplog.at_level(logging.DEBUG, logger="enrichedcover.cover.optimizer"):
            ScipyQPSolver(verbose=True).solve(model, np.array([0.5]))
        assert "L-BFGS-B" in caplog.text


class TestHelpers:
    """Starting points and weight clean-up."""

    def test_random_start(self):
        x0 = initial_point(5, seed=3)
        assert x0.shape == (5,)
        assert np.all((x0 >= 0.0) & (x0 < 1.0))
        np.testing.assert_array_equal(x0, initial_point(5, seed=3))

    def test_explicit_start_clipped(self):
        np.testing.assert_array_equal(initial_point(3, [-1.0, 0.5, 2.0]), [0.0, 0.5, 1.0])

    def test_explicit_start_length(self):
        with pytest.raises(ValueError, match="expected 2"):
            initial_point(2, [0.5])

    def test_postprocess_weights(self):
        w = np.array([0.0099, 0.01, 0.5, 1.0])
        cleaned = postprocess_weights(w, 0.01)
        np.testing.assert_array_equal(cleaned, [0.0, 0.01, 0.5, 1.0])
        assert w[0] == 0.0099
