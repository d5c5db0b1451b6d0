"""Unit tests for recursive least squares with forgetting."""

import numpy as np
import pytest
from numpy.testing import assert_allclose, assert_array_equal
from scipy.signal import dlsim, lfilter

import arxid.rls
from arxid.arx import ARX
from arxid.regression import shift_regressor
from arxid.rls import RLSEstimator, rls, rls_regression
from arxid.util import DimensionMismatch, IllConditioned, InvalidOrder, \
    MissingArgument


def _jump_data(rng, N=600, noise=0.01):
    """First-order data whose pole jumps from 0.5 to 0.8 halfway through."""
    u = rng.standard_normal(N)
    w = noise*rng.standard_normal(N)
    y = np.zeros(N)
    for k in range(1, N):
        pole = 0.5 if k < N//2 else 0.8
        y[k] = pole*y[k-1] + u[k-1] + w[k]
    return u, y


class TestRLSEstimator:
    """Tests for a single RLS session."""

    def test_initial_state(self) -> None:
        est = RLSEstimator(3, forgetting=0.9, p0=50)
        assert_array_equal(est.Theta, np.zeros(3))
        assert_array_equal(est.P, 50*np.eye(3))
        assert est.error == 0
        assert est.k == 0

    def test_single_step(self) -> None:
        est = RLSEstimator(2, p0=1)
        error, Theta, P = est.step(2.0, np.array([1.0, 0.0]))
        assert error == 2.0
        assert_allclose(P, [[0.5, 0.0], [0.0, 1.0]])
        assert_allclose(Theta, [1.0, 0.0])
        assert est.k == 1

    def test_returns_copies(self) -> None:
        est = RLSEstimator(2)
        _, Theta, P = est.step(1.0, np.array([1.0, 2.0]))
        Theta[:] = 99
        P[:] = 99
        assert not np.any(est.Theta == 99)
        assert not np.any(est.P == 99)

    def test_nonpositive_denominator(self) -> None:
        est = RLSEstimator(2)
        est.P = -1e6*np.eye(2)
        with pytest.raises(IllConditioned):
            est.step(1.0, np.array([1.0, 1.0]))
        assert_array_equal(est.Theta, np.zeros(2))
        assert_array_equal(est.P, -1e6*np.eye(2))
        assert est.k == 0

    def test_non_finite_regressor(self) -> None:
        est = RLSEstimator(2)
        with pytest.raises(IllConditioned):
            est.step(1.0, np.array([np.nan, 0.0]))
        assert_array_equal(est.P, 1000*np.eye(2))

    def test_regressor_shape(self) -> None:
        with pytest.raises(DimensionMismatch):
            RLSEstimator(3).step(1.0, np.ones(2))

    @pytest.mark.parametrize("forgetting", [0, -0.5, 1.01])
    def test_invalid_forgetting(self, forgetting) -> None:
        with pytest.raises(ValueError):
            RLSEstimator(2, forgetting=forgetting)

    def test_invalid_p0(self) -> None:
        with pytest.raises(ValueError):
            RLSEstimator(2, p0=0)
        with pytest.raises(InvalidOrder):
            RLSEstimator(0)

    @pytest.mark.parametrize("forgetting", [1, 0.95])
    def test_covariance_stays_symmetric_psd(self, armax_data,
                                            forgetting) -> None:
        a, b, c, u, e, y = armax_data
        orders = (2, 2, 2)
        est = RLSEstimator(6, forgetting)
        phi = np.zeros(6)
        for k in range(1, 500):
            phi = shift_regressor(phi, (-y[k-1], u[k-1], est.error), orders)
            _, _, P = est.step(y[k], phi)
            assert_array_equal(P, P.T)
            eigs = np.linalg.eigvalsh(P)
            assert eigs.min() >= -1e-9*max(1.0, eigs.max())


class TestRLSRegression:
    """Tests for one sequential pass over a data record."""

    def test_noiseless_convergence(self, arx_data) -> None:
        a, b, u, y = arx_data
        Theta, P = rls_regression(u, y, 2, 2)
        assert Theta.shape == (2 + 2 + 2,)
        assert P.shape == (6, 6)
        assert_allclose(Theta[:2], a[1:], atol=1e-4)
        assert_allclose(Theta[2:4], b, atol=1e-4)

    def test_error_decreases_with_data(self, arx_data) -> None:
        a, b, u, y = arx_data
        truth = np.concatenate([a[1:], b])
        err = [np.linalg.norm(rls_regression(u[:N], y[:N], 2, 2)[0][:4] - truth)
               for N in (20, 100, 400)]
        assert err[2] < err[0]
        assert err[2] < 1e-4

    def test_armax_convergence(self, armax_data) -> None:
        """The plant blocks converge; the noise block, driven by prediction
        errors of a weak noise, only moves from zero toward `c`."""
        a, b, c, u, e, y = armax_data
        Theta, _ = rls_regression(u, y, 2, 2)
        assert_allclose(Theta[:2], a[1:], atol=0.03)
        assert_allclose(Theta[2:4], b, atol=0.03)
        assert np.all(Theta[4:] > 0)
        assert np.linalg.norm(Theta[4:] - c[1:]) < 0.5*np.linalg.norm(c[1:])

    def test_forgetting_tracks_parameter_jump(self, rng) -> None:
        u, y = _jump_data(rng)
        Theta_forget, _ = rls_regression(u, y, 1, 1, forgetting=0.95)
        Theta_plain, _ = rls_regression(u, y, 1, 1)
        assert_allclose(Theta_forget[0], -0.8, atol=0.05)
        assert abs(Theta_forget[0] + 0.8) < abs(Theta_plain[0] + 0.8)

    def test_mismatch_fails_before_allocation(self, monkeypatch) -> None:
        def fail(*args, **kwargs):
            raise AssertionError("estimator allocated")
        monkeypatch.setattr(arxid.rls.RLSEstimator, '__init__', fail)
        with pytest.raises(DimensionMismatch):
            rls_regression(np.ones(5), np.ones(4), 1, 1)
        with pytest.raises(InvalidOrder):
            rls_regression(np.ones(5), np.ones(5), 0, 1)
        with pytest.raises(MissingArgument):
            rls_regression(None, np.ones(5), 1, 1)

    def test_single_sample(self) -> None:
        Theta, P = rls_regression(np.ones(1), np.ones(1), 1, 1, p0=10)
        assert_array_equal(Theta, np.zeros(3))
        assert_array_equal(P, 10*np.eye(3))

    def test_verbosity(self, arx_data, capsys) -> None:
        a, b, u, y = arx_data
        rls_regression(u[:50], y[:50], 2, 2, verbosity=1)
        assert "N=50" in capsys.readouterr().out


class TestRLSModel:
    """Tests for the realized recursive estimate."""

    def test_outputs(self, armax_data) -> None:
        a, b, c, u, e, y = armax_data
        Gd, Hd, sysd, K = rls(u, y, 2, 2, 0.1, delay=1, forgetting=0.999)
        assert Gd.delay == 1
        assert Hd.delay == 0
        assert Hd.num[0] == 1
        assert Gd.dt == Hd.dt == sysd.dt == 0.1
        assert_array_equal(Hd.den, Gd.den)
        assert sysd.ninputs == 2
        assert sysd.noutputs == 1
        assert_allclose(K, Hd.num[1:] - Gd.den[1:])
        assert_allclose(sysd.B[:, 1], K)
        assert_allclose(sysd.D, [[0.0, 1.0]])
        assert_allclose(sysd.C, [[1.0, 0.0]])

    def test_gain_with_longer_numerator(self, arx_data) -> None:
        a, b, u, y = arx_data
        Gd, Hd, sysd, K = rls(u, y, 1, 3, 1)
        assert sysd.nstates == 3
        assert_allclose(K, np.pad(Hd.num[1:], (0, 2))
                        - np.pad(Gd.den[1:], (0, 2)))

    def test_noise_channel_is_c_over_a(self, armax_data, rng) -> None:
        a, b, c, u, e, y = armax_data
        Gd, Hd, sysd, K = rls(u, y, 2, 2, 1)
        N = 40
        w = rng.standard_normal(N)
        _, ysim, _ = dlsim((sysd.A, sysd.B, sysd.C, sysd.D, 1),
                           np.column_stack([np.zeros(N), w]))
        assert_allclose(ysim.ravel(), lfilter(Hd.num, Hd.den, w), atol=1e-10)
        _, ysim, _ = dlsim((sysd.A, sysd.B, sysd.C, sysd.D, 1),
                           np.column_stack([w, np.zeros(N)]))
        assert_allclose(ysim.ravel(), lfilter(Gd.num, Gd.den, w), atol=1e-10)

    def test_missing_sample_time(self, arx_data) -> None:
        a, b, u, y = arx_data
        with pytest.raises(MissingArgument, match="`sample_time`"):
            rls(u, y, 2, 2, None)

    def test_model_class(self, rng) -> None:
        u, y = _jump_data(rng)
        model = ARX(1, 1, sample_time=0.5).fit(u, y, method='rls',
                                               forgetting=0.95)
        assert_allclose(model.a, [1.0, -0.8], atol=0.05)
        assert model.Theta.shape == (3,)
        assert model.P.shape == (3, 3)
        assert model.Sigma is None
        assert_allclose(model.K, model.c[1:] - model.a[1:])
        with pytest.raises(ValueError):
            model.fit(u, y, np.zeros_like(u), method='rls')
