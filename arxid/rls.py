"""
Fit ARX models with a noise model online, by recursive least squares.

RLSEstimator
rls_regression
rls
"""
import numpy as np

from .realization import realize
from .regression import partition, shift_regressor
from .util import DimensionMismatch, IllConditioned, _check_required, \
    _check_orders, _check_signals, _check_timing, _check_forgetting


def _check_p0(p0):
    if not np.isfinite(p0) or p0 <= 0:
        raise ValueError("Expected a positive initial covariance scale: got "
                         f"p0={p0!r} instead.")


class RLSEstimator(object):
    r"""RLSEstimator(n[, forgetting, p0])

    A recursive least squares session for the linear regression
    :math:`y(k) = \varphi(k)^\top\theta + \varepsilon(k)`. Each call to
    :meth:`step` performs the update (Astrom and Wittenmark, Adaptive
    Control)

    .. math::

        \varepsilon(k) &= y(k) - \varphi(k)^\top\Theta \\
        P &\leftarrow \frac{1}{\lambda}\left(P - \frac{P\varphi(k)
            \varphi(k)^\top P}{\lambda + \varphi(k)^\top P\varphi(k)}\right)
            \\
        \Theta &\leftarrow \Theta + P\varphi(k)\varepsilon(k)

    where :math:`\lambda\in(0,1]` is the forgetting factor. With
    :math:`\lambda<1` the estimator has an effective memory of roughly
    :math:`1/(1-\lambda)` samples; :math:`\lambda=1` is standard RLS.

    The session exclusively owns its state; `step` returns copies.

    Parameters
    ----------
    n : int
        Number of parameters.
    forgetting : float, optional
        Forgetting factor in `(0, 1]`. Default is `1`.
    p0 : float, optional
        Initial covariance `P=p0*I`. The default `p0=1000` is a diffuse prior.

    Attributes
    ----------
    Theta : 1D array
        Current parameter estimate, initially zero.
    P : 2D array
        Current covariance matrix.
    error : float
        Prediction error of the last update, initially zero.
    k : int
        Number of updates performed.
    """

    def __init__(self, n, forgetting=1, p0=1000):
        _check_orders(n=n)
        _check_forgetting(forgetting)
        _check_p0(p0)
        self.n = n
        self.forgetting = forgetting
        self.Theta = np.zeros(n)
        self.P = p0*np.eye(n)
        self.error = 0.
        self.k = 0

    def step(self, y, phi):
        """Update the estimate with the sample `y` and regressor `phi`.
        Returns `(error, Theta, P)`. Raises `IllConditioned` if the update
        denominator is not strictly positive; the state is then unchanged."""
        phi = np.asarray(phi, dtype=float)
        if phi.shape != (self.n,):
            raise DimensionMismatch(f"Expected `phi` to have shape ({self.n},):"
                                    f" got {phi.shape} instead.")
        l = self.forgetting
        error = float(y - phi@self.Theta)
        Pphi = self.P@phi
        denom = l + phi@Pphi
        if not np.isfinite(denom) or denom <= 0:
            raise IllConditioned("Expected a positive RLS update denominator: "
                                 f"got {denom:.3e} at update {self.k+1}.")
        # outer(Pphi, Pphi) keeps P exactly symmetric
        P = (self.P - np.outer(Pphi, Pphi)/denom)/l
        Theta = self.Theta + P@phi*error
        if not (np.all(np.isfinite(P)) and np.all(np.isfinite(Theta))):
            raise IllConditioned("RLS update produced non-finite estimates at "
                                 f"update {self.k+1}.")

        self.P, self.Theta, self.error = P, Theta, error
        self.k += 1
        return error, Theta.copy(), P.copy()


def rls_regression(u, y, na, nb, forgetting=1, p0=1000, verbosity=0):
    r"""rls_regression(u, y, na, nb[, forgetting, p0, verbosity])

    One sequential RLS pass over the data for the model

    .. math::
        y(k) + a_1 y(k-1) + \ldots + a_{n_a} y(k-n_a) =
        b_1 u(k-1) + \ldots + b_{n_b} u(k-n_b) +
        \varepsilon(k) + c_1\varepsilon(k-1) + \ldots +
        c_{n_a}\varepsilon(k-n_a)

    where the unmeasured noise is replaced by the running prediction errors.
    The regression vector is a fixed-width sliding window: it stays zero at
    the first sample (no update is made) and, afterwards, each of its three
    segments is shifted by one lag before the newest `-y(k-1)`, `u(k-1)`, and
    prediction error are inserted.

    Returns `(Theta, P)` with `Theta=[a1..ana, b1..bnb, c1..cna]`.
    """
    _check_required(u=u, y=y, na=na, nb=nb)
    _check_orders(na=na, nb=nb)
    _check_forgetting(forgetting)
    _check_p0(p0)
    u, y, _, N = _check_signals(u, y)

    orders = (na, nb, na)
    est = RLSEstimator(sum(orders), forgetting, p0)
    phi = np.zeros(est.n)
    for k in range(1, N):
        phi = shift_regressor(phi, (-y[k-1], u[k-1], est.error), orders)
        est.step(y[k], phi)

    if verbosity > 0:
        print(f"RLS pass over N={N} samples with forgetting={forgetting}: "
              f"last prediction error {est.error:.3e}, "
              f"trace(P)={np.trace(est.P):.3e}.")

    return est.Theta.copy(), est.P.copy()


def rls(u, y, na, nb, sample_time, delay=0, forgetting=1, p0=1000,
        verbosity=0):
    """rls(u, y, na, nb, sample_time[, delay, forgetting, p0, verbosity])

    Estimate an ARX model with a noise model `C/A` (`nc=na`) by recursive
    least squares. Returns `(Gd, Hd, sysd, K)`:

      - `Gd = z^-delay B/A`, the discrete plant transfer function,
      - `Hd = C/A`, the discrete noise transfer function. Its numerator is
        the monic `c=[1, c1..cna]`, not the bare estimated block
        `[c1..cna]`, so that it matches the noise channel of `sysd`,
      - `sysd`, the observable canonical realization of `Gd` with the
        observer gain appended as a second input column (inputs `(u, e)`),
      - `K = c - a`, the observer (Kalman) gain.

    See `rls_regression` for the estimator and `realization.innovations` for
    the gain.
    """
    _check_required(u=u, y=y, na=na, nb=nb, sample_time=sample_time)
    _check_timing(sample_time, delay)
    Theta, P = rls_regression(u, y, na, nb, forgetting, p0, verbosity)
    a, b, c = partition(Theta, na, nb)
    return realize(b, a, sample_time, delay, c=c, form='observable',
                   noise='innovations')
