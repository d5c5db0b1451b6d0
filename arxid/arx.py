"""
Fit autoregressive models with exogenous inputs from input-output data.
"""
import numpy as np

from .realization import realize
from .regression import multiple_regression, partition, regression_matrix, \
    regressor
from .rls import rls_regression
from .util import DimensionMismatch, MissingArgument, _as_signal, \
    _check_required, _check_orders, _check_signals, _check_timing


def arx_regression(u, y, na, nb, e=None, nc=None, mu=0, nu=0, g=None, h=None,
                   rcond=None, verbosity=0):
    r"""arx_regression(u, y, na, nb[, e, nc, mu, nu, g, h, rcond, verbosity])

    Batch least-squares fit of the ARX (`e=None`) or ARMAX model

    .. math::
        y(k) + a_1 y(k-1) + \ldots + a_{n_a} y(k-n_a) =
        b_1 u(k-1) + \ldots + b_{n_b} u(k-n_b) +
        c_1 e(k-1) + \ldots + c_{n_c} e(k-n_c) + \varepsilon(k)

    where `e` is a measured noise (or residual) signal. If `e` is supplied
    and `nc` is not, `nc=na`.

    Returns :math:`(\hat\Theta, \hat\Sigma, Z, \hat R)` where

    .. math::
        \Theta &= \begin{bmatrix} a_1 & \ldots & a_{n_a} &
                  b_1 & \ldots & b_{n_b} & c_1 & \ldots & c_{n_c}
                  \end{bmatrix} \\
        Z &= \begin{bmatrix} \varphi(0) & \varphi(1) & \hdots &
                             \varphi(N-1) \end{bmatrix}

    the columns of :math:`Z` are the zero-padded regression vectors (see
    `regression.regressor`), and :math:`\hat R=y-\hat\Theta Z`. Every sample
    is used as a target; lags before the start of the record are zero.

    Parameters
    ----------
    u, y : array-like
        Input and output signals with `N` samples each.
    na, nb : int
        Number of poles and of numerator coefficients.
    e : array-like, optional
        Noise signal with `N` samples (ARMAX).
    nc : int, optional
        Number of noise numerator coefficients.
    mu, nu, g, h, rcond, verbosity : optional
        Passed to `regression.multiple_regression`.

    Returns
    -------
    Theta : array-like, `(1, na+nb+nc)`
    Sigma : array-like, `(1, 1)`
    Z : array-like, `(na+nb+nc, N)`
    resid : array-like, `(1, N)`
    """
    _check_required(u=u, y=y, na=na, nb=nb)
    if e is not None and nc is None:
        nc = na
    if e is None and nc is not None:
        raise MissingArgument("Missing required argument `e` for "
                              f"`nc={nc}`.")
    _check_orders(na=na, nb=nb, nc=nc)
    u, y, e, N = _check_signals(u, y, e)
    nc = 0 if nc is None else nc

    Z = regression_matrix(y, u, na, nb, e, nc).T
    Theta, Sigma, resid = multiple_regression(
        y[np.newaxis, :], Z, mu, nu, g, h, rcond=rcond, verbosity=verbosity
    )

    if verbosity > 0:
        label = f'ARMAX(na={na}, nb={nb}, nc={nc})' if nc \
            else f'ARX(na={na}, nb={nb})'
        print(f"Fitted {label} to N={N} samples: residual variance "
              f"{Sigma[0, 0]:.3e}.")

    return Theta, Sigma, Z, resid


def arx(u, y, na, nb, sample_time, delay=0, form='controllable', **kwargs):
    """arx(u, y, na, nb, sample_time[, delay, form, ...])

    Fit an ARX model by batch least squares. Returns `(Gd, Hd, sysd)`:

      - `Gd = z^-delay B/A`, the discrete plant transfer function,
      - `Hd = 1/A`, the ARX noise transfer function, with the same delay
        tag as `Gd`,
      - `sysd`, the block-diagonal combination of the canonical realizations
        of `Gd` and `Hd` (default controllable form), with inputs `(u, e)` and
        the single output `y`.

    Extra keywords are passed to `arx_regression`, except the noise signal
    `e` and order `nc` (use `armax`).
    """
    _check_required(u=u, y=y, na=na, nb=nb, sample_time=sample_time)
    _check_timing(sample_time, delay)
    for name in ('e', 'nc'):
        if kwargs.get(name) is not None:
            raise ValueError(f"Unexpected argument `{name}` for an ARX fit. "
                             "Use `armax` to fit a noise model.")
    Theta, _, _, _ = arx_regression(u, y, na, nb, **kwargs)
    a, b, _ = partition(Theta, na, nb)
    Gd, Hd, sysd, _ = realize(b, a, sample_time, delay, c=np.ones(1),
                              form=form)
    return Gd, Hd, sysd


def armax(u, y, e, na, nb, sample_time, nc=None, delay=0, form='controllable',
          **kwargs):
    """armax(u, y, e, na, nb, sample_time[, nc, delay, form, ...])

    Fit an ARMAX model with a measured noise signal `e` by batch least
    squares. Returns `(Gd, Hd, sysd)`:

      - `Gd = z^-delay B/A`, the discrete plant transfer function,
      - `Hd = C/A`, the discrete noise transfer function (`C` monic), with
        the same delay tag as `Gd`,
      - `sysd`, the block-diagonal combination of the canonical realizations
        of `Gd` and `Hd` (default controllable form), with inputs `(u, e)` and
        the single output `y`.

    Extra keywords are passed to `arx_regression`.
    """
    _check_required(u=u, y=y, e=e, na=na, nb=nb, sample_time=sample_time)
    _check_timing(sample_time, delay)
    Theta, _, _, _ = arx_regression(u, y, na, nb, e=e, nc=nc, **kwargs)
    a, b, c = partition(Theta, na, nb)
    Gd, Hd, sysd, _ = realize(b, a, sample_time, delay, c=c, form=form)
    return Gd, Hd, sysd


class ARX(object):
    r"""ARX(na[, nb, nc, sample_time, delay])

    A class for fitting, realizing, and simulating autoregressive exogenous
    input models with a noise model:

    .. math::

        A(z^{-1}) y(k) = B(z^{-1}) u(k) + C(z^{-1}) e(k)

    where $A=1+a_1z^{-1}+\ldots$, $B=b_1z^{-1}+\ldots$, and
    $C=1+c_1z^{-1}+\ldots$ ($C=1$ for a plain ARX model).

    Parameters
    ----------
    na : int
        Number of poles.
    nb : int, optional
        Number of numerator coefficients. Default is `nb=na`.
    nc : int, optional
        Number of noise numerator coefficients for batch ARMAX fits (requires
        a measured noise signal in `fit`). Recursive fits always use `nc=na`.
    sample_time : float, optional
        Sample time. Default is `1`.
    delay : int, optional
        Input delay (in samples) tagged onto `Gd`. Default is `0`.

    Attributes
    ----------
    a, b, c : 1D arrays
        Coefficient sets. Populated by `fit` or `set_params`.
    Theta : 1D array
        Parameter vector `[a1..ana, b1..bnb, c1..cnc]`.
    Sigma : 2D array
        Residual variance (batch fits only).
    P : 2D array
        Final covariance matrix (recursive fits only).
    Gd, Hd : `TransferFunction`
        Plant and noise transfer functions.
    sysd : `control.StateSpace`
        Realized model with inputs `(u, e)`.
    K : 1D array
        Observer gain (recursive fits only).
    N : int
        Number of data points used in the last fit.
    Z, R : 2D arrays
        Regressors and residuals of the last batch fit. Only stored if
        `store_data=True`.
    """

    def __init__(self, na, nb=None, nc=None, sample_time=1, delay=0):
        _check_required(na=na)
        nb = na if nb is None else nb
        _check_orders(na=na, nb=nb, nc=nc)
        _check_timing(sample_time, delay)
        self.na = na
        self.nb = nb
        self.nc = nc
        self.sample_time = sample_time
        self.delay = delay

        self.a = self.b = self.c = None
        self.Theta = self.Sigma = self.P = self.K = None
        self.Gd = self.Hd = self.sysd = None
        self.N = None

    def fit(self, u, y, e=None, method='batch', forgetting=None, p0=None,
            store_data=True, **kwargs):
        """Fit the model to data. `method='batch'` solves one least-squares
        problem (ARMAX if `e` is given); `method='rls'` runs one recursive
        pass with forgetting factor `forgetting` (default `1`) and initial
        covariance scale `p0` (default `1000`). Returns `self`."""
        if method == 'batch':
            if forgetting is not None or p0 is not None:
                raise ValueError("Batch fits have no forgetting factor or "
                                 "initial covariance: `forgetting` and `p0` "
                                 "are only used with `method='rls'`.")
            nc = self.nc if e is not None else None
            Theta, Sigma, Z, R = arx_regression(u, y, self.na, self.nb, e, nc,
                                                **kwargs)
            self.N = Z.shape[1]
            if store_data:
                self.Z = Z
                self.R = R
            self.Theta = Theta.ravel()
            self.Sigma = Sigma
            self.P = None
            form, noise = 'controllable', 'append'
        elif method == 'rls':
            if e is not None:
                raise ValueError("Recursive fits estimate the noise from "
                                 "prediction errors: `e` must not be given.")
            forgetting = 1 if forgetting is None else forgetting
            p0 = 1000 if p0 is None else p0
            self.Theta, self.P = rls_regression(u, y, self.na, self.nb,
                                                forgetting, p0, **kwargs)
            self.N = np.shape(y)[-1]
            self.Sigma = None
            form, noise = 'observable', 'innovations'
        else:
            raise ValueError(f"Unknown method `{method}`. Expected `'batch'` "
                             "or `'rls'`.")

        a, b, c = partition(self.Theta, self.na, self.nb)
        self._realize(a, b, c, form, noise)
        return self

    def _realize(self, a, b, c, form='controllable', noise='append'):
        if c is None:
            c = np.ones(1)
        self.a, self.b, self.c = a, b, c
        self.Gd, self.Hd, self.sysd, self.K = realize(
            b, a, self.sample_time, self.delay, c=c, form=form, noise=noise
        )

    def set_params(self, a, b, c=None):
        """Set the coefficient sets of the ARX model and realize it. `a` and
        `c` are monic (`a[0]=c[0]=1`)."""
        a = np.atleast_1d(np.asarray(a, dtype=float))
        b = np.atleast_1d(np.asarray(b, dtype=float))
        c = np.ones(1) if c is None else \
            np.atleast_1d(np.asarray(c, dtype=float))
        if a.shape[0] != self.na + 1 or b.shape[0] != self.nb:
            raise DimensionMismatch(
                f"Expected `a` and `b` to have {self.na+1} and {self.nb} "
                f"coefficients: got {a.shape[0]} and {b.shape[0]} instead."
            )
        if a[0] != 1 or c[0] != 1:
            raise ValueError("Expected monic `a` and `c`: got "
                             f"a[0]={a[0]} and c[0]={c[0]} instead.")
        self.Theta = np.concatenate([a[1:], b, c[1:]])
        self.Sigma = self.P = None
        self._realize(a, b, c)
        return self

    def sim(self, u, e=None, x0=0):
        """Simulate the realized model `sysd` driven by the input `u` and the
        noise `e` (zero by default). Simulates with a zero initial condition
        by default; a nonzero `x0` must have dimension `(sysd.nstates,)`. The
        delay tag of `Gd` is not simulated."""
        if self.sysd is None:
            raise ValueError(
                "Parameters required before simulating model.\n"
                "Run `ARX.fit()` or `ARX.set_params()` to continue."
            )
        u = _as_signal(u, 'u')
        N = u.shape[0]
        e = np.zeros(N) if e is None else _as_signal(e, 'e')
        if e.shape[0] != N:
            raise DimensionMismatch("Expected u and e to have the same number "
                                    f"of samples: got Nu={N} and "
                                    f"Ne={e.shape[0]} instead.")

        A, B, C, D = self.sysd.A, self.sysd.B, self.sysd.C, self.sysd.D
        n = A.shape[0]
        x0 = np.asarray(x0, dtype=float)
        if np.all(x0 == 0):
            x0 = np.zeros(n)
        elif len(x0.shape) > 1:
            raise ValueError("Expected x0 to be a 1D array.")
        elif x0.shape[0] != n:
            raise ValueError(f"Expected dimension 0 of x0 to be `n={n}`: "
                             f"got `n={x0.shape[0]}`.")

        W = np.vstack([u, e])
        Y = np.empty(N)
        for i in range(N):
            Y[i] = (C@x0 + D@W[:, i])[0]
            x0 = A@x0 + B@W[:, i]

        return Y

    def predict(self, u, y, e=None):
        """One-step-ahead prediction `yhat(k) = phi(k)' Theta`. If the model
        has a noise polynomial and `e` is not supplied, the past prediction
        errors `y - yhat` take the place of `e`."""
        if self.Theta is None:
            raise ValueError(
                "Parameters required before predicting.\n"
                "Run `ARX.fit()` or `ARX.set_params()` to continue."
            )
        u, y, e, N = _check_signals(u, y, e)
        nc = self.Theta.shape[0] - self.na - self.nb
        if nc == 0 or e is not None:
            return regression_matrix(y, u, self.na, self.nb, e, nc) \
                @ self.Theta

        eps = np.zeros(N)
        yhat = np.zeros(N)
        for k in range(N):
            phi = regressor(k, y, u, self.na, self.nb, eps, nc)
            yhat[k] = phi@self.Theta
            eps[k] = y[k] - yhat[k]
        return yhat
