"""
Fit regression models (for system identification)

regressor
regression_matrix
shift_regressor
partition
multiple_regression
"""
import casadi as cs
import numpy as np

from .linalg import lagged, mrdivide, vech, unvech
from .util import MissingArgument, IllConditioned, _nlpsol_options


def regressor(k, y, u, na, nb, e=None, nc=0):
    r"""regressor(k, y, u, na, nb[, e, nc])

    Return the regression vector at (0-based) time `k`,

    .. math::
        \varphi(k) = \begin{bmatrix} -y(k-1) & \ldots & -y(k-n_a) &
                     u(k-1) & \ldots & u(k-n_b) &
                     e(k-1) & \ldots & e(k-n_c) \end{bmatrix}^\top

    Entries whose lag reaches before the start of the record (`k-j<0`) are
    exactly zero. The returned vector is always a fresh array.
    """
    if nc > 0 and e is None:
        raise MissingArgument("Missing required argument `e` for `nc>0`.")
    phi = np.zeros(na + nb + nc)
    for j in range(1, min(na, k) + 1):
        phi[j-1] = -y[k-j]
    for j in range(1, min(nb, k) + 1):
        phi[na+j-1] = u[k-j]
    for j in range(1, min(nc, k) + 1):
        phi[na+nb+j-1] = e[k-j]
    return phi


def regression_matrix(y, u, na, nb, e=None, nc=0):
    """regression_matrix(y, u, na, nb[, e, nc])

    Return the stacked regression matrix `A = [A1 | A2 | A3]` of dimension
    `(N, na+nb+nc)`, where row `k` is `regressor(k, y, u, na, nb, e, nc)`:
      - `A1` holds the `na` negative output lags,
      - `A2` holds the `nb` input lags,
      - `A3` holds the `nc` noise lags (empty if `nc=0`).
    """
    if nc > 0 and e is None:
        raise MissingArgument("Missing required argument `e` for `nc>0`.")
    blocks = [-lagged(y, na), lagged(u, nb)]
    if nc > 0:
        blocks.append(lagged(e, nc))
    return np.hstack(blocks)


def shift_regressor(phi, values, orders):
    """shift_regressor(phi, values, orders)

    Insert-and-shift update of a fixed-width regression vector. `phi` is split
    into contiguous segments of lengths `orders`. Each segment is shifted one
    slot toward higher index (dropping its oldest lag) and the matching entry
    of `values` is written to its first slot. Returns a new vector; `phi` is
    left untouched.

    For example, with `orders=(na, nb, nc)` and
    `values=(-y(k-1), u(k-1), e(k-1))`, this turns `phi(k-1)` into `phi(k)`.
    """
    if len(values) != len(orders):
        raise ValueError(f"Expected one value per segment: got "
                         f"{len(values)} values and {len(orders)} segments.")
    phi = np.array(phi, dtype=float)
    if phi.shape != (sum(orders),):
        raise ValueError(f"Expected `phi` to have shape ({sum(orders)},): "
                         f"got {phi.shape} instead.")
    start = 0
    for value, n in zip(values, orders):
        if n > 0:
            phi[start+1:start+n] = phi[start:start+n-1]
            phi[start] = value
        start += n
    return phi


def partition(theta, na, nb):
    """partition(theta, na, nb)

    Split a parameter vector `[a1..ana, b1..bnb, c1..cnc]` into the coefficient
    sets `(a, b, c)`, where `a=[1, a1, ..., ana]` is the (monic) denominator,
    `b=[b1, ..., bnb]` the numerator, and `c=[1, c1, ..., cnc]` the (monic)
    noise numerator. `c` is `None` if `theta` has no noise block.
    """
    theta = np.asarray(theta, dtype=float).ravel()
    a = np.concatenate([[1.], theta[:na]])
    b = theta[na:na+nb].copy()
    c = np.concatenate([[1.], theta[na+nb:]]) if theta.shape[0] > na+nb \
        else None
    return a, b, c


def multiple_regression(Y, X, mu=0, nu=0, g=None, h=None, Theta0=None,
                        Sigma0=None, rcond=None, verbosity=0):
    r"""multiple_regression(Y, X[, mu, nu, g, h, Theta0, Sigma0, rcond, verbosity])

    Find the parameters $(\Theta,\Sigma)$ of the matrix MLE problem:

    .. math:

        \min_{\Theta,\Sigma} & \;\frac{N}{2}\ln|\Sigma| +
        \frac{1}{2}\textrm{tr}(\Sigma^{-1}(Y-\Theta X)(Y-\Theta X)^\top) \\
        \text{s.t.} &\; g(\Theta,\Sigma) = 0, h(\Theta,\Sigma) \geq 0

    Optionally, solve the MAP problem:

    .. math:

        \min_{\Theta,\Sigma} \frac{N+\nu+p+2}{2}\ln|\Sigma| +
        \frac{1}{2}\textrm{tr}(\Sigma^{-1}(Y-\Theta X)(Y-\Theta X)^\top) +
        \frac{\mu}{2}\textrm{tr}(\Sigma^{-1}\Theta\Theta^\top) +
        \frac{\nu}{2}\textrm{tr}(\Sigma^{-1}) \\
        \text{s.t.} &\; g(\Theta,\Sigma) = 0, h(\Theta,\Sigma) \geq 0

    Without constraints the problem is a (ridge) least-squares problem, which
    is solved through the SVD (see `mldivide`). With constraints, it is
    solved with IPOPT via casadi, starting from the unconstrained estimate
    unless `(Theta0, Sigma0)` are given.

    Parameters
    ----------
    Y : array-like
        Targets, dimension `(n, N)`.
    X : array-like
        Regressors, dimension `(p, N)`.
    mu, nu : float, optional
        Prior weights on `Theta` and `Sigma`. Default zero.
    g, h : callable, optional
        Equality and inequality constraints `g(Theta, Sigma)=0` and
        `h(Theta, Sigma)>=0`, evaluated on casadi expressions.
    rcond : float, optional
        Relative singular value cutoff for the rank check.
    verbosity : int, optional
        IPOPT print level for the constrained problem.

    Returns
    -------
    Theta : array-like
    Sigma : array-like
    resid : array-like
    """
    n, N = Y.shape
    p, M = X.shape
    if N != M:
        raise ValueError("Equal x and y samples expected: "
                         f"got Nx={M} and Ny={N}.")
    N0 = N if nu == 0 else N + 2*p + 2

    Theta = mrdivide(Y, X, mu=mu, rcond=rcond)
    resid = Y - Theta@X
    Sigma = (resid@resid.T + mu*Theta@Theta.T + nu*np.eye(n)) / N0

    if g is None and h is None:
        return Theta, Sigma, resid

    if Theta0 is None or Sigma0 is None:
        Theta0, Sigma0 = Theta, Sigma

    Theta = cs.MX.sym('Theta', n, p)
    Ls = cs.MX.sym('Ls', int(n*(n+1)/2))
    theta = cs.vertcat(cs.vec(Theta), Ls)

    L = unvech(Ls, n)
    invL = cs.inv(L)
    Sigma = cs.mtimes(L, L.T)
    R = cs.DM(Y) - cs.mtimes(Theta, cs.DM(X))
    f = 2*N0*cs.sum1(cs.log(cs.diag(L))) + cs.norm_fro(cs.mtimes(invL, R))**2
    if nu > 0:
        f += nu*cs.norm_fro(invL)**2
    if mu > 0:
        f += mu*cs.norm_fro(cs.mtimes(invL, Theta))**2

    # Noiseless data gives Sigma0=0; lift it onto the diag(L) bound.
    Ls0 = vech(np.linalg.cholesky(Sigma0 + 1e-8*np.eye(n)))
    theta0 = cs.vertcat(cs.vec(cs.DM(Theta0)), cs.DM(Ls0))

    cons = cs.diag(L)
    lbg = np.zeros(n) + np.sqrt(1e-8)
    ubg = np.zeros(n) + np.inf
    if g is not None:
        g = cs.vec(g(Theta, Sigma))
        cons = cs.vertcat(cons, g)
        lbg = np.hstack([lbg, np.zeros(g.numel())])
        ubg = np.hstack([ubg, np.zeros(g.numel())])
    if h is not None:
        h = cs.vec(h(Theta, Sigma))
        cons = cs.vertcat(cons, h)
        lbg = np.hstack([lbg, np.zeros(h.numel())])
        ubg = np.hstack([ubg, np.zeros(h.numel())+np.inf])

    nlp = {
        'x': theta,
        'f': f,
        'g': cons
    }
    solver = cs.nlpsol('solver', 'ipopt', nlp,
                       _nlpsol_options(verbosity=verbosity, max_iter=500))
    result = solver(x0=theta0, lbg=lbg, ubg=ubg)
    stats = solver.stats()
    if not stats['success']:
        raise IllConditioned("Constrained regression did not converge: "
                             f"IPOPT returned `{stats['return_status']}`.")

    theta = result['x'].full().ravel()
    if not np.all(np.isfinite(theta)):
        raise IllConditioned("Constrained regression returned non-finite "
                             "parameters.")
    # cs.vec stacks columns
    Theta = theta[:n*p].reshape((n, p), order='F')
    L = unvech(theta[n*p:], n)
    Sigma = L@L.T
    resid = Y - Theta@X

    return Theta, Sigma, resid
