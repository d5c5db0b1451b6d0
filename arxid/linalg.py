"""
Linear algebraic helper functions.
"""
import casadi as cs
import numpy as np
from scipy.linalg import lstsq, toeplitz

from .util import IllConditioned


def lagged(x, n):
    """Given a signal of the form

    x = [x(0), x(1), ..., x(N-1)]

    returns the zero-padded lag matrix

    L = [[0,      0,      ..., 0       ],
         [x(0),   0,      ..., 0       ],
         [x(1),   x(0),   ..., 0       ],
         ...,
         [x(N-2), x(N-3), ..., x(N-n-1)]]

    of dimension `(N, n)`, i.e., `L[k, j-1] = x(k-j)` if `k-j>=0` and zero
    otherwise. Lags reaching before the start of the record are exactly zero.
    """
    x = np.asarray(x, dtype=float)
    N = x.shape[0]
    if n == 0:
        return np.zeros((N, 0))
    c = np.concatenate([[0.], x[:-1]])
    return toeplitz(c, np.zeros(n))


def vech(M):
    """Lower triangular vectorization."""
    i1, i0 = np.triu_indices(M.shape[0])
    if isinstance(M, np.ndarray):
        return M[i0, i1]
    elif isinstance(M, (cs.SX, cs.MX, cs.DM)):
        return cs.vertcat(*[M[i0[i], i1[i]] for i in range(i0.shape[0])])
    else:
        raise TypeError(f"Type {type(M)} not implemented for `vech`.")


def unvech(x, n):
    """Inverse lower triangular vectorization."""
    i1, i0 = np.triu_indices(n)
    if isinstance(x, cs.SX):
        x_new = cs.SX(n, n)
    elif isinstance(x, cs.MX):
        x_new = cs.MX(n, n)
    elif isinstance(x, np.ndarray):
        x = x.ravel()
        x_new = np.zeros((n, n))
    else:
        raise TypeError(f"Type {type(x)} not implemented for `unvech`.")
    for (i, (a, b)) in enumerate(zip(i0, i1)):
        x_new[a, b] = x[i]
    return x_new


def mldivide(A, B, mu=0, rcond=None):
    r"""mldivide(A, B[, mu, rcond])

    Least-squares linear solver. In matlab syntax, returns `X=A\B`, i.e.,

    .. math::
        X = \arg\min_X \|AX - B\|_F^2 + \mu\|X\|_F^2

    The problem is solved through the SVD of the (augmented) matrix
    `[A; sqrt(mu) I]` with `scipy.linalg.lstsq`, so `A` may be non-square.
    Singular values below `rcond` times the largest one count as zero; the
    default is `max(A.shape)*eps`. A rank-deficient `A` (with `mu=0`) or a
    non-finite solution raises `IllConditioned`.
    """
    A = np.asarray(A, dtype=float)
    B = np.asarray(B, dtype=float)
    n = A.shape[1]
    if mu > 0:
        A = np.vstack([A, np.sqrt(mu)*np.eye(n)])
        B = np.concatenate([B, np.zeros((n,) + B.shape[1:])])
    if rcond is None:
        rcond = max(A.shape)*np.finfo(float).eps

    X, _, rank, s = lstsq(A, B, cond=rcond)

    if rank < n:
        smax = s[0] if s.shape[0] > 0 else 0.
        raise IllConditioned(f"Expected a full column rank regression matrix: "
                             f"got rank={rank} with {n} columns (largest "
                             f"singular value {smax:.3e}, rcond={rcond:.1e}).")
    if not np.all(np.isfinite(X)):
        raise IllConditioned("Least-squares solution has non-finite entries.")
    return X


def mrdivide(A, B, mu=0, rcond=None):
    """Least-squares linear solver. In matlab syntax, returns `X=A/B`."""
    return mldivide(B.T, A.T, mu=mu, rcond=rcond).T
