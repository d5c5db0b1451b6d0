"""
Argument checks, error types, and solver options for other modules.

MissingArgument
DimensionMismatch
InvalidOrder
IllConditioned
"""
from numbers import Integral, Real

import numpy as np
from numpy.linalg import LinAlgError


class MissingArgument(TypeError):
    """A required argument was not supplied (or was supplied as `None`)."""


class DimensionMismatch(ValueError):
    """Signals disagree in length or are not single-channel."""


class InvalidOrder(ValueError):
    """A polynomial order is not a positive integer."""


class IllConditioned(LinAlgError):
    """The estimation problem is numerically ill-conditioned.

    Raised for a nonpositive RLS update denominator, a rank-deficient batch
    regression, or a solve that produced non-finite parameters.
    """


def _check_required(**kwargs):
    """Raise a `MissingArgument` for the first keyword that is `None`.

    Keywords are checked in the order they are passed, so callers list them
    in signature order."""
    for name, value in kwargs.items():
        if value is None:
            raise MissingArgument(f"Missing required argument `{name}`.")


def _check_orders(**kwargs):
    """Check that every supplied order is a positive integer. Orders passed
    as `None` are skipped (they are optional at the call site)."""
    for name, n in kwargs.items():
        if n is None:
            continue
        if isinstance(n, bool) or not isinstance(n, Integral) or n < 1:
            raise InvalidOrder(f"Expected `{name}` to be a positive integer: "
                               f"got {name}={n!r} instead.")


def _as_signal(x, name):
    x = np.asarray(x, dtype=float)
    if x.ndim == 2 and 1 in x.shape:
        x = x.ravel()
    if x.ndim != 1:
        raise DimensionMismatch(f"Expected `{name}` to be a single-channel "
                                f"signal: got shape {x.shape} instead.")
    if not np.all(np.isfinite(x)):
        raise ValueError(f"Expected `{name}` to contain only finite samples.")
    return x.copy()


def _check_signals(u, y, e=None):
    """_check_signals(u, y[, e])

    Returns `(u, y, e, N)` as fresh 1D float arrays (`e` stays `None` if not
    supplied). All signals must have the same number of samples `N`."""
    u = _as_signal(u, 'u')
    y = _as_signal(y, 'y')
    Nu, Ny = u.shape[0], y.shape[0]
    if Nu != Ny:
        raise DimensionMismatch("Expected u and y to have the same number of "
                                f"samples: got Nu={Nu} and Ny={Ny} instead.")
    if e is not None:
        e = _as_signal(e, 'e')
        Ne = e.shape[0]
        if Ne != Ny:
            raise DimensionMismatch("Expected e and y to have the same number "
                                    f"of samples: got Ne={Ne} and Ny={Ny} "
                                    "instead.")
    if Ny == 0:
        raise DimensionMismatch("Expected at least one sample: got N=0.")
    return u, y, e, Ny


def _check_timing(sample_time, delay):
    if isinstance(sample_time, bool) or not isinstance(sample_time, Real) \
       or not np.isfinite(sample_time) or sample_time <= 0:
        raise ValueError("Expected `sample_time` to be a positive scalar: "
                         f"got sample_time={sample_time!r} instead.")
    if isinstance(delay, bool) or not isinstance(delay, Integral) or delay < 0:
        raise ValueError("Expected `delay` to be a nonnegative integer: "
                         f"got delay={delay!r} instead.")


def _check_forgetting(forgetting):
    if isinstance(forgetting, bool) or not isinstance(forgetting, Real) \
       or not 0 < forgetting <= 1:
        raise ValueError("Expected `forgetting` in the interval (0, 1]: "
                         f"got forgetting={forgetting!r} instead.")


def _nlpsol_options(verbosity=None, max_iter=None, tol=None):
    opts = {}

    # ipopt options
    if verbosity is not None:
        opts['ipopt.print_level'] = verbosity
        if verbosity == 0:
            opts['print_time'] = 0
            opts['ipopt.sb'] = 'yes'
    if max_iter is not None:
        opts['ipopt.max_iter'] = max_iter
    if tol is not None:
        opts['ipopt.tol'] = tol

    return opts
