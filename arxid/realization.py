"""
Realize polynomial models as transfer functions and state-space models.

TransferFunction
tf2ss
append_noise
innovations
realize

The transfer functions and state-space models returned here are thin
enough to hand straight to the python-control library: `TransferFunction`
converts with `to_control()` and every state-space model already is a
`control.StateSpace` instance.
"""
import control as ct
import numpy as np
from scipy.signal import tf2ss as _tf2ss

from .util import _check_required, _check_timing

CONTROLLABLE_FORMS = ('controllable', 'reachable', 'ccf')
OBSERVABLE_FORMS = ('observable', 'ocf')


def _poly2str(coeffs, var, powers):
    terms = []
    for c, k in zip(coeffs, powers):
        if c == 0:
            continue
        mag = abs(c)
        if k == 0:
            term = f"{mag:.4g}"
        else:
            monomial = var if k == 1 else f"{var}^{k}"
            term = monomial if mag == 1 else f"{mag:.4g} {monomial}"
        if not terms:
            terms.append(term if c > 0 else '-' + term)
        else:
            terms.append(('+ ' if c > 0 else '- ') + term)
    return ' '.join(terms) if terms else '0'


def _pad(x, n):
    x = np.asarray(x, dtype=float)
    if x.shape[0] > n:
        raise ValueError(f"Expected at most {n} coefficients: got "
                         f"{x.shape[0]} instead.")
    return np.concatenate([x, np.zeros(n - x.shape[0])])


class TransferFunction(object):
    r"""TransferFunction(num, den[, dt, delay])

    A SISO transfer function with a structured time-domain tag and delay.

    If `dt>0` (default `dt=1`), the function is discrete-time and the
    coefficients are given in ascending powers of the backward shift
    :math:`z^{-1}`:

    .. math::
        G(z) = z^{-d}\frac{n_0 + n_1 z^{-1} + \ldots + n_{m} z^{-m}}
                          {a_0 + a_1 z^{-1} + \ldots + a_{n} z^{-n}}

    which is the natural ordering for ARX polynomials (`num=[0, b1, ...]`,
    `den=[1, a1, ...]`) and `d` is an integer number of samples. If `dt=0`,
    the function is continuous-time, the coefficients are given in
    descending powers of `s`, and `delay` is a dead time in time units.

    Attributes
    ----------
    num, den : 1D arrays
        Numerator and denominator coefficients.
    dt : float
        Sample time (`0` for continuous-time).
    delay : int or float
        Input delay in samples (discrete) or time units (continuous).
    """

    def __init__(self, num, den, dt=1, delay=0):
        num = np.atleast_1d(np.asarray(num, dtype=float))
        den = np.atleast_1d(np.asarray(den, dtype=float))
        if num.ndim != 1 or den.ndim != 1:
            raise ValueError("Expected 1D coefficient arrays: got "
                             f"num.shape={num.shape} and den.shape={den.shape}"
                             " instead.")
        if den.shape[0] == 0 or den[0] == 0:
            raise ValueError("Expected a nonzero leading denominator "
                             f"coefficient: got den={den.tolist()} instead.")
        if dt is None or dt < 0:
            raise ValueError(f"Expected `dt>=0`: got dt={dt!r} instead.")
        if delay < 0 or (dt > 0 and int(delay) != delay):
            raise ValueError("Expected a nonnegative (integer, if discrete) "
                             f"delay: got delay={delay!r} instead.")
        self.num = num
        self.den = den
        self.dt = dt
        self.delay = int(delay) if dt > 0 else delay

    def isdtime(self):
        """Check if the transfer function is discrete-time."""
        return self.dt > 0

    @property
    def domain(self):
        return 'discrete' if self.isdtime() else 'continuous'

    @property
    def var(self):
        return 'z' if self.isdtime() else 's'

    def _polys(self, include_delay=False):
        """Return `(num, den)` in descending powers of `z` or `s`, with equal
        lengths in the discrete case."""
        if not self.isdtime():
            if include_delay and self.delay > 0:
                raise ValueError("A continuous-time dead time has no rational "
                                 "transfer function.")
            return self.num.copy(), self.den.copy()
        num = self.num
        if include_delay:
            num = np.concatenate([np.zeros(self.delay), num])
        n = max(num.shape[0], self.den.shape[0])
        return _pad(num, n), _pad(self.den, n)

    def to_control(self, include_delay=False):
        """Return the equivalent `control.TransferFunction`. The discrete
        delay is only included (as `z^-d`) if `include_delay=True`."""
        num, den = self._polys(include_delay)
        if self.isdtime():
            return ct.tf(num, den, self.dt)
        return ct.tf(num, den)

    def __call__(self, x):
        """Evaluate the transfer function (including its delay) at `x`."""
        x = np.asarray(x, dtype=complex)
        if self.isdtime():
            w = 1/x
            return w**self.delay * np.polyval(self.num[::-1], w) \
                / np.polyval(self.den[::-1], w)
        return np.exp(-self.delay*x) * np.polyval(self.num, x) \
            / np.polyval(self.den, x)

    def _delay_str(self):
        if self.delay == 0:
            return ''
        if self.isdtime():
            return f"{self.var}^-{self.delay} * "
        return f"exp(-{self.delay:g}*{self.var}) * "

    def __str__(self):
        if self.isdtime():
            powers = lambda c: range(0, -c.shape[0], -1)
        else:
            powers = lambda c: range(c.shape[0] - 1, -1, -1)
        numstr = _poly2str(self.num, self.var, powers(self.num))
        denstr = _poly2str(self.den, self.var, powers(self.den))
        width = max(len(numstr), len(denstr))
        lead = self._delay_str()
        pad = ' '*len(lead)
        lines = [pad + numstr.center(width),
                 lead + '-'*width,
                 pad + denstr.center(width)]
        if self.isdtime():
            lines += ['', f"dt = {self.dt}"]
        return '\n'.join(lines)

    def __repr__(self):
        return (f"TransferFunction(num={self.num.tolist()}, "
                f"den={self.den.tolist()}, dt={self.dt}, delay={self.delay})")


def tf2ss(G, form='controllable'):
    """tf2ss(G[, form])

    Return a canonical state-space realization of the rational part of `G` as
    a `control.StateSpace` with the same sample time. The delay of `G` is not
    realized (see `TransferFunction.to_control`).

    `form` selects the canonical form:
      - `'controllable'` (or `'reachable'`, `'ccf'`): controller canonical
        form of `scipy.signal.tf2ss`, with the negated denominator
        coefficients in the first row of `A` and `B=e_1`,
      - `'observable'` (or `'ocf'`): its dual, with the negated denominator
        coefficients in the first column of `A` and `C=e_1^T`.

    For a discrete `G` the state dimension is the larger polynomial degree in
    `z^-1`.
    """
    num, den = G._polys()
    num = np.trim_zeros(num, 'f')
    if num.shape[0] == 0:
        num = np.zeros(1)
    A, B, C, D = _tf2ss(num, den)
    form = form.lower()
    if form in OBSERVABLE_FORMS:
        A, B, C, D = A.T, C.T, B.T, D.T
    elif form not in CONTROLLABLE_FORMS:
        raise ValueError(f"Unknown canonical form: `{form}`. Expected one of "
                         f"{CONTROLLABLE_FORMS + OBSERVABLE_FORMS}.")
    return ct.ss(A, B, C, D, G.dt)


def append_noise(sysg, sysh):
    """append_noise(sysg, sysh)

    Combine a plant model `sysg` and a noise model `sysh` by block-diagonal
    composition and sum their outputs. The result has inputs `(u, e)` and a
    single output `y = sysg(u) + sysh(e)`.
    """
    sys = ct.append(sysg, sysh)
    S = np.ones((1, 2))
    return ct.ss(sys.A, sys.B, S@sys.C, S@sys.D, sys.dt)


def innovations(sysg, a, c):
    """innovations(sysg, a, c)

    Fold the noise model `C/A` into the observable-form plant realization
    `sysg` as an observer gain. Returns `(sysd, K)`, where

        K = c[1:] - a[1:]

    (both zero-padded to the state dimension) is appended as an extra input
    column of `B`, and `D=[D, 1]`. In observable canonical form the noise
    input then sees the transfer function `C/A` (Astrom and Wittenmark,
    Adaptive Control, 2nd ed., p. 166).
    """
    n = sysg.nstates
    K = _pad(c[1:], n) - _pad(a[1:], n)
    B = np.hstack([sysg.B, K.reshape(-1, 1)])
    D = np.hstack([sysg.D, [[1.]]])
    return ct.ss(sysg.A, B, sysg.C, D, sysg.dt), K


def realize(b, a, sample_time, delay=0, c=None, form='controllable',
            noise='append'):
    """realize(b, a, sample_time[, delay, c, form, noise])

    Turn the ARX/ARMAX coefficient sets `a=[1, a1..ana]`, `b=[b1..bnb]`, and
    (optionally) `c=[1, c1..cnc]` into models. Returns `(Gd, Hd, sysd, K)`:

      - `Gd = z^-delay B/A`, a discrete `TransferFunction`,
      - `Hd = C/A`, or `None` if `c` is not supplied. It carries the same
        delay tag as `Gd` for `noise='append'` and none for
        `noise='innovations'`,
      - `sysd`, a `control.StateSpace` in the selected canonical `form`,
        which realizes `Gd` alone if `c` is `None`, and otherwise combines
        `Gd` and `Hd` according to `noise`:
          * `'append'`: block-diagonal combination with summed outputs (see
            `append_noise`),
          * `'innovations'`: observer gain folded into `B` (see
            `innovations`); requires the observable form,
      - `K`, the observer gain for `noise='innovations'` and `None`
        otherwise.
    """
    _check_required(b=b, a=a, sample_time=sample_time)
    _check_timing(sample_time, delay)
    b = np.atleast_1d(np.asarray(b, dtype=float))
    a = np.atleast_1d(np.asarray(a, dtype=float))

    Gd = TransferFunction(np.concatenate([[0.], b]), a, sample_time, delay)
    sysg = tf2ss(Gd, form)
    if c is None:
        return Gd, None, sysg, None

    c = np.atleast_1d(np.asarray(c, dtype=float))
    if noise == 'append':
        Hd = TransferFunction(c, a, sample_time, delay)
        sysh = tf2ss(Hd, form)
        return Gd, Hd, append_noise(sysg, sysh), None
    elif noise == 'innovations':
        if form.lower() not in OBSERVABLE_FORMS:
            raise ValueError("Expected the observable form for "
                             f"`noise='innovations'`: got form=`{form}`.")
        Hd = TransferFunction(c, a, sample_time)
        sysd, K = innovations(sysg, a, c)
        return Gd, Hd, sysd, K
    else:
        raise ValueError(f"Unknown noise combination: `{noise}`. Expected "
                         "`'append'` or `'innovations'`.")
