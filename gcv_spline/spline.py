from dataclasses import dataclass, field
from math import factorial, prod
import numpy as np
from scipy.interpolate import PPoly


def locate_interval(knots, t, cursor=0):
    """
    Count of knots that are ``<= t``.

    The result ``l`` satisfies ``knots[l - 1] <= t < knots[l]``, with 0
    below the first knot and ``n`` at or beyond the last one. ``cursor``
    is a previous result; the interval it names and the next one are tried
    before falling back to a binary search, which makes increasing
    sequences of queries cheap.
    """
    n = len(knots)
    if t < knots[0]:
        return 0
    if t >= knots[-1]:
        return n

    l = min(max(cursor, 1), n - 1)
    if t >= knots[l - 1]:
        if t < knots[l]:
            return l
        if t < knots[l + 1]:
            return l + 1
    elif t >= knots[l - 2]:
        return l - 1
    return int(np.searchsorted(knots, t, side='right'))


def evaluate(knots, coef, order, t, nu=0, cursor=0):
    """
    Value or derivative of a natural spline at a single point.

    Parameters
    ----------
    knots : np.ndarray
        Strictly increasing knots, ``n`` of them.
    coef : np.ndarray
        Coefficients, shape ``(n,)`` or ``(n, K)`` for ``K`` channels.
    order : int
        Spline order ``M``; the spline has degree ``2M - 1``.
    t : float
        Query point.
    nu : int, optional
        Derivative order. Orders ``>= 2M`` are identically zero.
    cursor : int, optional
        Interval guess from a previous call.

    Returns
    -------
    value : float or np.ndarray
        One value per channel.
    cursor : int
        Located interval, to pass to the next call.
    """
    x = np.asarray(knots, dtype=float)
    coef = np.asarray(coef, dtype=float)
    n = x.shape[0]
    if nu < 0:
        raise ValueError(f"Derivative order must be nonnegative, got {nu}.")
    m2 = 2 * order
    k = m2 - nu
    if k < 1:
        return _zero(coef), cursor

    l = locate_interval(x, t, cursor)

    # coefficients l - M, ..., l + M - 1, zero outside the knot range
    w = np.zeros((m2,) + coef.shape[1:])
    lo, hi = max(0, order - l), min(m2, n + order - l)
    w[lo:hi] = coef[l - order + lo:l - order + hi]

    if nu > 0:
        for i in range(1, nu + 1):
            span = m2 - i
            for j in range(min(l, n - m2 + i) - 1, max(0, l - m2 + i) - 1, -1):
                s = m2 - l + j
                w[s] = (w[s] - w[s - 1]) / (x[j + span] - x[j])
            if l - m2 + i < 0:
                for s in range(m2 - l - 1, i - 1, -1):
                    w[s] = -w[s - 1]
        w[:k] = w[nu:].copy()

    for i in range(1, k):
        nki = n - k + i
        ki = k - i
        r = k - 1
        j = l - 1
        # beyond the last knot
        for _ in range(l - nki):
            w[r] = w[r - 1] + (t - x[j]) * w[r]
            j -= 1
            r -= 1
        lk1i = l - k + 1 + i
        for _ in range(min(l, nki) - max(1, lk1i) + 1):
            xk = x[j + ki]
            z = w[r]
            w[r] = z + (xk - t) * (w[r - 1] - z) / (xk - x[j])
            r -= 1
            j -= 1
        # before the first knot
        if lk1i <= 0:
            j = ki - 1
            for _ in range(1 - lk1i):
                w[r] = w[r] + (x[j] - t) * w[r - 1]
                j -= 1
                r -= 1

    value = w[k - 1] * prod(range(k, m2))
    if coef.ndim == 1:
        value = float(value)
    return value, l


def _zero(coef):
    if coef.ndim == 1:
        return 0.0
    return np.zeros(coef.shape[1:])


@dataclass
class NaturalSpline:
    """
    A fitted natural spline of order ``2 * order``.

    Parameters
    ----------
    knots : np.ndarray
        The knots of the fit.
    coef : np.ndarray
        Coefficients, shape ``(n,)`` or ``(n, K)``.
    order : int
        Spline order ``M``.

    Notes
    -----
    ``cursor`` remembers the last located knot interval and is updated by
    every evaluation, so one instance should not be evaluated from several
    threads at once.
    """

    knots: np.ndarray
    coef: np.ndarray
    order: int = 2
    cursor: int = field(default=0, repr=False)

    def __post_init__(self):
        self.knots = np.asarray(self.knots, dtype=float)
        self.coef = np.asarray(self.coef, dtype=float)

    @property
    def degree(self):
        return 2 * self.order - 1

    def evaluate(self, t, nu=0):
        """
        Value or ``nu``-th derivative at a single point ``t``.
        """
        value, self.cursor = evaluate(self.knots, self.coef, self.order,
                                      float(t), nu, self.cursor)
        return value

    def __call__(self, t, nu=0):
        """
        Evaluate the spline at scalar or array ``t``.

        Parameters
        ----------
        t : float or np.ndarray
            Query points. Sorted queries are located fastest.
        nu : int, optional
            The order of the derivative to compute (default is 0).

        Returns
        -------
        float or np.ndarray
            Shape ``t.shape`` for a single channel, ``t.shape + (K,)``
            otherwise.
        """
        t_arr = np.asarray(t, dtype=float)
        if t_arr.ndim == 0:
            return self.evaluate(t_arr, nu)
        out = np.empty(t_arr.shape + self.coef.shape[1:])
        flat = out.reshape((t_arr.size,) + self.coef.shape[1:])
        for idx, val in enumerate(t_arr.ravel()):
            flat[idx] = self.evaluate(val, nu)
        return out

    def to_ppoly(self):
        """
        The same spline as a `scipy.interpolate.PPoly`.

        One extra piece on each side carries the low degree continuation
        beyond the knot range, so extrapolation agrees with `evaluate`.
        """
        x = self.knots
        degree = self.degree
        breaks = np.concatenate(([x[0] - (x[1] - x[0])], x,
                                 [x[-1] + (x[-1] - x[-2])]))
        c = np.empty((degree + 1, len(breaks) - 1) + self.coef.shape[1:])
        cursor = 0
        for piece, left in enumerate(breaks[:-1]):
            for nu in range(degree + 1):
                value, cursor = evaluate(x, self.coef, self.order, left,
                                         nu, cursor)
                c[degree - nu, piece] = value / factorial(nu)
        return PPoly(c, breaks, extrapolate=True)
