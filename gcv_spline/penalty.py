from math import factorial
import numpy as np

from .banded import BandedMatrix


def natural_penalty(knots, weights, order):
    """
    Weighted roughness penalty for the natural spline of order ``2 * order``.

    Column ``j`` holds the divided-difference weights of order ``order``
    (``2 * order`` in the interior) over the knots
    ``max(0, j - order), ..., min(n - 1, j + order)``, scaled by
    ``(2 * order - 1)!``. Row ``i`` is divided by ``weights[i]``.

    Parameters
    ----------
    knots : np.ndarray
        Strictly increasing knots.
    weights : np.ndarray
        Positive knot weights.
    order : int
        Spline order ``M``.

    Returns
    -------
    penalty : BandedMatrix
        Half-bandwidth ``order``.
    scale : float
        Mean absolute entry, ``sum(|penalty|) / n``.
    """
    x = np.asarray(knots, dtype=float)
    w = np.asarray(weights, dtype=float)
    n = x.shape[0]
    m = order
    penalty = BandedMatrix.zeros(n, m)

    f1 = (-1) ** m * factorial(2 * m - 1)
    for j in range(n):
        if j >= n - m:
            # sign alternates over the last `order` columns
            f1 = -f1
            f = f1
        elif j < m:
            f = f1
        else:
            f = f1 * (x[j + m] - x[j - m])

        lo, hi = max(0, j - m), min(n - 1, j + m)
        for i in range(lo, hi + 1):
            others = np.concatenate((x[lo:i], x[i + 1:hi + 1]))
            penalty[i, j - i] = f / np.prod(x[i] - others)

    penalty.data /= w[:, None]
    scale = np.abs(penalty.data).sum() / n
    return penalty, scale
