import numpy as np

from .banded import BandedMatrix


def natural_basis(knots, order):
    """
    Natural B-spline design matrix at the knots.

    Row ``i`` holds the values at ``knots[i]`` of the basis functions
    ``i - order + 1, ..., i + order - 1``, built by a divided-difference
    recurrence over the neighbouring knots. Near either end the recurrence
    switches to the natural (low degree) continuation of the basis.

    Parameters
    ----------
    knots : np.ndarray
        Strictly increasing knots, at least ``2 * order`` of them.
    order : int
        Spline order ``M``; the spline has degree ``2M - 1``.

    Returns
    -------
    basis : BandedMatrix
        Half-bandwidth ``order - 1``.
    scale : float
        Mean absolute row sum of the design matrix.
    """
    x = np.asarray(knots, dtype=float)
    n = x.shape[0]
    m = order
    basis = BandedMatrix.zeros(n, m - 1)

    if m == 1:
        basis.data[:, 0] = 1.0
        return basis, 1.0

    m2 = 2 * m
    # q[s] holds the value of basis function r - m + 1 + s
    q = np.zeros(m2)
    for r in range(n):
        arg = x[r]
        q[:] = 0.0
        q[m2 - 2] = 1.0
        if 0 < r < n - 1:
            q[m2 - 2] = 1.0 / (x[r + 1] - x[r - 1])

        for i in range(3, m2 + 1):
            ir = m2 - i
            v = q[ir]

            # knots to the right that are still inside the left boundary
            for j in range(r + 1, i):
                u = v
                v = q[ir + 1]
                q[ir] = u + (x[j] - arg) * v
                ir += 1

            for j in range(max(r - i + 1, 0), min(r - 1, n - i - 1) + 1):
                u = v
                v = q[ir + 1]
                if i < m2:
                    y = x[i + j]
                    q[ir] = u + (v - u) * (y - arg) / (y - x[j])
                else:
                    q[ir] = (arg - x[j]) * u + (x[i + j] - arg) * v
                ir += 1

            # right boundary
            for j in range(n - i, r):
                u = v
                v = q[ir + 1]
                q[ir] = (arg - x[j]) * u + v
                ir += 1

        for k in basis.offsets(r):
            basis[r, k] = q[k + m - 1]

    scale = np.abs(basis.data).sum() / n
    return basis, scale
