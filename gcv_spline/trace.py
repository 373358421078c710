# -*- coding: utf-8 -*-
"""
Banded Trace Calculation

This module implements Tr(p * Omega (B + p Omega)^{-1}) where B and Omega
are both banded and B + p Omega is not symmetric.

Only the central bands of the inverse are ever needed, so they are
recovered from the LU factors with the Erisman-Tinney recursion instead of
forming the dense inverse.
"""

import numpy as np


def inverse_bands(lu, overwrite=False):
    """
    Compute the central ``2h + 1`` bands of ``A^{-1}`` from the packed LU
    factors of ``A``.

    Parameters
    ----------
    lu : BandedMatrix
        Packed factors as returned by `band_factor`.
    overwrite : bool, optional
        Reuse the storage of ``lu`` for the result.

    Returns
    -------
    BandedMatrix
        ``Z`` with ``Z[i, k] == inv(A)[i, i + k]`` for ``|k| <= h``.
    """
    z = lu if overwrite else lu.copy()
    n, m = z.n, z.half_bandwidth

    # scaled row of U and column of L for the current pivot
    upper = np.zeros(m + 1)
    lower = np.zeros(m + 1)

    z[n - 1, 0] = 1.0 / z[n - 1, 0]
    for i in range(n - 2, -1, -1):
        mi = min(m, n - 1 - i)
        dd = 1.0 / z[i, 0]
        for k in range(1, mi + 1):
            upper[k] = z[i, k] * dd
            lower[k] = z[i + k, -k]
        dd += dd

        for j in range(mi, 0, -1):
            du = 0.0
            dl = 0.0
            for k in range(1, mi + 1):
                du -= upper[k] * z[i + k, j - k]
                dl -= lower[k] * z[i + j, k - j]
            z[i, j] = du
            z[i + j, -j] = dl
            dd -= upper[j] * dl + lower[j] * du

        # average of the row and column forms of the diagonal
        z[i, 0] = 0.5 * dd
    return z


def trace_product(a, z):
    """
    Computes tr(A * Z) for banded A and the inverse bands Z.

    Formula: sum(A[i, i+k] * Z[i+k, i]) over the band of A, which only
    touches entries of Z inside its stored band.
    """
    if z.half_bandwidth < a.half_bandwidth:
        raise ValueError("Inverse bands are narrower than the matrix.")
    n = a.n
    ha, hz = a.half_bandwidth, z.half_bandwidth
    trace = 0.0
    for k in range(-ha, ha + 1):
        start, stop = max(0, -k), min(n, n - k)
        if start >= stop:
            continue
        rows = np.arange(start, stop)
        trace += np.dot(a.data[rows, k + ha], z.data[rows + k, hz - k])
    return float(trace)


def residual_trace(penalty, lu, p):
    """
    Trace of the residual operator ``I - H`` of the smoother.

    For the system ``(B + p Omega) c = y`` the residuals are
    ``p Omega c``, so ``tr(I - H) = p tr(Omega (B + p Omega)^{-1})``.
    """
    return p * trace_product(penalty, inverse_bands(lu))


def smoother_trace(penalty, lu, p):
    """
    Trace of the hat operator and the same trace divided by ``n``.

    Parameters
    ----------
    penalty : BandedMatrix
        Weighted roughness penalty.
    lu : BandedMatrix
        Packed factors of ``B + p * penalty``.
    p : float
        Effective smoothing parameter used to build ``lu``.

    Returns
    -------
    trace : float
    fraction : float
    """
    n = penalty.n
    trace = n - residual_trace(penalty, lu, p)
    return trace, trace / n
