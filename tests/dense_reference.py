"""
Dense O(n^3) versions of the banded computations, used only to check
the banded code in the tests.
"""

import numpy as np
from scipy.interpolate import CubicSpline
from scipy.linalg import solve

from gcv_spline.basis import natural_basis
from gcv_spline.penalty import natural_penalty


def dense_system(x, w, order):
    """
    Dense design and penalty matrices together with the constant
    normalizing the smoothing parameter.
    """
    basis, basis_scale = natural_basis(x, order)
    penalty, penalty_scale = natural_penalty(x, w, order)
    return basis.to_dense(), penalty.to_dense(), penalty_scale / basis_scale


def dense_fit(B, E, y, p):
    """
    Coefficients, hat matrix and residual trace at smoothing parameter ``p``.
    """
    A = B + p * E
    coef = solve(A, y)
    hat = B @ solve(A, np.eye(A.shape[0]))
    return coef, hat, np.trace(np.eye(A.shape[0]) - hat)


def dense_gcv(B, E, y, w, p):
    n = B.shape[0]
    coef, hat, res_trace = dense_fit(B, E, y, p)
    resid = B @ coef - y
    mse = np.sum(w * resid ** 2) / n
    return mse / (res_trace / n) ** 2


def natural_cubic(x, fitted):
    """
    Natural cubic interpolant of the fitted values, the form of any
    cubic (order 2) smoothing spline between its knots.
    """
    return CubicSpline(x, fitted, bc_type='natural')
