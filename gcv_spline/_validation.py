"""Input checks shared by the fitting entry points."""

import numpy as np

from .errors import InvalidOrderOrSize, InvalidWeightsOrKnots


def check_order_and_size(n, order):
    if int(order) != order or order < 1:
        raise InvalidOrderOrSize(f"Order must be a positive integer, got {order}.")
    if n < 2 * order:
        raise InvalidOrderOrSize(
            f"Need at least {2 * order} knots for order {order}, got {n}.")


def check_knot_shape(knots):
    knots = np.asarray(knots, dtype=float)
    if knots.ndim != 1:
        raise InvalidOrderOrSize("Knots must be a 1-D sequence.")
    return knots


def check_knots(knots):
    knots = check_knot_shape(knots)
    if not np.all(np.isfinite(knots)):
        raise InvalidWeightsOrKnots("Knots must be finite.")
    if np.any(np.diff(knots) <= 0):
        raise InvalidWeightsOrKnots("Knots must be strictly increasing.")
    return knots


def check_weights(weights, size, name="weights"):
    """
    Return positive weights of length `size`, ones if `weights` is None.
    """
    if weights is None:
        return np.ones(size)
    weights = np.asarray(weights, dtype=float)
    if weights.shape != (size,):
        raise InvalidOrderOrSize(
            f"Expected {size} {name}, got shape {weights.shape}.")
    if not np.all(np.isfinite(weights)) or np.any(weights <= 0):
        raise InvalidWeightsOrKnots(f"All {name} must be positive and finite.")
    return weights


def check_values(values, n):
    """
    Return the observations as an ``(n, K)`` table.
    """
    values = np.asarray(values, dtype=float)
    if values.ndim == 1:
        values = values[:, None]
    if values.ndim != 2 or values.shape[0] != n or values.shape[1] < 1:
        raise InvalidOrderOrSize(
            f"Values must have {n} rows, got shape {values.shape}.")
    return values
