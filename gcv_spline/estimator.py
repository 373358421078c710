from dataclasses import dataclass, field
import numpy as np
from sklearn.base import BaseEstimator, RegressorMixin

from .fitter import SplineFitter, FitStats, Mode, check_mode
from .spline import NaturalSpline


@dataclass
class SmoothingSpline(RegressorMixin, BaseEstimator):
    """
    Natural smoothing spline regressor.

    The knots are the distinct values of the predictor. Repeated
    predictor values are merged before fitting: their weights are summed
    and their responses replaced by the weighted mean.

    Parameters
    ----------
    order : int, optional
        Spline order ``M``; the fit is a spline of degree ``2M - 1``
        (default 2, a cubic spline).
    mode : str, int or Mode, optional
        How the smoothing parameter is chosen, one of ``"fixed_p"``,
        ``"gcv"`` (default), ``"fixed_variance"`` or ``"direct_mse"``.
    value : float, optional
        The smoothing parameter for ``"fixed_p"``, the known noise variance
        for ``"fixed_variance"`` or the target degrees of freedom for
        ``"direct_mse"``.

    Attributes
    ----------
    fitter_ : SplineFitter
        The fitter on the merged knots.
    spline_ : NaturalSpline
        The fitted spline.
    stats_ : FitStats
        Diagnostics of the final fit.
    """
    order: int = 2
    mode: str = "gcv"
    value: float = None

    fitter_: SplineFitter = field(init=False, repr=False)
    spline_: NaturalSpline = field(init=False, repr=False)
    stats_: FitStats = field(init=False, repr=False)

    def fit(self, X, y, sample_weight=None):
        """
        Fit the smoothing spline to the data.

        Parameters
        ----------
        X : np.ndarray
            The predictor, shape ``(n,)`` or ``(n, 1)``.
        y : np.ndarray
            The response.
        sample_weight : np.ndarray, optional
            Positive observation weights.

        Returns
        -------
        self : SmoothingSpline
            The fitted estimator.
        """
        x = _as_predictor(X)
        y = np.asarray(y, dtype=float)
        if y.shape != x.shape:
            raise ValueError(f"y has shape {y.shape}, expected {x.shape}.")
        if sample_weight is None:
            sample_weight = np.ones_like(x)
        sample_weight = np.asarray(sample_weight, dtype=float)

        knots, inverse = np.unique(x, return_inverse=True)
        weights = np.bincount(inverse, weights=sample_weight)
        y_merged = np.bincount(inverse, weights=sample_weight * y) / weights

        check_mode(self.mode, self.value, knots.shape[0], self.order)
        self.fitter_ = SplineFitter(knots, w=weights, order=self.order)
        result = self.fitter_.fit(y_merged, mode=self.mode, value=self.value)
        self.spline_ = result.to_spline()
        self.stats_ = result.stats
        return self

    def predict(self, X, deriv=0):
        """
        Evaluate the fitted spline or one of its derivatives.

        Parameters
        ----------
        X : np.ndarray
            The predictor, shape ``(n,)`` or ``(n, 1)``.
        deriv : int, optional
            The order of the derivative to compute (default is 0).

        Returns
        -------
        np.ndarray
            The predicted response.
        """
        return self.spline_(_as_predictor(X), nu=deriv)

    @property
    def p_(self):
        return self.stats_.p_used


def _as_predictor(X):
    x = np.asarray(X, dtype=float)
    if x.ndim == 2 and x.shape[1] == 1:
        x = x[:, 0]
    if x.ndim != 1:
        raise ValueError(f"Expected a single predictor, got shape {x.shape}.")
    return x
