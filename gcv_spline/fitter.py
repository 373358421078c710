from dataclasses import dataclass, field
from enum import IntEnum
from typing import NamedTuple
import logging

import numpy as np

from .banded import BandedMatrix, band_factor, band_solve
from .basis import natural_basis
from .penalty import natural_penalty
from .trace import residual_trace
from .spline import NaturalSpline
from .errors import InvalidModeOrValue
from ._validation import (check_knot_shape,
                          check_order_and_size,
                          check_knots,
                          check_weights,
                          check_values)

logger = logging.getLogger(__name__)

GOLDEN_RATIO = 1.618033983


class Mode(IntEnum):
    """
    How the smoothing parameter is chosen.

    FIXED_P
        Use the given ``value`` as ``p``.
    GCV
        Minimize the generalized cross-validation score.
    FIXED_VARIANCE
        Minimize the unbiased risk estimate for a known noise
        variance ``value``.
    DIRECT_MSE
        Match the trace of the hat operator (effective degrees of
        freedom) to ``value``.
    """
    FIXED_P = 1
    GCV = 2
    FIXED_VARIANCE = 3
    DIRECT_MSE = 4

    @classmethod
    def coerce(cls, mode):
        if isinstance(mode, str):
            try:
                return cls[mode.upper()]
            except KeyError:
                raise InvalidModeOrValue(f"Unknown mode {mode!r}.") from None
        try:
            return cls(mode)
        except ValueError:
            raise InvalidModeOrValue(f"Unknown mode {mode!r}.") from None


@dataclass
class SearchOptions:
    """
    Constants of the smoothing parameter search.

    Parameters
    ----------
    tol : float
        Relative bracket width at which golden-section refinement stops.
    growth : float
        Factor by which trial values of ``p`` are doubled or halved while
        bracketing.
    golden : float
        Golden-ratio constant used to shrink the bracket.
    eps : float
        Floor of the normalized smoothing parameter; its reciprocal is the
        ceiling.
    p_max : float
        Largest ``p`` tried while bracketing upward.
    max_iter : int
        Bound on the number of steps of each phase.
    """
    tol: float = 1e-6
    growth: float = 2.0
    golden: float = GOLDEN_RATIO
    eps: float = 1e-15
    p_max: float = 9.9999999999999988e14
    max_iter: int = 500


@dataclass
class FitStats:
    """
    Diagnostics of a fit at one value of ``p``.

    Attributes
    ----------
    trace : float
        Trace of the hat operator (effective degrees of freedom).
    trace_fraction : float
        ``trace / n``.
    mean_squared_error : float
        Weighted mean squared residual.
    gcv_score : float
        ``mean_squared_error / (1 - trace / n) ** 2``.
    p_used : float
        Smoothing parameter after the numerical floor; 0 if floored.
    variance : float
        Residual variance estimate ``mean_squared_error / (1 - trace / n)``.
    risk : float
        Estimate of the true mean squared error of the fitted values.
    score : float
        Value of the criterion minimized by the search.
    """
    trace: float
    trace_fraction: float
    mean_squared_error: float
    gcv_score: float
    p_used: float
    variance: float
    risk: float
    score: float


class Trial(NamedTuple):
    score: float
    coef: np.ndarray
    stats: FitStats


@dataclass
class FitResult:
    coef: np.ndarray
    stats: FitStats
    knots: np.ndarray
    order: int

    def to_spline(self):
        """
        A new `NaturalSpline` for the fitted coefficients.
        """
        return NaturalSpline(self.knots, self.coef, self.order)


def effective_p(p, scale, eps=1e-15):
    """
    Clamp ``p`` so that ``p * scale`` stays within ``[eps, 1 / eps]``.

    Returns
    -------
    p_eff : float
        Value used to build the system.
    p_used : float
        Value reported to the caller: 0 when the floor applied.
    """
    pel = p * scale
    if pel < eps:
        return eps / scale, 0.0
    if pel * eps > 1.0:
        p_eff = 1.0 / (scale * eps)
        return p_eff, p_eff
    return p, p


def assemble_system(basis, penalty, p):
    """
    Banded ``basis + p * penalty`` with the half-bandwidth of ``penalty``.
    """
    wide = basis.widen(penalty.half_bandwidth)
    return BandedMatrix(wide.data + p * penalty.data, penalty.half_bandwidth)


def check_mode(mode, value, n, order):
    mode = Mode.coerce(mode)
    if mode in (Mode.FIXED_P, Mode.FIXED_VARIANCE):
        if value is None or not np.isfinite(value) or value < 0:
            raise InvalidModeOrValue(
                f"{mode.name} needs a finite value >= 0, got {value}.")
    elif mode == Mode.DIRECT_MSE:
        if value is None or not order <= value <= n:
            raise InvalidModeOrValue(
                f"DIRECT_MSE target must lie in [{order}, {n}], got {value}.")
    return mode


@dataclass
class SplineFitter:
    """
    Natural smoothing spline on a fixed set of knots.

    The design and penalty matrices depend only on the knots, their
    weights and the order, so they are built once and shared by every
    call to `fit`.

    Parameters
    ----------
    knots : np.ndarray
        Strictly increasing knots.
    w : np.ndarray, optional
        Positive knot weights, ones by default.
    order : int, optional
        Spline order ``M`` (default 2, a cubic spline).
    options : SearchOptions, optional
        Constants of the smoothing parameter search.
    """

    knots: np.ndarray
    w: np.ndarray = None
    order: int = 2
    options: SearchOptions = field(default_factory=SearchOptions)

    basis_: BandedMatrix = field(init=False, default=None, repr=False)
    penalty_: BandedMatrix = field(init=False, default=None, repr=False)
    scale_: float = field(init=False, default=None)
    p_: float = field(init=False, default=None)
    coef_: np.ndarray = field(init=False, default=None, repr=False)
    stats_: FitStats = field(init=False, default=None, repr=False)

    def __post_init__(self):
        knots = check_knot_shape(self.knots)
        check_order_and_size(knots.shape[0], self.order)
        self.w = check_weights(self.w, knots.shape[0], "knot weights")
        self.knots = check_knots(knots)
        self._prepare_matrices()

    def _prepare_matrices(self):
        """
        Build the banded design and penalty matrices and the constant that
        makes ``p`` comparable across differently scaled problems.
        """
        self.basis_, basis_scale = natural_basis(self.knots, self.order)
        self.penalty_, penalty_scale = natural_penalty(self.knots,
                                                       self.w,
                                                       self.order)
        self.scale_ = penalty_scale / basis_scale

    @property
    def n_knots(self):
        return self.knots.shape[0]

    def criterion(self, p, values, channel_weights, mode, value=None):
        """
        Fit at one trial ``p`` and score it.

        Parameters
        ----------
        p : float
            Trial smoothing parameter.
        values : np.ndarray
            Observations, shape ``(n, K)``.
        channel_weights : np.ndarray
            Positive weights of the ``K`` channels.
        mode : Mode
            Which criterion to return.
        value : float, optional
            Noise variance for FIXED_VARIANCE, target trace for DIRECT_MSE.

        Returns
        -------
        Trial
        """
        n, n_channels = values.shape
        p_eff, p_used = effective_p(p, self.scale_, self.options.eps)

        lu = band_factor(assemble_system(self.basis_, self.penalty_, p_eff),
                         overwrite=True)
        coef = band_solve(lu, values)
        res_trace = residual_trace(self.penalty_, lu, p_eff)
        trn = res_trace / n

        weights = channel_weights / channel_weights.mean()
        resid = self.basis_.matvec(coef) - values
        mse = np.sum(resid ** 2 * self.w[:, None] * weights[None, :]) / (n * n_channels)

        if trn > 0:
            variance = mse / trn
            gcv = variance / trn
        else:
            variance = gcv = np.inf

        if mode == Mode.FIXED_VARIANCE:
            risk = mse - value * (2.0 * trn - 1.0)
            score = risk
        else:
            risk = variance - mse
            if mode == Mode.FIXED_P:
                score = 0.0
            elif mode == Mode.GCV:
                score = gcv
            else:
                score = abs((n - res_trace) - value)

        stats = FitStats(trace=float(n - res_trace),
                         trace_fraction=float(1.0 - trn),
                         mean_squared_error=float(mse),
                         gcv_score=float(gcv),
                         p_used=float(p_used),
                         variance=float(variance),
                         risk=float(risk),
                         score=float(score))
        return Trial(float(score), coef, stats)

    def minimize(self, objective, p0):
        """
        Bracket the minimum of ``objective`` over ``p`` starting from ``p0``
        and refine it by golden-section search.

        The criterion need not be unimodal, so this is a bounded search
        rather than a general optimizer: it always returns a usable ``p``,
        possibly a local minimum or a value at the floor or ceiling.

        Parameters
        ----------
        objective : callable
            Maps ``p`` to a `Trial`.
        p0 : float
            Starting value.

        Returns
        -------
        float
        """
        opts = self.options

        # bracket-expand: walk down while the lower point keeps improving
        lo = p0
        hi = lo * opts.growth
        f_hi = objective(hi).score
        for _ in range(opts.max_iter):
            trial = objective(lo)
            if trial.score > f_hi:
                break
            if trial.stats.p_used <= 0.0:
                logger.debug("bracket reached the p floor at %g", lo)
                return lo
            hi, f_hi = lo, trial.score
            lo /= opts.growth
        else:
            return hi

        # bracket-expand: walk up until a point is worse than its predecessor
        mid, f_mid = hi, f_hi
        hi = mid * opts.growth
        for _ in range(opts.max_iter):
            trial = objective(hi)
            if trial.score > f_mid:
                break
            if trial.stats.p_used >= opts.p_max or trial.stats.p_used < hi:
                logger.debug("bracket reached the p ceiling at %g", hi)
                return hi
            mid, f_mid = hi, trial.score
            hi *= opts.growth
        else:
            return mid

        logger.debug("bracketed minimum in [%g, %g]", lo, hi)

        # golden-refine
        a, b = lo, hi
        step = (b - a) / opts.golden
        right = a + step
        left = b - step
        f_left = objective(left).score
        f_right = objective(right).score
        for _ in range(opts.max_iter):
            if f_left <= f_right:
                b = right
                if self._converged(a, b):
                    break
                right, f_right = left, f_left
                step /= opts.golden
                left = b - step
                f_left = objective(left).score
            else:
                a = left
                if self._converged(a, b):
                    break
                left, f_left = right, f_right
                step /= opts.golden
                right = a + step
                f_right = objective(right).score
        return 0.5 * (a + b)

    def _converged(self, a, b):
        err = (b - a) / (a + b)
        return err * err + 1.0 == 1.0 or err <= self.options.tol

    def fit(self, values, channel_weights=None, mode=Mode.GCV, value=None,
            warm_start=False, out=None):
        """
        Fit the smoothing spline to one or more channels of observations.

        Parameters
        ----------
        values : np.ndarray
            Observations at the knots, shape ``(n,)`` or ``(n, K)``.
        channel_weights : np.ndarray, optional
            Positive weight of each channel, ones by default.
        mode : Mode, str or int, optional
            How ``p`` is chosen (default GCV).
        value : float, optional
            ``p`` for FIXED_P, the noise variance for FIXED_VARIANCE, the
            target trace for DIRECT_MSE. Ignored for GCV.
        warm_start : bool, optional
            Start the search from the ``p`` of the previous fit.
        out : np.ndarray, optional
            Array receiving the coefficients. Left untouched if the inputs
            are rejected.

        Returns
        -------
        FitResult
        """
        n = self.n_knots
        y = check_values(values, n)
        wy = check_weights(channel_weights, y.shape[1], "channel weights")
        mode = check_mode(mode, value, n, self.order)
        if out is not None and np.shape(out) != np.shape(values):
            raise ValueError(
                f"out has shape {np.shape(out)}, expected {np.shape(values)}.")
        if out is not None and not np.issubdtype(out.dtype, np.floating):
            raise ValueError(f"out must be a floating array, got {out.dtype}.")

        def objective(p):
            return self.criterion(p, y, wy, mode, value)

        if mode == Mode.FIXED_P:
            p = value
        else:
            if warm_start and self.p_:
                p0 = self.p_
            else:
                p0 = 1.0 / self.scale_
            p = self.minimize(objective, p0)

        score, coef, stats = objective(p)
        logger.debug("fit with p=%g: trace=%g, gcv=%g",
                     stats.p_used, stats.trace, stats.gcv_score)

        if np.ndim(values) == 1:
            coef = coef[:, 0]
        if out is not None:
            out[...] = coef
            coef = out

        self.p_ = stats.p_used
        self.coef_ = coef
        self.stats_ = stats
        return FitResult(coef, stats, self.knots, self.order)


def fit(knots, values, knot_weights=None, channel_weights=None, order=2,
        mode=Mode.GCV, value=None, options=None, out=None):
    """
    Fit a natural smoothing spline of degree ``2 * order - 1``.

    All inputs are checked before anything is computed; the first
    violation raises a `SplineInputError` whose ``code`` names it.

    Parameters
    ----------
    knots : np.ndarray
        Strictly increasing knots, at least ``2 * order`` of them.
    values : np.ndarray
        Observations at the knots, shape ``(n,)`` or ``(n, K)``.
    knot_weights : np.ndarray, optional
        Positive weight of each knot.
    channel_weights : np.ndarray, optional
        Positive weight of each channel.
    order : int, optional
        Spline order ``M`` (default 2).
    mode : Mode, str or int, optional
        How ``p`` is chosen (default GCV).
    value : float, optional
        See `SplineFitter.fit`.
    options : SearchOptions, optional
        Constants of the search.
    out : np.ndarray, optional
        Array receiving the coefficients.

    Returns
    -------
    FitResult
    """
    knots = check_knot_shape(knots)
    n = knots.shape[0]
    check_order_and_size(n, order)
    y = check_values(values, n)
    check_weights(knot_weights, n, "knot weights")
    check_knots(knots)
    check_weights(channel_weights, y.shape[1], "channel weights")
    check_mode(mode, value, n, order)

    fitter = SplineFitter(knots,
                          w=knot_weights,
                          order=order,
                          options=options if options is not None else SearchOptions())
    return fitter.fit(values,
                      channel_weights=channel_weights,
                      mode=mode,
                      value=value,
                      out=out)
