"""
Natural smoothing splines with the smoothing parameter chosen by
generalized cross-validation.
"""

from .banded import BandedMatrix, band_factor, band_solve
from .basis import natural_basis
from .penalty import natural_penalty
from .trace import inverse_bands, residual_trace, smoother_trace
from .fitter import (Mode,
                     SearchOptions,
                     FitStats,
                     FitResult,
                     SplineFitter,
                     fit)
from .spline import NaturalSpline, evaluate, locate_interval
from .estimator import SmoothingSpline
from .errors import (ErrorCode,
                     SplineInputError,
                     InvalidOrderOrSize,
                     InvalidWeightsOrKnots,
                     InvalidModeOrValue)

__version__ = "0.1.0"
