from enum import IntEnum


class ErrorCode(IntEnum):
    OK = 0
    INVALID_ORDER_OR_SIZE = 1
    INVALID_WEIGHTS_OR_KNOTS = 2
    INVALID_MODE_OR_VALUE = 3


class SplineInputError(ValueError):
    """
    Raised when the inputs of a fit are rejected before any computation.
    The ``code`` attribute identifies the first violated condition.
    """
    code = ErrorCode.OK


class InvalidOrderOrSize(SplineInputError):
    code = ErrorCode.INVALID_ORDER_OR_SIZE


class InvalidWeightsOrKnots(SplineInputError):
    code = ErrorCode.INVALID_WEIGHTS_OR_KNOTS


class InvalidModeOrValue(SplineInputError):
    code = ErrorCode.INVALID_MODE_OR_VALUE
