"""Exceptions raised by batch_regression."""


class RegressionError(ValueError):
    """Base class for all errors raised by this package."""


class InvalidInput(RegressionError):
    """Raised for mismatched, empty or non-numeric observations and malformed arguments."""


class InsufficientData(RegressionError):
    """Raised when a single observation is passed to the regressor (a line needs two points)."""


class InconsistentGroup(RegressionError):
    """Raised when members of one group do not share the same field set or column lengths differ."""
