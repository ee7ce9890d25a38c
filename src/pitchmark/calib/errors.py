from __future__ import annotations


class CalibrationError(Exception):
    """Base class for recoverable calibration failures."""


class InsufficientPointsError(CalibrationError, ValueError):
    pass


class SingularSystemError(CalibrationError):
    pass


class NonInvertibleError(CalibrationError):
    pass


class CalibrationUnavailableError(CalibrationError):
    """Raised when a transform is requested before calibration is complete."""
