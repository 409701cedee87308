# sarima_forecaster_src/errors.py

"""
Error hierarchy for the SARIMA forecaster.

All errors propagate to the caller. The only failures absorbed inside the
package are per-candidate fit failures during the order search, which are
recorded in the search table instead of being raised.
"""


class ForecasterError(Exception):
    """Base class for all forecaster errors."""


class DomainError(ForecasterError, ValueError):
    """A value lies outside the domain of a transform (e.g. log of a non-positive value)."""


class NoConvergenceError(ForecasterError, RuntimeError):
    """No candidate SARIMA fit converged to a usable model."""


class LengthMismatchError(ForecasterError, ValueError):
    """Forecast horizon and actual series length differ."""


class InputFormatError(ForecasterError, ValueError):
    """Malformed input file or row."""


class ForecastScaleError(ForecasterError, ValueError):
    """A forecast is on the transformed scale where the original scale is required."""


class ConfigurationError(ForecasterError):
    """Invalid or unreadable configuration."""
