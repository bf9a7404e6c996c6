"""
Exceptions raised by the activity meter.

Pure functions (features, standardization, asset parsing) raise these;
the pipeline and the capture controller catch them at their boundary
and turn them into a status message for the sink.
"""


class ActivityMeterError(Exception):
    """Base class for every error raised by this package."""


class AssetLoadError(ActivityMeterError):
    """Model, scaler or label list could not be fetched or parsed."""


class PermissionDeniedError(ActivityMeterError):
    """The sensor source refused to start delivering samples."""


class InvalidWindowError(ActivityMeterError):
    """Feature extraction was given an empty or malformed window."""


class DimensionMismatchError(ActivityMeterError):
    """Feature vector and scaler parameters have different lengths."""


class MissingScalerError(ActivityMeterError):
    """Standardization was requested before the scaler was loaded."""


class PredictionRuntimeError(ActivityMeterError):
    """The classifier failed or returned something that is not a distribution."""
