"""
errors.py — failure taxonomy for the scan / scoring flow

None of these are fatal: every one of them routes the user to a fallback
path that still produces a displayable result.
"""


class BioAgeError(Exception):
    """Base class for all errors raised by this package."""


class ModelLoadFailure(BioAgeError):
    """A model bundle could not be loaded. Routes the scan to upload fallback."""


class ModelNotReady(BioAgeError):
    """Inference was requested before the models finished loading."""


class CameraError(BioAgeError):
    """Camera could not be used. Retryable from upload fallback."""


class CameraPermissionDenied(CameraError):
    pass


class CameraNotFound(CameraError):
    pass


class InvalidSurveyInput(BioAgeError, ValueError):
    """Rejected questionnaire input. The message is shown to the user as-is."""


class InvalidImage(BioAgeError, ValueError):
    """Uploaded payload is not a decodable image."""


class InvalidScanTransition(BioAgeError):
    """Operation is not allowed in the scan controller's current phase."""
