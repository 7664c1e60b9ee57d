class ScreeningError(Exception):
    """Base class for every error the screening core raises on purpose."""

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message


class ValidationError(ScreeningError):
    """Bad input (file type/size, missing fields, foreign applicant ids)."""


class NotFound(ScreeningError):
    """Unknown id, or an id outside the caller's scope."""


class Unauthorized(ScreeningError):
    """No usable caller identity."""


class AlreadyInProgress(ScreeningError):
    """The applicant already has a screening in status Processing."""


class InvalidTransition(ScreeningError):
    """A row was not in the state a transition requires."""


class UnsupportedFormat(ScreeningError):
    pass


class ExtractionFailed(ScreeningError):
    pass


class ScoringFailure(ScreeningError):
    retriable = False


class TransientFailure(ScoringFailure):
    """Network error, timeout or 5xx-like answer; safe to retry later."""
    retriable = True


class PermanentFailure(ScoringFailure):
    """Malformed input, policy rejection or unparsable answer."""
