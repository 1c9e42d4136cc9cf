# domain/errors.py - Error kinds shared by the engine and the repository
#
# Pure functions raise these. CalibrationRepository catches the expected ones
# and hands them back inside a Result so callers can show inline messages.


class CalibrationError(Exception):
    """Base class for every expected engine error."""


class ValidationError(CalibrationError, ValueError):
    """Empty required field, non-numeric value or malformed range."""


class InvalidRange(ValidationError):
    """Degenerate (min == max) or non-finite interpolation range."""

    def __init__(self, message: str, reason: str | None = None):
        super().__init__(message)
        self.reason = reason


class NotFound(CalibrationError, LookupError):
    """Operation referenced an unknown job, device or point id."""

    def __init__(self, kind: str, entity_id: str):
        super().__init__(f"{kind} not found: {entity_id}")
        self.kind = kind
        self.entity_id = entity_id


class PersistenceFailure(CalibrationError):
    """Write-through to the key/value store did not succeed."""
