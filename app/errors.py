"""Domain errors raised by services and mapped to HTTP responses in main.py."""


class PinwaveError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    public_message = "Internal server error"

    @property
    def detail(self) -> str:
        return self.public_message


class ValidationError(PinwaveError):
    """Missing or malformed client input. Never retried."""

    status_code = 400

    @property
    def detail(self) -> str:
        return str(self) or "Invalid request"


class PermissionDeniedError(PinwaveError):
    """User may not upload. Carries the reason string."""

    status_code = 403

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason

    @property
    def detail(self) -> str:
        return self.reason


class NotFoundError(PinwaveError):
    """Unknown permlink or a record that is no longer published."""

    status_code = 404
    public_message = "Audio not found"


class ContentUnavailableError(PinwaveError):
    """Every gateway candidate failed.

    ``attempts`` holds ``(url, reason)`` pairs for diagnostics only.
    """

    status_code = 502
    public_message = "Audio content unavailable"

    def __init__(self, attempts: list[tuple[str, str]] | None = None) -> None:
        super().__init__(self.public_message)
        self.attempts = attempts or []


class StoreError(PinwaveError):
    """Persistent store or content store failure."""

    status_code = 500
    public_message = "Storage operation failed"


class PermlinkExhaustedError(StoreError):
    """Could not find a free permlink within the retry budget."""


class InvalidTransitionError(PinwaveError):
    """Requested lifecycle change is not allowed from the current state."""

    status_code = 409

    @property
    def detail(self) -> str:
        return str(self)
