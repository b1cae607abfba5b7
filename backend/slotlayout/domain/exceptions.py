from typing import Iterable, List


class SlotLayoutError(Exception):
    """Base class for errors surfaced by the slot layout core."""

    status_code = 500
    error = "SlotLayoutError"


class ValidationFailed(SlotLayoutError):
    status_code = 400
    error = "ValidationFailed"

    def __init__(self, message: str, errors: Iterable[str] = ()):
        super().__init__(message)
        self.errors: List[str] = list(errors)


class NotFoundError(SlotLayoutError):
    status_code = 404
    error = "NotFound"


class ConflictError(SlotLayoutError):
    """
    Optimistic concurrency violation.

    The caller must refetch the current head and retry; nothing is merged.
    """

    status_code = 409
    error = "Conflict"


class InvalidTransition(ConflictError):
    error = "InvalidTransition"
