"""
exceptions.py
-------------
Error kinds raised by the scheduling services.

Views translate these into HTTP responses (see HTTP_STATUS); the services
themselves never build responses.
"""


class SchedulingError(Exception):
    """Base class for every scheduling failure."""

    default_message = "Scheduling request failed."

    def __init__(self, message=None):
        super().__init__(message or self.default_message)


class Unauthorized(SchedulingError):
    default_message = "You do not own this business."


class InvalidRange(SchedulingError, ValueError):
    default_message = "End date must be on or after start date."


class InvalidWindow(SchedulingError, ValueError):
    default_message = "Requested time window is not valid."


class InvalidStatus(SchedulingError, ValueError):
    default_message = "Unsupported booking status transition."


class NotFound(SchedulingError):
    default_message = "Referenced record does not exist."


class ConflictError(SchedulingError):
    """
    The slot filled up between listing and committing. Recoverable: the
    caller should re-fetch free slots and pick another time.
    """

    default_message = "Slot no longer available, choose another time."


HTTP_STATUS = {
    Unauthorized: 403,
    InvalidRange: 400,
    InvalidWindow: 400,
    InvalidStatus: 400,
    NotFound: 404,
    ConflictError: 409,
}


def status_for(exc: SchedulingError) -> int:
    for klass in type(exc).__mro__:
        if klass in HTTP_STATUS:
            return HTTP_STATUS[klass]
    return 400
