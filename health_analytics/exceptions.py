"""
Error taxonomy shared by repositories, consumers, the aggregator and routes.

Routes translate these into HTTP responses; consumers decide per class
whether a failure is local (log and move on) or fatal to the loop.
"""


class HealthDataError(Exception):
    """Base exception for health data operations."""

    code = "internal_error"

    def __init__(self, message: str, operation: str = "unknown"):
        super().__init__(message)
        self.operation = operation


class NotFound(HealthDataError):
    """Requested record is absent, or an update/delete matched nothing."""

    code = "not_found"


class AlreadyExists(HealthDataError):
    """A create supplied an id that is already stored."""

    code = "already_exists"


class InvalidInput(HealthDataError):
    """Malformed caller-supplied input."""

    code = "invalid_input"


class InvalidIdentity(InvalidInput):
    code = "invalid_identity"


class InvalidDateRange(InvalidInput):
    code = "invalid_date_range"


class InvalidFilter(InvalidInput):
    code = "invalid_filter"


class StoreUnavailable(HealthDataError):
    """Transport-level failure talking to the document store."""

    code = "store_unavailable"


class Cancelled(HealthDataError):
    """The caller's deadline expired before the store answered."""

    code = "cancelled"


class DecodeFailure(HealthDataError):
    """A payload could not be parsed into the expected domain shape."""

    code = "decode_failure"

    def __init__(self, message: str, operation: str = "decode"):
        super().__init__(message, operation=operation)


class BusFailure(HealthDataError):
    """Fetch or commit against the message bus failed."""

    code = "bus_failure"

    def __init__(self, message: str, operation: str = "bus"):
        super().__init__(message, operation=operation)


class NotificationError(HealthDataError):
    code = "notification_failed"
