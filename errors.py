"""Errors raised by the ride request store and lifecycle service.

Each error carries the HTTP status code the API answers with, so handlers
never have to map exception types by hand.
"""


class LifecycleError(Exception):
    """Base class for every ride request error."""

    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidArgument(LifecycleError):
    """Raised when a required field is missing or malformed."""

    status_code = 400


class NotFound(LifecycleError):
    """Raised when no ride request exists for the given rider id."""

    status_code = 404


class Conflict(LifecycleError):
    """Raised when a transition is attempted from the wrong status."""

    status_code = 409

    def __init__(self, message: str, current_status=None):
        super().__init__(message)
        self.current_status = current_status

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["status"] = self.current_status
        return out


class StoreUnavailable(LifecycleError):
    """Raised when the underlying database call fails."""

    status_code = 500

    def __init__(self, message: str, details: str = ""):
        super().__init__(message)
        self.details = details

    def to_dict(self) -> dict:
        out = super().to_dict()
        out["details"] = self.details
        return out

    def with_message(self, message: str) -> "StoreUnavailable":
        """Same failure, reported under the message of the operation that hit it."""
        return type(self)(message, details=self.details)


class StoreTimeout(StoreUnavailable):
    """Raised when a store operation could not start within its time bound."""

    status_code = 504
