"""Error taxonomy for console operations.

Mixed per-item results of a bulk operation are not errors: they come back as
regular results carrying success and failure counts.
"""


class ConsoleError(Exception):
    """Base class for errors raised by the console core."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InputError(ConsoleError):
    """The operator asked for something that cannot be attempted."""


class PermissionDeniedError(ConsoleError):
    """The caller's capabilities do not allow the operation."""


class OperationInProgressError(ConsoleError):
    """An operation of the same kind is already in flight."""


class GatewayError(ConsoleError):
    """Base class for failures reported by the activity API."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class TransportError(GatewayError):
    """Network failure or timeout while talking to the activity API."""


class AuthError(GatewayError):
    """The activity API rejected the session credentials."""


class NotFoundError(GatewayError):
    """The requested activity, participant or picture does not exist."""


class RequestRejectedError(GatewayError):
    """The activity API refused the request as invalid."""


class ServerError(GatewayError):
    """The activity API failed while handling the request."""
