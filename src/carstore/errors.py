"""
Error taxonomy for carstore.

Every failure raised by the service carries a stable ``ErrorKind`` no matter
how deep in the call stack it started. The transport layer converts it into
exactly one HTTP status and a stable message with ``error_response()``.

Internal detail (driver messages, upstream bodies) stays on the exception
for the operator log and never reaches the response body.
"""

from enum import Enum


class ErrorKind(str, Enum):
    INVALID_ARGUMENT = "invalid_argument"
    NOT_FOUND = "not_found"
    QUERY_BUILD_ERROR = "query_build_error"
    UPSTREAM_FAILURE = "upstream_failure"
    STORE_FAILURE = "store_failure"
    INTERNAL = "internal"


# kind -> (HTTP status, caller-visible message)
STATUS_MAP: dict[ErrorKind, tuple[int, str]] = {
    ErrorKind.INVALID_ARGUMENT: (400, "invalid argument"),
    ErrorKind.NOT_FOUND: (404, "car not found"),
    ErrorKind.QUERY_BUILD_ERROR: (500, "internal error"),
    ErrorKind.UPSTREAM_FAILURE: (502, "car info service unavailable"),
    ErrorKind.STORE_FAILURE: (503, "storage unavailable"),
    ErrorKind.INTERNAL: (500, "internal error"),
}


class CarstoreError(Exception):
    """
    Base class for classified failures.

    Args:
        message: Human-readable description, logged for operators
        operation: Tag of the operation that failed (e.g. "update_one")
    """

    kind = ErrorKind.INTERNAL

    def __init__(self, message: str, operation: str = None):
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.message!r}, operation={self.operation!r})"


class InvalidArgument(CarstoreError):
    """Malformed or missing required input."""

    kind = ErrorKind.INVALID_ARGUMENT


class NotFound(CarstoreError):
    """The operation targeted a car that does not exist."""

    kind = ErrorKind.NOT_FOUND


class QueryBuildError(CarstoreError):
    """A query could not be constructed from otherwise valid input."""

    kind = ErrorKind.QUERY_BUILD_ERROR


class UpstreamFailure(CarstoreError):
    """The external car info service failed."""

    kind = ErrorKind.UPSTREAM_FAILURE


class StoreFailure(CarstoreError):
    """The database failed."""

    kind = ErrorKind.STORE_FAILURE


class Internal(CarstoreError):
    """Unclassified failure."""

    kind = ErrorKind.INTERNAL


def classify(exc: BaseException) -> ErrorKind:
    """Return the kind of an exception, falling back to INTERNAL."""
    if isinstance(exc, CarstoreError) and exc.kind in STATUS_MAP:
        return exc.kind
    return ErrorKind.INTERNAL


def error_response(exc: BaseException) -> tuple[int, dict]:
    """
    Map an exception to an HTTP status and JSON body.

    InvalidArgument messages are authored by this package and describe what
    the caller got wrong, so they are returned as ``detail``. Every other
    kind returns only its stable message.

    Returns:
        Tuple of (status code, body dict)
    """
    kind = classify(exc)
    status, message = STATUS_MAP[kind]
    body = {"error": kind.value, "message": message}
    if kind is ErrorKind.INVALID_ARGUMENT:
        body["detail"] = exc.message
    return status, body
