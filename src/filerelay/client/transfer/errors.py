"""Classification of transfer failures.

Every failure seen by the upload and download orchestrators goes through
classify(), so both paths share one taxonomy and one retryability rule.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

import httpx

from filerelay.client.api import APIError, response_detail
from filerelay.client.transfer.types import PresignError, TransferCancelledError

RETRYABLE_STATUSES = frozenset({408, 429, 500, 502, 503, 504})


class ErrorKind(str, Enum):
    """Closed set of failure kinds reported to callers."""

    VALIDATION = "validation"
    NETWORK = "network"
    TIMEOUT = "timeout"
    UNAUTHORIZED = "unauthorized"
    FORBIDDEN = "forbidden"
    NOT_FOUND = "not_found"
    PAYLOAD_TOO_LARGE = "payload_too_large"
    UNSUPPORTED_TYPE = "unsupported_type"
    SERVER_ERROR = "server_error"
    CANCELED = "canceled"
    UNKNOWN = "unknown"


STATUS_KINDS: dict[int, ErrorKind] = {
    400: ErrorKind.VALIDATION,
    401: ErrorKind.UNAUTHORIZED,
    403: ErrorKind.FORBIDDEN,
    404: ErrorKind.NOT_FOUND,
    408: ErrorKind.TIMEOUT,
    413: ErrorKind.PAYLOAD_TOO_LARGE,
    415: ErrorKind.UNSUPPORTED_TYPE,
}

STATUS_MESSAGES: dict[int, str] = {
    400: "Invalid request.",
    401: "Authentication required.",
    403: "You do not have permission to access this file.",
    404: "File not found.",
    413: "File is too large.",
    415: "Unsupported file type.",
    500: "A server error occurred.",
    503: "Service temporarily unavailable.",
}

UNKNOWN_MESSAGE = "An unknown error occurred."


@dataclass(frozen=True)
class ErrorClass:
    """A classified failure.

    Attributes:
        kind: Failure kind.
        retryable: Whether retrying the same operation may succeed.
        status_code: HTTP status, when the failure came from a response.
        detail: Message supplied by the server or by our own error.
    """

    kind: ErrorKind
    retryable: bool = False
    status_code: int | None = None
    detail: str | None = None


def classify_status(status: int, detail: str | None = None) -> ErrorClass:
    """Classify an HTTP status code."""
    if status in STATUS_KINDS:
        kind = STATUS_KINDS[status]
    elif status >= 500:
        kind = ErrorKind.SERVER_ERROR
    else:
        kind = ErrorKind.UNKNOWN
    return ErrorClass(
        kind=kind,
        retryable=status in RETRYABLE_STATUSES,
        status_code=status,
        detail=detail,
    )


def classify(error: object) -> ErrorClass:
    """Map a transport error, HTTP failure or response into the taxonomy.

    Args:
        error: An exception or an httpx.Response.

    Returns:
        The ErrorClass for the failure.
    """
    if isinstance(error, TransferCancelledError):
        return ErrorClass(ErrorKind.CANCELED)
    if isinstance(error, PresignError):
        return ErrorClass(ErrorKind.SERVER_ERROR, detail=str(error))
    if isinstance(error, (httpx.TimeoutException, TimeoutError)):
        return ErrorClass(ErrorKind.TIMEOUT, retryable=True)
    if isinstance(error, httpx.TransportError):
        return ErrorClass(ErrorKind.NETWORK, retryable=True)
    if isinstance(error, httpx.HTTPStatusError):
        return classify_status(error.response.status_code, response_detail(error.response))
    if isinstance(error, httpx.Response):
        return classify_status(error.status_code, response_detail(error))
    if isinstance(error, APIError) and error.status_code is not None:
        return classify_status(error.status_code, error.detail)
    return ErrorClass(ErrorKind.UNKNOWN)


def is_retryable_error(error: object) -> bool:
    """Check whether a failure is worth retrying."""
    return classify(error).retryable


def status_message(status: int | None) -> str:
    """Get the generic user message for an HTTP status."""
    if status is None:
        return UNKNOWN_MESSAGE
    return STATUS_MESSAGES.get(status, UNKNOWN_MESSAGE)


def failure_message(error: ErrorClass, operation: str) -> str:
    """Build the user-facing message for a failed upload or download.

    Args:
        error: Classified failure.
        operation: "upload" or "download".

    Returns:
        A human-readable message; raw transport errors are never included.
    """
    kind = error.kind
    if kind is ErrorKind.CANCELED:
        return f"{operation.capitalize()} canceled."
    if kind is ErrorKind.TIMEOUT:
        return f"File {operation} timed out."
    if kind is ErrorKind.NETWORK:
        return "Network error. Please check your connection."
    if kind is ErrorKind.VALIDATION:
        return error.detail or STATUS_MESSAGES[400]
    if kind in STATUS_KINDS.values():
        return STATUS_MESSAGES.get(error.status_code or 0, UNKNOWN_MESSAGE)
    if kind is ErrorKind.SERVER_ERROR:
        if error.status_code is None:
            return error.detail or STATUS_MESSAGES[500]
        return STATUS_MESSAGES.get(error.status_code, STATUS_MESSAGES[500])
    if error.status_code is not None:
        return error.detail or f"File {operation} failed."
    return UNKNOWN_MESSAGE
