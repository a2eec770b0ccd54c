"""Map raw transport failures onto the error taxonomy.

Everything here is pure: the same failure always classifies the same way,
so the result can feed both retry decisions and the typed error raised to
the caller.
"""

from typing import Optional

from .transport import TransportFailure
from .types import ClassifiedError, HttpErrorCategory

TIMEOUT_CODES = frozenset({"ETIMEDOUT", "ESOCKETTIMEDOUT"})
TIMEOUT_PHRASES = ("timeout", "timed out", "time out")

SERIALIZATION_PHRASES = (
    "json",
    "parse",
    "serialize",
    "deserialize",
    "syntax error",
    "unexpected token",
)
SERIALIZATION_KINDS = frozenset({
    "SyntaxError",
    "TypeError",
    "JSONDecodeError",
    "UnicodeDecodeError",
    "UnicodeEncodeError",
})

NETWORK_ERROR_TYPES = {
    "ECONNREFUSED": "connection_refused",
    "ENOTFOUND": "dns_lookup_failed",
    "ECONNRESET": "connection_reset",
    "ECONNABORTED": "connection_aborted",
    "ENETUNREACH": "network_unreachable",
    "EHOSTUNREACH": "host_unreachable",
}


def _message_of(failure: TransportFailure) -> str:
    return (failure.message or "").lower()


def classify_http_status(status: int) -> HttpErrorCategory:
    """Classify an HTTP status code into a category.

    Specific statuses are checked before the generic 4xx/5xx ranges, and
    anything outside 400-599 falls back to CLIENT_ERROR.
    """
    if status in (401, 403):
        return HttpErrorCategory.AUTHENTICATION
    if status == 404:
        return HttpErrorCategory.NOT_FOUND
    if status == 429:
        return HttpErrorCategory.RATE_LIMIT
    if status in (400, 422):
        return HttpErrorCategory.VALIDATION
    if 400 <= status < 500:
        return HttpErrorCategory.CLIENT_ERROR
    if 500 <= status < 600:
        return HttpErrorCategory.SERVER_ERROR
    return HttpErrorCategory.CLIENT_ERROR


def is_http_status_retriable(status: int, category: HttpErrorCategory) -> bool:
    """Server errors, rate limits and 408 are retriable by default."""
    if category in (HttpErrorCategory.SERVER_ERROR, HttpErrorCategory.RATE_LIMIT):
        return True
    return status == 408


def is_timeout_failure(failure: TransportFailure) -> bool:
    if failure.code in TIMEOUT_CODES:
        return True
    message = _message_of(failure)
    if any(phrase in message for phrase in TIMEOUT_PHRASES):
        return True
    return failure.is_timeout or failure.cancelled


def is_serialization_failure(failure: TransportFailure) -> bool:
    # An error response whose body merely looks like JSON is an http failure.
    if failure.response is not None:
        return False
    message = _message_of(failure)
    if any(phrase in message for phrase in SERIALIZATION_PHRASES):
        return True
    return failure.kind in SERIALIZATION_KINDS


def classify_network_error_type(failure: TransportFailure) -> str:
    """Short label describing a connection-level failure, for diagnostics."""
    label: Optional[str] = NETWORK_ERROR_TYPES.get(failure.code or "")
    if label:
        return label
    if is_timeout_failure(failure):
        return "request_timeout"
    return "network_error"


def classify(failure: TransportFailure) -> ClassifiedError:
    """
    Classify a transport failure. First match wins:

    1. timeout
    2. serialization (only when no response was received)
    3. http (a response was received)
    4. network (a request was attempted, no response)
    5. unknown
    """
    if is_timeout_failure(failure):
        return ClassifiedError(type="timeout", is_retriable=True)

    if is_serialization_failure(failure):
        return ClassifiedError(type="serialization", is_retriable=False)

    if failure.response is not None:
        status = failure.response.status
        category = classify_http_status(status)
        return ClassifiedError(
            type="http",
            is_retriable=is_http_status_retriable(status, category),
            status_code=status,
            category=category,
        )

    if failure.request is not None:
        return ClassifiedError(type="network", is_retriable=True)

    return ClassifiedError(type="unknown", is_retriable=False)
