"""Shared enums and value types."""

from dataclasses import dataclass
from enum import Enum
from typing import Literal, Optional

BackoffStrategy = Literal["exponential", "linear", "none"]
JitterMode = Literal["none", "full", "equal", "decorrelated"]
ErrorType = Literal["network", "timeout", "serialization", "http", "unknown"]


class RequestType(str, Enum):
    """HTTP methods the client exposes."""
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


class HttpErrorCategory(str, Enum):
    """Coarse grouping of HTTP error statuses."""
    AUTHENTICATION = "AUTHENTICATION"  # 401, 403
    NOT_FOUND = "NOT_FOUND"  # 404
    RATE_LIMIT = "RATE_LIMIT"  # 429
    VALIDATION = "VALIDATION"  # 400, 422
    CLIENT_ERROR = "CLIENT_ERROR"  # other 4xx
    SERVER_ERROR = "SERVER_ERROR"  # 5xx


@dataclass(frozen=True)
class ClassifiedError:
    """
    Structured description of a transport failure.

    Attributes:
        type (ErrorType): Which branch of the taxonomy matched
        is_retriable (bool): Default retriability for this failure
        status_code (Optional[int]): HTTP status, for http failures
        category (Optional[HttpErrorCategory]): Status category, for http failures
    """
    type: ErrorType
    is_retriable: bool
    status_code: Optional[int] = None
    category: Optional[HttpErrorCategory] = None
