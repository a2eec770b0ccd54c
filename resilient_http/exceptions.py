"""Typed errors raised by the resilient HTTP client."""

import logging
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from .classifier import is_http_status_retriable
from .types import HttpErrorCategory

logger = logging.getLogger(__name__)


@dataclass
class RequestMetadata:
    """Snapshot of the request that produced an error."""

    method: str
    url: str
    base_url: str = ""
    headers: Dict[str, Any] = field(default_factory=dict)
    timeout: Optional[float] = None
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )


@dataclass
class NetworkErrorDetails:
    """Details about a connection-level failure."""

    message: str
    type: str
    code: Optional[str] = None


@dataclass
class ErrorMetadata:
    """Diagnostic metadata attached to every typed error."""

    request: RequestMetadata
    client_name: str
    retry_count: Optional[int] = None
    error: Optional[NetworkErrorDetails] = None

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        if self.error is None:
            data.pop("error")
        if self.retry_count is None:
            data.pop("retry_count")
        return data


@dataclass
class HttpErrorResponse:
    """The error response the server returned."""

    status: int
    status_text: str = ""
    headers: Dict[str, Any] = field(default_factory=dict)
    data: Any = None


class HttpClientError(Exception):
    """Base exception for all errors surfaced by the client."""

    code: str = "HTTP_CLIENT_ERROR"

    def __init__(
        self,
        message: str,
        metadata: ErrorMetadata,
        is_retriable: bool,
        cause: Optional[BaseException] = None,
    ):
        """
        Initialize a typed client error.

        Args:
            message (str): Human-readable error message
            metadata (ErrorMetadata): Request diagnostics
            is_retriable (bool): Whether retrying could succeed
            cause (Optional[BaseException]): The underlying failure
        """
        self.message = message
        self.metadata = metadata
        self.is_retriable = is_retriable
        self.cause = cause

        logger.debug(
            "%s: %s | Request: %s %s",
            self.__class__.__name__,
            message,
            metadata.request.method,
            metadata.request.url,
        )

        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for structured logging."""
        return {
            "error_type": self.__class__.__name__,
            "code": self.code,
            "message": self.message,
            "is_retriable": self.is_retriable,
            "metadata": self.metadata.to_dict(),
        }


class NetworkError(HttpClientError):
    """Raised when connectivity issues prevent a response (DNS, refused, reset)."""

    code = "NETWORK_ERROR"

    def __init__(
        self,
        message: str,
        metadata: ErrorMetadata,
        cause: Optional[BaseException] = None,
        is_retriable: bool = True,
    ):
        super().__init__(message, metadata, is_retriable, cause)


class TimeoutError(HttpClientError):
    """Raised when a request exceeds its timeout."""

    code = "TIMEOUT_ERROR"

    def __init__(
        self,
        message: str,
        metadata: ErrorMetadata,
        cause: Optional[BaseException] = None,
        is_retriable: bool = True,
    ):
        super().__init__(message, metadata, is_retriable, cause)


class SerializationError(HttpClientError):
    """Raised when a request or response body cannot be encoded or decoded."""

    code = "SERIALIZATION_ERROR"

    def __init__(
        self,
        message: str,
        metadata: ErrorMetadata,
        cause: Optional[BaseException] = None,
        is_retriable: bool = False,
    ):
        super().__init__(message, metadata, is_retriable, cause)


class HttpError(HttpClientError):
    """Raised when the server responds with a 4xx or 5xx status."""

    code = "HTTP_ERROR"

    def __init__(
        self,
        message: str,
        status: int,
        category: HttpErrorCategory,
        status_text: str,
        response: HttpErrorResponse,
        metadata: ErrorMetadata,
        cause: Optional[BaseException] = None,
        is_retriable: Optional[bool] = None,
    ):
        self.status = status
        self.category = category
        self.status_text = status_text
        self.response = response

        if is_retriable is None:
            is_retriable = is_http_status_retriable(status, category)

        super().__init__(message, metadata, is_retriable, cause)

    def to_dict(self) -> Dict[str, Any]:
        data = super().to_dict()
        data.update({
            "status": self.status,
            "category": self.category.value,
            "status_text": self.status_text,
            "response": asdict(self.response),
        })
        return data


class PathParameterError(ValueError):
    """Raised when a `:name` placeholder in a URL has no value."""

    def __init__(self, name: str, url: str):
        self.name = name
        self.url = url
        super().__init__(f"Missing value for path parameter ':{name}' in '{url}'")


class RequestSignatureError(ValueError):
    """Raised when a request body cannot be serialized deterministically."""
