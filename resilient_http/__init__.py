"""Resilient HTTP client: retries, backoff, typed errors and idempotency keys."""

from .backoff import compute_delay, parse_retry_after
from .classifier import (
    classify,
    classify_http_status,
    classify_network_error_type,
    is_http_status_retriable,
)
from .client import HttpClient
from .config import (
    Hooks,
    IdempotencyOverride,
    IdempotencyPolicy,
    RequestOptions,
    RetryOverride,
    RetryPolicy,
)
from .exceptions import (
    # Typed errors
    HttpClientError,
    HttpError,
    NetworkError,
    SerializationError,
    TimeoutError,

    # Configuration errors
    PathParameterError,
    RequestSignatureError,

    # Metadata
    ErrorMetadata,
    HttpErrorResponse,
    NetworkErrorDetails,
    RequestMetadata,
)
from .executor import HttpClientResponse, RequestExecutor
from .idempotency import IdempotencyKeyStore, generate_idempotency_key, signature_of
from .logging_config import setup_logging
from .paths import resolve_path
from .retry import RetryManager
from .settings import ClientSettings, get_settings
from .transport import (
    HttpxTransport,
    Transport,
    TransportFailure,
    TransportRequest,
    TransportResponse,
)
from .types import ClassifiedError, HttpErrorCategory, RequestType

__all__ = [
    # Client
    "HttpClient",
    "HttpClientResponse",
    "RequestExecutor",
    "RequestOptions",
    "Hooks",

    # Configuration
    "RetryPolicy",
    "RetryOverride",
    "IdempotencyPolicy",
    "IdempotencyOverride",
    "ClientSettings",
    "get_settings",
    "setup_logging",

    # Retry and backoff
    "RetryManager",
    "compute_delay",
    "parse_retry_after",

    # Classification
    "classify",
    "classify_http_status",
    "classify_network_error_type",
    "is_http_status_retriable",
    "ClassifiedError",
    "HttpErrorCategory",
    "RequestType",

    # Idempotency
    "IdempotencyKeyStore",
    "generate_idempotency_key",
    "signature_of",
    "resolve_path",

    # Transport
    "Transport",
    "HttpxTransport",
    "TransportRequest",
    "TransportResponse",
    "TransportFailure",

    # Errors
    "HttpClientError",
    "HttpError",
    "NetworkError",
    "SerializationError",
    "TimeoutError",
    "PathParameterError",
    "RequestSignatureError",
    "ErrorMetadata",
    "HttpErrorResponse",
    "NetworkErrorDetails",
    "RequestMetadata",
]
