"""Retry, idempotency and per-request configuration."""

from dataclasses import dataclass, field, fields, replace
from typing import (
    TYPE_CHECKING,
    Any,
    Awaitable,
    Callable,
    Dict,
    FrozenSet,
    Iterable,
    Mapping,
    Optional,
    Union,
)

from .transport import TransportFailure, TransportRequest
from .types import BackoffStrategy, ClassifiedError, JitterMode

if TYPE_CHECKING:
    from .exceptions import HttpClientError, HttpErrorResponse
    from .executor import HttpClientResponse

BACKOFF_STRATEGIES = ("exponential", "linear", "none")
JITTER_MODES = ("none", "full", "equal", "decorrelated")
DEFAULT_IDEMPOTENT_METHODS = frozenset({"POST", "PATCH"})

# (request, classified error) -> True/False to force a decision, None for the default
EnableRetry = Union[bool, Callable[[TransportRequest, ClassifiedError], Optional[bool]]]
OnRetry = Callable[[TransportRequest, TransportFailure, int], None]
# (attempt, failure, request) -> delay in milliseconds
RetryDelay = Callable[[int, TransportFailure, TransportRequest], float]
ErrorMessagePath = Union[str, Callable[["HttpErrorResponse"], Optional[str]]]


def _apply_override(base: Any, override: Any) -> Any:
    """Shallow merge: every non-None field of `override` replaces the base value."""
    if override is None:
        return base
    if isinstance(override, Mapping):
        values = dict(override)
    else:
        values = {f.name: getattr(override, f.name) for f in fields(override)}
    changes = {name: value for name, value in values.items() if value is not None}
    return replace(base, **changes) if changes else base


@dataclass
class RetryOverride:
    """Per-request retry settings; None fields keep the client default."""
    max_retries: Optional[int] = None
    backoff: Optional[BackoffStrategy] = None
    delay_factor_ms: Optional[float] = None
    jitter: Optional[JitterMode] = None
    enable_retry: Optional[EnableRetry] = None
    on_retry: Optional[OnRetry] = None
    retry_delay: Optional[RetryDelay] = None


@dataclass
class RetryPolicy:
    """Configuration for retry behavior with backoff."""

    max_retries: int = 0
    backoff: BackoffStrategy = "exponential"
    delay_factor_ms: float = 500
    jitter: JitterMode = "none"

    # Returning a bool overrides the classifier's default retriability
    enable_retry: Optional[EnableRetry] = None

    # Called before each retry wait
    on_retry: Optional[OnRetry] = None

    # Replaces the backoff calculation entirely when set
    retry_delay: Optional[RetryDelay] = None

    def __post_init__(self):
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.delay_factor_ms <= 0:
            raise ValueError(f"delay_factor_ms must be positive, got {self.delay_factor_ms}")
        if self.backoff not in BACKOFF_STRATEGIES:
            raise ValueError(f"Unknown backoff strategy: {self.backoff!r}")
        if self.jitter not in JITTER_MODES:
            raise ValueError(f"Unknown jitter mode: {self.jitter!r}")

    def merged(self, override: Union[RetryOverride, Mapping[str, Any], None]) -> "RetryPolicy":
        """Create a new policy with the override's fields applied."""
        return _apply_override(self, override)


@dataclass
class IdempotencyOverride:
    """Per-request idempotency settings; None fields keep the client default."""
    enabled: Optional[bool] = None
    methods: Optional[Iterable[str]] = None
    header_name: Optional[str] = None
    key_generator: Optional[Callable[[], str]] = None


@dataclass
class IdempotencyPolicy:
    """When and how idempotency keys are attached to requests."""

    enabled: bool = False
    methods: FrozenSet[str] = DEFAULT_IDEMPOTENT_METHODS
    header_name: str = "Idempotency-Key"
    key_generator: Optional[Callable[[], str]] = None

    def __post_init__(self):
        self.methods = frozenset(str(m).upper() for m in self.methods)

    def applies_to(self, method: str) -> bool:
        return self.enabled and method.upper() in self.methods

    def merged(
        self, override: Union[IdempotencyOverride, Mapping[str, Any], None]
    ) -> "IdempotencyPolicy":
        """Create a new policy with the override's fields applied."""
        return _apply_override(self, override)


MaybeAwaitable = Union[Any, Awaitable[Any]]


@dataclass
class Hooks:
    """
    Callbacks around each request. Each may be a plain function or a coroutine.

    Attributes:
        pre_request: Receives the outgoing request; may mutate it or return a
            replacement.
        post_response: Receives the response; may mutate it or return a
            replacement.
        error_handler: Receives the typed error, the raw failure and the
            request. It may raise its own exception; if it returns, the typed
            error is raised.
    """
    pre_request: Optional[Callable[[TransportRequest], MaybeAwaitable]] = None
    post_response: Optional[Callable[["HttpClientResponse"], MaybeAwaitable]] = None
    error_handler: Optional[
        Callable[["HttpClientError", TransportFailure, TransportRequest], MaybeAwaitable]
    ] = None


@dataclass
class RequestOptions:
    """Per-request configuration surface."""

    headers: Dict[str, str] = field(default_factory=dict)
    params: Optional[Dict[str, Any]] = None
    path_params: Optional[Mapping[str, Any]] = None
    timeout_ms: Optional[float] = None
    retry: Optional[Union[RetryOverride, Mapping[str, Any]]] = None
    idempotency: Optional[Union[IdempotencyOverride, Mapping[str, Any]]] = None
    # Used verbatim and never cached
    idempotency_key: Optional[str] = None
    error_message_path: Optional[ErrorMessagePath] = None
