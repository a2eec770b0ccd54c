"""HTTP client with retries, idempotency keys and typed errors."""

import logging
from dataclasses import replace
from typing import TYPE_CHECKING, Any, Dict, Optional

from .config import Hooks, IdempotencyPolicy, RequestOptions, RetryPolicy
from .executor import DEFAULT_ERROR_MESSAGE_PATH, HttpClientResponse, RequestExecutor
from .idempotency import IdempotencyKeyStore
from .transport import HttpxTransport, Transport
from .types import RequestType

if TYPE_CHECKING:
    from .config import ErrorMessagePath
    from .settings import ClientSettings

logger = logging.getLogger(__name__)


class HttpClient:
    """Resilient HTTP client.

    Example:
        async with HttpClient(
            "https://api.example.com",
            retry=RetryPolicy(max_retries=3, jitter="full"),
            idempotency=IdempotencyPolicy(enabled=True),
        ) as client:
            user = await client.get("/users/:id", path_params={"id": 42})
    """

    def __init__(
        self,
        base_url: str = "",
        name: str = "HttpClient",
        retry: Optional[RetryPolicy] = None,
        idempotency: Optional[IdempotencyPolicy] = None,
        error_message_path: "ErrorMessagePath" = DEFAULT_ERROR_MESSAGE_PATH,
        hooks: Optional[Hooks] = None,
        transport: Optional[Transport] = None,
        timeout_ms: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        debug: bool = False,
        debug_level: str = "normal",
        key_store: Optional[IdempotencyKeyStore] = None,
    ):
        """Initialize the client.

        Args:
            base_url: Base URL every request path is resolved against.
            name: Client name used in error messages and logs.
            retry: Retry policy; defaults to no retries.
            idempotency: Idempotency key policy; disabled by default.
            error_message_path: Dot path or callable extracting messages from
                error responses.
            hooks: Pre-request, post-response and error callbacks.
            transport: Transport to use; defaults to an `HttpxTransport`.
            timeout_ms: Default request timeout in milliseconds.
            headers: Headers sent with every request.
            debug: Log requests and error responses.
            debug_level: "normal" or "verbose".
            key_store: Idempotency key store; one per client by default.
        """
        self.base_url = base_url
        self.name = name
        self.transport = transport or HttpxTransport(base_url=base_url, timeout_ms=timeout_ms)
        self.executor = RequestExecutor(
            self.transport,
            base_url=base_url,
            name=name,
            retry=retry,
            idempotency=idempotency,
            error_message_path=error_message_path,
            hooks=hooks,
            key_store=key_store,
            timeout_ms=timeout_ms,
            headers=headers,
            debug=debug,
            debug_level=debug_level,
        )

    @classmethod
    def from_settings(
        cls, settings: "ClientSettings", configure_logging: bool = False, **kwargs: Any
    ) -> "HttpClient":
        """Build a client from environment-driven settings.

        With `configure_logging`, the package logger is also set up from
        `settings.log_level` and `settings.log_json`.
        """
        if configure_logging:
            settings.configure_logging()
        options: Dict[str, Any] = {
            "base_url": settings.base_url,
            "name": settings.name,
            "retry": settings.retry_policy(),
            "idempotency": settings.idempotency_policy(),
            "error_message_path": settings.error_message_path,
            "timeout_ms": settings.timeout_ms,
            "debug": settings.debug,
            "debug_level": settings.debug_level,
            "key_store": IdempotencyKeyStore(
                max_entries=settings.idempotency_max_entries,
                ttl_seconds=settings.idempotency_ttl_seconds,
            ),
        }
        options.update(kwargs)
        return cls(**options)

    @property
    def retry(self) -> RetryPolicy:
        return self.executor.retry

    @property
    def idempotency(self) -> IdempotencyPolicy:
        return self.executor.idempotency

    @property
    def key_store(self) -> IdempotencyKeyStore:
        return self.executor.key_store

    @property
    def hooks(self) -> Hooks:
        return self.executor.hooks

    @staticmethod
    def _options(options: Optional[RequestOptions], overrides: Dict[str, Any]) -> RequestOptions:
        options = options or RequestOptions()
        return replace(options, **overrides) if overrides else options

    async def request(
        self,
        method: str,
        url: str,
        data: Any = None,
        options: Optional[RequestOptions] = None,
        **overrides: Any,
    ) -> HttpClientResponse:
        """Send a request. Keyword overrides are `RequestOptions` fields."""
        return await self.executor.execute(method, url, data, self._options(options, overrides))

    async def get(self, url: str, options: Optional[RequestOptions] = None, **overrides: Any) -> HttpClientResponse:
        """Send GET request."""
        return await self.request(RequestType.GET.value, url, None, options, **overrides)

    async def post(
        self, url: str, data: Any = None, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> HttpClientResponse:
        """Send POST request."""
        return await self.request(RequestType.POST.value, url, data, options, **overrides)

    async def put(
        self, url: str, data: Any = None, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> HttpClientResponse:
        """Send PUT request."""
        return await self.request(RequestType.PUT.value, url, data, options, **overrides)

    async def patch(
        self, url: str, data: Any = None, options: Optional[RequestOptions] = None, **overrides: Any
    ) -> HttpClientResponse:
        """Send PATCH request."""
        return await self.request(RequestType.PATCH.value, url, data, options, **overrides)

    async def delete(self, url: str, options: Optional[RequestOptions] = None, **overrides: Any) -> HttpClientResponse:
        """Send DELETE request."""
        return await self.request(RequestType.DELETE.value, url, None, options, **overrides)

    async def head(self, url: str, options: Optional[RequestOptions] = None, **overrides: Any) -> HttpClientResponse:
        """Send HEAD request."""
        return await self.request(RequestType.HEAD.value, url, None, options, **overrides)

    async def options(self, url: str, options: Optional[RequestOptions] = None, **overrides: Any) -> HttpClientResponse:
        """Send OPTIONS request."""
        return await self.request(RequestType.OPTIONS.value, url, None, options, **overrides)

    async def aclose(self) -> None:
        """Close the transport."""
        await self.transport.aclose()

    async def __aenter__(self) -> "HttpClient":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.aclose()
