"""Transport boundary: request/response descriptors and the httpx adapter."""

import errno
import json
from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol

import httpx

_DNS_PHRASES = (
    "name or service not known",
    "nodename nor servname",
    "getaddrinfo",
    "name resolution",
)


@dataclass
class TransportRequest:
    """Everything the transport needs to dispatch one HTTP request."""

    method: str
    url: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None
    params: Optional[Dict[str, Any]] = None
    timeout_ms: Optional[float] = None
    base_url: str = ""


@dataclass
class TransportResponse:
    """A response as seen by the client, body already decoded."""

    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    body: Any = None


class TransportFailure(Exception):
    """
    Raw failure raised by a transport.

    Every field is optional. A `response` means the server answered; a
    `request` without a `response` means the request was attempted but no
    reply arrived; neither means the request never left the client.
    """

    def __init__(
        self,
        message: str = "",
        code: Optional[str] = None,
        response: Optional[TransportResponse] = None,
        request: Optional[TransportRequest] = None,
        kind: Optional[str] = None,
        is_timeout: bool = False,
        cancelled: bool = False,
    ):
        self.message = message
        self.code = code
        self.response = response
        self.request = request
        self.kind = kind
        self.is_timeout = is_timeout
        self.cancelled = cancelled
        super().__init__(message)

    @classmethod
    def from_exception(
        cls, exc: Exception, request: Optional[TransportRequest] = None
    ) -> "TransportFailure":
        """Wrap an arbitrary exception raised by a custom transport."""
        if isinstance(exc, cls):
            return exc

        message = str(exc) or type(exc).__name__
        if isinstance(exc, TimeoutError):
            failure = cls(message, code="ETIMEDOUT", request=request, is_timeout=True)
        elif isinstance(exc, OSError):
            code = errno.errorcode.get(exc.errno) if exc.errno else None
            failure = cls(message, code=code, request=request, kind=type(exc).__name__)
        else:
            failure = cls(message, kind=type(exc).__name__)
        failure.__cause__ = exc
        return failure

    def __repr__(self) -> str:
        status = self.response.status if self.response is not None else None
        return (
            f"TransportFailure(message={self.message!r}, code={self.code!r}, "
            f"status={status!r}, kind={self.kind!r})"
        )


class Transport(Protocol):
    """Anything that can send a `TransportRequest`."""

    async def send(self, request: TransportRequest) -> TransportResponse:
        ...

    async def aclose(self) -> None:
        ...


class HttpxTransport:
    """Transport backed by `httpx.AsyncClient`.

    Raises `TransportFailure` for every failure: error statuses carry the
    response, connection problems carry only the request, and encoding
    problems carry neither.
    """

    def __init__(
        self,
        base_url: str = "",
        timeout_ms: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        client: Optional[httpx.AsyncClient] = None,
        connect_timeout: float = 30.0,
        read_timeout: float = 60.0,
        pool_timeout: float = 120.0,
        max_connections: int = 10,
        max_keepalive_connections: int = 5,
        keepalive_expiry: float = 30.0,
    ):
        self.base_url = base_url
        self.timeout_ms = timeout_ms
        self.headers = headers or {}
        self.connect_timeout = connect_timeout
        self.read_timeout = read_timeout
        self.pool_timeout = pool_timeout
        self.max_connections = max_connections
        self.max_keepalive_connections = max_keepalive_connections
        self.keepalive_expiry = keepalive_expiry
        self._client = client

    def _default_timeout(self) -> httpx.Timeout:
        """`timeout_ms` when set, else separate connect/read/pool limits."""
        if self.timeout_ms:
            return httpx.Timeout(self.timeout_ms / 1000)
        return httpx.Timeout(
            connect=self.connect_timeout,
            read=self.read_timeout,
            write=self.read_timeout,  # Use read timeout for write
            pool=self.pool_timeout,
        )

    def _get_client(self) -> httpx.AsyncClient:
        """Get or create the underlying async client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._default_timeout(),
                limits=httpx.Limits(
                    max_connections=self.max_connections,
                    max_keepalive_connections=self.max_keepalive_connections,
                    keepalive_expiry=self.keepalive_expiry,
                ),
                headers=self.headers,
                base_url=self.base_url,
            )
        return self._client

    def _encode_body(self, request: TransportRequest, headers: httpx.Headers) -> Optional[bytes]:
        body = request.body
        if body is None:
            return None
        if isinstance(body, str):
            return body.encode("utf-8")
        if isinstance(body, (bytes, bytearray)):
            return bytes(body)

        try:
            content = json.dumps(body).encode("utf-8")
        except (TypeError, ValueError) as e:
            # No request attached: the request never left the client.
            raise TransportFailure(
                f"Failed to serialize request body: {e}",
                kind=type(e).__name__,
            ) from e

        if "content-type" not in headers:
            headers["Content-Type"] = "application/json"
        return content

    def _decode_body(self, response: httpx.Response, request: TransportRequest) -> Any:
        if not response.content:
            return None

        content_type = response.headers.get("content-type", "")
        if "json" not in content_type:
            return response.text

        try:
            return response.json()
        except ValueError as e:
            if response.status_code >= 400:
                return response.text
            raise TransportFailure(
                f"Failed to parse JSON response: {e}",
                request=request,
                kind=type(e).__name__,
            ) from e

    async def send(self, request: TransportRequest) -> TransportResponse:
        """Dispatch a request and return the decoded response."""
        client = self._get_client()
        headers = httpx.Headers(request.headers)
        content = self._encode_body(request, headers)

        timeout: Any = httpx.USE_CLIENT_DEFAULT
        if request.timeout_ms is not None:
            timeout = httpx.Timeout(request.timeout_ms / 1000)

        try:
            response = await client.request(
                request.method,
                request.url,
                content=content,
                params=request.params,
                headers=headers,
                timeout=timeout,
            )
        except httpx.TimeoutException as e:
            limit = request.timeout_ms or self.timeout_ms
            message = f"timeout of {limit:g}ms exceeded" if limit else f"Request timed out: {e}"
            raise TransportFailure(
                message, code="ETIMEDOUT", request=request, is_timeout=True
            ) from e
        except httpx.ConnectError as e:
            text = str(e).lower()
            code = "ENOTFOUND" if any(p in text for p in _DNS_PHRASES) else "ECONNREFUSED"
            raise TransportFailure(
                str(e) or "Connection failed", code=code, request=request
            ) from e
        except (httpx.ReadError, httpx.WriteError, httpx.RemoteProtocolError) as e:
            raise TransportFailure(
                str(e) or "Connection reset", code="ECONNRESET", request=request
            ) from e
        except httpx.TransportError as e:
            raise TransportFailure(
                str(e) or "Network Error", code="ERR_NETWORK", request=request
            ) from e

        result = TransportResponse(
            status=response.status_code,
            status_text=response.reason_phrase,
            headers=dict(response.headers),
            body=self._decode_body(response, request),
        )

        if response.status_code >= 400:
            raise TransportFailure(
                f"Request failed with status code {response.status_code}",
                request=request,
                response=result,
            )

        return result

    async def aclose(self) -> None:
        """Close the underlying client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None
