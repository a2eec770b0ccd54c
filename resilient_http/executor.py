"""Execution of one logical request: config, idempotency, dispatch, errors."""

import inspect
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .classifier import classify, classify_network_error_type
from .config import (
    ErrorMessagePath,
    Hooks,
    IdempotencyPolicy,
    RequestOptions,
    RetryPolicy,
)
from .exceptions import (
    ErrorMetadata,
    HttpClientError,
    HttpError,
    HttpErrorResponse,
    NetworkError,
    NetworkErrorDetails,
    RequestMetadata,
    RequestSignatureError,
    SerializationError,
    TimeoutError,
)
from .idempotency import IdempotencyKeyStore
from .paths import get_path_value, resolve_path
from .retry import RetryManager
from .transport import Transport, TransportFailure, TransportRequest, TransportResponse

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE_PATH = "data.message"


@dataclass
class HttpClientResponse:
    """A successful response together with the request that produced it."""

    data: Any
    status: int
    status_text: str = ""
    headers: Dict[str, str] = field(default_factory=dict)
    request: Optional[TransportRequest] = None

    @classmethod
    def from_transport(
        cls, response: TransportResponse, request: TransportRequest
    ) -> "HttpClientResponse":
        return cls(
            data=response.body,
            status=response.status,
            status_text=response.status_text,
            headers=dict(response.headers),
            request=request,
        )


async def _call_hook(hook, *args) -> Any:
    result = hook(*args)
    if inspect.isawaitable(result):
        result = await result
    return result


def extract_error_message(response: HttpErrorResponse, path: ErrorMessagePath) -> Optional[str]:
    """Pull a human-readable message out of an error response.

    `path` is either a dot path rooted at the response (`data.error.detail`)
    or a callable receiving the `HttpErrorResponse`.
    """
    if callable(path):
        value = path(response)
    else:
        value = get_path_value(response, path)
    if value is None or value == "":
        return None
    return value if isinstance(value, str) else str(value)


class RequestExecutor:
    """
    Runs logical requests against a transport.

    Each call walks path resolution, config merge, idempotency key
    assignment, dispatch through a fresh `RetryManager`, and then either
    success handling or error classification. Only the policies and the
    idempotency key store are shared between calls.
    """

    def __init__(
        self,
        transport: Transport,
        base_url: str = "",
        name: str = "HttpClient",
        retry: Optional[RetryPolicy] = None,
        idempotency: Optional[IdempotencyPolicy] = None,
        error_message_path: ErrorMessagePath = DEFAULT_ERROR_MESSAGE_PATH,
        hooks: Optional[Hooks] = None,
        key_store: Optional[IdempotencyKeyStore] = None,
        timeout_ms: Optional[float] = None,
        headers: Optional[Dict[str, str]] = None,
        debug: bool = False,
        debug_level: str = "normal",
        rng: Optional[random.Random] = None,
    ):
        self.transport = transport
        self.base_url = base_url
        self.name = name
        self.retry = retry or RetryPolicy()
        self.idempotency = idempotency or IdempotencyPolicy()
        self.error_message_path = error_message_path
        self.hooks = hooks or Hooks()
        self.key_store = key_store or IdempotencyKeyStore()
        self.timeout_ms = timeout_ms
        self.headers = dict(headers or {})
        self.debug = debug
        self.debug_level = debug_level
        self.rng = rng

    # Request preparation

    def _build_request(self, method: str, url: str, body: Any, options: RequestOptions) -> TransportRequest:
        resolved_url = resolve_path(url, options.path_params)
        headers = {**self.headers, **(options.headers or {})}
        timeout_ms = options.timeout_ms if options.timeout_ms is not None else self.timeout_ms
        return TransportRequest(
            method=method,
            url=resolved_url,
            headers=headers,
            body=body,
            params=options.params,
            timeout_ms=timeout_ms,
            base_url=self.base_url,
        )

    def _assign_idempotency_key(
        self,
        request: TransportRequest,
        policy: IdempotencyPolicy,
        manual_key: Optional[str],
    ) -> Optional[str]:
        """Attach the idempotency header; return the signature to clear on success."""
        if manual_key is not None:
            request.headers[policy.header_name] = manual_key
            return None

        if not policy.applies_to(request.method):
            return None

        try:
            signature = self.key_store.signature_of(request.method, request.url, request.body)
        except RequestSignatureError as e:
            raise SerializationError(
                f"[{self.name}] {request.method} {request.url} serialization error: {e}",
                self._build_metadata(request),
                cause=e,
            ) from e

        key = self.key_store.get_or_create(signature, policy.key_generator)
        if key is not None:
            request.headers[policy.header_name] = key
        return signature

    # Error processing

    def _build_metadata(self, request: TransportRequest, retry_count: Optional[int] = None) -> ErrorMetadata:
        return ErrorMetadata(
            request=RequestMetadata(
                method=request.method,
                url=request.url,
                base_url=request.base_url,
                headers=dict(request.headers),
                timeout=request.timeout_ms,
            ),
            client_name=self.name,
            retry_count=retry_count,
        )

    def process_error(
        self,
        failure: TransportFailure,
        request: TransportRequest,
        retry_count: Optional[int] = None,
        is_retriable: Optional[bool] = None,
        error_message_path: Optional[ErrorMessagePath] = None,
        retry_policy: Optional[RetryPolicy] = None,
    ) -> HttpClientError:
        """
        Build the typed error for a transport failure.

        `is_retriable` defaults to what the retry policy decides for this
        failure, so `enable_retry` overrides show up on the error too.
        """
        classification = classify(failure)
        if is_retriable is None:
            manager = RetryManager(retry_policy or self.retry)
            is_retriable = manager.is_retriable(request, classification)

        metadata = self._build_metadata(request, retry_count)
        prefix = f"[{self.name}] {request.method} {request.url}"

        if classification.type == "http":
            response = failure.response
            error_response = HttpErrorResponse(
                status=response.status,
                status_text=response.status_text or "",
                headers=dict(response.headers or {}),
                data=response.body,
            )
            if self.debug:
                detail = error_response if self.debug_level == "verbose" else error_response.data
                logger.info("%s : error.response %r", prefix, detail)

            path = error_message_path if error_message_path is not None else self.error_message_path
            message = (
                extract_error_message(error_response, path)
                or error_response.status_text
                or f"{prefix} : [{response.status}]"
            )
            return HttpError(
                message,
                status=response.status,
                category=classification.category,
                status_text=error_response.status_text,
                response=error_response,
                metadata=metadata,
                cause=failure,
                is_retriable=is_retriable,
            )

        if classification.type == "serialization":
            return SerializationError(
                f"{prefix} serialization error: {failure.message}",
                metadata,
                cause=failure,
                is_retriable=is_retriable,
            )

        metadata.error = NetworkErrorDetails(
            message=failure.message or "Unknown error",
            type=classify_network_error_type(failure),
            code=failure.code,
        )
        if self.debug:
            logger.info("%s : error.request %r", prefix, failure)

        if classification.type == "timeout":
            return TimeoutError(
                f"{prefix} timeout: {failure.message}",
                metadata,
                cause=failure,
                is_retriable=is_retriable,
            )

        if classification.type == "network":
            return NetworkError(
                f"{prefix} network error: {failure.message}",
                metadata,
                cause=failure,
                is_retriable=is_retriable,
            )

        # Failures that never reached the network and match nothing else.
        return NetworkError(
            f"{prefix} error: {failure.message}",
            metadata,
            cause=failure,
            is_retriable=is_retriable,
        )

    # Execution

    def _log_request(self, request: TransportRequest) -> None:
        if not self.debug:
            return
        if self.debug_level == "verbose":
            logger.info(
                "[%s] %s %s %r",
                self.name,
                request.method,
                request.url,
                {"data": request.body, "headers": request.headers, "params": request.params,
                 "timeout_ms": request.timeout_ms},
            )
        else:
            logger.info("[%s] %s %s %r", self.name, request.method, request.url, {"data": request.body})

    async def execute(
        self,
        method: str,
        url: str,
        body: Any = None,
        options: Optional[RequestOptions] = None,
    ) -> HttpClientResponse:
        """
        Execute one logical request.

        Raises:
            PathParameterError: A `:name` placeholder had no value.
            SerializationError: The body could not be fingerprinted for an
                idempotency key.
            HttpClientError: The request ultimately failed.
        """
        options = options or RequestOptions()
        method = method.upper()

        request = self._build_request(method, url, body, options)

        retry_policy = self.retry.merged(options.retry)
        idempotency = self.idempotency.merged(options.idempotency)

        signature = self._assign_idempotency_key(request, idempotency, options.idempotency_key)

        if self.hooks.pre_request is not None:
            replacement = await _call_hook(self.hooks.pre_request, request)
            if replacement is not None:
                request = replacement
        self._log_request(request)

        manager = RetryManager(retry_policy, rng=self.rng, debug=self.debug)
        try:
            response = await manager.execute(lambda: self.transport.send(request), request)
        except TransportFailure as failure:
            error = self.process_error(
                failure,
                request,
                retry_count=manager.retry_count,
                is_retriable=manager.last_retriable,
                error_message_path=options.error_message_path,
                retry_policy=retry_policy,
            )
            if self.hooks.error_handler is not None:
                await _call_hook(self.hooks.error_handler, error, failure, request)
            raise error from failure

        if signature is not None:
            self.key_store.clear(signature)

        result = HttpClientResponse.from_transport(response, request)
        if self.hooks.post_response is not None:
            replacement = await _call_hook(self.hooks.post_response, result)
            if replacement is not None:
                result = replacement
        return result
