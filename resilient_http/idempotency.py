"""Idempotency keys for retried writes."""

import hashlib
import itertools
import json
import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, FrozenSet, Mapping, Optional, Tuple

from .exceptions import RequestSignatureError

logger = logging.getLogger(__name__)

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"

# Shared by every store so keys stay unique across client instances.
_key_counter = itertools.count(1)


def _to_base36(number: int) -> str:
    if number == 0:
        return "0"
    digits = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36[remainder])
    return "".join(reversed(digits))


def generate_idempotency_key() -> str:
    """Default key: `<nanosecond timestamp>-<base36 counter>`."""
    return f"{time.time_ns()}-{_to_base36(next(_key_counter))}"


def _json_key(key: Any) -> Any:
    # Same conversion json.dumps applies to non-string keys
    if isinstance(key, str):
        return key
    if key is None or isinstance(key, (bool, int, float)):
        return json.dumps(key)
    return key


def _normalize(value: Any, ancestors: FrozenSet[int] = frozenset()) -> Any:
    """Stringify dict keys so mixed int/str keys still sort."""
    if not isinstance(value, (Mapping, list, tuple)):
        return value
    if id(value) in ancestors:
        raise ValueError("Circular reference detected")
    ancestors = ancestors | {id(value)}
    if isinstance(value, Mapping):
        return {_json_key(k): _normalize(v, ancestors) for k, v in value.items()}
    return [_normalize(v, ancestors) for v in value]


def serialize_body(body: Any) -> str:
    """Deterministic text form of a request body.

    Raises:
        RequestSignatureError: The body has a reference cycle or contains
            values JSON cannot represent.
    """
    if body is None:
        return ""
    if isinstance(body, (bytes, bytearray)):
        return "sha256:" + hashlib.sha256(bytes(body)).hexdigest()
    try:
        return json.dumps(
            _normalize(body), sort_keys=True, separators=(",", ":"), ensure_ascii=False
        )
    except (TypeError, ValueError) as e:
        raise RequestSignatureError(f"Cannot serialize request body for signature: {e}") from e


def signature_of(method: str, url: str, body: Any) -> str:
    """Fingerprint of a logical request: `METHOD:url:body`."""
    return f"{method.upper()}:{url}:{serialize_body(body)}"


class IdempotencyKeyStore:
    """
    Maps request signatures to issued idempotency keys.

    Entries live until the request succeeds and `clear` is called. Failed
    requests keep their key so a later retry of the same call reuses it;
    abandoned entries are bounded by `max_entries` (least recently used are
    evicted first) and expire after `ttl_seconds`.
    """

    def __init__(
        self,
        key_generator: Optional[Callable[[], str]] = None,
        max_entries: int = 1024,
        ttl_seconds: Optional[float] = 24 * 60 * 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.key_generator = key_generator or generate_idempotency_key
        self.max_entries = max_entries
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: "OrderedDict[str, Tuple[str, float]]" = OrderedDict()
        self._lock = threading.Lock()

    signature_of = staticmethod(signature_of)

    def _is_expired(self, created_at: float, now: float) -> bool:
        return self.ttl_seconds is not None and now - created_at >= self.ttl_seconds

    def _purge_expired(self, now: float) -> None:
        if self.ttl_seconds is None:
            return
        expired = [sig for sig, (_, created) in self._entries.items() if self._is_expired(created, now)]
        for sig in expired:
            del self._entries[sig]
        if expired:
            logger.debug("Expired %d idempotency keys", len(expired))

    def get_or_create(
        self, signature: str, key_generator: Optional[Callable[[], str]] = None
    ) -> str:
        """Return the key issued for `signature`, issuing one if needed."""
        with self._lock:
            now = self._clock()
            entry = self._entries.get(signature)
            if entry is not None and not self._is_expired(entry[1], now):
                self._entries.move_to_end(signature)
                return entry[0]

            self._purge_expired(now)
            key = (key_generator or self.key_generator)()
            self._entries[signature] = (key, now)

            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug("Evicted idempotency key for %s", evicted)

            return key

    def get(self, signature: str) -> Optional[str]:
        with self._lock:
            entry = self._entries.get(signature)
            if entry is None or self._is_expired(entry[1], self._clock()):
                return None
            return entry[0]

    def clear(self, signature: str) -> None:
        """Forget the key for `signature`; no-op if absent."""
        with self._lock:
            self._entries.pop(signature, None)

    def clear_all(self) -> None:
        with self._lock:
            self._entries.clear()

    def __contains__(self, signature: object) -> bool:
        return isinstance(signature, str) and self.get(signature) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
