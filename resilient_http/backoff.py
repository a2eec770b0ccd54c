"""Delay computation between retry attempts."""

import math
import random
import re
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping, Optional

from .transport import TransportFailure
from .types import BackoffStrategy, JitterMode

_DELAY_SECONDS = re.compile(r"[0-9]+")


def _seconds_to_ms(seconds: float) -> Optional[float]:
    if not math.isfinite(seconds) or seconds < 0:
        return None
    return seconds * 1000


def parse_retry_after(value: Any, now: Optional[datetime] = None) -> Optional[float]:
    """
    Parse a Retry-After value into milliseconds.

    Accepts a whole number of seconds (digits only, or a non-negative int)
    or an HTTP date. Dates in the past clamp to 0. Returns None when the
    value cannot be parsed.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, int):
        return _seconds_to_ms(float(value))
    if isinstance(value, float):
        return None

    text = str(value).strip()
    if not text:
        return None

    if _DELAY_SECONDS.fullmatch(text):
        return _seconds_to_ms(float(text))

    try:
        when = parsedate_to_datetime(text)
    except (TypeError, ValueError):
        return None
    if when is None:
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    now = now or datetime.now(timezone.utc)
    delay_ms = (when - now).total_seconds() * 1000
    return max(delay_ms, 0.0)


def _header(headers: Mapping[str, Any], name: str) -> Any:
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def retry_after_from_failure(failure: Any) -> Any:
    """Raw Retry-After header of a failure's response, if any."""
    response = getattr(failure, "response", None)
    if response is None or not response.headers:
        return None
    return _header(response.headers, "Retry-After")


def base_delay(attempt: int, strategy: BackoffStrategy, delay_factor_ms: float) -> float:
    if strategy == "exponential":
        return delay_factor_ms * (2 ** (attempt - 1))
    if strategy == "linear":
        return delay_factor_ms * attempt
    if strategy == "none":
        return delay_factor_ms
    raise ValueError(f"Unknown backoff strategy: {strategy!r}")


def apply_jitter(
    delay: float,
    jitter: JitterMode,
    delay_factor_ms: float,
    rng: Optional[random.Random] = None,
) -> float:
    uniform = (rng or random).uniform

    if jitter == "none":
        return delay
    if jitter == "full":
        return uniform(0, delay)
    if jitter == "equal":
        return delay / 2 + uniform(0, delay / 2)
    if jitter == "decorrelated":
        # Stateless approximation: no memory of the previous delay.
        return uniform(delay_factor_ms, max(delay * 3, delay_factor_ms))
    raise ValueError(f"Unknown jitter mode: {jitter!r}")


def compute_delay(
    attempt: int,
    strategy: BackoffStrategy = "exponential",
    delay_factor_ms: float = 500,
    jitter: JitterMode = "none",
    server_retry_after: Any = None,
    rng: Optional[random.Random] = None,
) -> float:
    """
    Compute the delay in milliseconds before retry number `attempt`.

    A parseable server Retry-After wins and is returned without jitter.

    Args:
        attempt: Retry attempt number, starting at 1
        strategy: exponential, linear or none
        delay_factor_ms: Base delay in milliseconds
        jitter: none, full, equal or decorrelated
        server_retry_after: Raw Retry-After header value, if any
        rng: Random source, defaults to the `random` module

    Returns:
        Delay in milliseconds, never negative
    """
    if attempt < 1:
        raise ValueError(f"attempt must be >= 1, got {attempt}")
    if delay_factor_ms <= 0:
        raise ValueError(f"delay_factor_ms must be positive, got {delay_factor_ms}")

    server_delay = parse_retry_after(server_retry_after)
    if server_delay is not None:
        return server_delay

    delay = base_delay(attempt, strategy, delay_factor_ms)
    return max(0.0, apply_jitter(delay, jitter, delay_factor_ms, rng))


def delay_for_failure(
    attempt: int,
    failure: TransportFailure,
    strategy: BackoffStrategy,
    delay_factor_ms: float,
    jitter: JitterMode,
    rng: Optional[random.Random] = None,
) -> float:
    """Default `retry_delay`: backoff honouring the failure's Retry-After."""
    return compute_delay(
        attempt,
        strategy,
        delay_factor_ms,
        jitter,
        server_retry_after=retry_after_from_failure(failure),
        rng=rng,
    )
