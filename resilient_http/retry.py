"""Retry loop around a single logical request."""

import asyncio
import logging
import random
from typing import Awaitable, Callable, Optional, TypeVar

from .backoff import delay_for_failure
from .classifier import classify
from .config import RetryPolicy
from .transport import TransportFailure, TransportRequest
from .types import ClassifiedError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def default_on_retry(request: TransportRequest, failure: TransportFailure, attempt: int) -> None:
    """Log each retry attempt."""
    logger.info(
        "Retry #%d for %s %s%s due to error: %s",
        attempt,
        request.method,
        request.base_url,
        request.url,
        failure.message,
    )


class RetryManager:
    """
    Runs one logical request, retrying failed attempts per a `RetryPolicy`.

    A manager is created per request: `retry_count` and `last_retriable`
    describe that request only. Attempts are strictly sequential, and
    cancelling the awaiting task aborts both the pending attempt and any
    pending backoff wait. Without a policy `on_retry`, retries are only
    logged when `debug` is set.
    """

    def __init__(
        self,
        policy: Optional[RetryPolicy] = None,
        rng: Optional[random.Random] = None,
        debug: bool = False,
    ):
        self.policy = policy or RetryPolicy()
        self.rng = rng
        self.debug = debug
        self.retry_count = 0
        self.last_retriable: Optional[bool] = None

    def is_retriable(self, request: TransportRequest, classification: ClassifiedError) -> bool:
        """The classifier's default, unless `enable_retry` decides otherwise."""
        enable_retry = self.policy.enable_retry
        if isinstance(enable_retry, bool):
            return enable_retry
        if enable_retry is not None:
            decision = enable_retry(request, classification)
            if decision is not None:
                return bool(decision)
        return classification.is_retriable

    def get_delay(self, attempt: int, failure: TransportFailure, request: TransportRequest) -> float:
        """Delay in milliseconds before retry number `attempt`."""
        if self.policy.retry_delay is not None:
            return max(0.0, float(self.policy.retry_delay(attempt, failure, request)))
        return delay_for_failure(
            attempt,
            failure,
            self.policy.backoff,
            self.policy.delay_factor_ms,
            self.policy.jitter,
            rng=self.rng,
        )

    async def execute(
        self, func: Callable[[], Awaitable[T]], request: TransportRequest
    ) -> T:
        """
        Await `func` until it succeeds or retrying stops.

        Raises:
            TransportFailure: The last failure, once retries are exhausted or
                the failure is not retriable.
        """
        while True:
            try:
                return await func()
            except Exception as exc:
                failure = TransportFailure.from_exception(exc, request)
                classification = classify(failure)
                self.last_retriable = self.is_retriable(request, classification)

                if not self.last_retriable or self.retry_count >= self.policy.max_retries:
                    if failure is exc:
                        raise
                    raise failure from exc

                self.retry_count += 1
                delay_ms = self.get_delay(self.retry_count, failure, request)

                if self.policy.on_retry is not None:
                    self.policy.on_retry(request, failure, self.retry_count)
                elif self.debug:
                    default_on_retry(request, failure, self.retry_count)

                logger.debug(
                    "Waiting %.0fms before retry #%d (%s)",
                    delay_ms,
                    self.retry_count,
                    classification.type,
                )
                await asyncio.sleep(delay_ms / 1000)
