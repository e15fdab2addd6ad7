from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional

from reconciler.errors import PublishExhaustionError
from reconciler.metric import publish_attempt_counter
from reconciler.reconcile.types import PublishOutcome, PublishTarget

logger = logging.getLogger("reconciler")

Transport = Callable[[PublishTarget], Awaitable[None]]
Sleep = Callable[[float], Awaitable[None]]

MAX_ATTEMPTS = 3


class StatusPublisher:
    """Publishes synthetic success results with bounded retries.

    The transport is whatever writes the result on the platform (a commit
    status or a check run). Before retry ``n`` (1-based, first retry is 1) the
    publisher waits ``2 ** (n - 1)`` backoff units.
    """

    def __init__(
        self,
        transport: Transport,
        *,
        max_attempts: int = MAX_ATTEMPTS,
        backoff_seconds: float = 1.0,
        sleep: Sleep = asyncio.sleep,
    ):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self.transport = transport
        self.max_attempts = max_attempts
        self.backoff_seconds = backoff_seconds
        self.sleep = sleep

    def backoff_delay(self, attempt: int) -> float:
        return 2 ** (attempt - 1) * self.backoff_seconds

    async def publish_success(self, target: PublishTarget) -> PublishOutcome:
        last_error: Optional[Exception] = None

        for attempt in range(1, self.max_attempts + 1):
            if attempt > 1:
                delay = self.backoff_delay(attempt - 1)
                logger.info("Waiting %.1fs before retry...", delay)
                await self.sleep(delay)
            try:
                await self.transport(target)
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                publish_attempt_counter.labels(result="failure").inc()
                logger.warning(
                    "Failed to create status for '%s' on attempt %d/%d: %s",
                    target.check_name,
                    attempt,
                    self.max_attempts,
                    exc,
                )
                continue

            publish_attempt_counter.labels(result="success").inc()
            logger.info(
                "Successfully created status for '%s' on attempt %d",
                target.check_name,
                attempt,
            )
            return PublishOutcome(target=target, attempts=attempt)

        raise PublishExhaustionError(
            target.check_name, self.max_attempts, last_error
        ) from last_error
