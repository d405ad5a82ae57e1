"""
Bug Tracker Backend: Circuit Breaker
======================================

What:  Tracks consecutive failures of the tag model provider and pauses calls
       to it while it is failing.
Why:   Tag generation sits on the create/update path. When the provider is
       down, every bug mutation would otherwise wait for a timeout before
       falling back to default tags.
Who:   Owned by the TagGenerator (one per process).

State Machine:
    CLOSED     normal; failures increment the counter, threshold → OPEN
    OPEN       calls rejected with CircuitBreakerOpenError until
               recovery_timeout elapses → HALF_OPEN
    HALF_OPEN  one trial call; success → CLOSED, failure → OPEN. Other
               callers are rejected while the trial is in flight. A trial
               that never reports back is abandoned after recovery_timeout.

The breaker never retries anything. A rejected call simply means the caller
uses its fallback right away.

Not thread-safe: uvicorn async workers run a single event loop per process.
"""

import logging
import time
from typing import Callable, Optional

from bugtracker.exceptions import CircuitBreakerOpenError

logger = logging.getLogger(__name__)


class CircuitBreaker:
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"

    def __init__(
        self,
        failure_threshold: int = 5,
        recovery_timeout: int = 60,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.failure_threshold = failure_threshold
        self.recovery_timeout = recovery_timeout
        self._clock = clock
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at: Optional[float] = None
        self.trial_started_at: Optional[float] = None

    def seconds_until_retry(self) -> int:
        if self.state == self.OPEN and self.opened_at is not None:
            started = self.opened_at
        elif self.state == self.HALF_OPEN and self.trial_started_at is not None:
            started = self.trial_started_at
        else:
            return 0
        remaining = self.recovery_timeout - (self._clock() - started)
        return max(0, int(remaining))

    def can_execute(self) -> bool:
        """
        Gate an upstream call.

        Returns True when the call may proceed: CLOSED, or the single trial
        call admitted once the recovery timeout has elapsed.

        Raises:
            CircuitBreakerOpenError while OPEN and still recovering, or while
            HALF_OPEN with the trial call still in flight.
        """
        if self.state == self.OPEN:
            elapsed = self._clock() - (self.opened_at or 0.0)
            if elapsed < self.recovery_timeout:
                raise CircuitBreakerOpenError(recovery_time=self.seconds_until_retry())
            logger.info("Circuit breaker HALF_OPEN after %.1fs", elapsed)
            self.state = self.HALF_OPEN
            self.trial_started_at = None

        if self.state == self.HALF_OPEN:
            now = self._clock()
            if (
                self.trial_started_at is not None
                and now - self.trial_started_at < self.recovery_timeout
            ):
                raise CircuitBreakerOpenError(recovery_time=self.seconds_until_retry())
            self.trial_started_at = now
        return True

    def record_success(self) -> None:
        if self.state != self.CLOSED:
            logger.info("Circuit breaker CLOSED (tag model recovered)")
        self.failure_count = 0
        self.state = self.CLOSED
        self.opened_at = None
        self.trial_started_at = None

    def record_failure(self) -> None:
        self.failure_count += 1
        self.trial_started_at = None
        if self.state == self.HALF_OPEN:
            logger.warning("Circuit breaker back to OPEN (trial call failed)")
            self._open()
        elif self.state == self.CLOSED and self.failure_count >= self.failure_threshold:
            logger.warning(
                "Circuit breaker OPEN after %d consecutive failures",
                self.failure_count,
            )
            self._open()

    def _open(self) -> None:
        self.state = self.OPEN
        self.opened_at = self._clock()
