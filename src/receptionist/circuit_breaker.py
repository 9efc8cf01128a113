"""Failure isolation for the outbound HTTP dependencies.

The completion client and the Airtable client each own one. When a
dependency keeps failing, callers stop paying its timeout on every turn: the
completion path drops straight to the canned fallback reply and record writes
are skipped and logged.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Callable, Optional

logger = logging.getLogger(__name__)

CLOSED = "closed"
OPEN = "open"
HALF_OPEN = "half_open"


@dataclass
class CircuitBreaker:
    """closed -> open after N consecutive failures -> half-open once the cooldown passes."""

    failure_threshold: int = 3
    cooldown_seconds: float = 60.0
    label: str = "service"
    clock: Callable[[], float] = field(default=time.monotonic, repr=False)

    _failures: int = field(default=0, init=False, repr=False)
    _opened_at: Optional[float] = field(default=None, init=False, repr=False)

    @property
    def state(self) -> str:
        if self._opened_at is None:
            return CLOSED
        if self.clock() - self._opened_at >= self.cooldown_seconds:
            return HALF_OPEN
        return OPEN

    def should_try(self) -> bool:
        return self.state != OPEN

    def record_success(self) -> None:
        if self._opened_at is not None:
            logger.info("Circuit breaker for %s closed again", self.label)
        self._failures = 0
        self._opened_at = None

    def record_failure(self) -> None:
        self._failures += 1
        if self.state == HALF_OPEN:
            # Probe failed, start a fresh cooldown
            self._opened_at = self.clock()
            logger.warning("%s still failing, circuit stays open", self.label)
            return
        if self._failures >= self.failure_threshold and self._opened_at is None:
            self._opened_at = self.clock()
            logger.warning(
                "Circuit breaker OPENED for %s after %d consecutive failures, "
                "skipping for %.0fs",
                self.label,
                self._failures,
                self.cooldown_seconds,
            )
