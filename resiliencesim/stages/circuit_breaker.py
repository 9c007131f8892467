"""Circuit breaker: stop calling a dependency that keeps failing.

States:
    CLOSED     calls pass through; consecutive failures are counted
    OPEN       calls fail fast with CircuitOpenError until reset_timeout elapses
    HALF_OPEN  calls pass through as probes; enough successes close the
               circuit, any failure opens it again
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Any

from resiliencesim.errors import CircuitOpenError
from resiliencesim.model.response import Failure
from resiliencesim.stages.stage import Stage

if TYPE_CHECKING:
    from resiliencesim.model.event import Event

logger = logging.getLogger(__name__)


class CircuitState(Enum):
    CLOSED = "closed"
    OPEN = "open"
    HALF_OPEN = "half_open"


@dataclass(frozen=True)
class CircuitBreakerStats:
    """Statistics tracked by CircuitBreaker."""

    forwarded: int = 0
    rejected: int = 0
    times_opened: int = 0


class CircuitBreaker(Stage):
    """Fails fast while the wrapped stage is unhealthy.

    Attributes:
        failure_threshold: Consecutive failures (CLOSED) before opening.
        success_threshold: Consecutive successes (HALF_OPEN) before closing.
        reset_timeout: Ticks spent OPEN before probing again.
    """

    def __init__(
        self,
        name: str,
        wrapped: Stage,
        failure_threshold: int = 5,
        success_threshold: int = 2,
        reset_timeout: float = 1000.0,
        **kwargs: Any,
    ):
        super().__init__(name, wrapped=wrapped, **kwargs)
        if failure_threshold < 1:
            raise ValueError(f"failure_threshold must be >= 1, got {failure_threshold}")
        if success_threshold < 1:
            raise ValueError(f"success_threshold must be >= 1, got {success_threshold}")
        if reset_timeout <= 0:
            raise ValueError(f"reset_timeout must be > 0, got {reset_timeout}")

        self.failure_threshold = failure_threshold
        self.success_threshold = success_threshold
        self.reset_timeout = reset_timeout

        self._state = CircuitState.CLOSED
        self._failure_count = 0
        self._success_count = 0
        self._opened_at: float | None = None

        self._forwarded = 0
        self._rejected = 0
        self._times_opened = 0

    @property
    def stats(self) -> CircuitBreakerStats:
        return CircuitBreakerStats(
            forwarded=self._forwarded,
            rejected=self._rejected,
            times_opened=self._times_opened,
        )

    @property
    def state(self) -> CircuitState:
        self._check_reset_timeout()
        return self._state

    def _check_reset_timeout(self) -> None:
        """Transition from OPEN to HALF_OPEN once reset_timeout has elapsed."""
        if self._state != CircuitState.OPEN or self._opened_at is None or self._clock is None:
            return
        if self.now - self._opened_at >= self.reset_timeout:
            self._state = CircuitState.HALF_OPEN
            self._success_count = 0
            logger.info("[%s] Circuit: OPEN -> HALF_OPEN at t=%s", self.name, self.now)

    def work(self, event: Event) -> Generator[Any, Any, Any]:
        self._check_reset_timeout()
        if self._state == CircuitState.OPEN:
            self._rejected += 1
            raise CircuitOpenError(self.name, "circuit open")

        self._forwarded += 1
        try:
            value = yield self.forward(event)
        except Exception:
            self._record_failure()
            raise

        if isinstance(value, Failure):
            self._record_failure()
        else:
            self._record_success()
        return value

    def _record_success(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._success_count += 1
            if self._success_count >= self.success_threshold:
                self._state = CircuitState.CLOSED
                self._failure_count = 0
                logger.info("[%s] Circuit: HALF_OPEN -> CLOSED at t=%s", self.name, self.now)
        elif self._state == CircuitState.CLOSED:
            self._failure_count = 0

    def _record_failure(self) -> None:
        if self._state == CircuitState.HALF_OPEN:
            self._open()
            logger.info("[%s] Circuit: HALF_OPEN -> OPEN at t=%s", self.name, self.now)
        elif self._state == CircuitState.CLOSED:
            self._failure_count += 1
            if self._failure_count >= self.failure_threshold:
                self._open()
                logger.info("[%s] Circuit: CLOSED -> OPEN at t=%s", self.name, self.now)

    def _open(self) -> None:
        self._state = CircuitState.OPEN
        self._opened_at = self.now
        self._times_opened += 1
