"""Retry: call the wrapped stage again when it fails."""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from resiliencesim.model.response import Failure
from resiliencesim.stages.stage import Stage

if TYPE_CHECKING:
    from resiliencesim.model.event import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RetryStats:
    attempts: int = 0
    retries: int = 0
    exhausted: int = 0


class Retry(Stage):
    """Up to ``max_attempts`` calls, ``backoff`` ticks apart.

    With ``exponential=True`` the n-th backoff is ``backoff * 2**(n-1)``.
    When every attempt fails, the last failure is what the caller sees.
    """

    def __init__(
        self,
        name: str,
        wrapped: Stage,
        max_attempts: int = 3,
        backoff: float = 0.0,
        *,
        exponential: bool = False,
        **kwargs: Any,
    ):
        super().__init__(name, wrapped=wrapped, **kwargs)
        if max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {max_attempts}")
        if backoff < 0:
            raise ValueError(f"backoff must be >= 0, got {backoff}")
        self.max_attempts = max_attempts
        self.backoff = backoff
        self.exponential = exponential

        self._attempts = 0
        self._retries = 0
        self._exhausted = 0

    @property
    def stats(self) -> RetryStats:
        return RetryStats(attempts=self._attempts, retries=self._retries, exhausted=self._exhausted)

    def backoff_for(self, attempt: int) -> float:
        """Ticks to wait after failed attempt number ``attempt`` (1-based)."""
        if self.exponential:
            return self.backoff * (2 ** (attempt - 1))
        return self.backoff

    def work(self, event: Event) -> Generator[Any, Any, Any]:
        last_failure: Exception | Failure | None = None

        for attempt in range(1, self.max_attempts + 1):
            self._attempts += 1
            try:
                value = yield self.forward(event)
            except Exception as exc:
                last_failure = exc
            else:
                if not isinstance(value, Failure):
                    return value
                last_failure = value

            if attempt < self.max_attempts:
                self._retries += 1
                delay = self.backoff_for(attempt)
                logger.debug("[%s] %s attempt %d failed, retrying in %s ticks", self.name, event.id, attempt, delay)
                if delay > 0:
                    yield delay

        self._exhausted += 1
        if isinstance(last_failure, Exception):
            raise last_failure
        return last_failure
