"""Timeout: fail a call that the wrapped stage does not answer in time."""

from __future__ import annotations

import logging
from collections.abc import Generator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from resiliencesim.core.sim_future import SimFuture, any_of
from resiliencesim.errors import StageTimeoutError
from resiliencesim.stages.stage import Stage

if TYPE_CHECKING:
    from resiliencesim.model.event import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TimeoutStats:
    calls: int = 0
    timed_out: int = 0


class Timeout(Stage):
    """Races the wrapped stage against a timer of ``timeout`` ticks.

    The wrapped call is not cancelled when the timer wins; it keeps running
    and its late answer is discarded.
    """

    def __init__(self, name: str, wrapped: Stage, timeout: float, **kwargs: Any):
        super().__init__(name, wrapped=wrapped, **kwargs)
        if timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {timeout}")
        self.timeout = timeout
        self._calls = 0
        self._timed_out = 0

    @property
    def stats(self) -> TimeoutStats:
        return TimeoutStats(calls=self._calls, timed_out=self._timed_out)

    def work(self, event: Event) -> Generator[SimFuture, Any, Any]:
        self._calls += 1
        timer = SimFuture()
        handle = self.clock.call_later(self.timeout, lambda: timer.resolve(None))
        try:
            index, value = yield any_of(self.forward(event), timer)
        finally:
            handle.cancel()

        if index == 1:
            self._timed_out += 1
            logger.debug("[%s] %s timed out after %s ticks", self.name, event.id, self.timeout)
            raise StageTimeoutError(self.name, f"no answer within {self.timeout} ticks")
        return value
