"""A simulated downstream dependency with latency and partial availability."""

from __future__ import annotations

import logging
import random
from collections.abc import Generator
from typing import TYPE_CHECKING, Any, Callable

from resiliencesim.errors import DependencyError
from resiliencesim.stages.stage import Stage

if TYPE_CHECKING:
    from resiliencesim.model.event import Event

logger = logging.getLogger(__name__)

LatencySampler = Callable[[random.Random], float]
"""Draws one latency (in ticks) from the stage's random generator."""


def constant(ticks: float) -> LatencySampler:
    return lambda rng: ticks


def exponential(mean_ticks: float) -> LatencySampler:
    if mean_ticks <= 0:
        raise ValueError(f"mean_ticks must be > 0, got {mean_ticks}")
    return lambda rng: rng.expovariate(1.0 / mean_ticks)


def normal(mean_ticks: float, std_ticks: float) -> LatencySampler:
    """Normally distributed latency, clipped at 0."""
    return lambda rng: max(0.0, rng.gauss(mean_ticks, std_ticks))


class Dependency(Stage):
    """Answers after a sampled latency; fails with probability 1 - availability.

    Failures are only discovered after the latency has elapsed, like a remote
    call that errors out.

    Attributes:
        availability: Probability in [0, 1] that a call succeeds.
    """

    def __init__(
        self,
        name: str,
        latency: float | LatencySampler = 0.0,
        availability: float = 1.0,
        *,
        seed: int | None = None,
        **kwargs: Any,
    ):
        super().__init__(name, **kwargs)
        if not 0.0 <= availability <= 1.0:
            raise ValueError(f"availability must be in [0, 1], got {availability}")
        if not callable(latency) and latency < 0:
            raise ValueError(f"latency must be >= 0, got {latency}")

        self.availability = availability
        self._latency: LatencySampler = latency if callable(latency) else constant(latency)
        self._rng = random.Random(seed)

    def work(self, event: Event) -> Generator[float, Any, dict]:
        latency = self._latency(self._rng)
        if latency > 0:
            yield latency
        if self._rng.random() >= self.availability:
            logger.debug("[%s] %s failed after %.3f ticks", self.name, event.id, latency)
            raise DependencyError(self.name, f"call for {event.key} failed")
        return {"key": event.key, "served_by": self.name}
