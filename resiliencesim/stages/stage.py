"""Base class for stages: the processing pipelines events are sent into.

A stage receives events through accept() and does its work as a generator
process on the simulation's metronome. The base class does the bookkeeping
every stage shares (admission through an optional concurrency limit, queue
and work time, traffic counters) and delegates the actual behavior to
work().

Stages compose by wrapping: a Retry wraps a Timeout that wraps a Dependency.
The wrapper calls ``yield self.forward(event)`` to hand the event to the
stage it wraps.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Generator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from resiliencesim.core.sim_future import SimFuture
from resiliencesim.errors import QueueFullError
from resiliencesim.model.response import Failure

if TYPE_CHECKING:
    from resiliencesim.core.metronome import Metronome
    from resiliencesim.model.event import Event

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StageTime:
    """Cumulative ticks events spent waiting for and being worked on in a stage."""

    stage: str
    queue_time: float = 0.0
    work_time: float = 0.0


@dataclass(frozen=True)
class StageTraffic:
    """How many events a stage saw and how they ended."""

    stage: str
    add: int = 0
    work_on: int = 0
    success: int = 0
    fail: int = 0


class Stage(ABC):
    """Abstract base class for all stages.

    Subclasses implement work() as a generator: yield tick delays or
    SimFutures, return the success payload, raise a StageError to fail.

    Attributes:
        name: Identifier for logging and reporting.
        concurrency: Max events worked on at once. None means unlimited.
        queue_capacity: Max events waiting for a slot. None means unbounded.
    """

    def __init__(
        self,
        name: str,
        *,
        wrapped: Stage | None = None,
        concurrency: int | None = None,
        queue_capacity: int | None = None,
    ):
        if concurrency is not None and concurrency < 1:
            raise ValueError(f"concurrency must be >= 1, got {concurrency}")
        if queue_capacity is not None and queue_capacity < 0:
            raise ValueError(f"queue_capacity must be >= 0, got {queue_capacity}")

        self.name = name
        self.concurrency = concurrency
        self.queue_capacity = queue_capacity
        self._wrapped = wrapped
        self._clock: Metronome | None = None

        self._in_service = 0
        self._waiting: deque[SimFuture] = deque()
        self._generation = 0

        self._added = 0
        self._worked_on = 0
        self._succeeded = 0
        self._failed = 0
        self._queue_time = 0.0
        self._work_time = 0.0

    def set_clock(self, clock: Metronome) -> None:
        """Inject the metronome. Called by Simulation.run(); reaches wrapped stages too.

        A new clock starts with free slots and an empty wait queue; calls
        still held from an earlier clock can never resume.
        """
        if clock is not self._clock and (self._in_service or self._waiting):
            logger.warning(
                "[%s] Discarding %d in-service and %d waiting calls from a previous clock",
                self.name,
                self.in_service,
                self.queue_depth,
            )
            self._in_service = 0
            self._waiting.clear()
            self._generation += 1
        self._clock = clock
        logger.debug("[%s] Clock injected", self.name)
        if self._wrapped is not None:
            self._wrapped.set_clock(clock)

    @property
    def clock(self) -> Metronome:
        if self._clock is None:
            logger.error("[%s] Attempted to access time before clock injection", self.name)
            raise RuntimeError(f"Stage {self.name} is not attached to a simulation (Clock is None).")
        return self._clock

    @property
    def now(self) -> float:
        return self.clock.now

    @property
    def in_service(self) -> int:
        return self._in_service

    @property
    def queue_depth(self) -> int:
        return len(self._waiting)

    @property
    def time(self) -> StageTime:
        return StageTime(stage=self.name, queue_time=self._queue_time, work_time=self._work_time)

    @property
    def traffic(self) -> StageTraffic:
        return StageTraffic(
            stage=self.name,
            add=self._added,
            work_on=self._worked_on,
            success=self._succeeded,
            fail=self._failed,
        )

    def accept(self, event: Event) -> Generator[Any, Any, Any]:
        """Admit an event, wait for a slot if needed, then run work()."""
        self._added += 1
        enqueued_at = self.now
        generation = self._generation

        if self._has_free_slot():
            self._in_service += 1
        else:
            if self.queue_capacity is not None and len(self._waiting) >= self.queue_capacity:
                self._failed += 1
                logger.debug("[%s] Queue full, rejecting %s", self.name, event.id)
                raise QueueFullError(self.name, f"queue full ({self.queue_capacity} waiting)")
            slot = SimFuture()
            self._waiting.append(slot)
            # a released slot is handed over directly, _in_service stays unchanged
            try:
                yield slot
            except GeneratorExit:
                self._failed += 1
                if generation == self._generation:
                    self._abandon_slot(slot)
                raise

        started_at = self.now
        self._queue_time += started_at - enqueued_at
        self._worked_on += 1

        try:
            result = yield from self.work(event)
        except (Exception, GeneratorExit):
            self._failed += 1
            raise
        else:
            if isinstance(result, Failure):
                self._failed += 1
            else:
                self._succeeded += 1
            return result
        finally:
            self._work_time += self.now - started_at
            if generation == self._generation:
                self._release()

    @abstractmethod
    def work(self, event: Event) -> Generator[Any, Any, Any]:
        """Do the stage's work for one event and return the success payload."""
        raise NotImplementedError

    def forward(self, event: Event) -> SimFuture:
        """Hand ``event`` to the wrapped stage and return the call's future."""
        if self._wrapped is None:
            raise RuntimeError(f"Stage {self.name} does not wrap another stage.")
        return self.clock.ensure_future(self._wrapped.accept(event))

    def _has_free_slot(self) -> bool:
        return self.concurrency is None or self._in_service < self.concurrency

    def _abandon_slot(self, slot: SimFuture) -> None:
        """Give up the place of a call closed while it waited for a slot."""
        if slot in self._waiting:
            self._waiting.remove(slot)
        else:
            # the slot had already been handed over
            self._release()

    def _release(self) -> None:
        if self._waiting:
            self._waiting.popleft().resolve(None)
        else:
            self._in_service -= 1

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.name!r})"
