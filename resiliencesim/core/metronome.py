"""Virtual clock and wake-queue scheduler.

The Metronome owns the simulated time of one run. Nothing here sleeps:
time jumps straight to the next pending wakeup, so a run spanning tens of
thousands of ticks finishes in however long its callbacks take to execute.
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import Any, Callable

from resiliencesim.core.event_heap import EventHeap, Wakeup
from resiliencesim.core.process import Process
from resiliencesim.core.sim_future import SimFuture
from resiliencesim.errors import SimulationStalledError

logger = logging.getLogger(__name__)


class Metronome:
    """Process-local source of virtual time with a wake-time ordered queue.

    Lifecycle: start() -> any number of wait/spawn/run_until_complete calls
    -> stop(). Each Simulation owns one Metronome, so independent runs never
    share a clock.

    Attributes:
        now: Current virtual tick. Monotonic within a run.
        running: Whether the metronome accepts new wakeups.
    """

    def __init__(self) -> None:
        self._heap = EventHeap()
        self._now: float = 0.0
        self._running: bool = False
        self._wakeups_fired: int = 0
        self._live: set[Process] = set()

    @property
    def now(self) -> float:
        return self._now

    @property
    def running(self) -> bool:
        return self._running

    @property
    def pending(self) -> int:
        """Number of wakeups still queued (including cancelled ones)."""
        return self._heap.size()

    @property
    def wakeups_fired(self) -> int:
        return self._wakeups_fired

    def start(self) -> None:
        """Reset time to 0 and begin accepting wakeups.

        Starting a metronome that is already running keeps its time and any
        pending wakeups.
        """
        if self._running:
            logger.warning(
                "Metronome already running at t=%s with %d pending wakeups; start() ignored",
                self._now,
                self._heap.size(),
            )
            return
        self._heap.clear()
        self._now = 0.0
        self._wakeups_fired = 0
        self._running = True
        logger.debug("Metronome started")

    def stop(self) -> None:
        """Halt tick progression, drop anything still scheduled and close parked processes.

        Closing raises GeneratorExit inside each process that is still
        waiting, so its ``finally`` blocks run now, while the metronome is
        already stopped and can no longer resume anything.
        """
        if not self._running:
            return
        dropped = self.pending
        self._running = False
        self._heap.clear()

        abandoned = list(self._live)
        self._live.clear()
        for process in abandoned:
            process.close()

        logger.debug(
            "Metronome stopped at t=%s after %d wakeups (%d dropped, %d processes closed)",
            self._now,
            self._wakeups_fired,
            dropped,
            len(abandoned),
        )

    def _require_running(self, operation: str) -> None:
        if not self._running:
            raise RuntimeError(f"Metronome.{operation}() called while the metronome is stopped.")

    def call_later(self, ticks: float, fn: Callable[[], None]) -> Wakeup:
        """Schedule ``fn`` to run after ``ticks`` ticks. Returns a cancellable handle."""
        self._require_running("call_later")
        wakeup = Wakeup(self._now + max(ticks, 0.0), fn)
        self._heap.push(wakeup)
        return wakeup

    def call_soon(self, fn: Callable[[], None]) -> Wakeup:
        """Schedule ``fn`` at the current tick, after everything already due now."""
        return self.call_later(0.0, fn)

    def wait(self, ticks: float) -> SimFuture:
        """Return a future resolved with the wake time once ``ticks`` ticks elapse.

        A non-positive duration yields an already-resolved future.
        """
        self._require_running("wait")
        if ticks <= 0:
            return SimFuture.resolved(self._now)
        future = SimFuture()
        wake_time = self._now + ticks
        self._heap.push(Wakeup(wake_time, lambda: future.resolve(wake_time)))
        return future

    def spawn(self, generator: Generator, name: str | None = None) -> SimFuture:
        """Start a generator-based process and return its result future."""
        self._require_running("spawn")
        process = Process(self, generator, name=name)
        self._live.add(process)
        process.result.add_settle_callback(lambda _: self._live.discard(process))
        return process.start()

    def ensure_future(self, value: Any) -> SimFuture:
        """Normalise a stage result into a SimFuture.

        A SimFuture passes through, a generator is spawned as a process, and
        any other value becomes an already-resolved future.
        """
        if isinstance(value, SimFuture):
            return value
        if isinstance(value, Generator):
            return self.spawn(value)
        return SimFuture.resolved(value)

    def run_until_complete(self, future: SimFuture) -> Any:
        """Advance virtual time until ``future`` settles and return its value.

        Raises:
            SimulationStalledError: If nothing is left to wake but the
                future is still pending.
            BaseException: Whatever the future failed with.
        """
        self._require_running("run_until_complete")

        while not future.is_settled:
            if not self._heap.has_events():
                logger.error("Run stalled at t=%s: future pending with an empty wake queue", self._now)
                raise SimulationStalledError(
                    f"Nothing left to schedule at t={self._now} but the awaited future never settled."
                )
            self._fire_next()

        if future.is_failed:
            raise future.exception
        return future.value

    def run_until_idle(self) -> int:
        """Fire every remaining wakeup, advancing time as needed.

        Lets calls nobody waits on any more (the losing side of a timeout)
        run to completion. Returns the number of wakeups fired.
        """
        self._require_running("run_until_idle")
        fired = self._wakeups_fired
        while self._heap.has_events():
            self._fire_next()
        return self._wakeups_fired - fired

    def _fire_next(self) -> None:
        wakeup = self._heap.pop()
        if wakeup.cancelled:
            return
        if wakeup.time > self._now:
            self._now = wakeup.time
        self._wakeups_fired += 1
        wakeup.fn()

    def __repr__(self) -> str:
        state = "running" if self._running else "stopped"
        return f"Metronome(now={self._now}, {state}, pending={self._heap.size()})"
