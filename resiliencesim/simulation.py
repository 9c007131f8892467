"""Arrival engine: sends events into a stage at a fixed rate on virtual time.

Each run owns a Metronome. The arrival process submits events and waits only
on elapsed ticks, never on a stage call, so any number of calls can be in
flight at once. Once the schedule is exhausted the run joins every event
future and hands back the completed events.

Example:
    from resiliencesim import Simulation, Dependency

    sim = Simulation(events_per_1000_ticks=100, seed=1)
    events = sim.run(Dependency("db", latency=12, availability=0.99), 500)
"""

from __future__ import annotations

import logging
import math
import random
from collections.abc import Generator
from dataclasses import replace
from typing import Any

from resiliencesim.config import SimulationConfig, validate_rate
from resiliencesim.core.metronome import Metronome
from resiliencesim.core.sim_future import SimFuture, all_of
from resiliencesim.logging_config import tick_filter
from resiliencesim.model.event import Event
from resiliencesim.model.response import Failure, as_response

logger = logging.getLogger(__name__)


class Simulation:
    """Executes simulation runs against a stage.

    Attributes:
        metronome: The virtual clock owned by this simulation.
        config: Current configuration. Changing the rate mid-run updates it.
    """

    def __init__(self, config: SimulationConfig | None = None, **overrides: Any):
        config = config or SimulationConfig()
        if overrides:
            config = replace(config, **overrides)
        self.config = config
        self.metronome = Metronome()
        self._rng = random.Random(config.seed)
        self._arrival_rate: float = 0.0
        self._running = False

    @property
    def events_per_1000_ticks(self) -> float:
        return self.config.events_per_1000_ticks

    @events_per_1000_ticks.setter
    def events_per_1000_ticks(self, rate: float) -> None:
        """Change the arrival rate. Takes effect from the next arrival of a running run."""
        self.config = self.config.with_rate(validate_rate(rate))
        logger.info("Arrival rate set to %s events/1000 ticks", rate)

    @property
    def arrival_rate(self) -> float:
        """Rate events are currently being emitted at; 0 when no run is emitting."""
        return self._arrival_rate

    def get_arrival_rate(self) -> float:
        return self._arrival_rate

    def run(self, stage: Any, num_events_to_send: int) -> list[Event]:
        """Execute a simulation run.

        Args:
            stage: The stage where events will be inserted. Must expose
                ``accept(event)`` returning a generator, a SimFuture or a value.
            num_events_to_send: The number of events to be sent.

        Returns:
            All events in submission order, each with a response and both
            timestamps set.

        Raises:
            ValueError: If the event count is negative or not an integer.
            RuntimeError: If this simulation is already running.
            SimulationStalledError: If a stage call can never settle.
        """
        if isinstance(num_events_to_send, bool) or not isinstance(num_events_to_send, int):
            raise ValueError(f"num_events_to_send must be an int, got {num_events_to_send!r}")
        if num_events_to_send < 0:
            raise ValueError(f"num_events_to_send must be >= 0, got {num_events_to_send}")
        if self._running:
            raise RuntimeError("Simulation.run() is already in progress; create another Simulation.")

        set_clock = getattr(stage, "set_clock", None)
        if set_clock is not None:
            set_clock(self.metronome)

        logger.info(
            "Run started: %d events at %s events/1000 ticks into %s",
            num_events_to_send,
            self.config.events_per_1000_ticks,
            getattr(stage, "name", type(stage).__name__),
        )

        self._running = True
        tick_filter.watch(self.metronome)
        self.metronome.start()
        try:
            arrivals = self.metronome.spawn(self._send_events(stage, num_events_to_send), name="arrivals")
            pending: list[SimFuture] = self.metronome.run_until_complete(arrivals)
            events: list[Event] = self.metronome.run_until_complete(all_of(*pending))
            # calls nobody awaits any more, such as a timed-out inner call, run to completion
            leftover = self.metronome.run_until_idle()
            if leftover:
                logger.debug("Drained %d wakeups of abandoned calls, t=%s", leftover, self.metronome.now)
        finally:
            self.metronome.stop()
            tick_filter.watch(None)
            self._arrival_rate = 0.0
            self._running = False

        logger.info(
            "Run finished: %d events at t=%s after %d wakeups",
            len(events),
            self.metronome.now,
            self.metronome.wakeups_fired,
        )
        return events

    def _send_events(self, stage: Any, num_events_to_send: int) -> Generator[float, Any, list[SimFuture]]:
        """Send events at the configured rate; return their pending futures."""
        events: list[SimFuture] = []
        events_sent = 0

        while events_sent < num_events_to_send:
            rate = self.config.events_per_1000_ticks
            tick_delta = 1000.0 / rate
            self._arrival_rate = rate

            if tick_delta < 1:
                # several arrivals per tick; floor(rate / 1000) == floor(1 / tick_delta)
                events_this_tick = min(math.floor(rate / 1000.0), num_events_to_send - events_sent)
                events.extend(self._create_event_batch(stage, events_this_tick))
                events_sent += events_this_tick
                delay = 1.0
                logger.debug("t=%s sent batch of %d (%d/%d)", self.metronome.now, events_this_tick,
                             events_sent, num_events_to_send)
            else:
                events.append(self._create_event(stage))
                events_sent += 1
                delay = tick_delta

            if events_sent < num_events_to_send:
                yield delay

        self._arrival_rate = 0.0
        return events

    def _create_event_batch(self, stage: Any, num: int) -> list[SimFuture]:
        return [self._create_event(stage) for _ in range(num)]

    def _create_event(self, stage: Any) -> SimFuture:
        """Submit one event; the returned future resolves with the completed event."""
        event = Event(key=self._next_key())
        event.response_time.start_time = self.metronome.now
        done = SimFuture()

        def on_settle(outcome: SimFuture) -> None:
            event.response_time.end_time = self.metronome.now
            if outcome.is_resolved:
                event.response = as_response(outcome.value)
            else:
                event.response = Failure(outcome.exception)
            done.resolve(event)

        try:
            submitted = self.metronome.ensure_future(stage.accept(event))
        except Exception as exc:
            logger.debug("Stage rejected %s synchronously: %s", event.id, exc)
            submitted = SimFuture.failed(exc)

        submitted.add_settle_callback(on_settle)
        return done

    def _next_key(self) -> str:
        mean = self.config.keyspace_mean
        std = self.config.keyspace_std
        value = self._rng.gauss(mean, std) if std > 0 else mean
        return f"e-{max(0, round(value))}"
