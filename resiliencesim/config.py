"""Run configuration for a Simulation.

Example usage:
    from resiliencesim import Simulation, SimulationConfig

    config = SimulationConfig(events_per_1000_ticks=200, seed=7)
    sim = Simulation(config)

Environment variables (read by SimulationConfig.from_env):
    RS_EVENTS_PER_1000_TICKS: Arrival rate
    RS_KEYSPACE_MEAN: Mean of the event key distribution
    RS_KEYSPACE_STD: Standard deviation of the event key distribution
    RS_SEED: Seed for event key generation
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, replace

logger = logging.getLogger(__name__)

DEFAULT_EVENTS_PER_1000_TICKS = 50.0
DEFAULT_KEYSPACE_MEAN = 1000.0
DEFAULT_KEYSPACE_STD = 50.0


def validate_rate(events_per_1000_ticks: float) -> float:
    """Return the rate as a float, rejecting non-positive values."""
    if isinstance(events_per_1000_ticks, bool) or not isinstance(events_per_1000_ticks, (int, float)):
        raise ValueError(f"events_per_1000_ticks must be a number, got {events_per_1000_ticks!r}")
    if not events_per_1000_ticks > 0:
        raise ValueError(f"events_per_1000_ticks must be > 0, got {events_per_1000_ticks}")
    return float(events_per_1000_ticks)


@dataclass(frozen=True)
class SimulationConfig:
    """Recognised options for a simulation run.

    Attributes:
        events_per_1000_ticks: Rate at which events are sent to the stage.
        keyspace_mean: Mean of the keys used when creating new events.
        keyspace_std: Standard deviation of the keys used when creating new events.
        seed: Seed for key generation. None draws a fresh seed.
    """

    events_per_1000_ticks: float = DEFAULT_EVENTS_PER_1000_TICKS
    keyspace_mean: float = DEFAULT_KEYSPACE_MEAN
    keyspace_std: float = DEFAULT_KEYSPACE_STD
    seed: int | None = None

    def __post_init__(self) -> None:
        validate_rate(self.events_per_1000_ticks)
        if self.keyspace_std < 0:
            raise ValueError(f"keyspace_std must be >= 0, got {self.keyspace_std}")

    @property
    def tick_delta(self) -> float:
        """Ticks between successive arrivals at the configured rate."""
        return 1000.0 / self.events_per_1000_ticks

    def with_rate(self, events_per_1000_ticks: float) -> SimulationConfig:
        """Return a copy with a different arrival rate."""
        return replace(self, events_per_1000_ticks=events_per_1000_ticks)

    @classmethod
    def from_env(cls) -> SimulationConfig:
        """Build a config from RS_* environment variables, falling back to defaults."""
        rate = os.environ.get("RS_EVENTS_PER_1000_TICKS", "")
        mean = os.environ.get("RS_KEYSPACE_MEAN", "")
        std = os.environ.get("RS_KEYSPACE_STD", "")
        seed = os.environ.get("RS_SEED", "")

        config = cls(
            events_per_1000_ticks=float(rate) if rate else DEFAULT_EVENTS_PER_1000_TICKS,
            keyspace_mean=float(mean) if mean else DEFAULT_KEYSPACE_MEAN,
            keyspace_std=float(std) if std else DEFAULT_KEYSPACE_STD,
            seed=int(seed) if seed else None,
        )
        logger.debug("Loaded %s from environment", config)
        return config
