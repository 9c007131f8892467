"""Naive client vs. resilient client against the same flaky dependency.

This example shows:
1. A client calling a dependency directly, eating every failure and slow call
2. The same traffic behind a cache, a circuit breaker, retries and a timeout
3. The difference between the two runs, and their latency distributions

## Pipelines

```
naive:      events -> Dependency

resilient:  events -> Cache -> CircuitBreaker -> Retry -> Timeout -> Dependency
```

Both runs use the same seeds, so the dependency behaves identically; only
the stages in front of it change.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from resiliencesim import (
    Cache,
    CircuitBreaker,
    Dependency,
    Event,
    Retry,
    Simulation,
    SimulationConfig,
    Stage,
    Timeout,
    enable_console_logging,
    print_event_compare,
    print_event_summary,
    print_stage_summary,
)
from resiliencesim.instrumentation.summary import latencies
from resiliencesim.stages import normal


@dataclass(frozen=True)
class ComparisonConfig:
    """Parameters shared by both runs."""

    num_events: int = 500
    events_per_1000_ticks: float = 50.0
    latency_mean: float = 30.0
    latency_std: float = 15.0
    availability: float = 0.9
    timeout: float = 50.0
    max_attempts: int = 3
    backoff: float = 5.0
    cache_capacity: int = 100
    cache_ttl: float | None = 2000.0
    seed: int | None = 42


@dataclass
class ComparisonResult:
    config: ComparisonConfig
    naive: list[Event]
    resilient: list[Event]
    naive_stages: list[Stage] = field(default_factory=list)
    resilient_stages: list[Stage] = field(default_factory=list)


def build_dependency(config: ComparisonConfig) -> Dependency:
    return Dependency(
        "dependency",
        latency=normal(config.latency_mean, config.latency_std),
        availability=config.availability,
        seed=config.seed,
    )


def build_resilient_pipeline(config: ComparisonConfig) -> list[Stage]:
    """Outermost stage first."""
    dependency = build_dependency(config)
    timeout = Timeout("timeout", dependency, timeout=config.timeout)
    retry = Retry("retry", timeout, max_attempts=config.max_attempts, backoff=config.backoff, exponential=True)
    breaker = CircuitBreaker("breaker", retry)
    cache = Cache("cache", breaker, capacity=config.cache_capacity, ttl=config.cache_ttl)
    return [cache, breaker, retry, timeout, dependency]


def run_comparison(config: ComparisonConfig) -> ComparisonResult:
    sim_config = SimulationConfig(events_per_1000_ticks=config.events_per_1000_ticks, seed=config.seed)

    naive_stage = build_dependency(config)
    naive = Simulation(sim_config).run(naive_stage, config.num_events)

    pipeline = build_resilient_pipeline(config)
    resilient = Simulation(sim_config).run(pipeline[0], config.num_events)

    return ComparisonResult(
        config=config,
        naive=naive,
        resilient=resilient,
        naive_stages=[naive_stage],
        resilient_stages=pipeline,
    )


def visualize_results(result: ComparisonResult, output_dir: Path) -> Path:
    """Save a latency histogram of both runs; returns the image path."""
    import matplotlib.pyplot as plt

    output_dir.mkdir(parents=True, exist_ok=True)

    fig, ax = plt.subplots(figsize=(10, 5))
    ax.hist(latencies(result.naive), bins=50, alpha=0.6, label="naive")
    ax.hist(latencies(result.resilient), bins=50, alpha=0.6, label="resilient")
    ax.axvline(result.config.timeout, color="red", linestyle="--", label="timeout")
    ax.set_xlabel("Latency (ticks)")
    ax.set_ylabel("Events")
    ax.set_title(
        f"Latency ({result.config.num_events} events, availability={result.config.availability})"
    )
    ax.legend()
    fig.tight_layout()

    path = output_dir / "latency_histogram.png"
    fig.savefig(path, dpi=150)
    plt.close(fig)
    print(f"Saved: {path}")
    return path


def print_summary(result: ComparisonResult) -> None:
    print("=== Naive ===")
    print_event_summary(result.naive)
    print_stage_summary(result.naive_stages)

    print("\n=== Resilient ===")
    print_event_summary(result.resilient)
    print_stage_summary(result.resilient_stages)

    print_event_compare(result.naive, result.resilient)


if __name__ == "__main__":
    import argparse

    parser = argparse.ArgumentParser(description="Compare a naive and a resilient client")
    parser.add_argument("--events", type=int, default=500, help="Number of events per run")
    parser.add_argument("--rate", type=float, default=50.0, help="Events per 1000 ticks")
    parser.add_argument("--availability", type=float, default=0.9, help="Dependency availability")
    parser.add_argument("--timeout", type=float, default=50.0, help="Timeout in ticks")
    parser.add_argument("--seed", type=int, default=42, help="Random seed (use -1 for random)")
    parser.add_argument("--output", type=str, default="output/resilience_comparison", help="Output directory")
    parser.add_argument("--no-viz", action="store_true", help="Skip visualization generation")
    parser.add_argument("--verbose", action="store_true", help="Log stage transitions")
    args = parser.parse_args()

    if args.verbose:
        enable_console_logging(level="INFO")

    config = ComparisonConfig(
        num_events=args.events,
        events_per_1000_ticks=args.rate,
        availability=args.availability,
        timeout=args.timeout,
        seed=None if args.seed == -1 else args.seed,
    )
    result = run_comparison(config)
    print_summary(result)

    if not args.no_viz:
        visualize_results(result, Path(args.output))
