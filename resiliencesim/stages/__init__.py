"""Reference stages for building simulated pipelines.

Example:
    from resiliencesim.stages import CircuitBreaker, Dependency, Retry, Timeout, exponential

    backend = Dependency("backend", latency=exponential(40), availability=0.95)
    timeout = Timeout("timeout", backend, timeout=100)
    retry = Retry("retry", timeout, max_attempts=3, backoff=10, exponential=True)
    breaker = CircuitBreaker("breaker", retry, failure_threshold=5)
"""

from resiliencesim.stages.cache import Cache, CacheStats
from resiliencesim.stages.circuit_breaker import (
    CircuitBreaker,
    CircuitBreakerStats,
    CircuitState,
)
from resiliencesim.stages.dependency import (
    Dependency,
    LatencySampler,
    constant,
    exponential,
    normal,
)
from resiliencesim.stages.retry import Retry, RetryStats
from resiliencesim.stages.stage import Stage, StageTime, StageTraffic
from resiliencesim.stages.timeout import Timeout, TimeoutStats

__all__ = [
    "Cache",
    "CacheStats",
    "CircuitBreaker",
    "CircuitBreakerStats",
    "CircuitState",
    "Dependency",
    "LatencySampler",
    "Retry",
    "RetryStats",
    "Stage",
    "StageTime",
    "StageTraffic",
    "Timeout",
    "TimeoutStats",
    "constant",
    "exponential",
    "normal",
]
