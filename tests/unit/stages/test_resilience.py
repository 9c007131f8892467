"""Unit tests for Timeout, Retry, CircuitBreaker and Cache."""

import pytest

from resiliencesim import (
    Cache,
    CircuitBreaker,
    CircuitOpenError,
    CircuitState,
    Dependency,
    DependencyError,
    Event,
    Failure,
    Retry,
    Simulation,
    Stage,
    StageTimeoutError,
    StageTraffic,
    Success,
    Timeout,
)


class FailTimes(Stage):
    """Fails the first ``failures`` calls, one tick each, then succeeds."""

    def __init__(self, name, failures):
        super().__init__(name)
        self.remaining = failures

    def work(self, event):
        yield 1
        if self.remaining > 0:
            self.remaining -= 1
            raise DependencyError(self.name, "down")
        return "ok"


class HealthyAfter(Stage):
    """Fails every call that starts before tick ``healthy_at``."""

    def __init__(self, name, healthy_at):
        super().__init__(name)
        self.healthy_at = healthy_at

    def work(self, event):
        started = self.now
        yield 1
        if started < self.healthy_at:
            raise DependencyError(self.name, "down")
        return "ok"


def one_event(stage):
    [event] = Simulation(events_per_1000_ticks=1000).run(stage, 1)
    return event


class TestTimeout:
    def test_fast_call_passes_through(self):
        stage = Timeout("timeout", Dependency("db", latency=10), timeout=20)
        event = one_event(stage)
        assert event.response == Success({"key": event.key, "served_by": "db"})
        assert event.latency == 10
        assert stage.stats.timed_out == 0

    def test_slow_call_times_out(self):
        stage = Timeout("timeout", Dependency("db", latency=50), timeout=20)
        events = Simulation(events_per_1000_ticks=1000).run(stage, 3)
        for e in events:
            assert isinstance(e.response.reason, StageTimeoutError)
            assert e.latency == 20
        assert stage.stats.calls == 3
        assert stage.stats.timed_out == 3

    def test_timed_out_calls_finish_and_stage_is_reusable(self):
        backend = Dependency("db", latency=100, concurrency=1)
        stage = Timeout("timeout", backend, timeout=5)
        sim = Simulation(events_per_1000_ticks=1000)
        events = sim.run(stage, 3)

        assert all(isinstance(e.response.reason, StageTimeoutError) for e in events)
        assert [e.latency for e in events] == [5, 5, 5]
        # the abandoned calls still ran, one after another
        assert sim.metronome.now == 300
        assert backend.in_service == 0
        assert backend.queue_depth == 0
        assert backend.traffic == StageTraffic(stage="db", add=3, work_on=3, success=3, fail=0)
        assert backend.time.work_time == 300

        again = Simulation(events_per_1000_ticks=10).run(backend, 2)
        assert [e.latency for e in again] == [100, 100]
        traffic = backend.traffic
        assert traffic.add == traffic.success + traffic.fail == 5

    def test_inner_failure_propagates_before_timeout(self):
        stage = Timeout("timeout", Dependency("db", latency=5, availability=0.0), timeout=20)
        event = one_event(stage)
        assert isinstance(event.response.reason, DependencyError)
        assert event.latency == 5

    def test_rejects_non_positive_timeout(self):
        with pytest.raises(ValueError):
            Timeout("timeout", Dependency("db"), timeout=0)


class TestRetry:
    def test_retries_until_success(self):
        stage = Retry("retry", FailTimes("flaky", failures=2), max_attempts=3, backoff=5)
        event = one_event(stage)
        assert event.response == Success("ok")
        assert event.latency == 13
        assert stage.stats.attempts == 3
        assert stage.stats.retries == 2
        assert stage.stats.exhausted == 0

    def test_exponential_backoff(self):
        stage = Retry("retry", FailTimes("flaky", failures=2), max_attempts=3, backoff=5, exponential=True)
        assert [stage.backoff_for(n) for n in (1, 2, 3)] == [5, 10, 20]
        assert one_event(stage).latency == 18

    def test_exhausted_attempts_return_last_failure(self):
        stage = Retry("retry", FailTimes("flaky", failures=5), max_attempts=2)
        event = one_event(stage)
        assert isinstance(event.response.reason, DependencyError)
        assert event.latency == 2
        assert stage.stats.exhausted == 1

    def test_rejects_bad_parameters(self):
        with pytest.raises(ValueError):
            Retry("retry", Dependency("db"), max_attempts=0)
        with pytest.raises(ValueError):
            Retry("retry", Dependency("db"), backoff=-1)


class TestCircuitBreaker:
    def test_opens_after_threshold_and_fails_fast(self):
        backend = Dependency("db", latency=1, availability=0.0)
        breaker = CircuitBreaker("breaker", backend, failure_threshold=3, reset_timeout=100)
        events = Simulation(events_per_1000_ticks=100).run(breaker, 13)

        assert breaker.stats.forwarded == 3
        assert breaker.stats.rejected == 10
        assert breaker.stats.times_opened == 1
        assert backend.traffic.add == 3
        for e in events[3:]:
            assert isinstance(e.response.reason, CircuitOpenError)
            assert e.latency == 0

    def test_half_open_probes_close_the_circuit(self):
        backend = HealthyAfter("db", healthy_at=70)
        breaker = CircuitBreaker(
            "breaker", backend, failure_threshold=2, success_threshold=2, reset_timeout=50
        )
        events = Simulation(events_per_1000_ticks=100).run(breaker, 9)

        assert breaker.state == CircuitState.CLOSED
        assert breaker.stats.times_opened == 1
        assert breaker.stats.rejected == 5
        assert breaker.stats.forwarded == 4
        assert [e.response for e in events[7:]] == [Success("ok"), Success("ok")]

    def test_half_open_failure_reopens(self):
        backend = Dependency("db", latency=1, availability=0.0)
        breaker = CircuitBreaker("breaker", backend, failure_threshold=1, reset_timeout=15)
        Simulation(events_per_1000_ticks=100).run(breaker, 4)
        # t=0 opens at 1; t=10 rejected; t=20 probes and reopens at 21; t=30 rejected
        assert breaker.stats.times_opened == 2
        assert breaker.stats.rejected == 2

    def test_rejects_bad_parameters(self):
        with pytest.raises(ValueError):
            CircuitBreaker("breaker", Dependency("db"), failure_threshold=0)
        with pytest.raises(ValueError):
            CircuitBreaker("breaker", Dependency("db"), reset_timeout=0)


class TestCache:
    def test_repeated_key_hits(self):
        backend = Dependency("db", latency=10)
        cache = Cache("cache", backend, capacity=10)
        events = Simulation(events_per_1000_ticks=50, keyspace_std=0).run(cache, 5)

        assert [e.latency for e in events] == [10, 0, 0, 0, 0]
        assert cache.stats.hits == 4
        assert cache.stats.misses == 1
        assert cache.stats.hit_rate == pytest.approx(0.8)
        assert backend.traffic.add == 1

    def test_ttl_expires_entries(self):
        cache = Cache("cache", Dependency("db", latency=10), ttl=30)
        Simulation(events_per_1000_ticks=50, keyspace_std=0).run(cache, 5)
        assert cache.stats.hits == 2
        assert cache.stats.misses == 3
        assert cache.stats.expirations == 2

    def test_lru_eviction(self, metronome):
        cache = Cache("cache", Dependency("db"), capacity=2)
        cache.set_clock(metronome)
        for key in ("a", "b", "a", "c"):
            metronome.run_until_complete(metronome.spawn(cache.accept(Event(key=key))))

        assert "a" in cache
        assert "b" not in cache
        assert "c" in cache
        assert len(cache) == 2
        assert cache.stats.evictions == 1

    def test_failures_are_not_cached(self):
        cache = Cache("cache", Dependency("db", latency=1, availability=0.0))
        events = Simulation(events_per_1000_ticks=50, keyspace_std=0).run(cache, 3)
        assert all(isinstance(e.response, Failure) for e in events)
        assert len(cache) == 0
        assert cache.stats.misses == 3
