"""
Integration tests for the naive vs. resilient client example.

These tests verify:
1. Every event of both runs completes with a response
2. Retries, the timeout and the cache turn dependency failures into successes
3. The comparison table reports the difference B - A
4. Visualization file generation

Run with: pytest tests/integration/test_resilience_comparison.py -v
"""

import io
import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).parent.parent.parent / "examples"))

from resilience_comparison import (
    ComparisonConfig,
    print_summary,
    run_comparison,
    visualize_results,
)

from resiliencesim import ResponseType, create_event_summary, event_compare, print_event_compare


@pytest.fixture(scope="module")
def result():
    return run_comparison(ComparisonConfig(num_events=500, seed=42))


class TestRuns:
    def test_all_events_complete(self, result):
        for events in (result.naive, result.resilient):
            assert len(events) == 500
            assert all(e.is_complete for e in events)

    def test_same_arrival_schedule(self, result):
        naive_starts = [e.response_time.start_time for e in result.naive]
        resilient_starts = [e.response_time.start_time for e in result.resilient]
        assert naive_starts == resilient_starts
        assert naive_starts[-1] == 499 * 20

    def test_same_keys(self, result):
        assert [e.key for e in result.naive] == [e.key for e in result.resilient]

    def test_naive_run_sees_dependency_failures(self, result):
        summary = create_event_summary(result.naive)
        assert summary.fail["count"] > 0
        assert summary.fail["count"] == result.naive_stages[0].traffic.fail

    def test_resilient_run_fails_less(self, result):
        naive = create_event_summary(result.naive)
        resilient = create_event_summary(result.resilient)
        assert resilient.fail["count"] < naive.fail["count"]
        assert resilient.success["percent"] > 0.95

    def test_cache_serves_repeated_keys(self, result):
        cache = result.resilient_stages[0]
        assert cache.stats.hits > 0
        assert cache.stats.hits + cache.stats.misses == 500

    def test_timeout_caps_attempt_latency(self, result):
        timeout = result.resilient_stages[3]
        assert timeout.stats.timed_out > 0
        assert timeout.time.work_time <= timeout.stats.calls * result.config.timeout


class TestComparison:
    def test_diff_is_b_minus_a(self, result):
        diff = event_compare(result.naive, result.resilient)
        assert diff.success["count"] > 0
        assert diff.success["count"] + diff.fail["count"] == 0
        assert diff.row(ResponseType.SUCCESS)["percent"] == pytest.approx(-diff.fail["percent"])

    def test_printed_report(self, result, capsys):
        print_summary(result)
        out = capsys.readouterr().out
        assert out.count("Overview of Events") == 2
        assert "Diff of the events, (B - A):" in out
        for stage in ("cache", "breaker", "retry", "timeout", "dependency"):
            assert stage in out

    def test_report_to_stream(self, result):
        buffer = io.StringIO()
        print_event_compare(result.naive, result.resilient, file=buffer)
        assert buffer.getvalue().startswith("\nDiff of the events")


class TestVisualization:
    def test_generates_histogram(self, result, test_output_dir: Path):
        matplotlib = pytest.importorskip("matplotlib")
        matplotlib.use("Agg")

        path = visualize_results(result, test_output_dir)
        assert path.exists()
        assert path.stat().st_size > 0
