"""Tests for event and stage summaries."""

import math

import pytest

from resiliencesim import (
    NO_DATA,
    Dependency,
    Event,
    Failure,
    Metric,
    ResponseType,
    Simulation,
    StageTime,
    StageTraffic,
    Success,
    compare_summaries,
    create_event_summary,
    event_compare,
    format_value,
    stage_time_summary,
    stage_traffic_summary,
)
from resiliencesim.instrumentation.summary import partition


def make_event(start, end, response=None):
    event = Event(key="k")
    event.response_time.start_time = start
    event.response_time.end_time = end
    event.response = response if response is not None else Success()
    return event


class TestPartition:
    def test_failures_and_everything_else(self):
        ok = make_event(0, 1)
        bad = make_event(0, 2, Failure("x"))
        raw = make_event(0, 3, Success("fail"))
        buckets = partition([ok, bad, raw])
        assert buckets[ResponseType.SUCCESS] == [ok, raw]
        assert buckets[ResponseType.FAIL] == [bad]


class TestEventSummary:
    def test_counts_and_percents_add_up(self):
        events = [make_event(0, 1)] * 3 + [make_event(0, 5, Failure())]
        summary = create_event_summary(events)
        assert summary.success["count"] + summary.fail["count"] == 4
        assert summary.success["percent"] + summary.fail["percent"] == pytest.approx(1)
        assert summary.success["percent"] == 0.75

    def test_empty_collection(self):
        summary = create_event_summary([])
        for row in (summary.success, summary.fail):
            assert row["count"] == 0
            assert row["percent"] == 0
            assert math.isnan(row["mean_latency"])
            assert math.isnan(row["std_latency"])

    def test_latency_statistics(self):
        summary = create_event_summary([make_event(0, 0), make_event(10, 20)])
        assert summary.success["mean_latency"] == 5
        # population standard deviation
        assert summary.success["std_latency"] == 5

    def test_single_event_has_zero_std(self):
        summary = create_event_summary([make_event(3, 7, Failure())])
        assert summary.fail["std_latency"] == 0
        assert summary.fail["mean_latency"] == 4

    def test_values_stay_full_precision(self):
        summary = create_event_summary([make_event(0, 1), make_event(0, 1), make_event(0, 1, Failure())])
        assert summary.success["percent"] == 2 / 3
        assert summary.formatted()[0]["percent"] == 0.667

    def test_additional_columns(self):
        def slowest(bucket):
            return max((e.latency for e in bucket), default=math.nan)

        summary = create_event_summary(
            [make_event(0, 2), make_event(0, 9)],
            [Metric("max_latency", slowest), lambda bucket: len(bucket) * 10],
        )
        assert summary.columns == (
            "count", "percent", "mean_latency", "std_latency", "max_latency", "column_5",
        )
        assert summary.success["max_latency"] == 9
        assert summary.success["column_5"] == 20
        assert summary.fail["column_5"] == 0

    def test_duplicate_metric_names_rejected(self):
        with pytest.raises(ValueError, match="unique"):
            create_event_summary([], [Metric("count", len)])

    def test_dataframe(self):
        summary = create_event_summary([make_event(0, 1.23456)])
        df = summary.to_dataframe(formatted=True)
        assert list(df.index) == ["success", "fail"]
        assert list(df.columns) == ["count", "percent", "mean_latency", "std_latency"]
        assert df.loc["success", "mean_latency"] == 1.235
        assert df.loc["fail", "mean_latency"] == NO_DATA

        raw = summary.to_dataframe()
        assert raw.loc["success", "mean_latency"] == 1.23456


class TestFormatValue:
    @pytest.mark.parametrize(
        "value, expected",
        [(5, 5), (1.0, 1), (0.0, 0), (0.123456, 0.123), (2.71828, 2.718), (-0.25, -0.25)],
    )
    def test_formats(self, value, expected):
        assert format_value(value) == expected

    def test_integral_floats_become_ints(self):
        assert isinstance(format_value(3.0), int)

    def test_nan_is_no_data(self):
        assert format_value(math.nan) == NO_DATA


class TestCompare:
    def test_self_comparison_is_all_zero(self):
        summary = create_event_summary([make_event(0, 4), make_event(1, 2)])
        diff = compare_summaries(summary, summary)
        for t in (ResponseType.SUCCESS, ResponseType.FAIL):
            assert all(v == 0 for v in diff.row(t).values())

    def test_difference_is_b_minus_a(self):
        a = [make_event(0, 2), make_event(0, 2, Failure())]
        b = [make_event(0, 5), make_event(0, 5), make_event(0, 5), make_event(0, 1, Failure())]
        diff = event_compare(a, b)
        assert diff.success["count"] == 2
        assert diff.success["percent"] == pytest.approx(0.25)
        assert diff.success["mean_latency"] == 3
        assert diff.fail["count"] == 0
        assert diff.fail["mean_latency"] == -1

    def test_no_data_on_one_side_stays_no_data(self):
        diff = event_compare([make_event(0, 1)], [make_event(0, 1, Failure())])
        assert math.isnan(diff.fail["mean_latency"])
        assert diff.formatted()[1]["mean_latency"] == NO_DATA

    def test_diff_uses_raw_values(self):
        a = create_event_summary([make_event(0, 1.0004)])
        b = create_event_summary([make_event(0, 1.0008)])
        assert compare_summaries(a, b).success["mean_latency"] == pytest.approx(0.0004)


class TestStageSummaries:
    def test_one_row_per_stage(self):
        fast = Dependency("fast", latency=1)
        slow = Dependency("slow", latency=5, availability=0.0)
        Simulation(events_per_1000_ticks=100).run(fast, 2)
        Simulation(events_per_1000_ticks=100).run(slow, 2)

        times = stage_time_summary([fast, slow])
        assert list(times.columns) == ["stage", "queue_time", "work_time"]
        assert list(times["stage"]) == ["fast", "slow"]
        assert list(times["work_time"]) == [2, 10]

        traffic = stage_traffic_summary([fast, slow])
        assert list(traffic.columns) == ["stage", "add", "work_on", "success", "fail"]
        assert list(traffic["fail"]) == [0, 2]

    def test_single_stage_and_duck_typed_stage(self):
        class Custom:
            name = "custom"
            time = {"queue_time": 1.5, "work_time": 3.0}
            traffic = StageTraffic(stage="custom", add=1, work_on=1, success=1, fail=0)

        assert stage_time_summary(Custom()).loc[0, "stage"] == "custom"
        assert stage_traffic_summary(Custom()).loc[0, "add"] == 1
        assert StageTime(stage="x").queue_time == 0
