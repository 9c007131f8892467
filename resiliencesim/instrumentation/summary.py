"""Statistics over the events of a completed run.

Events are split into a success and a fail bucket. Every metric in an
ordered table of named reducers is applied to both buckets, producing one
row per bucket. Values stay full-precision floats; rounding only happens in
format_value() when a summary is displayed.

Example:
    summary = create_event_summary(events, [Metric("p99", p99_latency)])
    summary.success["mean_latency"]     # raw float
    summary.to_dataframe(formatted=True)
"""

from __future__ import annotations

import dataclasses
import logging
import math
import statistics
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Union

import pandas as pd

from resiliencesim.model.event import Event
from resiliencesim.model.response import ResponseType, classify

logger = logging.getLogger(__name__)

PRECISION = 3
NO_DATA = "no data"
"""Display marker for metrics that are undefined (e.g. latency of an empty bucket)."""

MetricFn = Callable[[Sequence[Event]], float]

BUCKET_ORDER = (ResponseType.SUCCESS, ResponseType.FAIL)


@dataclass(frozen=True)
class Metric:
    """A named reducer applied to each bucket of events."""

    name: str
    fn: MetricFn

    def __call__(self, bucket: Sequence[Event]) -> float:
        return self.fn(bucket)


ColumnSpec = Union[Metric, MetricFn]


def latencies(bucket: Sequence[Event]) -> list[float]:
    """Latency samples of the completed events in ``bucket``."""
    return [e.latency for e in bucket if e.latency is not None]


def count(bucket: Sequence[Event]) -> int:
    return len(bucket)


def mean_latency(bucket: Sequence[Event]) -> float:
    """Mean latency in ticks, NaN for an empty bucket."""
    samples = latencies(bucket)
    if not samples:
        return math.nan
    return statistics.fmean(samples)


def std_latency(bucket: Sequence[Event]) -> float:
    """Population standard deviation of latency, NaN for an empty bucket."""
    samples = latencies(bucket)
    if not samples:
        return math.nan
    return statistics.pstdev(samples)


def percent_of(total: int) -> MetricFn:
    """Share of ``total`` events that fall into a bucket; 0 when there are none."""

    def percent(bucket: Sequence[Event]) -> float:
        return len(bucket) / total if total > 0 else 0

    return percent


def partition(events: Sequence[Event]) -> dict[ResponseType, list[Event]]:
    """Split events into the success and fail buckets."""
    buckets: dict[ResponseType, list[Event]] = {t: [] for t in BUCKET_ORDER}
    for event in events:
        buckets[classify(event.response)].append(event)
    return buckets


def is_no_data(value: Any) -> bool:
    return isinstance(value, float) and math.isnan(value)


def format_value(value: Any, precision: int = PRECISION) -> Any:
    """Display form of a metric value.

    Integers (including integral floats) are shown as ints, undefined values
    as NO_DATA, everything else rounded to ``precision`` decimals.
    """
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        if math.isnan(value):
            return NO_DATA
        if value.is_integer():
            return int(value)
        return round(value, precision)
    return value


@dataclass(frozen=True)
class EventSummary:
    """One row of raw metric values per bucket.

    Attributes:
        columns: Metric names, in table order.
        rows: Bucket -> {metric name -> raw value}.
    """

    columns: tuple[str, ...]
    rows: Mapping[ResponseType, Mapping[str, Any]]

    def row(self, response_type: ResponseType) -> Mapping[str, Any]:
        return self.rows[response_type]

    def __getitem__(self, response_type: ResponseType) -> Mapping[str, Any]:
        return self.rows[response_type]

    @property
    def success(self) -> Mapping[str, Any]:
        return self.rows[ResponseType.SUCCESS]

    @property
    def fail(self) -> Mapping[str, Any]:
        return self.rows[ResponseType.FAIL]

    def formatted(self, precision: int = PRECISION) -> list[dict[str, Any]]:
        """Display rows: ``{"type": "success", "count": 5, ...}``."""
        return [
            {"type": t.value, **{c: format_value(self.rows[t][c], precision) for c in self.columns}}
            for t in BUCKET_ORDER
        ]

    def to_dataframe(self, formatted: bool = False) -> pd.DataFrame:
        """The summary as a DataFrame indexed by bucket name."""
        if formatted:
            records = self.formatted()
        else:
            records = [{"type": t.value, **{c: self.rows[t][c] for c in self.columns}} for t in BUCKET_ORDER]
        return pd.DataFrame(records, columns=["type", *self.columns]).set_index("type")


def _resolve_columns(total: int, additional_columns: Sequence[ColumnSpec] | None) -> list[Metric]:
    columns = [
        Metric("count", count),
        Metric("percent", percent_of(total)),
        Metric("mean_latency", mean_latency),
        Metric("std_latency", std_latency),
    ]
    for i, col in enumerate(additional_columns or (), start=len(columns)):
        if isinstance(col, Metric):
            columns.append(col)
        else:
            columns.append(Metric(f"column_{i}", col))

    names = [c.name for c in columns]
    if len(set(names)) != len(names):
        raise ValueError(f"Metric names must be unique, got {names}")
    return columns


def create_event_summary(
    events: Sequence[Event], additional_columns: Sequence[ColumnSpec] | None = None
) -> EventSummary:
    """Reduce events into a success row and a fail row.

    Args:
        events: The events that have completed the simulation.
        additional_columns: Extra metrics appended after the defaults. Bare
            callables are named ``column_<position>``.
    """
    buckets = partition(events)
    columns = _resolve_columns(len(events), additional_columns)

    rows = {t: {col.name: col(buckets[t]) for col in columns} for t in BUCKET_ORDER}
    logger.debug(
        "Summarised %d events: %d success, %d fail",
        len(events),
        len(buckets[ResponseType.SUCCESS]),
        len(buckets[ResponseType.FAIL]),
    )
    return EventSummary(columns=tuple(col.name for col in columns), rows=rows)


def compare_summaries(a: EventSummary, b: EventSummary) -> EventSummary:
    """Row-wise ``b - a`` over the columns both summaries share, on raw values.

    A metric undefined in both summaries did not change (0); undefined in
    only one of them the difference is undefined too (NaN).
    """
    columns = tuple(c for c in a.columns if c in b.columns)
    rows = {t: {c: _difference(a.rows[t][c], b.rows[t][c]) for c in columns} for t in BUCKET_ORDER}
    return EventSummary(columns=columns, rows=rows)


def _difference(a_value: Any, b_value: Any) -> Any:
    if is_no_data(a_value) and is_no_data(b_value):
        return 0
    return b_value - a_value


def event_compare(
    a: Sequence[Event], b: Sequence[Event], additional_columns: Sequence[ColumnSpec] | None = None
) -> EventSummary:
    """Summarise two runs and return their difference ``b - a``."""
    return compare_summaries(
        create_event_summary(a, additional_columns),
        create_event_summary(b, additional_columns),
    )


def _as_dict(obj: Any) -> dict[str, Any]:
    if dataclasses.is_dataclass(obj) and not isinstance(obj, type):
        return dataclasses.asdict(obj)
    if isinstance(obj, Mapping):
        return dict(obj)
    return dict(vars(obj))


def _as_list(stages: Any) -> list[Any]:
    if isinstance(stages, (list, tuple)):
        return list(stages)
    return [stages]


def stage_time_summary(stages: Any) -> pd.DataFrame:
    """One row per stage: ``stage, queue_time, work_time``."""
    records = []
    for s in _as_list(stages):
        row = {"stage": getattr(s, "name", type(s).__name__), **_as_dict(s.time)}
        records.append(row)
    return pd.DataFrame.from_records(records)


def stage_traffic_summary(stages: Any) -> pd.DataFrame:
    """One row per stage: ``stage, add, work_on, success, fail``."""
    records = []
    for s in _as_list(stages):
        row = {"stage": getattr(s, "name", type(s).__name__), **_as_dict(s.traffic)}
        records.append(row)
    return pd.DataFrame.from_records(records)
