"""Console tables for run results.

Thin printing layer over summary.py: builds the DataFrames and writes them
as text, one titled table after another.
"""

from __future__ import annotations

import sys
from collections.abc import Sequence
from typing import Any, TextIO

import pandas as pd

from resiliencesim.instrumentation.summary import (
    ColumnSpec,
    create_event_summary,
    event_compare,
    stage_time_summary,
    stage_traffic_summary,
)
from resiliencesim.model.event import Event


def _print_table(title: str, frame: pd.DataFrame, file: TextIO | None) -> None:
    out = file or sys.stdout
    print(title, file=out)
    print(frame.to_string(), file=out)


def print_event_summary(
    events: Sequence[Event],
    additional_columns: Sequence[ColumnSpec] | None = None,
    file: TextIO | None = None,
) -> None:
    """Print success/fail counts, shares and latency of the events."""
    summary = create_event_summary(events, additional_columns)
    _print_table("Overview of Events", summary.to_dataframe(formatted=True), file)


def print_stage_summary(stages: Any, file: TextIO | None = None) -> None:
    """Print time spent in and traffic through one stage or a list of stages."""
    _print_table("\nOverview of event time spent in stage", stage_time_summary(stages), file)
    _print_table("\nOverview of event behavior in stage", stage_traffic_summary(stages), file)


def print_event_compare(
    a: Sequence[Event],
    b: Sequence[Event],
    additional_columns: Sequence[ColumnSpec] | None = None,
    file: TextIO | None = None,
) -> None:
    """Print the difference between two runs, B - A."""
    diff = event_compare(a, b, additional_columns)
    _print_table("\nDiff of the events, (B - A):", diff.to_dataframe(formatted=True), file)
