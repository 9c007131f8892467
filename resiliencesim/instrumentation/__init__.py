"""Statistics and reporting over completed runs."""

from resiliencesim.instrumentation.report import (
    print_event_compare,
    print_event_summary,
    print_stage_summary,
)
from resiliencesim.instrumentation.summary import (
    NO_DATA,
    EventSummary,
    Metric,
    compare_summaries,
    create_event_summary,
    event_compare,
    format_value,
    partition,
    stage_time_summary,
    stage_traffic_summary,
)

__all__ = [
    "NO_DATA",
    "EventSummary",
    "Metric",
    "compare_summaries",
    "create_event_summary",
    "event_compare",
    "format_value",
    "partition",
    "print_event_compare",
    "print_event_summary",
    "print_stage_summary",
    "stage_time_summary",
    "stage_traffic_summary",
]
