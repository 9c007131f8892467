"""resiliencesim: virtual-time harness for studying fault-tolerance techniques.

Generates events at a configured arrival rate on a virtual clock, sends them
into a pipeline of stages (caches, circuit breakers, retries, timeouts) and
summarises how they fared.
"""

import logging

# Library is silent by default; users opt in via enable_console_logging() etc.
logging.getLogger("resiliencesim").addHandler(logging.NullHandler())

from resiliencesim.config import SimulationConfig
from resiliencesim.core import EventHeap, Metronome, Process, SimFuture, Wakeup, all_of, any_of
from resiliencesim.errors import (
    CircuitOpenError,
    DependencyError,
    QueueFullError,
    SimulationStalledError,
    StageError,
    StageTimeoutError,
)
from resiliencesim.instrumentation import (
    NO_DATA,
    EventSummary,
    Metric,
    compare_summaries,
    create_event_summary,
    event_compare,
    format_value,
    print_event_compare,
    print_event_summary,
    print_stage_summary,
    stage_time_summary,
    stage_traffic_summary,
)
from resiliencesim.logging_config import (
    TickFilter,
    configure_from_env,
    disable_logging,
    enable_console_logging,
    enable_file_logging,
    enable_json_logging,
    set_level,
    set_module_level,
)
from resiliencesim.model import (
    Event,
    Failure,
    Response,
    ResponseTime,
    ResponseType,
    Success,
    as_response,
    classify,
)
from resiliencesim.simulation import Simulation
from resiliencesim.stages import (
    Cache,
    CircuitBreaker,
    CircuitState,
    Dependency,
    Retry,
    Stage,
    StageTime,
    StageTraffic,
    Timeout,
)

__version__ = "0.1.0"

__all__ = [
    # Run
    "Simulation",
    "SimulationConfig",
    # Clock
    "EventHeap",
    "Metronome",
    "Process",
    "SimFuture",
    "Wakeup",
    "all_of",
    "any_of",
    # Model
    "Event",
    "Failure",
    "Response",
    "ResponseTime",
    "ResponseType",
    "Success",
    "as_response",
    "classify",
    # Stages
    "Cache",
    "CircuitBreaker",
    "CircuitState",
    "Dependency",
    "Retry",
    "Stage",
    "StageTime",
    "StageTraffic",
    "Timeout",
    # Statistics
    "NO_DATA",
    "EventSummary",
    "Metric",
    "compare_summaries",
    "create_event_summary",
    "event_compare",
    "format_value",
    "print_event_compare",
    "print_event_summary",
    "print_stage_summary",
    "stage_time_summary",
    "stage_traffic_summary",
    # Errors
    "CircuitOpenError",
    "DependencyError",
    "QueueFullError",
    "SimulationStalledError",
    "StageError",
    "StageTimeoutError",
    # Logging
    "TickFilter",
    "configure_from_env",
    "disable_logging",
    "enable_console_logging",
    "enable_file_logging",
    "enable_json_logging",
    "set_level",
    "set_module_level",
]
