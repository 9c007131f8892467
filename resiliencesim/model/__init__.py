"""Data entities flowing through a simulation run."""

from resiliencesim.model.event import Event, ResponseTime
from resiliencesim.model.response import (
    Failure,
    Response,
    ResponseType,
    Success,
    as_response,
    classify,
)

__all__ = [
    "Event",
    "Failure",
    "Response",
    "ResponseTime",
    "ResponseType",
    "Success",
    "as_response",
    "classify",
]
