"""Outcome of a stage call, as a closed Success/Failure variant."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Union


class ResponseType(Enum):
    """Bucket used when grouping events for statistics."""

    SUCCESS = "success"
    FAIL = "fail"


@dataclass(frozen=True)
class Success:
    """The stage answered. ``payload`` is whatever the stage produced."""

    payload: Any = None

    @property
    def type(self) -> ResponseType:
        return ResponseType.SUCCESS


@dataclass(frozen=True)
class Failure:
    """The stage failed. ``reason`` is usually the exception it raised."""

    reason: Any = None

    @property
    def type(self) -> ResponseType:
        return ResponseType.FAIL


Response = Union[Success, Failure]


def classify(response: Any) -> ResponseType:
    """Failures go to the fail bucket, everything else counts as success."""
    if isinstance(response, Failure):
        return ResponseType.FAIL
    return ResponseType.SUCCESS


def as_response(value: Any) -> Response:
    """Wrap a raw stage value in Success unless it already is a Response."""
    if isinstance(value, (Success, Failure)):
        return value
    return Success(value)
