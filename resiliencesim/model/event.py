"""Event: one simulated unit of work submitted to a stage."""

from __future__ import annotations

from dataclasses import dataclass, field

from resiliencesim.model.response import Response, ResponseType, classify
from resiliencesim.utils.ids import get_id


@dataclass
class ResponseTime:
    """Virtual timestamps of one event.

    ``start_time`` is stamped at submission and ``end_time`` when the stage
    call settles; ``end_time`` stays None until then.
    """

    start_time: float = 0.0
    end_time: float | None = None

    @property
    def is_complete(self) -> bool:
        return self.end_time is not None

    @property
    def latency(self) -> float | None:
        if self.end_time is None:
            return None
        return self.end_time - self.start_time


@dataclass(eq=False)
class Event:
    """A unit of work flowing through a stage.

    Attributes:
        key: Keyspace label (e.g. a cache key). Several events may share it.
        id: Unique, monotonically increasing identifier for correlation.
        response_time: Submission/completion timestamps.
        response: Outcome once the stage call settles, None before.
    """

    key: str
    id: str = field(default_factory=get_id)
    response_time: ResponseTime = field(default_factory=ResponseTime)
    response: Response | None = None

    @property
    def is_complete(self) -> bool:
        return self.response is not None and self.response_time.is_complete

    @property
    def latency(self) -> float | None:
        return self.response_time.latency

    @property
    def response_type(self) -> ResponseType | None:
        if self.response is None:
            return None
        return classify(self.response)

    def __repr__(self) -> str:
        return (
            f"Event({self.key!r}, id={self.id}, start={self.response_time.start_time}, "
            f"end={self.response_time.end_time}, response={self.response!r})"
        )
