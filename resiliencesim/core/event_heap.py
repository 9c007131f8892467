import heapq
from itertools import count
from typing import Callable, Union

_wakeup_counter = count()


class Wakeup:
    """A callback scheduled to fire at a virtual time.

    Sorting uses (time, insertion_order) so that wakeups scheduled for the
    same tick fire in the order they were scheduled.
    """

    __slots__ = ("time", "fn", "_sort_index", "_cancelled")

    def __init__(self, time: float, fn: Callable[[], None]):
        self.time = time
        self.fn = fn
        self._sort_index = next(_wakeup_counter)
        self._cancelled = False

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Mark this wakeup as cancelled. The metronome skips it on pop."""
        self._cancelled = True

    def __lt__(self, other: "Wakeup") -> bool:
        if self.time != other.time:
            return self.time < other.time
        return self._sort_index < other._sort_index

    def __repr__(self) -> str:
        return f"Wakeup({self.time!r}, cancelled={self._cancelled})"


class EventHeap:
    def __init__(self, wakeups: list[Wakeup] | None = None):
        """Store Wakeup objects directly on the heap.

        Wakeup implements ordering by `time`, so there's no need to store
        (time, wakeup) tuples.
        """
        self._heap = list(wakeups) if wakeups else []
        heapq.heapify(self._heap)

    def push(self, wakeups: Union[Wakeup, list[Wakeup]]):
        """Push a Wakeup or a list of Wakeups onto the heap."""
        if isinstance(wakeups, list):
            for wakeup in wakeups:
                heapq.heappush(self._heap, wakeup)
        else:
            heapq.heappush(self._heap, wakeups)

    def pop(self) -> Wakeup:
        return heapq.heappop(self._heap)

    def has_events(self) -> bool:
        return bool(self._heap)

    def size(self) -> int:
        return len(self._heap)

    def clear(self) -> None:
        self._heap.clear()
