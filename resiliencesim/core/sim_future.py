"""SimFuture: a settle-once result living on virtual time.

A SimFuture is the handle for anything that completes later on the
metronome: a wait, a spawned process, a stage call, a whole batch of events.
Processes park on a future by yielding it; the metronome resumes them when
the future settles.

Example::

    def handle(metronome):
        reply = SimFuture()
        metronome.call_later(5, lambda: reply.resolve("pong"))
        value = yield reply      # parks until tick 5
        return value

Settlement callbacks run synchronously at the moment of settlement, so any
timestamp they read from the metronome is the exact settlement tick.
"""

from __future__ import annotations

import logging
from typing import Any, Callable

logger = logging.getLogger(__name__)


class SimFuture:
    """A future that processes can yield to park until it settles.

    Each future settles exactly once, either with a value (resolve) or an
    exception (fail). Later calls to resolve()/fail() are no-ops.

    Attributes:
        is_settled: True if the future has been resolved or failed.
        value: The resolved value (raises RuntimeError if not yet resolved).
        exception: The failure exception, or None.
    """

    __slots__ = ("_resolved", "_failed", "_value", "_exception", "_settle_callbacks")

    def __init__(self) -> None:
        self._resolved: bool = False
        self._failed: bool = False
        self._value: Any = None
        self._exception: BaseException | None = None
        self._settle_callbacks: list[Callable[[SimFuture], None]] = []

    @classmethod
    def resolved(cls, value: Any = None) -> SimFuture:
        """Return a future that is already resolved with ``value``."""
        future = cls()
        future.resolve(value)
        return future

    @classmethod
    def failed(cls, exception: BaseException) -> SimFuture:
        """Return a future that has already failed with ``exception``."""
        future = cls()
        future.fail(exception)
        return future

    @property
    def is_settled(self) -> bool:
        """Whether this future has been resolved or failed."""
        return self._resolved or self._failed

    @property
    def is_resolved(self) -> bool:
        return self._resolved

    @property
    def is_failed(self) -> bool:
        return self._failed

    @property
    def value(self) -> Any:
        """The resolved value.

        Raises:
            RuntimeError: If the future hasn't been resolved yet.
        """
        if not self._resolved:
            raise RuntimeError("SimFuture has not been resolved yet")
        return self._value

    @property
    def exception(self) -> BaseException | None:
        return self._exception

    def resolve(self, value: Any = None) -> None:
        """Resolve the future with a value and fire settle callbacks.

        Resolving an already-settled future is a no-op.
        """
        if self.is_settled:
            return
        self._resolved = True
        self._value = value
        self._fire_callbacks()

    def fail(self, exception: BaseException) -> None:
        """Fail the future with an exception and fire settle callbacks.

        Failing an already-settled future is a no-op.
        """
        if self.is_settled:
            return
        self._failed = True
        self._exception = exception
        self._fire_callbacks()

    def add_settle_callback(self, fn: Callable[[SimFuture], None]) -> None:
        """Register a callback to fire when this future settles.

        If the future is already settled, the callback fires immediately.
        """
        if self.is_settled:
            fn(self)
        else:
            self._settle_callbacks.append(fn)

    def _fire_callbacks(self) -> None:
        callbacks = list(self._settle_callbacks)
        self._settle_callbacks.clear()
        for cb in callbacks:
            cb(self)

    def __repr__(self) -> str:
        if self._resolved:
            return f"SimFuture(resolved={self._value!r})"
        elif self._failed:
            return f"SimFuture(failed={self._exception!r})"
        else:
            return "SimFuture(pending)"


def any_of(*futures: SimFuture) -> SimFuture:
    """Return a future that settles when ANY input future settles.

    The composite future resolves with a tuple ``(index, value)`` where
    ``index`` is the position of the first future to settle and ``value``
    is its resolved value. If the first future to settle fails, the
    composite fails with the same exception.

    This is how timeout races are expressed::

        idx, value = yield any_of(metronome.wait(50), call)
        if idx == 0:
            raise StageTimeoutError(...)

    Args:
        *futures: Two or more SimFuture instances to race.
    """
    if len(futures) < 2:
        raise ValueError("any_of() requires at least 2 futures")

    composite = SimFuture()

    def on_settle(settled: SimFuture, idx: int = 0) -> None:
        if composite.is_settled:
            return
        if settled._resolved:
            composite.resolve((idx, settled._value))
        else:
            composite.fail(settled._exception)

    for i, f in enumerate(futures):
        f.add_settle_callback(lambda sf, i=i: on_settle(sf, i))

    return composite


def all_of(*futures: SimFuture) -> SimFuture:
    """Return a future that resolves when ALL input futures resolve.

    The composite future resolves with a list of values in the same order
    as the input futures. If any input fails, the composite fails
    immediately with that exception. With no inputs the composite is
    already resolved with an empty list.

    Args:
        *futures: SimFuture instances to join.
    """
    composite = SimFuture()
    results: list[Any] = [None] * len(futures)
    remaining = len(futures)

    if remaining == 0:
        composite.resolve([])
        return composite

    def on_settle(settled: SimFuture, idx: int = 0) -> None:
        nonlocal remaining
        if composite.is_settled:
            return
        if settled._failed:
            composite.fail(settled._exception)
            return
        results[idx] = settled._value
        remaining -= 1
        if remaining == 0:
            composite.resolve(list(results))

    for i, f in enumerate(futures):
        f.add_settle_callback(lambda sf, i=i: on_settle(sf, i))

    return composite
