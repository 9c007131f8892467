"""Generator-based processes driven by the metronome.

A process is a Python generator that expresses a multi-step activity on
virtual time:

    def call_backend(metronome):
        yield 3                       # wait 3 ticks
        reply = yield some_future     # park until the future settles
        return reply                  # resolves the process future

Yields are interpreted as:
- ``yield ticks`` - wait that many ticks before resuming
- ``yield SimFuture`` - park until the future settles; its value is sent
  back in, or its exception is thrown into the generator
"""

from __future__ import annotations

import logging
from collections.abc import Generator
from typing import TYPE_CHECKING, Any

from resiliencesim.core.sim_future import SimFuture

if TYPE_CHECKING:
    from resiliencesim.core.metronome import Metronome

logger = logging.getLogger(__name__)


class Process:
    """Steps a generator forward each time the thing it waits on settles.

    Attributes:
        name: Label for logging.
        result: Future settled with the generator's return value, or with
            the exception that escaped it.
    """

    __slots__ = ("name", "result", "_generator", "_metronome")

    def __init__(self, metronome: Metronome, generator: Generator, name: str | None = None):
        self.name = name or getattr(generator, "__name__", "process")
        self.result = SimFuture()
        self._generator = generator
        self._metronome = metronome

    def start(self) -> SimFuture:
        """Run the generator synchronously up to its first yield."""
        self._step(None, None)
        return self.result

    def _step(self, send_value: Any, throw: BaseException | None) -> None:
        try:
            if throw is not None:
                yielded = self._generator.throw(throw)
            else:
                yielded = self._generator.send(send_value)
        except StopIteration as e:
            self.result.resolve(e.value)
            return
        except Exception as exc:
            logger.debug("[%s] Process raised %s: %s", self.name, type(exc).__name__, exc)
            self.result.fail(exc)
            return

        self._park(yielded).add_settle_callback(self._on_settle)

    def _park(self, yielded: Any) -> SimFuture:
        if isinstance(yielded, SimFuture):
            return yielded
        if isinstance(yielded, (int, float)) and not isinstance(yielded, bool):
            return self._metronome.wait(yielded)
        logger.warning(
            "[%s] Process yielded unknown type %s; assuming 0 delay.",
            self.name,
            type(yielded).__name__,
        )
        return self._metronome.wait(0)

    def close(self) -> None:
        """Abandon the process: raise GeneratorExit at its current yield.

        The result future is left pending.
        """
        logger.debug("[%s] Process closed while parked", self.name)
        self._generator.close()

    def _on_settle(self, future: SimFuture) -> None:
        if not self._metronome.running:
            return
        # Resume through the wake queue so simultaneous resumptions keep FIFO order.
        if future.is_resolved:
            self._metronome.call_soon(lambda: self._step(future.value, None))
        else:
            self._metronome.call_soon(lambda: self._step(None, future.exception))

    def __repr__(self) -> str:
        return f"Process({self.name!r}, {self.result!r})"
