"""Exception types raised by stages and by the simulation harness.

Stage errors are captured per event and end up as ``Failure(reason=exc)``
responses. Only SimulationStalledError and configuration errors
(``ValueError``) reach the caller of ``Simulation.run()``.
"""


class StageError(Exception):
    """Base class for failures signalled by a stage."""

    def __init__(self, stage: str, message: str):
        super().__init__(f"[{stage}] {message}")
        self.stage = stage


class QueueFullError(StageError):
    """The stage's wait queue was at capacity when the event arrived."""


class DependencyError(StageError):
    """A simulated dependency call failed."""


class StageTimeoutError(StageError):
    """The wrapped stage did not answer within the timeout."""


class CircuitOpenError(StageError):
    """The circuit breaker rejected the call without forwarding it."""


class SimulationStalledError(RuntimeError):
    """The wake queue emptied while the run was still waiting on a result."""
