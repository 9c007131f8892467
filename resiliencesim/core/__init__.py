"""Virtual clock, wake queue and process machinery."""

from resiliencesim.core.event_heap import EventHeap, Wakeup
from resiliencesim.core.metronome import Metronome
from resiliencesim.core.process import Process
from resiliencesim.core.sim_future import SimFuture, all_of, any_of

__all__ = [
    "EventHeap",
    "Metronome",
    "Process",
    "SimFuture",
    "Wakeup",
    "all_of",
    "any_of",
]
