"""Event identifiers: zero-padded uppercase hex from a process-wide counter."""

import itertools
import threading

ID_WIDTH = 12

_sequence = itertools.count()
_lock = threading.Lock()


def get_id() -> str:
    """Next event id, e.g. ``00000000002A``. Wider than ID_WIDTH once the counter outgrows it."""
    with _lock:
        value = next(_sequence)
    return f"{value:0{ID_WIDTH}X}"
