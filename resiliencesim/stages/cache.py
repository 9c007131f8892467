"""LRU cache in front of a slower stage, keyed by event key."""

from __future__ import annotations

import logging
from collections import OrderedDict
from collections.abc import Generator
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from resiliencesim.model.response import Failure
from resiliencesim.stages.stage import Stage

if TYPE_CHECKING:
    from resiliencesim.model.event import Event

logger = logging.getLogger(__name__)

_MISSING = object()


@dataclass(frozen=True)
class CacheStats:
    hits: int = 0
    misses: int = 0
    evictions: int = 0
    expirations: int = 0

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class Cache(Stage):
    """Serves repeated keys from memory, forwards misses to the wrapped stage.

    Only successful payloads are stored. Entries older than ``ttl`` ticks
    count as misses.

    Attributes:
        capacity: Max entries kept; the least recently used is evicted.
        ttl: Entry lifetime in ticks. None keeps entries until evicted.
        hit_latency: Ticks a hit takes to answer.
    """

    def __init__(
        self,
        name: str,
        wrapped: Stage,
        capacity: int = 100,
        ttl: float | None = None,
        hit_latency: float = 0.0,
        **kwargs: Any,
    ):
        super().__init__(name, wrapped=wrapped, **kwargs)
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity}")
        if ttl is not None and ttl <= 0:
            raise ValueError(f"ttl must be > 0, got {ttl}")
        if hit_latency < 0:
            raise ValueError(f"hit_latency must be >= 0, got {hit_latency}")

        self.capacity = capacity
        self.ttl = ttl
        self.hit_latency = hit_latency
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()

        self._hits = 0
        self._misses = 0
        self._evictions = 0
        self._expirations = 0

    @property
    def stats(self) -> CacheStats:
        return CacheStats(
            hits=self._hits,
            misses=self._misses,
            evictions=self._evictions,
            expirations=self._expirations,
        )

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def work(self, event: Event) -> Generator[Any, Any, Any]:
        entry = self._lookup(event.key)
        if entry is not _MISSING:
            self._hits += 1
            if self.hit_latency > 0:
                yield self.hit_latency
            return entry

        self._misses += 1
        value = yield self.forward(event)
        if not isinstance(value, Failure):
            self._store(event.key, value)
        return value

    def _lookup(self, key: str) -> Any:
        if key not in self._entries:
            return _MISSING
        payload, stored_at = self._entries[key]
        if self.ttl is not None and self.now - stored_at >= self.ttl:
            del self._entries[key]
            self._expirations += 1
            return _MISSING
        self._entries.move_to_end(key)
        return payload

    def _store(self, key: str, payload: Any) -> None:
        self._entries[key] = (payload, self.now)
        self._entries.move_to_end(key)
        while len(self._entries) > self.capacity:
            evicted, _ = self._entries.popitem(last=False)
            self._evictions += 1
            logger.debug("[%s] Evicted %s", self.name, evicted)
