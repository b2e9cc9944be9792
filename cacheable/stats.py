"""Hit/miss/write counters for a single `Cacheable` instance."""

from __future__ import annotations

import threading

from dataclasses import dataclass, fields


@dataclass(frozen=True)
class CacheStats:
    """A point-in-time copy of the counters.

    Each counter is exact, but a snapshot taken while operations are in flight can show a miss
    whose matching `set_success`/`set_error` hasn't been counted yet.
    """
    hits: int = 0
    misses: int = 0
    set_success: int = 0
    set_error: int = 0
    del_success: int = 0
    del_error: int = 0

    @property
    def hit_rate(self) -> float:
        """Fraction of lookups that were hits (0 if there were none)."""
        total = self.hits + self.misses
        return self.hits / total if total > 0 else 0.0


class StatsCounter:
    """Monotonically increasing counters, safe to bump from multiple threads.

    The lock belongs to this counter set only, so separate caches never contend with each other.
    """
    NAMES = tuple(f.name for f in fields(CacheStats))

    def __init__(self):
        self._lock = threading.Lock()
        self._counts = dict.fromkeys(self.NAMES, 0)

    def incr(self, name: str, n: int = 1) -> None:
        """Increments counter `name` by `n`."""
        if name not in self._counts:
            raise KeyError(f'Unknown stats counter {name!r}')
        with self._lock:
            self._counts[name] += n

    def snapshot(self) -> CacheStats:
        """Returns a copy of the current counts."""
        with self._lock:
            return CacheStats(**self._counts)
