from __future__ import annotations

import math
from collections import OrderedDict
from typing import Dict, Hashable, Iterator

from ..cache_base import Cache
from ..errors import ConfigError

_MASK64 = (1 << 64) - 1


def _hash64(key: Hashable) -> int:
    """Stable 64-bit hash: builtin hash (deterministic for int tuples) + splitmix64 finalizer."""
    h = hash(key) & _MASK64
    h = ((h ^ (h >> 30)) * 0xBF58476D1CE4E5B9) & _MASK64
    h = ((h ^ (h >> 27)) * 0x94D049BB133111EB) & _MASK64
    return h ^ (h >> 31)


def _next_power_of_two(n: int) -> int:
    return 1 << max(0, n - 1).bit_length()


def _probe(h: int, count: int, mask: int) -> Iterator[int]:
    # double hashing over the two 32-bit halves
    h1 = h & 0xFFFFFFFF
    h2 = h >> 32
    for i in range(count):
        yield (h1 + i * h2) & mask


class CountMinSketch:
    """Four rows of 4-bit saturating counters; ``reset`` halves every counter."""

    DEPTH = 4
    MAX_COUNT = 15

    def __init__(self, width: int):
        self.width = _next_power_of_two(max(1, width))
        self.mask = self.width - 1
        self.rows = [bytearray(self.width) for _ in range(self.DEPTH)]

    def add(self, h: int) -> None:
        for row, idx in zip(self.rows, _probe(h, self.DEPTH, self.mask)):
            if row[idx] < self.MAX_COUNT:
                row[idx] += 1

    def estimate(self, h: int) -> int:
        return min(row[idx] for row, idx in zip(self.rows, _probe(h, self.DEPTH, self.mask)))

    def reset(self) -> None:
        for row in self.rows:
            for i, value in enumerate(row):
                if value:
                    row[i] = value >> 1


class Doorkeeper:
    """Bloom filter that lets a key through only on its second appearance."""

    def __init__(self, capacity: int, false_positive_rate: float):
        bits = math.ceil(-capacity * math.log(false_positive_rate) / (math.log(2) ** 2))
        self.bits = _next_power_of_two(max(8, bits))
        self.mask = self.bits - 1
        self.hashes = max(1, math.ceil(self.bits / max(1, capacity) * math.log(2)))
        self.filter = bytearray(self.bits // 8)

    def allow(self, h: int) -> bool:
        """Insert ``h``; return True if it was already present."""
        present = True
        for bit in _probe(h, self.hashes, self.mask):
            byte, offset = divmod(bit, 8)
            if not self.filter[byte] & (1 << offset):
                present = False
                self.filter[byte] |= 1 << offset
        return present

    def reset(self) -> None:
        self.filter = bytearray(len(self.filter))


class TinyLFUCache(Cache):
    """W-TinyLFU: a 1% LRU window in front of a segmented LRU main area.

    Keys evicted from the window compete with the main area's probation victim
    and are admitted only if the doorkeeper has seen them before and the
    frequency sketch rates them at least as popular as the victim. Every
    ``samples`` lookups the sketch is aged and the doorkeeper cleared.
    """

    WINDOW_PERCENT = 1
    PROBATION_RATIO = 0.2
    DOORKEEPER_FALSE_POSITIVE_RATE = 0.01

    def __init__(self, size: int, samples: int):
        super().__init__(size)
        if samples <= 0:
            raise ConfigError("TinyLFU requires a positive sample count")
        self.samples = samples
        self.window_size = max(1, size * self.WINDOW_PERCENT // 100)
        # a one-slot cache is window only
        self.main_size = size - self.window_size
        self.probation_size = min(self.main_size, max(1, int(self.PROBATION_RATIO * self.main_size)))
        self.protected_size = self.main_size - self.probation_size

        self.sketch = CountMinSketch(size)
        self.doorkeeper = Doorkeeper(samples, self.DOORKEEPER_FALSE_POSITIVE_RATE)
        self.lookups = 0

        self.window: "OrderedDict[Hashable, None]" = OrderedDict()
        self.probation: "OrderedDict[Hashable, None]" = OrderedDict()
        self.protected: "OrderedDict[Hashable, None]" = OrderedDict()

    def lookup(self, key: Hashable) -> bool:
        self.lookups += 1
        if self.lookups == self.samples:
            self.sketch.reset()
            self.doorkeeper.reset()
            self.lookups = 0

        self.sketch.add(_hash64(key))
        if key in self.window:
            self.window.move_to_end(key)
            return True
        if key in self.protected:
            self.protected.move_to_end(key)
            return True
        if key in self.probation:
            self._promote(key)
            return True
        return False

    def record(self, key: Hashable) -> None:
        for segment in (self.window, self.probation, self.protected):
            if key in segment:
                segment.move_to_end(key)
                return

        if len(self.window) < self.window_size:
            self.window[key] = None
            return
        candidate, _ = self.window.popitem(last=False)
        self.window[key] = None
        self._admit(candidate)

    def get_stats(self) -> Dict[str, int]:
        return {
            "window": len(self.window),
            "probation": len(self.probation),
            "protected": len(self.protected),
        }

    def _promote(self, key: Hashable) -> None:
        del self.probation[key]
        if len(self.protected) < self.protected_size:
            self.protected[key] = None
            return
        if not self.protected_size:
            self.probation[key] = None
            return
        demoted, _ = self.protected.popitem(last=False)
        self.probation[demoted] = None
        self.protected[key] = None

    def _admit(self, candidate: Hashable) -> None:
        if not self.main_size:
            return
        if len(self.probation) + len(self.protected) < self.main_size:
            self.probation[candidate] = None
            return

        victim = next(iter(self.probation))
        candidate_hash = _hash64(candidate)
        if not self.doorkeeper.allow(candidate_hash):
            return
        if self.sketch.estimate(candidate_hash) < self.sketch.estimate(_hash64(victim)):
            return
        del self.probation[victim]
        self.probation[candidate] = None
