from __future__ import annotations

from collections import OrderedDict
from typing import Dict, Hashable, List

from ..cache_base import Cache
from ..errors import ConfigError


class S4LRUCache(Cache):
    """Segmented LRU with four equally sized segments.

    New keys enter segment 0. A hit moves a key up one segment; when the upper
    segment is full its least recent key is swapped down into the segment the
    hit key left. Keys only leave the cache from the tail of segment 0.
    """

    SEGMENTS = 4

    def __init__(self, size: int):
        super().__init__(size)
        if size % self.SEGMENTS:
            raise ConfigError(f"S4LRU size must be divisible by {self.SEGMENTS}, got {size}")
        self.segment_size = size // self.SEGMENTS
        # the last key of each OrderedDict is the most recent one
        self.segments: List["OrderedDict[Hashable, None]"] = [
            OrderedDict() for _ in range(self.SEGMENTS)
        ]
        self.level: Dict[Hashable, int] = {}

    def lookup(self, key: Hashable) -> bool:
        level = self.level.get(key)
        if level is None:
            return False

        top = self.SEGMENTS - 1
        if level == top:
            self.segments[top].move_to_end(key)
            return True

        lower = self.segments[level]
        upper = self.segments[level + 1]
        del lower[key]
        if len(upper) >= self.segment_size:
            demoted, _ = upper.popitem(last=False)
            lower[demoted] = None
            self.level[demoted] = level
        upper[key] = None
        self.level[key] = level + 1
        return True

    def record(self, key: Hashable) -> None:
        level = self.level.get(key)
        if level is not None:
            self.segments[level].move_to_end(key)
            return

        entry = self.segments[0]
        if len(entry) >= self.segment_size:
            victim, _ = entry.popitem(last=False)
            del self.level[victim]
        entry[key] = None
        self.level[key] = 0

    def get_stats(self) -> Dict[str, int]:
        stats = {f"segment{i}": len(seg) for i, seg in enumerate(self.segments)}
        stats["resident"] = len(self.level)
        return stats
