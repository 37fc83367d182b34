from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Dict, Hashable

from .errors import ConfigError


class Cache(ABC):
    """Hit/miss oracle used by the replay: presence checks and insertions only."""

    def __init__(self, size: int):
        if size <= 0:
            raise ConfigError("Cache size must be a positive integer")
        self.size = size

    @abstractmethod
    def lookup(self, key: Hashable) -> bool:
        """Return True if ``key`` is resident; counts as a reference to it."""

    @abstractmethod
    def record(self, key: Hashable) -> None:
        """Insert ``key``; refreshes it if already resident."""

    @abstractmethod
    def get_stats(self) -> Dict[str, int]:
        """Return internal occupancy figures, for logging only."""
