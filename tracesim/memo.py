from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Generic, Hashable, TypeVar

from .config import SimulationConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class MemoKey:
    trace_id: str
    config: SimulationConfig


class ResultMemo(Generic[T]):
    """In-process map from (trace, config) to a finished result.

    ``get_or_compute`` runs at most one computation per key even when called
    from several threads: callers for the same key wait on a per-key lock while
    different keys compute in parallel. Entries are never evicted.
    A computation that raises stores nothing.
    """

    def __init__(self) -> None:
        self._results: Dict[Hashable, T] = {}
        self._lock = threading.Lock()
        self._key_locks: Dict[Hashable, threading.Lock] = {}

    def get(self, key: Hashable) -> T | None:
        with self._lock:
            return self._results.get(key)

    def get_or_compute(self, key: Hashable, compute: Callable[[], T]) -> T:
        with self._lock:
            if key in self._results:
                logger.debug("memo hit for %s", key)
                return self._results[key]
            key_lock = self._key_locks.setdefault(key, threading.Lock())

        with key_lock:
            with self._lock:
                if key in self._results:
                    return self._results[key]
            try:
                result = compute()
                with self._lock:
                    self._results[key] = result
            finally:
                with self._lock:
                    self._key_locks.pop(key, None)
            return result

    def __contains__(self, key: Hashable) -> bool:
        with self._lock:
            return key in self._results

    def __len__(self) -> int:
        with self._lock:
            return len(self._results)

    def clear(self) -> None:
        with self._lock:
            self._results.clear()
