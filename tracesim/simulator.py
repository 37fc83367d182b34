from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, List, Optional, Protocol

from .caches import create_cache
from .config import SimulationConfig
from .events import IOEvent, Reason
from .memo import MemoKey, ResultMemo

if TYPE_CHECKING:
    from .trace_store import TraceStore

logger = logging.getLogger(__name__)


class BatchSource(Protocol):
    def next_batch(self) -> Optional[List[IOEvent]]:
        ...


@dataclass(frozen=True)
class SimulationResult:
    """Hit/miss counts of one replay, rendered by MetricsCollector."""

    hits: int = 0
    misses: int = 0
    # wall time of the replay; not part of the result's identity
    elapsed_ns: int = field(default=0, compare=False)

    @property
    def total_requests(self) -> int:
        return self.hits + self.misses

    @property
    def hit_rate(self) -> float:
        """Hits / counted requests, as a fraction; 0.0 when nothing was counted."""
        return self.hits / self.total_requests if self.total_requests else 0.0

    @property
    def avg_overhead_ns(self) -> float:
        return self.elapsed_ns / self.total_requests if self.total_requests else 0.0


class Simulator:
    """Replays traces against simulated caches, memoizing results per (trace, config).

    The decision pipeline for every event, in order:

    1. with ``restrict_to_cold_levels``, events outside L5/L6 are skipped;
    2. reads and recorded cache hits (unless ``user_facing_reads_only`` rules
       them out) are looked up by ``(file, quantized offset)``: present counts
       a hit, absent counts a miss and records the key;
    3. with ``write_through``, writes record their key without counting.
    """

    def __init__(self, memo: Optional[ResultMemo[SimulationResult]] = None):
        self.memo: ResultMemo[SimulationResult] = memo if memo is not None else ResultMemo()

    def run(self, trace_id: str, source: BatchSource, config: SimulationConfig) -> SimulationResult:
        """Return the memoized result, replaying ``source`` only on a memo miss."""
        return self.memo.get_or_compute(
            MemoKey(trace_id, config), lambda: self._replay_logged(trace_id, source, config)
        )

    def run_trace(self, store: "TraceStore", trace_name: str, config: SimulationConfig) -> SimulationResult:
        """Like ``run``, but opens the trace from ``store`` only when it has to be replayed."""

        def compute() -> SimulationResult:
            _, reader = store.load(trace_name)
            with reader:
                return self._replay_logged(trace_name, reader, config)

        return self.memo.get_or_compute(MemoKey(trace_name, config), compute)

    def _replay_logged(self, trace_id: str, source: BatchSource, config: SimulationConfig) -> SimulationResult:
        logger.info("simulate %s / %s", trace_id, config)
        result = replay(source, config)
        logger.info(
            "simulated %s: %d hits, %d misses (%.2f%%)",
            trace_id,
            result.hits,
            result.misses,
            result.hit_rate * 100,
        )
        return result


def replay(source: BatchSource, config: SimulationConfig) -> SimulationResult:
    """Run one full replay of ``source`` under ``config`` without memoization."""
    # configuration errors surface here, before the first batch is read
    cache = create_cache(config)

    hits = 0
    misses = 0
    start = time.perf_counter_ns()

    while True:
        batch = source.next_batch()
        if batch is None:
            break

        for event in batch:
            if config.restrict_to_cold_levels and not event.in_cold_levels:
                continue

            if event.is_read:
                if not (config.user_facing_reads_only and event.reason != Reason.UNKNOWN):
                    key = config.key_for(event.file_number, event.offset)
                    if cache.lookup(key):
                        hits += 1
                    else:
                        misses += 1
                        cache.record(key)

            if config.write_through and event.is_write:
                cache.record(config.key_for(event.file_number, event.offset))

    elapsed = time.perf_counter_ns() - start
    logger.debug("cache state after replay: %s", cache.get_stats())
    return SimulationResult(hits=hits, misses=misses, elapsed_ns=elapsed)
