from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Dict, List

from .errors import ConfigError
from .events import Operation
from .simulator import BatchSource
from .trace_store import NANOS_PER_SECOND, TraceMetadata

logger = logging.getLogger(__name__)

TARGET_TICKS = 10000
BYTES_PER_MIB = 1024 * 1024

SERIES = ("read", "write", "cache_hit", "read_l5_l6", "write_l5_l6", "cache_hit_l5_l6")
_SERIES_BY_OPERATION = {
    Operation.READ: ("read", "read_l5_l6"),
    Operation.WRITE: ("write", "write_l5_l6"),
    Operation.RECORD_CACHE_HIT: ("cache_hit", "cache_hit_l5_l6"),
}


@dataclass
class ThroughputSeries:
    """MiB/s per tick for each operation, overall and restricted to L5/L6."""

    num_ticks: int
    tick_duration_secs: int
    time_axis_unix_secs: List[int] = field(default_factory=list)
    mbps: Dict[str, List[float]] = field(default_factory=lambda: {name: [] for name in SERIES})

    def to_json(self) -> dict:
        payload = {
            "num_ticks": self.num_ticks,
            "tick_duration_secs": self.tick_duration_secs,
            "time_axis_unix_secs": self.time_axis_unix_secs,
        }
        for name in SERIES:
            payload[f"{name}_mbps"] = self.mbps[name]
        return payload


def aggregate_throughput(
    metadata: TraceMetadata, source: BatchSource, target_ticks: int = TARGET_TICKS
) -> ThroughputSeries:
    """Bucket the trace's I/O volume into fixed-length ticks starting at the trace start."""
    if target_ticks < 1:
        raise ConfigError(f"target_ticks must be a positive integer, got {target_ticks}")
    tick_secs = max(1, metadata.duration_secs // target_ticks)
    series = ThroughputSeries(
        num_ticks=1 + metadata.duration_secs // tick_secs,
        tick_duration_secs=tick_secs,
    )
    to_mbps = 1.0 / BYTES_PER_MIB / tick_secs
    tick_nanos = tick_secs * NANOS_PER_SECOND

    current_tick = metadata.start_unix_secs * NANOS_PER_SECOND
    current = {name: 0.0 for name in SERIES}

    def flush() -> None:
        series.time_axis_unix_secs.append(current_tick // NANOS_PER_SECOND)
        for name in SERIES:
            series.mbps[name].append(current[name])
            current[name] = 0.0

    while True:
        batch = source.next_batch()
        if batch is None:
            break
        for event in batch:
            while event.timestamp_nanos - current_tick >= tick_nanos:
                flush()
                current_tick += tick_nanos

            targets = _SERIES_BY_OPERATION.get(event.operation)
            if targets is None:
                continue
            overall, cold = targets
            amount = event.size * to_mbps
            current[overall] += amount
            if event.in_cold_levels:
                current[cold] += amount
    flush()

    logger.debug("aggregated %s into %d ticks of %ds", metadata.name, len(series.time_axis_unix_secs), tick_secs)
    return series
