from __future__ import annotations

import io
from typing import List, Optional

from tracesim.events import BlockType, IOEvent, Operation, Reason, encode_many

BASE_NANOS = 1_700_000_000 * 1_000_000_000


def make_event(
    operation: Operation = Operation.READ,
    reason: Reason = Reason.FOR_COMPACTION,
    level: int = 1,
    offset: int = 0,
    file_number: int = 4,
    size: int = 1024,
    timestamp_nanos: int = BASE_NANOS,
) -> IOEvent:
    return IOEvent(
        timestamp_nanos=timestamp_nanos,
        operation=operation,
        reason=reason,
        block_type=BlockType.DATA,
        level_plus_one=level,
        file_number=file_number,
        offset=offset,
        size=size,
    )


def scenario_trace() -> List[IOEvent]:
    """A compaction write, compaction reads at L1 and two user-facing reads at L6."""
    steps = [
        (Operation.WRITE, Reason.FOR_COMPACTION, 1, 1024 * 4),
        (Operation.READ, Reason.FOR_COMPACTION, 1, 0),
        (Operation.READ, Reason.FOR_COMPACTION, 1, 1024),
        (Operation.RECORD_CACHE_HIT, Reason.FOR_COMPACTION, 1, 0),
        (Operation.READ, Reason.UNKNOWN, 6, 1024 * 4),
        (Operation.READ, Reason.UNKNOWN, 6, 1024 * 4),
        (Operation.READ, Reason.FOR_COMPACTION, 1, 0),
    ]
    return [
        make_event(op, reason, level, offset, timestamp_nanos=BASE_NANOS + i * 1_000_000_000)
        for i, (op, reason, level, offset) in enumerate(steps)
    ]


class ListSource:
    """Hands out one fixed batch, then the end marker; counts calls."""

    def __init__(self, events: List[IOEvent]):
        self.events = list(events)
        self.done = False
        self.calls = 0

    def next_batch(self) -> Optional[List[IOEvent]]:
        self.calls += 1
        if self.done:
            return None
        self.done = True
        return self.events


class CountingStream(io.BytesIO):
    """BytesIO that counts read() calls."""

    def __init__(self, data: bytes):
        super().__init__(data)
        self.reads = 0

    def read(self, size: int = -1) -> bytes:
        self.reads += 1
        return super().read(size)


def encoded(events: List[IOEvent]) -> bytes:
    return encode_many(events)
