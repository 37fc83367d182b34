"""
Binary layout of one traced storage I/O event.

Every record has the same width. The layout mirrors the producer's in-memory
struct (little-endian, natural alignment), so a trace is nothing more than a
flat run of these records:

    offset  width  field
    0       8      timestamp_nanos   (int64)
    8       1      operation         (uint8)
    9       1      reason            (uint8)
    10      1      block_type        (uint8)
    11      1      level_plus_one    (uint8)
    12      4      padding
    16      8      file_number       (uint64)
    24      8      offset            (int64)
    32      8      size              (int64)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass
from enum import IntEnum
from typing import Iterable, Iterator, List


class _TotalIntEnum(IntEnum):
    """IntEnum that accepts values it does not name.

    Decoding must never fail on a well-sized record, so unknown values become
    pseudo-members that still compare and encode as their integer.
    """

    @classmethod
    def _missing_(cls, value):
        if not isinstance(value, int):
            return None
        member = int.__new__(cls, value)
        member._name_ = f"UNKNOWN_{value}"
        member._value_ = value
        return member


class Operation(_TotalIntEnum):
    READ = 0
    WRITE = 1
    RECORD_CACHE_HIT = 2
    SKIP_READ = 3
    UNKNOWN = 4


class Reason(_TotalIntEnum):
    UNKNOWN = 0
    FOR_PROBE = 1
    FOR_COMPACTION = 2
    FOR_FLUSH = 3
    FOR_INGESTION = 4


class BlockType(_TotalIntEnum):
    UNKNOWN = 0
    DATA = 1
    VALUE = 2
    FILTER = 3
    METADATA = 4


# Levels above this (L5 and L6) are the two coldest tiers.
COLD_LEVEL_THRESHOLD = 5

_RECORD = struct.Struct("<qBBBB4xQqq")
RECORD_SIZE = _RECORD.size


@dataclass(frozen=True)
class IOEvent:
    timestamp_nanos: int
    operation: Operation
    reason: Reason
    block_type: BlockType
    level_plus_one: int
    file_number: int
    offset: int
    size: int

    @property
    def is_read(self) -> bool:
        """Reads and recorded cache hits both go through the lookup path."""
        return self.operation in (Operation.READ, Operation.RECORD_CACHE_HIT)

    @property
    def is_write(self) -> bool:
        return self.operation == Operation.WRITE

    @property
    def in_cold_levels(self) -> bool:
        return self.level_plus_one > COLD_LEVEL_THRESHOLD


def encode(event: IOEvent) -> bytes:
    return _RECORD.pack(
        event.timestamp_nanos,
        int(event.operation),
        int(event.reason),
        int(event.block_type),
        event.level_plus_one,
        event.file_number,
        event.offset,
        event.size,
    )


def decode(data: bytes) -> IOEvent:
    """Decode exactly one record; raise ValueError on a wrongly sized span."""
    if len(data) != RECORD_SIZE:
        raise ValueError(f"record must be {RECORD_SIZE} bytes, got {len(data)}")
    return _from_fields(_RECORD.unpack(data))


def decode_many(buffer: bytes, count: int) -> List[IOEvent]:
    """Decode the first ``count`` records of ``buffer``."""
    if count * RECORD_SIZE > len(buffer):
        raise ValueError(
            f"buffer holds {len(buffer) // RECORD_SIZE} complete records, {count} requested"
        )
    view = memoryview(buffer)[: count * RECORD_SIZE]
    return [_from_fields(fields) for fields in _RECORD.iter_unpack(view)]


def encode_many(events: Iterable[IOEvent]) -> bytes:
    return b"".join(encode(event) for event in events)


def iter_records(data: bytes) -> Iterator[IOEvent]:
    """Yield every whole record in ``data``; a trailing partial record is ignored."""
    whole = len(data) // RECORD_SIZE
    yield from decode_many(data, whole)


def _from_fields(fields: tuple) -> IOEvent:
    timestamp, op, reason, block_type, level, file_number, offset, size = fields
    return IOEvent(
        timestamp_nanos=timestamp,
        operation=Operation(op),
        reason=Reason(reason),
        block_type=BlockType(block_type),
        level_plus_one=level,
        file_number=file_number,
        offset=offset,
        size=size,
    )
