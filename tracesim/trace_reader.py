from __future__ import annotations

import logging
import zlib
from typing import BinaryIO, Iterator, List, Optional

from .config import BATCH_SIZE
from .errors import TraceReadError
from .events import RECORD_SIZE, IOEvent, decode_many

logger = logging.getLogger(__name__)


class TraceReader:
    """Reads fixed-width event records from a (decompressing) byte stream in batches.

    ``next_batch`` returns ``None`` once the stream is exhausted. A short read
    at end-of-stream yields the complete records it contains and silently drops
    a trailing partial record; after that the stream is never read again.
    """

    def __init__(self, stream: BinaryIO, batch_size: int = BATCH_SIZE, *, owned: Optional[BinaryIO] = None):
        if batch_size <= 0:
            raise ValueError("batch_size must be a positive integer")
        self.stream = stream
        self.batch_size = batch_size
        self.buffer = bytearray(batch_size * RECORD_SIZE)
        # underlying file object closed together with ``stream``
        self._owned = owned
        self.exhausted = False
        self.closed = False
        self.events_read = 0

    def next_batch(self) -> Optional[List[IOEvent]]:
        if self.exhausted:
            return None
        if self.closed:
            raise TraceReadError("trace reader is closed")

        try:
            received = self._read_full()
        except (OSError, EOFError, zlib.error) as exc:
            raise TraceReadError(f"failed to read trace stream: {exc}") from exc

        count = received // RECORD_SIZE
        if received < len(self.buffer):
            self.exhausted = True
            dropped = received - count * RECORD_SIZE
            if dropped:
                logger.debug("dropping %d trailing bytes of a partial record", dropped)
            logger.debug("trace stream exhausted after %d events", self.events_read + count)

        self.events_read += count
        return decode_many(self.buffer, count)

    def _read_full(self) -> int:
        """Fill the buffer; return fewer bytes than its size only at end-of-stream."""
        view = memoryview(self.buffer)
        filled = 0
        while filled < len(view):
            chunk = self.stream.read(len(view) - filled)
            if not chunk:
                break
            view[filled : filled + len(chunk)] = chunk
            filled += len(chunk)
        return filled

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.stream.close()
        finally:
            if self._owned is not None:
                self._owned.close()

    def __iter__(self) -> Iterator[List[IOEvent]]:
        while True:
            batch = self.next_batch()
            if batch is None:
                return
            yield batch

    def __enter__(self) -> "TraceReader":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
