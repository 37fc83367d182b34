"""
On-disk trace directory.

Each trace ``<name>`` is a pair of files under the store root:

- ``<name>.json``: metadata (name, RFC 3339 start time, whole-second duration,
  event count);
- ``<name>.gz``: gzip-compressed records in timestamp order, with no header,
  footer or record count.
"""

from __future__ import annotations

import gzip
import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Iterable, List, Sequence, Tuple

from .config import BATCH_SIZE, DEFAULT_TRACES_DIR
from .errors import TraceError, TraceFormatError, TraceNotFoundError, TraceReadError
from .events import RECORD_SIZE, IOEvent, encode_many, iter_records
from .trace_reader import TraceReader

logger = logging.getLogger(__name__)

METADATA_SUFFIX = ".json"
EVENTS_SUFFIX = ".gz"
NANOS_PER_SECOND = 1_000_000_000


@dataclass(frozen=True)
class TraceMetadata:
    name: str
    start_time: str
    duration_secs: int
    num_events: int

    @classmethod
    def from_events(cls, name: str, events: Sequence[IOEvent]) -> "TraceMetadata":
        """Metadata for ``events``, which must be non-empty and sorted by timestamp."""
        first = events[0].timestamp_nanos
        last = events[-1].timestamp_nanos
        start = datetime.fromtimestamp(first // NANOS_PER_SECOND, tz=timezone.utc)
        return cls(
            name=name,
            start_time=start.isoformat().replace("+00:00", "Z"),
            duration_secs=-(-(last - first) // NANOS_PER_SECOND),
            num_events=len(events),
        )

    @property
    def start_unix_secs(self) -> int:
        text = self.start_time.replace("Z", "+00:00")
        return int(datetime.fromisoformat(text).timestamp())

    def to_json(self) -> dict:
        return {
            "Name": self.name,
            "StartTime": self.start_time,
            "DurationSecs": self.duration_secs,
            "NumEvents": self.num_events,
        }

    @classmethod
    def from_json(cls, payload: dict) -> "TraceMetadata":
        try:
            return cls(
                name=str(payload["Name"]),
                start_time=str(payload["StartTime"]),
                duration_secs=int(payload["DurationSecs"]),
                num_events=int(payload["NumEvents"]),
            )
        except (KeyError, TypeError, ValueError) as exc:
            raise TraceFormatError(f"invalid trace metadata: {exc}") from exc


class TraceStore:
    def __init__(self, root: str | Path = DEFAULT_TRACES_DIR):
        self.root = Path(root)

    def metadata_path(self, name: str) -> Path:
        return self.root / f"{name}{METADATA_SUFFIX}"

    def events_path(self, name: str) -> Path:
        return self.root / f"{name}{EVENTS_SUFFIX}"

    def list_traces(self) -> List[str]:
        """Names of all traces with a metadata sidecar, sorted."""
        try:
            entries = list(self.root.iterdir())
        except OSError as exc:
            raise TraceReadError(f"reading traces directory {self.root}: {exc}") from exc
        return sorted(p.name[: -len(METADATA_SUFFIX)] for p in entries if p.name.endswith(METADATA_SUFFIX))

    def load_metadata(self, name: str) -> TraceMetadata:
        path = self.metadata_path(name)
        try:
            raw = path.read_text(encoding="utf-8")
        except FileNotFoundError as exc:
            raise TraceNotFoundError(f"no trace named {name!r} in {self.root}") from exc
        except OSError as exc:
            raise TraceReadError(f"reading {path}: {exc}") from exc
        try:
            payload = json.loads(raw)
        except json.JSONDecodeError as exc:
            raise TraceFormatError(f"{path} is not valid JSON: {exc}") from exc
        return TraceMetadata.from_json(payload)

    def load(self, name: str, batch_size: int = BATCH_SIZE) -> Tuple[TraceMetadata, TraceReader]:
        """Read the metadata and open a reader over the event stream.

        The caller owns the reader and must close it (it is a context manager).
        """
        metadata = self.load_metadata(name)
        path = self.events_path(name)
        try:
            raw = path.open("rb")
        except FileNotFoundError as exc:
            raise TraceNotFoundError(f"trace {name!r} has metadata but no {path.name}") from exc
        except OSError as exc:
            raise TraceReadError(f"opening {path}: {exc}") from exc
        try:
            reader = TraceReader(gzip.GzipFile(fileobj=raw, mode="rb"), batch_size, owned=raw)
        except BaseException:
            raw.close()
            raise
        return metadata, reader

    def add_trace(self, name: str, raw_files: Iterable[str | Path]) -> TraceMetadata:
        """Merge raw record dumps into a new trace.

        The dumps are concatenated, cut to a whole number of records, sorted by
        timestamp and written out compressed together with their metadata.
        """
        logger.info("creating trace %r", name)
        chunks = []
        for raw_file in raw_files:
            logger.info("reading %s", raw_file)
            try:
                chunks.append(Path(raw_file).read_bytes())
            except OSError as exc:
                raise TraceReadError(f"reading {raw_file}: {exc}") from exc

        data = b"".join(chunks)
        if len(data) % RECORD_SIZE:
            logger.warning("ignoring %d trailing bytes of a partial record", len(data) % RECORD_SIZE)
        events = list(iter_records(data))
        if not events:
            raise TraceFormatError("no traces")

        logger.info("sorting %d events", len(events))
        events.sort(key=lambda e: e.timestamp_nanos)
        metadata = TraceMetadata.from_events(name, events)

        self.root.mkdir(parents=True, exist_ok=True)
        out_path = self.events_path(name)
        logger.info("writing %s", out_path)
        try:
            with gzip.open(out_path, "wb") as out:
                out.write(encode_many(events))
            self.metadata_path(name).write_text(json.dumps(metadata.to_json()), encoding="utf-8")
        except OSError as exc:
            raise TraceError(f"writing trace {name!r}: {exc}") from exc
        return metadata
