from __future__ import annotations

from dataclasses import dataclass, fields
from enum import Enum

from .errors import ConfigError

# constant setup
DEFAULT_TRACES_DIR = "traces"
# records decoded per TraceReader.next_batch() call
BATCH_SIZE = 1024

SWEEP_CACHE_SIZE_START = 1024
SWEEP_CACHE_SIZE_END = 1024 * 1000
SWEEP_TICKS = 10
SWEEP_SKETCH_SAMPLES_PER_SLOT = 10


class ReplacementPolicy(str, Enum):
    RECENCY_FREQUENCY_HYBRID = "ClockPro"
    SEGMENTED_LRU = "S4LRU"
    FREQUENCY_SKETCH_LRU = "TinyLFU"
    # recognized, but no backing algorithm is wired up
    LRU = "LRU"

    @classmethod
    def parse(cls, name: str) -> "ReplacementPolicy":
        """Look a policy up by value ("S4LRU") or member name ("segmented_lru")."""
        for policy in cls:
            if name.lower() in (policy.value.lower(), policy.name.lower()):
                return policy
        choices = ", ".join(p.value for p in cls)
        raise ConfigError(f"unknown replacement policy {name!r} (choose from {choices})")

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class SimulationConfig:
    """Everything that decides the outcome of one replay.

    Instances are hashable and compared field by field, so a config can key
    the result memo directly. Validation happens here, before any trace is
    opened; segmented LRU capacities are rounded down to a multiple of four
    so that the rounded value is what equality and hashing see.
    """

    policy: ReplacementPolicy
    cache_capacity: int
    # 0 keys the cache by raw offset; otherwise offsets are bucketed by it
    block_size: int = 0
    # must be > 0 exactly when policy is FREQUENCY_SKETCH_LRU
    frequency_sketch_samples: int = 0
    write_through: bool = False
    restrict_to_cold_levels: bool = False
    user_facing_reads_only: bool = False

    def __post_init__(self) -> None:
        if not isinstance(self.policy, ReplacementPolicy):
            raise ConfigError(f"policy must be a ReplacementPolicy, got {self.policy!r}")
        if self.block_size < 0:
            raise ConfigError(f"block_size must be >= 0, got {self.block_size}")

        if self.policy is ReplacementPolicy.FREQUENCY_SKETCH_LRU:
            if self.frequency_sketch_samples <= 0:
                raise ConfigError(f"{self.policy} requires frequency_sketch_samples > 0")
        elif self.frequency_sketch_samples != 0:
            raise ConfigError(
                f"frequency_sketch_samples is only valid for "
                f"{ReplacementPolicy.FREQUENCY_SKETCH_LRU}, not {self.policy}"
            )

        capacity = self.cache_capacity
        if self.policy is ReplacementPolicy.SEGMENTED_LRU:
            capacity = capacity // 4 * 4
            object.__setattr__(self, "cache_capacity", capacity)
        if capacity <= 0:
            raise ConfigError(
                f"cache_capacity must be a positive integer for {self.policy}, got {capacity}"
            )

    def key_for(self, file_number: int, offset: int) -> tuple[int, int]:
        """Cache key of an access, with the offset quantized by block_size."""
        if self.block_size:
            # truncate toward zero, not floor
            quotient = abs(offset) // self.block_size
            offset = quotient if offset >= 0 else -quotient
        return file_number, offset

    def __str__(self) -> str:
        parts = []
        for field in fields(self):
            value = getattr(self, field.name)
            parts.append(f"{field.name}={value}")
        return "{" + " ".join(parts) + "}"
