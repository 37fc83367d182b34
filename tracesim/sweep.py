from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Sequence

from .config import (
    SWEEP_CACHE_SIZE_END,
    SWEEP_CACHE_SIZE_START,
    SWEEP_SKETCH_SAMPLES_PER_SLOT,
    SWEEP_TICKS,
    ReplacementPolicy,
    SimulationConfig,
)
from .simulator import Simulator
from .trace_store import TraceStore

logger = logging.getLogger(__name__)

SWEEP_POLICIES = (
    ReplacementPolicy.FREQUENCY_SKETCH_LRU,
    ReplacementPolicy.RECENCY_FREQUENCY_HYBRID,
    ReplacementPolicy.SEGMENTED_LRU,
)


@dataclass(frozen=True)
class OptionSet:
    write_through: bool = False
    restrict_to_cold_levels: bool = False
    user_facing_reads_only: bool = False

    @property
    def label(self) -> str:
        enabled = []
        if self.write_through:
            enabled.append("write-through")
        if self.restrict_to_cold_levels:
            enabled.append("L5/L6 only")
        if self.user_facing_reads_only:
            enabled.append("user-facing reads only")
        return ", ".join(enabled) or "default"


OPTION_SETS = (
    OptionSet(),
    OptionSet(write_through=True),
    OptionSet(restrict_to_cold_levels=True),
    OptionSet(user_facing_reads_only=True),
    OptionSet(write_through=True, restrict_to_cold_levels=True, user_facing_reads_only=True),
)


@dataclass
class OptionSetResult:
    option_set: str
    hit_rate: List[float] = field(default_factory=list)


@dataclass
class PolicyResult:
    replacement_policy: str
    results: List[OptionSetResult] = field(default_factory=list)


@dataclass
class SweepResult:
    trace: str
    cache_sizes: List[int]
    policies: List[PolicyResult] = field(default_factory=list)

    def to_json(self) -> dict:
        return {
            "cache_size": self.cache_sizes,
            "results_per_replacement_policy": [
                {
                    "replacement_policy": policy.replacement_policy,
                    "results_per_option_set": [
                        {"option_set": opt.option_set, "hit_rate": opt.hit_rate} for opt in policy.results
                    ],
                }
                for policy in self.policies
            ],
        }


def default_cache_sizes(
    start: int = SWEEP_CACHE_SIZE_START, end: int = SWEEP_CACHE_SIZE_END, ticks: int = SWEEP_TICKS
) -> List[int]:
    increment = max(1, (end - start) // ticks)
    return list(range(start, end, increment))


def config_for(
    policy: ReplacementPolicy, options: OptionSet, cache_size: int, block_size: int = 0
) -> SimulationConfig:
    samples = SWEEP_SKETCH_SAMPLES_PER_SLOT * cache_size if policy is ReplacementPolicy.FREQUENCY_SKETCH_LRU else 0
    return SimulationConfig(
        policy=policy,
        cache_capacity=cache_size,
        block_size=block_size,
        frequency_sketch_samples=samples,
        write_through=options.write_through,
        restrict_to_cold_levels=options.restrict_to_cold_levels,
        user_facing_reads_only=options.user_facing_reads_only,
    )


def sweep(
    store: TraceStore,
    trace_name: str,
    simulator: Simulator,
    *,
    cache_sizes: Sequence[int] | None = None,
    policies: Sequence[ReplacementPolicy] = SWEEP_POLICIES,
    option_sets: Sequence[OptionSet] = OPTION_SETS,
    block_size: int = 0,
) -> SweepResult:
    """Hit rate of every policy x option set x cache size for one trace.

    Points already in the simulator's memo are not replayed again.
    """
    sizes = list(cache_sizes) if cache_sizes is not None else default_cache_sizes()
    result = SweepResult(trace=trace_name, cache_sizes=sizes)
    for policy in policies:
        policy_result = PolicyResult(replacement_policy=str(policy))
        for options in option_sets:
            opt_result = OptionSetResult(option_set=options.label)
            for cache_size in sizes:
                config = config_for(policy, options, cache_size, block_size)
                logger.info("simulate %s / %d / %s / %s", trace_name, cache_size, policy, options.label)
                outcome = simulator.run_trace(store, trace_name, config)
                opt_result.hit_rate.append(outcome.hit_rate)
            policy_result.results.append(opt_result)
        result.policies.append(policy_result)
    return result
