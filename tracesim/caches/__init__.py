"""Backing eviction algorithms and the factory that picks one per config."""

from __future__ import annotations

import logging

from ..cache_base import Cache
from ..config import ReplacementPolicy, SimulationConfig
from ..errors import ConfigError
from .clockpro import ClockProCache  # noqa: F401
from .s4lru import S4LRUCache  # noqa: F401
from .tinylfu import TinyLFUCache  # noqa: F401

logger = logging.getLogger(__name__)


def create_cache(config: SimulationConfig) -> Cache:
    """Build a fresh cache for one replay, chosen by ``config.policy``."""
    policy = config.policy
    if policy is ReplacementPolicy.RECENCY_FREQUENCY_HYBRID:
        cache: Cache = ClockProCache(config.cache_capacity)
    elif policy is ReplacementPolicy.SEGMENTED_LRU:
        cache = S4LRUCache(config.cache_capacity)
    elif policy is ReplacementPolicy.FREQUENCY_SKETCH_LRU:
        if config.frequency_sketch_samples <= 0:
            raise ConfigError(f"{policy} requires frequency_sketch_samples > 0")
        cache = TinyLFUCache(config.cache_capacity, config.frequency_sketch_samples)
    else:
        raise ConfigError(f"replacement policy {policy} is not implemented")

    if policy is not ReplacementPolicy.FREQUENCY_SKETCH_LRU and config.frequency_sketch_samples:
        raise ConfigError(f"frequency_sketch_samples must be 0 for {policy}")
    logger.debug("created %s cache with %d slots", policy, config.cache_capacity)
    return cache
