"""
Core engine: aggregation passes and the snapshot cache.
"""

from allbeads.core.aggregator import (
    AggregationResult,
    Aggregator,
    AggregatorOptions,
    shadow_id,
)
from allbeads.core.cache import (
    CachedSnapshot,
    CacheStats,
    GraphCache,
    load_or_aggregate,
)

__all__ = [
    "AggregationResult",
    "Aggregator",
    "AggregatorOptions",
    "shadow_id",
    "CachedSnapshot",
    "CacheStats",
    "GraphCache",
    "load_or_aggregate",
]
