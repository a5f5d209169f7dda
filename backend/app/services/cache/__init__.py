"""
In-memory caches used by the quota limiters.
"""
from app.services.cache.counter_cache import TimeWindowedCounterCache

__all__ = [
    "TimeWindowedCounterCache",
]
