"""
Caching Layer

In-process TTL cache for provider reference data (location taxonomy).
"""

from .memory import CacheEntry, TTLCache

__all__ = [
    "CacheEntry",
    "TTLCache",
]
