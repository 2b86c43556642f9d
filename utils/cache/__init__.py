"""
Multi-Level Cache

Throttled access to a derived value that is expensive to recompute from its
authoritative source. Reloads are governed by a time throttle, a call-count
limit and an optional periodic change check.
"""

from .types import ReloadPolicyConfig, CacheStats
from .manager import MultiLevelCacheManager, CacheReloadError

__all__ = [
    "ReloadPolicyConfig",
    "CacheStats",
    "MultiLevelCacheManager",
    "CacheReloadError",
]
