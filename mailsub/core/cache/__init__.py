"""
In-process caches for mailsub.

- ExpiringResourceCache: absolute-TTL get-or-create cache for disposable resources
"""

from mailsub.core.cache.expiring import CacheEntry, ExpiringResourceCache

__all__ = ["CacheEntry", "ExpiringResourceCache"]
