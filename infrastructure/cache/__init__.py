"""
Caches applicatifs
"""

from infrastructure.cache.idempotency_cache import IdempotencyCache

__all__ = [
    "IdempotencyCache"
]
