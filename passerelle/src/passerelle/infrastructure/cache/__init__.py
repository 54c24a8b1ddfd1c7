"""
Cache infrastructure.
"""

from passerelle.infrastructure.cache.redis_client import RedisClient

__all__ = ["RedisClient"]
