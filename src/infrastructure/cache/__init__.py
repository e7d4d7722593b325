"""Caching infrastructure: an in-process cache and a distributed cache.

- **MemoryCache**: process-local cache for any Python value
- **DistributedCache**: byte cache shared between instances, with an
  in-process default and a Redis implementation
"""

from src.infrastructure.cache.distributed import (
    DistributedCache,
    InMemoryDistributedCache,
    RedisDistributedCache,
)
from src.infrastructure.cache.memory import MemoryCache

__all__ = [
    "DistributedCache",
    "InMemoryDistributedCache",
    "MemoryCache",
    "RedisDistributedCache",
]
