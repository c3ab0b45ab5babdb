"""Result caching for proxycheck.

This package provides :class:`CacheProvider`, the protocol the query
orchestrator depends on, and :class:`InMemoryCache`, the process-local
reference implementation with age-based eviction. Entries are keyed by
address and by the :class:`~proxycheck.models.RequestOptions` equivalence
class they were fetched under.

The cache is consumed by :class:`~proxycheck.client.orchestrator.QueryOrchestrator`
and is controlled by the ``cache`` section of the client configuration
(:class:`~proxycheck.models.CacheConfig`).
"""

from proxycheck.cache.base import CacheProvider
from proxycheck.cache.memory import DEFAULT_MAX_AGE, CacheEntry, InMemoryCache

__all__ = ["CacheProvider", "CacheEntry", "DEFAULT_MAX_AGE", "InMemoryCache"]
