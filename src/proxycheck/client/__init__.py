"""Lookup clients for proxycheck.

Layers, leaves first:

- :mod:`~proxycheck.client.transport` -- :class:`HttpLookup` and
  :class:`AsyncHttpLookup`, the remote lookup over :mod:`httpx`.
- :mod:`~proxycheck.client.decoder` -- :func:`decode_response`, raw body to
  :class:`~proxycheck.models.QueryResult`.
- :mod:`~proxycheck.client.orchestrator` -- :class:`QueryOrchestrator` and
  :class:`AsyncQueryOrchestrator`, which split a batch into cache hits and
  misses, fetch the misses and merge.
- :mod:`~proxycheck.client.checker` -- :class:`ProxyCheck` and
  :class:`AsyncProxyCheck`, the facades most callers use.
"""

from proxycheck.client.checker import AsyncProxyCheck, ProxyCheck, parse_addresses
from proxycheck.client.decoder import decode_response
from proxycheck.client.orchestrator import (
    CACHE_NODE,
    AsyncQueryOrchestrator,
    QueryOrchestrator,
)
from proxycheck.client.transport import AsyncHttpLookup, HttpLookup

__all__ = [
    "AsyncHttpLookup",
    "AsyncProxyCheck",
    "AsyncQueryOrchestrator",
    "CACHE_NODE",
    "HttpLookup",
    "ProxyCheck",
    "QueryOrchestrator",
    "decode_response",
    "parse_addresses",
]
