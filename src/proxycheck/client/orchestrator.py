"""Cache-aware query orchestration.

Given a batch of addresses and a :class:`~proxycheck.models.RequestOptions`,
the orchestrator decides which results the cache can serve, fetches only the
rest from the remote lookup, writes the fresh results back, and merges both
halves into one :class:`~proxycheck.models.QueryResult`:

1. Read the whole batch from the cache; hits are copied with
   ``is_cache_hit=True``.
2. If every address was a hit, answer from the cache alone. The result is
   flagged ``served_from_cache``, its ``node`` is :data:`CACHE_NODE` when node
   reporting is on, and its ``query_time`` is the local lookup latency.
3. Otherwise make exactly one remote call for the misses, decode it, and
   write the fresh results to the cache.
4. Merge. A fresh value always wins over a cached one for the same address.

Cache failures never fail a query: a read that raises counts as an empty
cache and a write that raises is skipped, both logged at warning level.
Remote failures propagate as a
:class:`~proxycheck.exceptions.LookupFailedError` with the cause chained.

:class:`QueryOrchestrator` drives a blocking lookup;
:class:`AsyncQueryOrchestrator` awaits an asynchronous one. Both share the
pure helpers in this module.
"""

from __future__ import annotations

import logging
import time
from datetime import timedelta
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Callable, Iterable, Mapping, Optional

from proxycheck.cache.base import CacheProvider
from proxycheck.client.decoder import Decoder, decode_response
from proxycheck.client.transport import AsyncRemoteLookup, RemoteLookup
from proxycheck.exceptions import (
    InvalidUsageError,
    ProxyCheckError,
    ResponseFormatError,
    UnexpectedLookupError,
)
from proxycheck.models import IPAddress, IpResult, QueryResult, RequestOptions, StatusResult

logger = logging.getLogger(__name__)

CACHE_NODE = "CACHE"
"""Node label reported when a query was answered entirely from cache."""


class QueryOrchestrator:
    """Run queries against a blocking lookup with an optional result cache.

    Args:
        lookup: Remote lookup collaborator (see
            :class:`~proxycheck.client.transport.RemoteLookup`).
        decoder: Turns the lookup's raw body into a
            :class:`~proxycheck.models.QueryResult`.
        cache: Optional :class:`~proxycheck.cache.CacheProvider`. Without one
            every address is a miss.
        include_node: Report :data:`CACHE_NODE` as the answering node for
            cache-only results.
        timer: Time source used to measure cache-only latency.
    """

    def __init__(
        self,
        lookup: RemoteLookup,
        decoder: Decoder = decode_response,
        cache: Optional[CacheProvider] = None,
        include_node: bool = False,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._lookup = lookup
        self._decoder = decoder
        self._cache = cache
        self._include_node = include_node
        self._timer = timer

    def query(
        self,
        ips: Iterable[IPAddress],
        options: RequestOptions,
        tag: str = "",
    ) -> QueryResult:
        """Resolve *ips* under *options*.

        Args:
            ips: Parsed addresses; duplicates collapse to one entry.
            options: Query options, also the cache-key equivalence class.
            tag: Free-form tag forwarded unchanged to the remote lookup.

        Returns:
            A :class:`~proxycheck.models.QueryResult` with one entry per
            distinct address.

        Raises:
            InvalidUsageError: If *ips* is empty or holds a non-address.
            LookupFailedError: If the remote lookup or decoding fails.
        """
        targets = distinct_addresses(ips)
        started = self._timer()
        hits = read_cache(self._cache, targets, options)
        misses = [ip for ip in targets if ip not in hits]

        if not misses:
            return cache_only_result(
                hits, self._include_node, timedelta(seconds=self._timer() - started),
            )

        logger.debug("Fetching %d of %d addresses remotely", len(misses), len(targets))
        try:
            fresh = self._decoder(self._lookup.fetch(misses, options, tag))
        except ProxyCheckError:
            raise
        except Exception as exc:
            raise UnexpectedLookupError(f"Lookup failed: {exc}") from exc

        return merge_results(self._cache, targets, misses, hits, fresh, options)


class AsyncQueryOrchestrator:
    """Asynchronous counterpart of :class:`QueryOrchestrator`.

    The query suspends only while awaiting the remote lookup; cache reads and
    writes are local and run synchronously.
    """

    def __init__(
        self,
        lookup: AsyncRemoteLookup,
        decoder: Decoder = decode_response,
        cache: Optional[CacheProvider] = None,
        include_node: bool = False,
        timer: Callable[[], float] = time.perf_counter,
    ) -> None:
        self._lookup = lookup
        self._decoder = decoder
        self._cache = cache
        self._include_node = include_node
        self._timer = timer

    async def query(
        self,
        ips: Iterable[IPAddress],
        options: RequestOptions,
        tag: str = "",
    ) -> QueryResult:
        """Resolve *ips* under *options*; see :meth:`QueryOrchestrator.query`."""
        targets = distinct_addresses(ips)
        started = self._timer()
        hits = read_cache(self._cache, targets, options)
        misses = [ip for ip in targets if ip not in hits]

        if not misses:
            return cache_only_result(
                hits, self._include_node, timedelta(seconds=self._timer() - started),
            )

        logger.debug("Fetching %d of %d addresses remotely", len(misses), len(targets))
        try:
            raw = await self._lookup.fetch(misses, options, tag)
            fresh = self._decoder(raw)
        except ProxyCheckError:
            raise
        except Exception as exc:
            raise UnexpectedLookupError(f"Lookup failed: {exc}") from exc

        return merge_results(self._cache, targets, misses, hits, fresh, options)


# ------------------------------------------------------------------ #
# Shared steps
# ------------------------------------------------------------------ #


def distinct_addresses(ips: Iterable[Any]) -> list[IPAddress]:
    """Return *ips* without duplicates, in first-seen order.

    Raises:
        InvalidUsageError: If *ips* is empty or holds something other than an
            :class:`~ipaddress.IPv4Address` / :class:`~ipaddress.IPv6Address`.
    """
    seen: dict[IPAddress, None] = {}
    for ip in ips:
        if not isinstance(ip, (IPv4Address, IPv6Address)):
            raise InvalidUsageError(f"Not an IP address: {ip!r}")
        seen.setdefault(ip, None)
    if not seen:
        raise InvalidUsageError("Must have at least 1 IP address")
    return list(seen)


def read_cache(
    cache: Optional[CacheProvider],
    targets: list[IPAddress],
    options: RequestOptions,
) -> dict[IPAddress, IpResult]:
    """Return the cache hits for *targets*, each flagged as a cache hit."""
    if cache is None:
        return {}
    try:
        found = cache.get_many(targets, options)
    except Exception:
        logger.warning("Cache read failed; treating all addresses as misses", exc_info=True)
        return {}
    hits = {ip: result.as_cache_hit() for ip, result in found.items() if ip in targets}
    logger.debug("Cache served %d of %d addresses", len(hits), len(targets))
    return hits


def write_cache(
    cache: Optional[CacheProvider],
    results: Mapping[IPAddress, IpResult],
    options: RequestOptions,
) -> None:
    """Store freshly fetched *results*; failures are logged and skipped."""
    if cache is None or not results:
        return
    try:
        cache.set_many(results, options)
    except Exception:
        logger.warning("Cache write failed; results were not cached", exc_info=True)


def cache_only_result(
    hits: dict[IPAddress, IpResult],
    include_node: bool,
    elapsed: timedelta,
) -> QueryResult:
    """Synthesize the answer for a batch served entirely from cache."""
    return QueryResult(
        status=StatusResult.OK,
        node=CACHE_NODE if include_node else None,
        query_time=elapsed,
        served_from_cache=True,
        results=hits,
    )


def merge_results(
    cache: Optional[CacheProvider],
    targets: list[IPAddress],
    misses: list[IPAddress],
    hits: dict[IPAddress, IpResult],
    fresh: QueryResult,
    options: RequestOptions,
) -> QueryResult:
    """Write *fresh* back to the cache and fold the cache *hits* into it.

    Fresh values win over cached ones. Fresh results for addresses that were
    not requested are cached but left out of the returned mapping.

    Raises:
        ResponseFormatError: If an OK/WARNING response omits a missed address.
    """
    fetched = {
        ip: result.model_copy(update={"is_cache_hit": False}) if result.is_cache_hit else result
        for ip, result in fresh.results.items()
    }
    write_cache(cache, fetched, options)

    if fresh.status in (StatusResult.OK, StatusResult.WARNING):
        absent = [ip for ip in misses if ip not in fetched]
        if absent:
            raise ResponseFormatError(
                "Response omitted requested addresses: "
                + ", ".join(str(ip) for ip in absent)
            )

    merged: dict[IPAddress, IpResult] = {}
    for ip in targets:
        if ip in fetched:
            merged[ip] = fetched[ip]
        elif ip in hits:
            merged[ip] = hits[ip]

    fresh.results = merged
    return fresh
