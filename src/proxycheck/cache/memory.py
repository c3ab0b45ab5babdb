"""Process-local result cache with age-based eviction.

:class:`InMemoryCache` keeps a plain list of entries guarded by a lock.
Every read and write first sweeps out entries whose age has reached the
configured max-age, so staleness stays bounded and the list cannot grow
without limit. Writes do not replace older entries for the same key; a
reader prefers the newest matching entry and the sweep removes the rest
once they age out.

Nothing is persisted: the cache lives and dies with the process.
"""

from __future__ import annotations

import threading
import time
from dataclasses import dataclass
from datetime import timedelta
from typing import Any, Callable, Iterable, Mapping, Optional

from proxycheck.exceptions import ConfigError
from proxycheck.models import IPAddress, IpResult, RequestOptions

DEFAULT_MAX_AGE = timedelta(hours=1)


@dataclass(frozen=True)
class CacheEntry:
    """One cached result together with the options it was fetched under."""

    ip: IPAddress
    options: RequestOptions
    result: IpResult
    inserted_at: float


class InMemoryCache:
    """Lock-guarded in-memory implementation of :class:`~proxycheck.cache.CacheProvider`.

    Args:
        max_age: How long an entry stays valid. An entry inserted at *T* is
            treated as absent from *T + max_age* onwards.
        clock: Monotonic time source in seconds. Tests inject a fake clock
            to move time forward without sleeping.

    Example::

        from proxycheck.cache import InMemoryCache
        from proxycheck.models import RequestOptions

        cache = InMemoryCache(timedelta(minutes=30))
        cache.set_many({ip: result}, RequestOptions(include_asn=True))
        hit = cache.get_one(ip, RequestOptions(include_asn=True))
    """

    def __init__(
        self,
        max_age: timedelta = DEFAULT_MAX_AGE,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_age <= timedelta(0):
            raise ConfigError(f"Cache max age must be positive, got {max_age}")
        self._max_age = max_age.total_seconds()
        self._clock = clock
        self._entries: list[CacheEntry] = []
        self._lock = threading.Lock()

    def get_one(self, ip: IPAddress, options: RequestOptions) -> Optional[IpResult]:
        """Look up a single address under exact option equivalence.

        Args:
            ip: The address to look up.
            options: Options of the current query.

        Returns:
            The cached :class:`~proxycheck.models.IpResult`, or ``None`` on a
            miss.
        """
        return self.get_many([ip], options).get(ip)

    def get_many(
        self, ips: Iterable[IPAddress], options: RequestOptions,
    ) -> dict[IPAddress, IpResult]:
        """Look up several addresses under exact option equivalence.

        Addresses without a valid entry are simply missing from the returned
        mapping. When several entries match the same address the most
        recently inserted one wins.

        Args:
            ips: The addresses to look up.
            options: Options of the current query.

        Returns:
            A new ``dict`` mapping each hit address to its cached result.
        """
        wanted = set(ips)
        key = options.cache_key()
        hits: dict[IPAddress, IpResult] = {}
        with self._lock:
            self._sweep()
            # Entries are kept in insertion order, so later writes overwrite.
            for entry in self._entries:
                if entry.ip in wanted and entry.options.cache_key() == key:
                    hits[entry.ip] = entry.result
        return hits

    def set_many(self, results: Mapping[IPAddress, IpResult], options: RequestOptions) -> None:
        """Record each result under *options* with the current timestamp.

        Args:
            results: Freshly fetched results keyed by address.
            options: Options the results were fetched under.
        """
        with self._lock:
            self._sweep()
            now = self._clock()
            for ip, result in results.items():
                self._entries.append(CacheEntry(ip, options, result, now))

    def clear(self) -> None:
        """Remove all entries from the cache."""
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict[str, Any]:
        """Return cache statistics.

        Returns:
            A ``dict`` with ``size`` (live entries after a sweep) and
            ``max_age_seconds``.
        """
        with self._lock:
            self._sweep()
            return {"size": len(self._entries), "max_age_seconds": self._max_age}

    def __len__(self) -> int:
        with self._lock:
            self._sweep()
            return len(self._entries)

    def _sweep(self) -> None:
        """Drop entries whose age has reached max-age. Caller holds the lock."""
        now = self._clock()
        self._entries = [
            e for e in self._entries if now - e.inserted_at < self._max_age
        ]
