"""The capability contract every result cache satisfies.

A cache stores per-address :class:`~proxycheck.models.IpResult` values keyed
by the address and the :class:`~proxycheck.models.RequestOptions` equivalence
class they were fetched under. The orchestrator depends only on this
protocol, so any storage strategy can be injected without subclassing.
"""

from __future__ import annotations

from typing import Iterable, Mapping, Optional, Protocol, runtime_checkable

from proxycheck.models import IPAddress, IpResult, RequestOptions


@runtime_checkable
class CacheProvider(Protocol):
    """Structural interface for result caches.

    Implementations must treat a lookup under non-equivalent options as a
    miss, must never return an entry older than their configured max-age,
    and must be safe to call from several in-flight queries at once.
    """

    def get_one(self, ip: IPAddress, options: RequestOptions) -> Optional[IpResult]:
        """Return the cached result for *ip* under *options*, or ``None``."""
        ...

    def get_many(
        self, ips: Iterable[IPAddress], options: RequestOptions,
    ) -> dict[IPAddress, IpResult]:
        """Return the cached results for whichever of *ips* have a valid entry."""
        ...

    def set_many(self, results: Mapping[IPAddress, IpResult], options: RequestOptions) -> None:
        """Record *results* as fetched under *options*."""
        ...
