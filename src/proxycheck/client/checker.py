"""High-level clients that wire transport, decoder, cache and config together.

:class:`ProxyCheck` is the blocking entry point most callers want;
:class:`AsyncProxyCheck` is its ``asyncio`` counterpart. Both:

- parse and validate addresses before anything touches the cache or the
  network (:func:`parse_addresses`),
- build an :class:`~proxycheck.cache.InMemoryCache` from the ``cache``
  section of :class:`~proxycheck.models.ClientConfig` unless a cache is
  injected,
- keep the cache on the client instance, so it survives across
  ``with`` blocks.

Example::

    from proxycheck import ProxyCheck, RequestOptions

    with ProxyCheck(api_key="...") as checker:
        result = checker.query(["37.60.48.2", "8.8.8.8"], RequestOptions(include_asn=True))
        for ip, data in result.results.items():
            print(ip, data.is_proxy, data.is_cache_hit)
"""

from __future__ import annotations

from datetime import timedelta
from ipaddress import IPv4Address, IPv6Address, ip_address
from typing import Iterable, Optional, Union

import httpx

from proxycheck.cache import CacheProvider, InMemoryCache
from proxycheck.client.decoder import Decoder, decode_response
from proxycheck.client.orchestrator import AsyncQueryOrchestrator, QueryOrchestrator
from proxycheck.client.transport import AsyncHttpLookup, HttpLookup
from proxycheck.exceptions import InvalidUsageError, LookupFailedError
from proxycheck.models import ClientConfig, IPAddress, IpResult, QueryResult, RequestOptions

AddressInput = Union[str, IPv4Address, IPv6Address]


def parse_addresses(ips: Union[AddressInput, Iterable[AddressInput]]) -> list[IPAddress]:
    """Parse one address or a batch of addresses.

    Args:
        ips: A single address (string or :mod:`ipaddress` object) or an
            iterable of them.

    Returns:
        The parsed addresses in input order (duplicates kept; the
        orchestrator collapses them).

    Raises:
        InvalidUsageError: If the batch is empty or any entry is not a valid
            IPv4/IPv6 address.
    """
    if isinstance(ips, (str, IPv4Address, IPv6Address)):
        ips = [ips]

    parsed: list[IPAddress] = []
    for item in ips:
        if isinstance(item, (IPv4Address, IPv6Address)):
            parsed.append(item)
            continue
        try:
            parsed.append(ip_address(str(item).strip()))
        except ValueError:
            raise InvalidUsageError(
                f"Invalid IP address provided. `{item}` is not a valid IP"
            ) from None

    if not parsed:
        raise InvalidUsageError("Must have at least 1 IP address")
    return parsed


def _default_cache(config: ClientConfig) -> Optional[CacheProvider]:
    if not config.cache.enabled:
        return None
    return InMemoryCache(timedelta(seconds=config.cache.max_age_seconds))


def _single(result: QueryResult, ip: IPAddress) -> IpResult:
    try:
        return result.results[ip]
    except KeyError:
        raise LookupFailedError(
            f"No result for {ip} (status: {result.status.value}"
            f"{', ' + result.message if result.message else ''})"
        ) from None


class ProxyCheck:
    """Blocking proxy/VPN lookup client.

    Must be used as a context manager so the HTTP connection pool is opened
    and closed.

    Args:
        config: Client settings. Defaults to :class:`~proxycheck.models.ClientConfig`.
        api_key: Service API key; ``None`` uses the anonymous tier.
        cache: Result cache. Defaults to an in-memory cache built from
            ``config.cache``; ``None`` with ``config.cache.enabled=False``
            disables caching.
        decoder: Response decoder collaborator.
        transport: Optional httpx transport (e.g. :class:`httpx.MockTransport`).
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        api_key: Optional[str] = None,
        cache: Optional[CacheProvider] = None,
        decoder: Decoder = decode_response,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._lookup = HttpLookup(self._config, api_key=api_key, transport=transport)
        self._cache = cache if cache is not None else _default_cache(self._config)
        self._orchestrator = QueryOrchestrator(
            self._lookup,
            decoder=decoder,
            cache=self._cache,
            include_node=self._config.include_node,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def cache(self) -> Optional[CacheProvider]:
        return self._cache

    def __enter__(self) -> ProxyCheck:
        self._lookup.__enter__()
        return self

    def __exit__(self, *args: object) -> None:
        self._lookup.__exit__(*args)

    def query(
        self,
        ips: Union[AddressInput, Iterable[AddressInput]],
        options: Optional[RequestOptions] = None,
        tag: str = "",
    ) -> QueryResult:
        """Check one or more addresses.

        Args:
            ips: Address or addresses to check.
            options: Query options; defaults to ``config.options``.
            tag: Optional tag recorded by the service against the query.

        Returns:
            A :class:`~proxycheck.models.QueryResult` with one entry per
            distinct address.

        Raises:
            InvalidUsageError: For an empty batch or a malformed address.
            LookupFailedError: If the remote lookup fails.
        """
        addresses = parse_addresses(ips)
        if options is None:
            options = self._config.options
        return self._orchestrator.query(addresses, options, tag)

    def query_one(
        self,
        ip: AddressInput,
        options: Optional[RequestOptions] = None,
        tag: str = "",
    ) -> IpResult:
        """Check a single address and return just its result."""
        address = parse_addresses(ip)[0]
        return _single(self.query(address, options, tag), address)

    def is_proxy(
        self,
        ip: AddressInput,
        options: Optional[RequestOptions] = None,
        tag: str = "",
    ) -> bool:
        """Return ``True`` if the service flags *ip* as a proxy (or VPN)."""
        return self.query_one(ip, options, tag).is_proxy


class AsyncProxyCheck:
    """Asynchronous proxy/VPN lookup client.

    Mirrors :class:`ProxyCheck`; must be used as an async context manager.
    Several tasks may query through one instance concurrently and share its
    cache.
    """

    def __init__(
        self,
        config: Optional[ClientConfig] = None,
        api_key: Optional[str] = None,
        cache: Optional[CacheProvider] = None,
        decoder: Decoder = decode_response,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config or ClientConfig()
        self._lookup = AsyncHttpLookup(self._config, api_key=api_key, transport=transport)
        self._cache = cache if cache is not None else _default_cache(self._config)
        self._orchestrator = AsyncQueryOrchestrator(
            self._lookup,
            decoder=decoder,
            cache=self._cache,
            include_node=self._config.include_node,
        )

    @property
    def config(self) -> ClientConfig:
        return self._config

    @property
    def cache(self) -> Optional[CacheProvider]:
        return self._cache

    async def __aenter__(self) -> AsyncProxyCheck:
        await self._lookup.__aenter__()
        return self

    async def __aexit__(self, *args: object) -> None:
        await self._lookup.__aexit__(*args)

    async def query(
        self,
        ips: Union[AddressInput, Iterable[AddressInput]],
        options: Optional[RequestOptions] = None,
        tag: str = "",
    ) -> QueryResult:
        """Check one or more addresses; see :meth:`ProxyCheck.query`."""
        addresses = parse_addresses(ips)
        if options is None:
            options = self._config.options
        return await self._orchestrator.query(addresses, options, tag)

    async def query_one(
        self,
        ip: AddressInput,
        options: Optional[RequestOptions] = None,
        tag: str = "",
    ) -> IpResult:
        address = parse_addresses(ip)[0]
        return _single(await self.query(address, options, tag), address)

    async def is_proxy(
        self,
        ip: AddressInput,
        options: Optional[RequestOptions] = None,
        tag: str = "",
    ) -> bool:
        return (await self.query_one(ip, options, tag)).is_proxy
