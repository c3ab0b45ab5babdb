"""proxycheck -- a caching client for the proxycheck.io proxy and VPN detection API.

Give it one address or a batch and it tells you which ones are proxies or
VPNs. Results are cached in memory per address and per set of query options,
so repeated lookups are answered locally and only the addresses the cache
cannot serve go over the network.

Typical use::

    from proxycheck import ProxyCheck, RequestOptions

    with ProxyCheck(api_key="...") as checker:
        checker.is_proxy("37.60.48.2")

The ``proxycheck`` console script wraps the same client for shell use.

Modules:
    models: Pydantic models for options, results and configuration.
    cache: The cache protocol and the in-memory reference implementation.
    client: Transport, decoder, orchestrator and client facades.
    config: XDG-aware configuration and API key resolution.
    exceptions: Exception hierarchy with exit-code mapping.
    app: Typer application and CLI entry point.
"""

__version__ = "0.1.0"

from proxycheck.cache import CacheProvider, InMemoryCache
from proxycheck.client import AsyncProxyCheck, ProxyCheck
from proxycheck.exceptions import (
    InvalidUsageError,
    LookupFailedError,
    ProxyCheckError,
    ResponseFormatError,
)
from proxycheck.models import (
    ClientConfig,
    IpResult,
    QueryResult,
    RequestOptions,
    RiskLevel,
    StatusResult,
)

__all__ = [
    "AsyncProxyCheck",
    "CacheProvider",
    "ClientConfig",
    "InMemoryCache",
    "InvalidUsageError",
    "IpResult",
    "LookupFailedError",
    "ProxyCheck",
    "ProxyCheckError",
    "QueryResult",
    "RequestOptions",
    "ResponseFormatError",
    "RiskLevel",
    "StatusResult",
    "__version__",
]
