"""Canonical Pydantic models shared across all proxycheck modules.

This is the single source of truth for data shapes in the project. The models
fall into two groups:

**Query models** -- describe a lookup and its outcome:
    :class:`RiskLevel`, :class:`StatusResult`, :class:`RequestOptions`,
    :class:`IpResult`, and :class:`QueryResult`.

**Configuration models** -- serialised as JSON in the user's config directory:
    :class:`RequestConfig`, :class:`CacheConfig`, and :class:`ClientConfig`.

:class:`RequestOptions` and :class:`IpResult` are frozen. Options are used as
part of the cache key, and a result placed in the cache or in a response is
never mutated afterwards; flagging a result as a cache hit produces a copy.
"""

from __future__ import annotations

import enum
from datetime import datetime, timedelta, timezone
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, computed_field

IPAddress = Union[IPv4Address, IPv6Address]


# --- Query models ---


class RiskLevel(int, enum.Enum):
    """Values of the service's ``risk`` parameter.

    ``DISABLED`` is an explicit request for no risk score and is not the same
    as leaving :attr:`RequestOptions.risk_level` unset.
    """

    DISABLED = 0
    BASIC = 1
    EXTENDED = 2


class StatusResult(str, enum.Enum):
    """Top-level status reported by the lookup service."""

    OK = "ok"
    WARNING = "warning"
    DENIED = "denied"
    ERROR = "error"


class RequestOptions(BaseModel):
    """How a query is performed.

    Two options values are equivalent when every flag matches field by field.
    A cached result is only reused for a query whose options are equivalent
    to the ones it was stored under: a record fetched without ASN data cannot
    answer a query that asks for it.

    Example::

        RequestOptions(include_vpn=True, include_asn=True)
    """

    model_config = ConfigDict(frozen=True)

    include_vpn: bool = Field(default=False, description="Check for VPN as well as proxies")
    use_tls: bool = Field(default=False, description="Query the service over HTTPS")
    include_asn: bool = Field(default=False, description="Include ASN and provider data")
    use_inference: bool = Field(default=True, description="Use the real-time inference engine")
    include_port: bool = Field(default=False, description="Include the last seen proxy port")
    include_last_seen: bool = Field(default=False, description="Include when the IP was last seen as a proxy")
    risk_level: Optional[RiskLevel] = Field(default=None, description="Risk score level, unset when not requested")

    def cache_key(self) -> tuple[Any, ...]:
        """Return the flag tuple that defines this value's equivalence class."""
        return (
            self.include_vpn,
            self.use_tls,
            self.include_asn,
            self.use_inference,
            self.include_port,
            self.include_last_seen,
            self.risk_level,
        )

    def equivalent(self, other: object) -> bool:
        """Return ``True`` if *other* describes the same query shape."""
        if not isinstance(other, RequestOptions):
            return False
        return self.cache_key() == other.cache_key()

    def __eq__(self, other: object) -> bool:
        return self.equivalent(other)

    def __hash__(self) -> int:
        return hash(self.cache_key())


class IpResult(BaseModel):
    """Proxy detection data for a single address.

    ``error_message`` is set when the service could not answer for this one
    address; the rest of the batch is unaffected. ``is_cache_hit`` tells
    whether the value was served from the local cache instead of fetched.
    """

    model_config = ConfigDict(frozen=True)

    asn: Optional[str] = None
    provider: Optional[str] = None
    country: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None
    city: Optional[str] = None
    iso_code: Optional[str] = None
    is_proxy: bool = False
    proxy_type: Optional[str] = None
    port: Optional[int] = None
    last_seen_human: Optional[str] = None
    last_seen_unix: Optional[int] = None
    risk: Optional[int] = None
    attack_history: Optional[dict[str, int]] = None
    error_message: Optional[str] = None
    is_cache_hit: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def last_seen(self) -> Optional[datetime]:
        """When the address was last seen acting as a proxy (UTC)."""
        if self.last_seen_unix is None:
            return None
        return datetime.fromtimestamp(self.last_seen_unix, tz=timezone.utc)

    def as_cache_hit(self) -> IpResult:
        """Return a copy flagged as served from cache."""
        return self.model_copy(update={"is_cache_hit": True})


class QueryResult(BaseModel):
    """Aggregate answer for one query.

    ``results`` holds exactly one entry per requested address. When
    ``served_from_cache`` is ``True`` no remote call was made: ``node`` is the
    ``"CACHE"`` sentinel (if node reporting is enabled) and ``query_time`` is
    the local cache lookup latency rather than a server round trip.
    """

    status: StatusResult = StatusResult.OK
    node: Optional[str] = None
    query_time: Optional[timedelta] = None
    message: Optional[str] = None
    served_from_cache: bool = False
    results: dict[IPAddress, IpResult] = Field(default_factory=dict)


# --- Configuration models ---


class RequestConfig(BaseModel):
    """HTTP settings applied to every call to the lookup service."""

    timeout: int = Field(default=30, description="Request timeout in seconds")
    max_retries: int = Field(default=3, description="Max retry attempts")


class CacheConfig(BaseModel):
    """In-memory result cache settings."""

    enabled: bool = Field(default=True, description="Enable result caching")
    max_age_seconds: int = Field(default=3600, description="Maximum age of a cached result in seconds")


class ClientConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/proxycheck/config.json``.

    Loaded and saved by :func:`~proxycheck.config.load_config` and
    :func:`~proxycheck.config.save_config`. See
    :func:`~proxycheck.config.resolve_config` for how environment variables
    and explicit arguments override the stored values.

    ``day_limit``, ``include_node`` and ``include_time`` shape the request but
    are deliberately not part of :class:`RequestOptions` equivalence.
    """

    api_key_source: Optional[str] = Field(
        default=None,
        description="API key source: env:VAR, file:/path, or the key itself",
    )
    include_node: bool = Field(default=False, description="Report the answering node")
    include_time: bool = Field(default=False, description="Report the query time")
    day_limit: int = Field(default=7, description="Restrict proxy results to the last N days")
    request: RequestConfig = Field(default_factory=RequestConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    options: RequestOptions = Field(default_factory=RequestOptions)
