"""Tests for the high-level ProxyCheck / AsyncProxyCheck clients."""

from __future__ import annotations

import asyncio
import json
from ipaddress import ip_address
from typing import Any
from urllib.parse import parse_qs

import httpx
import pytest

from proxycheck import AsyncProxyCheck, ProxyCheck
from proxycheck.cache import InMemoryCache
from proxycheck.client.checker import parse_addresses
from proxycheck.exceptions import InvalidUsageError, LookupFailedError, ResponseFormatError
from proxycheck.models import CacheConfig, ClientConfig, RequestConfig, RequestOptions


def _service(proxies: set[str] = frozenset(), status: str = "ok"):
    """Return a MockTransport handler that answers for every posted address."""
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        ips = parse_qs(request.content.decode())["ips"][0].split(",")
        body: dict[str, Any] = {"status": status, "node": "ANNUS"}
        for ip in ips:
            body[ip] = {"proxy": "yes" if ip in proxies else "no", "type": "VPN" if ip in proxies else None}
        return httpx.Response(200, json=body)

    return handler, requests


def _config(**kwargs: Any) -> ClientConfig:
    return ClientConfig(request=RequestConfig(max_retries=0), **kwargs)


class TestParseAddresses:
    def test_single_string(self) -> None:
        assert parse_addresses("8.8.8.8") == [ip_address("8.8.8.8")]

    def test_mixed_batch(self) -> None:
        parsed = parse_addresses([" 37.60.48.2 ", ip_address("2001:db8::1")])
        assert parsed == [ip_address("37.60.48.2"), ip_address("2001:db8::1")]

    def test_duplicates_kept(self) -> None:
        assert len(parse_addresses(["8.8.8.8", "8.8.8.8"])) == 2

    def test_empty(self) -> None:
        with pytest.raises(InvalidUsageError, match="at least 1"):
            parse_addresses([])

    @pytest.mark.parametrize("bad", ["", "999.1.1.1", "example.com", "1.2.3"])
    def test_malformed(self, bad: str) -> None:
        with pytest.raises(InvalidUsageError, match="not a valid IP"):
            parse_addresses(["8.8.8.8", bad])


class TestProxyCheck:
    def test_query_then_cached(self) -> None:
        handler, requests = _service(proxies={"37.60.48.2"})
        with ProxyCheck(_config(), transport=httpx.MockTransport(handler)) as checker:
            first = checker.query(["37.60.48.2", "8.8.8.8"])
            second = checker.query(["8.8.8.8", "37.60.48.2"])

        assert len(requests) == 1
        assert first.results[ip_address("37.60.48.2")].is_proxy is True
        assert first.results[ip_address("37.60.48.2")].proxy_type == "VPN"
        assert second.served_from_cache is True
        assert all(r.is_cache_hit for r in second.results.values())

    def test_cache_survives_context_blocks(self) -> None:
        handler, requests = _service()
        checker = ProxyCheck(_config(), transport=httpx.MockTransport(handler))
        with checker:
            checker.query("8.8.8.8")
        with checker:
            checker.query("8.8.8.8")
        assert len(requests) == 1

    def test_cache_disabled(self) -> None:
        handler, requests = _service()
        config = _config(cache=CacheConfig(enabled=False))
        with ProxyCheck(config, transport=httpx.MockTransport(handler)) as checker:
            assert checker.cache is None
            checker.query("8.8.8.8")
            checker.query("8.8.8.8")
        assert len(requests) == 2

    def test_configured_max_age(self) -> None:
        checker = ProxyCheck(_config(cache=CacheConfig(max_age_seconds=120)))
        assert checker.cache.stats()["max_age_seconds"] == 120.0

    def test_injected_cache_used(self) -> None:
        handler, _ = _service()
        cache = InMemoryCache()
        with ProxyCheck(_config(), cache=cache, transport=httpx.MockTransport(handler)) as checker:
            checker.query("8.8.8.8", RequestOptions(include_vpn=True))
        assert cache.get_one(ip_address("8.8.8.8"), RequestOptions(include_vpn=True)) is not None

    def test_default_options_from_config(self) -> None:
        handler, requests = _service()
        config = _config(options=RequestOptions(include_vpn=True, include_asn=True))
        with ProxyCheck(config, api_key="k1", transport=httpx.MockTransport(handler)) as checker:
            checker.query("8.8.8.8")
        params = requests[0].url.params
        assert params["vpn"] == "1"
        assert params["asn"] == "1"
        assert params["key"] == "k1"

    def test_is_proxy(self) -> None:
        handler, _ = _service(proxies={"37.60.48.2"})
        with ProxyCheck(_config(), transport=httpx.MockTransport(handler)) as checker:
            assert checker.is_proxy("37.60.48.2") is True
            assert checker.is_proxy("8.8.8.8") is False

    def test_query_one_without_result(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"status": "denied", "message": "Query limit reached."})

        with ProxyCheck(_config(), transport=httpx.MockTransport(handler)) as checker:
            with pytest.raises(LookupFailedError, match="Query limit reached"):
                checker.query_one("8.8.8.8")

    def test_invalid_address_makes_no_request(self) -> None:
        handler, requests = _service()
        with ProxyCheck(_config(), transport=httpx.MockTransport(handler)) as checker:
            with pytest.raises(InvalidUsageError):
                checker.query(["8.8.8.8", "nope"])
        assert requests == []

    def test_bad_body_surfaces_format_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=json.dumps(["not", "an", "object"]).encode())

        with ProxyCheck(_config(), transport=httpx.MockTransport(handler)) as checker:
            with pytest.raises(ResponseFormatError):
                checker.query("8.8.8.8")


class TestAsyncProxyCheck:
    def test_query_then_cached(self) -> None:
        sync_handler, requests = _service(proxies={"37.60.48.2"})

        async def handler(request: httpx.Request) -> httpx.Response:
            return sync_handler(request)

        async def run() -> Any:
            async with AsyncProxyCheck(_config(), transport=httpx.MockTransport(handler)) as checker:
                first = await checker.is_proxy("37.60.48.2")
                second = await checker.query_one("37.60.48.2")
                return first, second

        is_proxy, data = asyncio.run(run())
        assert is_proxy is True
        assert data.is_cache_hit is True
        assert len(requests) == 1
