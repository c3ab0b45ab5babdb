"""Tests for decode_response -- raw service body to QueryResult."""

from __future__ import annotations

import json
from datetime import timedelta
from ipaddress import ip_address

import pytest

from proxycheck.client.decoder import decode_response
from proxycheck.exceptions import ResponseFormatError
from proxycheck.models import StatusResult

FULL_BODY = {
    "status": "ok",
    "node": "ANNUS",
    "37.60.48.2": {
        "asn": "AS44050",
        "provider": "Petersburg Internet Network ltd.",
        "country": "Russia",
        "city": "Saint Petersburg",
        "isocode": "RU",
        "latitude": "55.7386",
        "longitude": 37.6068,
        "proxy": "yes",
        "type": "SOCKS",
        "port": "1080",
        "last seen human": "2 hours, 17 minutes ago",
        "last seen unix": "1528475234",
        "risk": 66,
        "attack history": {"Total": "4", "Login Attempt": 4},
    },
    "query time": "0.002s",
}


class TestTopLevel:
    def test_status_node_and_time(self) -> None:
        result = decode_response(FULL_BODY)
        assert result.status == StatusResult.OK
        assert result.node == "ANNUS"
        assert result.query_time == timedelta(seconds=0.002)

    @pytest.mark.parametrize("raw, expected", [
        ("OK", StatusResult.OK),
        ("warning", StatusResult.WARNING),
        ("Denied", StatusResult.DENIED),
        ("error", StatusResult.ERROR),
    ])
    def test_status_case_insensitive(self, raw: str, expected: StatusResult) -> None:
        assert decode_response({"status": raw}).status == expected

    def test_denied_carries_message(self) -> None:
        result = decode_response({"status": "denied", "message": "Query limit reached."})
        assert result.status == StatusResult.DENIED
        assert result.message == "Query limit reached."
        assert result.results == {}

    def test_accepts_json_text(self) -> None:
        result = decode_response(json.dumps(FULL_BODY))
        assert ip_address("37.60.48.2") in result.results

    def test_unknown_top_level_key_skipped(self) -> None:
        result = decode_response({"status": "ok", "something new": 1})
        assert result.results == {}


class TestIpEntries:
    def test_all_fields_decoded(self) -> None:
        data = decode_response(FULL_BODY).results[ip_address("37.60.48.2")]
        assert data.asn == "AS44050"
        assert data.provider == "Petersburg Internet Network ltd."
        assert data.country == "Russia"
        assert data.city == "Saint Petersburg"
        assert data.iso_code == "RU"
        assert data.latitude == pytest.approx(55.7386)
        assert data.longitude == pytest.approx(37.6068)
        assert data.is_proxy is True
        assert data.proxy_type == "SOCKS"
        assert data.port == 1080
        assert data.last_seen_human == "2 hours, 17 minutes ago"
        assert data.last_seen_unix == 1528475234
        assert data.risk == 66
        assert data.attack_history == {"Total": 4, "Login Attempt": 4}
        assert data.error_message is None
        assert data.is_cache_hit is False

    def test_proxy_no(self) -> None:
        result = decode_response({"status": "ok", "8.8.8.8": {"proxy": "no"}})
        assert result.results[ip_address("8.8.8.8")].is_proxy is False

    def test_ipv6_key(self) -> None:
        result = decode_response({"status": "ok", "2001:db8::1": {"proxy": "no"}})
        assert ip_address("2001:db8::1") in result.results

    def test_per_ip_error_is_data(self) -> None:
        body = {
            "status": "warning",
            "8.8.8.8": {"proxy": "no"},
            "10.0.0.1": {"error": "Private IP address"},
        }
        result = decode_response(body)
        assert result.status == StatusResult.WARNING
        assert result.results[ip_address("10.0.0.1")].error_message == "Private IP address"
        assert result.results[ip_address("8.8.8.8")].error_message is None

    def test_unknown_ip_field_skipped(self) -> None:
        result = decode_response({"status": "ok", "8.8.8.8": {"proxy": "no", "timezone": "UTC"}})
        assert result.results[ip_address("8.8.8.8")].is_proxy is False


class TestMalformed:
    @pytest.mark.parametrize("raw", [[], "not json", 42, None])
    def test_non_object_body(self, raw: object) -> None:
        with pytest.raises(ResponseFormatError):
            decode_response(raw)

    def test_missing_status(self) -> None:
        with pytest.raises(ResponseFormatError, match="status"):
            decode_response({"8.8.8.8": {"proxy": "no"}})

    def test_unknown_status(self) -> None:
        with pytest.raises(ResponseFormatError):
            decode_response({"status": "maybe"})

    def test_bad_query_time(self) -> None:
        with pytest.raises(ResponseFormatError):
            decode_response({"status": "ok", "query time": "fast"})

    def test_ip_entry_not_object(self) -> None:
        with pytest.raises(ResponseFormatError):
            decode_response({"status": "ok", "8.8.8.8": "yes"})

    def test_unconvertible_port(self) -> None:
        with pytest.raises(ResponseFormatError, match="port"):
            decode_response({"status": "ok", "8.8.8.8": {"port": "eighty"}})
