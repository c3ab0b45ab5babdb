"""Decode a proxycheck.io v2 response body into a :class:`~proxycheck.models.QueryResult`.

The service answers with one flat JSON object. A handful of top-level keys
describe the query (``status``, ``node``, ``query time``, ``message``); every
key that parses as an IP address holds the data for that address::

    {
        "status": "ok",
        "node": "ANNUS",
        "query time": "0.002s",
        "37.60.48.2": {
            "asn": "AS44050",
            "provider": "Petersburg Internet Network ltd.",
            "country": "Russia",
            "isocode": "RU",
            "latitude": 55.7386,
            "longitude": 37.6068,
            "proxy": "yes",
            "type": "SOCKS",
            "port": "1080",
            "last seen human": "2 hours, 17 minutes ago",
            "last seen unix": "1528475234",
            "risk": 66
        }
    }

Numbers may arrive as JSON numbers or as strings. An address the service
could not answer for carries an ``error`` string; it is decoded into an
:class:`~proxycheck.models.IpResult` with ``error_message`` set rather than
failing the whole batch. Unknown keys are logged at debug level and skipped.
"""

from __future__ import annotations

import json
import logging
from datetime import timedelta
from ipaddress import ip_address
from typing import Any, Callable, Optional

from proxycheck.exceptions import ResponseFormatError
from proxycheck.models import IPAddress, IpResult, QueryResult, StatusResult

logger = logging.getLogger(__name__)

Decoder = Callable[[Any], QueryResult]


def _as_str(value: Any) -> Optional[str]:
    if value is None:
        return None
    return str(value)


def _as_float(value: Any) -> Optional[float]:
    if value is None or value == "":
        return None
    return float(value)


def _as_int(value: Any) -> Optional[int]:
    if value is None or value == "":
        return None
    return int(float(value))


def _as_yes_no(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() == "yes"


def _as_history(value: Any) -> Optional[dict[str, int]]:
    if value is None:
        return None
    if not isinstance(value, dict):
        raise ValueError(f"expected an object, got {type(value).__name__}")
    return {str(k): int(v) for k, v in value.items()}


# Service key -> IpResult field name and converter.
_IP_FIELDS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "asn": ("asn", _as_str),
    "provider": ("provider", _as_str),
    "country": ("country", _as_str),
    "latitude": ("latitude", _as_float),
    "longitude": ("longitude", _as_float),
    "city": ("city", _as_str),
    "isocode": ("iso_code", _as_str),
    "proxy": ("is_proxy", _as_yes_no),
    "type": ("proxy_type", _as_str),
    "port": ("port", _as_int),
    "last seen human": ("last_seen_human", _as_str),
    "last seen unix": ("last_seen_unix", _as_int),
    "risk": ("risk", _as_int),
    "attack history": ("attack_history", _as_history),
    "error": ("error_message", _as_str),
}


def decode_response(raw: Any) -> QueryResult:
    """Decode a raw response body.

    Args:
        raw: The parsed JSON object, or the body as ``str``/``bytes``.

    Returns:
        A fresh :class:`~proxycheck.models.QueryResult`. None of its results
        are flagged as cache hits.

    Raises:
        ResponseFormatError: If the body is not a JSON object, the status is
            missing or unknown, or a field cannot be converted.
    """
    if isinstance(raw, (str, bytes)):
        try:
            raw = json.loads(raw)
        except ValueError as exc:
            raise ResponseFormatError(f"Response is not valid JSON: {exc}") from exc

    if not isinstance(raw, dict):
        raise ResponseFormatError(
            f"Expected a JSON object, got {type(raw).__name__}"
        )

    result = QueryResult(status=_parse_status(raw.get("status")))

    for key, value in raw.items():
        if key == "status":
            continue
        if key == "node":
            result.node = _as_str(value)
        elif key == "query time":
            result.query_time = _parse_query_time(value)
        elif key == "message":
            result.message = _as_str(value)
        else:
            ip = _parse_ip_key(key)
            if ip is None:
                logger.debug("Skipping unknown response key %r", key)
                continue
            result.results[ip] = _decode_ip_result(ip, value)

    return result


def _parse_status(value: Any) -> StatusResult:
    """Map the service's status string onto :class:`StatusResult`, case-insensitively."""
    if value is None:
        raise ResponseFormatError("Response has no 'status' field")
    try:
        return StatusResult(str(value).strip().lower())
    except ValueError:
        raise ResponseFormatError(f"Unknown response status: {value!r}") from None


def _parse_query_time(value: Any) -> timedelta:
    """Parse ``"0.002s"`` (or a bare number of seconds) into a timedelta."""
    text = str(value).strip()
    if text.endswith("s"):
        text = text[:-1]
    try:
        return timedelta(seconds=float(text))
    except ValueError:
        raise ResponseFormatError(f"Invalid query time: {value!r}") from None


def _parse_ip_key(key: str) -> Optional[IPAddress]:
    try:
        return ip_address(key)
    except ValueError:
        return None


def _decode_ip_result(ip: IPAddress, data: Any) -> IpResult:
    """Decode the object stored under one address key."""
    if not isinstance(data, dict):
        raise ResponseFormatError(
            f"Expected an object for {ip}, got {type(data).__name__}"
        )

    fields: dict[str, Any] = {}
    for key, value in data.items():
        spec = _IP_FIELDS.get(key)
        if spec is None:
            logger.debug("Unknown item for %s: %r=%r", ip, key, value)
            continue
        name, convert = spec
        try:
            fields[name] = convert(value)
        except (TypeError, ValueError) as exc:
            raise ResponseFormatError(
                f"Invalid value for '{key}' of {ip}: {value!r}"
            ) from exc

    return IpResult(**fields)
