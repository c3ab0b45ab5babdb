"""Shared test fixtures for proxycheck.

Provides a controllable clock for cache expiry tests, fake remote lookups
that record every call, canned service responses, config isolation, and
output reset. These fixtures are automatically discovered by pytest.
"""

from __future__ import annotations

from ipaddress import ip_address
from pathlib import Path
from typing import Any, Callable, Optional, Sequence

import pytest

from proxycheck.models import IPAddress, RequestOptions
from proxycheck.output import OutputManager, reset_output, set_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Install a quiet, colourless OutputManager and reset it afterwards.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time; CliRunner swaps those streams, so a fresh manager is
    needed for every test.
    """
    set_output(OutputManager(no_color=True, quiet=True))
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeClock:
    """A monotonic clock that only moves when told to."""

    def __init__(self, start: float = 1_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


# ---------------------------------------------------------------------------
# Canned responses and fake lookups
# ---------------------------------------------------------------------------


def ip_entry(proxy: bool = False, **extra: Any) -> dict[str, Any]:
    """Build one per-address object as the service would return it."""
    entry: dict[str, Any] = {"proxy": "yes" if proxy else "no"}
    entry.update(extra)
    return entry


def service_body(
    ips: Sequence[Any],
    status: str = "ok",
    proxies: Sequence[Any] = (),
    **extra_top: Any,
) -> dict[str, Any]:
    """Build a full response body covering *ips*; those in *proxies* are proxies."""
    proxy_set = {str(p) for p in proxies}
    body: dict[str, Any] = {"status": status}
    body.update(extra_top)
    for ip in ips:
        body[str(ip)] = ip_entry(
            proxy=str(ip) in proxy_set,
            asn="AS44050",
            provider="Petersburg Internet Network ltd.",
            isocode="RU",
        )
    return body


class FakeLookup:
    """Remote lookup double that records calls and answers via *responder*."""

    def __init__(self, responder: Optional[Callable[[Sequence[IPAddress]], Any]] = None) -> None:
        self.calls: list[tuple[list[IPAddress], RequestOptions, str]] = []
        self._responder = responder or (lambda ips: service_body(ips))

    def fetch(self, ips: Sequence[IPAddress], options: RequestOptions, tag: str = "") -> Any:
        self.calls.append((list(ips), options, tag))
        return self._responder(ips)


class FakeAsyncLookup(FakeLookup):
    """Awaitable variant of :class:`FakeLookup`."""

    async def fetch(self, ips: Sequence[IPAddress], options: RequestOptions, tag: str = "") -> Any:  # type: ignore[override]
        return FakeLookup.fetch(self, ips, options, tag)


@pytest.fixture
def lookup() -> FakeLookup:
    return FakeLookup()


@pytest.fixture
def ips() -> list[IPAddress]:
    return [ip_address("37.60.48.2"), ip_address("8.8.8.8"), ip_address("2001:db8::1")]


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point the config directory at tmp_path and clear PROXYCHECK_* variables.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setattr("proxycheck.config._is_xdg_platform", lambda: True)
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    for var in ["PROXYCHECK_API_KEY", "PROXYCHECK_CONFIG"]:
        monkeypatch.delenv(var, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Factory fixtures (so test modules need not import from conftest)
# ---------------------------------------------------------------------------


@pytest.fixture
def make_lookup() -> type[FakeLookup]:
    return FakeLookup


@pytest.fixture
def make_async_lookup() -> type[FakeAsyncLookup]:
    return FakeAsyncLookup


@pytest.fixture
def make_body() -> Callable[..., dict[str, Any]]:
    return service_body
