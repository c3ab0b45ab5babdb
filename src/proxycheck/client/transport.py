"""HTTP transport for the proxycheck.io v2 API.

:class:`HttpLookup` and :class:`AsyncHttpLookup` implement the remote lookup
collaborator consumed by the query orchestrator: one ``fetch`` call sends a
whole batch of addresses and returns the parsed JSON body. They wrap
:class:`httpx.Client` / :class:`httpx.AsyncClient` and layer on:

- **Query construction** -- option flags become ``0``/``1`` query
  parameters; the addresses and the optional tag travel in a form-encoded
  POST body.
- **Scheme selection** -- ``https`` when
  :attr:`~proxycheck.models.RequestOptions.use_tls` is set, ``http``
  otherwise.
- **Retry with backoff** -- retries on 5xx and network errors with
  exponential delay (1 s, 2 s, 4 s, ...).
- **Error mapping** -- network failures become
  :class:`~proxycheck.exceptions.ConnectionError_`, HTTP errors become
  :class:`~proxycheck.exceptions.ServerError`, and a body that is not JSON
  becomes :class:`~proxycheck.exceptions.ResponseFormatError`.
"""

from __future__ import annotations

import asyncio
import time
from typing import Any, Optional, Protocol, Sequence

import httpx

from proxycheck.exceptions import ConnectionError_, ResponseFormatError, ServerError
from proxycheck.models import ClientConfig, IPAddress, RequestOptions
from proxycheck.output import get_output

API_HOST = "proxycheck.io/v2"


class RemoteLookup(Protocol):
    """A collaborator that fetches one batch of addresses from the service."""

    def fetch(self, ips: Sequence[IPAddress], options: RequestOptions, tag: str = "") -> Any:
        ...


class AsyncRemoteLookup(Protocol):
    """Awaitable counterpart of :class:`RemoteLookup`."""

    async def fetch(self, ips: Sequence[IPAddress], options: RequestOptions, tag: str = "") -> Any:
        ...


def build_url(options: RequestOptions) -> str:
    """Return the endpoint URL for *options* (scheme follows ``use_tls``)."""
    scheme = "https" if options.use_tls else "http"
    return f"{scheme}://{API_HOST}/"


def build_params(
    options: RequestOptions,
    config: ClientConfig,
    api_key: Optional[str] = None,
) -> dict[str, Any]:
    """Build the query-string parameters for a lookup.

    Args:
        options: Per-query option flags.
        config: Client settings supplying ``node``, ``time`` and ``days``.
        api_key: Service API key; omitted from the query when blank.

    Returns:
        A ``dict`` ready to pass as ``params`` to httpx.
    """
    params: dict[str, Any] = {}
    if api_key and api_key.strip():
        params["key"] = api_key
    params.update({
        "vpn": int(options.include_vpn),
        "asn": int(options.include_asn),
        "node": int(config.include_node),
        "time": int(config.include_time),
        "inf": int(options.use_inference),
        "port": int(options.include_port),
        "seen": int(options.include_last_seen),
        "days": config.day_limit,
    })
    if options.risk_level is not None:
        params["risk"] = int(options.risk_level)
    return params


def build_form(ips: Sequence[IPAddress], tag: str = "") -> dict[str, str]:
    """Build the form-encoded POST body carrying the addresses and tag."""
    data = {"ips": ",".join(str(ip) for ip in ips)}
    if tag and tag.strip():
        data["tag"] = tag
    return data


def _parse_body(response: httpx.Response) -> Any:
    """Raise on HTTP errors, then return the JSON body."""
    status = response.status_code
    if status >= 400:
        raise ServerError(f"Lookup service returned HTTP {status}: {response.text[:200]}")
    try:
        return response.json()
    except ValueError as exc:
        raise ResponseFormatError(f"Lookup service returned a non-JSON body: {exc}") from exc


class HttpLookup:
    """Synchronous lookup over :class:`httpx.Client`.

    Must be used as a context manager so that the underlying connection pool
    is opened and closed.

    Args:
        config: Client settings (timeouts, retries, node/time/days flags).
        api_key: Optional service API key.
        transport: Optional custom httpx transport, e.g.
            :class:`httpx.MockTransport` in tests.

    Example::

        with HttpLookup(config, api_key="...") as lookup:
            body = lookup.fetch([ip_address("37.60.48.2")], RequestOptions())
    """

    def __init__(
        self,
        config: ClientConfig,
        api_key: Optional[str] = None,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self._config = config
        self._api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    def __enter__(self) -> HttpLookup:
        self._client = httpx.Client(
            timeout=self._config.request.timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    def __exit__(self, *args: object) -> None:
        if self._client:
            self._client.close()
            self._client = None

    def fetch(self, ips: Sequence[IPAddress], options: RequestOptions, tag: str = "") -> Any:
        """Look up *ips* in one POST and return the parsed JSON body.

        Raises:
            ServerError: On an HTTP error status after all retries.
            ConnectionError_: On network / timeout errors after all retries.
            ResponseFormatError: If the body is not JSON.
        """
        assert self._client is not None, "Lookup not initialised -- use as context manager"

        url = build_url(options)
        params = build_params(options, self._config, self._api_key)
        data = build_form(ips, tag)
        max_retries = self._config.request.max_retries
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                response = self._client.post(
                    url, params=params, data=data, headers={"Accept": "application/json"},
                )
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    time.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt  # 1, 2, 4, ...
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                time.sleep(delay)
                continue

            return _parse_body(response)

        raise ServerError("Request failed after all retries")  # pragma: no cover


class AsyncHttpLookup:
    """Asynchronous lookup over :class:`httpx.AsyncClient`.

    Mirrors :class:`HttpLookup` but uses ``await`` and :func:`asyncio.sleep`
    so it can run inside an event loop. Must be used as an async context
    manager.
    """

    def __init__(
        self,
        config: ClientConfig,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._config = config
        self._api_key = api_key
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> AsyncHttpLookup:
        self._client = httpx.AsyncClient(
            timeout=self._config.request.timeout,
            follow_redirects=True,
            transport=self._transport,
        )
        return self

    async def __aexit__(self, *args: object) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    async def fetch(self, ips: Sequence[IPAddress], options: RequestOptions, tag: str = "") -> Any:
        """Look up *ips* in one POST and return the parsed JSON body.

        Behaves identically to :meth:`HttpLookup.fetch` but is non-blocking.
        """
        assert self._client is not None, "Lookup not initialised -- use as async context manager"

        url = build_url(options)
        params = build_params(options, self._config, self._api_key)
        data = build_form(ips, tag)
        max_retries = self._config.request.max_retries
        output = get_output()

        for attempt in range(max_retries + 1):
            try:
                response = await self._client.post(
                    url, params=params, data=data, headers={"Accept": "application/json"},
                )
            except (httpx.ConnectError, httpx.TimeoutException, httpx.NetworkError) as exc:
                if attempt < max_retries:
                    delay = 2 ** attempt
                    output.debug(
                        f"Connection error: {exc}, retrying in {delay}s "
                        f"(attempt {attempt + 1}/{max_retries})"
                    )
                    await asyncio.sleep(delay)
                    continue
                raise ConnectionError_(
                    f"Connection failed after {max_retries + 1} attempts: {exc}"
                ) from exc

            if response.status_code >= 500 and attempt < max_retries:
                delay = 2 ** attempt
                output.debug(
                    f"Server error {response.status_code}, retrying in {delay}s "
                    f"(attempt {attempt + 1}/{max_retries})"
                )
                await asyncio.sleep(delay)
                continue

            return _parse_body(response)

        raise ServerError("Request failed after all retries")  # pragma: no cover
