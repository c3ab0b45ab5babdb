"""Lookup commands -- ``proxycheck query`` and ``proxycheck check``.

Both commands resolve the configuration and API key via
:func:`~proxycheck.config.resolve_config`, start from the configured default
:class:`~proxycheck.models.RequestOptions`, apply any flags given on the
command line, and run the lookup through :class:`~proxycheck.client.ProxyCheck`.
Errors are printed to stderr and mapped to the exit code of the
corresponding :class:`~proxycheck.exceptions.ProxyCheckError`.
"""

from __future__ import annotations

from typing import Any, Optional

import typer

from proxycheck.output import error, get_output


def _build_options(config: Any, overrides: dict[str, Any]):  # noqa: ANN202
    """Apply the non-``None`` CLI flags on top of the configured default options."""
    from proxycheck.exceptions import InvalidUsageError
    from proxycheck.models import RiskLevel

    update = {k: v for k, v in overrides.items() if v is not None}
    if "risk_level" in update:
        try:
            update["risk_level"] = RiskLevel(update["risk_level"])
        except ValueError:
            raise InvalidUsageError(
                f"Risk level must be 0, 1 or 2, got {update['risk_level']}"
            ) from None
    return config.options.model_copy(update=update)


def _run(ctx: typer.Context, ips: list[str], overrides: dict[str, Any], tag: str):  # noqa: ANN202
    """Resolve config, run the query and return the :class:`QueryResult`."""
    from proxycheck.client import ProxyCheck
    from proxycheck.config import resolve_config

    api_key = ctx.obj.get("api_key") if ctx.obj else None
    config, resolved_key = resolve_config(api_key=api_key)
    options = _build_options(config, overrides)
    with ProxyCheck(config, api_key=resolved_key) as checker:
        return checker.query(ips, options, tag)


def query_command(
    ctx: typer.Context,
    ips: list[str] = typer.Argument(help="One or more IPv4/IPv6 addresses."),
    vpn: Optional[bool] = typer.Option(None, "--vpn/--no-vpn", help="Also detect VPNs."),
    asn: Optional[bool] = typer.Option(None, "--asn/--no-asn", help="Include ASN and provider."),
    inference: Optional[bool] = typer.Option(
        None, "--inference/--no-inference", help="Use the real-time inference engine."
    ),
    port: Optional[bool] = typer.Option(None, "--port/--no-port", help="Include the proxy port."),
    seen: Optional[bool] = typer.Option(None, "--seen/--no-seen", help="Include when last seen."),
    tls: Optional[bool] = typer.Option(None, "--tls/--no-tls", help="Query over HTTPS."),
    risk: Optional[int] = typer.Option(None, "--risk", help="Risk score level: 0, 1 or 2."),
    tag: str = typer.Option("", "--tag", "-t", help="Tag recorded with the query."),
) -> None:
    """Check one or more IP addresses.

    Prints one row per address (table, TSV with ``--plain``) or the full
    result with ``--json``. The status, node and query time go to stderr.

    Example::

        proxycheck query 37.60.48.2 8.8.8.8 --vpn --asn
        proxycheck --json query 37.60.48.2 --risk 2
    """
    from proxycheck.exceptions import ProxyCheckError

    overrides = {
        "include_vpn": vpn,
        "include_asn": asn,
        "use_inference": inference,
        "include_port": port,
        "include_last_seen": seen,
        "use_tls": tls,
        "risk_level": risk,
    }
    try:
        result = _run(ctx, ips, overrides, tag)
    except ProxyCheckError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    get_output().print_query_result(result)


def check_command(
    ctx: typer.Context,
    ip: str = typer.Argument(help="The IPv4/IPv6 address to check."),
    vpn: Optional[bool] = typer.Option(None, "--vpn/--no-vpn", help="Also detect VPNs."),
    tag: str = typer.Option("", "--tag", "-t", help="Tag recorded with the query."),
) -> None:
    """Print ``yes`` if the address is a proxy, ``no`` otherwise.

    Example::

        proxycheck check 37.60.48.2 --vpn
    """
    from proxycheck.exceptions import LookupFailedError, ProxyCheckError

    try:
        result = _run(ctx, [ip], {"include_vpn": vpn}, tag)
        if not result.results:
            raise LookupFailedError(
                f"No result for {ip} (status: {result.status.value})"
            )
    except ProxyCheckError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None

    address, data = next(iter(result.results.items()))
    get_output().print_verdict(address, data)
