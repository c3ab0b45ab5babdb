"""Typer application and CLI entry point for proxycheck.

This module wires together the top-level Typer application and registers the
built-in sub-commands (``query``, ``check``, ``config``).

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs a SIGINT handler, registers commands, and
invokes the Typer app. A :class:`~proxycheck.exceptions.ProxyCheckError`
that escapes a command is printed and turned into its exit code.

See Also:
    :mod:`proxycheck.config`: Configuration and API key resolution.
    :mod:`proxycheck.output`: Output formatting initialised in :func:`main_callback`.
"""

from __future__ import annotations

import logging
import signal
import sys
from typing import Any, Optional

import typer

from proxycheck import __version__
from proxycheck.exit_codes import EXIT_GENERIC_FAILURE


app = typer.Typer(
    name="proxycheck",
    help="Check whether IP addresses are proxies or VPNs via proxycheck.io.",
    no_args_is_help=True,
    add_completion=False,
    rich_markup_mode="rich",
)


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"proxycheck {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
    api_key: Optional[str] = typer.Option(
        None, "--api-key", "-k", help="API key (overrides PROXYCHECK_API_KEY and config)."
    ),
    json_output: bool = typer.Option(
        False, "--json", help="JSON output format."
    ),
    plain_output: bool = typer.Option(
        False, "--plain", help="Plain text output."
    ),
    no_color: bool = typer.Option(
        False, "--no-color", help="Disable color output."
    ),
    quiet: bool = typer.Option(
        False, "--quiet", "-q", help="Suppress non-essential output."
    ),
    verbose: bool = typer.Option(
        False, "--verbose", "-v", help="Enable debug output."
    ),
) -> None:
    """Root callback executed before every sub-command.

    Initialises the global :class:`~proxycheck.output.OutputManager` from
    CLI flags and stores the ``--api-key`` value in ``ctx.obj``. With
    ``--verbose`` the library's ``logging`` records (cache hits, skipped
    response keys) are shown on stderr as well.
    """
    from proxycheck.output import OutputFormat, OutputManager, set_output

    fmt = OutputFormat.AUTO
    if json_output:
        fmt = OutputFormat.JSON
    elif plain_output:
        fmt = OutputFormat.PLAIN

    set_output(OutputManager(format=fmt, no_color=no_color, quiet=quiet, verbose=verbose))

    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="[debug] %(name)s: %(message)s",
        )

    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)

    signal.signal(signal.SIGINT, _handler)


def _register_commands() -> None:
    from proxycheck.commands.config import config_app
    from proxycheck.commands.query import check_command, query_command

    app.command("query")(query_command)
    app.command("check")(check_command)
    app.add_typer(config_app, name="config", help="Configuration management.")


_register_commands()


def main() -> None:
    """CLI entry point invoked by the ``proxycheck`` console script.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(130)
    except Exception as exc:
        from proxycheck.exceptions import ProxyCheckError
        from proxycheck.output import error

        if isinstance(exc, ProxyCheckError):
            error(str(exc))
            sys.exit(exc.exit_code)
        error(f"Unexpected error: {exc}")
        sys.exit(EXIT_GENERIC_FAILURE)
