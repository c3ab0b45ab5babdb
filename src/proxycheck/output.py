"""Terminal rendering for the proxycheck CLI.

Lookup results, verdicts and the stored config are data and go to stdout;
the query summary line, warnings, errors and retry diagnostics go to stderr,
so ``proxycheck --plain query ... | cut -f1,2`` only ever sees result rows.

Three renderings are supported:

* ``json`` -- :meth:`QueryResult.model_dump` / :meth:`ClientConfig.model_dump`
  as indented JSON, for scripts.
* ``plain`` -- tab-separated rows, one address per line, and dotted
  ``key<TAB>value`` lines for the config (the same dot paths
  ``proxycheck config set`` accepts).
* ``rich`` -- a styled table with proxies highlighted. Chosen automatically
  when stdout is a terminal and colour is allowed (``NO_COLOR``,
  ``TERM=dumb`` and ``--no-color`` all disable it).

The :class:`OutputManager` installed by :func:`~proxycheck.app.main_callback`
is reached through :func:`get_output`; the transport uses its :meth:`debug`
for retry messages.
"""

from __future__ import annotations

import json
import os
import sys
from enum import Enum
from ipaddress import IPv4Address, IPv6Address
from typing import Any, Iterator, Optional, Union

from rich.console import Console
from rich.syntax import Syntax
from rich.table import Table
from rich.text import Text

from proxycheck.models import ClientConfig, IpResult, QueryResult

RESULT_COLUMNS = ("IP", "Proxy", "Type", "Country", "ASN", "Provider", "Risk", "Cached", "Error")


class OutputFormat(str, Enum):
    """How data is written to stdout. ``AUTO`` picks ``RICH`` or ``PLAIN``."""

    AUTO = "auto"
    JSON = "json"
    PLAIN = "plain"
    RICH = "rich"


def summarize(result: QueryResult) -> str:
    """One-line description of where a result came from and how long it took."""
    parts = [f"Status: {result.status.value}"]
    if result.node:
        parts.append(f"Node: {result.node}")
    if result.query_time is not None:
        parts.append(f"Time: {result.query_time.total_seconds():.3f}s")
    if result.served_from_cache:
        parts.append("(served from cache)")
    return "  ".join(parts)


def result_row(ip: Union[IPv4Address, IPv6Address], data: IpResult) -> list[str]:
    """Cells of one result row, in :data:`RESULT_COLUMNS` order."""
    return [
        str(ip),
        "yes" if data.is_proxy else "no",
        _cell(data.proxy_type),
        _cell(data.country),
        _cell(data.asn),
        _cell(data.provider),
        _cell(data.risk),
        "yes" if data.is_cache_hit else "no",
        _cell(data.error_message),
    ]


def _cell(value: Any) -> str:
    return "" if value is None else str(value)


def _config_lines(data: dict[str, Any], prefix: str = "") -> Iterator[tuple[str, str]]:
    """Flatten a dumped config into ``(dot.path, value)`` pairs."""
    for key, value in data.items():
        if isinstance(value, dict):
            yield from _config_lines(value, f"{prefix}{key}.")
        elif value is None:
            yield f"{prefix}{key}", "none"
        elif isinstance(value, bool):
            yield f"{prefix}{key}", "true" if value else "false"
        else:
            yield f"{prefix}{key}", str(value)


class OutputManager:
    """Writes query results, verdicts, config and diagnostics for the CLI.

    Args:
        format: Rendering for stdout; ``AUTO`` resolves from TTY detection.
        no_color: Disable colour and Rich styling.
        quiet: Hide the summary line and success messages.
        verbose: Show debug messages.
    """

    def __init__(
        self,
        format: OutputFormat = OutputFormat.AUTO,
        no_color: bool = False,
        quiet: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _color_disabled_by_env()
        self._quiet = quiet
        self._verbose = verbose
        if format == OutputFormat.AUTO:
            format = OutputFormat.RICH if _is_tty() and not self._no_color else OutputFormat.PLAIN
        self._format = format
        self._console = Console(
            file=sys.stdout,
            no_color=self._no_color,
            force_terminal=format == OutputFormat.RICH,
        )
        self._err_console = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def format(self) -> OutputFormat:
        return self._format

    # --- stdout ---

    def print_query_result(self, result: QueryResult) -> None:
        """Render a :class:`~proxycheck.models.QueryResult`.

        The summary (status, node, time, cache origin) and any service
        message go to stderr; the per-address results go to stdout.
        """
        self.info(summarize(result))
        if result.message:
            self.warning(result.message)

        if self._format == OutputFormat.JSON:
            self._write_json(result.model_dump(mode="json"))
            return

        rows = [result_row(ip, data) for ip, data in result.results.items()]
        if self._format == OutputFormat.PLAIN:
            self._write("\t".join(RESULT_COLUMNS))
            for row in rows:
                self._write("\t".join(row))
            return

        table = Table(title="proxycheck.io", header_style="bold cyan")
        for column in RESULT_COLUMNS:
            table.add_column(column)
        for row in rows:
            proxy_style = "bold red" if row[1] == "yes" else "green"
            cells = [Text(cell) for cell in row]
            cells[1].stylize(proxy_style)
            cells[-1].stylize("yellow")
            table.add_row(*cells)
        self._console.print(table)

    def print_verdict(self, ip: Union[IPv4Address, IPv6Address], data: IpResult) -> None:
        """Print ``yes``/``no`` for one address (an object in JSON mode)."""
        if data.error_message:
            self.warning(data.error_message)
        if self._format == OutputFormat.JSON:
            self._write_json({
                "ip": str(ip),
                "is_proxy": data.is_proxy,
                "is_cache_hit": data.is_cache_hit,
            })
        else:
            self._write("yes" if data.is_proxy else "no")

    def print_config(self, config: ClientConfig, source: Optional[str] = None) -> None:
        """Print the client config; *source* (the file path) goes to stderr."""
        if source:
            self.info(f"Config file: {source}")
        data = config.model_dump(mode="json")
        if self._format == OutputFormat.JSON:
            self._write_json(data)
        elif self._format == OutputFormat.PLAIN:
            for key, value in _config_lines(data):
                self._write(f"{key}\t{value}")
        else:
            text = json.dumps(data, indent=2, ensure_ascii=False)
            self._console.print(Syntax(text, "json", theme="monokai", word_wrap=True))

    def _write(self, line: str) -> None:
        print(line, file=sys.stdout, flush=True)

    def _write_json(self, data: Any) -> None:
        self._write(json.dumps(data, indent=2, ensure_ascii=False))

    # --- stderr ---

    def info(self, message: str) -> None:
        """Summary and progress text. Hidden by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message)

    def success(self, message: str) -> None:
        """Confirmation of a config change. Hidden by ``--quiet``."""
        if not self._quiet:
            self._diagnostic(message, style="green")

    def warning(self, message: str) -> None:
        """Always shown, e.g. a service ``message`` or a per-address error."""
        self._diagnostic(message, label="Warning:", style="yellow")

    def error(self, message: str) -> None:
        """Always shown."""
        self._diagnostic(message, label="Error:", style="bold red")

    def debug(self, message: str) -> None:
        """Retry and transport details. Only with ``--verbose``."""
        if self._verbose:
            self._diagnostic(message, label="[debug]", style="dim")

    def _diagnostic(self, message: str, label: str = "", style: str = "") -> None:
        text = f"{label} {message}" if label else message
        if self._no_color or not style:
            print(text, file=sys.stderr, flush=True)
        else:
            self._err_console.print(Text(text, style=style))


def _is_tty() -> bool:
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _color_disabled_by_env() -> bool:
    return "NO_COLOR" in os.environ or os.environ.get("TERM") == "dumb"


_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the installed :class:`OutputManager`, creating a default one."""
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    global _output
    _output = output


def reset_output() -> None:
    """Forget the installed manager (used between tests)."""
    global _output
    _output = None


def info(message: str) -> None:
    get_output().info(message)


def success(message: str) -> None:
    get_output().success(message)


def warning(message: str) -> None:
    get_output().warning(message)


def error(message: str) -> None:
    get_output().error(message)
