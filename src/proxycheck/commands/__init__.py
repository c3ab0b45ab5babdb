"""Built-in CLI sub-commands for proxycheck.

Each module defines either a Typer sub-application or a plain command
function that is registered on the root app in :mod:`proxycheck.app`:

- :mod:`~proxycheck.commands.query` -- ``query`` and ``check``.
- :mod:`~proxycheck.commands.config` -- ``config show|set|reset``.
"""
