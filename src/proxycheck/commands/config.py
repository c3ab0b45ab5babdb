"""Config commands -- view and modify the stored client configuration.

Provides the ``proxycheck config`` sub-command group for reading,
updating, and resetting the configuration file
(:class:`~proxycheck.models.ClientConfig`). Settings control the API key
source, default query options, request timeouts and the cache max-age.
"""

from __future__ import annotations

import typer

from proxycheck.output import error, get_output, info, success


config_app = typer.Typer(no_args_is_help=True)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Example::

        proxycheck config show
        proxycheck --json config show
    """
    from proxycheck.config import config_path, load_config
    from proxycheck.exceptions import ConfigError

    try:
        config = load_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    get_output().print_config(config, source=str(config_path()))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(
        help="Config key (dot notation, e.g., 'options.include_vpn')."
    ),
    value: str = typer.Argument(help="Value to set."),
) -> None:
    """Set a configuration value.

    Uses dot notation for nested keys. The value is coerced to match the
    existing field's type (bool or int); ``none`` clears an optional field.
    The updated config is validated against
    :class:`~proxycheck.models.ClientConfig` before saving.

    Raises:
        typer.Exit: With code 2 if the key path is invalid, the value
            cannot be coerced, or Pydantic validation fails.

    Example::

        proxycheck config set api_key_source env:PROXYCHECK_KEY
        proxycheck config set options.include_asn true
        proxycheck config set cache.max_age_seconds 600
    """
    from proxycheck.config import load_config, save_config
    from proxycheck.models import ClientConfig

    config = load_config()
    data = config.model_dump(mode="json")

    # Navigate the dot-separated key path.
    keys = key.split(".")
    target = data
    for k in keys[:-1]:
        if k not in target or not isinstance(target[k], dict):
            error(f"Invalid config key: {key}")
            raise typer.Exit(code=2)
        target = target[k]

    final_key = keys[-1]
    if final_key not in target:
        error(f"Unknown config key: {key}")
        raise typer.Exit(code=2)

    current = target[final_key]
    if value.lower() in ("none", "null"):
        coerced = None
    elif isinstance(current, bool):
        coerced = value.lower() in ("true", "1", "yes")
    elif isinstance(current, int) or (current is None and value.isdigit()):
        try:
            coerced = int(value)
        except ValueError:
            error(f"Expected integer for {key}, got: {value}")
            raise typer.Exit(code=2) from None
    else:
        coerced = value  # type: ignore[assignment]

    target[final_key] = coerced

    try:
        new_config = ClientConfig.model_validate(data)
    except Exception as exc:
        error(f"Validation error: {exc}")
        raise typer.Exit(code=2) from None

    save_config(new_config)
    success(f"Set {key} = {coerced}")


@config_app.command("reset")
def config_reset(
    yes: bool = typer.Option(False, "--yes", "-y", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Example::

        proxycheck config reset --yes
    """
    from proxycheck.config import save_config
    from proxycheck.models import ClientConfig

    if not yes:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_config(ClientConfig())
    success("Configuration reset to defaults.")
