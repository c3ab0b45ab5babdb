"""Configuration management with XDG paths, atomic writes, and precedence resolution.

This module handles the persistent configuration for proxycheck:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.proxycheck/`` on macOS and Windows. See :func:`get_config_dir`.
* **Client config** -- A single :class:`~proxycheck.models.ClientConfig`
  JSON file storing the API key source, default query options, request and
  cache settings. ``PROXYCHECK_CONFIG`` points at an alternative file.
* **Precedence resolution** -- :func:`resolve_config` merges explicit
  arguments, environment variables and the stored config into the effective
  configuration and API key.
* **Credential resolution** -- :func:`resolve_credential` reads the API key
  from an env var, a file, or takes it literally.

All file writes use an atomic temp-file-then-rename strategy
(:func:`_atomic_write`) to prevent data loss on crash or power failure.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Optional

from proxycheck.exceptions import ConfigError
from proxycheck.models import ClientConfig

_APP_NAME = "proxycheck"
_CONFIG_FILENAME = "config.json"

ENV_API_KEY = "PROXYCHECK_API_KEY"
ENV_CONFIG = "PROXYCHECK_CONFIG"


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/proxycheck/`` (default ``~/.config/proxycheck/``).
    On macOS/Windows: ``~/.proxycheck/``.

    Returns:
        Absolute path to the configuration directory (guaranteed to exist).
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        path = base / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def config_path() -> Path:
    """Path to the config file, honouring ``PROXYCHECK_CONFIG``."""
    override = os.environ.get(ENV_CONFIG)
    if override:
        return Path(override).expanduser()
    return get_config_dir() / _CONFIG_FILENAME


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file is created in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is cleaned up.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None  # prevent double-close below
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Client config ---


def load_config(path: Optional[Path] = None) -> ClientConfig:
    """Load the client configuration.

    Args:
        path: Explicit file to read. Defaults to :func:`config_path`.

    Returns:
        The deserialised :class:`~proxycheck.models.ClientConfig`. If the
        file does not exist, a default instance is returned.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = path or config_path()
    if not path.is_file():
        return ClientConfig()
    try:
        text = path.read_text(encoding="utf-8")
        data = json.loads(text)
        return ClientConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid config at {path}: {exc}") from exc


def save_config(config: ClientConfig, path: Optional[Path] = None) -> None:
    """Persist the client configuration atomically to disk.

    Args:
        config: The configuration to save.
        path: Explicit destination. Defaults to :func:`config_path`.
    """
    data = config.model_dump(mode="json")
    _atomic_write(path or config_path(), json.dumps(data, indent=2) + "\n")


# --- Precedence resolution ---


def resolve_config(
    api_key: Optional[str] = None,
    path: Optional[Path] = None,
) -> tuple[ClientConfig, Optional[str]]:
    """Resolve the effective configuration and API key.

    Precedence for the API key (high to low):
        1. The explicit ``api_key`` argument
        2. The ``PROXYCHECK_API_KEY`` environment variable
        3. The config file's ``api_key_source``
        4. No key (the service's anonymous tier)

    Returns:
        A tuple of ``(config, api_key_or_None)``.

    Raises:
        ConfigError: If the config file is invalid or its key source cannot
            be resolved.
    """
    config = load_config(path)

    if api_key is not None:
        return config, api_key

    env_key = os.environ.get(ENV_API_KEY)
    if env_key:
        return config, env_key

    if config.api_key_source:
        return config, resolve_credential(config.api_key_source)

    return config, None


# --- Credential source resolution ---


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace
        - anything else -- taken literally as the key

    Args:
        source: The source descriptor string.

    Returns:
        The resolved credential string.

    Raises:
        ConfigError: If the source can't be resolved.
    """
    if source.startswith("env:"):
        var_name = source[4:]
        value = os.environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    if not source.strip():
        raise ConfigError("Empty credential source")
    return source
