"""Settings loading, credential resolution and fail-fast validation.

:func:`load_settings` merges, from lowest to highest precedence:

1. Defaults declared on :class:`~falconkit.models.FalconSettings`.
2. A JSON config file -- an explicit path, or
   ``$XDG_CONFIG_HOME/falconkit/config.json`` (``~/.falconkit/config.json``
   on macOS and Windows) when it exists.
3. Environment variables ``FALCON_BASE_URL``, ``FALCON_CLIENT_ID`` and
   ``FALCON_CLIENT_SECRET``.
4. Keyword overrides passed by the caller (CLI flags, embedding code).

``client_id`` and ``client_secret`` may be literal values or credential
sources (``env:VAR`` / ``file:/path``) resolved by
:func:`resolve_credential`. The merged result is checked by
:func:`validate_settings` before any network call is made.
"""

from __future__ import annotations

import json
import os
import platform
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from falconkit.exceptions import ConfigError
from falconkit.models import FalconSettings

_APP_NAME = "falconkit"
_CONFIG_FILENAME = "config.json"

ENV_VARS = {
    "base_url": "FALCON_BASE_URL",
    "client_id": "FALCON_CLIENT_ID",
    "client_secret": "FALCON_CLIENT_SECRET",
}
"""Settings fields that can be supplied through the environment."""


# --- Config directory ---


def _is_xdg_platform() -> bool:
    """Return True if the platform follows the XDG Base Directory spec (Linux/BSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def get_config_dir() -> Path:
    """Return the configuration directory (not created).

    On Linux/BSD: ``$XDG_CONFIG_HOME/falconkit/`` (default
    ``~/.config/falconkit/``). Elsewhere: ``~/.falconkit/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_CONFIG_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".config"
        return base / _APP_NAME
    return Path.home() / f".{_APP_NAME}"


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/falconkit/`` (default
    ``~/.local/share/falconkit/``). Elsewhere: ``~/.falconkit/logs/``.
    """
    if _is_xdg_platform():
        env_value = os.environ.get("XDG_DATA_HOME", "")
        base = Path(env_value) if env_value else Path.home() / ".local" / "share"
        path = base / _APP_NAME
    else:
        path = Path.home() / f".{_APP_NAME}" / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


def default_config_path() -> Path:
    return get_config_dir() / _CONFIG_FILENAME


# --- Loading ---


def load_config_file(path: Optional[str | Path] = None) -> dict[str, Any]:
    """Read a JSON settings file.

    Args:
        path: Explicit file path. When ``None`` the default location is used
            and a missing file is not an error.

    Returns:
        The decoded JSON object, or ``{}`` when the default file is absent.

    Raises:
        ConfigError: If an explicit file is missing, or any file is not a
            JSON object.
    """
    explicit = path is not None
    file_path = Path(path).expanduser() if explicit else default_config_path()
    if not file_path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {file_path}")
        return {}
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except (json.JSONDecodeError, OSError) as exc:
        raise ConfigError(f"Invalid config file at {file_path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config file at {file_path} must contain a JSON object")
    return data


def _env_values() -> dict[str, str]:
    values: dict[str, str] = {}
    for field, var in ENV_VARS.items():
        value = os.environ.get(var)
        if value:
            values[field] = value
    return values


def load_settings(config_path: Optional[str | Path] = None, **overrides: Any) -> FalconSettings:
    """Build validated :class:`~falconkit.models.FalconSettings`.

    Args:
        config_path: Optional explicit JSON config file.
        **overrides: Field values with the highest precedence. ``None``
            values are ignored so CLI options can be passed through as-is.

    Returns:
        Settings with credential sources resolved.

    Raises:
        ConfigError: On an unreadable config file, unknown credential source,
            a field that fails model validation, or a failed
            :func:`validate_settings` check.
    """
    merged: dict[str, Any] = {}
    merged.update(load_config_file(config_path))
    merged.update(_env_values())
    merged.update({k: v for k, v in overrides.items() if v is not None})

    for field in ("client_id", "client_secret"):
        value = merged.get(field)
        if isinstance(value, str) and _is_credential_source(value):
            merged[field] = resolve_credential(value)

    try:
        settings = FalconSettings.model_validate(merged)
    except ValidationError as exc:
        raise ConfigError(f"Invalid settings: {exc}") from exc

    validate_settings(settings)
    return settings


def validate_settings(settings: FalconSettings) -> None:
    """Fail fast on settings that can never work.

    Raises:
        ConfigError: If the base URL is empty or not ``https://``, if the
            client ID / secret is empty, or if the token timing settings
            would make a newly issued token stale on arrival.
    """
    if not settings.base_url:
        raise ConfigError("Base URL is empty")
    if not settings.base_url.lower().startswith("https://"):
        raise ConfigError(f"Base URL must use https:// (got '{settings.base_url}')")
    if not settings.client_id.strip():
        raise ConfigError("Client ID is empty")
    if not settings.client_secret.strip():
        raise ConfigError("Client secret is empty")
    if settings.max_attempts < 1:
        raise ConfigError("max_attempts must be at least 1")
    if settings.refresh_buffer_seconds < 0:
        raise ConfigError("refresh_buffer_seconds must not be negative")
    if settings.early_refresh_seconds < 0:
        raise ConfigError("early_refresh_seconds must not be negative")
    # a token issued with expires_in=0 is fresh for ttl - 2 * buffer seconds
    if 2 * settings.refresh_buffer_seconds >= settings.default_token_ttl_seconds:
        raise ConfigError(
            f"default_token_ttl_seconds ({settings.default_token_ttl_seconds:g}) must be "
            f"greater than twice refresh_buffer_seconds ({settings.refresh_buffer_seconds:g})"
        )


# --- Credential source resolution ---


def _is_credential_source(value: str) -> bool:
    return value.startswith("env:") or value.startswith("file:")


def resolve_credential(source: str) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads ``os.environ["VAR_NAME"]``
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Raises:
        ConfigError: If the source cannot be resolved.
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

    raise ConfigError(f"Unknown credential source format: {source}")
