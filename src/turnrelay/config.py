"""
Startup configuration -- resolved once, before the relay loop starts.

Precedence for every setting: CLI option > environment variable >
config file (``<home>/config/relay.yaml``) > built-in default. The
token additionally falls back to an interactive prompt on a TTY.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Any, Optional

import click
import yaml
from pydantic import SecretStr, ValidationError

from . import RELAY_HOME
from .errors import ConfigError
from .models import BackendType, RelayConfig

logger = logging.getLogger("turnrelay.config")

CONFIG_FILE = Path("config") / "relay.yaml"
TOKEN_ENV_VARS = ("TURNRELAY_TOKEN", "DROPBOX_TOKEN")
ENV_SETTINGS = {
    "TURNRELAY_SAVE_DIR": "save_dir",
    "TURNRELAY_CHANNEL": "channel_name",
    "TURNRELAY_BACKEND": "backend",
}


def relay_home(home: Optional[Path] = None) -> Path:
    """Expand the relay home directory."""
    return Path(home or RELAY_HOME).expanduser()


def config_path(home: Optional[Path] = None) -> Path:
    return relay_home(home) / CONFIG_FILE


def load_config_file(home: Optional[Path] = None) -> dict[str, Any]:
    """Read relay.yaml, returning {} when it is absent or unreadable."""
    path = config_path(home)
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (yaml.YAMLError, OSError) as exc:
        logger.warning("Failed to load relay config %s: %s", path, exc)
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring relay config %s: not a mapping", path)
        return {}
    return data


def save_config_file(data: dict[str, Any], home: Optional[Path] = None) -> Path:
    """Write settings to relay.yaml as given."""
    path = config_path(home)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(yaml.dump(data, default_flow_style=False), encoding="utf-8")
    return path


def resolve_token(
    cli_token: Optional[str],
    file_data: dict[str, Any],
    interactive: bool = True,
) -> Optional[str]:
    """Find the store credential, highest precedence first."""
    if cli_token:
        return cli_token
    for var in TOKEN_ENV_VARS:
        value = os.environ.get(var)
        if value:
            logger.debug("Token taken from %s", var)
            return value
    if file_data.get("token"):
        return str(file_data["token"])
    if interactive and sys.stdin.isatty():
        value = click.prompt(
            "Remote store access token", hide_input=True, default="",
            show_default=False,
        )
        return value.strip() or None
    return None


def resolve_config(
    home: Optional[Path] = None,
    overrides: Optional[dict[str, Any]] = None,
    token: Optional[str] = None,
    interactive: bool = True,
) -> RelayConfig:
    """Build the RelayConfig the relay runs with.

    Args:
        home: Relay home directory.
        overrides: Settings from the command line; None values are skipped.
        token: Token from the command line.
        interactive: Allow prompting for a missing token.

    Returns:
        The resolved configuration.

    Raises:
        ConfigError: On invalid settings, or when the backend needs a
            token and none could be found.
    """
    home_path = relay_home(home)
    file_data = load_config_file(home_path)

    settings: dict[str, Any] = {k: v for k, v in file_data.items() if k != "token"}
    for var, key in ENV_SETTINGS.items():
        if os.environ.get(var):
            settings[key] = os.environ[var]
    settings.update({k: v for k, v in (overrides or {}).items() if v is not None})

    try:
        config = RelayConfig(**settings)
    except ValidationError as exc:
        raise ConfigError(f"Invalid relay configuration: {exc}") from exc

    if config.backend == BackendType.LOCAL:
        if config.local_store is None:
            config.local_store = home_path / "store"
        return config

    secret = resolve_token(token, file_data, interactive=interactive)
    if not secret:
        raise ConfigError(
            "No access token found. Pass --token, set TURNRELAY_TOKEN, "
            f"or add 'token' to {config_path(home_path)}"
        )
    config.token = SecretStr(secret)
    return config
