"""Shared utilities for the CLI command modules."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, Optional

from rich.console import Console

from .. import RELAY_HOME
from ..config import resolve_config
from ..errors import ConfigError
from ..models import RelayConfig

console = Console()


def load_or_exit(
    home: str,
    overrides: Optional[dict[str, Any]] = None,
    token: Optional[str] = None,
) -> RelayConfig:
    """Resolve the relay config, or print why not and exit 1."""
    try:
        return resolve_config(Path(home), overrides=overrides, token=token)
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/] {exc}")
        sys.exit(1)


__all__ = ["RELAY_HOME", "console", "load_or_exit"]
