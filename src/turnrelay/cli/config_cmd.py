"""Config commands: show, set."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from pydantic import ValidationError
from rich.table import Table

from ._common import RELAY_HOME, console
from ..config import config_path, load_config_file, save_config_file
from ..models import RelayConfig


def register_config_commands(main: click.Group) -> None:
    """Register the config command group."""

    @main.group("config")
    def config_group():
        """Inspect or change persisted relay settings."""

    @config_group.command("show")
    @click.option("--home", default=RELAY_HOME, type=click.Path())
    def config_show(home):
        """Show effective settings from relay.yaml and defaults."""
        data = load_config_file(Path(home))
        try:
            config = RelayConfig(**{k: v for k, v in data.items() if k != "token"})
        except ValidationError as exc:
            console.print(f"[bold red]Invalid relay.yaml:[/] {exc}")
            sys.exit(1)

        table = Table(title=str(config_path(Path(home))))
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        table.add_column("Source", style="dim")
        for key, value in config.model_dump(mode="json").items():
            table.add_row(key, str(value), "file" if key in data else "default")
        table.add_row(
            "token",
            "[green]set[/]" if data.get("token") else "[dim]not in file[/]",
            "file",
        )
        console.print(table)

    @config_group.command("set")
    @click.argument("key")
    @click.argument("value")
    @click.option("--home", default=RELAY_HOME, type=click.Path())
    def config_set(key, value, home):
        """Persist one setting to relay.yaml."""
        if key == "token":
            console.print(
                "[yellow]Tokens are not written by this command.[/] "
                "Use --token or TURNRELAY_TOKEN."
            )
            sys.exit(1)
        if key not in RelayConfig.model_fields:
            console.print(f"[bold red]Unknown setting:[/] {key}")
            sys.exit(1)

        data = load_config_file(Path(home))
        data[key] = value
        try:
            validated = RelayConfig(**{k: v for k, v in data.items() if k != "token"})
        except ValidationError as exc:
            console.print(f"[bold red]Invalid value for {key}:[/] {exc}")
            sys.exit(1)

        data[key] = validated.model_dump(mode="json")[key]
        path = save_config_file(data, Path(home))
        console.print(f"  [green]{key}[/] = {data[key]}  [dim]({path})[/]")
