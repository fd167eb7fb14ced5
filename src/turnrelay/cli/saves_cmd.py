"""Save commands: list, push, pull -- the relay's work without the game."""

from __future__ import annotations

import sys
from typing import Optional

import click
from rich.markup import escape
from rich.table import Table

from ._common import RELAY_HOME, console, load_or_exit
from ..errors import ConfigError, RemoteStoreError
from ..models import Command, ResponseKind


def _dispatcher(home: str, token: Optional[str], backend: Optional[str]):
    from ..server import RelayServer

    config = load_or_exit(home, overrides={"backend": backend}, token=token)
    try:
        return RelayServer.from_config(config).dispatcher
    except ConfigError as exc:
        console.print(f"[bold red]Configuration error:[/] {exc}")
        sys.exit(1)


def _report(response) -> None:
    if response.kind == ResponseKind.ERROR:
        console.print(f"[red]{escape(response.text)}[/]")
        sys.exit(1)
    console.print(f"[green]{escape(response.text)}[/]")
    if response.path:
        console.print(f"  [dim]{escape(response.path)}[/]")


def register_saves_commands(main: click.Group) -> None:
    """Register the saves command group."""

    store_options = [
        click.option("--home", default=RELAY_HOME, type=click.Path()),
        click.option("--token", default=None, help="Remote store access token."),
        click.option("--backend", default=None, help="Remote store override."),
    ]

    def with_store_options(func):
        for option in reversed(store_options):
            func = option(func)
        return func

    @main.group()
    def saves():
        """Inspect and move turn saves by hand."""

    @saves.command("list")
    @with_store_options
    def saves_list(home, token, backend):
        """List turn saves in the remote folder."""
        dispatcher = _dispatcher(home, token, backend)
        try:
            names = dispatcher.cloud.list(dispatcher.remote_folder)
        except RemoteStoreError as exc:
            console.print(f"[bold red]Listing failed:[/] {exc.summary}")
            sys.exit(1)

        if not names:
            console.print("\n  [yellow]No saves in[/] " + dispatcher.remote_folder + "\n")
            return

        table = Table(title=f"Saves in {dispatcher.remote_folder}")
        table.add_column("#", style="dim", justify="right")
        table.add_column("Name", style="cyan")
        for i, name in enumerate(names, 1):
            table.add_row(str(i), name)
        console.print(table)

    @saves.command("push")
    @click.argument("path", type=click.Path(exists=True, dir_okay=False))
    @click.argument("dest", required=False)
    @with_store_options
    def saves_push(path, dest, home, token, backend):
        """Upload any local file (to DEST, or the save folder)."""
        dispatcher = _dispatcher(home, token, backend)
        _report(dispatcher.dispatch(Command.upload_path(path, dest)))

    @saves.command("pull")
    @click.argument("turn")
    @with_store_options
    def saves_pull(turn, home, token, backend):
        """Download TURN's save into the save directory."""
        dispatcher = _dispatcher(home, token, backend)
        _report(dispatcher.dispatch(Command.download(turn)))
