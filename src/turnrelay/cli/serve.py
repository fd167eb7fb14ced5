"""Relay commands: serve, send."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.panel import Panel

from ._common import RELAY_HOME, console, load_or_exit
from ..errors import ChannelIoError, ConfigError
from ..models import DEFAULT_BUFFER_SIZE, DEFAULT_CHANNEL_NAME, BackendType
from ..protocol import parse_load_instruction


def register_serve_commands(main: click.Group) -> None:
    """Register the serve and send commands."""

    @main.command("serve")
    @click.option("--home", default=RELAY_HOME, type=click.Path())
    @click.option("--token", default=None, help="Remote store access token.")
    @click.option("--save-dir", default=None, type=click.Path(), help="Game save directory.")
    @click.option("--channel", default=None, help="Channel name the game connects to.")
    @click.option(
        "--backend", default=None,
        type=click.Choice([b.value for b in BackendType]),
        help="Remote store (default: dropbox).",
    )
    @click.option("--local-store", default=None, type=click.Path(), help="Root for the local backend.")
    @click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level.")
    def serve(home, token, save_dir, channel, backend, local_store, verbose):
        """Run the relay until interrupted.

        Waits for the game on the local channel, one command per
        connection, and answers each one before taking the next.
        """
        from ..channel import channel_supported
        from ..server import RelayServer, setup_logging

        if not channel_supported():
            console.print(
                "[bold red]Unsupported platform:[/] the relay needs Unix domain sockets."
            )
            sys.exit(1)

        overrides = {
            "save_dir": save_dir,
            "channel_name": channel,
            "backend": backend,
            "local_store": local_store,
        }
        config = load_or_exit(home, overrides=overrides, token=token)
        log_file = setup_logging(Path(home), verbose=verbose)

        try:
            server = RelayServer.from_config(config)
        except ConfigError as exc:
            console.print(f"[bold red]Configuration error:[/] {exc}")
            sys.exit(1)

        console.print()
        console.print(
            Panel(
                f"Channel: [cyan]{config.channel_name}[/]\n"
                f"Backend: [cyan]{config.backend.value}[/]\n"
                f"Save dir: {Path(config.save_dir).expanduser()}\n"
                f"Remote folder: {config.remote_folder}\n"
                f"Log: [dim]{log_file}[/]",
                title="turnrelay",
                border_style="green",
            )
        )
        console.print("  [dim]Ctrl+C to stop[/]\n")

        server.install_signal_handlers()
        server.run_forever()

    @main.command("send")
    @click.argument("command")
    @click.option("--channel", default=DEFAULT_CHANNEL_NAME, help="Channel name.")
    @click.option("--buffer-size", default=DEFAULT_BUFFER_SIZE, help="Reply buffer size.")
    @click.option("--retries", default=5, help="Connection attempts.")
    def send(command, channel, buffer_size, retries):
        """Send one COMMAND to a running relay, as the game would."""
        from ..client import send_command

        try:
            reply = send_command(
                command, channel_name=channel, buffer_size=buffer_size,
                retries=retries,
            )
        except ChannelIoError as exc:
            console.print(f"[bold red]No reply:[/] {exc}")
            sys.exit(1)

        console.print(reply, markup=False, highlight=False)
        load_path = parse_load_instruction(reply)
        if load_path:
            console.print(f"  [green]Load:[/] {load_path}")
