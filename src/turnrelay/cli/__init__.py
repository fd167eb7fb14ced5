"""
turnrelay CLI -- run the relay, poke it, inspect the store.

Each command group lives in its own module and is registered on
the main Click group here.

Entry point: turnrelay.cli:main
"""

from __future__ import annotations

import click

from .. import __version__


@click.group()
@click.version_option(version=__version__, prog_name="turnrelay")
def main():
    """turnrelay: hand turn saves between your game and the cloud."""


from .serve import register_serve_commands
from .saves_cmd import register_saves_commands
from .config_cmd import register_config_commands

register_serve_commands(main)
register_saves_commands(main)
register_config_commands(main)
