"""CLI module for gifpress commands.

Each command lives in its own module; this package assembles them into the
``gifpress`` click group used by the console script.
"""

import click

from .deps_cmd import deps
from .info_cmd import info
from .optimize_cmd import optimize


@click.group()
@click.version_option(version="0.1.0", prog_name="gifpress")
def main() -> None:
    """🎞️ gifpress: animated GIF optimization with graceful fallbacks."""
    pass


main.add_command(optimize)
main.add_command(info)
main.add_command(deps)

__all__ = [
    "deps",
    "info",
    "main",
    "optimize",
]
