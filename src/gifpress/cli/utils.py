"""Shared utilities for CLI commands."""

import logging
import sys

import click

from ..engines import get_engine
from ..driver import GifDriver


def configure_logging(verbose: bool) -> None:
    """Send library logs to stderr, debug level with *verbose*."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def build_driver(engine_name: str = "pillow") -> GifDriver:
    """Create a driver backed by the raster engine called *engine_name*."""
    return GifDriver(engine=get_engine(engine_name))


def handle_generic_error(command_name: str, error: Exception) -> None:
    """Handle generic command errors with consistent formatting."""
    click.echo(f"❌ {command_name} failed: {error}", err=True)
    sys.exit(1)


def handle_keyboard_interrupt(command_name: str) -> None:
    """Handle keyboard interrupt with consistent formatting."""
    click.echo(f"\n⏹️  {command_name} interrupted by user", err=True)
    sys.exit(1)
