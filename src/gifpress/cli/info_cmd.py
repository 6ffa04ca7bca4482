"""Show the structure of a GIF."""

import json
from dataclasses import asdict
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table

from .utils import build_driver, handle_generic_error


@click.command()
@click.argument(
    "path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output the metadata in JSON format",
)
def info(path: Path, output_json: bool) -> None:
    """Describe the frames, timing and palette flags of PATH."""
    try:
        metadata = build_driver().info(path)
    except Exception as e:
        handle_generic_error("Info", e)
        return

    if output_json:
        click.echo(json.dumps(asdict(metadata), indent=2))
        return

    table = Table(title=f"🎞️ {path.name}", show_header=True, header_style="bold magenta")
    table.add_column("Field", style="cyan", no_wrap=True)
    table.add_column("Value")

    dimensions = "unknown"
    if metadata.dimensions:
        dimensions = f"{metadata.dimensions[0]}x{metadata.dimensions[1]}"
    if not metadata.has_loop_extension:
        loop = "once"
    elif metadata.loop_count == 0:
        loop = "forever"
    else:
        loop = str(metadata.loop_count)

    table.add_row("Frames", str(metadata.frame_count))
    table.add_row("Dimensions", dimensions)
    table.add_row("Size", f"{metadata.size_bytes:,} bytes")
    table.add_row("Loop", loop)
    if metadata.delays:
        delays = ", ".join(f"{delay:.2f}s" for delay in metadata.delays[:10])
        if len(metadata.delays) > 10:
            delays += ", …"
        table.add_row("Delays", delays)
    background = metadata.background_color_index
    table.add_row("Background index", "-" if background is None else str(background))
    table.add_row("Transparency", "✅" if metadata.has_transparency else "❌")
    table.add_row("Comments", "✅" if metadata.has_comments else "❌")
    table.add_row("Extensions", "✅" if metadata.has_extensions else "❌")

    Console().print(table)
