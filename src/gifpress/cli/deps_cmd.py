"""External tool availability check.

Reports whether gifsicle and ImageMagick can be found, which binary would be
used and its version. Without gifsicle every save degrades to the raster
engine fallback; ImageMagick is only needed for ``--engine imagemagick``.
"""

import json

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..system_tools import get_available_tools

_NOTES = {
    "gifsicle": "Optimizer; saves fall back to the raster engine without it",
    "imagemagick": "Optional raster engine (--engine imagemagick)",
}


@click.command("deps")
@click.option(
    "--json",
    "output_json",
    is_flag=True,
    help="Output results in JSON format",
)
def deps(output_json: bool) -> None:
    """Check availability of the external binaries."""
    tools = get_available_tools()

    if output_json:
        result = {
            key: {"available": tool.available, "binary": tool.name, "version": tool.version}
            for key, tool in tools.items()
        }
        click.echo(json.dumps(result, indent=2))
        return

    console = Console()
    table = Table(title="🔧 External Tools", show_header=True, header_style="bold magenta")
    table.add_column("Tool", style="cyan", no_wrap=True)
    table.add_column("Status", justify="center")
    table.add_column("Binary")
    table.add_column("Version")
    table.add_column("Notes", style="dim")

    for key, tool in tools.items():
        status = "[green]✅ Available[/green]" if tool.available else "[red]❌ Missing[/red]"
        table.add_row(key, status, tool.name, tool.version or "-", _NOTES.get(key, ""))

    console.print(table)

    if tools["gifsicle"].available:
        console.print(Panel(
            "✅ [green]gifsicle is available.[/green]",
            title="System Status",
            border_style="green",
        ))
    else:
        console.print(Panel(
            "⚠️  [yellow]gifsicle is missing.[/yellow]\n"
            "Animations will be re-quantized by the raster engine instead.\n"
            "Set [bold]GIFPRESS_GIFSICLE_PATH[/bold] if it is installed elsewhere.",
            title="System Status",
            border_style="yellow",
        ))
