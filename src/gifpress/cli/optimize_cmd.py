"""Optimize a single animated GIF."""

from pathlib import Path

import click

from ..pipeline import PipelineState
from .utils import (
    build_driver,
    configure_logging,
    handle_generic_error,
    handle_keyboard_interrupt,
)

_STRATEGY_LABELS = {
    PipelineState.VERIFIED: "✅ gifsicle",
    PipelineState.DIRECT_QUANTIZED_SAVE: "⚠️  raster engine fallback",
    PipelineState.NAIVE_COPY: "⚠️  unmodified copy",
}


@click.command()
@click.argument(
    "source",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.argument(
    "dest",
    type=click.Path(dir_okay=False, path_type=Path),
)
@click.option(
    "--quality",
    "-q",
    type=click.IntRange(0, 100),
    default=None,
    help="Quality from 0 (smallest) to 100 (best), default 95",
)
@click.option(
    "--lossy",
    type=click.IntRange(0, 100),
    default=None,
    help="Explicit gifsicle --lossy level (default: 100 - quality)",
)
@click.option(
    "--lossless",
    is_flag=True,
    help="Never pass --lossy to gifsicle",
)
@click.option(
    "--level",
    "-O",
    "optimization_level",
    type=click.IntRange(1, 3),
    default=None,
    help="gifsicle optimization level (default: 3)",
)
@click.option(
    "--engine",
    type=click.Choice(["pillow", "imagemagick"]),
    default="pillow",
    help="Raster engine used when gifsicle cannot finish the job",
)
@click.option(
    "--keep-metadata",
    is_flag=True,
    help="Keep comments and application extensions",
)
@click.option(
    "--loopcount",
    type=click.IntRange(min=0),
    default=None,
    help="Override the loop count (0 = loop forever)",
)
@click.option(
    "--verbose",
    "-v",
    is_flag=True,
    help="Log every pipeline step",
)
def optimize(
    source: Path,
    dest: Path,
    quality: int | None,
    lossy: int | None,
    lossless: bool,
    optimization_level: int | None,
    engine: str,
    keep_metadata: bool,
    loopcount: int | None,
    verbose: bool,
) -> None:
    """Optimize SOURCE into DEST.

    gifsicle is tried first; if it is missing or fails, the raster engine
    re-quantizes the frames, and as a last resort SOURCE is copied as is.
    """
    configure_logging(verbose)
    if lossless and lossy is not None:
        raise click.UsageError("--lossy and --lossless are mutually exclusive")

    before = source.stat().st_size
    try:
        driver = build_driver(engine)
        result = driver.save(
            source,
            dest,
            quality=quality,
            lossy=lossy,
            lossless=lossless,
            optimization_level=optimization_level,
            strip_metadata=False if keep_metadata else None,
            loop_count=loopcount,
        )
    except KeyboardInterrupt:
        handle_keyboard_interrupt("Optimize")
        return
    except Exception as e:
        handle_generic_error("Optimize", e)
        return

    after = dest.stat().st_size
    ratio = after / before if before else 1.0
    click.echo(f"🎞️  {source} → {dest}")
    click.echo(f"📦 {before:,} → {after:,} bytes ({ratio:.1%})")
    click.echo(f"🛠️  Strategy: {_STRATEGY_LABELS[result.final_state]}")
    if verbose:
        for transition in result.transitions:
            click.echo(
                f"   {transition.source.value} → {transition.target.value}"
                + (f": {transition.reason}" if transition.reason else "")
            )
