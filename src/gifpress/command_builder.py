"""gifsicle argument construction.

Commands are built as lists of strings and handed to
:class:`~gifpress.process.ProcessInvoker` unchanged; nothing is ever joined
into a shell string and re-split. Paths are inserted one argument at a time
and made absolute (or ``./`` prefixed when they must stay relative) so that
a file name starting with ``-`` or ``#`` can never be read as an option or a
frame selector.

Reference: https://www.lcdf.org/gifsicle/man.html

Usage Examples:
    # Optimize a single file
    gifsicle -O3 --colors=128 --lossy=20 --no-comments --no-extensions --careful \
        --output=/out/a.gif /in/a.gif

    # Merge exploded frames back, with per-frame delays
    gifsicle -O3 --colors=256 --loopcount=0 --output=/out/a.gif \
        --delay=10 /tmp/x/a.gif.000 --delay=20 /tmp/x/a.gif.001
"""

from __future__ import annotations

import os
from collections.abc import Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from . import color_budget
from .color_budget import MAX_COLORS, MIN_COLORS


class Operation(Enum):
    """gifsicle invocations gifpress knows how to build."""

    VERSION = "version"
    INFO = "info"
    EXPLODE = "explode"
    OPTIMIZE = "optimize"
    MERGE = "merge"
    DELAY = "delay"
    LOOP_COUNT = "loop_count"


@dataclass(frozen=True, slots=True)
class OptimizationRequest:
    """Parameters of one optimize/merge call. Never mutated after construction.

    A ``color_budget`` of ``None`` leaves the palettes as they are.
    """

    quality_level: int = 95
    color_budget: int | None = None
    lossy_value: int | None = None
    optimization_level: int = 3
    strip_metadata: bool = True
    loop_count_override: int | None = None
    careful: bool = False

    def __post_init__(self) -> None:
        if not 0 <= self.quality_level <= 100:
            raise ValueError(
                f"quality_level must be between 0 and 100, got {self.quality_level}"
            )
        if self.color_budget is not None and not MIN_COLORS <= self.color_budget <= MAX_COLORS:
            raise ValueError(
                f"color_budget must be between {MIN_COLORS} and {MAX_COLORS}, "
                f"got {self.color_budget}"
            )
        if self.lossy_value is not None and not 0 <= self.lossy_value <= 100:
            raise ValueError(
                f"lossy_value must be between 0 and 100, got {self.lossy_value}"
            )
        if self.optimization_level not in (1, 2, 3):
            raise ValueError(
                f"optimization_level must be 1, 2 or 3, got {self.optimization_level}"
            )
        if self.loop_count_override is not None and self.loop_count_override < 0:
            raise ValueError(
                f"loop_count_override must be non-negative, got {self.loop_count_override}"
            )

    @classmethod
    def for_quality(
        cls,
        quality_level: int,
        current_color_count: int = MAX_COLORS,
        max_colors: int = MAX_COLORS,
        lossy: bool = True,
        lossy_override: int | None = None,
        **options,
    ) -> OptimizationRequest:
        """Build a request whose budget comes from :func:`color_budget.plan`."""
        budget = color_budget.plan(
            quality_level,
            current_color_count,
            max_colors=max_colors,
            lossy=lossy,
            lossy_override=lossy_override,
        )
        return cls(
            quality_level=max(0, min(100, int(quality_level))),
            color_budget=budget.color_budget,
            lossy_value=budget.lossy_value,
            **options,
        )


def path_arg(path: str | os.PathLike[str], absolute: bool = True) -> str:
    """Render *path* as a single argument that gifsicle reads as a file name."""
    text = os.path.abspath(path) if absolute else os.fspath(path)
    if text.startswith(("-", "#")):
        text = os.path.join(os.curdir, text)
    return text


def request_args(request: OptimizationRequest) -> list[str]:
    """Flags derived from *request*; unset fields emit nothing."""
    args = [f"-O{request.optimization_level}"]

    if request.color_budget is not None:
        args.append(f"--colors={request.color_budget}")

    if request.lossy_value is not None:
        args.append(f"--lossy={request.lossy_value}")

    if request.strip_metadata:
        args.extend(["--no-comments", "--no-extensions"])

    if request.careful:
        args.append("--careful")

    if request.loop_count_override is not None:
        args.append(f"--loopcount={request.loop_count_override}")

    return args


def merge_inputs(frames: Sequence[tuple[str | os.PathLike[str], int | None]]) -> list[str]:
    """One input reference per frame, in the given order, each with its delay."""
    args: list[str] = []
    for frame_path, delay in frames:
        if delay is not None:
            if delay < 0:
                raise ValueError(f"Frame delay cannot be negative, got {delay}")
            args.append(f"--delay={int(delay)}")
        args.append(path_arg(frame_path))
    return args


def build(
    operation: Operation,
    inputs: Sequence = (),
    output_path: str | os.PathLike[str] | None = None,
    request: OptimizationRequest | None = None,
    *,
    delay: int | None = None,
    loop_count: int | None = None,
) -> list[str]:
    """Build the argument list (binary excluded) for *operation*.

    Args:
        operation: Which gifsicle invocation to build
        inputs: Input paths; for MERGE a sequence of ``(path, delay_cs | None)``
        output_path: Destination file; for EXPLODE the base name of the pieces
        request: Optimization parameters (OPTIMIZE and MERGE)
        delay: Delay in hundredths of a second (DELAY)
        loop_count: Loop count, 0 meaning forever (LOOP_COUNT)

    Raises:
        ValueError: If the arguments do not fit *operation*
    """
    if operation is Operation.VERSION:
        return ["--version"]

    if operation is Operation.MERGE:
        if not inputs:
            raise ValueError("merge needs at least one frame")
        if output_path is None:
            raise ValueError("merge needs an output path")
        request = request or OptimizationRequest()
        return [
            *request_args(request),
            f"--output={path_arg(output_path)}",
            *merge_inputs(inputs),
        ]

    if len(inputs) != 1:
        raise ValueError(f"{operation.value} takes exactly one input, got {len(inputs)}")
    source = path_arg(inputs[0])

    if operation is Operation.INFO:
        return ["--info", source]

    if operation is Operation.EXPLODE:
        args = ["--explode"]
        if output_path is not None:
            # Relative on purpose: resolved against the extractor's cwd
            args.append(f"--output={path_arg(output_path, absolute=False)}")
        args.append(source)
        return args

    if output_path is None:
        raise ValueError(f"{operation.value} needs an output path")
    output = f"--output={path_arg(output_path)}"

    if operation is Operation.OPTIMIZE:
        return [*request_args(request or OptimizationRequest()), output, source]

    if operation is Operation.DELAY:
        if delay is None or delay < 0:
            raise ValueError(f"Delay must be a non-negative integer, got {delay}")
        return [f"--delay={int(delay)}", output, source]

    if operation is Operation.LOOP_COUNT:
        if loop_count is None or loop_count < 0:
            raise ValueError(f"Loop count must be non-negative, got {loop_count}")
        return ["-O1", f"--loopcount={int(loop_count)}", output, source]

    raise ValueError(f"Unsupported operation: {operation}")
