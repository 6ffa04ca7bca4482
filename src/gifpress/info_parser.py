"""Parsing of ``gifsicle --info`` reports into :class:`AnimationMetadata`.

gifsicle prints a loosely structured, human oriented report::

    * input.gif 3 images
      logical screen 120x80
      global color table [64]
      background 0
      loop forever
      + image #0 120x80
        disposal asis delay 0.10s
      + image #1 120x80 transparent 12
        delay 0.20s

The parser walks the report line by line. Each recognised pattern updates
one field, everything else is ignored. It never raises: a garbled report
yields a metadata object with default fields.
"""

import logging
import re
from collections.abc import Iterable
from dataclasses import dataclass

logger = logging.getLogger(__name__)

_FRAME_COUNT = re.compile(r"\b(\d+) images?\b")
_SCREEN = re.compile(r"logical screen (\d+)x(\d+)")
_DELAY = re.compile(r"\bdelay (\d+(?:\.\d*)?)\s*s\b")
_LOOP_COUNT = re.compile(r"\bloop count (\d+)")
_LOOP_FOREVER = re.compile(r"\bloop forever\b")
_BACKGROUND = re.compile(r"\bbackground(?: color)? (\d+)")
_TRANSPARENT = re.compile(r"\btransparent\b")
_COMMENT = re.compile(r"^\s*comment\b|\bcomments: yes\b")
_EXTENSION = re.compile(r"\bextension\b|\bextensions: yes\b")


@dataclass(frozen=True, slots=True)
class AnimationMetadata:
    """Structure of a GIF as reported by the optimizer.

    ``loop_count`` is 0 both for "loop forever" and when the report has no
    loop line; ``has_loop_extension`` tells the two apart.
    """

    frame_count: int = 0
    dimensions: tuple[int, int] | None = None
    delays: tuple[float, ...] = ()
    loop_count: int = 0
    has_loop_extension: bool = False
    has_comments: bool = False
    has_extensions: bool = False
    background_color_index: int | None = None
    has_transparency: bool = False
    size_bytes: int = 0

    def __post_init__(self) -> None:
        if self.delays and len(self.delays) != self.frame_count:
            raise ValueError(
                f"{len(self.delays)} delays given for {self.frame_count} frames"
            )

    @property
    def is_animated(self) -> bool:
        return self.frame_count > 1

    @property
    def delays_centiseconds(self) -> list[int]:
        return [int(round(delay * 100)) for delay in self.delays]


def parse_info(lines: Iterable[str], size_bytes: int = 0) -> AnimationMetadata:
    """Turn the lines of a ``--info`` report into :class:`AnimationMetadata`.

    Args:
        lines: Report lines, in the order gifsicle printed them
        size_bytes: Size of the inspected file, recorded verbatim

    Returns:
        Parsed metadata; fields whose pattern never appeared keep their defaults
    """
    frame_count = 0
    frame_count_seen = False
    dimensions = None
    delays: list[float] = []
    loop_count = 0
    has_loop_extension = False
    has_comments = False
    has_extensions = False
    background = None
    has_transparency = False

    for raw in lines:
        if not isinstance(raw, str):
            continue
        line = raw.rstrip("\r\n")

        # Only the header line carries the image count; later lines may
        # mention "images" in warnings
        if not frame_count_seen and (match := _FRAME_COUNT.search(line)):
            frame_count = int(match.group(1))
            frame_count_seen = True

        if dimensions is None and (match := _SCREEN.search(line)):
            dimensions = (int(match.group(1)), int(match.group(2)))

        if match := _DELAY.search(line):
            delays.append(float(match.group(1)))

        if match := _LOOP_COUNT.search(line):
            loop_count = int(match.group(1))
            has_loop_extension = True
        elif _LOOP_FOREVER.search(line):
            loop_count = 0
            has_loop_extension = True

        if match := _BACKGROUND.search(line):
            background = int(match.group(1))

        if _COMMENT.search(line):
            has_comments = True

        if _EXTENSION.search(line):
            has_extensions = True

        if _TRANSPARENT.search(line):
            has_transparency = True

    if delays and len(delays) != frame_count:
        logger.debug(
            f"Dropping {len(delays)} delays that do not match {frame_count} frames"
        )
        delays = []

    return AnimationMetadata(
        frame_count=frame_count,
        dimensions=dimensions,
        delays=tuple(delays),
        loop_count=loop_count,
        has_loop_extension=has_loop_extension,
        has_comments=has_comments,
        has_extensions=has_extensions,
        background_color_index=background,
        has_transparency=has_transparency,
        size_bytes=max(0, int(size_bytes or 0)),
    )
