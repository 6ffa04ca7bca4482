"""Capability interface shared by the raster back ends.

The pipeline only ever talks to these two classes; which concrete engine
sits behind them is decided once, when the driver is constructed.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Sequence
from pathlib import Path


class RasterImage(ABC):
    """A loaded, possibly multi-frame image.

    ``render_frame`` returns a fully coalesced frame encoded as a single-frame
    GIF; ``quantize`` takes and returns the same encoding.
    """

    frame_count: int
    dimensions: tuple[int, int]
    durations_ms: list[int]
    loop: int | None

    @abstractmethod
    def render_frame(self, index: int) -> bytes:
        """Return frame *index* as GIF bytes."""

    @abstractmethod
    def quantize(self, frame: bytes, color_budget: int) -> bytes:
        """Return *frame* reduced to at most *color_budget* colours."""

    @abstractmethod
    def count_colors(self) -> int:
        """Number of distinct colours used across the frames (capped at 257)."""

    def close(self) -> None:
        """Release whatever the image holds. Safe to call twice."""

    def __enter__(self) -> RasterImage:
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()


class RasterEngine(ABC):
    """Factory for :class:`RasterImage` objects plus an animation writer."""

    name: str = "base"

    @abstractmethod
    def load(self, path: Path) -> RasterImage:
        """Open *path*.

        Raises:
            EngineError: If the file cannot be decoded
        """

    @abstractmethod
    def write_animation(
        self,
        frames: Sequence[bytes],
        output_path: Path,
        durations_ms: Sequence[int],
        loop: int | None = 0,
    ) -> None:
        """Write *frames* (GIF bytes) as one animated GIF at *output_path*.

        *loop* of 0 repeats forever, ``None`` writes no loop extension.

        Raises:
            EngineError: If the animation cannot be written
        """

    def is_available(self) -> bool:
        return True
