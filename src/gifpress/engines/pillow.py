"""Pillow back end: decodes and quantizes frames in-process."""

from __future__ import annotations

import io
import logging
from collections.abc import Sequence
from pathlib import Path

import numpy as np
from PIL import Image

from ..error_handling import EngineError
from .base import RasterEngine, RasterImage

logger = logging.getLogger(__name__)

# GIF's palette limit; counting stops once it is exceeded
COLOR_COUNT_CAP = 257


def _encode_gif(image: Image.Image) -> bytes:
    buffer = io.BytesIO()
    image.save(buffer, format="GIF")
    return buffer.getvalue()


class PillowImage(RasterImage):
    def __init__(self, path: Path) -> None:
        try:
            self._image = Image.open(path)
            self._image.load()
        except Exception as e:
            raise EngineError(f"Pillow could not open {path}", cause=e) from e

        self.path = Path(path)
        self.frame_count = getattr(self._image, "n_frames", 1)
        self.dimensions = self._image.size
        self.loop = self._image.info.get("loop")

        durations = []
        for i in range(self.frame_count):
            self._image.seek(i)
            durations.append(int(self._image.info.get("duration", 100) or 0))
        self.durations_ms = durations
        self._image.seek(0)

    def _rgba(self, index: int) -> Image.Image:
        if not 0 <= index < self.frame_count:
            raise IndexError(f"Frame {index} out of range (0-{self.frame_count - 1})")
        # Pillow composites GIF frames onto the previous ones while seeking
        self._image.seek(index)
        return self._image.convert("RGBA")

    def render_frame(self, index: int) -> bytes:
        return _encode_gif(self._rgba(index))

    def quantize(self, frame: bytes, color_budget: int) -> bytes:
        try:
            with Image.open(io.BytesIO(frame)) as source:
                rgba = source.convert("RGBA")
            # Fast octree is the only built-in method that keeps alpha
            quantized = rgba.quantize(
                colors=color_budget,
                method=Image.Quantize.FASTOCTREE,
                dither=Image.Dither.NONE,
            )
            return _encode_gif(quantized)
        except Exception as e:
            raise EngineError(f"Pillow could not quantize frame to {color_budget} colours", cause=e) from e

    def count_colors(self) -> int:
        seen: np.ndarray | None = None
        for i in range(self.frame_count):
            pixels = np.asarray(self._rgba(i)).reshape(-1, 4)
            colors = np.unique(pixels, axis=0)
            seen = colors if seen is None else np.unique(np.vstack([seen, colors]), axis=0)
            if len(seen) >= COLOR_COUNT_CAP:
                return COLOR_COUNT_CAP
        return 0 if seen is None else int(len(seen))

    def close(self) -> None:
        self._image.close()


class PillowEngine(RasterEngine):
    name = "pillow"

    def load(self, path: Path) -> PillowImage:
        return PillowImage(path)

    def write_animation(
        self,
        frames: Sequence[bytes],
        output_path: Path,
        durations_ms: Sequence[int],
        loop: int | None = 0,
    ) -> None:
        if not frames:
            raise EngineError("No frames to write")

        images = []
        try:
            for data in frames:
                images.append(Image.open(io.BytesIO(data)))

            options = {
                "format": "GIF",
                "save_all": True,
                "append_images": images[1:],
                "duration": list(durations_ms) if len(durations_ms) == len(images) else 100,
                # Frames are coalesced, so each one fully replaces the last
                "disposal": 2,
                "optimize": False,
            }
            if loop is not None:
                options["loop"] = loop

            images[0].save(output_path, **options)
        except EngineError:
            raise
        except Exception as e:
            raise EngineError(f"Pillow could not write {output_path}", cause=e) from e
        finally:
            for image in images:
                image.close()
        logger.debug(f"Pillow wrote {len(frames)} frames to {output_path}")
