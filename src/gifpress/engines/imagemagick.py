"""ImageMagick back end, driven through the ``magick`` command line.

On load the whole animation is coalesced into a scratch directory in one
call (``magick SRC -coalesce frame_%05d.gif``); frames are then served from
there and quantized one file at a time. Every scratch artifact comes from a
:class:`~gifpress.temp_workspace.TempWorkspace` and is released on close.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from pathlib import Path

from ..config import DEFAULT_ENGINE_CONFIG, DEFAULT_OPTIMIZER_CONFIG, EngineConfig, OptimizerConfig
from ..error_handling import EngineError
from ..process import ProcessInvocation, ProcessInvoker
from ..system_tools import ToolInfo, discover_tool
from ..temp_workspace import TempWorkspace
from .base import RasterEngine, RasterImage

logger = logging.getLogger(__name__)


class ImageMagickImage(RasterImage):
    def __init__(self, engine: ImageMagickEngine, path: Path) -> None:
        self.engine = engine
        self.path = Path(path)
        self.loop = None
        self._directory = None

        geometry = engine._identify(
            ["-format", "%W %H %T\n", str(self.path)], f"identify {self.path}"
        )
        rows = [line.split() for line in geometry.stdout_lines if line.strip()]
        try:
            self.frame_count = len(rows)
            self.dimensions = (int(rows[0][0]), int(rows[0][1]))
            # %T is in ticks of 1/100 s
            self.durations_ms = [int(row[2]) * 10 for row in rows]
        except (IndexError, ValueError) as e:
            raise EngineError(f"Unexpected identify output for {self.path}", cause=e) from e

        self._directory = engine.workspace.acquire_directory()
        try:
            engine._run_checked(
                [
                    str(self.path),
                    "-coalesce",
                    str(self._directory.path / "frame_%05d.gif"),
                ],
                f"coalesce {self.path}",
            )
        except BaseException:
            self.close()
            raise

    def _frame_path(self, index: int) -> Path:
        if not 0 <= index < self.frame_count:
            raise IndexError(f"Frame {index} out of range (0-{self.frame_count - 1})")
        return self._directory.path / f"frame_{index:05d}.gif"

    def render_frame(self, index: int) -> bytes:
        path = self._frame_path(index)
        try:
            return path.read_bytes()
        except OSError as e:
            raise EngineError(f"Coalesced frame {index} missing", cause=e) from e

    def quantize(self, frame: bytes, color_budget: int) -> bytes:
        workspace = self.engine.workspace
        with workspace.scoped_file(".gif") as source, workspace.scoped_file(".gif") as target:
            source.path.write_bytes(frame)
            self.engine._run_checked(
                [str(source.path), "+dither", "-colors", str(color_budget), str(target.path)],
                f"quantize to {color_budget} colours",
            )
            return target.path.read_bytes()

    def count_colors(self) -> int:
        result = self.engine._identify(
            ["-format", "%k\n", str(self.path)], f"count colours of {self.path}"
        )
        counts = [int(line) for line in result.stdout_lines if line.strip().isdigit()]
        return max(counts, default=0)

    def close(self) -> None:
        if self._directory is not None:
            self.engine.workspace.release(self._directory)
            self._directory = None


class ImageMagickEngine(RasterEngine):
    name = "imagemagick"

    def __init__(
        self,
        workspace: TempWorkspace | None = None,
        engine_config: EngineConfig | None = None,
        config: OptimizerConfig | None = None,
        invoker: ProcessInvoker | None = None,
    ) -> None:
        config = config or DEFAULT_OPTIMIZER_CONFIG
        self.engine_config = engine_config or DEFAULT_ENGINE_CONFIG
        self.workspace = workspace or TempWorkspace(config=config)
        self.invoker = invoker or ProcessInvoker(timeout=config.timeout)
        self._tool: ToolInfo | None = None

    @property
    def tool(self) -> ToolInfo:
        if self._tool is None:
            self._tool = discover_tool("imagemagick", self.engine_config, self.invoker)
        return self._tool

    def is_available(self) -> bool:
        return self.tool.available

    def _identify(self, argv: list[str], what: str) -> ProcessInvocation:
        # ImageMagick 6 ships "identify" as its own binary next to "convert"
        binary = Path(self.tool.name)
        if binary.stem == "convert":
            identify = str(binary.with_name("identify" + binary.suffix))
            return self._run_checked(argv, what, binary=identify)
        return self._run_checked(["identify", *argv], what)

    def _run_checked(
        self, argv: list[str], what: str, binary: str | None = None
    ) -> ProcessInvocation:
        try:
            self.tool.require()
            result = self.invoker.run(binary or self.tool.name, argv)
        except Exception as e:
            raise EngineError(f"ImageMagick could not {what}", cause=e) from e

        if not result.succeeded:
            raise EngineError(
                f"ImageMagick could not {what} (exit {result.exit_code})",
                context={"output": result.stdout_lines[-5:]},
            )
        return result

    def load(self, path: Path) -> ImageMagickImage:
        return ImageMagickImage(self, path)

    def write_animation(
        self,
        frames: Sequence[bytes],
        output_path: Path,
        durations_ms: Sequence[int],
        loop: int | None = 0,
    ) -> None:
        if not frames:
            raise EngineError("No frames to write")

        with self.workspace.scoped_directory() as directory:
            argv = ["-dispose", "Background"]
            if loop is not None:
                argv += ["-loop", str(loop)]
            for i, data in enumerate(frames):
                frame_path = directory.path / f"frame_{i:05d}.gif"
                frame_path.write_bytes(data)
                delay_ms = durations_ms[i] if i < len(durations_ms) else 100
                argv += ["-delay", str(max(0, round(delay_ms / 10))), str(frame_path)]
            argv.append(str(output_path))
            self._run_checked(argv, f"write {output_path}")
        logger.debug(f"ImageMagick wrote {len(frames)} frames to {output_path}")
