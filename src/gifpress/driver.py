"""GIF driver: the user-facing entry point for saving optimized animations.

The driver picks its collaborators once, at construction: a raster engine
(Pillow unless told otherwise), a :class:`~gifpress.gifsicle.Gifsicle`
wrapper and a :class:`~gifpress.temp_workspace.TempWorkspace`. Every save
builds a fresh :class:`~gifpress.command_builder.OptimizationRequest` and
hands it to the :class:`~gifpress.pipeline.FallbackOrchestrator`.
"""

from __future__ import annotations

import logging
from pathlib import Path

from .command_builder import OptimizationRequest
from .config import (
    DEFAULT_ENGINE_CONFIG,
    DEFAULT_OPTIMIZER_CONFIG,
    EngineConfig,
    OptimizerConfig,
)
from .engines import PillowEngine, RasterEngine
from .error_handling import log_info_with_context
from .gifsicle import Gifsicle
from .info_parser import AnimationMetadata
from .pipeline import FallbackOrchestrator, OptimizationResult, TransitionHook
from .temp_workspace import TempWorkspace

logger = logging.getLogger(__name__)


class GifDriver:
    """Save animated GIFs through gifsicle with engine and copy fallbacks."""

    def __init__(
        self,
        engine: RasterEngine | None = None,
        gifsicle: Gifsicle | None = None,
        config: OptimizerConfig | None = None,
        engine_config: EngineConfig | None = None,
        workspace: TempWorkspace | None = None,
        on_transition: TransitionHook | None = None,
    ) -> None:
        self.config = config or DEFAULT_OPTIMIZER_CONFIG
        self.engine_config = engine_config or DEFAULT_ENGINE_CONFIG
        self.workspace = workspace or TempWorkspace(config=self.config)
        self.engine = engine or PillowEngine()
        self.gifsicle = gifsicle or Gifsicle(
            engine_config=self.engine_config, config=self.config
        )
        self.orchestrator = FallbackOrchestrator(
            self.gifsicle,
            self.engine,
            self.workspace,
            config=self.config,
            on_transition=on_transition,
        )

    def build_request(
        self,
        quality: int | None = None,
        lossy: int | None = None,
        lossless: bool = False,
        optimization_level: int | None = None,
        strip_metadata: bool | None = None,
        loop_count: int | None = None,
        careful: bool | None = None,
    ) -> OptimizationRequest:
        """Translate save options into an :class:`OptimizationRequest`.

        Options left as ``None`` take their value from the driver's config.
        *lossless* suppresses ``--lossy`` even when *lossy* is given.
        """
        config = self.config
        return OptimizationRequest.for_quality(
            config.DEFAULT_QUALITY if quality is None else quality,
            max_colors=config.MAX_COLORS,
            lossy=config.LOSSY and not lossless,
            lossy_override=None if lossless else lossy,
            optimization_level=(
                config.OPTIMIZATION_LEVEL if optimization_level is None else optimization_level
            ),
            strip_metadata=config.STRIP_METADATA if strip_metadata is None else strip_metadata,
            loop_count_override=loop_count,
            careful=config.CAREFUL if careful is None else careful,
        )

    def optimize_animated(
        self, source_path: Path, output_path: Path, request: OptimizationRequest
    ) -> OptimizationResult:
        return self.orchestrator.optimize_animated(source_path, output_path, request)

    def save(self, source_path: Path, output_path: Path, **options) -> OptimizationResult:
        """Optimize *source_path* into *output_path*.

        Accepts the keyword options of :meth:`build_request`.

        Raises:
            FileNotFoundError: If *source_path* does not exist
            ResourceError: If no scratch space can be created
            AllStrategiesExhausted: If even a plain copy could not be written
        """
        request = self.build_request(**options)
        result = self.optimize_animated(source_path, output_path, request)
        log_info_with_context(
            f"Saved {output_path}",
            context={
                "strategy": result.final_state.value,
                "transitions": len(result.transitions),
            },
            logger=logger,
        )
        return result

    def to_bytes(self, source_path: Path, **options) -> bytes:
        """Optimize *source_path* and return the resulting GIF as bytes."""
        with self.workspace.scoped_file(".gif") as target:
            self.save(source_path, target.path, **options)
            return target.path.read_bytes()

    def info(self, path: Path) -> AnimationMetadata:
        """Describe *path*, via ``gifsicle --info`` when available, else the engine."""
        path = Path(path)
        if self.gifsicle.is_available():
            return self.gifsicle.get_info(path)

        if not path.exists():
            raise FileNotFoundError(f"File doesn't exist: {path}")
        with self.engine.load(path) as image:
            return AnimationMetadata(
                frame_count=image.frame_count,
                dimensions=tuple(image.dimensions),
                delays=tuple(ms / 1000 for ms in image.durations_ms),
                loop_count=image.loop or 0,
                has_loop_extension=image.loop is not None,
                size_bytes=path.stat().st_size,
            )
