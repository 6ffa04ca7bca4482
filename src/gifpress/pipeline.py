"""Animated GIF optimization with graceful degradation.

The pipeline is a small state machine::

    IDLE -> FRAMES_READY -> OPTIMIZED -> VERIFIED
      |           |             |
      +-----------+-------------+--> DIRECT_QUANTIZED_SAVE --> NAIVE_COPY

1. IDLE: probe the source with ``gifsicle --info`` and explode it into frames.
2. FRAMES_READY: plan a colour budget and merge the frames with gifsicle.
3. OPTIMIZED: check the merged file is non-empty and publish it.
4. DIRECT_QUANTIZED_SAVE: quantize and write every frame with the raster
   engine, bypassing gifsicle.
5. NAIVE_COPY: copy the source verbatim.

Every stage returns a :class:`StageResult` naming the next state; stage
failures are outcomes, not exceptions. Only a failed NAIVE_COPY
(:class:`~gifpress.error_handling.AllStrategiesExhausted`) or missing scratch
space (:class:`~gifpress.error_handling.ResourceError`) escape to the caller.
A process timeout anywhere jumps straight to NAIVE_COPY. Scratch resources
are released on every transition that no longer needs them, and all of them
are released before :meth:`FallbackOrchestrator.optimize_animated` returns.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path

from . import color_budget
from .command_builder import OptimizationRequest
from .config import DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from .engines.base import RasterEngine
from .error_handling import (
    AllStrategiesExhausted,
    GifPressError,
    ProcessTimeoutError,
    ResourceError,
)
from .frames import ExtractedFrames, FrameExtractor
from .gifsicle import Gifsicle
from .info_parser import AnimationMetadata
from .temp_workspace import TempResource, TempWorkspace, publish

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    IDLE = "idle"
    FRAMES_READY = "frames_ready"
    OPTIMIZED = "optimized"
    VERIFIED = "verified"
    DIRECT_QUANTIZED_SAVE = "direct_quantized_save"
    NAIVE_COPY = "naive_copy"


FALLBACK_STATES = frozenset(
    {PipelineState.DIRECT_QUANTIZED_SAVE, PipelineState.NAIVE_COPY}
)


@dataclass(frozen=True, slots=True)
class Transition:
    source: PipelineState
    target: PipelineState
    reason: str = ""


@dataclass(frozen=True, slots=True)
class StageResult:
    """What a stage decided. ``next_state=None`` means the run is finished."""

    next_state: PipelineState | None
    reason: str = ""


@dataclass
class OptimizationResult:
    success: bool
    output_path: Path
    final_state: PipelineState
    transitions: list[Transition] = field(default_factory=list)

    @property
    def optimized(self) -> bool:
        """True when gifsicle produced the output."""
        return self.final_state is PipelineState.VERIFIED

    @property
    def degraded(self) -> bool:
        return self.final_state in FALLBACK_STATES


TransitionHook = Callable[[Transition], None]


@dataclass
class _Run:
    """Per-call state; nothing here outlives one optimize_animated call."""

    source: Path
    output: Path
    request: OptimizationRequest
    metadata: AnimationMetadata | None = None
    frames: ExtractedFrames | None = None
    merged: TempResource | None = None
    transitions: list[Transition] = field(default_factory=list)


class FallbackOrchestrator:
    """Sequences extraction, merge and verification, degrading on failure."""

    def __init__(
        self,
        gifsicle: Gifsicle | None,
        engine: RasterEngine | None,
        workspace: TempWorkspace | None = None,
        config: OptimizerConfig | None = None,
        on_transition: TransitionHook | None = None,
    ) -> None:
        self.config = config or DEFAULT_OPTIMIZER_CONFIG
        self.gifsicle = gifsicle
        self.engine = engine
        self.workspace = workspace or TempWorkspace(config=self.config)
        self.on_transition = on_transition
        self.extractor = (
            FrameExtractor(gifsicle, self.workspace) if gifsicle is not None else None
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def optimizer_available(self) -> bool:
        return self.gifsicle is not None and self.gifsicle.is_available()

    def optimize_animated(
        self,
        source_path: Path,
        output_path: Path,
        request: OptimizationRequest,
    ) -> OptimizationResult:
        """Write an optimized version of *source_path* to *output_path*.

        Raises:
            FileNotFoundError: If *source_path* does not exist
            ResourceError: If no scratch space can be created
            AllStrategiesExhausted: If even copying the source fails
        """
        source_path = Path(source_path)
        output_path = Path(output_path)
        if not source_path.is_file():
            raise FileNotFoundError(f"Source file not found: {source_path}")

        run = _Run(source=source_path, output=output_path, request=request)
        handlers = {
            PipelineState.IDLE: self._extract,
            PipelineState.FRAMES_READY: self._optimize,
            PipelineState.OPTIMIZED: self._verify,
            PipelineState.DIRECT_QUANTIZED_SAVE: self._direct_quantized_save,
            PipelineState.NAIVE_COPY: self._naive_copy,
        }

        state = PipelineState.IDLE
        try:
            if not self.optimizer_available():
                self._transition(
                    run,
                    state,
                    StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, "optimizer unavailable"),
                )
                state = PipelineState.DIRECT_QUANTIZED_SAVE

            while state is not PipelineState.VERIFIED:
                outcome = handlers[state](run)
                if outcome.next_state is None:
                    logger.debug(f"{state.value} finished: {outcome.reason}")
                    break
                self._transition(run, state, outcome)
                state = outcome.next_state
        finally:
            self._release(run, keep_for=None)

        return OptimizationResult(
            success=True,
            output_path=output_path,
            final_state=state,
            transitions=run.transitions,
        )

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _release(self, run: _Run, keep_for: PipelineState | None) -> None:
        """Release every scratch resource the *keep_for* state does not use."""
        if run.frames is not None and keep_for is not PipelineState.FRAMES_READY:
            run.frames.release()
            run.frames = None
        if run.merged is not None and keep_for is not PipelineState.OPTIMIZED:
            self.workspace.release(run.merged)
            run.merged = None

    def _transition(self, run: _Run, source: PipelineState, outcome: StageResult) -> None:
        target = outcome.next_state
        self._release(run, keep_for=target)

        transition = Transition(source=source, target=target, reason=outcome.reason)
        run.transitions.append(transition)

        message = f"{run.source.name}: {source.value} -> {target.value}"
        if outcome.reason:
            message += f" ({outcome.reason})"
        if target in FALLBACK_STATES:
            logger.warning(f"⚠️  {message}")
        else:
            logger.info(message)

        if self.on_transition is not None:
            self.on_transition(transition)

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------

    def _extract(self, run: _Run) -> StageResult:
        try:
            run.metadata = self.gifsicle.get_info(run.source)
            run.frames = self.extractor.extract(run.source, run.metadata)
        except ResourceError:
            raise
        except ProcessTimeoutError as e:
            return StageResult(PipelineState.NAIVE_COPY, f"timeout: {e}")
        except (GifPressError, OSError) as e:
            return StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, f"extraction failed: {e}")

        if not run.frames.frames:
            return StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, "no frames extracted")

        incomplete = run.frames.missing()
        if incomplete is not None:
            return StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, str(incomplete))

        return StageResult(PipelineState.FRAMES_READY, f"{len(run.frames)} frames")

    def _current_colors(self, source: Path, fallback: int) -> int:
        if self.engine is None:
            return fallback
        try:
            with self.engine.load(source) as image:
                return image.count_colors() or fallback
        except Exception as e:
            logger.debug(f"Colour count unavailable for {source}: {e}")
            return fallback

    def _optimize(self, run: _Run) -> StageResult:
        request = run.request
        budget = request.color_budget
        if budget is not None:
            budget = color_budget.cap(budget, self._current_colors(run.source, budget))
        effective = replace(
            request, color_budget=budget, loop_count_override=self._loop_count(run)
        )

        try:
            run.merged = self.workspace.acquire_file(".gif")
            result = self.gifsicle.merge(run.frames.merge_inputs(), run.merged.path, effective)
        except ResourceError:
            raise
        except ProcessTimeoutError as e:
            return StageResult(PipelineState.NAIVE_COPY, f"timeout: {e}")
        except (GifPressError, OSError, ValueError) as e:
            return StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, f"merge failed: {e}")

        if not result.succeeded:
            return StageResult(
                PipelineState.DIRECT_QUANTIZED_SAVE,
                f"merge exited with status {result.exit_code}",
            )
        if not run.merged.path.exists():
            return StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, "merge produced no output")

        return StageResult(
            PipelineState.OPTIMIZED,
            f"merged with {budget or 'source'} colours in {result.duration_ms} ms",
        )

    def _verify(self, run: _Run) -> StageResult:
        merged = run.merged.path
        try:
            if merged.stat().st_size == 0:
                return StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, "optimizer output is empty")
            publish(merged, run.output)
        except OSError as e:
            return StageResult(PipelineState.DIRECT_QUANTIZED_SAVE, f"could not publish output: {e}")
        return StageResult(PipelineState.VERIFIED, f"{run.output.stat().st_size} bytes")

    def _direct_quantized_save(self, run: _Run) -> StageResult:
        if self.engine is None:
            return StageResult(PipelineState.NAIVE_COPY, "no raster engine")

        request = run.request
        try:
            with self.workspace.scoped_file(".gif") as target:
                with self.engine.load(run.source) as image:
                    budget = request.color_budget or color_budget.MAX_COLORS
                    budget = color_budget.cap(budget, image.count_colors() or budget)
                    frames = [
                        image.quantize(image.render_frame(i), budget)
                        for i in range(image.frame_count)
                    ]
                    durations, loop = self._timing(run, image.durations_ms, image.loop)
                self.engine.write_animation(frames, target.path, durations, loop)

                if target.path.stat().st_size == 0:
                    return StageResult(PipelineState.NAIVE_COPY, "engine wrote an empty file")
                publish(target.path, run.output)
        except ResourceError:
            raise
        except Exception as e:
            return StageResult(PipelineState.NAIVE_COPY, f"direct save failed: {e}")

        return StageResult(None, f"quantized {len(frames)} frames to {budget} colours")

    def _loop_count(self, run: _Run) -> int | None:
        """The override, else the source's own loop; None when it never had one."""
        if run.request.loop_count_override is not None:
            return run.request.loop_count_override
        if run.metadata is not None and run.metadata.has_loop_extension:
            return run.metadata.loop_count
        return None

    def _timing(
        self, run: _Run, engine_durations: list[int], engine_loop: int | None
    ) -> tuple[list[int], int | None]:
        """Prefer gifsicle's view of delays and looping, fall back to the engine's."""
        durations = list(engine_durations)
        if run.metadata is not None and len(run.metadata.delays) == len(durations):
            durations = [int(round(delay * 1000)) for delay in run.metadata.delays]

        if run.request.loop_count_override is None and not (
            run.metadata is not None and run.metadata.frame_count
        ):
            return durations, engine_loop
        return durations, self._loop_count(run)

    def _naive_copy(self, run: _Run) -> StageResult:
        try:
            publish(run.source, run.output)
        except OSError as e:
            raise AllStrategiesExhausted(
                f"Could not write {run.output}", cause=e, context={"source": run.source}
            ) from e
        return StageResult(None, "copied source verbatim")
