"""Splitting an animated GIF into individually addressable frame files."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path

from .command_builder import Operation
from .error_handling import FrameExtractionIncomplete, log_warning_with_context
from .gifsicle import Gifsicle
from .info_parser import AnimationMetadata
from .temp_workspace import TempResource, TempWorkspace

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class Frame:
    """One exploded frame. *index* fixes its position in the animation."""

    index: int
    source_path: Path
    delay_centiseconds: int = 0

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Frame index must be non-negative, got {self.index}")
        if self.delay_centiseconds < 0:
            raise ValueError(
                f"Frame delay must be non-negative, got {self.delay_centiseconds}"
            )


@dataclass
class ExtractedFrames:
    """Frames produced by :meth:`FrameExtractor.extract` plus the directory holding them.

    The directory belongs to whoever holds this object; call :meth:`release`
    (or use it as a context manager) once the frames have been consumed.
    """

    metadata: AnimationMetadata
    frames: list[Frame] = field(default_factory=list)
    directory: TempResource | None = None
    workspace: TempWorkspace | None = None
    exit_code: int | None = None

    def __len__(self) -> int:
        return len(self.frames)

    def __iter__(self):
        return iter(self.frames)

    def __enter__(self) -> ExtractedFrames:
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()

    @property
    def complete(self) -> bool:
        """True when every frame the info report announced was extracted."""
        return bool(self.frames) and len(self.frames) >= self.metadata.frame_count

    def missing(self) -> FrameExtractionIncomplete | None:
        if self.complete:
            return None
        return FrameExtractionIncomplete(self.metadata.frame_count, len(self.frames))

    def merge_inputs(self) -> list[tuple[Path, int | None]]:
        """``(path, delay)`` pairs in frame order, delays only when known."""
        with_delays = bool(self.metadata.delays)
        return [
            (frame.source_path, frame.delay_centiseconds if with_delays else None)
            for frame in self.frames
        ]

    def release(self) -> None:
        if self.workspace is not None:
            self.workspace.release(self.directory)
        self.directory = None


def frame_pattern(basename: str) -> re.Pattern[str]:
    """Match ``<basename>.<digits>``, capturing the numeric suffix."""
    return re.compile(rf"^{re.escape(basename)}\.(\d+)$")


def sort_frame_files(paths: list[Path], basename: str) -> list[Path]:
    """Keep files named ``<basename>.<n>`` and order them by *n* numerically.

    ``img.10`` sorts after ``img.2``; unrelated files are dropped.
    """
    pattern = frame_pattern(basename)
    numbered = []
    for path in paths:
        match = pattern.match(path.name)
        if match:
            numbered.append((int(match.group(1)), path))
    numbered.sort(key=lambda item: item[0])
    return [path for _, path in numbered]


def build_frames(paths: list[Path], metadata: AnimationMetadata) -> list[Frame]:
    delays = metadata.delays_centiseconds
    return [
        Frame(
            index=position,
            source_path=path,
            delay_centiseconds=delays[position] if position < len(delays) else 0,
        )
        for position, path in enumerate(paths)
    ]


class FrameExtractor:
    """Explodes a GIF with gifsicle into a scratch directory."""

    def __init__(self, gifsicle: Gifsicle, workspace: TempWorkspace) -> None:
        self.gifsicle = gifsicle
        self.workspace = workspace

    def extract(
        self, source_path: Path, metadata: AnimationMetadata | None = None
    ) -> ExtractedFrames:
        """Explode *source_path* and return its frames in animation order.

        When the info report announces zero frames nothing is exploded and an
        empty result is returned. A non-zero exit with some frames on disk
        returns the partial set; the caller judges it via
        :attr:`ExtractedFrames.complete`.

        Raises:
            BinaryUnavailable, ProcessLaunchError, ProcessTimeoutError: from gifsicle
            ResourceError: If the scratch directory cannot be created
        """
        source_path = Path(source_path)
        if metadata is None:
            metadata = self.gifsicle.get_info(source_path)

        if metadata.frame_count == 0:
            logger.debug(f"{source_path} reports no frames, nothing to extract")
            return ExtractedFrames(metadata=metadata)

        directory = self.workspace.acquire_directory()
        try:
            basename = source_path.name
            result = self.gifsicle.execute(
                Operation.EXPLODE,
                [source_path],
                output_path=basename,
                cwd=directory.path,
            )
            paths = sort_frame_files(list(directory.path.iterdir()), basename)
        except BaseException:
            self.workspace.release(directory)
            raise

        extracted = ExtractedFrames(
            metadata=metadata,
            frames=build_frames(paths, metadata),
            directory=directory,
            workspace=self.workspace,
            exit_code=result.exit_code,
        )

        if not result.succeeded or not extracted.complete:
            log_warning_with_context(
                "Frame extraction incomplete",
                context={
                    "source": source_path,
                    "exit_code": result.exit_code,
                    "expected": metadata.frame_count,
                    "found": len(extracted),
                },
                logger=logger,
            )
        else:
            logger.debug(f"Extracted {len(extracted)} frames from {source_path}")
        return extracted
