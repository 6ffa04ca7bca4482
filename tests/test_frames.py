"""Tests for gifpress.frames module."""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from conftest import FakeGifsicleInvoker, snapshot
from gifpress.error_handling import FrameExtractionIncomplete, ProcessTimeoutError
from gifpress.frames import (
    ExtractedFrames,
    Frame,
    FrameExtractor,
    build_frames,
    sort_frame_files,
)
from gifpress.gifsicle import Gifsicle
from gifpress.info_parser import AnimationMetadata


class TestFrame:
    """Tests for Frame validation."""

    def test_negative_index(self):
        with pytest.raises(ValueError, match="index"):
            Frame(index=-1, source_path=Path("f.000"))

    def test_negative_delay(self):
        with pytest.raises(ValueError, match="delay"):
            Frame(index=0, source_path=Path("f.000"), delay_centiseconds=-5)


class TestSortFrameFiles:
    """Tests for numeric frame ordering."""

    def test_numeric_not_lexicographic(self):
        """Test that img.10 sorts after img.2."""
        paths = [Path("img.10"), Path("img.2"), Path("img.1")]

        assert sort_frame_files(paths, "img") == [Path("img.1"), Path("img.2"), Path("img.10")]

    def test_zero_padded_suffixes(self):
        """Test gifsicle's default three-digit suffixes."""
        paths = [Path(f"a.gif.{i:03d}") for i in (11, 0, 2, 1)]

        assert [p.name for p in sort_frame_files(paths, "a.gif")] == [
            "a.gif.000",
            "a.gif.001",
            "a.gif.002",
            "a.gif.011",
        ]

    def test_unrelated_files_are_dropped(self):
        """Test that only <basename>.<digits> files are kept."""
        paths = [Path("a.gif.000"), Path("a.gif"), Path("a.gif.tmp"), Path("b.gif.001")]

        assert sort_frame_files(paths, "a.gif") == [Path("a.gif.000")]


class TestBuildFrames:
    """Tests for build_frames."""

    def test_delays_attached_by_position(self):
        metadata = AnimationMetadata(frame_count=2, delays=(0.1, 0.25))

        frames = build_frames([Path("a.000"), Path("a.001")], metadata)

        assert [f.index for f in frames] == [0, 1]
        assert [f.delay_centiseconds for f in frames] == [10, 25]

    def test_missing_delays_default_to_zero(self):
        frames = build_frames([Path("a.000")], AnimationMetadata(frame_count=1))

        assert frames[0].delay_centiseconds == 0


class TestExtractedFrames:
    """Tests for ExtractedFrames."""

    def test_complete(self):
        metadata = AnimationMetadata(frame_count=2)
        frames = [Frame(0, Path("a.000")), Frame(1, Path("a.001"))]

        extracted = ExtractedFrames(metadata=metadata, frames=frames)

        assert extracted.complete
        assert extracted.missing() is None

    def test_incomplete(self):
        extracted = ExtractedFrames(
            metadata=AnimationMetadata(frame_count=3), frames=[Frame(0, Path("a.000"))]
        )

        missing = extracted.missing()

        assert not extracted.complete
        assert isinstance(missing, FrameExtractionIncomplete)
        assert (missing.expected, missing.found) == (3, 1)

    def test_merge_inputs_without_delays(self):
        """Test that unknown delays are passed as None."""
        extracted = ExtractedFrames(
            metadata=AnimationMetadata(frame_count=1), frames=[Frame(0, Path("a.000"))]
        )

        assert extracted.merge_inputs() == [(Path("a.000"), None)]


class TestFrameExtractor:
    """Tests for FrameExtractor.extract."""

    def test_extracts_all_frames_in_order(self, animated_gif, fake_gifsicle, workspace):
        """Test a full extraction."""
        extractor = FrameExtractor(fake_gifsicle, workspace)

        with extractor.extract(animated_gif) as extracted:
            assert extracted.complete
            assert len(extracted) == 3
            assert [f.index for f in extracted] == [0, 1, 2]
            assert [f.delay_centiseconds for f in extracted] == [10, 20, 10]
            assert all(f.source_path.parent == extracted.directory.path for f in extracted)
            assert all(f.source_path.is_file() for f in extracted)
            directory = extracted.directory.path

        assert not directory.exists()

    def test_explode_runs_in_scratch_directory(self, animated_gif, fake_gifsicle, fake_invoker, workspace):
        """Test that explode writes relative names inside the scratch directory."""
        extractor = FrameExtractor(fake_gifsicle, workspace)

        with extractor.extract(animated_gif) as extracted:
            op, argv, cwd = next(call for call in fake_invoker.calls if call[0] == "explode")
            assert cwd == extracted.directory.path
            assert "--output=source.gif" in argv

    def test_zero_frames_skips_explode(self, animated_gif, fake_gifsicle, fake_invoker, workspace):
        """Test that a report of zero frames returns an empty result."""
        extractor = FrameExtractor(fake_gifsicle, workspace)

        extracted = extractor.extract(animated_gif, AnimationMetadata(frame_count=0))

        assert len(extracted) == 0
        assert extracted.directory is None
        assert "explode" not in fake_invoker.operations()

    def test_partial_extraction_is_returned(self, animated_gif, optimizer_config, workspace, caplog):
        """Test that fewer frames than reported are returned with a warning."""
        invoker = FakeGifsicleInvoker(explode_limit=2)
        gifsicle = Gifsicle(binary_path="gifsicle", config=optimizer_config, invoker=invoker)

        with FrameExtractor(gifsicle, workspace).extract(animated_gif) as extracted:
            assert len(extracted) == 2
            assert not extracted.complete
            assert extracted.missing().expected == 3

        assert "Frame extraction incomplete" in caplog.text

    def test_directory_released_when_explode_raises(self, animated_gif, optimizer_config, workspace, scratch_root):
        """Test that a timeout during explode leaves nothing behind."""
        invoker = FakeGifsicleInvoker(timeout_on=("explode",))
        gifsicle = Gifsicle(binary_path="gifsicle", config=optimizer_config, invoker=invoker)
        before = snapshot(scratch_root)

        with pytest.raises(ProcessTimeoutError):
            FrameExtractor(gifsicle, workspace).extract(animated_gif)

        assert snapshot(scratch_root) <= before

    def test_uses_given_metadata(self, animated_gif, workspace):
        """Test that supplied metadata avoids a second --info call."""
        gifsicle = MagicMock(spec=Gifsicle)
        gifsicle.execute.return_value = MagicMock(succeeded=True, exit_code=0)
        metadata = AnimationMetadata(frame_count=1)

        with FrameExtractor(gifsicle, workspace).extract(animated_gif, metadata) as extracted:
            assert extracted.metadata is metadata

        gifsicle.get_info.assert_not_called()
