"""Round trips through the real gifsicle binary.

Skipped unless ``gifsicle`` is on PATH.
"""

import pytest

from conftest import create_gif, read_gif, requires_gifsicle, snapshot
from gifpress.command_builder import OptimizationRequest
from gifpress.driver import GifDriver
from gifpress.frames import FrameExtractor
from gifpress.gifsicle import Gifsicle
from gifpress.pipeline import PipelineState

pytestmark = [requires_gifsicle, pytest.mark.external_tools]


@pytest.fixture
def gifsicle(optimizer_config):
    return Gifsicle(binary_path="gifsicle", config=optimizer_config)


@pytest.fixture
def driver(gifsicle, optimizer_config, workspace):
    return GifDriver(gifsicle=gifsicle, config=optimizer_config, workspace=workspace)


class TestRealGifsicle:
    """Tests against the installed gifsicle."""

    def test_version(self, gifsicle):
        assert gifsicle.is_available()
        assert gifsicle.version()

    def test_info(self, gifsicle, animated_gif):
        metadata = gifsicle.get_info(animated_gif)

        assert metadata.frame_count == 3
        assert metadata.dimensions == (16, 16)
        assert metadata.delays_centiseconds == [10, 20, 10]
        assert metadata.loop_count == 0

    def test_explode_sorts_many_frames(self, gifsicle, workspace, tmp_path):
        """Test that frames past .009 keep their numeric order."""
        source = create_gif(tmp_path / "long.gif", frames=12, durations=[10 * (i + 1) for i in range(12)])

        with FrameExtractor(gifsicle, workspace).extract(source) as frames:
            assert frames.complete
            assert [f.delay_centiseconds for f in frames] == [i + 1 for i in range(12)]

    def test_round_trip(self, driver, animated_gif, tmp_path, scratch_root):
        """Test that frame count, delays and infinite looping survive."""
        output = tmp_path / "out.gif"
        before = snapshot(scratch_root)

        result = driver.save(animated_gif, output)

        assert result.final_state is PipelineState.VERIFIED
        info = read_gif(output)
        assert info["frames"] == 3
        assert all(abs(a - b) <= 10 for a, b in zip(info["durations"], [100, 200, 100]))
        assert info["loop"] == 0
        assert snapshot(scratch_root) - before == set()

    def test_optimize_is_deterministic(self, gifsicle, animated_gif, tmp_path):
        """Test that identical requests give byte-identical output."""
        request = OptimizationRequest.for_quality(80, careful=True)
        first = tmp_path / "first.gif"
        second = tmp_path / "second.gif"

        assert gifsicle.optimize(animated_gif, first, request)
        assert gifsicle.optimize(animated_gif, second, request)

        assert first.read_bytes() == second.read_bytes()

    def test_set_loop_count(self, gifsicle, animated_gif, tmp_path):
        output = tmp_path / "loop.gif"

        assert gifsicle.set_loop_count(animated_gif, output, 3)

        assert gifsicle.get_info(output).loop_count == 3

    def test_change_delay(self, gifsicle, animated_gif, tmp_path):
        output = tmp_path / "delay.gif"

        assert gifsicle.change_delay(animated_gif, output, 7)

        assert gifsicle.get_info(output).delays_centiseconds == [7, 7, 7]
