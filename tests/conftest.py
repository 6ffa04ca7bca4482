import shutil
from pathlib import Path

import pytest
from PIL import Image

from gifpress.config import OptimizerConfig
from gifpress.error_handling import ProcessTimeoutError
from gifpress.gifsicle import Gifsicle
from gifpress.process import ProcessInvocation, ProcessInvoker
from gifpress.temp_workspace import TempWorkspace

# Distinct per-frame colours; Pillow merges identical consecutive frames on save
FRAME_COLORS = [
    (220, 20, 60),
    (30, 144, 255),
    (50, 205, 50),
    (255, 215, 0),
    (148, 0, 211),
    (255, 140, 0),
]

requires_gifsicle = pytest.mark.skipif(
    shutil.which("gifsicle") is None, reason="gifsicle binary not on PATH"
)


def create_gif(
    path: Path,
    frames: int = 3,
    durations: list[int] | None = None,
    loop: int | None = 0,
    size: tuple[int, int] = (16, 16),
) -> Path:
    """Write a small animated GIF with one solid colour per frame."""
    path.parent.mkdir(parents=True, exist_ok=True)
    durations = durations or [100] * frames
    images = []
    for i in range(frames):
        image = Image.new("RGB", size, FRAME_COLORS[i % len(FRAME_COLORS)])
        # A second colour keeps every frame's palette non-trivial
        image.paste((0, 0, 0), (0, 0, size[0] // 2, size[1] // 2))
        images.append(image)

    options = {"save_all": True, "append_images": images[1:], "duration": durations}
    if loop is not None:
        options["loop"] = loop
    images[0].save(path, format="GIF", **options)
    return path


def read_gif(path: Path) -> dict:
    """Frame count, per-frame durations (ms) and loop of the GIF at *path*."""
    with Image.open(path) as image:
        durations = []
        for i in range(getattr(image, "n_frames", 1)):
            image.seek(i)
            durations.append(image.info.get("duration", 0))
        return {
            "frames": len(durations),
            "durations": durations,
            "loop": image.info.get("loop"),
            "size": image.size,
        }


def snapshot(root: Path) -> set[Path]:
    if not root.exists():
        return set()
    return set(root.rglob("*"))


class FakeGifsicleInvoker(ProcessInvoker):
    """Stands in for the gifsicle binary, doing the work with Pillow.

    Records every call in ``calls`` as ``(operation, argv, cwd)``. Operations
    are ``version``, ``info``, ``explode`` and ``merge`` (anything else).
    """

    def __init__(
        self,
        fail_on: tuple[str, ...] = (),
        timeout_on: tuple[str, ...] = (),
        explode_limit: int | None = None,
        report_frames: int | None = None,
        empty_merge: bool = False,
    ) -> None:
        super().__init__(timeout=None)
        self.fail_on = set(fail_on)
        self.timeout_on = set(timeout_on)
        self.explode_limit = explode_limit
        self.report_frames = report_frames
        self.empty_merge = empty_merge
        self.calls: list[tuple[str, list[str], Path | None]] = []

    @staticmethod
    def operation(argv: list[str]) -> str:
        for flag, name in (("--version", "version"), ("--info", "info"), ("--explode", "explode")):
            if flag in argv:
                return name
        return "merge"

    def operations(self) -> list[str]:
        return [op for op, _, _ in self.calls]

    def run(self, binary_path, argv, cwd=None):
        op = self.operation(argv)
        self.calls.append((op, list(argv), cwd))

        if op in self.timeout_on:
            raise ProcessTimeoutError(f"{binary_path} timed out", context={"operation": op})
        if op in self.fail_on:
            return ProcessInvocation(
                binary_path=binary_path,
                argv=list(argv),
                exit_code=1,
                stdout_lines=[f"gifsicle: {op} failed"],
                cwd=cwd,
            )

        lines = getattr(self, f"_{op}")(argv, cwd)
        return ProcessInvocation(
            binary_path=binary_path, argv=list(argv), exit_code=0, stdout_lines=lines, cwd=cwd
        )

    def _version(self, argv, cwd):
        return ["LCDF Gifsicle 1.94", "Copyright (C) 1997-2023 Eddie Kohler"]

    def _info(self, argv, cwd):
        path = Path(argv[-1])
        info = read_gif(path)
        frames = info["frames"] if self.report_frames is None else self.report_frames
        if frames == 0:
            return [f"gifsicle: {path.name}: not a GIF"]

        width, height = info["size"]
        lines = [f"* {path.name} {frames} images", f"  logical screen {width}x{height}"]
        if info["loop"] is not None:
            lines.append("  loop forever" if info["loop"] == 0 else f"  loop count {info['loop']}")
        for i, duration in enumerate(info["durations"][:frames]):
            lines.append(f"  + image #{i} {width}x{height}")
            lines.append(f"    disposal asis delay {duration / 1000:.2f}s")
        return lines

    def _explode(self, argv, cwd):
        basename = next(arg.split("=", 1)[1] for arg in argv if arg.startswith("--output="))
        with Image.open(argv[-1]) as image:
            count = image.n_frames
            if self.explode_limit is not None:
                count = min(count, self.explode_limit)
            for i in range(count):
                image.seek(i)
                image.convert("RGB").save(Path(cwd) / f"{basename}.{i:03d}", format="GIF")
        return []

    def _merge(self, argv, cwd):
        output = None
        loop = None
        delay = None
        inputs = []
        for arg in argv:
            if arg.startswith("--output="):
                output = Path(arg.split("=", 1)[1])
            elif arg.startswith("--loopcount="):
                loop = int(arg.split("=", 1)[1])
            elif arg.startswith("--delay="):
                delay = int(arg.split("=", 1)[1])
            elif not arg.startswith("-"):
                inputs.append((Path(arg), delay))

        if self.empty_merge:
            output.write_bytes(b"")
            return []

        images = [Image.open(path).convert("RGB") for path, _ in inputs]
        options = {
            "save_all": True,
            "append_images": images[1:],
            "duration": [(d or 0) * 10 for _, d in inputs],
        }
        if loop is not None:
            options["loop"] = loop
        images[0].save(output, format="GIF", **options)
        for image in images:
            image.close()
        return []


@pytest.fixture
def animated_gif(tmp_path):
    """Three frames, delays 0.10/0.20/0.10 s, looping forever."""
    return create_gif(tmp_path / "source.gif", frames=3, durations=[100, 200, 100], loop=0)


@pytest.fixture
def scratch_root(tmp_path):
    return tmp_path / "scratch"


@pytest.fixture
def optimizer_config(scratch_root):
    return OptimizerConfig(RUN_TIMEOUT=10, TEMP_ROOT=scratch_root)


@pytest.fixture
def workspace(scratch_root):
    return TempWorkspace(root=scratch_root)


@pytest.fixture
def fake_invoker():
    return FakeGifsicleInvoker()


@pytest.fixture
def fake_gifsicle(fake_invoker, optimizer_config):
    return Gifsicle(binary_path="gifsicle", config=optimizer_config, invoker=fake_invoker)


@pytest.fixture
def missing_gifsicle(tmp_path, optimizer_config):
    """A Gifsicle whose binary does not exist."""
    return Gifsicle(binary_path=str(tmp_path / "no-such-gifsicle"), config=optimizer_config)
