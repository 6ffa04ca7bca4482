"""Scoped temporary files and directories.

Every scratch artifact of a pipeline run is a :class:`TempResource` handed out
by a :class:`TempWorkspace`. Names combine the process id with a random
``uuid4`` component so that concurrent runs, in this process or in others
sharing the same temp root, never collide. Release is idempotent; the
``scoped_*`` context managers guarantee it runs on every exit path.
"""

from __future__ import annotations

import logging
import os
import shutil
import tempfile
import uuid
from collections.abc import Generator
from contextlib import contextmanager
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from .config import DEFAULT_OPTIMIZER_CONFIG, OptimizerConfig
from .error_handling import ResourceError, error_context

logger = logging.getLogger(__name__)


class TempKind(Enum):
    FILE = "file"
    DIRECTORY = "directory"


@dataclass(frozen=True, slots=True)
class TempResource:
    """A scratch file or directory owned by exactly one operation."""

    path: Path
    kind: TempKind


class TempWorkspace:
    """Hands out uniquely named scratch resources under a temp root."""

    def __init__(
        self,
        root: Path | None = None,
        prefix: str | None = None,
        config: OptimizerConfig | None = None,
    ) -> None:
        config = config or DEFAULT_OPTIMIZER_CONFIG
        self.root = Path(root or config.TEMP_ROOT or tempfile.gettempdir())
        self.prefix = prefix or config.TEMP_PREFIX

    def _unique_path(self, suffix: str = "") -> Path:
        return self.root / f"{self.prefix}{os.getpid()}-{uuid.uuid4().hex}{suffix}"

    def acquire_file(self, suffix: str = "") -> TempResource:
        """Create an empty, uniquely named file and return it."""
        path = self._unique_path(suffix)
        with error_context(
            "create temp file", ResourceError, context={"path": path}, logger=logger
        ):
            self.root.mkdir(parents=True, exist_ok=True)
            # "x" fails instead of clobbering if the name somehow exists
            with open(path, "xb"):
                pass
        logger.debug(f"Acquired temp file {path}")
        return TempResource(path=path, kind=TempKind.FILE)

    def acquire_directory(self) -> TempResource:
        """Create a uniquely named directory and return it."""
        path = self._unique_path()
        with error_context(
            "create temp directory", ResourceError, context={"path": path}, logger=logger
        ):
            self.root.mkdir(parents=True, exist_ok=True)
            path.mkdir()
        logger.debug(f"Acquired temp directory {path}")
        return TempResource(path=path, kind=TempKind.DIRECTORY)

    def release(self, resource: TempResource | None) -> None:
        """Delete *resource*. Already-released or missing resources are a no-op."""
        if resource is None:
            return

        path = resource.path
        try:
            if resource.kind is TempKind.DIRECTORY:
                shutil.rmtree(path)
            else:
                path.unlink()
        except FileNotFoundError:
            return
        except OSError as e:
            logger.warning(f"⚠️  Could not release temp {resource.kind.value} {path}: {e}")
            return
        logger.debug(f"Released temp {resource.kind.value} {path}")

    @contextmanager
    def scoped_file(self, suffix: str = "") -> Generator[TempResource, None, None]:
        """Context manager yielding a temp file that is deleted on exit."""
        resource = self.acquire_file(suffix)
        try:
            yield resource
        finally:
            self.release(resource)

    @contextmanager
    def scoped_directory(self) -> Generator[TempResource, None, None]:
        """Context manager yielding a temp directory that is removed on exit."""
        resource = self.acquire_directory()
        try:
            yield resource
        finally:
            self.release(resource)


def publish(source: Path, destination: Path) -> Path:
    """Copy *source* to *destination* without ever exposing a partial file.

    The bytes are written to a hidden sibling ``.part`` file first and then
    moved into place with :func:`os.replace`, which is atomic on the same
    filesystem. Filesystem errors propagate.
    """
    destination = Path(destination)
    destination.parent.mkdir(parents=True, exist_ok=True)
    part = destination.with_name(f".{destination.name}.{uuid.uuid4().hex}.part")
    try:
        shutil.copyfile(source, part)
        os.replace(part, destination)
    finally:
        if part.exists():
            part.unlink()
    return destination
