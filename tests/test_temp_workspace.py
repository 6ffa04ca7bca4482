"""Tests for gifpress.temp_workspace module."""

import os
from unittest.mock import patch

import pytest

from gifpress.error_handling import ResourceError
from gifpress.temp_workspace import TempKind, TempResource, TempWorkspace, publish


class TestAcquire:
    """Tests for acquiring scratch files and directories."""

    def test_acquire_file_creates_empty_file(self, workspace, scratch_root):
        """Test that acquire_file creates an empty file under the root."""
        resource = workspace.acquire_file(".gif")

        assert resource.kind is TempKind.FILE
        assert resource.path.parent == scratch_root
        assert resource.path.is_file()
        assert resource.path.stat().st_size == 0
        assert resource.path.suffix == ".gif"

    def test_acquire_directory_creates_directory(self, workspace, scratch_root):
        """Test that acquire_directory creates a directory under the root."""
        resource = workspace.acquire_directory()

        assert resource.kind is TempKind.DIRECTORY
        assert resource.path.is_dir()
        assert resource.path.parent == scratch_root

    def test_names_carry_prefix_and_pid(self, workspace):
        """Test that names combine the prefix, the pid and a random part."""
        resource = workspace.acquire_file()

        assert resource.path.name.startswith(f"gifpress-{os.getpid()}-")

    def test_names_are_unique(self, workspace):
        """Test that many acquisitions never collide."""
        paths = {workspace.acquire_file().path for _ in range(50)}
        paths |= {workspace.acquire_directory().path for _ in range(50)}

        assert len(paths) == 100

    def test_unusable_root_raises_resource_error(self, tmp_path):
        """Test that a root that cannot be created raises ResourceError."""
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        workspace = TempWorkspace(root=blocker / "scratch")

        with pytest.raises(ResourceError):
            workspace.acquire_directory()
        with pytest.raises(ResourceError):
            workspace.acquire_file()

    def test_custom_prefix(self, scratch_root):
        """Test that an explicit prefix wins over the config."""
        workspace = TempWorkspace(root=scratch_root, prefix="job-")

        assert workspace.acquire_file().path.name.startswith("job-")


class TestRelease:
    """Tests for releasing scratch resources."""

    def test_release_file(self, workspace):
        """Test that a released file is gone."""
        resource = workspace.acquire_file()
        workspace.release(resource)

        assert not resource.path.exists()

    def test_release_directory_with_contents(self, workspace):
        """Test that a released directory is removed with its contents."""
        resource = workspace.acquire_directory()
        (resource.path / "frame.000").write_bytes(b"GIF89a")
        (resource.path / "nested").mkdir()

        workspace.release(resource)

        assert not resource.path.exists()

    def test_release_is_idempotent(self, workspace):
        """Test that releasing twice is a no-op."""
        resource = workspace.acquire_directory()
        workspace.release(resource)
        workspace.release(resource)

        assert not resource.path.exists()

    def test_release_never_created_resource(self, workspace, scratch_root):
        """Test that releasing a resource that never existed does not raise."""
        workspace.release(TempResource(scratch_root / "ghost", TempKind.FILE))
        workspace.release(TempResource(scratch_root / "ghost-dir", TempKind.DIRECTORY))
        workspace.release(None)

    def test_release_logs_other_errors(self, workspace, caplog):
        """Test that unexpected filesystem errors are logged, not raised."""
        resource = workspace.acquire_file()

        with patch("pathlib.Path.unlink", side_effect=PermissionError("denied")):
            workspace.release(resource)

        assert "Could not release temp file" in caplog.text


class TestScoped:
    """Tests for the scoped context managers."""

    def test_scoped_file_released_on_success(self, workspace):
        """Test that scoped_file cleans up after normal exit."""
        with workspace.scoped_file(".gif") as resource:
            resource.path.write_bytes(b"data")
            path = resource.path

        assert not path.exists()

    def test_scoped_directory_released_on_error(self, workspace):
        """Test that scoped_directory cleans up when the body raises."""
        with pytest.raises(RuntimeError):
            with workspace.scoped_directory() as resource:
                (resource.path / "frame.000").write_bytes(b"x")
                path = resource.path
                raise RuntimeError("boom")

        assert not path.exists()


class TestPublish:
    """Tests for publish."""

    def test_publish_copies_bytes(self, tmp_path):
        """Test that publish writes an exact copy."""
        source = tmp_path / "source.gif"
        source.write_bytes(b"GIF89a-content")

        destination = publish(source, tmp_path / "out" / "result.gif")

        assert destination.read_bytes() == b"GIF89a-content"

    def test_publish_replaces_existing(self, tmp_path):
        """Test that an existing destination is replaced."""
        source = tmp_path / "source.gif"
        source.write_bytes(b"new")
        destination = tmp_path / "result.gif"
        destination.write_bytes(b"old")

        publish(source, destination)

        assert destination.read_bytes() == b"new"

    def test_publish_leaves_no_part_file_on_failure(self, tmp_path):
        """Test that a failed publish leaves neither destination nor part file."""
        source = tmp_path / "source.gif"
        source.write_bytes(b"data")
        out_dir = tmp_path / "out"
        out_dir.mkdir()

        with patch("gifpress.temp_workspace.os.replace", side_effect=OSError("disk full")):
            with pytest.raises(OSError, match="disk full"):
                publish(source, out_dir / "result.gif")

        assert list(out_dir.iterdir()) == []

    def test_publish_missing_source(self, tmp_path):
        """Test that a missing source propagates the filesystem error."""
        with pytest.raises(FileNotFoundError):
            publish(tmp_path / "missing.gif", tmp_path / "result.gif")
