"""Unit tests for per-invocation scratch space."""

import os
from unittest.mock import patch

import pytest

from src.job_pipeline.scratch import ScratchSpace


class TestScratchSpace:
    """Tests for registration and cleanup."""

    def test_paths_prefixed_with_job_id(self, tmp_path):
        """Test files are named {job_id}_{name} in a job-prefixed directory."""
        with ScratchSpace(str(tmp_path), "my-vacation") as scratch:
            path = scratch.path_for("input.mp4")

            assert os.path.basename(path) == "my-vacation_input.mp4"
            assert os.path.basename(os.path.dirname(path)).startswith("my-vacation_")
            assert scratch.registered == [path]

    def test_cleanup_on_success(self, tmp_path):
        """Test every registered file and the directory are removed on exit."""
        with ScratchSpace(str(tmp_path), "clip") as scratch:
            paths = [scratch.path_for(name) for name in ("input.mov", "360p.mp4", "720p.mp4")]
            for path in paths:
                with open(path, "wb") as f:
                    f.write(b"data")

        assert not any(os.path.exists(p) for p in paths)
        assert os.listdir(tmp_path) == []

    def test_cleanup_on_error(self, tmp_path):
        """Test files are removed when the body raises."""
        with pytest.raises(RuntimeError):
            with ScratchSpace(str(tmp_path), "clip") as scratch:
                path = scratch.path_for("input.mp4")
                with open(path, "wb") as f:
                    f.write(b"partial")
                raise RuntimeError("download interrupted")

        assert not os.path.exists(path)
        assert os.listdir(tmp_path) == []

    def test_registered_but_never_created(self, tmp_path):
        """Test paths that were never written do not break cleanup."""
        with ScratchSpace(str(tmp_path), "clip") as scratch:
            scratch.path_for("720p.mp4")

        assert os.listdir(tmp_path) == []

    def test_concurrent_jobs_isolated(self, tmp_path):
        """Test two invocations of the same job get separate directories."""
        with ScratchSpace(str(tmp_path), "clip") as first, ScratchSpace(str(tmp_path), "clip") as second:
            assert first.directory != second.directory
            assert first.path_for("input.mp4") != second.path_for("input.mp4")

    def test_creates_missing_root(self, tmp_path):
        """Test a missing scratch root is created."""
        root = tmp_path / "nested" / "scratch"

        with ScratchSpace(str(root), "clip") as scratch:
            assert os.path.isdir(scratch.directory)

    def test_removal_errors_reported_not_raised(self, tmp_path):
        """Test files that cannot be removed are returned as leftovers."""
        scratch = ScratchSpace(str(tmp_path), "clip").__enter__()
        path = scratch.path_for("input.mp4")
        with open(path, "wb") as f:
            f.write(b"data")

        with patch("src.job_pipeline.scratch.os.remove", side_effect=PermissionError("busy")):
            leftovers = scratch.cleanup()

        assert path in leftovers
        assert scratch.registered == []

    def test_used_outside_context(self, tmp_path):
        """Test path_for requires an entered scratch space."""
        with pytest.raises(RuntimeError):
            ScratchSpace(str(tmp_path), "clip").path_for("input.mp4")
