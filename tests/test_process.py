"""Tests for process.py module."""

import sys
from pathlib import Path

import pytest

from oxbuild.process import SubprocessExecutor


class TestSubprocessExecutor:
    """Tests for SubprocessExecutor.run."""

    def test_captures_output(self, tmp_path):
        result = SubprocessExecutor().run(
            [sys.executable, "-c", "import os; print(os.getcwd())"],
            cwd=tmp_path,
            capture=True,
        )
        assert result.success
        assert Path(result.stdout.strip()).resolve() == tmp_path.resolve()

    def test_exit_code(self):
        result = SubprocessExecutor().run([sys.executable, "-c", "raise SystemExit(4)"])
        assert result.exit_code == 4
        assert result.success is False
        assert result.stdout is None

    def test_env_passed(self):
        result = SubprocessExecutor().run(
            [sys.executable, "-c", "import os; print(os.environ['OXBUILD_T'])"],
            env={"OXBUILD_T": "value"},
            capture=True,
        )
        assert result.stdout.strip() == "value"

    def test_missing_program(self, tmp_path):
        """Programs that cannot start raise OSError."""
        with pytest.raises(OSError):
            SubprocessExecutor().run([str(tmp_path / "no-such-program")])
