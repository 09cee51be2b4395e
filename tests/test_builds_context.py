"""Tests for builds/context.py module."""

import dataclasses
from pathlib import Path

import pytest

from oxbuild.builds.context import (
    BuildContext,
    default_target,
    executable_name,
    python_exe_path,
    resolve_build_context,
)
from oxbuild.config import Settings
from oxbuild.errors import (
    ConfigEvaluationError,
    ConfigNotFoundError,
    NotAProjectError,
    UnsupportedPlatformError,
)
from oxbuild.types import RawAllocator

from .conftest import TARGET


class TestDefaultTarget:
    """Tests for default_target function."""

    @pytest.mark.parametrize(
        ("platform", "expected"),
        [
            ("linux", "x86_64-unknown-linux-gnu"),
            ("win32", "x86_64-pc-windows-msvc"),
            ("darwin", "x86_64-apple-darwin"),
        ],
    )
    def test_supported_platforms(self, platform, expected):
        """Should map each supported host family to one triple."""
        assert default_target(platform) == expected

    def test_unsupported_platform(self):
        """Should fail for unknown platforms."""
        with pytest.raises(UnsupportedPlatformError):
            default_target("sunos5")


class TestBuildContextCreate:
    """Tests for derived context paths."""

    def test_debug_paths(self, make_context):
        """Should derive debug-mode paths under the build directory."""
        ctx = make_context()
        build = ctx.project_path / "build"

        assert ctx.build_path == build
        assert ctx.target_base_path == build / "target"
        assert ctx.target_triple_base_path == build / "target" / TARGET / "debug"
        assert ctx.app_target_path == build / "target" / TARGET / "debug" / "myapp"
        assert ctx.app_exe_path == build / "apps" / "myapp" / TARGET / "debug" / "myapp"
        assert ctx.artifacts_path == ctx.target_triple_base_path / "oxbuild"
        assert ctx.app_name == "myapp"
        assert ctx.mode == "debug"

    def test_release_paths(self, make_context):
        """Should use the release directory in release mode."""
        ctx = make_context(release=True)
        assert ctx.target_triple_base_path.name == "release"
        assert ctx.app_path.name == "release"

    def test_forced_artifacts_path(self, make_context, tmp_path):
        """An explicit artifacts path replaces the derived one."""
        dest = tmp_path / "elsewhere"
        ctx = make_context(force_artifacts_path=dest)
        assert ctx.artifacts_path == dest

    def test_windows_executable_name(self, make_context):
        """Windows triples produce .exe binaries."""
        ctx = make_context(target="x86_64-pc-windows-msvc")
        assert ctx.app_exe_path.name == "myapp.exe"
        assert executable_name("myapp", TARGET) == "myapp"

    def test_distribution_archive_relative_to_project(self, make_context):
        """Relative distribution paths resolve against the project root."""
        ctx = make_context()
        assert ctx.python_distribution_archive == (
            ctx.project_path / "dist" / "python.tar.gz"
        )
        assert ctx.python_distribution_path.parent.name == "python_distributions"

    def test_python_exe_path(self, tmp_path):
        """Should locate the interpreter per platform layout."""
        assert python_exe_path(tmp_path, TARGET) == (
            tmp_path / "python" / "install" / "bin" / "python3"
        )
        assert python_exe_path(tmp_path, "x86_64-pc-windows-msvc") == (
            tmp_path / "python" / "install" / "python.exe"
        )

    def test_immutable(self, make_context):
        """Contexts cannot be mutated after creation."""
        ctx = make_context()
        with pytest.raises(dataclasses.FrozenInstanceError):
            ctx.release = True  # type: ignore[misc]

    def test_allocator(self, make_context):
        """Allocator selection comes from the config."""
        ctx = make_context(raw_allocator="jemalloc")
        assert ctx.raw_allocator is RawAllocator.JEMALLOC


class TestResolveBuildContext:
    """Tests for resolve_build_context function."""

    def test_resolves_project(self, project_dir):
        """Should resolve config, target and mode into a context."""
        ctx = resolve_build_context(
            project_dir, target=TARGET, release=True, settings=Settings()
        )

        assert isinstance(ctx, BuildContext)
        assert ctx.project_path == project_dir.resolve()
        assert ctx.config_path == project_dir.resolve() / "oxbuild.yaml"
        assert ctx.target_triple == TARGET
        assert ctx.release is True
        assert ctx.app_name == "myapp"

    def test_default_target_used(self, project_dir, monkeypatch):
        """Should fall back to the host default target."""
        monkeypatch.setattr("sys.platform", "linux")
        ctx = resolve_build_context(project_dir, settings=Settings())
        assert ctx.target_triple == "x86_64-unknown-linux-gnu"

    def test_not_a_project(self, tmp_path):
        """Should fail when no project files exist."""
        with pytest.raises(NotAProjectError):
            resolve_build_context(tmp_path, target=TARGET, settings=Settings())

    def test_missing_directory_not_a_project(self, tmp_path):
        """Nonexistent paths are not projects."""
        with pytest.raises(NotAProjectError):
            resolve_build_context(tmp_path / "nope", target=TARGET, settings=Settings())

    def test_config_not_found(self, tmp_path):
        """Should fail when markers exist but no config is discoverable."""
        project = tmp_path / "p"
        project.mkdir()
        (project / "oxbuild.windows.yaml").write_text("{}\n")

        with pytest.raises(ConfigNotFoundError):
            resolve_build_context(project, target=TARGET, settings=Settings())

    def test_explicit_config_path(self, project_dir, tmp_path):
        """An explicit config path bypasses discovery."""
        other = tmp_path / "other.yaml"
        other.write_text(
            "build:\n  application_name: other\n"
            "python_distribution:\n  local_path: d.tar.gz\n"
        )

        ctx = resolve_build_context(
            project_dir, config_path=other, target=TARGET, settings=Settings()
        )
        assert ctx.app_name == "other"
        assert ctx.config_path == other

    def test_evaluation_error_propagates(self, project_dir):
        """Errors raised by the evaluator surface unchanged."""
        (project_dir / "oxbuild.yaml").write_text("build: [unclosed\n")

        with pytest.raises(ConfigEvaluationError) as exc_info:
            resolve_build_context(project_dir, target=TARGET, settings=Settings())
        assert exc_info.value.path == project_dir.resolve() / "oxbuild.yaml"

    def test_custom_evaluator_errors_not_wrapped(self, project_dir):
        """Arbitrary evaluator errors are not wrapped."""

        class Boom(Exception):
            pass

        def evaluate(path: Path, target: str):
            raise Boom(target)

        with pytest.raises(Boom):
            resolve_build_context(
                project_dir, target=TARGET, settings=Settings(), evaluate=evaluate
            )

    def test_evaluator_receives_target(self, project_dir, make_context):
        """The evaluator is called with the resolved target triple."""
        seen = []
        config = make_context().config

        def evaluate(path: Path, target: str):
            seen.append((path, target))
            return config

        resolve_build_context(
            project_dir,
            target="aarch64-apple-darwin",
            settings=Settings(),
            evaluate=evaluate,
        )
        config_path = project_dir.resolve() / "oxbuild.yaml"
        assert seen == [(config_path, "aarch64-apple-darwin")]

    def test_build_dir_name_from_settings(self, project_dir):
        """Settings choose the default build directory name."""
        ctx = resolve_build_context(
            project_dir, target=TARGET, settings=Settings(build_dir_name="out")
        )
        assert ctx.build_path == project_dir.resolve() / "out"
