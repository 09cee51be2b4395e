"""Build context resolution.

A :class:`BuildContext` is the fully resolved, immutable parameter set for
one pipeline run: project and config paths, target triple, build mode and
every derived output path. It is created once per command and consumed by
every later stage.
"""

from __future__ import annotations

import logging
import sys
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from oxbuild.config import Settings, get_settings
from oxbuild.errors import (
    ConfigNotFoundError,
    NotAProjectError,
    UnsupportedPlatformError,
)
from oxbuild.project.io import (
    evaluate_config_file,
    find_config_file,
    find_project_files,
)
from oxbuild.project.schema import ProjectConfig
from oxbuild.types import RawAllocator

logger = logging.getLogger(__name__)

# Host platform family (sys.platform prefix) -> default target triple
DEFAULT_TARGETS = {
    "linux": "x86_64-unknown-linux-gnu",
    "win32": "x86_64-pc-windows-msvc",
    "darwin": "x86_64-apple-darwin",
}

ARTIFACTS_DIR_NAME = "oxbuild"

ConfigEvaluator = Callable[[Path, str], ProjectConfig]
ConfigFinder = Callable[[Path, Settings], Path | None]


def default_target(platform: str | None = None) -> str:
    """Return the default target triple for the host platform.

    Args:
        platform: Platform string in ``sys.platform`` form; defaults to the
            running interpreter's.

    Raises:
        UnsupportedPlatformError: If the platform has no default target.
    """
    platform = platform or sys.platform
    for prefix, triple in DEFAULT_TARGETS.items():
        if platform.startswith(prefix):
            return triple
    raise UnsupportedPlatformError(
        f"Unable to resolve a default target for platform '{platform}'; "
        "pass an explicit target"
    )


def is_windows_target(target_triple: str) -> bool:
    return "windows" in target_triple


def executable_name(app_name: str, target_triple: str) -> str:
    """Return the binary file name the toolchain emits for ``app_name``."""
    return f"{app_name}.exe" if is_windows_target(target_triple) else app_name


def python_exe_path(distribution_path: Path, target_triple: str) -> Path:
    """Return the interpreter executable inside an extracted distribution."""
    install = distribution_path / "python" / "install"
    if is_windows_target(target_triple):
        return install / "python.exe"
    return install / "bin" / "python3"


def _distribution_dir_name(config: ProjectConfig) -> str:
    dist = config.python_distribution
    if dist.sha256:
        return f"python.{dist.sha256[:12]}"
    name = Path(dist.local_path).name
    return f"python.{name.split('.', 1)[0]}"


@dataclass(frozen=True)
class BuildContext:
    """Resolved parameters for one pipeline run.

    Attributes:
        project_path: Canonical project root.
        config_path: Project config file the context was evaluated from.
        config: Target-resolved project configuration.
        target_triple: Target platform-arch-environment identifier.
        release: Build in release mode.
        verbose: Verbose output requested.
        build_path: Root of all build output.
        target_base_path: Toolchain target directory.
        target_triple_base_path: Per-target, per-mode toolchain output dir.
        app_target_path: Binary as emitted by the toolchain.
        app_path: Packaged application tree.
        app_exe_path: Packaged application executable.
        artifacts_path: Directory holding generated embedding artifacts.
        python_distribution_archive: Distribution archive named by the config.
        python_distribution_path: Extraction root for that distribution.
    """

    project_path: Path
    config_path: Path
    config: ProjectConfig
    target_triple: str
    release: bool
    verbose: bool
    build_path: Path
    target_base_path: Path
    target_triple_base_path: Path
    app_target_path: Path
    app_path: Path
    app_exe_path: Path
    artifacts_path: Path
    python_distribution_archive: Path
    python_distribution_path: Path

    @property
    def app_name(self) -> str:
        return self.config.build.application_name

    @property
    def raw_allocator(self) -> RawAllocator:
        return self.config.embedded_python.raw_allocator

    @property
    def mode(self) -> str:
        return "release" if self.release else "debug"

    @property
    def python_exe_path(self) -> Path:
        return python_exe_path(self.python_distribution_path, self.target_triple)

    @classmethod
    def create(
        cls,
        project_path: Path,
        config_path: Path,
        config: ProjectConfig,
        target_triple: str,
        release: bool = False,
        force_artifacts_path: Path | None = None,
        verbose: bool = False,
        build_dir_name: str = "build",
    ) -> BuildContext:
        """Derive every output path and return the finished context."""
        mode = "release" if release else "debug"
        build_path = project_path / (config.build.build_path or build_dir_name)
        target_base_path = build_path / "target"
        target_triple_base_path = target_base_path / target_triple / mode

        exe_name = executable_name(config.build.application_name, target_triple)
        app_path = (
            build_path / "apps" / config.build.application_name / target_triple / mode
        )

        if force_artifacts_path is not None:
            artifacts_path = force_artifacts_path
        else:
            artifacts_path = target_triple_base_path / ARTIFACTS_DIR_NAME

        archive = Path(config.python_distribution.local_path)
        if not archive.is_absolute():
            archive = project_path / archive

        return cls(
            project_path=project_path,
            config_path=config_path,
            config=config,
            target_triple=target_triple,
            release=release,
            verbose=verbose,
            build_path=build_path,
            target_base_path=target_base_path,
            target_triple_base_path=target_triple_base_path,
            app_target_path=target_triple_base_path / exe_name,
            app_path=app_path,
            app_exe_path=app_path / exe_name,
            artifacts_path=artifacts_path,
            python_distribution_archive=archive,
            python_distribution_path=(
                build_path / "python_distributions" / _distribution_dir_name(config)
            ),
        )


def resolve_build_context(
    project_path: Path | str,
    config_path: Path | str | None = None,
    target: str | None = None,
    release: bool = False,
    force_artifacts_path: Path | None = None,
    verbose: bool = False,
    settings: Settings | None = None,
    evaluate: ConfigEvaluator = evaluate_config_file,
    find_config: ConfigFinder = find_config_file,
) -> BuildContext:
    """Resolve the build context for a project.

    Args:
        project_path: Project root directory.
        config_path: Explicit config file; discovered when omitted.
        target: Target triple; the host platform default when omitted.
        release: Build in release mode.
        force_artifacts_path: Write artifacts here instead of the default.
        verbose: Verbose output requested.
        settings: Application settings.
        evaluate: Config evaluator; its errors propagate unchanged.
        find_config: Config file discovery.

    Returns:
        Resolved BuildContext.

    Raises:
        NotAProjectError: If no project marker files exist at project_path.
        UnsupportedPlatformError: If no target is given and the host has no
            default.
        ConfigNotFoundError: If no config file is given or discoverable.
    """
    if settings is None:
        settings = get_settings()

    path = Path(project_path).resolve()

    if not find_project_files(path):
        raise NotAProjectError(f"No oxbuild files in {path}", path=path)

    target_triple = target or default_target()

    if config_path is not None:
        resolved_config_path = Path(config_path)
    else:
        found = find_config(path, settings)
        if found is None:
            raise ConfigNotFoundError(
                f"Unable to find an oxbuild config file in {path}", path=path
            )
        resolved_config_path = found

    config = evaluate(resolved_config_path, target_triple)

    if force_artifacts_path is not None:
        force_artifacts_path = Path(force_artifacts_path)

    context = BuildContext.create(
        project_path=path,
        config_path=resolved_config_path,
        config=config,
        target_triple=target_triple,
        release=release,
        force_artifacts_path=force_artifacts_path,
        verbose=verbose,
        build_dir_name=settings.build_dir_name,
    )
    logger.info(
        "Resolved %s build of %s for %s",
        context.mode,
        context.app_name,
        context.target_triple,
    )
    return context


__all__ = [
    "ARTIFACTS_DIR_NAME",
    "DEFAULT_TARGETS",
    "BuildContext",
    "default_target",
    "executable_name",
    "is_windows_target",
    "python_exe_path",
    "resolve_build_context",
]
