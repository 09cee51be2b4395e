"""Error taxonomy for oxbuild.

Every error carries a stable ``code`` for programmatic handling, plus
optional path and stage context so a failure can be diagnosed from the
message alone.
"""

from __future__ import annotations

from pathlib import Path


class OxbuildError(Exception):
    """Base error for oxbuild operations."""

    default_code = "oxbuild_error"

    def __init__(
        self,
        message: str,
        code: str | None = None,
        path: Path | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.path = path
        self.stage = stage


class NotAProjectError(OxbuildError):
    """Raised when no project marker files exist at the project path."""

    default_code = "not_a_project"


class ProjectExistsError(OxbuildError):
    """Raised when initializing a project over an existing one."""

    default_code = "project_exists"


class ConfigNotFoundError(OxbuildError):
    """Raised when no configuration file is given or discoverable."""

    default_code = "config_not_found"


class ConfigEvaluationError(OxbuildError):
    """Raised when a configuration file cannot be evaluated."""

    default_code = "config_evaluation"


class UnsupportedPlatformError(OxbuildError):
    """Raised when no default target exists for the host platform."""

    default_code = "unsupported_platform"


class ToolchainVersionError(OxbuildError):
    """Raised when the compiler is too old or its version is unknown."""

    default_code = "toolchain_version"


class ToolchainInvocationError(OxbuildError):
    """Raised when the toolchain process cannot be started."""

    default_code = "toolchain_invocation"


class ToolchainBuildError(OxbuildError):
    """Raised when the toolchain process exits non-zero."""

    default_code = "toolchain_build"

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str | None = None,
        path: Path | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message, code=code, path=path, stage=stage)
        self.exit_code = exit_code


class PackagingError(OxbuildError):
    """Raised when the application tree cannot be assembled."""

    default_code = "packaging"


class RunLaunchError(OxbuildError):
    """Raised when the produced executable fails to start or exits non-zero."""

    default_code = "run_launch"

    def __init__(
        self,
        message: str,
        exit_code: int | None = None,
        code: str | None = None,
        path: Path | None = None,
        stage: str | None = None,
    ) -> None:
        super().__init__(message, code=code, path=path, stage=stage)
        self.exit_code = exit_code


class ArchiveIOError(OxbuildError):
    """Raised when a distribution archive cannot be read or extracted."""

    default_code = "archive_io"


class DistributionError(OxbuildError):
    """Raised when distribution metadata cannot be analyzed."""

    default_code = "distribution"


class ArtifactsError(OxbuildError):
    """Raised when the artifacts directory cannot be prepared or written."""

    default_code = "artifacts"


class BuildScriptError(OxbuildError):
    """Raised when the build-time hook is missing required environment."""

    default_code = "build_script"


__all__ = [
    "ArchiveIOError",
    "ArtifactsError",
    "BuildScriptError",
    "ConfigEvaluationError",
    "ConfigNotFoundError",
    "DistributionError",
    "NotAProjectError",
    "OxbuildError",
    "PackagingError",
    "ProjectExistsError",
    "RunLaunchError",
    "ToolchainBuildError",
    "ToolchainInvocationError",
    "ToolchainVersionError",
    "UnsupportedPlatformError",
]
