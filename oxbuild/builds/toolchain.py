"""Toolchain invocation stage.

This module handles:
- Checking the installed compiler meets the minimum version
- Composing the toolchain build command and environment from a context
- Running the build with output streamed to the terminal

The composed command and environment depend only on the context (and the
host platform for one variable), so the same context always produces the
same invocation.
"""

from __future__ import annotations

import logging
import os
import re
import shlex
import sys

from oxbuild.builds.context import BuildContext
from oxbuild.config import Settings, get_settings
from oxbuild.errors import (
    ToolchainBuildError,
    ToolchainInvocationError,
    ToolchainVersionError,
)
from oxbuild.process import ProcessExecutor, SubprocessExecutor
from oxbuild.types import PipelineStage, RawAllocator

logger = logging.getLogger(__name__)

MINIMUM_COMPILER_VERSION = (1, 36, 0)

VERSION_PATTERN = re.compile(r"(\d+)\.(\d+)\.(\d+)")

# Environment variables read by artifact-consuming code in the build
ARTIFACT_DIR_ENV = "OXBUILD_ARTIFACT_DIR"
REUSE_ARTIFACTS_ENV = "OXBUILD_REUSE_ARTIFACTS"
PYTHON_EXECUTABLE_ENV = "PYTHON_SYS_EXECUTABLE"
# Static linking of the runtime on Windows needs an unstable linker feature
BOOTSTRAP_ENV = "RUSTC_BOOTSTRAP"


def format_version(version: tuple[int, ...]) -> str:
    return ".".join(str(part) for part in version)


def parse_version(output: str) -> tuple[int, int, int] | None:
    """Extract the first ``X.Y.Z`` version from compiler output."""
    match = VERSION_PATTERN.search(output)
    if match is None:
        return None
    major, minor, patch = (int(g) for g in match.groups())
    return major, minor, patch


def check_toolchain_version(
    executor: ProcessExecutor,
    compiler: str = "rustc",
    minimum: tuple[int, int, int] = MINIMUM_COMPILER_VERSION,
) -> tuple[int, int, int]:
    """Verify the installed compiler is at least ``minimum``.

    Returns:
        The detected version.

    Raises:
        ToolchainVersionError: If the version cannot be determined or is
            below the minimum.
    """
    message = f"Unable to determine {compiler} version; is it installed?"
    try:
        result = executor.run([compiler, "--version"], capture=True)
    except OSError as e:
        raise ToolchainVersionError(
            message,
            code="toolchain_version_unknown",
            stage=PipelineStage.TOOLCHAIN.value,
        ) from e

    version = parse_version(result.stdout or "") if result.success else None
    if version is None:
        raise ToolchainVersionError(
            message,
            code="toolchain_version_unknown",
            stage=PipelineStage.TOOLCHAIN.value,
        )

    if version < minimum:
        raise ToolchainVersionError(
            f"oxbuild requires {compiler} {format_version(minimum)}; "
            f"version {format_version(version)} found",
            stage=PipelineStage.TOOLCHAIN.value,
        )
    logger.debug("Found %s %s", compiler, format_version(version))
    return version


def compose_toolchain_command(
    context: BuildContext,
    toolchain: str = "cargo",
    allocator_feature: str = "jemalloc",
) -> list[str]:
    """Compose the toolchain build command for a context.

    Args:
        context: Resolved build context.
        toolchain: Build driver executable.
        allocator_feature: Feature enabled when the jemalloc allocator is
            selected.

    Returns:
        Command as list of strings suitable for subprocess.
    """
    cmd = [toolchain, "build", "--target", context.target_triple]

    # Explicit target dir so generated artifacts and toolchain output coincide
    cmd.extend(["--target-dir", str(context.target_base_path)])

    cmd.extend(["--bin", context.app_name])

    if context.release:
        cmd.append("--release")

    if context.raw_allocator is RawAllocator.JEMALLOC:
        cmd.extend(["--features", allocator_feature])

    return cmd


def compose_toolchain_env(
    context: BuildContext,
    host_platform: str | None = None,
) -> dict[str, str]:
    """Compose the environment variables injected into the toolchain run.

    Args:
        context: Resolved build context.
        host_platform: Host platform in ``sys.platform`` form.

    Returns:
        Variables to set on top of the inherited environment.
    """
    host_platform = host_platform or sys.platform
    env = {
        ARTIFACT_DIR_ENV: str(context.artifacts_path),
        REUSE_ARTIFACTS_ENV: "1",
        PYTHON_EXECUTABLE_ENV: str(context.python_exe_path),
    }
    if host_platform.startswith("win32"):
        env[BOOTSTRAP_ENV] = "1"
    return env


class ToolchainInvokeStage:
    """Compile the application binary with the external toolchain."""

    def __init__(
        self,
        executor: ProcessExecutor | None = None,
        settings: Settings | None = None,
        host_platform: str | None = None,
    ) -> None:
        self.executor = executor or SubprocessExecutor()
        self.settings = settings or get_settings()
        self.host_platform = host_platform or sys.platform
        self.compiler_version: tuple[int, int, int] | None = None

    def check_version(self) -> tuple[int, int, int]:
        """Verify the compiler once; later calls reuse the detected version.

        Raises:
            ToolchainVersionError: If the compiler is missing or too old.
        """
        if self.compiler_version is None:
            self.compiler_version = check_toolchain_version(
                self.executor, self.settings.compiler
            )
        return self.compiler_version

    def invoke(self, context: BuildContext) -> None:
        """Run the toolchain build for ``context``.

        Raises:
            ToolchainVersionError: If the compiler is missing or too old.
            ToolchainInvocationError: If the toolchain cannot be started.
            ToolchainBuildError: If the toolchain exits non-zero.
        """
        self.check_version()

        cmd = compose_toolchain_command(
            context,
            toolchain=self.settings.toolchain,
            allocator_feature=self.settings.allocator_feature,
        )
        injected = compose_toolchain_env(context, self.host_platform)
        env = dict(os.environ)
        env.update(injected)

        logger.info("Executing build: %s", shlex.join(cmd))
        logger.info("Working directory: %s", context.project_path)

        try:
            result = self.executor.run(cmd, cwd=context.project_path, env=env)
        except OSError as e:
            raise ToolchainInvocationError(
                f"Failed to execute {self.settings.toolchain}: {e}",
                path=context.project_path,
                stage=PipelineStage.TOOLCHAIN.value,
            ) from e

        if not result.success:
            raise ToolchainBuildError(
                f"{self.settings.toolchain} build failed with exit code "
                f"{result.exit_code}",
                exit_code=result.exit_code,
                path=context.project_path,
                stage=PipelineStage.TOOLCHAIN.value,
            )
        logger.info("Built %s", context.app_target_path)


__all__ = [
    "ARTIFACT_DIR_ENV",
    "BOOTSTRAP_ENV",
    "MINIMUM_COMPILER_VERSION",
    "PYTHON_EXECUTABLE_ENV",
    "REUSE_ARTIFACTS_ENV",
    "ToolchainInvokeStage",
    "check_toolchain_version",
    "compose_toolchain_command",
    "compose_toolchain_env",
    "parse_version",
]
