"""Packaging and run stages.

This module handles:
- Assembling the runnable application tree from toolchain output
- Running the packaged executable with forwarded arguments
"""

from __future__ import annotations

import logging
import shutil
from collections.abc import Sequence
from typing import Protocol

from oxbuild.builds.context import BuildContext
from oxbuild.errors import PackagingError, RunLaunchError
from oxbuild.process import ProcessExecutor, SubprocessExecutor
from oxbuild.types import PipelineStage

logger = logging.getLogger(__name__)


class Packager(Protocol):
    """Turns toolchain output into a runnable application tree."""

    def package(self, context: BuildContext) -> None: ...


class AppTreePackager:
    """Copy the built binary into the application tree."""

    def package(self, context: BuildContext) -> None:
        """Install ``app_target_path`` as ``app_exe_path``.

        Raises:
            PackagingError: If the binary is missing or cannot be copied.
        """
        source = context.app_target_path
        if not source.is_file():
            raise PackagingError(
                f"Toolchain output not found: {source}",
                code="binary_missing",
                path=source,
                stage=PipelineStage.PACKAGING.value,
            )

        try:
            context.app_path.mkdir(parents=True, exist_ok=True)
            shutil.copy2(source, context.app_exe_path)
        except OSError as e:
            raise PackagingError(
                f"Failed to install {source} to {context.app_exe_path}: {e}",
                path=context.app_exe_path,
                stage=PipelineStage.PACKAGING.value,
            ) from e

        logger.info("Packaged %s", context.app_exe_path)


class RunStage:
    """Run the packaged executable."""

    def __init__(self, executor: ProcessExecutor | None = None) -> None:
        self.executor = executor or SubprocessExecutor()

    def run(self, context: BuildContext, extra_args: Sequence[str] = ()) -> None:
        """Run ``app_exe_path`` from the project root.

        Raises:
            RunLaunchError: If the executable cannot start or exits non-zero.
        """
        exe = context.app_exe_path
        try:
            result = self.executor.run(
                [str(exe), *extra_args], cwd=context.project_path
            )
        except OSError as e:
            raise RunLaunchError(
                f"Failed to launch {exe}: {e}",
                path=exe,
                stage=PipelineStage.RUN.value,
            ) from e

        if not result.success:
            raise RunLaunchError(
                f"{exe.name} exited with code {result.exit_code}",
                exit_code=result.exit_code,
                path=exe,
                stage=PipelineStage.RUN.value,
            )


__all__ = ["AppTreePackager", "Packager", "RunStage"]
