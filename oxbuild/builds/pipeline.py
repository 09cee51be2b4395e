"""Pipeline sequencing.

This module provides the high-level build API:
- PipelineSequencer: drives artifacts -> toolchain -> packaging -> [run]
- build(), run(), build_artifacts(): command entry points that resolve a
  context and drive a sequencer

Stages run strictly in order. The first failure aborts the pipeline; no
later stage runs and nothing is retried.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from pathlib import Path

from oxbuild.builds.artifacts import ArtifactStage
from oxbuild.builds.context import BuildContext, resolve_build_context
from oxbuild.builds.packaging import AppTreePackager, Packager, RunStage
from oxbuild.builds.staleness import StalenessTracker
from oxbuild.builds.toolchain import ToolchainInvokeStage
from oxbuild.config import Settings, get_settings
from oxbuild.diagnostics import DiagnosticsSink
from oxbuild.errors import OxbuildError
from oxbuild.process import ProcessExecutor, SubprocessExecutor
from oxbuild.types import PipelineStage, PipelineState

logger = logging.getLogger(__name__)


@dataclass
class PipelineFailure:
    """The stage a pipeline failed in and the error it raised."""

    stage: PipelineStage
    error: Exception


class PipelineSequencer:
    """Run build stages in order with fail-fast semantics.

    Attributes:
        state: Current pipeline state.
        failure: Failure details once ``state`` is FAILED.
    """

    def __init__(
        self,
        artifacts: ArtifactStage,
        toolchain: ToolchainInvokeStage,
        packager: Packager,
        runner: RunStage,
    ) -> None:
        self.artifacts = artifacts
        self.toolchain = toolchain
        self.packager = packager
        self.runner = runner
        self.state = PipelineState.NOT_STARTED
        self.failure: PipelineFailure | None = None

    def _reset(self) -> None:
        self.state = PipelineState.NOT_STARTED
        self.failure = None

    def _step(
        self,
        stage: PipelineStage,
        action: Callable[[], object],
        next_state: PipelineState,
    ) -> None:
        logger.debug("Pipeline stage %s starting", stage.value)
        try:
            action()
        except Exception as e:
            if isinstance(e, OxbuildError) and e.stage is None:
                e.stage = stage.value
            self.state = PipelineState.FAILED
            self.failure = PipelineFailure(stage=stage, error=e)
            logger.debug("Pipeline failed in stage %s: %s", stage.value, e)
            raise
        self.state = next_state

    def _preflight(self) -> None:
        # A missing or outdated compiler fails before artifacts are generated
        self._step(
            PipelineStage.TOOLCHAIN,
            self.toolchain.check_version,
            PipelineState.NOT_STARTED,
        )

    def _build_steps(self, context: BuildContext) -> None:
        self._preflight()
        self._step(
            PipelineStage.ARTIFACTS,
            lambda: self.artifacts.ensure_artifacts(context),
            PipelineState.ARTIFACTS_ENSURED,
        )
        self._step(
            PipelineStage.TOOLCHAIN,
            lambda: self.toolchain.invoke(context),
            PipelineState.TOOLCHAIN_INVOKED,
        )
        self._step(
            PipelineStage.PACKAGING,
            lambda: self.packager.package(context),
            PipelineState.PACKAGED,
        )

    def build(self, context: BuildContext) -> None:
        """Ensure artifacts, compile and package."""
        self._reset()
        self._build_steps(context)
        self.state = PipelineState.DONE

    def build_and_run(
        self, context: BuildContext, extra_args: Sequence[str] = ()
    ) -> None:
        """Build, package, then run the executable with ``extra_args``."""
        self._reset()
        self._build_steps(context)
        self._step(
            PipelineStage.RUN,
            lambda: self.runner.run(context, extra_args),
            PipelineState.RAN,
        )
        self.state = PipelineState.DONE

    def build_artifacts_only(self, context: BuildContext) -> None:
        """Only ensure the embedding artifacts."""
        self._reset()
        self._step(
            PipelineStage.ARTIFACTS,
            lambda: self.artifacts.ensure_artifacts(context),
            PipelineState.ARTIFACTS_ENSURED,
        )
        self.state = PipelineState.DONE


def default_sequencer(
    settings: Settings | None = None,
    sink: DiagnosticsSink | None = None,
    executor: ProcessExecutor | None = None,
) -> PipelineSequencer:
    """Create a sequencer wired with the default stages."""
    if settings is None:
        settings = get_settings()
    if executor is None:
        executor = SubprocessExecutor()
    return PipelineSequencer(
        artifacts=ArtifactStage(tracker=StalenessTracker(sink=sink)),
        toolchain=ToolchainInvokeStage(executor=executor, settings=settings),
        packager=AppTreePackager(),
        runner=RunStage(executor=executor),
    )


def build(
    project_path: Path | str,
    target: str | None = None,
    release: bool = False,
    verbose: bool = False,
    settings: Settings | None = None,
    sequencer: PipelineSequencer | None = None,
) -> BuildContext:
    """Build and package the project at ``project_path``.

    Returns:
        The resolved context; ``app_exe_path`` is the packaged executable.
    """
    if settings is None:
        settings = get_settings()
    context = resolve_build_context(
        project_path, target=target, release=release, verbose=verbose, settings=settings
    )
    sequencer = sequencer or default_sequencer(settings)
    sequencer.build(context)
    logger.warning("executable path: %s", context.app_exe_path)
    return context


def run(
    project_path: Path | str,
    target: str | None = None,
    release: bool = False,
    extra_args: Sequence[str] = (),
    verbose: bool = False,
    settings: Settings | None = None,
    sequencer: PipelineSequencer | None = None,
) -> BuildContext:
    """Build, package and run the project at ``project_path``."""
    if settings is None:
        settings = get_settings()
    context = resolve_build_context(
        project_path, target=target, release=release, verbose=verbose, settings=settings
    )
    sequencer = sequencer or default_sequencer(settings)
    sequencer.build_and_run(context, extra_args)
    return context


def build_artifacts(
    project_path: Path | str,
    dest_path: Path,
    target: str | None = None,
    release: bool = False,
    verbose: bool = False,
    settings: Settings | None = None,
    sequencer: PipelineSequencer | None = None,
) -> BuildContext:
    """Generate the project's embedding artifacts into ``dest_path``."""
    if settings is None:
        settings = get_settings()
    context = resolve_build_context(
        project_path,
        target=target,
        release=release,
        force_artifacts_path=dest_path,
        verbose=verbose,
        settings=settings,
    )
    sequencer = sequencer or default_sequencer(settings)
    sequencer.build_artifacts_only(context)
    return context


__all__ = [
    "PipelineFailure",
    "PipelineSequencer",
    "build",
    "build_artifacts",
    "default_sequencer",
    "run",
]
