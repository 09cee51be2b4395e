"""Build-time hook.

The toolchain runs a project build script while compiling; that script
calls ``oxbuild run-build-script`` so the compile sees the embedding
artifacts. When the pipeline already generated current artifacts and
permits reuse, the existing manifest is echoed; otherwise artifacts are
generated into the toolchain's output directory first.

The hook's stdout is consumed by the toolchain, so it prints only
manifest directives.
"""

from __future__ import annotations

import logging
import os
from collections.abc import Mapping
from pathlib import Path

from oxbuild.builds.artifacts import ArtifactStage
from oxbuild.builds.context import resolve_build_context
from oxbuild.builds.manifest import (
    MANIFEST_FILENAME,
    Directive,
    DirectiveKind,
    read_manifest,
    render_manifest,
)
from oxbuild.builds.toolchain import ARTIFACT_DIR_ENV, REUSE_ARTIFACTS_ENV
from oxbuild.config import Settings, get_settings
from oxbuild.errors import BuildScriptError

logger = logging.getLogger(__name__)

TOOLCHAIN_ENV_VARS = ("TARGET", "PROFILE", "CARGO_MANIFEST_DIR")


def _require(environ: Mapping[str, str], name: str) -> str:
    value = environ.get(name)
    if not value:
        raise BuildScriptError(
            f"{name} is not set; run-build-script must be invoked by the toolchain"
        )
    return value


def run_build_script(
    build_script: Path | str,
    environ: Mapping[str, str] | None = None,
    settings: Settings | None = None,
    stage: ArtifactStage | None = None,
) -> str:
    """Ensure artifacts for a toolchain build and return manifest directives.

    Args:
        build_script: The project build script invoking the hook.
        environ: Environment to read; defaults to ``os.environ``.
        settings: Application settings.
        stage: Artifact stage used when artifacts must be generated.

    Returns:
        Directive lines for the toolchain to consume.

    Raises:
        BuildScriptError: If required toolchain variables are missing.
    """
    if environ is None:
        environ = os.environ

    directives = [
        Directive(DirectiveKind.RERUN_IF_CHANGED, str(build_script)),
        Directive(DirectiveKind.RERUN_IF_ENV_CHANGED, ARTIFACT_DIR_ENV),
        Directive(DirectiveKind.RERUN_IF_ENV_CHANGED, REUSE_ARTIFACTS_ENV),
    ]

    artifact_dir = environ.get(ARTIFACT_DIR_ENV)
    reuse = environ.get(REUSE_ARTIFACTS_ENV) == "1"

    if artifact_dir and reuse and (Path(artifact_dir) / MANIFEST_FILENAME).exists():
        manifest_path = Path(artifact_dir) / MANIFEST_FILENAME
        logger.info("Reusing artifacts from %s", artifact_dir)
    else:
        target, profile, manifest_dir = (
            _require(environ, name) for name in TOOLCHAIN_ENV_VARS
        )
        if artifact_dir:
            dest = Path(artifact_dir)
        else:
            dest = Path(_require(environ, "OUT_DIR"))
        context = resolve_build_context(
            manifest_dir,
            target=target,
            release=profile == "release",
            force_artifacts_path=dest,
            settings=settings or get_settings(),
        )
        (stage or ArtifactStage()).ensure_artifacts(context)
        manifest_path = context.artifacts_path / MANIFEST_FILENAME

    try:
        manifest = read_manifest(manifest_path)
    except (OSError, UnicodeDecodeError) as e:
        raise BuildScriptError(
            f"Unable to read {manifest_path}: {e}", path=manifest_path
        ) from e

    return render_manifest([*directives, *manifest.directives])


__all__ = ["TOOLCHAIN_ENV_VARS", "run_build_script"]
