"""Artifact stage.

Ensures the embedding artifacts for a build context exist and are current,
regenerating them through an :class:`ArtifactGenerator` only when the
staleness tracker says they are stale.

The artifacts directory assumes a single writer; concurrent pipelines
targeting the same directory are unsupported.
"""

from __future__ import annotations

import dataclasses
import json
import logging
import shutil
from pathlib import Path
from typing import Any, Protocol

from oxbuild.builds.context import BuildContext
from oxbuild.builds.manifest import (
    MANIFEST_FILENAME,
    Directive,
    DirectiveKind,
    rerun_if_changed,
    write_manifest,
)
from oxbuild.builds.staleness import StalenessTracker
from oxbuild.distribution.archive import (
    compute_file_sha256,
    extract_archive,
    verify_sha256,
)
from oxbuild.errors import ArchiveIOError, ArtifactsError

logger = logging.getLogger(__name__)

# Optimization level selector handed to the generator by the artifact stage
OPT_LEVEL = "0"

EMBEDDED_CONFIG_FILENAME = "embedded_config.json"

# Records the digest of the archive an extracted distribution came from
ARCHIVE_DIGEST_FILENAME = ".archive-sha256"


class ArtifactGenerator(Protocol):
    """Produces embedding artifacts for a build context."""

    def generate(self, context: BuildContext, opt_level: str) -> None: ...


def embedded_config_data(context: BuildContext, opt_level: str) -> dict[str, Any]:
    """Return the embedded-interpreter configuration recorded as an artifact."""
    config = context.config
    return {
        "application_name": context.app_name,
        "target_triple": context.target_triple,
        "release": context.release,
        "opt_level": opt_level,
        "raw_allocator": context.raw_allocator.value,
        "optimize_level": config.embedded_python.optimize_level,
        "write_bytecode": config.embedded_python.write_bytecode,
        "run": config.run.model_dump(exclude_none=True),
        "packages": list(config.packages),
        "python_distribution": str(context.python_distribution_archive),
        "python_exe": str(context.python_exe_path),
    }


def _read_stamp(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError):
        return None


class EmbeddedConfigGenerator:
    """Default generator.

    Extracts the configured distribution if needed, records the embedded
    interpreter configuration and writes the dependency manifest last so
    its mtime marks when the artifacts were built.
    """

    def ensure_distribution(self, context: BuildContext) -> Path:
        """Extract the distribution archive unless already extracted.

        The extraction is reused only when it was produced from an archive
        with the same SHA-256 as the current one; otherwise the old tree is
        removed and the archive extracted again.

        Raises:
            ArchiveIOError: If the archive is missing, fails verification or
                cannot be extracted.
        """
        dist_path = context.python_distribution_path
        archive = context.python_distribution_archive
        if not archive.is_file():
            if context.python_exe_path.exists():
                logger.warning(
                    "Archive %s not found; reusing distribution at %s",
                    archive,
                    dist_path,
                )
                return dist_path
            raise ArchiveIOError(
                f"Python distribution archive not found: {archive}",
                code="archive_missing",
                path=archive,
            )

        expected = context.config.python_distribution.sha256
        if expected:
            verify_sha256(archive, expected)
            digest = expected.lower()
        else:
            try:
                digest = compute_file_sha256(archive)
            except OSError as e:
                raise ArchiveIOError(
                    f"Failed to read {archive}: {e}", code="read_error", path=archive
                ) from e

        stamp = dist_path / ARCHIVE_DIGEST_FILENAME
        if context.python_exe_path.exists() and _read_stamp(stamp) == digest:
            logger.debug("Python distribution already extracted at %s", dist_path)
            return dist_path

        try:
            if dist_path.exists():
                logger.info("Removing outdated distribution at %s", dist_path)
                shutil.rmtree(dist_path)
            extract_archive(archive, dist_path)
            stamp.write_text(digest + "\n", encoding="utf-8")
        except OSError as e:
            raise ArchiveIOError(
                f"Failed to refresh distribution at {dist_path}: {e}",
                code="os_error",
                path=dist_path,
            ) from e
        return dist_path

    def generate(self, context: BuildContext, opt_level: str) -> None:
        artifacts_path = context.artifacts_path
        logger.info("Generating artifacts in %s", artifacts_path)

        self.ensure_distribution(context)

        directives: list[Directive] = rerun_if_changed(context.config_path)
        if context.python_distribution_archive.exists():
            directives += rerun_if_changed(context.python_distribution_archive)
        directives.append(
            Directive(DirectiveKind.RERUN_IF_ENV_CHANGED, "OXBUILD_CONFIG_PATH")
        )

        try:
            config_path = artifacts_path / EMBEDDED_CONFIG_FILENAME
            with config_path.open("w", encoding="utf-8") as f:
                data = embedded_config_data(context, opt_level)
                json.dump(data, f, indent=2, sort_keys=True)
            write_manifest(artifacts_path / MANIFEST_FILENAME, directives)
        except OSError as e:
            raise ArtifactsError(
                f"Failed to write artifacts to {artifacts_path}: {e}",
                path=artifacts_path,
            ) from e

        logger.info("Wrote %d manifest directives", len(directives))


class ArtifactStage:
    """Ensure a context's artifacts exist, regenerating when stale."""

    def __init__(
        self,
        tracker: StalenessTracker | None = None,
        generator: ArtifactGenerator | None = None,
    ) -> None:
        self.tracker = tracker or StalenessTracker()
        self.generator = generator or EmbeddedConfigGenerator()

    def ensure_artifacts(self, context: BuildContext) -> None:
        """Create the artifacts directory and regenerate artifacts if stale.

        Raises:
            ArtifactsError: If the directory cannot be created or resolved.
        """
        try:
            context.artifacts_path.mkdir(parents=True, exist_ok=True)
            artifacts_path = context.artifacts_path.resolve(strict=True)
        except OSError as e:
            raise ArtifactsError(
                f"Unable to create artifacts directory {context.artifacts_path}: {e}",
                path=context.artifacts_path,
            ) from e

        if self.tracker.is_current(artifacts_path, context.config_path):
            logger.info("Reusing current artifacts in %s", artifacts_path)
            return

        resolved = dataclasses.replace(context, artifacts_path=artifacts_path)
        self.generator.generate(resolved, OPT_LEVEL)


__all__ = [
    "ARCHIVE_DIGEST_FILENAME",
    "EMBEDDED_CONFIG_FILENAME",
    "OPT_LEVEL",
    "ArtifactGenerator",
    "ArtifactStage",
    "EmbeddedConfigGenerator",
    "embedded_config_data",
]
