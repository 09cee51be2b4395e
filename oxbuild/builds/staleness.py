"""Artifact staleness tracking.

Decides whether previously generated artifacts can be reused by comparing
modification times against the dependency manifest's own mtime. Every
failure to read state (missing manifest, unreadable metadata, unreadable
manifest) yields a stale verdict: rebuilding is always the fallback.
"""

from __future__ import annotations

import logging
from pathlib import Path

import oxbuild
from oxbuild.builds.manifest import MANIFEST_FILENAME, read_manifest
from oxbuild.diagnostics import DiagnosticsSink, LoggingSink
from oxbuild.types import Diagnostic, DiagnosticKind

logger = logging.getLogger(__name__)


def current_executable() -> Path:
    """Return the file standing in for this program's own image.

    Reinstalling or upgrading oxbuild rewrites its package files, so the
    package module's mtime tracks when the tool itself changed.
    """
    return Path(oxbuild.__file__).resolve()


class StalenessTracker:
    """Decide whether generated artifacts are current.

    Args:
        sink: Receives a diagnostic naming whatever made artifacts stale.
        executable_path: This program's own image; artifacts built by an
            older tool are stale.
    """

    def __init__(
        self,
        sink: DiagnosticsSink | None = None,
        executable_path: Path | None = None,
    ) -> None:
        self.sink = sink or LoggingSink()
        self.executable_path = executable_path or current_executable()

    def _emit(self, kind: DiagnosticKind, path: Path, reason: str = "") -> None:
        self.sink.emit(Diagnostic(kind=kind, path=path, reason=reason))

    def dependency_current(self, path: Path, built_time_ns: int) -> bool:
        """Return True if ``path`` was not modified after ``built_time_ns``."""
        try:
            mtime_ns = path.stat().st_mtime_ns
        except OSError as e:
            self._emit(DiagnosticKind.DEPENDENCY_UNREADABLE, path, str(e))
            return False

        if mtime_ns > built_time_ns:
            self._emit(DiagnosticKind.DEPENDENCY_CHANGED, path)
            return False
        return True

    def is_current(self, manifest_dir: Path, config_path: Path) -> bool:
        """Return True if the artifacts in ``manifest_dir`` can be reused.

        Args:
            manifest_dir: Artifacts directory holding the manifest.
            config_path: Project config file the artifacts were built from.
        """
        manifest_path = manifest_dir / MANIFEST_FILENAME

        if not manifest_path.exists():
            self._emit(DiagnosticKind.NO_MANIFEST, manifest_dir)
            return False

        try:
            built_time_ns = manifest_path.stat().st_mtime_ns
        except OSError as e:
            self._emit(DiagnosticKind.DEPENDENCY_UNREADABLE, manifest_path, str(e))
            return False

        try:
            manifest = read_manifest(manifest_path)
        except (OSError, UnicodeDecodeError) as e:
            self._emit(DiagnosticKind.MANIFEST_UNREADABLE, manifest_path, str(e))
            return False

        for value in manifest.changed_values():
            # Path("") is the working directory; an empty entry names nothing
            if not value.strip():
                self._emit(
                    DiagnosticKind.DEPENDENCY_UNREADABLE,
                    manifest_path,
                    "empty rerun-if-changed path",
                )
                return False
            if not self.dependency_current(Path(value), built_time_ns):
                return False

        if not self.dependency_current(self.executable_path, built_time_ns):
            return False

        if not self.dependency_current(config_path, built_time_ns):
            return False

        logger.debug("Artifacts in %s are current", manifest_dir)
        return True


__all__ = ["StalenessTracker", "current_executable"]
