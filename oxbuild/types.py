"""Shared type definitions for oxbuild.

This module contains dataclasses and enums shared across subpackages to
avoid circular imports.
"""

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class RawAllocator(str, Enum):
    """Memory allocator used by the embedded interpreter."""

    SYSTEM = "system"
    JEMALLOC = "jemalloc"
    RUST = "rust"


class PipelineStage(str, Enum):
    """A stage of the build pipeline."""

    ARTIFACTS = "artifacts"
    TOOLCHAIN = "toolchain"
    PACKAGING = "packaging"
    RUN = "run"


class PipelineState(str, Enum):
    """State of a pipeline run."""

    NOT_STARTED = "not_started"
    ARTIFACTS_ENSURED = "artifacts_ensured"
    TOOLCHAIN_INVOKED = "toolchain_invoked"
    PACKAGED = "packaged"
    RAN = "ran"
    DONE = "done"
    FAILED = "failed"


class DiagnosticKind(str, Enum):
    """Reason a staleness check considered artifacts out of date."""

    NO_MANIFEST = "no_manifest"
    MANIFEST_UNREADABLE = "manifest_unreadable"
    DEPENDENCY_CHANGED = "dependency_changed"
    DEPENDENCY_UNREADABLE = "dependency_unreadable"


@dataclass(frozen=True)
class Diagnostic:
    """A structured, non-fatal diagnostic event."""

    kind: DiagnosticKind
    path: Path
    reason: str


@dataclass
class ProcessResult:
    """Result of running an external process.

    Attributes:
        exit_code: Process exit code.
        stdout: Captured standard output (None when not captured).
        stderr: Captured standard error (None when not captured).
    """

    exit_code: int
    stdout: str | None = None
    stderr: str | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0


__all__ = [
    "Diagnostic",
    "DiagnosticKind",
    "PipelineStage",
    "PipelineState",
    "ProcessResult",
    "RawAllocator",
]
