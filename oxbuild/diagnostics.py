"""Diagnostics sinks.

Components emit structured :class:`~oxbuild.types.Diagnostic` events to a
sink handed to them at construction time; the caller decides how events
are rendered. Emitting a diagnostic never changes the outcome of the
operation that produced it.
"""

from __future__ import annotations

import logging
from typing import Protocol

from oxbuild.types import Diagnostic, DiagnosticKind

_MESSAGES = {
    DiagnosticKind.NO_MANIFEST: "no existing artifacts found at %s",
    DiagnosticKind.MANIFEST_UNREADABLE: "error reading %s",
    DiagnosticKind.DEPENDENCY_CHANGED: "building artifacts because %s changed",
    DiagnosticKind.DEPENDENCY_UNREADABLE: "error resolving mtime of %s",
}


class DiagnosticsSink(Protocol):
    """Receiver of diagnostic events."""

    def emit(self, event: Diagnostic) -> None: ...


class LoggingSink:
    """Render diagnostics as WARNING records on a logger."""

    def __init__(self, logger: logging.Logger | None = None) -> None:
        self._logger = logger or logging.getLogger("oxbuild.diagnostics")

    def emit(self, event: Diagnostic) -> None:
        self._logger.warning(_MESSAGES[event.kind], event.path)
        if event.reason:
            self._logger.debug("%s: %s", event.kind.value, event.reason)


class CollectingSink:
    """Keep diagnostics in memory, in emission order."""

    def __init__(self) -> None:
        self.events: list[Diagnostic] = []

    def emit(self, event: Diagnostic) -> None:
        self.events.append(event)

    def paths(self) -> list[str]:
        return [str(e.path) for e in self.events]


__all__ = ["CollectingSink", "DiagnosticsSink", "LoggingSink"]
