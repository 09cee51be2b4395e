"""Dependency manifest parsing.

An artifact-generation run records the files it depended on in a plain
text manifest, one ``cargo:<kind>=<value>`` directive per line. The
manifest's own modification time stands in for the time the artifacts
were last built.

Lines that are not directives, and directives of unknown kinds, are
skipped rather than treated as errors.
"""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

MANIFEST_FILENAME = "cargo_metadata.txt"
DIRECTIVE_PREFIX = "cargo:"


class DirectiveKind(str, Enum):
    """Known manifest directive kinds."""

    RERUN_IF_CHANGED = "rerun-if-changed"
    RERUN_IF_ENV_CHANGED = "rerun-if-env-changed"
    RUSTC_LINK_LIB = "rustc-link-lib"
    RUSTC_LINK_SEARCH = "rustc-link-search"
    RUSTC_ENV = "rustc-env"
    RUSTC_CFG = "rustc-cfg"
    WARNING = "warning"


@dataclass(frozen=True)
class Directive:
    """A single typed manifest directive."""

    kind: DirectiveKind
    value: str

    def render(self) -> str:
        return f"{DIRECTIVE_PREFIX}{self.kind.value}={self.value}"


@dataclass(frozen=True)
class DependencyManifest:
    """Parsed manifest directives, in file order."""

    directives: tuple[Directive, ...]

    def changed_values(self) -> Iterator[str]:
        """Yield the raw values of ``rerun-if-changed`` directives."""
        for directive in self.directives:
            if directive.kind is DirectiveKind.RERUN_IF_CHANGED:
                yield directive.value

    def changed_dependencies(self) -> Iterator[Path]:
        """Yield the paths named by ``rerun-if-changed`` directives."""
        for value in self.changed_values():
            yield Path(value)


def parse_line(line: str) -> Directive | None:
    """Parse one manifest line, returning None for anything unrecognized."""
    line = line.rstrip("\r")
    if not line.startswith(DIRECTIVE_PREFIX):
        return None
    kind, sep, value = line[len(DIRECTIVE_PREFIX) :].partition("=")
    if not sep:
        return None
    try:
        return Directive(DirectiveKind(kind), value)
    except ValueError:
        return None


def parse_manifest(text: str) -> DependencyManifest:
    """Parse manifest text into typed directives."""
    directives = [d for d in map(parse_line, text.split("\n")) if d is not None]
    return DependencyManifest(tuple(directives))


def read_manifest(path: Path) -> DependencyManifest:
    """Read and parse the manifest at ``path``.

    Raises:
        OSError: If the file cannot be read.
        UnicodeDecodeError: If the file is not valid UTF-8.
    """
    return parse_manifest(path.read_text(encoding="utf-8"))


def render_manifest(directives: Iterable[Directive]) -> str:
    """Render directives as manifest text."""
    return "".join(f"{d.render()}\n" for d in directives)


def write_manifest(path: Path, directives: Iterable[Directive]) -> Path:
    """Write directives to ``path``, replacing any existing manifest."""
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(render_manifest(directives), encoding="utf-8")
    return path


def rerun_if_changed(*paths: Path) -> list[Directive]:
    """Build ``rerun-if-changed`` directives for ``paths``."""
    return [Directive(DirectiveKind.RERUN_IF_CHANGED, str(p)) for p in paths]


__all__ = [
    "DIRECTIVE_PREFIX",
    "MANIFEST_FILENAME",
    "DependencyManifest",
    "Directive",
    "DirectiveKind",
    "parse_line",
    "parse_manifest",
    "read_manifest",
    "render_manifest",
    "rerun_if_changed",
    "write_manifest",
]
