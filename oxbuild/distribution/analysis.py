"""Distribution metadata analysis.

A standalone Python distribution archive carries a ``python/PYTHON.json``
document describing the interpreter, its licenses and the extension
modules it was built with. This module extracts the archive, reads that
document and enumerates the standard library's modules and resources.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from oxbuild.distribution.archive import extract_archive
from oxbuild.errors import DistributionError

logger = logging.getLogger(__name__)

METADATA_PATH = Path("python") / "PYTHON.json"

# Directories under the stdlib root that are never embedded
IGNORED_DIRS = {"__pycache__", "site-packages"}


class LinkInfo(BaseModel):
    """A library an extension module links against."""

    name: str
    system: bool = False
    framework: bool = False

    @property
    def link_type(self) -> str:
        if self.system:
            return "system"
        if self.framework:
            return "framework"
        return "library"


class ExtensionModule(BaseModel):
    """One build variant of an extension module."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    variant: str = "default"
    required: bool = False
    builtin_default: bool = Field(default=False, alias="in_core")
    licenses: list[str] | None = None
    license_public_domain: bool | None = None
    links: list[LinkInfo] = Field(default_factory=list)

    @property
    def license_summary(self) -> str:
        if self.license_public_domain:
            return "Public Domain"
        if self.licenses:
            return ", ".join(self.licenses)
        return "UNKNOWN"


class DistributionInfo(BaseModel):
    """Metadata describing a Python distribution."""

    flavor: str
    version: str
    os: str
    arch: str
    licenses: list[str] | None = None
    extension_modules: dict[str, list[ExtensionModule]] = Field(default_factory=dict)
    py_modules: list[str] = Field(default_factory=list)
    resources: dict[str, list[str]] = Field(default_factory=dict)


def _module_name(relative: Path) -> str:
    parts = list(relative.with_suffix("").parts)
    if parts[-1] == "__init__":
        parts.pop()
    return ".".join(parts)


def enumerate_stdlib(stdlib_path: Path) -> tuple[list[str], dict[str, list[str]]]:
    """Enumerate modules and package resources under a stdlib directory.

    Returns:
        Tuple of (sorted module names, mapping of package to resource names).
    """
    modules: set[str] = set()
    resources: dict[str, list[str]] = {}

    if not stdlib_path.is_dir():
        return [], {}

    for path in sorted(stdlib_path.rglob("*")):
        if not path.is_file():
            continue
        relative = path.relative_to(stdlib_path)
        if IGNORED_DIRS.intersection(relative.parts[:-1]):
            continue

        if path.suffix == ".py":
            name = _module_name(relative)
            if name:
                modules.add(name)
            continue
        if path.suffix == ".pyc":
            continue

        # A resource belongs to the nearest enclosing package
        package_dir = path.parent
        if not (package_dir / "__init__.py").exists():
            continue
        package = ".".join(package_dir.relative_to(stdlib_path).parts)
        resources.setdefault(package, []).append(
            path.relative_to(package_dir).as_posix()
        )

    return sorted(modules), resources


def parse_distribution_metadata(
    data: dict[str, Any], distribution_root: Path | None = None
) -> DistributionInfo:
    """Build DistributionInfo from a parsed ``PYTHON.json`` document.

    Args:
        data: Parsed metadata.
        distribution_root: Extracted ``python/`` directory, used to enumerate
            the standard library when given.

    Raises:
        DistributionError: If required metadata is missing or malformed.
    """
    try:
        extensions = data.get("build_info", {}).get("extensions", {})
        info = DistributionInfo(
            flavor=data["python_flavor"],
            version=data["python_version"],
            os=data["os"],
            arch=data["arch"],
            licenses=data.get("licenses"),
            extension_modules={
                name: [ExtensionModule.model_validate(v) for v in variants]
                for name, variants in sorted(extensions.items())
            },
        )
    except KeyError as e:
        raise DistributionError(f"Distribution metadata missing key {e}") from e
    except (ValidationError, AttributeError, TypeError) as e:
        raise DistributionError(f"Malformed distribution metadata: {e}") from e

    stdlib = data.get("python_stdlib")
    if distribution_root is not None and stdlib:
        info.py_modules, info.resources = enumerate_stdlib(distribution_root / stdlib)

    return info


def analyze_distribution(archive_path: Path, work_dir: Path) -> DistributionInfo:
    """Extract a distribution archive and analyze its metadata.

    Args:
        archive_path: Distribution archive.
        work_dir: Scratch directory to extract into.

    Raises:
        ArchiveIOError: If extraction fails.
        DistributionError: If the metadata is missing or malformed.
    """
    extract_archive(archive_path, work_dir)

    metadata_path = work_dir / METADATA_PATH
    try:
        with metadata_path.open(encoding="utf-8") as f:
            data = json.load(f)
    except FileNotFoundError as e:
        raise DistributionError(
            f"{archive_path} is not a standalone distribution: missing {METADATA_PATH}",
            path=archive_path,
        ) from e
    except (OSError, json.JSONDecodeError) as e:
        raise DistributionError(
            f"Unable to read {metadata_path}: {e}", path=archive_path
        ) from e

    if not isinstance(data, dict):
        raise DistributionError(
            f"Expected a JSON object in {METADATA_PATH}", path=archive_path
        )

    info = parse_distribution_metadata(data, work_dir / "python")
    logger.debug(
        "Analyzed %s %s (%d extension modules)",
        info.flavor,
        info.version,
        len(info.extension_modules),
    )
    return info


__all__ = [
    "DistributionInfo",
    "ExtensionModule",
    "LinkInfo",
    "analyze_distribution",
    "enumerate_stdlib",
    "parse_distribution_metadata",
]
