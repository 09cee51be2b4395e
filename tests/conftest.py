"""Shared fixtures for oxbuild tests."""

from __future__ import annotations

import io
import json
import tarfile
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any

import pytest

from oxbuild.builds.context import BuildContext
from oxbuild.project.schema import ProjectConfig
from oxbuild.types import ProcessResult

TARGET = "x86_64-unknown-linux-gnu"

DISTRIBUTION_METADATA: dict[str, Any] = {
    "version": "5",
    "python_flavor": "cpython",
    "python_version": "3.7.5",
    "os": "linux",
    "arch": "x86_64",
    "python_exe": "install/bin/python3",
    "python_stdlib": "install/lib/python3.7",
    "licenses": ["Python-2.0", "CNRI-Python"],
    "build_info": {
        "extensions": {
            "_bz2": [
                {
                    "variant": "default",
                    "in_core": False,
                    "required": False,
                    "licenses": ["bzip2-1.0.6"],
                    "links": [{"name": "bz2", "path_static": "build/lib/libbz2.a"}],
                }
            ],
            "_sqlite3": [
                {
                    "variant": "default",
                    "in_core": False,
                    "required": False,
                    "license_public_domain": True,
                    "links": [{"name": "sqlite3"}],
                }
            ],
            "_ctypes": [
                {
                    "variant": "default",
                    "in_core": False,
                    "required": False,
                    "links": [{"name": "dl", "system": True}],
                }
            ],
            "array": [{"variant": "default", "in_core": True, "required": True}],
        }
    },
}

DISTRIBUTION_FILES: dict[str, bytes] = {
    "python/install/bin/python3": b"#!/bin/sh\n",
    "python/install/lib/python3.7/os.py": b"",
    "python/install/lib/python3.7/json/__init__.py": b"",
    "python/install/lib/python3.7/json/decoder.py": b"",
    "python/install/lib/python3.7/lib2to3/__init__.py": b"",
    "python/install/lib/python3.7/lib2to3/Grammar.txt": b"grammar",
    "python/install/lib/python3.7/__pycache__/os.cpython-37.pyc": b"",
    "python/install/lib/python3.7/site-packages/pip/__init__.py": b"",
}


def make_distribution_archive(
    path: Path,
    metadata: dict[str, Any] | None = None,
    files: Mapping[str, bytes] | None = None,
    include_metadata: bool = True,
) -> Path:
    """Write a small gzipped standalone-distribution archive to ``path``."""
    entries = dict(DISTRIBUTION_FILES if files is None else files)
    if include_metadata:
        entries["python/PYTHON.json"] = json.dumps(
            DISTRIBUTION_METADATA if metadata is None else metadata
        ).encode()

    path.parent.mkdir(parents=True, exist_ok=True)
    with tarfile.open(path, "w:gz") as tar:
        for name, data in entries.items():
            info = tarfile.TarInfo(name)
            info.size = len(data)
            info.mode = 0o755 if name.endswith("python3") else 0o644
            tar.addfile(info, io.BytesIO(data))
    return path


CONFIG_YAML = """\
build:
  application_name: myapp
python_distribution:
  local_path: dist/python.tar.gz
"""


class FakeExecutor:
    """Process executor that records calls instead of spawning processes.

    ``results`` maps an executable's file name to the ProcessResult (or
    exception) returned for it. Unlisted executables succeed.
    """

    def __init__(self, results: Mapping[str, ProcessResult | Exception] | None = None):
        self.results: dict[str, ProcessResult | Exception] = {
            "rustc": ProcessResult(0, stdout="rustc 1.70.0 (90c541806 2023-05-31)\n"),
        }
        self.results.update(results or {})
        self.calls: list[dict[str, Any]] = []

    def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
    ) -> ProcessResult:
        self.calls.append(
            {
                "args": list(args),
                "cwd": cwd,
                "env": dict(env) if env is not None else None,
                "capture": capture,
            }
        )
        outcome = self.results.get(Path(args[0]).name, ProcessResult(0))
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    def commands(self) -> list[str]:
        return [Path(c["args"][0]).name for c in self.calls]


@pytest.fixture
def fake_executor() -> FakeExecutor:
    return FakeExecutor()


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """A project directory with a config file and a distribution archive."""
    project = tmp_path / "project"
    project.mkdir()
    (project / "oxbuild.yaml").write_text(CONFIG_YAML, encoding="utf-8")
    make_distribution_archive(project / "dist" / "python.tar.gz")
    return project


@pytest.fixture
def make_context(tmp_path: Path):
    """Factory building a BuildContext without touching config files."""

    def _make(
        release: bool = False,
        raw_allocator: str = "system",
        target: str = TARGET,
        force_artifacts_path: Path | None = None,
        project_path: Path | None = None,
    ) -> BuildContext:
        project = project_path or tmp_path / "ctxproject"
        project.mkdir(parents=True, exist_ok=True)
        config_path = project / "oxbuild.yaml"
        if not config_path.exists():
            config_path.write_text(CONFIG_YAML, encoding="utf-8")
        config = ProjectConfig.model_validate(
            {
                "build": {"application_name": "myapp"},
                "embedded_python": {"raw_allocator": raw_allocator},
                "python_distribution": {"local_path": "dist/python.tar.gz"},
            }
        )
        return BuildContext.create(
            project_path=project,
            config_path=config_path,
            config=config,
            target_triple=target,
            release=release,
            force_artifacts_path=force_artifacts_path,
        )

    return _make
