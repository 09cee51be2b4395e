"""New project initialization."""

from __future__ import annotations

import logging
import re
from collections.abc import Sequence
from pathlib import Path
from typing import Any

import yaml

from oxbuild.errors import (
    ProjectExistsError,
    ToolchainBuildError,
    ToolchainInvocationError,
)
from oxbuild.process import ProcessExecutor, SubprocessExecutor
from oxbuild.project.io import CONFIG_FILENAME

logger = logging.getLogger(__name__)

DEFAULT_DISTRIBUTION = "python_distributions/cpython-linux64.tar.zst"


def default_config_data(
    application_name: str,
    code: str | None = None,
    pip_install: Sequence[str] = (),
) -> dict[str, Any]:
    """Return the config mapping written for a new project."""
    run: dict[str, Any] = {"mode": "repl"}
    if code:
        run = {"mode": "eval", "code": code}

    data: dict[str, Any] = {
        "build": {"application_name": application_name},
        "embedded_python": {"raw_allocator": "jemalloc"},
        "python_distribution": {"local_path": DEFAULT_DISTRIBUTION},
        "run": run,
    }
    if pip_install:
        data["packages"] = list(pip_install)
    data["targets"] = {
        "x86_64-pc-windows-msvc": {"embedded_python": {"raw_allocator": "system"}},
    }
    return data


def initialize_project(
    project_path: Path,
    code: str | None = None,
    pip_install: Sequence[str] = (),
    toolchain: str = "cargo",
    executor: ProcessExecutor | None = None,
) -> Path:
    """Create a new application project at ``project_path``.

    Runs the toolchain's ``init`` to lay out a binary crate, then writes
    the oxbuild config file.

    Returns:
        Path to the written config file.

    Raises:
        ProjectExistsError: If the directory already holds a config file.
        ToolchainInvocationError: If the toolchain cannot be started.
        ToolchainBuildError: If the toolchain init fails.
    """
    config_path = project_path / CONFIG_FILENAME
    if config_path.exists():
        raise ProjectExistsError(
            f"{config_path} already exists", path=config_path
        )

    executor = executor or SubprocessExecutor()
    project_path.mkdir(parents=True, exist_ok=True)
    cmd = [toolchain, "init", "--bin", str(project_path)]

    try:
        result = executor.run(cmd)
    except OSError as e:
        raise ToolchainInvocationError(
            f"Failed to execute {toolchain}: {e}", path=project_path
        ) from e
    if not result.success:
        raise ToolchainBuildError(
            f"{toolchain} init failed with exit code {result.exit_code}",
            exit_code=result.exit_code,
            path=project_path,
        )

    application_name = re.sub(r"[^a-zA-Z0-9_\-]", "_", project_path.resolve().name)
    data = default_config_data(application_name, code=code, pip_install=pip_install)
    with config_path.open("w", encoding="utf-8") as f:
        yaml.safe_dump(data, f, sort_keys=False)

    logger.info("Wrote %s", config_path)
    return config_path


__all__ = ["DEFAULT_DISTRIBUTION", "default_config_data", "initialize_project"]
