"""Process execution.

Stages that launch external programs (the toolchain, the produced
executable) go through a :class:`ProcessExecutor` so the launching can be
replaced in tests without spawning real processes.
"""

from __future__ import annotations

import logging
import shlex
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Protocol

from oxbuild.types import ProcessResult

logger = logging.getLogger(__name__)


class ProcessExecutor(Protocol):
    """Run a process to completion.

    Implementations raise ``OSError`` when the process cannot be started.
    """

    def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
    ) -> ProcessResult: ...


class SubprocessExecutor:
    """Executor backed by :func:`subprocess.run`.

    Without ``capture`` the child inherits stdout/stderr so its output
    streams straight to the terminal. No timeout is applied.
    """

    def run(
        self,
        args: Sequence[str],
        cwd: Path | None = None,
        env: Mapping[str, str] | None = None,
        capture: bool = False,
    ) -> ProcessResult:
        logger.debug("Executing: %s (cwd=%s)", shlex.join(args), cwd)
        result = subprocess.run(
            list(args),
            cwd=cwd,
            env=dict(env) if env is not None else None,
            capture_output=capture,
            text=True,
            check=False,
        )
        return ProcessResult(
            exit_code=result.returncode,
            stdout=result.stdout if capture else None,
            stderr=result.stderr if capture else None,
        )


__all__ = ["ProcessExecutor", "SubprocessExecutor"]
