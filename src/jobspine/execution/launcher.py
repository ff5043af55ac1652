"""Detached process launcher.

Background dispatch hands a job to a fresh OS process that outlives the
caller. The runner only needs "start this argv, send its output to this
file, give me the PID"; everything platform-specific sits behind the
``ProcessLauncher`` protocol so tests can swap in a fake.

Architecture:

    .. code-block:: text

        JobRunner.dispatch_detached(name)
              │  argv = [python, -m, jobspine, invoke, NAME, --sync, ...]
              ▼
        ProcessLauncher.spawn_detached(argv, log_path) -> pid
              │
              ▼
        SubprocessLauncher
          stdin  <- /dev/null
          stdout -> log_path (append)
          stderr -> stdout
          start_new_session=True   (survives the parent's exit and SIGHUP)

Tags:
    jobspine, execution, subprocess, background

Doc-Types:
    api-reference
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

from jobspine.core.errors import LaunchError
from jobspine.core.logging import get_logger


@runtime_checkable
class ProcessLauncher(Protocol):
    """Starts a command that keeps running after the caller returns."""

    def spawn_detached(self, command: Sequence[str], log_path: Path) -> int:
        """Start ``command`` with its output appended to ``log_path``.

        Returns:
            PID of the started process

        Raises:
            LaunchError: If the process could not be started
        """
        ...


class SubprocessLauncher:
    """``ProcessLauncher`` backed by :class:`subprocess.Popen`.

    The child is placed in its own session and never waited on; its exit
    status is not collected by the framework.
    """

    def __init__(
        self,
        *,
        cwd: str | Path | None = None,
        env: Mapping[str, str] | None = None,
        logger: Any = None,
    ) -> None:
        self._cwd = Path(cwd) if cwd else None
        self._env = dict(env) if env is not None else None
        self.logger = logger or get_logger(__name__)

    def spawn_detached(self, command: Sequence[str], log_path: Path) -> int:
        log_path = Path(log_path)
        argv = list(command)
        try:
            log_path.parent.mkdir(parents=True, exist_ok=True)
            with open(log_path, "ab") as log_file:
                process = subprocess.Popen(
                    argv,
                    stdin=subprocess.DEVNULL,
                    stdout=log_file,
                    stderr=subprocess.STDOUT,
                    cwd=self._cwd,
                    env=self._merged_env(),
                    start_new_session=True,
                    close_fds=True,
                )
        except OSError as exc:
            raise LaunchError(
                f"Failed to start detached process: {exc}",
                context={"command": argv, "log_path": str(log_path)},
                cause=exc,
            ) from exc

        self.logger.info(
            "process_detached",
            pid=process.pid,
            command=argv,
            log_path=str(log_path),
        )
        return process.pid

    def _merged_env(self) -> dict[str, str] | None:
        if self._env is None:
            return None
        merged = dict(os.environ)
        merged.update(self._env)
        return merged


__all__ = ["ProcessLauncher", "SubprocessLauncher"]
