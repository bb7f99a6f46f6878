"""Run git (or any command) without raising.

A non-zero exit, a timeout and a missing executable all come back as
``Err(ProcessError)`` carrying whatever output was captured, so the sync
engine can record the failure against one repository and move on.
Credential prompts are disabled: a batch run over dozens of repositories
must fail fast rather than wait on a terminal nobody is watching.
"""

from __future__ import annotations

import os
import subprocess
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from pathlib import Path

from forksync.core.result import Err, Ok, Result

__all__ = ["ProcessError", "run"]

_BATCH_ENV = {"GIT_TERMINAL_PROMPT": "0"}


@dataclass(frozen=True, slots=True)
class ProcessError:
    """A command that did not exit 0.

    ``returncode`` is -1 when the process never started or was killed on timeout.
    """

    command: tuple[str, ...]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    def __str__(self) -> str:
        shown = " ".join(self.command[:3])
        if len(self.command) > 3:
            shown += " ..."
        return f"{shown} failed (exit {self.returncode})"

    @property
    def detail(self) -> str:
        """stderr, else stdout, else the one-line summary."""
        return self.stderr.strip() or self.stdout.strip() or str(self)


def run(
    cmd: Sequence[str],
    cwd: Path,
    *,
    env: Mapping[str, str] | None = None,
    timeout: float | None = None,
) -> Result[str, ProcessError]:
    """Run `cmd` in `cwd` and return its stdout.

    `env` is layered over the current environment.
    """
    command = tuple(cmd)
    try:
        proc = subprocess.run(
            command,
            cwd=cwd,
            env={**os.environ, **_BATCH_ENV, **(env or {})},
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
        )
    except subprocess.TimeoutExpired as e:
        partial = e.stdout if isinstance(e.stdout, str) else ""
        return Err(ProcessError(command, -1, partial, f"timed out after {timeout}s"))
    except OSError as e:
        return Err(ProcessError(command, -1, stderr=str(e)))

    if proc.returncode:
        return Err(ProcessError(command, proc.returncode, proc.stdout, proc.stderr))
    return Ok(proc.stdout)
