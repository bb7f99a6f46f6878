"""Per-repository lock files.

A repository's working directory is owned by at most one reconciliation
at a time, across threads and processes. The lock is a file created with
O_EXCL under <workspace>/.forksync/locks/ holding the owner's pid.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from forksync.core.result import Err, Ok, Result

__all__ = ["LockError", "RepoLock", "acquire_lock"]


@dataclass(frozen=True, slots=True)
class LockError:
    message: str
    path: Path
    hint: str | None = None


class RepoLock:
    """A held lock; release it with `release()` or use it as a context manager."""

    def __init__(self, path: Path) -> None:
        self.path = path
        self._released = False

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self.path.unlink(missing_ok=True)

    def __enter__(self) -> RepoLock:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.release()


def acquire_lock(path: Path) -> Result[RepoLock, LockError]:
    """Create the lock file at `path`, failing if it already exists."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
    except FileExistsError:
        return Err(
            LockError(
                message=f"another sync holds {path.name}",
                path=path,
                hint=f"Remove {path} if no other forksync process is running",
            )
        )
    except OSError as e:
        return Err(LockError(message=f"cannot create lock: {e}", path=path))

    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(f"{os.getpid()}\n")
    return Ok(RepoLock(path))
