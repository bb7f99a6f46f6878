"""Workspace paths.

The workspace is the directory holding one clone per organization
repository, named after the repository:

    <root>/
      nubis-base/
      nubis-deploy/
      .forksync/locks/   per-repository lock files
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

__all__ = ["Workspace"]


@dataclass(frozen=True, slots=True)
class Workspace:
    """A workspace root directory."""

    root: Path

    @property
    def state_dir(self) -> Path:
        """Path to forksync's own state directory (.forksync/)."""
        return self.root / ".forksync"

    @property
    def locks_dir(self) -> Path:
        return self.state_dir / "locks"

    def repo_path(self, name: str) -> Path:
        """Path of the local clone for repository `name`."""
        return self.root / name

    def lock_path(self, name: str) -> Path:
        return self.locks_dir / f"{name}.lock"

    def exists(self) -> bool:
        return self.root.is_dir()

    def __str__(self) -> str:
        return str(self.root)
