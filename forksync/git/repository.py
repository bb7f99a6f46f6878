"""The git operations forksync performs on one workspace clone.

``Repository`` shells out to ``git -C <path>``. Commands that change state
(remote edits, fetch, checkout, rebase, push) return ``Result[None, GitError]``
so the engine can stop one repository's pass on the first failure. Read-only
queries (``remote_url``, ``remote_head``, ``rev_parse``) return None instead of
an error, since "not configured" is an ordinary answer during reconciliation.

    repo = Repository(workspace.repo_path("nubis-base"))
    if repo.remote_url("fork") is None:
        repo.add_remote("fork", "git@github.com:jdoe/nubis-base.git")
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from forksync.core.result import Err, Ok, Result
from forksync.platform.process import ProcessError
from forksync.platform.process import run as run_process

# Local commands should be instant; anything touching a remote gets longer.
_LOCAL_TIMEOUT = 30.0
_NETWORK_TIMEOUT = 300.0
_NETWORK_COMMANDS = frozenset({"clone", "fetch", "push", "submodule"})

# "## develop...fork/develop [ahead 1]" -> develop
_BRANCH_LINE = re.compile(r"^## (?P<branch>.+?)(?:\.\.\.\S+)?(?: \[.*\])?$")

__all__ = [
    "GitError",
    "GitStatus",
    "Repository",
    "StatusEntry",
    "parse_status",
]


@dataclass(frozen=True, slots=True)
class GitError:
    """A failed git invocation.

    ``command`` is the subcommand as shown to the user ("fetch origin");
    ``message`` is git's own stderr when it printed any.
    """

    command: str
    message: str
    returncode: int = 1

    def __str__(self) -> str:
        return f"git {self.command}: {self.message}"


@dataclass(frozen=True, slots=True)
class StatusEntry:
    xy: str  # porcelain v1 code: "M ", " M", "A ", "??"
    path: str


@dataclass(frozen=True, slots=True)
class GitStatus:
    branch: str
    entries: tuple[StatusEntry, ...] = ()

    @property
    def is_clean(self) -> bool:
        """No staged, unstaged or untracked paths."""
        return not self.entries


def parse_status(output: str) -> GitStatus:
    """Parse ``git status --porcelain=v1 -b``."""
    lines = [line for line in output.splitlines() if line.strip()]
    if not lines:
        return GitStatus(branch="")

    branch = lines[0].strip()
    header = _BRANCH_LINE.match(branch)
    if header is not None:
        branch = header["branch"]

    entries = tuple(StatusEntry(xy=line[:2], path=line[3:]) for line in lines[1:] if len(line) > 3)
    return GitStatus(branch=branch, entries=entries)


class Repository:
    def __init__(self, path: Path) -> None:
        self.path = path

    def __repr__(self) -> str:
        return f"Repository({self.path})"

    @classmethod
    def clone(cls, url: str, dest: Path) -> Result[Repository, GitError]:
        """Clone `url` into `dest`. The new clone's only remote is "origin"."""
        dest.parent.mkdir(parents=True, exist_ok=True)
        return (
            run_process(["git", "clone", url, str(dest)], cwd=dest.parent, timeout=_NETWORK_TIMEOUT)
            .map(lambda _output: cls(dest))
            .map_err(lambda e: _git_error("clone", e))
        )

    def exists(self) -> bool:
        """True for a checkout (.git directory) or a worktree (.git file)."""
        return (self.path / ".git").exists()

    # -- status -------------------------------------------------------------

    def status(self) -> Result[GitStatus, GitError]:
        return (
            self._run(["status", "--porcelain=v1", "-b"])
            .map(parse_status)
            .map_err(lambda e: _git_error("status", e))
        )

    def is_clean(self) -> bool:
        """Check if working tree is clean.

        Returns False if status cannot be determined, so an unreadable
        repository is never treated as safe to modify.
        """
        match self.status():
            case Ok(status):
                return status.is_clean
            case Err(_):
                return False

    def current_branch(self) -> str | None:
        """Current branch name, None if detached HEAD or error."""
        result = self._run(["symbolic-ref", "--quiet", "--short", "HEAD"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def rev_parse(self, ref: str) -> str | None:
        """Commit id of `ref`, None if it does not resolve."""
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        """True if `ancestor` is reachable from `descendant` (or equal to it)."""
        return isinstance(self._run(["merge-base", "--is-ancestor", ancestor, descendant]), Ok)

    def has_submodules(self) -> bool:
        return (self.path / ".gitmodules").is_file()

    # -- remotes ------------------------------------------------------------

    def remote_url(self, remote: str) -> str | None:
        """Configured URL of `remote`, None if the remote does not exist."""
        result = self._run(["config", "--get", f"remote.{remote}.url"])
        match result:
            case Ok(stdout):
                return stdout.strip() or None
            case Err(_):
                return None

    def add_remote(self, remote: str, url: str) -> Result[None, GitError]:
        return self._mutate(["remote", "add", remote, url], f"remote add {remote}")

    def set_remote_url(self, remote: str, url: str) -> Result[None, GitError]:
        return self._mutate(["remote", "set-url", remote, url], f"remote set-url {remote}")

    def fetch(self, remote: str) -> Result[None, GitError]:
        """Fetch (and prune) `remote` without merging anything."""
        return self._mutate(["fetch", "--prune", remote], f"fetch {remote}")

    def remote_head(self, remote: str) -> str | None:
        """Branch that refs/remotes/<remote>/HEAD points at, None if unset."""
        result = self._run(["symbolic-ref", "--quiet", f"refs/remotes/{remote}/HEAD"])
        match result:
            case Ok(stdout):
                ref = stdout.strip()
                prefix = f"refs/remotes/{remote}/"
                return ref.removeprefix(prefix) if ref.startswith(prefix) else None
            case Err(_):
                return None

    def set_remote_head(self, remote: str, branch: str) -> Result[None, GitError]:
        return self._mutate(
            ["remote", "set-head", remote, branch], f"remote set-head {remote} {branch}"
        )

    # -- branches -----------------------------------------------------------

    def branches(self, *, remotes: bool = False) -> Result[list[str], GitError]:
        """List branches.

        Local branches are returned as "develop"; with remotes=True the
        remote-tracking branches are returned as "origin/develop". Symbolic
        remote HEAD refs are omitted.
        """
        namespace = "refs/remotes/" if remotes else "refs/heads/"
        result = self._run(["for-each-ref", "--format=%(refname)", namespace])
        match result:
            case Err(e):
                return Err(_git_error("for-each-ref", e))
            case Ok(stdout):
                names = [
                    line.strip().removeprefix(namespace)
                    for line in stdout.splitlines()
                    if line.strip()
                ]
                return Ok(sorted(n for n in names if not (remotes and n.endswith("/HEAD"))))

    def remote_branches(self, remote: str) -> list[str]:
        """Branch names known for `remote` (as of the last fetch)."""
        match self.branches(remotes=True):
            case Ok(names):
                prefix = f"{remote}/"
                return [n.removeprefix(prefix) for n in names if n.startswith(prefix)]
            case Err(_):
                return []

    def local_branches(self) -> list[str]:
        return self.branches().unwrap_or([])

    def create_branch(self, branch: str, start_point: str) -> Result[None, GitError]:
        """Create `branch` at `start_point` without checking it out."""
        return self._mutate(["branch", branch, start_point], f"branch {branch}")

    def checkout(self, branch: str, *, start_point: str | None = None) -> Result[None, GitError]:
        """Check out `branch`, creating it at `start_point` when given."""
        if start_point is None:
            return self._mutate(["checkout", branch], f"checkout {branch}")
        return self._mutate(["checkout", "-b", branch, start_point], f"checkout -b {branch}")

    def submodule_update(self) -> Result[None, GitError]:
        return self._mutate(["submodule", "update", "--init", "--recursive"], "submodule update")

    # -- history ------------------------------------------------------------

    def rebase(self, onto: str) -> Result[None, GitError]:
        """Rebase the current branch onto `onto` (e.g. "origin/develop")."""
        return self._mutate(["rebase", onto], f"rebase {onto}")

    def rebase_abort(self) -> Result[None, GitError]:
        """Abort an in-progress rebase, restoring the pre-rebase branch."""
        return self._mutate(["rebase", "--abort"], "rebase --abort")

    def push(
        self, remote: str, branch: str, *, set_upstream: bool = False
    ) -> Result[None, GitError]:
        """Push `branch` to `remote`. Never forces."""
        args = ["push"]
        if set_upstream:
            args.append("--set-upstream")
        args.extend([remote, f"refs/heads/{branch}:refs/heads/{branch}"])
        return self._mutate(args, f"push {remote} {branch}")

    # -- internals ----------------------------------------------------------

    def _mutate(self, args: list[str], command: str) -> Result[None, GitError]:
        return self._run(args).map(_discard).map_err(lambda e: _git_error(command, e))

    def _run(self, args: list[str]) -> Result[str, ProcessError]:
        timeout = _NETWORK_TIMEOUT if args[0] in _NETWORK_COMMANDS else _LOCAL_TIMEOUT
        return run_process(["git", "-C", str(self.path), *args], cwd=self.path, timeout=timeout)


def _discard(_output: str) -> None:
    return None


def _git_error(command: str, error: ProcessError) -> GitError:
    return GitError(
        command=command,
        message=error.detail,
        returncode=error.returncode,
    )
