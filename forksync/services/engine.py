"""Per-repository synchronization state machine.

For one repository the engine walks these states, each handler performing
one check-and-repair and naming the next state:

    Absent            clone from origin, request the personal fork
    Cloned            snapshot state; dirty -> Skipped; verify origin URL
    OriginVerified    fetch origin
    Fetched           verify fork URL, fetch fork
    ForkVerified      choose default branch (develop, else master)
    BranchDetermined  origin/HEAD -> branch
    OriginHeadSet     fork has branch, else create + push with upstream
    ForkBranchEnsured fork/HEAD -> branch
    ForkHeadSet       still clean? checkout branch, update submodules
    BranchActive      rebase onto origin/<branch>
    Rebased           push to fork when the fork lags behind
    Synced | Skipped | Planned | RebaseConflict | NeedsAttention

Dirty working trees are detected from a read-only snapshot before the first
mutating operation, so a repository with local changes is never fetched
into, rebased, checked out or pushed. Nothing here forces a push or resets
a branch; a failed rebase is aborted, which restores the branch.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import StrEnum
from typing import TYPE_CHECKING

from forksync.core.result import Err, Ok, Result
from forksync.git.repository import GitError, Repository
from forksync.output.console import Style
from forksync.services.locks import acquire_lock

if TYPE_CHECKING:
    from forksync.core.config import SyncSettings
    from forksync.core.workspace import Workspace
    from forksync.github.api import GitHubApi
    from forksync.output.console import ConsoleProtocol

__all__ = [
    "RemoteEndpoint",
    "SyncEngine",
    "SyncOutcome",
    "SyncState",
    "SyncStatus",
    "SyncStep",
]

ORIGIN = "origin"
FORK = "fork"


class SyncStep(StrEnum):
    ABSENT = "absent"
    CLONED = "cloned"
    ORIGIN_VERIFIED = "origin_verified"
    FETCHED = "fetched"
    FORK_VERIFIED = "fork_verified"
    BRANCH_DETERMINED = "branch_determined"
    ORIGIN_HEAD_SET = "origin_head_set"
    FORK_BRANCH_ENSURED = "fork_branch_ensured"
    FORK_HEAD_SET = "fork_head_set"
    BRANCH_ACTIVE = "branch_active"
    REBASED = "rebased"
    SYNCED = "synced"
    SKIPPED = "skipped"
    PLANNED = "planned"
    REBASE_CONFLICT = "rebase_conflict"
    NEEDS_ATTENTION = "needs_attention"

    @property
    def is_terminal(self) -> bool:
        return self in _TERMINAL


_TERMINAL = frozenset(
    {
        SyncStep.SYNCED,
        SyncStep.SKIPPED,
        SyncStep.PLANNED,
        SyncStep.REBASE_CONFLICT,
        SyncStep.NEEDS_ATTENTION,
    }
)


class SyncStatus(StrEnum):
    """What the user sees for a repository at the end of a run."""

    SYNCED = "synced"
    SKIPPED = "skipped"
    PLANNED = "planned"
    NEEDS_ATTENTION = "needs attention"


_STATUS_BY_STEP = {
    SyncStep.SYNCED: SyncStatus.SYNCED,
    SyncStep.SKIPPED: SyncStatus.SKIPPED,
    SyncStep.PLANNED: SyncStatus.PLANNED,
}


@dataclass(frozen=True, slots=True)
class RemoteEndpoint:
    label: str
    url: str


@dataclass(frozen=True, slots=True)
class SyncState:
    """Read-only snapshot of a repository, taken at the start of its pass.

    Attributes:
        cloned: A local clone exists
        remotes_correct: origin and fork URLs both match the expected endpoints
        default_branch: Branch to track, from the last-fetched origin branches
        head_tracks_default: origin/HEAD points at default_branch
        working_tree_clean: No staged, unstaged or untracked changes
        ahead_of_fork: The local default branch has commits the fork lacks
    """

    cloned: bool
    remotes_correct: bool = False
    default_branch: str | None = None
    head_tracks_default: bool = False
    working_tree_clean: bool = True
    ahead_of_fork: bool = False


@dataclass(frozen=True, slots=True)
class SyncOutcome:
    """Terminal result of one repository pass.

    Attributes:
        name: Repository name
        status: synced / skipped / planned / needs attention
        step: Terminal state of the machine
        message: One-line explanation (empty when synced without remarks)
        hint: Follow-up suggestion for the user
        actions: Mutating operations performed, in order
    """

    name: str
    status: SyncStatus
    step: SyncStep
    message: str = ""
    hint: str | None = None
    actions: tuple[str, ...] = ()

    @property
    def needs_attention(self) -> bool:
        return self.status == SyncStatus.NEEDS_ATTENTION


@dataclass(slots=True)
class _Pass:
    """Mutable bookkeeping for one repository pass."""

    name: str
    repo: Repository
    origin: RemoteEndpoint
    fork: RemoteEndpoint
    state: SyncState | None = None
    branch: str | None = None
    message: str = ""
    hint: str | None = None
    actions: list[str] = field(default_factory=list)

    def fail(self, message: str, hint: str | None = None) -> None:
        self.message = message
        self.hint = hint

    def outcome(self, step: SyncStep) -> SyncOutcome:
        return SyncOutcome(
            name=self.name,
            status=_STATUS_BY_STEP.get(step, SyncStatus.NEEDS_ATTENTION),
            step=step,
            message=self.message,
            hint=self.hint,
            actions=tuple(self.actions),
        )


class SyncEngine:
    """Reconcile one repository at a time against origin and fork.

    The engine holds no per-repository state between calls; `reconcile`
    may run concurrently for different repositories, and the per-repository
    lock file keeps two passes off the same working directory.
    """

    def __init__(
        self,
        *,
        settings: SyncSettings,
        workspace: Workspace,
        console: ConsoleProtocol,
        api: GitHubApi,
        dry_run: bool = False,
        verbose: bool = False,
    ) -> None:
        self._settings = settings
        self._workspace = workspace
        self._console = console
        self._api = api
        self._dry_run = dry_run
        self._verbose = verbose
        self._handlers: dict[SyncStep, Callable[[_Pass], SyncStep]] = {
            SyncStep.ABSENT: self._clone,
            SyncStep.CLONED: self._verify_origin,
            SyncStep.ORIGIN_VERIFIED: self._fetch_origin,
            SyncStep.FETCHED: self._verify_fork,
            SyncStep.FORK_VERIFIED: self._determine_branch,
            SyncStep.BRANCH_DETERMINED: self._set_origin_head,
            SyncStep.ORIGIN_HEAD_SET: self._ensure_fork_branch,
            SyncStep.FORK_BRANCH_ENSURED: self._set_fork_head,
            SyncStep.FORK_HEAD_SET: self._activate_branch,
            SyncStep.BRANCH_ACTIVE: self._rebase,
            SyncStep.REBASED: self._push,
        }

    def endpoints(self, name: str) -> tuple[RemoteEndpoint, RemoteEndpoint]:
        """The (origin, fork) endpoints for repository `name`."""
        return (
            RemoteEndpoint(ORIGIN, self._settings.origin_url_for(name)),
            RemoteEndpoint(FORK, self._settings.fork_url_for(name)),
        )

    def inspect(self, name: str) -> SyncState:
        """Read-only snapshot of repository `name`."""
        return self._snapshot(self._new_pass(name))

    def reconcile(self, name: str) -> SyncOutcome:
        """Drive repository `name` to a terminal state."""
        if self._dry_run:
            return self._drive(self._new_pass(name))

        match acquire_lock(self._workspace.lock_path(name)):
            case Err(error):
                return SyncOutcome(
                    name=name,
                    status=SyncStatus.NEEDS_ATTENTION,
                    step=SyncStep.NEEDS_ATTENTION,
                    message=error.message,
                    hint=error.hint,
                )
            case Ok(lock):
                with lock:
                    return self._drive(self._new_pass(name))

    # -- driver -------------------------------------------------------------

    def _new_pass(self, name: str) -> _Pass:
        origin, fork = self.endpoints(name)
        return _Pass(
            name=name,
            repo=Repository(self._workspace.repo_path(name)),
            origin=origin,
            fork=fork,
        )

    def _drive(self, p: _Pass) -> SyncOutcome:
        step = SyncStep.CLONED if p.repo.exists() else SyncStep.ABSENT
        try:
            while not step.is_terminal:
                step = self._handlers[step](p)
        except OSError as e:
            p.fail(
                f"{p.repo.path}: {e.strerror or e}",
                hint="Check permissions and free space, then rerun",
            )
            step = SyncStep.NEEDS_ATTENTION
        return p.outcome(step)

    def _apply(
        self,
        p: _Pass,
        label: str,
        result: Result[None, GitError],
        *,
        mutating: bool = True,
    ) -> bool:
        """Record an operation; on failure store its error on the pass."""
        if self._verbose:
            self._console.print(f"  {p.name}: {label}", Style.DIM)
        if isinstance(result, Err):
            p.fail(f"{label} failed: {result.error.message}")
            return False
        if mutating:
            p.actions.append(label)
        return True

    def _snapshot(self, p: _Pass) -> SyncState:
        repo = p.repo
        if not repo.exists():
            return SyncState(cloned=False)
        branch = self._choose_branch(repo)
        return SyncState(
            cloned=True,
            remotes_correct=(
                repo.remote_url(ORIGIN) == p.origin.url and repo.remote_url(FORK) == p.fork.url
            ),
            default_branch=branch,
            head_tracks_default=branch is not None and repo.remote_head(ORIGIN) == branch,
            working_tree_clean=repo.is_clean(),
            ahead_of_fork=branch is not None and _ahead_of_fork(repo, branch),
        )

    def _choose_branch(self, repo: Repository) -> str | None:
        available = repo.remote_branches(ORIGIN)
        for candidate in self._settings.branches:
            if candidate in available:
                return candidate
        head = repo.remote_head(ORIGIN)
        if head is not None and head in available:
            return head
        return None

    def _plan(self, p: _Pass, state: SyncState) -> SyncStep:
        planned: list[str] = []
        if not state.cloned:
            planned.append(f"clone {p.origin.url}")
            planned.append(f"request fork {self._settings.fork_account}/{p.name}")
        else:
            if not state.remotes_correct:
                planned.append("repair origin/fork remote URLs")
            planned.append("fetch origin and fork")
            if state.default_branch is None:
                planned.append("determine default branch after fetch")
            else:
                if not state.head_tracks_default:
                    planned.append(f"point origin/HEAD at {state.default_branch}")
                if p.repo.current_branch() != state.default_branch:
                    planned.append(f"checkout {state.default_branch}")
                planned.append(f"rebase onto origin/{state.default_branch}")
                if state.ahead_of_fork:
                    planned.append(f"push {state.default_branch} to fork")
        for line in planned:
            self._console.print(f"  {p.name}: would {line}", Style.DIM)
        p.message = f"{len(planned)} planned operation(s)"
        return SyncStep.PLANNED

    # -- handlers -----------------------------------------------------------

    def _clone(self, p: _Pass) -> SyncStep:
        dest = p.repo.path
        if dest.exists() and not dest.is_dir():
            p.fail(
                f"{dest} exists but is not a directory",
                hint="Move it aside and rerun to get a fresh clone",
            )
            return SyncStep.NEEDS_ATTENTION
        if dest.is_dir() and any(dest.iterdir()):
            p.fail(
                f"{dest} exists but is not a git repository",
                hint="Move it aside and rerun to get a fresh clone",
            )
            return SyncStep.NEEDS_ATTENTION

        if self._dry_run:
            return self._plan(p, SyncState(cloned=False))

        match Repository.clone(p.origin.url, dest):
            case Err(error):
                p.fail(f"clone failed: {error.message}")
                return SyncStep.NEEDS_ATTENTION
            case Ok(repo):
                p.repo = repo
                p.actions.append(f"clone {p.origin.url}")
                if self._verbose:
                    self._console.print(f"  {p.name}: clone {p.origin.url}", Style.DIM)

        self._request_fork(p)
        return SyncStep.CLONED

    def _request_fork(self, p: _Pass) -> None:
        owner = self._settings.fork_account
        if not self._api.authenticated:
            self._console.warning(
                f"{p.name}: no API token, cannot create fork {owner}/{p.name}; "
                "create it on GitHub if it does not exist"
            )
            return
        match self._api.create_fork(self._settings.organization, p.name):
            case Err(error):
                self._console.warning(f"{p.name}: fork request failed: {error}")
            case Ok(_):
                p.actions.append(f"request fork {owner}/{p.name}")

    def _verify_origin(self, p: _Pass) -> SyncStep:
        p.state = self._snapshot(p)
        if not p.state.working_tree_clean:
            p.message = "uncommitted changes"
            return SyncStep.SKIPPED
        if self._dry_run:
            return self._plan(p, p.state)

        if not self._ensure_remote(p, p.origin):
            return SyncStep.NEEDS_ATTENTION
        return SyncStep.ORIGIN_VERIFIED

    def _ensure_remote(self, p: _Pass, endpoint: RemoteEndpoint) -> bool:
        current = p.repo.remote_url(endpoint.label)
        if current == endpoint.url:
            return True
        if current is None:
            result = p.repo.add_remote(endpoint.label, endpoint.url)
            return self._apply(p, f"remote add {endpoint.label} {endpoint.url}", result)
        result = p.repo.set_remote_url(endpoint.label, endpoint.url)
        return self._apply(p, f"remote set-url {endpoint.label} {endpoint.url}", result)

    def _fetch_origin(self, p: _Pass) -> SyncStep:
        if not self._apply(p, "fetch origin", p.repo.fetch(ORIGIN), mutating=False):
            return SyncStep.NEEDS_ATTENTION
        return SyncStep.FETCHED

    def _verify_fork(self, p: _Pass) -> SyncStep:
        if not self._ensure_remote(p, p.fork):
            return SyncStep.NEEDS_ATTENTION
        if not self._apply(p, "fetch fork", p.repo.fetch(FORK), mutating=False):
            p.hint = (
                f"Check that {p.fork.url} exists; a fork requested moments ago "
                "may still be in creation"
            )
            return SyncStep.NEEDS_ATTENTION
        return SyncStep.FORK_VERIFIED

    def _determine_branch(self, p: _Pass) -> SyncStep:
        branch = self._choose_branch(p.repo)
        if branch is None:
            wanted = " or ".join(self._settings.branches)
            p.fail(f"origin has no {wanted} branch")
            return SyncStep.NEEDS_ATTENTION
        p.branch = branch
        return SyncStep.BRANCH_DETERMINED

    def _set_origin_head(self, p: _Pass) -> SyncStep:
        return self._set_remote_head(p, ORIGIN, SyncStep.ORIGIN_HEAD_SET)

    def _set_fork_head(self, p: _Pass) -> SyncStep:
        return self._set_remote_head(p, FORK, SyncStep.FORK_HEAD_SET)

    def _set_remote_head(self, p: _Pass, remote: str, next_step: SyncStep) -> SyncStep:
        branch = _branch(p)
        if p.repo.remote_head(remote) == branch:
            return next_step
        result = p.repo.set_remote_head(remote, branch)
        if not self._apply(p, f"remote set-head {remote} {branch}", result):
            return SyncStep.NEEDS_ATTENTION
        return next_step

    def _ensure_fork_branch(self, p: _Pass) -> SyncStep:
        branch = _branch(p)
        if branch in p.repo.remote_branches(FORK):
            return SyncStep.FORK_BRANCH_ENSURED

        if branch not in p.repo.local_branches():
            result = p.repo.create_branch(branch, f"{ORIGIN}/{branch}")
            if not self._apply(p, f"branch {branch} {ORIGIN}/{branch}", result):
                return SyncStep.NEEDS_ATTENTION

        result = p.repo.push(FORK, branch, set_upstream=True)
        if not self._apply(p, f"push --set-upstream fork {branch}", result):
            return SyncStep.NEEDS_ATTENTION
        return SyncStep.FORK_BRANCH_ENSURED

    def _activate_branch(self, p: _Pass) -> SyncStep:
        # Re-check right before the first operation that touches the tree.
        if not p.repo.is_clean():
            p.message = "uncommitted changes"
            return SyncStep.SKIPPED

        branch = _branch(p)
        if p.repo.current_branch() != branch:
            if branch in p.repo.local_branches():
                result = p.repo.checkout(branch)
            else:
                result = p.repo.checkout(branch, start_point=f"{ORIGIN}/{branch}")
            if not self._apply(p, f"checkout {branch}", result):
                return SyncStep.NEEDS_ATTENTION

        if p.repo.has_submodules():
            if not self._apply(p, "submodule update", p.repo.submodule_update()):
                return SyncStep.NEEDS_ATTENTION
        return SyncStep.BRANCH_ACTIVE

    def _rebase(self, p: _Pass) -> SyncStep:
        upstream = f"{ORIGIN}/{_branch(p)}"
        if p.repo.is_ancestor(upstream, "HEAD"):
            return SyncStep.REBASED

        if self._apply(p, f"rebase {upstream}", p.repo.rebase(upstream)):
            return SyncStep.REBASED

        conflict = p.message
        abort = p.repo.rebase_abort()
        if isinstance(abort, Err):
            p.fail(
                f"{conflict}; rebase --abort also failed: {abort.error.message}",
                hint=f"Resolve the rebase by hand in {p.repo.path}",
            )
        else:
            p.fail(
                f"rebase onto {upstream} conflicts, branch left unchanged",
                hint=f"Rebase {p.repo.path} manually",
            )
        return SyncStep.REBASE_CONFLICT

    def _push(self, p: _Pass) -> SyncStep:
        branch = _branch(p)
        if not _ahead_of_fork(p.repo, branch):
            return SyncStep.SYNCED
        if not self._apply(p, f"push fork {branch}", p.repo.push(FORK, branch)):
            p.hint = "The fork has commits the local branch lacks; reconcile them by hand"
            return SyncStep.NEEDS_ATTENTION
        return SyncStep.SYNCED


def _branch(p: _Pass) -> str:
    if p.branch is None:
        raise RuntimeError(f"{p.name}: default branch not determined")
    return p.branch


def _ahead_of_fork(repo: Repository, branch: str) -> bool:
    """True if the local branch has commits that fork/<branch> lacks."""
    local = repo.rev_parse(f"refs/heads/{branch}")
    if local is None:
        return False
    remote = repo.rev_parse(f"refs/remotes/{FORK}/{branch}")
    if remote is None:
        return True
    return local != remote and not repo.is_ancestor(local, remote)
