"""Shared fixtures: isolated git environment and local "GitHub" remotes.

Remotes live under tmp_path/remotes/<owner>/<name>.git and are addressed
with file:// URLs, so origin/fork behave like real remotes without network.
"""

from __future__ import annotations

import subprocess
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import pytest

from forksync.core.config import SyncSettings
from forksync.core.workspace import Workspace
from forksync.github.api import GitHubApi
from forksync.github.http import MockHttpClient
from forksync.platform.paths import clear_caches

ORG = "nubisproject"
USER = "jdoe"
API_URL = "https://api.test"


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=False,
    )
    if result.returncode != 0:
        raise RuntimeError(
            f"git {' '.join(args)} failed (code {result.returncode}): {result.stderr.strip()}"
        )
    return result.stdout.strip()


@pytest.fixture(autouse=True)
def _isolated_git(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the user's git config out of the tests and give commits an identity."""
    home = tmp_path / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    monkeypatch.setenv("GIT_CONFIG_NOSYSTEM", "1")
    monkeypatch.setenv("GIT_CEILING_DIRECTORIES", str(tmp_path.parent))
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")
    for var in (
        "FORKSYNC_ORGANIZATION",
        "FORKSYNC_FORK_ACCOUNT",
        "FORKSYNC_WORKSPACE",
        "FORKSYNC_EXCLUDE",
        "FORKSYNC_CONFIG",
        "GITHUB_TOKEN",
    ):
        monkeypatch.delenv(var, raising=False)
    clear_caches()


@dataclass
class Remotes:
    """Bare repositories standing in for the organization and the user's forks."""

    root: Path

    def path(self, owner: str, name: str) -> Path:
        return self.root / owner / f"{name}.git"

    @property
    def url_template(self) -> str:
        return f"{self.root.as_uri()}/{{owner}}/{{name}}.git"

    def create_origin(
        self, name: str, *, branches: tuple[str, ...] = ("master", "develop")
    ) -> Path:
        """Create ORG/name with one commit per branch; returns the seed checkout."""
        bare = self.path(ORG, name)
        bare.parent.mkdir(parents=True, exist_ok=True)
        run_git(bare.parent, "init", "--bare", "-b", branches[0], str(bare))

        seed = self.root.parent / "seeds" / name
        seed.mkdir(parents=True)
        run_git(seed, "init", "-b", branches[0])
        (seed / "README.md").write_text(f"# {name}\n", encoding="utf-8")
        run_git(seed, "add", "README.md")
        run_git(seed, "commit", "-m", "init")
        run_git(seed, "remote", "add", "origin", bare.as_uri())
        run_git(seed, "push", "origin", branches[0])
        for branch in branches[1:]:
            run_git(seed, "checkout", "-b", branch)
            (seed / f"{branch}.txt").write_text(f"{branch}\n", encoding="utf-8")
            run_git(seed, "add", f"{branch}.txt")
            run_git(seed, "commit", "-m", f"start {branch}")
            run_git(seed, "push", "origin", branch)
        return seed

    def create_fork(self, name: str, *, empty: bool = False) -> Path:
        """Create USER/name, either empty or as a full copy of the origin."""
        bare = self.path(USER, name)
        bare.parent.mkdir(parents=True, exist_ok=True)
        if empty:
            run_git(bare.parent, "init", "--bare", "-b", "master", str(bare))
        else:
            run_git(bare.parent, "clone", "--bare", self.path(ORG, name).as_uri(), str(bare))
        return bare

    def push_commit(self, name: str, branch: str, filename: str, content: str) -> str:
        """Commit `content` to `filename` on `branch` of the seed checkout and push it."""
        seed = self.root.parent / "seeds" / name
        run_git(seed, "checkout", branch)
        (seed / filename).write_text(content, encoding="utf-8")
        run_git(seed, "add", filename)
        run_git(seed, "commit", "-m", f"update {filename}")
        run_git(seed, "push", "origin", branch)
        return run_git(seed, "rev-parse", "HEAD")

    def head(self, owner: str, name: str, branch: str) -> str | None:
        try:
            return run_git(
                self.path(owner, name), "rev-parse", "--verify", f"refs/heads/{branch}"
            )
        except RuntimeError:
            return None


@pytest.fixture
def remotes(tmp_path: Path) -> Remotes:
    root = tmp_path / "remotes"
    root.mkdir()
    return Remotes(root=root)


@pytest.fixture
def workspace(tmp_path: Path) -> Workspace:
    return Workspace(root=tmp_path / "ws")


@pytest.fixture
def settings(remotes: Remotes, workspace: Workspace) -> SyncSettings:
    return SyncSettings(
        organization=ORG,
        fork_account=USER,
        workspace_root=workspace.root,
        token="test-token",
        api_url=API_URL,
        origin_url=remotes.url_template,
        fork_url=remotes.url_template,
    )


@pytest.fixture
def http() -> MockHttpClient:
    return MockHttpClient()


@pytest.fixture
def api(http: MockHttpClient) -> GitHubApi:
    return GitHubApi(http=http, api_url=API_URL, token="test-token")


@pytest.fixture
def git() -> Callable[..., str]:
    """Run a git command in a directory, raising on failure."""
    return run_git
