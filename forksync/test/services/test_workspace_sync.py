"""Tests for services/workspace_sync.py."""

from __future__ import annotations

import shutil
from typing import Any

import pytest

from forksync.core.catalog import Catalog
from forksync.core.config import SyncSettings
from forksync.core.result import Err, Ok
from forksync.core.workspace import Workspace
from forksync.github.api import GitHubApi
from forksync.github.http import HttpError, MockHttpClient
from forksync.output.console import MockConsole, Style
from forksync.services.engine import SyncOutcome, SyncStatus, SyncStep
from forksync.services.workspace_sync import SyncReport, WorkspaceSyncService

pytestmark = pytest.mark.skipif(shutil.which("git") is None, reason="git not available")


def serve_catalog(http: MockHttpClient, api: GitHubApi, org: str, *pages: list[str]) -> None:
    """Serve `pages` of repository names through Link-header pagination."""
    first = api.org_repos_url(org)
    urls = [first] + [f"{first}&page={n}" for n in range(2, len(pages) + 1)]
    last = urls[-1]
    for i, names in enumerate(pages):
        headers: dict[str, str] = {}
        if i + 1 < len(urls):
            headers["Link"] = f'<{urls[i + 1]}>; rel="next", <{last}>; rel="last"'
        http.set_json(urls[i], [{"name": n} for n in names], headers=headers)


def make_service(
    settings: SyncSettings,
    workspace: Workspace,
    api: GitHubApi,
    console: MockConsole,
    **overrides: Any,
) -> WorkspaceSyncService:
    if overrides:
        settings = SyncSettings(
            **{
                "organization": settings.organization,
                "fork_account": settings.fork_account,
                "workspace_root": settings.workspace_root,
                "exclude": settings.exclude,
                "token": settings.token,
                "api_url": settings.api_url,
                "origin_url": settings.origin_url,
                "fork_url": settings.fork_url,
                **overrides,
            }
        )
    return WorkspaceSyncService(settings=settings, workspace=workspace, console=console, api=api)


# =============================================================================
# SyncReport
# =============================================================================


class TestSyncReport:
    def _outcome(self, name: str, status: SyncStatus) -> SyncOutcome:
        step = {
            SyncStatus.SYNCED: SyncStep.SYNCED,
            SyncStatus.SKIPPED: SyncStep.SKIPPED,
            SyncStatus.PLANNED: SyncStep.PLANNED,
            SyncStatus.NEEDS_ATTENTION: SyncStep.NEEDS_ATTENTION,
        }[status]
        return SyncOutcome(name=name, status=status, step=step)

    def test_summary(self) -> None:
        report = SyncReport(
            catalog=Catalog(included=("a", "b", "c"), excluded=("x", "y")),
            outcomes=(
                self._outcome("a", SyncStatus.SYNCED),
                self._outcome("b", SyncStatus.SYNCED),
                self._outcome("c", SyncStatus.SKIPPED),
            ),
        )
        assert report.summary() == "2 synced, 1 skipped, 2 excluded"
        assert report.ok
        assert report.count(SyncStatus.SYNCED) == 2

    def test_needs_attention_is_not_ok(self) -> None:
        report = SyncReport(
            catalog=Catalog(included=("a",)),
            outcomes=(self._outcome("a", SyncStatus.NEEDS_ATTENTION),),
        )
        assert not report.ok
        assert report.summary() == "1 needs attention"

    def test_empty(self) -> None:
        assert SyncReport(catalog=Catalog()).summary() == "nothing to do"


# =============================================================================
# Catalog
# =============================================================================


class TestFetchCatalog:
    def test_paginated_catalog_with_exclusions(
        self,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        serve_catalog(
            http, api, settings.organization, ["nubis-vpc", "nubis-a"], ["nubis-storage"]
        )
        service = make_service(
            settings, workspace, api, MockConsole(), exclude="nubis-storage|nubis-vpc"
        )

        result = service.fetch_catalog()

        assert result == Ok(
            Catalog(included=("nubis-a",), excluded=("nubis-storage", "nubis-vpc"))
        )
        assert len(http.urls()) == 2


class TestSync:
    def test_fetch_error_touches_nothing(
        self,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        url = api.org_repos_url(settings.organization)
        http.set_json(url, [{"name": "nubis-a"}], headers={"Link": f'<{url}&page=2>; rel="next"'})
        http.set_json(f"{url}&page=2", HttpError(url=f"{url}&page=2", status=500, message="boom"))

        result = make_service(settings, workspace, api, MockConsole()).sync()

        assert isinstance(result, Err)
        assert result.error.status == 500
        assert not workspace.root.exists()

    def test_syncs_included_and_leaves_excluded_alone(
        self,
        remotes: Any,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        for name in ("nubis-a", "nubis-storage", "nubis-vpc"):
            remotes.create_origin(name)
            remotes.create_fork(name)
        serve_catalog(
            http, api, settings.organization, ["nubis-a", "nubis-storage"], ["nubis-vpc"]
        )
        console = MockConsole()
        service = make_service(
            settings, workspace, api, console, exclude="nubis-storage|nubis-vpc"
        )

        result = service.sync()

        assert isinstance(result, Ok)
        report = result.value
        assert [o.name for o in report.outcomes] == ["nubis-a"]
        assert report.outcomes[0].status == SyncStatus.SYNCED
        assert (workspace.root / "nubis-a" / ".git").is_dir()
        assert not (workspace.root / "nubis-storage").exists()
        assert not (workspace.root / "nubis-vpc").exists()
        assert console.find("1 synced, 2 excluded", Style.SUCCESS)

    def test_dirty_repository_warns_once_and_others_proceed(
        self,
        remotes: Any,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        for name in ("nubis-a", "nubis-b"):
            remotes.create_origin(name)
            remotes.create_fork(name)
        serve_catalog(http, api, settings.organization, ["nubis-a", "nubis-b"])
        console = MockConsole()
        service = make_service(settings, workspace, api, console)
        assert isinstance(service.sync(), Ok)
        (workspace.repo_path("nubis-a") / "README.md").write_text("edited\n", encoding="utf-8")
        new_head = remotes.push_commit("nubis-b", "develop", "app.txt", "v2\n")
        console.clear()

        result = service.sync()

        assert isinstance(result, Ok)
        statuses = {o.name: o.status for o in result.value.outcomes}
        assert statuses == {"nubis-a": SyncStatus.SKIPPED, "nubis-b": SyncStatus.SYNCED}
        warnings = console.find("", Style.WARNING)
        assert len(warnings) == 1
        assert "nubis-a" in warnings[0].message
        assert remotes.head(settings.fork_account, "nubis-b", "develop") == new_head
        assert result.value.ok

    def test_needs_attention_makes_report_not_ok(
        self,
        remotes: Any,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        remotes.create_origin("nubis-a")
        serve_catalog(http, api, settings.organization, ["nubis-a"])
        console = MockConsole()

        result = make_service(settings, workspace, api, console).sync()

        assert isinstance(result, Ok)
        assert not result.value.ok
        assert console.count(Style.ERROR) > 0
        assert console.find("hint:", Style.DIM)

    def test_stray_file_does_not_stop_the_run(
        self,
        remotes: Any,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        for name in ("nubis-a", "nubis-b"):
            remotes.create_origin(name)
            remotes.create_fork(name)
        workspace.root.mkdir(parents=True, exist_ok=True)
        workspace.repo_path("nubis-a").write_text("stray\n", encoding="utf-8")
        serve_catalog(http, api, settings.organization, ["nubis-a", "nubis-b"])
        console = MockConsole()

        result = make_service(settings, workspace, api, console).sync()

        assert isinstance(result, Ok)
        by_name = {o.name: o.status for o in result.value.outcomes}
        assert by_name == {
            "nubis-a": SyncStatus.NEEDS_ATTENTION,
            "nubis-b": SyncStatus.SYNCED,
        }
        assert console.find("1 synced, 1 needs attention")

    def test_only_restricts_and_warns_about_unknown_names(
        self,
        remotes: Any,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        for name in ("nubis-a", "nubis-b"):
            remotes.create_origin(name)
            remotes.create_fork(name)
        serve_catalog(http, api, settings.organization, ["nubis-a", "nubis-b", "nubis-vpc"])
        console = MockConsole()
        service = make_service(settings, workspace, api, console, exclude="nubis-vpc")

        result = service.sync(only=["nubis-b", "nubis-vpc", "nope"])

        assert isinstance(result, Ok)
        assert [o.name for o in result.value.outcomes] == ["nubis-b"]
        assert not workspace.repo_path("nubis-a").exists()
        assert console.find("nubis-vpc: ignored (excluded)", Style.WARNING)
        assert console.find("nope: ignored (not in organization)", Style.WARNING)

    def test_parallel_jobs_keep_catalog_order(
        self,
        remotes: Any,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        names = ["nubis-c", "nubis-a", "nubis-d", "nubis-b"]
        for name in names:
            remotes.create_origin(name)
            remotes.create_fork(name)
        serve_catalog(http, api, settings.organization, names)
        console = MockConsole()

        result = make_service(settings, workspace, api, console).sync(jobs=3)

        assert isinstance(result, Ok)
        assert [o.name for o in result.value.outcomes] == sorted(names)
        assert all(o.status == SyncStatus.SYNCED for o in result.value.outcomes)
        lines = [o.message for o in console.outputs if o.style == Style.SUCCESS]
        assert lines[:4] == [f"OK {n}: synced" for n in sorted(names)]
        assert not workspace.locks_dir.exists() or not any(workspace.locks_dir.iterdir())

    def test_dry_run_creates_nothing(
        self,
        remotes: Any,
        settings: SyncSettings,
        workspace: Workspace,
        api: GitHubApi,
        http: MockHttpClient,
    ) -> None:
        remotes.create_origin("nubis-a")
        serve_catalog(http, api, settings.organization, ["nubis-a"])
        console = MockConsole()

        result = make_service(settings, workspace, api, console).sync(dry_run=True)

        assert isinstance(result, Ok)
        assert result.value.outcomes[0].status == SyncStatus.PLANNED
        assert not workspace.root.exists()
        assert console.find("nubis-a: planned", Style.INFO)
