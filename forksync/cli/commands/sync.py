"""Sync command - reconcile every included repository."""

from __future__ import annotations

import typer

from forksync.cli.commands._helpers import (
    exit_on_fetch_error,
    exit_with_code,
    require_git,
    settings_overrides,
)
from forksync.cli.context import build_context
from forksync.core.errors import ErrorCode
from forksync.core.result import Err, Ok
from forksync.services.workspace_sync import WorkspaceSyncService


def sync(
    repos: list[str] | None = typer.Argument(
        None, help="Only sync these repositories (default: all included)."
    ),
    org: str | None = typer.Option(None, "--org", help="GitHub organization."),
    fork_account: str | None = typer.Option(
        None, "--fork-account", help="Account holding your forks."
    ),
    workspace: str | None = typer.Option(
        None, "--workspace", help="Directory holding the clones."
    ),
    exclude: str | None = typer.Option(
        None,
        "--exclude",
        help="Repositories to leave alone, e.g. 'nubis-storage|nubis-vpc' ('' clears a configured one).",
    ),
    jobs: int = typer.Option(1, "--jobs", "-j", min=1, help="Repositories to sync in parallel."),
    dry_run: bool = typer.Option(False, "--dry-run", help="Print actions without modifying."),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print every git operation."),
) -> None:
    """Clone, repair remotes, rebase and push every organization repository."""
    ctx = build_context(
        settings_overrides(
            org=org, fork_account=fork_account, workspace=workspace, exclude=exclude
        )
    )
    require_git(ctx)

    ctx.console.header(f"Syncing {ctx.settings.organization} into {ctx.workspace}")
    service = WorkspaceSyncService(
        settings=ctx.settings,
        workspace=ctx.workspace,
        console=ctx.console,
        api=ctx.api,
        verbose=verbose,
    )
    try:
        result = service.sync(dry_run=dry_run, jobs=jobs, only=repos or ())
    except OSError as e:
        ctx.console.error(f"workspace not writable: {e}")
        exit_with_code(int(ErrorCode.IO_ERROR))

    match result:
        case Err(e):
            exit_on_fetch_error(e, ctx)
        case Ok(report):
            if not report.ok:
                exit_with_code(int(ErrorCode.SYNC_INCOMPLETE))
