"""Shared helpers for CLI commands."""

from __future__ import annotations

import shutil
from typing import TYPE_CHECKING, NoReturn

import typer

from forksync.core.errors import ErrorCode
from forksync.output.console import Style

if TYPE_CHECKING:
    from forksync.cli.context import CatalogContext, CLIContext
    from forksync.github.pagination import FetchError


def settings_overrides(
    *,
    org: str | None,
    fork_account: str | None,
    workspace: str | None,
    exclude: str | None,
) -> dict[str, str | None]:
    """CLI option values keyed by setting name (None = not given)."""
    return {
        "organization": org,
        "fork_account": fork_account,
        "workspace_root": workspace,
        "exclude": exclude,
    }


def require_git(ctx: CLIContext) -> None:
    if shutil.which("git") is None:
        ctx.console.error("git: missing")
        ctx.console.print("hint: install git and make sure it is on PATH", Style.DIM)
        exit_with_code(int(ErrorCode.ENV_ERROR))


def exit_on_fetch_error(error: FetchError, ctx: CLIContext | CatalogContext) -> NoReturn:
    """Report a catalog fetch failure and exit; nothing has been touched."""
    ctx.console.error(f"could not list repositories of {ctx.settings.organization}")
    ctx.console.print(error.message, Style.DIM)
    if error.status in (401, 403):
        ctx.console.print("hint: check GITHUB_TOKEN or wait for the rate limit to reset", Style.DIM)
    elif error.status == 404:
        ctx.console.print("hint: check the organization name", Style.DIM)
    exit_with_code(int(ErrorCode.NETWORK_ERROR))


def exit_with_code(code: int) -> NoReturn:
    """Exit with given code. Explicit helper for clarity."""
    raise typer.Exit(code=code)
