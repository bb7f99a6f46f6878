"""List command - show the organization catalog.

Only the organization (and optionally an exclusion pattern and token) is
needed; fork account and workspace settings are not consulted.
"""

from __future__ import annotations

import typer

from forksync.cli.commands._helpers import exit_on_fetch_error
from forksync.cli.context import build_catalog_context
from forksync.core.result import Err
from forksync.output.console import Style
from forksync.services.workspace_sync import fetch_catalog


def list_repos(
    org: str | None = typer.Option(None, "--org", help="GitHub organization."),
    exclude: str | None = typer.Option(
        None, "--exclude", help="Exclusion pattern ('' clears a configured one)."
    ),
    show_excluded: bool = typer.Option(
        True, "--excluded/--no-excluded", help="Also list excluded repositories."
    ),
) -> None:
    """List the organization's repositories, included first."""
    ctx = build_catalog_context({"organization": org, "exclude": exclude})
    result = fetch_catalog(ctx.api, ctx.settings, ctx.console)
    if isinstance(result, Err):
        exit_on_fetch_error(result.error, ctx)

    catalog = result.value
    ctx.console.header(f"Included ({len(catalog.included)})")
    for name in catalog.included:
        ctx.console.print(name)

    if show_excluded and catalog.excluded:
        ctx.console.header(f"Excluded ({len(catalog.excluded)})")
        for name in catalog.excluded:
            ctx.console.print(name, Style.DIM)
