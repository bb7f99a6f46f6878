"""Workspace-wide sync: catalog fetch, then one engine pass per repository.

Policy:
- The whole catalog is fetched before any repository is touched; a failed
  page aborts the run.
- Repositories are reconciled in catalog (sorted) order. With jobs > 1 they
  run on a thread pool, but status lines are still printed in catalog order.
- One status line per repository, then a summary count.
"""

from __future__ import annotations

from collections import Counter
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from typing import TYPE_CHECKING

from forksync.core.catalog import Catalog, build_catalog
from forksync.core.result import Err, Ok, Result
from forksync.github.pagination import FetchError, fetch_all
from forksync.output.console import Style
from forksync.services.engine import SyncEngine, SyncOutcome, SyncStatus

if TYPE_CHECKING:
    from forksync.core.config import CatalogSettings, SyncSettings
    from forksync.core.workspace import Workspace
    from forksync.github.api import GitHubApi
    from forksync.output.console import ConsoleProtocol

__all__ = ["SyncReport", "WorkspaceSyncService", "fetch_catalog"]


@dataclass(frozen=True, slots=True)
class SyncReport:
    """Outcomes of one run, in catalog order."""

    catalog: Catalog
    outcomes: tuple[SyncOutcome, ...] = ()

    def count(self, status: SyncStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def ok(self) -> bool:
        """True unless a repository needs manual attention."""
        return not any(o.needs_attention for o in self.outcomes)

    def summary(self) -> str:
        counts = Counter(o.status for o in self.outcomes)
        parts = [f"{counts[s]} {s.value}" for s in SyncStatus if counts[s]]
        excluded = len(self.catalog.excluded)
        if excluded:
            parts.append(f"{excluded} excluded")
        return ", ".join(parts) or "nothing to do"


def fetch_catalog(
    api: GitHubApi,
    settings: CatalogSettings,
    console: ConsoleProtocol,
    *,
    verbose: bool = False,
) -> Result[Catalog, FetchError]:
    """Fetch every page of the organization listing and partition it."""
    url = api.org_repos_url(settings.organization)
    if verbose:
        console.print(f"GET {url}", Style.DIM)
    items = fetch_all(api.http, url, api.token, console=console)
    if isinstance(items, Err):
        return items
    return Ok(build_catalog(items.value, settings.exclude))


class WorkspaceSyncService:
    """Fetch the organization catalog and reconcile every included repository."""

    def __init__(
        self,
        *,
        settings: SyncSettings,
        workspace: Workspace,
        console: ConsoleProtocol,
        api: GitHubApi,
        verbose: bool = False,
    ) -> None:
        self._settings = settings
        self._workspace = workspace
        self._console = console
        self._api = api
        self._verbose = verbose

    def fetch_catalog(self) -> Result[Catalog, FetchError]:
        return fetch_catalog(
            self._api, self._settings.catalog, self._console, verbose=self._verbose
        )

    def sync(
        self,
        *,
        dry_run: bool = False,
        jobs: int = 1,
        only: Sequence[str] = (),
    ) -> Result[SyncReport, FetchError]:
        """Reconcile the workspace.

        Args:
            dry_run: Print planned operations, change nothing
            jobs: Maximum concurrent repository passes
            only: Restrict the run to these included repositories

        Returns:
            Ok(SyncReport), or Err(FetchError) if the catalog could not be
            fetched (in which case nothing was touched)
        """
        catalog_result = self.fetch_catalog()
        if isinstance(catalog_result, Err):
            return catalog_result
        catalog = catalog_result.value

        names = self._select(catalog, only)
        self._console.print(
            f"{self._settings.organization}: {len(catalog)} repositories, "
            f"{len(catalog.excluded)} excluded",
            Style.DIM,
        )

        if not dry_run:
            self._workspace.root.mkdir(parents=True, exist_ok=True)

        engine = SyncEngine(
            settings=self._settings,
            workspace=self._workspace,
            console=self._console,
            api=self._api,
            dry_run=dry_run,
            verbose=self._verbose,
        )

        outcomes: list[SyncOutcome] = []
        if jobs <= 1 or len(names) <= 1:
            for name in names:
                outcome = engine.reconcile(name)
                self._report(outcome)
                outcomes.append(outcome)
        else:
            with ThreadPoolExecutor(max_workers=jobs) as executor:
                # map() yields in submission order, which is catalog order.
                for outcome in executor.map(engine.reconcile, names):
                    self._report(outcome)
                    outcomes.append(outcome)

        report = SyncReport(catalog=catalog, outcomes=tuple(outcomes))
        self._console.newline()
        summary = report.summary()
        if report.ok:
            self._console.success(summary)
        else:
            self._console.error(f"{summary}; see above for repositories needing attention")
        return Ok(report)

    def _select(self, catalog: Catalog, only: Sequence[str]) -> list[str]:
        if not only:
            return list(catalog.included)
        wanted = set(only)
        known = set(catalog.names)
        for name in sorted(wanted - set(catalog.included)):
            reason = "excluded" if name in known else "not in organization"
            self._console.warning(f"{name}: ignored ({reason})")
        return [name for name in catalog.included if name in wanted]

    def _report(self, outcome: SyncOutcome) -> None:
        line = outcome.name
        if outcome.message:
            line += f": {outcome.status.value} ({outcome.message})"
        else:
            line += f": {outcome.status.value}"

        match outcome.status:
            case SyncStatus.SYNCED:
                self._console.success(line)
            case SyncStatus.SKIPPED:
                self._console.warning(line)
            case SyncStatus.PLANNED:
                self._console.info(line)
            case SyncStatus.NEEDS_ATTENTION:
                self._console.error(line)
                if outcome.hint:
                    self._console.print(f"  hint: {outcome.hint}", Style.DIM)
