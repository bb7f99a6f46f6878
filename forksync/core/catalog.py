"""Repository catalog.

Turns the raw repository objects returned by the organization listing into
a deterministic, name-sorted partition of included and excluded names.

Usage:
    catalog = build_catalog(items, "nubis-storage|nubis-vpc")
    for name in catalog.included:
        engine.reconcile(name)

The exclusion pattern is a regular expression tested against the whole
repository name (``re.fullmatch``). In practice it is an alternation of
literal names, so ``nubis-vpc`` excludes ``nubis-vpc`` but not
``nubis-vpc-peering``. An empty pattern excludes nothing.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterable
from dataclasses import dataclass

from forksync.core.structured import as_object, string_field

__all__ = [
    "Catalog",
    "build_catalog",
    "exclusion_matcher",
    "repository_names",
]


@dataclass(frozen=True, slots=True)
class Catalog:
    """Repositories of one organization, partitioned by the exclusion pattern.

    Both tuples are sorted ascending and disjoint; together they hold every
    repository name. Only `included` is reconciled, `excluded` is for reporting.
    """

    included: tuple[str, ...] = ()
    excluded: tuple[str, ...] = ()

    @property
    def names(self) -> tuple[str, ...]:
        return tuple(sorted((*self.included, *self.excluded)))

    def __len__(self) -> int:
        return len(self.included) + len(self.excluded)


def exclusion_matcher(pattern: str) -> Callable[[str], bool]:
    """Return a predicate telling whether a repository name is excluded.

    Raises:
        re.error: If the pattern is not a valid regular expression.
    """
    if not pattern:
        return lambda _name: False
    compiled = re.compile(pattern)
    return lambda name: compiled.fullmatch(name) is not None


def repository_names(raw_items: Iterable[object]) -> list[str]:
    """Extract unique repository names, sorted ascending.

    Items that are not objects or have no string ``name`` are ignored.
    """
    names: set[str] = set()
    for item in raw_items:
        record = as_object(item)
        if record is None:
            continue
        name = string_field(record, "name")
        if name is not None:
            names.add(name)
    return sorted(names)


def build_catalog(raw_items: Iterable[object], exclude_pattern: str) -> Catalog:
    """Build a Catalog from raw API items.

    Args:
        raw_items: Repository objects as returned by the listing API
        exclude_pattern: Exclusion pattern (validated by config loading)

    Returns:
        Catalog with sorted, disjoint included/excluded names
    """
    is_excluded = exclusion_matcher(exclude_pattern)
    included: list[str] = []
    excluded: list[str] = []
    for name in repository_names(raw_items):
        (excluded if is_excluded(name) else included).append(name)
    return Catalog(included=tuple(included), excluded=tuple(excluded))
