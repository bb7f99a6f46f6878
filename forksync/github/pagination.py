"""Paginated collection fetching.

The listing API returns one page of items per request and advertises the
rest of the collection in the ``Link`` header:

    Link: <https://api.github.com/organizations/1/repos?page=2>; rel="next",
          <https://api.github.com/organizations/1/repos?page=5>; rel="last"

``collect`` follows ``next`` until it disappears. When ``next`` equals
``last`` the terminal page is fetched explicitly and the walk stops there,
since some API implementations omit the terminal page's own continuation
metadata. Requests are strictly sequential: each URL comes from the
previous response.

Usage:
    match fetch_all(http, org_repos_url("nubisproject"), token, console=console):
        case Ok(items):
            catalog = build_catalog(items, exclude)
        case Err(error):
            console.error(error.message)
"""

from __future__ import annotations

import re
from collections.abc import Iterator, Mapping
from dataclasses import dataclass
from typing import TYPE_CHECKING

from forksync.core.result import Err, Ok, Result
from forksync.core.structured import as_array
from forksync.github.api import auth_headers

if TYPE_CHECKING:
    from forksync.github.http import HttpClient, JsonResponse
    from forksync.output.console import ConsoleProtocol

__all__ = [
    "CollectionAborted",
    "FetchError",
    "Page",
    "collect",
    "fetch_all",
    "parse_link_header",
]

_LINK_RE = re.compile(r"<(?P<url>[^>]*)>(?P<params>[^,<]*)")
_REL_RE = re.compile(r"""rel\s*=\s*"?(?P<rel>[^";]+)"?""")

UNAUTHENTICATED_WARNING = (
    "no API token configured: listing unauthenticated "
    "(lower rate limit, private repositories are not listed)"
)


@dataclass(frozen=True, slots=True)
class FetchError:
    """Catalog collection failed; nothing from it may be acted upon."""

    message: str
    url: str
    status: int = 0


class CollectionAborted(Exception):
    """Raised by `collect` when a page cannot be fetched or decoded."""

    def __init__(self, error: FetchError) -> None:
        super().__init__(error.message)
        self.error = error


@dataclass(frozen=True, slots=True)
class Page:
    """One page of a collection.

    Attributes:
        items: Raw items, in API order
        next: Continuation URL, None on the final page
        last: URL of the terminal page, when advertised
    """

    items: tuple[object, ...]
    next: str | None = None
    last: str | None = None

    @property
    def is_final(self) -> bool:
        return self.next is None

    @property
    def next_is_last(self) -> bool:
        return self.next is not None and self.next == self.last


def parse_link_header(value: str | None) -> dict[str, str]:
    """Parse an RFC 8288 ``Link`` header into {rel: url}.

    A link with several space-separated relations is registered under each.
    The first occurrence of a relation wins.
    """
    links: dict[str, str] = {}
    if not value:
        return links
    for match in _LINK_RE.finditer(value):
        rel_match = _REL_RE.search(match.group("params"))
        if rel_match is None:
            continue
        for rel in rel_match.group("rel").split():
            links.setdefault(rel.lower(), match.group("url").strip())
    return links


def _to_page(url: str, response: JsonResponse) -> Page:
    items = as_array(response.data)
    if items is None:
        raise CollectionAborted(
            FetchError(message="expected a JSON array of items", url=url)
        )
    links = parse_link_header(response.header("link"))
    return Page(items=tuple(items), next=links.get("next"), last=links.get("last"))


def _fetch_page(http: HttpClient, url: str, headers: Mapping[str, str]) -> Page:
    result = http.get_json(url, headers)
    if isinstance(result, Err):
        error = result.error
        raise CollectionAborted(
            FetchError(message=str(error), url=error.url, status=error.status)
        )
    return _to_page(url, result.value)


def collect(
    http: HttpClient,
    start_url: str,
    auth_token: str | None = None,
    *,
    console: ConsoleProtocol | None = None,
) -> Iterator[object]:
    """Lazily yield every item of a paginated collection.

    The generator is finite and not restartable: each page is requested at
    most once, and calling `collect` again re-issues every request.

    Raises:
        CollectionAborted: On the first page that fails; callers must discard
            the items already received.
    """
    if not auth_token and console is not None:
        console.warning(UNAUTHENTICATED_WARNING)
    headers = auth_headers(auth_token)

    remaining: str | None = start_url
    visited: set[str] = set()
    while remaining is not None:
        if remaining in visited:
            raise CollectionAborted(
                FetchError(message="pagination loops back to an earlier page", url=remaining)
            )
        visited.add(remaining)

        page = _fetch_page(http, remaining, headers)
        yield from page.items

        if page.next_is_last and page.next is not None and page.next not in visited:
            final = _fetch_page(http, page.next, headers)
            yield from final.items
            remaining = None
        else:
            remaining = None if page.is_final else page.next


def fetch_all(
    http: HttpClient,
    start_url: str,
    auth_token: str | None = None,
    *,
    console: ConsoleProtocol | None = None,
) -> Result[list[object], FetchError]:
    """Collect a whole collection, or fail without returning partial data."""
    try:
        return Ok(list(collect(http, start_url, auth_token, console=console)))
    except CollectionAborted as e:
        return Err(e.error)
