"""GitHub REST API endpoints used by forksync.

All functions take an HttpClient so tests never touch the network.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING
from urllib.parse import quote

from forksync.core.config import DEFAULT_API_URL
from forksync.core.result import Result

if TYPE_CHECKING:
    from forksync.github.http import HttpClient, HttpError

__all__ = [
    "GitHubApi",
    "auth_headers",
    "org_repos_url",
]

PER_PAGE = 100


def auth_headers(token: str | None) -> dict[str, str]:
    """Request headers for an optional bearer token."""
    if not token:
        return {}
    return {"Authorization": f"Bearer {token}"}


def org_repos_url(org: str, *, api_url: str = DEFAULT_API_URL, per_page: int = PER_PAGE) -> str:
    """First page of the organization's repository listing."""
    return f"{api_url}/orgs/{quote(org, safe='')}/repos?per_page={per_page}"


@dataclass(frozen=True, slots=True)
class GitHubApi:
    """Authenticated view of the API for one run."""

    http: HttpClient
    api_url: str = DEFAULT_API_URL
    token: str | None = None

    @property
    def authenticated(self) -> bool:
        return bool(self.token)

    def org_repos_url(self, org: str) -> str:
        return org_repos_url(org, api_url=self.api_url)

    def fork_url(self, org: str, name: str) -> str:
        return f"{self.api_url}/repos/{quote(org, safe='')}/{quote(name, safe='')}/forks"

    def create_fork(self, org: str, name: str) -> Result[None, HttpError]:
        """Ask GitHub to fork org/name into the token owner's account.

        GitHub answers 202 and creates the fork asynchronously; asking for an
        existing fork is a no-op that returns the same fork.
        """
        return self.http.post_json(
            self.fork_url(org, name), payload={}, headers=auth_headers(self.token)
        ).map(lambda _response: None)
