"""GitHub REST API access: HTTP client, pagination, endpoints."""

from forksync.github.api import GitHubApi, auth_headers, org_repos_url
from forksync.github.http import HttpClient, HttpError, JsonResponse, MockHttpClient, RealHttpClient
from forksync.github.pagination import (
    CollectionAborted,
    FetchError,
    Page,
    collect,
    fetch_all,
    parse_link_header,
)

__all__ = [
    # api
    "GitHubApi",
    "auth_headers",
    "org_repos_url",
    # http
    "HttpClient",
    "HttpError",
    "JsonResponse",
    "MockHttpClient",
    "RealHttpClient",
    # pagination
    "CollectionAborted",
    "FetchError",
    "Page",
    "collect",
    "fetch_all",
    "parse_link_header",
]
