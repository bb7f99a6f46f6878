"""Tests for github/api.py."""

from forksync.core.result import Err, Ok
from forksync.github.api import GitHubApi, auth_headers, org_repos_url
from forksync.github.http import HttpError, MockHttpClient


def test_auth_headers() -> None:
    assert auth_headers("ghp_x") == {"Authorization": "Bearer ghp_x"}
    assert auth_headers(None) == {}
    assert auth_headers("") == {}


def test_org_repos_url() -> None:
    assert org_repos_url("nubisproject") == (
        "https://api.github.com/orgs/nubisproject/repos?per_page=100"
    )
    assert org_repos_url("acme", api_url="https://ghe.test/api/v3", per_page=5) == (
        "https://ghe.test/api/v3/orgs/acme/repos?per_page=5"
    )


class TestGitHubApi:
    def test_authenticated(self) -> None:
        http = MockHttpClient()
        assert GitHubApi(http=http, token="t").authenticated
        assert not GitHubApi(http=http).authenticated

    def test_urls_use_configured_base(self) -> None:
        api = GitHubApi(http=MockHttpClient(), api_url="https://api.test")
        assert api.org_repos_url("nubisproject") == (
            "https://api.test/orgs/nubisproject/repos?per_page=100"
        )
        assert api.fork_url("nubisproject", "nubis-base") == (
            "https://api.test/repos/nubisproject/nubis-base/forks"
        )

    def test_create_fork_posts_with_token(self) -> None:
        http = MockHttpClient()
        api = GitHubApi(http=http, api_url="https://api.test", token="t")
        http.set_post(api.fork_url("nubisproject", "nubis-base"), {"full_name": "jdoe/nubis-base"})

        assert api.create_fork("nubisproject", "nubis-base") == Ok(None)
        assert http.calls[0].method == "POST"
        assert http.calls[0].headers == {"Authorization": "Bearer t"}

    def test_create_fork_error(self) -> None:
        http = MockHttpClient()
        api = GitHubApi(http=http, api_url="https://api.test", token="t")
        url = api.fork_url("nubisproject", "nubis-base")
        http.set_post(url, HttpError(url=url, status=403, message="Forbidden"))

        result = api.create_fork("nubisproject", "nubis-base")

        assert isinstance(result, Err)
        assert result.error.status == 403
