"""HTTP client abstraction for the GitHub REST API.

This module provides:
- HttpClient: Protocol for HTTP operations (injectable for tests)
- RealHttpClient: Real implementation using urllib
- MockHttpClient: Mock implementation for testing

Responses keep their headers because the listing API signals pagination
through the ``Link`` header rather than the body.
"""

from __future__ import annotations

import json
import ssl
import urllib.error
import urllib.request
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Protocol, runtime_checkable

from forksync import __version__
from forksync.core.result import Err, Ok, Result

__all__ = [
    "HttpClient",
    "HttpError",
    "JsonResponse",
    "MockHttpClient",
    "RealHttpClient",
]


@dataclass(frozen=True, slots=True)
class HttpError:
    """HTTP error details.

    Attributes:
        url: The URL that failed
        status: HTTP status code (0 for network and decode errors)
        message: Human-readable error message
    """

    url: str
    status: int
    message: str

    def __str__(self) -> str:
        if self.status:
            return f"HTTP {self.status}: {self.message} ({self.url})"
        return f"{self.message} ({self.url})"


@dataclass(frozen=True, slots=True)
class JsonResponse:
    """Decoded JSON body plus response headers (keys lower-cased)."""

    data: object
    headers: Mapping[str, str] = field(default_factory=dict)

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())


@runtime_checkable
class HttpClient(Protocol):
    """Protocol for HTTP operations."""

    def get_json(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> Result[JsonResponse, HttpError]:
        """GET a URL and decode the JSON body."""
        ...

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[JsonResponse, HttpError]:
        """POST a JSON payload and decode the JSON body (None if empty)."""
        ...


class RealHttpClient:
    """Real HTTP client using urllib.

    Handles HTTPS with system certificates, JSON encoding/decoding and
    timeouts. Every failure is returned as an HttpError, never raised.
    """

    def __init__(
        self, timeout: float = 30.0, user_agent: str = f"forksync/{__version__}"
    ) -> None:
        self.timeout = timeout
        self.user_agent = user_agent
        self._ssl_context = ssl.create_default_context()

    def _request(
        self,
        url: str,
        *,
        method: str,
        body: bytes | None,
        headers: Mapping[str, str] | None,
    ) -> Result[JsonResponse, HttpError]:
        all_headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/vnd.github+json",
            **(headers or {}),
        }
        if body is not None:
            all_headers["Content-Type"] = "application/json"
        try:
            req = urllib.request.Request(url, data=body, headers=all_headers, method=method)
            with urllib.request.urlopen(
                req,
                timeout=self.timeout,
                context=self._ssl_context,
            ) as response:
                raw = response.read()
                response_headers = {k.lower(): v for k, v in response.headers.items()}
        except urllib.error.HTTPError as e:
            return Err(HttpError(url=url, status=e.code, message=str(e.reason)))
        except urllib.error.URLError as e:
            return Err(HttpError(url=url, status=0, message=str(e.reason)))
        except TimeoutError:
            return Err(HttpError(url=url, status=0, message="Request timed out"))
        except ValueError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))
        except OSError as e:
            return Err(HttpError(url=url, status=0, message=str(e)))

        if not raw.strip():
            return Ok(JsonResponse(data=None, headers=response_headers))
        try:
            data: object = json.loads(raw.decode("utf-8"))
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            return Err(HttpError(url=url, status=0, message=f"JSON parse error: {e}"))
        return Ok(JsonResponse(data=data, headers=response_headers))

    def get_json(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> Result[JsonResponse, HttpError]:
        return self._request(url, method="GET", body=None, headers=headers)

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[JsonResponse, HttpError]:
        body = json.dumps(dict(payload or {})).encode("utf-8")
        return self._request(url, method="POST", body=body, headers=headers)


@dataclass(frozen=True, slots=True)
class HttpCall:
    """A request recorded by MockHttpClient."""

    method: str
    url: str
    headers: Mapping[str, str]


class MockHttpClient:
    """Mock HTTP client for testing.

    Usage:
        client = MockHttpClient()
        client.set_json(
            "https://api.example.com/orgs/acme/repos",
            [{"name": "a"}],
            headers={"Link": '<https://api.example.com/page2>; rel="next"'},
        )
    """

    def __init__(self) -> None:
        self._get: dict[str, JsonResponse | HttpError] = {}
        self._post: dict[str, JsonResponse | HttpError] = {}
        self.calls: list[HttpCall] = []

    @staticmethod
    def _response(data: object, headers: Mapping[str, str] | None) -> JsonResponse:
        return JsonResponse(
            data=data, headers={k.lower(): v for k, v in (headers or {}).items()}
        )

    def set_json(
        self,
        url: str,
        response: object | HttpError,
        headers: Mapping[str, str] | None = None,
    ) -> None:
        """Set the GET response for URL (JSON data or an HttpError)."""
        self._get[url] = response if isinstance(response, HttpError) else self._response(
            response, headers
        )

    def set_post(self, url: str, response: object | HttpError) -> None:
        """Set the POST response for URL."""
        self._post[url] = response if isinstance(response, HttpError) else self._response(
            response, None
        )

    def _lookup(
        self,
        table: dict[str, JsonResponse | HttpError],
        method: str,
        url: str,
        headers: Mapping[str, str] | None,
    ) -> Result[JsonResponse, HttpError]:
        self.calls.append(HttpCall(method=method, url=url, headers=dict(headers or {})))
        if url not in table:
            return Err(HttpError(url=url, status=404, message="Not found (mock)"))
        response = table[url]
        if isinstance(response, HttpError):
            return Err(response)
        return Ok(response)

    def get_json(
        self, url: str, headers: Mapping[str, str] | None = None
    ) -> Result[JsonResponse, HttpError]:
        return self._lookup(self._get, "GET", url, headers)

    def post_json(
        self,
        url: str,
        payload: Mapping[str, object] | None = None,
        headers: Mapping[str, str] | None = None,
    ) -> Result[JsonResponse, HttpError]:
        return self._lookup(self._post, "POST", url, headers)

    def urls(self, method: str = "GET") -> list[str]:
        """URLs requested with `method`, in call order."""
        return [c.url for c in self.calls if c.method == method]
