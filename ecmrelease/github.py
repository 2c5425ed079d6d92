"""A small client for the parts of the GitHub REST API used by the release tooling."""

from __future__ import annotations

import base64
from typing import Any
from urllib.parse import parse_qs, quote, urlparse

import requests

API_URL = "https://api.github.com"
HTTP_TIMEOUT = 10.0


class GitHubError(Exception):
    """An error response returned by the GitHub API."""

    def __init__(self, status_code: int, message: str, url: str = "") -> None:
        super().__init__(f"{url}: {status_code} {message}" if url else f"{status_code} {message}")
        self.status_code = status_code
        self.message = message
        self.url = url

    @classmethod
    def from_response(cls, response: requests.Response) -> GitHubError:
        try:
            payload = response.json()
        except ValueError:
            payload = None
        if isinstance(payload, dict) and payload.get("message"):
            message = str(payload["message"])
        else:
            message = response.text or response.reason or ""
        return cls(response.status_code, message, response.url or "")


def _segment(value: Any) -> str:
    return quote(str(value), safe="")


class GitHubClient:
    """Thin wrapper around a requests session talking to the GitHub API."""

    def __init__(
        self,
        token: str | None = None,
        timeout: float | None = HTTP_TIMEOUT,
        base_url: str = API_URL,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = requests.Session()
        self._session.headers["Accept"] = "application/vnd.github+json"
        if token:
            self._session.headers["Authorization"] = f"Bearer {token}"

    def __enter__(self) -> GitHubClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self._session.close()

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, Any] | None = None,
        body: Any = None,
    ) -> requests.Response:
        response = self._session.request(
            method,
            self.base_url + path,
            params=params,
            json=body,
            timeout=self.timeout,
        )
        if response.status_code >= 400:
            raise GitHubError.from_response(response)
        return response

    @staticmethod
    def _payload(response: requests.Response) -> Any:
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    @staticmethod
    def _repo(owner: str, repo: str) -> str:
        return f"/repos/{_segment(owner)}/{_segment(repo)}"

    @staticmethod
    def _next_page(response: requests.Response) -> int | None:
        url = response.links.get("next", {}).get("url")
        if not url:
            return None
        pages = parse_qs(urlparse(url).query).get("page")
        if not pages:
            return None
        try:
            return int(pages[0])
        except ValueError:
            return None

    def get_release_by_tag(self, owner: str, repo: str, tag: str) -> dict[str, Any]:
        """Return the release published under ``tag``."""
        path = f"{self._repo(owner, repo)}/releases/tags/{_segment(tag)}"
        return self._payload(self._request("GET", path))

    def list_releases(
        self,
        owner: str,
        repo: str,
        page: int | None = None,
        per_page: int | None = None,
    ) -> tuple[list[dict[str, Any]], int | None]:
        """Return one page of releases and the number of the next page, if any."""
        params: dict[str, Any] = {}
        if page:
            params["page"] = page
        if per_page:
            params["per_page"] = per_page
        response = self._request("GET", f"{self._repo(owner, repo)}/releases", params=params or None)
        return self._payload(response) or [], self._next_page(response)

    def create_release(self, owner: str, repo: str, release: dict[str, Any]) -> dict[str, Any]:
        """Create a release from the given request body."""
        response = self._request("POST", f"{self._repo(owner, repo)}/releases", body=release)
        return self._payload(response)

    def delete_release_asset(self, owner: str, repo: str, asset_id: int) -> None:
        """Delete the release asset with the given id."""
        self._request("DELETE", f"{self._repo(owner, repo)}/releases/assets/{_segment(asset_id)}")

    def list_tags(self, owner: str, repo: str) -> list[dict[str, Any]]:
        """Return the first page of tags of the repository."""
        return self._payload(self._request("GET", f"{self._repo(owner, repo)}/tags")) or []

    def get_contents(self, owner: str, repo: str, path: str, ref: str | None = None) -> str:
        """Return the decoded text of a file in the repository."""
        params = {"ref": ref} if ref else None
        url = f"{self._repo(owner, repo)}/contents/{quote(path.lstrip('/'), safe='/')}"
        payload = self._payload(self._request("GET", url, params=params))
        if not isinstance(payload, dict):
            raise ValueError(f"{path} is not a file")
        encoding = payload.get("encoding") or ""
        content = payload.get("content")
        if encoding == "base64":
            return base64.b64decode(content or "").decode("utf-8")
        if encoding == "":
            return content or ""
        if encoding == "none":
            raise ValueError(
                "unsupported content encoding: none, this may occur when file size > 1 MB"
            )
        raise ValueError(f"unsupported content encoding: {encoding}")

    def compare_commits(self, owner: str, repo: str, base: str, head: str) -> dict[str, Any]:
        """Compare two commits, tags or branches."""
        path = f"{self._repo(owner, repo)}/compare/{_segment(base)}...{_segment(head)}"
        return self._payload(self._request("GET", path))

    def list_pull_requests_with_commit(self, owner: str, repo: str, sha: str) -> list[dict[str, Any]]:
        """Return the pull requests that contain the given commit."""
        path = f"{self._repo(owner, repo)}/commits/{_segment(sha)}/pulls"
        return self._payload(self._request("GET", path)) or []

    def create_issue(self, owner: str, repo: str, issue: dict[str, Any]) -> dict[str, Any]:
        """Open an issue from the given request body."""
        return self._payload(self._request("POST", f"{self._repo(owner, repo)}/issues", body=issue))

    def get_issue(self, owner: str, repo: str, number: int) -> dict[str, Any]:
        """Return the issue with the given number."""
        path = f"{self._repo(owner, repo)}/issues/{_segment(number)}"
        return self._payload(self._request("GET", path))


def new_github(token: str | None) -> GitHubClient:
    """Create a client, authenticated and with a timeout when a token is given."""
    if not token:
        return GitHubClient(None, timeout=None)
    return GitHubClient(token, timeout=HTTP_TIMEOUT)