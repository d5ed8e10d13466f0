"""GitHub REST API adapter — implements the RepositoryHost port."""

from __future__ import annotations

import base64
import binascii
import logging
from datetime import datetime, timezone
from typing import Any
from urllib.parse import quote

import httpx

from testgen.domain.entities import DirectoryEntry, PullRequest, Repository
from testgen.domain.exceptions import (
    AuthenticationFailedError,
    ContentUnavailableError,
    GitHubRateLimitError,
    RepositoryAccessDeniedError,
    RepositoryHostError,
    RepositoryNotFoundError,
    WriteConflictError,
)

logger = logging.getLogger(__name__)

_GITHUB_API = "https://api.github.com"
DEFAULT_BRANCH = "main"
ALTERNATE_DEFAULT_BRANCH = "master"


class GitHubRestAdapter:
    """Concrete RepositoryHost backed by the GitHub v3 REST API.

    Every method issues authenticated calls with no retries; failures are
    raised as :class:`RepositoryHostError` subclasses carrying the upstream
    status code and body text.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        token: str,
        *,
        base_url: str = _GITHUB_API,
        page_size: int = 100,
    ) -> None:
        self._client = client
        self._base_url = base_url.rstrip("/")
        self._page_size = page_size
        self._headers: dict[str, str] = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "testgen/1.0",
            "Authorization": f"Bearer {token}",
        }

    async def current_user(self) -> str:
        """GET /user → login."""
        data = await self._request("GET", "/user")
        return str(data.get("login", ""))

    async def list_repositories(self) -> list[Repository]:
        """GET /user/repos, most recently updated first."""
        data = await self._request(
            "GET",
            "/user/repos",
            params={"sort": "updated", "per_page": str(self._page_size)},
        )
        return [
            Repository(
                id=item["id"],
                name=item["name"],
                full_name=item["full_name"],
                description=item.get("description"),
                language=item.get("language"),
                private=bool(item.get("private", False)),
            )
            for item in data[: self._page_size]
        ]

    async def list_directory(
        self, owner: str, name: str, path: str = ""
    ) -> list[DirectoryEntry]:
        """GET /repos/{owner}/{repo}/contents/{path} → one level of entries."""
        data = await self._request("GET", _contents_endpoint(owner, name, path))
        items = data if isinstance(data, list) else [data]
        return [
            DirectoryEntry(
                name=item["name"],
                path=item["path"],
                kind=item.get("type", "file"),
                download_url=item.get("download_url"),
                sha=item.get("sha"),
            )
            for item in items
        ]

    async def read_file(self, owner: str, name: str, path: str) -> str:
        """Fetch a file through the contents API and decode its base64 payload."""
        data = await self._request("GET", _contents_endpoint(owner, name, path))
        if isinstance(data, list):
            raise ContentUnavailableError(f"{path} is a directory.")

        content = data.get("content")
        if content is None or data.get("encoding", "base64") != "base64":
            raise ContentUnavailableError(f"File content not available for {path}.")

        try:
            raw = base64.b64decode(content.replace("\n", ""))
            return raw.decode("utf-8")
        except (binascii.Error, UnicodeDecodeError) as exc:
            raise ContentUnavailableError(
                f"File content for {path} is not decodable text."
            ) from exc

    async def ensure_branch(
        self, owner: str, name: str, new_branch: str, from_branch: str = DEFAULT_BRANCH
    ) -> str:
        """Create ``refs/heads/<new_branch>`` from *from_branch* unless it exists.

        When *from_branch* is ``main`` and missing, retries once from
        ``master``.
        """
        try:
            await self._request("GET", f"/repos/{owner}/{name}/branches/{quote(new_branch)}")
            logger.debug("Branch %s already exists on %s/%s", new_branch, owner, name)
            return new_branch
        except RepositoryNotFoundError:
            pass

        try:
            source = await self._request(
                "GET", f"/repos/{owner}/{name}/branches/{quote(from_branch)}"
            )
        except RepositoryNotFoundError:
            if from_branch == DEFAULT_BRANCH:
                logger.info(
                    "Branch %s not found on %s/%s, retrying from %s",
                    from_branch, owner, name, ALTERNATE_DEFAULT_BRANCH,
                )
                return await self.ensure_branch(
                    owner, name, new_branch, ALTERNATE_DEFAULT_BRANCH
                )
            raise

        await self._request(
            "POST",
            f"/repos/{owner}/{name}/git/refs",
            json={"ref": f"refs/heads/{new_branch}", "sha": source["commit"]["sha"]},
        )
        logger.info("Created branch %s on %s/%s from %s", new_branch, owner, name, from_branch)
        return new_branch

    async def write_file(
        self,
        owner: str,
        name: str,
        path: str,
        content: str,
        message: str,
        branch: str,
    ) -> None:
        """Create or update *path* on *branch*.

        Reads the current revision marker first and sends it with the update.
        The read and the write are separate calls: a concurrent writer in
        between makes the write fail with :class:`WriteConflictError`, which
        is raised as-is.
        """
        endpoint = _contents_endpoint(owner, name, path)
        sha: str | None = None
        try:
            existing = await self._request("GET", endpoint, params={"ref": branch})
            if isinstance(existing, dict):
                sha = existing.get("sha")
        except RepositoryNotFoundError:
            sha = None

        payload: dict[str, Any] = {
            "message": message,
            "content": base64.b64encode(content.encode("utf-8")).decode("ascii"),
            "branch": branch,
        }
        if sha:
            payload["sha"] = sha

        await self._request("PUT", endpoint, json=payload)
        logger.debug("%s %s on %s", "Updated" if sha else "Created", path, branch)

    async def open_pull_request(
        self, owner: str, name: str, title: str, body: str, head: str, base: str
    ) -> PullRequest:
        """POST /repos/{owner}/{repo}/pulls → PullRequest."""
        data = await self._request(
            "POST",
            f"/repos/{owner}/{name}/pulls",
            json={"title": title, "body": body, "head": head, "base": base},
        )
        return PullRequest(
            number=int(data.get("number", 0)),
            url=data.get("html_url") or data.get("url", ""),
            branch=head,
        )

    async def default_branch(self, owner: str, name: str) -> str:
        """Return the repository's default branch, ``main`` if the lookup fails."""
        try:
            data = await self._request("GET", f"/repos/{owner}/{name}")
            return data.get("default_branch") or DEFAULT_BRANCH
        except Exception:
            logger.debug(
                "Failed to fetch default branch for %s/%s, using %s",
                owner, name, DEFAULT_BRANCH, exc_info=True,
            )
            return DEFAULT_BRANCH

    async def _request(
        self,
        method: str,
        endpoint: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> Any:
        """Perform a GitHub API request and return the decoded JSON body."""
        url = f"{self._base_url}{endpoint}"
        try:
            resp = await self._client.request(
                method, url, headers=self._headers, params=params, json=json
            )
        except httpx.HTTPError as exc:
            raise RepositoryHostError(0, f"Network error calling {url}: {exc}") from exc

        _raise_for_status(resp)
        if not resp.content:
            return {}
        return resp.json()


def _contents_endpoint(owner: str, name: str, path: str) -> str:
    return f"/repos/{owner}/{name}/contents/{quote(path.strip('/'))}"


def _raise_for_status(resp: httpx.Response) -> None:
    """Translate a non-2xx response into the matching tagged error."""
    status = resp.status_code
    if 200 <= status < 300:
        return

    body = resp.text

    if status == 401:
        raise AuthenticationFailedError(status, body)

    if status == 403:
        if resp.headers.get("x-ratelimit-remaining", "") == "0":
            reset_raw = resp.headers.get("x-ratelimit-reset", "")
            try:
                reset_str = datetime.fromtimestamp(int(reset_raw), tz=timezone.utc).strftime(
                    "%Y-%m-%d %H:%M:%S UTC"
                )
            except (ValueError, OSError):
                reset_str = reset_raw or "unknown"
            raise GitHubRateLimitError(
                status, f"GitHub API rate limit exceeded. Resets at {reset_str}."
            )
        raise RepositoryAccessDeniedError(status, body)

    if status == 404:
        raise RepositoryNotFoundError(status, body)

    if status in (409, 422):
        raise WriteConflictError(status, body)

    if status == 429:
        raise GitHubRateLimitError(status, body)

    raise RepositoryHostError(status, body)
