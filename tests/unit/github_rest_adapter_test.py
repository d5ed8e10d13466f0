"""Tests for the GitHub REST adapter against a mocked transport."""

from __future__ import annotations

import base64
import json
from collections.abc import Callable
from typing import Any

import httpx
import pytest

from testgen.domain.exceptions import (
    AuthenticationFailedError,
    ContentUnavailableError,
    GitHubRateLimitError,
    RepositoryAccessDeniedError,
    RepositoryHostError,
    RepositoryNotFoundError,
    WriteConflictError,
)
from testgen.infrastructure.github_rest_adapter import GitHubRestAdapter

Handler = Callable[[httpx.Request], httpx.Response]


def _adapter(handler: Handler) -> GitHubRestAdapter:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GitHubRestAdapter(client, "ghp_secret", page_size=2)


def _b64(text: str) -> str:
    encoded = base64.b64encode(text.encode("utf-8")).decode("ascii")
    # GitHub wraps the payload at 60 columns
    return "\n".join(encoded[i : i + 60] for i in range(0, len(encoded), 60))


class _Recorder:
    """Routes ``(method, path)`` to canned responses and records every request."""

    def __init__(self, routes: dict[tuple[str, str], httpx.Response]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.routes.get(
            (request.method, request.url.path), httpx.Response(404, text="Not Found")
        )

    def bodies(self, method: str) -> list[dict[str, Any]]:
        return [json.loads(r.content) for r in self.requests if r.method == method]


class TestReads:
    @pytest.mark.asyncio
    async def test_current_user_sends_bearer_token(self) -> None:
        rec = _Recorder({("GET", "/user"): httpx.Response(200, json={"login": "octocat"})})
        assert await _adapter(rec).current_user() == "octocat"
        assert rec.requests[0].headers["Authorization"] == "Bearer ghp_secret"

    @pytest.mark.asyncio
    async def test_list_repositories_respects_page_size(self) -> None:
        repos = [
            {"id": i, "name": f"r{i}", "full_name": f"o/r{i}", "private": i == 0}
            for i in range(3)
        ]
        rec = _Recorder({("GET", "/user/repos"): httpx.Response(200, json=repos)})

        result = await _adapter(rec).list_repositories()

        assert [r.full_name for r in result] == ["o/r0", "o/r1"]
        assert result[0].private is True
        assert rec.requests[0].url.params["sort"] == "updated"

    @pytest.mark.asyncio
    async def test_list_directory_maps_entries(self) -> None:
        listing = [
            {"name": "a.ts", "path": "src/a.ts", "type": "file", "sha": "1"},
            {"name": "lib", "path": "src/lib", "type": "dir", "sha": "2"},
        ]
        rec = _Recorder(
            {("GET", "/repos/o/r/contents/src"): httpx.Response(200, json=listing)}
        )

        entries = await _adapter(rec).list_directory("o", "r", "src")

        assert [(e.path, e.kind) for e in entries] == [("src/a.ts", "file"), ("src/lib", "dir")]

    @pytest.mark.asyncio
    async def test_read_file_decodes_base64(self) -> None:
        text = "export const greet = (name) => `héllo ${name}`;\n" * 4
        rec = _Recorder(
            {
                ("GET", "/repos/o/r/contents/src/a.ts"): httpx.Response(
                    200, json={"type": "file", "encoding": "base64", "content": _b64(text)}
                )
            }
        )
        assert await _adapter(rec).read_file("o", "r", "src/a.ts") == text

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            [{"name": "a.ts", "path": "src/a.ts", "type": "file"}],
            {"type": "file", "encoding": "none", "content": ""},
            {"type": "file"},
            {"type": "file", "encoding": "base64", "content": base64.b64encode(b"\xff\xfe").decode()},
        ],
    )
    async def test_read_file_without_text_content(self, payload: Any) -> None:
        rec = _Recorder(
            {("GET", "/repos/o/r/contents/src/a.ts"): httpx.Response(200, json=payload)}
        )
        with pytest.raises(ContentUnavailableError):
            await _adapter(rec).read_file("o", "r", "src/a.ts")


class TestStatusTranslation:
    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("response", "error"),
        [
            (httpx.Response(401, text="Bad credentials"), AuthenticationFailedError),
            (httpx.Response(403, text="Forbidden"), RepositoryAccessDeniedError),
            (
                httpx.Response(
                    403,
                    text="limit",
                    headers={"x-ratelimit-remaining": "0", "x-ratelimit-reset": "1700000000"},
                ),
                GitHubRateLimitError,
            ),
            (httpx.Response(404, text="Not Found"), RepositoryNotFoundError),
            (httpx.Response(429, text="slow down"), GitHubRateLimitError),
            (httpx.Response(500, text="boom"), RepositoryHostError),
        ],
    )
    async def test_error_statuses(self, response: httpx.Response, error: type[Exception]) -> None:
        adapter = _adapter(lambda request: response)
        with pytest.raises(error):
            await adapter.current_user()

    @pytest.mark.asyncio
    async def test_error_carries_status_and_body(self) -> None:
        adapter = _adapter(lambda request: httpx.Response(500, text="upstream exploded"))
        with pytest.raises(RepositoryHostError) as info:
            await adapter.current_user()
        assert info.value.status_code == 500
        assert "upstream exploded" in str(info.value)

    @pytest.mark.asyncio
    async def test_network_failure_is_a_host_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(RepositoryHostError) as info:
            await _adapter(handler).current_user()
        assert info.value.status_code == 0


class TestWrites:
    @pytest.mark.asyncio
    async def test_ensure_branch_falls_back_to_master(self) -> None:
        rec = _Recorder(
            {
                ("GET", "/repos/o/r/branches/master"): httpx.Response(
                    200, json={"name": "master", "commit": {"sha": "abc123"}}
                ),
                ("POST", "/repos/o/r/git/refs"): httpx.Response(201, json={}),
            }
        )

        assert await _adapter(rec).ensure_branch("o", "r", "testgen/x") == "testgen/x"
        assert rec.bodies("POST") == [{"ref": "refs/heads/testgen/x", "sha": "abc123"}]

    @pytest.mark.asyncio
    async def test_ensure_branch_is_idempotent(self) -> None:
        rec = _Recorder(
            {("GET", "/repos/o/r/branches/testgen/x"): httpx.Response(200, json={"name": "x"})}
        )
        await _adapter(rec).ensure_branch("o", "r", "testgen/x")
        assert [r.method for r in rec.requests] == ["GET"]

    @pytest.mark.asyncio
    async def test_ensure_branch_missing_source_propagates(self) -> None:
        rec = _Recorder({})
        with pytest.raises(RepositoryNotFoundError):
            await _adapter(rec).ensure_branch("o", "r", "testgen/x", "develop")

    @pytest.mark.asyncio
    async def test_write_file_creates_without_sha(self) -> None:
        rec = _Recorder(
            {("PUT", "/repos/o/r/contents/src/__tests__/a.test.ts"): httpx.Response(201, json={})}
        )

        await _adapter(rec).write_file(
            "o", "r", "src/__tests__/a.test.ts", "test();\n", "Add tests", "testgen/x"
        )

        [body] = rec.bodies("PUT")
        assert "sha" not in body
        assert body["branch"] == "testgen/x"
        assert base64.b64decode(body["content"]).decode() == "test();\n"
        assert rec.requests[0].url.params["ref"] == "testgen/x"

    @pytest.mark.asyncio
    async def test_write_file_updates_with_current_sha(self) -> None:
        path = "/repos/o/r/contents/a.test.ts"
        rec = _Recorder(
            {
                ("GET", path): httpx.Response(200, json={"type": "file", "sha": "old-sha"}),
                ("PUT", path): httpx.Response(200, json={}),
            }
        )

        await _adapter(rec).write_file("o", "r", "a.test.ts", "x", "Update", "b")

        assert rec.bodies("PUT")[0]["sha"] == "old-sha"

    @pytest.mark.asyncio
    async def test_write_conflict_is_surfaced(self) -> None:
        path = "/repos/o/r/contents/a.test.ts"
        rec = _Recorder(
            {
                ("GET", path): httpx.Response(200, json={"type": "file", "sha": "stale"}),
                ("PUT", path): httpx.Response(409, text="sha does not match"),
            }
        )

        with pytest.raises(WriteConflictError):
            await _adapter(rec).write_file("o", "r", "a.test.ts", "x", "Update", "b")
        assert len(rec.bodies("PUT")) == 1

    @pytest.mark.asyncio
    async def test_open_pull_request(self) -> None:
        rec = _Recorder(
            {
                ("POST", "/repos/o/r/pulls"): httpx.Response(
                    201, json={"number": 7, "html_url": "https://github.com/o/r/pull/7"}
                )
            }
        )

        pr = await _adapter(rec).open_pull_request("o", "r", "Title", "Body", "testgen/x", "main")

        assert (pr.number, pr.url, pr.branch) == (7, "https://github.com/o/r/pull/7", "testgen/x")
        assert rec.bodies("POST") == [
            {"title": "Title", "body": "Body", "head": "testgen/x", "base": "main"}
        ]

    @pytest.mark.asyncio
    async def test_default_branch_lookup_and_fallback(self) -> None:
        ok = _Recorder({("GET", "/repos/o/r"): httpx.Response(200, json={"default_branch": "dev"})})
        assert await _adapter(ok).default_branch("o", "r") == "dev"
        assert await _adapter(_Recorder({})).default_branch("o", "r") == "main"
