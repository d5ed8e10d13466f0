"""Shared fixtures and fakes for tests."""

from __future__ import annotations

from pathlib import Path

import pytest

from testgen.domain.entities import (
    DirectoryEntry,
    GeneratedTest,
    Priority,
    PullRequest,
    Repository,
    SelectedFileContent,
    TestSummary,
    TestType,
)
from testgen.domain.exceptions import ContentUnavailableError, RepositoryAccessDeniedError

_TESTS_ROOT = Path(__file__).parent


def pytest_collection_modifyitems(items: list[pytest.Item]) -> None:
    for item in items:
        if Path(str(item.fspath)).relative_to(_TESTS_ROOT).parts[0] == "unit":
            item.add_marker(pytest.mark.unit)


# ---------------------------------------------------------------------------
# Builders
# ---------------------------------------------------------------------------


def entry(path: str, kind: str = "file") -> DirectoryEntry:
    return DirectoryEntry(name=path.rsplit("/", maxsplit=1)[-1], path=path, kind=kind)


def summary(
    summary_id: str = "s1",
    *,
    file_path: str = "src/foo.ts",
    test_type: TestType = TestType.UNIT,
    priority: Priority = Priority.HIGH,
    function_name: str | None = "add",
    title: str = "Test add function",
) -> TestSummary:
    return TestSummary(
        id=summary_id,
        title=title,
        description=f"{title} description",
        test_type=test_type,
        priority=priority,
        estimated_complexity=2,
        file_path=file_path,
        function_name=function_name,
    )


def generated(summary_id: str = "s1", code: str = "test('x', () => {});") -> GeneratedTest:
    return GeneratedTest(
        id=f"test-{summary_id}",
        summary_id=summary_id,
        code=code,
        framework="jest",
        language="typescript",
    )


REPO = Repository(id=1, name="demo", full_name="octocat/demo", description="Demo project")


# ---------------------------------------------------------------------------
# FakeHost — in-memory RepositoryHost
# ---------------------------------------------------------------------------


class FakeHost:
    """Repository host serving canned listings and files, recording writes."""

    def __init__(
        self,
        listings: dict[str, list[DirectoryEntry]] | None = None,
        files: dict[str, str] | None = None,
        *,
        failing: set[str] | None = None,
        login: str = "octocat",
        repositories: list[Repository] | None = None,
    ) -> None:
        self.listings = listings or {}
        self.files = files or {}
        self.failing = failing or set()
        self.login = login
        self.repositories = repositories if repositories is not None else [REPO]
        self.listed: list[str] = []
        self.branches: list[tuple[str, str]] = []
        self.written: dict[str, tuple[str, str, str]] = {}
        self.pulls: list[dict[str, str]] = []

    async def current_user(self) -> str:
        return self.login

    async def list_repositories(self) -> list[Repository]:
        return list(self.repositories)

    async def list_directory(self, owner: str, name: str, path: str = "") -> list[DirectoryEntry]:
        self.listed.append(path)
        if path in self.failing:
            raise RepositoryAccessDeniedError(403, f"no access to {path!r}")
        return list(self.listings.get(path, []))

    async def read_file(self, owner: str, name: str, path: str) -> str:
        if path not in self.files:
            raise ContentUnavailableError(f"File content not available for {path}.")
        return self.files[path]

    async def ensure_branch(
        self, owner: str, name: str, new_branch: str, from_branch: str = "main"
    ) -> str:
        self.branches.append((new_branch, from_branch))
        return new_branch

    async def write_file(
        self, owner: str, name: str, path: str, content: str, message: str, branch: str
    ) -> None:
        self.written[path] = (content, message, branch)

    async def open_pull_request(
        self, owner: str, name: str, title: str, body: str, head: str, base: str
    ) -> PullRequest:
        self.pulls.append({"title": title, "body": body, "head": head, "base": base})
        return PullRequest(
            number=len(self.pulls),
            url=f"https://github.com/{owner}/{name}/pull/{len(self.pulls)}",
            branch=head,
        )

    async def default_branch(self, owner: str, name: str) -> str:
        return "main"


@pytest.fixture
def sample_host() -> FakeHost:
    """A small repository with one inaccessible directory."""
    return FakeHost(
        listings={
            "": [
                entry("src", "dir"),
                entry("secret", "dir"),
                entry("README.md"),
                entry("index.ts"),
            ],
            "src": [entry("src/foo.ts"), entry("src/lib", "dir"), entry("src/notes.txt")],
            "src/lib": [entry("src/lib/deep.py"), entry("src/lib/data.json")],
        },
        files={
            "index.ts": "export const main = () => 1;\n",
            "src/foo.ts": "export function add(a, b) { return a + b; }\n",
            "src/lib/deep.py": "def walk(x):\n    return x\n",
        },
        failing={"secret"},
    )


@pytest.fixture
def foo_file() -> SelectedFileContent:
    return SelectedFileContent(
        path="src/foo.ts",
        content="export function add(a, b) { return a + b; }\nexport const sub = (a, b) => a - b;\n",
    )
