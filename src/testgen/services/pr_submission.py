"""Commit generated tests to a new branch and open a pull request."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timezone

from testgen.domain.entities import GeneratedTest, PullRequest, Repository, TestSummary
from testgen.domain.exceptions import EmptySelectionError
from testgen.domain.ports.repo_host import RepositoryHost
from testgen.services.fallback import basename, module_name
from testgen.services.file_filter import extension

logger = logging.getLogger(__name__)

DEFAULT_TITLE = "Add generated test cases"


def tests_path_for(source_path: str) -> str:
    """Where the tests for *source_path* are committed.

    ``src/utils/math.ts`` → ``src/utils/__tests__/math.test.ts``.
    """
    directory = source_path[: -len(basename(source_path))].rstrip("/")
    ext = extension(source_path) or "js"
    name = f"{module_name(source_path)}.test.{ext}"
    return f"{directory}/__tests__/{name}" if directory else f"__tests__/{name}"


def default_branch_name(now: datetime | None = None) -> str:
    now = now or datetime.now(timezone.utc)
    return f"testgen/tests-{now.strftime('%Y%m%d%H%M%S')}"


def pull_request_body(tests: Sequence[GeneratedTest], summaries: Sequence[TestSummary]) -> str:
    by_id = {s.id: s for s in summaries}
    lines = [
        "This pull request adds automatically generated test cases.",
        "",
        "### Included tests",
        "",
    ]
    for test in tests:
        summary = by_id.get(test.summary_id)
        if summary is None:
            lines.append(f"- `{test.id}` ({test.framework}, {test.language})")
        else:
            lines.append(
                f"- **{summary.title}** ({summary.test_type.value}, "
                f"{summary.priority.value} priority) for `{summary.file_path}`"
            )
    lines += ["", "Please review the generated tests before merging."]
    return "\n".join(lines)


class PullRequestSubmitter:
    """Writes one test file per source file on a fresh branch, then opens a PR."""

    def __init__(self, host: RepositoryHost) -> None:
        self._host = host

    async def submit(
        self,
        repository: Repository,
        tests: Sequence[GeneratedTest],
        summaries: Sequence[TestSummary],
        *,
        title: str | None = None,
        body: str | None = None,
        branch: str | None = None,
    ) -> PullRequest:
        if not tests:
            raise EmptySelectionError("There are no generated tests to submit.")

        owner, name = repository.owner, repository.repo
        base = await self._host.default_branch(owner, name)
        head = await self._host.ensure_branch(owner, name, branch or default_branch_name(), base)

        for path, code in self._group_by_test_file(tests, summaries).items():
            await self._host.write_file(
                owner,
                name,
                path,
                code,
                f"Add generated tests: {path}",
                head,
            )

        pr = await self._host.open_pull_request(
            owner,
            name,
            title or DEFAULT_TITLE,
            body or pull_request_body(tests, summaries),
            head,
            base,
        )
        logger.info("Opened pull request #%d on %s from %s", pr.number, repository.full_name, head)
        return pr

    @staticmethod
    def _group_by_test_file(
        tests: Sequence[GeneratedTest], summaries: Sequence[TestSummary]
    ) -> dict[str, str]:
        """Map each test file path to the joined code of its tests, in order."""
        source_of = {s.id: s.file_path for s in summaries}
        grouped: dict[str, list[str]] = {}
        for test in tests:
            source = source_of.get(test.summary_id)
            path = tests_path_for(source) if source else f"__tests__/{test.id}.test.js"
            grouped.setdefault(path, []).append(test.code.rstrip("\n"))
        return {path: "\n\n".join(codes) + "\n" for path, codes in grouped.items()}
