"""Suite store — CRUD over persisted test suites.

All suites live in one serialized blob under a fixed key of a
:class:`KeyValueStore`.  The blob is read when the store is created and
written back after every mutation.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping
from dataclasses import replace
from enum import Enum
from typing import Any

from pydantic import TypeAdapter, ValidationError

from testgen.domain.entities import (
    GeneratedTest,
    Priority,
    TestCase,
    TestStatus,
    TestSuite,
    TestSummary,
    TestType,
    new_id,
    utcnow,
)
from testgen.domain.exceptions import SuiteNotFoundError, TestCaseNotFoundError
from testgen.domain.ports.kv_store import KeyValueStore

logger = logging.getLogger(__name__)

DEFAULT_KEY = "testgen-suites"

_SUITES = TypeAdapter(list[TestSuite])
_SUITE = TypeAdapter(TestSuite)
_UNSAFE_FILENAME_RE = re.compile(r"[^a-z0-9._-]+")

_EDITABLE_FIELDS: dict[str, Any] = {
    "title": str,
    "description": str,
    "code": str,
    "file_path": str,
    "function_name": lambda v: v or None,
    "test_type": TestType,
    "priority": Priority,
    "status": TestStatus,
}


class ExportFormat(str, Enum):
    JSON = "json"
    BUNDLE = "bundle"


class SuiteStore:
    """Owns the list of :class:`TestSuite` records."""

    def __init__(self, kv: KeyValueStore, key: str = DEFAULT_KEY) -> None:
        self._kv = kv
        self._key = key
        self._suites: list[TestSuite] = self._load()

    # ── Queries ─────────────────────────────────────────────────────────

    def list_suites(self) -> list[TestSuite]:
        return list(self._suites)

    def get(self, suite_id: str) -> TestSuite:
        for suite in self._suites:
            if suite.id == suite_id:
                return suite
        raise SuiteNotFoundError(f"Test suite '{suite_id}' not found.")

    @staticmethod
    def filter_test_cases(
        suite: TestSuite,
        query: str = "",
        test_type: TestType | None = None,
        priority: Priority | None = None,
    ) -> list[TestCase]:
        """Test cases matching a title/description search and optional type/priority."""
        needle = query.lower()
        return [
            tc
            for tc in suite.test_cases
            if (needle in tc.title.lower() or needle in tc.description.lower())
            and (test_type is None or tc.test_type is test_type)
            and (priority is None or tc.priority is priority)
        ]

    # ── Mutations ───────────────────────────────────────────────────────

    def create(
        self,
        name: str,
        description: str = "",
        framework: str = "jest",
        language: str = "typescript",
        tags: Iterable[str] = (),
    ) -> TestSuite:
        """Allocate a new, empty suite."""
        now = utcnow()
        suite = TestSuite(
            id=new_id("suite"),
            name=name,
            description=description,
            framework=framework,
            language=language,
            tags=list(dict.fromkeys(t.strip() for t in tags if t.strip())),
            created_at=now,
            updated_at=now,
        )
        self._suites.append(suite)
        self._save()
        logger.info("Created suite %s (%s)", suite.id, name)
        return suite

    def delete_suite(self, suite_id: str) -> None:
        suite = self.get(suite_id)
        self._suites.remove(suite)
        self._save()

    def promote(
        self,
        suite_id: str,
        generated: GeneratedTest,
        title: str,
        description: str,
        summary: TestSummary | None = None,
    ) -> TestCase:
        """Append an editable copy of *generated* to the suite.

        Type, priority, path and function name come from the originating
        *summary* when it is still available.
        """
        suite = self.get(suite_id)
        now = utcnow()
        test_case = TestCase(
            id=new_id("case"),
            title=title,
            description=description,
            code=generated.code,
            test_type=summary.test_type if summary else TestType.UNIT,
            priority=summary.priority if summary else Priority.MEDIUM,
            file_path=summary.file_path if summary else "",
            function_name=summary.function_name if summary else None,
            created_at=now,
            updated_at=now,
        )
        suite.test_cases.append(test_case)
        suite.updated_at = now
        self._save()
        return test_case

    def update(self, suite_id: str, test_case_id: str, patch: Mapping[str, Any]) -> TestCase:
        """Apply *patch* (a subset of the editable fields) to one test case."""
        unknown = set(patch) - set(_EDITABLE_FIELDS)
        if unknown:
            raise ValueError(f"Fields cannot be edited: {', '.join(sorted(unknown))}")

        suite = self.get(suite_id)
        index = self._index_of(suite, test_case_id)
        now = utcnow()
        changes = {name: _EDITABLE_FIELDS[name](value) for name, value in patch.items()}
        updated = replace(suite.test_cases[index], **changes, updated_at=now)
        suite.test_cases[index] = updated
        suite.updated_at = now
        self._save()
        return updated

    def delete(self, suite_id: str, test_case_id: str) -> None:
        suite = self.get(suite_id)
        del suite.test_cases[self._index_of(suite, test_case_id)]
        suite.updated_at = utcnow()
        self._save()

    # ── Export ──────────────────────────────────────────────────────────

    @staticmethod
    def export(suite: TestSuite, fmt: ExportFormat | str = ExportFormat.JSON) -> str:
        """Serialize a suite without touching the store.

        ``json`` is the whole suite as structured data; ``bundle`` is every
        test-case code body in suite order, separated by a blank line.
        """
        fmt = ExportFormat(fmt)
        if fmt is ExportFormat.BUNDLE:
            return "\n\n".join(tc.code for tc in suite.test_cases)
        return _SUITE.dump_json(suite, indent=2).decode("utf-8")

    @staticmethod
    def export_filename(suite: TestSuite, fmt: ExportFormat | str = ExportFormat.JSON) -> str:
        """ASCII download name for *suite*, safe to quote in a Content-Disposition header."""
        slug = _UNSAFE_FILENAME_RE.sub("-", suite.name.lower()).strip("-.") or "suite"
        return f"{slug}.test.js" if ExportFormat(fmt) is ExportFormat.BUNDLE else f"{slug}.json"

    # ── Persistence ─────────────────────────────────────────────────────

    def load(self) -> list[TestSuite]:
        """Re-read the stored blob, discarding in-memory state."""
        self._suites = self._load()
        return self.list_suites()

    def _load(self) -> list[TestSuite]:
        raw = self._kv.get(self._key)
        if not raw:
            return []
        try:
            return _SUITES.validate_json(raw)
        except ValidationError:
            logger.exception("Stored suites under %r are unreadable, starting empty", self._key)
            return []

    def _save(self) -> None:
        self._kv.put(self._key, _SUITES.dump_json(self._suites).decode("utf-8"))

    @staticmethod
    def _index_of(suite: TestSuite, test_case_id: str) -> int:
        for index, tc in enumerate(suite.test_cases):
            if tc.id == test_case_id:
                return index
        raise TestCaseNotFoundError(
            f"Test case '{test_case_id}' not found in suite '{suite.id}'."
        )
