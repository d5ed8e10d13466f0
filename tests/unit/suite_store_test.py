"""Tests for the persisted suite store."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from conftest import generated, summary

from testgen.domain.entities import Priority, TestStatus, TestType
from testgen.domain.exceptions import SuiteNotFoundError, TestCaseNotFoundError
from testgen.infrastructure.kv_store import InMemoryKeyValueStore, JsonFileKeyValueStore
from testgen.services.suite_store import DEFAULT_KEY, ExportFormat, SuiteStore


@pytest.fixture
def kv() -> InMemoryKeyValueStore:
    return InMemoryKeyValueStore()


@pytest.fixture
def store(kv: InMemoryKeyValueStore) -> SuiteStore:
    return SuiteStore(kv)


def _suite_with_two_cases(store: SuiteStore) -> str:
    suite = store.create("Math suite", "Arithmetic helpers", tags=["math", " core ", "math", ""])
    edge = summary("s2", test_type=TestType.EDGE_CASE, priority=Priority.LOW, function_name=None)
    store.promote(suite.id, generated("s1", "test('a', () => {});"), "Adds", "Adds numbers", summary("s1"))
    store.promote(suite.id, generated("s2", "test('b', () => {});"), "Edge", "Edge cases", edge)
    return suite.id


class TestPersistence:
    def test_round_trip_preserves_suite(self, kv: InMemoryKeyValueStore, store: SuiteStore) -> None:
        suite_id = _suite_with_two_cases(store)
        original = store.get(suite_id)

        reloaded = SuiteStore(kv).get(suite_id)

        assert reloaded.name == "Math suite"
        assert reloaded.tags == ["math", "core"]
        assert [tc.title for tc in reloaded.test_cases] == ["Adds", "Edge"]
        assert reloaded.created_at == original.created_at
        assert reloaded.updated_at == original.updated_at
        assert reloaded.test_cases[1].test_type is TestType.EDGE_CASE
        assert reloaded.test_cases[1].created_at == original.test_cases[1].created_at

    def test_round_trip_through_json_file(self, tmp_path: Path) -> None:
        path = tmp_path / "state" / "suites.json"
        suite_id = _suite_with_two_cases(SuiteStore(JsonFileKeyValueStore(path)))

        reloaded = SuiteStore(JsonFileKeyValueStore(path)).get(suite_id)

        assert len(reloaded.test_cases) == 2
        assert DEFAULT_KEY in json.loads(path.read_text(encoding="utf-8"))

    def test_unreadable_blob_starts_empty(self) -> None:
        kv = InMemoryKeyValueStore({DEFAULT_KEY: '[{"id": 1}]'})
        assert SuiteStore(kv).list_suites() == []

    def test_corrupt_file_starts_empty(self, tmp_path: Path) -> None:
        path = tmp_path / "suites.json"
        path.write_text("{not json", encoding="utf-8")
        assert SuiteStore(JsonFileKeyValueStore(path)).list_suites() == []

    def test_reload_picks_up_external_writes(self, kv: InMemoryKeyValueStore) -> None:
        first, second = SuiteStore(kv), SuiteStore(kv)
        first.create("Shared")
        assert second.list_suites() == []
        assert [s.name for s in second.load()] == ["Shared"]
        assert [s.name for s in second.list_suites()] == ["Shared"]


class TestTestCases:
    def test_promote_copies_summary_metadata(self, store: SuiteStore) -> None:
        suite_id = _suite_with_two_cases(store)
        first, second = store.get(suite_id).test_cases

        assert first.status is TestStatus.DRAFT
        assert first.file_path == "src/foo.ts"
        assert first.function_name == "add"
        assert second.priority is Priority.LOW
        assert second.code == "test('b', () => {});"

    def test_update_edits_fields_and_bumps_timestamp(self, store: SuiteStore) -> None:
        suite_id = _suite_with_two_cases(store)
        case = store.get(suite_id).test_cases[0]

        updated = store.update(
            suite_id, case.id, {"title": "Adds two numbers", "status": "ready", "priority": "high"}
        )

        assert updated.title == "Adds two numbers"
        assert updated.status is TestStatus.READY
        assert updated.created_at == case.created_at
        assert updated.updated_at >= case.updated_at
        assert store.get(suite_id).test_cases[0] == updated

    def test_update_rejects_unknown_fields(self, store: SuiteStore) -> None:
        suite_id = _suite_with_two_cases(store)
        case_id = store.get(suite_id).test_cases[0].id
        with pytest.raises(ValueError, match="id"):
            store.update(suite_id, case_id, {"id": "other"})

    def test_delete_and_missing_ids(self, store: SuiteStore) -> None:
        suite_id = _suite_with_two_cases(store)
        case_id = store.get(suite_id).test_cases[0].id

        store.delete(suite_id, case_id)

        assert [tc.title for tc in store.get(suite_id).test_cases] == ["Edge"]
        with pytest.raises(TestCaseNotFoundError):
            store.delete(suite_id, case_id)
        store.delete_suite(suite_id)
        with pytest.raises(SuiteNotFoundError):
            store.get(suite_id)

    def test_filter_test_cases(self, store: SuiteStore) -> None:
        suite = store.get(_suite_with_two_cases(store))

        assert [tc.title for tc in store.filter_test_cases(suite, "numbers")] == ["Adds"]
        assert [
            tc.title for tc in store.filter_test_cases(suite, test_type=TestType.EDGE_CASE)
        ] == ["Edge"]
        assert store.filter_test_cases(suite, "edge", priority=Priority.HIGH) == []


class TestExport:
    def test_bundle_joins_code_with_blank_line(self, store: SuiteStore) -> None:
        suite = store.get(_suite_with_two_cases(store))
        before = store.export(suite, ExportFormat.JSON)

        bundle = store.export(suite, ExportFormat.BUNDLE)

        assert bundle == "test('a', () => {});\n\ntest('b', () => {});"
        assert store.export(suite, "json") == before
        assert len(suite.test_cases) == 2

    def test_json_export_is_the_whole_suite(self, store: SuiteStore) -> None:
        suite = store.get(_suite_with_two_cases(store))
        data = json.loads(store.export(suite))
        assert data["name"] == "Math suite"
        assert [tc["test_type"] for tc in data["test_cases"]] == ["unit", "edge-case"]

    def test_export_filenames(self, store: SuiteStore) -> None:
        suite = store.create("Math  Suite")
        assert store.export_filename(suite, ExportFormat.BUNDLE) == "math-suite.test.js"
        assert store.export_filename(suite, "json") == "math-suite.json"

    @pytest.mark.parametrize(
        ("name", "slug"),
        [
            ("Тесты ✓", "suite"),
            ('Say "hi"; now', "say-hi-now"),
            ("  ", "suite"),
            ("v1.2 API", "v1.2-api"),
        ],
    )
    def test_export_filename_is_header_safe_ascii(
        self, store: SuiteStore, name: str, slug: str
    ) -> None:
        assert store.export_filename(store.create(name), "json") == f"{slug}.json"
