"""Tests for defensive LLM reply parsing."""

from __future__ import annotations

import pytest

from testgen.domain.entities import Priority, TestType
from testgen.domain.exceptions import ResponseParseError
from testgen.services.response_parser import (
    extract_first_json_array,
    parse_summaries,
    strip_code_fences,
)

_FENCED_REPLY = """Sure! Here are the tests you asked for:

```json
[
  {
    "title": "Adds two numbers",
    "description": "Checks the sum of positive numbers",
    "testType": "unit",
    "priority": "high",
    "estimatedComplexity": 2,
    "functionName": "add",
    "filePath": "somewhere/else.ts"
  },
  {
    "title": "Module wiring",
    "testType": "integration",
    "priority": "low"
  }
]
```
Let me know if you need more."""


class TestStripCodeFences:
    def test_removes_fences_with_language_tag(self) -> None:
        assert strip_code_fences("```typescript\nconst a = 1;\n```") == "const a = 1;"

    def test_plain_text_untouched(self) -> None:
        assert strip_code_fences("  const a = 1;  ") == "const a = 1;"


class TestExtractFirstJsonArray:
    def test_skips_bracketed_prose(self) -> None:
        assert extract_first_json_array('see [note] then [1, 2, {"a": [3]}]') == [1, 2, {"a": [3]}]

    def test_no_array_raises(self) -> None:
        with pytest.raises(ResponseParseError):
            extract_first_json_array('{"title": "not an array"}')


class TestParseSummaries:
    def test_parses_fenced_reply_with_prose(self) -> None:
        summaries = parse_summaries(_FENCED_REPLY, "src/math.ts")

        assert [s.title for s in summaries] == ["Adds two numbers", "Module wiring"]
        first, second = summaries
        assert first.test_type is TestType.UNIT
        assert first.priority is Priority.HIGH
        assert first.estimated_complexity == 2
        assert first.function_name == "add"
        assert second.test_type is TestType.INTEGRATION
        assert second.description == "AI generated test case"
        assert second.function_name is None

    def test_file_path_comes_from_request(self) -> None:
        summaries = parse_summaries(_FENCED_REPLY, "src/math.ts")
        assert {s.file_path for s in summaries} == {"src/math.ts"}

    def test_ids_are_unique(self) -> None:
        summaries = parse_summaries(_FENCED_REPLY, "src/math.ts")
        assert len({s.id for s in summaries}) == len(summaries)

    def test_defaults_for_unknown_values(self) -> None:
        raw = (
            '[{"testType": "smoke", "priority": "URGENT", "estimatedComplexity": 42},'
            ' {"estimatedComplexity": "n/a", "functionName": "  "}]'
        )
        odd, blank = parse_summaries(raw, "a.py")

        assert odd.title == "Generated Test"
        assert odd.test_type is TestType.UNIT
        assert odd.priority is Priority.MEDIUM
        assert odd.estimated_complexity == 5
        assert blank.estimated_complexity == 3
        assert blank.function_name is None

    def test_edge_case_type_is_recognised(self) -> None:
        [s] = parse_summaries('[{"testType": "Edge-Case", "estimatedComplexity": 0}]', "a.py")
        assert s.test_type is TestType.EDGE_CASE
        assert s.estimated_complexity == 1

    def test_non_finite_complexity_falls_back_to_default(self) -> None:
        raw = '[{"title": "Huge", "estimatedComplexity": Infinity}, {"estimatedComplexity": NaN}]'
        huge, nan = parse_summaries(raw, "a.py")
        assert huge.title == "Huge"
        assert huge.estimated_complexity == 3
        assert nan.estimated_complexity == 3

    @pytest.mark.parametrize("raw", ["I cannot help with that.", "[1, 2, 3]", "[]"])
    def test_unusable_reply_raises(self, raw: str) -> None:
        with pytest.raises(ResponseParseError):
            parse_summaries(raw, "a.py")
