"""Defensive parsing of free-form LLM replies.

The model gives no format guarantee.  Replies may be wrapped in prose or
markdown fences; every failure mode raises :class:`ResponseParseError`, which
the generation pipeline resolves with a fallback value.
"""

from __future__ import annotations

import json
import re
from typing import Any

from testgen.domain.entities import Priority, TestSummary, TestType, new_id
from testgen.domain.exceptions import ResponseParseError

_FENCE_RE = re.compile(r"```[\w+-]*[ \t]*\n?")

_DEFAULT_TITLE = "Generated Test"
_DEFAULT_DESCRIPTION = "AI generated test case"
_DEFAULT_COMPLEXITY = 3


def strip_code_fences(text: str) -> str:
    """Remove every markdown code fence (with optional language tag)."""
    return _FENCE_RE.sub("", text).strip()


def extract_first_json_array(text: str) -> list[Any]:
    """Return the first well-formed JSON array literal found in *text*."""
    decoder = json.JSONDecoder()
    start = text.find("[")
    while start != -1:
        try:
            value, _ = decoder.raw_decode(text, start)
        except json.JSONDecodeError:
            value = None
        if isinstance(value, list):
            return value
        start = text.find("[", start + 1)
    raise ResponseParseError("No JSON array found in LLM response.")


def parse_summaries(raw: str, file_path: str) -> list[TestSummary]:
    """Parse a phase-1 reply into summaries for *file_path*.

    Unknown ``testType``/``priority`` values fall back to unit/medium and the
    complexity is clamped to 1..5.  The file path always comes from the
    request, never from the reply.
    """
    items = extract_first_json_array(strip_code_fences(raw))
    summaries = [
        _to_summary(item, file_path) for item in items if isinstance(item, dict)
    ]
    if not summaries:
        raise ResponseParseError(f"LLM returned no usable summaries for {file_path}.")
    return summaries


def _to_summary(item: dict[str, Any], file_path: str) -> TestSummary:
    function_name = item.get("functionName")
    if not isinstance(function_name, str) or not function_name.strip():
        function_name = None
    return TestSummary(
        id=new_id("summary"),
        title=_text(item.get("title"), _DEFAULT_TITLE),
        description=_text(item.get("description"), _DEFAULT_DESCRIPTION),
        test_type=_enum(TestType, item.get("testType"), TestType.UNIT),
        priority=_enum(Priority, item.get("priority"), Priority.MEDIUM),
        estimated_complexity=_complexity(item.get("estimatedComplexity")),
        function_name=function_name.strip() if function_name else None,
        file_path=file_path,
    )


def _text(value: Any, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


def _enum(enum_cls: type[Any], value: Any, default: Any) -> Any:
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        return default


def _complexity(value: Any) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        return _DEFAULT_COMPLEXITY
    return min(5, max(1, number))
