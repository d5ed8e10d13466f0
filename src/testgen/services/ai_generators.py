"""LLM-backed summary and code generators.

Both raise on any failure (transport, empty reply, unparseable reply); the
generation pipeline owns the fallback.
"""

from __future__ import annotations

import logging

from testgen.domain.entities import GeneratedTest, SelectedFileContent, TestSummary
from testgen.domain.exceptions import LlmError
from testgen.domain.ports.llm_gateway import LlmGateway
from testgen.services.fallback import FRAMEWORK, generated_test_for, language_name_for
from testgen.services.response_parser import parse_summaries, strip_code_fences

logger = logging.getLogger(__name__)

# ── Prompt templates ────────────────────────────────────────────────────────

SUMMARY_SYSTEM_PROMPT = """\
You are an expert software testing engineer.  Analyze the provided code and \
generate comprehensive test case summaries.

For each code file, identify:
1. Functions that need unit tests
2. Integration test opportunities
3. Edge cases and error scenarios

Return ONLY a valid JSON array of test summaries with this exact structure:
[
  {
    "title": "descriptive test title",
    "description": "detailed description of what to test",
    "testType": "unit" | "integration" | "edge-case",
    "priority": "high" | "medium" | "low",
    "estimatedComplexity": 1-5,
    "functionName": "function name if unit test",
    "filePath": "file path"
  }
]

Do not include any explanations or markdown formatting, just return the JSON array.
"""

SUMMARY_USER_PROMPT = """\
Analyze this code file and generate test case summaries:

File: {path}
Code:
```
{content}
```

Generate 3-8 comprehensive test case summaries covering unit tests, \
integration tests, and edge cases. Return only the JSON array.
"""

CODE_SYSTEM_PROMPT = """\
You are an expert test code generator.  Generate complete, runnable test code \
using the {framework} framework.

Requirements:
- Use proper {framework} syntax and best practices
- Include proper imports and setup
- Add meaningful test descriptions
- Cover happy path, error cases, and edge cases
- Use {language} syntax
- Return only the test code, no explanations or markdown formatting
"""

CODE_USER_PROMPT = """\
Generate complete {framework} test code for this test case:

Title: {title}
Description: {description}
Test Type: {test_type}
File Path: {path}
{function_line}
Generate comprehensive, production-ready test code. Return only the code \
without any markdown formatting or explanations.
"""


class LlmSummaryGenerator:
    """Phase-1 strategy: ask the LLM for 3-8 structured summaries per file."""

    def __init__(self, llm: LlmGateway) -> None:
        self._llm = llm

    async def generate_summaries(self, file: SelectedFileContent) -> list[TestSummary]:
        raw = await self._llm.complete(
            SUMMARY_SYSTEM_PROMPT,
            SUMMARY_USER_PROMPT.format(path=file.path, content=file.content),
        )
        summaries = parse_summaries(raw, file.path)
        logger.debug("LLM produced %d summaries for %s", len(summaries), file.path)
        return summaries


class LlmCodeGenerator:
    """Phase-2 strategy: ask the LLM for runnable test code for one summary."""

    def __init__(self, llm: LlmGateway) -> None:
        self._llm = llm

    async def generate_code(self, summary: TestSummary) -> GeneratedTest:
        language = language_name_for(summary.file_path)
        function_line = (
            f"Function Name: {summary.function_name}\n" if summary.function_name else ""
        )
        raw = await self._llm.complete(
            CODE_SYSTEM_PROMPT.format(framework=FRAMEWORK, language=language),
            CODE_USER_PROMPT.format(
                framework=FRAMEWORK,
                title=summary.title,
                description=summary.description,
                test_type=summary.test_type.value,
                path=summary.file_path,
                function_line=function_line,
            ),
        )
        code = strip_code_fences(raw)
        if not code:
            raise LlmError(f"LLM returned no code for summary {summary.id}.")
        return generated_test_for(summary, code)
