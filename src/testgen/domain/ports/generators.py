"""Ports: summary and code generation strategies used by the pipeline."""

from __future__ import annotations

from typing import Protocol

from testgen.domain.entities import GeneratedTest, SelectedFileContent, TestSummary


class SummaryGenerator(Protocol):
    """Produce test summaries for one file. May raise; the caller falls back."""

    async def generate_summaries(self, file: SelectedFileContent) -> list[TestSummary]:
        ...


class CodeGenerator(Protocol):
    """Produce test code for one summary. May raise; the caller falls back."""

    async def generate_code(self, summary: TestSummary) -> GeneratedTest:
        ...
