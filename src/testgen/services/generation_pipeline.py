"""Two-phase test generation: summaries per file, then code per selected summary.

Each phase walks its input one item at a time, awaiting every call before
starting the next, so output order always equals input order.  A failure on
one item is logged and replaced by the deterministic fallback for that item
alone; the phase as a whole never aborts because of one bad reply.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import replace
from enum import Enum

from testgen.domain.entities import (
    GeneratedTest,
    Priority,
    SelectedFileContent,
    TestSummary,
    new_id,
)
from testgen.domain.exceptions import (
    ConfigurationError,
    EmptySelectionError,
    PipelineStateError,
)
from testgen.domain.ports.generators import CodeGenerator, SummaryGenerator
from testgen.services.fallback import FallbackCodeGenerator, FallbackSummaryGenerator

logger = logging.getLogger(__name__)


class PipelineState(str, Enum):
    IDLE = "idle"
    SUMMARIZING = "summarizing"
    SUMMARIZED = "summarized"
    CODING = "coding"
    CODED = "coded"


class GenerationPipeline:
    """Orchestrates phase 1 (summaries) and phase 2 (code).

    ``generate_summaries`` runs once per file set, from ``idle`` only; a new
    file set needs :meth:`reset`.  ``generate_code`` can be repeated for
    different selections while summaries are held.

    Parameters
    ----------
    summary_generator, code_generator:
        Primary strategies (LLM-backed in production).
    summary_fallback, code_fallback:
        Deterministic strategies used when the primary raises or returns
        nothing.  They must not fail.
    """

    def __init__(
        self,
        summary_generator: SummaryGenerator,
        code_generator: CodeGenerator,
        *,
        summary_fallback: SummaryGenerator | None = None,
        code_fallback: CodeGenerator | None = None,
    ) -> None:
        self._summary_generator = summary_generator
        self._code_generator = code_generator
        self._summary_fallback = summary_fallback or FallbackSummaryGenerator()
        self._code_fallback = code_fallback or FallbackCodeGenerator()
        self.state = PipelineState.IDLE
        self._summaries: list[TestSummary] = []
        self._tests: list[GeneratedTest] = []

    @property
    def summaries(self) -> list[TestSummary]:
        return list(self._summaries)

    @property
    def generated_tests(self) -> list[GeneratedTest]:
        return list(self._tests)

    def default_selection(self) -> list[str]:
        """Ids of the high-priority summaries, pre-selected for phase 2."""
        return [s.id for s in self._summaries if s.priority is Priority.HIGH]

    def reset(self) -> None:
        self.state = PipelineState.IDLE
        self._summaries = []
        self._tests = []

    # ── Phase 1 ─────────────────────────────────────────────────────────

    async def generate_summaries(
        self, files: Sequence[SelectedFileContent]
    ) -> list[TestSummary]:
        """Produce at least one summary per file, each with a unique id."""
        if self.state is not PipelineState.IDLE:
            raise PipelineStateError(
                f"Summaries can only be generated from 'idle' (currently '{self.state.value}'). "
                "Reset the pipeline to analyse a different file set."
            )

        self.state = PipelineState.SUMMARIZING
        summaries: list[TestSummary] = []
        seen: set[str] = set()
        try:
            for file in files:
                for summary in await self._summarize_one(file):
                    if summary.id in seen:
                        summary = replace(summary, id=new_id("summary"))
                    seen.add(summary.id)
                    summaries.append(summary)
        except BaseException:
            self.state = PipelineState.IDLE
            raise

        self._summaries = summaries
        self.state = PipelineState.SUMMARIZED
        logger.info("Generated %d summaries for %d files", len(summaries), len(files))
        return list(summaries)

    async def _summarize_one(self, file: SelectedFileContent) -> list[TestSummary]:
        try:
            result = await self._summary_generator.generate_summaries(file)
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.warning("Summary generation failed for %s, using fallback: %s", file.path, exc)
            logger.debug("Summary generation traceback for %s", file.path, exc_info=True)
            return await self._summary_fallback.generate_summaries(file)

        if not result:
            logger.warning("No summaries returned for %s, using fallback", file.path)
            return await self._summary_fallback.generate_summaries(file)
        return result

    # ── Phase 2 ─────────────────────────────────────────────────────────

    async def generate_code(self, summary_ids: Iterable[str]) -> list[GeneratedTest]:
        """Produce exactly one test per selected summary, in summary order.

        The new results replace those of any previous code run.
        """
        if self.state not in (PipelineState.SUMMARIZED, PipelineState.CODED):
            raise PipelineStateError(
                f"Code can only be generated after summaries (currently '{self.state.value}')."
            )

        wanted = set(summary_ids)
        unknown = wanted - {s.id for s in self._summaries}
        if unknown:
            logger.warning("Ignoring unknown summary ids: %s", ", ".join(sorted(unknown)))
        selected = [s for s in self._summaries if s.id in wanted]
        if not selected:
            raise EmptySelectionError("Select at least one test summary to generate code.")

        previous = self.state
        self.state = PipelineState.CODING
        tests: list[GeneratedTest] = []
        try:
            for summary in selected:
                tests.append(await self._code_one(summary))
        except BaseException:
            self.state = previous
            raise

        self._tests = tests
        self.state = PipelineState.CODED
        logger.info("Generated code for %d summaries", len(tests))
        return list(tests)

    async def _code_one(self, summary: TestSummary) -> GeneratedTest:
        try:
            test = await self._code_generator.generate_code(summary)
        except ConfigurationError:
            raise
        except Exception as exc:
            logger.warning(
                "Code generation failed for summary %s, using fallback: %s", summary.id, exc
            )
            logger.debug("Code generation traceback for %s", summary.id, exc_info=True)
            return await self._code_fallback.generate_code(summary)

        if not test.code.strip():
            logger.warning("Empty code for summary %s, using fallback", summary.id)
            return await self._code_fallback.generate_code(summary)
        return test
