"""Suite API routes — CRUD and export over the suite store."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from fastapi.responses import Response

from testgen.domain.entities import Priority, TestType
from testgen.domain.exceptions import TestCaseNotFoundError
from testgen.interface.dependencies import get_session, get_suite_store
from testgen.interface.schemas import (
    ErrorResponse,
    PromoteRequest,
    SuiteCreate,
    SuiteOut,
    TestCaseOut,
    TestCasePatch,
)
from testgen.services.suite_store import ExportFormat, SuiteStore

router = APIRouter(
    prefix="/suites",
    tags=["suites"],
    responses={404: {"model": ErrorResponse, "description": "Suite or test case not found"}},
)

_MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.BUNDLE: "text/plain",
}


@router.get("", response_model=list[SuiteOut])
async def list_suites(store: SuiteStore = Depends(get_suite_store)) -> list[SuiteOut]:
    return [SuiteOut.model_validate(s) for s in store.list_suites()]


@router.post("", response_model=SuiteOut, status_code=status.HTTP_201_CREATED)
async def create_suite(
    body: SuiteCreate, store: SuiteStore = Depends(get_suite_store)
) -> SuiteOut:
    suite = store.create(body.name, body.description, body.framework, body.language, body.tags)
    return SuiteOut.model_validate(suite)


@router.get("/{suite_id}", response_model=SuiteOut)
async def read_suite(suite_id: str, store: SuiteStore = Depends(get_suite_store)) -> SuiteOut:
    return SuiteOut.model_validate(store.get(suite_id))


@router.delete("/{suite_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_suite(suite_id: str, store: SuiteStore = Depends(get_suite_store)) -> None:
    store.delete_suite(suite_id)


@router.get("/{suite_id}/tests", response_model=list[TestCaseOut])
async def search_test_cases(
    suite_id: str,
    q: str = Query("", description="Search titles and descriptions"),
    test_type: TestType | None = None,
    priority: Priority | None = None,
    store: SuiteStore = Depends(get_suite_store),
) -> list[TestCaseOut]:
    matches = store.filter_test_cases(store.get(suite_id), q, test_type, priority)
    return [TestCaseOut.model_validate(tc) for tc in matches]


@router.post("/{suite_id}/tests", response_model=TestCaseOut, status_code=status.HTTP_201_CREATED)
async def promote_test(
    suite_id: str, body: PromoteRequest, store: SuiteStore = Depends(get_suite_store)
) -> TestCaseOut:
    """Copy a generated test of a live session into the suite."""
    session = get_session(body.session_id)
    generated = next((t for t in session.generated_tests if t.id == body.generated_test_id), None)
    if generated is None:
        raise TestCaseNotFoundError(
            f"Generated test '{body.generated_test_id}' not found in session '{session.id}'."
        )
    summary = next((s for s in session.summaries if s.id == generated.summary_id), None)
    test_case = store.promote(
        suite_id,
        generated,
        title=body.title or (summary.title if summary else generated.id),
        description=body.description or (summary.description if summary else ""),
        summary=summary,
    )
    return TestCaseOut.model_validate(test_case)


@router.patch("/{suite_id}/tests/{test_case_id}", response_model=TestCaseOut)
async def update_test(
    suite_id: str,
    test_case_id: str,
    body: TestCasePatch,
    store: SuiteStore = Depends(get_suite_store),
) -> TestCaseOut:
    # only function_name may be cleared with an explicit null
    patch = {
        k: v
        for k, v in body.model_dump(exclude_unset=True).items()
        if v is not None or k == "function_name"
    }
    return TestCaseOut.model_validate(store.update(suite_id, test_case_id, patch))


@router.delete("/{suite_id}/tests/{test_case_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_test(
    suite_id: str, test_case_id: str, store: SuiteStore = Depends(get_suite_store)
) -> None:
    store.delete(suite_id, test_case_id)


@router.get("/{suite_id}/export")
async def export_suite(
    suite_id: str,
    format: ExportFormat = ExportFormat.JSON,
    store: SuiteStore = Depends(get_suite_store),
) -> Response:
    """Download the suite as JSON or as one bundle of test code."""
    suite = store.get(suite_id)
    filename = store.export_filename(suite, format)
    return Response(
        content=store.export(suite, format),
        media_type=_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
