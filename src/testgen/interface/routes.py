"""Workflow API routes — thin controllers over a :class:`WorkflowSession`."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from testgen.domain.exceptions import RepositoryNotFoundError
from testgen.interface.dependencies import create_session, drop_session, get_session
from testgen.interface.schemas import (
    CatalogResponse,
    CatalogStatsOut,
    ErrorResponse,
    FileNodeOut,
    GenerateCodeRequest,
    GeneratedTestOut,
    PullRequestOut,
    PullRequestRequest,
    RepositoryOut,
    SelectAllRequest,
    SelectionRequest,
    SelectionResponse,
    SelectRepositoryRequest,
    SessionResponse,
    SummariesResponse,
    SummaryOut,
    ToggleFileRequest,
    TokenRequest,
    TransitionResponse,
)
from testgen.services.file_filter import (
    available_languages,
    catalog_stats,
    filter_repositories,
    filter_tree,
)
from testgen.services.workflow import WorkflowSession

router = APIRouter(
    prefix="/sessions",
    tags=["workflow"],
    responses={
        404: {"model": ErrorResponse, "description": "Session not found"},
        409: {"model": ErrorResponse, "description": "Action not valid in the current step"},
    },
)


def _session_out(session: WorkflowSession) -> SessionResponse:
    return SessionResponse(
        id=session.id,
        phase=session.state.value,
        login=session.login,
        repository=session.repository.full_name if session.repository else None,
        selection=list(session.selection),
        loaded_files=[c.path for c in session.contents],
        summary_count=len(session.summaries),
        generated_test_count=len(session.generated_tests),
        pull_request_url=session.pull_request.url if session.pull_request else None,
    )


def _transition(session: WorkflowSession, accepted: bool) -> TransitionResponse:
    return TransitionResponse(accepted=accepted, session=_session_out(session))


# ── Session lifecycle ───────────────────────────────────────────────────────


@router.post("", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def open_session() -> SessionResponse:
    """Create a session in the landing phase."""
    return _session_out(create_session())


@router.get("/{session_id}", response_model=SessionResponse)
async def read_session(session: WorkflowSession = Depends(get_session)) -> SessionResponse:
    return _session_out(session)


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def close_session(session_id: str) -> None:
    drop_session(session_id)


@router.post("/{session_id}/start", response_model=TransitionResponse)
async def start(session: WorkflowSession = Depends(get_session)) -> TransitionResponse:
    return _transition(session, session.start())


@router.post("/{session_id}/back", response_model=TransitionResponse)
async def back(session: WorkflowSession = Depends(get_session)) -> TransitionResponse:
    return _transition(session, session.back())


@router.post("/{session_id}/reset", response_model=TransitionResponse)
async def reset(session: WorkflowSession = Depends(get_session)) -> TransitionResponse:
    return _transition(session, session.reset())


# ── Authentication & repositories ───────────────────────────────────────────


@router.post(
    "/{session_id}/auth",
    response_model=SessionResponse,
    responses={401: {"description": "Token rejected by GitHub"}},
)
async def authenticate(
    body: TokenRequest, session: WorkflowSession = Depends(get_session)
) -> SessionResponse:
    await session.authenticate(body.token)
    return _session_out(session)


@router.get("/{session_id}/repositories", response_model=list[RepositoryOut])
async def list_repositories(
    q: str = Query("", description="Filter by name or description"),
    session: WorkflowSession = Depends(get_session),
) -> list[RepositoryOut]:
    repos = session.repositories or await session.load_repositories()
    return [RepositoryOut.model_validate(r) for r in filter_repositories(repos, q)]


@router.post("/{session_id}/repository", response_model=SessionResponse)
async def select_repository(
    body: SelectRepositoryRequest, session: WorkflowSession = Depends(get_session)
) -> SessionResponse:
    """Choose a repository and build its file catalogue."""
    repos = session.repositories or await session.load_repositories()
    repo = next((r for r in repos if r.full_name == body.full_name), None)
    if repo is None:
        raise RepositoryNotFoundError(404, f"Repository {body.full_name} is not accessible.")
    await session.select_repository(repo)
    return _session_out(session)


# ── File catalogue & selection ──────────────────────────────────────────────


@router.get("/{session_id}/files", response_model=CatalogResponse)
async def list_files(
    q: str = Query("", description="Search file names and paths"),
    language: list[str] = Query([], description="Only show these languages"),
    session: WorkflowSession = Depends(get_session),
) -> CatalogResponse:
    stats = catalog_stats(session.tree, session.selection)
    return CatalogResponse(
        tree=[FileNodeOut.from_node(n) for n in filter_tree(session.tree, q, language)],
        stats=CatalogStatsOut(
            total=stats.total, selected=stats.selected, by_language=stats.by_language
        ),
        languages=available_languages(session.tree),
    )


@router.put("/{session_id}/selection", response_model=SelectionResponse)
async def replace_selection(
    body: SelectionRequest, session: WorkflowSession = Depends(get_session)
) -> SelectionResponse:
    return SelectionResponse(selection=session.set_selection(body.paths))


@router.post("/{session_id}/selection/toggle", response_model=SelectionResponse)
async def toggle_file(
    body: ToggleFileRequest, session: WorkflowSession = Depends(get_session)
) -> SelectionResponse:
    return SelectionResponse(selection=session.toggle_file(body.path, body.selected))


@router.post("/{session_id}/selection/all", response_model=SelectionResponse)
async def select_all(
    body: SelectAllRequest, session: WorkflowSession = Depends(get_session)
) -> SelectionResponse:
    return SelectionResponse(selection=session.select_all(body.query, body.languages))


@router.delete("/{session_id}/selection", response_model=SelectionResponse)
async def clear_selection(session: WorkflowSession = Depends(get_session)) -> SelectionResponse:
    return SelectionResponse(selection=session.clear_selection())


@router.post("/{session_id}/contents", response_model=SessionResponse)
async def load_contents(session: WorkflowSession = Depends(get_session)) -> SessionResponse:
    """Fetch the selected files and enter test generation."""
    await session.load_selected_contents()
    return _session_out(session)


# ── Generation ──────────────────────────────────────────────────────────────


@router.post(
    "/{session_id}/summaries",
    response_model=SummariesResponse,
    responses={503: {"description": "OPENAI_API_KEY is not configured"}},
)
async def generate_summaries(session: WorkflowSession = Depends(get_session)) -> SummariesResponse:
    summaries = await session.generate_summaries()
    pipeline = session.pipeline
    return SummariesResponse(
        summaries=[SummaryOut.model_validate(s) for s in summaries],
        default_selection=pipeline.default_selection() if pipeline else [],
    )


@router.get("/{session_id}/summaries", response_model=SummariesResponse)
async def read_summaries(session: WorkflowSession = Depends(get_session)) -> SummariesResponse:
    pipeline = session.pipeline
    return SummariesResponse(
        summaries=[SummaryOut.model_validate(s) for s in session.summaries],
        default_selection=pipeline.default_selection() if pipeline else [],
    )


@router.delete("/{session_id}/summaries", response_model=SessionResponse)
async def restart_generation(session: WorkflowSession = Depends(get_session)) -> SessionResponse:
    session.restart_generation()
    return _session_out(session)


@router.post("/{session_id}/code", response_model=list[GeneratedTestOut])
async def generate_code(
    body: GenerateCodeRequest, session: WorkflowSession = Depends(get_session)
) -> list[GeneratedTestOut]:
    tests = await session.generate_code(body.summary_ids)
    return [GeneratedTestOut.model_validate(t) for t in tests]


@router.get("/{session_id}/code", response_model=list[GeneratedTestOut])
async def read_code(session: WorkflowSession = Depends(get_session)) -> list[GeneratedTestOut]:
    return [GeneratedTestOut.model_validate(t) for t in session.generated_tests]


# ── Follow-up steps ─────────────────────────────────────────────────────────


@router.post("/{session_id}/manage-tests", response_model=TransitionResponse)
async def manage_tests(session: WorkflowSession = Depends(get_session)) -> TransitionResponse:
    return _transition(session, session.manage_tests())


@router.post("/{session_id}/pr-creation", response_model=TransitionResponse)
async def open_pr_creation(session: WorkflowSession = Depends(get_session)) -> TransitionResponse:
    """Enter PR creation; refused while no test code has been generated."""
    return _transition(session, session.open_pr_creation())


@router.post(
    "/{session_id}/pull-request",
    response_model=PullRequestOut,
    status_code=status.HTTP_201_CREATED,
    responses={409: {"description": "A file changed on the branch while writing"}},
)
async def submit_pull_request(
    body: PullRequestRequest, session: WorkflowSession = Depends(get_session)
) -> PullRequestOut:
    pr = await session.submit_pull_request(title=body.title, body=body.body, branch=body.branch)
    return PullRequestOut.model_validate(pr)
