"""FastAPI dependency injection wiring."""

from __future__ import annotations

import logging
from collections import OrderedDict

import httpx

from testgen.domain.exceptions import ConfigurationError, SessionNotFoundError
from testgen.infrastructure.config import Settings, get_settings
from testgen.infrastructure.github_rest_adapter import GitHubRestAdapter
from testgen.infrastructure.kv_store import JsonFileKeyValueStore
from testgen.infrastructure.openai_adapter import OpenAIAdapter
from testgen.services.ai_generators import LlmCodeGenerator, LlmSummaryGenerator
from testgen.services.fallback import FallbackCodeGenerator, HeuristicSummaryGenerator
from testgen.services.generation_pipeline import GenerationPipeline
from testgen.services.suite_store import SuiteStore
from testgen.services.workflow import WorkflowSession

logger = logging.getLogger(__name__)

_http_client: httpx.AsyncClient | None = None
_openai_adapter: OpenAIAdapter | None = None
_suite_store: SuiteStore | None = None
# least recently used first
_sessions: OrderedDict[str, WorkflowSession] = OrderedDict()


async def startup() -> None:
    """Initialise shared resources — called from the lifespan context manager."""
    global _http_client, _openai_adapter, _suite_store  # noqa: PLW0603

    settings = get_settings()
    _http_client = httpx.AsyncClient(timeout=httpx.Timeout(30.0))
    _suite_store = SuiteStore(
        JsonFileKeyValueStore(settings.suite_store_path), settings.suite_store_key
    )

    if settings.generation_backend == "openai":
        try:
            _openai_adapter = _build_openai_adapter(settings)
        except ConfigurationError as exc:
            logger.warning("%s Test generation is unavailable until it is set.", exc)


async def shutdown() -> None:
    """Release shared resources."""
    global _http_client, _openai_adapter, _suite_store  # noqa: PLW0603

    if _http_client:
        await _http_client.aclose()
        _http_client = None
    if _openai_adapter:
        await _openai_adapter.close()
        _openai_adapter = None
    _suite_store = None
    _sessions.clear()


def _build_openai_adapter(settings: Settings) -> OpenAIAdapter:
    key = settings.openai_api_key.get_secret_value() if settings.openai_api_key else None
    return OpenAIAdapter(
        api_key=key,
        model=settings.openai_model,
        temperature=settings.llm_temperature,
        top_p=settings.llm_top_p,
        max_output_tokens=settings.llm_max_output_tokens,
    )


def build_host(token: str) -> GitHubRestAdapter:
    settings = get_settings()
    assert _http_client is not None, "startup() was not called"
    return GitHubRestAdapter(
        client=_http_client,
        token=token,
        base_url=settings.github_api_url,
        page_size=settings.repository_page_size,
    )


def build_pipeline() -> GenerationPipeline:
    """Return a fresh pipeline for the configured backend.

    Raises :class:`ConfigurationError` when the OpenAI backend is selected
    but no API key is configured.
    """
    settings = get_settings()
    if settings.generation_backend == "offline":
        return GenerationPipeline(HeuristicSummaryGenerator(), FallbackCodeGenerator())

    if _openai_adapter is None:
        raise ConfigurationError(
            "OPENAI_API_KEY environment variable is required for test generation."
        )
    return GenerationPipeline(
        LlmSummaryGenerator(_openai_adapter), LlmCodeGenerator(_openai_adapter)
    )


def create_session() -> WorkflowSession:
    session = WorkflowSession(
        host_factory=build_host,
        pipeline_factory=build_pipeline,
        tree_concurrency=get_settings().tree_concurrency,
    )
    _sessions[session.id] = session
    while len(_sessions) > get_settings().max_sessions:
        evicted, _ = _sessions.popitem(last=False)
        logger.info("Evicted idle session %s", evicted)
    return session


def get_session(session_id: str) -> WorkflowSession:
    try:
        _sessions.move_to_end(session_id)
    except KeyError:
        raise SessionNotFoundError(f"Session '{session_id}' not found.") from None
    return _sessions[session_id]


def drop_session(session_id: str) -> None:
    if _sessions.pop(session_id, None) is None:
        raise SessionNotFoundError(f"Session '{session_id}' not found.")


def get_suite_store() -> SuiteStore:
    assert _suite_store is not None, "startup() was not called"
    return _suite_store
