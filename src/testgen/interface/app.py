"""FastAPI application factory."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from testgen.interface import routes, suite_routes
from testgen.interface.dependencies import shutdown, startup
from testgen.interface.error_handlers import register_error_handlers


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage startup / shutdown of shared resources."""
    await startup()
    yield
    await shutdown()


def create_app() -> FastAPI:
    """Build and wire the FastAPI application."""
    app = FastAPI(
        title="TestGen",
        version="1.0.0",
        description=(
            "Browse a GitHub repository, pick source files, generate test "
            "summaries and test code with an LLM, keep them in suites, and "
            "open a pull request with the results."
        ),
        lifespan=_lifespan,
    )

    register_error_handlers(app)
    app.include_router(routes.router)
    app.include_router(suite_routes.router)

    # ── Health check (simple liveness probe) ────────────────────────────

    @app.get("/health", include_in_schema=False)
    async def health() -> dict[str, str]:
        return {"status": "ok"}

    return app
