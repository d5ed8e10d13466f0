"""Domain exception hierarchy.

Each exception maps to a specific HTTP status code at the interface layer.
Inner layers raise these; the tree builder and the generation pipeline turn
per-item failures into degraded results, and the outermost error-handler
translates whatever is left.
"""

from __future__ import annotations


class TestGenError(Exception):
    """Base exception for the entire application."""

    __test__ = False


# ── Repository host errors ──────────────────────────────────────────────────


class RepositoryHostError(TestGenError):
    """A call to the repository host failed.

    ``status_code`` is the upstream HTTP status (``0`` for transport errors)
    and ``message`` the upstream body text.
    """

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"GitHub API error {status_code}: {message}")
        self.status_code = status_code
        self.message = message


class AuthenticationFailedError(RepositoryHostError):
    """The bearer credential was rejected (401)."""


class RepositoryNotFoundError(RepositoryHostError):
    """The repository, ref or path does not exist (404)."""


class RepositoryAccessDeniedError(RepositoryHostError):
    """Access to the repository was denied (403)."""


class GitHubRateLimitError(RepositoryHostError):
    """GitHub API rate limit exceeded (429 / 403 with rate-limit header)."""


class WriteConflictError(RepositoryHostError):
    """A write raced with another writer or used a stale revision (409 / 422)."""


class ContentUnavailableError(TestGenError):
    """A file exists but has no retrievable text payload."""


# ── LLM errors ──────────────────────────────────────────────────────────────


class LlmError(TestGenError):
    """Any error originating from the LLM provider."""


class ResponseParseError(LlmError):
    """The LLM reply could not be parsed into the expected shape."""


class ConfigurationError(TestGenError):
    """Required configuration (e.g. the LLM API key) is missing."""


# ── Workflow errors ─────────────────────────────────────────────────────────


class PipelineStateError(TestGenError):
    """A generation phase was requested from a state that does not allow it."""


class InvalidTransitionError(TestGenError):
    """The workflow refused an action in its current state."""


class EmptySelectionError(TestGenError):
    """An action needs at least one selected item and got none."""


# ── Suite store errors ──────────────────────────────────────────────────────


class SuiteNotFoundError(TestGenError):
    """No suite with the given id."""


class TestCaseNotFoundError(TestGenError):
    """No test case with the given id in the suite."""

    __test__ = False


class SessionNotFoundError(TestGenError):
    """No workflow session with the given id."""
