"""Application workflow — the phases a user session moves through.

The phase graph is a ``transitions`` state machine bound to a
:class:`WorkflowSession`.  Forward triggers fire only after the async action
of the current phase succeeded; ``back`` resets whatever the phase being left
had built; ``reset`` discards everything.  Triggers that are not valid in the
current phase, or whose guard fails, are no-ops returning ``False``.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from enum import Enum
from typing import Any

from transitions import Machine

from testgen.domain.entities import (
    FileNode,
    GeneratedTest,
    PullRequest,
    Repository,
    SelectedFileContent,
    TestSummary,
    new_id,
)
from testgen.domain.exceptions import (
    ContentUnavailableError,
    EmptySelectionError,
    InvalidTransitionError,
    RepositoryHostError,
)
from testgen.domain.ports.repo_host import RepositoryHost
from testgen.services.file_filter import filter_tree, iter_files
from testgen.services.generation_pipeline import GenerationPipeline
from testgen.services.pr_submission import PullRequestSubmitter
from testgen.services.tree_builder import TreeBuilder

logger = logging.getLogger(__name__)


class Phase(Enum):
    LANDING = "landing"
    AUTHENTICATING = "authenticating"
    REPOSITORY_SELECTION = "repository-selection"
    FILE_BROWSING = "file-browsing"
    TEST_GENERATION = "test-generation"
    TEST_MANAGEMENT = "test-management"
    PR_CREATION = "pr-creation"


TRANSITIONS: list[dict[str, Any]] = [
    {"trigger": "start", "source": Phase.LANDING, "dest": Phase.AUTHENTICATING},
    {
        "trigger": "credential_accepted",
        "source": Phase.AUTHENTICATING,
        "dest": Phase.REPOSITORY_SELECTION,
        "conditions": ["has_credential"],
    },
    {
        "trigger": "tree_built",
        "source": Phase.REPOSITORY_SELECTION,
        "dest": Phase.FILE_BROWSING,
        "conditions": ["has_tree"],
    },
    {
        "trigger": "contents_loaded",
        "source": Phase.FILE_BROWSING,
        "dest": Phase.TEST_GENERATION,
        "conditions": ["has_contents"],
    },
    {
        "trigger": "manage_tests",
        "source": Phase.TEST_GENERATION,
        "dest": Phase.TEST_MANAGEMENT,
        "conditions": ["has_generated_tests"],
    },
    {
        "trigger": "open_pr_creation",
        "source": Phase.TEST_GENERATION,
        "dest": Phase.PR_CREATION,
        "conditions": ["has_generated_tests"],
    },
    # back: each transition resets what the phase being left had built
    {"trigger": "back", "source": Phase.AUTHENTICATING, "dest": Phase.LANDING},
    {
        "trigger": "back",
        "source": Phase.REPOSITORY_SELECTION,
        "dest": Phase.LANDING,
        "after": "_discard_credential",
    },
    {
        "trigger": "back",
        "source": Phase.FILE_BROWSING,
        "dest": Phase.REPOSITORY_SELECTION,
        "after": "_discard_tree",
    },
    {
        "trigger": "back",
        "source": Phase.TEST_GENERATION,
        "dest": Phase.FILE_BROWSING,
        "after": "_discard_generation",
    },
    {
        "trigger": "back",
        "source": [Phase.TEST_MANAGEMENT, Phase.PR_CREATION],
        "dest": Phase.TEST_GENERATION,
    },
    {"trigger": "reset", "source": "*", "dest": Phase.LANDING, "after": "_discard_all"},
]


class WorkflowSession:
    """One user's session: held data plus the phase machine that gates it.

    Parameters
    ----------
    host_factory:
        Builds a repository host client from a bearer token.
    pipeline_factory:
        Builds a fresh generation pipeline.  Called lazily on the first
        generation action, so a missing LLM key only affects generation.
    tree_concurrency:
        Concurrent directory listings while building the catalogue.
    """

    state: Phase

    def __init__(
        self,
        host_factory: Callable[[str], RepositoryHost],
        pipeline_factory: Callable[[], GenerationPipeline],
        *,
        tree_concurrency: int = 8,
    ) -> None:
        self.id = new_id("session")
        self._host_factory = host_factory
        self._pipeline_factory = pipeline_factory
        self._tree_concurrency = tree_concurrency
        # bumped by every discard; async results from an older epoch are dropped
        self._epoch = 0

        self.host: RepositoryHost | None = None
        self.login: str | None = None
        self.repositories: list[Repository] = []
        self.repository: Repository | None = None
        self.tree: tuple[FileNode, ...] = ()
        self.selection: list[str] = []
        self.contents: list[SelectedFileContent] = []
        self.pipeline: GenerationPipeline | None = None
        self.pull_request: PullRequest | None = None

        self.machine = Machine(
            model=self,
            states=Phase,
            transitions=TRANSITIONS,
            initial=Phase.LANDING,
            auto_transitions=False,
            ignore_invalid_triggers=True,
        )

    # ── Guards ──────────────────────────────────────────────────────────

    def has_credential(self) -> bool:
        return self.host is not None

    def has_tree(self) -> bool:
        return self.repository is not None

    def has_contents(self) -> bool:
        return bool(self.contents)

    def has_generated_tests(self) -> bool:
        return bool(self.generated_tests)

    # ── Views ───────────────────────────────────────────────────────────

    @property
    def summaries(self) -> list[TestSummary]:
        return self.pipeline.summaries if self.pipeline else []

    @property
    def generated_tests(self) -> list[GeneratedTest]:
        return self.pipeline.generated_tests if self.pipeline else []

    def catalog_paths(self) -> list[str]:
        return [f.path for f in iter_files(self.tree)]

    # ── Authentication / repository ─────────────────────────────────────

    async def authenticate(self, token: str) -> str:
        """Verify *token* against the host and move to repository selection."""
        self._require(Phase.AUTHENTICATING)
        if not token.strip():
            raise EmptySelectionError("A GitHub token is required.")

        epoch = self._epoch
        host = self._host_factory(token.strip())
        login = await host.current_user()
        if self._is_stale(epoch, Phase.AUTHENTICATING):
            return login

        self.host, self.login = host, login
        self.credential_accepted()
        logger.info("Session %s authenticated as %s", self.id, login)
        return login

    async def load_repositories(self) -> list[Repository]:
        self._require(Phase.REPOSITORY_SELECTION)
        epoch = self._epoch
        repos = await self._host().list_repositories()
        if not self._is_stale(epoch, Phase.REPOSITORY_SELECTION):
            self.repositories = repos
        return repos

    async def select_repository(self, repository: Repository) -> tuple[FileNode, ...]:
        """Build the catalogue of *repository* and move to file browsing.

        The tree is rebuilt from scratch on every selection.
        """
        self._require(Phase.REPOSITORY_SELECTION)
        epoch = self._epoch
        builder = TreeBuilder(self._host(), concurrency=self._tree_concurrency)
        tree = await builder.build(repository.owner, repository.repo)
        if self._is_stale(epoch, Phase.REPOSITORY_SELECTION):
            return tree

        self.repository, self.tree, self.selection = repository, tree, []
        self.tree_built()
        return tree

    # ── File selection ──────────────────────────────────────────────────

    def toggle_file(self, path: str, selected: bool) -> list[str]:
        self._require(Phase.FILE_BROWSING)
        if selected:
            if path in self.catalog_paths() and path not in self.selection:
                self.selection.append(path)
        elif path in self.selection:
            self.selection.remove(path)
        return list(self.selection)

    def set_selection(self, paths: Iterable[str]) -> list[str]:
        self._require(Phase.FILE_BROWSING)
        known = set(self.catalog_paths())
        self.selection = [p for p in dict.fromkeys(paths) if p in known]
        return list(self.selection)

    def select_all(self, query: str = "", languages: Iterable[str] = ()) -> list[str]:
        """Add every file matching the current search and language filter."""
        self._require(Phase.FILE_BROWSING)
        for node in iter_files(filter_tree(self.tree, query, languages)):
            if node.path not in self.selection:
                self.selection.append(node.path)
        return list(self.selection)

    def clear_selection(self) -> list[str]:
        self._require(Phase.FILE_BROWSING)
        self.selection = []
        return []

    async def load_selected_contents(self) -> list[SelectedFileContent]:
        """Fetch the selected files and move to test generation.

        Files that cannot be read are skipped; if none can be read the phase
        does not change.
        """
        self._require(Phase.FILE_BROWSING)
        if not self.selection:
            raise EmptySelectionError("Select at least one file to generate tests.")
        repo = self._repository()

        epoch = self._epoch
        host = self._host()
        contents: list[SelectedFileContent] = []
        for path in list(self.selection):
            try:
                text = await host.read_file(repo.owner, repo.repo, path)
            except (ContentUnavailableError, RepositoryHostError) as exc:
                logger.warning("Skipping %s: %s", path, exc)
                continue
            contents.append(SelectedFileContent(path=path, content=text))

        if not contents:
            raise ContentUnavailableError("None of the selected files could be loaded.")
        if self._is_stale(epoch, Phase.FILE_BROWSING):
            return contents

        self.contents, self.pipeline = contents, None
        self.contents_loaded()
        return contents

    # ── Generation ──────────────────────────────────────────────────────

    async def generate_summaries(self) -> list[TestSummary]:
        self._require(Phase.TEST_GENERATION)
        if self.pipeline is None:
            self.pipeline = self._pipeline_factory()
        return await self.pipeline.generate_summaries(self.contents)

    async def generate_code(self, summary_ids: Iterable[str] | None = None) -> list[GeneratedTest]:
        """Generate code for *summary_ids* (default: the high-priority summaries)."""
        self._require(Phase.TEST_GENERATION)
        if self.pipeline is None:
            raise EmptySelectionError("Generate test summaries first.")
        ids = list(summary_ids) if summary_ids is not None else self.pipeline.default_selection()
        return await self.pipeline.generate_code(ids)

    def restart_generation(self) -> None:
        """Drop summaries and code so the pipeline can analyse the files again."""
        self._require(Phase.TEST_GENERATION)
        if self.pipeline is not None:
            self.pipeline.reset()

    async def submit_pull_request(
        self,
        *,
        title: str | None = None,
        body: str | None = None,
        branch: str | None = None,
    ) -> PullRequest:
        self._require(Phase.PR_CREATION)
        repo = self._repository()

        epoch = self._epoch
        pr = await PullRequestSubmitter(self._host()).submit(
            repo,
            self.generated_tests,
            self.summaries,
            title=title,
            body=body,
            branch=branch,
        )
        if not self._is_stale(epoch, Phase.PR_CREATION):
            self.pull_request = pr
        return pr

    # ── Internals ───────────────────────────────────────────────────────

    def _require(self, phase: Phase) -> None:
        if self.state is not phase:
            raise InvalidTransitionError(
                f"This action needs the '{phase.value}' step (currently '{self.state.value}')."
            )

    def _is_stale(self, epoch: int, phase: Phase) -> bool:
        if epoch != self._epoch or self.state is not phase:
            logger.info("Session %s moved on, dropping a late result", self.id)
            return True
        return False

    def _host(self) -> RepositoryHost:
        if self.host is None:
            raise InvalidTransitionError("No GitHub credential in this session.")
        return self.host

    def _repository(self) -> Repository:
        if self.repository is None:
            raise InvalidTransitionError("No repository selected in this session.")
        return self.repository

    def _discard_credential(self) -> None:
        self._epoch += 1
        self.host, self.login, self.repositories = None, None, []

    def _discard_tree(self) -> None:
        self._epoch += 1
        self.repository, self.tree, self.selection = None, (), []

    def _discard_generation(self) -> None:
        self._epoch += 1
        self.contents, self.pipeline, self.pull_request = [], None, None

    def _discard_all(self) -> None:
        self._discard_generation()
        self._discard_tree()
        self._discard_credential()
