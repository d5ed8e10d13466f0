"""Pydantic request / response DTOs for the API boundary."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

from testgen.domain.entities import FileNode, Priority, TestStatus, TestType

# ── Workflow ────────────────────────────────────────────────────────────────


class SessionResponse(BaseModel):
    """Where a session stands and what it currently holds."""

    id: str
    phase: str
    login: str | None = None
    repository: str | None = None
    selection: list[str] = []
    loaded_files: list[str] = []
    summary_count: int = 0
    generated_test_count: int = 0
    pull_request_url: str | None = None


class TransitionResponse(BaseModel):
    accepted: bool
    session: SessionResponse


class TokenRequest(BaseModel):
    token: str

    @field_validator("token")
    @classmethod
    def _not_blank(cls, v: str) -> str:
        stripped = v.strip()
        if not stripped:
            msg = "token must not be empty."
            raise ValueError(msg)
        return stripped


class RepositoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    full_name: str
    description: str | None = None
    language: str | None = None
    private: bool = False


class SelectRepositoryRequest(BaseModel):
    full_name: str


class FileNodeOut(BaseModel):
    name: str
    path: str
    type: str
    language: str | None = None
    children: list[FileNodeOut] | None = None

    @classmethod
    def from_node(cls, node: FileNode) -> FileNodeOut:
        return cls(
            name=node.name,
            path=node.path,
            type=node.kind.value,
            language=node.language,
            children=[cls.from_node(c) for c in node.children] if node.is_directory else None,
        )


class CatalogStatsOut(BaseModel):
    total: int
    selected: int
    by_language: dict[str, int]


class CatalogResponse(BaseModel):
    tree: list[FileNodeOut]
    stats: CatalogStatsOut
    languages: list[str]


class SelectionRequest(BaseModel):
    paths: list[str]


class ToggleFileRequest(BaseModel):
    path: str
    selected: bool = True


class SelectAllRequest(BaseModel):
    query: str = ""
    languages: list[str] = []


class SelectionResponse(BaseModel):
    selection: list[str]


class SummaryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    test_type: TestType
    priority: Priority
    estimated_complexity: int
    function_name: str | None = None
    file_path: str


class SummariesResponse(BaseModel):
    summaries: list[SummaryOut]
    default_selection: list[str]


class GenerateCodeRequest(BaseModel):
    summary_ids: list[str] | None = None


class GeneratedTestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    summary_id: str
    code: str
    framework: str
    language: str


class PullRequestRequest(BaseModel):
    title: str | None = None
    body: str | None = None
    branch: str | None = None


class PullRequestOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    number: int
    url: str
    branch: str


# ── Suites ──────────────────────────────────────────────────────────────────


class SuiteCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str = ""
    framework: str = "jest"
    language: str = "typescript"
    tags: list[str] = []


class TestCaseOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    title: str
    description: str
    code: str
    test_type: TestType
    priority: Priority
    status: TestStatus
    file_path: str
    function_name: str | None = None
    created_at: datetime
    updated_at: datetime


class SuiteOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    description: str
    framework: str
    language: str
    tags: list[str]
    test_cases: list[TestCaseOut]
    created_at: datetime
    updated_at: datetime


class PromoteRequest(BaseModel):
    """Copy a generated test of a session into a suite."""

    session_id: str
    generated_test_id: str
    title: str | None = None
    description: str | None = None


class TestCasePatch(BaseModel):
    title: str | None = None
    description: str | None = None
    code: str | None = None
    test_type: TestType | None = None
    priority: Priority | None = None
    status: TestStatus | None = None
    file_path: str | None = None
    function_name: str | None = None


class ErrorResponse(BaseModel):
    """Standard error envelope returned on all failure paths."""

    status: str = "error"
    message: str
