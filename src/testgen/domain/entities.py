"""Domain entities — pure data structures with no external dependencies."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from uuid import uuid4


class NodeKind(str, Enum):
    """Discriminator for catalogue nodes."""

    FILE = "file"
    DIRECTORY = "directory"


class TestType(str, Enum):
    __test__ = False

    UNIT = "unit"
    INTEGRATION = "integration"
    EDGE_CASE = "edge-case"


class Priority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class TestStatus(str, Enum):
    __test__ = False

    DRAFT = "draft"
    READY = "ready"
    NEEDS_REVIEW = "needs-review"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id(prefix: str) -> str:
    """Return a fresh session-unique identifier such as ``summary-1f0c9a2b4d3e``."""
    return f"{prefix}-{uuid4().hex[:12]}"


@dataclass(frozen=True, slots=True)
class Repository:
    """A repository visible to the authenticated user."""

    id: int
    name: str
    full_name: str
    description: str | None = None
    language: str | None = None
    private: bool = False

    @property
    def owner(self) -> str:
        return self.full_name.split("/", maxsplit=1)[0]

    @property
    def repo(self) -> str:
        return self.full_name.split("/", maxsplit=1)[-1]


@dataclass(frozen=True, slots=True)
class DirectoryEntry:
    """One entry of a single-level contents listing from the host."""

    name: str
    path: str
    kind: str  # "file" or "dir"
    download_url: str | None = None
    sha: str | None = None


@dataclass(frozen=True, slots=True)
class FileNode:
    """A node of the testable-file catalogue (file or directory)."""

    name: str
    path: str
    kind: NodeKind
    language: str | None = None
    children: tuple[FileNode, ...] = ()

    @property
    def is_directory(self) -> bool:
        return self.kind is NodeKind.DIRECTORY


@dataclass(frozen=True, slots=True)
class SelectedFileContent:
    """Text of a file the user selected for generation."""

    path: str
    content: str


@dataclass(frozen=True, slots=True)
class TestSummary:
    """A structured description of one test to write (phase 1 output)."""

    __test__ = False

    id: str
    title: str
    description: str
    test_type: TestType
    priority: Priority
    estimated_complexity: int
    file_path: str
    function_name: str | None = None


@dataclass(frozen=True, slots=True)
class GeneratedTest:
    """Test code produced for a single summary (phase 2 output)."""

    id: str
    summary_id: str
    code: str
    framework: str
    language: str


@dataclass(slots=True)
class TestCase:
    """An editable copy of a generated test, owned by a suite."""

    __test__ = False

    id: str
    title: str
    description: str
    code: str
    test_type: TestType
    priority: Priority
    file_path: str
    status: TestStatus = TestStatus.DRAFT
    function_name: str | None = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class TestSuite:
    """A named, persisted collection of test cases."""

    __test__ = False

    id: str
    name: str
    description: str
    framework: str
    language: str
    tags: list[str] = field(default_factory=list)
    test_cases: list[TestCase] = field(default_factory=list)
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(frozen=True, slots=True)
class PullRequest:
    """A pull request opened on the host."""

    number: int
    url: str
    branch: str
