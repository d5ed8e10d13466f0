"""Port: repository host — defined by the domain, implemented by infrastructure."""

from __future__ import annotations

from typing import Protocol

from testgen.domain.entities import DirectoryEntry, PullRequest, Repository


class RepositoryHost(Protocol):
    """Abstract contract for talking to the remote repository host."""

    async def current_user(self) -> str:
        """Return the login the credential belongs to."""
        ...

    async def list_repositories(self) -> list[Repository]:
        """Return repositories, most recently updated first."""
        ...

    async def list_directory(
        self, owner: str, name: str, path: str = ""
    ) -> list[DirectoryEntry]:
        """Return one level of a directory listing (no recursion)."""
        ...

    async def read_file(self, owner: str, name: str, path: str) -> str:
        """Return the decoded text content of a single file."""
        ...

    async def ensure_branch(
        self, owner: str, name: str, new_branch: str, from_branch: str = "main"
    ) -> str:
        """Create *new_branch* from *from_branch* unless it already exists."""
        ...

    async def write_file(
        self,
        owner: str,
        name: str,
        path: str,
        content: str,
        message: str,
        branch: str,
    ) -> None:
        """Create or update a file on *branch*."""
        ...

    async def open_pull_request(
        self, owner: str, name: str, title: str, body: str, head: str, base: str
    ) -> PullRequest:
        """Open a pull request from *head* into *base*."""
        ...

    async def default_branch(self, owner: str, name: str) -> str:
        """Return the default branch name; never raises."""
        ...
