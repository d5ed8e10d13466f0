"""Tree builder — expand one-level directory listings into a testable-file catalogue.

The host only lists one directory at a time.  The builder walks the
repository breadth first with a worklist of ``(path, depth)`` pairs: every
directory of one level is listed concurrently, each listing is recorded as a
tagged :class:`ListingOutcome`, and the nested tree is assembled from the
recorded outcomes once the worklist is empty.  A failed listing becomes a
directory with no children; the rest of the repository is still catalogued.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from testgen.domain.entities import DirectoryEntry, FileNode, NodeKind
from testgen.domain.ports.repo_host import RepositoryHost
from testgen.services.file_filter import detect_language, is_testable_file

logger = logging.getLogger(__name__)

_DIR = "dir"
_FILE = "file"


@dataclass(frozen=True, slots=True)
class ListingOutcome:
    """Result of listing one directory: its entries, or the error it raised."""

    path: str
    depth: int
    entries: tuple[DirectoryEntry, ...] = ()
    error: Exception | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


class TreeBuilder:
    """Build the full catalogue of testable files for a repository.

    Parameters
    ----------
    host:
        Repository host used for the directory listings.
    concurrency:
        Maximum number of listing calls in flight at once.
    """

    def __init__(self, host: RepositoryHost, concurrency: int = 8) -> None:
        self._host = host
        self._concurrency = max(1, concurrency)

    async def build(self, owner: str, name: str) -> tuple[FileNode, ...]:
        """Return the catalogue rooted at the repository root.

        A failure listing the root itself propagates: without it there is
        nothing to catalogue.
        """
        root_entries = await self._host.list_directory(owner, name, "")
        listings: dict[str, ListingOutcome] = {
            "": ListingOutcome(path="", depth=0, entries=tuple(root_entries))
        }

        sem = asyncio.Semaphore(self._concurrency)
        worklist = [(e.path, 1) for e in root_entries if e.kind == _DIR]

        while worklist:
            outcomes = await asyncio.gather(
                *(self._list(owner, name, path, depth, sem) for path, depth in worklist)
            )
            worklist = []
            for outcome in outcomes:
                listings[outcome.path] = outcome
                if outcome.ok:
                    worklist.extend(
                        (e.path, outcome.depth + 1) for e in outcome.entries if e.kind == _DIR
                    )

        failed = sum(1 for o in listings.values() if not o.ok)
        logger.info(
            "Listed %d directories of %s/%s (%d inaccessible)",
            len(listings), owner, name, failed,
        )
        return _assemble("", listings)

    async def _list(
        self,
        owner: str,
        name: str,
        path: str,
        depth: int,
        sem: asyncio.Semaphore,
    ) -> ListingOutcome:
        async with sem:
            try:
                entries = await self._host.list_directory(owner, name, path)
            except Exception as exc:
                logger.warning("Skipping inaccessible directory %s: %s", path, exc)
                return ListingOutcome(path=path, depth=depth, error=exc)
        return ListingOutcome(path=path, depth=depth, entries=tuple(entries))


def _assemble(path: str, listings: dict[str, ListingOutcome]) -> tuple[FileNode, ...]:
    """Turn the recorded listing of *path* into catalogue nodes, in host order."""
    nodes: list[FileNode] = []
    for entry in listings[path].entries:
        if entry.kind == _DIR:
            outcome = listings.get(entry.path)
            children = _assemble(entry.path, listings) if outcome and outcome.ok else ()
            nodes.append(
                FileNode(
                    name=entry.name,
                    path=entry.path,
                    kind=NodeKind.DIRECTORY,
                    children=children,
                )
            )
        elif entry.kind == _FILE and is_testable_file(entry.name):
            nodes.append(
                FileNode(
                    name=entry.name,
                    path=entry.path,
                    kind=NodeKind.FILE,
                    language=detect_language(entry.name),
                )
            )
    return tuple(nodes)
