"""File filtering — decide which files are testable and how to label them."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from dataclasses import dataclass, replace

from testgen.domain.entities import FileNode, Repository

UNKNOWN_LANGUAGE = "Unknown"

LANGUAGE_BY_EXTENSION: dict[str, str] = {
    "js": "JavaScript",
    "jsx": "React",
    "ts": "TypeScript",
    "tsx": "React",
    "py": "Python",
    "java": "Java",
    "cpp": "C++",
    "c": "C",
    "cs": "C#",
    "php": "PHP",
    "rb": "Ruby",
    "go": "Go",
    "rs": "Rust",
    "kt": "Kotlin",
    "swift": "Swift",
}

TESTABLE_EXTENSIONS: frozenset[str] = frozenset(LANGUAGE_BY_EXTENSION)


def _filename(path: str) -> str:
    return path.rsplit("/", maxsplit=1)[-1]


def extension(path: str) -> str:
    """Return the lower-cased extension of *path* without the dot ('' if none)."""
    name = _filename(path)
    if "." not in name:
        return ""
    return name.rsplit(".", maxsplit=1)[-1].lower()


def detect_language(path: str) -> str:
    """Map a file name to its language, ``"Unknown"`` when unrecognised."""
    return LANGUAGE_BY_EXTENSION.get(extension(path), UNKNOWN_LANGUAGE)


def is_testable_file(path: str) -> bool:
    return extension(path) in TESTABLE_EXTENSIONS


# ── Catalogue helpers ───────────────────────────────────────────────────────


@dataclass(frozen=True, slots=True)
class CatalogStats:
    total: int
    selected: int
    by_language: dict[str, int]


def iter_files(nodes: Iterable[FileNode]) -> Iterator[FileNode]:
    """Yield every file node of the tree, depth first, in catalogue order."""
    for node in nodes:
        if node.is_directory:
            yield from iter_files(node.children)
        else:
            yield node


def available_languages(nodes: Iterable[FileNode]) -> list[str]:
    """Languages present in the catalogue, sorted."""
    return sorted({f.language for f in iter_files(nodes) if f.language})


def catalog_stats(nodes: Iterable[FileNode], selected: Iterable[str] = ()) -> CatalogStats:
    files = list(iter_files(nodes))
    paths = {f.path for f in files}
    by_language: dict[str, int] = {}
    for f in files:
        lang = f.language or UNKNOWN_LANGUAGE
        by_language[lang] = by_language.get(lang, 0) + 1
    return CatalogStats(
        total=len(files),
        selected=len(paths.intersection(selected)),
        by_language=by_language,
    )


def filter_tree(
    nodes: Iterable[FileNode],
    query: str = "",
    languages: Iterable[str] = (),
) -> list[FileNode]:
    """Return the sub-tree matching a search query and a language set.

    Files match when their name or path contains *query* (case-insensitive)
    and, if *languages* is non-empty, their language is in it.  A directory is
    kept when its name matches *query* (an empty query matches every
    directory) or any descendant is kept; its children are always the
    filtered children.
    """
    needle = query.lower()
    wanted = set(languages)
    result: list[FileNode] = []

    for node in nodes:
        if node.is_directory:
            children = filter_tree(node.children, query, wanted)
            if children or needle in node.name.lower():
                result.append(replace(node, children=tuple(children)))
            continue

        matches_query = not needle or needle in node.name.lower() or needle in node.path.lower()
        matches_language = not wanted or node.language in wanted
        if matches_query and matches_language:
            result.append(node)

    return result


def filter_repositories(repos: Iterable[Repository], query: str = "") -> list[Repository]:
    """Repositories whose name or description contains *query*."""
    needle = query.strip().lower()
    if not needle:
        return list(repos)
    return [
        r
        for r in repos
        if needle in r.name.lower() or needle in (r.description or "").lower()
    ]
