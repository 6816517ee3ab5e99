"""Canonical record types for tag summaries.

Every record here is a read-only snapshot taken while a summary is being
built. Nothing is cached or persisted between builds.

Type layering:
  summary_types.py — records shared by every stage
  list_tree.py     — list-item hierarchy resolution over ``ListItem`` arrays
  tag_matcher.py   — tag occurrence → ``Match`` resolution
"""
from __future__ import annotations

from dataclasses import dataclass


class EmptyListItemsError(ValueError):
    """Raised when list-item resolution is requested against an empty array.

    Callers dispatch on emptiness before resolving a tag, so this always
    signals a caller bug rather than bad document data.
    """


@dataclass(frozen=True, slots=True)
class TagOccurrence:
    """A single tag as it appears in a document body."""

    tag: str           # "#project/alpha" (always with leading "#")
    start_line: int    # 0-based, inclusive
    end_line: int      # 0-based, inclusive


@dataclass(frozen=True, slots=True)
class ListItem:
    """A list item position with a back-reference to its structural parent.

    Items of one document form an array in document order; ``parent`` is
    the index of the parent item in that same array, or ``None`` when the
    item starts a root-level entry of its list.
    """

    start_line: int
    end_line: int
    parent: int | None = None

    @property
    def is_root(self) -> bool:
        return self.parent is None

    @classmethod
    def from_cache(cls, start_line: int, end_line: int, parent: int) -> ListItem:
        """Build from a metadata cache entry, where a negative parent means root."""
        return cls(
            start_line=start_line,
            end_line=end_line,
            parent=parent if parent >= 0 else None,
        )


@dataclass(frozen=True, slots=True)
class Match:
    """A resolved, inclusive line range and its joined text."""

    start_line: int
    end_line: int
    content: str

    @property
    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    def contains(self, other: Match) -> bool:
        """True when *other*'s span lies within this span."""
        return self.start_line <= other.start_line and other.end_line <= self.end_line


@dataclass(frozen=True, slots=True)
class DocumentHandle:
    """Identity of a document in the store."""

    path: str   # vault-relative, e.g. "projects/alpha.md"
    name: str   # basename without the ".md" suffix

    @classmethod
    def from_path(cls, path: str) -> DocumentHandle:
        base = path.rsplit("/", 1)[-1]
        name = base[:-3] if base.lower().endswith(".md") else base
        return cls(path=path, name=name)


@dataclass(frozen=True, slots=True)
class DocumentRecord:
    """Snapshot of one document: identity, structural index, and lines.

    ``tags`` / ``list_items`` are ``None`` when the store has no structural
    index for the document.
    """

    handle: DocumentHandle
    tags: tuple[TagOccurrence, ...] | None
    list_items: tuple[ListItem, ...] | None
    lines: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class DocumentMatches:
    """All matches contributed by one document, in tag-occurrence order."""

    handle: DocumentHandle
    matches: tuple[Match, ...]
