"""Document-store interface and an in-memory implementation.

The store owns everything the summary core does not: file enumeration,
file content, and the structural index (tag positions, list items with
parent indices). The core only ever reads from it.

Metadata records follow the shape of an editor metadata-cache export, one
JSON object per document::

    {"path": "notes/a.md",
     "tags": [{"tag": "#a", "position": {"start": {"line": 3}, "end": {"line": 3}}}],
     "listItems": [{"parent": -1, "position": {"start": {"line": 3}, "end": {"line": 3}}}],
     "frontmatter": {"tags": ["a", "b"]}}

A missing ``tags`` or ``listItems`` key means "no structural index".
"""
from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Protocol

from tagsummary.io_utils import load_jsonl
from tagsummary.summary_types import DocumentHandle, ListItem, TagOccurrence

log = logging.getLogger(__name__)


class DocumentStore(Protocol):
    """Read-only access to documents and their structural index."""

    def list_documents(self) -> Sequence[DocumentHandle]: ...

    def get_tags(self, handle: DocumentHandle) -> Sequence[TagOccurrence] | None: ...

    def get_list_items(self, handle: DocumentHandle) -> Sequence[ListItem] | None: ...

    def get_all_tags_flat(self, handle: DocumentHandle) -> Sequence[str]: ...

    def read_content(self, handle: DocumentHandle) -> str: ...


@dataclass(frozen=True, slots=True)
class IndexedDocument:
    """One document with its content and decoded structural index."""

    handle: DocumentHandle
    content: str
    tags: tuple[TagOccurrence, ...] | None
    list_items: tuple[ListItem, ...] | None
    frontmatter_tags: tuple[str, ...] = ()

    @property
    def all_tags(self) -> tuple[str, ...]:
        """Body tags followed by frontmatter tags, first occurrence order."""
        seen: dict[str, None] = {}
        for t in self.tags or ():
            seen.setdefault(t.tag, None)
        for tag in self.frontmatter_tags:
            seen.setdefault(tag, None)
        return tuple(seen)


# ---------------------------------------------------------------------------
# Metadata decoding
# ---------------------------------------------------------------------------

def normalize_tag(tag: str) -> str:
    """Ensure a leading ``#`` (frontmatter tags are usually written bare)."""
    tag = tag.strip()
    if not tag:
        return ""
    return tag if tag.startswith("#") else f"#{tag}"


def _position_line(entry: dict[str, Any], edge: str) -> int:
    try:
        return int(entry["position"][edge]["line"])
    except (KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed position ({edge}) in entry: {entry!r}") from exc


def _tag_name(entry: dict[str, Any]) -> str:
    try:
        tag = entry["tag"]
    except (KeyError, TypeError) as exc:
        raise ValueError(f"Malformed tag entry: {entry!r}") from exc
    if not isinstance(tag, str) or not tag:
        raise ValueError(f"Malformed tag entry: {entry!r}")
    return tag


def _parent_index(entry: dict[str, Any]) -> int:
    """Parent index as exported; absent means root-level (``-1``)."""
    try:
        parent = entry.get("parent", -1)
        return int(parent)
    except (AttributeError, TypeError, ValueError) as exc:
        raise ValueError(f"Malformed list item parent in entry: {entry!r}") from exc


def _decode_frontmatter_tags(value: Any) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, str):
        parts = value.replace(",", " ").split()
    elif isinstance(value, list):
        parts = [str(v) for v in value if v is not None]
    else:
        return ()
    return tuple(t for t in (normalize_tag(p) for p in parts) if t)


def decode_metadata_record(record: dict[str, Any], content: str) -> IndexedDocument:
    """Build an IndexedDocument from one metadata-cache record."""
    path = record.get("path")
    if not isinstance(path, str) or not path:
        raise ValueError(f"Metadata record without a path: {record!r}")

    raw_tags = record.get("tags")
    tags: tuple[TagOccurrence, ...] | None = None
    if raw_tags is not None:
        tags = tuple(
            TagOccurrence(
                tag=_tag_name(entry),
                start_line=_position_line(entry, "start"),
                end_line=_position_line(entry, "end"),
            )
            for entry in raw_tags
        )

    raw_items = record.get("listItems")
    list_items: tuple[ListItem, ...] | None = None
    if raw_items is not None:
        list_items = tuple(
            ListItem.from_cache(
                start_line=_position_line(entry, "start"),
                end_line=_position_line(entry, "end"),
                parent=_parent_index(entry),
            )
            for entry in raw_items
        )

    frontmatter = record.get("frontmatter") or {}
    frontmatter_tags = _decode_frontmatter_tags(
        frontmatter.get("tags") if isinstance(frontmatter, dict) else None
    )

    return IndexedDocument(
        handle=DocumentHandle.from_path(path),
        content=content,
        tags=tags,
        list_items=list_items,
        frontmatter_tags=frontmatter_tags,
    )


def load_vault_documents(vault_dir: Path, metadata_path: Path) -> list[IndexedDocument]:
    """Decode every metadata record and read its file from *vault_dir*.

    Records whose file cannot be read are skipped with a warning.
    """
    documents: list[IndexedDocument] = []
    for record in load_jsonl(metadata_path):
        path = record.get("path")
        if not isinstance(path, str) or not path:
            raise ValueError(f"Metadata record without a path: {record!r}")
        file_path = vault_dir / path
        try:
            content = file_path.read_text(encoding="utf-8")
        except OSError as exc:
            log.warning("Skipping %s: cannot read %s (%s)", path, file_path, exc)
            continue
        documents.append(decode_metadata_record(record, content))
    return documents


# ---------------------------------------------------------------------------
# In-memory store
# ---------------------------------------------------------------------------

class InMemoryStore:
    """DocumentStore over a fixed set of IndexedDocuments."""

    def __init__(self, documents: Iterable[IndexedDocument] = ()) -> None:
        self._docs: dict[str, IndexedDocument] = {}
        for doc in documents:
            self.add(doc)

    @classmethod
    def from_vault(cls, vault_dir: Path, metadata_path: Path) -> InMemoryStore:
        return cls(load_vault_documents(vault_dir, metadata_path))

    def add(self, doc: IndexedDocument) -> None:
        if doc.handle.path in self._docs:
            raise ValueError(f"Duplicate document path: {doc.handle.path}")
        self._docs[doc.handle.path] = doc

    def __len__(self) -> int:
        return len(self._docs)

    def _get(self, handle: DocumentHandle) -> IndexedDocument:
        try:
            return self._docs[handle.path]
        except KeyError:
            raise KeyError(f"Unknown document: {handle.path}") from None

    def list_documents(self) -> list[DocumentHandle]:
        return [doc.handle for doc in self._docs.values()]

    def get_tags(self, handle: DocumentHandle) -> tuple[TagOccurrence, ...] | None:
        return self._get(handle).tags

    def get_list_items(self, handle: DocumentHandle) -> tuple[ListItem, ...] | None:
        return self._get(handle).list_items

    def get_all_tags_flat(self, handle: DocumentHandle) -> tuple[str, ...]:
        return self._get(handle).all_tags

    def read_content(self, handle: DocumentHandle) -> str:
        return self._get(handle).content
