"""DuckDB-backed document store for tag summaries.

Provides read-only access to a pre-built summary index (summary.duckdb).
The index is built by scripts/build_summary_index.py from a vault directory
and a metadata-cache export, and opened read-only by the CLI and the API.

Tables:
    documents        — one row per document (path, name, content, index flags)
    tags             — tag occurrences (FK to documents), ordered by ordinal
    list_items       — list items (FK to documents), ordered by ordinal;
                       parent is NULL for root-level items
    frontmatter_tags — document-level tags from frontmatter
    _schema_version  — schema version tracking
"""
from __future__ import annotations

import importlib
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from tagsummary.summary_types import DocumentHandle, ListItem, TagOccurrence

# Dynamic DuckDB import for pyright compatibility
_duckdb_mod = importlib.import_module("duckdb")


SCHEMA_VERSION = "0.1.0"

SCHEMA_DDL = """\
CREATE TABLE _schema_version (
    table_name VARCHAR PRIMARY KEY,
    version VARCHAR NOT NULL,
    created_at TIMESTAMP DEFAULT current_timestamp
);

CREATE TABLE documents (
    path VARCHAR PRIMARY KEY,
    name VARCHAR NOT NULL,
    content VARCHAR NOT NULL,
    has_tags BOOLEAN NOT NULL,
    has_list_items BOOLEAN NOT NULL
);

CREATE TABLE tags (
    path VARCHAR NOT NULL,
    ordinal INTEGER NOT NULL,
    tag VARCHAR NOT NULL,
    start_line INTEGER NOT NULL,
    end_line INTEGER NOT NULL
);

CREATE TABLE list_items (
    path VARCHAR NOT NULL,
    ordinal INTEGER NOT NULL,
    start_line INTEGER NOT NULL,
    end_line INTEGER NOT NULL,
    parent INTEGER
);

CREATE TABLE frontmatter_tags (
    path VARCHAR NOT NULL,
    ordinal INTEGER NOT NULL,
    tag VARCHAR NOT NULL
);
"""


# Row key under which build_summary_index.py stamps SCHEMA_VERSION.
_SCHEMA_KEY = "summary"

_Fetch = Callable[[str, list[Any]], list[tuple[Any, ...]]]


class SchemaVersionError(RuntimeError):
    """The index file was written with a different table layout than this reader expects."""


def _read_schema_version(fetch: _Fetch) -> str:
    """Return the builder's version stamp, or ``"unknown"`` if the file has none."""
    try:
        rows = fetch(
            "SELECT version FROM _schema_version WHERE table_name = ?", [_SCHEMA_KEY]
        )
    except _duckdb_mod.Error:
        return "unknown"
    return str(rows[0][0]) if rows else "unknown"


def ensure_schema_version(
    conn: Any,
    *,
    db_path: Path | None = None,
    expected: str = SCHEMA_VERSION,
) -> str:
    """Check that *conn* holds a summary index this module can read.

    Files built by an older or newer builder, and DuckDB files that are not
    summary indexes at all, raise ``SchemaVersionError`` naming *db_path*.
    """
    actual = _read_schema_version(
        lambda query, params: conn.execute(query, params).fetchall()
    )
    if actual != expected:
        where = f" {db_path}" if db_path is not None else ""
        raise SchemaVersionError(
            f"Summary index{where} has schema {actual}; this reader needs {expected}. "
            "Rebuild it with scripts/build_summary_index.py --force."
        )
    return actual



class SummaryIndex:
    """Read-only DocumentStore over the DuckDB summary index.

    Each query runs on its own cursor, so per-document reads can be issued
    from worker threads.
    """

    def __init__(self, db_path: Path, *, enforce_schema: bool = True) -> None:
        self._db_path = db_path
        self._conn: Any = _duckdb_mod.connect(str(db_path), read_only=True)
        self._cursor_lock = threading.Lock()
        if enforce_schema:
            try:
                ensure_schema_version(self._conn, db_path=db_path)
            except Exception:
                self._conn.close()
                raise

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    def __enter__(self) -> SummaryIndex:
        return self

    def __exit__(self, *_args: object) -> None:
        self.close()

    def _fetch(self, query: str, params: list[Any] | None = None) -> list[tuple[Any, ...]]:
        with self._cursor_lock:
            cur = self._conn.cursor()
        try:
            return cur.execute(query, params or []).fetchall()
        finally:
            cur.close()

    @property
    def db_path(self) -> Path:
        return self._db_path

    @property
    def schema_version(self) -> str:
        """Get the schema version of this summary index."""
        return _read_schema_version(self._fetch)

    @property
    def doc_count(self) -> int:
        """Total number of documents in the index."""
        rows = self._fetch("SELECT COUNT(*) FROM documents")
        return int(rows[0][0]) if rows else 0

    def list_documents(self) -> list[DocumentHandle]:
        """All documents, sorted by path."""
        rows = self._fetch("SELECT path, name FROM documents ORDER BY path")
        return [DocumentHandle(path=str(r[0]), name=str(r[1])) for r in rows]

    def documents_with_tag(self, tag: str) -> list[str]:
        """Paths of documents carrying *tag* in the body or frontmatter."""
        rows = self._fetch(
            """
            SELECT path FROM tags WHERE tag = ?
            UNION
            SELECT path FROM frontmatter_tags WHERE tag = ?
            ORDER BY path
            """,
            [tag, tag],
        )
        return [str(r[0]) for r in rows]

    def get_tags(self, handle: DocumentHandle) -> list[TagOccurrence] | None:
        rows = self._fetch(
            "SELECT d.has_tags, t.tag, t.start_line, t.end_line "
            "FROM documents d LEFT JOIN tags t ON t.path = d.path "
            "WHERE d.path = ? ORDER BY t.ordinal",
            [handle.path],
        )
        if not rows:
            raise KeyError(f"Unknown document: {handle.path}")
        if not rows[0][0]:
            return None
        return [
            TagOccurrence(tag=str(r[1]), start_line=int(r[2]), end_line=int(r[3]))
            for r in rows
            if r[1] is not None
        ]

    def get_list_items(self, handle: DocumentHandle) -> list[ListItem] | None:
        # Outer-join rows with a NULL ordinal stand for "indexed, no items".
        rows = self._fetch(
            "SELECT d.has_list_items, li.ordinal, li.start_line, li.end_line, li.parent "
            "FROM documents d LEFT JOIN list_items li ON li.path = d.path "
            "WHERE d.path = ? ORDER BY li.ordinal",
            [handle.path],
        )
        if not rows:
            raise KeyError(f"Unknown document: {handle.path}")
        if not rows[0][0]:
            return None
        return [
            ListItem(
                start_line=int(r[2]),
                end_line=int(r[3]),
                parent=int(r[4]) if r[4] is not None else None,
            )
            for r in rows
            if r[1] is not None
        ]

    def get_all_tags_flat(self, handle: DocumentHandle) -> list[str]:
        """Body tags then frontmatter tags, each tag once."""
        body = self._fetch(
            "SELECT tag FROM tags WHERE path = ? ORDER BY ordinal", [handle.path]
        )
        front = self._fetch(
            "SELECT tag FROM frontmatter_tags WHERE path = ? ORDER BY ordinal",
            [handle.path],
        )
        seen: dict[str, None] = {}
        for r in [*body, *front]:
            seen.setdefault(str(r[0]), None)
        return list(seen)

    def read_content(self, handle: DocumentHandle) -> str:
        rows = self._fetch(
            "SELECT content FROM documents WHERE path = ?", [handle.path]
        )
        if not rows:
            raise KeyError(f"Unknown document: {handle.path}")
        return str(rows[0][0])
