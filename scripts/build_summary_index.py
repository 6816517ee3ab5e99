#!/usr/bin/env python3
"""Build a DuckDB summary index from a vault and its metadata-cache export.

Reads a JSONL metadata export (one record per document: tags with line
positions, list items with parent indices, frontmatter tags), reads each
document's content from the vault directory, and writes everything to a
DuckDB file that ``SummaryIndex`` opens read-only.

Usage:
    python3 scripts/build_summary_index.py \
        --vault ~/notes \
        --metadata ~/notes/.metadata.jsonl \
        --output summary_index/summary.duckdb

    # Replace an existing index:
    python3 scripts/build_summary_index.py \
        --vault ~/notes --metadata ~/notes/.metadata.jsonl \
        --output summary_index/summary.duckdb --force
"""
from __future__ import annotations

import argparse
import importlib
import logging
import sys
import time
from pathlib import Path
from typing import Any

from tagsummary.store import IndexedDocument, load_vault_documents
from tagsummary.summary_index import SCHEMA_DDL, SCHEMA_VERSION

_duckdb = importlib.import_module("duckdb")

log = logging.getLogger("build_summary_index")


def _init_db(output_path: Path) -> Any:
    """Create a DuckDB file with schema, return open connection."""
    output_path.parent.mkdir(parents=True, exist_ok=True)
    conn: Any = _duckdb.connect(str(output_path))
    for stmt in SCHEMA_DDL.split(";"):
        stmt = stmt.strip()
        if stmt:
            conn.execute(stmt)
    conn.execute(
        "INSERT INTO _schema_version (table_name, version) VALUES ('summary', ?)",
        [SCHEMA_VERSION],
    )
    return conn


def _prepare_rows(docs: list[IndexedDocument]) -> dict[str, list[tuple[Any, ...]]]:
    """Flatten documents into per-table row tuples."""
    table_data: dict[str, list[tuple[Any, ...]]] = {
        "documents": [],
        "tags": [],
        "list_items": [],
        "frontmatter_tags": [],
    }
    for doc in docs:
        path = doc.handle.path
        table_data["documents"].append((
            path,
            doc.handle.name,
            doc.content,
            doc.tags is not None,
            doc.list_items is not None,
        ))
        for i, t in enumerate(doc.tags or ()):
            table_data["tags"].append((path, i, t.tag, t.start_line, t.end_line))
        for i, item in enumerate(doc.list_items or ()):
            table_data["list_items"].append(
                (path, i, item.start_line, item.end_line, item.parent)
            )
        for i, tag in enumerate(doc.frontmatter_tags):
            table_data["frontmatter_tags"].append((path, i, tag))
    return table_data


def _execute_inserts(conn: Any, table_data: dict[str, list[tuple[Any, ...]]]) -> None:
    """Run all executemany calls for the data tables."""
    if table_data["documents"]:
        conn.executemany(
            """INSERT INTO documents (path, name, content, has_tags, has_list_items)
               VALUES (?, ?, ?, ?, ?)""",
            table_data["documents"],
        )
    if table_data["tags"]:
        conn.executemany(
            """INSERT INTO tags (path, ordinal, tag, start_line, end_line)
               VALUES (?, ?, ?, ?, ?)""",
            table_data["tags"],
        )
    if table_data["list_items"]:
        conn.executemany(
            """INSERT INTO list_items (path, ordinal, start_line, end_line, parent)
               VALUES (?, ?, ?, ?, ?)""",
            table_data["list_items"],
        )
    if table_data["frontmatter_tags"]:
        conn.executemany(
            """INSERT INTO frontmatter_tags (path, ordinal, tag)
               VALUES (?, ?, ?)""",
            table_data["frontmatter_tags"],
        )


def write_index(docs: list[IndexedDocument], output_path: Path) -> None:
    """Write *docs* to a fresh DuckDB file in a single transaction."""
    seen: set[str] = set()
    for doc in docs:
        if doc.handle.path in seen:
            raise ValueError(f"Duplicate document path: {doc.handle.path}")
        seen.add(doc.handle.path)

    conn = _init_db(output_path)
    try:
        conn.execute("BEGIN TRANSACTION")
        try:
            _execute_inserts(conn, _prepare_rows(docs))
        except Exception:
            conn.execute("ROLLBACK")
            raise
        conn.execute("COMMIT")
    finally:
        conn.close()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build a DuckDB summary index from a vault and metadata export.",
    )
    parser.add_argument(
        "--vault", type=Path, required=True,
        help="Vault root directory (document paths are relative to it)",
    )
    parser.add_argument(
        "--metadata", type=Path, required=True,
        help="JSONL metadata-cache export, one record per document",
    )
    parser.add_argument(
        "--output", type=Path, required=True,
        help="Path to output DuckDB file",
    )
    parser.add_argument(
        "--force", action="store_true",
        help="Overwrite output file if it exists",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true",
        help="Verbose logging",
    )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    if not args.vault.is_dir():
        print(f"Error: vault directory not found: {args.vault}", file=sys.stderr)
        return 1
    if not args.metadata.exists():
        print(f"Error: metadata export not found: {args.metadata}", file=sys.stderr)
        return 1

    output_path: Path = args.output.resolve()
    if output_path.exists():
        if not args.force:
            print(
                f"Error: {output_path} exists (use --force to overwrite)",
                file=sys.stderr,
            )
            return 1
        output_path.unlink()

    t0 = time.time()
    try:
        docs = load_vault_documents(args.vault, args.metadata)
    except ValueError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    write_index(docs, output_path)

    missing = sum(1 for d in docs if d.tags is None)
    log.info(
        "Indexed %d document(s) into %s in %.1fs (%d without a tag index)",
        len(docs), output_path, time.time() - t0, missing,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main())
