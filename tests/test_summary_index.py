"""Tests for scripts/build_summary_index.py and tagsummary.summary_index."""
from __future__ import annotations

import importlib.util
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Any

import duckdb
import pytest

from tagsummary.io_utils import save_jsonl
from tagsummary.selectors import SelectorSet
from tagsummary.settings import SummarySettings
from tagsummary.summary import build_summary
from tagsummary.summary_index import (
    SchemaVersionError,
    SummaryIndex,
    ensure_schema_version,
)
from tagsummary.summary_types import DocumentHandle, ListItem, TagOccurrence

_ROOT = Path(__file__).resolve().parents[1]


def _load_build_module() -> Any:
    script_path = _ROOT / "scripts" / "build_summary_index.py"
    spec = importlib.util.spec_from_file_location("build_summary_index", script_path)
    assert spec is not None and spec.loader is not None
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


def _pos(line: int) -> dict[str, dict[str, int]]:
    return {"start": {"line": line}, "end": {"line": line}}


def _make_vault(root: Path) -> tuple[Path, Path]:
    vault = root / "vault"
    (vault / "projects").mkdir(parents=True)
    (vault / "projects" / "alpha.md").write_text(
        "- parent\n\t- child #t\n- next root #t\n", encoding="utf-8"
    )
    (vault / "inbox.md").write_text("loose #t note\n", encoding="utf-8")
    (vault / "raw.md").write_text("no index here #t\n", encoding="utf-8")
    metadata = root / "metadata.jsonl"
    save_jsonl(
        [
            {
                "path": "projects/alpha.md",
                "tags": [
                    {"tag": "#t", "position": _pos(1)},
                    {"tag": "#t", "position": _pos(2)},
                ],
                "listItems": [
                    {"parent": -1, "position": _pos(0)},
                    {"parent": 0, "position": _pos(1)},
                    {"parent": -1, "position": _pos(2)},
                ],
                "frontmatter": {"tags": ["project"]},
            },
            {"path": "inbox.md", "tags": [{"tag": "#t", "position": _pos(0)}]},
            {"path": "raw.md", "frontmatter": {"tags": "t"}},
        ],
        metadata,
    )
    return vault, metadata


@pytest.fixture()
def index_path(tmp_path: Path) -> Path:
    vault, metadata = _make_vault(tmp_path)
    out = tmp_path / "index" / "summary.duckdb"
    mod = _load_build_module()
    assert mod.main(["--vault", str(vault), "--metadata", str(metadata), "--output", str(out)]) == 0
    return out


class TestBuildSummaryIndex:
    def test_refuses_to_overwrite_without_force(self, tmp_path: Path, index_path: Path) -> None:
        mod = _load_build_module()
        vault, metadata = tmp_path / "vault", tmp_path / "metadata.jsonl"
        args = ["--vault", str(vault), "--metadata", str(metadata), "--output", str(index_path)]
        assert mod.main(args) == 1
        assert mod.main([*args, "--force"]) == 0

    def test_missing_vault(self, tmp_path: Path) -> None:
        mod = _load_build_module()
        rc = mod.main([
            "--vault", str(tmp_path / "nope"),
            "--metadata", str(tmp_path / "m.jsonl"),
            "--output", str(tmp_path / "o.duckdb"),
        ])
        assert rc == 1

    def test_malformed_metadata_reports_error(
        self, tmp_path: Path, capsys: pytest.CaptureFixture[str]
    ) -> None:
        vault = tmp_path / "vault"
        vault.mkdir()
        (vault / "a.md").write_text("- a\n", encoding="utf-8")
        metadata = tmp_path / "metadata.jsonl"
        save_jsonl(
            [{"path": "a.md", "tags": [], "listItems": [{"parent": None, "position": _pos(0)}]}],
            metadata,
        )
        out = tmp_path / "o.duckdb"
        mod = _load_build_module()
        rc = mod.main(["--vault", str(vault), "--metadata", str(metadata), "--output", str(out)])
        assert rc == 1
        assert "Error:" in capsys.readouterr().err
        assert not out.exists()

    def test_tables_populated(self, index_path: Path) -> None:
        con = duckdb.connect(str(index_path), read_only=True)
        try:
            assert con.execute("SELECT COUNT(*) FROM documents").fetchone() == (3,)
            assert con.execute("SELECT COUNT(*) FROM list_items").fetchone() == (3,)
            parents = con.execute(
                "SELECT parent FROM list_items ORDER BY ordinal"
            ).fetchall()
            assert parents == [(None,), (0,), (None,)]
        finally:
            con.close()


class TestSummaryIndex:
    def test_schema_version(self, index_path: Path) -> None:
        with SummaryIndex(index_path) as index:
            assert index.schema_version == "0.1.0"
            assert index.doc_count == 3

    def test_schema_mismatch_raises(self, index_path: Path) -> None:
        con = duckdb.connect(str(index_path), read_only=True)
        try:
            with pytest.raises(SchemaVersionError, match="--force"):
                ensure_schema_version(con, db_path=index_path, expected="9.9.9")
        finally:
            con.close()

    def test_unstamped_file_reports_unknown(self, tmp_path: Path) -> None:
        path = tmp_path / "other.duckdb"
        duckdb.connect(str(path)).close()
        with pytest.raises(SchemaVersionError, match="unknown"):
            SummaryIndex(path)
        with SummaryIndex(path, enforce_schema=False) as index:
            assert index.schema_version == "unknown"

    def test_schema_version_from_worker_threads(self, index_path: Path) -> None:
        with SummaryIndex(index_path) as index:
            with ThreadPoolExecutor(max_workers=4) as pool:
                versions = list(pool.map(lambda _: index.schema_version, range(8)))
        assert versions == ["0.1.0"] * 8

    def test_indexed_document_without_entries(self, tmp_path: Path) -> None:
        vault = tmp_path / "vault"
        vault.mkdir()
        (vault / "plain.md").write_text("plain text\n", encoding="utf-8")
        metadata = tmp_path / "metadata.jsonl"
        save_jsonl([{"path": "plain.md", "tags": [], "listItems": []}], metadata)
        out = tmp_path / "summary.duckdb"
        mod = _load_build_module()
        assert mod.main(["--vault", str(vault), "--metadata", str(metadata), "--output", str(out)]) == 0

        with SummaryIndex(out) as index:
            handle = DocumentHandle.from_path("plain.md")
            assert index.get_tags(handle) == []
            assert index.get_list_items(handle) == []

    def test_document_store_interface(self, index_path: Path) -> None:
        with SummaryIndex(index_path) as index:
            handles = index.list_documents()
            assert [h.path for h in handles] == ["inbox.md", "projects/alpha.md", "raw.md"]
            alpha = DocumentHandle("projects/alpha.md", "alpha")
            assert index.get_tags(alpha) == [TagOccurrence("#t", 1, 1), TagOccurrence("#t", 2, 2)]
            assert index.get_list_items(alpha) == [
                ListItem(0, 0, None), ListItem(1, 1, 0), ListItem(2, 2, None),
            ]
            assert index.get_all_tags_flat(alpha) == ["#t", "#project"]
            assert index.read_content(alpha).startswith("- parent\n")

    def test_missing_structural_index(self, index_path: Path) -> None:
        with SummaryIndex(index_path) as index:
            raw = DocumentHandle("raw.md", "raw")
            assert index.get_tags(raw) is None
            assert index.get_list_items(raw) is None
            assert index.get_all_tags_flat(raw) == ["#t"]

    def test_documents_with_tag(self, index_path: Path) -> None:
        with SummaryIndex(index_path) as index:
            assert index.documents_with_tag("#project") == ["projects/alpha.md"]
            assert index.documents_with_tag("#t") == ["inbox.md", "projects/alpha.md", "raw.md"]

    def test_unknown_document(self, index_path: Path) -> None:
        with SummaryIndex(index_path) as index:
            with pytest.raises(KeyError):
                index.read_content(DocumentHandle("ghost.md", "ghost"))
            with pytest.raises(KeyError):
                index.get_tags(DocumentHandle("ghost.md", "ghost"))
            with pytest.raises(KeyError):
                index.get_list_items(DocumentHandle("ghost.md", "ghost"))

    def test_build_summary_over_index(self, index_path: Path) -> None:
        settings = SummarySettings(include_callout=False, include_link=False)
        with SummaryIndex(index_path) as index:
            out = build_summary(index, SelectorSet(any_of=("#t",)), settings, max_workers=3)
        assert out == (
            "**Source:** inbox\nloose #t note\n"
            "\n"
            "**Source:** alpha\n- parent\n\t- child #t\n"
            "\n"
            "**Source:** alpha\n- next root #t\n"
        )
