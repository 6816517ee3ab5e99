"""FastAPI server exposing tag summaries to a renderer.

Reads from summary_index/summary.duckdb via the SummaryIndex class and
returns composed summary markdown for a set of tag selectors.

Usage:
    cd dashboard
    PYTHONPATH=../src TAGSUMMARY_DB=../summary_index/summary.duckdb \
        uvicorn api.server:app --reload --port 8000
"""
from __future__ import annotations

import os
import sys
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, HTTPException, Query
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from pydantic import BaseModel, Field

# Add src to path so we can import tagsummary modules
_src = Path(__file__).resolve().parents[2] / "src"
if str(_src) not in sys.path:
    sys.path.insert(0, str(_src))

from tagsummary.selectors import SelectorSet, parse_summary_block, parse_tag_list  # noqa: E402
from tagsummary.settings import SummarySettings, load_settings, settings_from_dict  # noqa: E402
from tagsummary.summary import build_summary_result  # noqa: E402
from tagsummary.summary_index import SummaryIndex  # noqa: E402

# ---------------------------------------------------------------------------
# Globals
#
# SummaryIndex opens one DuckDB cursor per query, so the summary build may
# fan out across worker threads inside a single request.
# ---------------------------------------------------------------------------
_index: SummaryIndex | None = None
_index_db_path = Path(
    os.environ.get(
        "TAGSUMMARY_DB",
        str(Path(__file__).resolve().parents[2] / "summary_index" / "summary.duckdb"),
    )
)
_settings_path: Path | None = (
    Path(os.environ["TAGSUMMARY_SETTINGS"]) if os.environ.get("TAGSUMMARY_SETTINGS") else None
)
_settings: SummarySettings = SummarySettings()


def _get_index() -> SummaryIndex:
    """Get the summary index, raising 503 if not available."""
    if _index is None:
        raise HTTPException(
            status_code=503,
            detail="Summary index not available. Run build_summary_index.py first.",
        )
    return _index


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------
@asynccontextmanager
async def lifespan(app: FastAPI):  # noqa: ARG001
    global _index, _settings  # noqa: PLW0603
    try:
        _settings = load_settings(_settings_path)
    except (OSError, ValueError) as e:
        print(f"[summary-api] Warning: could not load settings: {e}")
        _settings = SummarySettings()

    if _index_db_path.exists():
        try:
            _index = SummaryIndex(_index_db_path)
            print(f"[summary-api] Index loaded: {_index.doc_count} documents")
        except Exception as e:
            print(f"[summary-api] Warning: could not open index: {e}")
            _index = None
    else:
        print(f"[summary-api] No index at {_index_db_path}")
        _index = None

    yield
    if _index is not None:
        _index.close()
        _index = None


# ---------------------------------------------------------------------------
# App
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Tag Summary API",
    version="0.1.0",
    default_response_class=ORJSONResponse,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["GET", "POST", "OPTIONS"],
    allow_headers=["*"],
)


# ---------------------------------------------------------------------------
# Request models
# ---------------------------------------------------------------------------
class SummaryRequest(BaseModel):
    tags: list[str] = Field(default_factory=list)
    include: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)
    settings: dict[str, bool] = Field(default_factory=dict)


class SummaryBlockRequest(BaseModel):
    source: str
    settings: dict[str, bool] = Field(default_factory=dict)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _clean_tags(values: list[str]) -> tuple[str, ...]:
    """Keep tag-shaped tokens only (same rule as the add-summary block)."""
    return parse_tag_list(" ".join(values))


def _summarize(selectors: SelectorSet, overrides: dict[str, bool]) -> dict[str, object]:
    index = _get_index()
    try:
        settings = settings_from_dict(overrides, base=_settings)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e
    result = build_summary_result(index, selectors, settings)
    return {
        "summary": result.text,
        "document_count": sum(1 for d in result.documents if d.matches),
        "match_count": result.match_count,
        "empty": result.is_empty,
        "selectors": {
            "tags": list(selectors.any_of),
            "include": list(selectors.all_of),
            "exclude": list(selectors.none_of),
        },
    }


# ---------------------------------------------------------------------------
# Routes: Health
# ---------------------------------------------------------------------------
@app.get("/api/health")
async def health():
    return {
        "status": "ok",
        "index_loaded": _index is not None,
        "doc_count": _index.doc_count if _index else 0,
    }


# ---------------------------------------------------------------------------
# Routes: Documents
# ---------------------------------------------------------------------------
@app.get("/api/documents")
async def documents(tag: str | None = Query(None, description="Only documents with this tag")):
    index = _get_index()
    if tag:
        paths = index.documents_with_tag(tag)
    else:
        paths = [h.path for h in index.list_documents()]
    return {"documents": paths, "total": len(paths)}


# ---------------------------------------------------------------------------
# Routes: Summary
# ---------------------------------------------------------------------------
@app.post("/api/summary")
async def summary(req: SummaryRequest):
    selectors = SelectorSet(
        any_of=_clean_tags(req.tags),
        all_of=_clean_tags(req.include),
        none_of=_clean_tags(req.exclude),
    )
    return _summarize(selectors, req.settings)


@app.post("/api/summary/block")
async def summary_block(req: SummaryBlockRequest):
    return _summarize(parse_summary_block(req.source), req.settings)
