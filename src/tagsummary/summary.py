"""Build a tag summary over a document store.

Pipeline:

1. ``select_documents`` — coarse pre-filter on document-level tags, then
   ordinal sort by path.
2. ``collect_matches``  — per-document snapshot + match resolution, run on
   a thread pool; results are joined in path order, never completion order.
3. ``compose_summary``  — decoration and concatenation (see render.py).

A failure while resolving one document degrades that document to zero
matches; it never aborts the whole build.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass

from tagsummary.lines import split_lines
from tagsummary.render import EMPTY_SUMMARY_MESSAGE, compose_summary
from tagsummary.selectors import SelectorSet
from tagsummary.settings import DEFAULT_SETTINGS, SummarySettings
from tagsummary.store import DocumentStore
from tagsummary.summary_types import (
    DocumentHandle,
    DocumentMatches,
    DocumentRecord,
    EmptyListItemsError,
)
from tagsummary.tag_matcher import get_matches

log = logging.getLogger(__name__)

DEFAULT_MAX_WORKERS = 4


@dataclass(frozen=True, slots=True)
class SummaryResult:
    """A composed summary plus the per-document matches behind it."""

    text: str
    documents: tuple[DocumentMatches, ...]

    @property
    def match_count(self) -> int:
        return sum(len(d.matches) for d in self.documents)

    @property
    def is_empty(self) -> bool:
        return self.match_count == 0


def select_documents(store: DocumentStore, selectors: SelectorSet) -> list[DocumentHandle]:
    """Documents carrying any any-of/all-of tag, sorted by path.

    Per-block all-of and none-of checks happen later, against each block's
    own tags.
    """
    candidates = selectors.candidates
    if not candidates:
        return []
    kept = [
        handle for handle in store.list_documents()
        if not candidates.isdisjoint(store.get_all_tags_flat(handle))
    ]
    kept.sort(key=lambda h: h.path)
    return kept


def snapshot_document(store: DocumentStore, handle: DocumentHandle) -> DocumentRecord:
    """Read one document's structural index and content from *store*."""
    tags = store.get_tags(handle)
    list_items = store.get_list_items(handle)
    content = store.read_content(handle)
    return DocumentRecord(
        handle=handle,
        tags=tuple(tags) if tags is not None else None,
        list_items=tuple(list_items) if list_items is not None else None,
        lines=split_lines(content),
    )


def _process_document(
    store: DocumentStore,
    handle: DocumentHandle,
    selectors: SelectorSet,
    settings: SummarySettings,
) -> DocumentMatches:
    try:
        record = snapshot_document(store, handle)
        if record.tags is None:
            log.warning("No tag index for %s; it contributes no matches", handle.path)
            return DocumentMatches(handle=handle, matches=())
        matches = get_matches(record, selectors, settings)
    except EmptyListItemsError:
        raise
    except Exception:
        log.exception("Failed to resolve matches for %s; skipping it", handle.path)
        return DocumentMatches(handle=handle, matches=())
    log.debug("%s: %d match(es)", handle.path, len(matches))
    return DocumentMatches(handle=handle, matches=matches)


def collect_matches(
    store: DocumentStore,
    selectors: SelectorSet,
    settings: SummarySettings = DEFAULT_SETTINGS,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> list[DocumentMatches]:
    """Resolve matches for every selected document, in path order."""
    if selectors.is_empty:
        log.debug("No any-of or all-of selectors; nothing to collect")
        return []

    handles = select_documents(store, selectors)
    log.debug("Selected %d document(s) for %s", len(handles), sorted(selectors.candidates))

    if max_workers <= 1 or len(handles) <= 1:
        return [_process_document(store, h, selectors, settings) for h in handles]

    with ThreadPoolExecutor(max_workers=min(max_workers, len(handles))) as pool:
        futures = [
            pool.submit(_process_document, store, h, selectors, settings)
            for h in handles
        ]
        return [fut.result() for fut in futures]


def build_summary_result(
    store: DocumentStore,
    selectors: SelectorSet,
    settings: SummarySettings = DEFAULT_SETTINGS,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> SummaryResult:
    documents = collect_matches(store, selectors, settings, max_workers=max_workers)
    text = compose_summary(documents, settings)
    if not text:
        text = EMPTY_SUMMARY_MESSAGE
    return SummaryResult(text=text, documents=tuple(documents))


def build_summary(
    store: DocumentStore,
    selectors: SelectorSet,
    settings: SummarySettings = DEFAULT_SETTINGS,
    *,
    max_workers: int = DEFAULT_MAX_WORKERS,
) -> str:
    """Summary markdown for *selectors*, or the empty-result message."""
    return build_summary_result(
        store, selectors, settings, max_workers=max_workers
    ).text
