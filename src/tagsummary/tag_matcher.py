"""Resolve tag occurrences to the text regions they select.

A tag that sits on the first line of a list item selects that item's whole
root-level entry: the enclosing root item plus every nested item up to the
next root-level sibling. Any other tag selects just its own lines.

Functions:

* ``resolve_tag_match`` — one tag occurrence → one ``Match``.
* ``get_matches``       — every selected ``Match`` of one document.
* ``block_tags``        — tags whose occurrence starts inside a match.
* ``dedupe_matches``    — drop matches covered by another match.
"""
from __future__ import annotations

import logging
from collections.abc import Sequence

from tagsummary.lines import extract_lines
from tagsummary.list_tree import (
    RootSegments,
    find_enclosing_root_index,
    subtree_span,
)
from tagsummary.selectors import SelectorSet
from tagsummary.settings import DEFAULT_SETTINGS, SummarySettings
from tagsummary.summary_types import (
    DocumentRecord,
    EmptyListItemsError,
    ListItem,
    Match,
    TagOccurrence,
)

log = logging.getLogger(__name__)


def resolve_tag_match(
    tag: TagOccurrence,
    lines: Sequence[str],
    list_items: Sequence[ListItem],
    *,
    segments: RootSegments | None = None,
    source: str = "",
) -> Match:
    """Resolve *tag* to the Match it selects.

    Only an exact start-line hit counts as "on a list item"; a tag further
    down a multi-line item falls back to its own lines.

    Args:
        tag: The tag occurrence to resolve.
        lines: The document's content split on newlines.
        list_items: The document's list items, in document order. Must be
            non-empty.
        segments: Pre-computed root boundaries for *list_items*. When
            omitted, boundaries are found by linear scans.
        source: Document path, used only in log messages.

    Raises:
        EmptyListItemsError: *list_items* is empty.
    """
    if not list_items:
        raise EmptyListItemsError(
            "list-item resolution requires a non-empty list_items array"
        )

    if segments is not None:
        index = segments.index_starting_at(tag.start_line)
    else:
        index = next(
            (i for i, item in enumerate(list_items)
             if item.start_line == tag.start_line),
            None,
        )
    if index is None:
        return extract_lines(lines, tag.start_line, tag.end_line)

    if segments is not None:
        root_index = segments.enclosing_root_index(index)
    else:
        root_index = find_enclosing_root_index(list_items, index)

    if root_index is None:
        log.warning(
            "No root-level list item encloses item %d (line %d) in %s; "
            "treating the item as its own root",
            index, list_items[index].start_line, source or "<unknown>",
        )
        root = list_items[index]
    else:
        root = list_items[root_index]

    if segments is not None:
        start_line, end_line = root.start_line, segments.subtree_end_line(index)
    else:
        start_line, end_line = subtree_span(list_items, root, index)
    return extract_lines(lines, start_line, end_line)


def block_tags(tags: Sequence[TagOccurrence], match: Match) -> frozenset[str]:
    """Tags with an occurrence starting inside *match*'s span."""
    return frozenset(
        t.tag for t in tags
        if match.start_line <= t.start_line <= match.end_line
    )


def dedupe_matches(matches: Sequence[Match]) -> list[Match]:
    """Drop matches whose span lies inside another match's span.

    Of several identical spans only the first is kept. Order is preserved.
    """
    kept: list[Match] = []
    for i, match in enumerate(matches):
        covered = False
        for j, other in enumerate(matches):
            if i == j or not other.contains(match):
                continue
            if other.line_count > match.line_count or j < i:
                covered = True
                break
        if not covered:
            kept.append(match)
    return kept


def get_matches(
    record: DocumentRecord,
    selectors: SelectorSet,
    settings: SummarySettings = DEFAULT_SETTINGS,
) -> tuple[Match, ...]:
    """All Matches selected from one document, in tag-occurrence order.

    Every occurrence of an any-of or all-of tag is resolved, then the
    resulting block is kept only when its own tags pass ``selectors``.
    A document without a structural index contributes nothing.
    """
    if record.tags is None:
        return ()

    candidates = selectors.candidates
    hits = [t for t in record.tags if t.tag in candidates]
    if not hits:
        return ()

    segments: RootSegments | None = None
    if settings.include_children and record.list_items:
        segments = RootSegments(record.list_items)

    matches: list[Match] = []
    for tag in hits:
        if segments is None:
            match = extract_lines(record.lines, tag.start_line, tag.end_line)
        else:
            match = resolve_tag_match(
                tag,
                record.lines,
                segments.items,
                segments=segments,
                source=record.handle.path,
            )
        if not selectors.matches(block_tags(record.tags, match)):
            continue
        matches.append(match)

    if settings.dedupe:
        matches = dedupe_matches(matches)
    return tuple(matches)
