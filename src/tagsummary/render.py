"""Compose resolved matches into summary markdown.

Decoration only: nothing here changes which lines a match covers.
"""
from __future__ import annotations

import re
from collections.abc import Sequence

from tagsummary.settings import DEFAULT_SETTINGS, SummarySettings
from tagsummary.summary_types import DocumentHandle, DocumentMatches, Match

EMPTY_SUMMARY_MESSAGE = "There are no blocks that match the specified tags."

# Inline tag: "#" followed by letters, digits, "_", "-", "/" or "#".
_INLINE_TAG_RE = re.compile(r"#[\w\-/#]+")

# Leading list marker ("- ", "* ", "+ ", "1. ", "2) ") and an optional task box.
_LIST_MARKER_RE = re.compile(r"^\s*(?:[-+*]|\d+[.)])\s+(?:\[.\]\s+)?")


def strip_tags(text: str) -> str:
    return _INLINE_TAG_RE.sub("", text)


def flatten_list_paragraph(text: str) -> str:
    """Join list lines into one paragraph, dropping markers and indentation."""
    parts: list[str] = []
    for line in text.split("\n"):
        stripped = _LIST_MARKER_RE.sub("", line, count=1).strip()
        if stripped:
            parts.append(stripped)
    return " ".join(parts)


def provenance_line(handle: DocumentHandle, *, include_link: bool) -> str:
    if include_link:
        return f"**Source:** [[{handle.path}|{handle.name}]]"
    return f"**Source:** {handle.name}"


def render_match(
    match: Match,
    handle: DocumentHandle,
    settings: SummarySettings = DEFAULT_SETTINGS,
) -> str:
    """Render one match as a provenance line plus its decorated content."""
    text = match.content
    if not settings.list_paragraph:
        text = flatten_list_paragraph(text)
    if settings.remove_tags:
        text = strip_tags(text)

    segment = provenance_line(handle, include_link=settings.include_link) + "\n" + text
    if settings.include_callout:
        rows = [f"> {row}" if row else ">" for row in segment.split("\n")]
        segment = f"> [!{handle.name}]\n" + "\n".join(rows)
    return segment + "\n"


def compose_summary(
    results: Sequence[DocumentMatches],
    settings: SummarySettings = DEFAULT_SETTINGS,
) -> str:
    """Concatenate every match in the given document order.

    Returns an empty string when there is nothing to render.
    """
    segments = [
        render_match(match, record.handle, settings)
        for record in results
        for match in record.matches
    ]
    return "\n".join(segments)
