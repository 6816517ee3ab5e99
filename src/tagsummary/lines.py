"""Line-range extraction over line-split document content."""
from __future__ import annotations

from collections.abc import Sequence

from tagsummary.summary_types import Match


def split_lines(content: str) -> tuple[str, ...]:
    """Split raw content on ``\\n`` only, the way the structural index counts lines."""
    return tuple(content.split("\n"))


def extract_lines(lines: Sequence[str], start_line: int, end_line: int) -> Match:
    """Join ``lines[start_line..end_line]`` (inclusive) into a Match.

    Expects ``0 <= start_line <= end_line < len(lines)``; bounds are the
    caller's responsibility.
    """
    content = "\n".join(lines[start_line:end_line + 1])
    return Match(start_line=start_line, end_line=end_line, content=content)
