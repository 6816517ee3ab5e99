"""List-item hierarchy resolution over flat, parent-indexed arrays.

List items arrive as a flat array in document order where each item only
points *up* to its parent (``ListItem.parent``). No tree is built: both
"which root-level item owns this one" and "where does that root's subtree
end" reduce to scanning for root-level items around a target index.

Layout assumption: every descendant of a root item sits between that root
and the next root-level item.

Two entry styles:

* ``find_enclosing_root`` / ``subtree_span`` — direct linear scans, one
  target at a time.
* ``RootSegments`` — root boundaries computed once per document, then O(1)
  per target. Produces the same answers as the scans.
"""
from __future__ import annotations

from collections.abc import Sequence

from tagsummary.summary_types import ListItem


# ---------------------------------------------------------------------------
# Linear scans
# ---------------------------------------------------------------------------

def find_enclosing_root_index(
    items: Sequence[ListItem], target_index: int,
) -> int | None:
    """Index of the root-level item that owns ``items[target_index]``.

    A root-level item owns itself. The first item of the array is always
    treated as a root, whatever its parent says, since nothing precedes it.
    Otherwise the closest root-level item before the target wins.

    Returns ``None`` when no root-level item precedes a non-root target
    (malformed input).
    """
    if items[target_index].is_root or target_index == 0:
        return target_index
    for i in range(target_index - 1, -1, -1):
        if items[i].is_root:
            return i
    return None


def find_enclosing_root(items: Sequence[ListItem], target_index: int) -> ListItem:
    """Root-level item owning ``items[target_index]``.

    Falls back to the target itself when no root precedes it; use
    ``find_enclosing_root_index`` to detect that case.
    """
    root_index = find_enclosing_root_index(items, target_index)
    if root_index is None:
        return items[target_index]
    return items[root_index]


def next_root_index(items: Sequence[ListItem], target_index: int) -> int | None:
    """First root-level item strictly after ``target_index``, if any."""
    for j in range(target_index + 1, len(items)):
        if items[j].is_root:
            return j
    return None


def subtree_span(
    items: Sequence[ListItem], root: ListItem, target_index: int,
) -> tuple[int, int]:
    """Inclusive ``(start_line, end_line)`` of *root* and all its descendants.

    The span stops at the item just before the next root-level sibling of
    the target, or at the last item of the array when none follows.
    """
    j = next_root_index(items, target_index)
    if j is None:
        return root.start_line, items[-1].end_line
    return root.start_line, items[j - 1].end_line


# ---------------------------------------------------------------------------
# Pre-computed root boundaries
# ---------------------------------------------------------------------------

class RootSegments:
    """Root boundaries of one document's list items, computed in two passes."""

    __slots__ = ("_items", "_enclosing", "_next_root", "_by_start_line")

    def __init__(self, items: Sequence[ListItem]) -> None:
        self._items: tuple[ListItem, ...] = tuple(items)
        n = len(self._items)

        enclosing: list[int | None] = []
        last_root: int | None = None
        for i, item in enumerate(self._items):
            if item.is_root:
                last_root = i
                enclosing.append(i)
            elif i == 0:
                enclosing.append(0)
            else:
                enclosing.append(last_root)

        next_root: list[int | None] = [None] * n
        following: int | None = None
        for i in range(n - 1, -1, -1):
            next_root[i] = following
            if self._items[i].is_root:
                following = i

        by_start_line: dict[int, int] = {}
        for i, item in enumerate(self._items):
            by_start_line.setdefault(item.start_line, i)

        self._enclosing = enclosing
        self._next_root = next_root
        self._by_start_line = by_start_line

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> tuple[ListItem, ...]:
        return self._items

    def index_starting_at(self, line: int) -> int | None:
        """Index of the first item whose start line is *line*."""
        return self._by_start_line.get(line)

    def enclosing_root_index(self, target_index: int) -> int | None:
        return self._enclosing[target_index]

    def enclosing_root(self, target_index: int) -> ListItem:
        root_index = self._enclosing[target_index]
        if root_index is None:
            return self._items[target_index]
        return self._items[root_index]

    def subtree_end_line(self, target_index: int) -> int:
        """End line of the item just before the next root, else of the last item."""
        j = self._next_root[target_index]
        if j is None:
            return self._items[-1].end_line
        return self._items[j - 1].end_line

    def span(self, target_index: int) -> tuple[int, int]:
        """Same result as ``subtree_span(items, enclosing_root(i), i)``."""
        return (
            self.enclosing_root(target_index).start_line,
            self.subtree_end_line(target_index),
        )
