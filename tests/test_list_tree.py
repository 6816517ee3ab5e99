"""Tests for tagsummary.list_tree module."""
from __future__ import annotations

import pytest

from tagsummary.list_tree import (
    RootSegments,
    find_enclosing_root,
    find_enclosing_root_index,
    next_root_index,
    subtree_span,
)
from tagsummary.summary_types import ListItem


def _items(*specs: tuple[int, int, int | None]) -> list[ListItem]:
    return [ListItem(start_line=s, end_line=e, parent=p) for s, e, p in specs]


# - a          (0)
#   - a.1      (1)
#     - a.1.x  (2)
#   - a.2      (3)
# - b          (4)
#   - b.1      (5)
# - c          (6)
NESTED = _items(
    (0, 0, None),
    (1, 1, 0),
    (2, 2, 1),
    (3, 3, 0),
    (4, 4, None),
    (5, 6, 4),   # multi-line child
    (7, 7, None),
)


class TestListItem:
    def test_from_cache_negative_parent_is_root(self) -> None:
        item = ListItem.from_cache(start_line=3, end_line=4, parent=-3)
        assert item.is_root
        assert item.parent is None

    def test_from_cache_keeps_parent_index(self) -> None:
        item = ListItem.from_cache(start_line=3, end_line=4, parent=2)
        assert not item.is_root
        assert item.parent == 2


class TestFindEnclosingRoot:
    def test_root_returns_itself(self) -> None:
        assert find_enclosing_root(NESTED, 4) is NESTED[4]
        assert find_enclosing_root_index(NESTED, 6) == 6

    def test_first_item_is_always_root(self) -> None:
        items = _items((0, 0, 5), (1, 1, 0))
        assert find_enclosing_root(items, 0) is items[0]
        assert find_enclosing_root_index(items, 0) == 0

    def test_direct_child(self) -> None:
        assert find_enclosing_root_index(NESTED, 1) == 0

    def test_grandchild_walks_past_intermediate_parent(self) -> None:
        assert find_enclosing_root_index(NESTED, 2) == 0

    def test_closest_preceding_root_wins(self) -> None:
        assert find_enclosing_root_index(NESTED, 5) == 4

    def test_root_immediately_before_target_is_found(self) -> None:
        items = _items((0, 0, None), (1, 1, 0), (2, 2, None), (3, 3, 2))
        assert find_enclosing_root_index(items, 3) == 2

    def test_missing_root_falls_back_to_target(self) -> None:
        # Item 0 has a parent, so it does not count as a root for later items.
        items = _items((0, 0, 4), (1, 1, 0), (2, 2, 1))
        assert find_enclosing_root_index(items, 2) is None
        assert find_enclosing_root(items, 2) is items[2]

    def test_result_is_closest_root_before_target(self) -> None:
        for target, item in enumerate(NESTED):
            if item.is_root or target == 0:
                continue
            root_index = find_enclosing_root_index(NESTED, target)
            assert root_index is not None
            assert root_index < target
            assert NESTED[root_index].is_root
            assert not any(NESTED[k].is_root for k in range(root_index + 1, target))


class TestSubtreeSpan:
    def test_root_with_descendants(self) -> None:
        assert subtree_span(NESTED, NESTED[0], 2) == (0, 3)

    def test_span_from_root_itself(self) -> None:
        assert subtree_span(NESTED, NESTED[0], 0) == (0, 3)

    def test_multi_line_last_child(self) -> None:
        assert subtree_span(NESTED, NESTED[4], 5) == (4, 6)

    def test_last_root_runs_to_end(self) -> None:
        assert subtree_span(NESTED, NESTED[6], 6) == (7, 7)

    def test_no_following_root_uses_last_item(self) -> None:
        items = _items((0, 0, None), (1, 1, 0), (2, 5, 1))
        assert next_root_index(items, 0) is None
        assert subtree_span(items, items[0], 1) == (0, 5)

    def test_span_bounds(self) -> None:
        for target in range(len(NESTED)):
            root = find_enclosing_root(NESTED, target)
            start, end = subtree_span(NESTED, root, target)
            assert start == root.start_line
            assert end >= root.end_line
            j = next_root_index(NESTED, target)
            limit = NESTED[-1].end_line if j is None else NESTED[j - 1].end_line
            assert end <= limit


class TestRootSegments:
    @pytest.mark.parametrize(
        "items",
        [
            NESTED,
            _items((0, 0, 5), (1, 1, 0), (2, 2, None), (3, 3, 2)),
            _items((0, 0, 4), (1, 1, 0), (2, 2, 1)),
            _items((0, 2, None)),
        ],
    )
    def test_agrees_with_linear_scans(self, items: list[ListItem]) -> None:
        segments = RootSegments(items)
        assert len(segments) == len(items)
        for target in range(len(items)):
            assert segments.enclosing_root_index(target) == find_enclosing_root_index(items, target)
            assert segments.enclosing_root(target) is find_enclosing_root(items, target)
            root = find_enclosing_root(items, target)
            assert segments.span(target) == subtree_span(items, root, target)

    def test_index_starting_at_returns_first_hit(self) -> None:
        items = _items((0, 0, None), (2, 2, None), (2, 3, 1))
        segments = RootSegments(items)
        assert segments.index_starting_at(2) == 1
        assert segments.index_starting_at(1) is None
