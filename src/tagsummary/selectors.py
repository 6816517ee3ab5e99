"""Tag selectors: parsing ``add-summary`` blocks and evaluating blocks.

A summary request carries three selector categories:

* **any_of** (``tags:``) — OR: a block needs at least one of these tags.
* **all_of** (``include:``) — AND: a block needs every one of these tags.
* **none_of** (``exclude:``) — NOT: a block must carry none of these tags.

An empty category never constrains a block.
"""
from __future__ import annotations

import re
from collections.abc import Collection, Iterable
from dataclasses import dataclass

SUMMARY_BLOCK_LANGUAGE = "add-summary"

# Selector line: "tags: #a #b/c", "include: #x", "exclude: #y".
_SELECTOR_LINE_RE = re.compile(r"^\s*(tags|include|exclude):([\w\-/# ]+)$")

# A usable tag token: "#" + at least one letter, then anything but "#".
_TAG_TOKEN_RE = re.compile(r"^#[^\W\d_]+[^#]*$")

_KEY_TO_FIELD = {
    "tags": "any_of",
    "include": "all_of",
    "exclude": "none_of",
}


@dataclass(frozen=True, slots=True)
class SelectorSet:
    """The three selector categories of one summary request."""

    any_of: tuple[str, ...] = ()
    all_of: tuple[str, ...] = ()
    none_of: tuple[str, ...] = ()

    @property
    def candidates(self) -> frozenset[str]:
        """Tags that can pull a block or document into the summary."""
        return frozenset(self.any_of) | frozenset(self.all_of)

    @property
    def is_empty(self) -> bool:
        """True when nothing could ever be selected (no any-of, no all-of)."""
        return not self.any_of and not self.all_of

    def matches(self, block_tags: Collection[str]) -> bool:
        return is_match(block_tags, self.any_of, self.all_of, self.none_of)


def is_match(
    block_tags: Collection[str],
    any_of: Iterable[str],
    all_of: Iterable[str],
    none_of: Iterable[str],
) -> bool:
    """Decide whether a block carrying *block_tags* is selected.

    Checks run in order any-of, all-of, none-of and the first failing
    check rejects the block.
    """
    tags = set(block_tags)
    any_set = set(any_of)
    all_set = set(all_of)
    none_set = set(none_of)

    if any_set and tags.isdisjoint(any_set):
        return False
    if all_set and not all_set.issubset(tags):
        return False
    if none_set and not tags.isdisjoint(none_set):
        return False
    return True


def parse_tag_list(text: str) -> tuple[str, ...]:
    """Split *text* on whitespace, keeping only tag-shaped tokens."""
    return tuple(
        token for token in text.split() if _TAG_TOKEN_RE.match(token)
    )


def parse_summary_block(source: str) -> SelectorSet:
    """Parse the body of an ``add-summary`` code block.

    Unrecognised lines are ignored. A later line for the same key replaces
    the earlier one.
    """
    fields: dict[str, tuple[str, ...]] = {}
    for row in source.split("\n"):
        if not row:
            continue
        m = _SELECTOR_LINE_RE.match(row)
        if m is None:
            continue
        fields[_KEY_TO_FIELD[m.group(1)]] = parse_tag_list(m.group(2))
    return SelectorSet(**fields)


def render_summary_block(selectors: SelectorSet) -> str:
    """Render *selectors* as a fenced ``add-summary`` block."""
    block = f"```{SUMMARY_BLOCK_LANGUAGE}\n"
    if selectors.any_of:
        block += "tags: " + " ".join(selectors.any_of) + "\n"
    if selectors.all_of:
        block += "include: " + " ".join(selectors.all_of) + "\n"
    if selectors.none_of:
        block += "exclude: " + " ".join(selectors.none_of) + "\n"
    block += "```\n"
    return block
