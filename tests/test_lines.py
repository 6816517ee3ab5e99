"""Tests for tagsummary.lines module."""
from tagsummary.lines import extract_lines, split_lines
from tagsummary.summary_types import Match

LINES = ("zero", "one", "two", "three", "four")


class TestSplitLines:
    def test_splits_on_newline_only(self) -> None:
        assert split_lines("a\nb\x0cc\nd") == ("a", "b\x0cc", "d")

    def test_trailing_newline_keeps_empty_last_line(self) -> None:
        assert split_lines("a\nb\n") == ("a", "b", "")

    def test_crlf_keeps_carriage_return(self) -> None:
        assert split_lines("a\r\nb") == ("a\r", "b")


class TestExtractLines:
    def test_single_line(self) -> None:
        assert extract_lines(LINES, 2, 2) == Match(2, 2, "two")

    def test_inclusive_range(self) -> None:
        match = extract_lines(LINES, 1, 3)
        assert match.content == "one\ntwo\nthree"
        assert (match.start_line, match.end_line) == (1, 3)

    def test_line_count_matches_span(self) -> None:
        for start in range(len(LINES)):
            for end in range(start, len(LINES)):
                match = extract_lines(LINES, start, end)
                assert len(match.content.split("\n")) == end - start + 1
                assert match.line_count == end - start + 1

    def test_whole_document(self) -> None:
        match = extract_lines(LINES, 0, 4)
        assert match.content == "\n".join(LINES)

    def test_accepts_list(self) -> None:
        assert extract_lines(list(LINES), 0, 1).content == "zero\none"
