#!/usr/bin/env python3
"""Build a tag summary from a DuckDB summary index.

Selectors come either from flags or from an ``add-summary`` block file
(the same block the editor command inserts).

Usage:
    # Blocks tagged #meeting or #standup, but not #draft
    python3 scripts/tag_summary.py --db summary_index/summary.duckdb \
      --tags "#meeting #standup" --exclude "#draft"

    # Selectors from a block file, plain output without callouts
    python3 scripts/tag_summary.py --db summary_index/summary.duckdb \
      --block weekly.summary --set include_callout=false

    # Print the add-summary block for the given selectors and exit
    python3 scripts/tag_summary.py --tags "#a" --include "#b" --emit-block

    # JSON report (per-document match spans) instead of markdown
    python3 scripts/tag_summary.py --db summary_index/summary.duckdb \
      --tags "#a" --json
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

import orjson

from tagsummary.selectors import (
    SelectorSet,
    parse_summary_block,
    parse_tag_list,
    render_summary_block,
)
from tagsummary.settings import load_settings, settings_from_dict
from tagsummary.summary import DEFAULT_MAX_WORKERS, SummaryResult, build_summary_result
from tagsummary.summary_index import SummaryIndex

log = logging.getLogger("tag_summary")


def dump_json(obj: object) -> None:
    sys.stdout.buffer.write(orjson.dumps(obj, option=orjson.OPT_INDENT_2))
    sys.stdout.buffer.write(b"\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Build a summary of tagged blocks from a summary index."
    )
    parser.add_argument(
        "--db", type=Path, default=None, help="Path to summary.duckdb"
    )
    parser.add_argument(
        "--tags", default="", help="Any-of tags (OR), whitespace-separated"
    )
    parser.add_argument(
        "--include", default="", help="All-of tags (AND), whitespace-separated"
    )
    parser.add_argument(
        "--exclude", default="", help="None-of tags (NOT), whitespace-separated"
    )
    parser.add_argument(
        "--block",
        type=Path,
        default=None,
        help="Read selectors from an add-summary block file (overrides tag flags).",
    )
    parser.add_argument(
        "--settings", type=Path, default=None, help="Settings JSON file"
    )
    parser.add_argument(
        "--set",
        dest="overrides",
        action="append",
        default=[],
        metavar="KEY=BOOL",
        help="Override one setting, e.g. include_children=false (repeatable).",
    )
    parser.add_argument(
        "--workers",
        type=int,
        default=DEFAULT_MAX_WORKERS,
        help=f"Parallel document readers (default: {DEFAULT_MAX_WORKERS})",
    )
    parser.add_argument(
        "--emit-block",
        action="store_true",
        help="Print the add-summary block for the selectors and exit.",
    )
    parser.add_argument(
        "--json", action="store_true", help="Emit a JSON report instead of markdown."
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Verbose logging"
    )
    return parser


def _parse_overrides(pairs: list[str]) -> dict[str, bool]:
    overrides: dict[str, bool] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        flag = value.strip().lower()
        if not sep or flag not in {"true", "false", "1", "0", "yes", "no"}:
            raise ValueError(f"Invalid --set value {pair!r}; expected KEY=true|false")
        overrides[key.strip()] = flag in {"true", "1", "yes"}
    return overrides


def _selectors_from_args(args: argparse.Namespace) -> SelectorSet:
    if args.block is not None:
        return parse_summary_block(args.block.read_text(encoding="utf-8"))
    return SelectorSet(
        any_of=parse_tag_list(args.tags),
        all_of=parse_tag_list(args.include),
        none_of=parse_tag_list(args.exclude),
    )


def _result_to_json(result: SummaryResult) -> dict[str, object]:
    return {
        "match_count": result.match_count,
        "empty": result.is_empty,
        "documents": [
            {
                "path": d.handle.path,
                "name": d.handle.name,
                "matches": [
                    {"start_line": m.start_line, "end_line": m.end_line, "content": m.content}
                    for m in d.matches
                ],
            }
            for d in result.documents
        ],
        "summary": result.text,
    }


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
    )

    try:
        selectors = _selectors_from_args(args)
        settings = settings_from_dict(
            _parse_overrides(args.overrides), base=load_settings(args.settings)
        )
    except (OSError, ValueError) as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1

    if args.emit_block:
        sys.stdout.write(render_summary_block(selectors))
        return 0

    if args.db is None:
        print("Error: --db is required unless --emit-block is given", file=sys.stderr)
        return 1
    if not args.db.exists():
        print(f"Error: database not found: {args.db}", file=sys.stderr)
        return 1

    with SummaryIndex(args.db) as index:
        result = build_summary_result(
            index, selectors, settings, max_workers=args.workers
        )

    log.debug(
        "%d match(es) across %d document(s)",
        result.match_count, len(result.documents),
    )
    if args.json:
        dump_json(_result_to_json(result))
    else:
        sys.stdout.write(result.text if result.text.endswith("\n") else result.text + "\n")
    return 0


if __name__ == "__main__":
    sys.exit(main())
