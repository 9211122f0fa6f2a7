#!/usr/bin/env python3
"""CLI for parsing Robinhood Derivatives monthly statements."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from statement_parser import (
    ParserRegistryError,
    SectionType,
    category_rollups,
    create_default_registry,
    load_document_from_path,
    month_rollups,
    sanity,
    write_csv,
    write_json,
    write_sections,
)
from statement_parser.page_extractor import default_pdf_name, extract_section_pdf

_section_choices = [t.value for t in SectionType if t is not SectionType.UNKNOWN]


def build_arg_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        description="Parse Robinhood Derivatives statements into CSV/JSON or extract a section to PDF."
    )
    ap.add_argument("pdf", type=Path, help="Statement PDF path")
    ap.add_argument("--csv", type=Path, default=None, help="Trades CSV output path")
    ap.add_argument("--json", type=Path, default=None, help="Parsed statement JSON output path")
    ap.add_argument("--sections", type=Path, default=None, help="Dump detected sections to this JSON path")
    ap.add_argument("--password", default=None, help="PDF password, if the statement is encrypted")
    ap.add_argument("--max-pages", type=int, default=None, help="Read at most this many pages")
    ap.add_argument("--timeout", type=float, default=None, help="Give up parsing after this many seconds")
    ap.add_argument(
        "--parser-version", default=None,
        help="Force a parser (e.g. robinhood-v1.1) instead of detecting the layout",
    )
    ap.add_argument("--print-rollups", action="store_true", help="Print per-category and per-month rollups")
    ap.add_argument(
        "--pdf", nargs="?", type=Path, const=True, dest="pdf_out", default=None,
        help=(
            "Write the pages of --section to a PDF; if no filename is given, "
            "a default archive name is used"
        ),
    )
    ap.add_argument("--section", choices=_section_choices, default=SectionType.TRADES.value,
                    help="Section to extract with --pdf (default: trades)")
    ap.add_argument("-v", "--verbose", action="store_true", help="Log parser decisions")
    return ap


async def run(args: argparse.Namespace) -> int:
    registry = create_default_registry(keep_raw_sections=args.sections is not None)
    document = await load_document_from_path(args.pdf, password=args.password, max_pages=args.max_pages)

    if args.parser_version:
        result = await registry.parse_with_version(document, args.parser_version, timeout=args.timeout)
        validation = registry.get_parser(result.parser_version).validate(result.statement)
    else:
        result, validation = await registry.parse_and_validate(document, timeout=args.timeout)
    statement = result.statement

    if args.csv:
        write_csv(statement.trades, args.csv)
    if args.json:
        write_json(statement, args.json, validation)
    if args.sections and statement.raw_sections is not None:
        write_sections(statement.raw_sections, args.sections)

    info = result.version_info
    stats = sanity(statement)
    print(f"Parser: {result.parser_version}  (layout {info.version} via {info.method}, "
          f"confidence {info.confidence:.2f}, {result.parse_time_ms:.0f} ms)")
    print(f"Account: {statement.account_summary.account_number or '?'}  "
          f"Statement date: {statement.account_summary.statement_date or '?'}")
    print(
        f"Trades: {stats['trades']}  (yes={stats['by_side'].get('YES', 0)}, no={stats['by_side'].get('NO', 0)})  "
        f"closed={stats['closed_positions']}  journal={stats['journal_entries']}  open={stats['open_positions']}"
    )
    print(f"Commissions: ${stats['total_commission']:.2f}  Realized P&L: ${stats['realized_pnl']:.2f}")
    print(f"Validation: {'ok' if validation.success else 'FAILED'}")
    for err in validation.errors:
        print(f"  error: {err}")
    for warning in statement.warnings:
        print(f"  warning: {warning}")
    if args.csv:
        print(f"CSV: {args.csv}")
    if args.json:
        print(f"JSON: {args.json}")
    if args.sections:
        print(f"Sections: {args.sections}")

    if args.print_rollups:
        roll = category_rollups(statement.trades)
        if not roll:
            print("No rollups to display.")
        else:
            print("\nPer-category rollups:")
            for category, sums in sorted(roll.items()):
                print(f"  {category}: contracts={sums['contracts']}  "
                      f"notional=${sums['notional']:.2f}  commission=${sums['commission']:.2f}")
            print("\nPer-month rollups:")
            for month, sums in sorted(month_rollups(statement.trades).items()):
                print(f"  {month}: bought=${sums['bought']:.2f}  sold=${sums['sold']:.2f}  "
                      f"commission=${sums['commission']:.2f}")

    if args.pdf_out:
        section = SectionType(args.section)
        out_path = default_pdf_name(statement, section) if args.pdf_out is True else args.pdf_out
        if out_path is None:
            raise ValueError("Could not determine a default PDF name without a statement date")
        start, end = extract_section_pdf(args.pdf, section, out_path)
        print(f"PDF: {out_path} (pages {start}-{end})")
    return 0


def main(argv=None) -> int:
    args = build_arg_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    try:
        return asyncio.run(run(args))
    except (ParserRegistryError, ValueError) as exc:
        print(f"error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
