"""Command-line entry point: convert a workbook to TSV or JSON.

Usage:
    xlsx-extract book.xlsx                     # first sheet as TSV on stdout
    xlsx-extract book.xlsx out.tsv --sheet-all --ignore-header 1
    xlsx-extract book.xlsx out.json --sheet-name Data
"""

from __future__ import annotations

import argparse
import sys
from collections.abc import Sequence
from typing import Any

from xlsx_extract import __version__
from xlsx_extract.config import settings
from xlsx_extract.models import OutputFormat, XMLParserBackend
from xlsx_extract.output.output_service import OutputService
from xlsx_extract.services.extractor import coerce_options
from xlsx_extract.utils.exceptions import XLSXError
from xlsx_extract.utils.logging import configure_logging, get_logger

logger = get_logger(__name__)

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


def _unescape(value: str) -> str:
    """Turn the escapes `\\t`, `\\r` and `\\n` typed on a shell into characters."""
    return value.replace("\\t", "\t").replace("\\r", "\r").replace("\\n", "\n")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="xlsx-extract",
        description="Stream rows out of an XLSX workbook as delimited text or JSON.",
    )
    parser.add_argument("input", help="Path to the .xlsx file")
    parser.add_argument(
        "output", nargs="?", help="Output file (default: write to stdout)"
    )

    selector = parser.add_mutually_exclusive_group()
    selector.add_argument("--sheet-all", action="store_true", help="Extract every sheet")
    selector.add_argument("--sheet-nr", type=int, help="1-based sheet number")
    selector.add_argument("--sheet-name", help="Sheet name")
    selector.add_argument("--sheet-id", help="Sheet relationship id (e.g. rId2)")

    parser.add_argument(
        "--ignore-header",
        type=int,
        default=0,
        help="Number of leading rows to skip per sheet (default: 0)",
    )
    parser.add_argument(
        "--include-empty-rows",
        action="store_true",
        help="Keep rows that contain no cells",
    )
    parser.add_argument(
        "--format",
        choices=[OutputFormat.TSV.value, OutputFormat.JSON.value],
        default=OutputFormat.TSV.value,
        help="Output serialization (default: tsv, or json for a .json output)",
    )
    parser.add_argument(
        "--parser",
        choices=[backend.value for backend in XMLParserBackend],
        default=None,
        help=f"XML backend (default: {settings.xml_parser})",
    )
    parser.add_argument(
        "--delimiter", type=_unescape, default=None, help="Field delimiter (default: tab)"
    )
    parser.add_argument(
        "--endofline",
        type=_unescape,
        default=None,
        help="Line terminator, escapes like \\r\\n allowed (default: newline)",
    )
    parser.add_argument(
        "--float-comma", action="store_true", help="Write decimals with a comma"
    )
    parser.add_argument(
        "--log-level",
        type=str.upper,
        choices=LOG_LEVELS,
        default=None,
        help=f"Logging level (default: {settings.log_level})",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return parser


def options_from_args(args: argparse.Namespace) -> dict[str, Any]:
    """Translate parsed arguments into extraction option values."""
    options: dict[str, Any] = {
        "ignore_header": args.ignore_header,
        "include_empty_rows": args.include_empty_rows,
        "format": args.format,
        "tsv_float_comma": args.float_comma,
    }
    if args.sheet_all:
        options["sheet_all"] = True
    elif args.sheet_nr is not None:
        options["sheet_nr"] = args.sheet_nr
    elif args.sheet_name is not None:
        options["sheet_name"] = args.sheet_name
    elif args.sheet_id is not None:
        options["sheet_id"] = args.sheet_id
    if args.parser:
        options["parser"] = args.parser
    if args.delimiter:
        options["tsv_delimiter"] = args.delimiter
    if args.endofline:
        options["tsv_endofline"] = args.endofline
    return options


def main(argv: Sequence[str] | None = None) -> int:
    """Run the converter. Returns the process exit code."""
    args = build_parser().parse_args(argv)
    configure_logging(args.log_level or settings.log_level_int)
    logger.debug("Loaded settings", **settings.to_safe_dict())

    service = OutputService()
    try:
        options = coerce_options(options_from_args(args))
        if args.output:
            result = service.convert(args.input, args.output, options)
        else:
            result = service.write(args.input, sys.stdout, options)
            sys.stdout.flush()
    except XLSXError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    logger.debug("Conversion finished", **result.to_dict())
    return 0


if __name__ == "__main__":
    sys.exit(main())
