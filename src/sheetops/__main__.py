"""CLI entry point for sheetops.

Usage:
    python -m sheetops parse <range> [--sheet NAME] [--named NAME ...]
    python -m sheetops translate <operation.json> [--sheet-id N]
    python -m sheetops read <spreadsheet_id_or_url> <range> [--formulas]
    python -m sheetops profile <spreadsheet_id_or_url> <sheet>
    python -m sheetops context <spreadsheet_id_or_url>

read, profile and context take the access token from SHEETOPS_ACCESS_TOKEN,
or read golden files with --local DIR.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import re
import sys
from pathlib import Path
from typing import Any

from sheetops.client import SheetsClient
from sheetops.config import Settings, get_settings
from sheetops.exceptions import SheetOpsError
from sheetops.operations import parse_operation
from sheetops.profiler import SampleConfig
from sheetops.ranges import parse_range
from sheetops.request_generator import build_request
from sheetops.resolver import RangeCaps
from sheetops.transport import GoogleSheetsTransport, LocalFileTransport, Transport


def parse_spreadsheet_id(id_or_url: str) -> str:
    """Extract spreadsheet ID from a URL or return as-is if already an ID."""
    # https://docs.google.com/spreadsheets/d/SPREADSHEET_ID/edit...
    url_pattern = r"docs\.google\.com/spreadsheets/d/([a-zA-Z0-9_-]+)"
    match = re.search(url_pattern, id_or_url)
    if match:
        return match.group(1)
    return id_or_url


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, default=str))


def _make_transport(args: argparse.Namespace, settings: Settings) -> Transport | None:
    if args.local:
        return LocalFileTransport(Path(args.local))
    if not settings.has_access_token:
        print(
            "Error: set SHEETOPS_ACCESS_TOKEN or use --local DIR",
            file=sys.stderr,
        )
        return None
    return GoogleSheetsTransport(
        access_token=settings.access_token, timeout=settings.request_timeout
    )


async def cmd_parse(args: argparse.Namespace) -> int:
    """Parse a range expression and print its normalized form."""
    try:
        range_ = parse_range(args.range, current_sheet=args.sheet, named_ranges=args.named)
    except SheetOpsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    _print_json(
        {
            "kind": range_.kind.value,
            "sheet": range_.sheet_name,
            "startRow": range_.start_row,
            "startColumn": range_.start_column,
            "endRow": range_.end_row,
            "endColumn": range_.end_column,
            "name": range_.name,
            "a1": range_.to_a1(),
        }
    )
    return 0


async def cmd_translate(args: argparse.Namespace) -> int:
    """Translate an operation JSON file into API requests (no network)."""
    path = Path(args.operation_file)
    if not path.exists():
        print(f"Error: File not found: {path}", file=sys.stderr)
        return 1
    try:
        payload = json.loads(path.read_text())
    except json.JSONDecodeError as e:
        print(f"Error: Invalid JSON: {e}", file=sys.stderr)
        return 1

    settings = get_settings()
    try:
        operation = parse_operation(
            payload, current_sheet=args.sheet, named_ranges=args.named
        )
        request = build_request(
            operation, sheet_id=args.sheet_id, caps=RangeCaps.from_settings(settings)
        )
    except SheetOpsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    _print_json(request.to_dict())
    for warning in request.warnings:
        print(f"# WARNING: {warning}", file=sys.stderr)
    return 0


async def cmd_read(args: argparse.Namespace) -> int:
    """Read a range and print its values."""
    settings = get_settings()
    transport = _make_transport(args, settings)
    if transport is None:
        return 1
    client = SheetsClient(transport, caps=RangeCaps.from_settings(settings))
    try:
        result = await client.read_range(
            parse_spreadsheet_id(args.spreadsheet),
            args.range,
            include_formulas=args.formulas,
        )
        _print_json(result.to_dict())
        return 0
    except SheetOpsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await transport.close()


async def cmd_profile(args: argparse.Namespace) -> int:
    """Profile one sheet."""
    settings = get_settings()
    transport = _make_transport(args, settings)
    if transport is None:
        return 1
    client = SheetsClient(transport, sample_config=SampleConfig.from_settings(settings))
    try:
        sample = await client.profile_sheet(parse_spreadsheet_id(args.spreadsheet), args.sheet)
        _print_json(sample.to_dict())
        return 0
    except SheetOpsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await transport.close()


async def cmd_context(args: argparse.Namespace) -> int:
    """Profile every sheet and print the spreadsheet context."""
    settings = get_settings()
    transport = _make_transport(args, settings)
    if transport is None:
        return 1
    client = SheetsClient(transport, sample_config=SampleConfig.from_settings(settings))
    try:
        context = await client.build_context(parse_spreadsheet_id(args.spreadsheet))
        _print_json(context.to_dict())
        return 0
    except SheetOpsError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    finally:
        await transport.close()


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="sheetops",
        description="Parse ranges, translate operations and profile Google Sheets",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    # parse subcommand
    parse_parser = subparsers.add_parser("parse", help="Parse a range expression")
    parse_parser.add_argument("range", help='Range expression, e.g. "Sheet2!B2:B4"')
    parse_parser.add_argument("--sheet", default=None, help="Current sheet name")
    parse_parser.add_argument(
        "--named",
        nargs="*",
        default=[],
        help="Named ranges defined in the spreadsheet",
    )
    parse_parser.set_defaults(func=cmd_parse)

    # translate subcommand
    translate_parser = subparsers.add_parser(
        "translate",
        help="Translate an operation JSON file into API requests",
    )
    translate_parser.add_argument(
        "operation_file",
        help='Path to JSON file like {"type": "write", "range": "A1", "values": [[1]]}',
    )
    translate_parser.add_argument(
        "--sheet-id",
        type=int,
        default=0,
        help="Numeric sheet id used in batchUpdate requests (default: 0)",
    )
    translate_parser.add_argument("--sheet", default=None, help="Current sheet name")
    translate_parser.add_argument(
        "--named",
        nargs="*",
        default=[],
        help="Named ranges defined in the spreadsheet",
    )
    translate_parser.set_defaults(func=cmd_translate)

    for name, help_text, func in (
        ("read", "Read a range", cmd_read),
        ("profile", "Profile a sheet", cmd_profile),
        ("context", "Profile every sheet of a spreadsheet", cmd_context),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("spreadsheet", help="Spreadsheet ID or full Google Sheets URL")
        if name == "read":
            sub.add_argument("range", help="Range expression")
            sub.add_argument(
                "--formulas",
                action="store_true",
                help="Also read formula text",
            )
        elif name == "profile":
            sub.add_argument("sheet", help="Sheet title")
        sub.add_argument(
            "--local",
            default=None,
            help="Read golden files from this directory instead of the API",
        )
        sub.set_defaults(func=func)

    args = parser.parse_args()

    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )

    result: int = asyncio.run(args.func(args))
    return result


if __name__ == "__main__":
    sys.exit(main())
