"""CLI entry point for the receipt extractor."""

from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

from .client import ReceiptExtractionClient
from .config import ExtractorConfig, load_config
from .currency import detect_currency_from_location, format_currency
from .db import LocalStorage
from .errors import InputError
from .export import default_file_name, export_csv_complete, export_excel
from .history import ExtractionHistoryStore
from .models import ReceiptData
from .orchestrator import ExtractionOrchestrator
from .upload import ReceiptFile


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(
        prog="receipt-extractor",
        description="Extract itemized data from receipt images with a vision LLM",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=str,
        default=None,
        help="Path to a TOML config file",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose logging")

    sub = parser.add_subparsers(dest="command")

    # extract
    extract_parser = sub.add_parser("extract", help="Extract data from a receipt image")
    extract_parser.add_argument("file", type=str, help="JPG, PNG or PDF receipt")
    extract_parser.add_argument(
        "--country", type=str, default=None, help="Country the receipt is from"
    )
    extract_parser.add_argument("--json", action="store_true", help="Output JSON")

    # history
    history_parser = sub.add_parser("history", help="List past extractions")
    history_parser.add_argument("--json", action="store_true", help="Output JSON")

    show_parser = sub.add_parser("show", help="Show a past extraction")
    show_parser.add_argument("file_name", type=str)
    show_parser.add_argument("--json", action="store_true", help="Output JSON")

    remove_parser = sub.add_parser("remove", help="Remove a past extraction")
    remove_parser.add_argument("file_name", type=str)

    sub.add_parser("clear-history", help="Remove all past extractions")

    sub.add_parser("test-key", help="Check that the API key works")

    # export
    export_parser = sub.add_parser("export", help="Export a past extraction")
    export_parser.add_argument("file_name", type=str)
    fmt = export_parser.add_mutually_exclusive_group(required=True)
    fmt.add_argument("--csv", action="store_true", help="Summary and items CSV files")
    fmt.add_argument("--xlsx", action="store_true", help="Excel workbook")
    export_parser.add_argument(
        "--out", type=str, default=None, help="Output directory (CSV) or file (Excel)"
    )

    # currency helpers
    currency_parser = sub.add_parser("currency", help="Currency helpers")
    currency_sub = currency_parser.add_subparsers(dest="currency_command")
    detect_parser = currency_sub.add_parser("detect", help="Guess currency from an address")
    detect_parser.add_argument("address", type=str)
    detect_parser.add_argument("--language", type=str, default=None)
    format_parser = currency_sub.add_parser("format", help="Format an amount")
    format_parser.add_argument("amount", type=str)
    format_parser.add_argument("code", type=str, nargs="?", default="USD")

    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    load_dotenv()
    config = load_config(args.config)

    match args.command:
        case "extract":
            sys.exit(asyncio.run(_cmd_extract(config, args)))
        case "history":
            _cmd_history(config, args)
        case "show":
            _cmd_show(config, args)
        case "remove":
            _cmd_remove(config, args)
        case "clear-history":
            _open_history(config).clear()
            print("History cleared.")
        case "test-key":
            sys.exit(asyncio.run(_cmd_test_key(config)))
        case "export":
            _cmd_export(config, args)
        case "currency":
            _cmd_currency(args, currency_parser)


def _open_history(config: ExtractorConfig) -> ExtractionHistoryStore:
    storage = LocalStorage(config.storage.db_path)
    return ExtractionHistoryStore(storage, key=config.storage.history_key)


def _resolve_api_key(config: ExtractorConfig) -> str:
    api_key = config.vision.api_key
    if not api_key and sys.stdin.isatty():
        api_key = getpass.getpass(f"{config.vision.backend} API key: ").strip()
    return api_key


async def _cmd_extract(config: ExtractorConfig, args) -> int:
    try:
        file = ReceiptFile.from_path(args.file)
    except OSError as e:
        print(f"Cannot read {args.file}: {e}", file=sys.stderr)
        return 1

    orchestrator = ExtractionOrchestrator(
        ReceiptExtractionClient.from_config(config), _open_history(config)
    )
    print("Analyzing receipt...", file=sys.stderr)
    result = await orchestrator.extract(
        file, api_key=_resolve_api_key(config), country=args.country
    )

    if not result.success or result.data is None:
        label = "Invalid file" if isinstance(result.error, InputError) else "Extraction failed"
        print(f"{label}: {orchestrator.state.error}", file=sys.stderr)
        return 1

    if args.json:
        print(json.dumps(result.data.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(_render(result.data))
    return 0


async def _cmd_test_key(config: ExtractorConfig) -> int:
    client = ReceiptExtractionClient.from_config(config)
    if await client.test_api_key(_resolve_api_key(config)):
        print("API key OK.")
        return 0
    print("Invalid API key or connection failed.", file=sys.stderr)
    return 1


def _cmd_history(config: ExtractorConfig, args) -> None:
    entries = _open_history(config).entries()
    if args.json:
        print(json.dumps([r.to_dict() for r in entries], ensure_ascii=False, indent=2))
        return
    if not entries:
        print("No extractions yet.")
        return
    print(f"Past extractions ({len(entries)}):")
    for r in entries:
        total = format_currency(r.total, r.currency) if r.total is not None else "N/A"
        print(
            f"  {r.timestamp[:19]}  {r.file_name:<30} "
            f"{r.store_name or 'Unknown store':<25} {total}"
        )


def _cmd_show(config: ExtractorConfig, args) -> None:
    record = _open_history(config).find(args.file_name)
    if record is None:
        print(f"No extraction for {args.file_name!r}", file=sys.stderr)
        sys.exit(1)
    if args.json:
        print(json.dumps(record.to_dict(), ensure_ascii=False, indent=2))
    else:
        print(_render(record))


def _cmd_remove(config: ExtractorConfig, args) -> None:
    history = _open_history(config)
    before = len(history)
    removed = before - len(history.remove(args.file_name))
    print(f"Removed {removed} history entries.")


def _cmd_export(config: ExtractorConfig, args) -> None:
    record = _open_history(config).find(args.file_name)
    if record is None:
        print(f"No extraction for {args.file_name!r}", file=sys.stderr)
        sys.exit(1)

    if args.csv:
        for path in export_csv_complete(record, args.out or "."):
            print(f"Saved {path}")
        return

    dest = Path(args.out) if args.out else None
    if dest is not None and dest.is_dir():
        dest = dest / default_file_name(record, "", "xlsx")
    try:
        path = export_excel(record, dest)
    except ImportError as e:
        print(str(e), file=sys.stderr)
        sys.exit(1)
    print(f"Saved {path}")


def _cmd_currency(args, parser: argparse.ArgumentParser) -> None:
    match args.currency_command:
        case "detect":
            print(detect_currency_from_location(args.address, args.language))
        case "format":
            print(format_currency(args.amount, args.code))
        case _:
            parser.print_help()
            sys.exit(1)


def _render(data: ReceiptData) -> str:
    """Human-readable receipt summary."""
    money = lambda v: format_currency(v, data.currency) if v is not None else "N/A"  # noqa: E731
    lines = [
        f"Store:    {data.store_name or 'N/A'}",
        f"Address:  {data.address or 'N/A'}",
        f"Phone:    {data.phone or 'N/A'}",
        f"Date:     {data.date or 'N/A'}",
        f"Currency: {data.currency}",
        "",
        f"Items ({data.item_count}):",
    ]
    for item in data.items:
        marker = "-" if item.is_discount else " "
        lines.append(
            f" {marker} {item.name:<32} x{item.quantity:<5} {money(item.price):>14}"
        )
    lines += [
        "",
        f"Tax:      {money(data.tax)}",
        f"Total:    {money(data.total)}",
    ]
    if data.total_discount is not None:
        lines.append(f"Discount: {money(data.total_discount)}")
    return "\n".join(lines)
