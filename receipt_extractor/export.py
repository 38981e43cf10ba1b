"""CSV and Excel export of extracted receipts."""

from __future__ import annotations

import csv
import re
from datetime import date
from pathlib import Path

from .currency import to_number
from .models import ReceiptData

SUMMARY_HEADERS = [
    "Store Name",
    "Date",
    "Address",
    "Phone",
    "Currency",
    "Total Items",
    "Total Discount",
    "Tax",
    "Total Amount",
]
ITEM_HEADERS = ["Item Name", "Quantity", "Unit Price", "Total Price"]


def _or_na(value) -> str:
    return "N/A" if value is None or value == "" else str(value)


def _numeric(value) -> float:
    n = to_number(value)
    return 0.0 if n != n else n


def default_file_name(data: ReceiptData, kind: str, ext: str) -> str:
    """receipt_[<kind>_]<store>_<YYYY-MM-DD>.<ext>"""
    store = re.sub(r'[\\/:*?"<>|\s]+', "_", data.store_name or "unknown")
    prefix = f"receipt_{kind}_" if kind else "receipt_"
    return f"{prefix}{store}_{date.today().isoformat()}.{ext}"


def summary_row(data: ReceiptData) -> dict[str, str | int]:
    return {
        "Store Name": _or_na(data.store_name),
        "Date": _or_na(data.date),
        "Address": _or_na(data.address),
        "Phone": _or_na(data.phone),
        "Currency": data.currency,
        "Total Items": data.item_count,
        "Total Discount": _or_na(data.total_discount),
        "Tax": _or_na(data.tax),
        "Total Amount": _or_na(data.total),
    }


def item_rows(data: ReceiptData) -> list[dict[str, str]]:
    return [
        {
            "Item Name": item.name or "N/A",
            "Quantity": str(item.quantity),
            "Unit Price": _or_na(item.unit_price),
            "Total Price": _or_na(item.price),
        }
        for item in data.items
    ]


def export_csv(
    data: ReceiptData, dest: str | Path | None = None, kind: str = "items"
) -> Path:
    """Write the summary or the item lines of a receipt as CSV.

    Args:
        data: The receipt to export.
        dest: Output file; defaults to a generated name in the working directory.
        kind: "items" or "summary".

    Returns:
        Path to the written file.
    """
    if kind == "summary":
        headers, rows = SUMMARY_HEADERS, [summary_row(data)]
    elif kind == "items":
        headers, rows = ITEM_HEADERS, item_rows(data)
    else:
        raise ValueError(f"Unknown CSV export kind: {kind!r} (items or summary)")

    path = Path(dest) if dest is not None else Path(default_file_name(data, kind, "csv"))
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=headers)
        writer.writeheader()
        writer.writerows(rows)
    return path


def export_csv_complete(data: ReceiptData, directory: str | Path = ".") -> list[Path]:
    """Write both the summary and the items CSV into ``directory``."""
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)
    return [
        export_csv(data, directory / default_file_name(data, kind, "csv"), kind)
        for kind in ("summary", "items")
    ]


def export_excel(data: ReceiptData, dest: str | Path | None = None) -> Path:
    """Write a workbook with "Receipt Summary" and "Items" sheets.

    Raises:
        ImportError: If openpyxl is not installed.
    """
    try:
        from openpyxl import Workbook
    except ImportError:
        raise ImportError(
            "openpyxl is required for Excel export: pip install 'receipt-extractor[excel]'"
        ) from None

    summary = summary_row(data)
    wb = Workbook()
    summary_ws = wb.active
    summary_ws.title = "Receipt Summary"
    summary_ws.append(["Receipt Information", ""])
    for label in ("Store Name", "Date", "Address", "Phone", "Currency"):
        summary_ws.append([label, summary[label]])
    summary_ws.append(["", ""])
    summary_ws.append(["Financial Summary", ""])
    for label in ("Total Items", "Total Discount", "Tax", "Total Amount"):
        summary_ws.append([label, summary[label]])

    items_ws = wb.create_sheet("Items")
    items_ws.append(ITEM_HEADERS)
    for item in data.items:
        items_ws.append(
            [
                item.name or "N/A",
                _numeric(item.quantity),
                _numeric(item.unit_price),
                _numeric(item.price),
            ]
        )
    for column, width in zip("ABCD", (40, 12, 15, 15)):
        items_ws.column_dimensions[column].width = width

    path = Path(dest) if dest is not None else Path(default_file_name(data, "", "xlsx"))
    wb.save(path)
    return path
