"""Prospect list export (CSV and Excel)."""

import csv
import io
import logging
import re
from datetime import date
from typing import Any, Dict, List, Optional

from openpyxl import Workbook
from openpyxl.styles import Font, PatternFill, Alignment

logger = logging.getLogger(__name__)


# (header, key) pairs; keys come from the item or the merged property row
EXPORT_COLUMNS = [
    ("Status", "status"),
    ("Notes", "notes"),
    ("Address", "address"),
    ("City", "city"),
    ("State", "state"),
    ("Zip", "zip"),
    ("Property Type", "property_type"),
    ("Property Subtype", "property_subtype"),
    ("Building Size (SF)", "building_size"),
    ("Lot Size (Acres)", "lot_size_acres"),
    ("Year Built", "year_built"),
    ("Owner Name", "owner_name"),
    ("Sale Price", "latest_sale_price"),
    ("Price/SF", "latest_price_per_sf"),
    ("Cap Rate", "latest_cap_rate"),
    ("Submarket", "submarket"),
]

EXPORT_HEADERS = [header for header, _ in EXPORT_COLUMNS]


def export_filename(list_name: str, extension: str, today: Optional[date] = None) -> str:
    """'{name with non-alphanumerics as _}_{YYYY-MM-DD}.{extension}'"""
    safe_name = re.sub(r"[^a-zA-Z0-9]", "_", list_name)
    stamp = (today or date.today()).isoformat()
    return f"{safe_name}_{stamp}.{extension}"


def build_export_rows(items: List[Dict[str, Any]]) -> List[List[Any]]:
    """
    Flatten list items into export rows.
    Each item is {"status", "notes", "property": {...}}.
    """
    rows = []
    for item in items:
        prop = item.get("property") or {}
        row = []
        for _, key in EXPORT_COLUMNS:
            value = item.get(key) if key in ("status", "notes") else prop.get(key)
            row.append("" if value is None else value)
        rows.append(row)
    return rows


def generate_csv(rows: List[List[Any]]) -> str:
    """Every value double-quoted; embedded quotes are doubled."""
    output = io.StringIO()
    writer = csv.writer(output, quoting=csv.QUOTE_ALL)
    writer.writerow(EXPORT_HEADERS)
    writer.writerows(rows)
    return output.getvalue()


def generate_excel(rows: List[List[Any]], sheet_title: str = "Prospects") -> io.BytesIO:
    """Same table as the CSV export, as a formatted workbook."""
    wb = Workbook()
    ws = wb.active
    ws.title = sheet_title[:31] or "Prospects"

    header_fill = PatternFill(start_color="4472C4", end_color="4472C4", fill_type="solid")
    header_font = Font(bold=True, color="FFFFFF", size=11)
    header_alignment = Alignment(horizontal="left", vertical="center")

    for col_idx, header in enumerate(EXPORT_HEADERS, start=1):
        cell = ws.cell(row=1, column=col_idx, value=header)
        cell.fill = header_fill
        cell.font = header_font
        cell.alignment = header_alignment

    for row_idx, row in enumerate(rows, start=2):
        for col_idx, value in enumerate(row, start=1):
            ws.cell(row=row_idx, column=col_idx, value=value)

    # Column width from the header and the first 100 rows, max 50
    for col_idx, header in enumerate(EXPORT_HEADERS, start=1):
        max_length = len(header)
        for row in rows[:100]:
            max_length = max(max_length, len(str(row[col_idx - 1])))
        ws.column_dimensions[ws.cell(row=1, column=col_idx).column_letter].width = min(max_length + 2, 50)

    ws.freeze_panes = "A2"

    output = io.BytesIO()
    wb.save(output)
    output.seek(0)
    logger.info(f"Excel export generated: {len(rows)} rows")
    return output
