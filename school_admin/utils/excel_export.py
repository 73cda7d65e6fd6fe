from __future__ import annotations
from typing import List, Dict, Any
from io import BytesIO
from datetime import datetime

from openpyxl import Workbook
from openpyxl.utils import get_column_letter
from openpyxl.styles import Font, Alignment


def _write_sheet(ws, rows: List[Dict[str, Any]]):
    if not rows:
        ws.append(["No data"])
        return

    headers = list(rows[0].keys())
    ws.append(headers)

    # header style
    header_font = Font(bold=True)
    for col_idx, _h in enumerate(headers, start=1):
        cell = ws.cell(row=1, column=col_idx)
        cell.font = header_font
        cell.alignment = Alignment(horizontal="center", vertical="center")

    # data
    for r in rows:
        ws.append([_cell_value(r.get(h)) for h in headers])

    # autosize columns
    for col_idx, h in enumerate(headers, start=1):
        max_len = len(str(h))
        for row_idx in range(2, ws.max_row + 1):
            v = ws.cell(row=row_idx, column=col_idx).value
            if v is None:
                continue
            max_len = max(max_len, len(str(v)))
        ws.column_dimensions[get_column_letter(col_idx)].width = min(max_len + 2, 60)


def _cell_value(v):
    # openpyxl 不吃 tz-aware datetime / list / dict
    if isinstance(v, datetime):
        return v.replace(tzinfo=None)
    if isinstance(v, (list, dict)):
        return str(v)
    return v


def sheets_to_xlsx_bytes(sheets: Dict[str, List[Dict[str, Any]]]) -> bytes:
    """
    sheets: {"Schedules": [row, ...], "Rooms": [...]}
    one worksheet per key, in order
    """
    wb = Workbook()
    wb.remove(wb.active)

    if not sheets:
        sheets = {"Data": []}

    for name, rows in sheets.items():
        ws = wb.create_sheet(title=name[:31])
        _write_sheet(ws, rows)

    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()


def make_filename(prefix: str = "school-data-export", ext: str = "xlsx") -> str:
    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    return f"{prefix}_{ts}.{ext}"
