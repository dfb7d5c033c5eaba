"""Flat tabular export of attendance stats: header = model field names in declared order, one row per entity."""

import csv
import io
from typing import Any, List, Sequence, Type
from uuid import UUID

from openpyxl import Workbook
from pydantic import BaseModel


def export_columns(model: Type[BaseModel]) -> List[str]:
    return list(model.model_fields.keys())


def _cell(value: Any) -> Any:
    """
    Flat files have no null, so None becomes an empty cell. A class with no section and a
    class whose section is '' therefore export as the same section text; they stay separate
    rows, and the JSON reports keep them apart as null and "".
    """
    if value is None:
        return ""
    if isinstance(value, UUID):
        return str(value)
    return value


def stats_to_csv(rows: Sequence[BaseModel], model: Type[BaseModel]) -> str:
    """CSV text. An empty list still yields the header row."""
    columns = export_columns(model)
    buf = io.StringIO()
    writer = csv.writer(buf, lineterminator="\n")
    writer.writerow(columns)
    for row in rows:
        data = row.model_dump()
        writer.writerow([_cell(data[col]) for col in columns])
    return buf.getvalue()


def stats_to_xlsx(rows: Sequence[BaseModel], model: Type[BaseModel], sheet_title: str = "Attendance") -> bytes:
    """Single-sheet workbook with the same header and column order as the CSV export."""
    columns = export_columns(model)
    wb = Workbook()
    ws = wb.active
    # Excel caps sheet titles at 31 characters
    ws.title = sheet_title[:31]
    ws.append(columns)
    for row in rows:
        data = row.model_dump()
        ws.append([_cell(data[col]) for col in columns])
    bio = io.BytesIO()
    wb.save(bio)
    return bio.getvalue()
