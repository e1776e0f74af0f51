"""
Excel parser using openpyxl (.xlsx) and xlrd (.xls).

Every sheet is rendered as a marker line followed by one tab-separated
line per row, sheets in workbook order and rows in sheet order.
"""

import io
import logging
import re
from datetime import date, datetime, time
from pathlib import Path
from typing import Any, Iterable, Iterator, List, Optional, Sequence, Tuple

from ..models import ExtractedDocument
from ..exceptions import ParseError
from .base import BaseParser

logger = logging.getLogger(__name__)

SHEET_MARKER = "【シート: {name}】"

# Delimited text sent as application/vnd.ms-excel by some browsers
TEXT_EXTENSIONS = (".csv", ".tsv", ".txt")

_LINE_BREAK_RE = re.compile(r"\r\n|\r|\n")


def format_cell(value: Any) -> str:
    """Coerce a cell value to text; empty cells become ''.

    Line breaks inside a cell become spaces so each row stays on one line.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "TRUE" if value else "FALSE"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    return _LINE_BREAK_RE.sub(" ", str(value))


def render_row(values: Sequence[Any]) -> str:
    """Tab-join a row, dropping trailing empty cells so blank rows become ''."""
    cells = [format_cell(v) for v in values]
    while cells and cells[-1] == "":
        cells.pop()
    return "\t".join(cells)


def render_sheets(sheets: Iterable[Tuple[str, Iterable[Sequence[Any]]]]) -> str:
    parts: List[str] = []
    for name, rows in sheets:
        parts.append(SHEET_MARKER.format(name=name))
        for row in rows:
            parts.append(render_row(row))
    return "\n".join(parts)


class ExcelParser(BaseParser):
    """Spreadsheet parser for account balance and analysis workbooks."""

    file_type = "excel"

    def supported_extensions(self) -> List[str]:
        """Return list of supported file extensions."""
        return [".xlsx", ".xlsm", ".xls"]

    def supported_mimetypes(self) -> List[str]:
        """Return list of supported MIME types."""
        return [
            "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            "application/vnd.ms-excel",
        ]

    def can_parse(self, file_name: str, mime_type: Optional[str] = None) -> bool:
        if Path(file_name).suffix.lower() in TEXT_EXTENSIONS:
            return False
        return super().can_parse(file_name, mime_type)

    def parse(self, data: bytes, file_name: str) -> ExtractedDocument:
        """
        Parse workbook bytes and return sheet text.

        Raises:
            ParseError: If parsing fails
        """
        legacy = file_name.lower().endswith(".xls") or data[:4] == b"\xd0\xcf\x11\xe0"
        try:
            if legacy:
                sheets = list(self._iter_xls(data))
            else:
                sheets = list(self._iter_xlsx(data))
        except ParseError:
            raise
        except Exception as e:
            raise ParseError(f"Failed to parse Excel workbook {file_name}: {e}") from e

        content = render_sheets(sheets)
        return ExtractedDocument(
            text=content,
            file_name=file_name,
            file_type=self.file_type,
            metadata={
                "sheet_names": [name for name, _ in sheets],
                "row_count": sum(len(rows) for _, rows in sheets),
            },
        )

    def _iter_xlsx(self, data: bytes) -> Iterator[Tuple[str, List[Tuple[Any, ...]]]]:
        try:
            import openpyxl
        except ImportError:
            raise ParseError("openpyxl is required for .xlsx parsing. Install with: pip install openpyxl")

        wb = openpyxl.load_workbook(io.BytesIO(data), data_only=True)
        try:
            for ws in wb.worksheets:
                yield ws.title, list(ws.iter_rows(values_only=True))
        finally:
            wb.close()

    def _iter_xls(self, data: bytes) -> Iterator[Tuple[str, List[List[Any]]]]:
        try:
            import xlrd
        except ImportError:
            raise ParseError("xlrd is required for .xls parsing. Install with: pip install xlrd")

        book = xlrd.open_workbook(file_contents=data)
        for sheet in book.sheets():
            rows = [sheet.row_values(r) for r in range(sheet.nrows)]
            yield sheet.name, rows
