# reconciler/core/reader.py

"""
Tabular reader for uploaded statement files.

Turns raw bytes into a header row plus row dicts keyed by header. Knows
nothing about what the columns mean.
"""

import csv
import io
import logging
import struct
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import PurePath
from typing import Any

import openpyxl
import xlrd
from openpyxl.utils.exceptions import InvalidFileException
from xlrd.compdoc import CompDocError

from reconciler.config import get_settings
from reconciler.core.errors import (
    EmptyFileError,
    UnreadableFileError,
    UnsupportedFormatError,
)

logger = logging.getLogger(__name__)

TEXT_EXTENSIONS = {".csv", ".txt"}
SPREADSHEET_EXTENSIONS = {".xlsx", ".xls"}
SUPPORTED_EXTENSIONS = TEXT_EXTENSIONS | SPREADSHEET_EXTENSIONS

# Only the first worksheet of a workbook is read
SPREADSHEET_SHEET_INDEX = 0

TEXT_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")
TXT_DELIMITERS = ",;\t|"


@dataclass
class Table:
    """Header row and data rows of one file."""

    headers: list[str]
    rows: list[dict[str, Any]] = field(default_factory=list)


def file_extension(filename: str) -> str:
    return PurePath(filename or "").suffix.lower()


def read_table(content: bytes, filename: str) -> Table:
    """
    Read a statement file into a Table.

    Raises UnsupportedFormatError for unknown extensions and EmptyFileError
    when there is no header plus at least one data row.
    """
    grid = _read_grid(content, filename)

    if len(grid) < 2:
        raise EmptyFileError("File appears to be empty or has no data rows")

    headers = grid[0]
    rows = []
    for raw in grid[1:]:
        row: dict[str, Any] = {}
        for i, header in enumerate(headers):
            value = raw[i] if i < len(raw) else ""
            # Repeated header names keep the first column's value
            if header not in row:
                row[header] = value
        rows.append(row)

    logger.debug(f"Read {len(rows)} rows with headers {headers} from {filename}")
    return Table(headers=headers, rows=rows)


def read_headers(content: bytes, filename: str) -> list[str]:
    """Header row only, for building a manual column mapping."""
    grid = _read_grid(content, filename)
    return grid[0] if grid else []


def _read_grid(content: bytes, filename: str) -> list[list[Any]]:
    extension = file_extension(filename)

    if extension in TEXT_EXTENSIONS:
        text = _decode(content)
        delimiter = "," if extension == ".csv" else _sniff_delimiter(text)
        return _parse_delimited(text, delimiter)
    if extension == ".xlsx":
        return _read_xlsx(content)
    if extension == ".xls":
        return _read_xls(content)

    raise UnsupportedFormatError(f"Unsupported file format: {extension.lstrip('.') or 'none'}")


# ============================================
# Delimited text
# ============================================

def _decode(content: bytes) -> str:
    for encoding in TEXT_ENCODINGS:
        try:
            return content.decode(encoding)
        except UnicodeDecodeError:
            continue
    raise UnreadableFileError(f"Could not decode file with any of: {', '.join(TEXT_ENCODINGS)}")


def _sniff_delimiter(text: str) -> str:
    sample = "\n".join(text.splitlines()[:20])
    try:
        return csv.Sniffer().sniff(sample, delimiters=TXT_DELIMITERS).delimiter
    except csv.Error:
        return ","


def _parse_delimited(text: str, delimiter: str) -> list[list[str]]:
    """Split text into rows, honouring double-quoted fields. Blank lines are dropped."""
    reader = csv.reader(io.StringIO(text, newline=""), delimiter=delimiter, quotechar='"', doublequote=True)
    grid = []
    try:
        for record in reader:
            cells = [cell.strip() for cell in record]
            if not any(cells):
                continue
            grid.append(cells)
    except csv.Error as e:
        raise UnreadableFileError(f"Malformed delimited text: {e}")
    return grid


# ============================================
# Spreadsheets
# ============================================

def _read_xlsx(content: bytes) -> list[list[Any]]:
    max_rows = get_settings().max_spreadsheet_rows

    try:
        workbook = openpyxl.load_workbook(io.BytesIO(content), read_only=True, data_only=True)
    except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as e:
        raise UnreadableFileError(f"Could not open spreadsheet: {e}")

    try:
        if not workbook.worksheets:
            return []
        sheet = workbook.worksheets[SPREADSHEET_SHEET_INDEX]
        grid = []
        for values in sheet.iter_rows(max_row=max_rows, values_only=True):
            cells = _clean_cells(values)
            if cells is not None:
                grid.append(cells)
    finally:
        workbook.close()

    return _stringify_headers(grid)


def _read_xls(content: bytes) -> list[list[Any]]:
    max_rows = get_settings().max_spreadsheet_rows

    try:
        book = xlrd.open_workbook(file_contents=content)
    except (xlrd.XLRDError, CompDocError, zipfile.BadZipFile, struct.error, IndexError) as e:
        raise UnreadableFileError(f"Could not open spreadsheet: {e}")

    if book.nsheets == 0:
        return []
    sheet = book.sheet_by_index(SPREADSHEET_SHEET_INDEX)

    grid = []
    for r in range(min(sheet.nrows, max_rows)):
        values = []
        for cell in sheet.row(r):
            if cell.ctype == xlrd.XL_CELL_DATE:
                values.append(xlrd.xldate_as_datetime(cell.value, book.datemode))
            else:
                values.append(cell.value)
        cells = _clean_cells(values)
        if cells is not None:
            grid.append(cells)

    return _stringify_headers(grid)


def _clean_cells(values) -> list[Any] | None:
    """None -> '', strings stripped. Returns None for an all-blank row."""
    cells = []
    for value in values:
        if value is None:
            cells.append("")
        elif isinstance(value, str):
            cells.append(value.strip())
        else:
            cells.append(value)
    if all(c == "" for c in cells):
        return None
    return cells


def _stringify_headers(grid: list[list[Any]]) -> list[list[Any]]:
    if grid:
        grid[0] = [_header_text(h) for h in grid[0]]
    return grid


def _header_text(value: Any) -> str:
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()
