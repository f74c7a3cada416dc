"""Turn uploaded attendance files into a grid of strings with a known header row.

CSV/TSV exports put a few metadata lines above the table, so the header is
found by keyword scan. Spreadsheet exports from the biometric device use a
fixed layout: report period in B2/B3, headers on row 5, data from row 6.
"""
import csv
import io
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, time
from typing import List, Optional

import openpyxl
import xlrd

from timekeeper.core.exceptions import EmptyFile, FormatError, MissingHeaders, UnsupportedFormat

logger = logging.getLogger(__name__)

SUPPORTED_EXTENSIONS = ("csv", "tsv", "xls", "xlsx")
HEADER_KEYWORDS = ("employee", "name", "id", "date", "time")
HEADER_SCAN_ROWS = 5

# Biometric export layout (zero-based)
SHEET_HEADER_ROW = 4
SHEET_START_CELL = (1, 1)   # B2
SHEET_END_CELL = (2, 1)     # B3


@dataclass
class DetectedGrid:
    file_type: str
    rows: List[List[str]]
    header_index: int
    headers: List[str]
    data_rows: List[List[str]] = field(default_factory=list)
    start_date: Optional[str] = None
    end_date: Optional[str] = None

    @property
    def is_spreadsheet(self) -> bool:
        return self.file_type in ("xls", "xlsx")


def file_extension(filename: str) -> str:
    if not filename or "." not in filename:
        return ""
    return filename.rsplit(".", 1)[-1].lower()


def read_grid(file_bytes: bytes, filename: str) -> DetectedGrid:
    """Detect the format from the filename and return the header/data split."""
    ext = file_extension(filename)
    if ext not in SUPPORTED_EXTENSIONS:
        raise UnsupportedFormat(ext)

    if ext in ("csv", "tsv"):
        return _read_delimited(file_bytes, "\t" if ext == "tsv" else ",", ext)
    return _read_spreadsheet(file_bytes, ext)


def render_cell(value) -> str:
    """Spreadsheet cell → the string a CSV export would have carried."""
    if value is None:
        return ""
    if isinstance(value, datetime):
        if value.time() == time(0, 0):
            return value.date().isoformat()
        return value.strftime("%Y-%m-%d %H:%M")
    if isinstance(value, date):
        return value.isoformat()
    if isinstance(value, time):
        return value.strftime("%H:%M")
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def is_blank_row(row: List[str]) -> bool:
    return not any(cell.strip() for cell in row)


def find_header_row(rows: List[List[str]]) -> Optional[int]:
    for i, row in enumerate(rows[:HEADER_SCAN_ROWS]):
        if _looks_like_header(row):
            return i
    return None


def _read_delimited(file_bytes: bytes, delimiter: str, ext: str) -> DetectedGrid:
    text = file_bytes.decode("utf-8-sig", errors="replace")
    reader = csv.reader(io.StringIO(text), delimiter=delimiter)
    rows = [[cell.strip() for cell in row] for row in reader]
    # (line index, row) so the reported header row matches the file
    numbered = [(i, row) for i, row in enumerate(rows) if not is_blank_row(row)]

    if not numbered:
        raise EmptyFile()

    position = find_header_row([row for _, row in numbered])
    if position is None:
        raise MissingHeaders()

    header_index, headers = numbered[position]
    data_rows = [row for _, row in numbered[position + 1:]]
    logger.info(f"Delimited file: header at line {header_index}, {len(data_rows)} data rows")
    return DetectedGrid(
        file_type=ext,
        rows=rows,
        header_index=header_index,
        headers=headers,
        data_rows=data_rows,
    )


def _read_spreadsheet(file_bytes: bytes, ext: str) -> DetectedGrid:
    if ext == "xlsx":
        rows = _xlsx_rows(file_bytes)
    else:
        rows = _xls_rows(file_bytes)

    if not rows or all(is_blank_row(r) for r in rows):
        raise EmptyFile("Excel sheet appears to be empty")

    # The device layout is fixed; anything else falls back to a keyword scan.
    if len(rows) > SHEET_HEADER_ROW and _looks_like_header(rows[SHEET_HEADER_ROW]):
        header_index = SHEET_HEADER_ROW
    else:
        header_index = find_header_row(rows)
    if header_index is None:
        raise MissingHeaders()

    start_date = _cell(rows, *SHEET_START_CELL) or None
    end_date = _cell(rows, *SHEET_END_CELL) or None

    data_rows = [r for r in rows[header_index + 1:] if not is_blank_row(r)]
    logger.info(
        f"Spreadsheet: header at row {header_index}, {len(data_rows)} data rows, "
        f"period {start_date} - {end_date}"
    )
    return DetectedGrid(
        file_type=ext,
        rows=rows,
        header_index=header_index,
        headers=rows[header_index],
        data_rows=data_rows,
        start_date=start_date,
        end_date=end_date,
    )


def _looks_like_header(row: List[str]) -> bool:
    lowered = [cell.lower() for cell in row]
    return any(keyword in cell for cell in lowered for keyword in HEADER_KEYWORDS)


def _cell(rows: List[List[str]], r: int, c: int) -> str:
    if r < len(rows) and c < len(rows[r]):
        return rows[r][c]
    return ""


def _xlsx_rows(file_bytes: bytes) -> List[List[str]]:
    try:
        wb = openpyxl.load_workbook(io.BytesIO(file_bytes), read_only=True, data_only=True)
    except Exception as e:
        raise FormatError(f"Unable to read XLSX file: {e}") from e
    try:
        ws = wb.active
        return [[render_cell(v) for v in row] for row in ws.iter_rows(values_only=True)]
    finally:
        wb.close()


def _xls_rows(file_bytes: bytes) -> List[List[str]]:
    try:
        wb = xlrd.open_workbook(file_contents=file_bytes)
    except Exception as e:
        raise FormatError(f"Unable to read XLS file: {e}") from e
    ws = wb.sheet_by_index(0)
    rows = []
    for r in range(ws.nrows):
        rendered = []
        for cell in ws.row(r):
            if cell.ctype == xlrd.XL_CELL_DATE:
                if cell.value < 1:
                    value = xlrd.xldate.xldate_as_datetime(cell.value, wb.datemode).time()
                else:
                    value = xlrd.xldate.xldate_as_datetime(cell.value, wb.datemode)
                rendered.append(render_cell(value))
            else:
                rendered.append(render_cell(cell.value))
        rows.append(rendered)
    return rows
