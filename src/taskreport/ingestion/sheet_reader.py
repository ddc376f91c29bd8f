"""Read uploaded workbooks into a RawSheet (list of row lists)."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import PurePath
from zipfile import BadZipFile

from openpyxl import load_workbook
from openpyxl.utils.exceptions import InvalidFileException

from taskreport.core.exceptions import EmptySheetError, SheetReadError
from taskreport.core.types import RawSheet

logger = logging.getLogger(__name__)

EXCEL_EXTENSIONS = (".xlsx", ".xlsm")
CSV_EXTENSIONS = (".csv",)


def _row_is_blank(row: list) -> bool:
    return all(cell is None or (isinstance(cell, str) and not cell.strip()) for cell in row)


def _read_excel(data: bytes, default_sheet_name: str) -> RawSheet:
    try:
        workbook = load_workbook(io.BytesIO(data), read_only=True, data_only=True)
    except (InvalidFileException, BadZipFile, KeyError, OSError, ValueError) as exc:
        raise SheetReadError(f"Cannot open workbook: {exc}") from exc

    try:
        if default_sheet_name in workbook.sheetnames:
            sheet = workbook[default_sheet_name]
            return [list(row) for row in sheet.iter_rows(values_only=True)]

        for sheet in workbook.worksheets:
            rows = [list(row) for row in sheet.iter_rows(values_only=True)]
            if any(not _row_is_blank(row) for row in rows):
                logger.debug("Using sheet %r", sheet.title)
                return rows
        return []
    finally:
        workbook.close()


def _read_csv(data: bytes) -> RawSheet:
    try:
        text = data.decode("utf-8-sig")
    except UnicodeDecodeError as exc:
        raise SheetReadError(f"CSV file is not valid UTF-8: {exc}") from exc

    try:
        dialect = csv.Sniffer().sniff(text[:4096], delimiters=",;\t")
    except csv.Error:
        dialect = csv.excel
    return [list(row) for row in csv.reader(io.StringIO(text), dialect)]


def read_sheet(data: bytes, file_name: str, default_sheet_name: str = "Лист1") -> RawSheet:
    """Parse an uploaded file into rows; row 0 holds the headers.

    Raises:
        SheetReadError: unsupported extension or unreadable content.
        EmptySheetError: no header row or no data rows.
    """
    suffix = PurePath(file_name).suffix.lower()
    if suffix in EXCEL_EXTENSIONS:
        rows = _read_excel(data, default_sheet_name)
    elif suffix in CSV_EXTENSIONS:
        rows = _read_csv(data)
    else:
        raise SheetReadError(f"Unsupported file type: {suffix or file_name!r}")

    if not rows or _row_is_blank(rows[0]):
        raise EmptySheetError("File is empty")
    if len(rows) < 2:
        raise EmptySheetError("Sheet appears to be empty or missing data rows")
    return rows
