"""Google Sheets API integration."""

from .client import SheetsClient, FetchError, parse_response
from .models import (
    CellData,
    ExtendedValue,
    GridData,
    RowData,
    Sheet,
    SheetProperties,
    Spreadsheet,
)

__all__ = [
    "SheetsClient",
    "FetchError",
    "parse_response",
    "CellData",
    "ExtendedValue",
    "GridData",
    "RowData",
    "Sheet",
    "SheetProperties",
    "Spreadsheet",
]
