"""Data models for the Sheets API spreadsheet response."""

import json
import re
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

IMAGE_FORMULA_RE = re.compile(r'^\s*=\s*IMAGE\(\s*"([^"]*)"', re.IGNORECASE)


class _ApiModel(BaseModel):
    """Base for models read from camelCase API JSON."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ExtendedValue(_ApiModel):
    """A cell value. At most one of the fields is set."""

    number_value: Optional[float] = None
    string_value: Optional[str] = None
    bool_value: Optional[bool] = None
    formula_value: Optional[str] = None
    error_value: Optional[dict] = None

    @property
    def is_empty(self) -> bool:
        return (
            self.number_value is None
            and self.string_value is None
            and self.bool_value is None
            and self.formula_value is None
            and self.error_value is None
        )


def _format_number(value: float) -> str:
    if value.is_integer():
        return str(int(value))
    # Plain decimal notation, never exponent form
    return format(Decimal(repr(value)), "f")


class CellData(_ApiModel):
    """Data from a single cell."""

    user_entered_value: Optional[ExtendedValue] = None
    effective_value: Optional[ExtendedValue] = None
    formatted_value: Optional[str] = None

    @property
    def image_url(self) -> Optional[str]:
        """URL of an ``=IMAGE("...")`` formula, if the cell has one."""
        if self.user_entered_value is None or self.user_entered_value.formula_value is None:
            return None
        match = IMAGE_FORMULA_RE.match(self.user_entered_value.formula_value)
        if not match or not match.group(1):
            return None
        return match.group(1)

    def to_text(self) -> Optional[str]:
        """Render the cell as text, or None when the cell is empty."""
        value = self.effective_value
        if value is not None:
            if value.string_value is not None:
                return value.string_value
            if value.number_value is not None:
                return _format_number(value.number_value)
            if value.bool_value is not None:
                return "true" if value.bool_value else "false"

        # Image cells have no effective value, only the formula
        return self.image_url


class RowData(_ApiModel):
    values: list[CellData] = Field(default_factory=list)


class GridData(_ApiModel):
    start_row: int = 0
    start_column: int = 0
    row_data: list[RowData] = Field(default_factory=list)


class SheetProperties(_ApiModel):
    sheet_id: Optional[int] = None
    title: str
    index: Optional[int] = None


def normalize_column_name(column: str) -> str:
    """Lowercase a column title and turn spaces into underscores."""
    return column.lower().replace(" ", "_")


class Sheet(_ApiModel):
    """One sheet tab and its grid data."""

    properties: SheetProperties
    data: list[GridData] = Field(default_factory=list)

    @property
    def title(self) -> str:
        return self.properties.title

    @property
    def grid_data(self) -> Optional[GridData]:
        return self.data[0] if self.data else None

    def column_titles(self) -> list[str]:
        """Return the normalized titles from the first row."""
        grid = self.grid_data
        if grid is None or not grid.row_data:
            return []
        return [normalize_column_name(cell.to_text() or "") for cell in grid.row_data[0].values]

    def rows(self) -> list[RowData]:
        """Return all rows below the header row."""
        grid = self.grid_data
        if grid is None:
            return []
        return grid.row_data[1:]

    def records(self) -> list[dict[str, Optional[str]]]:
        """Return data rows as dicts keyed by column title.

        Rows without any non-empty value are dropped.
        """
        columns = self.column_titles()
        records = []
        for row in self.rows():
            record: dict[str, Optional[str]] = {}
            for i, cell in enumerate(row.values):
                key = columns[i] if i < len(columns) else ""
                record[key] = cell.to_text()
            if any(value is not None for value in record.values()):
                records.append(record)
        return records

    def image_urls(self) -> list[str]:
        """Return image URLs referenced in this sheet, in cell order, without repeats."""
        seen = set()
        urls = []
        for grid in self.data:
            for row in grid.row_data:
                for cell in row.values:
                    url = cell.image_url
                    if url and url not in seen:
                        seen.add(url)
                        urls.append(url)
        return urls


class Spreadsheet(_ApiModel):
    """Read-only view of a spreadsheet fetched with grid data."""

    spreadsheet_id: Optional[str] = None
    sheets: list[Sheet] = Field(default_factory=list)

    @classmethod
    def from_json_bytes(cls, data: bytes) -> "Spreadsheet":
        return cls.from_dict(json.loads(data))

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> "Spreadsheet":
        return cls.model_validate(raw)

    def find_sheet_by_title(self, title: str) -> Optional[Sheet]:
        for sheet in self.sheets:
            if sheet.title == title:
                return sheet
        return None
