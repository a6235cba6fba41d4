"""Writes sheet tabs to JSON files."""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Literal, Optional

from ..config import DatamineError
from ..sheets.models import Spreadsheet
from .naming import unique_sheet_names

logger = logging.getLogger(__name__)

ExportFormat = Literal["grid", "rows"]

UNIQUE_ENTRY_ID_COLUMN = "unique_entry_id"
UNIQUE_ENTRY_IDS_FILE = "unique_entry_ids.txt"


class ExportError(DatamineError):
    """Raised when export files cannot be written."""


def dump_json(content: Any) -> bytes:
    """Serialize export content. The same input always gives the same bytes."""
    return (json.dumps(content, ensure_ascii=False, indent=2) + "\n").encode("utf-8")


def write_file_atomic(path: Path, data: bytes):
    """Write a file through a temporary sibling so readers never see half of it."""
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_name, path)
    except BaseException:
        if os.path.exists(tmp_name):
            os.unlink(tmp_name)
        raise


def ensure_dir(path: Path):
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise ExportError(f"Failed to create export directory {path}: {e}") from e


def sheet_content(raw_sheet: dict[str, Any]) -> list:
    """Return the grid data of one sheet from the raw response."""
    return raw_sheet.get("data", [])


def export_sheets(
    raw: dict[str, Any],
    spreadsheet: Spreadsheet,
    out_dir: Path,
    fmt: ExportFormat = "grid",
) -> list[Path]:
    """Write one JSON file per sheet tab.

    Args:
        raw: The spreadsheet response as returned by the API
        spreadsheet: Typed view of the same response
        out_dir: Export directory, created if missing
        fmt: ``grid`` for the sheet's grid data as returned by the API,
            ``rows`` for header-keyed row records

    Returns:
        Paths of the written files, in sheet order

    Raises:
        ExportError: If a file can't be written
    """
    ensure_dir(out_dir)

    raw_sheets = raw.get("sheets", [])
    names = unique_sheet_names([sheet.title for sheet in spreadsheet.sheets])
    written = []

    for raw_sheet, sheet, name in zip(raw_sheets, spreadsheet.sheets, names):
        if fmt == "rows":
            content = sheet.records()
        else:
            content = sheet_content(raw_sheet)

        path = out_dir / f"{name}.json"
        try:
            write_file_atomic(path, dump_json(content))
        except OSError as e:
            raise ExportError(f"Failed to write sheet '{sheet.title}' to {path}: {e}") from e

        logger.info(f"Exported sheet '{sheet.title}' to {path}")
        written.append(path)

    logger.info(f"Exported {len(written)} sheets to {out_dir}")
    return written


def export_unique_entry_ids(
    spreadsheet: Spreadsheet,
    out_dir: Path,
    id_prefix: Optional[str] = None,
    id_suffix: Optional[str] = None,
) -> Path:
    """List the ``unique_entry_id`` of every row, grouped by sheet title."""
    ensure_dir(out_dir)

    prefix = id_prefix or ""
    suffix = id_suffix or ""
    lines = []
    for sheet in spreadsheet.sheets:
        lines.append(sheet.title)
        for record in sheet.records():
            entry_id = record.get(UNIQUE_ENTRY_ID_COLUMN)
            if entry_id is None:
                continue
            lines.append(f"   {prefix}{entry_id}{suffix}")

    path = out_dir / UNIQUE_ENTRY_IDS_FILE
    try:
        write_file_atomic(path, ("\n".join(lines) + "\n").encode("utf-8"))
    except OSError as e:
        raise ExportError(f"Failed to write {path}: {e}") from e

    logger.info(f"Wrote unique entry ids to {path}")
    return path


def save_raw(data: bytes, path: Path) -> Path:
    """Write the unmodified response body."""
    ensure_dir(path.parent)
    try:
        write_file_atomic(path, data)
    except OSError as e:
        raise ExportError(f"Failed to write raw response to {path}: {e}") from e
    logger.info(f"Saved raw response to {path}")
    return path
