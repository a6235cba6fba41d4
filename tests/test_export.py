"""Tests for the sheet JSON exporter."""

import json

import pytest

from datamine_exporter.export.writer import (
    ExportError,
    dump_json,
    export_sheets,
    export_unique_entry_ids,
    save_raw,
)
from datamine_exporter.sheets.models import Spreadsheet


@pytest.fixture
def spreadsheet(datamine_response) -> Spreadsheet:
    return Spreadsheet.from_dict(datamine_response)


class TestExportSheets:
    """Test writing one JSON file per sheet."""

    def test_one_file_per_sheet(self, tmp_path, datamine_response, spreadsheet):
        """Test that N sheets give N files named after the sheets."""
        out_dir = tmp_path / "export"

        written = export_sheets(datamine_response, spreadsheet, out_dir)

        assert written == [out_dir / "Recipes.json", out_dir / "Items _ Tools.json"]
        assert sorted(p.name for p in out_dir.iterdir()) == ["Items _ Tools.json", "Recipes.json"]

    def test_content_is_grid_data(self, tmp_path, datamine_response, spreadsheet):
        """Test that each file holds exactly the sheet's grid data."""
        written = export_sheets(datamine_response, spreadsheet, tmp_path)

        for path, raw_sheet in zip(written, datamine_response["sheets"]):
            assert json.loads(path.read_text(encoding="utf-8")) == raw_sheet["data"]
            assert path.read_bytes() == dump_json(raw_sheet["data"])

    def test_non_ascii_written_as_utf8(self, tmp_path, datamine_response, spreadsheet):
        """Test that non-ASCII text is stored as UTF-8, not escaped."""
        written = export_sheets(datamine_response, spreadsheet, tmp_path)

        assert "Axé" in written[1].read_text(encoding="utf-8")

    def test_rerun_is_identical(self, tmp_path, datamine_response, spreadsheet):
        """Test that exporting twice overwrites with the same bytes."""
        first = {p: p.read_bytes() for p in export_sheets(datamine_response, spreadsheet, tmp_path)}
        second = {p: p.read_bytes() for p in export_sheets(datamine_response, spreadsheet, tmp_path)}

        assert first == second
        assert not list(tmp_path.glob(".*.tmp"))

    def test_rerun_overwrites_stale_content(self, tmp_path, datamine_response, spreadsheet):
        """Test that an existing file is replaced."""
        (tmp_path / "Recipes.json").write_text("stale")

        export_sheets(datamine_response, spreadsheet, tmp_path)

        assert json.loads((tmp_path / "Recipes.json").read_text()) == datamine_response["sheets"][0]["data"]

    def test_creates_nested_directory(self, tmp_path, datamine_response, spreadsheet):
        """Test that missing parent directories are created."""
        out_dir = tmp_path / "a" / "b"

        export_sheets(datamine_response, spreadsheet, out_dir)

        assert (out_dir / "Recipes.json").exists()

    def test_colliding_titles(self, tmp_path):
        """Test that sheets with the same sanitized name don't overwrite each other."""
        raw = {
            "sheets": [
                {"properties": {"title": "A/B"}, "data": [{"rowData": []}]},
                {"properties": {"title": "A:B"}, "data": [{"rowData": [{"values": []}]}]},
            ]
        }

        written = export_sheets(raw, Spreadsheet.from_dict(raw), tmp_path)

        assert [p.name for p in written] == ["A_B.json", "A_B-2.json"]
        assert json.loads(written[1].read_text()) == [{"rowData": [{"values": []}]}]

    def test_sheet_without_data(self, tmp_path):
        """Test a sheet with no grid data exports an empty list."""
        raw = {"sheets": [{"properties": {"title": "Empty"}}]}

        written = export_sheets(raw, Spreadsheet.from_dict(raw), tmp_path)

        assert json.loads(written[0].read_text()) == []

    def test_rows_format(self, tmp_path, datamine_response, spreadsheet):
        """Test exporting header-keyed records."""
        written = export_sheets(datamine_response, spreadsheet, tmp_path, fmt="rows")

        records = json.loads(written[0].read_text())
        assert records[0] == {
            "unique_entry_id": "r-001",
            "name": "Bread",
            "icon": "https://img.example.com/icons/bread.png",
        }
        assert len(records) == 2

    def test_unwritable_directory(self, tmp_path, datamine_response, spreadsheet):
        """Test that a path blocked by a file raises ExportError."""
        blocker = tmp_path / "export"
        blocker.write_text("not a directory")

        with pytest.raises(ExportError):
            export_sheets(datamine_response, spreadsheet, blocker)


class TestExportUniqueEntryIds:
    """Test the unique entry id listing."""

    def test_ids_grouped_by_sheet(self, tmp_path, spreadsheet):
        """Test that ids are listed under their sheet title."""
        path = export_unique_entry_ids(spreadsheet, tmp_path)

        assert path == tmp_path / "unique_entry_ids.txt"
        assert path.read_text() == "Recipes\n   r-001\n   r-002\nItems / Tools\n   i-001\n"

    def test_prefix_and_suffix(self, tmp_path, spreadsheet):
        """Test id prefix and suffix."""
        path = export_unique_entry_ids(spreadsheet, tmp_path, id_prefix="<", id_suffix=">")

        assert "   <r-001>\n" in path.read_text()

    def test_sheet_without_id_column(self, tmp_path):
        """Test that sheets without the column only list their title."""
        spreadsheet = Spreadsheet.from_dict({"sheets": [{"properties": {"title": "Notes"}}]})

        path = export_unique_entry_ids(spreadsheet, tmp_path)

        assert path.read_text() == "Notes\n"


class TestSaveRaw:
    """Test saving the raw response."""

    def test_bytes_unchanged(self, tmp_path):
        """Test that the response body is written as is."""
        data = b'{"sheets": []}'

        path = save_raw(data, tmp_path / "raw" / "datamine.json")

        assert path.read_bytes() == data


def test_dump_json_trailing_newline():
    """Test the JSON layout of exported files."""
    assert dump_json([]) == b"[]\n"
    assert dump_json({"a": "é"}) == '{\n  "a": "é"\n}\n'.encode("utf-8")
