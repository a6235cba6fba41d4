"""Pytest configuration and shared fixtures."""

import json
from pathlib import Path
from typing import Callable, Optional

import httpx
import pytest


def make_cell(
    string: Optional[str] = None,
    number: Optional[float] = None,
    formula: Optional[str] = None,
) -> dict:
    """Build a cell the way the Sheets API returns it."""
    cell: dict = {}
    if formula is not None:
        cell["userEnteredValue"] = {"formulaValue": formula}
        cell["effectiveValue"] = {}
    elif string is not None:
        cell["userEnteredValue"] = {"stringValue": string}
        cell["effectiveValue"] = {"stringValue": string}
        cell["formattedValue"] = string
    elif number is not None:
        cell["userEnteredValue"] = {"numberValue": number}
        cell["effectiveValue"] = {"numberValue": number}
        cell["formattedValue"] = str(number)
    return cell


def make_sheet(title: str, rows: list[list[dict]], sheet_id: int = 0) -> dict:
    return {
        "properties": {
            "sheetId": sheet_id,
            "title": title,
            "index": sheet_id,
            "gridProperties": {"rowCount": len(rows), "columnCount": 3},
        },
        "data": [
            {
                "rowData": [{"values": row} for row in rows],
                "rowMetadata": [{"pixelSize": 21} for _ in rows],
            }
        ],
    }


@pytest.fixture
def datamine_response() -> dict:
    """A small spreadsheet response with two sheets and two image cells."""
    return {
        "spreadsheetId": "test-sheet-123",
        "properties": {"title": "Datamine"},
        "sheets": [
            make_sheet(
                "Recipes",
                [
                    [make_cell("Unique Entry ID"), make_cell("Name"), make_cell("Icon")],
                    [
                        make_cell("r-001"),
                        make_cell("Bread"),
                        make_cell(formula='=IMAGE("https://img.example.com/icons/bread.png")'),
                    ],
                    [make_cell("r-002"), make_cell("Stew"), make_cell(number=3)],
                    [{}, {}, {}],
                ],
                sheet_id=0,
            ),
            make_sheet(
                "Items / Tools",
                [
                    [make_cell("Unique Entry ID"), make_cell("Name"), make_cell("Image")],
                    [
                        make_cell("i-001"),
                        make_cell("Axé"),
                        make_cell(formula='=image("https://img.example.com/missing.png")'),
                    ],
                ],
                sheet_id=1,
            ),
        ],
    }


class RequestRecorder:
    """Mock transport handler that records every request it serves.

    Routes map a URL without query string to a ``(status, body)`` pair.
    """

    def __init__(self, routes: dict[str, tuple[int, bytes]], default_status: int = 404):
        self.routes = routes
        self.default_status = default_status
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        url = f"{request.url.scheme}://{request.url.host}{request.url.path}"
        if url in self.routes:
            status, body = self.routes[url]
            return httpx.Response(status, content=body)
        return httpx.Response(self.default_status, content=b"not found")

    @property
    def count(self) -> int:
        return len(self.requests)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)


SHEETS_URL = "https://sheets.googleapis.com/v4/spreadsheets/"


@pytest.fixture
def make_recorder() -> Callable[..., RequestRecorder]:
    def factory(routes: Optional[dict[str, tuple[int, bytes]]] = None, default_status: int = 404):
        return RequestRecorder(routes or {}, default_status=default_status)

    return factory


@pytest.fixture
def api_route(datamine_response) -> Callable[..., dict[str, tuple[int, bytes]]]:
    """Route serving ``datamine_response`` for the given spreadsheet id."""

    def factory(spreadsheet_id: str = "test-sheet-123", status: int = 200, body: Optional[bytes] = None):
        content = body if body is not None else json.dumps(datamine_response).encode("utf-8")
        return {f"{SHEETS_URL}{spreadsheet_id}": (status, content)}

    return factory


@pytest.fixture
def env_file(tmp_path: Path) -> Path:
    """A dotenv file with a test API key."""
    path = tmp_path / ".env"
    path.write_text("API_KEY=test-key-123\n")
    return path
