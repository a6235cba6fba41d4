"""Google Sheets REST API client."""

import json
import logging
from typing import Any, Optional

import httpx
from tqdm import tqdm

from ..config import DatamineError
from .models import Spreadsheet

logger = logging.getLogger(__name__)

SHEETS_API_URL = "https://sheets.googleapis.com/v4/spreadsheets/"


class FetchError(DatamineError):
    """Raised when the spreadsheet cannot be downloaded or parsed."""

    def __init__(self, message: str, status_code: Optional[int] = None, body: str = ""):
        super().__init__(message)
        self.status_code = status_code
        self.body = body


class SheetsClient:
    """Fetches a public spreadsheet, with grid data, using an API key."""

    def __init__(
        self,
        api_key: str,
        timeout: float = 300.0,
        transport: Optional[httpx.BaseTransport] = None,
        show_progress: bool = True,
    ):
        self.api_key = api_key
        self.timeout = timeout
        self._transport = transport
        self.show_progress = show_progress

    def _spreadsheet_url(self, spreadsheet_id: str) -> str:
        return f"{SHEETS_API_URL}{spreadsheet_id}"

    def get_raw(self, spreadsheet_id: str) -> bytes:
        """Download the spreadsheet JSON body.

        Args:
            spreadsheet_id: ID of a spreadsheet readable with an API key

        Returns:
            The undecoded response body

        Raises:
            FetchError: On a non-2xx status or a transport failure
        """
        url = self._spreadsheet_url(spreadsheet_id)
        params = {"includeGridData": "true", "key": self.api_key}
        headers = {"Accept": "application/json"}

        logger.info(f"Fetching spreadsheet {spreadsheet_id} (includeGridData=true)")
        logger.debug(f"GET {url}?includeGridData=true&key=<redacted>")

        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                with client.stream("GET", url, params=params, headers=headers) as response:
                    if not response.is_success:
                        body = response.read().decode("utf-8", errors="replace")
                        raise FetchError(
                            f"Sheets API returned HTTP {response.status_code}: {body}",
                            status_code=response.status_code,
                            body=body,
                        )
                    data = self._read_body(response)
        except httpx.HTTPError as e:
            # The request URL carries the API key
            message = f"Sheets API request failed: {type(e).__name__}: {e}"
            raise FetchError(message.replace(self.api_key, "<redacted>")) from e

        logger.info(f"Downloaded {len(data)} bytes")
        return data

    def _read_body(self, response: httpx.Response) -> bytes:
        total = response.headers.get("Content-Length")
        chunks = []
        with tqdm(
            total=int(total) if total and total.isdigit() else None,
            unit="B",
            unit_scale=True,
            desc="Downloading spreadsheet",
            disable=not self.show_progress,
        ) as progress:
            for chunk in response.iter_bytes():
                chunks.append(chunk)
                progress.update(len(chunk))
        return b"".join(chunks)

    def get(self, spreadsheet_id: str) -> tuple[dict[str, Any], Spreadsheet]:
        """Download and parse the spreadsheet.

        Returns:
            The raw response document and a typed view of it
        """
        return parse_response(self.get_raw(spreadsheet_id))


def parse_response(data: bytes) -> tuple[dict[str, Any], Spreadsheet]:
    """Parse a spreadsheet response body.

    Raises:
        FetchError: If the body isn't a spreadsheet document
    """
    try:
        raw = json.loads(data)
    except ValueError as e:
        raise FetchError(f"Sheets API returned malformed JSON: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("sheets"), list):
        raise FetchError("Sheets API response has no 'sheets' array")

    try:
        spreadsheet = Spreadsheet.from_dict(raw)
    except ValueError as e:
        raise FetchError(f"Failed to parse spreadsheet: {e}") from e

    return raw, spreadsheet
