import logging
from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote

import requests

from .errors import LookupTransportFailure, SourceNotConfigured

logger = logging.getLogger(__name__)

SHEETS_API = "https://sheets.googleapis.com/v4/spreadsheets"


@dataclass
class Table:
    """Header row plus body rows as returned by a tabular source."""

    header: List[str] = field(default_factory=list)
    rows: List[List[str]] = field(default_factory=list)

    @property
    def empty(self) -> bool:
        return not self.header

    @classmethod
    def from_values(cls, values: Optional[List[List[object]]]) -> "Table":
        if not values:
            return cls()
        cells = [["" if cell is None else str(cell) for cell in row] for row in values]
        return cls(header=cells[0], rows=cells[1:])


def _is_grid(values) -> bool:
    # A sheet with no data omits "values" entirely.
    if values is None:
        return True
    return isinstance(values, list) and all(isinstance(row, list) for row in values)


class SheetsClient:
    """Reads one sheet of a spreadsheet through the Sheets values API."""

    def __init__(
        self,
        api_key: Optional[str],
        spreadsheet_id: Optional[str],
        sheet_name: str = "Sheet1",
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.api_key = api_key
        self.spreadsheet_id = spreadsheet_id
        self.sheet_name = sheet_name or "Sheet1"
        self.timeout = timeout
        self._session = session or requests.Session()

    @property
    def configured(self) -> bool:
        return bool(self.api_key and self.spreadsheet_id)

    def fetch_table(self) -> Table:
        if not self.configured:
            logger.error("Missing Sheets API key or spreadsheet id")
            raise SourceNotConfigured()

        url = (
            f"{SHEETS_API}/{quote(self.spreadsheet_id, safe='')}"
            f"/values/{quote(self.sheet_name, safe='')}"
        )
        logger.debug("Fetching sheet %r", self.sheet_name)
        try:
            resp = self._session.get(
                url, params={"key": self.api_key}, timeout=self.timeout
            )
        except requests.RequestException as exc:
            raise LookupTransportFailure(f"Google Sheets request failed: {exc}") from exc

        if not resp.ok:
            logger.error("Google Sheets API error: %s %s", resp.status_code, resp.text)
            raise LookupTransportFailure(
                f"Google Sheets API error: {resp.status_code} - {resp.text}",
                status=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise LookupTransportFailure(
                "Google Sheets API returned invalid JSON", status=resp.status_code
            ) from exc

        values = data.get("values") if isinstance(data, dict) else None
        if not isinstance(data, dict) or not _is_grid(values):
            logger.error("Google Sheets API returned an unexpected payload: %.200r", data)
            raise LookupTransportFailure(
                "Google Sheets API returned an unexpected payload", status=resp.status_code
            )
        table = Table.from_values(values)
        logger.debug("Sheet has %d body rows", len(table.rows))
        return table
