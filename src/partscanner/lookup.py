"""
Part lookup against a header-indexed table.

The table's column order is irrelevant: columns are located by their
normalized header (lower-cased, all whitespace removed). Only the id column
is mandatory; other fields fall back to defaults when their column is absent.
"""

import logging
import re
from dataclasses import asdict, dataclass
from typing import Dict, Iterator, List, Optional, Protocol
from urllib.parse import quote

import requests

from .errors import (
    LookupConfigurationFailure,
    LookupNotFound,
    LookupTransportFailure,
    PartLookupError,
)
from .sheets import Table

logger = logging.getLogger(__name__)

FIELD_COLUMNS = {
    "id": "id",
    "name": "name",
    "quantity": "quantity",
    "position": "position",
    "cad_assembly": "cadassembly",
}

_LEADING_INT = re.compile(r"^\s*([+-]?\d+)")


@dataclass(frozen=True)
class PartRecord:
    id: str
    name: str = "Unknown"
    quantity: int = 0
    position: str = "Unknown"
    cad_assembly: str = ""

    def to_json(self) -> Dict[str, object]:
        data = asdict(self)
        data["cadAssembly"] = data.pop("cad_assembly")
        return data

    @classmethod
    def from_json(cls, data: Dict[str, object]) -> "PartRecord":
        return cls(
            id=str(data.get("id") or ""),
            name=str(data.get("name") or "Unknown"),
            quantity=coerce_quantity(data.get("quantity")),
            position=str(data.get("position") or "Unknown"),
            cad_assembly=str(data.get("cadAssembly") or ""),
        )


class PartSource(Protocol):
    def fetch_table(self) -> Table:
        ...


def normalize_header(value: str) -> str:
    return "".join(value.split()).lower()


def normalize_id(value: str) -> str:
    return value.strip().lower()


def coerce_quantity(value) -> int:
    if value is None:
        return 0
    if isinstance(value, int):
        return max(value, 0)
    match = _LEADING_INT.match(str(value))
    if not match:
        return 0
    return max(int(match.group(1)), 0)


def locate_columns(header: List[str]) -> Dict[str, int]:
    """Map field name -> column index for the recognised columns present."""
    normalized = [normalize_header(h) for h in header]
    columns: Dict[str, int] = {}
    for field_name, column in FIELD_COLUMNS.items():
        if column in normalized:
            columns[field_name] = normalized.index(column)
    if "id" not in columns:
        raise LookupConfigurationFailure()
    return columns


def _cell(row: List[str], index: Optional[int]) -> str:
    if index is None or index >= len(row):
        return ""
    return row[index]


def project_row(row: List[str], columns: Dict[str, int], fallback_id: str = "") -> PartRecord:
    return PartRecord(
        id=_cell(row, columns.get("id")) or fallback_id,
        name=_cell(row, columns.get("name")) or "Unknown",
        quantity=coerce_quantity(_cell(row, columns.get("quantity"))),
        position=_cell(row, columns.get("position")) or "Unknown",
        cad_assembly=_cell(row, columns.get("cad_assembly")),
    )


def iter_records(table: Table) -> Iterator[PartRecord]:
    """Project every body row with a non-empty id."""
    if table.empty:
        return
    columns = locate_columns(table.header)
    for row in table.rows:
        if _cell(row, columns["id"]).strip():
            yield project_row(row, columns)


class PartLookup:
    """Resolves tokens by fetching the whole table on every call."""

    def __init__(self, source: PartSource):
        self._source = source

    def resolve(self, token: str) -> PartRecord:
        logger.info("Looking up part %r", token)
        table = self._source.fetch_table()
        if table.empty:
            logger.info("No data found in the sheet")
            raise LookupNotFound(token, "No data found in the sheet")

        columns = locate_columns(table.header)
        logger.debug("Columns %s across %d rows", columns, len(table.rows))
        wanted = normalize_id(token)
        id_index = columns["id"]
        for row in table.rows:
            if normalize_id(_cell(row, id_index)) == wanted:
                record = project_row(row, columns, fallback_id=token)
                logger.info("Part data found: %s", record)
                return record

        logger.info("Part number not found: %r", token)
        raise LookupNotFound(token)


class RemotePartLookup:
    """Client for the GET /parts/{token} route served by partscanner.server."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 15,
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._session = session or requests.Session()

    def resolve(self, token: str) -> PartRecord:
        url = f"{self.base_url}/parts/{quote(token, safe='')}"
        try:
            resp = self._session.get(url, timeout=self.timeout)
        except requests.RequestException as exc:
            raise LookupTransportFailure(f"Lookup request failed: {exc}") from exc

        try:
            payload = resp.json()
        except ValueError:
            payload = {}
        if not isinstance(payload, dict):
            payload = {}
        error = payload.get("error") or f"Lookup failed with status {resp.status_code}"

        if resp.status_code == 200 and payload.get("success") and payload.get("data"):
            if not isinstance(payload["data"], dict):
                raise LookupTransportFailure(
                    "Lookup route returned malformed part data", status=resp.status_code
                )
            return PartRecord.from_json(payload["data"])
        if resp.status_code == 404:
            raise LookupNotFound(token, error)
        if resp.status_code == 400:
            raise LookupConfigurationFailure(error)
        raise LookupTransportFailure(error, status=resp.status_code)


class Resolver(Protocol):
    def resolve(self, token: str) -> PartRecord:
        ...


def safe_resolve(resolver: Resolver, token: str):
    """Run a lookup and return (record, error) instead of raising."""
    try:
        return resolver.resolve(token), None
    except PartLookupError as exc:
        return None, exc
    except Exception as exc:
        logger.exception("Unexpected error resolving %r", token)
        return None, LookupTransportFailure(f"Lookup failed: {exc}")
