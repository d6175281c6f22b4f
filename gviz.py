import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

import requests

from errors import ConfigurationError, FetchError, ParseError
from logger import get_logger

log = get_logger("gviz")

GVIZ_URL = "https://docs.google.com/spreadsheets/d/{sheet_id}/gviz/tq?tqx=out:json"

# https://docs.google.com/spreadsheets/d/<id>/edit -> <id> is segment 5
SHEET_ID_SEGMENT = 5


# ---------- Cells ----------

class CellKind(Enum):
    NUMBER = "number"
    TEXT = "text"
    EMPTY = "empty"


@dataclass(frozen=True)
class Cell:
    kind: CellKind
    value: Any = None

    @classmethod
    def from_gviz(cls, raw) -> "Cell":
        """Map one entry of a gviz row's `c` list: None, {"v": ...} or {"v": null}."""
        if raw is None:
            return EMPTY
        if not isinstance(raw, dict):
            raise ParseError(f"unexpected cell shape: {raw!r}")
        v = raw.get("v")
        if v is None:
            return EMPTY
        # bool is an int subclass; gviz booleans are not grades
        if isinstance(v, (int, float)) and not isinstance(v, bool):
            return cls(CellKind.NUMBER, v)
        return cls(CellKind.TEXT, str(v))

    @property
    def is_empty(self) -> bool:
        return self.kind is CellKind.EMPTY


EMPTY = Cell(CellKind.EMPTY)

Roster = List[List[Cell]]


# ---------- Locator ----------

def sheet_id_from_url(url: str) -> str:
    parts = (url or "").split("/")
    if len(parts) <= SHEET_ID_SEGMENT or not parts[SHEET_ID_SEGMENT].strip():
        raise ConfigurationError(f"cannot find a spreadsheet id in {url!r}")
    return parts[SHEET_ID_SEGMENT]


# ---------- Fetch ----------

def _describe_status(status: int) -> str:
    if status in (401, 403):
        return "permission denied"
    if status == 404:
        return "spreadsheet not found (malformed id?)"
    if status >= 500:
        return "service unavailable"
    return "unexpected response"


def fetch_table(sheet_id: str, timeout: Optional[float] = None, session=None) -> str:
    """GET the gviz JSON export of the sheet and return the raw body."""
    url = GVIZ_URL.format(sheet_id=sheet_id)
    http = session or requests
    log.debug("GET %s", url)
    try:
        r = http.get(url, timeout=timeout)
    except requests.RequestException as e:
        raise FetchError(f"request to {url} failed: {e}") from e

    if not 200 <= r.status_code < 300:
        raise FetchError(
            f"{_describe_status(r.status_code)} ({r.status_code}) for sheet {sheet_id}",
            status_code=r.status_code,
        )
    return r.text


# ---------- Parse ----------

def _unwrap(payload: str) -> dict:
    start = payload.find("(")
    end = payload.rfind(")")
    if start == -1 or end <= start:
        raise ParseError("payload is not wrapped in a callback: missing parentheses")
    try:
        info = json.loads(payload[start + 1:end])
    except ValueError as e:
        raise ParseError(f"payload is not valid JSON: {e}") from e
    if not isinstance(info, dict):
        raise ParseError("payload JSON is not an object")
    return info


def parse_table(payload: str) -> Roster:
    info = _unwrap(payload)

    if info.get("status") == "error":
        reasons = "; ".join(
            e.get("detailed_message") or e.get("message") or e.get("reason", "")
            for e in info.get("errors") or []
            if isinstance(e, dict)
        )
        raise FetchError(f"spreadsheet rejected the query: {reasons or 'unknown error'}")

    table = info.get("table")
    rows = table.get("rows") if isinstance(table, dict) else None
    if not isinstance(rows, list):
        raise ParseError("payload has no table.rows")

    roster: Roster = []
    for i, row in enumerate(rows):
        cells = row.get("c") if isinstance(row, dict) else None
        if not isinstance(cells, list):
            raise ParseError(f"row {i} has no cell list")
        roster.append([Cell.from_gviz(c) for c in cells])
    return roster


def load_roster(sheet_id: str, timeout: Optional[float] = None, session=None) -> Roster:
    roster = parse_table(fetch_table(sheet_id, timeout=timeout, session=session))
    log.info("Fetched %d student rows from sheet %s", len(roster), sheet_id)
    return roster
