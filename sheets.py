# sheets.py
import json
from collections import deque
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Deque, Dict, Iterable, Iterator, List, Optional

import gspread
import requests
from google.auth.exceptions import GoogleAuthError
from google.oauth2.service_account import Credentials

from errors import ConfigurationError, WriteError
from grades import StudentResult
from logger import get_logger

log = get_logger("sheets")

# Only Sheets scope needed when opening by key
SCOPES = ["https://www.googleapis.com/auth/spreadsheets"]

FIRST_DATA_ROW = 4
STATUS_COL = "G"
SCORE_COL = "H"

# Sheets reinterprets values as if typed by a user ("4.5" -> number)
VALUE_INPUT_OPTION = "USER_ENTERED"

WRITE_ERRORS = (gspread.exceptions.APIError, requests.RequestException, GoogleAuthError)
# open_by_key turns 403 into the builtin PermissionError and 404 into SpreadsheetNotFound
OPEN_ERRORS = WRITE_ERRORS + (gspread.exceptions.SpreadsheetNotFound, PermissionError)


# ---------- Client ----------

def authorize(creds_info: Optional[Dict[str, Any]] = None, creds_file: Optional[str] = None) -> gspread.Client:
    """Service account client from an info dict (preferred) or a key file."""
    try:
        if creds_info is not None:
            creds = Credentials.from_service_account_info(creds_info, scopes=SCOPES)
        elif creds_file:
            creds = Credentials.from_service_account_file(creds_file, scopes=SCOPES)
        else:
            raise ConfigurationError("no service account credentials given")
    except (OSError, ValueError, KeyError) as e:
        raise ConfigurationError(f"cannot load service account credentials: {e}") from e
    return gspread.authorize(creds)


@contextmanager
def open_client(creds_info: Optional[Dict[str, Any]] = None, creds_file: Optional[str] = None) -> Iterator[gspread.Client]:
    gc = authorize(creds_info=creds_info, creds_file=creds_file)
    log.debug("Sheets client ready")
    try:
        yield gc
    finally:
        gc.http_client.session.close()
        log.debug("Sheets client closed")


# ---------- Writer ----------

def cell_label(col: str, row_index: int, first_row: int = FIRST_DATA_ROW) -> str:
    return f"{col}{first_row + row_index}"


@dataclass(frozen=True)
class CellWrite:
    cell: str
    value: Any


@dataclass
class WriteReport:
    attempted: int = 0
    written: int = 0
    failures: List[WriteError] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return not self.failures


class SheetWriter:
    """
    Writes StudentResults back to the sheet.

    Every result becomes two queued single-cell writes (status, then final
    exam score). flush() sends them one request at a time in queue order; a
    failed cell is logged and skipped, the rest still go out.
    """

    def __init__(self, spreadsheet=None, first_row: int = FIRST_DATA_ROW,
                 status_col: str = STATUS_COL, score_col: str = SCORE_COL):
        self.spreadsheet = spreadsheet
        self.first_row = first_row
        self.status_col = status_col
        self.score_col = score_col
        self._queue: Deque[CellWrite] = deque()

    def __len__(self) -> int:
        return len(self._queue)

    def enqueue(self, result: StudentResult) -> None:
        self._queue.append(CellWrite(cell_label(self.status_col, result.row, self.first_row), result.status.value))
        self._queue.append(CellWrite(cell_label(self.score_col, result.row, self.first_row), result.final_exam_score))

    def enqueue_all(self, results: Iterable[StudentResult]) -> None:
        for r in sorted(results, key=lambda r: r.row):
            self.enqueue(r)

    def _write(self, task: CellWrite) -> None:
        resp = self.spreadsheet.values_update(
            task.cell,
            params={"valueInputOption": VALUE_INPUT_OPTION},
            body={"values": [[task.value]]},
        )
        log.debug("Updated %s: %s", task.cell, json.dumps(resp, default=str))

    def flush(self) -> WriteReport:
        report = WriteReport()
        while self._queue:
            task = self._queue.popleft()
            report.attempted += 1
            try:
                self._write(task)
            except WRITE_ERRORS as e:
                err = WriteError(task.cell, task.value, e)
                log.error("%s", err)
                report.failures.append(err)
            else:
                report.written += 1
        return report

    def abandon(self, cause: Exception) -> WriteReport:
        """Report every queued cell as failed without sending anything."""
        tasks = list(self._queue)
        self._queue.clear()
        return WriteReport(
            attempted=len(tasks),
            failures=[WriteError(t.cell, t.value, cause) for t in tasks],
        )

    def flush_batch(self) -> WriteReport:
        """
        Send the whole queue as one values.batchUpdate request.
        All-or-nothing: if the request fails every queued cell is reported.
        """
        tasks = list(self._queue)
        self._queue.clear()
        report = WriteReport(attempted=len(tasks))
        if not tasks:
            return report

        body = {
            "valueInputOption": VALUE_INPUT_OPTION,
            "data": [{"range": t.cell, "values": [[t.value]]} for t in tasks],
        }
        try:
            resp = self.spreadsheet.values_batch_update(body=body)
        except WRITE_ERRORS as e:
            log.error("Batch update of %d cells failed: %s", len(tasks), e)
            report.failures.extend(WriteError(t.cell, t.value, e) for t in tasks)
            return report

        log.debug("Batch update: %s", json.dumps(resp, default=str))
        report.written = len(tasks)
        return report
