import json
import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

from errors import ConfigurationError, FetchError, ParseError
from grades import Status, evaluate
from gviz import load_roster, sheet_id_from_url
from logger import get_logger, setup_logger
from sheets import OPEN_ERRORS, SheetWriter, WriteReport, open_client

log = get_logger("main")

DEFAULT_SHEET_URL = (
    "https://docs.google.com/spreadsheets/d/"
    "1bJqNW7MaVojNTA-F2hY7_1ETiatPv0deXp1PjSkmoLQ/edit?usp=sharing"
)
DEFAULT_CREDS_FILE = "./credentials.json"


# ---- Config ------------------------------------------------------------------

@dataclass(frozen=True)
class Config:
    sheet_url: str = DEFAULT_SHEET_URL
    creds_info: Optional[Dict[str, Any]] = None
    creds_file: Optional[str] = DEFAULT_CREDS_FILE
    fetch_timeout: Optional[float] = None
    batch_writes: bool = False
    log_level: str = "INFO"
    log_file: Optional[str] = None


def _flag(val: str) -> bool:
    return val.strip().lower() in {"1", "true", "yes", "on"}


def load_config(env=None) -> Config:
    env = os.environ if env is None else env

    creds_info = None
    creds_json = env.get("GOOGLE_CREDS_JSON", "").strip()
    if creds_json:
        try:
            creds_info = json.loads(creds_json)
        except ValueError as e:
            raise ConfigurationError(f"GOOGLE_CREDS_JSON is not valid JSON: {e}") from e

    fetch_timeout = None
    timeout_raw = env.get("FETCH_TIMEOUT", "").strip()
    if timeout_raw:
        try:
            fetch_timeout = float(timeout_raw)
        except ValueError as e:
            raise ConfigurationError(f"FETCH_TIMEOUT must be a number of seconds, got {timeout_raw!r}") from e

    return Config(
        sheet_url=env.get("SHEET_URL", "").strip() or DEFAULT_SHEET_URL,
        creds_info=creds_info,
        creds_file=env.get("GOOGLE_CREDS_FILE", "").strip() or DEFAULT_CREDS_FILE,
        fetch_timeout=fetch_timeout,
        batch_writes=_flag(env.get("BATCH_WRITES", "")),
        log_level=env.get("LOG_LEVEL", "INFO").strip() or "INFO",
        log_file=env.get("LOG_FILE", "").strip() or None,
    )


# ---- Pipeline ----------------------------------------------------------------

def run(config: Config, spreadsheet_for=None, session=None) -> WriteReport:
    """
    fetch -> parse -> compute -> write back.
    `spreadsheet_for(sheet_id)` returns the gspread Spreadsheet to write to;
    when omitted a service-account client is opened for the duration of the run.
    """
    sheet_id = sheet_id_from_url(config.sheet_url)
    roster = load_roster(sheet_id, timeout=config.fetch_timeout, session=session)
    results = evaluate(roster)

    counts = {s: sum(1 for r in results if r.status is s) for s in Status}
    log.info(
        "Computed %d students: %s",
        len(results),
        ", ".join(f"{s.value}={n}" for s, n in counts.items()),
    )

    if spreadsheet_for is not None:
        return _write_back(spreadsheet_for, sheet_id, results, config.batch_writes)

    with open_client(creds_info=config.creds_info, creds_file=config.creds_file) as gc:
        return _write_back(gc.open_by_key, sheet_id, results, config.batch_writes)


def _write_back(open_spreadsheet, sheet_id: str, results, batch: bool) -> WriteReport:
    writer = SheetWriter()
    writer.enqueue_all(results)
    try:
        writer.spreadsheet = open_spreadsheet(sheet_id)
    except OPEN_ERRORS as e:
        log.error("Cannot open spreadsheet %s for writing: %r", sheet_id, e)
        report = writer.abandon(e)
    else:
        report = writer.flush_batch() if batch else writer.flush()
    log.info(
        "Updated %d of %d cells for %d students. Failed writes: %d.",
        report.written, report.attempted, len(results), len(report.failures),
    )
    return report


def main():
    try:
        config = load_config()
    except ConfigurationError as e:
        setup_logger()
        log.error("Configuration error: %s", e)
        raise SystemExit(1)

    setup_logger(config.log_level, config.log_file)

    try:
        report = run(config)
    except ConfigurationError as e:
        log.error("Configuration error: %s", e)
        raise SystemExit(1)
    except FetchError as e:
        log.error("Could not fetch the roster: %s", e)
        raise SystemExit(1)
    except ParseError as e:
        log.error("Could not parse the roster: %s", e)
        raise SystemExit(1)

    if not report.ok:
        log.warning("Finished with %d cell(s) left unwritten", len(report.failures))


if __name__ == "__main__":
    main()
