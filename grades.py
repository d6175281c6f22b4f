"""
Per-student metrics and status.

Roster columns (0-based, as returned by the gviz export):
    0  registration
    1  name
    2  absences
    3  P1
    4  P2
    5  P3
Grades are on a 0-100 scale; averages are reported on 0-10.
"""
import math
from dataclasses import dataclass
from enum import Enum
from typing import List, Tuple

from gviz import EMPTY, Cell, CellKind, Roster
from logger import get_logger

log = get_logger("grades")

ABSENCE_COL = 2
GRADE_START = 3
GRADE_COUNT = 3

TOTAL_CLASSES = 60
ABSENCE_LIMIT = 15  # 25% of TOTAL_CLASSES

FAIL_BELOW = 5
APPROVE_FROM = 7
PASSING_FINAL_AVERAGE = 5  # (average + final exam) / 2


class Status(str, Enum):
    APPROVED = "Aprovado"
    FINAL_EXAM = "Exame Final"
    FAILED_BY_GRADE = "Reprovado por Nota"
    FAILED_BY_ATTENDANCE = "Reprovado por Falta"


@dataclass(frozen=True)
class StudentResult:
    row: int  # 0-based position in the roster
    average: float
    absences: float
    status: Status
    final_exam_score: float


# ---------- Cells ----------

def cell_number(cell: Cell, where: str = "", unreadable: float = 0) -> float:
    """
    Numeric value of a cell.
    EMPTY counts as 0. TEXT is parsed when it looks like a number
    ("7,5" is accepted), otherwise it counts as `unreadable`.
    """
    if cell.kind is CellKind.NUMBER:
        return cell.value
    if cell.kind is CellKind.EMPTY:
        log.warning("Empty cell %s counted as 0", where)
        return 0
    try:
        number = float(str(cell.value).strip().replace(",", "."))
        if math.isfinite(number):
            return number
    except ValueError:
        pass
    log.warning("Non-numeric cell %s (%r) counted as %g", where, cell.value, unreadable)
    return unreadable


def _cells(row: List[Cell], start: int, width: int) -> List[Cell]:
    picked = row[start:start + width]
    # short rows: gviz drops trailing cells the sheet never had
    return picked + [EMPTY] * (width - len(picked))


# ---------- Metrics ----------

def averages(roster: Roster) -> List[float]:
    out = []
    for i, row in enumerate(roster):
        total = sum(cell_number(c, f"in row {i} grades") for c in _cells(row, GRADE_START, GRADE_COUNT))
        out.append(round(total / GRADE_COUNT / 10, 2))
    return out


def absences(roster: Roster) -> List[float]:
    """Absence counts as read; unreadable text is over any limit."""
    out = []
    for i, row in enumerate(roster):
        cell = row[ABSENCE_COL] if len(row) > ABSENCE_COL else EMPTY
        out.append(cell_number(cell, f"in row {i} absences", unreadable=math.inf))
    return out


# ---------- Status ----------

def final_exam_score(average: float) -> float:
    """Minimum final exam grade so that (average + score) / 2 >= 5."""
    return round(2 * PASSING_FINAL_AVERAGE - average, 2)


def classify(average: float, absence_count: float) -> Tuple[Status, float]:
    if absence_count > ABSENCE_LIMIT:
        return Status.FAILED_BY_ATTENDANCE, 0
    if average < FAIL_BELOW:
        return Status.FAILED_BY_GRADE, 0
    if average < APPROVE_FROM:
        return Status.FINAL_EXAM, final_exam_score(average)
    return Status.APPROVED, 0


def evaluate(roster: Roster) -> List[StudentResult]:
    results = []
    for i, (avg, absent) in enumerate(zip(averages(roster), absences(roster))):
        status, score = classify(avg, absent)
        log.info("Row %d: average=%.2f absences=%g -> %s", i, avg, absent, status.value)
        results.append(StudentResult(i, avg, absent, status, score))
    return results
