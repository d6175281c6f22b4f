import logging
import math

import pytest

from grades import (
    ABSENCE_LIMIT,
    Status,
    StudentResult,
    absences,
    averages,
    cell_number,
    classify,
    evaluate,
    final_exam_score,
)
from gviz import EMPTY, Cell, CellKind, parse_table


def num(v):
    return Cell(CellKind.NUMBER, v)


def text(v):
    return Cell(CellKind.TEXT, v)


def row(absent, *grades):
    return [num(1), text("Student"), absent] + list(grades)


# ---- averages ----

@pytest.mark.parametrize("grades, expected", [
    ((0, 0, 0), 0.0),
    ((30, 30, 30), 3.0),
    ((70, 80, 90), 8.0),
    ((35, 63, 61), 5.3),
    ((100, 100, 100), 10.0),
    ((33, 33, 34), 3.33),
    ((66, 67, 67), 6.67),
])
def test_average_is_mean_over_ten(grades, expected):
    assert averages([row(num(0), *map(num, grades))]) == [expected]


def test_average_is_sum_over_thirty():
    total = 13 + 57 + 88
    assert averages([row(num(0), num(13), num(57), num(88))]) == [round(total / 30, 2)]


def test_average_empty_grade_counts_as_zero(caplog):
    with caplog.at_level(logging.WARNING, logger="grades_pipeline"):
        assert averages([row(num(0), num(60), num(60), EMPTY)]) == [4.0]
    assert "counted as 0" in caplog.text


def test_average_text_grades():
    assert averages([row(num(0), text("75"), text("7,5e1"), text("75.0"))]) == [7.5]
    assert averages([row(num(0), text("abc"), num(90), text("nan"))]) == [3.0]


def test_average_short_row():
    assert averages([[num(1), text("x"), num(0), num(90)]]) == [3.0]


def test_averages_keep_order():
    roster = [row(num(0), num(g), num(g), num(g)) for g in (10, 90, 50)]
    assert averages(roster) == [1.0, 9.0, 5.0]


# ---- absences ----

def test_absences_read_column_two():
    roster = [row(num(a), num(0), num(0), num(0)) for a in (0, 15, 16, 3.0)]
    assert absences(roster) == [0, 15, 16, 3]


def test_absences_keep_fractions():
    [absent] = absences([row(num(15.5), num(90), num(90), num(90))])
    assert absent == 15.5
    assert classify(9.0, absent) == (Status.FAILED_BY_ATTENDANCE, 0)


def test_absences_text():
    roster = [row(text(a), num(90), num(90), num(90)) for a in ("12", "15,5", "abc")]
    assert absences(roster) == [12.0, 15.5, math.inf]
    statuses = [r.status for r in evaluate(roster)]
    assert statuses == [Status.APPROVED, Status.FAILED_BY_ATTENDANCE, Status.FAILED_BY_ATTENDANCE]


def test_absences_empty_is_zero():
    assert absences([row(EMPTY, num(0), num(0), num(0)), [num(1)]]) == [0, 0]


def test_cell_number():
    assert cell_number(num(12.5)) == 12.5
    assert cell_number(EMPTY) == 0
    assert cell_number(text(" 8 ")) == 8.0
    assert cell_number(text("eight")) == 0


# ---- classify ----

@pytest.mark.parametrize("average, absent, status, score", [
    (4.99, 0, Status.FAILED_BY_GRADE, 0),
    (0.0, 0, Status.FAILED_BY_GRADE, 0),
    (5.0, 0, Status.FINAL_EXAM, 5.0),
    (5.3, 8, Status.FINAL_EXAM, 4.7),
    (6.99, 0, Status.FINAL_EXAM, 3.01),
    (7.0, 0, Status.APPROVED, 0),
    (10.0, 0, Status.APPROVED, 0),
    (9.0, 15, Status.APPROVED, 0),
    (6.0, 15, Status.FINAL_EXAM, 4.0),
    (9.0, 16, Status.FAILED_BY_ATTENDANCE, 0),
    (6.0, 16, Status.FAILED_BY_ATTENDANCE, 0),
    (1.0, 60, Status.FAILED_BY_ATTENDANCE, 0),
])
def test_classify(average, absent, status, score):
    assert classify(average, absent) == (status, score)


def test_classify_is_total():
    for hundredths in range(0, 1001):
        average = hundredths / 100
        for absent in range(0, 61):
            status, score = classify(average, absent)
            assert status in Status
            if status is Status.FINAL_EXAM:
                assert score > 0
            else:
                assert score == 0
            if absent > ABSENCE_LIMIT:
                assert status is Status.FAILED_BY_ATTENDANCE


def test_final_exam_score_reaches_passing_average():
    for hundredths in range(500, 700):
        average = hundredths / 100
        status, score = classify(average, 0)
        assert status is Status.FINAL_EXAM
        assert (average + score) / 2 == pytest.approx(5.0)
        assert score == final_exam_score(average)


def test_status_labels():
    assert [s.value for s in Status] == [
        "Aprovado", "Exame Final", "Reprovado por Nota", "Reprovado por Falta",
    ]


# ---- evaluate ----

def test_evaluate(roster_payload):
    results = evaluate(parse_table(roster_payload))
    assert results == [
        StudentResult(0, 5.3, 8, Status.FINAL_EXAM, 4.7),
        StudentResult(1, 8.0, 2, Status.APPROVED, 0),
        StudentResult(2, 9.0, 18, Status.FAILED_BY_ATTENDANCE, 0),
        StudentResult(3, 4.0, 10, Status.FAILED_BY_GRADE, 0),
    ]


def test_evaluate_is_idempotent(roster_payload):
    assert evaluate(parse_table(roster_payload)) == evaluate(parse_table(roster_payload))
