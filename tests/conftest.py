import json
from unittest.mock import MagicMock

import pytest


def _student(reg, name, absences, p1, p2, p3):
    # A..F filled, G (status) and H (final exam) still blank
    return {"c": [{"v": reg}, {"v": name}, {"v": absences}, {"v": p1}, {"v": p2}, {"v": p3}, None, None]}


def _payload(rows):
    body = {
        "version": "0.6",
        "reqId": "0",
        "status": "ok",
        "sig": "1",
        "table": {"cols": [], "rows": rows, "parsedNumHeaders": 0},
    }
    return "/*O_o*/\ngoogle.visualization.Query.setResponse(" + json.dumps(body) + ");"


@pytest.fixture
def student():
    return _student


@pytest.fixture
def payload():
    return _payload


@pytest.fixture
def roster_payload():
    return _payload([
        _student(1, "Eduardo", 8, 35, 63, 61),    # 5.30 -> exam
        _student(2, "Murilo", 2, 80, 70, 90),     # 8.00 -> approved
        _student(3, "Claudio", 18, 90, 90, 90),   # absences -> failed
        _student(4, "Marcelo", 10, 30, 40, 50),   # 4.00 -> failed by grade
    ])


def _response(text="", status_code=200):
    resp = MagicMock()
    resp.text = text
    resp.status_code = status_code
    return resp


@pytest.fixture
def response():
    return _response


@pytest.fixture
def http_session(roster_payload):
    session = MagicMock()
    session.get.return_value = _response(roster_payload)
    return session
