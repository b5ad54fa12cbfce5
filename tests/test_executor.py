import threading
import time

import pytest
from sqlmodel import create_engine, text

from querychart.core.context import RequestContext
from querychart.core.errors import DeadlineExceeded, ExecutionError, RequestCancelled
from querychart.db.session import SQLExecutor, decode_value, to_rows


@pytest.fixture
def engine():
    eng = create_engine("sqlite://")
    with eng.begin() as conn:
        conn.execute(text("CREATE TABLE departments (department_id INTEGER, name TEXT, badge BLOB)"))
        conn.execute(text(
            "INSERT INTO departments VALUES (1, 'Engineering', x'454e47'), (2, 'Sales', NULL)"
        ))
    yield eng
    eng.dispose()


def test_execute_returns_rows_in_order(engine):
    columns, rows = SQLExecutor(engine).execute(
        "SELECT department_id, name, badge FROM departments ORDER BY department_id"
    )
    assert columns == ["department_id", "name", "badge"]
    assert rows == [
        {"department_id": 1, "name": "Engineering", "badge": "ENG"},
        {"department_id": 2, "name": "Sales", "badge": None},
    ]


def test_execute_error(engine):
    with pytest.raises(ExecutionError):
        SQLExecutor(engine).execute("SELECT nope FROM missing_table")


def test_execute_checks_context(engine):
    ctx = RequestContext(timeout=1)
    ctx.cancel()
    with pytest.raises(RequestCancelled):
        SQLExecutor(engine).execute("SELECT 1", ctx)


def test_decode_values():
    assert decode_value(b"abc") == "abc"
    assert decode_value(memoryview(b"xyz")) == "xyz"
    assert decode_value(5) == 5
    assert to_rows(["a", "b"], [(b"1", 2)]) == [{"a": "1", "b": 2}]


def test_context_remaining_and_expiry():
    ctx = RequestContext(timeout=10)
    assert 0 < ctx.remaining() <= 10
    assert ctx.timeout(cap=3) == 3
    ctx.deadline = time.monotonic() - 1
    assert ctx.remaining() == 0
    with pytest.raises(DeadlineExceeded):
        ctx.check()


def test_context_without_deadline():
    ctx = RequestContext()
    assert ctx.remaining() is None
    assert ctx.timeout(cap=7) == 7
    ctx.check()


def test_context_sleep_interrupted_by_cancel():
    ctx = RequestContext(timeout=30)
    threading.Timer(0.05, ctx.cancel).start()
    started = time.monotonic()
    with pytest.raises(RequestCancelled):
        ctx.sleep(10)
    assert time.monotonic() - started < 5
