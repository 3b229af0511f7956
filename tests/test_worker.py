"""Unit tests for EvaluationWorker using real Pipe connections."""
from multiprocessing import Pipe

import pytest

from sigfig_calculator.batch.worker import EvaluationWorker
from sigfig_calculator.common.config import EvaluatorConfig


@pytest.mark.parametrize(
    "expr,value,sf",
    [
        ("1+1", 2.0, 1),
        ("34.56*230", 7948.8, 2),
        ("sqrt4", 2.0, 2),
        ("546/70.00", 7.8, 3),
    ],
)
def test_worker_sends_result_for_valid_expression(expr: str, value: float, sf: int) -> None:
    """Worker sends the value and significant figures through the connection."""
    parent_conn, child_conn = Pipe()
    worker = EvaluationWorker(conn=child_conn, expression=expr, line_number=1)
    worker.run()

    msg = parent_conn.recv()
    assert msg["line"] == 1
    assert msg["expression"] == expr
    assert msg["value"] == pytest.approx(value)
    assert msg["significant_figures"] == sf
    assert msg["error"] is None


@pytest.mark.parametrize(
    "expr,kind",
    [
        ("2+*3", "MalformedExpression"),   # adjacent operators
        ("2 +", "MalformedExpression"),    # trailing operator
        ("1e999", "MalformedLiteral"),     # out of range literal
        ("1/0", "NumericDomainError"),     # division by zero
    ],
)
def test_worker_sends_error_for_invalid_expression(expr: str, kind: str) -> None:
    """Worker sends an error message and kind for invalid expressions."""
    parent_conn, child_conn = Pipe()
    worker = EvaluationWorker(conn=child_conn, expression=expr, line_number=2)
    worker.run()

    msg = parent_conn.recv()
    assert msg["line"] == 2
    assert msg["expression"] == expr
    assert msg["value"] is None
    assert msg["error_kind"] == kind
    assert isinstance(msg["error"], str)


def test_worker_uses_config() -> None:
    """Worker evaluates with its configuration."""
    _, child_conn = Pipe()
    worker = EvaluationWorker(
        conn=child_conn,
        expression="2^3",
        line_number=1,
        config=EvaluatorConfig(min_significant_figures=2),
    )
    assert worker.evaluate().significant_figures == 2
    child_conn.close()


def test_worker_closes_connection() -> None:
    """The child end of the pipe is closed after run."""
    parent_conn, child_conn = Pipe()
    EvaluationWorker(conn=child_conn, expression="1+1", line_number=1).run()

    assert child_conn.closed
    parent_conn.recv()
    with pytest.raises(EOFError):
        parent_conn.recv()


def test_worker_rejects_empty_expression() -> None:
    """Pydantic validation prevents creating EvaluationWorker with empty expression."""
    _, child_conn = Pipe()
    with pytest.raises(ValueError):
        EvaluationWorker(conn=child_conn, expression="", line_number=1)
