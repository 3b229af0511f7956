"""Test the significant-figure rule engine."""
import logging
import math

import pytest

from sigfig_calculator.common.errors import NumericDomainError
from sigfig_calculator.common.models import Operator, PrecisionValue
from sigfig_calculator.core.rules import RULES, apply, digit_rank, order_of_magnitude


def pv(value: float, significant_figures) -> PrecisionValue:
    """Shortcut to build a PrecisionValue."""
    return PrecisionValue(value=value, significant_figures=significant_figures)


@pytest.mark.parametrize("x,expected", [
    (546, 2),
    (0.0789, -2),
    (1, 0),
    (9.99, 0),
    (10, 1),
    (1000, 3),
    (0.001, -3),
    (-546, 2),
    (1e23, 23),
    (1.5e308, 308),
    (1e308, 308),
    (5e-324, -324),
    (0, math.inf),
])
def test_order_of_magnitude(x, expected):
    """order_of_magnitude is the exponent of the leading digit."""
    assert order_of_magnitude(x) == expected


@pytest.mark.parametrize("x,expected", [
    (546, -2),
    (0.0789, 2),
    (7.8, 0),
    (0, math.inf),
])
def test_digit_rank(x, expected):
    """digit_rank counts positions to the right of the ones place."""
    assert digit_rank(x) == expected


def test_every_operator_has_a_rule():
    """Dispatch covers the whole Operator enum."""
    assert set(RULES) == set(Operator)


@pytest.mark.parametrize("op,a,b,value,sf", [
    (Operator.ADD, pv(1, 1), pv(1, 1), 2, 1),
    (Operator.ADD, pv(12.01, 4), pv(1.2, 2), 13.21, 3),        # aligned on the tenths
    (Operator.ADD, pv(1000, 1), pv(0.5, 1), 1000.5, 1),
    (Operator.ADD, pv(0.0789, 3), pv(2.054, 4), 2.1329, 4),
    (Operator.SUBTRACT, pv(10.0, 3), pv(9.5, 2), 0.5, 1),
    (Operator.SUBTRACT, pv(1.0, 2), pv(1.0, 2), 0.0, 2),       # zero result counts like "0.0"
    (Operator.MULTIPLY, pv(34.56, 4), pv(230, 2), 7948.8, 2),
    (Operator.DIVIDE, pv(546, 3), pv(70.00, 4), 7.8, 3),
    (Operator.POWER, pv(2.00, 3), pv(3, 1), 8, 2),             # only the base counts
    (Operator.SQRT, pv(4, 1), None, 2, 2),
])
def test_apply_arithmetic(op, a, b, value, sf):
    """Arithmetic operators follow the significant-figure rule table."""
    result = apply(op, a, b)
    assert result.value == pytest.approx(value)
    assert result.significant_figures == sf


@pytest.mark.parametrize("op,a,value,sf", [
    (Operator.LN, pv(7.8, 3), math.log(7.8), 4),        # one integer digit: +1
    (Operator.LN, pv(1.0e9, 2), math.log(1.0e9), 4),    # two integer digits: +2
    (Operator.LN, pv(1.05, 3), math.log(1.05), 3),      # below 0.1: unchanged
    (Operator.LOG10, pv(1000, 4), 3.0, 5),
    (Operator.EXP, pv(2.05, 3), math.exp(2.05), 2),     # two decimals kept
    (Operator.EXP, pv(0.5, 1), math.exp(0.5), 1),
    (Operator.EXP, pv(20.5, 3), math.exp(20.5), 1),
    (Operator.POW10, pv(0.30, 2), 10 ** 0.30, 2),
    (Operator.POW10, pv(2.0, 2), 100.0, 1),
])
def test_apply_logarithms_and_exponentials(op, a, value, sf):
    """Logarithm and exponential rules depend on the operand's magnitude."""
    result = apply(op, a)
    assert result.value == pytest.approx(value)
    assert result.significant_figures == sf


def test_unary_operator_ignores_second_operand():
    """The second slot of a unary operator is not used."""
    assert apply(Operator.SQRT, pv(4, 1), pv(9, 5)) == apply(Operator.SQRT, pv(4, 1))


def test_exact_constants_never_limit_precision():
    """Infinite significant figures defer to the other operand."""
    assert apply(Operator.MULTIPLY, pv(math.pi, math.inf), pv(2, 1)).significant_figures == 1
    assert apply(Operator.MULTIPLY, pv(math.pi, math.inf), pv(math.e, math.inf)).is_exact
    assert apply(Operator.ADD, pv(math.pi, math.inf), pv(math.e, math.inf)).is_exact
    assert apply(Operator.LN, pv(math.e, math.inf)).is_exact


@pytest.mark.parametrize("a,b,value,sf", [
    (pv(0.0, 2), pv(0.0, 2), 0.0, 2),
    (pv(0.0, 3), pv(0.0, 1), 0.0, 1),
    (pv(0.0, 2), pv(math.pi, math.inf), math.pi, 2),
    (pv(0.0, 1), pv(0.0, math.inf), 0.0, 1),
])
def test_adding_measured_zeros_stays_measured(a, b, value, sf):
    """A sum with a measured zero operand is never exact."""
    result = apply(Operator.ADD, a, b)
    assert result.value == pytest.approx(value)
    assert result.significant_figures == sf
    assert not result.is_exact


def test_power_of_one_significant_figure_is_clamped(caplog):
    """A 1-s.f. base would yield 0 s.f.; the result is clamped and a warning is logged."""
    with caplog.at_level(logging.WARNING, logger="sigfig_calculator"):
        result = apply(Operator.POWER, pv(2, 1), pv(3, 1))
    assert result.value == 8
    assert result.significant_figures == 1
    assert any("clamped" in record.getMessage() for record in caplog.records)


def test_custom_floor():
    """The clamp floor can be raised."""
    result = apply(Operator.POWER, pv(2, 1), pv(3, 1), min_significant_figures=2)
    assert result.significant_figures == 2


def test_binary_operator_requires_two_operands():
    """Binary operators refuse a missing second operand."""
    with pytest.raises(ValueError):
        apply(Operator.ADD, pv(1, 1))


@pytest.mark.parametrize("op,a,b", [
    (Operator.DIVIDE, pv(1, 1), pv(0, 1)),
    (Operator.LN, pv(0, 1), None),
    (Operator.LN, pv(-1, 1), None),
    (Operator.LOG10, pv(0, 1), None),
    (Operator.SQRT, pv(-4, 1), None),
    (Operator.POWER, pv(-8, 1), pv(1 / 3, 1)),
    (Operator.POWER, pv(0, 1), pv(-1, 1)),
    (Operator.EXP, pv(1000, 1), None),
    (Operator.POW10, pv(400, 1), None),
    (Operator.MULTIPLY, pv(1e308, 1), pv(10, 1)),
])
def test_apply_domain_errors(op, a, b):
    """Undefined or non-finite results raise NumericDomainError."""
    with pytest.raises(NumericDomainError):
        apply(op, a, b)
