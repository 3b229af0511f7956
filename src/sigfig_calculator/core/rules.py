"""
Significant-figure propagation rules.

Rules of significant figures:
    - addition and subtraction keep the left-most last significant digit of the operands
    - multiplication and division keep the lowest significant-figure count of the operands
    - powers keep one significant figure less than the base
    - square roots keep one significant figure more than the operand
    - logarithms keep as many digits after the decimal point as the operand had significant figures
    - exponentials and antilogarithms keep as many significant figures as the operand had
      digits after the decimal point

Digit rank counts digit positions to the right of the ones place:

    rank:   -3 -2 -1  0 .  1  2  3
    digit:   1  2  3  4 .  5  6  7

so the rank of a value's leading digit is the negated order of magnitude, and
the last significant digit of ``x`` sits at ``rank(x) + sf(x) - 1``.
"""
from collections.abc import Callable
from decimal import Decimal
import math
from typing import Optional

from sigfig_calculator.common.errors import NumericDomainError
from sigfig_calculator.common.logger import logger
from sigfig_calculator.common.models import Operator, PrecisionValue, SigFigs


# A rule takes both operands and returns the raw (value, significant figures) pair
RuleFn = Callable[[PrecisionValue, Optional[PrecisionValue]], tuple[float, SigFigs]]


def order_of_magnitude(x: float) -> float:
    """
    Return the power-of-ten exponent of the leading digit of ``x``.

    ``order_of_magnitude(546) == 2``, ``order_of_magnitude(0.0789) == -2``.
    Zero has no leading digit and returns ``math.inf``.

    :param float x: Finite value

    :return: Exponent as an int, or math.inf for zero
    :rtype: int | float
    """
    if x == 0:
        return math.inf
    # The shortest round-trip repr is the number as written, so 1e23 stays at 23
    # and no power of ten is ever computed (1.5e308 does not overflow)
    return Decimal(repr(abs(x))).adjusted()


def digit_rank(x: float) -> float:
    """Rank of the leading digit of ``x``: ``-order_of_magnitude(x)``, math.inf for zero."""
    if x == 0:
        return math.inf
    return -order_of_magnitude(x)


def _last_significant_rank(x: PrecisionValue) -> float:
    return digit_rank(x.value) + x.significant_figures - 1


def _compute(operation: str, fn: Callable[..., float], *args: float) -> float:
    """Run a math function and turn domain failures into NumericDomainError."""
    try:
        value = fn(*args)
    except (ArithmeticError, ValueError) as exc:
        raise NumericDomainError(f"Undefined result for {operation}: {exc}", fragment=operation) from exc
    if isinstance(value, complex) or not math.isfinite(value):
        raise NumericDomainError(f"Non-finite result for {operation}", fragment=operation)
    return value


def _add(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    value = _compute(f"{a.value} + {b.value}", lambda x, y: x + y, a.value, b.value)
    if a.is_exact and b.is_exact:
        return value, math.inf
    last = min(_last_significant_rank(a), _last_significant_rank(b))
    if last == math.inf:
        # Only measured zeros and exact constants left: the zeros' decimals set the last digit
        last = min(x.significant_figures - 1 for x in (a, b) if not x.is_exact)
    if value == 0:
        # Zero has no leading digit, count it like a written zero ("0.00" -> 3)
        return value, max(last, 0) + 1
    return value, last - digit_rank(value) + 1


def _subtract(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    return _add(a, b.negate())


def _multiply(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    value = _compute(f"{a.value} * {b.value}", lambda x, y: x * y, a.value, b.value)
    return value, min(a.significant_figures, b.significant_figures)


def _divide(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    if b.value == 0:
        raise NumericDomainError(f"Division by zero: {a.value} / {b.value}", fragment=f"{a.value} / 0")
    value = _compute(f"{a.value} / {b.value}", lambda x, y: x / y, a.value, b.value)
    return value, min(a.significant_figures, b.significant_figures)


def _power(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    # Only the base's precision matters
    value = _compute(f"{a.value} ^ {b.value}", math.pow, a.value, b.value)
    return value, a.significant_figures - 1


def _sqrt(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    value = _compute(f"sqrt({a.value})", math.sqrt, a.value)
    return value, a.significant_figures + 1


def _logarithm(operation: str, fn: Callable[[float], float], a: PrecisionValue) -> tuple[float, SigFigs]:
    if a.value <= 0:
        raise NumericDomainError(f"Logarithm of a non-positive number: {operation}", fragment=operation)
    value = _compute(operation, fn, a.value)
    rank = digit_rank(value)
    if rank < 1:
        return value, a.significant_figures + 1 - rank
    return value, a.significant_figures


def _ln(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    return _logarithm(f"ln({a.value})", math.log, a)


def _log10(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    return _logarithm(f"log({a.value})", math.log10, a)


def _exponential(operation: str, fn: Callable[[float], float], a: PrecisionValue) -> tuple[float, SigFigs]:
    value = _compute(operation, fn, a.value)
    rank = digit_rank(a.value)
    if rank > 0:
        return value, a.significant_figures
    return value, rank + a.significant_figures - 1


def _exp(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    return _exponential(f"exp({a.value})", math.exp, a)


def _pow10(a: PrecisionValue, b: Optional[PrecisionValue]) -> tuple[float, SigFigs]:
    return _exponential(f"antilog({a.value})", lambda x: math.pow(10.0, x), a)


RULES: dict[Operator, RuleFn] = {
    Operator.ADD: _add,
    Operator.SUBTRACT: _subtract,
    Operator.MULTIPLY: _multiply,
    Operator.DIVIDE: _divide,
    Operator.POWER: _power,
    Operator.SQRT: _sqrt,
    Operator.LN: _ln,
    Operator.EXP: _exp,
    Operator.LOG10: _log10,
    Operator.POW10: _pow10,
}


def apply(
    operator: Operator,
    a: PrecisionValue,
    b: Optional[PrecisionValue] = None,
    min_significant_figures: int = 1,
) -> PrecisionValue:
    """
    Apply an operator to its operands and propagate significant figures.

    Unary operators (sqrt, ln, exp, log, antilog) ignore ``b``.

    :param Operator operator: Operation to perform
    :param PrecisionValue a: First operand
    :param PrecisionValue b: Second operand, required for binary operators
    :param int min_significant_figures: Floor for the resulting significant figures

    :return: New value carrying its significant figures
    :rtype: PrecisionValue
    :raises ValueError: If a binary operator is missing its second operand
    :raises NumericDomainError: If the result is undefined or not finite
    """
    if not operator.is_unary and b is None:
        raise ValueError(f"Operator {operator.value!r} requires two operands")

    value, significant_figures = RULES[operator](a, None if operator.is_unary else b)

    if significant_figures < min_significant_figures:
        logger.warning(
            f"⚠️ {operator.name} rule gave {significant_figures} significant figure(s) "
            f"for {value}, clamped to {min_significant_figures}"
        )
        significant_figures = min_significant_figures

    return PrecisionValue(value=value, significant_figures=significant_figures)
