"""Turn numeral tokens and constant names into PrecisionValue objects."""
import math
import re

from sigfig_calculator.common.errors import MalformedLiteral
from sigfig_calculator.common.models import PrecisionValue


# Plain decimal numeral with optional sign and optional exponent.
# float() alone would also accept "inf", "nan" and "1_000".
NUMERAL_PATTERN = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:e[+-]?\d+)?", re.IGNORECASE)

CONSTANT_VALUES: dict[str, float] = {
    "e": math.e,
    "pi": math.pi,
}


def is_numeral(token: str) -> bool:
    """Return True if the token is a plain numeral such as "-0.50" or "1.02e4"."""
    return NUMERAL_PATTERN.fullmatch(token) is not None


def count_significant_figures(token: str) -> int:
    """
    Count the significant figures written in a numeral.

    Rules:
        - scientific notation: every mantissa digit after leading zeros counts ("1.0200e4" -> 5)
        - zero: digits after the decimal point plus one ("0.00" -> 3, "0" -> 1)
        - otherwise leading zeros never count, trailing zeros count only
          when a decimal point is written ("2300" -> 2, "2300." -> 4)

    :param str token: Numeral accepted by :func:`is_numeral`

    :return: Number of significant figures, at least 1
    :rtype: int
    :raises MalformedLiteral: If the token is not a numeral
    """
    if not is_numeral(token):
        raise MalformedLiteral(f"Not a numeric literal: {token!r}", fragment=token)

    digits = token.lstrip("+-").lower()
    mantissa, has_exponent, _ = digits.partition("e")

    if float(mantissa) == 0:
        _, _, decimals = mantissa.partition(".")
        return len(decimals) + 1 if "." in mantissa else 1

    significant = mantissa.replace(".", "").lstrip("0")
    if not has_exponent and "." not in mantissa:
        # Trailing zeros without a decimal point are placeholders
        significant = significant.rstrip("0")
    return len(significant)


def interpret_literal(token: str) -> PrecisionValue:
    """
    Convert a numeral or a constant name into a PrecisionValue.

    Constants ("e", "pi", any case) are exact and carry infinite significant figures.

    :param str token: Numeral or constant name

    :return: Value with its significant figures
    :rtype: PrecisionValue
    :raises MalformedLiteral: If the token is neither a numeral nor a constant
    """
    constant = CONSTANT_VALUES.get(token.lower())
    if constant is not None:
        return PrecisionValue(value=constant, significant_figures=math.inf)

    significant_figures = count_significant_figures(token)
    value = float(token)
    if not math.isfinite(value):
        raise MalformedLiteral(f"Numeric literal out of range: {token!r}", fragment=token)
    return PrecisionValue(value=value, significant_figures=significant_figures)
