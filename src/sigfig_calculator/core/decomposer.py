"""
Split an expression string into an operator tree.

No tokenizer is involved: each string is cracked once at its lowest-binding
operator, outside of any parentheses, and both halves are decomposed again.

Order of priority outside parentheses, split first to last:

    +  -        tier 4 (left-associative, rightmost occurrence wins)
    *  /        tier 3 (left-associative, rightmost occurrence wins)
    ^           tier 2 (right-associative, leftmost occurrence wins)
    functions   tier 1 (sqrt, ln, exp, log, antilog)

Example decomposition::

    34.56*230^(0.0789+ln(546/70.00))
    ["34.56", "*", "230^(0.0789+ln(546/70.00))"]
    ["34.56", "*", ["230", "^", "0.0789+ln(546/70.00)"]]
    ["34.56", "*", ["230", "^", ["0.0789", "+", "ln(546/70.00)"]]]
    ["34.56", "*", ["230", "^", ["0.0789", "+", ["ln", "546/70.00"]]]]
    ["34.56", "*", ["230", "^", ["0.0789", "+", ["ln", ["546", "/", "70.00"]]]]]
"""
from typing import List, Optional

from sigfig_calculator.common.errors import MalformedExpression
from sigfig_calculator.common.models import (
    CONSTANTS,
    FUNCTION_NAMES,
    OPERATOR_SYMBOLS,
    Branch,
    ExpressionNode,
    Leaf,
)
from sigfig_calculator.core.literals import is_numeral


ADDITIVE = "+-"
MULTIPLICATIVE = "*/"
POWER = "^"


def is_acceptable(token: str) -> bool:
    """
    Return True if the token needs no further cracking.

    Acceptable tokens are bare operator symbols, function names, constants and plain numerals.
    """
    return (
        token in OPERATOR_SYMBOLS
        or token in FUNCTION_NAMES
        or token in CONSTANTS
        or is_numeral(token)
    )


def check_balanced(expression: str) -> None:
    """
    Ensure every parenthesis in the expression is matched.

    :param str expression: Expression string

    :raises MalformedExpression: If a ")" has no opening match or a "(" is never closed
    """
    depth = 0
    for i, char in enumerate(expression):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth < 0:
                raise MalformedExpression(
                    f"Unmatched ')' at position {i}: {expression!r}", fragment=expression
                )
    if depth:
        raise MalformedExpression(f"Unclosed '(' in {expression!r}", fragment=expression)


def _encloses(token: str) -> bool:
    """True if the first "(" of the token is closed by its last character."""
    depth = 0
    for i, char in enumerate(token):
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
            if depth == 0 and i < len(token) - 1:
                return False
    return True


def strip_parentheses(token: str) -> str:
    """
    Remove redundant outer parentheses.

    "((2+3))" becomes "2+3" but "(2+3)*(4+5)" is kept: its first pair closes
    before the end of the string and protects the order of operations.

    :param str token: Balanced expression string

    :return: Token without enclosing parentheses
    :rtype: str
    """
    while len(token) >= 2 and token[0] == "(" and token[-1] == ")" and _encloses(token):
        token = token[1:-1]
    return token


def normalize_negation(token: str) -> str:
    """Rewrite a leading "-(", "-pi" or "-sqrt..." as a multiplication by -1."""
    if len(token) > 1 and token[0] == "-" and (token[1] == "(" or token[1].isalpha()):
        return "-1*" + token[1:]
    return token


def _is_unary_sign(token: str, i: int) -> bool:
    """True if the "+" or "-" at position i is a sign rather than an operator."""
    if i == 0:
        return True
    previous = token[i - 1]
    if previous in OPERATOR_SYMBOLS or previous == "(":
        return True
    # Exponent sign of a numeral such as 1.5e-3
    return previous in "eE" and i >= 2 and (token[i - 2].isdigit() or token[i - 2] == ".")


def _match_function(token: str, i: int) -> Optional[str]:
    """Return the function name starting at position i, longest name first."""
    for name in FUNCTION_NAMES:
        if token.startswith(name, i):
            return name
    return None


def crack(token: str) -> List[str]:
    """
    Split a token once at its lowest-binding operator outside parentheses.

    :param str token: Balanced expression string without redundant parentheses

    :return: ``[left, operator, right]`` or ``[function, operand]``
    :rtype: List[str]
    :raises MalformedExpression: If no split point exists or a function follows other text
    """
    additive: Optional[int] = None
    multiplicative: Optional[int] = None
    power: Optional[int] = None
    function: Optional[int] = None
    function_name = ""

    depth = 0
    i = 0
    while i < len(token):
        char = token[i]
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        elif depth == 0:
            if char in ADDITIVE:
                if not _is_unary_sign(token, i):
                    additive = i
            elif char in MULTIPLICATIVE:
                multiplicative = i
            elif char == POWER:
                if power is None:
                    power = i
            elif char.isalpha():
                name = _match_function(token, i)
                if name is not None:
                    if function is None:
                        function, function_name = i, name
                    # Skip the rest of the name so "log" is not found again inside "antilog"
                    i += len(name)
                    continue
        i += 1

    for position in (additive, multiplicative, power):
        if position is not None:
            return [token[:position], token[position], token[position + 1:]]

    if function is not None:
        if function > 0:
            raise MalformedExpression(
                f"Unexpected {token[:function]!r} before function {function_name!r} in {token!r}",
                fragment=token,
            )
        return [function_name, token[len(function_name):]]

    raise MalformedExpression(f"Cannot parse {token!r}", fragment=token)


def _build(token: str) -> ExpressionNode:
    """Recursively decompose a balanced token into a tree."""
    raw = token
    token = normalize_negation(strip_parentheses(token))

    if not token:
        raise MalformedExpression(f"Empty operand: {raw!r}", fragment=raw)
    if token in OPERATOR_SYMBOLS or token in FUNCTION_NAMES:
        raise MalformedExpression(f"{token!r} is missing an operand", fragment=token)
    if is_acceptable(token):
        return Leaf(token=token)

    parts = crack(token)
    if any(not part for part in parts):
        raise MalformedExpression(f"Missing operand in {token!r}", fragment=token)

    if len(parts) == 3:
        left, symbol, right = parts
        return Branch(children=(_build(left), Leaf(token=symbol), _build(right)))
    name, operand = parts
    return Branch(children=(Leaf(token=name), _build(operand)))


def decompose(expression: str) -> ExpressionNode:
    """
    Decompose a normalized expression into an operator tree.

    The expression must already be free of whitespace and lower-cased.

    :param str expression: Expression such as "34.56*230^(0.0789+ln(546/70.00))"

    :return: Tree whose leaves hold string tokens
    :rtype: ExpressionNode
    :raises MalformedExpression: If the expression cannot be split into a valid tree
    """
    check_balanced(expression)
    return _build(expression)
