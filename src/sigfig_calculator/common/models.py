"""Pydantic models shared by the evaluator and the batch layer."""
from enum import Enum
import math
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sigfig_calculator.common.errors import MalformedExpression


# Significant-figure count: a positive int, or math.inf for exact constants
SigFigs = Union[int, float]


class PrecisionValue(BaseModel):
    """A floating-point value tagged with its number of significant figures."""

    model_config = ConfigDict(frozen=True)

    value: float = Field(..., allow_inf_nan=False, description="Numeric value")
    significant_figures: SigFigs = Field(
        ..., description="Significant figures, or math.inf for an exact constant"
    )

    @field_validator("significant_figures")
    def significant_figures_must_be_positive(cls, v: SigFigs) -> SigFigs:
        """Accept integers >= 1 and infinity only."""
        if isinstance(v, float):
            if v == math.inf:
                return v
            if not v.is_integer():
                raise ValueError(f"Significant figures must be a whole number, got {v}")
            v = int(v)
        if v < 1:
            raise ValueError(f"Significant figures must be at least 1, got {v}")
        return v

    @property
    def is_exact(self) -> bool:
        """True for defined constants that never limit precision."""
        return self.significant_figures == math.inf

    def negate(self) -> "PrecisionValue":
        """Return the opposite value with the same significant figures."""
        return PrecisionValue(value=-self.value, significant_figures=self.significant_figures)


class Operator(str, Enum):
    """Operations understood by the rule engine, keyed by their source token."""

    ADD = "+"
    SUBTRACT = "-"
    MULTIPLY = "*"
    DIVIDE = "/"
    POWER = "^"
    SQRT = "sqrt"
    LN = "ln"
    EXP = "exp"
    LOG10 = "log"
    POW10 = "antilog"

    @property
    def is_unary(self) -> bool:
        return self not in BINARY_OPERATORS

    @classmethod
    def from_token(cls, token: str) -> "Operator":
        """
        Resolve an operator symbol or function name.

        :param str token: Symbol such as "+" or function name such as "ln"

        :return: Matching operator
        :rtype: Operator
        :raises MalformedExpression: If the token names no operator
        """
        try:
            return cls(token)
        except ValueError:
            raise MalformedExpression(f"Unknown operator: {token!r}", fragment=token) from None


BINARY_OPERATORS = frozenset(
    {Operator.ADD, Operator.SUBTRACT, Operator.MULTIPLY, Operator.DIVIDE, Operator.POWER}
)

OPERATOR_SYMBOLS: Tuple[str, ...] = tuple(op.value for op in Operator if not op.is_unary)
# Longest first: "antilog" must be tried before "log"
FUNCTION_NAMES: Tuple[str, ...] = tuple(
    sorted((op.value for op in Operator if op.is_unary), key=len, reverse=True)
)
CONSTANTS: Tuple[str, ...] = ("e", "pi")


class Leaf(BaseModel):
    """
    Tree leaf.

    Holds the raw token right after decomposition and a PrecisionValue once
    numbers and constants have been converted. Operator symbols and function
    names stay as strings.
    """

    model_config = ConfigDict(frozen=True)

    token: Union[PrecisionValue, str]

    @property
    def is_symbol(self) -> bool:
        return isinstance(self.token, str) and (
            self.token in OPERATOR_SYMBOLS or self.token in FUNCTION_NAMES
        )

    def as_list(self) -> Any:
        return self.token


class Branch(BaseModel):
    """
    Tree branch.

    Either ``[left, operator, right]`` for a binary operator or
    ``[function, operand]`` for a function call.
    """

    model_config = ConfigDict(frozen=True)

    children: Tuple["ExpressionNode", ...] = Field(..., min_length=2, max_length=3)

    @property
    def is_function(self) -> bool:
        return len(self.children) == 2

    @property
    def operator_token(self) -> str:
        symbol = self.children[0] if self.is_function else self.children[1]
        return symbol.token

    @property
    def operands(self) -> Tuple["ExpressionNode", ...]:
        if self.is_function:
            return (self.children[1],)
        return (self.children[0], self.children[2])

    def as_list(self) -> List[Any]:
        """Return the tree as nested lists, e.g. ``["1", "+", ["2", "*", "3"]]``."""
        return [child.as_list() for child in self.children]


ExpressionNode = Union[Branch, Leaf]
Branch.model_rebuild()


class EvaluationRequest(BaseModel):
    """A single expression submitted for evaluation."""

    expression: str = Field(..., description="Arithmetic expression as a string")

    @field_validator("expression")
    def expression_must_not_be_empty(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Expression cannot be empty")
        return v


class EvaluationResult(BaseModel):
    """Outcome of evaluating one expression, successful or not."""

    expression: str = Field(..., description="Original arithmetic expression")
    line: int = Field(default=1, ge=1, description="Line number in the input file")
    value: Optional[float] = Field(default=None, description="Evaluated numeric value")
    significant_figures: Optional[SigFigs] = Field(
        default=None, description="Significant figures of the value"
    )
    error: Optional[str] = Field(default=None, description="Error message on failure")
    error_kind: Optional[str] = Field(default=None, description="Error class name on failure")

    @property
    def ok(self) -> bool:
        return self.error is None

    def describe(self) -> str:
        """
        Format the result as one line of a results file.

        :return: "<expr> = <value> (<n> s.f.)" or "<expr> -> ERROR: <message>"
        :rtype: str
        """
        if not self.ok:
            return f"{self.expression} -> ERROR: {self.error}"
        if self.significant_figures == math.inf:
            return f"{self.expression} = {self.value} (exact)"
        return f"{self.expression} = {self.value} ({self.significant_figures} s.f.)"
