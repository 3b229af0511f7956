"""Errors raised while evaluating a significant-figure expression."""
from typing import Optional


class SigFigError(ValueError):
    """
    Base class for every evaluation failure.

    Subclasses ValueError so callers that treat any invalid expression as a
    ValueError keep working.

    :param str message: Human readable description
    :param str fragment: Offending substring or operation, if known
    """

    kind: str = "SigFigError"

    def __init__(self, message: str, fragment: Optional[str] = None) -> None:
        super().__init__(message)
        self.fragment = fragment


class MalformedLiteral(SigFigError):
    """A token expected to be a number or a constant could not be parsed."""

    kind = "MalformedLiteral"


class MalformedExpression(SigFigError):
    """The expression cannot be split into a valid operator tree."""

    kind = "MalformedExpression"


class NumericDomainError(SigFigError):
    """An operation produced a non-finite or undefined value."""

    kind = "NumericDomainError"
