"""Parse and evaluate arithmetic expressions with significant figures."""
import re
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from sigfig_calculator.common.config import EvaluatorConfig
from sigfig_calculator.common.errors import MalformedExpression
from sigfig_calculator.common.logger import logger
from sigfig_calculator.common.models import Branch, ExpressionNode, Leaf, Operator, PrecisionValue
from sigfig_calculator.core import rules
from sigfig_calculator.core.decomposer import decompose
from sigfig_calculator.core.literals import interpret_literal


WHITESPACE = re.compile(r"\s+")


class ExpressionParser(BaseModel):
    """
    Parse and evaluate arithmetic expressions, tracking significant figures.

    Design constraints:
        - No eval(), no dynamic code execution
        - Pure computation: no shared state between evaluations

    Algorithm:
        1. Normalize: drop whitespace, lower-case
        2. Decompose the string into an operator tree, splitting at the
           lowest-binding operator outside parentheses first
        3. Convert every numeral and constant leaf into a PrecisionValue
        4. Reduce the tree bottom-up, applying the significant-figure rule of
           each operator, until a single PrecisionValue remains

    Examples:
        - Expression: 34.56*230
        - Tree: ["34.56", "*", "230"]
        - Result: 7948.8 with 2 significant figures (min of 4 and 2)
    """

    model_config = ConfigDict(frozen=True)

    config: EvaluatorConfig = Field(default_factory=EvaluatorConfig, description="Evaluator settings")

    @staticmethod
    def normalize(expr: str) -> str:
        """
        Remove all whitespace and fold the expression to lower case.

        :param str expr: Raw expression

        :return: Normalized expression
        :rtype: str
        """
        return WHITESPACE.sub("", expr).lower()

    @staticmethod
    def decompose(expr: str) -> ExpressionNode:
        """
        Build the operator tree of a normalized expression.

        :param str expr: Normalized expression

        :return: Tree with string leaves
        :rtype: ExpressionNode
        :raises MalformedExpression: If the expression cannot be decomposed
        """
        return decompose(expr)

    @staticmethod
    def convert(node: ExpressionNode) -> ExpressionNode:
        """
        Replace every numeral and constant leaf with its PrecisionValue.

        Operator symbols and function names are kept as strings.

        :param ExpressionNode node: Tree returned by :meth:`decompose`

        :return: Tree of the same shape with converted leaves
        :rtype: ExpressionNode
        :raises MalformedLiteral: If a leaf is neither a numeral nor a constant
        """
        if isinstance(node, Branch):
            return Branch(children=tuple(ExpressionParser.convert(child) for child in node.children))
        if node.is_symbol or isinstance(node.token, PrecisionValue):
            return node
        return Leaf(token=interpret_literal(node.token))

    def reduce(self, node: ExpressionNode) -> PrecisionValue:
        """
        Collapse a converted tree into a single PrecisionValue.

        :param ExpressionNode node: Tree returned by :meth:`convert`

        :return: Value of the tree with its significant figures
        :rtype: PrecisionValue
        :raises MalformedExpression: If an operand position holds a bare symbol
        :raises NumericDomainError: If an operation is undefined or not finite
        """
        if isinstance(node, Leaf):
            if not isinstance(node.token, PrecisionValue):
                raise MalformedExpression(f"Expected a value, got {node.token!r}", fragment=node.token)
            return node.token

        operator = Operator.from_token(node.operator_token)
        operands = [self.reduce(child) for child in node.operands]
        result = rules.apply(
            operator,
            *operands,
            min_significant_figures=self.config.min_significant_figures,
        )
        logger.debug(f"🧮 {operator.name} {[o.value for o in operands]} -> {result.value} ({result.significant_figures} s.f.)")
        return result

    def evaluate(self, expr: str) -> PrecisionValue:
        """
        Evaluate an arithmetic expression with significant figures.

        :param str expr: Arithmetic expression string, e.g. "34.56*230^(0.0789+ln(546/70.00))"

        :return: Computed value and its significant figures
        :rtype: PrecisionValue
        :raises MalformedExpression: If the expression is empty, too long, too deeply nested or malformed
        :raises MalformedLiteral: If a number cannot be read
        :raises NumericDomainError: If an operation is undefined or not finite
        """
        normalized: str = self.normalize(expr)

        if not normalized:
            raise MalformedExpression("Empty expression", fragment=expr)
        if len(normalized) > self.config.max_expression_length:
            raise MalformedExpression(
                f"Expression longer than {self.config.max_expression_length} characters",
                fragment=normalized[:50],
            )

        try:
            tree: ExpressionNode = self.convert(self.decompose(normalized))
            result: PrecisionValue = self.reduce(tree)
        except RecursionError as exc:
            raise MalformedExpression("Expression nested too deeply", fragment=normalized[:50]) from exc
        logger.debug(f"✅ {expr!r} = {result.value} ({result.significant_figures} s.f.)")
        return result


def evaluate(expr: str, config: Optional[EvaluatorConfig] = None) -> PrecisionValue:
    """
    Evaluate an expression with a default or given configuration.

    :param str expr: Arithmetic expression string
    :param EvaluatorConfig config: Settings, defaults to ``EvaluatorConfig()``

    :return: Computed value and its significant figures
    :rtype: PrecisionValue
    """
    parser = ExpressionParser() if config is None else ExpressionParser(config=config)
    return parser.evaluate(expr)
