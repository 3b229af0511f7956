"""Worker process evaluating a single expression."""
from multiprocessing.connection import Connection
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from sigfig_calculator.common.config import EvaluatorConfig
from sigfig_calculator.common.errors import SigFigError
from sigfig_calculator.common.logger import logger
from sigfig_calculator.common.models import EvaluationResult
from sigfig_calculator.core.parser import ExpressionParser


class EvaluationWorker(BaseModel):
    """
    Worker responsible for evaluating a single expression.

    Lifecycle:
        - Spawned by the batch runner in its own process
        - Receives one expression only
        - Sends an EvaluationResult dump (value or error) through a Pipe
        - Terminates immediately after computation
    """

    # Immutable for safety, Connection is not a pydantic type
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    conn: Connection = Field(..., description="Connection object for sending results back to the runner")
    expression: str = Field(..., description="Single arithmetic expression to evaluate")
    line_number: int = Field(..., ge=1, description="Line number in the input file")
    config: EvaluatorConfig = Field(default_factory=EvaluatorConfig, description="Evaluator settings")

    @field_validator("expression")
    def expression_must_not_be_empty(cls, v: str) -> str:
        """Ensure that the expression is not empty."""
        if not v.strip():
            raise ValueError("Expression cannot be empty")
        return v

    def evaluate(self) -> EvaluationResult:
        """
        Evaluate the expression, turning evaluation errors into an error result.

        :return: Result holding either the value or the error
        :rtype: EvaluationResult
        """
        try:
            value = ExpressionParser(config=self.config).evaluate(self.expression)
        except SigFigError as exc:
            logger.error(
                f"👷❌ Worker failed on line {self.line_number}: {exc.kind}: {exc}\n"
                f"Could not evaluate: {self.expression!r}"
            )
            return EvaluationResult(
                expression=self.expression,
                line=self.line_number,
                error=str(exc),
                error_kind=exc.kind,
            )
        return EvaluationResult(
            expression=self.expression,
            line=self.line_number,
            value=value.value,
            significant_figures=value.significant_figures,
        )

    def run(self) -> None:
        """
        Evaluate the expression and send the result or error through the pipe.

        :return: None
        """
        logger.info(f"👷🏁 Worker started on line {self.line_number}: {self.expression}")

        result: Optional[EvaluationResult] = None
        try:
            result = self.evaluate()
            self.conn.send(result.model_dump())
        finally:
            # Always close the connection
            self.conn.close()

            if result is not None and result.ok:
                logger.info(
                    f"👷✅ Worker finished on line {self.line_number}: "
                    f"{result.value} ({result.significant_figures} s.f.)"
                )
