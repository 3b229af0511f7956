"""Evaluator configuration."""
import logging
import os
from typing import Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


ENV_PREFIX = "SIGFIG_"


class EvaluatorConfig(BaseModel):
    """
    Settings shared by the parser, the rule engine and the batch runner.

    Values can come from keyword arguments or from ``SIGFIG_*`` environment
    variables through :meth:`from_env`.
    """

    # Immutable so one instance can be shared between worker processes safely
    model_config = ConfigDict(frozen=True)

    min_significant_figures: int = Field(
        default=1, ge=1, description="Floor applied when a rule yields fewer significant figures"
    )
    max_expression_length: int = Field(
        default=10_000, ge=1, description="Longest accepted expression, in characters"
    )
    log_level: str = Field(default="INFO", description="Level of the package logger")

    @field_validator("log_level")
    def log_level_must_be_known(cls, v: str) -> str:
        """Ensure the level is one of the standard logging level names."""
        level = v.strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"Unknown log level: {v!r}")
        return level

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EvaluatorConfig":
        """
        Build a configuration from ``SIGFIG_<FIELD>`` environment variables.

        Unset variables keep their defaults; set ones are validated by the model.

        :param Mapping environ: Environment to read, defaults to ``os.environ``

        :return: Validated configuration
        :rtype: EvaluatorConfig
        :raises pydantic.ValidationError: If a variable holds an invalid value
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            key = f"{ENV_PREFIX}{name.upper()}"
            if key in environ:
                values[name] = environ[key]
        return cls.model_validate(values)
