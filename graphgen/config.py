"""
Configuration for graphgen.

Settings are read from the environment (prefix GRAPHGEN_) and may be
overridden by command-line flags.

Environment variables:
    GRAPHGEN_LOG_LEVEL: DEBUG, INFO, WARNING or ERROR (default INFO)
    GRAPHGEN_LOG_FORMAT: text or json (default text)
    GRAPHGEN_OUTPUT_FORMAT: json or python (default json)
    GRAPHGEN_RESERVED_WORDS: JSON list of extra names to escape
"""

from __future__ import annotations

import logging
from typing import Literal

import json_log_formatter
from pydantic import Field
from pydantic_settings import BaseSettings

from .naming import reserved_words


class CodegenSettings(BaseSettings):
    """Code generation configuration."""

    # Logging
    log_level: str = Field(default="INFO")
    log_format: Literal["text", "json"] = Field(default="text")

    # Output
    output_format: Literal["json", "python"] = Field(default="json")
    json_indent: int = Field(default=2, description="Indent of JSON output (0 = compact)")

    # Names escaped in addition to Python keywords
    reserved_words: list[str] = Field(default_factory=list)

    model_config = {"env_prefix": "GRAPHGEN_"}

    def reserved(self) -> frozenset[str]:
        """The complete reserved-word table."""
        return reserved_words(self.reserved_words)


def setup_logging(settings: CodegenSettings) -> None:
    """Configure logging based on settings.

    Args:
        settings: Codegen settings
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    if settings.log_format == "json":
        formatter: logging.Formatter = json_log_formatter.JSONFormatter()
    else:
        formatter = logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")

    handler = logging.StreamHandler()
    handler.setFormatter(formatter)

    root_logger = logging.getLogger()
    root_logger.setLevel(level)
    root_logger.handlers = [handler]
