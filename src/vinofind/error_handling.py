"""
Exceptions and error policies for Vinofind.

The ranking core never raises for degraded inputs; these types mark the
boundaries where collaborators (embedder, LLM, ingestion) can fail.
"""

import json
import logging
from typing import Any, Optional, Tuple, Type

from openai import OpenAIError, RateLimitError
from pydantic import ValidationError

logger = logging.getLogger(__name__)


class VinofindError(Exception):
    """Base exception for Vinofind."""
    pass


class EmbeddingError(VinofindError):
    """Embedding capability failed or timed out."""
    pass


class LLMError(VinofindError):
    """Commentary generation failed after retries."""
    pass


class DataLoadError(VinofindError):
    """Catalog or embedding ingestion failed."""
    pass


# Malformed completions. ValueError covers empty completions as well.
_MALFORMED_RESPONSE_ERRORS = (ValidationError, json.JSONDecodeError, ValueError, IndexError, AttributeError)


def handle_llm_error(error: Exception, operation: str, fallback_value: Any = None) -> Any:
    """
    Classify a failed LLM call.

    Args:
        error: Exception raised by the call (after tenacity gave up)
        operation: What was being generated, for the log line
        fallback_value: Returned for malformed responses

    Returns:
        fallback_value when the response itself was unusable

    Raises:
        LLMError: for rate limits, API failures and anything unexpected
    """
    if isinstance(error, _MALFORMED_RESPONSE_ERRORS):
        logger.error(f"Malformed LLM response during {operation}: {type(error).__name__} - {error}")
        return fallback_value

    if isinstance(error, RateLimitError):
        logger.warning(f"Rate limit persisted through retries during {operation}")
        raise LLMError(f"Rate limit during {operation}") from error

    if isinstance(error, OpenAIError):
        logger.error(f"OpenAI API error during {operation}: {error}")
        raise LLMError(f"API error during {operation}") from error

    logger.error(f"Unexpected error during {operation}: {type(error).__name__} - {error}")
    raise LLMError(f"Unexpected error during {operation}") from error


class ErrorContext:
    """
    Log a failing block and, when a fallback exists, swallow it.

    Example:
        with ErrorContext("reading cached catalog", fallback_value=False) as ctx:
            ...
        if ctx.error is not None:
            ...
    """

    def __init__(
        self,
        operation: str,
        fallback_value: Any = None,
        recoverable: Tuple[Type[BaseException], ...] = (Exception,)
    ):
        self.operation = operation
        self.fallback_value = fallback_value
        self.recoverable = recoverable
        self.error: Optional[BaseException] = None

    def __enter__(self) -> 'ErrorContext':
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        if exc_type is None:
            return False

        self.error = exc_val
        logger.error(f"Error in {self.operation}: {exc_type.__name__} - {exc_val}")
        return self.fallback_value is not None and issubclass(exc_type, self.recoverable)


__all__ = [
    'VinofindError',
    'EmbeddingError',
    'LLMError',
    'DataLoadError',
    'handle_llm_error',
    'ErrorContext',
]
