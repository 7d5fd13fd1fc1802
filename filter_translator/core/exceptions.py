"""
Error taxonomy for filter translation.

Completion failures are classified so the API layer can map them to
distinct response codes.
"""

from typing import Any, Dict, List, Optional


class FilterTranslatorError(Exception):
    """Base class for all translation errors."""


class CompletionError(FilterTranslatorError):
    """The completion service could not produce a response."""


class CompletionTimeoutError(CompletionError):
    """The completion call timed out after exhausting its retry budget."""


class CompletionAuthError(CompletionError):
    """The completion service rejected the configured credentials."""


class CompletionRateLimitError(CompletionError):
    """The completion service is rate limiting this client."""


class CompletionServiceError(CompletionError):
    """Any other transport or service failure."""


class MalformedCompletionError(FilterTranslatorError):
    """The completion text could not be parsed into a JSON object."""

    def __init__(self, message: str, raw_output: Optional[str] = None):
        super().__init__(message)
        self.raw_output = raw_output


class InvalidFilterError(FilterTranslatorError):
    """The parsed completion violates the auction filter schema."""

    def __init__(self, message: str, errors: Optional[List[Dict[str, Any]]] = None):
        super().__init__(message)
        self.errors = errors or []
