"""Core interfaces, configuration and errors for the filter translator."""

from filter_translator.core.enums import (
    EFuelType,
    get_enum_as_key_value_pairs,
)
from filter_translator.core.exceptions import (
    FilterTranslatorError,
    CompletionError,
    CompletionTimeoutError,
    CompletionAuthError,
    CompletionRateLimitError,
    CompletionServiceError,
    MalformedCompletionError,
    InvalidFilterError,
)
from filter_translator.core.interfaces import ICompletionClient
from filter_translator.core.models import (
    FilterConstraints,
    LLMConfig,
    TranslatorConfig,
)

__all__ = [
    "EFuelType",
    "get_enum_as_key_value_pairs",
    "FilterTranslatorError",
    "CompletionError",
    "CompletionTimeoutError",
    "CompletionAuthError",
    "CompletionRateLimitError",
    "CompletionServiceError",
    "MalformedCompletionError",
    "InvalidFilterError",
    "ICompletionClient",
    "FilterConstraints",
    "LLMConfig",
    "TranslatorConfig",
]
