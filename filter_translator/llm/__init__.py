"""Completion client for the filter translator."""

from filter_translator.llm.client_factory import LLMClientFactory, classify_completion_error

__all__ = ["LLMClientFactory", "classify_completion_error"]
