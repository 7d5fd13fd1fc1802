"""
Filter Translator - natural language to vehicle auction filters.

Main entry point for creating translators.
"""

from filter_translator.core.models import TranslatorConfig
from filter_translator.orchestrator import FilterTranslator

__all__ = ["FilterTranslator", "TranslatorConfig"]
