"""Prompt generation and completion handling components."""

from filter_translator.query.normalizer import FilterNormalizer, snap_to_bucket
from filter_translator.query.prompt_generator import PromptGenerator
from filter_translator.query.response_parser import parse_completion

__all__ = ["FilterNormalizer", "snap_to_bucket", "PromptGenerator", "parse_completion"]
