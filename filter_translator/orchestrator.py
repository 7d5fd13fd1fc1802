"""
Filter translator - main entry point.

Coordinates schema building, prompt generation, the completion call and
response handling.
"""

import logging
from datetime import date
from typing import Any, Dict, Optional

from pydantic import BaseModel, ValidationError
from pydantic_ai.models import Model

from filter_translator.core.exceptions import InvalidFilterError
from filter_translator.core.interfaces import ICompletionClient
from filter_translator.core.models import FilterConstraints, TranslatorConfig
from filter_translator.llm.client_factory import LLMClientFactory
from filter_translator.query.normalizer import FilterNormalizer
from filter_translator.query.prompt_generator import PromptGenerator
from filter_translator.query.response_parser import parse_completion
from filter_translator.schema.constraints import build_field_constraints
from filter_translator.schema.model_builder import ModelBuilder

logger = logging.getLogger(__name__)


class FilterTranslator:
    """
    Translates natural language vehicle searches into auction filters.

    The constraint table, strict model, JSON schema and system prompt are
    built lazily and reused for every request until the date changes. The
    upper registration year bound and the date in the prompt follow the
    current day.
    """

    def __init__(
        self,
        completion_client: ICompletionClient,
        constraints: Optional[FilterConstraints] = None,
        validate_output: bool = True,
    ):
        """
        Initialize filter translator.

        Args:
            completion_client: Client for the chat completion service
            constraints: Allowed values and bounds (defaults to FilterConstraints())
            validate_output: If True, normalize and strictly validate the
                             parsed completion before returning it
        """
        self.completion_client = completion_client
        self.constraints = constraints or FilterConstraints()
        self.validate_output = validate_output

        # Cached components, valid for _built_on
        self._built_on: Optional[date] = None
        self.field_constraints: Dict[str, Dict[str, Any]] = {}
        self._model_builder: Optional[ModelBuilder] = None
        self._normalizer: Optional[FilterNormalizer] = None
        self._system_prompt: Optional[str] = None
        self._refresh()

    @classmethod
    def from_config(
        cls, config: TranslatorConfig, model: Optional[Model] = None
    ) -> "FilterTranslator":
        """
        Create a translator from configuration.

        Args:
            config: Translator configuration
            model: Optional prebuilt Pydantic AI model, replacing the
                   configured provider (used by tests)

        Returns:
            Configured FilterTranslator
        """
        return cls(
            completion_client=LLMClientFactory.from_config(config.llm, model=model),
            constraints=config.constraints,
            validate_output=config.validate_output,
        )

    def _refresh(self) -> None:
        """Rebuild the constraint table and drop cached components on a new day."""
        today = date.today()
        if today == self._built_on:
            return
        self._built_on = today
        self.field_constraints = build_field_constraints(self.constraints, today)
        self._model_builder = None
        self._normalizer = None
        self._system_prompt = None

    def _get_model_builder(self) -> ModelBuilder:
        """Get or create model builder."""
        self._refresh()
        if self._model_builder is None:
            self._model_builder = ModelBuilder(self.field_constraints)
        return self._model_builder

    def _get_normalizer(self) -> FilterNormalizer:
        """Get or create normalizer."""
        self._refresh()
        if self._normalizer is None:
            self._normalizer = FilterNormalizer(self.field_constraints)
        return self._normalizer

    def build_filter_model(self) -> type[BaseModel]:
        """Return the strict AuctionFilter model."""
        return self._get_model_builder().build("AuctionFilter")

    def get_json_schema(self) -> Dict[str, Any]:
        """Return the JSON schema embedded in the system prompt."""
        return self._get_model_builder().get_json_schema()

    def generate_system_prompt(self) -> str:
        """Return the system prompt for the completion service."""
        self._refresh()
        if self._system_prompt is None:
            self._system_prompt = PromptGenerator(
                self.field_constraints, self.get_json_schema(), today=self._built_on
            ).generate_system_prompt()
        return self._system_prompt

    def validate(self, raw_filter: Dict[str, Any]) -> Dict[str, Any]:
        """
        Normalize and strictly validate a parsed filter.

        Args:
            raw_filter: JSON object parsed from the completion

        Returns:
            Validated filter, with empty values omitted

        Raises:
            InvalidFilterError: If the filter violates the schema after normalization
        """
        normalized = self._get_normalizer().normalize(raw_filter)
        if not normalized:
            return {}

        try:
            validated = self.build_filter_model().model_validate(normalized)
        except ValidationError as e:
            logger.warning("Completion violates the filter schema: %s", e)
            raise InvalidFilterError(
                f"Completion violates the filter schema ({e.error_count()} errors)",
                errors=e.errors(include_url=False, include_context=False, include_input=False),
            ) from e

        return validated.model_dump(mode="json", exclude_none=True)

    async def translate(self, human_prompt: str) -> Dict[str, Any]:
        """
        Convert a natural language query into an auction filter.

        Args:
            human_prompt: Free-text user query

        Returns:
            Auction filter dictionary, `{}` if the query maps to no filter
        """
        if not human_prompt or not human_prompt.strip():
            return {}

        text = await self.completion_client.complete(
            self.generate_system_prompt(), human_prompt
        )
        raw_filter = parse_completion(text)

        if not self.validate_output:
            return raw_filter
        return self.validate(raw_filter)
