import pytest
from pydantic_ai.models.test import TestModel

from filter_translator import FilterTranslator
from filter_translator.core import models
from filter_translator.core.models import FilterConstraints
from filter_translator.llm.client_factory import LLMClientFactory
from filter_translator.schema.constraints import build_field_constraints
from filter_translator.schema.model_builder import ModelBuilder

ENV_VARS = [
    "LLM_MODEL", "LLM_API_KEY", "OPENAI_API_KEY", "LLM_BASE_URL", "LLM_TEMPERATURE",
    "LLM_MAX_RETRIES", "LLM_TIMEOUT", "LLM_MAX_CONCURRENCY", "VALIDATE_OUTPUT",
]


@pytest.fixture
def env(monkeypatch):
    """Clean environment; a local .env file is not read."""
    monkeypatch.setattr(models, "load_dotenv", lambda: False)
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


@pytest.fixture
def constraints():
    # Fixed upper year so year rules do not depend on the test date
    return FilterConstraints(max_registration_year=2024)


@pytest.fixture
def field_constraints(constraints):
    return build_field_constraints(constraints)


@pytest.fixture
def filter_model(field_constraints):
    return ModelBuilder(field_constraints).build()


@pytest.fixture
def make_translator(constraints):
    """Build a translator whose completion service always answers `output_text`."""
    def _make(output_text: str, validate_output: bool = True) -> FilterTranslator:
        client = LLMClientFactory(model=TestModel(custom_output_text=output_text))
        return FilterTranslator(client, constraints=constraints, validate_output=validate_output)
    return _make
