"""
Shared configuration models for the filter translator.

All configuration is immutable and built once at process start-up.
"""

import os
from typing import Optional, Tuple

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, model_validator

DEFAULT_COUNTRIES = ("DE", "AT", "NL", "FR")
DEFAULT_MILEAGES = (
    10000, 20000, 30000, 40000, 50000, 60000, 70000, 80000, 100000, 120000,
    140000, 160000, 180000, 200000, 220000, 240000, 260000, 280000, 300000,
    320000, 340000, 360000, 380000,
)
DEFAULT_SEARCH_RADIUS = (50, 100, 150, 200, 300, 400, 500)


class FilterConstraints(BaseModel):
    """Allowed values and bounds of an auction filter."""

    model_config = ConfigDict(frozen=True)

    countries: Tuple[str, ...] = DEFAULT_COUNTRIES
    mileages: Tuple[int, ...] = DEFAULT_MILEAGES
    search_radius: Tuple[int, ...] = DEFAULT_SEARCH_RADIUS
    min_registration_year: int = 1887
    # None means the current year, resolved when the field table is built
    max_registration_year: Optional[int] = None
    zip_prefix_length: int = 2
    max_fuel_types: int = 7

    @model_validator(mode="after")
    def check_constraints(self) -> "FilterConstraints":
        """Bucket lists must be non-empty and ascending."""
        for name in ("countries", "mileages", "search_radius"):
            if not getattr(self, name):
                raise ValueError(f"{name} must not be empty")
        for name in ("mileages", "search_radius"):
            values = getattr(self, name)
            if list(values) != sorted(set(values)):
                raise ValueError(f"{name} must be strictly ascending")
        max_year = self.max_registration_year
        if max_year is not None and self.min_registration_year > max_year:
            raise ValueError("min_registration_year is after max_registration_year")
        return self


class LLMConfig(BaseModel):
    """Configuration for the completion client."""

    model_config = ConfigDict(frozen=True)

    model: str = "gpt-4o-mini"
    api_key: Optional[str] = Field(default=None, repr=False)
    base_url: Optional[str] = None
    temperature: float = 0.0
    max_retries: int = Field(default=3, ge=0)
    timeout: float = Field(default=30.0, gt=0)
    max_concurrency: int = Field(default=2, ge=1)


class TranslatorConfig(BaseModel):
    """Top-level configuration passed into the translator."""

    model_config = ConfigDict(frozen=True)

    llm: LLMConfig = Field(default_factory=LLMConfig)
    constraints: FilterConstraints = Field(default_factory=FilterConstraints)
    validate_output: bool = True

    @classmethod
    def from_env(cls) -> "TranslatorConfig":
        """
        Build configuration from environment variables.

        A `.env` file in the working directory is loaded first. Reads:
        - LLM_MODEL, LLM_API_KEY or OPENAI_API_KEY, LLM_BASE_URL
        - LLM_TEMPERATURE, LLM_MAX_RETRIES, LLM_TIMEOUT, LLM_MAX_CONCURRENCY
        - VALIDATE_OUTPUT

        Returns:
            Frozen TranslatorConfig
        """
        load_dotenv()

        llm = LLMConfig(
            model=os.getenv("LLM_MODEL", "gpt-4o-mini"),
            api_key=os.getenv("LLM_API_KEY") or os.getenv("OPENAI_API_KEY"),
            base_url=os.getenv("LLM_BASE_URL") or None,
            temperature=float(os.getenv("LLM_TEMPERATURE", "0")),
            max_retries=int(os.getenv("LLM_MAX_RETRIES", "3")),
            timeout=float(os.getenv("LLM_TIMEOUT", "30")),
            max_concurrency=int(os.getenv("LLM_MAX_CONCURRENCY", "2")),
        )
        validate_output = os.getenv("VALIDATE_OUTPUT", "true").strip().lower() not in (
            "0", "false", "no", "off",
        )
        return cls(llm=llm, validate_output=validate_output)
