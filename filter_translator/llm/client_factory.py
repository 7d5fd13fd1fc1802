"""
LLM client factory and management.

Handles creation of the completion client used for filter extraction and
classification of its failures.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional

import httpx
from openai import (
    APIConnectionError,
    APIStatusError,
    APITimeoutError,
    AsyncOpenAI,
    AuthenticationError,
    PermissionDeniedError,
    RateLimitError,
)
from pydantic_ai import Agent
from pydantic_ai.exceptions import AgentRunError, ModelHTTPError
from pydantic_ai.models import Model
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.providers.openai import OpenAIProvider

from filter_translator.core.exceptions import (
    CompletionAuthError,
    CompletionError,
    CompletionRateLimitError,
    CompletionServiceError,
    CompletionTimeoutError,
)
from filter_translator.core.models import LLMConfig

logger = logging.getLogger(__name__)


class LLMClientFactory:
    """
    Creates and manages the completion client for filter extraction.

    Wraps a Pydantic AI agent over an OpenAI-compatible chat model. The
    underlying OpenAI SDK client carries the per-attempt timeout and the
    automatic retry budget; this class adds a cap on in-flight calls and an
    overall deadline of `timeout * (max_retries + 1)` seconds.
    """

    def __init__(
        self,
        model_name: Optional[str] = None,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model_settings: Optional[Dict[str, Any]] = None,
        max_retries: int = 3,
        timeout: float = 30.0,
        max_concurrency: int = 2,
        model: Optional[Model] = None,
    ):
        """
        Initialize LLM client factory.

        Args:
            model_name: Name of the chat model (e.g., "gpt-4o-mini")
            api_key: API key for the provider.
                    Optional when using base_url (e.g., Ollama doesn't require real API keys).
            base_url: Optional base URL for OpenAI-compatible APIs (e.g., "http://localhost:11434/v1").
            model_settings: Optional model settings (temperature, top_p, etc.)
            max_retries: Automatic retries on transport failure
            timeout: Seconds per attempt
            max_concurrency: Maximum number of in-flight completion calls
            model: Prebuilt Pydantic AI model. Skips provider setup when given.

        Raises:
            ValueError: If model_name is missing, or if api_key is missing when not using base_url
        """
        self.model_settings = model_settings or {"temperature": 0, "top_p": 1.0}
        self.max_retries = max_retries
        self.timeout = timeout
        self.max_concurrency = max_concurrency
        self.base_url: Optional[str] = None
        self._semaphore = asyncio.Semaphore(max_concurrency)

        if model is not None:
            self.model = model
            return

        if not model_name:
            raise ValueError("model_name is required (provide as parameter or set LLM_MODEL env var)")
        if model_name.startswith("openai:"):
            model_name = model_name.split(":", 1)[1]

        if base_url:
            # Normalize base_url - ensure it ends with /v1 for OpenAI-compatible APIs
            normalized_base_url = base_url.rstrip("/")
            if not normalized_base_url.endswith("/v1"):
                normalized_base_url = f"{normalized_base_url}/v1"
            self.base_url = normalized_base_url

            client = AsyncOpenAI(
                api_key=api_key or "not-needed",
                base_url=normalized_base_url,
                max_retries=max_retries,
                timeout=timeout,
            )
        elif not api_key:
            raise ValueError(
                "api_key is required when not using a custom base_url "
                "(provide as parameter or set LLM_API_KEY/OPENAI_API_KEY env var)"
            )
        else:
            client = AsyncOpenAI(api_key=api_key, max_retries=max_retries, timeout=timeout)

        self.model = OpenAIChatModel(
            model_name,
            provider=OpenAIProvider(openai_client=client),
        )

    @classmethod
    def from_config(cls, config: LLMConfig, model: Optional[Model] = None) -> "LLMClientFactory":
        """
        Create a factory from an LLMConfig.

        Args:
            config: Completion client configuration
            model: Optional prebuilt model (used by tests)

        Returns:
            Configured LLMClientFactory
        """
        return cls(
            model_name=config.model,
            api_key=config.api_key,
            base_url=config.base_url,
            model_settings={"temperature": config.temperature},
            max_retries=config.max_retries,
            timeout=config.timeout,
            max_concurrency=config.max_concurrency,
            model=model,
        )

    @property
    def deadline(self) -> float:
        """Upper bound in seconds for one complete() call."""
        return self.timeout * (self.max_retries + 1)

    def _create_agent(self, system_prompt: str) -> Agent[None, str]:
        """
        Create a Pydantic AI agent returning raw text.

        Args:
            system_prompt: System prompt for the LLM

        Returns:
            Configured Pydantic AI Agent
        """
        return Agent(
            model=self.model,
            output_type=str,
            system_prompt=system_prompt,
            model_settings=self.model_settings,  # type: ignore[arg-type]
        )

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        """
        Run one completion and return its text.

        Args:
            system_prompt: System-role instruction
            user_prompt: User-role message

        Returns:
            Raw completion text

        Raises:
            CompletionError: Classified failure of the completion service
        """
        agent = self._create_agent(system_prompt)

        async with self._semaphore:
            try:
                result = await asyncio.wait_for(agent.run(user_prompt), timeout=self.deadline)
            except asyncio.TimeoutError as e:
                logger.warning("Completion exceeded deadline of %.1fs", self.deadline)
                raise CompletionTimeoutError(
                    f"Completion did not finish within {self.deadline:.1f}s"
                ) from e
            except Exception as e:
                error = classify_completion_error(e)
                if error is None:
                    raise
                logger.warning("Completion failed (%s): %s", type(error).__name__, e)
                raise error from e

        return result.output


def _exception_chain(exc: BaseException) -> List[BaseException]:
    chain: List[BaseException] = []
    current: Optional[BaseException] = exc
    while current is not None and current not in chain:
        chain.append(current)
        current = current.__cause__ or current.__context__
    return chain


def _status_code(exc: BaseException) -> Optional[int]:
    if isinstance(exc, (ModelHTTPError, APIStatusError)):
        return exc.status_code
    if isinstance(exc, httpx.HTTPStatusError):
        return exc.response.status_code
    return None


def classify_completion_error(exc: BaseException) -> Optional[CompletionError]:
    """
    Map a completion failure to the error taxonomy.

    The whole cause chain is inspected, since provider errors are usually
    wrapped by the agent framework.

    Args:
        exc: Exception raised while running the completion

    Returns:
        Classified CompletionError, or None if the exception is not a
        completion failure
    """
    chain = _exception_chain(exc)
    message = str(exc) or type(exc).__name__

    for error in chain:
        if isinstance(error, (APITimeoutError, httpx.TimeoutException, asyncio.TimeoutError)):
            return CompletionTimeoutError(message)

    for error in chain:
        status = _status_code(error)
        if status in (401, 403) or isinstance(error, (AuthenticationError, PermissionDeniedError)):
            return CompletionAuthError(message)
        if status == 429 or isinstance(error, RateLimitError):
            return CompletionRateLimitError(message)

    for error in chain:
        if isinstance(error, (AgentRunError, APIConnectionError, APIStatusError, httpx.HTTPError)):
            return CompletionServiceError(message)

    return None
