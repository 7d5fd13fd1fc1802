import asyncio

import httpx
import pytest
from openai import APITimeoutError, AuthenticationError, RateLimitError
from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.messages import ModelResponse, SystemPromptPart, TextPart, UserPromptPart
from pydantic_ai.models.function import AgentInfo, FunctionModel
from pydantic_ai.models.openai import OpenAIChatModel
from pydantic_ai.models.test import TestModel as StubModel

from filter_translator.core.exceptions import (
    CompletionAuthError,
    CompletionRateLimitError,
    CompletionServiceError,
    CompletionTimeoutError,
)
from filter_translator.core.models import LLMConfig
from filter_translator.llm.client_factory import LLMClientFactory, classify_completion_error

REQUEST = httpx.Request("POST", "https://api.openai.com/v1/chat/completions")


def status_error(error_class, status_code):
    response = httpx.Response(status_code, request=REQUEST)
    return error_class("failed", response=response, body=None)


class TestFactorySetup:

    def test_requires_model_name(self):
        with pytest.raises(ValueError):
            LLMClientFactory(model_name=None, api_key="sk-test")

    def test_requires_api_key_without_base_url(self):
        with pytest.raises(ValueError):
            LLMClientFactory(model_name="gpt-4o-mini", api_key=None)

    def test_builds_openai_model(self):
        factory = LLMClientFactory(model_name="openai:gpt-4o-mini", api_key="sk-test")
        assert isinstance(factory.model, OpenAIChatModel)
        assert factory.model.model_name == "gpt-4o-mini"
        assert factory.base_url is None

    def test_normalizes_base_url(self):
        factory = LLMClientFactory(model_name="qwen3:8b", base_url="http://localhost:11434/")
        assert factory.base_url == "http://localhost:11434/v1"

    def test_from_config(self):
        config = LLMConfig(api_key="sk-test", max_retries=2, timeout=10, max_concurrency=4)
        factory = LLMClientFactory.from_config(config)
        assert factory.model_settings == {"temperature": 0.0}
        assert factory.max_retries == 2
        assert factory.max_concurrency == 4
        assert factory.deadline == 30

    def test_prebuilt_model_skips_provider_setup(self):
        model = StubModel()
        factory = LLMClientFactory(model=model)
        assert factory.model is model


class TestComplete:

    @pytest.mark.asyncio
    async def test_returns_completion_text(self):
        factory = LLMClientFactory(model=StubModel(custom_output_text='{"fuelTypes": [1]}'))
        assert await factory.complete("system", "diesel cars") == '{"fuelTypes": [1]}'

    @pytest.mark.asyncio
    async def test_sends_system_and_user_prompt_deterministically(self):
        seen = {}

        def reply(messages, info: AgentInfo) -> ModelResponse:
            parts = messages[0].parts
            seen["system"] = [p.content for p in parts if isinstance(p, SystemPromptPart)]
            seen["user"] = [p.content for p in parts if isinstance(p, UserPromptPart)]
            seen["settings"] = info.model_settings
            return ModelResponse(parts=[TextPart("{}")])

        factory = LLMClientFactory(model=FunctionModel(reply))
        assert await factory.complete("build a filter", "red BMW") == "{}"
        assert seen["system"] == ["build a filter"]
        assert seen["user"] == ["red BMW"]
        assert seen["settings"]["temperature"] == 0

    @pytest.mark.asyncio
    async def test_hanging_completion_times_out(self):
        async def hang(messages, info: AgentInfo) -> ModelResponse:
            await asyncio.sleep(10)
            return ModelResponse(parts=[TextPart("{}")])

        factory = LLMClientFactory(model=FunctionModel(hang), timeout=0.05, max_retries=1)
        with pytest.raises(CompletionTimeoutError):
            await asyncio.wait_for(factory.complete("system", "user"), timeout=5)

    @pytest.mark.asyncio
    async def test_http_errors_are_classified(self):
        def rate_limited(messages, info: AgentInfo) -> ModelResponse:
            raise ModelHTTPError(status_code=429, model_name="test")

        factory = LLMClientFactory(model=FunctionModel(rate_limited))
        with pytest.raises(CompletionRateLimitError):
            await factory.complete("system", "user")

    @pytest.mark.asyncio
    async def test_concurrency_is_capped(self):
        active = 0
        peak = 0

        async def slow(messages, info: AgentInfo) -> ModelResponse:
            nonlocal active, peak
            active += 1
            peak = max(peak, active)
            await asyncio.sleep(0.02)
            active -= 1
            return ModelResponse(parts=[TextPart("{}")])

        factory = LLMClientFactory(model=FunctionModel(slow), max_concurrency=2)
        await asyncio.gather(*(factory.complete("system", str(i)) for i in range(6)))
        assert peak == 2


class TestClassifyCompletionError:

    def test_timeout(self):
        assert isinstance(classify_completion_error(APITimeoutError(request=REQUEST)), CompletionTimeoutError)
        assert isinstance(classify_completion_error(httpx.ReadTimeout("slow")), CompletionTimeoutError)

    def test_wrapped_timeout(self):
        try:
            try:
                raise APITimeoutError(request=REQUEST)
            except APITimeoutError as e:
                raise UnexpectedModelBehavior("request failed") from e
        except UnexpectedModelBehavior as wrapped:
            assert isinstance(classify_completion_error(wrapped), CompletionTimeoutError)

    def test_auth(self):
        assert isinstance(classify_completion_error(status_error(AuthenticationError, 401)), CompletionAuthError)
        assert isinstance(
            classify_completion_error(ModelHTTPError(status_code=403, model_name="gpt-4o-mini")),
            CompletionAuthError,
        )

    def test_rate_limit(self):
        assert isinstance(classify_completion_error(status_error(RateLimitError, 429)), CompletionRateLimitError)

    def test_other_service_errors(self):
        assert isinstance(
            classify_completion_error(ModelHTTPError(status_code=500, model_name="gpt-4o-mini")),
            CompletionServiceError,
        )
        assert isinstance(classify_completion_error(UnexpectedModelBehavior("empty")), CompletionServiceError)

    def test_unrelated_errors_are_not_classified(self):
        assert classify_completion_error(KeyError("x")) is None
