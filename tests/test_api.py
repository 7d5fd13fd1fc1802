import pytest
from fastapi.testclient import TestClient

import api
from filter_translator import FilterTranslator
from filter_translator.core.exceptions import (
    CompletionAuthError,
    CompletionRateLimitError,
    CompletionServiceError,
    CompletionTimeoutError,
    FilterTranslatorError,
)


class FailingCompletionClient:
    """Completion client that always raises the given error."""

    def __init__(self, error: Exception):
        self.error = error
        self.calls = 0

    async def complete(self, system_prompt: str, user_prompt: str) -> str:
        self.calls += 1
        raise self.error


@pytest.fixture
def use_translator():
    """Serve requests with the given translator instead of the configured one."""
    def _use(translator: FilterTranslator) -> None:
        api.app.dependency_overrides[api.get_translator] = lambda: translator
    yield _use
    api.app.dependency_overrides.clear()


@pytest.fixture
def client():
    # No context manager: the start-up hook, which reads credentials, is not run
    return TestClient(api.app)


def test_returns_filter(client, use_translator, make_translator):
    use_translator(make_translator('{"vehicleSearchQuery": {"mileageFrom": 50000}}'))
    response = client.get("/", params={"humanPrompt": "cars with at least 50000 km"})
    assert response.status_code == 200
    assert response.json() == {"vehicleSearchQuery": {"mileageFrom": 50000}}


def test_empty_prompt_returns_empty_filter(client, use_translator):
    completion_client = FailingCompletionClient(CompletionServiceError("unused"))
    use_translator(FilterTranslator(completion_client))
    response = client.get("/", params={"humanPrompt": ""})
    assert response.status_code == 200
    assert response.json() == {}
    assert completion_client.calls == 0


def test_missing_prompt_is_rejected(client, use_translator, make_translator):
    use_translator(make_translator("{}"))
    assert client.get("/").status_code == 422


def test_malformed_completion(client, use_translator, make_translator):
    use_translator(make_translator("I am not sure what you mean."))
    response = client.get("/", params={"humanPrompt": "something"})
    assert response.status_code == 502
    assert response.json()["detail"].startswith("Filter translation failed")


def test_invalid_filter(client, use_translator, make_translator):
    use_translator(make_translator('{"includeCountries": ["US"]}'))
    assert client.get("/", params={"humanPrompt": "cars in the US"}).status_code == 502


@pytest.mark.parametrize("error, status_code", [
    (CompletionTimeoutError("deadline exceeded"), 504),
    (CompletionRateLimitError("slow down"), 503),
    (CompletionAuthError("bad key"), 502),
    (CompletionServiceError("connection reset"), 502),
])
def test_completion_errors_map_to_status(client, use_translator, error, status_code):
    use_translator(FilterTranslator(FailingCompletionClient(error)))
    response = client.get("/", params={"humanPrompt": "red BMW"})
    assert response.status_code == status_code
    assert str(error) in response.json()["detail"]


def test_unknown_translation_error_maps_to_500():
    assert api.error_status_code(FilterTranslatorError("unexpected")) == 500


class TestStartup:

    def test_builds_translator_from_environment(self, env):
        env.setenv("LLM_API_KEY", "sk-test")
        env.setenv("LLM_MAX_CONCURRENCY", "3")
        env.setenv("VALIDATE_OUTPUT", "false")

        with TestClient(api.app) as client:
            translator = api.app.state.translator
            assert isinstance(translator, FilterTranslator)
            assert translator.completion_client.max_concurrency == 3
            assert translator.validate_output is False

            response = client.get("/", params={"humanPrompt": "  "})
            assert response.status_code == 200
            assert response.json() == {}

        del api.app.state.translator

    @pytest.mark.asyncio
    async def test_refuses_to_start_without_credentials(self, env):
        with pytest.raises(ValueError, match="api_key is required"):
            async with api.lifespan(api.app):
                pass
