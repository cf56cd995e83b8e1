from types import SimpleNamespace

import pytest

from txt2ics.config.settings import APIConfig
from txt2ics.core.api_client import GeminiCompletionService, is_api_key_error
from txt2ics.core.schema import EXTRACTION_SCHEMA, SYSTEM_PROMPT
from txt2ics.exceptions.errors import CalendarAPIError


class FakeModel:
    def __init__(self, owner, **kwargs) -> None:
        self.owner = owner
        owner.model_kwargs = kwargs

    async def generate_content_async(self, text):
        self.owner.prompts.append(text)
        if self.owner.error is not None:
            raise self.owner.error
        return self.owner.response


class FakeGenai:
    """Stands in for the google.generativeai module."""

    def __init__(self, response=None, error=None) -> None:
        self.response = response
        self.error = error
        self.prompts = []
        self.model_kwargs = None

    def GenerativeModel(self, **kwargs):
        return FakeModel(self, **kwargs)


class NoQuickText:
    prompt_feedback = None

    def __init__(self, parts) -> None:
        self.candidates = [
            SimpleNamespace(
                finish_reason=SimpleNamespace(name="STOP"),
                content=SimpleNamespace(parts=[SimpleNamespace(text=p) for p in parts]),
            )
        ]

    @property
    def text(self):
        raise ValueError("multiple parts")


@pytest.fixture
def service() -> GeminiCompletionService:
    return GeminiCompletionService("test-key-123456", config=APIConfig(model_name="gemini-default"))


@pytest.mark.asyncio
async def test_complete_requests_json_with_schema(service: GeminiCompletionService) -> None:
    fake = FakeGenai(SimpleNamespace(text='{"events": []}', prompt_feedback=None, candidates=[]))
    service.genai = fake

    result = await service.complete(SYSTEM_PROMPT, "Coffee at 10", EXTRACTION_SCHEMA)

    assert result.payload == '{"events": []}'
    assert result.refusal is None
    assert fake.prompts == ["Coffee at 10"]
    assert fake.model_kwargs["model_name"] == "gemini-default"
    assert fake.model_kwargs["system_instruction"] == SYSTEM_PROMPT
    generation_config = fake.model_kwargs["generation_config"]
    assert generation_config["response_mime_type"] == "application/json"
    assert generation_config["response_schema"] is EXTRACTION_SCHEMA
    assert generation_config["temperature"] == 0.0


@pytest.mark.asyncio
async def test_complete_uses_requested_model(service: GeminiCompletionService) -> None:
    fake = FakeGenai(SimpleNamespace(text="{}", prompt_feedback=None, candidates=[]))
    service.genai = fake

    await service.complete(SYSTEM_PROMPT, "x", EXTRACTION_SCHEMA, model="gemini-other")

    assert fake.model_kwargs["model_name"] == "gemini-other"


@pytest.mark.asyncio
async def test_blocked_prompt_is_a_refusal(service: GeminiCompletionService) -> None:
    response = SimpleNamespace(
        prompt_feedback=SimpleNamespace(block_reason=SimpleNamespace(name="SAFETY")),
        candidates=[],
    )
    service.genai = FakeGenai(response)

    result = await service.complete(SYSTEM_PROMPT, "x", EXTRACTION_SCHEMA)

    assert result.refusal == "prompt blocked (SAFETY)"
    assert result.payload is None


@pytest.mark.asyncio
async def test_blocked_candidate_is_a_refusal(service: GeminiCompletionService) -> None:
    response = SimpleNamespace(
        prompt_feedback=None,
        candidates=[SimpleNamespace(finish_reason=SimpleNamespace(name="RECITATION"))],
    )
    service.genai = FakeGenai(response)

    result = await service.complete(SYSTEM_PROMPT, "x", EXTRACTION_SCHEMA)

    assert result.refusal == "response blocked (RECITATION)"


@pytest.mark.asyncio
async def test_text_joined_from_parts(service: GeminiCompletionService) -> None:
    service.genai = FakeGenai(NoQuickText(['{"events": ', "[]}"]))

    result = await service.complete(SYSTEM_PROMPT, "x", EXTRACTION_SCHEMA)

    assert result.payload == '{"events": []}'


@pytest.mark.asyncio
async def test_invalid_key_is_wrapped(service: GeminiCompletionService) -> None:
    service.genai = FakeGenai(error=RuntimeError("400 API key not valid. Please pass a valid API key."))

    with pytest.raises(CalendarAPIError, match="API key is invalid"):
        await service.complete(SYSTEM_PROMPT, "x", EXTRACTION_SCHEMA)


@pytest.mark.asyncio
async def test_other_errors_propagate(service: GeminiCompletionService) -> None:
    service.genai = FakeGenai(error=ConnectionError("network down"))

    with pytest.raises(ConnectionError):
        await service.complete(SYSTEM_PROMPT, "x", EXTRACTION_SCHEMA)


def test_is_api_key_error() -> None:
    assert is_api_key_error(Exception("API key expired. Please renew the API key."))
    assert not is_api_key_error(Exception("quota exceeded"))


def test_masked_key_is_kept(service: GeminiCompletionService) -> None:
    assert service.api_key_masked == "test...3456"
