from types import SimpleNamespace

import google.generativeai as genai
import httpx
import openai
import pytest
from google.api_core import exceptions as google_exceptions

from config import ProviderConfig
from errors import (
    UpstreamAuthError,
    UpstreamContentFiltered,
    UpstreamRateLimited,
    UpstreamUnknown,
    classify_upstream_error,
)
from providers import SYSTEM_INSTRUCTION, GeminiProvider, OpenRouterProvider, build_provider


def openrouter_config(**overrides):
    values = dict(
        provider="openrouter",
        api_key="sk-test",
        model="meta-llama/llama-3-8b-instruct",
        base_url="https://openrouter.ai/api/v1",
        site_url="http://localhost:3000",
        app_name="Quiz Master AI",
    )
    values.update(overrides)
    return ProviderConfig(**values)


def gemini_config():
    return ProviderConfig(
        provider="gemini",
        api_key="g-test",
        model="gemini-2.0-flash",
        base_url="generativelanguage.googleapis.com",
    )


class FakeCompletions:
    def __init__(self, completion):
        self.completion = completion
        self.calls = []

    def create(self, **kwargs):
        self.calls.append(kwargs)
        return self.completion


def fake_openai_client(content="[]", finish_reason="stop", choices=None):
    if choices is None:
        message = SimpleNamespace(content=content)
        choices = [SimpleNamespace(message=message, finish_reason=finish_reason)]
    completions = FakeCompletions(SimpleNamespace(choices=choices))
    return SimpleNamespace(chat=SimpleNamespace(completions=completions)), completions


class FakeGeminiModel:
    def __init__(self, text="[]", block_reason=None, finish_reason=None):
        self.text = text
        self.block_reason = block_reason
        self.finish_reason = finish_reason
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        candidates = []
        if self.finish_reason is not None:
            candidates.append(SimpleNamespace(finish_reason=self.finish_reason))
        return SimpleNamespace(
            text=self.text,
            candidates=candidates,
            prompt_feedback=SimpleNamespace(block_reason=self.block_reason),
        )


def test_openrouter_sends_system_and_user_messages():
    client, completions = fake_openai_client(content="  [1]  ")
    provider = OpenRouterProvider(openrouter_config(), client=client)

    assert provider.generate_raw("make questions") == "[1]"
    call = completions.calls[0]
    assert call["model"] == "meta-llama/llama-3-8b-instruct"
    assert call["temperature"] == 0.6
    assert call["messages"] == [
        {"role": "system", "content": SYSTEM_INSTRUCTION},
        {"role": "user", "content": "make questions"},
    ]


def test_openrouter_content_filter():
    client, _ = fake_openai_client(content=None, finish_reason="content_filter")
    provider = OpenRouterProvider(openrouter_config(), client=client)
    with pytest.raises(UpstreamContentFiltered):
        provider.generate_raw("prompt")


def test_openrouter_no_choices():
    client, _ = fake_openai_client(choices=[])
    provider = OpenRouterProvider(openrouter_config(), client=client)
    with pytest.raises(UpstreamUnknown):
        provider.generate_raw("prompt")


def test_openrouter_empty_content():
    client, _ = fake_openai_client(content=None)
    provider = OpenRouterProvider(openrouter_config(), client=client)
    assert provider.generate_raw("prompt") == ""


def test_openrouter_client_is_built_from_config():
    provider = OpenRouterProvider(openrouter_config(base_url="https://example.test/api/v1"))
    assert isinstance(provider._client, openai.OpenAI)
    assert str(provider._client.base_url).startswith("https://example.test/api/v1")
    assert provider._client.max_retries == 0


def test_gemini_returns_text():
    model = FakeGeminiModel(text="[{}]")
    provider = GeminiProvider(gemini_config(), model=model)
    assert provider.generate_raw("prompt") == "[{}]"
    assert model.prompts == ["prompt"]


def test_gemini_blocked_prompt():
    provider = GeminiProvider(gemini_config(), model=FakeGeminiModel(block_reason="SAFETY"))
    with pytest.raises(UpstreamContentFiltered):
        provider.generate_raw("prompt")


def test_gemini_candidate_stopped_for_safety():
    # the SDK's .text error for this case only says "finish_reason is 3"
    finish_reason = genai.protos.Candidate.FinishReason.SAFETY
    provider = GeminiProvider(gemini_config(), model=FakeGeminiModel(finish_reason=finish_reason))
    with pytest.raises(UpstreamContentFiltered) as exc_info:
        provider.generate_raw("prompt")
    assert "SAFETY" in exc_info.value.detail


def test_gemini_normal_finish_returns_text():
    finish_reason = genai.protos.Candidate.FinishReason.STOP
    provider = GeminiProvider(gemini_config(), model=FakeGeminiModel(text="[1]", finish_reason=finish_reason))
    assert provider.generate_raw("prompt") == "[1]"


def test_build_provider_selects_implementation():
    assert isinstance(build_provider(openrouter_config()), OpenRouterProvider)
    assert isinstance(build_provider(gemini_config()), GeminiProvider)


def _openai_error(cls, status, message):
    request = httpx.Request("POST", "https://openrouter.ai/api/v1/chat/completions")
    response = httpx.Response(status, request=request)
    return cls(message, response=response, body=None)


@pytest.mark.parametrize("error, expected", [
    (_openai_error(openai.AuthenticationError, 401, "No auth credentials found"), UpstreamAuthError),
    (_openai_error(openai.RateLimitError, 429, "Rate limit exceeded"), UpstreamRateLimited),
    (_openai_error(openai.PermissionDeniedError, 403, "Input was flagged by moderation"), UpstreamContentFiltered),
    (_openai_error(openai.InternalServerError, 502, "Bad gateway"), UpstreamUnknown),
    (google_exceptions.ResourceExhausted("Quota exceeded for quota metric"), UpstreamRateLimited),
    (google_exceptions.PermissionDenied("Permission denied on resource project"), UpstreamAuthError),
    (google_exceptions.InvalidArgument("API key not valid. Please pass a valid API key."), UpstreamAuthError),
    (TimeoutError("read timed out"), UpstreamUnknown),
])
def test_classify_sdk_errors(error, expected):
    classified = classify_upstream_error(error)
    assert isinstance(classified, expected)
    assert type(error).__name__ in classified.detail


def test_classified_error_hides_provider_text():
    classified = classify_upstream_error(RuntimeError("quota exceeded for project 1234"))
    assert "1234" not in classified.user_message
    assert "1234" in classified.detail
