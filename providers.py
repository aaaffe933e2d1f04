"""
Text-generation backends.

Every provider exposes the same capability, ``generate_raw(prompt) -> str``:
one request, one raw reply. Prompt building, cleanup and validation live in
``llm_quiz_generator`` and are shared by all of them.
"""
import logging
from typing import Any, Optional, Protocol

import google.generativeai as genai
from openai import OpenAI

from config import ProviderConfig
from errors import UpstreamContentFiltered, UpstreamUnknown

logger = logging.getLogger(__name__)

SYSTEM_INSTRUCTION = "You output strict, parseable JSON only."

# Gemini finish reasons that mean the reply was withheld for content reasons
SAFETY_FINISH_REASONS = {"SAFETY", "BLOCKLIST", "PROHIBITED_CONTENT", "SPII", "RECITATION"}


class QuestionProvider(Protocol):
    name: str

    def generate_raw(self, prompt: str) -> str:
        ...


class GeminiProvider:
    name = "gemini"

    def __init__(self, config: ProviderConfig, model: Optional[Any] = None):
        self.model_name = config.model
        if model is None:
            # google-generativeai keeps its credentials process-wide
            genai.configure(api_key=config.api_key, client_options={"api_endpoint": config.base_url})
            model = genai.GenerativeModel(config.model, system_instruction=SYSTEM_INSTRUCTION)
        self._model = model

    def generate_raw(self, prompt: str) -> str:
        resp = self._model.generate_content(prompt)
        feedback = getattr(resp, "prompt_feedback", None)
        block_reason = getattr(feedback, "block_reason", None) if feedback is not None else None
        if block_reason:
            raise UpstreamContentFiltered(f"Prompt blocked by Gemini: {block_reason}")

        candidates = getattr(resp, "candidates", None) or []
        if candidates:
            reason = getattr(candidates[0], "finish_reason", None)
            reason_name = getattr(reason, "name", str(reason))
            if reason_name in SAFETY_FINISH_REASONS:
                raise UpstreamContentFiltered(f"Gemini stopped the candidate: {reason_name}")
        return resp.text or ""


class OpenRouterProvider:
    name = "openrouter"

    def __init__(self, config: ProviderConfig, client: Optional[Any] = None):
        self.model_name = config.model
        self.temperature = config.temperature
        if client is None:
            headers = {}
            if config.site_url:
                headers["HTTP-Referer"] = config.site_url
            if config.app_name:
                headers["X-Title"] = config.app_name
            client = OpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                default_headers=headers,
                max_retries=0,
            )
        self._client = client

    def generate_raw(self, prompt: str) -> str:
        completion = self._client.chat.completions.create(
            model=self.model_name,
            messages=[
                {"role": "system", "content": SYSTEM_INSTRUCTION},
                {"role": "user", "content": prompt},
            ],
            temperature=self.temperature,
        )
        if not completion.choices:
            raise UpstreamUnknown(f"OpenRouter returned no choices for model {self.model_name}")

        choice = completion.choices[0]
        if choice.finish_reason == "content_filter":
            raise UpstreamContentFiltered(f"OpenRouter content_filter on model {self.model_name}")
        return (choice.message.content or "").strip()


def build_provider(config: ProviderConfig) -> QuestionProvider:
    logger.info(f"Using {config.provider} provider with model {config.model}")
    if config.provider == "gemini":
        return GeminiProvider(config)
    return OpenRouterProvider(config)
