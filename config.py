import os
from typing import List, Literal, Optional
from dotenv import load_dotenv
from pydantic import BaseModel, Field

from models import AnswerPolicy

ProviderName = Literal["openrouter", "gemini"]

DEFAULT_OPENROUTER_MODEL = "meta-llama/llama-3-8b-instruct"
DEFAULT_OPENROUTER_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_GEMINI_MODEL = "gemini-2.0-flash"
DEFAULT_GEMINI_BASE_URL = "generativelanguage.googleapis.com"


class ProviderConfig(BaseModel):
    provider: ProviderName
    api_key: str = Field(min_length=1)
    model: str = Field(min_length=1)
    base_url: str = Field(min_length=1)
    site_url: Optional[str] = None
    app_name: Optional[str] = None
    temperature: float = 0.6


class Settings(BaseModel):
    provider: ProviderConfig
    answer_policy: AnswerPolicy = "lenient"


def _provider_config(name: str) -> ProviderConfig:
    if name == "openrouter":
        api_key = os.getenv("OPENROUTER_API_KEY")
        if not api_key:
            raise RuntimeError("OPENROUTER_API_KEY is not set. Please define it in .env")
        return ProviderConfig(
            provider="openrouter",
            api_key=api_key,
            model=os.getenv("OPENROUTER_MODEL") or DEFAULT_OPENROUTER_MODEL,
            base_url=os.getenv("OPENROUTER_BASE_URL") or DEFAULT_OPENROUTER_BASE_URL,
            site_url=os.getenv("OPENROUTER_SITE_URL") or "http://localhost:3000",
            app_name=os.getenv("OPENROUTER_APP_NAME") or "Quiz Master AI",
        )
    if name == "gemini":
        api_key = os.getenv("GEMINI_API_KEY") or os.getenv("GOOGLE_API_KEY")
        if not api_key:
            raise RuntimeError("Set GEMINI_API_KEY or GOOGLE_API_KEY in .env")
        return ProviderConfig(
            provider="gemini",
            api_key=api_key,
            model=os.getenv("GEMINI_MODEL") or DEFAULT_GEMINI_MODEL,
            base_url=os.getenv("GEMINI_BASE_URL") or DEFAULT_GEMINI_BASE_URL,
        )
    raise RuntimeError(f"Unknown QUIZ_PROVIDER '{name}'. Use 'openrouter' or 'gemini'.")


def load_settings() -> Settings:
    """
    Read provider credentials and options from the environment (and .env).

    Raises RuntimeError when a required value is missing so the app refuses
    to start instead of failing on the first request.
    """
    load_dotenv()
    provider = (os.getenv("QUIZ_PROVIDER") or "openrouter").strip().lower()
    policy = (os.getenv("QUIZ_ANSWER_POLICY") or "lenient").strip().lower()
    if policy not in ("lenient", "strict"):
        raise RuntimeError(f"Unknown QUIZ_ANSWER_POLICY '{policy}'. Use 'lenient' or 'strict'.")
    return Settings(
        provider=_provider_config(provider),
        answer_policy=policy,
    )


def cors_origins() -> List[str]:
    load_dotenv()
    origins = [o.strip() for o in (os.getenv("CORS_ORIGINS") or "*").split(",") if o.strip()]
    return origins or ["*"]
