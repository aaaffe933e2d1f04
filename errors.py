"""
Error taxonomy for quiz generation.

Local errors describe what was wrong with the model's reply, indexed by the
array element that failed. Upstream errors are stable categories derived from
whatever a provider SDK raised; the provider's own text is kept in ``detail``
for logs and never shown to the user.
"""
from typing import Optional


class QuizGenerationError(Exception):
    code = "generation_failed"
    user_message = "Failed to generate quiz questions."

    def __init__(self, detail: str = "", index: Optional[int] = None):
        self.detail = detail
        self.index = index
        super().__init__(self._describe())

    def _describe(self) -> str:
        where = f" at index {self.index}" if self.index is not None else ""
        return f"{self.code}{where}: {self.detail}" if self.detail else f"{self.code}{where}"


class MalformedResponse(QuizGenerationError):
    code = "malformed_response"
    user_message = "The model returned a response that could not be read."

    def __init__(self, detail: str = "", raw_text: str = ""):
        self.raw_text = raw_text
        super().__init__(detail)


class EmptyOrInvalidArray(QuizGenerationError):
    code = "empty_or_invalid_array"
    user_message = "The model did not return any questions."


class InvalidQuestion(QuizGenerationError):
    code = "invalid_question"
    user_message = "The model returned a question without text."


class InvalidOptions(QuizGenerationError):
    code = "invalid_options"
    user_message = "The model returned a question without four usable options."


class InvalidExplanation(QuizGenerationError):
    code = "invalid_explanation"
    user_message = "The model returned a question without an explanation."


class AnswerNotInOptions(QuizGenerationError):
    code = "answer_not_in_options"
    user_message = "The model returned an answer that is not one of its options."


class UpstreamError(QuizGenerationError):
    code = "upstream_unknown"


class UpstreamAuthError(UpstreamError):
    code = "upstream_auth"
    user_message = "Invalid API key. Please check your environment variables."


class UpstreamRateLimited(UpstreamError):
    code = "upstream_rate_limited"
    user_message = "API quota exceeded or rate limited. Please try again later."


class UpstreamContentFiltered(UpstreamError):
    code = "upstream_content_filtered"
    user_message = "Content was blocked by safety filters. Try a different topic or phrasing."


class UpstreamUnknown(UpstreamError):
    code = "upstream_unknown"
    user_message = "The question generator is unavailable. Please try again later."


AUTH_MARKERS = ("api_key", "api key", "authentication", "unauthorized", "unauthenticated")
RATE_LIMIT_MARKERS = ("quota", "rate limit", "rate_limit", "resource exhausted", "too many requests")
SAFETY_MARKERS = ("safety", "blocked", "content_filter", "content filter", "moderation", "flagged")


def _status_of(exc: BaseException) -> Optional[int]:
    # openai errors expose status_code, google.api_core errors expose code
    for attr in ("status_code", "code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def classify_upstream_error(exc: BaseException) -> UpstreamError:
    """
    Map an exception raised by a provider call to an upstream category.

    The HTTP status wins when the SDK exposes one; otherwise the message is
    matched against known keywords.
    """
    if isinstance(exc, UpstreamError):
        return exc

    detail = f"{type(exc).__name__}: {exc}"
    message = str(exc).lower()
    status = _status_of(exc)
    if status == 401:
        return UpstreamAuthError(detail)
    if status == 403:
        # OpenRouter answers 403 when moderation flags the input
        if any(m in message for m in SAFETY_MARKERS):
            return UpstreamContentFiltered(detail)
        return UpstreamAuthError(detail)
    if status == 429:
        return UpstreamRateLimited(detail)

    if any(m in message for m in AUTH_MARKERS):
        return UpstreamAuthError(detail)
    if any(m in message for m in RATE_LIMIT_MARKERS):
        return UpstreamRateLimited(detail)
    if any(m in message for m in SAFETY_MARKERS):
        return UpstreamContentFiltered(detail)
    return UpstreamUnknown(detail)
