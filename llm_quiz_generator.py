import json
import logging
import re
from typing import Any, List, Optional, Tuple

from errors import (
    AnswerNotInOptions,
    EmptyOrInvalidArray,
    InvalidExplanation,
    InvalidOptions,
    InvalidQuestion,
    MalformedResponse,
    QuizGenerationError,
    classify_upstream_error,
)
from models import AnswerPolicy, Difficulty, GenerationRequest, QuizQuestion
from providers import QuestionProvider

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = """Generate {count} multiple-choice quiz questions on the topic "{topic}" with {difficulty} difficulty.

Each question must have:
- Question text
- Four options
- Correct answer (must match one option exactly)
- Brief explanation

Return ONLY a valid JSON array in this exact format:
[
  {{
    "question": "What is the capital of France?",
    "options": ["London", "Berlin", "Paris", "Madrid"],
    "answer": "Paris",
    "explanation": "Paris is the capital and largest city of France."
  }}
]

Make sure the JSON is properly formatted and parseable. Do not include markdown, code fences or any other text.
"""

FENCE_PATTERNS = (
    re.compile(r"^```json\s*", re.IGNORECASE),
    re.compile(r"^```\s*"),
    re.compile(r"\s*```$"),
)


def build_prompt(request: GenerationRequest) -> str:
    return PROMPT_TEMPLATE.format(
        count=request.count,
        topic=request.topic,
        difficulty=request.difficulty,
    )


def _clean_json_text(text: str) -> str:
    text = (text or "").strip()
    for pattern in FENCE_PATTERNS:
        text = pattern.sub("", text)
    return text.strip()


def _extract_array(text: str) -> str:
    start = text.find("[")
    end = text.rfind("]")
    if start == -1 or end == -1 or start >= end:
        raise MalformedResponse("No valid JSON array found in response", raw_text=text)
    return text[start : end + 1]


def _non_empty_str(value: Any) -> Optional[str]:
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


def _display_text(value: Any) -> str:
    # JSON spelling for values json.loads turned into Python types: true, 1 (not True, 1.0)
    if isinstance(value, bool):
        return json.dumps(value)
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def _clean_options(raw: Any, index: int) -> List[str]:
    if not isinstance(raw, list) or len(raw) != 4:
        raise InvalidOptions("Question must have exactly 4 options", index=index)
    options = [_display_text(opt) if opt is not None else "" for opt in raw]
    if not all(options):
        raise InvalidOptions("All options must be non-empty", index=index)
    return options


def match_answer(raw_answer: Any, options: List[str], index: int,
                 policy: AnswerPolicy = "lenient",
                 warnings: Optional[List[str]] = None) -> str:
    """
    Resolve the model's stated answer to one of ``options``.

    strict: the trimmed answer must equal an option exactly.
    lenient: exact match, then case-insensitive match, then the first option
    contained in the answer text; with no match the first option is used and
    a warning is recorded.
    """
    answer = "" if raw_answer is None else _display_text(raw_answer)

    if policy == "strict":
        if answer not in options:
            raise AnswerNotInOptions(f'Answer "{answer}" is not among the provided options', index=index)
        return answer

    lowered = answer.lower()
    for candidate in (
        next((o for o in options if o == answer), None),
        next((o for o in options if o.lower() == lowered), None),
        next((o for o in options if o.lower() in lowered), None),
    ):
        if candidate is not None:
            return candidate

    message = f"Answer mismatch at index {index}. Defaulting to first option. raw_answer={answer!r} options={options!r}"
    logger.warning(message)
    if warnings is not None:
        warnings.append(message)
    return options[0]


def _normalize_item(item: Any, index: int, policy: AnswerPolicy, warnings: List[str]) -> QuizQuestion:
    if not isinstance(item, dict):
        raise InvalidQuestion("Question entry is not an object", index=index)

    question = _non_empty_str(item.get("question"))
    if question is None:
        raise InvalidQuestion("Invalid or empty question", index=index)

    options = _clean_options(item.get("options"), index)

    explanation = _non_empty_str(item.get("explanation"))
    if explanation is None:
        raise InvalidExplanation("Invalid or empty explanation", index=index)

    answer = match_answer(item.get("answer"), options, index, policy, warnings)
    return QuizQuestion(question=question, options=options, answer=answer, explanation=explanation)


def normalize_response(raw_text: str, expected_count: int,
                       policy: AnswerPolicy = "lenient") -> Tuple[List[QuizQuestion], List[str]]:
    """
    Turn a model reply into validated questions.

    Returns the questions and the warnings raised on the way (answer
    fallbacks, count mismatch). Any other problem aborts with a typed
    QuizGenerationError; no element is silently dropped.
    """
    text = _extract_array(_clean_json_text(raw_text))

    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        logger.error(f"Failed to parse JSON response: {e}")
        logger.error(f"Text attempted to parse: {text}")
        raise MalformedResponse(f"Failed to parse quiz questions: {e}", raw_text=text) from e

    if not isinstance(data, list) or not data:
        raise EmptyOrInvalidArray("Response is not a valid non-empty array")

    warnings: List[str] = []
    questions = [_normalize_item(item, i, policy, warnings) for i, item in enumerate(data)]

    if len(questions) != expected_count:
        message = f"Requested {expected_count} questions but got {len(questions)}"
        logger.warning(message)
        warnings.append(message)

    return questions, warnings


class QuizGenerator:
    """Single-shot question generation on top of any QuestionProvider."""

    def __init__(self, provider: QuestionProvider, answer_policy: AnswerPolicy = "lenient"):
        self.provider = provider
        self.answer_policy = answer_policy

    def generate(self, topic: str, difficulty: Difficulty, count: int) -> List[QuizQuestion]:
        request = GenerationRequest(topic=topic, difficulty=difficulty, count=count)
        prompt = build_prompt(request)

        try:
            raw_text = self.provider.generate_raw(prompt)
        except QuizGenerationError:
            raise
        except Exception as e:
            raise classify_upstream_error(e) from e

        questions, _ = normalize_response(raw_text, request.count, self.answer_policy)
        logger.info(f"Generated {len(questions)} questions on '{request.topic}' ({request.difficulty}) via {self.provider.name}")
        return questions
