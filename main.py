import logging
from typing import Optional
from fastapi import Depends, FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from config import cors_origins, load_settings
from errors import QuizGenerationError
from llm_quiz_generator import QuizGenerator
from models import (
    GenerateBody,
    GenerationRequest,
    HistoryBody,
    HistorySummary,
    QuizResponse,
    QuizResult,
    ScoreBody,
)
from providers import build_provider
from scoring import PER_QUESTION_SECONDS, score_quiz, summarize_history

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

GENERATION_FAILED = "Failed to generate quiz questions"

app = FastAPI(title="Quiz Master AI API")

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
def on_startup():
    # Fails fast when provider credentials are missing.
    settings = load_settings()
    app.state.generator = QuizGenerator(build_provider(settings.provider), settings.answer_policy)


def get_generator() -> QuizGenerator:
    generator = getattr(app.state, "generator", None)
    if generator is None:
        raise HTTPException(status_code=503, detail="Question generator is not configured")
    return generator


@app.get("/")
def root():
    """API root endpoint with basic information."""
    return {
        "name": "Quiz Master AI API",
        "version": "1.0.0",
        "endpoints": ["/api/quiz", "/api/quiz/score", "/api/quiz/history/summary"],
        "seconds_per_question": PER_QUESTION_SECONDS,
    }


@app.post("/api/quiz", response_model=QuizResponse, response_model_exclude_none=True)
def generate_quiz_endpoint(body: GenerateBody, generator: QuizGenerator = Depends(get_generator)):
    """
    Generate multiple-choice questions for a topic.
    Provider errors are logged; the client only sees a fixed message and a category code.
    """
    topic = (body.topic or "").strip()
    if not topic or not body.difficulty or not body.numberOfQuestions:
        return JSONResponse(status_code=400, content={"error": "Missing required parameters"})

    try:
        request = GenerationRequest(topic=topic, difficulty=body.difficulty, count=body.numberOfQuestions)
    except ValidationError as e:
        detail = [{"loc": list(err["loc"]), "msg": err["msg"]} for err in e.errors()]
        raise HTTPException(status_code=422, detail=detail)

    try:
        questions = generator.generate(request.topic, request.difficulty, request.count)
    except QuizGenerationError as e:
        logger.error(f"Error generating quiz: {e}")
        return JSONResponse(status_code=500, content={"error": GENERATION_FAILED, "code": e.code})
    except Exception as e:
        logger.exception(f"Unexpected error generating quiz: {e}")
        return JSONResponse(status_code=500, content={"error": GENERATION_FAILED, "code": QuizGenerationError.code})

    return {"questions": questions}


@app.post("/api/quiz/score", response_model=QuizResult)
def score_quiz_endpoint(body: ScoreBody):
    """Score a finished session against the answers the user picked."""
    return score_quiz(body.questions, body.userAnswers, body.timeTaken)


@app.post("/api/quiz/history/summary", response_model=Optional[HistorySummary])
def history_summary_endpoint(body: HistoryBody):
    """Overall progress across past quizzes; null when there are none."""
    return summarize_history(body.records)
