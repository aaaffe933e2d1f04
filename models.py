from pydantic import BaseModel, Field, field_validator
from typing import List, Literal, Optional

Difficulty = Literal["easy", "medium", "hard"]
AnswerPolicy = Literal["lenient", "strict"]

class QuizQuestion(BaseModel):
    question: str
    options: List[str] = Field(min_length=4, max_length=4)
    answer: str
    explanation: str
    userAnswer: Optional[str] = None

class GenerationRequest(BaseModel):
    topic: str
    difficulty: Difficulty
    count: int = Field(ge=1)

    @field_validator("topic")
    @classmethod
    def _topic_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("topic must not be empty")
        return v

class GenerateBody(BaseModel):
    # Loose types so a missing or empty field can be answered with a 400
    # before the values themselves are checked.
    topic: Optional[str] = None
    difficulty: Optional[str] = None
    numberOfQuestions: Optional[int] = None

class QuizResponse(BaseModel):
    questions: List[QuizQuestion]

class ScoreBody(BaseModel):
    questions: List[QuizQuestion] = Field(min_length=1)
    userAnswers: List[str] = []
    timeTaken: int = Field(default=0, ge=0)

class QuizResult(BaseModel):
    score: int
    total: int
    accuracy: int
    passed: bool
    performance: str
    timeTaken: int
    totalPossibleTime: int
    questions: List[QuizQuestion]

class HistoryRecord(BaseModel):
    score: int = Field(ge=0)
    total_questions: int = Field(ge=0)

class HistoryBody(BaseModel):
    records: List[HistoryRecord] = []

class HistorySummary(BaseModel):
    totalQuizzes: int
    averageScore: float
    bestScore: int
    accuracy: float
