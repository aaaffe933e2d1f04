"""
Scoring for a finished quiz session and progress across past ones.
"""
from typing import List, Optional, Sequence

from models import HistoryRecord, HistorySummary, QuizQuestion, QuizResult

PER_QUESTION_SECONDS = 60
PASS_ACCURACY = 70


def get_total_quiz_time(total_questions: int) -> int:
    """Time budget in seconds shown next to the time actually taken."""
    if total_questions < 5:
        return 2 * 60
    if total_questions == 5:
        return 3 * 60
    return 5 * 60


def performance_label(accuracy: int) -> str:
    if accuracy >= 90:
        return "Excellent"
    if accuracy >= 80:
        return "Very Good"
    if accuracy >= 60:
        return "Good"
    return "Needs Improvement"


def score_quiz(questions: Sequence[QuizQuestion], user_answers: Sequence[str], time_taken: int = 0) -> QuizResult:
    # A question left unanswered when its timer ran out counts as wrong.
    answered: List[QuizQuestion] = []
    score = 0
    for i, q in enumerate(questions):
        user_answer = user_answers[i] if i < len(user_answers) else ""
        if user_answer == q.answer:
            score += 1
        answered.append(q.model_copy(update={"userAnswer": user_answer}))

    total = len(questions)
    # half-up rounding, as shown on the result screen
    accuracy = int(score / total * 100 + 0.5) if total else 0
    return QuizResult(
        score=score,
        total=total,
        accuracy=accuracy,
        passed=accuracy >= PASS_ACCURACY,
        performance=performance_label(accuracy),
        timeTaken=time_taken,
        totalPossibleTime=get_total_quiz_time(total),
        questions=answered,
    )


def summarize_history(records: Sequence[HistoryRecord]) -> Optional[HistorySummary]:
    """
    Overall progress across a user's past quizzes.

    Returns None for an empty history. ``averageScore`` is the mean raw score
    (2 decimals); ``accuracy`` is total correct over total questions as a
    percentage (1 decimal).
    """
    if not records:
        return None

    total_score = sum(r.score for r in records)
    total_questions = sum(r.total_questions for r in records)
    accuracy = total_score / total_questions * 100 if total_questions else 0.0
    return HistorySummary(
        totalQuizzes=len(records),
        averageScore=round(total_score / len(records), 2),
        bestScore=max(r.score for r in records),
        accuracy=round(accuracy, 1),
    )
