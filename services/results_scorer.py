"""Scoring and review selection for finished exams.

Everything here is a pure function of its inputs, so the same helpers serve
the session controller (scoring a freshly submitted attempt) and the review
screen (filtering a stored result).
"""
from datetime import datetime, timezone
from decimal import Decimal, ROUND_HALF_UP
from typing import Iterator, NamedTuple, Optional, Sequence

from constants.messages import Messages
from core.config import settings
from models.exam import ExamDefinition, ExamResult, Question, SubmissionPayload

MAX_SCORE = 10


class ScoreSummary(NamedTuple):
    correct_count: int
    score: float


def round1(value: float) -> float:
    """Round half up to one decimal place (7.25 -> 7.3, unlike ``round``)."""
    return float(Decimal(str(value)).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP))


def _answer_at(answers: Sequence[Optional[int]], index: int) -> Optional[int]:
    return answers[index] if index < len(answers) else None


def is_correct(question: Question, answer: Optional[int]) -> bool:
    """An unanswered slot is never correct, even for a question without a key."""
    return answer is not None and answer == question.correct_option_index


def score(questions: Sequence[Question], answers: Sequence[Optional[int]]) -> ScoreSummary:
    total = len(questions)
    if total == 0:
        return ScoreSummary(correct_count=0, score=0.0)

    correct = sum(
        1 for i, question in enumerate(questions) if is_correct(question, _answer_at(answers, i))
    )
    return ScoreSummary(correct_count=correct, score=round1(correct / total * MAX_SCORE))


class ReviewSelection:
    """Indices of the questions to show on the review screen.

    Iterating it is lazy and can be repeated; nothing is cached, so the
    selection always reflects the inputs it was built from.
    """

    def __init__(self, questions: Sequence[Question], answers: Sequence[Optional[int]], show_all: bool):
        self.questions = questions
        self.answers = answers
        self.show_all = show_all

    def __iter__(self) -> Iterator[int]:
        for i, question in enumerate(self.questions):
            if self.show_all or not is_correct(question, _answer_at(self.answers, i)):
                yield i

    def __repr__(self):
        return f"ReviewSelection(show_all={self.show_all}, size={len(self.questions)})"


def filter_for_review(questions: Sequence[Question], answers: Sequence[Optional[int]], show_all: bool) -> ReviewSelection:
    return ReviewSelection(questions, answers, show_all)


def build_result(
    exam: ExamDefinition,
    payload: SubmissionPayload,
    result_id: str,
) -> ExamResult:
    """Score a submitted attempt locally. Needs an exam that carries its answer key."""
    summary = score(exam.questions, payload.answers)
    return ExamResult(
        exam_id=exam.id,
        result_id=result_id,
        answers=payload.answers,
        correct_count=summary.correct_count,
        score=summary.score,
        time_spent_seconds=payload.time_spent_seconds,
        submitted_at=payload.submitted_at or datetime.now(timezone.utc),
        exam_title=exam.title,
        questions=exam.questions,
    )


def score_band(value: float) -> str:
    """Colour band of the score badge."""
    if value >= 8:
        return "excellent"
    if value >= 6.5:
        return "good"
    if value >= 5:
        return "average"
    return "poor"


_FEEDBACK = (
    (9, "FEEDBACK_EXCELLENT"),
    (8, "FEEDBACK_VERY_GOOD"),
    (7, "FEEDBACK_GOOD"),
    (6, "FEEDBACK_FAIR"),
    (5, "FEEDBACK_PASS"),
)


def feedback_message(value: float, lang: str = None) -> str:
    lang = lang or settings.LANGUAGE
    for threshold, key in _FEEDBACK:
        if value >= threshold:
            return Messages.get(key, lang)
    return Messages.get("FEEDBACK_RETRY", lang)
