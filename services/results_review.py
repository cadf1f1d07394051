from typing import List, Optional, Tuple

from constants.messages import Messages
from core.config import settings
from core.exceptions import ExamClientError, NotFoundError
from core.logger import logger
from models.exam import ExamResult, Question
from services.interfaces import ExamBackend, ResultStore
from services.question_renderer import RenderedQuestion, render_question
from services.results_scorer import feedback_message, filter_for_review, score_band
from utils.formatting import format_duration, format_submitted_at


class ResultsReview:
    """State of the results screen for one finished attempt.

    By default only incorrect and unanswered questions are listed;
    ``toggle_show_all`` switches to the full exam.
    """

    def __init__(self, result_store: ResultStore, api: ExamBackend, lang: str = None):
        self.result_store = result_store
        self.api = api
        self.lang = lang or settings.LANGUAGE
        self.result: Optional[ExamResult] = None
        self.questions: Tuple[Question, ...] = ()
        self.show_all = False
        self.error: Optional[str] = None

    async def load(self, result_id: str) -> Optional[ExamResult]:
        self.error = None
        result = await self.result_store.get(result_id)
        if result is None:
            try:
                result = await self.api.fetch_result(result_id)
            except NotFoundError:
                self.error = Messages.get("RESULT_NOT_FOUND", self.lang)
                logger.info("Result not found", result_id=result_id)
                return None
            except ExamClientError as e:
                self.error = e.message
                logger.warning("Failed to load result", result_id=result_id, error=e.message)
                return None
            await self.result_store.save(result)

        questions = result.questions
        if not questions:
            # Older results do not embed the questions; the review-mode
            # definition carries the answer key.
            try:
                exam = await self.api.fetch_exam_by_id(result.exam_id)
                questions = exam.questions
            except ExamClientError as e:
                logger.warning("Review questions unavailable", exam_id=result.exam_id, error=e.message)
                questions = ()

        self.result = result
        self.questions = questions
        logger.info("Result loaded", result_id=result.result_id, exam_id=result.exam_id, questions=len(questions))
        return result

    def toggle_show_all(self) -> bool:
        self.show_all = not self.show_all
        return self.show_all

    def visible_indices(self) -> List[int]:
        if self.result is None:
            return []
        return list(filter_for_review(self.questions, self.result.answers, self.show_all))

    def render_visible(self) -> List[RenderedQuestion]:
        if self.result is None:
            return []
        answers = self.result.answers
        return [
            render_question(
                self.questions[i],
                i + 1,
                answers[i] if i < len(answers) else None,
                review=True,
                lang=self.lang,
            )
            for i in filter_for_review(self.questions, answers, self.show_all)
        ]

    @property
    def summary(self) -> Optional[dict]:
        result = self.result
        if result is None:
            return None
        return {
            "title": result.exam_title or "",
            "score": f"{result.score:.1f}",
            "band": score_band(result.score),
            "correct": f"{result.correct_count}/{result.question_count}",
            "time_spent": format_duration(result.time_spent_seconds, self.lang),
            "submitted_at": format_submitted_at(result.submitted_at),
            "feedback": feedback_message(result.score, self.lang),
        }
