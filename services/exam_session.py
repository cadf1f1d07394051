"""
Exam session controller: the single owner of an in-progress exam attempt.

Submission can be triggered twice for the same attempt, once by the student
and once by the countdown reaching zero. Both paths go through
``_claim_submission``, which flips ``in_progress`` to ``submitting``
synchronously, before any await, so only the first caller ever reaches the
backend.
"""
import asyncio
import random
from datetime import datetime, timezone
from enum import Enum
from typing import Callable, List, NamedTuple, Optional

from constants.messages import Messages
from core.config import settings
from core.exceptions import ConflictError, ExamClientError
from core.logger import logger
from models.exam import (
    ExamDefinition,
    ExamResult,
    ExamSession,
    ExamStatus,
    Question,
    SubmissionPayload,
    SubmitConfirmation,
)
from services.countdown_timer import CountdownTimer
from services.interfaces import ExamBackend, ResultStore
from services.question_renderer import RenderedQuestion, render_question
from services.result_store import InMemoryResultStore
from services.results_scorer import build_result
from utils.formatting import format_clock


class SessionEvent(str, Enum):
    STARTED = "started"
    TIME_WARNING = "time_warning"
    TIME_UP = "time_up"
    SUBMITTING = "submitting"
    SUBMIT_FAILED = "submit_failed"
    COMPLETED = "completed"
    FAILED = "failed"


class SubmitTrigger(str, Enum):
    MANUAL = "manual"
    TIMEOUT = "timeout"


class QuestionState(NamedTuple):
    number: int
    answered: bool
    current: bool


SessionListener = Callable[[SessionEvent, "ExamSessionController"], None]


class ExamSessionController:
    def __init__(
        self,
        api: ExamBackend,
        result_store: Optional[ResultStore] = None,
        timer: Optional[CountdownTimer] = None,
        shuffle_options: Optional[bool] = None,
        rng: Optional[random.Random] = None,
        lang: str = None,
    ):
        self.api = api
        self.result_store = result_store or InMemoryResultStore()
        self.timer = timer or CountdownTimer()
        self.shuffle_options = settings.SHUFFLE_OPTIONS if shuffle_options is None else shuffle_options
        self.lang = lang or settings.LANGUAGE
        self._rng = rng or random.Random()

        self.session: Optional[ExamSession] = None
        self.exam: Optional[ExamDefinition] = None
        self.result_id: Optional[str] = None
        self.result: Optional[ExamResult] = None
        self.error: Optional[str] = None
        self.confirmation: Optional[SubmitConfirmation] = None
        self.time_warning = False

        # Bumped whenever an attempt is discarded; responses carrying an
        # older generation are dropped.
        self._generation = 0
        self._option_orders: List[List[int]] = []
        self._submit_task: Optional[asyncio.Task] = None
        self._listeners: List[SessionListener] = []
        self._disposed = False

    # ------------------------------------------------------------------ state

    @property
    def status(self) -> ExamStatus:
        return self.session.status if self.session else ExamStatus.LOADING

    @property
    def question_count(self) -> int:
        return self.session.question_count if self.session else 0

    @property
    def current_index(self) -> int:
        return self.session.current_question_index if self.session else 0

    @property
    def answered_count(self) -> int:
        return self.session.answered_count if self.session else 0

    @property
    def unanswered_count(self) -> int:
        return self.question_count - self.answered_count

    @property
    def progress_percent(self) -> float:
        if not self.question_count:
            return 0.0
        return min(100.0, self.answered_count / self.question_count * 100)

    @property
    def time_remaining_label(self) -> str:
        return format_clock(self.session.time_remaining_seconds if self.session else 0)

    def question_states(self) -> List[QuestionState]:
        """One entry per question for the navigation grid."""
        if self.session is None:
            return []
        current = self.current_index
        return [
            QuestionState(number=i + 1, answered=answer is not None, current=i == current)
            for i, answer in enumerate(self.session.answers)
        ]

    def _in_progress(self) -> bool:
        if self._disposed or self.session is None:
            return False
        return self.session.status is ExamStatus.IN_PROGRESS

    def _is_stale(self, generation: int) -> bool:
        return generation != self._generation

    # ------------------------------------------------------------- listeners

    def subscribe(self, listener: SessionListener) -> Callable[[], None]:
        """Register a listener for session events. Returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def _emit(self, event: SessionEvent):
        for listener in list(self._listeners):
            try:
                listener(event, self)
            except Exception as e:
                logger.error("Session listener failed", session_event=event.value, error=str(e))

    # -------------------------------------------------------------- bootstrap

    async def start_session(self, exam_id: int) -> ExamSession:
        """Load the exam, open a server session and start the countdown.

        A failure leaves the attempt in ``failed`` with ``error`` set; the
        student retries by entering the exam again.
        """
        self._discard_attempt()
        generation = self._generation
        session = ExamSession(exam_id=exam_id)
        self.session = session
        logger.info("Loading exam", exam_id=exam_id)

        try:
            exam = await self.api.fetch_exam_by_id(exam_id)
            if self._is_stale(generation):
                logger.info("Exam definition ignored: attempt discarded", exam_id=exam_id)
                return session
            if not exam.questions:
                self._fail_bootstrap(session, Messages.get("EXAM_HAS_NO_QUESTIONS", self.lang))
                return session

            opened = await self.api.open_session(exam_id)
        except ExamClientError as e:
            if self._is_stale(generation):
                logger.info("Bootstrap error ignored: attempt discarded", exam_id=exam_id)
                return session
            self._fail_bootstrap(session, e.message, error_type=type(e).__name__)
            return session

        if self._is_stale(generation):
            logger.info("Opened session ignored: attempt discarded", exam_id=exam_id, session_id=opened.session_id)
            return session

        self.exam = exam
        self._option_orders = [self._display_order(q) for q in exam.questions]

        session.session_id = opened.session_id
        session.duration_seconds = exam.duration_seconds
        session.time_remaining_seconds = exam.duration_seconds
        session.answers = [None] * exam.question_count
        session.current_question_index = 0
        session.started_at = datetime.now(timezone.utc)
        session.status = ExamStatus.IN_PROGRESS

        self._arm_timer(session.time_remaining_seconds)
        logger.info(
            "Exam session started",
            exam_id=exam_id,
            session_id=session.session_id,
            questions=exam.question_count,
            duration_seconds=session.duration_seconds,
        )
        self._emit(SessionEvent.STARTED)
        return session

    def _fail_bootstrap(self, session: ExamSession, message: str, error_type: str = None):
        session.status = ExamStatus.FAILED
        self.error = message
        logger.warning("Exam session bootstrap failed", exam_id=session.exam_id, error=message, error_type=error_type)
        self._emit(SessionEvent.FAILED)

    def _display_order(self, question: Question) -> List[int]:
        order = list(range(len(question.options)))
        if self.shuffle_options and len(order) > 1:
            self._rng.shuffle(order)
        return order

    def _discard_attempt(self):
        self.timer.stop()
        self._generation += 1
        self.exam = None
        self.result_id = None
        self.result = None
        self.error = None
        self.confirmation = None
        self.time_warning = False
        self._option_orders = []
        self._submit_task = None
        self._disposed = False

    def dispose(self):
        """The student left the exam page.

        The attempt is discarded: answers, navigation and submission are
        rejected from now on and pending responses are ignored.
        """
        self.timer.stop()
        self._generation += 1
        self._disposed = True
        self.confirmation = None
        if self.session is not None:
            logger.info("Exam session discarded", exam_id=self.session.exam_id, session_id=self.session.session_id, status=self.status.value)

    # -------------------------------------------------------------- answering

    def select_answer(self, question_index: int, option_index: int) -> bool:
        """Record the option shown at ``option_index`` as the answer to a question.

        Returns False when the answer was not recorded (not in progress, or an
        index out of range).
        """
        if not self._in_progress():
            logger.debug("Answer ignored: session not in progress", status=self.status.value)
            return False

        session = self.session
        if not 0 <= question_index < session.question_count:
            logger.warning("Answer ignored: question out of range", question_index=question_index)
            return False

        order = self._option_orders[question_index]
        if not 0 <= option_index < len(order):
            logger.warning("Answer ignored: option out of range", question_index=question_index, option_index=option_index)
            return False

        session.answers[question_index] = order[option_index]
        return True

    def go_to_question(self, index: int) -> int:
        """Move to ``index``, clamped to the question range."""
        if not self._in_progress() or not self.question_count:
            return self.current_index

        self.session.current_question_index = max(0, min(int(index), self.question_count - 1))
        return self.session.current_question_index

    def next_question(self) -> int:
        return self.go_to_question(self.current_index + 1)

    def previous_question(self) -> int:
        return self.go_to_question(self.current_index - 1)

    def question_for_display(self, index: int) -> Question:
        """Question ``index`` without its answer key, options in display order."""
        question = self.exam.questions[index].public()
        order = self._option_orders[index]
        return question.model_copy(update={"options": tuple(question.options[i] for i in order)})

    def selected_display_index(self, index: int) -> Optional[int]:
        answer = self.session.answers[index]
        if answer is None:
            return None
        return self._option_orders[index].index(answer)

    @property
    def current_question(self) -> Optional[Question]:
        if self.exam is None or not self.question_count:
            return None
        return self.question_for_display(self.current_index)

    def render_current(self) -> Optional[RenderedQuestion]:
        question = self.current_question
        if question is None:
            return None
        index = self.current_index
        return render_question(question, index + 1, self.selected_display_index(index), review=False, lang=self.lang)

    # --------------------------------------------------------------- countdown

    def _arm_timer(self, seconds: int):
        self.timer.stop()
        self.timer.start(seconds, self._on_tick, self._on_expire)

    def _on_tick(self, remaining: int):
        if not self._in_progress():
            return

        session = self.session
        if remaining < session.time_remaining_seconds:
            session.time_remaining_seconds = remaining

        threshold = settings.TIME_WARNING_SECONDS
        if not self.time_warning and session.time_remaining_seconds <= threshold < session.duration_seconds:
            self.time_warning = True
            logger.info("Exam time warning", session_id=session.session_id, remaining=session.time_remaining_seconds)
            self._emit(SessionEvent.TIME_WARNING)

    def _on_expire(self):
        if not self._in_progress():
            return

        self.session.time_remaining_seconds = 0
        logger.info("Exam time is up", session_id=self.session.session_id)
        self._emit(SessionEvent.TIME_UP)
        self._begin_submit(SubmitTrigger.TIMEOUT)

    # -------------------------------------------------------------- submitting

    def request_submit(self) -> Optional[SubmitConfirmation]:
        """Open the confirmation prompt with the current progress."""
        if not self._in_progress():
            return None

        self.confirmation = SubmitConfirmation(
            answered_count=self.answered_count,
            unanswered_count=self.unanswered_count,
            time_remaining_seconds=self.session.time_remaining_seconds,
        )
        return self.confirmation

    def confirmation_text(self) -> Optional[str]:
        if self.confirmation is None:
            return None
        return Messages.get("SUBMIT_CONFIRM", self.lang).format(
            answered=self.confirmation.answered_count,
            total=self.confirmation.total,
            remaining=format_clock(self.confirmation.time_remaining_seconds),
        )

    def cancel_submit(self):
        self.confirmation = None

    async def confirm_submit(self) -> bool:
        self.confirmation = None
        return await self.submit()

    async def submit(self) -> bool:
        """Submit the attempt. Returns True once the exam is completed.

        Returns False right away when another submission already won or the
        session is not in progress.
        """
        task = self._begin_submit(SubmitTrigger.MANUAL)
        if task is None:
            return False
        return await asyncio.shield(task)

    async def join(self) -> Optional[bool]:
        """Wait for the submission in flight, if any."""
        if self._submit_task is None:
            return None
        return await asyncio.shield(self._submit_task)

    def _begin_submit(self, trigger: SubmitTrigger) -> Optional[asyncio.Task]:
        payload = self._claim_submission(trigger)
        if payload is None:
            return None
        self._submit_task = asyncio.get_running_loop().create_task(
            self._deliver(payload, self._generation, trigger)
        )
        self._submit_task.add_done_callback(self._submit_done)
        return self._submit_task

    @staticmethod
    def _submit_done(task: asyncio.Task):
        # An auto-submit may never be awaited; _deliver has already logged the failure
        if not task.cancelled():
            task.exception()

    def _claim_submission(self, trigger: SubmitTrigger) -> Optional[SubmissionPayload]:
        # No await may happen between the check and the set below
        if not self._in_progress():
            logger.info("Submission ignored: session not in progress", trigger=trigger.value, status=self.status.value)
            return None

        session = self.session
        session.status = ExamStatus.SUBMITTING
        self.timer.stop()
        self.confirmation = None
        self.error = None

        payload = SubmissionPayload(
            session_id=session.session_id,
            exam_id=session.exam_id,
            answers=tuple(session.answers),
            time_spent_seconds=session.time_spent_seconds,
            submitted_at=datetime.now(timezone.utc),
        )
        logger.info(
            "Submitting exam",
            session_id=session.session_id,
            trigger=trigger.value,
            answered=session.answered_count,
            time_spent=payload.time_spent_seconds,
        )
        self._emit(SessionEvent.SUBMITTING)
        return payload

    async def _deliver(self, payload: SubmissionPayload, generation: int, trigger: SubmitTrigger) -> bool:
        try:
            return await self._send(payload, generation, trigger)
        except Exception:
            logger.exception("Unexpected error while submitting exam", session_id=payload.session_id)
            if not self._is_stale(generation) and self.session is not None:
                self.session.status = ExamStatus.FAILED
                self.error = Messages.get("NETWORK_ERROR", self.lang)
                self._emit(SessionEvent.FAILED)
            raise

    async def _send(self, payload: SubmissionPayload, generation: int, trigger: SubmitTrigger) -> bool:
        try:
            receipt = await self.api.submit_session(
                payload.session_id, list(payload.answers), payload.time_spent_seconds
            )
        except ConflictError as e:
            if self._is_stale(generation):
                logger.info("Submission conflict ignored: attempt discarded", session_id=payload.session_id)
                return False
            return await self._recover_conflict(e, payload, generation)
        except ExamClientError as e:
            if self._is_stale(generation):
                logger.info("Submission error ignored: attempt discarded", session_id=payload.session_id)
                return False
            self._submit_failed(e, trigger)
            return False

        if self._is_stale(generation):
            logger.info("Submission response ignored: attempt discarded", session_id=payload.session_id, result_id=receipt.result_id)
            return False
        return await self._complete(receipt.result_id, payload, generation, recovered=False)

    async def _recover_conflict(self, error: ConflictError, payload: SubmissionPayload, generation: int) -> bool:
        # The server already has this submission, most likely our own earlier request
        result_id = error.result_id
        if result_id is None:
            cached = await self.result_store.latest_for_exam(payload.exam_id)
            if self._is_stale(generation):
                return False
            result_id = cached.result_id if cached else None

        logger.info("Session already submitted", session_id=payload.session_id, result_id=result_id)
        if result_id is None:
            self.session.status = ExamStatus.FAILED
            self.error = error.message
            self._emit(SessionEvent.FAILED)
            return False
        return await self._complete(result_id, payload, generation, recovered=True)

    def _submit_failed(self, error: ExamClientError, trigger: SubmitTrigger):
        session = self.session
        if session.time_remaining_seconds > 0:
            session.status = ExamStatus.IN_PROGRESS
            self.error = Messages.get("SUBMIT_FAILED_RETRY", self.lang)
            self._arm_timer(session.time_remaining_seconds)
            logger.warning(
                "Exam submission failed, back in progress",
                session_id=session.session_id,
                trigger=trigger.value,
                remaining=session.time_remaining_seconds,
                error=error.message,
            )
            self._emit(SessionEvent.SUBMIT_FAILED)
        else:
            # Out of time: report, never retry automatically
            session.status = ExamStatus.FAILED
            self.error = Messages.get("SUBMIT_FAILED_FINAL", self.lang)
            logger.error("Final exam submission failed", session_id=session.session_id, trigger=trigger.value, error=error.message)
            self._emit(SessionEvent.FAILED)

    async def _complete(self, result_id: str, payload: SubmissionPayload, generation: int, recovered: bool) -> bool:
        self.session.status = ExamStatus.COMPLETED
        self.result_id = result_id
        logger.info("Exam submitted", session_id=payload.session_id, result_id=result_id, recovered=recovered)

        result = await self._resolve_result(result_id, payload, recovered)
        if self._is_stale(generation):
            return True

        self.result = result
        if result is not None:
            await self.result_store.save(result)
        self._emit(SessionEvent.COMPLETED)
        return True

    async def _resolve_result(self, result_id: str, payload: SubmissionPayload, recovered: bool) -> Optional[ExamResult]:
        exam = self.exam
        if not recovered and exam is not None and exam.has_answer_key:
            return build_result(exam, payload, result_id)

        try:
            return await self.api.fetch_result(result_id)
        except ExamClientError as e:
            logger.warning("Submitted result not available yet", result_id=result_id, error=e.message)
            return None
