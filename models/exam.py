from datetime import datetime
from enum import Enum
from typing import Annotated, List, Optional, Tuple

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field, field_validator, model_validator
from pydantic.alias_generators import to_camel

from core.config import settings


class _ApiModel(BaseModel):
    """Accepts the backend's camelCase payloads as well as field names."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


def _as_str_id(value):
    if value is None or isinstance(value, str):
        return value
    return str(value)


StrId = Annotated[str, BeforeValidator(_as_str_id)]


class Question(_ApiModel):
    """A multiple-choice question.

    ``correct_option_index`` and ``explanation`` belong to review mode only;
    the in-progress UI gets ``public()`` copies.
    """
    id: int = Field(..., description="Question ID")
    text: str = Field(..., description="Question text, may contain markdown, HTML and $math$")
    image_url: Optional[str] = Field(None, description="Optional illustration")
    options: Tuple[str, ...] = Field(..., description="Answer options in server order")
    correct_option_index: Optional[int] = Field(
        None,
        validation_alias=AliasChoices("correctOptionIndex", "correctAnswer", "correct_option_index"),
        description="Index of the correct option (0-based), review mode only",
    )
    explanation: Optional[str] = Field(None, description="Explanation shown after the exam")

    @field_validator("options", mode="before")
    @classmethod
    def _option_texts(cls, value):
        # The backend sometimes sends options as {"id": .., "text": ..} objects
        if value is None:
            return ()
        texts = []
        for option in value:
            if isinstance(option, dict):
                option = option.get("text") or option.get("content") or ""
            texts.append(str(option))
        return tuple(texts)

    def public(self) -> "Question":
        """Copy without the answer key, safe to hand to the exam UI."""
        return self.model_copy(update={"correct_option_index": None, "explanation": None})


class ExamDefinition(_ApiModel):
    id: int = Field(..., description="Exam ID")
    title: str = Field("", description="Exam title")
    duration_minutes: int = Field(
        settings.DEFAULT_DURATION_MINUTES,
        validation_alias=AliasChoices("durationMinutes", "duration", "duration_minutes"),
        description="Time limit in minutes",
    )
    questions: Tuple[Question, ...] = Field((), description="Questions in exam order")

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def _default_duration(cls, value):
        # A missing or zero duration means the platform default
        return value or settings.DEFAULT_DURATION_MINUTES

    @field_validator("questions", mode="before")
    @classmethod
    def _no_questions(cls, value):
        return value or ()

    @property
    def duration_seconds(self) -> int:
        return self.duration_minutes * 60

    @property
    def question_count(self) -> int:
        return len(self.questions)

    @property
    def has_answer_key(self) -> bool:
        return bool(self.questions) and all(q.correct_option_index is not None for q in self.questions)


class ExamStatus(str, Enum):
    LOADING = "loading"
    IN_PROGRESS = "in_progress"
    SUBMITTING = "submitting"
    COMPLETED = "completed"
    FAILED = "failed"


class ExamSession(BaseModel):
    """Mutable state of one attempt, owned by the session controller."""
    session_id: Optional[str] = None
    exam_id: int
    duration_seconds: int = 0
    time_remaining_seconds: int = 0
    answers: List[Optional[int]] = Field(default_factory=list)
    current_question_index: int = 0
    status: ExamStatus = ExamStatus.LOADING
    started_at: Optional[datetime] = None

    @property
    def question_count(self) -> int:
        return len(self.answers)

    @property
    def answered_count(self) -> int:
        return sum(1 for answer in self.answers if answer is not None)

    @property
    def time_spent_seconds(self) -> int:
        return max(0, self.duration_seconds - self.time_remaining_seconds)


class OpenedSession(_ApiModel):
    session_id: StrId = Field(..., validation_alias=AliasChoices("sessionId", "id", "session_id"))


class SubmissionReceipt(_ApiModel):
    result_id: StrId = Field(..., validation_alias=AliasChoices("resultId", "id", "result_id"))


class SubmissionPayload(BaseModel):
    """What the winning submit call sends, frozen at the moment of the call."""
    model_config = ConfigDict(frozen=True)

    session_id: str
    exam_id: int
    answers: Tuple[Optional[int], ...]
    time_spent_seconds: int
    submitted_at: datetime


class SubmitConfirmation(BaseModel):
    model_config = ConfigDict(frozen=True)

    answered_count: int
    unanswered_count: int
    time_remaining_seconds: int

    @property
    def total(self) -> int:
        return self.answered_count + self.unanswered_count


class ExamResult(_ApiModel):
    exam_id: int = Field(..., description="Exam the result belongs to")
    result_id: StrId = Field(..., validation_alias=AliasChoices("resultId", "id", "result_id"))
    answers: Tuple[Optional[int], ...] = Field((), description="Answer snapshot, one slot per question")
    correct_count: int = Field(0, ge=0)
    score: float = Field(0.0, ge=0, le=10, description="Score on the 0-10 scale")
    time_spent_seconds: int = Field(
        0,
        ge=0,
        validation_alias=AliasChoices("timeSpentSeconds", "timeSpent", "time_spent_seconds"),
    )
    submitted_at: datetime = Field(
        ...,
        validation_alias=AliasChoices("submittedAt", "submitTime", "submitted_at"),
    )
    exam_title: Optional[str] = None
    questions: Tuple[Question, ...] = Field((), description="Reviewed questions with their answer key")

    @model_validator(mode="before")
    @classmethod
    def _scale_score(cls, data):
        # The backend reports the raw score against the exam's total score
        if isinstance(data, dict):
            total = data.get("totalScore") or data.get("total_score")
            raw = data.get("score")
            if total and raw is not None and total != 10:
                data = dict(data, score=raw * 10 / total)
        return data

    @field_validator("answers", "questions", mode="before")
    @classmethod
    def _empty_sequences(cls, value):
        return value or ()

    @property
    def question_count(self) -> int:
        return len(self.questions) or len(self.answers)
