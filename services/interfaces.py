from typing import List, Optional, Protocol, Union

from models.exam import ExamDefinition, ExamResult, OpenedSession, SubmissionReceipt


class ExamBackend(Protocol):
    """Remote operations the exam session engine consumes.

    Implementations raise the errors from ``core.exceptions``:
    ``fetch_exam_by_id`` NotFoundError / NetworkError, ``open_session``
    AuthError / NetworkError, ``submit_session`` ConflictError / NetworkError,
    ``fetch_result`` NotFoundError.
    """

    async def fetch_exam_by_id(self, exam_id: int) -> ExamDefinition: ...

    async def open_session(self, exam_id: int) -> OpenedSession: ...

    async def submit_session(self, session_id: str, answers: List[Optional[int]], time_spent_seconds: int) -> SubmissionReceipt: ...

    async def fetch_result(self, result_id: Union[str, int]) -> ExamResult: ...


class ResultStore(Protocol):
    """Client-side cache of finished results, keyed by result id and exam id."""

    async def save(self, result: ExamResult) -> None: ...

    async def get(self, result_id: str) -> Optional[ExamResult]: ...

    async def latest_for_exam(self, exam_id: int) -> Optional[ExamResult]: ...
