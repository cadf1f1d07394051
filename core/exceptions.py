from typing import Optional

from constants.messages import Messages
from core.config import settings


class ExamClientError(Exception):
    """Base error raised by exam backend collaborators.

    ``message`` is always human-readable so the session controller can show
    it to the student as is.
    """

    default_key = "NETWORK_ERROR"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = None):
        self.message = message or Messages.get(self.default_key, settings.LANGUAGE)
        self.status = status
        super().__init__(self.message)


class NetworkError(ExamClientError):
    """Transport failure or unexpected server response."""
    default_key = "NETWORK_ERROR"


class NotFoundError(ExamClientError):
    default_key = "NOT_FOUND"


class AuthError(ExamClientError):
    default_key = "AUTH_REQUIRED"


class ConflictError(ExamClientError):
    """The server already holds a submission for this session."""
    default_key = "ALREADY_SUBMITTED"

    def __init__(self, message: Optional[str] = None, status: Optional[int] = 409, result_id: Optional[str] = None):
        super().__init__(message, status)
        self.result_id = result_id
