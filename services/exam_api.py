from typing import List, Optional, Union

import httpx
from pydantic import ValidationError

from core.config import settings
from core.exceptions import AuthError, ConflictError, NetworkError, NotFoundError
from core.logger import logger
from models.exam import ExamDefinition, ExamResult, OpenedSession, SubmissionReceipt


class ExamApiClient:
    """httpx implementation of the exam backend operations."""

    def __init__(
        self,
        base_url: str = None,
        token: str = None,
        timeout: float = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        token = settings.API_TOKEN if token is None else token
        headers = {"Content-Type": "application/json"}
        if token:
            headers["Authorization"] = token

        self.client = httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            headers=headers,
            timeout=timeout or settings.REQUEST_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc_info):
        await self.aclose()

    async def aclose(self):
        await self.client.aclose()

    async def fetch_exam_by_id(self, exam_id: int) -> ExamDefinition:
        data = await self._request("GET", f"/api/Exam/{exam_id}/WithQuestions")
        return self._parse(ExamDefinition, data)

    async def open_session(self, exam_id: int) -> OpenedSession:
        data = await self._request("POST", f"/api/student/exams/{exam_id}/start")
        return self._parse(OpenedSession, data)

    async def submit_session(self, session_id: str, answers: List[Optional[int]], time_spent_seconds: int) -> SubmissionReceipt:
        payload = {
            "sessionId": session_id,
            "answers": list(answers),
            "timeSpentSeconds": time_spent_seconds,
        }
        data = await self._request("POST", "/api/Results", json=payload)
        # Some deployments answer with the bare result id
        if not isinstance(data, dict):
            data = {"resultId": data}
        return self._parse(SubmissionReceipt, data)

    async def fetch_result(self, result_id: Union[str, int]) -> ExamResult:
        data = await self._request("GET", f"/api/Results/{result_id}")
        return self._parse(ExamResult, data)

    async def _request(self, method: str, url: str, **kwargs):
        try:
            response = await self.client.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("Exam API unreachable", method=method, url=url, error=str(e))
            raise NetworkError() from e

        logger.debug("Exam API response", method=method, url=url, status=response.status_code)
        if response.is_success:
            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise NetworkError(status=response.status_code) from e

        body = self._error_body(response)
        message = body.get("message") or body.get("title")
        status = response.status_code
        logger.warning("Exam API error", method=method, url=url, status=status, message=message)

        if status in (401, 403):
            raise AuthError(message, status)
        if status == 404:
            raise NotFoundError(message, status)
        if status == 409:
            result_id = body.get("resultId") or body.get("id")
            raise ConflictError(message, status, result_id=str(result_id) if result_id is not None else None)
        raise NetworkError(message, status)

    @staticmethod
    def _error_body(response: httpx.Response) -> dict:
        try:
            body = response.json()
        except ValueError:
            return {}
        return body if isinstance(body, dict) else {}

    @staticmethod
    def _parse(model, data):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            logger.error("Unexpected exam API payload", model=model.__name__, error=str(e))
            raise NetworkError() from e
