from typing import Dict, Optional

from pydantic import ValidationError
from redis.asyncio import Redis
from redis.exceptions import RedisError

from core.config import settings
from core.logger import logger
from models.exam import ExamResult

RESULT_KEY = "examclient:result:{result_id}"
EXAM_LATEST_KEY = "examclient:exam:{exam_id}:latest"


class InMemoryResultStore:
    """Keeps results for the lifetime of the process."""

    def __init__(self):
        self._results: Dict[str, ExamResult] = {}
        self._latest: Dict[int, str] = {}

    async def save(self, result: ExamResult) -> None:
        self._results[result.result_id] = result
        self._latest[result.exam_id] = result.result_id

    async def get(self, result_id: str) -> Optional[ExamResult]:
        return self._results.get(str(result_id))

    async def latest_for_exam(self, exam_id: int) -> Optional[ExamResult]:
        result_id = self._latest.get(exam_id)
        return self._results.get(result_id) if result_id else None


class RedisResultStore:
    """
    Result cache in Redis. A cache miss or a Redis outage is never an error
    for the caller: the result can always be fetched from the backend again.
    """

    def __init__(self, redis: Redis, ttl_seconds: int = None):
        self.redis = redis
        self.ttl_seconds = ttl_seconds or settings.RESULT_CACHE_TTL_SECONDS

    @classmethod
    def from_url(cls, url: str = None) -> "RedisResultStore":
        return cls(Redis.from_url(url or settings.REDIS_URL, decode_responses=True))

    async def save(self, result: ExamResult) -> None:
        key = RESULT_KEY.format(result_id=result.result_id)
        try:
            await self.redis.set(key, result.model_dump_json(), ex=self.ttl_seconds)
            await self.redis.set(
                EXAM_LATEST_KEY.format(exam_id=result.exam_id), result.result_id, ex=self.ttl_seconds
            )
            logger.debug("Result cached", result_id=result.result_id, exam_id=result.exam_id)
        except RedisError as e:
            logger.warning("Failed to cache result", result_id=result.result_id, error=str(e))

    async def get(self, result_id: str) -> Optional[ExamResult]:
        try:
            raw = await self.redis.get(RESULT_KEY.format(result_id=result_id))
        except RedisError as e:
            logger.warning("Failed to read cached result", result_id=result_id, error=str(e))
            return None
        if not raw:
            return None

        try:
            return ExamResult.model_validate_json(raw)
        except ValidationError as e:
            logger.error("Corrupt cached result", result_id=result_id, error=str(e))
            return None

    async def latest_for_exam(self, exam_id: int) -> Optional[ExamResult]:
        try:
            result_id = await self.redis.get(EXAM_LATEST_KEY.format(exam_id=exam_id))
        except RedisError as e:
            logger.warning("Failed to read latest result", exam_id=exam_id, error=str(e))
            return None
        if not result_id:
            return None
        return await self.get(result_id)

    async def close(self):
        await self.redis.aclose()
