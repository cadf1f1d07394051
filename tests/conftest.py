"""
Pytest configuration and fixtures for the exam session tests.
"""
import sys
import os
import asyncio
from unittest.mock import AsyncMock

import pytest

# Add project root to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from models.exam import ExamDefinition, OpenedSession, Question, SubmissionReceipt
from services.countdown_timer import CountdownTimer
from services.exam_session import ExamSessionController
from services.result_store import InMemoryResultStore


async def settle(rounds: int = 20):
    """Let every ready task run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class ManualClock:
    """Drop-in replacement for asyncio.sleep driven by the test."""

    def __init__(self):
        self.now = 0.0
        self._sleepers = []

    async def sleep(self, delay):
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + delay, future))
        await future

    def release(self, seconds: int = 1):
        """Move time forward and wake due sleepers without running them yet."""
        self.now += seconds
        due = [f for deadline, f in self._sleepers if deadline <= self.now]
        self._sleepers = [(d, f) for d, f in self._sleepers if d > self.now]
        for future in due:
            if not future.done():
                future.set_result(None)

    async def advance(self, seconds: int = 1):
        for _ in range(int(seconds)):
            await settle()
            self.release(1)
            await settle()


def make_question(qid: int, correct: int = 1, **extra) -> Question:
    return Question(
        id=qid,
        text=f"What is {qid} + {qid}?",
        options=[str(qid * 2 - 1), str(qid * 2), str(qid * 2 + 1), str(qid * 2 + 2)],
        correct_option_index=correct,
        **extra,
    )


def make_exam(question_count: int = 10, duration_minutes: int = 1, exam_id: int = 42) -> ExamDefinition:
    return ExamDefinition(
        id=exam_id,
        title="Math - Grade 12",
        duration_minutes=duration_minutes,
        questions=[make_question(i + 1) for i in range(question_count)],
    )


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def exam():
    """10 questions, 60 seconds, option 1 is always correct."""
    return make_exam()


@pytest.fixture
def api(exam):
    backend = AsyncMock()
    backend.fetch_exam_by_id.return_value = exam
    backend.open_session.return_value = OpenedSession(session_id="session-1")
    backend.submit_session.return_value = SubmissionReceipt(result_id="result-1")
    return backend


@pytest.fixture
def result_store():
    return InMemoryResultStore()


@pytest.fixture
async def controller(api, result_store, clock):
    ctrl = ExamSessionController(api, result_store=result_store, timer=CountdownTimer(sleep=clock.sleep))
    yield ctrl
    ctrl.dispose()
    await settle()


@pytest.fixture
def events(controller):
    received = []
    controller.subscribe(lambda event, ctrl: received.append(event))
    return received
