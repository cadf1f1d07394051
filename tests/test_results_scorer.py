from datetime import datetime, timezone

import pytest

from models.exam import SubmissionPayload
from services.results_scorer import (
    build_result,
    feedback_message,
    filter_for_review,
    round1,
    score,
    score_band,
)
from conftest import make_exam, make_question


@pytest.fixture
def questions():
    return [make_question(i + 1, correct=i % 4) for i in range(4)]


def test_score_counts_matching_answers(questions):
    summary = score(questions, [0, 1, 0, None])

    assert summary.correct_count == 2
    assert summary.score == 5.0


def test_score_of_empty_exam_is_zero():
    summary = score([], [])

    assert summary.correct_count == 0
    assert summary.score == 0
    assert summary == (0, 0.0)


def test_score_is_deterministic(questions):
    answers = [0, 1, 2, 3]

    assert score(questions, answers) == score(questions, answers)
    assert score(questions, answers).score == 10.0


def test_score_rounds_to_one_decimal():
    questions = [make_question(i + 1, correct=0) for i in range(3)]

    assert score(questions, [0, None, None]).score == 3.3
    assert score(questions, [0, 0, None]).score == 6.7


def test_round1_rounds_half_up():
    assert round1(7.25) == 7.3
    assert round1(0.05) == 0.1
    assert round1(6.666666) == 6.7


def test_unanswered_never_counts_for_keyless_question():
    question = make_question(1, correct=0).public()

    assert score([question], [None]).correct_count == 0


def test_short_answer_list_is_treated_as_unanswered(questions):
    assert score(questions, [0]).correct_count == 1


def test_filter_incorrect_only(questions):
    selection = filter_for_review(questions, [0, 3, None, 3], show_all=False)

    assert list(selection) == [1, 2]


def test_filter_show_all(questions):
    assert list(filter_for_review(questions, [0, 1, 2, 3], show_all=True)) == [0, 1, 2, 3]


def test_filter_is_restartable(questions):
    selection = filter_for_review(questions, [None] * 4, show_all=False)

    assert list(selection) == list(selection) == [0, 1, 2, 3]


def test_build_result_from_payload():
    exam = make_exam(question_count=10)
    payload = SubmissionPayload(
        session_id="session-1",
        exam_id=exam.id,
        answers=(1,) * 7 + (None,) * 3,
        time_spent_seconds=48,
        submitted_at=datetime(2025, 4, 8, 11, 17, tzinfo=timezone.utc),
    )

    result = build_result(exam, payload, "result-1")

    assert result.result_id == "result-1"
    assert result.exam_id == exam.id
    assert result.correct_count == 7
    assert result.score == 7.0
    assert result.time_spent_seconds == 48
    assert result.exam_title == exam.title
    assert len(result.questions) == 10


@pytest.mark.parametrize("value, band", [(10, "excellent"), (8, "excellent"), (7.9, "good"), (6.5, "good"), (5, "average"), (4.9, "poor"), (0, "poor")])
def test_score_band(value, band):
    assert score_band(value) == band


def test_feedback_message_thresholds():
    assert feedback_message(9.5, "EN").startswith("Excellent")
    assert feedback_message(5.0, "EN").startswith("Pass")
    assert feedback_message(2.0, "EN").startswith("You need")
    assert feedback_message(8.0, "VI").startswith("Rất tốt")
