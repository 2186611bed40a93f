"""Tests for deterministic grading and readiness arithmetic."""

import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from app.errors import InputInvalid
from app.grading import (
    MISSING_ANSWER,
    grade,
    lesson_percentage,
    require_answers,
    round_half_up,
    wrong_answer_indices,
)
from app.readiness import next_readiness
from app.validation import QuestionIn


def _questions(n: int) -> list[QuestionIn]:
    return [
        QuestionIn(question_text=f"Q{i}", options=["a", "b", "c", "d"], correct_answer_index=i % 4)
        for i in range(n)
    ]


def test_grade_counts_matches():
    questions = _questions(10)
    answers = [i % 4 for i in range(10)]
    answers[0] = 3
    answers[5] = 0
    result = grade(questions, answers)
    assert result.score == 8
    assert result.total == 10
    assert result.correct_answers == [i % 4 for i in range(10)]


def test_grade_is_deterministic():
    questions = _questions(5)
    answers = [0, 2, 2, None, 7]
    assert grade(questions, answers) == grade(questions, answers)


def test_invalid_answers_are_wrong_not_errors():
    questions = _questions(5)
    result = grade(questions, [True, "1", -1, 4, 1.0])
    assert result.score == 0


def test_short_answer_vector_counts_missing_as_wrong():
    result = grade(_questions(5), [0, 1])
    assert result.score == 2
    assert result.total == 5


def test_missing_question_entry_gets_no_credit():
    questions = _questions(5)
    questions[2] = None
    result = grade(questions, [0, 1, 0, 3, 0])
    assert result.score == 4
    assert result.correct_answers[2] == MISSING_ANSWER


def test_wrong_answer_indices():
    assert wrong_answer_indices(_questions(4), [0, 0, 2, None]) == [1, 3]


def test_require_answers_checks_length_and_normalizes():
    assert require_answers([0, "x", None, 3, 9], 5) == [0, -1, -1, 3, -1]
    with pytest.raises(InputInvalid):
        require_answers([0, 1], 5)
    with pytest.raises(InputInvalid):
        require_answers(None, 5)


def test_round_half_up():
    assert round_half_up(2.675) == 2.68
    assert round_half_up(0.125) == 0.13
    assert round_half_up(66.666666) == 66.67


def test_lesson_percentage():
    assert lesson_percentage(4, 5) == 80.0
    assert lesson_percentage(1, 3) == 33.33
    assert lesson_percentage(2, 3) == 66.67
    assert lesson_percentage(0, 0) == 0.0


def test_readiness_rolling_mean():
    step = next_readiness(0.0, 0, 80.0)
    assert (step.score, step.quiz_count) == (80.0, 1)
    step = next_readiness(step.score, step.quiz_count, 60.0)
    assert (step.score, step.quiz_count) == (70.0, 2)
    step = next_readiness(step.score, step.quiz_count, 100.0)
    assert (step.score, step.quiz_count) == (80.0, 3)


def test_readiness_treats_missing_values_as_zero():
    step = next_readiness(None, None, 50.0)
    assert (step.score, step.quiz_count) == (50.0, 1)
