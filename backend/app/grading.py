"""Deterministic grading of multiple-choice answers."""

from dataclasses import dataclass
from decimal import Decimal, ROUND_HALF_UP
from typing import Any, Sequence

from app.errors import InputInvalid
from app.validation import OPTIONS_PER_QUESTION, QuestionIn

# Reported as the correct answer for a question entry that is missing.
MISSING_ANSWER = -1


@dataclass(frozen=True)
class GradeResult:
    score: int
    total: int
    correct_answers: list[int]


def round_half_up(value: float, places: int = 2) -> float:
    """Round halves up, e.g. ``2.675 -> 2.68``, rather than to even."""
    quantum = Decimal(1).scaleb(-places)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def normalize_answer(value: Any) -> int:
    """Return ``value`` if it is a usable option index, else ``MISSING_ANSWER``."""
    if isinstance(value, bool) or not isinstance(value, int):
        return MISSING_ANSWER
    if 0 <= value < OPTIONS_PER_QUESTION:
        return value
    return MISSING_ANSWER


def grade(
    questions: Sequence[QuestionIn | None],
    answers: Sequence[Any],
    total: int | None = None,
) -> GradeResult:
    """Count the answers that match each question's correct index.

    Never raises.  A missing or out-of-range answer is simply wrong.  A
    missing question entry earns no credit and reports ``MISSING_ANSWER`` as
    its correct index instead of silently defaulting to option 0.
    """
    if total is None:
        total = len(questions)
    score = 0
    correct_answers: list[int] = []
    for i in range(total):
        question = questions[i] if i < len(questions) else None
        if question is None:
            correct_answers.append(MISSING_ANSWER)
            continue
        correct = question.correct_answer_index
        correct_answers.append(correct)
        given = normalize_answer(answers[i]) if i < len(answers) else MISSING_ANSWER
        if given == correct:
            score += 1
    return GradeResult(score=score, total=total, correct_answers=correct_answers)


def lesson_percentage(score: int, total: int) -> float:
    """Percentage with two decimals, used only for the readiness score."""
    if total <= 0:
        return 0.0
    return round_half_up(score / total * 100, 2)


def wrong_answer_indices(questions: Sequence[QuestionIn], answers: Sequence[Any]) -> list[int]:
    wrong = []
    for i, question in enumerate(questions):
        given = normalize_answer(answers[i]) if i < len(answers) else MISSING_ANSWER
        if given != question.correct_answer_index:
            wrong.append(i)
    return wrong


def require_answers(answers: Sequence[Any] | None, expected: int) -> list[int]:
    """Check an answer vector's length and map unusable entries to ``MISSING_ANSWER``.

    Raises :class:`InputInvalid` when the vector is absent or the wrong length.
    """
    if answers is None or len(answers) != expected:
        raise InputInvalid(
            f"answers must be an array of {expected} numbers (0-3 per question)"
        )
    return [normalize_answer(a) for a in answers]
