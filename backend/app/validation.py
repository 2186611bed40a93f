"""Question schema validation.

Anything that claims to be a question set, whether it came back from the
text-generation provider, an instructor's request body or an old lesson
row, passes through :func:`validate_questions` before it is persisted or
graded.  That function reports shape mismatches through
:class:`ValidationResult` and never raises.  The per-question rules live on
the :class:`~app.schemas.quiz.QuestionIn` pydantic model.
"""

import json
from dataclasses import dataclass, field
from typing import Any

from pydantic import TypeAdapter, ValidationError

from app.errors import StoredQuizInvalid
from app.schemas.quiz import OPTIONS_PER_QUESTION, QuestionIn

__all__ = [
    "OPTIONS_PER_QUESTION",
    "QuestionIn",
    "SchemaError",
    "ValidationResult",
    "load_snapshot",
    "validate_questions",
]

_QUESTION_LIST = TypeAdapter(list[QuestionIn])


@dataclass(frozen=True)
class SchemaError:
    reason: str
    index: int | None = None

    def __str__(self) -> str:
        if self.index is None:
            return self.reason
        return f"question {self.index + 1}: {self.reason}"


@dataclass(frozen=True)
class ValidationResult:
    questions: list[QuestionIn] = field(default_factory=list)
    error: SchemaError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _fail(reason: str, index: int | None = None) -> ValidationResult:
    return ValidationResult(error=SchemaError(reason, index))


def _schema_error(exc: ValidationError) -> SchemaError:
    err = exc.errors()[0]
    loc = list(err.get("loc", ()))
    index = loc.pop(0) if loc and isinstance(loc[0], int) else None
    # ValueErrors raised by our own validators carry the readable text
    cause = err.get("ctx", {}).get("error")
    message = str(cause) if isinstance(cause, ValueError) else err["msg"]
    reason = ": ".join([str(part) for part in loc] + [message])
    return SchemaError(reason, index)


def validate_questions(candidate: Any, expected_count: int) -> ValidationResult:
    """Validate ``candidate`` as exactly ``expected_count`` questions.

    The whole batch is rejected on the first bad question.  Values are never
    repaired: an out-of-range index fails rather than being clamped, and a
    question with fewer than four usable options fails rather than being
    padded.
    """
    if not isinstance(candidate, list):
        return _fail("question set must be a JSON array")
    if len(candidate) != expected_count:
        return _fail(
            f"expected exactly {expected_count} questions, got {len(candidate)}"
        )
    try:
        questions = _QUESTION_LIST.validate_python(candidate)
    except ValidationError as exc:
        return ValidationResult(error=_schema_error(exc))
    return ValidationResult(questions=questions)


def load_snapshot(snapshot: Any, expected_count: int) -> list[QuestionIn]:
    """Re-validate a stored question snapshot before grading it.

    Unlike :func:`validate_questions` this raises, because a snapshot that
    passed validation once and no longer does is corrupt data, not a
    provider mismatch.  JSON text from older rows is decoded first.
    """
    if isinstance(snapshot, str):
        try:
            snapshot = json.loads(snapshot)
        except ValueError:
            raise StoredQuizInvalid()
    result = validate_questions(snapshot, expected_count)
    if not result.ok:
        raise StoredQuizInvalid(f"Stored quiz is malformed: {result.error}")
    return result.questions
