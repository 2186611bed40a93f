"""Turn a topic or lesson text into a validated question set.

One provider call per :meth:`QuizGenerator.generate`.  The raw text is
parsed (with a single bracket-extraction fallback) and then validated; the
outcome is returned as a :class:`GenerationResult` so callers decide how to
surface it.  Nothing here touches the database.
"""

import enum
import json
import logging
from dataclasses import dataclass, field
from typing import Any

from app.ai_provider import TextProvider
from app.errors import (
    AssessmentError,
    GenerationError,
    InputInvalid,
    OutputNotJson,
    OutputSchemaMismatch,
)
from app.validation import QuestionIn, validate_questions

logger = logging.getLogger(__name__)

DIFFICULTIES = ("easy", "medium", "hard")
DEFAULT_DIFFICULTY = "medium"


class QuizKind(str, enum.Enum):
    LESSON_QUIZ = "lesson_quiz"
    LEARNER_QUIZ = "learner_quiz"
    INSTRUCTOR_QUIZ = "instructor_quiz"

    @property
    def expected_count(self) -> int:
        return 5 if self is QuizKind.LESSON_QUIZ else 10


@dataclass(frozen=True)
class GenerationResult:
    questions: list[QuestionIn] = field(default_factory=list)
    error: AssessmentError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> list[QuestionIn]:
        """Return the questions or raise the classified error."""
        if self.error is not None:
            raise self.error
        return self.questions


def normalize_difficulty(value: Any) -> str:
    text = str(value or "").strip().lower()
    return text if text in DIFFICULTIES else DEFAULT_DIFFICULTY


def _schema_lines(count: int) -> list[str]:
    return [
        "You MUST respond with ONLY a valid JSON array (no markdown, no code fences, no commentary).",
        f"The JSON array MUST contain exactly {count} objects.",
        "Each object MUST have exactly these fields:",
        "- questionText: string",
        "- options: array of exactly 4 strings",
        "- correctAnswerIndex: integer 0-3 (index into options)",
        "Do not include any other keys.",
    ]


def build_prompt(kind: QuizKind, context: str, difficulty: str | None = None) -> tuple[str, str]:
    """Return ``(system, user)`` messages for ``kind``."""
    count = kind.expected_count
    if kind is QuizKind.LESSON_QUIZ:
        system = [
            "You are an enterprise LMS quiz generator.",
            *_schema_lines(count),
            "Questions MUST be based strictly on the lesson content.",
            "Options MUST be plausible and non-overlapping.",
        ]
        user = ["LESSON CONTENT:", context]
    elif kind is QuizKind.LEARNER_QUIZ:
        diff = normalize_difficulty(difficulty)
        system = [
            "You are an enterprise LMS quiz generator for learner self-assessment.",
            *_schema_lines(count),
            f"Difficulty: {diff}. Easy = recall/facts; Medium = application; "
            "Hard = analysis/synthesis.",
            "Questions MUST be based on the topic provided. "
            "Options MUST be plausible and non-overlapping.",
        ]
        user = ["TOPIC:", context]
    else:
        system = [
            "You are an enterprise LMS quiz generator helping an instructor author a course quiz.",
            *_schema_lines(count),
            "Cover the listed topics and any supplied document content evenly.",
            "Options MUST be plausible and non-overlapping.",
        ]
        user = ["COURSE MATERIAL:", context]
    return "\n".join(system), "\n".join(user)


def parse_json_array(text: str) -> Any:
    """Parse provider text, retrying once on the outermost ``[...]`` span.

    Raises :class:`OutputNotJson` when neither attempt parses.
    """
    try:
        return json.loads(text)
    except (TypeError, ValueError):
        pass
    start = text.find("[") if isinstance(text, str) else -1
    end = text.rfind("]") if isinstance(text, str) else -1
    if start < 0 or end <= start:
        raise OutputNotJson()
    try:
        return json.loads(text[start : end + 1])
    except ValueError as exc:
        raise OutputNotJson() from exc


class QuizGenerator:
    def __init__(self, provider: TextProvider):
        self.provider = provider

    async def generate(
        self, kind: QuizKind, context: str, difficulty: str | None = None
    ) -> GenerationResult:
        context = (context or "").strip()
        if not context:
            return GenerationResult(error=InputInvalid("topic is required"))

        system, user = build_prompt(kind, context, difficulty)
        max_tokens = 4096 if kind.expected_count > 5 else 1024
        temperature = 0.2 if kind is QuizKind.LESSON_QUIZ else 0.3
        try:
            text = await self.provider.complete(
                system, user, max_tokens=max_tokens, temperature=temperature
            )
            parsed = parse_json_array(text)
        except GenerationError as exc:
            logger.warning("%s generation failed: %s", kind.value, exc.code)
            return GenerationResult(error=exc)

        result = validate_questions(parsed, kind.expected_count)
        if not result.ok:
            logger.warning(
                "%s generation rejected by validator: %s", kind.value, result.error
            )
            return GenerationResult(
                error=OutputSchemaMismatch(
                    f"AI quiz response did not match required schema ({result.error})"
                )
            )
        return GenerationResult(questions=result.questions)

    async def generate_summary(self, content: str) -> str:
        """Three-paragraph lesson summary.  Provider errors propagate."""
        content = (content or "").strip()
        if not content:
            raise InputInvalid("content is required")
        prompt = "\n".join(
            [
                "You are an assistant helping create learning content for an enterprise LMS.",
                "Write a concise summary of the lesson content below in exactly 3 paragraphs.",
                "Do not add a title. Do not use bullet points. Keep it clear and professional.",
                "",
                "LESSON CONTENT:",
                content,
            ]
        )
        return await self.provider.complete(None, prompt, temperature=0.3)
