"""Lesson AI content and the five-question lesson quiz that feeds readiness."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.acl import AUTHOR_ROLES
from app.ai_provider import TextProvider, get_text_provider
from app.auth import get_current_user, require_role
from app.crud import get_lesson, record_lesson_quiz_attempt, save_lesson_ai_content
from app.database import get_session
from app.errors import InputInvalid, NotFound
from app.grading import grade, lesson_percentage, normalize_answer
from app.models import Lesson, LessonQuizAttempt, User
from app.quiz_generation import QuizGenerator, QuizKind
from app.schemas import LessonAiContent, LessonQuizResult, LessonQuizSubmit
from app.validation import load_snapshot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/lessons", tags=["lessons"])

LESSON_QUIZ_SIZE = QuizKind.LESSON_QUIZ.expected_count


async def _get_lesson_or_404(db: AsyncSession, lesson_id: int) -> Lesson:
    lesson = await get_lesson(db, lesson_id)
    if not lesson:
        raise NotFound("Lesson not found")
    return lesson


def lesson_answers(answers: list | dict | None, total: int) -> list[int]:
    """Flatten a list or position-keyed mapping into ``total`` option indices.

    A mapping is read as 0-based when it has a ``"0"`` key and as 1-based
    otherwise.
    """
    if answers is None:
        raise InputInvalid("answers is required and must be an array or object")
    offset = 0 if isinstance(answers, dict) and "0" in answers else 1
    flat: list[int] = []
    for i in range(total):
        if isinstance(answers, dict):
            value = answers.get(str(i + offset))
        else:
            value = answers[i] if i < len(answers) else None
        flat.append(normalize_answer(value))
    return flat


@router.post("/{lesson_id}/generate-ai", response_model=LessonAiContent)
async def generate_lesson_ai_content(
    lesson_id: int,
    user: User = Depends(require_role(*AUTHOR_ROLES)),
    db: AsyncSession = Depends(get_session),
    provider: TextProvider = Depends(get_text_provider),
):
    """Regenerate the lesson's summary and quiz from its content."""

    lesson = await _get_lesson_or_404(db, lesson_id)
    content = (lesson.content or "").strip()
    if not content:
        raise InputInvalid("lesson content is required")
    generator = QuizGenerator(provider)
    questions = (await generator.generate(QuizKind.LESSON_QUIZ, content)).unwrap()
    summary = await generator.generate_summary(content)
    lesson = await save_lesson_ai_content(db, lesson, summary, questions)
    logger.info("User %s generated AI content for lesson %s", user.id, lesson.id)
    return LessonAiContent(
        lesson_id=lesson.id,
        ai_summary=lesson.ai_summary,
        ai_quiz_json=lesson.ai_quiz_json,
    )


@router.get("/{lesson_id}/ai-content", response_model=LessonAiContent)
async def read_lesson_ai_content(
    lesson_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    lesson = await _get_lesson_or_404(db, lesson_id)
    return LessonAiContent(
        lesson_id=lesson.id,
        ai_summary=lesson.ai_summary,
        ai_quiz_json=lesson.ai_quiz_json,
    )


@router.post("/{lesson_id}/submit-quiz", response_model=LessonQuizResult)
async def submit_lesson_quiz(
    lesson_id: int,
    data: LessonQuizSubmit,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    """Grade the lesson quiz and fold the percentage into readiness."""

    answers = lesson_answers(data.answers, LESSON_QUIZ_SIZE)
    lesson = await _get_lesson_or_404(db, lesson_id)
    if not lesson.ai_quiz_json:
        raise InputInvalid("Lesson has no AI quiz available")
    questions = load_snapshot(lesson.ai_quiz_json, LESSON_QUIZ_SIZE)

    result = grade(questions, answers)
    percentage = lesson_percentage(result.score, result.total)

    readiness = await record_lesson_quiz_attempt(
        db,
        LessonQuizAttempt(
            lesson_id=lesson.id,
            user_id=user.id,
            answers_snapshot=answers,
            score=result.score,
            total_questions=result.total,
            percentage=percentage,
        ),
    )
    return LessonQuizResult(
        lesson_id=lesson.id,
        correct_count=result.score,
        total=result.total,
        percentage=percentage,
        readiness_score=readiness.score,
        readiness_score_quiz_count=readiness.quiz_count,
    )
