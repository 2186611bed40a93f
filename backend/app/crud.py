"""Asynchronous persistence helpers for the assessment engine.

Each function encapsulates one database operation using SQLModel and
SQLAlchemy, with the session passed in by the caller.  Attempt lifecycles
live here: attempts are created ``in_progress`` and move to ``completed``
exactly once, through a conditional update that a second submission can
never satisfy.
"""

import logging
from typing import Sequence

from sqlalchemy import update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.auth import get_password_hash
from app.errors import AttemptNotFound
from app.models import (
    ATTEMPT_COMPLETED,
    ATTEMPT_IN_PROGRESS,
    AiQuizAttempt,
    Course,
    CourseEnrollment,
    Lesson,
    LessonQuizAttempt,
    Quiz,
    QuizAttempt,
    User,
    utc_now,
)
from app.readiness import ReadinessUpdate, apply_readiness_observation
from app.validation import QuestionIn

logger = logging.getLogger(__name__)

AI_QUIZ_HISTORY_LIMIT = 100
QUIZ_ATTEMPT_HISTORY_LIMIT = 20


# --- users -----------------------------------------------------------------


async def create_user(db: AsyncSession, user: User) -> User:
    """Create a new user, hashing the password if it is not hashed yet."""

    if not user.password_hash.startswith("$2b$"):
        user.password_hash = get_password_hash(user.password_hash)
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


# --- course directory --------------------------------------------------------


async def get_course(db: AsyncSession, course_id: int) -> Course | None:
    result = await db.execute(select(Course).where(Course.id == course_id))
    return result.scalar_one_or_none()


async def get_lesson(db: AsyncSession, lesson_id: int) -> Lesson | None:
    result = await db.execute(select(Lesson).where(Lesson.id == lesson_id))
    return result.scalar_one_or_none()


async def is_user_enrolled(db: AsyncSession, user_id: int, course_id: int) -> bool:
    result = await db.execute(
        select(CourseEnrollment.id).where(
            CourseEnrollment.user_id == user_id,
            CourseEnrollment.course_id == course_id,
        )
    )
    return result.first() is not None


async def enroll_user(db: AsyncSession, user_id: int, course_id: int) -> CourseEnrollment:
    enrollment = CourseEnrollment(user_id=user_id, course_id=course_id)
    db.add(enrollment)
    await db.commit()
    await db.refresh(enrollment)
    return enrollment


async def save_lesson_ai_content(
    db: AsyncSession, lesson: Lesson, summary: str | None, questions: Sequence[QuestionIn]
) -> Lesson:
    """Persist a freshly generated summary and five-question quiz together."""

    lesson.ai_summary = summary or None
    lesson.ai_quiz_json = [q.as_dict() for q in questions]
    db.add(lesson)
    await db.commit()
    await db.refresh(lesson)
    return lesson


# --- ephemeral AI quiz attempts ---------------------------------------------


async def create_ai_quiz_attempt(db: AsyncSession, attempt: AiQuizAttempt) -> AiQuizAttempt:
    """Persist a new attempt; it always starts ``in_progress`` with no answers."""

    attempt.status = ATTEMPT_IN_PROGRESS
    attempt.answers_snapshot = None
    attempt.score = None
    attempt.feedback_text = None
    attempt.completed_at = None
    db.add(attempt)
    await db.commit()
    await db.refresh(attempt)
    return attempt


async def load_ai_quiz_attempt_for_submission(
    db: AsyncSession, attempt_id: int, user_id: int
) -> AiQuizAttempt:
    """Return the caller's still-open attempt or raise ``AttemptNotFound``."""

    result = await db.execute(
        select(AiQuizAttempt).where(
            AiQuizAttempt.id == attempt_id,
            AiQuizAttempt.user_id == user_id,
            AiQuizAttempt.status == ATTEMPT_IN_PROGRESS,
        )
    )
    attempt = result.scalar_one_or_none()
    if attempt is None:
        raise AttemptNotFound()
    return attempt


async def complete_ai_quiz_attempt(
    db: AsyncSession, attempt: AiQuizAttempt, answers: list[int], score: int
) -> AiQuizAttempt:
    """Move ``attempt`` to ``completed`` in a single guarded write.

    The ``status == in_progress`` condition is part of the UPDATE, so of two
    racing submissions only one can match the row.
    """

    result = await db.execute(
        update(AiQuizAttempt)
        .where(
            AiQuizAttempt.id == attempt.id,
            AiQuizAttempt.user_id == attempt.user_id,
            AiQuizAttempt.status == ATTEMPT_IN_PROGRESS,
        )
        .values(
            answers_snapshot=list(answers),
            score=score,
            status=ATTEMPT_COMPLETED,
            completed_at=utc_now(),
        )
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning("Rejected duplicate submission for AI quiz attempt %s", attempt.id)
        raise AttemptNotFound()
    await db.commit()
    await db.refresh(attempt)
    return attempt


async def attach_ai_quiz_feedback(db: AsyncSession, attempt_id: int, feedback: str) -> bool:
    """Set feedback once on a completed attempt; returns ``False`` if already set."""

    result = await db.execute(
        update(AiQuizAttempt)
        .where(
            AiQuizAttempt.id == attempt_id,
            AiQuizAttempt.status == ATTEMPT_COMPLETED,
            AiQuizAttempt.feedback_text.is_(None),
        )
        .values(feedback_text=feedback)
    )
    await db.commit()
    return result.rowcount == 1


async def list_ai_quiz_attempts(db: AsyncSession, user_id: int) -> list[AiQuizAttempt]:
    result = await db.execute(
        select(AiQuizAttempt)
        .where(AiQuizAttempt.user_id == user_id)
        .order_by(AiQuizAttempt.created_at.desc(), AiQuizAttempt.id.desc())
        .limit(AI_QUIZ_HISTORY_LIMIT)
    )
    return result.scalars().all()


async def get_ai_quiz_attempt(
    db: AsyncSession, attempt_id: int, user_id: int
) -> AiQuizAttempt | None:
    result = await db.execute(
        select(AiQuizAttempt).where(
            AiQuizAttempt.id == attempt_id, AiQuizAttempt.user_id == user_id
        )
    )
    return result.scalar_one_or_none()


# --- instructor quizzes -------------------------------------------------------


async def create_quiz(db: AsyncSession, quiz: Quiz) -> Quiz:
    db.add(quiz)
    await db.commit()
    await db.refresh(quiz)
    return quiz


async def get_quiz(db: AsyncSession, quiz_id: int) -> Quiz | None:
    result = await db.execute(select(Quiz).where(Quiz.id == quiz_id))
    return result.scalar_one_or_none()


async def list_quizzes_for_course(db: AsyncSession, course_id: int) -> list[Quiz]:
    result = await db.execute(
        select(Quiz)
        .where(Quiz.course_id == course_id)
        .order_by(Quiz.created_at.desc(), Quiz.id.desc())
    )
    return result.scalars().all()


async def start_quiz_attempt(db: AsyncSession, quiz: Quiz, user_id: int) -> QuizAttempt:
    attempt = QuizAttempt(
        quiz_id=quiz.id,
        user_id=user_id,
        status=ATTEMPT_IN_PROGRESS,
        total_questions=len(quiz.questions_snapshot),
    )
    db.add(attempt)
    await db.commit()
    await db.refresh(attempt)
    return attempt


async def load_quiz_attempt_for_submission(
    db: AsyncSession, attempt_id: int, quiz_id: int, user_id: int
) -> QuizAttempt:
    result = await db.execute(
        select(QuizAttempt).where(
            QuizAttempt.id == attempt_id,
            QuizAttempt.quiz_id == quiz_id,
            QuizAttempt.user_id == user_id,
            QuizAttempt.status == ATTEMPT_IN_PROGRESS,
        )
    )
    attempt = result.scalar_one_or_none()
    if attempt is None:
        raise AttemptNotFound()
    return attempt


async def complete_quiz_attempt(
    db: AsyncSession, attempt: QuizAttempt, answers: list[int], score: int
) -> QuizAttempt:
    result = await db.execute(
        update(QuizAttempt)
        .where(
            QuizAttempt.id == attempt.id,
            QuizAttempt.user_id == attempt.user_id,
            QuizAttempt.status == ATTEMPT_IN_PROGRESS,
        )
        .values(
            answers_snapshot=list(answers),
            score=score,
            status=ATTEMPT_COMPLETED,
            completed_at=utc_now(),
        )
    )
    if result.rowcount != 1:
        await db.rollback()
        logger.warning("Rejected duplicate submission for quiz attempt %s", attempt.id)
        raise AttemptNotFound()
    await db.commit()
    await db.refresh(attempt)
    return attempt


async def list_quiz_attempts(db: AsyncSession, quiz_id: int, user_id: int) -> list[QuizAttempt]:
    result = await db.execute(
        select(QuizAttempt)
        .where(QuizAttempt.quiz_id == quiz_id, QuizAttempt.user_id == user_id)
        .order_by(QuizAttempt.created_at.desc(), QuizAttempt.id.desc())
        .limit(QUIZ_ATTEMPT_HISTORY_LIMIT)
    )
    return result.scalars().all()


# --- lesson quizzes -----------------------------------------------------------


async def record_lesson_quiz_attempt(
    db: AsyncSession, attempt: LessonQuizAttempt
) -> ReadinessUpdate:
    """Store a graded lesson quiz and fold it into readiness in one commit.

    Either both the attempt row and the readiness update are written or
    neither is.
    """

    try:
        db.add(attempt)
        update_ = await apply_readiness_observation(
            db, attempt.user_id, attempt.percentage
        )
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(attempt)
    return update_
