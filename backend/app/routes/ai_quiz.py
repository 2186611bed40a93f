"""Learner self-assessment quizzes generated on demand."""

import logging
from fastapi import APIRouter, Depends
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.acl import ROLE_LEARNER
from app.ai_provider import TextProvider, get_text_provider
from app.auth import require_role
from app.crud import (
    attach_ai_quiz_feedback,
    complete_ai_quiz_attempt,
    create_ai_quiz_attempt,
    get_ai_quiz_attempt,
    get_course,
    list_ai_quiz_attempts,
    load_ai_quiz_attempt_for_submission,
)
from app.database import get_session
from app.errors import AttemptNotFound, InputInvalid
from app.feedback import FeedbackGenerator
from app.grading import grade, require_answers
from app.models import ATTEMPT_IN_PROGRESS, AiQuizAttempt, User
from app.quiz_generation import QuizGenerator, QuizKind, normalize_difficulty
from app.schemas import (
    AiQuizAttemptDetail,
    AiQuizAttemptList,
    AiQuizAttemptSummary,
    AiQuizGenerateRequest,
    AiQuizGenerateResponse,
    AiQuizSubmitRequest,
    AiQuizSubmitResponse,
    QuestionPublic,
)
from app.validation import load_snapshot

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/ai/quiz", tags=["ai-quiz"])

LEARNER_AI_QUIZ_TOTAL = QuizKind.LEARNER_QUIZ.expected_count
TITLE_MAX_LENGTH = 500

learner_only = require_role(ROLE_LEARNER)


async def _course_title_for(db: AsyncSession, course_id) -> str:
    try:
        course = await get_course(db, int(course_id))
    except (TypeError, ValueError):
        return ""
    return course.title if course else ""


@router.post("/generate", response_model=AiQuizGenerateResponse)
async def generate_ai_quiz(
    data: AiQuizGenerateRequest,
    user: User = Depends(learner_only),
    db: AsyncSession = Depends(get_session),
    provider: TextProvider = Depends(get_text_provider),
):
    """Generate ten questions for a topic and open an attempt for them."""

    course_title = (data.course_title or "").strip()
    if not course_title and data.course_id is not None:
        course_title = await _course_title_for(db, data.course_id)
    lesson_title = (data.lesson_title or "").strip() or None
    topic = (data.topic or "").strip() or " / ".join(
        p for p in (course_title, lesson_title) if p
    )
    if not topic:
        raise InputInvalid("topic is required")
    difficulty = normalize_difficulty(data.difficulty)

    generated = await QuizGenerator(provider).generate(
        QuizKind.LEARNER_QUIZ, topic, difficulty
    )
    questions = generated.unwrap()

    attempt = await create_ai_quiz_attempt(
        db,
        AiQuizAttempt(
            user_id=user.id,
            course_id=str(data.course_id) if data.course_id is not None else None,
            course_title=(course_title or topic)[:TITLE_MAX_LENGTH],
            lesson_title=lesson_title[:TITLE_MAX_LENGTH] if lesson_title else None,
            difficulty=difficulty,
            questions_snapshot=[q.as_dict() for q in questions],
            total_questions=LEARNER_AI_QUIZ_TOTAL,
        ),
    )
    logger.info("User %s started AI quiz attempt %s", user.id, attempt.id)
    return AiQuizGenerateResponse(
        attempt_id=attempt.id,
        questions=[QuestionPublic(**q.public_dict()) for q in questions],
    )


@router.post("/submit", response_model=AiQuizSubmitResponse)
async def submit_ai_quiz(
    data: AiQuizSubmitRequest,
    user: User = Depends(learner_only),
    db: AsyncSession = Depends(get_session),
    provider: TextProvider = Depends(get_text_provider),
):
    """Grade an open attempt, then attach best-effort mentor feedback."""

    if not data.attempt_id or data.attempt_id <= 0:
        raise InputInvalid("attemptId is required")
    answers = require_answers(data.answers, LEARNER_AI_QUIZ_TOTAL)

    attempt = await load_ai_quiz_attempt_for_submission(db, data.attempt_id, user.id)
    questions = load_snapshot(attempt.questions_snapshot, LEARNER_AI_QUIZ_TOTAL)
    result = grade(questions, answers)
    topic = attempt.topic

    # Phase 1: the grade is committed on its own.
    await complete_ai_quiz_attempt(db, attempt, answers, result.score)

    # Phase 2: feedback may fail without touching the recorded grade.
    feedback = await FeedbackGenerator(provider).generate_feedback(
        questions, answers, topic
    )
    try:
        await attach_ai_quiz_feedback(db, attempt.id, feedback)
    except SQLAlchemyError:
        await db.rollback()
        logger.exception("Could not store feedback for AI quiz attempt %s", attempt.id)

    return AiQuizSubmitResponse(
        score=result.score,
        total_questions=LEARNER_AI_QUIZ_TOTAL,
        feedback=feedback,
        correct_answers=result.correct_answers,
    )


@router.get("/attempts", response_model=AiQuizAttemptList)
async def list_attempts(
    user: User = Depends(learner_only),
    db: AsyncSession = Depends(get_session),
):
    attempts = await list_ai_quiz_attempts(db, user.id)
    return AiQuizAttemptList(
        attempts=[AiQuizAttemptSummary.model_validate(a) for a in attempts]
    )


@router.get("/attempts/{attempt_id}", response_model=AiQuizAttemptDetail)
async def get_attempt(
    attempt_id: int,
    user: User = Depends(learner_only),
    db: AsyncSession = Depends(get_session),
):
    """Full attempt for review, including correct answers once submitted."""

    attempt = await get_ai_quiz_attempt(db, attempt_id, user.id)
    if not attempt:
        raise AttemptNotFound("Attempt not found")
    detail = AiQuizAttemptDetail.model_validate(attempt)
    if attempt.status == ATTEMPT_IN_PROGRESS:
        # answers stay hidden until the attempt is submitted
        detail = detail.model_copy(
            update={
                "questions_snapshot": [
                    {"questionText": q.get("questionText"), "options": q.get("options")}
                    for q in attempt.questions_snapshot
                ]
            }
        )
    return detail
