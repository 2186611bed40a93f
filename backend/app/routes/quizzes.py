"""Instructor-authored course quizzes and the attempts learners make on them."""

import logging
from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.acl import ROLE_LEARNER, is_learner, is_overseer, AUTHOR_ROLES
from app.ai_provider import TextProvider, get_text_provider
from app.auth import get_current_user, require_role
from app.crud import (
    complete_quiz_attempt,
    create_quiz,
    get_course,
    get_quiz,
    is_user_enrolled,
    list_quiz_attempts,
    list_quizzes_for_course,
    load_quiz_attempt_for_submission,
    start_quiz_attempt,
)
from app.database import get_session
from app.errors import EnrollmentRequired, InputInvalid, NotFound, PermissionDenied
from app.grading import grade, require_answers
from app.models import Course, Quiz, User
from app.quiz_generation import QuizGenerator, QuizKind
from app.schemas import (
    CourseQuizList,
    QuestionPublic,
    QuizAttemptList,
    QuizAttemptRead,
    QuizCreate,
    QuizCreated,
    QuizSubmit,
    QuizSubmitResult,
    QuizSummary,
    QuizTake,
)
from app.validation import load_snapshot, validate_questions

logger = logging.getLogger(__name__)
router = APIRouter(tags=["quizzes"])

QUIZ_SIZE = QuizKind.INSTRUCTOR_QUIZ.expected_count

learner_only = require_role(ROLE_LEARNER)
author_only = require_role(*AUTHOR_ROLES)


async def _get_course_or_404(db: AsyncSession, course_id: int) -> Course:
    course = await get_course(db, course_id)
    if not course:
        raise NotFound("Course not found")
    return course


async def _get_quiz_or_404(db: AsyncSession, quiz_id: int) -> Quiz:
    quiz = await get_quiz(db, quiz_id)
    if not quiz:
        raise NotFound("Quiz not found")
    return quiz


async def _ensure_enrolled(db: AsyncSession, user: User, course_id: int) -> None:
    """Learners must be enrolled in the quiz's course; authors are not gated."""
    if not is_learner(user.role):
        return
    if not await is_user_enrolled(db, user.id, course_id):
        logger.info("User %s blocked from course %s quiz: not enrolled", user.id, course_id)
        raise EnrollmentRequired()


def _instructor_quiz_context(course: Course, title: str, topics: str, file_content: str) -> str:
    parts = [course.title or title]
    if topics:
        parts += ["Topics to cover:", topics]
    if file_content:
        parts += ["Content from uploaded document:", file_content]
    return "\n\n".join(parts)


@router.get("/courses/{course_id}/quizzes", response_model=CourseQuizList)
async def list_course_quizzes(
    course_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    course = await _get_course_or_404(db, course_id)
    await _ensure_enrolled(db, user, course.id)
    quizzes = await list_quizzes_for_course(db, course.id)
    return CourseQuizList(
        course_id=course.id,
        course_title=course.title,
        quizzes=[QuizSummary.model_validate(q) for q in quizzes],
    )


@router.post(
    "/courses/{course_id}/quizzes",
    response_model=QuizCreated,
    status_code=status.HTTP_201_CREATED,
)
async def create_course_quiz(
    course_id: int,
    data: QuizCreate,
    user: User = Depends(author_only),
    db: AsyncSession = Depends(get_session),
    provider: TextProvider = Depends(get_text_provider),
):
    """Author a ten-question quiz, either supplied directly or generated."""

    title = (data.title or "").strip()
    if not title:
        raise InputInvalid("title is required")
    course = await _get_course_or_404(db, course_id)
    if course.created_by_id != user.id and not is_overseer(user.role):
        raise PermissionDenied("You can only create quizzes for your own courses")

    if data.generate_with_ai:
        context = _instructor_quiz_context(
            course,
            title,
            (data.topics_prompt or "").strip(),
            (data.file_content or "").strip(),
        )
        generated = await QuizGenerator(provider).generate(QuizKind.INSTRUCTOR_QUIZ, context)
        questions = generated.unwrap()
    else:
        checked = validate_questions(data.questions, QUIZ_SIZE)
        if not checked.ok:
            raise InputInvalid(
                f"Exactly {QUIZ_SIZE} questions required (each with questionText, "
                f"options[4], correctAnswerIndex 0-3): {checked.error}"
            )
        questions = checked.questions

    quiz = await create_quiz(
        db,
        Quiz(
            course_id=course.id,
            created_by_id=user.id,
            title=title,
            questions_snapshot=[q.as_dict() for q in questions],
        ),
    )
    logger.info("User %s created quiz %s for course %s", user.id, quiz.id, course.id)
    return QuizCreated.model_validate(quiz)


@router.get("/quizzes/{quiz_id}", response_model=QuizTake)
async def get_quiz_for_taking(
    quiz_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    quiz = await _get_quiz_or_404(db, quiz_id)
    await _ensure_enrolled(db, user, quiz.course_id)
    return QuizTake(
        id=quiz.id,
        course_id=quiz.course_id,
        title=quiz.title,
        questions=[
            QuestionPublic(question_text=q.get("questionText", ""), options=q.get("options") or [])
            for q in quiz.questions_snapshot
        ],
        total_questions=QUIZ_SIZE,
    )


@router.post("/quizzes/{quiz_id}/attempts", response_model=QuizAttemptRead)
async def start_attempt(
    quiz_id: int,
    user: User = Depends(learner_only),
    db: AsyncSession = Depends(get_session),
):
    quiz = await _get_quiz_or_404(db, quiz_id)
    await _ensure_enrolled(db, user, quiz.course_id)
    attempt = await start_quiz_attempt(db, quiz, user.id)
    return QuizAttemptRead.model_validate(attempt)


@router.post("/quizzes/{quiz_id}/submit", response_model=QuizSubmitResult)
async def submit_quiz(
    quiz_id: int,
    data: QuizSubmit,
    user: User = Depends(learner_only),
    db: AsyncSession = Depends(get_session),
):
    """Grade a learner's answers.

    With ``attemptId`` the named open attempt is completed; without it a
    fresh attempt is opened and completed in the same request.
    """

    answers = require_answers(data.answers, QUIZ_SIZE)
    quiz = await _get_quiz_or_404(db, quiz_id)
    # Enrollment is checked before anything is written.
    await _ensure_enrolled(db, user, quiz.course_id)
    questions = load_snapshot(quiz.questions_snapshot, QUIZ_SIZE)

    if data.attempt_id is not None:
        attempt = await load_quiz_attempt_for_submission(db, data.attempt_id, quiz.id, user.id)
    else:
        attempt = await start_quiz_attempt(db, quiz, user.id)

    result = grade(questions, answers)
    attempt = await complete_quiz_attempt(db, attempt, answers, result.score)
    return QuizSubmitResult(
        attempt_id=attempt.id,
        score=result.score,
        total_questions=QUIZ_SIZE,
        correct_answers=result.correct_answers,
    )


@router.get("/quizzes/{quiz_id}/attempts", response_model=QuizAttemptList)
async def my_attempts(
    quiz_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
):
    quiz = await _get_quiz_or_404(db, quiz_id)
    await _ensure_enrolled(db, user, quiz.course_id)
    attempts = await list_quiz_attempts(db, quiz.id, user.id)
    return QuizAttemptList(attempts=[QuizAttemptRead.model_validate(a) for a in attempts])
