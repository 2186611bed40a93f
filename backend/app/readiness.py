"""Per-user readiness score: a rolling mean of lesson quiz percentages."""

import logging
from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession
from sqlmodel import select

from app.errors import NotFound
from app.grading import round_half_up
from app.models import User, utc_now

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReadinessUpdate:
    score: float
    quiz_count: int


def next_readiness(score: float, quiz_count: int, percentage: float) -> ReadinessUpdate:
    """Fold one observation into the mean of ``quiz_count`` earlier ones."""
    score = float(score or 0)
    quiz_count = max(int(quiz_count or 0), 0)
    new_count = quiz_count + 1
    new_score = round_half_up((score * quiz_count + percentage) / new_count, 2)
    return ReadinessUpdate(score=new_score, quiz_count=new_count)


async def apply_readiness_observation(
    db: AsyncSession, user_id: int, percentage: float
) -> ReadinessUpdate:
    """Update the user's readiness row inside the caller's transaction.

    Not idempotent: every call must correspond to exactly one completed
    lesson quiz attempt, and the caller commits both together.
    """
    result = await db.execute(
        select(User)
        .where(User.id == user_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    user = result.scalar_one_or_none()
    if user is None:
        raise NotFound("User no longer exists")
    update = next_readiness(
        user.readiness_score, user.readiness_score_quiz_count, percentage
    )
    user.readiness_score = update.score
    user.readiness_score_quiz_count = update.quiz_count
    user.readiness_score_updated_at = utc_now()
    db.add(user)
    logger.info(
        "Readiness for user %s is now %.2f over %d quizzes",
        user_id,
        update.score,
        update.quiz_count,
    )
    return update
