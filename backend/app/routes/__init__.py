"""Aggregate import for all API route modules."""

from . import (
    auth,
    users,
    ai_quiz,
    quizzes,
    lessons,
)

__all__ = [
    "auth",
    "users",
    "ai_quiz",
    "quizzes",
    "lessons",
]
