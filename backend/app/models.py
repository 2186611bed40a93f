"""Database models for the assessment engine.

The models are defined with SQLModel (built on SQLAlchemy and Pydantic).
``Course``, ``Lesson`` and ``CourseEnrollment`` are only the slice of the
course directory the engine reads for prompt context and the enrollment
gate; everything else here is owned by the engine.
"""

from typing import Optional, List
from datetime import datetime, timezone
from sqlmodel import SQLModel, Field
from sqlalchemy import Column, JSON, UniqueConstraint

def utc_now() -> datetime:
    return datetime.now(timezone.utc)


ATTEMPT_IN_PROGRESS = "in_progress"
ATTEMPT_COMPLETED = "completed"


class User(SQLModel, table=True):
    """Authenticated principal, carrying the embedded readiness score."""
    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    email: str = Field(unique=True, index=True)
    password_hash: str
    role: str = "learner"  # 'learner', 'instructor', 'manager', 'admin'
    # Rolling mean of lesson quiz percentages; only app.readiness writes these.
    readiness_score: float = 0.0
    readiness_score_quiz_count: int = 0
    readiness_score_updated_at: Optional[datetime] = None
    created_at: datetime = Field(default_factory=utc_now)


class Course(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    title: str
    description: Optional[str] = None
    created_by_id: Optional[int] = Field(default=None, foreign_key="user.id")
    created_at: datetime = Field(default_factory=utc_now)


class Lesson(SQLModel, table=True):
    """Lesson with its optional AI summary and embedded five-question quiz."""
    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    title: str
    content: Optional[str] = None
    ai_summary: Optional[str] = None
    ai_quiz_json: Optional[List[dict]] = Field(default=None, sa_column=Column(JSON))
    created_at: datetime = Field(default_factory=utc_now)


class CourseEnrollment(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "course_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    enrolled_at: datetime = Field(default_factory=utc_now)


class AiQuizAttempt(SQLModel, table=True):
    """Self-assessment quiz generated on demand; definition and attempt in one row."""

    __tablename__ = "ai_quiz_attempts"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    course_id: Optional[str] = None
    course_title: str = ""
    lesson_title: Optional[str] = None
    difficulty: str = "medium"  # easy, medium, hard
    status: str = ATTEMPT_IN_PROGRESS  # in_progress, completed
    questions_snapshot: List[dict] = Field(sa_column=Column(JSON, nullable=False))
    answers_snapshot: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))
    score: Optional[int] = None
    total_questions: int = 10
    feedback_text: Optional[str] = None
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None

    @property
    def topic(self) -> str:
        parts = [p for p in (self.course_title, self.lesson_title) if p]
        return " / ".join(parts) or "Course"


class Quiz(SQLModel, table=True):
    """Instructor-authored quiz, reused by many attempts."""

    __tablename__ = "quizzes"

    id: Optional[int] = Field(default=None, primary_key=True)
    course_id: int = Field(foreign_key="course.id", index=True)
    created_by_id: int = Field(foreign_key="user.id")
    title: str
    questions_snapshot: List[dict] = Field(sa_column=Column(JSON, nullable=False))
    created_at: datetime = Field(default_factory=utc_now)


class QuizAttempt(SQLModel, table=True):
    __tablename__ = "quiz_attempts"

    id: Optional[int] = Field(default=None, primary_key=True)
    quiz_id: int = Field(foreign_key="quizzes.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    status: str = ATTEMPT_IN_PROGRESS
    answers_snapshot: Optional[List[int]] = Field(default=None, sa_column=Column(JSON))
    score: Optional[int] = None
    total_questions: int = 10
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = None


class LessonQuizAttempt(SQLModel, table=True):
    """One graded lesson quiz; each row is one readiness observation."""

    __tablename__ = "lesson_quiz_attempts"

    id: Optional[int] = Field(default=None, primary_key=True)
    lesson_id: int = Field(foreign_key="lesson.id", index=True)
    user_id: int = Field(foreign_key="user.id", index=True)
    status: str = ATTEMPT_COMPLETED
    answers_snapshot: List[int] = Field(sa_column=Column(JSON, nullable=False))
    score: int
    total_questions: int
    percentage: float
    created_at: datetime = Field(default_factory=utc_now)
    completed_at: Optional[datetime] = Field(default_factory=utc_now)
