"""Convenience imports for all schema classes used by the API."""

from .user import UserCreate, UserResponse, UserMeResponse, UserLogin
from .quiz import (
    QuestionPublic,
    QuestionIn,
    AiQuizGenerateRequest,
    AiQuizGenerateResponse,
    AiQuizSubmitRequest,
    AiQuizSubmitResponse,
    AiQuizAttemptSummary,
    AiQuizAttemptList,
    AiQuizAttemptDetail,
    QuizCreate,
    QuizCreated,
    QuizSummary,
    CourseQuizList,
    QuizTake,
    QuizSubmit,
    QuizSubmitResult,
    QuizAttemptRead,
    QuizAttemptList,
    LessonAiContent,
    LessonQuizSubmit,
    LessonQuizResult,
)

__all__ = [
    "UserCreate",
    "UserResponse",
    "UserMeResponse",
    "UserLogin",
    "QuestionPublic",
    "QuestionIn",
    "AiQuizGenerateRequest",
    "AiQuizGenerateResponse",
    "AiQuizSubmitRequest",
    "AiQuizSubmitResponse",
    "AiQuizAttemptSummary",
    "AiQuizAttemptList",
    "AiQuizAttemptDetail",
    "QuizCreate",
    "QuizCreated",
    "QuizSummary",
    "CourseQuizList",
    "QuizTake",
    "QuizSubmit",
    "QuizSubmitResult",
    "QuizAttemptRead",
    "QuizAttemptList",
    "LessonAiContent",
    "LessonQuizSubmit",
    "LessonQuizResult",
]
