from datetime import datetime
from typing import Annotated, Any, List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator
from pydantic.alias_generators import to_camel

OPTIONS_PER_QUESTION = 4


class CamelModel(BaseModel):
    """Wire models use camelCase, Python code uses snake_case."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )


class QuestionPublic(CamelModel):
    question_text: str
    options: List[str]


class QuestionIn(QuestionPublic):
    """One multiple-choice question as authored or generated.

    Text and options are trimmed and empty options dropped; nothing else is
    repaired, so three usable options or an index of 4 is a validation error.
    """

    model_config = ConfigDict(frozen=True)

    question_text: StrictStr
    options: List[StrictStr]
    correct_answer_index: Annotated[StrictInt, Field(ge=0, le=OPTIONS_PER_QUESTION - 1)]

    @field_validator("question_text")
    @classmethod
    def _strip_text(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("questionText must be a non-empty string")
        return value

    @field_validator("options", mode="before")
    @classmethod
    def _clean_options(cls, value: Any) -> list[str]:
        if not isinstance(value, (list, tuple)):
            raise ValueError("options must be an array")
        options = [o.strip() for o in value if isinstance(o, str) and o.strip()]
        if len(options) != OPTIONS_PER_QUESTION:
            raise ValueError(
                f"options must contain exactly {OPTIONS_PER_QUESTION} non-empty strings"
            )
        if len(set(options)) != OPTIONS_PER_QUESTION:
            raise ValueError("options must be distinct")
        return options

    def as_dict(self) -> dict:
        """Return the camelCase JSON shape stored in snapshot columns."""
        return self.model_dump(by_alias=True)

    def public_dict(self) -> dict:
        """Question as shown to a learner taking the quiz."""
        return self.model_dump(by_alias=True, include={"question_text", "options"})

# --- learner AI quiz ---

class AiQuizGenerateRequest(CamelModel):
    topic: Optional[str] = None
    course_id: Optional[Union[int, str]] = None
    course_title: Optional[str] = None
    lesson_title: Optional[str] = None
    difficulty: Optional[str] = "medium"


class AiQuizGenerateResponse(CamelModel):
    attempt_id: int
    questions: List[QuestionPublic]


class AiQuizSubmitRequest(CamelModel):
    attempt_id: Optional[int] = None
    answers: Optional[List[Any]] = None


class AiQuizSubmitResponse(CamelModel):
    score: int
    total_questions: int
    feedback: str
    correct_answers: List[int]


class AiQuizAttemptSummary(CamelModel):
    id: int
    course_title: str
    lesson_title: Optional[str] = None
    difficulty: str
    status: str
    score: Optional[int] = None
    total_questions: int
    created_at: datetime
    completed_at: Optional[datetime] = None


class AiQuizAttemptList(CamelModel):
    attempts: List[AiQuizAttemptSummary]


class AiQuizAttemptDetail(AiQuizAttemptSummary):
    feedback_text: Optional[str] = None
    questions_snapshot: List[dict]
    answers_snapshot: Optional[List[int]] = None


# --- instructor quizzes ---

class QuizCreate(CamelModel):
    title: Optional[str] = None
    questions: Optional[List[Any]] = None
    generate_with_ai: bool = False
    topics_prompt: Optional[str] = None
    file_content: Optional[str] = None


class QuizCreated(CamelModel):
    id: int
    course_id: int
    title: str
    created_at: datetime


class QuizSummary(QuizCreated):
    created_by_id: int


class CourseQuizList(CamelModel):
    course_id: int
    course_title: str
    quizzes: List[QuizSummary]


class QuizTake(CamelModel):
    id: int
    course_id: int
    title: str
    questions: List[QuestionPublic]
    total_questions: int


class QuizSubmit(CamelModel):
    answers: Optional[List[Any]] = None
    attempt_id: Optional[int] = None


class QuizSubmitResult(CamelModel):
    attempt_id: int
    score: int
    total_questions: int
    correct_answers: List[int]


class QuizAttemptRead(CamelModel):
    id: int
    quiz_id: int
    status: str
    score: Optional[int] = None
    total_questions: int
    created_at: datetime
    completed_at: Optional[datetime] = None


class QuizAttemptList(CamelModel):
    attempts: List[QuizAttemptRead]


# --- lesson quizzes ---

class LessonAiContent(CamelModel):
    lesson_id: int
    ai_summary: Optional[str] = None
    ai_quiz_json: Optional[List[dict]] = None


class LessonQuizSubmit(CamelModel):
    # a list, or a mapping keyed by 0- or 1-based question position
    answers: Optional[Union[List[Any], dict[str, Any]]] = None


class LessonQuizResult(CamelModel):
    lesson_id: int
    correct_count: int
    total: int
    percentage: float
    readiness_score: float
    readiness_score_quiz_count: int
