"""Error taxonomy for the assessment engine.

Every error carries a stable ``code`` and the HTTP status it maps to.  The
exception handler registered in ``app.main`` turns them into the same
``{"code": ..., "message": ...}`` body the auth routes already use.
"""

from fastapi import status

AI_FALLBACK_MESSAGE = (
    "The AI Mentor is currently resting. Please try again in a few minutes."
)


class AssessmentError(Exception):
    code = "assessment_error"
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_message = "Assessment request failed"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class InputInvalid(AssessmentError):
    code = "input_invalid"
    status_code = status.HTTP_400_BAD_REQUEST
    default_message = "Request is missing required input"


class NotFound(AssessmentError):
    code = "not_found"
    status_code = status.HTTP_404_NOT_FOUND
    default_message = "Not found"


class AttemptNotFound(NotFound):
    code = "attempt_not_found"
    default_message = "Attempt not found or already submitted"


class PermissionDenied(AssessmentError):
    code = "forbidden"
    status_code = status.HTTP_403_FORBIDDEN
    default_message = "Not authorized"


class EnrollmentRequired(PermissionDenied):
    code = "enrollment_required"
    default_message = "You must enroll in this course to access this quiz"


class StoredQuizInvalid(AssessmentError):
    """A persisted question snapshot no longer passes validation."""

    code = "stored_quiz_invalid"
    status_code = status.HTTP_409_CONFLICT
    default_message = "Stored quiz is malformed and cannot be graded"


class ServiceUnavailable(AssessmentError):
    status_code = status.HTTP_503_SERVICE_UNAVAILABLE


class StoreUnavailable(ServiceUnavailable):
    code = "store_unavailable"
    default_message = "Database not available"


class GenerationError(ServiceUnavailable):
    """Base for failures of an AI generation call."""

    code = "ai_generation_failed"
    default_message = "AI quiz generation failed"

    def to_dict(self) -> dict:
        body = super().to_dict()
        body["fallback"] = AI_FALLBACK_MESSAGE
        return body


class ProviderUnavailable(GenerationError):
    code = "ai_provider_unavailable"
    default_message = "AI service temporarily unavailable"


class OutputNotJson(GenerationError):
    code = "ai_output_not_json"
    default_message = "AI quiz response was not valid JSON"


class OutputSchemaMismatch(GenerationError):
    code = "ai_output_schema_mismatch"
    default_message = "AI quiz response did not match the required schema"
