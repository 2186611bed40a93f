"""Best-effort learner feedback after an AI quiz is graded."""

import logging
from typing import Any, Sequence

from app.ai_provider import TextProvider
from app.grading import wrong_answer_indices
from app.validation import QuestionIn

logger = logging.getLogger(__name__)

FALLBACK_FEEDBACK = "Review the questions you missed and try again when ready."


def build_feedback_prompt(
    questions: Sequence[QuestionIn], answers: Sequence[Any], topic: str
) -> str:
    wrong = wrong_answer_indices(questions, answers)
    score = len(questions) - len(wrong)
    # Only the concept behind each miss is sent: no question text, no numbering.
    missed = [
        f"- {questions[i].options[questions[i].correct_answer_index][:80]}"
        for i in wrong
    ]
    return "\n".join(
        [
            "You are the AI Mentor. After a learner completes a quiz, give short, actionable feedback.",
            "Write 2-4 sentences only. Tell the learner:",
            "1) What they did well (if any).",
            "2) Which areas to improve, based on the concepts they missed.",
            "Do not mention question numbers. Be encouraging and specific to the topic.",
            "",
            f"Topic: {topic}",
            f"Score: {score} of {len(questions)}",
            "",
            "Concepts missed:",
            "\n".join(missed) if missed else "None (all correct).",
        ]
    )


class FeedbackGenerator:
    def __init__(self, provider: TextProvider):
        self.provider = provider

    async def generate_feedback(
        self, questions: Sequence[QuestionIn], answers: Sequence[Any], topic: str
    ) -> str:
        """Return mentor feedback, or :data:`FALLBACK_FEEDBACK` on any failure.

        Feedback is advisory; the grade has already been recorded by the time
        this runs, so no provider problem may escape from here.
        """
        topic = (topic or "").strip() or "the course"
        try:
            prompt = build_feedback_prompt(questions, answers, topic)
            text = await self.provider.complete(
                None, prompt, max_tokens=512, temperature=0.5
            )
        except Exception:
            logger.warning("Quiz feedback generation failed; using fallback", exc_info=True)
            return FALLBACK_FEEDBACK
        text = (text or "").strip() if isinstance(text, str) else ""
        return text or FALLBACK_FEEDBACK
