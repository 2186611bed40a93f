"""Tests for quiz generation, output parsing and mentor feedback."""

import asyncio
import json
import pathlib
import sys

import pytest

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from app.ai_provider import AnthropicProvider
from app.errors import (
    InputInvalid,
    OutputNotJson,
    OutputSchemaMismatch,
    ProviderUnavailable,
)
from app.feedback import FALLBACK_FEEDBACK, FeedbackGenerator, build_feedback_prompt
from app.quiz_generation import (
    QuizGenerator,
    QuizKind,
    build_prompt,
    normalize_difficulty,
    parse_json_array,
)
from app.validation import QuestionIn


def _questions_json(n: int) -> str:
    return json.dumps(
        [
            {
                "questionText": f"Question {i}?",
                "options": ["alpha", "beta", "gamma", "delta"],
                "correctAnswerIndex": i % 4,
            }
            for i in range(n)
        ]
    )


class FakeProvider:
    """Returns canned text, or raises, and records every call."""

    def __init__(self, reply=None, error=None):
        self.reply = reply
        self.error = error
        self.calls = []

    async def complete(self, system, user, max_tokens=1024, temperature=0.2):
        self.calls.append(
            {"system": system, "user": user, "max_tokens": max_tokens, "temperature": temperature}
        )
        if self.error is not None:
            raise self.error
        return self.reply


def test_parse_plain_array():
    assert parse_json_array("[1, 2]") == [1, 2]


def test_parse_extracts_array_from_fenced_output():
    text = "Here you go:\n```json\n" + _questions_json(2) + "\n```\nGood luck!"
    assert len(parse_json_array(text)) == 2


def test_parse_raises_when_no_array():
    with pytest.raises(OutputNotJson):
        parse_json_array("I cannot help with that.")
    with pytest.raises(OutputNotJson):
        parse_json_array("[not, json]")


def test_prompt_states_count_and_difficulty():
    system, user = build_prompt(QuizKind.LEARNER_QUIZ, "Photosynthesis", "HARD")
    assert "exactly 10 objects" in system
    assert "Difficulty: hard" in system
    assert user.endswith("Photosynthesis")

    system, user = build_prompt(QuizKind.LESSON_QUIZ, "Cells divide.")
    assert "exactly 5 objects" in system
    assert "LESSON CONTENT" in user


def test_normalize_difficulty_defaults_to_medium():
    assert normalize_difficulty("Easy") == "easy"
    assert normalize_difficulty("impossible") == "medium"
    assert normalize_difficulty(None) == "medium"


def test_generate_learner_quiz():
    async def run():
        provider = FakeProvider(reply="```json\n" + _questions_json(10) + "\n```")
        result = await QuizGenerator(provider).generate(
            QuizKind.LEARNER_QUIZ, "Networking basics", "easy"
        )
        assert result.ok
        assert len(result.unwrap()) == 10
        assert len(provider.calls) == 1
        assert provider.calls[0]["max_tokens"] == 4096

    asyncio.run(run())


def test_generate_rejects_empty_context_without_calling_provider():
    async def run():
        provider = FakeProvider(reply=_questions_json(10))
        result = await QuizGenerator(provider).generate(QuizKind.LEARNER_QUIZ, "   ")
        assert isinstance(result.error, InputInvalid)
        assert provider.calls == []

    asyncio.run(run())


def test_generate_reports_not_json():
    async def run():
        provider = FakeProvider(reply="Sorry, no quiz today.")
        result = await QuizGenerator(provider).generate(QuizKind.LEARNER_QUIZ, "Topic")
        assert isinstance(result.error, OutputNotJson)
        with pytest.raises(OutputNotJson):
            result.unwrap()

    asyncio.run(run())


def test_generate_reports_schema_mismatch_for_wrong_count():
    async def run():
        provider = FakeProvider(reply=_questions_json(9))
        result = await QuizGenerator(provider).generate(QuizKind.LEARNER_QUIZ, "Topic")
        assert isinstance(result.error, OutputSchemaMismatch)
        assert result.error.status_code == 503
        assert "fallback" in result.error.to_dict()

    asyncio.run(run())


@pytest.mark.parametrize(
    "mutate",
    [
        lambda qs: qs.pop(),
        lambda qs: qs[3].update(options=["a", "b", "c"]),
        lambda qs: qs[7].update(correctAnswerIndex=4),
    ],
    ids=["nine-questions", "three-options", "index-four"],
)
def test_generate_rejects_malformed_output(mutate):
    questions = json.loads(_questions_json(10))
    mutate(questions)

    async def run():
        provider = FakeProvider(reply=json.dumps(questions))
        result = await QuizGenerator(provider).generate(QuizKind.LEARNER_QUIZ, "Topic")
        assert isinstance(result.error, OutputSchemaMismatch)
        assert result.questions == []

    asyncio.run(run())


def test_generate_reports_provider_failure():
    async def run():
        provider = FakeProvider(error=ProviderUnavailable())
        result = await QuizGenerator(provider).generate(QuizKind.LESSON_QUIZ, "Content")
        assert isinstance(result.error, ProviderUnavailable)

    asyncio.run(run())


def test_summary_rejects_empty_content():
    async def run():
        with pytest.raises(InputInvalid):
            await QuizGenerator(FakeProvider(reply="x")).generate_summary("")

    asyncio.run(run())


def test_provider_without_key_is_unavailable(monkeypatch):
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)

    async def run():
        provider = AnthropicProvider(api_key="")
        with pytest.raises(ProviderUnavailable):
            await provider.complete(None, "hello")

    asyncio.run(run())


def _graded_questions() -> list[QuestionIn]:
    return [
        QuestionIn(
            question_text="What is TCP?",
            options=["A protocol", "A cable", "A port", "A host"],
            correct_answer_index=0,
        ),
        QuestionIn(
            question_text="What is UDP?",
            options=["A datagram service", "A cable", "A port", "A host"],
            correct_answer_index=0,
        ),
    ]


def test_feedback_prompt_lists_missed_concepts_without_numbers():
    prompt = build_feedback_prompt(_graded_questions(), [0, 3], "Networking")
    assert "Score: 1 of 2" in prompt
    assert "- A datagram service" in prompt
    assert "What is UDP?" not in prompt
    assert "What is TCP?" not in prompt
    assert "A protocol" not in prompt
    assert "Question 2" not in prompt


def test_feedback_uses_provider_text():
    async def run():
        provider = FakeProvider(reply="  Nice work on TCP. Review UDP.  ")
        text = await FeedbackGenerator(provider).generate_feedback(
            _graded_questions(), [0, 3], "Networking"
        )
        assert text == "Nice work on TCP. Review UDP."

    asyncio.run(run())


def test_feedback_falls_back_on_failure_or_empty_text():
    async def run():
        failing = FakeProvider(error=RuntimeError("boom"))
        text = await FeedbackGenerator(failing).generate_feedback(
            _graded_questions(), [0, 3], "Networking"
        )
        assert text == FALLBACK_FEEDBACK

        empty = FakeProvider(reply="   ")
        text = await FeedbackGenerator(empty).generate_feedback(
            _graded_questions(), [0, 3], ""
        )
        assert text == FALLBACK_FEEDBACK

    asyncio.run(run())
