"""Tests for lesson AI content and readiness tracking."""

import asyncio
import json
import pathlib
import sys

import pytest

from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, async_sessionmaker
from sqlmodel import SQLModel, select, func

sys.path.append(str(pathlib.Path(__file__).resolve().parents[2]))

from app.main import app
from app.database import get_session
from app.ai_provider import get_text_provider
from app.auth import get_password_hash
from app.crud import record_lesson_quiz_attempt
from app.errors import NotFound
from app.models import Course, Lesson, LessonQuizAttempt, User
from app.readiness import apply_readiness_observation

LESSON_QUIZ = [
    {
        "questionText": f"Lesson question {i}?",
        "options": ["w", "x", "y", "z"],
        "correctAnswerIndex": i % 4,
    }
    for i in range(5)
]


class LessonProvider:
    """Quiz JSON when a system prompt is given, summary text otherwise."""

    async def complete(self, system, user, max_tokens=1024, temperature=0.2):
        if system is not None:
            return json.dumps(LESSON_QUIZ)
        return "First paragraph.\n\nSecond paragraph.\n\nThird paragraph."


async def _setup_test_db():
    engine = create_async_engine("sqlite+aiosqlite:///:memory:")
    async with engine.begin() as conn:
        await conn.run_sync(SQLModel.metadata.create_all)
    TestSession = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_session():
        async with TestSession() as session:
            yield session

    app.dependency_overrides[get_session] = override_get_session
    app.dependency_overrides[get_text_provider] = LessonProvider

    async with TestSession() as session:
        author = User(
            name="Author",
            email="author@example.com",
            password_hash=get_password_hash("pass"),
            role="instructor",
        )
        session.add(author)
        await session.commit()
        await session.refresh(author)
        course = Course(title="Biology", created_by_id=author.id)
        session.add(course)
        await session.commit()
        await session.refresh(course)
        lesson = Lesson(course_id=course.id, title="Cells", content="Cells divide by mitosis.")
        empty = Lesson(course_id=course.id, title="Draft", content="")
        session.add(lesson)
        session.add(empty)
        await session.commit()
        await session.refresh(lesson)
        await session.refresh(empty)

    return TestSession, lesson.id, empty.id


async def _headers(client, email, register=False):
    if register:
        resp = await client.post(
            "/register", json={"name": "Learner", "email": email, "password": "pass"}
        )
        assert resp.status_code == 200
    resp = await client.post("/login", json={"email": email, "password": "pass"})
    assert resp.status_code == 200
    return {"Authorization": f"Bearer {resp.json()['access_token']}"}


def test_lesson_quiz_updates_readiness():
    async def run():
        TestSession, lesson_id, empty_id = await _setup_test_db()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            author = await _headers(client, "author@example.com")
            learner = await _headers(client, "learner@example.com", register=True)

            resp = await client.post(f"/lessons/{lesson_id}/generate-ai", headers=learner)
            assert resp.status_code == 403

            resp = await client.post(f"/lessons/{lesson_id}/submit-quiz", json={"answers": [0] * 5}, headers=learner)
            assert resp.status_code == 400
            assert resp.json()["message"] == "Lesson has no AI quiz available"

            resp = await client.post(f"/lessons/{lesson_id}/generate-ai", headers=author)
            assert resp.status_code == 200
            content = resp.json()
            assert content["aiSummary"].startswith("First paragraph.")
            assert len(content["aiQuizJson"]) == 5

            resp = await client.get(f"/lessons/{lesson_id}/ai-content", headers=learner)
            assert resp.status_code == 200
            assert resp.json()["aiQuizJson"] == LESSON_QUIZ

            # 4 of 5 correct
            resp = await client.post(
                f"/lessons/{lesson_id}/submit-quiz",
                json={"answers": [0, 1, 2, 3, 1]},
                headers=learner,
            )
            assert resp.status_code == 200
            result = resp.json()
            assert result["correctCount"] == 4
            assert result["total"] == 5
            assert result["percentage"] == 80.0
            assert result["readinessScore"] == 80.0
            assert result["readinessScoreQuizCount"] == 1

            # 3 of 5 correct, keyed 1-based
            resp = await client.post(
                f"/lessons/{lesson_id}/submit-quiz",
                json={"answers": {"1": 0, "2": 1, "3": 2, "4": 0, "5": 1}},
                headers=learner,
            )
            assert resp.status_code == 200
            assert resp.json()["percentage"] == 60.0
            assert resp.json()["readinessScore"] == 70.0

            # 5 of 5 correct, keyed 0-based
            resp = await client.post(
                f"/lessons/{lesson_id}/submit-quiz",
                json={"answers": {"0": 0, "1": 1, "2": 2, "3": 3, "4": 0}},
                headers=learner,
            )
            assert resp.json()["readinessScore"] == 80.0
            assert resp.json()["readinessScoreQuizCount"] == 3

            resp = await client.get("/users/me", headers=learner)
            assert resp.status_code == 200
            me = resp.json()
            assert me["readinessScore"] == 80.0
            assert me["readinessScoreQuizCount"] == 3
            assert me["readinessScoreUpdatedAt"] is not None

            resp = await client.post(f"/lessons/{lesson_id}/submit-quiz", json={}, headers=learner)
            assert resp.status_code == 400

            resp = await client.post(f"/lessons/{empty_id}/generate-ai", headers=author)
            assert resp.status_code == 400
            assert resp.json()["message"] == "lesson content is required"

            resp = await client.post("/lessons/999/submit-quiz", json={"answers": [0] * 5}, headers=learner)
            assert resp.status_code == 404

        async with TestSession() as session:
            count = (
                await session.execute(select(func.count()).select_from(LessonQuizAttempt))
            ).scalar()
            assert count == 3

    asyncio.run(run())


def test_corrupt_lesson_quiz_is_not_graded():
    async def run():
        TestSession, lesson_id, _ = await _setup_test_db()
        async with TestSession() as session:
            lesson = await session.get(Lesson, lesson_id)
            broken = [dict(q) for q in LESSON_QUIZ]
            broken[0]["correctAnswerIndex"] = 7
            lesson.ai_quiz_json = broken
            session.add(lesson)
            await session.commit()

        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            learner = await _headers(client, "learner@example.com", register=True)
            resp = await client.post(
                f"/lessons/{lesson_id}/submit-quiz",
                json={"answers": [0] * 5},
                headers=learner,
            )
            assert resp.status_code == 409
            assert resp.json()["code"] == "stored_quiz_invalid"

        async with TestSession() as session:
            user = (
                await session.execute(select(User).where(User.email == "learner@example.com"))
            ).scalar_one()
            assert user.readiness_score_quiz_count == 0

    asyncio.run(run())


def test_apply_readiness_observation_leaves_commit_to_caller():
    async def run():
        TestSession, _, _ = await _setup_test_db()
        async with TestSession() as session:
            user = (
                await session.execute(select(User).where(User.email == "author@example.com"))
            ).scalar_one()
            user_id = user.id
            update = await apply_readiness_observation(session, user_id, 50.0)
            assert (update.score, update.quiz_count) == (50.0, 1)
            await session.rollback()

        async with TestSession() as session:
            user = await session.get(User, user_id)
            assert user.readiness_score_quiz_count == 0
            assert user.readiness_score == 0.0

    asyncio.run(run())


def test_failed_readiness_update_discards_lesson_attempt():
    async def run():
        TestSession, lesson_id, _ = await _setup_test_db()
        async with TestSession() as session:
            attempt = LessonQuizAttempt(
                lesson_id=lesson_id,
                user_id=999,
                answers_snapshot=[0] * 5,
                score=0,
                total_questions=5,
                percentage=0.0,
            )
            with pytest.raises(NotFound):
                await record_lesson_quiz_attempt(session, attempt)

        async with TestSession() as session:
            count = (
                await session.execute(select(func.count()).select_from(LessonQuizAttempt))
            ).scalar()
            assert count == 0

    asyncio.run(run())


def test_readiness_timestamp_is_timezone_aware():
    async def run():
        TestSession, _, _ = await _setup_test_db()
        async with TestSession() as session:
            user = (
                await session.execute(select(User).where(User.email == "author@example.com"))
            ).scalar_one()
            await apply_readiness_observation(session, user.id, 90.0)
            assert user.readiness_score_updated_at.tzinfo is not None
            await session.rollback()

    asyncio.run(run())
