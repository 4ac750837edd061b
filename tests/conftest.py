"""Shared test fixtures.

Tests run against an in-memory SQLite database that is created fresh for
every test. Redis is never initialised, so rate limiting passes through.
"""

from __future__ import annotations

import itertools
import json
import os
from collections.abc import AsyncGenerator, Awaitable, Callable, Sequence
from typing import Any

os.environ["AIL_DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["AIL_JWT_SECRET_KEY"] = "test-secret-key-with-at-least-32-bytes!"
os.environ["AIL_LEADERBOARD_CRON_SECRET"] = "test-cron-secret"
os.environ["AIL_LOG_FORMAT"] = "console"
os.environ["AIL_LOG_LEVEL"] = "WARNING"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from ailesson.achievements.seed import seed_achievements
from ailesson.ai.client import BaseTextProvider, TextGenerationService, get_text_generator, reset_text_generator
from ailesson.ai.parsing import TextGenerationError
from ailesson.auth.jwt import create_access_token
from ailesson.auth.service import register_account
from ailesson.config import get_settings
from ailesson.database import close_db, create_all, get_session, init_db
from ailesson.db.models import Account
from ailesson.economy.pricing import Role, get_pricing_table
from ailesson.main import create_app

get_settings.cache_clear()
get_pricing_table.cache_clear()

PASSWORD = "SecureP@ss1"

# ---------------------------------------------------------------------------
# Scripted text generation
# ---------------------------------------------------------------------------

LESSON_REPLY = """Here is your lesson:
```json
{
  "title": "Photosynthesis Basics",
  "content": "# Photosynthesis\\n\\nPlants turn light into chemical energy.",
  "keyPoints": ["Light is absorbed by chlorophyll", "Glucose is produced"],
  "difficulty": "BEGINNER"
}
```"""

QUIZ_DATA = {
    "questions": [
        {"type": "TEXT", "text": "What is 2 + 2?", "correctAnswer": "four", "order": 1},
        {
            "type": "SINGLE",
            "text": "Capital of France?",
            "correctAnswer": "Paris",
            "options": ["Berlin", "Paris", "Rome"],
            "order": 2,
        },
        {
            "type": "MULTIPLE",
            "text": "Which are prime?",
            "correctAnswer": ["2", "3"],
            "options": ["2", "3", "4"],
            "order": 3,
        },
        {"type": "TEXT", "text": "Opposite of hot?", "correctAnswer": "cold", "order": 4},
        {
            "type": "SINGLE",
            "text": "Largest planet?",
            "correctAnswer": "Jupiter",
            "options": ["Mars", "Jupiter"],
            "order": 5,
        },
    ]
}

# Correct submissions by question order; mixes texts, indices and casing
CORRECT_ANSWERS: dict[int, Any] = {1: " Four ", 2: "Paris", 3: ["3", "2"], 4: "COLD", 5: 1}
WRONG_ANSWERS: dict[int, Any] = {1: "five", 2: 0, 3: ["2"], 4: "warm", 5: "Mars"}

EXPERT_DATA = {
    "name": "Ada",
    "personality": "Curious and patient.",
    "communicationStyle": "Short examples, lots of questions.",
    "appearance": "avatar3",
}

CHAT_REPLY = "Great question! Let's break it down."


class ScriptedProvider(BaseTextProvider):
    """Returns canned replies by operation; records every call."""

    name = "scripted"

    def __init__(self) -> None:
        self.calls: list[list[dict[str, str]]] = []
        self.fail = False
        self.replies: dict[str, str] = {
            "lesson": LESSON_REPLY,
            "quiz": json.dumps(QUIZ_DATA),
            "expert": json.dumps(EXPERT_DATA),
            "chat": CHAT_REPLY,
        }

    @staticmethod
    def operation(messages: Sequence[dict[str, str]]) -> str:
        if messages[0]["role"] == "system":
            return "chat"
        prompt = messages[0]["content"]
        if "quiz generator" in prompt:
            return "quiz"
        if "tutor generator" in prompt:
            return "expert"
        return "lesson"

    async def complete(
        self,
        messages: Sequence[dict[str, str]],
        temperature: float = 0.7,
        max_tokens: int = 2000,
    ) -> str:
        self.calls.append(list(messages))
        if self.fail:
            msg = "scripted failure"
            raise TextGenerationError(msg)
        return self.replies[self.operation(messages)]


@pytest.fixture
def scripted_provider() -> ScriptedProvider:
    return ScriptedProvider()


@pytest.fixture
def text_generator(scripted_provider: ScriptedProvider) -> TextGenerationService:
    return TextGenerationService(providers=[scripted_provider])


# ---------------------------------------------------------------------------
# Database
# ---------------------------------------------------------------------------


@pytest_asyncio.fixture
async def database() -> AsyncGenerator[None, None]:
    """Fresh schema with seeded achievements; torn down after the test."""
    await init_db(get_settings().database_url)
    await create_all()
    async for session in get_session():
        await seed_achievements(session)
        break
    yield
    await close_db()


@pytest_asyncio.fixture
async def db_session(database: None) -> AsyncGenerator[AsyncSession, None]:
    """Get a direct database session for service calls and assertions."""
    async for session in get_session():
        yield session
        break


@pytest_asyncio.fixture
async def client(database: None, text_generator: TextGenerationService) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app, with the scripted text generator."""
    app = create_app()
    app.dependency_overrides[get_text_generator] = lambda: text_generator
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
    reset_text_generator()


# ---------------------------------------------------------------------------
# Accounts
# ---------------------------------------------------------------------------

_email_counter = itertools.count(1)


def unique_email(prefix: str = "user") -> str:
    return f"{prefix}{next(_email_counter)}@example.com"


def bearer(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def make_account(db_session: AsyncSession) -> Callable[..., Awaitable[Account]]:
    """Factory: register an account directly through the service layer."""

    async def _make(role: Role = Role.LEARNER, name: str = "Test User", email: str | None = None) -> Account:
        return await register_account(
            db_session,
            email or unique_email(role.value),
            PASSWORD,
            name,
            role,
            allow_admin=True,
        )

    return _make


@pytest.fixture
def register_user(client: AsyncClient) -> Callable[..., Awaitable[dict[str, Any]]]:
    """Factory: register over HTTP; returns the user payload plus auth headers."""

    async def _register(role: str = "learner", name: str = "Test User", email: str | None = None) -> dict[str, Any]:
        response = await client.post(
            "/api/v1/auth/register",
            json={"email": email or unique_email(role), "password": PASSWORD, "name": name, "role": role},
        )
        assert response.status_code == 201, response.text
        data = response.json()
        return {**data["user"], "headers": bearer(data["access_token"]), "refresh_token": data["refresh_token"]}

    return _register


@pytest_asyncio.fixture
async def admin_headers(make_account: Callable[..., Awaitable[Account]]) -> dict[str, str]:
    """Administrator accounts cannot self-register; create one directly."""
    admin = await make_account(Role.ADMINISTRATOR, name="Admin")
    return bearer(create_access_token(admin.id, admin.role))


@pytest_asyncio.fixture
async def subject_id(client: AsyncClient, admin_headers: dict[str, str]) -> int:
    response = await client.post(
        "/api/v1/subjects", json={"name": "Biology", "icon": "\U0001f9ec"}, headers=admin_headers
    )
    assert response.status_code == 201, response.text
    return response.json()["id"]


# ---------------------------------------------------------------------------
# Content helpers
# ---------------------------------------------------------------------------


async def create_lesson_via_api(client: AsyncClient, headers: dict[str, str], subject_id: int) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/lessons",
        json={"subject_id": subject_id, "material": "Plants use sunlight to make food."},
        headers=headers,
    )
    assert response.status_code == 201, response.text
    return response.json()


async def answer_all(
    client: AsyncClient,
    headers: dict[str, str],
    attempt_id: int,
    questions: list[dict[str, Any]],
    answers: dict[int, Any],
) -> list[dict[str, Any]]:
    """Submit ``answers`` (keyed by question order) for every question."""
    results = []
    for question in questions:
        response = await client.post(
            f"/api/v1/attempts/{attempt_id}/answers",
            json={"question_id": question["id"], "answer": answers[question["order"]]},
            headers=headers,
        )
        assert response.status_code == 200, response.text
        results.append(response.json())
    return results
