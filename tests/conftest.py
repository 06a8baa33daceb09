"""
Shared fixtures. Run with: pytest -v

Settings are read at import time, so the environment is prepared before any
app module is imported.
"""
import asyncio
import os
import time

os.environ.setdefault("MONGO_URI", "mongodb://localhost:27017")
os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")
os.environ.setdefault("STRIPE_SECRET_KEY", "sk_test_123")
os.environ.setdefault("STRIPE_WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("STRIPE_BASIC_PRICE_ID", "price_basic")
os.environ.setdefault("STRIPE_PREMIUM_PRICE_ID", "price_premium")
os.environ.setdefault("STRIPE_ENTERPRISE_PRICE_ID", "price_enterprise")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

import pytest
from httpx import AsyncClient, ASGITransport
from mongomock_motor import AsyncMongoMockClient

from app.db.mongo import mongodb
from app.llm.provider import GenerationResult
from app.services.auth import auth_service
from app.services.generation import generation_orchestrator


class FakeResponder:
    """Stands in for the chat model; records every call."""

    def __init__(self, text="Thank you for your kind words!", prompt_tokens=40, completion_tokens=20):
        self.text = text
        self.prompt_tokens = prompt_tokens
        self.completion_tokens = completion_tokens
        self.error = None
        self.calls = []

    async def generate(self, system_prompt, user_prompt, model):
        self.calls.append({"system_prompt": system_prompt, "user_prompt": user_prompt, "model": model})
        if self.error is not None:
            raise self.error
        return GenerationResult(
            text=self.text,
            model=model,
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
            total_tokens=self.prompt_tokens + self.completion_tokens
        )


@pytest.fixture
async def db():
    """In-memory Motor database wired into the app's MongoDB holder."""
    client = AsyncMongoMockClient()
    mongodb.client = client
    mongodb.db = client["zedzen_test"]
    await mongodb.ensure_indexes()
    yield mongodb.db
    mongodb.db = None
    mongodb.client = None


@pytest.fixture
async def client(db):
    from main import app

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac


@pytest.fixture
def fake_responder(monkeypatch):
    responder = FakeResponder()
    monkeypatch.setattr(generation_orchestrator, "responder", responder)
    return responder


@pytest.fixture
def register_user(db):
    """Factory: register a user and return (user, token)."""
    counter = {"n": 0}

    async def _register(email=None, password="secret123", name="Test User"):
        counter["n"] += 1
        email = email or f"user{counter['n']}@zedzen.io"
        return await auth_service.register(email, password, name)

    return _register


def auth_header(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


async def longest_loop_stall(coro, tick: float = 0.01):
    """
    Await ``coro`` while a ticker sleeps in short steps beside it.

    Returns (result, longest gap between ticks). A blocking call inside
    ``coro`` shows up as a gap close to its duration.
    """
    done = asyncio.Event()
    gaps = []

    async def ticker():
        while not done.is_set():
            started = time.monotonic()
            await asyncio.sleep(tick)
            gaps.append(time.monotonic() - started)

    async def run():
        try:
            return await coro
        finally:
            done.set()

    ticker_task = asyncio.create_task(ticker())
    await asyncio.sleep(0)
    result = await run()
    await ticker_task
    return result, max(gaps, default=0.0)
