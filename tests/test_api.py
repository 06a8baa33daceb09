"""
HTTP-level tests for auth, generation, usage and profile routes.
Run with: pytest tests/ -v
"""
import pytest

from app.core.exceptions import ProviderBusyError, ProviderUnavailableError
from app.services.auth import issue_credential
from app.services.usage import usage_ledger

from conftest import auth_header


async def test_health(client):
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"


async def test_root(client):
    response = await client.get("/")
    assert response.status_code == 200
    assert "docs" in response.json()


class TestAuthRoutes:
    async def test_register(self, client):
        response = await client.post(
            "/api/auth/register",
            json={"email": "New@ZedZen.io", "password": "secret123", "name": "New"}
        )

        assert response.status_code == 201
        data = response.json()
        assert data["token"]
        assert data["user"]["email"] == "new@zedzen.io"
        assert data["user"]["plan"] == "free"
        assert data["user"]["subscriptionStatus"] == "none"
        assert "password_hash" not in data["user"]

    async def test_register_duplicate_email(self, client, register_user):
        await register_user(email="taken@zedzen.io")
        response = await client.post(
            "/api/auth/register", json={"email": "taken@zedzen.io", "password": "secret123"}
        )
        assert response.status_code == 409

    @pytest.mark.parametrize("body", [
        {"email": "not-an-email", "password": "secret123"},
        {"email": "short@zedzen.io", "password": "12345"},
        {"password": "secret123"},
    ])
    async def test_register_invalid_input(self, client, body):
        response = await client.post("/api/auth/register", json=body)
        assert response.status_code == 400

    async def test_login(self, client, register_user):
        user, _ = await register_user(email="jane@zedzen.io", password="secret123")
        response = await client.post(
            "/api/auth/login", json={"email": "jane@zedzen.io", "password": "secret123"}
        )
        assert response.status_code == 200
        assert response.json()["user"]["id"] == user.id

    async def test_login_bad_password(self, client, register_user):
        await register_user(email="jane@zedzen.io", password="secret123")
        response = await client.post(
            "/api/auth/login", json={"email": "jane@zedzen.io", "password": "nope"}
        )
        assert response.status_code == 401

    async def test_me(self, client, register_user):
        user, token = await register_user()
        response = await client.get("/api/auth/me", headers=auth_header(token))
        assert response.status_code == 200
        assert response.json()["user"]["id"] == user.id

    async def test_me_without_token(self, client):
        response = await client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_me_with_non_bearer_scheme(self, client, register_user):
        _, token = await register_user()
        response = await client.get("/api/auth/me", headers={"Authorization": f"Basic {token}"})
        assert response.status_code == 401

    async def test_me_with_invalid_token(self, client):
        response = await client.get("/api/auth/me", headers=auth_header("not.a.token"))
        assert response.status_code == 401

    async def test_me_for_deleted_user(self, client, register_user, db):
        _, token = await register_user()
        await db.users.delete_many({})
        response = await client.get("/api/auth/me", headers=auth_header(token))
        assert response.status_code == 401

    async def test_logout(self, client, register_user):
        _, token = await register_user()
        response = await client.post("/api/auth/logout", headers=auth_header(token))
        assert response.status_code == 200


class TestGenerateRoute:
    async def test_generate(self, client, register_user, fake_responder):
        _, token = await register_user()
        response = await client.post(
            "/api/ai/generate-response",
            json={"reviewText": "Fast delivery, great product!", "language": "en", "tone": "friendly"},
            headers=auth_header(token)
        )

        assert response.status_code == 200
        assert response.json() == {
            "response": fake_responder.text,
            "usage": {"used": 1, "limit": 5, "remaining": 4, "plan": "free"},
        }

    async def test_free_user_at_limit_gets_429(self, client, register_user, fake_responder):
        user, token = await register_user()
        for _ in range(5):
            await usage_ledger.record_usage(user.id, 10)

        response = await client.post(
            "/api/ai/generate-response", json={"reviewText": "One more"}, headers=auth_header(token)
        )

        assert response.status_code == 429
        assert response.json()["detail"]["usage"] == {"used": 5, "limit": 5, "plan": "free"}
        assert fake_responder.calls == []
        assert (await usage_ledger.get_today(user.id)).requests_count == 5

    async def test_too_long_review_is_400_without_usage(self, client, register_user, fake_responder):
        user, token = await register_user()
        response = await client.post(
            "/api/ai/generate-response", json={"reviewText": "x" * 5001}, headers=auth_header(token)
        )

        assert response.status_code == 400
        assert (await usage_ledger.get_today(user.id)).requests_count == 0

    @pytest.mark.parametrize("body", [{}, {"reviewText": "   "}, {"reviewText": 42}])
    async def test_missing_or_malformed_review_is_400(self, client, register_user, fake_responder, body):
        _, token = await register_user()
        response = await client.post("/api/ai/generate-response", json=body, headers=auth_header(token))
        assert response.status_code == 400

    async def test_unauthenticated_is_401_before_validation(self, client, fake_responder):
        response = await client.post("/api/ai/generate-response", json={})
        assert response.status_code == 401

    async def test_expired_token_is_401(self, client, register_user, fake_responder):
        from datetime import datetime, timedelta, timezone

        user, _ = await register_user()
        stale = issue_credential(user.id, issued_at=datetime.now(timezone.utc) - timedelta(days=8))
        response = await client.post(
            "/api/ai/generate-response", json={"reviewText": "Hi"}, headers=auth_header(stale)
        )
        assert response.status_code == 401

    async def test_provider_busy_is_503(self, client, register_user, fake_responder):
        user, token = await register_user()
        fake_responder.error = ProviderBusyError()

        response = await client.post(
            "/api/ai/generate-response", json={"reviewText": "Hi"}, headers=auth_header(token)
        )

        assert response.status_code == 503
        assert "retry-after" in response.headers
        assert (await usage_ledger.get_today(user.id)).requests_count == 0

    async def test_provider_unavailable_is_502(self, client, register_user, fake_responder):
        user, token = await register_user()
        fake_responder.error = ProviderUnavailableError()

        response = await client.post(
            "/api/ai/generate-response", json={"reviewText": "Hi"}, headers=auth_header(token)
        )

        assert response.status_code == 502
        assert (await usage_ledger.get_today(user.id)).requests_count == 0


class TestUsageRoutes:
    async def test_usage(self, client, register_user):
        user, token = await register_user()
        await usage_ledger.record_usage(user.id, 64)

        response = await client.get("/api/ai/usage", headers=auth_header(token))

        assert response.status_code == 200
        assert response.json() == {
            "usage": {"used": 1, "limit": 5, "remaining": 4, "tokensUsed": 64, "plan": "free"}
        }

    async def test_usage_requires_auth(self, client):
        response = await client.get("/api/ai/usage")
        assert response.status_code == 401

    async def test_models_are_public(self, client):
        response = await client.get("/api/ai/models")
        assert response.status_code == 200
        data = response.json()
        assert data["default"] == "gpt-4"
        assert {m["id"] for m in data["models"]} == {"gpt-3.5-turbo", "gpt-4", "gpt-4-turbo"}


class TestUserRoutes:
    async def test_profile(self, client, register_user):
        user, token = await register_user()
        await usage_ledger.record_usage(user.id, 30)

        response = await client.get("/api/user/profile", headers=auth_header(token))

        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == user.id
        assert data["subscription"]["plan"] == "free"
        assert data["subscription"]["planName"] == "Free"
        assert data["subscription"]["currentPeriodEnd"] is None
        assert data["usage"]["today"] == {"used": 1, "limit": 5, "remaining": 4, "tokensUsed": 30}

    async def test_subscription(self, client, register_user):
        _, token = await register_user()

        response = await client.get("/api/user/subscription", headers=auth_header(token))

        assert response.status_code == 200
        data = response.json()
        assert data["current"]["planId"] == "free"
        assert data["current"]["status"] == "none"
        by_id = {p["id"]: p for p in data["availablePlans"]}
        assert by_id["free"]["isCurrent"] and not by_id["free"]["canUpgrade"]
        assert by_id["premium"]["canUpgrade"]
