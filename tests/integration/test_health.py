"""Health endpoints and cross-cutting middleware."""

import pytest


class TestHealth:
    @pytest.mark.asyncio
    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}

    @pytest.mark.asyncio
    async def test_ready_reports_missing_redis(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        data = response.json()
        assert data["checks"]["database"] == "ok"
        assert data["checks"]["redis"] == "error: not connected"
        assert data["status"] == "degraded"
        assert data["achievements_seeded"] is True
        assert data["text_providers"] == []

    @pytest.mark.asyncio
    async def test_version(self, client):
        response = await client.get("/version")
        assert response.json()["version"] == "0.1.0"


class TestMiddleware:
    @pytest.mark.asyncio
    async def test_request_id_generated(self, client):
        response = await client.get("/health")
        assert response.headers["X-Request-Id"]

    @pytest.mark.asyncio
    async def test_request_id_echoed(self, client):
        response = await client.get("/health", headers={"X-Request-Id": "abc-123"})
        assert response.headers["X-Request-Id"] == "abc-123"

    @pytest.mark.asyncio
    async def test_not_found_is_json(self, client):
        response = await client.get("/api/v1/nothing-here")
        assert response.status_code == 404
        assert response.json() == {"detail": "Not Found"}

    @pytest.mark.asyncio
    async def test_validation_errors_are_json(self, client):
        response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
        assert response.status_code == 422
        assert response.json()["detail"] == "Validation error"
