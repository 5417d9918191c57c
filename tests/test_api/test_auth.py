"""
Tests d'authentification : vrais tokens JWT, sans dépendance mockée.
"""

from fastapi.testclient import TestClient

from app.core import redis_client
from app.core.config import settings
from app.core.security.jwt import create_access_token

API = "/api/v1/auth"


class TestLogin:

    def test_login_success(self, anonymous_client: TestClient, make_user):
        user = make_user("Lina Connect", email="lina@test.fr", password="secret-123")

        response = anonymous_client.post(f"{API}/login", json={"email": "LINA@test.fr", "password": "secret-123"})

        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["expires_in"] > 0
        assert data["user"]["id"] == user.id

        me = anonymous_client.get(f"{API}/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["email"] == "lina@test.fr"

    def test_wrong_password(self, anonymous_client: TestClient, make_user):
        make_user("Lina Connect", email="lina@test.fr", password="secret-123")
        response = anonymous_client.post(f"{API}/login", json={"email": "lina@test.fr", "password": "mauvais"})
        assert response.status_code == 401

    def test_unknown_email(self, anonymous_client: TestClient):
        response = anonymous_client.post(f"{API}/login", json={"email": "inconnu@test.fr", "password": "x"})
        assert response.status_code == 401

    def test_inactive_user(self, anonymous_client: TestClient, make_user):
        make_user("Lina Inactive", email="inactive@test.fr", password="secret-123", is_active=False)
        response = anonymous_client.post(f"{API}/login", json={"email": "inactive@test.fr", "password": "secret-123"})
        assert response.status_code == 403


class TestProtectedRoutes:

    def test_missing_token(self, anonymous_client: TestClient):
        assert anonymous_client.get("/api/v1/networks").status_code == 401

    def test_invalid_token(self, anonymous_client: TestClient):
        response = anonymous_client.get("/api/v1/networks", headers={"Authorization": "Bearer pas-un-jwt"})
        assert response.status_code == 401

    def test_token_of_deactivated_user(self, anonymous_client: TestClient, make_user):
        user = make_user("Ancien Actif", is_active=False)
        token = create_access_token({"sub": str(user.id)})
        response = anonymous_client.get(f"{API}/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 403

    def test_health_is_public(self, anonymous_client: TestClient):
        response = anonymous_client.get("/api/v1/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_health_reports_redis_disabled_in_tests(self, anonymous_client: TestClient):
        assert anonymous_client.get("/api/v1/health").json()["redis"] == "disabled"

    def test_health_degraded_without_redis(self, anonymous_client: TestClient, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "development")
        monkeypatch.setattr(settings, "HIERARCHY_LOCKS_ENABLED", True)
        monkeypatch.setattr(redis_client, "redis_available", lambda: False)

        data = anonymous_client.get("/api/v1/health").json()

        assert data["status"] == "degraded"
        assert data["redis"] == "down"
