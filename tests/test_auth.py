"""
Tests for bearer-token authentication and claim checks.

These tests verify:
  - Missing token -> 401
  - Malformed, tampered or expired token -> 403
  - Token for an unknown or deactivated user -> 401
  - Endpoints that require the admin claim reject tokens without it (403)
  - Health, ping and version need no token
"""

from datetime import timedelta

from jose import jwt

from cashbook.security import create_access_token


def _bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


class TestTokenVerification:

    async def test_missing_token(self, client):
        response = await client.get("/accounts")
        assert response.status_code == 401
        assert response.json() == {
            "status": "error",
            "message": "Access denied. No token provided.",
            "error_type": "unauthorized",
        }
        assert response.headers["WWW-Authenticate"] == "Bearer"

    async def test_garbage_token(self, client):
        response = await client.get("/accounts", headers=_bearer("not-a-jwt"))
        assert response.status_code == 403
        assert response.json()["message"] == "Invalid token."

    async def test_token_signed_with_other_key(self, client, seed):
        token = jwt.encode({"sub": str(seed.user_code)}, "some-other-secret", algorithm="HS256")
        response = await client.get("/accounts", headers=_bearer(token))
        assert response.status_code == 403

    async def test_expired_token(self, client, seed):
        token = create_access_token(
            {"sub": str(seed.user_code)}, expires_delta=timedelta(minutes=-5)
        )
        response = await client.get("/accounts", headers=_bearer(token))
        assert response.status_code == 403

    async def test_token_without_subject(self, client):
        token = create_access_token({"login_name": "tester"})
        response = await client.get("/accounts", headers=_bearer(token))
        assert response.status_code == 403

    async def test_unknown_user(self, client):
        token = create_access_token({"sub": "9999"})
        response = await client.get("/accounts", headers=_bearer(token))
        assert response.status_code == 401

    async def test_inactive_user(self, client, seed):
        token = create_access_token({"sub": str(seed.inactive_code)})
        response = await client.get("/accounts", headers=_bearer(token))
        assert response.status_code == 401

    async def test_valid_token(self, authenticated_client):
        response = await authenticated_client.get("/accounts")
        assert response.status_code == 200
        assert response.json() == {"status": "success", "accounts": []}


class TestClaims:

    async def test_admin_claim_required_for_delete(self, client, seed):
        token = create_access_token({"sub": str(seed.admin_code)})
        response = await client.delete(f"/banks/{seed.xyz}", headers=_bearer(token))
        assert response.status_code == 403
        assert "admin" in response.json()["message"]

    async def test_false_admin_claim_rejected(self, client, seed):
        token = create_access_token({"sub": str(seed.admin_code), "admin": False})
        response = await client.delete(f"/banks/{seed.xyz}", headers=_bearer(token))
        assert response.status_code == 403

    async def test_admin_claim_accepted(self, admin_client, seed):
        response = await admin_client.delete(f"/banks/{seed.xyz}")
        assert response.status_code == 200


class TestPublicEndpoints:

    async def test_ping(self, client):
        response = await client.get("/ping")
        assert response.status_code == 200
        assert response.json()["status"] == "success"

    async def test_version(self, client):
        response = await client.get("/version")
        assert response.status_code == 200
        assert "version" in response.json()

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["store"] == "ready"

    async def test_request_id_header(self, client):
        response = await client.get("/ping", headers={"X-Request-ID": "abc-123"})
        assert response.headers["X-Request-ID"] == "abc-123"

    async def test_unknown_route_uses_error_envelope(self, client):
        response = await client.get("/nope")
        assert response.status_code == 404
        assert response.json()["status"] == "error"
