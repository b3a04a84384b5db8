"""Integration tests for signup, login, refresh and account endpoints."""

import asyncio
import time

from models.users import User, Session
from models.documents import DiagramDocument, Shape


async def _awaited(awaitable):
    return await awaitable


def _refresh_headers(response):
    return {
        "x-refresh-token": response.headers["x-refresh-token"],
        "_id": response.json()["_id"],
    }


class TestSignup:
    """Tests for user registration."""

    def test_signup_returns_user_and_tokens(self, client, credentials):
        response = client.post("/users", json=credentials)

        assert response.status_code == 200
        body = response.json()
        assert body["email"] == credentials["email"]
        assert "_id" in body
        assert "password" not in body
        assert "sessions" not in body
        assert response.headers["x-access-token"]
        assert len(response.headers["x-refresh-token"]) == 128

    def test_signup_stores_hashed_password_and_session(self, signed_up, credentials):
        user = asyncio.run(_awaited(User.find_one(User.email == credentials["email"])))

        assert user.password != credentials["password"]
        assert [s.token for s in user.sessions] == [signed_up.headers["x-refresh-token"]]

    def test_signup_rejects_duplicate_email(self, client, signed_up, credentials):
        response = client.post("/users", json=credentials)

        assert response.status_code == 409
        assert "already exists" in response.json()["detail"]

    def test_signup_rejects_short_password(self, client):
        response = client.post("/users", json={"email": "b@example.com", "password": "short"})

        assert response.status_code == 422

    def test_signup_rejects_invalid_email(self, client):
        response = client.post("/users", json={"email": "not-an-email", "password": "password1"})

        assert response.status_code == 422


class TestLogin:
    """Tests for logging in."""

    def test_login_returns_new_session(self, client, signed_up, credentials):
        response = client.post("/users/login", json=credentials)

        assert response.status_code == 200
        assert response.json()["_id"] == signed_up.json()["_id"]
        assert response.headers["x-refresh-token"] != signed_up.headers["x-refresh-token"]

        user = asyncio.run(_awaited(User.find_one(User.email == credentials["email"])))
        assert len(user.sessions) == 2

    def test_login_with_wrong_password_fails(self, client, signed_up, credentials):
        response = client.post(
            "/users/login", json={"email": credentials["email"], "password": "wrong-password"}
        )

        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "invalid_credentials"
        assert "x-access-token" not in response.headers

    def test_login_with_unknown_email_fails(self, client):
        response = client.post(
            "/users/login", json={"email": "nobody@example.com", "password": "password1"}
        )

        assert response.status_code == 400


class TestAccessTokenRefresh:
    """Tests for exchanging a refresh token for an access token."""

    def test_refresh_returns_new_access_token(self, client, signed_up):
        response = client.get("/users/me/access-token", headers=_refresh_headers(signed_up))

        assert response.status_code == 200
        assert response.headers["x-access-token"]
        assert response.json()["accessToken"] == response.headers["x-access-token"]

        me = client.get("/users/me", headers={"x-access-token": response.json()["accessToken"]})
        assert me.status_code == 200
        assert me.json()["_id"] == signed_up.json()["_id"]

    def test_unknown_refresh_token_is_session_not_found(self, client, signed_up):
        headers = _refresh_headers(signed_up)
        headers["x-refresh-token"] = "0" * 128

        response = client.get("/users/me/access-token", headers=headers)

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "session_not_found"

    def test_expired_session_is_session_expired(self, client, signed_up, credentials):
        user = asyncio.run(_awaited(User.find_one(User.email == credentials["email"])))
        user.sessions = [Session(token="expired-token", expires_at=time.time() - 60)]
        asyncio.run(user.save())

        response = client.get(
            "/users/me/access-token",
            headers={"x-refresh-token": "expired-token", "_id": str(user.id)},
        )

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "session_expired"

    def test_missing_headers_are_rejected(self, client, signed_up):
        response = client.get("/users/me/access-token")

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "session_not_found"

    def test_revoked_session_cannot_refresh(self, client, signed_up):
        headers = _refresh_headers(signed_up)

        revoke = client.delete("/users/me/session", headers=headers)
        response = client.get("/users/me/access-token", headers=headers)

        assert revoke.status_code == 204
        assert response.status_code == 401


class TestAccount:
    """Tests for the authenticated account endpoints."""

    def test_me_requires_access_token(self, client, signed_up):
        response = client.get("/users/me")

        assert response.status_code == 401
        assert response.json()["detail"]["error"] == "invalid_signature"

    def test_delete_account_removes_documents_and_shapes(self, client, signed_up):
        headers = {"x-access-token": signed_up.headers["x-access-token"]}
        document = client.post("/docs", json={"title": "Flowchart"}, headers=headers).json()
        client.post(
            f"/docs/{document['_id']}/shapes",
            json={"id": 0, "type": "square", "translateX": 1, "translateY": 2, "borderColor": "#000"},
            headers=headers,
        )

        response = client.delete("/users/me", headers=headers)

        assert response.status_code == 200
        assert response.json()["_id"] == signed_up.json()["_id"]
        assert asyncio.run(User.find_all().count()) == 0
        assert asyncio.run(DiagramDocument.find_all().count()) == 0
        assert asyncio.run(Shape.find_all().count()) == 0

        # The access token stays valid until it expires but the user is gone
        assert client.get("/users/me", headers=headers).status_code == 401
