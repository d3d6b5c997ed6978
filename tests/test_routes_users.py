"""Tests for the /api/users routes."""

from datetime import UTC, datetime, timedelta

import pytest
from fastapi.testclient import TestClient

from conftest import PNG_BYTES, TEST_SECRET, bearer, register
from infrastructure.auth import create_access_token, decode_access_token


class TestRegister:
    def test_returns_user_and_token(self, client: TestClient) -> None:
        response = client.post(
            "/api/users/register",
            json={"email": "Bob@Example.com", "username": "bob_1", "password": "secret123"},
        )
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "User registered successfully"
        user = body["data"]["user"]
        assert user["email"] == "bob@example.com"
        assert user["username"] == "bob_1"
        assert "passwordHash" not in user
        assert "password" not in user
        assert decode_access_token(body["data"]["token"], secret=TEST_SECRET) == user["id"]

    @pytest.mark.parametrize(
        ("payload", "error"),
        [
            (
                {"email": "not-an-email", "username": "bob", "password": "secret123"},
                "Please provide a valid email",
            ),
            (
                {"email": "b@example.com", "username": "bo", "password": "secret123"},
                "Username must be between 3 and 30 characters",
            ),
            (
                {"email": "b@example.com", "username": "bob!", "password": "secret123"},
                "Username can only contain letters, numbers, and underscores",
            ),
            (
                {"email": "b@example.com", "username": "bob", "password": "123"},
                "Password must be at least 6 characters long",
            ),
            (
                {"email": "b@example.com", "username": "bob", "password": "x" * 100},
                "Password cannot exceed 72 bytes",
            ),
            ({}, "Please provide a valid email"),
        ],
    )
    def test_validation(self, client: TestClient, payload: dict, error: str) -> None:
        response = client.post("/api/users/register", json=payload)
        assert response.status_code == 400
        assert response.json() == {
            "success": False,
            "message": "Validation failed",
            "error": error,
        }

    def test_password_at_byte_limit(self, client: TestClient) -> None:
        password = "é" * 36
        response = client.post(
            "/api/users/register",
            json={"email": "b@example.com", "username": "bob", "password": password},
        )
        assert response.status_code == 201
        login = client.post(
            "/api/users/login", json={"email": "b@example.com", "password": password}
        )
        assert login.status_code == 200

    def test_duplicate_email(self, client: TestClient) -> None:
        register(client, "alice", "alice@example.com")
        response = client.post(
            "/api/users/register",
            json={"email": "ALICE@example.com", "username": "other", "password": "secret123"},
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Email already exists"

    def test_duplicate_username(self, client: TestClient) -> None:
        register(client, "alice")
        response = client.post(
            "/api/users/register",
            json={"email": "new@example.com", "username": "alice", "password": "secret123"},
        )
        assert response.status_code == 409
        assert response.json()["message"] == "Username already exists"


class TestLogin:
    def test_success_records_last_login(self, client: TestClient) -> None:
        register(client, "alice")
        response = client.post(
            "/api/users/login", json={"email": "alice@example.com", "password": "secret123"}
        )
        assert response.status_code == 200
        body = response.json()
        assert body["message"] == "Login successful"
        assert body["data"]["user"]["lastLogin"] is not None
        assert body["data"]["token"]

    def test_wrong_password(self, client: TestClient) -> None:
        register(client, "alice")
        response = client.post(
            "/api/users/login", json={"email": "alice@example.com", "password": "wrong-pass"}
        )
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Invalid credentials"}

    def test_over_long_password_is_rejected(self, client: TestClient) -> None:
        register(client, "alice")
        response = client.post(
            "/api/users/login", json={"email": "alice@example.com", "password": "x" * 100}
        )
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid credentials"

    def test_unknown_email(self, client: TestClient) -> None:
        response = client.post(
            "/api/users/login", json={"email": "ghost@example.com", "password": "secret123"}
        )
        assert response.status_code == 401

    def test_missing_password(self, client: TestClient) -> None:
        response = client.post("/api/users/login", json={"email": "alice@example.com"})
        assert response.status_code == 400
        assert response.json()["error"] == "Password is required"


class TestProfile:
    def test_get(self, client: TestClient) -> None:
        data = register(client, "alice")
        response = client.get("/api/users/profile", headers=bearer(data["token"]))
        assert response.status_code == 200
        assert response.json()["data"]["user"]["username"] == "alice"

    def test_requires_token(self, client: TestClient) -> None:
        assert client.get("/api/users/profile").status_code == 401

    def test_expired_token(self, client: TestClient) -> None:
        user_id = register(client, "alice")["user"]["id"]
        token = create_access_token(
            user_id,
            secret=TEST_SECRET,
            expires_in=60,
            now=datetime.now(UTC) - timedelta(hours=1),
        )
        response = client.get("/api/users/profile", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["message"] == "Invalid token"

    def test_token_for_unknown_user(self, client: TestClient) -> None:
        token = create_access_token("no-such-user", secret=TEST_SECRET, expires_in=60)
        response = client.get("/api/users/profile", headers=bearer(token))
        assert response.status_code == 401
        assert response.json()["message"] == "Token is no longer valid. User not found."

    def test_update_username_and_picture(self, client: TestClient) -> None:
        headers = bearer(register(client, "alice")["token"])
        response = client.put(
            "/api/users/profile",
            headers=headers,
            data={"username": "alice_2"},
            files={"profilePic": ("me.png", PNG_BYTES, "image/png")},
        )
        assert response.status_code == 200
        user = response.json()["data"]["user"]
        assert user["username"] == "alice_2"
        assert user["profilePic"].startswith("http://testserver/uploads/")

    def test_rejects_non_image(self, client: TestClient) -> None:
        headers = bearer(register(client, "alice")["token"])
        response = client.put(
            "/api/users/profile",
            headers=headers,
            files={"profilePic": ("me.gif", b"GIF89a", "image/gif")},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Only JPEG and PNG images are allowed"

    def test_rejects_large_image(self, client: TestClient) -> None:
        headers = bearer(register(client, "alice")["token"])
        big = b"\x00" * (2 * 1024 * 1024 + 1)
        response = client.put(
            "/api/users/profile",
            headers=headers,
            files={"profilePic": ("me.jpg", big, "image/jpeg")},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Profile picture must be less than 2MB"

    def test_username_taken(self, client: TestClient) -> None:
        register(client, "bob")
        headers = bearer(register(client, "alice")["token"])
        response = client.put("/api/users/profile", headers=headers, data={"username": "bob"})
        assert response.status_code == 409
        assert response.json()["message"] == "Username already exists"

    def test_keeping_own_username_is_allowed(self, client: TestClient) -> None:
        headers = bearer(register(client, "alice")["token"])
        response = client.put("/api/users/profile", headers=headers, data={"username": "alice"})
        assert response.status_code == 200


class TestLogout:
    def test_logout(self, client: TestClient, auth_headers: dict[str, str]) -> None:
        response = client.post("/api/users/logout", headers=auth_headers)
        assert response.json() == {"success": True, "message": "Logout successful"}
