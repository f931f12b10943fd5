"""
Tests for authentication endpoints.
"""
from datetime import timedelta

from learnchat.auth import create_access_token


class TestAuthEndpoints:
    """Test auth endpoints."""

    def test_register_user(self, client):
        """Test user registration."""
        response = client.post(
            "/api/auth?action=register",
            json={
                "email": "newuser@example.com",
                "password": "securepassword123",
                "appId": "learnchat-web",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["user"]["email"] == "newuser@example.com"
        assert "id" in data["user"]

    def test_register_duplicate_email(self, client, test_user):
        """Test registration with existing email fails."""
        response = client.post(
            "/api/auth?action=register",
            json={"email": "test@example.com", "password": "anotherpassword"},
        )
        assert response.status_code == 400
        data = response.json()
        assert data["error"] == "Email already exists"
        assert data["error_code"] == "CONFLICT"

    def test_register_missing_password(self, client):
        response = client.post("/api/auth?action=register", json={"email": "a@example.com"})
        assert response.status_code == 400
        assert response.json()["error"] == "Email and password required"

    def test_login_success(self, client, test_user):
        """Test successful login."""
        response = client.post(
            "/api/auth?action=login",
            json={
                "email": "test@example.com",
                "password": "testpassword123",
            },
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["token"]
        assert data["user"] == {"id": test_user.id, "email": "test@example.com"}

    def test_login_wrong_password(self, client, test_user):
        """Test login with wrong password fails."""
        response = client.post(
            "/api/auth?action=login",
            json={
                "email": "test@example.com",
                "password": "wrongpassword",
            },
        )
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid credentials"

    def test_login_nonexistent_user(self, client):
        """Test login with non-existent user fails."""
        response = client.post(
            "/api/auth?action=login",
            json={
                "email": "nobody@example.com",
                "password": "anypassword",
            },
        )
        assert response.status_code == 401

    def test_invalid_action(self, client):
        response = client.post(
            "/api/auth?action=logout",
            json={"email": "test@example.com", "password": "x"},
        )
        assert response.status_code == 400
        assert response.json()["error"] == "Invalid action. Use ?action=login or ?action=register"

    def test_wrong_method(self, client):
        response = client.get("/api/auth")
        assert response.status_code == 405
        assert response.json()["error_code"] == "METHOD_NOT_ALLOWED"

    def test_get_current_user(self, client, test_user):
        """Test getting current user info."""
        # Login first to get a valid token
        login_response = client.post(
            "/api/auth?action=login",
            json={"email": "test@example.com", "password": "testpassword123"},
        )
        token = login_response.json()["token"]

        response = client.get(
            "/api/auth/me",
            headers={"Authorization": f"Bearer {token}"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["email"] == test_user.email
        assert data["id"] == test_user.id

    def test_get_current_user_unauthenticated(self, client):
        """Test getting current user without auth fails."""
        response = client.get("/api/auth/me")
        assert response.status_code == 401
        assert response.json()["error"] == "Missing authorization header"

    def test_expired_token_rejected(self, client, test_user):
        token = create_access_token({"sub": str(test_user.id)}, expires_delta=timedelta(seconds=-1))
        response = client.get("/api/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401
        assert response.json()["error"] == "Invalid or expired token"

    def test_garbage_token_rejected(self, client):
        response = client.get("/api/auth/me", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401
