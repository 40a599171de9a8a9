"""Tests for app wiring: health endpoints and exception handlers."""

from sqlalchemy.exc import OperationalError

from repositories.conversation_repository import ConversationRepository


class TestHealthEndpoints:
    """Tests for root and health endpoints."""

    def test_root(self, client):
        response = client.get("/")

        assert response.status_code == 200
        assert response.json() == {"message": "Message Safety API"}

    def test_health(self, client):
        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


class TestExceptionHandlers:
    """Tests for centralized error responses."""

    def test_persistence_failure_is_500(
        self, client, auth_headers, conversation, monkeypatch
    ):
        def _fail(self, conversation_id, at):
            raise OperationalError("UPDATE", {}, Exception("database is locked"))

        monkeypatch.setattr(ConversationRepository, "touch_last_message", _fail)

        response = client.post(
            f"/api/conversations/{conversation.id}/messages",
            json={"content": "hello"},
            headers=auth_headers,
        )

        assert response.status_code == 500
        data = response.json()
        assert data["detail"] == "Failed to complete send_message"
        assert data["correlation_id"]

    def test_validation_error_is_400(self, client, auth_headers, conversation):
        response = client.post(
            f"/api/conversations/{conversation.id}/messages",
            json={"content": 123},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert isinstance(response.json()["detail"], list)

    def test_invalid_token_is_401(self, client, conversation):
        response = client.get(
            f"/api/conversations/{conversation.id}/messages",
            headers={"Authorization": "Bearer not-a-token"},
        )

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
