"""The API renders every failure in the same response envelope."""

from fastapi.testclient import TestClient
from protean.exceptions import ExpectedVersionError


def test_version_conflict_is_409(api_app):
    @api_app.get("/conflict")
    async def conflict():
        raise ExpectedVersionError("Wrong expected version: 3 (Stream: kasuwa::product-1, Stream Version: 4)")

    response = TestClient(api_app).get("/conflict")
    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["data"] is None
    assert body["message"] == "The resource was modified by another request; please retry"


def test_unexpected_error_is_500(api_app):
    @api_app.get("/boom")
    async def boom():
        raise RuntimeError("database is on fire")

    response = TestClient(api_app, raise_server_exceptions=False).get("/boom")
    assert response.status_code == 500
    body = response.json()
    assert body["message"] == "An unexpected error occurred"
    assert "database is on fire" not in response.text


def test_unknown_role_is_rejected(client):
    response = client.get("/orders", headers={"X-User-Id": "someone", "X-User-Role": "Wizard"})
    assert response.status_code == 403
    assert response.json()["message"] == "Unknown role Wizard"


def test_missing_identity_is_401(client):
    response = client.get("/cart")
    assert response.status_code == 401
    assert response.json()["errors"] == ["Authentication required"]


def test_unknown_route_uses_envelope(client):
    response = client.get("/nowhere")
    assert response.status_code == 404
    assert response.json()["success"] is False
