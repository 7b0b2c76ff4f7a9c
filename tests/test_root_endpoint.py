"""Tests basiques de l’API FastAPI (endpoints simples)."""

from fastapi.testclient import TestClient

from app import app


client = TestClient(app)


def test_root_endpoint_returns_service_info():
    response = client.get("/")
    assert response.status_code == 200

    data = response.json()
    assert data.get("service") == "dao-tracker-api"
    assert data.get("status") == "operational"


def test_health_check_endpoint_ok():
    response = client.get("/health")
    assert response.status_code == 200

    data = response.json()
    assert data.get("status") == "healthy"
    assert data.get("service") == "dao-tracker-api"
    assert data.get("storage") in ("memory", "database")
    assert data.get("bootId")


def test_api_routes_require_a_token():
    response = client.get("/api/dao")
    assert response.status_code == 401

    data = response.json()
    assert data["code"] == "NO_TOKEN"
    assert data["error"]


def test_invalid_token_is_rejected():
    response = client.get("/api/dao", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 401
    assert response.json()["code"] == "INVALID_TOKEN"
