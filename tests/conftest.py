"""Fixtures partagées: une application neuve (stockage en mémoire) par test."""

import pytest
from fastapi.testclient import TestClient

from app import create_app
from config import Config

ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-secret"


def make_config(**overrides) -> Config:
    values = dict(
        environment="test",
        database_url=None,
        password_hash_rounds=4,
        admin_email=ADMIN_EMAIL,
        admin_password=ADMIN_PASSWORD,
        admin_name="Admin Principal",
        log_level="WARNING",
    )
    values.update(overrides)
    return Config(_env_file=None, **values)


def auth_headers(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def login(client: TestClient, email: str, password: str) -> str:
    response = client.post("/api/auth/login", json={"email": email, "password": password})
    assert response.status_code == 200, response.text
    return response.json()["token"]


def dao_payload(equipe, **overrides) -> dict:
    payload = {
        "objetDossier": "Fourniture de matériel informatique",
        "reference": "AAO-001/2025",
        "autoriteContractante": "Ministère de la Santé",
        "dateDepot": "2030-06-15",
        "equipe": equipe,
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def config():
    return make_config()


@pytest.fixture
def app(config):
    return create_app(config)


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client


@pytest.fixture
def context(app):
    return app.state.context


@pytest.fixture
def admin_token(client):
    return login(client, ADMIN_EMAIL, ADMIN_PASSWORD)


@pytest.fixture
def admin_headers(admin_token):
    return auth_headers(admin_token)


@pytest.fixture
def admin_user(context):
    return context.user_service.get_user_by_email(ADMIN_EMAIL)


def _create_account(client, admin_headers, name, email, password):
    response = client.post(
        "/api/auth/users",
        json={"name": name, "email": email, "role": "user", "password": password},
        headers=admin_headers,
    )
    assert response.status_code == 201, response.text
    user = response.json()
    user["token"] = login(client, email, password)
    return user


@pytest.fixture
def leader(client, admin_headers):
    """Utilisateur standard, chef d'équipe des DAO créés par `team`"""
    return _create_account(client, admin_headers, "Marie Dubois", "marie@example.com", "marie123")


@pytest.fixture
def member(client, admin_headers):
    return _create_account(client, admin_headers, "Pierre Martin", "pierre@example.com", "pierre123")


@pytest.fixture
def outsider(client, admin_headers):
    return _create_account(client, admin_headers, "Paul Durand", "paul@example.com", "paul1234")


@pytest.fixture
def team(leader, member):
    return [
        {"id": leader["id"], "name": leader["name"], "role": "chef_equipe"},
        {"id": member["id"], "name": member["name"], "role": "membre_equipe"},
    ]


@pytest.fixture
def dao(client, admin_headers, team):
    response = client.post("/api/dao", json=dao_payload(team), headers=admin_headers)
    assert response.status_code == 201, response.text
    return response.json()
