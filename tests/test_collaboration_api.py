"""Tests des commentaires, notifications et routes d'administration via l'API."""

from datetime import datetime

from tests.conftest import ADMIN_PASSWORD, auth_headers, dao_payload


def test_comment_lifecycle(client, admin_headers, leader, member, dao):
    leader_headers = auth_headers(leader["token"])
    body = {"daoId": dao["id"], "taskId": 1, "content": "<i>Caution</i> demandée"}

    created = client.post("/api/comments", json=body, headers=leader_headers)
    assert created.status_code == 201
    comment = created.json()
    assert comment["content"] == "Caution demandée"
    assert comment["userName"] == "Marie Dubois"

    listed = client.get(f"/api/comments/dao/{dao['id']}/task/1", headers=leader_headers).json()
    assert [c["id"] for c in listed] == [comment["id"]]
    assert len(client.get(f"/api/comments/dao/{dao['id']}", headers=leader_headers).json()) == 1
    assert len(client.get("/api/comments/recent", headers=leader_headers).json()) == 1

    not_author = client.put(
        f"/api/comments/{comment['id']}", json={"content": "Piraté"}, headers=auth_headers(member["token"])
    )
    assert not_author.status_code == 403
    assert not_author.json()["code"] == "NOT_COMMENT_AUTHOR"

    edited = client.put(f"/api/comments/{comment['id']}", json={"content": "Caution reçue"}, headers=leader_headers)
    assert edited.json()["content"] == "Caution reçue"

    deleted = client.delete(f"/api/comments/{comment['id']}", headers=admin_headers)
    assert deleted.status_code == 200
    assert client.get(f"/api/comments/dao/{dao['id']}", headers=leader_headers).json() == []


def test_comment_on_unknown_task_is_rejected(client, leader, dao):
    response = client.post(
        "/api/comments",
        json={"daoId": dao["id"], "taskId": 999, "content": "Hello"},
        headers=auth_headers(leader["token"]),
    )

    assert response.status_code == 404
    assert response.json()["code"] == "TASK_NOT_FOUND"


def test_comment_creation_is_idempotent(client, leader, dao):
    headers = {**auth_headers(leader["token"]), "x-idempotency-key": "comment-1"}
    body = {"daoId": dao["id"], "taskId": 1, "content": "Une seule fois"}

    first = client.post("/api/comments", json=body, headers=headers)
    second = client.post("/api/comments", json=body, headers=headers)

    assert first.content == second.content
    assert len(client.get(f"/api/comments/dao/{dao['id']}", headers=headers).json()) == 1


def test_notifications_feed_and_read_state(client, admin_headers, leader, dao):
    headers = auth_headers(leader["token"])

    feed = client.get("/api/notifications", headers=headers).json()
    types = [item["type"] for item in feed["items"]]
    assert "dao_created" in types
    assert feed["unread"] == len(feed["items"])

    target = feed["items"][0]["id"]
    assert client.put(f"/api/notifications/{target}/read", headers=headers).status_code == 200
    assert client.get("/api/notifications", headers=headers).json()["unread"] == feed["unread"] - 1

    # L'état de lecture est propre à chaque utilisateur
    admin_feed = client.get("/api/notifications", headers=admin_headers).json()
    assert admin_feed["unread"] == len(admin_feed["items"])

    read_all = client.put("/api/notifications/read-all", headers=headers).json()
    assert read_all["updated"] == feed["unread"] - 1
    assert client.get("/api/notifications", headers=headers).json()["unread"] == 0

    missing = client.put("/api/notifications/unknown/read", headers=headers)
    assert missing.status_code == 404


def test_task_update_notifies_assignment(client, leader, member, dao):
    client.put(
        f"/api/dao/{dao['id']}/tasks/3",
        json={"assignedTo": [member["id"]]},
        headers=auth_headers(leader["token"]),
    )

    feed = client.get("/api/notifications", headers=auth_headers(member["token"])).json()["items"]
    assigned = [item for item in feed if item["type"] == "task_assigned"]
    assert len(assigned) == 1
    assert assigned[0]["data"]["taskId"] == 3
    assert "Pierre Martin" in assigned[0]["message"]


def test_admin_routes_require_admin(client, leader):
    headers = auth_headers(leader["token"])

    assert client.post("/api/admin/reset-app", headers=headers).status_code == 403
    assert client.get("/api/admin/sessions", headers=headers).status_code == 403
    assert client.get("/api/dao/admin/last", headers=headers).status_code == 403


def test_delete_last_dao_requires_super_admin_password_and_is_idempotent(client, admin_headers, team):
    year = datetime.now().year
    for _ in range(2):
        client.post("/api/dao", json=dao_payload(team), headers=admin_headers)

    wrong = client.request(
        "DELETE", "/api/admin/delete-last-dao", json={"password": "bad"}, headers=admin_headers
    )
    assert wrong.status_code == 403
    assert wrong.json()["code"] == "INVALID_PASSWORD"

    headers = {**admin_headers, "x-idempotency-key": "delete-1"}
    first = client.request("DELETE", "/api/admin/delete-last-dao", json={"password": ADMIN_PASSWORD}, headers=headers)
    replay = client.request("DELETE", "/api/admin/delete-last-dao", json={"password": ADMIN_PASSWORD}, headers=headers)

    assert first.status_code == 200
    assert first.json()["deleted"] is True
    assert first.json()["dao"]["numeroListe"] == f"DAO-{year}-002"
    assert replay.json() == first.json()

    remaining = client.get("/api/dao", headers=admin_headers).json()
    assert remaining["total"] == 1

    last = client.get("/api/dao/admin/last", headers=admin_headers).json()
    assert last["numeroListe"] == f"DAO-{year}-001"


def test_verify_integrity_endpoint(client, admin_headers, dao):
    report = client.get("/api/dao/admin/verify-integrity", headers=admin_headers).json()

    assert report["ok"] is True
    assert report["total"] == 1


def test_reset_app_clears_state_and_rotates_boot_id(client, context, admin_headers, leader, dao):
    boot_id = client.get("/health").json()["bootId"]

    response = client.post("/api/admin/reset-app", headers=admin_headers)

    assert response.status_code == 200
    assert response.json()["bootId"] != boot_id
    assert client.get("/health").json()["bootId"] == response.json()["bootId"]
    assert context.dao_service.get_all() == []
    assert len(context.notification_service) == 0
    assert len(context.session_registry) == 0
    assert [user.email for user in context.user_service.get_all_users()] == ["admin@example.com"]
