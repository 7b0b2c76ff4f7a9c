"""Tests de la politique d'autorisation et du service de workflow des DAO."""

from datetime import datetime, timezone

import pytest

from application.services import DaoNotifier, DaoService, DaoWorkflowService, NotificationService, SequenceAllocator
from domain.entities.dao import Dao, DaoTask, TeamMember
from domain.entities.user import User, UserRole
from domain.exceptions import ForbiddenError, ValidationError
from domain.policies import check_dao_update, check_task_mutation, diff_task_fields
from infrastructure.memory import InMemoryDaoRepository

ADMIN = User(id="admin", name="Admin", email="admin@example.com", role=UserRole.ADMIN)
LEADER = User(id="lead", name="Marie Dubois", email="marie@example.com", role=UserRole.USER)
MEMBER = User(id="member", name="Pierre Martin", email="pierre@example.com", role=UserRole.USER)
OUTSIDER = User(id="out", name="Paul Durand", email="paul@example.com", role=UserRole.USER)


def make_dao(leader_id="lead"):
    return Dao(
        id="dao-1",
        numero_liste="DAO-2025-001",
        objet_dossier="Travaux",
        reference="REF",
        autorite_contractante="Mairie",
        date_depot="2025-06-01",
        equipe=[
            TeamMember(id=leader_id, name="Chef", role="chef_equipe"),
            TeamMember(id="member", name="Pierre Martin", role="membre_equipe"),
        ],
        tasks=[DaoTask(id=1, name="Résumé", progress=10), DaoTask(id=2, name="Caution")],
    )


@pytest.mark.parametrize("user, fields, code", [
    (ADMIN, {"progress"}, "ADMIN_NOT_LEADER_FORBIDDEN"),
    (ADMIN, {"assigned_to"}, "ADMIN_NOT_LEADER_FORBIDDEN"),
    (LEADER, {"name"}, "ADMIN_REQUIRED"),
    (LEADER, {"structure"}, "ADMIN_REQUIRED"),
    (MEMBER, {"comment"}, "NOT_LEADER"),
    (OUTSIDER, {"progress"}, "INSUFFICIENT_PERMISSIONS"),
])
def test_task_mutation_denials(user, fields, code):
    decision = check_task_mutation(user, make_dao(), fields)

    assert not decision.allowed
    assert decision.code == code


@pytest.mark.parametrize("user, fields", [
    (ADMIN, {"name"}),
    (ADMIN, {"comment", "order"}),
    (LEADER, {"progress", "is_applicable", "assigned_to", "comment", "order"}),
    (OUTSIDER, set()),
])
def test_task_mutation_allowed(user, fields):
    assert check_task_mutation(user, make_dao(), fields).allowed


def test_admin_leading_the_dossier_may_update_progress():
    assert check_task_mutation(ADMIN, make_dao(leader_id="admin"), {"progress"}).allowed


def test_dossier_fields_require_admin():
    assert check_dao_update(LEADER, make_dao(), dossier_fields={"reference"}).code == "ADMIN_REQUIRED"
    assert check_dao_update(MEMBER, make_dao(), team_changed=True).code == "NOT_LEADER"
    assert check_dao_update(LEADER, make_dao(), team_changed=True).allowed


def test_diff_detects_structure_order_and_field_changes():
    tasks = make_dao().tasks

    assert diff_task_fields(tasks, [{"id": 1}, {"id": 2}]) == set()
    assert diff_task_fields(tasks, [{"id": 2}, {"id": 1}]) == {"order"}
    assert "structure" in diff_task_fields(tasks, [{"id": 1}])
    assert diff_task_fields(tasks, [{"id": 1, "progress": 10, "name": "Résumé"}, {"id": 2}]) == set()
    assert diff_task_fields(tasks, [{"id": 1, "progress": 20}, {"id": 2, "comment": "ok"}]) == {"progress", "comment"}


@pytest.fixture
def workflow():
    repo = InMemoryDaoRepository()
    dao_service = DaoService(repo, SequenceAllocator(repo))
    notifications = NotificationService()
    service = DaoWorkflowService(dao_service, DaoNotifier(notifications))
    service.notifications = notifications
    return service


def _create(workflow):
    return workflow.create_dossier(
        ADMIN,
        objet_dossier="Travaux",
        reference="REF",
        autorite_contractante="Mairie",
        date_depot="2025-06-01",
        equipe=make_dao().equipe,
        now=datetime(2025, 5, 1, tzinfo=timezone.utc),
    )


def test_only_admin_creates_dossiers(workflow):
    with pytest.raises(ForbiddenError) as exc_info:
        workflow.create_dossier(LEADER, objet_dossier="x", reference="y", autorite_contractante="z", date_depot="2025-06-01")
    assert exc_info.value.code == "ADMIN_REQUIRED"


def test_admin_not_leader_cannot_change_progress_but_can_rename(workflow):
    dao = _create(workflow)

    with pytest.raises(ForbiddenError) as exc_info:
        workflow.update_task(ADMIN, dao.id, 1, {"progress": 50})
    assert exc_info.value.code == "ADMIN_NOT_LEADER_FORBIDDEN"

    renamed = workflow.rename_task(ADMIN, dao.id, 1, "Résumé et drive")
    assert renamed.name == "Résumé et drive"
    assert renamed.last_updated_by == ADMIN.id


def test_leader_updates_progress_and_member_is_refused(workflow):
    dao = _create(workflow)

    updated = workflow.update_task(LEADER, dao.id, 1, {"progress": 60, "assigned_to": ["member"]})
    task = updated.find_task(1)
    assert task.progress == 60
    assert task.assigned_to == ["member"]
    assert task.last_updated_by == LEADER.id

    types = [n.type.value for n, _ in workflow.notifications.list_for_user(MEMBER.id)]
    assert types[:2] == ["task_updated", "task_assigned"]

    with pytest.raises(ForbiddenError) as exc_info:
        workflow.update_task(MEMBER, dao.id, 1, {"comment": "fait"})
    assert exc_info.value.code == "NOT_LEADER"


def test_bulk_update_with_unchanged_progress_is_allowed_for_admin(workflow):
    dao = _create(workflow)
    tasks = [{"id": task.id, "progress": task.progress, "name": task.name} for task in dao.tasks]

    updated = workflow.update_dossier(ADMIN, dao.id, {"reference": "REF-2", "tasks": tasks})

    assert updated.reference == "REF-2"


def test_bulk_update_cannot_smuggle_progress_through_admin(workflow):
    dao = _create(workflow)
    tasks = [{"id": task.id, "progress": 100} for task in dao.tasks]

    with pytest.raises(ForbiddenError) as exc_info:
        workflow.update_dossier(ADMIN, dao.id, {"tasks": tasks})
    assert exc_info.value.code == "ADMIN_NOT_LEADER_FORBIDDEN"
    assert workflow.dao_service.get_by_id(dao.id).progress == 0


def test_zero_progress_differs_from_unset_progress(workflow):
    tasks = make_dao().tasks

    assert diff_task_fields(tasks, [{"id": 1}, {"id": 2, "progress": 0}]) == {"progress"}

    dao = _create(workflow)
    updated = workflow.update_task(LEADER, dao.id, 2, {"progress": 0})
    assert updated.find_task(2).progress == 0
    assert updated.find_task(2).last_updated_by == LEADER.id


def test_admin_cannot_set_zero_progress_while_renaming_in_bulk(workflow):
    dao = _create(workflow)
    tasks = [{"id": task.id} for task in dao.tasks]
    tasks[0] = {"id": 1, "name": "Résumé et drive", "progress": 0}

    with pytest.raises(ForbiddenError) as exc_info:
        workflow.update_dossier(ADMIN, dao.id, {"tasks": tasks})
    assert exc_info.value.code == "ADMIN_NOT_LEADER_FORBIDDEN"
    assert workflow.dao_service.get_by_id(dao.id).find_task(1).progress is None


def test_add_task_is_admin_only_and_uses_next_id(workflow):
    dao = _create(workflow)

    task = workflow.add_task(ADMIN, dao.id, "Visite de site", is_applicable=False, progress=30)
    assert task.id == 16
    assert task.progress is None

    with pytest.raises(ForbiddenError) as exc_info:
        workflow.add_task(LEADER, dao.id, "Autre")
    assert exc_info.value.code == "ADMIN_REQUIRED"


def test_reorder_requires_exact_task_set(workflow):
    dao = _create(workflow)
    ids = [task.id for task in dao.tasks]

    reordered = workflow.reorder_tasks(LEADER, dao.id, list(reversed(ids)))
    assert [task.id for task in reordered.tasks] == list(reversed(ids))

    with pytest.raises(ValidationError) as exc_info:
        workflow.reorder_tasks(LEADER, dao.id, ids[:-1])
    assert exc_info.value.code == "INVALID_TASK_ORDER"

    with pytest.raises(ForbiddenError):
        workflow.reorder_tasks(MEMBER, dao.id, ids)
