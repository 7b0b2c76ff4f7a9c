"""
DaoWorkflowService - Opérations utilisateur sur les DAO et leurs tâches

Chaque opération vérifie l'autorisation avant toute écriture, puis publie
les notifications correspondantes.
"""

import logging
from typing import Any, Dict, List, Optional

from application.services.dao_notifier import DaoNotifier
from application.services.dao_service import DaoService
from domain.entities.dao import Dao, DaoTask, TeamMember
from domain.entities.user import User
from domain.exceptions import NotFoundError, ValidationError
from domain.policies.authorization import (
    check_dao_update, check_task_mutation, diff_task_fields,
    require_admin, require_leader_or_admin
)

logger = logging.getLogger(__name__)

DOSSIER_FIELDS = ("objet_dossier", "reference", "autorite_contractante", "date_depot")
TASK_UPDATE_KEYS = ("progress", "is_applicable", "assigned_to", "comment")


def _team_signature(equipe: List[TeamMember]):
    return [(member.id, member.role.value, member.name) for member in equipe]


def _merge_task(previous: Optional[DaoTask], data: Dict[str, Any]) -> DaoTask:
    if previous is None:
        if not data.get("name"):
            raise ValidationError(
                "Task name is required",
                details=[{"field": f"tasks.{data['id']}.name", "message": "Required for new tasks"}]
            )
        return DaoTask(
            id=data["id"],
            name=data["name"],
            progress=data.get("progress"),
            is_applicable=data.get("is_applicable", True) is not False,
            comment=data.get("comment"),
            assigned_to=list(data.get("assigned_to") or []),
        )

    merged = DaoTask(**vars(previous))
    for key in ("name", "progress", "is_applicable", "assigned_to", "comment"):
        if key in data and (data[key] is not None or key in ("progress", "comment")):
            setattr(merged, key, list(data[key]) if key == "assigned_to" else data[key])
    return merged


class DaoWorkflowService:
    """Service pour les mutations des DAO initiées par un utilisateur"""

    def __init__(self, dao_service: DaoService, notifier: DaoNotifier):
        self.dao_service = dao_service
        self.notifier = notifier

    def _get_dao(self, dao_id: str) -> Dao:
        dao = self.dao_service.get_by_id(dao_id)
        if dao is None:
            raise NotFoundError("DAO not found", code="DAO_NOT_FOUND")
        return dao

    @staticmethod
    def _get_task(dao: Dao, task_id: int) -> DaoTask:
        task = dao.find_task(task_id)
        if task is None:
            raise NotFoundError("Task not found", code="TASK_NOT_FOUND")
        return task

    def create_dossier(self, user: User, **draft) -> Dao:
        require_admin(user)
        dao = self.dao_service.create(**draft)
        logger.info(f"✨ DAO {dao.numero_liste} created by {user.email}")
        self.notifier.dao_created(dao)
        return dao

    def update_dossier(self, user: User, dao_id: str, changes: Dict[str, Any]) -> Dao:
        """
        Mise à jour groupée d'un dossier.

        `changes` peut contenir les champs du dossier, `equipe` (liste de TeamMember)
        et `tasks` (liste de dicts avec `id`). Seuls les champs dont la valeur change
        sont soumis à la politique d'autorisation.
        """
        before = self._get_dao(dao_id)

        dossier_fields = {
            field for field in DOSSIER_FIELDS
            if changes.get(field) is not None and changes[field] != getattr(before, field)
        }
        team_changed = changes.get("equipe") is not None and \
            _team_signature(changes["equipe"]) != _team_signature(before.equipe)
        incoming_tasks = changes.get("tasks")
        task_fields = diff_task_fields(before.tasks, incoming_tasks) if incoming_tasks is not None else set()

        check_dao_update(user, before, dossier_fields, team_changed, task_fields).enforce()

        updates: Dict[str, Any] = {field: changes[field] for field in dossier_fields}
        if team_changed:
            updates["equipe"] = list(changes["equipe"])
        if task_fields:
            updates["tasks"] = self._merge_tasks(user, before, incoming_tasks)

        if not updates:
            return before

        updated = self.dao_service.update(dao_id, updates)
        if updated is None:
            raise NotFoundError("DAO not found", code="DAO_NOT_FOUND")

        logger.info(f"📝 DAO {updated.numero_liste} updated by {user.email}")
        self.notifier.dao_updated(before, updated)
        return updated

    @staticmethod
    def _merge_tasks(user: User, before: Dao, incoming: List[Dict[str, Any]]) -> List[DaoTask]:
        previous = {task.id: task for task in before.tasks}
        seen = set()
        tasks = []
        for data in incoming:
            if data["id"] in seen:
                raise ValidationError(
                    "Duplicate task id",
                    details=[{"field": "tasks", "message": f"Task id {data['id']} appears twice"}]
                )
            seen.add(data["id"])
            task = _merge_task(previous.get(data["id"]), data)
            if previous.get(data["id"]) != task:
                task.touch(user.id)
            tasks.append(task)
        return tasks

    def update_task(self, user: User, dao_id: str, task_id: int, changes: Dict[str, Any]) -> Dao:
        """Met à jour une tâche; `changes` ne contient que les champs envoyés"""
        dao = self._get_dao(dao_id)
        task = self._get_task(dao, task_id)

        incoming = [
            {"id": t.id, **{k: v for k, v in changes.items() if k in TASK_UPDATE_KEYS}} if t.id == task_id
            else {"id": t.id}
            for t in dao.tasks
        ]
        fields = diff_task_fields(dao.tasks, incoming)
        check_task_mutation(user, dao, fields).enforce()

        if not fields:
            return dao

        previous = DaoTask(**vars(task))
        updated_task = _merge_task(task, incoming[dao.tasks.index(task)])
        updated_task.touch(user.id)
        tasks = [updated_task if t.id == task_id else t for t in dao.tasks]

        updated = self.dao_service.update(dao_id, {"tasks": tasks})
        if updated is None:
            raise NotFoundError("DAO not found", code="DAO_NOT_FOUND")

        logger.info(f"📋 Updated task {task_id} in DAO {updated.numero_liste} by {user.email}")
        self.notifier.task_changed(updated, previous, updated.find_task(task_id))
        return updated

    def add_task(
        self,
        user: User,
        dao_id: str,
        name: str,
        is_applicable: bool = True,
        progress: Optional[int] = None,
        comment: Optional[str] = None,
        assigned_to: Optional[List[str]] = None
    ) -> DaoTask:
        dao = self._get_dao(dao_id)
        check_task_mutation(user, dao, {"structure"}).enforce()

        task = DaoTask(
            id=dao.next_task_id(),
            name=name,
            progress=progress if is_applicable else None,
            is_applicable=is_applicable,
            comment=comment,
            assigned_to=list(assigned_to or []),
        )
        task.touch(user.id)

        updated = self.dao_service.update(dao_id, {"tasks": dao.tasks + [task]})
        if updated is None:
            raise NotFoundError("DAO not found", code="DAO_NOT_FOUND")

        logger.info(f"➕ Task {task.id} added to DAO {updated.numero_liste} by {user.email}")
        self.notifier.task_created(updated, task)
        return updated.find_task(task.id)

    def rename_task(self, user: User, dao_id: str, task_id: int, name: str) -> DaoTask:
        dao = self._get_dao(dao_id)
        task = self._get_task(dao, task_id)
        check_task_mutation(user, dao, {"name"}).enforce()

        previous = DaoTask(**vars(task))
        task.name = name
        task.touch(user.id)

        updated = self.dao_service.update(dao_id, {"tasks": dao.tasks})
        if updated is None:
            raise NotFoundError("DAO not found", code="DAO_NOT_FOUND")

        self.notifier.task_changed(updated, previous, updated.find_task(task_id))
        return updated.find_task(task_id)

    def reorder_tasks(self, user: User, dao_id: str, task_ids: List[int]) -> Dao:
        dao = self._get_dao(dao_id)
        require_leader_or_admin(user, dao)

        current_ids = [task.id for task in dao.tasks]
        if len(task_ids) != len(current_ids) or set(task_ids) != set(current_ids):
            raise ValidationError(
                "Task ids must match the existing tasks exactly",
                details=[{"field": "taskIds", "message": "Invalid task order"}],
                code="INVALID_TASK_ORDER"
            )

        if task_ids == current_ids:
            return dao

        by_id = {task.id: task for task in dao.tasks}
        updated = self.dao_service.update(dao_id, {"tasks": [by_id[task_id] for task_id in task_ids]})
        if updated is None:
            raise NotFoundError("DAO not found", code="DAO_NOT_FOUND")

        logger.info(f"🔀 Tasks reordered in DAO {updated.numero_liste} by {user.email}")
        self.notifier.tasks_reordered(updated)
        return updated

    def delete_last_dossier(self, user: User) -> Optional[Dao]:
        require_admin(user)
        deleted = self.dao_service.delete_last_created()
        if deleted is not None:
            logger.warning(f"🗑️ Last DAO {deleted.numero_liste} deleted by {user.email}")
            self.notifier.dao_deleted(deleted)
        return deleted
