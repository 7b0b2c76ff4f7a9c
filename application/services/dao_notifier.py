"""
DaoNotifier - Traduit les modifications des DAO en notifications lisibles
"""

from typing import List, Optional

from application.services.notification_service import NotificationService
from domain.entities.dao import Dao, DaoTask
from domain.entities.notification import NotificationType

DOSSIER_FIELD_LABELS = {
    "objet_dossier": "objet du dossier",
    "reference": "référence",
    "autorite_contractante": "autorité contractante",
    "date_depot": "date de dépôt",
}

ROLE_LABELS = {
    "chef_equipe": "chef d'équipe",
    "membre_equipe": "membre d'équipe",
}


def _yes_no(value: bool) -> str:
    return "oui" if value else "non"


def describe_task_changes(previous: DaoTask, task: DaoTask) -> List[str]:
    """Liste des changements d'une tâche, hors assignation"""
    changes = []
    if previous.name != task.name:
        changes.append(f'nom "{previous.name}" → "{task.name}"')
    if (previous.progress or 0) != (task.progress or 0):
        changes.append(f"progression {previous.progress or 0}% → {task.progress or 0}%")
    if previous.is_applicable != task.is_applicable:
        changes.append(f"applicabilité {_yes_no(previous.is_applicable)} → {_yes_no(task.is_applicable)}")
    if (previous.comment or None) != (task.comment or None):
        changes.append("commentaire modifié")
    return changes


class DaoNotifier:
    """Publie les événements DAO dans le fil de notifications"""

    def __init__(self, notification_service: NotificationService):
        self.notifications = notification_service

    def _member_name(self, dao: Dao, user_id: str) -> str:
        member = dao.find_member(user_id)
        return member.name if member else user_id

    def dao_created(self, dao: Dao) -> None:
        self.notifications.broadcast(
            NotificationType.DAO_CREATED,
            "Nouveau DAO créé",
            f"{dao.numero_liste} – {dao.objet_dossier}",
            {"daoId": dao.id},
        )

    def dao_deleted(self, dao: Dao) -> None:
        self.notifications.broadcast(
            NotificationType.DAO_DELETED,
            "DAO supprimé",
            f"{dao.numero_liste} – {dao.objet_dossier}",
            {"daoId": dao.id},
        )

    def dao_updated(self, before: Dao, after: Dao) -> None:
        """Notifications d'une mise à jour groupée: équipe, tâches, puis champs du dossier"""
        self.team_changed(before, after)
        task_events = self.tasks_changed(before, after)

        changed_fields = [
            label for field, label in DOSSIER_FIELD_LABELS.items()
            if getattr(before, field) != getattr(after, field)
        ]
        if changed_fields or not task_events:
            message = (
                f"DAO {after.numero_liste} – Champs modifiés: {', '.join(changed_fields)}"
                if changed_fields else f"DAO {after.numero_liste} modifié"
            )
            self.notifications.broadcast(
                NotificationType.DAO_UPDATED,
                "DAO mis à jour",
                message,
                {"daoId": after.id, "changedFields": changed_fields},
            )

    def team_changed(self, before: Dao, after: Dao) -> List[str]:
        previous = {member.id: member for member in before.equipe}
        current = {member.id: member for member in after.equipe}

        changes = []
        for member_id, member in current.items():
            old = previous.get(member_id)
            if old is None:
                changes.append(f"{member.name} ajouté")
            elif old.role != member.role:
                changes.append(
                    f"{member.name}: {ROLE_LABELS[old.role.value]} → {ROLE_LABELS[member.role.value]}"
                )
        for member_id, member in previous.items():
            if member_id not in current:
                changes.append(f"{member.name} retiré")

        if changes:
            self.notifications.broadcast(
                NotificationType.ROLE_UPDATE,
                "Modification de l'équipe",
                ", ".join(changes),
                {"daoId": after.id, "changes": changes},
            )
        return changes

    def tasks_changed(self, before: Dao, after: Dao) -> int:
        """Notifie les tâches ajoutées, retirées, modifiées et l'ordre; retourne le nombre d'événements"""
        events = 0
        previous = {task.id: task for task in before.tasks}
        current_ids = {task.id for task in after.tasks}

        for task in after.tasks:
            old = previous.get(task.id)
            if old is None:
                self.task_created(after, task)
                events += 1
            elif self.task_changed(after, old, task):
                events += 1

        for task_id, task in previous.items():
            if task_id not in current_ids:
                self.notifications.broadcast(
                    NotificationType.TASK_DELETED,
                    "Tâche supprimée",
                    f'"{task.name}" a été retirée du DAO {after.numero_liste}',
                    {"daoId": after.id, "taskId": task_id},
                )
                events += 1

        kept_before = [task.id for task in before.tasks if task.id in current_ids]
        kept_after = [task.id for task in after.tasks if task.id in previous]
        if kept_before != kept_after:
            self.tasks_reordered(after)
            events += 1

        return events

    def task_changed(self, dao: Dao, previous: DaoTask, task: DaoTask) -> bool:
        """Notifie la modification d'une tâche; False si rien n'a changé"""
        changes = describe_task_changes(previous, task)
        label = f"DAO {dao.numero_liste} – Tâche #{task.id} ({task.name})"
        data = {"daoId": dao.id, "taskId": task.id}

        added = [uid for uid in task.assigned_to if uid not in previous.assigned_to]
        removed = [uid for uid in previous.assigned_to if uid not in task.assigned_to]

        for user_id in added:
            self.notifications.broadcast(
                NotificationType.TASK_ASSIGNED,
                "Tâche assignée",
                f"{label} assignée à {self._member_name(dao, user_id)}",
                {**data, "assignedTo": list(task.assigned_to)},
            )
        for user_id in removed:
            self.notifications.broadcast(
                NotificationType.TASK_UNASSIGNED,
                "Tâche désassignée",
                f"{label} désassignée de {self._member_name(dao, user_id)}",
                {**data, "assignedTo": list(task.assigned_to)},
            )

        if changes:
            self.notifications.broadcast(
                NotificationType.TASK_UPDATED,
                "Tâche mise à jour",
                f"{label}: {', '.join(changes)}",
                {**data, "changes": changes},
            )

        return bool(changes or added or removed)

    def task_created(self, dao: Dao, task: DaoTask) -> None:
        self.notifications.broadcast(
            NotificationType.TASK_CREATED,
            "Nouvelle tâche créée",
            f'"{task.name}" a été ajoutée au DAO {dao.numero_liste}',
            {"daoId": dao.id, "taskId": task.id},
        )

    def tasks_reordered(self, dao: Dao) -> None:
        self.notifications.broadcast(
            NotificationType.TASK_REORDERED,
            "Réorganisation des tâches",
            f"Les tâches du DAO {dao.numero_liste} ont été réordonnées",
            {"daoId": dao.id},
        )

    def comment_event(
        self,
        type: NotificationType,
        title: str,
        message: str,
        dao_id: str,
        task_id: int,
        comment_id: Optional[str] = None
    ) -> None:
        data = {"daoId": dao_id, "taskId": task_id}
        if comment_id:
            data["commentId"] = comment_id
        self.notifications.broadcast(type, title, message, data)
