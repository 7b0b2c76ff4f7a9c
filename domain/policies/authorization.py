"""
Politique d'autorisation - L'admin gère la structure, le chef d'équipe gère l'exécution

Fonctions pures: aucune écriture, aucune dépendance vers le stockage.
"""

from dataclasses import dataclass
from typing import Dict, FrozenSet, Iterable, List, Optional, Set

from domain.entities.dao import Dao, DaoTask
from domain.entities.user import User
from domain.exceptions import ForbiddenError

# Champs de tâche réservés au chef d'équipe du dossier
LEAD_FIELDS: FrozenSet[str] = frozenset({"progress", "is_applicable", "assigned_to"})
# Champs structurels réservés à l'administrateur
STRUCTURE_FIELDS: FrozenSet[str] = frozenset({"name", "structure"})
TASK_FIELDS: FrozenSet[str] = LEAD_FIELDS | STRUCTURE_FIELDS | {"comment", "order"}

ADMIN_NOT_LEADER_MESSAGE = (
    "Seul le chef d'équipe peut modifier la progression, l'applicabilité ou l'assignation"
)


@dataclass(frozen=True)
class Decision:
    allowed: bool
    code: Optional[str] = None
    reason: Optional[str] = None

    def enforce(self) -> None:
        """Lève ForbiddenError si la décision est un refus"""
        if not self.allowed:
            raise ForbiddenError(self.reason or "Insufficient permissions", code=self.code)


ALLOW = Decision(True)


def deny(code: str, reason: str) -> Decision:
    return Decision(False, code, reason)


def check_task_mutation(user: User, dao: Dao, fields: Iterable[str]) -> Decision:
    """
    Décide si `user` peut modifier les champs `fields` des tâches de `dao`.

    Ordre d'évaluation:
    1. admin: tout sauf les champs du chef d'équipe sur un dossier qu'il ne dirige pas
    2. chef d'équipe du dossier: champs d'exécution, commentaire et ordre
    3. membre de l'équipe: refus NOT_LEADER
    4. autres: refus INSUFFICIENT_PERMISSIONS
    """
    changed: Set[str] = set(fields)
    if not changed:
        return ALLOW

    leads_dossier = dao.is_leader(user.id)

    if user.is_admin:
        if changed & LEAD_FIELDS and not leads_dossier:
            return deny("ADMIN_NOT_LEADER_FORBIDDEN", ADMIN_NOT_LEADER_MESSAGE)
        return ALLOW

    if leads_dossier:
        if changed & STRUCTURE_FIELDS:
            return deny("ADMIN_REQUIRED", "Seul un administrateur peut modifier la structure des tâches")
        return ALLOW

    if dao.find_member(user.id) is not None:
        return deny("NOT_LEADER", "Seul le chef d'équipe peut modifier les tâches")

    return deny("INSUFFICIENT_PERMISSIONS", "Insufficient permissions")


def check_dao_update(
    user: User,
    dao: Dao,
    dossier_fields: Iterable[str] = (),
    team_changed: bool = False,
    task_fields: Iterable[str] = (),
) -> Decision:
    """Décision pour une mise à jour groupée d'un dossier"""
    if set(dossier_fields) and not user.is_admin:
        return deny("ADMIN_REQUIRED", "Seul un administrateur peut modifier les informations du dossier")

    if team_changed and not (user.is_admin or dao.is_leader(user.id)):
        return deny("NOT_LEADER", "Seul le chef d'équipe peut modifier l'équipe")

    return check_task_mutation(user, dao, task_fields)


def _task_changes(before: DaoTask, after: Dict) -> Set[str]:
    changed: Set[str] = set()
    if "progress" in after and before.progress != after["progress"]:
        changed.add("progress")
    if "is_applicable" in after and after["is_applicable"] is not None \
            and before.is_applicable != after["is_applicable"]:
        changed.add("is_applicable")
    if "assigned_to" in after and after["assigned_to"] is not None \
            and list(before.assigned_to or []) != list(after["assigned_to"]):
        changed.add("assigned_to")
    if "comment" in after and (before.comment or None) != (after["comment"] or None):
        changed.add("comment")
    if "name" in after and after["name"] is not None and before.name != after["name"]:
        changed.add("name")
    return changed


def diff_task_fields(before: List[DaoTask], incoming: List[Dict]) -> Set[str]:
    """
    Calcule l'ensemble des champs réellement modifiés entre les tâches stockées
    et les tâches reçues (dicts aux clés snake_case, `id` obligatoire).

    Utilisé à la fois par la mise à jour groupée d'un dossier et par la mise à
    jour d'une tâche unique, pour que les deux chemins appliquent la même règle.
    """
    changed: Set[str] = set()
    before_by_id = {task.id: task for task in before}
    incoming_ids = [item["id"] for item in incoming]

    if set(incoming_ids) != set(before_by_id):
        changed.add("structure")
    elif incoming_ids != [task.id for task in before]:
        changed.add("order")

    for item in incoming:
        previous = before_by_id.get(item["id"])
        if previous is not None:
            changed |= _task_changes(previous, item)

    return changed


def require_leader_or_admin(user: User, dao: Dao) -> None:
    if user.is_admin or dao.is_leader(user.id):
        return
    raise ForbiddenError("Insufficient permissions", code="NOT_LEADER")


def require_admin(user: User) -> None:
    if not user.is_admin:
        raise ForbiddenError("Admin access required", code="ADMIN_REQUIRED")
