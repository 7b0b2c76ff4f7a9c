"""
Mappers - Conversion entre modèles SQLAlchemy et entités de domaine
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from infrastructure.database.models import DaoModel, UserModel
from domain.entities import Dao, DaoTask, TeamMember, User
from domain.entities.dao import parse_iso_datetime


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite restitue des dates naïves: on les considère UTC"""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


class DaoMapper:
    """Mapper entre DaoModel et Dao"""

    @staticmethod
    def member_to_dict(member: TeamMember) -> Dict[str, Any]:
        return {
            "id": member.id,
            "name": member.name,
            "role": member.role.value,
            "email": member.email,
        }

    @staticmethod
    def task_to_dict(task: DaoTask) -> Dict[str, Any]:
        return {
            "id": task.id,
            "name": task.name,
            "progress": task.progress,
            "is_applicable": task.is_applicable,
            "comment": task.comment,
            "assigned_to": list(task.assigned_to),
            "last_updated_by": task.last_updated_by,
            "last_updated_at": _isoformat(task.last_updated_at),
        }

    @staticmethod
    def task_from_dict(data: Dict[str, Any]) -> DaoTask:
        return DaoTask(
            id=int(data["id"]),
            name=data["name"],
            progress=data.get("progress"),
            is_applicable=data.get("is_applicable", True),
            comment=data.get("comment"),
            assigned_to=list(data.get("assigned_to") or []),
            last_updated_by=data.get("last_updated_by"),
            last_updated_at=parse_iso_datetime(data.get("last_updated_at")),
        )

    @staticmethod
    def to_domain(model: DaoModel) -> Dao:
        """Convertit un DaoModel en entité Dao"""
        return Dao(
            id=model.id,
            numero_liste=model.numero_liste,
            objet_dossier=model.objet_dossier,
            reference=model.reference,
            autorite_contractante=model.autorite_contractante,
            date_depot=model.date_depot,
            equipe=[TeamMember(**member) for member in (model.equipe or [])],
            tasks=[DaoMapper.task_from_dict(task) for task in (model.tasks or [])],
            created_at=as_utc(model.created_at),
            updated_at=as_utc(model.updated_at),
        )

    @staticmethod
    def to_model(dao: Dao, model: Optional[DaoModel] = None) -> DaoModel:
        """Convertit une entité Dao en DaoModel"""
        if model is None:
            model = DaoModel()

        model.id = dao.id
        model.numero_liste = dao.numero_liste
        model.objet_dossier = dao.objet_dossier
        model.reference = dao.reference
        model.autorite_contractante = dao.autorite_contractante
        model.date_depot = dao.date_depot
        model.date_depot_at = parse_iso_datetime(dao.date_depot)
        # Nouvelles listes pour que SQLAlchemy détecte la modification des colonnes JSON
        model.equipe = [DaoMapper.member_to_dict(member) for member in dao.equipe]
        model.tasks = [DaoMapper.task_to_dict(task) for task in dao.tasks]
        model.created_at = dao.created_at
        model.updated_at = dao.updated_at

        return model


class UserMapper:
    """Mapper entre UserModel et User"""

    @staticmethod
    def to_domain(model: UserModel) -> User:
        """Convertit un UserModel en entité User"""
        return User(
            id=model.id,
            name=model.name,
            email=model.email,
            role=model.role,
            is_active=model.is_active,
            created_at=as_utc(model.created_at),
            last_login_at=as_utc(model.last_login_at)
        )

    @staticmethod
    def to_model(user: User, model: Optional[UserModel] = None) -> UserModel:
        """Convertit une entité User en UserModel"""
        if model is None:
            model = UserModel()

        model.id = user.id
        model.name = user.name
        model.email = user.email
        model.role = user.role.value
        model.is_active = user.is_active
        model.created_at = user.created_at
        model.last_login_at = user.last_login_at

        return model


def models_to_daos(models: List[DaoModel]) -> List[Dao]:
    return [DaoMapper.to_domain(model) for model in models]
