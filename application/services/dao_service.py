"""
DaoService - Passerelle de persistance des DAO (mémoire ou base de données)
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from application.services.sequence_allocator import SequenceAllocator
from domain.entities.dao import (
    Dao, DaoStatus, DaoTask, TeamMember, default_tasks, end_of_day, is_date_only,
    parse_dao_number, parse_iso_datetime
)
from domain.exceptions import ConflictError, DuplicateKeyError, ValidationError
from domain.repositories.dao_repository import DaoQuery, DaoRepository, SORT_FIELDS

logger = logging.getLogger(__name__)

# Champs modifiables par `update` (le numéro de liste est géré par le serveur)
UPDATABLE_FIELDS = (
    "objet_dossier",
    "reference",
    "autorite_contractante",
    "date_depot",
    "equipe",
    "tasks",
)


def normalize_tasks(tasks: List[DaoTask]) -> List[DaoTask]:
    """Une tâche non applicable n'a pas de progression"""
    for task in tasks:
        if not task.is_applicable:
            task.progress = None
    return tasks


class DaoService:
    """Service pour la gestion des DAO"""

    def __init__(
        self,
        dao_repository: DaoRepository,
        sequence_allocator: SequenceAllocator,
        default_page_size: int = 20,
        max_page_size: int = 100,
        create_max_attempts: int = 3
    ):
        self.dao_repository = dao_repository
        self.sequence_allocator = sequence_allocator
        self.default_page_size = default_page_size
        self.max_page_size = max_page_size
        self.create_max_attempts = create_max_attempts

    def build_query(
        self,
        search: Optional[str] = None,
        autorite: Optional[str] = None,
        date_from: Optional[str] = None,
        date_to: Optional[str] = None,
        sort: Optional[str] = None,
        order: Optional[str] = None,
        page: Optional[int] = None,
        page_size: Optional[int] = None
    ) -> DaoQuery:
        """Normalise les paramètres de liste; les bornes de date illisibles sont ignorées"""
        sort = sort or "updatedAt"
        if sort not in SORT_FIELDS:
            raise ValidationError(
                "Invalid sort field",
                details=[{"field": "sort", "message": f"Must be one of: {', '.join(SORT_FIELDS)}"}]
            )
        order = (order or "desc").lower()
        if order not in ("asc", "desc"):
            raise ValidationError(
                "Invalid sort order",
                details=[{"field": "order", "message": "Must be 'asc' or 'desc'"}]
            )

        upper = parse_iso_datetime(date_to)
        if upper is not None and is_date_only(date_to):
            upper = end_of_day(upper)

        return DaoQuery(
            search=(search or "").strip() or None,
            autorite=(autorite or "").strip() or None,
            date_from=parse_iso_datetime(date_from),
            date_to=upper,
            sort=SORT_FIELDS[sort],
            descending=order == "desc",
            page=max(1, page or 1),
            page_size=min(self.max_page_size, max(1, page_size or self.default_page_size)),
        )

    def list(self, query: DaoQuery) -> Tuple[List[Dao], int]:
        """Liste paginée: (éléments de la page, total filtré)"""
        return self.dao_repository.find_page(query)

    def get_by_id(self, dao_id: str) -> Optional[Dao]:
        """Récupère un DAO par son ID; None s'il n'existe pas"""
        return self.dao_repository.find_by_id(dao_id)

    def get_all(self) -> List[Dao]:
        return self.dao_repository.find_all()

    def peek_next_number(self, now: Optional[datetime] = None) -> str:
        """Prochain numéro de l'année en cours, sans le réserver"""
        year = (now or datetime.now(timezone.utc)).year
        return self.sequence_allocator.peek(year)

    def create(
        self,
        objet_dossier: str,
        reference: str,
        autorite_contractante: str,
        date_depot: str,
        equipe: Optional[List[TeamMember]] = None,
        tasks: Optional[List[DaoTask]] = None,
        now: Optional[datetime] = None
    ) -> Dao:
        """
        Crée un DAO avec un numéro alloué par le serveur.

        Un conflit d'unicité sur le numéro déclenche une nouvelle allocation,
        jusqu'à `create_max_attempts` tentatives.
        """
        now = now or datetime.now(timezone.utc)
        task_list = normalize_tasks(list(tasks)) if tasks else default_tasks()

        for attempt in range(1, self.create_max_attempts + 1):
            numero = self.sequence_allocator.allocate(now.year)
            dao = Dao(
                id=str(uuid.uuid4()),
                numero_liste=numero,
                objet_dossier=objet_dossier,
                reference=reference,
                autorite_contractante=autorite_contractante,
                date_depot=date_depot,
                equipe=list(equipe or []),
                tasks=task_list,
                created_at=now,
                updated_at=now,
            )
            try:
                created = self.dao_repository.add(dao)
            except DuplicateKeyError:
                logger.warning(f"⚠️ Number {numero} already taken (attempt {attempt}/{self.create_max_attempts})")
                continue
            logger.info(f"✨ Created new DAO: {created.numero_liste}")
            return created

        raise ConflictError(
            "Impossible d'attribuer un numéro de DAO unique, veuillez réessayer",
            code="NUMBERING_CONFLICT"
        )

    def update(self, dao_id: str, changes: Dict[str, Any], now: Optional[datetime] = None) -> Optional[Dao]:
        """Fusionne les champs fournis et rafraîchit updated_at; None si le DAO n'existe pas"""
        dao = self.dao_repository.find_by_id(dao_id)
        if dao is None:
            return None

        for field in UPDATABLE_FIELDS:
            if field in changes and changes[field] is not None:
                setattr(dao, field, changes[field])
        normalize_tasks(dao.tasks)
        dao.updated_at = now or datetime.now(timezone.utc)

        updated = self.dao_repository.save(dao)
        if updated is not None:
            logger.info(f"📝 Updated DAO: {updated.numero_liste}")
        return updated

    def delete(self, dao_id: str) -> bool:
        """Supprime un DAO et libère son numéro pour le calcul de séquence"""
        deleted = self.dao_repository.delete(dao_id)
        if deleted is None:
            return False

        parsed = parse_dao_number(deleted.numero_liste)
        if parsed:
            self.sequence_allocator.release(*parsed)
        logger.info(f"🗑️ Deleted DAO: {deleted.numero_liste}")
        return True

    def get_last_created(self) -> Optional[Dao]:
        return self.dao_repository.find_last_created()

    def delete_last_created(self) -> Optional[Dao]:
        """Supprime le DAO le plus récemment créé et le retourne"""
        last = self.dao_repository.find_last_created()
        if last is None or not self.delete(last.id):
            return None
        return last

    def clear_all(self) -> None:
        """Vide la collection et remet à zéro les séquences annuelles"""
        self.dao_repository.clear()
        self.sequence_allocator.reset()
        logger.info("🧹 All DAOs cleared")

    def verify_integrity(self) -> Dict[str, Any]:
        verify = getattr(self.dao_repository, "verify_integrity", None)
        if verify is None:
            return {"ok": True, "total": self.dao_repository.count(), "issues": []}
        return verify()

    def stats(self, now: Optional[datetime] = None) -> Dict[str, int]:
        """Statistiques du tableau de bord"""
        daos = self.dao_repository.find_all()
        active = [dao for dao in daos if dao.progress < 100]
        urgent = [dao for dao in active if dao.status(now) == DaoStatus.URGENT]
        global_progress = round(sum(dao.progress for dao in active) / len(active)) if active else 0

        return {
            "total": len(daos),
            "active": len(active),
            "completed": len(daos) - len(active),
            "urgent": len(urgent),
            "globalProgress": global_progress,
        }
