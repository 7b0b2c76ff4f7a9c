"""
Repository DAO en mémoire - Collection indexée, reconstruite après chaque mutation
"""

import copy
import logging
from typing import Any, Dict, List, Optional, Tuple

from domain.entities import Dao
from domain.entities.dao import parse_dao_number, parse_iso_datetime
from domain.exceptions import DuplicateKeyError
from domain.repositories import DaoRepository, DaoQuery

logger = logging.getLogger(__name__)

SEARCH_FIELDS = ("numero_liste", "objet_dossier", "reference", "autorite_contractante")


def _matches(dao: Dao, query: DaoQuery) -> bool:
    if query.search:
        needle = query.search.lower()
        if not any(needle in (getattr(dao, field) or "").lower() for field in SEARCH_FIELDS):
            return False

    if query.date_from or query.date_to:
        depot = parse_iso_datetime(dao.date_depot)
        if depot is None:
            return False
        if query.date_from and depot < query.date_from:
            return False
        if query.date_to and depot > query.date_to:
            return False

    return True


def _number_key(numero: str):
    """Ordre (année, séquence): DAO-2026-1000 vient après DAO-2026-999"""
    return parse_dao_number(numero) or (0, 0), numero


def _sort_key(field: str):
    def key(dao: Dao):
        if field == "date_depot":
            value = parse_iso_datetime(dao.date_depot)
        elif field == "numero_liste":
            value = _number_key(dao.numero_liste)
        else:
            value = getattr(dao, field)
        # Les valeurs absentes sont groupées en tête
        return (value is not None, value)
    return key


class InMemoryDaoRepository(DaoRepository):
    """
    Stockage des DAO en mémoire de processus.

    Deux index secondaires: id -> position et autorité contractante -> DAO.
    Ils sont entièrement reconstruits après chaque mutation. Les entités sont
    copiées en entrée comme en sortie, un appelant ne partage jamais l'état stocké.
    """

    def __init__(self):
        self._storage: List[Dao] = []
        self._id_index: Dict[str, int] = {}
        self._autorite_index: Dict[str, List[Dao]] = {}

    def _rebuild_indexes(self) -> None:
        self._id_index = {}
        self._autorite_index = {}
        for position, dao in enumerate(self._storage):
            self._id_index[dao.id] = position
            self._autorite_index.setdefault(dao.autorite_contractante, []).append(dao)

    def _assert_unique_number(self, dao: Dao) -> None:
        for stored in self._storage:
            if stored.numero_liste == dao.numero_liste and stored.id != dao.id:
                raise DuplicateKeyError(f"DAO number {dao.numero_liste} already exists")

    def find_by_id(self, dao_id: str) -> Optional[Dao]:
        position = self._id_index.get(dao_id)
        if position is None:
            return None
        return copy.deepcopy(self._storage[position])

    def find_page(self, query: DaoQuery) -> Tuple[List[Dao], int]:
        candidates = self._autorite_index.get(query.autorite, []) if query.autorite else self._storage
        filtered = [dao for dao in candidates if _matches(dao, query)]

        filtered.sort(key=lambda dao: dao.id, reverse=query.descending)
        filtered.sort(key=_sort_key(query.sort), reverse=query.descending)

        page = filtered[query.offset:query.offset + query.page_size]
        return copy.deepcopy(page), len(filtered)

    def find_all(self) -> List[Dao]:
        return copy.deepcopy(self._storage)

    def find_numbers_for_year(self, year: int) -> List[str]:
        prefix = f"DAO-{year}-"
        return [dao.numero_liste for dao in self._storage if dao.numero_liste.startswith(prefix)]

    def find_last_created(self) -> Optional[Dao]:
        if not self._storage:
            return None
        last = max(
            self._storage,
            key=lambda dao: (dao.created_at is not None, dao.created_at, _number_key(dao.numero_liste))
        )
        return copy.deepcopy(last)

    def add(self, dao: Dao) -> Dao:
        if dao.id in self._id_index:
            raise DuplicateKeyError(f"DAO {dao.id} already exists", code="DUPLICATE_ID")
        self._assert_unique_number(dao)
        self._storage.append(copy.deepcopy(dao))
        self._rebuild_indexes()
        return copy.deepcopy(dao)

    def save(self, dao: Dao) -> Optional[Dao]:
        position = self._id_index.get(dao.id)
        if position is None:
            return None
        self._assert_unique_number(dao)
        self._storage[position] = copy.deepcopy(dao)
        self._rebuild_indexes()
        return copy.deepcopy(dao)

    def delete(self, dao_id: str) -> Optional[Dao]:
        position = self._id_index.get(dao_id)
        if position is None:
            return None
        deleted = self._storage.pop(position)
        self._rebuild_indexes()
        return deleted

    def clear(self) -> None:
        self._storage = []
        self._rebuild_indexes()

    def count(self) -> int:
        return len(self._storage)

    def verify_integrity(self) -> Dict[str, Any]:
        """Vérifie la cohérence des index avec la collection"""
        issues: List[str] = []

        if len(self._id_index) != len(self._storage):
            issues.append(f"id index size {len(self._id_index)} != storage size {len(self._storage)}")
        for dao_id, position in self._id_index.items():
            if position >= len(self._storage) or self._storage[position].id != dao_id:
                issues.append(f"id index points to wrong position for {dao_id}")

        indexed = sum(len(daos) for daos in self._autorite_index.values())
        if indexed != len(self._storage):
            issues.append(f"autorite index holds {indexed} entries for {len(self._storage)} dossiers")

        numbers = [dao.numero_liste for dao in self._storage]
        duplicates = sorted({number for number in numbers if numbers.count(number) > 1})
        if duplicates:
            issues.append(f"duplicate numbers: {', '.join(duplicates)}")

        if issues:
            logger.error(f"❌ In-memory store integrity issues: {issues}")

        return {
            "ok": not issues,
            "total": len(self._storage),
            "indexedIds": len(self._id_index),
            "authorities": len(self._autorite_index),
            "issues": issues,
        }
