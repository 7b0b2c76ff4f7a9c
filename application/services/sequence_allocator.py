"""
SequenceAllocator - Numérotation annuelle des DAO (DAO-YYYY-NNN)
"""

import logging
from typing import Dict
from domain.entities.dao import format_dao_number, parse_dao_number
from domain.repositories.dao_repository import DaoRepository

logger = logging.getLogger(__name__)


class SequenceAllocator:
    """
    Alloue le prochain numéro de séquence d'une année.

    La séquence retenue est max(base en mémoire, max persisté) + 1: la base
    empêche deux allocations successives de renvoyer le même numéro, la
    lecture du stockage recale l'allocateur après un redémarrage.
    """

    def __init__(self, dao_repository: DaoRepository):
        self.dao_repository = dao_repository
        self._baselines: Dict[int, int] = {}

    def _max_persisted(self, year: int) -> int:
        sequences = [0]
        for numero in self.dao_repository.find_numbers_for_year(year):
            parsed = parse_dao_number(numero)
            if parsed and parsed[0] == year:
                sequences.append(parsed[1])
        return max(sequences)

    def _next_sequence(self, year: int) -> int:
        return max(self._baselines.get(year, 0), self._max_persisted(year)) + 1

    def peek(self, year: int) -> str:
        """Prochain numéro candidat, sans modifier l'état"""
        return format_dao_number(year, self._next_sequence(year))

    def allocate(self, year: int) -> str:
        """Réserve le prochain numéro et avance la base de l'année"""
        sequence = self._next_sequence(year)
        self._baselines[year] = sequence
        return format_dao_number(year, sequence)

    def release(self, year: int, deleted_seq: int) -> None:
        """Recalcule la base après suppression à partir des numéros encore persistés"""
        self._baselines[year] = self._max_persisted(year)
        logger.debug(f"Sequence {deleted_seq} released for {year}, baseline now {self._baselines[year]}")

    def reset(self) -> None:
        self._baselines.clear()
