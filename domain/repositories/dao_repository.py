"""
Interface DaoRepository - Définit les opérations d'accès aux données pour Dao
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Tuple
from domain.entities.dao import Dao

# Nom du paramètre de tri exposé -> attribut de l'entité
SORT_FIELDS = {
    "updatedAt": "updated_at",
    "createdAt": "created_at",
    "numeroListe": "numero_liste",
    "objetDossier": "objet_dossier",
    "reference": "reference",
    "autoriteContractante": "autorite_contractante",
    "dateDepot": "date_depot",
}


@dataclass
class DaoQuery:
    """Filtres, tri et pagination d'une liste de DAO (déjà normalisés)"""
    search: Optional[str] = None
    autorite: Optional[str] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None
    sort: str = "updated_at"
    descending: bool = True
    page: int = 1
    page_size: int = 20

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size


class DaoRepository(ABC):
    """Interface pour le repository des DAO"""

    @abstractmethod
    def find_by_id(self, dao_id: str) -> Optional[Dao]:
        """Trouve un DAO par son ID"""
        pass

    @abstractmethod
    def find_page(self, query: DaoQuery) -> Tuple[List[Dao], int]:
        """Retourne une page de DAO filtrés et le total filtré"""
        pass

    @abstractmethod
    def find_all(self) -> List[Dao]:
        """Retourne tous les DAO"""
        pass

    @abstractmethod
    def find_numbers_for_year(self, year: int) -> List[str]:
        """Retourne les numéros persistés commençant par DAO-<year>-"""
        pass

    @abstractmethod
    def find_last_created(self) -> Optional[Dao]:
        """Retourne le DAO le plus récemment créé"""
        pass

    @abstractmethod
    def add(self, dao: Dao) -> Dao:
        """Insère un nouveau DAO (DuplicateKeyError si le numéro existe)"""
        pass

    @abstractmethod
    def save(self, dao: Dao) -> Optional[Dao]:
        """Remplace un DAO existant; None s'il n'existe pas"""
        pass

    @abstractmethod
    def delete(self, dao_id: str) -> Optional[Dao]:
        """Supprime un DAO et le retourne; None s'il n'existe pas"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Vide la collection"""
        pass

    @abstractmethod
    def count(self) -> int:
        pass
