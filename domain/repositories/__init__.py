"""
Repositories - Interfaces pour l'accès aux données
"""

from domain.repositories.user_repository import UserRepository
from domain.repositories.dao_repository import DaoRepository, DaoQuery, SORT_FIELDS

__all__ = [
    "UserRepository",
    "DaoRepository",
    "DaoQuery",
    "SORT_FIELDS"
]
