"""
Infrastructure mémoire - Repositories utilisés quand aucune base n'est joignable
"""

from infrastructure.memory.dao_repository import InMemoryDaoRepository
from infrastructure.memory.user_repository import InMemoryUserRepository

__all__ = [
    "InMemoryDaoRepository",
    "InMemoryUserRepository"
]
