"""
Infrastructure Database - Configuration et repositories SQLAlchemy
"""

from infrastructure.database.session import create_db_engine, create_session_factory
from infrastructure.database.models import Base, DaoModel, UserModel, UserCredentialModel
from infrastructure.database.repositories import (
    SQLAlchemyDaoRepository,
    SQLAlchemyUserRepository
)
from infrastructure.database.probe import DatabaseMode, InMemoryMode, StorageMode, probe_storage

__all__ = [
    "Base",
    "create_db_engine",
    "create_session_factory",
    "DaoModel",
    "UserModel",
    "UserCredentialModel",
    "SQLAlchemyDaoRepository",
    "SQLAlchemyUserRepository",
    "DatabaseMode",
    "InMemoryMode",
    "StorageMode",
    "probe_storage"
]
