"""
Sonde de stockage - Choisit une fois pour toutes entre base de données et mémoire
"""

import logging
from dataclasses import dataclass
from typing import Optional, Union

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from infrastructure.database.init_db import init_db
from infrastructure.database.session import create_db_engine, create_session_factory

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class InMemoryMode:
    """Stockage en mémoire pour toute la durée de vie du processus"""
    reason: str

    name = "memory"


@dataclass(frozen=True)
class DatabaseMode:
    """Stockage SQL joignable au démarrage"""
    engine: Engine
    session_factory: sessionmaker

    name = "database"

    def dispose(self) -> None:
        self.engine.dispose()


StorageMode = Union[InMemoryMode, DatabaseMode]


def probe_storage(database_url: Optional[str], connect_timeout: float = 0.8) -> StorageMode:
    """
    Tente une connexion unique à la base de données.

    Le résultat est définitif: en cas d'échec le processus reste en mémoire,
    aucune nouvelle tentative n'est faite par la suite.
    """
    if not database_url:
        logger.info("💾 Aucune base de données configurée, stockage en mémoire")
        return InMemoryMode(reason="no database configured")

    engine = None
    try:
        engine = create_db_engine(database_url, connect_timeout)
        with engine.connect() as connection:
            connection.execute(text("SELECT 1"))
        init_db(engine)
    except Exception as e:
        logger.warning(f"⚠️ Base de données injoignable, bascule en mémoire: {e}")
        if engine is not None:
            engine.dispose()
        return InMemoryMode(reason=str(e))

    logger.info(f"✅ Connecté à la base de données ({engine.dialect.name})")
    return DatabaseMode(engine=engine, session_factory=create_session_factory(engine))
