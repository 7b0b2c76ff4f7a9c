"""
Configuration du moteur et de la session de base de données SQLAlchemy
"""

import math
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

IN_MEMORY_SQLITE_URLS = ("sqlite://", "sqlite:///:memory:")


def create_db_engine(database_url: str, connect_timeout: float = 0.8) -> Engine:
    """Crée le moteur de base de données adapté au dialecte"""
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if database_url in IN_MEMORY_SQLITE_URLS:
            # Une seule connexion partagée, sinon chaque session voit une base vide
            kwargs["poolclass"] = StaticPool
        return create_engine(database_url, **kwargs)

    return create_engine(
        database_url,
        pool_pre_ping=True,
        pool_size=10,
        max_overflow=20,
        connect_args={"connect_timeout": max(1, math.ceil(connect_timeout))}
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    """Crée la session factory liée au moteur"""
    return sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
