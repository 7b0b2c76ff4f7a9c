"""
Modèles SQLAlchemy - Tables des DAO et des utilisateurs
"""

from datetime import datetime, timezone
from sqlalchemy import (
    Column, String, Text, DateTime, Boolean, ForeignKey, JSON
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class DaoModel(Base):
    """Modèle SQLAlchemy pour les dossiers d'appel d'offres"""
    __tablename__ = "daos"

    id = Column(String, primary_key=True)
    numero_liste = Column(String, unique=True, index=True, nullable=False)
    objet_dossier = Column(Text, nullable=False)
    reference = Column(String, nullable=False)
    autorite_contractante = Column(String, index=True, nullable=False)

    # Date de dépôt telle que reçue (ISO) et sa version parsée pour les filtres
    date_depot = Column(String, nullable=False)
    date_depot_at = Column(DateTime(timezone=True), nullable=True, index=True)

    equipe = Column(JSON, nullable=False, default=list)
    tasks = Column(JSON, nullable=False, default=list)

    created_at = Column(DateTime(timezone=True), default=utcnow, index=True)
    updated_at = Column(DateTime(timezone=True), default=utcnow, index=True)


class UserModel(Base):
    """Modèle SQLAlchemy pour les utilisateurs"""
    __tablename__ = "users"

    id = Column(String, primary_key=True)
    name = Column(String, nullable=False)
    email = Column(String, unique=True, index=True, nullable=False)
    role = Column(String, nullable=False, default="user")
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), default=utcnow)
    last_login_at = Column(DateTime(timezone=True), nullable=True)

    credential = relationship(
        "UserCredentialModel",
        back_populates="user",
        uselist=False,
        cascade="all, delete-orphan"
    )


class UserCredentialModel(Base):
    """Hash du mot de passe, stocké hors de l'entité User"""
    __tablename__ = "user_credentials"

    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True)
    password_hash = Column(String, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=utcnow, onupdate=utcnow)

    user = relationship("UserModel", back_populates="credential")
