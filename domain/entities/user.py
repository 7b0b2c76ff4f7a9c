"""
Entité User - Modèle métier pour les utilisateurs
"""

from datetime import datetime, timezone
from typing import Optional
from dataclasses import dataclass
from enum import Enum


class UserRole(str, Enum):
    """Rôle global d'un utilisateur"""
    ADMIN = "admin"
    USER = "user"
    VIEWER = "viewer"


@dataclass
class User:
    """Entité User du domaine (le hash du mot de passe est stocké à part)"""
    id: str
    name: str
    email: str
    role: UserRole
    is_active: bool = True
    created_at: Optional[datetime] = None
    last_login_at: Optional[datetime] = None

    def __post_init__(self):
        """Validation de l'entité"""
        if not self.email:
            raise ValueError("Email cannot be empty")
        if not self.name:
            raise ValueError("Name cannot be empty")
        if isinstance(self.role, str):
            self.role = UserRole(self.role)

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    def update_last_login(self) -> None:
        """Met à jour la date de dernière connexion"""
        self.last_login_at = datetime.now(timezone.utc)


def normalize_name(name: str) -> str:
    """Normalise un nom en 'Title Case' ("jean  DUPONT" -> "Jean Dupont")"""
    return " ".join(word[:1].upper() + word[1:].lower() for word in (name or "").split())
