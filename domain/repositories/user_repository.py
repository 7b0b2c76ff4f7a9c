"""
Interface UserRepository - Définit les opérations d'accès aux données pour User
"""

from abc import ABC, abstractmethod
from typing import List, Optional
from domain.entities.user import User


class UserRepository(ABC):
    """Interface pour le repository des utilisateurs"""

    @abstractmethod
    def find_by_id(self, user_id: str) -> Optional[User]:
        """Trouve un utilisateur par son ID"""
        pass

    @abstractmethod
    def find_by_email(self, email: str) -> Optional[User]:
        """Trouve un utilisateur par son email (insensible à la casse)"""
        pass

    @abstractmethod
    def find_all(self) -> List[User]:
        """Retourne tous les utilisateurs, triés par date de création"""
        pass

    @abstractmethod
    def save(self, user: User) -> User:
        """Sauvegarde un utilisateur (création ou mise à jour)"""
        pass

    @abstractmethod
    def delete(self, user_id: str) -> None:
        """Supprime un utilisateur"""
        pass

    @abstractmethod
    def get_password_hash(self, user_id: str) -> Optional[str]:
        """Retourne le hash du mot de passe d'un utilisateur"""
        pass

    @abstractmethod
    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        """Enregistre le hash du mot de passe d'un utilisateur"""
        pass

    @abstractmethod
    def clear(self) -> None:
        """Supprime tous les utilisateurs et leurs identifiants"""
        pass
