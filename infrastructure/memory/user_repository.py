"""
Repository utilisateurs en mémoire
"""

import copy
from typing import Dict, List, Optional

from domain.entities import User
from domain.exceptions import DuplicateKeyError
from domain.repositories import UserRepository


class InMemoryUserRepository(UserRepository):
    """Utilisateurs et hash de mots de passe conservés en mémoire de processus"""

    def __init__(self):
        self._users: Dict[str, User] = {}
        self._password_hashes: Dict[str, str] = {}

    def find_by_id(self, user_id: str) -> Optional[User]:
        user = self._users.get(user_id)
        return copy.deepcopy(user) if user else None

    def find_by_email(self, email: str) -> Optional[User]:
        wanted = (email or "").strip().lower()
        for user in self._users.values():
            if user.email.lower() == wanted:
                return copy.deepcopy(user)
        return None

    def find_all(self) -> List[User]:
        users = sorted(self._users.values(), key=lambda u: (u.created_at is not None, u.created_at))
        return copy.deepcopy(users)

    def save(self, user: User) -> User:
        existing = self.find_by_email(user.email)
        if existing and existing.id != user.id:
            raise DuplicateKeyError("Email already exists", code="EMAIL_EXISTS")
        self._users[user.id] = copy.deepcopy(user)
        return copy.deepcopy(user)

    def delete(self, user_id: str) -> None:
        self._users.pop(user_id, None)
        self._password_hashes.pop(user_id, None)

    def get_password_hash(self, user_id: str) -> Optional[str]:
        return self._password_hashes.get(user_id)

    def set_password_hash(self, user_id: str, password_hash: str) -> None:
        self._password_hashes[user_id] = password_hash

    def clear(self) -> None:
        self._users.clear()
        self._password_hashes.clear()
