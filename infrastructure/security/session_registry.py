"""
SessionRegistry - Sessions actives (token -> utilisateur) en mémoire de processus
"""

import hashlib
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Dict, List

logger = logging.getLogger(__name__)


def hash_token(token: str) -> str:
    """Identifiant de session affichable: le token brut n'est jamais exposé"""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


@dataclass
class ActiveSession:
    token: str
    user_id: str
    created_at: datetime

    @property
    def session_id(self) -> str:
        return hash_token(self.token)


class SessionRegistry:
    """Registre des tokens actifs"""

    def __init__(self):
        self._sessions: Dict[str, ActiveSession] = {}

    def add(self, token: str, user_id: str) -> None:
        self._sessions[token] = ActiveSession(token, user_id, datetime.now(timezone.utc))

    def contains(self, token: str) -> bool:
        return token in self._sessions

    def remove(self, token: str) -> bool:
        return self._sessions.pop(token, None) is not None

    def remove_by_session_id(self, session_id: str) -> bool:
        for token, session in list(self._sessions.items()):
            if session.session_id == session_id:
                del self._sessions[token]
                return True
        return False

    def revoke_user(self, user_id: str) -> int:
        """Supprime toutes les sessions d'un utilisateur"""
        tokens = [token for token, session in self._sessions.items() if session.user_id == user_id]
        for token in tokens:
            del self._sessions[token]
        if tokens:
            logger.info(f"🔒 {len(tokens)} session(s) revoked for user {user_id}")
        return len(tokens)

    def list(self) -> List[ActiveSession]:
        return sorted(self._sessions.values(), key=lambda s: s.created_at, reverse=True)

    def clear(self) -> None:
        self._sessions.clear()

    def __len__(self) -> int:
        return len(self._sessions)
