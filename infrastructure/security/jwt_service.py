"""
JWTService - Service pour la gestion des tokens JWT
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Dict, Any
from jose import JWTError, jwt

from domain.entities import User

logger = logging.getLogger(__name__)


class JWTService:
    """Service pour la gestion des tokens JWT (émetteur et audience vérifiés)"""

    def __init__(
        self,
        secret_key: str,
        algorithm: str = "HS256",
        expire_minutes: int = 1440,
        issuer: str = "dao-management",
        audience: str = "dao-app"
    ):
        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_minutes = expire_minutes
        self.issuer = issuer
        self.audience = audience

    def create_access_token(self, data: Dict[str, Any], expires_delta: Optional[timedelta] = None) -> str:
        """Crée un token JWT"""
        to_encode = data.copy()

        now = datetime.now(timezone.utc)
        expire = now + (expires_delta or timedelta(minutes=self.expire_minutes))

        to_encode.update({"exp": expire, "iat": now, "iss": self.issuer, "aud": self.audience})
        return jwt.encode(to_encode, self.secret_key, algorithm=self.algorithm)

    def create_user_token(self, user: User) -> str:
        """Crée le token de session d'un utilisateur"""
        return self.create_access_token({
            "sub": user.id,
            "name": user.name,
            "email": user.email,
            "role": user.role.value,
        })

    def decode_token(self, token: str) -> Dict[str, Any]:
        """Décode un token JWT"""
        try:
            return jwt.decode(
                token,
                self.secret_key,
                algorithms=[self.algorithm],
                audience=self.audience,
                issuer=self.issuer
            )
        except JWTError as e:
            logger.warning(f"JWT decode error: {e}")
            raise ValueError(f"Invalid token: {str(e)}")

