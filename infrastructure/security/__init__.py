"""
Services de sécurité
"""

from infrastructure.security.password_hasher import PasswordHasher
from infrastructure.security.jwt_service import JWTService
from infrastructure.security.session_registry import SessionRegistry, hash_token

__all__ = [
    "PasswordHasher",
    "JWTService",
    "SessionRegistry",
    "hash_token"
]
