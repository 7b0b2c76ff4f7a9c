"""
Dépendances d'authentification (token Bearer, utilisateur courant, rôle admin)
"""

import logging
from typing import Optional

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer

from api.dependencies import get_auth_service
from application.services.auth_service import AuthService
from domain.entities.user import User
from domain.exceptions import AuthError
from domain.policies.authorization import require_admin

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def get_token(token: Optional[str] = Depends(oauth2_scheme)) -> str:
    """Token Bearer obligatoire"""
    if not token:
        raise AuthError("Access token required", code="NO_TOKEN")
    return token


def get_current_user(
    token: str = Depends(get_token),
    auth_service: AuthService = Depends(get_auth_service)
) -> User:
    """
    Dépendance FastAPI : vérifie le token et retourne l'utilisateur actif
    """
    return auth_service.verify_token(token)


def get_current_admin_user(current_user: User = Depends(get_current_user)) -> User:
    """
    Dépendance qui vérifie que l'utilisateur courant est un admin.
    """
    require_admin(current_user)
    return current_user
