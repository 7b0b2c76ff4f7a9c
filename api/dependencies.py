"""
Dépendances FastAPI - Accès au contexte applicatif et aux services
"""

import logging
from typing import Optional
from fastapi import Header, Request

from application.services import (
    AuthService, CommentService, DaoService, DaoWorkflowService,
    NotificationService, UserService
)
from infrastructure.cache.idempotency_cache import IdempotencyCache
from infrastructure.dependencies import AppContext

logger = logging.getLogger(__name__)


def get_context(request: Request) -> AppContext:
    """Contexte créé par create_app et stocké dans app.state"""
    return request.app.state.context


def get_dao_service(request: Request) -> DaoService:
    return get_context(request).dao_service


def get_workflow_service(request: Request) -> DaoWorkflowService:
    return get_context(request).workflow_service


def get_user_service(request: Request) -> UserService:
    return get_context(request).user_service


def get_auth_service(request: Request) -> AuthService:
    return get_context(request).auth_service


def get_notification_service(request: Request) -> NotificationService:
    return get_context(request).notification_service


def get_comment_service(request: Request) -> CommentService:
    return get_context(request).comment_service


def get_idempotency_cache(request: Request) -> IdempotencyCache:
    return get_context(request).idempotency_cache


def get_idempotency_key(
    x_idempotency_key: Optional[str] = Header(default=None, alias="x-idempotency-key")
) -> Optional[str]:
    """Clé d'idempotence envoyée par le client (vide = absente)"""
    key = (x_idempotency_key or "").strip()
    return key or None
