"""
Contexte applicatif - Assemble repositories et services selon le mode de stockage
"""

import logging
import uuid
from dataclasses import dataclass, field

from application.services import (
    AuthService, CommentService, DaoNotifier, DaoService, DaoWorkflowService,
    NotificationService, SequenceAllocator, UserService
)
from config import Config
from domain.repositories import DaoRepository, UserRepository
from infrastructure.cache.idempotency_cache import IdempotencyCache
from infrastructure.database.probe import DatabaseMode, StorageMode, probe_storage
from infrastructure.database.repositories import SQLAlchemyDaoRepository, SQLAlchemyUserRepository
from infrastructure.memory import InMemoryDaoRepository, InMemoryUserRepository
from infrastructure.security.jwt_service import JWTService
from infrastructure.security.password_hasher import PasswordHasher
from infrastructure.security.session_registry import SessionRegistry

logger = logging.getLogger(__name__)


@dataclass
class AppContext:
    """État partagé du processus, créé une fois par application"""
    config: Config
    storage: StorageMode
    dao_repository: DaoRepository
    user_repository: UserRepository
    sequence_allocator: SequenceAllocator
    dao_service: DaoService
    workflow_service: DaoWorkflowService
    user_service: UserService
    auth_service: AuthService
    notification_service: NotificationService
    comment_service: CommentService
    session_registry: SessionRegistry
    idempotency_cache: IdempotencyCache
    boot_id: str = field(default_factory=lambda: str(uuid.uuid4()))

    def bootstrap_users(self) -> None:
        self.user_service.initialize_users(**self._bootstrap_options())

    def _bootstrap_options(self):
        return {
            "admin_password": self.config.admin_password,
            "admin_name": self.config.admin_name,
            "seed_users": self.config.seed_users,
            "production": self.config.is_production,
        }

    def reset(self) -> None:
        """Remise à zéro complète (route d'administration)"""
        self.dao_service.clear_all()
        self.notification_service.clear_all()
        self.comment_service.clear_all()
        self.idempotency_cache.clear()
        self.user_service.reinitialize_users(**self._bootstrap_options())
        self.auth_service.clear_sessions()
        self.auth_service.clear_reset_tokens()
        self.boot_id = str(uuid.uuid4())
        logger.warning(f"🔄 Application reset, new boot id {self.boot_id}")

    def close(self) -> None:
        if isinstance(self.storage, DatabaseMode):
            self.storage.dispose()


def build_repositories(storage: StorageMode):
    """Repositories correspondant au mode de stockage retenu"""
    if isinstance(storage, DatabaseMode):
        return (
            SQLAlchemyDaoRepository(storage.session_factory),
            SQLAlchemyUserRepository(storage.session_factory),
        )
    return InMemoryDaoRepository(), InMemoryUserRepository()


def build_context(config: Config) -> AppContext:
    """Sonde le stockage une seule fois puis assemble tous les services"""
    storage = probe_storage(config.database_url, config.database_connect_timeout)
    dao_repository, user_repository = build_repositories(storage)

    password_hasher = PasswordHasher(rounds=config.password_hash_rounds)
    jwt_service = JWTService(
        secret_key=config.jwt_secret_key,
        algorithm=config.jwt_algorithm,
        expire_minutes=config.jwt_expire_minutes,
        issuer=config.jwt_issuer,
        audience=config.jwt_audience
    )
    session_registry = SessionRegistry()
    notification_service = NotificationService(retention=config.notification_retention)
    notifier = DaoNotifier(notification_service)

    sequence_allocator = SequenceAllocator(dao_repository)
    dao_service = DaoService(
        dao_repository,
        sequence_allocator,
        default_page_size=config.default_page_size,
        max_page_size=config.max_page_size,
        create_max_attempts=config.create_max_attempts
    )
    user_service = UserService(
        user_repository,
        password_hasher,
        admin_email=config.admin_email,
        default_password=config.default_user_password
    )
    auth_service = AuthService(
        user_service,
        jwt_service,
        session_registry,
        notification_service,
        allow_self_register=config.allow_self_register,
        reset_token_ttl_minutes=config.password_reset_ttl_minutes,
        production=config.is_production
    )

    context = AppContext(
        config=config,
        storage=storage,
        dao_repository=dao_repository,
        user_repository=user_repository,
        sequence_allocator=sequence_allocator,
        dao_service=dao_service,
        workflow_service=DaoWorkflowService(dao_service, notifier),
        user_service=user_service,
        auth_service=auth_service,
        notification_service=notification_service,
        comment_service=CommentService(notifier),
        session_registry=session_registry,
        idempotency_cache=IdempotencyCache(default_ttl=config.idempotency_ttl_seconds),
    )
    context.bootstrap_users()

    logger.info(f"🚀 Application context ready (storage: {storage.name})")
    return context
