"""
AuthService - Connexion, tokens et sessions actives
"""

import logging
import secrets
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Tuple

from application.services.notification_service import NotificationService
from application.services.user_service import UserService
from domain.entities.notification import NotificationType
from domain.entities.user import User, UserRole
from domain.exceptions import AuthError, ForbiddenError, NotFoundError, ValidationError
from infrastructure.security.jwt_service import JWTService
from infrastructure.security.session_registry import ActiveSession, SessionRegistry

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AuthService:
    """Service d'authentification"""

    def __init__(
        self,
        user_service: UserService,
        jwt_service: JWTService,
        session_registry: SessionRegistry,
        notification_service: NotificationService,
        allow_self_register: bool = False,
        reset_token_ttl_minutes: int = 15,
        production: bool = False,
        clock: Callable[[], datetime] = _utcnow
    ):
        self.user_service = user_service
        self.jwt_service = jwt_service
        self.sessions = session_registry
        self.notifications = notification_service
        self.allow_self_register = allow_self_register
        self.reset_token_ttl = timedelta(minutes=reset_token_ttl_minutes)
        self.production = production
        self.clock = clock
        # code de réinitialisation -> (email, expiration)
        self._reset_tokens: Dict[str, Tuple[str, datetime]] = {}

    def _open_session(self, user: User) -> str:
        token = self.jwt_service.create_user_token(user)
        self.sessions.add(token, user.id)
        return token

    def login(self, email: str, password: str) -> Tuple[str, User]:
        """Authentifie l'utilisateur et ouvre une session"""
        user = self.user_service.authenticate(email, password)
        if not user:
            raise AuthError("Identifiants incorrects", code="INVALID_CREDENTIALS")

        user = self.user_service.update_last_login(user)
        token = self._open_session(user)

        self.notifications.notify(
            [user.id],
            NotificationType.SYSTEM,
            "Connexion réussie",
            f"Vous vous êtes connecté(e) avec succès le {datetime.now(timezone.utc):%d/%m/%Y %H:%M} UTC",
            {"email": user.email},
        )
        logger.info(f"🔓 User logged in: {user.email}")
        return token, user

    def logout(self, token: str) -> None:
        self.sessions.remove(token)
        logger.info("🔒 User logged out")

    def verify_token(self, token: str) -> User:
        """
        Vérifie un token et retourne l'utilisateur actif associé.

        Un token valide absent du registre (redémarrage du processus) est réadmis.
        Le token d'un utilisateur inconnu ou désactivé est rejeté et retiré.
        """
        try:
            payload = self.jwt_service.decode_token(token)
        except ValueError:
            self.sessions.remove(token)
            raise AuthError("Invalid or expired token", code="INVALID_TOKEN")

        user = self.user_service.get_user(payload.get("sub") or "")
        if user is None or not user.is_active:
            self.sessions.remove(token)
            raise AuthError("Invalid or expired token", code="INVALID_TOKEN")

        if not self.sessions.contains(token):
            logger.info(f"♻️ Re-admitting valid token for {user.email}")
            self.sessions.add(token, user.id)

        return user

    def register(self, name: str, email: str, password: str) -> Tuple[str, User]:
        """Inscription: le premier compte devient administrateur"""
        first_user = not self.user_service.get_all_users()
        if not first_user and not self.allow_self_register:
            raise ForbiddenError("Self registration is disabled", code="REGISTRATION_DISABLED")

        role = UserRole.ADMIN if first_user else UserRole.USER
        user = self.user_service.create_user(name, email, role, password)
        self.user_created(user)
        return self.login(email, password)

    def create_user(self, name: str, email: str, role: UserRole, password: Optional[str] = None) -> User:
        """Création d'un compte par un administrateur"""
        user = self.user_service.create_user(name, email, role, password)
        self.user_created(user)
        return user

    def user_created(self, user: User) -> None:
        self.notifications.broadcast(
            NotificationType.USER_CREATED,
            "Nouvel utilisateur",
            f"{user.name} ({user.email}) a été créé",
            {"userId": user.id},
        )

    def deactivate_user(self, actor: User, user_id: str) -> User:
        user = self.user_service.deactivate_user(actor, user_id)
        self.sessions.revoke_user(user.id)
        return user

    def change_password(self, user: User, current_password: Optional[str], new_password: str) -> None:
        if current_password is not None and not self.user_service.verify_password(user.id, current_password):
            raise ForbiddenError("Current password is incorrect", code="INVALID_PASSWORD")
        self.user_service.update_password(user.id, new_password)

    def list_sessions(self) -> List[ActiveSession]:
        return self.sessions.list()

    def revoke_session(self, session_id: str) -> None:
        if not self.sessions.remove_by_session_id(session_id):
            raise NotFoundError("Session not found", code="SESSION_NOT_FOUND")
        logger.info(f"🔒 Session revoked: {session_id[:12]}")

    def clear_sessions(self) -> None:
        self.sessions.clear()
        logger.info("🧹 All sessions cleared")

    # ------------------------------------------------------------------
    # Réinitialisation du mot de passe
    # ------------------------------------------------------------------

    def request_password_reset(self, email: str) -> Optional[str]:
        """
        Génère un code de réinitialisation à usage unique pour un compte actif.

        Retourne None si aucun compte actif ne correspond; l'appelant répond
        de la même façon dans les deux cas.
        """
        user = self.user_service.get_user_by_email(email)
        if user is None or not user.is_active:
            logger.info("🔑 Password reset requested for an unknown or inactive account")
            return None

        now = self.clock()
        for expired in [t for t, (_, expires_at) in self._reset_tokens.items() if expires_at < now]:
            del self._reset_tokens[expired]

        token = secrets.token_urlsafe(32)
        self._reset_tokens[token] = (user.email, now + self.reset_token_ttl)

        if self.production:
            logger.info(f"🔑 Password reset token generated for: {user.email}")
        else:
            logger.info(f"🔑 Password reset token for {user.email}: {token}")
        return token

    def verify_reset_token(self, token: str, email: str) -> bool:
        entry = self._reset_tokens.get(token)
        if entry is None:
            return False

        owner, expires_at = entry
        if owner.lower() != (email or "").strip().lower():
            return False
        if self.clock() > expires_at:
            del self._reset_tokens[token]
            return False
        return True

    def reset_password(self, token: str, email: str, new_password: str) -> None:
        """Remplace le mot de passe puis consomme le code"""
        user = self.user_service.get_user_by_email(email)
        if not self.verify_reset_token(token, email) or user is None or not user.is_active:
            raise ValidationError("Code invalide ou expiré", code="INVALID_RESET_TOKEN")

        self.user_service.update_password(user.id, new_password)
        del self._reset_tokens[token]
        logger.info(f"🔑 Password reset successful for: {user.email}")

    def clear_reset_tokens(self) -> None:
        self._reset_tokens.clear()
