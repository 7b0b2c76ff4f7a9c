"""
UserService - Service applicatif pour la gestion des utilisateurs
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional
from domain.entities.user import User, UserRole, normalize_name
from domain.exceptions import ConflictError, ForbiddenError, NotFoundError, ValidationError
from domain.repositories.user_repository import UserRepository
from infrastructure.security.password_hasher import PasswordHasher

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6

# Comptes de démonstration (hors production uniquement)
DEMO_USERS = [
    ("Admin User", "admin@2snd.fr", UserRole.ADMIN, "admin123"),
    ("Marie Dubois", "marie.dubois@2snd.fr", UserRole.USER, "marie123"),
    ("Pierre Martin", "pierre.martin@2snd.fr", UserRole.USER, "pierre123"),
]


class UserService:
    """Service pour la gestion des utilisateurs"""

    def __init__(
        self,
        user_repository: UserRepository,
        password_hasher: PasswordHasher,
        admin_email: Optional[str] = None,
        default_password: str = "changeme123"
    ):
        self.user_repository = user_repository
        self.password_hasher = password_hasher
        self.admin_email = (admin_email or "").strip().lower() or None
        self.default_password = default_password

    def initialize_users(
        self,
        admin_password: Optional[str] = None,
        admin_name: str = "Administrator",
        seed_users: bool = False,
        production: bool = False
    ) -> None:
        """Crée les comptes initiaux si la base d'utilisateurs est vide"""
        if self.user_repository.find_all():
            logger.info("✅ Users already present, skipping bootstrap")
            return

        if seed_users and production:
            logger.error("❌ Seeding demo users is not allowed in production")
        elif seed_users:
            logger.warning("⚠️ DEVELOPMENT ONLY: creating demo users")
            for name, email, role, password in DEMO_USERS:
                self.create_user(name, email, role, password)
            return

        if self.admin_email and admin_password:
            self.create_user(admin_name, self.admin_email, UserRole.ADMIN, admin_password)
            logger.info(f"🔐 Admin user created from environment: {self.admin_email}")
            return

        logger.warning("⚠️ No initial users created. Set DAO_ADMIN_EMAIL + DAO_ADMIN_PASSWORD to create an admin")

    def reinitialize_users(self, **bootstrap) -> None:
        self.user_repository.clear()
        self.initialize_users(**bootstrap)
        logger.info("🔄 Users reinitialized to defaults")

    def authenticate(self, email: str, password: str) -> Optional[User]:
        """Authentifie un utilisateur actif avec son email et son mot de passe"""
        user = self.user_repository.find_by_email(email)
        if not user or not user.is_active:
            logger.warning(f"Authentication failed: User '{email}' not found or inactive")
            return None

        if not self.password_hasher.verify(password, self.user_repository.get_password_hash(user.id)):
            logger.warning(f"Authentication failed: Invalid password for user '{email}'")
            return None

        logger.info(f"Authentication success: User '{email}' authenticated")
        return user

    def _ensure_unique_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        for user in self.user_repository.find_all():
            if user.is_active and user.id != exclude_id and user.name.lower() == name.lower():
                raise ConflictError("User name already taken", code="NAME_TAKEN")

    def create_user(
        self,
        name: str,
        email: str,
        role: UserRole = UserRole.USER,
        password: Optional[str] = None
    ) -> User:
        """Crée un nouvel utilisateur (nom normalisé, email unique)"""
        normalized = normalize_name(name)
        if not normalized:
            raise ValidationError("Name is required", details=[{"field": "name", "message": "Required"}])
        self._ensure_unique_name(normalized)

        email = email.strip().lower()
        if self.user_repository.find_by_email(email):
            raise ConflictError("User already exists", code="EMAIL_EXISTS")

        user = User(
            id=str(uuid.uuid4()),
            name=normalized,
            email=email,
            role=UserRole(role),
            is_active=True,
            created_at=datetime.now(timezone.utc)
        )
        saved = self.user_repository.save(user)
        self.user_repository.set_password_hash(saved.id, self.password_hasher.hash(password or self.default_password))

        logger.info(f"👤 New user created: {saved.email} Role: {saved.role.value}")
        return saved

    def get_user(self, user_id: str) -> Optional[User]:
        """Récupère un utilisateur par son ID"""
        return self.user_repository.find_by_id(user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        return self.user_repository.find_by_email(email)

    def get_all_users(self) -> List[User]:
        """Récupère tous les utilisateurs"""
        return self.user_repository.find_all()

    def get_super_admin(self) -> Optional[User]:
        """Administrateur principal: celui de DAO_ADMIN_EMAIL, sinon le plus ancien"""
        admins = [u for u in self.user_repository.find_all() if u.is_admin and u.is_active]
        if self.admin_email:
            for admin in admins:
                if admin.email.lower() == self.admin_email:
                    return admin
        return admins[0] if admins else None

    def is_super_admin(self, user_id: str) -> bool:
        super_admin = self.get_super_admin()
        return super_admin is not None and super_admin.id == user_id

    def verify_password(self, user_id: str, password: str) -> bool:
        return self.password_hasher.verify(password or "", self.user_repository.get_password_hash(user_id))

    def require_super_admin(self, actor: User, password: str) -> None:
        """Vérifie que l'acteur est le super administrateur et confirme son mot de passe"""
        if not self.is_super_admin(actor.id):
            raise ForbiddenError("Super admin access required", code="SUPER_ADMIN_REQUIRED")
        if not self.verify_password(actor.id, password):
            raise ForbiddenError("Invalid password", code="INVALID_PASSWORD")

    def update_role(self, actor: User, user_id: str, role: UserRole, password: str) -> User:
        self.require_super_admin(actor, password)

        user = self.user_repository.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        user.role = UserRole(role)
        saved = self.user_repository.save(user)
        logger.info(f"🔄 User role updated: {saved.email} → {saved.role.value}")
        return saved

    def deactivate_user(self, actor: User, user_id: str) -> User:
        if actor.id == user_id:
            raise ValidationError("Cannot deactivate your own account", code="SELF_DEACTIVATION")

        user = self.user_repository.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        user.is_active = False
        saved = self.user_repository.save(user)
        logger.info(f"🚫 User deactivated: {saved.email}")
        return saved

    def update_password(self, user_id: str, new_password: str) -> None:
        """Met à jour le mot de passe d'un utilisateur"""
        if len(new_password or "") < MIN_PASSWORD_LENGTH:
            raise ValidationError(
                "Password too short",
                details=[{"field": "newPassword", "message": f"At least {MIN_PASSWORD_LENGTH} characters"}]
            )
        if not self.user_repository.find_by_id(user_id):
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        self.user_repository.set_password_hash(user_id, self.password_hasher.hash(new_password))
        logger.info(f"🔑 Password changed for user {user_id}")

    def update_profile(self, user_id: str, name: str, email: Optional[str] = None) -> User:
        """Met à jour le nom; le changement d'email est interdit"""
        user = self.user_repository.find_by_id(user_id)
        if not user:
            raise NotFoundError("User not found", code="USER_NOT_FOUND")

        if email and email.strip().lower() != user.email.lower():
            raise ForbiddenError("Email change not allowed", code="EMAIL_CHANGE_FORBIDDEN")

        normalized = normalize_name(name)
        if not normalized:
            raise ValidationError("Name is required", details=[{"field": "name", "message": "Required"}])
        self._ensure_unique_name(normalized, exclude_id=user.id)

        user.name = normalized
        saved = self.user_repository.save(user)
        logger.info(f"📝 Profile updated for: {saved.email}")
        return saved

    def update_last_login(self, user: User) -> User:
        """Met à jour la date de dernière connexion"""
        user.update_last_login()
        return self.user_repository.save(user)
