"""
dao-tracker-api/config.py
Configuration de l'application (variables d'environnement préfixées DAO_ ou fichier .env)
"""

from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Config(BaseSettings):
    """Configuration centrale de l'API"""

    model_config = SettingsConfigDict(
        env_prefix="DAO_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    environment: str = "development"

    # Base de données (vide = stockage en mémoire)
    database_url: Optional[str] = None
    database_connect_timeout: float = 0.8

    # JWT
    jwt_secret_key: str = "dev-only-secret-key-change-me-in-production-0123456789"
    jwt_algorithm: str = "HS256"
    jwt_expire_minutes: int = 60 * 24
    jwt_issuer: str = "dao-management"
    jwt_audience: str = "dao-app"

    # Utilisateurs
    password_hash_rounds: int = 12
    admin_email: Optional[str] = None
    admin_password: Optional[str] = None
    admin_name: str = "Administrator"
    seed_users: bool = False
    allow_self_register: bool = False
    default_user_password: str = "changeme123"
    password_reset_ttl_minutes: int = 15

    # Comportement métier
    dao_idempotency_ttl_seconds: float = 15.0
    idempotency_ttl_seconds: float = 30.0
    notification_retention: int = 500
    default_page_size: int = 20
    max_page_size: int = 100
    create_max_attempts: int = 3

    # HTTP
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:8080"]

    # Logging
    log_level: str = "INFO"
    log_colored: bool = False
    log_file_enabled: bool = False
    log_file_path: str = "logs/dao-tracker.log"

    @property
    def is_production(self) -> bool:
        return self.environment.lower() == "production"
