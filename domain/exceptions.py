"""
Exceptions du domaine - chaque erreur porte son statut HTTP et un code machine
"""

from typing import Dict, List, Optional


class DaoTrackerError(Exception):
    """Erreur de base de l'application"""

    http_status = 500
    default_code = "INTERNAL_ERROR"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code


class ValidationError(DaoTrackerError):
    """Entrée malformée ou hors bornes"""

    http_status = 400
    default_code = "VALIDATION_ERROR"

    def __init__(
        self,
        message: str = "Validation error",
        details: Optional[List[Dict[str, str]]] = None,
        code: Optional[str] = None,
    ):
        super().__init__(message, code)
        self.details = details or []


class AuthError(DaoTrackerError):
    """Token absent, invalide ou expiré"""

    http_status = 401
    default_code = "INVALID_TOKEN"


class ForbiddenError(DaoTrackerError):
    """Rôle ou statut de chef d'équipe insuffisant"""

    http_status = 403
    default_code = "INSUFFICIENT_PERMISSIONS"


class NotFoundError(DaoTrackerError):
    http_status = 404
    default_code = "NOT_FOUND"


class ConflictError(DaoTrackerError):
    """Champ unique déjà utilisé (numéro de DAO, email)"""

    http_status = 409
    default_code = "CONFLICT"


class DuplicateKeyError(ConflictError):
    """Violation de contrainte d'unicité au niveau du stockage"""

    default_code = "DUPLICATE_NUMBER"


class StorageError(DaoTrackerError):
    """Erreur de la base de données sous-jacente"""

    http_status = 500
    default_code = "STORAGE_ERROR"
