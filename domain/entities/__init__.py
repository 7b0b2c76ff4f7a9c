"""
Entités du domaine
"""

from domain.entities.user import User, UserRole
from domain.entities.dao import Dao, DaoTask, TeamMember, TeamRole, DaoStatus
from domain.entities.notification import Notification, NotificationType
from domain.entities.comment import TaskComment

__all__ = [
    "User",
    "UserRole",
    "Dao",
    "DaoTask",
    "TeamMember",
    "TeamRole",
    "DaoStatus",
    "Notification",
    "NotificationType",
    "TaskComment"
]
