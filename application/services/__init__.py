"""
Services applicatifs
"""

from application.services.user_service import UserService
from application.services.auth_service import AuthService
from application.services.sequence_allocator import SequenceAllocator
from application.services.dao_service import DaoService
from application.services.dao_workflow_service import DaoWorkflowService
from application.services.notification_service import NotificationService
from application.services.dao_notifier import DaoNotifier
from application.services.comment_service import CommentService

__all__ = [
    "UserService",
    "AuthService",
    "SequenceAllocator",
    "DaoService",
    "DaoWorkflowService",
    "NotificationService",
    "DaoNotifier",
    "CommentService"
]
