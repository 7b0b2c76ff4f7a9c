"""
Entité Notification - Événement du fil de notifications
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Set, Union
from dataclasses import dataclass, field
from enum import Enum

ALL_RECIPIENTS = "all"


class NotificationType(str, Enum):
    """Types d'événements métier (liste fermée)"""
    ROLE_UPDATE = "role_update"
    COMMENT_ADDED = "comment_added"
    COMMENT_UPDATED = "comment_updated"
    COMMENT_DELETED = "comment_deleted"
    TASK_CREATED = "task_created"
    TASK_DELETED = "task_deleted"
    TASK_UPDATED = "task_updated"
    TASK_ASSIGNED = "task_assigned"
    TASK_UNASSIGNED = "task_unassigned"
    TASK_REORDERED = "task_reordered"
    DAO_CREATED = "dao_created"
    DAO_UPDATED = "dao_updated"
    DAO_DELETED = "dao_deleted"
    USER_CREATED = "user_created"
    SYSTEM = "system"


@dataclass
class Notification:
    """Notification partagée; l'état de lecture est porté par read_by"""
    id: str
    type: NotificationType
    title: str
    message: str
    recipients: Union[str, List[str]]
    created_at: datetime
    data: Optional[Dict[str, Any]] = None
    read_by: Set[str] = field(default_factory=set)

    def __post_init__(self):
        if isinstance(self.type, str):
            self.type = NotificationType(self.type)
        if isinstance(self.recipients, str) and self.recipients != ALL_RECIPIENTS:
            raise ValueError("recipients must be 'all' or a list of user ids")

    def is_visible_to(self, user_id: str) -> bool:
        if self.recipients == ALL_RECIPIENTS:
            return True
        return user_id in self.recipients

    def is_read_by(self, user_id: str) -> bool:
        return user_id in self.read_by
