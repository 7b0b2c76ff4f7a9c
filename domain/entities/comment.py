"""
Entité TaskComment - Commentaire sur une tâche d'un DAO
"""

from datetime import datetime
from dataclasses import dataclass


@dataclass
class TaskComment:
    id: str
    dao_id: str
    task_id: int
    user_id: str
    user_name: str
    content: str
    created_at: datetime

    def __post_init__(self):
        if not self.content or not self.content.strip():
            raise ValueError("Comment content cannot be empty")

    def is_authored_by(self, user_id: str) -> bool:
        return self.user_id == user_id
