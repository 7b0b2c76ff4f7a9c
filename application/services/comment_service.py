"""
CommentService - Commentaires des tâches, conservés en mémoire
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import List, Optional

from application.services.dao_notifier import DaoNotifier
from domain.entities.comment import TaskComment
from domain.entities.notification import NotificationType
from domain.entities.user import User
from domain.exceptions import ForbiddenError, NotFoundError

logger = logging.getLogger(__name__)


class CommentService:
    """Service pour la gestion des commentaires de tâches"""

    def __init__(self, notifier: DaoNotifier):
        self.notifier = notifier
        self._comments: List[TaskComment] = []

    @staticmethod
    def _newest_first(comments: List[TaskComment]) -> List[TaskComment]:
        return sorted(comments, key=lambda c: c.created_at, reverse=True)

    def get_dao_comments(self, dao_id: str) -> List[TaskComment]:
        return self._newest_first([c for c in self._comments if c.dao_id == dao_id])

    def get_task_comments(self, dao_id: str, task_id: int) -> List[TaskComment]:
        return self._newest_first([c for c in self._comments if c.dao_id == dao_id and c.task_id == task_id])

    def get_recent(self, limit: int = 10) -> List[TaskComment]:
        return self._newest_first(self._comments)[:limit]

    def get_by_id(self, comment_id: str) -> Optional[TaskComment]:
        return next((c for c in self._comments if c.id == comment_id), None)

    def add_comment(self, user: User, dao_id: str, task_id: int, content: str) -> TaskComment:
        """Ajoute un commentaire au nom de l'utilisateur courant"""
        comment = TaskComment(
            id=str(uuid.uuid4()),
            dao_id=dao_id,
            task_id=task_id,
            user_id=user.id,
            user_name=user.name,
            content=content.strip(),
            created_at=datetime.now(timezone.utc),
        )
        self._comments.append(comment)
        logger.info(f"💬 New comment on DAO {dao_id} task {task_id} by {user.name}")

        self.notifier.comment_event(
            NotificationType.COMMENT_ADDED,
            "Nouveau commentaire",
            f"{user.name} a commenté la tâche #{task_id}",
            dao_id,
            task_id,
        )
        return comment

    def update_comment(self, user: User, comment_id: str, content: str) -> TaskComment:
        """Seul l'auteur peut modifier son commentaire"""
        comment = self.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found", code="COMMENT_NOT_FOUND")
        if not comment.is_authored_by(user.id):
            raise ForbiddenError("Can only update your own comments", code="NOT_COMMENT_AUTHOR")

        comment.content = content.strip()
        logger.info(f"✏️ Comment updated: {comment_id}")

        self.notifier.comment_event(
            NotificationType.COMMENT_UPDATED,
            "Commentaire modifié",
            f"{comment.user_name} a modifié un commentaire sur la tâche #{comment.task_id}",
            comment.dao_id,
            comment.task_id,
            comment.id,
        )
        return comment

    def delete_comment(self, user: User, comment_id: str) -> None:
        """L'auteur ou un administrateur peut supprimer un commentaire"""
        comment = self.get_by_id(comment_id)
        if comment is None:
            raise NotFoundError("Comment not found", code="COMMENT_NOT_FOUND")
        if not (user.is_admin or comment.is_authored_by(user.id)):
            raise ForbiddenError("Can only delete your own comments", code="NOT_COMMENT_AUTHOR")

        self._comments.remove(comment)
        logger.info(f"🗑️ Comment deleted: {comment_id}")

        self.notifier.comment_event(
            NotificationType.COMMENT_DELETED,
            "Commentaire supprimé",
            f"{user.name} a supprimé un commentaire de {comment.user_name} sur la tâche #{comment.task_id}",
            comment.dao_id,
            comment.task_id,
            comment.id,
        )

    def clear_all(self) -> None:
        self._comments.clear()
