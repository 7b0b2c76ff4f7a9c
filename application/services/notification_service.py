"""
NotificationService - Fil de notifications en mémoire, borné
"""

import logging
import uuid
from collections import deque
from datetime import datetime, timezone
from typing import Any, Deque, Dict, Iterable, List, Optional, Tuple

from domain.entities.notification import ALL_RECIPIENTS, Notification, NotificationType

logger = logging.getLogger(__name__)


class NotificationService:
    """
    Enregistre les événements métier et restitue à chaque utilisateur ceux qui le concernent.

    L'état de lecture est un ensemble d'IDs utilisateurs porté par la notification
    partagée. Au-delà de `retention` éléments, les plus anciens sont supprimés.
    """

    def __init__(self, retention: int = 500):
        self.retention = retention
        self._notifications: Deque[Notification] = deque(maxlen=retention)

    def _add(
        self,
        type: NotificationType,
        title: str,
        message: str,
        recipients,
        data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        notification = Notification(
            id=str(uuid.uuid4()),
            type=type,
            title=title,
            message=message,
            recipients=recipients,
            created_at=datetime.now(timezone.utc),
            data=data,
        )
        self._notifications.append(notification)
        logger.debug(f"🔔 {notification.type.value}: {title}")
        return notification

    def broadcast(
        self,
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Notification:
        """Crée une notification visible par tous les utilisateurs"""
        return self._add(type, title, message, ALL_RECIPIENTS, data)

    def notify(
        self,
        user_ids: Iterable[str],
        type: NotificationType,
        title: str,
        message: str,
        data: Optional[Dict[str, Any]] = None
    ) -> Optional[Notification]:
        """Crée une notification visible uniquement par les destinataires listés"""
        recipients = list(dict.fromkeys(user_ids))
        if not recipients:
            return None
        return self._add(type, title, message, recipients, data)

    def list_for_user(self, user_id: str) -> List[Tuple[Notification, bool]]:
        """Notifications visibles par l'utilisateur, plus récentes d'abord, avec leur état lu"""
        return [
            (notification, notification.is_read_by(user_id))
            for notification in reversed(self._notifications)
            if notification.is_visible_to(user_id)
        ]

    def unread_count(self, user_id: str) -> int:
        return sum(1 for _, read in self.list_for_user(user_id) if not read)

    def mark_read(self, user_id: str, notification_id: str) -> bool:
        for notification in self._notifications:
            if notification.id == notification_id and notification.is_visible_to(user_id):
                notification.read_by.add(user_id)
                return True
        return False

    def mark_all_read(self, user_id: str) -> int:
        """Marque tout comme lu; retourne le nombre de notifications concernées"""
        count = 0
        for notification in self._notifications:
            if notification.is_visible_to(user_id) and not notification.is_read_by(user_id):
                notification.read_by.add(user_id)
                count += 1
        return count

    def clear_all(self) -> None:
        self._notifications.clear()
        logger.info("🧹 Notifications cleared")

    def __len__(self) -> int:
        return len(self._notifications)
