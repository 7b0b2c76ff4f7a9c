"""Tests unitaires pour le fil de notifications et le cache d'idempotence."""

from application.services.notification_service import NotificationService
from domain.entities.notification import NotificationType
from infrastructure.cache.idempotency_cache import IdempotencyCache


def test_private_notifications_are_only_visible_to_recipients():
    service = NotificationService()
    service.broadcast(NotificationType.DAO_CREATED, "Nouveau DAO", "DAO-2025-001")
    service.notify(["alice"], NotificationType.SYSTEM, "Connexion", "Bienvenue")

    assert [n.title for n, _ in service.list_for_user("alice")] == ["Connexion", "Nouveau DAO"]
    assert [n.title for n, _ in service.list_for_user("bob")] == ["Nouveau DAO"]


def test_notify_without_recipients_creates_nothing():
    service = NotificationService()

    assert service.notify([], NotificationType.SYSTEM, "Vide", "rien") is None
    assert len(service) == 0


def test_read_state_is_tracked_per_user():
    service = NotificationService()
    first = service.broadcast(NotificationType.DAO_CREATED, "A", "a")
    service.broadcast(NotificationType.DAO_UPDATED, "B", "b")

    assert service.mark_read("alice", first.id)
    assert not service.mark_read("alice", "unknown")

    assert service.unread_count("alice") == 1
    assert service.unread_count("bob") == 2

    assert service.mark_all_read("bob") == 2
    assert service.unread_count("bob") == 0
    assert service.mark_all_read("bob") == 0


def test_private_notification_cannot_be_marked_by_someone_else():
    service = NotificationService()
    private = service.notify(["alice"], NotificationType.SYSTEM, "Connexion", "ok")

    assert not service.mark_read("bob", private.id)
    assert service.mark_all_read("bob") == 0


def test_feed_is_capped_and_drops_oldest():
    service = NotificationService(retention=3)
    for index in range(5):
        service.broadcast(NotificationType.DAO_UPDATED, f"N{index}", "m")

    assert len(service) == 3
    assert [n.title for n, _ in service.list_for_user("alice")] == ["N4", "N3", "N2"]


def test_idempotency_cache_expires_entries():
    now = [100.0]
    cache = IdempotencyCache(default_ttl=30, clock=lambda: now[0])
    key = cache.scoped_key("dao:create", "abc")

    cache.set(key, {"id": "1"}, ttl=15)
    assert cache.get(key) == {"id": "1"}

    now[0] += 16
    assert cache.get(key) is None
    assert len(cache) == 0


def test_idempotency_cache_ignores_missing_keys():
    cache = IdempotencyCache()

    assert cache.scoped_key("dao:create", None) is None
    cache.set(None, {"id": "1"})
    assert cache.get(None) is None
    assert len(cache) == 0
