"""Tests unitaires pour CommentService."""

import pytest

from application.services import CommentService, DaoNotifier, NotificationService
from domain.entities.user import User, UserRole
from domain.exceptions import ForbiddenError, NotFoundError

ADMIN = User(id="admin", name="Admin", email="admin@example.com", role=UserRole.ADMIN)
ALICE = User(id="alice", name="Alice Martin", email="alice@example.com", role=UserRole.USER)
BOB = User(id="bob", name="Bob Leroy", email="bob@example.com", role=UserRole.USER)


@pytest.fixture
def notifications():
    return NotificationService()


@pytest.fixture
def service(notifications):
    return CommentService(DaoNotifier(notifications))


def test_comments_are_filtered_by_dao_and_task(service):
    first = service.add_comment(ALICE, "dao-1", 1, "Premier")
    second = service.add_comment(BOB, "dao-1", 2, "Second")
    service.add_comment(BOB, "dao-2", 1, "Autre DAO")

    assert {c.id for c in service.get_dao_comments("dao-1")} == {first.id, second.id}
    assert [c.content for c in service.get_task_comments("dao-1", 2)] == ["Second"]
    assert len(service.get_recent(limit=2)) == 2


def test_only_author_can_edit(service, notifications):
    comment = service.add_comment(ALICE, "dao-1", 1, "Brouillon")

    assert service.update_comment(ALICE, comment.id, "  Final  ").content == "Final"

    with pytest.raises(ForbiddenError) as exc_info:
        service.update_comment(ADMIN, comment.id, "Admin")
    assert exc_info.value.code == "NOT_COMMENT_AUTHOR"

    types = [n.type.value for n, _ in notifications.list_for_user("bob")]
    assert types == ["comment_updated", "comment_added"]


def test_author_or_admin_can_delete(service):
    mine = service.add_comment(ALICE, "dao-1", 1, "A")
    other = service.add_comment(ALICE, "dao-1", 1, "B")

    with pytest.raises(ForbiddenError):
        service.delete_comment(BOB, mine.id)

    service.delete_comment(ALICE, mine.id)
    service.delete_comment(ADMIN, other.id)

    assert service.get_dao_comments("dao-1") == []
    with pytest.raises(NotFoundError) as exc_info:
        service.delete_comment(ADMIN, other.id)
    assert exc_info.value.code == "COMMENT_NOT_FOUND"
