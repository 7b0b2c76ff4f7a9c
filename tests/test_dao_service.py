"""Tests unitaires pour DaoService (requêtes de liste, création, statistiques)."""

from datetime import datetime, timedelta, timezone

import pytest

from application.services.dao_service import DaoService
from application.services.sequence_allocator import SequenceAllocator
from domain.entities.dao import Dao, DaoTask
from domain.exceptions import ConflictError, DuplicateKeyError, ValidationError
from infrastructure.memory import InMemoryDaoRepository

NOW = datetime(2025, 5, 10, 12, 0, tzinfo=timezone.utc)


class FlakyDaoRepository(InMemoryDaoRepository):
    """Repository en mémoire qui simule des collisions de numéro."""

    def __init__(self, collisions: int) -> None:
        super().__init__()
        self.collisions = collisions
        self.attempted_numbers = []

    def add(self, dao: Dao) -> Dao:
        self.attempted_numbers.append(dao.numero_liste)
        if self.collisions > 0:
            self.collisions -= 1
            raise DuplicateKeyError(f"DAO number {dao.numero_liste} already exists")
        return super().add(dao)


def _service(repo=None, **kwargs):
    repo = repo or InMemoryDaoRepository()
    return DaoService(repo, SequenceAllocator(repo), **kwargs)


def _create(service, **overrides):
    values = dict(
        objet_dossier="Travaux",
        reference="REF",
        autorite_contractante="Mairie",
        date_depot="2025-06-01",
        now=NOW,
    )
    values.update(overrides)
    return service.create(**values)


def test_create_uses_default_checklist_and_server_number():
    service = _service()

    dao = _create(service)

    assert dao.numero_liste == "DAO-2025-001"
    assert len(dao.tasks) == 15
    assert dao.created_at == dao.updated_at == NOW


def test_create_forces_progress_to_null_on_non_applicable_tasks():
    service = _service()

    dao = _create(service, tasks=[
        DaoTask(id=1, name="A", progress=40),
        DaoTask(id=2, name="B", progress=70, is_applicable=False),
    ])

    assert dao.find_task(2).progress is None
    assert dao.progress == 40


def test_create_retries_after_a_number_collision():
    repo = FlakyDaoRepository(collisions=1)
    service = _service(repo)

    dao = _create(service)

    assert repo.attempted_numbers == ["DAO-2025-001", "DAO-2025-002"]
    assert dao.numero_liste == "DAO-2025-002"


def test_create_gives_up_with_numbering_conflict():
    repo = FlakyDaoRepository(collisions=10)
    service = _service(repo, create_max_attempts=3)

    with pytest.raises(ConflictError) as exc_info:
        _create(service)

    assert exc_info.value.code == "NUMBERING_CONFLICT"
    assert len(repo.attempted_numbers) == 3
    assert repo.count() == 0


def test_build_query_clamps_pagination_and_maps_sort():
    service = _service(default_page_size=20, max_page_size=100)

    query = service.build_query(page=0, page_size=1000, sort="dateDepot", order="ASC")

    assert query.page == 1
    assert query.page_size == 100
    assert query.sort == "date_depot"
    assert query.descending is False

    default = service.build_query()
    assert default.sort == "updated_at" and default.descending is True
    assert default.page_size == 20


def test_build_query_rejects_unknown_sort_and_order():
    service = _service()

    with pytest.raises(ValidationError) as exc_info:
        service.build_query(sort="password")
    assert exc_info.value.details[0]["field"] == "sort"

    with pytest.raises(ValidationError):
        service.build_query(order="sideways")


def test_build_query_date_only_upper_bound_covers_the_whole_day():
    service = _service()

    query = service.build_query(date_from="2025-06-01", date_to="2025-06-30", search="  ")

    assert query.date_from == datetime(2025, 6, 1, tzinfo=timezone.utc)
    assert query.date_to.date().isoformat() == "2025-06-30"
    assert query.date_to.hour == 23
    assert query.search is None


def test_list_filters_on_inclusive_date_range():
    service = _service()
    _create(service, date_depot="2025-06-30T18:00:00Z")
    _create(service, date_depot="2025-07-01")

    items, total = service.list(service.build_query(date_to="2025-06-30"))

    assert total == 1
    assert items[0].date_depot == "2025-06-30T18:00:00Z"


def test_update_merges_fields_and_refreshes_timestamp():
    service = _service()
    dao = _create(service)
    later = NOW + timedelta(hours=1)

    updated = service.update(dao.id, {"reference": "REF-2", "unknown": "ignored"}, now=later)

    assert updated.reference == "REF-2"
    assert updated.updated_at == later
    assert service.update("missing", {"reference": "x"}) is None


def test_stats_count_active_completed_and_urgent():
    service = _service()
    done = [DaoTask(id=1, name="A", progress=100)]
    half = [DaoTask(id=1, name="A", progress=50)]
    _create(service, tasks=done)
    _create(service, tasks=half, date_depot=(NOW + timedelta(days=1)).isoformat())
    _create(service, tasks=[DaoTask(id=1, name="A", progress=0)], date_depot=(NOW + timedelta(days=30)).isoformat())

    stats = service.stats(now=NOW)

    assert stats == {"total": 3, "active": 2, "completed": 1, "urgent": 1, "globalProgress": 25}


def test_delete_last_created_and_clear_all():
    service = _service()
    _create(service)
    second = _create(service, now=NOW + timedelta(minutes=1))

    assert service.delete_last_created().id == second.id
    assert service.peek_next_number(NOW) == "DAO-2025-002"

    service.clear_all()
    assert service.get_all() == []
    assert service.delete_last_created() is None
