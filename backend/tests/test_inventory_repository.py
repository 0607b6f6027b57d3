"""Tests for the inventory item repository.

Covers status derivation on every write path, input validation, the
non-negative stock guard, lost-update protection under concurrent
adjustments, filtering/pagination and audit retention on delete.
"""

import logging
import threading
from datetime import date, timedelta

import pytest
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.orm import sessionmaker

from medstock.core.config import settings
from medstock.core.exceptions import (
    InvalidOperationError,
    NotFoundError,
    StorageError,
    ValidationError,
)
from medstock.db.base import Base
from medstock.db.session import configure_sqlite
from medstock.models.audit_log import ActivityType, AuditLog
from medstock.models.inventory_item import InventoryItem, ItemStatus
from medstock.models.reference import Category, Department
from medstock.services.audit_service import AuditLogRecorder
from medstock.services.inventory_repository import InventoryItemRepository, parse_expiration_date

AS_OF = date(2026, 3, 1)


@pytest.fixture
def repo(db_session):
    return InventoryItemRepository(db_session)


@pytest.fixture
def item_data(department, category):
    return {
        "item_id": "PPE-001",
        "name": "N95 Masks",
        "description": "N95 respirator masks",
        "department_id": department.id,
        "category_id": category.id,
        "current_stock": 25,
        "unit": "units",
        "threshold": 50,
    }


def _is_versioned_stock_update(statement: str) -> bool:
    return statement.startswith("UPDATE inventory_items") and "inventory_items.version = ?" in statement


@pytest.fixture
def file_engine(tmp_path):
    """File-backed SQLite engine, so each session gets its own connection."""
    engine = create_engine(
        f"sqlite:///{tmp_path / 'inventory.db'}",
        connect_args={"check_same_thread": False},
    )
    configure_sqlite(engine)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


class TestParseExpirationDate:
    def test_empty_values_mean_no_expiration(self):
        assert parse_expiration_date(None) is None
        assert parse_expiration_date("") is None

    def test_iso_date_and_datetime(self):
        assert parse_expiration_date("2026-05-01") == date(2026, 5, 1)
        assert parse_expiration_date("2026-05-01T10:30:00Z") == date(2026, 5, 1)

    def test_garbage_rejected(self):
        with pytest.raises(ValidationError):
            parse_expiration_date("next tuesday")


class TestCreate:
    def test_status_is_derived(self, repo, db_session, item_data):
        item = repo.create(item_data)
        db_session.commit()
        assert item.id is not None
        assert item.status == ItemStatus.LOW_STOCK
        assert item.created_at is not None
        assert item.updated_at is not None

    def test_caller_status_is_ignored(self, repo, item_data):
        item = repo.create({**item_data, "current_stock": 0, "status": "in_stock"})
        assert item.status == ItemStatus.OUT_OF_STOCK

    def test_stock_defaults_to_zero(self, repo, item_data):
        data = dict(item_data)
        del data["current_stock"]
        item = repo.create(data)
        assert item.current_stock == 0
        assert item.status == ItemStatus.OUT_OF_STOCK

    def test_duplicate_item_id_rejected(self, repo, db_session, item_data):
        repo.create(item_data)
        db_session.commit()
        with pytest.raises(ValidationError, match="PPE-001"):
            repo.create({**item_data, "name": "Other masks"})

    def test_duplicate_item_id_taken_after_check(self, repo, db_session, item_data, monkeypatch):
        """A code inserted between the uniqueness check and the flush is still a validation error."""
        repo.create(item_data)
        db_session.commit()
        monkeypatch.setattr(InventoryItemRepository, "_check_item_id_unique", lambda self, *args, **kwargs: None)

        with pytest.raises(ValidationError) as exc_info:
            repo.create({**item_data, "name": "Other masks"})

        assert exc_info.value.message == "Item ID 'PPE-001' already exists"
        assert db_session.scalar(select(func.count(InventoryItem.id))) == 1

    @pytest.mark.parametrize("threshold", [0, -5])
    def test_threshold_must_be_positive(self, repo, item_data, threshold):
        with pytest.raises(ValidationError):
            repo.create({**item_data, "threshold": threshold})

    def test_negative_stock_rejected(self, repo, item_data):
        with pytest.raises(ValidationError):
            repo.create({**item_data, "current_stock": -1})

    def test_missing_required_field(self, repo, item_data):
        data = dict(item_data)
        del data["name"]
        with pytest.raises(ValidationError, match="name"):
            repo.create(data)

    def test_unknown_department(self, repo, item_data):
        with pytest.raises(NotFoundError, match="Department"):
            repo.create({**item_data, "department_id": 9999})

    def test_expiration_string_parsed(self, repo, item_data):
        item = repo.create({**item_data, "expiration_date": "2026-04-15T00:00:00Z"})
        assert item.expiration_date == date(2026, 4, 15)


class TestUpdate:
    def test_threshold_change_recomputes_status(self, repo, db_session, make_item):
        item = make_item(current_stock=25, threshold=50)
        assert item.status == ItemStatus.LOW_STOCK

        repo.update(item.id, {"threshold": 10})
        db_session.commit()
        db_session.refresh(item)
        assert item.status == ItemStatus.IN_STOCK

    def test_stock_set_to_zero(self, repo, db_session, make_item):
        item = make_item(current_stock=25, threshold=10)
        repo.update(item.id, {"current_stock": 0})
        db_session.commit()
        db_session.refresh(item)
        assert item.status == ItemStatus.OUT_OF_STOCK

    def test_empty_patch_only_touches_updated_at(self, repo, db_session, make_item):
        item = make_item(current_stock=25, threshold=50, expiration_date=AS_OF)
        fields = (
            "item_id", "name", "description", "department_id", "category_id",
            "current_stock", "unit", "threshold", "status", "expiration_date", "created_at",
        )
        before = {f: getattr(item, f) for f in fields}
        updated_before = item.updated_at

        repo.update(item.id, {})
        db_session.commit()
        db_session.refresh(item)

        assert {f: getattr(item, f) for f in fields} == before
        assert item.updated_at >= updated_before

    def test_clearing_expiration(self, repo, db_session, make_item):
        item = make_item(expiration_date=AS_OF)
        repo.update(item.id, {"expiration_date": None})
        db_session.commit()
        db_session.refresh(item)
        assert item.expiration_date is None

    def test_duplicate_item_id_rejected(self, repo, make_item):
        first = make_item()
        second = make_item()
        with pytest.raises(ValidationError):
            repo.update(second.id, {"item_id": first.item_id})

    def test_rename_to_code_taken_after_check(self, repo, make_item, monkeypatch):
        first = make_item()
        second = make_item()
        monkeypatch.setattr(InventoryItemRepository, "_check_item_id_unique", lambda self, *args, **kwargs: None)

        with pytest.raises(ValidationError, match=f"Item ID '{first.item_id}' already exists"):
            repo.update(second.id, {"item_id": first.item_id})

    def test_missing_item(self, repo):
        assert repo.update(9999, {"name": "Ghost"}) is None


class TestAdjustStock:
    def test_restock_crosses_threshold(self, repo, db_session, make_item):
        item = make_item(current_stock=10, threshold=20)
        assert item.status == ItemStatus.LOW_STOCK

        item = repo.adjust_stock(item.id, 15)
        db_session.commit()
        assert item.current_stock == 25
        assert item.status == ItemStatus.IN_STOCK

    def test_remove_everything(self, repo, db_session, make_item):
        item = make_item(current_stock=10, threshold=20)
        item = repo.adjust_stock(item.id, -10)
        db_session.commit()
        assert item.current_stock == 0
        assert item.status == ItemStatus.OUT_OF_STOCK

    def test_over_removal_rejected_and_row_untouched(self, repo, db_session, make_item):
        item = make_item(current_stock=5, threshold=10)
        with pytest.raises(InvalidOperationError, match="below zero"):
            repo.adjust_stock(item.id, -6)
        db_session.rollback()

        stored = db_session.get(InventoryItem, item.id)
        assert stored.current_stock == 5
        assert stored.status == ItemStatus.LOW_STOCK

    def test_zero_delta_is_a_no_op(self, repo, db_session, make_item):
        item = make_item(current_stock=5, threshold=10)
        version = item.version
        result = repo.adjust_stock(item.id, 0)
        assert result.current_stock == 5
        assert result.version == version

    def test_version_increments(self, repo, db_session, make_item):
        item = make_item(current_stock=5, threshold=10)
        version = item.version
        item = repo.adjust_stock(item.id, 1)
        assert item.version == version + 1

    def test_non_integer_quantity(self, repo, make_item):
        item = make_item()
        with pytest.raises(ValidationError):
            repo.adjust_stock(item.id, True)
        with pytest.raises(ValidationError):
            repo.adjust_stock(item.id, 1.5)

    def test_missing_item(self, repo):
        assert repo.adjust_stock(9999, 5) is None

    def test_sequential_adjustments_are_all_applied(self, repo, db_session, make_item):
        item = make_item(current_stock=0, threshold=10)
        for _ in range(20):
            repo.adjust_stock(item.id, 1)
        db_session.commit()
        db_session.refresh(item)
        assert item.current_stock == 20
        assert item.status == ItemStatus.IN_STOCK


class TestConcurrentAdjustments:
    def test_lost_race_is_retried_on_fresh_row(self, repo, db_session, db_engine, make_item, caplog):
        """Another writer commits between our read and our versioned UPDATE."""
        item = make_item(current_stock=3, threshold=10)
        item_id, version = item.id, item.version
        fired = []

        def competing_restock(conn, cursor, statement, parameters, context, executemany):
            if fired or not _is_versioned_stock_update(statement):
                return
            fired.append(statement)
            cursor.execute(
                "UPDATE inventory_items SET version = version + 1, current_stock = current_stock + 100 "
                "WHERE id = ?",
                (item_id,),
            )

        event.listen(db_engine, "before_cursor_execute", competing_restock)
        try:
            with caplog.at_level(logging.INFO, logger="medstock.services.inventory_repository"):
                result = repo.adjust_stock(item_id, 5)
            db_session.commit()
        finally:
            event.remove(db_engine, "before_cursor_execute", competing_restock)

        assert len(fired) == 1
        assert "Concurrent modification of inventory item" in caplog.text
        assert result.current_stock == 108
        assert result.status == ItemStatus.IN_STOCK
        assert result.version == version + 2

    def test_gives_up_after_max_retries(self, repo, db_session, db_engine, make_item, monkeypatch):
        item = make_item(current_stock=3, threshold=10)
        item_id = item.id
        monkeypatch.setattr(settings, "stock_adjust_max_retries", 3)
        attempts = []

        def always_bump(conn, cursor, statement, parameters, context, executemany):
            if _is_versioned_stock_update(statement):
                attempts.append(statement)
                cursor.execute("UPDATE inventory_items SET version = version + 1 WHERE id = ?", (item_id,))

        event.listen(db_engine, "before_cursor_execute", always_bump)
        try:
            with pytest.raises(StorageError, match="after 3 attempts"):
                repo.adjust_stock(item_id, 5)
        finally:
            event.remove(db_engine, "before_cursor_execute", always_bump)
        db_session.rollback()

        assert len(attempts) == 3
        assert db_session.get(InventoryItem, item_id).current_stock == 3

    def test_parallel_adjustments_lose_no_updates(self, file_engine):
        SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=file_engine)
        with SessionLocal() as session:
            department = Department(name="Emergency")
            category = Category(name="PPE")
            session.add_all([department, category])
            session.flush()
            item = InventoryItemRepository(session).create({
                "item_id": "PPE-001",
                "name": "N95 Masks",
                "department_id": department.id,
                "category_id": category.id,
                "current_stock": 0,
                "unit": "boxes",
                "threshold": 50,
            })
            session.commit()
            item_id, version = item.id, item.version

        workers, adjustments = 4, 30
        barrier = threading.Barrier(workers)
        errors = []

        def restock():
            with SessionLocal() as session:
                worker_repo = InventoryItemRepository(session)
                barrier.wait()
                for _ in range(adjustments):
                    try:
                        worker_repo.adjust_stock(item_id, 1)
                        session.commit()
                    except Exception as e:
                        session.rollback()
                        errors.append(e)

        threads = [threading.Thread(target=restock) for _ in range(workers)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=60)

        assert errors == []
        with SessionLocal() as session:
            stored = session.get(InventoryItem, item_id)
            assert stored.current_stock == workers * adjustments
            assert stored.version == version + workers * adjustments
            assert stored.status == ItemStatus.IN_STOCK


class TestList:
    def test_filters_and_total(self, repo, make_item):
        make_item(current_stock=0, threshold=10)
        make_item(current_stock=5, threshold=10)
        make_item(current_stock=50, threshold=10)

        items, total = repo.list(status=ItemStatus.LOW_STOCK)
        assert total == 1
        assert items[0].current_stock == 5

        items, total = repo.list()
        assert total == 3

    def test_pagination(self, repo, make_item):
        for _ in range(5):
            make_item()
        items, total = repo.list(page=2, page_size=2)
        assert total == 5
        assert len(items) == 2
        items, total = repo.list(page=3, page_size=2)
        assert len(items) == 1

    def test_search_name_and_code_case_insensitive(self, repo, make_item):
        make_item(name="N95 Masks", item_id="PPE-001")
        make_item(name="IV Saline Solution", item_id="MED-023")

        items, total = repo.list(search="n95")
        assert total == 1 and items[0].item_id == "PPE-001"
        items, total = repo.list(search="med-0")
        assert total == 1 and items[0].name == "IV Saline Solution"

    def test_search_wildcards_are_literal(self, repo, make_item):
        make_item(name="N95 Masks")
        items, total = repo.list(search="%")
        assert total == 0

    def test_department_filter(self, repo, db_session, make_item, department):
        from medstock.models.reference import Department

        other = Department(name="Surgery")
        db_session.add(other)
        db_session.commit()
        make_item()
        make_item(department_id=other.id)

        items, total = repo.list(department_id=other.id)
        assert total == 1

    def test_expiring_filter(self, repo, make_item):
        make_item(expiration_date=AS_OF)  # expired
        make_item(expiration_date=AS_OF + timedelta(days=3))  # critical
        make_item(expiration_date=AS_OF + timedelta(days=20))  # soon
        make_item(expiration_date=AS_OF + timedelta(days=90))  # normal
        make_item()  # no expiration

        items, total = repo.list(expiring=True, as_of=AS_OF)
        assert total == 2

    def test_expiring_items_ordered_soonest_first(self, repo, make_item):
        later = make_item(expiration_date=AS_OF + timedelta(days=20))
        sooner = make_item(expiration_date=AS_OF + timedelta(days=2))

        assert [i.id for i in repo.expiring_items(as_of=AS_OF)] == [sooner.id, later.id]
        assert [i.id for i in repo.expiring_items(critical_only=True, as_of=AS_OF)] == [sooner.id]


class TestDelete:
    def test_audit_history_survives_delete(self, repo, db_session, make_item, staff_user):
        item = make_item()
        AuditLogRecorder(db_session).append(
            user_id=staff_user.id,
            activity_type=ActivityType.CREATED,
            details=f"Created new item: {item.name}",
            item_id=item.id,
            item_code=item.item_id,
        )
        db_session.commit()
        code = item.item_id

        assert repo.delete(item.id) is True
        db_session.commit()

        logs = db_session.scalars(select(AuditLog)).all()
        assert len(logs) == 1
        assert logs[0].item_id is None
        assert logs[0].item_code == code
        assert db_session.get(InventoryItem, item.id) is None

    def test_missing_item(self, repo):
        assert repo.delete(9999) is False
