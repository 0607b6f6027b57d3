"""Tests for the dashboard/alert aggregator."""

from datetime import timedelta

from sqlalchemy import update

from medstock.db.base import utcnow
from medstock.models.inventory_item import InventoryItem, ItemStatus
from medstock.services.dashboard_service import DashboardService
from medstock.services.expiration import today


def _seed_mix(make_item):
    now = today()
    return {
        "empty": make_item(current_stock=0, threshold=10),
        "low": make_item(current_stock=5, threshold=10),
        "critical": make_item(current_stock=50, threshold=10, expiration_date=now + timedelta(days=5)),
        "soon": make_item(current_stock=50, threshold=10, expiration_date=now + timedelta(days=20)),
        "far": make_item(current_stock=50, threshold=10, expiration_date=now + timedelta(days=40)),
        "expired": make_item(current_stock=3, threshold=10, expiration_date=now - timedelta(days=1)),
    }


class TestStats:
    def test_counts(self, db_session, make_item):
        _seed_mix(make_item)
        stats = DashboardService(db_session).stats()

        assert stats == {
            "total_items": 6,
            "low_stock_count": 2,
            "recently_added": 6,
            "out_of_stock": 1,
            "expiring_soon": 2,
        }

    def test_recently_added_window(self, db_session, make_item):
        items = _seed_mix(make_item)
        db_session.execute(
            update(InventoryItem)
            .where(InventoryItem.id == items["far"].id)
            .values(created_at=utcnow() - timedelta(days=45))
        )
        db_session.commit()

        assert DashboardService(db_session).stats()["recently_added"] == 5

    def test_empty_inventory(self, db_session):
        stats = DashboardService(db_session).stats()
        assert set(stats.values()) == {0}


class TestLists:
    def test_low_stock_excludes_out_of_stock(self, db_session, make_item):
        items = _seed_mix(make_item)
        low, total = DashboardService(db_session).low_stock_items()
        assert total == 2
        assert {i.id for i in low} == {items["low"].id, items["expired"].id}
        assert all(i.status == ItemStatus.LOW_STOCK for i in low)

    def test_out_of_stock(self, db_session, make_item):
        items = _seed_mix(make_item)
        out, total = DashboardService(db_session).out_of_stock_items()
        assert total == 1
        assert out[0].id == items["empty"].id

    def test_stock_alerts_emptiest_first(self, db_session, make_item):
        items = _seed_mix(make_item)
        alerts = DashboardService(db_session).stock_alert_items()
        assert [i.id for i in alerts] == [items["empty"].id, items["expired"].id, items["low"].id]

    def test_expiration_lists(self, db_session, make_item):
        items = _seed_mix(make_item)
        service = DashboardService(db_session)

        assert [i.id for i in service.soon_to_expire_items()] == [items["critical"].id, items["soon"].id]
        assert [i.id for i in service.critical_expiration_items()] == [items["critical"].id]

    def test_expiring_today_is_not_critical(self, db_session, make_item):
        make_item(expiration_date=today())
        service = DashboardService(db_session)
        assert service.critical_expiration_items() == []
        assert service.stats()["expiring_soon"] == 0
