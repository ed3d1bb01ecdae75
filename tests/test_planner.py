"""
Tests for the Replenishment Planner
Pure threshold and urgency rules plus the low-stock report
"""
import pytest
from sqlalchemy.orm import Session

from stockflow.models import Item
from stockflow.services import planner
from stockflow.services.planner import LocationSnapshot, Urgency


def snapshot(current, min_stock=10, max_stock=100, reorder_point=0, **extra) -> LocationSnapshot:
    values = dict(
        location_id=1,
        item_id=1,
        warehouse_id=1,
        current_stock=current,
        min_stock=min_stock,
        max_stock=max_stock,
        reorder_point=reorder_point,
    )
    values.update(extra)
    return LocationSnapshot(**values)


class TestThresholds:
    """Test suite for effective minimum and urgency"""

    def test_effective_minimum_takes_higher_threshold(self):
        assert planner.effective_minimum(10, 4) == 10
        assert planner.effective_minimum(5, 12) == 12
        assert planner.effective_minimum(None, None) == 0

    def test_reorder_point_not_added_to_minimum(self):
        """Test reorder point already includes safety stock"""
        assert planner.effective_minimum(10, 10) == 10

    @pytest.mark.parametrize("current,expected", [
        (0, Urgency.URGENT),
        (1, Urgency.HIGH),
        (5, Urgency.HIGH),
        (6, Urgency.MEDIUM),
        (10, Urgency.MEDIUM),
        (11, Urgency.LOW),
    ])
    def test_classify_urgency_boundaries(self, current, expected):
        assert planner.classify_urgency(current, 10) == expected

    def test_zero_minimum_with_stock_is_low_urgency(self):
        assert planner.classify_urgency(3, 0) == Urgency.LOW
        assert planner.classify_urgency(0, 0) == Urgency.URGENT

    def test_is_low_includes_minimum(self):
        assert planner.is_low(10, 10)
        assert not planner.is_low(11, 10)

    def test_suggested_quantity_fills_to_max(self):
        assert planner.suggested_quantity(5, 10, 100, 10) == 95

    def test_suggested_quantity_uses_effective_minimum_when_above_max(self):
        assert planner.suggested_quantity(5, 10, 20, 40) == 35

    def test_suggested_quantity_at_least_one(self):
        assert planner.suggested_quantity(120, 10, 100, 0) == 1


class TestEvaluation:
    """Test suite for snapshot evaluation"""

    def test_evaluate_snapshot(self):
        signal = planner.evaluate_snapshot(snapshot(5, min_stock=10, reorder_point=10))

        assert signal.effective_minimum == 10
        assert signal.urgency == Urgency.HIGH
        assert signal.is_low
        assert signal.suggested_quantity == 95

    def test_low_stock_signals_sorted_by_urgency_then_stock(self):
        snapshots = [
            snapshot(9, location_id=1),
            snapshot(0, location_id=2),
            snapshot(50, location_id=3),
            snapshot(4, location_id=4),
            snapshot(2, location_id=5),
        ]

        signals = planner.low_stock_signals(snapshots)

        assert [s.snapshot.location_id for s in signals] == [2, 5, 4, 1]

    def test_summarize_counts(self):
        snapshots = [
            snapshot(0, warehouse_code="WH01"),
            snapshot(3, warehouse_code="WH01"),
            snapshot(8, warehouse_code="WH02"),
            snapshot(40, warehouse_code="WH02"),
        ]

        summary = planner.summarize(planner.evaluate(snapshots))

        assert summary["total_locations"] == 4
        assert summary["low_stock"] == 3
        assert summary["by_urgency"] == {"urgent": 1, "high": 1, "medium": 1, "low": 0}
        assert summary["by_warehouse"] == {"WH01": 2, "WH02": 1}


class TestLowStockReport:
    """Test suite for the database-backed report"""

    def test_report_reads_active_locations(self, db_session: Session, catalog, make_location):
        make_location(catalog.item_id, catalog.main_id, 4)
        make_location(catalog.item_id, catalog.branch_id, 60)

        report = planner.low_stock_report(db_session)

        assert report["summary"]["total_locations"] == 2
        assert report["summary"]["low_stock"] == 1
        (entry,) = report["items"]
        assert entry["sku"] == "BOLT-M8"
        assert entry["warehouse_code"] == "WH01"
        assert entry["urgency"] == "high"
        assert entry["suggested_quantity"] == 96

    def test_inactive_item_ignored(self, db_session: Session, catalog, make_location):
        make_location(catalog.item_id, catalog.main_id, 0)
        item = db_session.get(Item, catalog.item_id)
        item.is_active = False
        db_session.commit()

        assert planner.load_snapshots(db_session) == []
