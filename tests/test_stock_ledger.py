"""
Tests for the Stock Ledger Service
Guarded adjustments, location creation and location maintenance
"""
import threading

import pytest
from sqlalchemy.orm import Session

from stockflow.core.exceptions import (
    AccessDeniedError, DuplicateError, InvalidStateError, NegativeStockError,
    NotFoundError, ValidationError
)
from stockflow.core.security import Identity
from stockflow.models import Item, StockLocation
from stockflow.services.stock_ledger import StockLedgerService


class TestStockAdjustments:
    """Test suite for ledger adjustments"""

    def test_get_stock(self, db_session: Session, catalog, make_location):
        make_location(catalog.item_id, catalog.main_id, 25)
        ledger = StockLedgerService(db_session)

        assert ledger.get_stock(catalog.item_id, catalog.main_id) == 25

    def test_get_stock_without_location(self, db_session: Session, catalog):
        with pytest.raises(NotFoundError):
            StockLedgerService(db_session).get_stock(catalog.item_id, catalog.main_id)

    def test_adjust_returns_new_quantity(self, db_session: Session, catalog, make_location):
        location = make_location(catalog.item_id, catalog.main_id, 25)
        ledger = StockLedgerService(db_session)

        assert ledger.adjust(catalog.item_id, catalog.main_id, 10) == 35
        assert ledger.adjust(catalog.item_id, catalog.main_id, -35) == 0

        db_session.refresh(location)
        assert location.current_stock == 0
        assert location.version == 2

    def test_adjust_below_zero_rejected(self, db_session: Session, catalog, make_location):
        """Test stock can never go negative"""
        location = make_location(catalog.item_id, catalog.main_id, 5)
        ledger = StockLedgerService(db_session)

        with pytest.raises(NegativeStockError) as exc_info:
            ledger.adjust(catalog.item_id, catalog.main_id, -6)

        assert exc_info.value.details["current_stock"] == 5
        assert exc_info.value.details["delta"] == -6
        db_session.rollback()
        db_session.refresh(location)
        assert location.current_stock == 5
        assert location.version == 0

    def test_adjust_missing_location(self, db_session: Session, catalog):
        with pytest.raises(NotFoundError):
            StockLedgerService(db_session).adjust(catalog.item_id, catalog.branch_id, 1)

    def test_concurrent_debits_never_go_negative(self, session_factory, db_session: Session, catalog, make_location):
        """Test parallel writers on one location serialize in the database"""
        location = make_location(catalog.item_id, catalog.main_id, 10)
        outcomes = []
        lock = threading.Lock()

        def debit():
            session = session_factory()
            try:
                StockLedgerService(session).adjust(catalog.item_id, catalog.main_id, -3)
                result = "ok"
            except NegativeStockError:
                session.rollback()
                result = "rejected"
            finally:
                session.close()
            with lock:
                outcomes.append(result)

        threads = [threading.Thread(target=debit) for _ in range(6)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        db_session.refresh(location)
        assert outcomes.count("ok") == 3
        assert outcomes.count("rejected") == 3
        assert location.current_stock == 1
        assert location.version == 3


class TestEnsureLocation:
    """Test suite for implicit location creation"""

    def test_creates_location_with_configured_defaults(self, db_session: Session, catalog):
        ledger = StockLedgerService(db_session)

        location = ledger.ensure_location(catalog.item_id, catalog.main_id)

        assert location.current_stock == 0
        assert location.min_stock == ledger.config.DEFAULT_MIN_STOCK
        assert location.max_stock == ledger.config.DEFAULT_MAX_STOCK
        assert location.location_code == "WH01-A-01-01"

    def test_returns_existing_location(self, db_session: Session, catalog, make_location):
        existing = make_location(catalog.item_id, catalog.main_id, 7)

        location = StockLedgerService(db_session).ensure_location(catalog.item_id, catalog.main_id)

        assert location.id == existing.id
        assert location.current_stock == 7

    def test_picks_first_free_bin(self, db_session: Session, catalog, make_location):
        make_location(catalog.item_id, catalog.main_id, 0)
        second = Item(sku="NUT-M8", name="M8 Nut", category_id=catalog.category_id, reorder_point=5)
        db_session.add(second)
        db_session.commit()

        location = StockLedgerService(db_session).ensure_location(second.id, catalog.main_id, min_stock=0)

        assert location.location_code == "WH01-A-01-02"
        assert location.min_stock == 0

    def test_unknown_warehouse(self, db_session: Session, catalog):
        with pytest.raises(NotFoundError):
            StockLedgerService(db_session).ensure_location(catalog.item_id, 999)


class TestLocationManagement:
    """Test suite for location maintenance operations"""

    def test_create_location_with_opening_stock(self, db_session: Session, catalog, manager: Identity):
        location = StockLedgerService(db_session, manager).create_location({
            "item_id": catalog.item_id,
            "warehouse_id": catalog.branch_id,
            "current_stock": 40,
            "aisle": "B",
            "rack": "03",
        })

        assert location.id is not None
        assert location.current_stock == 40
        assert location.location_code == "WH02-B-03-01"

    def test_create_duplicate_pair_rejected(self, db_session: Session, catalog, make_location, admin):
        make_location(catalog.item_id, catalog.main_id, 0)

        with pytest.raises(DuplicateError):
            StockLedgerService(db_session, admin).create_location({
                "item_id": catalog.item_id,
                "warehouse_id": catalog.main_id,
            })

    def test_negative_opening_stock_rejected(self, db_session: Session, catalog, admin):
        with pytest.raises(ValidationError):
            StockLedgerService(db_session, admin).create_location({
                "item_id": catalog.item_id,
                "warehouse_id": catalog.main_id,
                "current_stock": -1,
            })

    def test_negative_min_stock_rejected(self, db_session: Session, catalog, admin):
        with pytest.raises(ValidationError) as exc_info:
            StockLedgerService(db_session, admin).create_location({
                "item_id": catalog.item_id,
                "warehouse_id": catalog.main_id,
                "min_stock": -1,
            })

        assert exc_info.value.details["field"] == "min_stock"

    def test_invalid_update_leaves_location_unchanged(self, db_session: Session, catalog, make_location, admin):
        location = make_location(catalog.item_id, catalog.main_id, 12)
        ledger = StockLedgerService(db_session, admin)

        with pytest.raises(ValidationError) as exc_info:
            ledger.update_location(location.id, {"aisle": "C", "min_stock": -5})

        db_session.expire_all()
        unchanged = ledger.get_location(location.id)
        assert exc_info.value.details["field"] == "min_stock"
        assert unchanged.aisle == "A"
        assert unchanged.min_stock == 10
        assert unchanged.location_code == "WH01-A-01-01"

    def test_warehouse_role_cannot_create(self, db_session: Session, catalog, warehouse_user):
        with pytest.raises(AccessDeniedError):
            StockLedgerService(db_session, warehouse_user).create_location({
                "item_id": catalog.item_id,
                "warehouse_id": catalog.main_id,
            })

    def test_update_regenerates_code(self, db_session: Session, catalog, make_location, admin):
        """Test moving a location to another bin changes its code"""
        location = make_location(catalog.item_id, catalog.main_id, 12)

        updated = StockLedgerService(db_session, admin).update_location(
            location.id, {"aisle": "C", "bin": "07", "max_stock": 150}
        )

        assert updated.location_code == "WH01-C-01-07"
        assert updated.max_stock == 150
        assert updated.current_stock == 12

    def test_update_cannot_set_stock(self, db_session: Session, catalog, make_location, admin):
        location = make_location(catalog.item_id, catalog.main_id, 12)

        with pytest.raises(ValidationError):
            StockLedgerService(db_session, admin).update_location(location.id, {"current_stock": 99})

    def test_delete_requires_empty_location(self, db_session: Session, catalog, make_location, admin):
        location = make_location(catalog.item_id, catalog.main_id, 3)
        ledger = StockLedgerService(db_session, admin)

        with pytest.raises(InvalidStateError):
            ledger.delete_location(location.id)

        ledger.adjust_location(location.id, -3)
        ledger.delete_location(location.id)
        assert db_session.get(StockLocation, location.id) is None

    def test_list_locations_filters(self, db_session: Session, catalog, make_location, warehouse_user):
        make_location(catalog.item_id, catalog.main_id, 3)
        make_location(catalog.item_id, catalog.branch_id, 8)
        ledger = StockLedgerService(db_session, warehouse_user)

        assert len(ledger.list_locations()) == 2
        branch = ledger.list_locations(warehouse_id=catalog.branch_id)
        assert [loc.current_stock for loc in branch] == [8]
