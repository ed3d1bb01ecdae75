"""
Tests for the Goods Receipt Service
Receiving against acknowledged orders and the manager decision
"""
import threading

import pytest
from sqlalchemy.orm import Session

from stockflow.core.events import GrnApproved
from stockflow.core.exceptions import (
    AccessDeniedError, AlreadyDecidedError, DuplicateGRNError, InvalidQuantityError,
    InvalidStateError, ValidationError
)
from stockflow.core.security import Identity, Role
from stockflow.models import CancellationReason, GRNStatus, POStatus, PurchaseOrder
from stockflow.services.goods_receipts import GoodsReceiptService
from stockflow.services.stock_ledger import StockLedgerService


@pytest.fixture
def received(acknowledged_po, grn_service, warehouse_user):
    return grn_service(warehouse_user).create_grn(acknowledged_po.id, 50, batch_number="B-001")


class TestCreateGoodsReceipt:
    """Test suite for recording receipts"""

    def test_create_marks_order_partially_received(self, db_session: Session, acknowledged_po, received, notifier):
        db_session.refresh(acknowledged_po)

        assert received.status == GRNStatus.PENDING.value
        assert received.quantity_ordered == 50
        assert received.quantity_received == 50
        assert received.grn_number.startswith("GRN")
        assert "received by user" in received.notes
        assert acknowledged_po.status == POStatus.PARTIALLY_RECEIVED.value
        assert notifier.subjects_for("manager") == [f"GRN {received.grn_number} awaiting approval"]

    def test_second_receipt_is_duplicate(self, acknowledged_po, received, grn_service, warehouse_user):
        with pytest.raises(DuplicateGRNError) as exc_info:
            grn_service(warehouse_user).create_grn(acknowledged_po.id, 10)

        assert exc_info.value.details["grn_number"] == received.grn_number

    @pytest.mark.parametrize("quantity", [0, -1, 51])
    def test_quantity_outside_order_rejected(self, acknowledged_po, grn_service, warehouse_user, quantity):
        with pytest.raises(InvalidQuantityError) as exc_info:
            grn_service(warehouse_user).create_grn(acknowledged_po.id, quantity)

        assert exc_info.value.details["quantity_ordered"] == 50

    def test_invalid_quantity_is_a_validation_error(self, acknowledged_po, grn_service, warehouse_user):
        with pytest.raises(ValidationError):
            grn_service(warehouse_user).create_grn(acknowledged_po.id, 0)

    def test_requires_acknowledged_order(self, catalog, po_service, grn_service, admin, warehouse_user):
        order = po_service(admin).create_order({
            "supplier_id": catalog.supplier_id,
            "item_id": catalog.item_id,
            "warehouse_id": catalog.main_id,
            "quantity_ordered": 10,
        })
        po_service(admin).approve_order(order.id)

        with pytest.raises(InvalidStateError):
            grn_service(warehouse_user).create_grn(order.id, 10)

    def test_only_warehouse_records_receipts(self, acknowledged_po, grn_service, manager):
        with pytest.raises(AccessDeniedError):
            grn_service(manager).create_grn(acknowledged_po.id, 50)


class TestGoodsReceiptDecision:
    """Test suite for approval and rejection"""

    def test_approve_increments_stock_and_completes_order(
        self, db_session: Session, catalog, make_location, acknowledged_po, received,
        grn_service, manager, admin, event_bus
    ):
        make_location(catalog.item_id, catalog.main_id, 5)
        published = []
        event_bus.subscribe(GrnApproved, published.append)

        grn = grn_service(manager).approve(received.id, "approve", "Counted twice")

        db_session.refresh(acknowledged_po)
        ledger = StockLedgerService(db_session, admin)
        assert grn.status == GRNStatus.APPROVED.value
        assert grn.approved_by == manager.user_id
        assert "Counted twice" in grn.notes
        assert acknowledged_po.status == POStatus.COMPLETED.value
        assert ledger.get_stock(catalog.item_id, catalog.main_id) == 55
        assert len(published) == 1
        assert published[0].grn_id == grn.id
        assert published[0].quantity == 50

    def test_approve_creates_missing_location(self, db_session, catalog, received, grn_service, manager, admin):
        grn_service(manager).approve(received.id, "approve")

        location = StockLedgerService(db_session, admin).find_location(catalog.item_id, catalog.main_id)
        assert location is not None
        assert location.current_stock == 50

    def test_second_decision_already_decided(self, received, grn_service, manager):
        grn_service(manager).approve(received.id, "approve")

        with pytest.raises(AlreadyDecidedError):
            grn_service(manager).approve(received.id, "reject")

    def test_reject_cancels_order_without_stock_change(
        self, db_session, catalog, make_location, acknowledged_po, received, grn_service, manager, admin, event_bus
    ):
        make_location(catalog.item_id, catalog.main_id, 5)
        published = []
        event_bus.subscribe(GrnApproved, published.append)

        grn = grn_service(manager).approve(received.id, "reject", "Damaged pallet")

        db_session.refresh(acknowledged_po)
        assert grn.status == GRNStatus.REJECTED.value
        assert "Damaged pallet" in grn.notes
        assert acknowledged_po.status == POStatus.CANCELLED.value
        assert acknowledged_po.cancellation_reason == CancellationReason.RECEIPT_REJECTED.value
        assert StockLedgerService(db_session, admin).get_stock(catalog.item_id, catalog.main_id) == 5
        assert published == []

    def test_cancelling_order_rejects_pending_receipt(
        self, db_session, catalog, acknowledged_po, received, po_service, grn_service, admin, manager
    ):
        order = po_service(admin).cancel_order(acknowledged_po.id, "Supplier went out of business")

        db_session.refresh(received)
        assert order.status == POStatus.CANCELLED.value
        assert order.cancellation_reason == CancellationReason.ADMIN_CANCELLED.value
        assert received.status == GRNStatus.REJECTED.value
        assert "purchase order cancelled" in received.notes
        assert StockLedgerService(db_session, admin).find_location(catalog.item_id, catalog.main_id) is None

        with pytest.raises(AlreadyDecidedError) as exc_info:
            grn_service(manager).approve(received.id, "approve")
        assert exc_info.value.details["current_status"] == GRNStatus.REJECTED.value

    def test_unknown_action(self, received, grn_service, manager):
        with pytest.raises(ValidationError):
            grn_service(manager).approve(received.id, "maybe")

    @pytest.mark.parametrize("role", [Role.ADMIN, Role.WAREHOUSE, Role.SUPPLIER])
    def test_only_manager_decides(self, received, grn_service, role):
        with pytest.raises(AccessDeniedError):
            grn_service(Identity(user_id=99, role=role)).approve(received.id, "approve")

    def test_concurrent_approvals_apply_stock_once(
        self, session_factory, db_session, catalog, make_location, received, manager, admin, notifier, event_bus
    ):
        make_location(catalog.item_id, catalog.main_id, 5)
        grn_id = received.id
        barrier = threading.Barrier(3)
        outcomes = []

        def decide():
            session = session_factory()
            try:
                service = GoodsReceiptService(session, manager, notifier=notifier, event_bus=event_bus)
                barrier.wait()
                service.approve(grn_id, "approve")
                outcomes.append("approved")
            except AlreadyDecidedError:
                outcomes.append("already_decided")
            finally:
                session.close()

        workers = [threading.Thread(target=decide) for _ in range(3)]
        for worker in workers:
            worker.start()
        for worker in workers:
            worker.join()

        db_session.expire_all()
        assert sorted(outcomes) == ["already_decided", "already_decided", "approved"]
        assert StockLedgerService(db_session, admin).get_stock(catalog.item_id, catalog.main_id) == 55
        order = db_session.get(PurchaseOrder, received.purchase_order_id)
        assert order.status == POStatus.COMPLETED.value
