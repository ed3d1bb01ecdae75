"""
Goods Receipt Service
Recording physical receipts and applying them to the stock ledger
"""
from datetime import date, datetime, timezone
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.events import EventBus, GrnApproved, event_bus as default_event_bus
from stockflow.core.exceptions import (
    DuplicateGRNError, InvalidQuantityError, InvalidStateError, NotFoundError, ValidationError
)
from stockflow.core.logging import get_logger
from stockflow.core.notifications import Notifier, notifier as default_notifier
from stockflow.core.permissions import authorize
from stockflow.core.security import Role
from stockflow.models import (
    CancellationReason, GoodsReceiptNote, GRNStatus, POStatus, PurchaseOrder
)
from stockflow.services.sequences import GOODS_RECEIPT, next_document_number
from stockflow.services.stock_ledger import StockLedgerService
from stockflow.services.workflow import GRN_WORKFLOW, PO_WORKFLOW, apply_transition

logger = get_logger("business")


class GoodsReceiptService:
    """
    GRN workflow

    A GRN is raised by the warehouse against an acknowledged PO and decided
    once by a manager. Approval increments the ledger, completes the PO and
    then announces GrnApproved so the automatic trigger can re-check stock.
    """

    def __init__(
        self,
        db: Session,
        current_user,
        notifier: Optional[Notifier] = None,
        event_bus: Optional[EventBus] = None,
        ledger: Optional[StockLedgerService] = None,
    ):
        self.db = db
        self.current_user = current_user
        self.notifier = notifier or default_notifier
        self.event_bus = event_bus or default_event_bus
        self.ledger = ledger or StockLedgerService(db, current_user)

    @authorize("grn.read")
    def list_grns(self, status: Optional[str] = None, skip: int = 0, limit: int = 100) -> List[GoodsReceiptNote]:
        query = self.db.query(GoodsReceiptNote)
        if status:
            query = query.filter(GoodsReceiptNote.status == status)
        return query.order_by(GoodsReceiptNote.id.desc()).offset(skip).limit(limit).all()

    @authorize("grn.read")
    def get_grn(self, grn_id: int) -> GoodsReceiptNote:
        return self._get(grn_id)

    @authorize("grn.create")
    def create_grn(
        self,
        purchase_order_id: int,
        quantity_received: int,
        batch_number: Optional[str] = None,
        expiry_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> GoodsReceiptNote:
        order = self.db.get(PurchaseOrder, purchase_order_id)
        if order is None:
            raise NotFoundError("PurchaseOrder", purchase_order_id)

        self._reject_duplicate(purchase_order_id)

        if order.status != POStatus.ACKNOWLEDGED.value:
            raise InvalidStateError(
                f"Goods can only be received against an acknowledged purchase order "
                f"({order.po_number} is '{order.status}')",
                current_status=order.status,
            )
        if quantity_received is None or not 1 <= quantity_received <= order.quantity_ordered:
            raise InvalidQuantityError(
                f"Quantity received must be between 1 and {order.quantity_ordered}",
                field="quantity_received",
                value=quantity_received,
                quantity_ordered=order.quantity_ordered,
            )

        grn_number = next_document_number(self.db, GOODS_RECEIPT)

        try:
            apply_transition(self.db, PurchaseOrder, purchase_order_id, PO_WORKFLOW, "receive")
            grn = GoodsReceiptNote(
                grn_number=grn_number,
                purchase_order_id=order.id,
                item_id=order.item_id,
                warehouse_id=order.warehouse_id,
                quantity_ordered=order.quantity_ordered,
                quantity_received=quantity_received,
                batch_number=batch_number,
                expiry_date=expiry_date,
                status=GRNStatus.PENDING.value,
                received_by=self.current_user.user_id,
                notes=self._audit_line("received", notes),
            )
            self.db.add(grn)
            self.db.commit()
        except (InvalidStateError, IntegrityError):
            self.db.rollback()
            # A concurrent receipt against the same PO won
            self._reject_duplicate(purchase_order_id)
            raise

        self.db.refresh(grn)
        logger.info(f"{grn_number} created for {order.po_number}: {quantity_received} received")

        self.notifier.notify(
            Role.MANAGER.value,
            f"GRN {grn_number} awaiting approval",
            f"Goods receipt {grn_number} for purchase order {order.po_number} records "
            f"{quantity_received} of {order.quantity_ordered} units and needs manager approval.",
        )
        return grn

    @authorize("grn.approve")
    def approve(self, grn_id: int, action: str, notes: Optional[str] = None) -> GoodsReceiptNote:
        """
        Decide a pending GRN

        approve: ledger += quantity_received, PO -> completed.
        reject: PO -> cancelled (receipt_rejected), no stock change.
        A second decision raises AlreadyDecidedError.
        """
        if action not in ("approve", "reject"):
            raise ValidationError("Action must be 'approve' or 'reject'", field="action", value=action)

        grn = self._get(grn_id)
        GRN_WORKFLOW.check(action, grn.status)

        location = None
        if action == "approve":
            location = self.ledger.ensure_location(grn.item_id, grn.warehouse_id)

        decision = {
            "notes": func.coalesce(GoodsReceiptNote.notes, "") + self._audit_line(
                "approved" if action == "approve" else "rejected", notes, leading_newline=True
            ),
        }
        if action == "approve":
            decision["approved_by"] = self.current_user.user_id
            decision["approved_at"] = datetime.now(timezone.utc)

        try:
            apply_transition(self.db, GoodsReceiptNote, grn_id, GRN_WORKFLOW, action, decision)
            if action == "approve":
                self.ledger.lock_locations([location.id])
                self.ledger.adjust_location(location.id, grn.quantity_received, commit=False)
                apply_transition(self.db, PurchaseOrder, grn.purchase_order_id, PO_WORKFLOW, "complete")
            else:
                apply_transition(
                    self.db, PurchaseOrder, grn.purchase_order_id, PO_WORKFLOW, "reject_receipt",
                    {"cancellation_reason": CancellationReason.RECEIPT_REJECTED.value},
                )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(grn)
        logger.info(f"{grn.grn_number} {grn.status} by manager {self.current_user.user_id}")

        if action == "approve":
            self.event_bus.publish(GrnApproved(
                grn_id=grn.id,
                po_id=grn.purchase_order_id,
                item_id=grn.item_id,
                warehouse_id=grn.warehouse_id,
                quantity=grn.quantity_received,
            ))
        return grn

    def _reject_duplicate(self, purchase_order_id: int) -> None:
        existing = self.db.query(GoodsReceiptNote.grn_number).filter(
            GoodsReceiptNote.purchase_order_id == purchase_order_id
        ).scalar()
        if existing:
            raise DuplicateGRNError(
                f"Purchase order already has goods receipt {existing}",
                purchase_order_id=purchase_order_id,
                grn_number=existing,
            )

    def _audit_line(self, event: str, text: Optional[str], leading_newline: bool = False) -> str:
        stamp = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")
        line = f"[{stamp}] {event} by user {self.current_user.user_id}"
        if text:
            line = f"{line}: {text}"
        return f"\n{line}" if leading_newline else line

    def _get(self, grn_id: int) -> GoodsReceiptNote:
        grn = self.db.get(GoodsReceiptNote, grn_id)
        if grn is None:
            raise NotFoundError("GoodsReceiptNote", grn_id)
        return grn
