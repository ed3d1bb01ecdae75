"""
Purchase Order Service
Admin approval, supplier response and cancellation of purchase orders
"""
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockflow.core.exceptions import (
    AccessDeniedError, InvalidStateError, NotFoundError, ValidationError
)
from stockflow.core.logging import get_logger
from stockflow.core.notifications import Notifier, notifier as default_notifier
from stockflow.core.permissions import authorize
from stockflow.core.security import Role
from stockflow.models import (
    CancellationReason, DelayStatus, GoodsReceiptNote, GRNStatus, Item, POStatus, PurchaseOrder,
    Supplier, Warehouse
)
from stockflow.services.sequences import PURCHASE_ORDER, next_document_number
from stockflow.services.workflow import PO_WORKFLOW, apply_transition

logger = get_logger("business")
security_logger = get_logger("security")

EDITABLE_FIELDS = ("quantity_ordered", "unit_price", "expected_delivery_date", "notes")


class PurchaseOrderService:
    """
    Purchase Order workflow

    draft -> sent (admin) -> acknowledged (supplier) -> partially_received
    (GRN created) -> completed / cancelled (GRN decided). Supplier-facing
    operations are restricted to the supplier that owns the order.
    """

    def __init__(self, db: Session, current_user, notifier: Optional[Notifier] = None):
        self.db = db
        self.current_user = current_user
        self.notifier = notifier or default_notifier

    @authorize("po.read")
    def list_orders(
        self,
        status: Optional[str] = None,
        supplier_id: Optional[int] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[PurchaseOrder]:
        query = self.db.query(PurchaseOrder)
        if self.current_user.role == Role.SUPPLIER:
            query = query.join(Supplier, Supplier.id == PurchaseOrder.supplier_id).filter(
                Supplier.user_id == self.current_user.user_id
            )
        if status:
            query = query.filter(PurchaseOrder.status == status)
        if supplier_id is not None:
            query = query.filter(PurchaseOrder.supplier_id == supplier_id)
        return query.order_by(PurchaseOrder.id.desc()).offset(skip).limit(limit).all()

    @authorize("po.read")
    def get_order(self, order_id: int) -> PurchaseOrder:
        order = self._get(order_id)
        if self.current_user.role == Role.SUPPLIER:
            self._check_owner(order)
        return order

    @authorize("po.create")
    def create_order(self, data: Dict) -> PurchaseOrder:
        """Manual PO without a purchase request"""
        quantity = data.get("quantity_ordered")
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1", field="quantity_ordered", value=quantity)
        supplier = self._require(Supplier, data["supplier_id"])
        item = self._require(Item, data["item_id"])
        self._require(Warehouse, data["warehouse_id"])

        unit_price = Decimal(str(data.get("unit_price") if data.get("unit_price") is not None else item.unit_price))
        if unit_price < 0:
            raise ValidationError("Unit price cannot be negative", field="unit_price")

        po_number = next_document_number(self.db, PURCHASE_ORDER)
        order = PurchaseOrder(
            po_number=po_number,
            supplier_id=supplier.id,
            item_id=item.id,
            warehouse_id=data["warehouse_id"],
            quantity_ordered=quantity,
            unit_price=unit_price,
            total_amount=unit_price * quantity,
            expected_delivery_date=data.get("expected_delivery_date"),
            notes=data.get("notes"),
            status=POStatus.DRAFT.value,
            created_by=self.current_user.user_id,
        )
        self.db.add(order)
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"{po_number} created manually by user {self.current_user.user_id}")
        return order

    @authorize("po.approve")
    def approve_order(self, order_id: int) -> PurchaseOrder:
        """Admin approval sends the order to the supplier"""
        order = self._get(order_id)
        apply_transition(self.db, PurchaseOrder, order_id, PO_WORKFLOW, "approve", {
            "approved_by": self.current_user.user_id,
            "approved_at": datetime.now(timezone.utc),
        })
        self.db.commit()
        self.db.refresh(order)

        supplier = order.supplier
        if supplier.email:
            self.notifier.notify(
                supplier.email,
                f"New purchase order {order.po_number}",
                f"Purchase order {order.po_number} for {order.quantity_ordered} x {order.item.name} "
                f"awaits your acknowledgement.",
            )
        return order

    @authorize("po.edit")
    def edit_order(self, order_id: int, data: Dict) -> PurchaseOrder:
        """Edit terms while the order is still draft or sent"""
        order = self._get(order_id)
        PO_WORKFLOW.check("edit", order.status)

        values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
        quantity = values.get("quantity_ordered", order.quantity_ordered)
        if quantity < 1:
            raise ValidationError("Quantity must be at least 1", field="quantity_ordered")
        unit_price = Decimal(str(values.get("unit_price", order.unit_price)))
        if unit_price < 0:
            raise ValidationError("Unit price cannot be negative", field="unit_price")
        values["unit_price"] = unit_price
        values["total_amount"] = unit_price * quantity

        apply_transition(self.db, PurchaseOrder, order_id, PO_WORKFLOW, "edit", values)
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"{order.po_number} edited by user {self.current_user.user_id}")
        return order

    @authorize("po.cancel")
    def cancel_order(self, order_id: int, reason: Optional[str] = None) -> PurchaseOrder:
        """
        Cancel an open order

        A receipt still awaiting a decision is rejected in the same
        transaction so it cannot outlive its order.
        """
        order = self._get(order_id)
        now = datetime.now(timezone.utc)
        apply_transition(self.db, PurchaseOrder, order_id, PO_WORKFLOW, "cancel", {
            "cancellation_reason": CancellationReason.ADMIN_CANCELLED.value,
            "cancelled_by": self.current_user.user_id,
            "cancelled_at": now,
            "notes": self._append(order.notes, reason),
        })
        audit = (
            f"\n[{now.strftime('%Y-%m-%d %H:%M:%S')}] rejected by user "
            f"{self.current_user.user_id}: purchase order cancelled"
        )
        try:
            rejected = self.db.query(GoodsReceiptNote).filter(
                GoodsReceiptNote.purchase_order_id == order_id,
                GoodsReceiptNote.status == GRNStatus.PENDING.value,
            ).update({
                "status": GRNStatus.REJECTED.value,
                "notes": func.coalesce(GoodsReceiptNote.notes, "") + audit,
            }, synchronize_session=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(order)
        if rejected:
            logger.info(f"Pending receipt of {order.po_number} rejected with the order")
        logger.info(f"{order.po_number} cancelled by admin {self.current_user.user_id}")
        return order

    @authorize("po.respond")
    def respond(self, order_id: int, action: str, notes: Optional[str] = None) -> PurchaseOrder:
        """Supplier acknowledges or declines a sent order"""
        if action not in ("acknowledge", "decline"):
            raise ValidationError("Action must be 'acknowledge' or 'decline'", field="action", value=action)
        order = self._get(order_id)
        self._check_owner(order)

        values = {
            "responded_at": datetime.now(timezone.utc),
            "supplier_notes": notes,
        }
        if action == "decline":
            values["cancellation_reason"] = CancellationReason.SUPPLIER_DECLINED.value
        apply_transition(self.db, PurchaseOrder, order_id, PO_WORKFLOW, action, values)
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"{order.po_number} {action}d by supplier {order.supplier_id}")
        return order

    @authorize("po.request_delay")
    def request_delay(self, order_id: int, new_date: date, reason: str) -> PurchaseOrder:
        order = self._get(order_id)
        self._check_owner(order)
        if order.delay_status == DelayStatus.REQUESTED.value:
            raise InvalidStateError("A delay request is already awaiting a decision")
        if order.expected_delivery_date and new_date <= order.expected_delivery_date:
            raise ValidationError(
                "New delivery date must be after the current expected date",
                field="new_date",
            )

        apply_transition(self.db, PurchaseOrder, order_id, PO_WORKFLOW, "request_delay", {
            "delay_status": DelayStatus.REQUESTED.value,
            "delay_requested_date": new_date,
            "delay_reason": reason,
        })
        self.db.commit()
        self.db.refresh(order)
        self.notifier.notify(
            Role.MANAGER.value,
            f"Delivery delay requested for {order.po_number}",
            f"Supplier requests delivery on {new_date.isoformat()}: {reason}",
        )
        return order

    @authorize("po.decide_delay")
    def decide_delay(self, order_id: int, approve: bool) -> PurchaseOrder:
        order = self._get(order_id)
        values = {"delay_status": (DelayStatus.APPROVED if approve else DelayStatus.REJECTED).value}
        if approve:
            values["expected_delivery_date"] = order.delay_requested_date

        updated = self.db.query(PurchaseOrder).filter(
            PurchaseOrder.id == order_id,
            PurchaseOrder.delay_status == DelayStatus.REQUESTED.value,
        ).update(values, synchronize_session=False)
        if not updated:
            self.db.rollback()
            raise InvalidStateError(
                "No delay request awaiting a decision",
                delay_status=order.delay_status,
            )
        self.db.commit()
        self.db.refresh(order)
        logger.info(f"{order.po_number} delay {order.delay_status} by user {self.current_user.user_id}")
        return order

    def _check_owner(self, order: PurchaseOrder) -> None:
        supplier = order.supplier
        if supplier is None or supplier.user_id != self.current_user.user_id:
            security_logger.warning(
                f"User {self.current_user.user_id} denied access to {order.po_number}"
            )
            raise AccessDeniedError(
                "This purchase order belongs to another supplier",
                purchase_order_id=order.id,
            )

    @staticmethod
    def _append(existing: Optional[str], text: Optional[str]) -> Optional[str]:
        if not text:
            return existing
        return f"{existing}\n{text}" if existing else text

    def _get(self, order_id: int) -> PurchaseOrder:
        order = self.db.get(PurchaseOrder, order_id)
        if order is None:
            raise NotFoundError("PurchaseOrder", order_id)
        return order

    def _require(self, model, record_id: int):
        record = self.db.get(model, record_id)
        if record is None:
            raise NotFoundError(model.__name__, record_id)
        return record
