"""
Transfer Order Service
Moves stock between warehouses through a draft/pending/approved/completed workflow
"""
from datetime import date, datetime, timezone
from typing import Dict, List, Optional

from sqlalchemy import func, or_
from sqlalchemy.orm import Session

from stockflow.core.config import Settings, settings as default_settings
from stockflow.core.events import EventBus, TransferCompleted, event_bus as default_event_bus
from stockflow.core.exceptions import (
    InsufficientStockError, InvalidQuantityError, NegativeStockError, NotFoundError, ValidationError
)
from stockflow.core.logging import get_logger
from stockflow.core.permissions import authorize
from stockflow.models import (
    Item, TransferOrder, TransferPriority, TransferStatus, Warehouse
)
from stockflow.services import planner
from stockflow.services.sequences import TRANSFER_ORDER, next_document_number
from stockflow.services.stock_ledger import StockLedgerService
from stockflow.services.workflow import TRANSFER_WORKFLOW, apply_transition

logger = get_logger("business")

EDITABLE_FIELDS = ("requested_quantity", "priority", "reason", "notes", "expected_date")


class TransferService:
    """
    Stock Transfer functionality

    Completion debits the source and credits the destination in a single
    transaction; locations are locked in ascending id order so two opposite
    transfers cannot deadlock.
    """

    def __init__(
        self,
        db: Session,
        current_user,
        config: Optional[Settings] = None,
        event_bus: Optional[EventBus] = None,
        ledger: Optional[StockLedgerService] = None,
    ):
        self.db = db
        self.current_user = current_user
        self.config = config or default_settings
        self.event_bus = event_bus or default_event_bus
        self.ledger = ledger or StockLedgerService(db, current_user, self.config)

    @authorize("transfer.read")
    def list_transfers(
        self,
        status: Optional[str] = None,
        warehouse_id: Optional[int] = None,
        priority: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[TransferOrder]:
        query = self.db.query(TransferOrder)
        if status:
            query = query.filter(TransferOrder.status == status)
        if priority:
            query = query.filter(TransferOrder.priority == priority)
        if warehouse_id is not None:
            query = query.filter(or_(
                TransferOrder.from_warehouse_id == warehouse_id,
                TransferOrder.to_warehouse_id == warehouse_id,
            ))
        return query.order_by(TransferOrder.id.desc()).offset(skip).limit(limit).all()

    @authorize("transfer.read")
    def get_transfer(self, transfer_id: int) -> TransferOrder:
        return self._get(transfer_id)

    @authorize("transfer.read")
    def stats(self) -> Dict[str, int]:
        counts = dict(
            self.db.query(TransferOrder.status, func.count(TransferOrder.id)).group_by(TransferOrder.status).all()
        )
        result = {status.value: counts.get(status.value, 0) for status in TransferStatus}
        result["total"] = sum(counts.values())
        return result

    @authorize("transfer.create")
    def create_transfer(
        self,
        from_warehouse_id: int,
        to_warehouse_id: int,
        item_id: int,
        requested_quantity: int,
        priority: Optional[str] = None,
        reason: Optional[str] = None,
        notes: Optional[str] = None,
        expected_date: Optional[date] = None,
        submit: bool = True,
    ) -> TransferOrder:
        if requested_quantity is None or requested_quantity < 1:
            raise ValidationError(
                "Requested quantity must be at least 1", field="requested_quantity", value=requested_quantity
            )
        if from_warehouse_id == to_warehouse_id:
            raise ValidationError("Source and destination warehouses must differ", field="to_warehouse_id")

        self._require(Warehouse, from_warehouse_id)
        self._require(Warehouse, to_warehouse_id)
        item = self._require(Item, item_id)

        source = self.ledger.find_location(item_id, from_warehouse_id)
        if source is not None:
            if source.current_stock < requested_quantity:
                raise InsufficientStockError(
                    f"Insufficient stock in source warehouse. Available: {source.current_stock}, "
                    f"requested: {requested_quantity}",
                    available=source.current_stock,
                    requested=requested_quantity,
                )
            if priority is None:
                eff_min = planner.effective_minimum(source.min_stock, item.reorder_point)
                priority = planner.classify_urgency(source.current_stock, eff_min).value
        else:
            logger.warning(
                f"Transfer requested for item {item.sku} with no stock location in warehouse {from_warehouse_id}"
            )

        priority = TransferPriority(priority or TransferPriority.MEDIUM.value).value
        transfer_number = next_document_number(self.db, TRANSFER_ORDER)

        now = datetime.now(timezone.utc)
        transfer = TransferOrder(
            transfer_number=transfer_number,
            from_warehouse_id=from_warehouse_id,
            to_warehouse_id=to_warehouse_id,
            item_id=item_id,
            requested_quantity=requested_quantity,
            priority=priority,
            reason=reason,
            notes=notes,
            expected_date=expected_date,
            status=(TransferStatus.PENDING if submit else TransferStatus.DRAFT).value,
            requested_by=self.current_user.user_id,
            requested_at=now,
        )
        self.db.add(transfer)
        self.db.commit()
        self.db.refresh(transfer)
        logger.info(f"{transfer_number} created ({transfer.status}) by user {self.current_user.user_id}")
        return transfer

    @authorize("transfer.edit")
    def update_transfer(self, transfer_id: int, data: Dict) -> TransferOrder:
        transfer = self._get(transfer_id)
        TRANSFER_WORKFLOW.check("edit", transfer.status)

        values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
        if "requested_quantity" in values and values["requested_quantity"] < 1:
            raise ValidationError("Requested quantity must be at least 1", field="requested_quantity")
        if "priority" in values:
            values["priority"] = TransferPriority(values["priority"]).value

        apply_transition(self.db, TransferOrder, transfer_id, TRANSFER_WORKFLOW, "edit", values)
        self.db.commit()
        self.db.refresh(transfer)
        return transfer

    @authorize("transfer.submit")
    def submit(self, transfer_id: int) -> TransferOrder:
        transfer = self._get(transfer_id)
        apply_transition(self.db, TransferOrder, transfer_id, TRANSFER_WORKFLOW, "submit", {
            "requested_at": datetime.now(timezone.utc),
        })
        self.db.commit()
        self.db.refresh(transfer)
        return transfer

    @authorize("transfer.approve")
    def decide(
        self,
        transfer_id: int,
        action: str,
        approved_quantity: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> TransferOrder:
        """Approve (optionally for a smaller quantity) or reject a pending transfer"""
        if action not in ("approve", "reject"):
            raise ValidationError("Action must be 'approve' or 'reject'", field="action", value=action)
        transfer = self._get(transfer_id)
        TRANSFER_WORKFLOW.check(action, transfer.status)

        values = {
            "approved_by": self.current_user.user_id,
            "approved_at": datetime.now(timezone.utc),
        }
        if notes:
            values["notes"] = notes

        if action == "approve":
            quantity = transfer.requested_quantity if approved_quantity is None else approved_quantity
            if not 1 <= quantity <= transfer.requested_quantity:
                raise InvalidQuantityError(
                    f"Approved quantity must be between 1 and {transfer.requested_quantity}",
                    field="approved_quantity",
                    value=quantity,
                )
            available = self._available(transfer)
            if available < quantity:
                raise InsufficientStockError(
                    f"Insufficient stock in source warehouse. Available: {available}",
                    available=available,
                    requested=quantity,
                )
            values["approved_quantity"] = quantity

        apply_transition(self.db, TransferOrder, transfer_id, TRANSFER_WORKFLOW, action, values)
        self.db.commit()
        self.db.refresh(transfer)
        logger.info(f"{transfer.transfer_number} {transfer.status} by user {self.current_user.user_id}")
        return transfer

    @authorize("transfer.complete")
    def complete(
        self,
        transfer_id: int,
        transferred_quantity: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> TransferOrder:
        """
        Record the physical move

        Source is debited and destination credited atomically; on any failure
        neither location changes.
        """
        transfer = self._get(transfer_id)
        TRANSFER_WORKFLOW.check("complete", transfer.status)

        quantity = transfer.approved_quantity if transferred_quantity is None else transferred_quantity
        if quantity is None or not 1 <= quantity <= transfer.approved_quantity:
            raise InvalidQuantityError(
                f"Transferred quantity must be between 1 and {transfer.approved_quantity}",
                field="transferred_quantity",
                value=quantity,
            )

        source = self.ledger.find_location(transfer.item_id, transfer.from_warehouse_id)
        if source is None:
            raise InsufficientStockError(
                "Source warehouse holds no stock of this item",
                available=0,
                requested=quantity,
            )
        destination = self.ledger.ensure_location(
            transfer.item_id,
            transfer.to_warehouse_id,
            min_stock=self.config.TRANSFER_DESTINATION_MIN_STOCK,
            max_stock=self.config.DEFAULT_MAX_STOCK,
        )
        source_id, destination_id = source.id, destination.id

        values = {
            "transferred_quantity": quantity,
            "completed_by": self.current_user.user_id,
            "completed_at": datetime.now(timezone.utc),
        }
        if notes:
            values["notes"] = notes

        try:
            apply_transition(self.db, TransferOrder, transfer_id, TRANSFER_WORKFLOW, "complete", values)
            self.ledger.lock_locations([source_id, destination_id])
            try:
                self.ledger.adjust_location(source_id, -quantity, commit=False)
            except NegativeStockError as e:
                raise InsufficientStockError(
                    f"Insufficient stock in source warehouse. Available: {e.details.get('current_stock')}",
                    available=e.details.get("current_stock"),
                    requested=quantity,
                )
            self.ledger.adjust_location(destination_id, quantity, commit=False)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        self.db.refresh(transfer)
        logger.info(
            f"{transfer.transfer_number} completed: {quantity} moved from location {source_id} "
            f"to location {destination_id}"
        )
        self.event_bus.publish(TransferCompleted(
            transfer_id=transfer.id,
            item_id=transfer.item_id,
            from_warehouse_id=transfer.from_warehouse_id,
            to_warehouse_id=transfer.to_warehouse_id,
            quantity=quantity,
        ))
        return transfer

    @authorize("transfer.cancel")
    def cancel(self, transfer_id: int, reason: Optional[str] = None) -> TransferOrder:
        transfer = self._get(transfer_id)
        apply_transition(self.db, TransferOrder, transfer_id, TRANSFER_WORKFLOW, "cancel", {
            "cancelled_by": self.current_user.user_id,
            "cancelled_at": datetime.now(timezone.utc),
            "cancellation_reason": reason,
        })
        self.db.commit()
        self.db.refresh(transfer)
        logger.info(f"{transfer.transfer_number} cancelled by user {self.current_user.user_id}")
        return transfer

    def _available(self, transfer: TransferOrder) -> int:
        source = self.ledger.find_location(transfer.item_id, transfer.from_warehouse_id)
        return source.current_stock if source else 0

    def _get(self, transfer_id: int) -> TransferOrder:
        transfer = self.db.get(TransferOrder, transfer_id)
        if transfer is None:
            raise NotFoundError("TransferOrder", transfer_id)
        return transfer

    def _require(self, model, record_id: int):
        record = self.db.get(model, record_id)
        if record is None:
            raise NotFoundError(model.__name__, record_id)
        return record
