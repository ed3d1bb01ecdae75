"""
Purchase Request Service
Manual and automatic replenishment requests and their conversion to POs
"""
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import Dict, List, Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from stockflow.core.exceptions import (
    AlreadyConvertedError, DuplicateError, InvalidStateError, NotFoundError, ValidationError
)
from stockflow.core.logging import get_logger
from stockflow.core.notifications import Notifier, notifier as default_notifier
from stockflow.core.permissions import authorize
from stockflow.core.security import Identity, Role
from stockflow.models import (
    Item, POStatus, PRSource, PRStatus, PurchaseOrder, PurchaseRequest, Supplier, Warehouse
)
from stockflow.services import planner
from stockflow.services.catalog import CatalogService
from stockflow.services.sequences import PURCHASE_ORDER, next_document_number
from stockflow.services.stock_ledger import StockLedgerService
from stockflow.services.workflow import PR_WORKFLOW, apply_transition

logger = get_logger("business")

EDITABLE_FIELDS = ("quantity_requested", "preferred_supplier_id", "notes")


@dataclass
class AutoCreateResult:
    checked: int = 0
    low: int = 0
    created_ids: List[int] = field(default_factory=list)
    skipped: int = 0

    @property
    def created(self) -> int:
        return len(self.created_ids)

    def to_dict(self) -> Dict:
        return {
            "checked": self.checked,
            "low": self.low,
            "created": self.created,
            "created_ids": list(self.created_ids),
            "skipped": self.skipped,
        }


class PurchaseRequestService:
    """
    Purchase Request workflow

    pending -> approved -> converted, or pending -> rejected. Only pending
    requests may be edited or deleted.
    """

    def __init__(
        self,
        db: Session,
        current_user: Identity,
        notifier: Optional[Notifier] = None,
    ):
        self.db = db
        self.current_user = current_user
        self.notifier = notifier or default_notifier

    @authorize("pr.read")
    def list_requests(
        self,
        status: Optional[str] = None,
        warehouse_id: Optional[int] = None,
        source: Optional[str] = None,
        skip: int = 0,
        limit: int = 100,
    ) -> List[PurchaseRequest]:
        query = self.db.query(PurchaseRequest)
        if status:
            query = query.filter(PurchaseRequest.status == status)
        if warehouse_id is not None:
            query = query.filter(PurchaseRequest.warehouse_id == warehouse_id)
        if source:
            query = query.filter(PurchaseRequest.source == source)
        return query.order_by(PurchaseRequest.id.desc()).offset(skip).limit(limit).all()

    @authorize("pr.read")
    def get_request(self, request_id: int) -> PurchaseRequest:
        return self._get(request_id)

    @authorize("pr.create")
    def create_request(
        self,
        item_id: int,
        warehouse_id: int,
        quantity: int,
        preferred_supplier_id: Optional[int] = None,
        notes: Optional[str] = None,
    ) -> PurchaseRequest:
        if quantity is None or quantity < 1:
            raise ValidationError("Quantity must be at least 1", field="quantity_requested", value=quantity)
        self._require(Item, item_id)
        self._require(Warehouse, warehouse_id)
        if preferred_supplier_id is not None:
            self._require(Supplier, preferred_supplier_id)

        request = PurchaseRequest(
            item_id=item_id,
            warehouse_id=warehouse_id,
            quantity_requested=quantity,
            preferred_supplier_id=preferred_supplier_id,
            notes=notes,
            status=PRStatus.PENDING.value,
            source=PRSource.MANUAL.value,
            urgency=self._current_urgency(item_id, warehouse_id),
            requested_by=self.current_user.user_id,
        )
        try:
            self.db.add(request)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise DuplicateError(
                "A pending purchase request already exists for this item and warehouse",
                item_id=item_id,
                warehouse_id=warehouse_id,
            )
        self.db.refresh(request)
        logger.info(f"PR {request.id} created by user {self.current_user.user_id} for item {item_id}")
        return request

    @authorize("pr.validate_quantity")
    def validate_quantity(self, item_id: int, warehouse_id: int, quantity: int) -> Dict:
        """Check a proposed quantity against the location's ceiling"""
        item = self._require(Item, item_id)
        self._require(Warehouse, warehouse_id)
        location = StockLedgerService(self.db).find_location(item_id, warehouse_id)

        current = location.current_stock if location else 0
        min_stock = location.min_stock if location else 0
        max_stock = location.max_stock if location else 0
        warnings = []
        if quantity < 1:
            warnings.append("Quantity must be at least 1")
        if location is None:
            warnings.append("No stock location exists yet; one will be created on receipt")
        elif current + quantity > max_stock:
            warnings.append(
                f"Stock after receipt ({current + quantity}) would exceed max stock ({max_stock})"
            )

        return {
            "valid": quantity >= 1,
            "current_stock": current,
            "max_stock": max_stock,
            "effective_minimum": planner.effective_minimum(min_stock, item.reorder_point),
            "suggested_quantity": planner.suggested_quantity(
                current, min_stock, max_stock, item.reorder_point
            ),
            "warnings": warnings,
        }

    @authorize("pr.edit")
    def edit_request(self, request_id: int, data: Dict) -> PurchaseRequest:
        request = self._get(request_id)
        PR_WORKFLOW.check("edit", request.status)

        values = {k: v for k, v in data.items() if k in EDITABLE_FIELDS and v is not None}
        if "quantity_requested" in values and values["quantity_requested"] < 1:
            raise ValidationError("Quantity must be at least 1", field="quantity_requested")
        if values.get("preferred_supplier_id") is not None:
            self._require(Supplier, values["preferred_supplier_id"])

        apply_transition(self.db, PurchaseRequest, request_id, PR_WORKFLOW, "edit", values)
        self.db.commit()
        self.db.refresh(request)
        return request

    @authorize("pr.delete")
    def delete_request(self, request_id: int) -> None:
        request = self._get(request_id)
        deleted = self.db.query(PurchaseRequest).filter(
            PurchaseRequest.id == request_id,
            PurchaseRequest.status == PRStatus.PENDING.value,
        ).delete(synchronize_session=False)
        if not deleted:
            self.db.rollback()
            raise InvalidStateError(
                f"Only pending purchase requests can be deleted (status '{request.status}')",
                current_status=request.status,
            )
        self.db.expunge(request)
        self.db.commit()
        logger.info(f"PR {request_id} deleted by user {self.current_user.user_id}")

    @authorize("pr.decide")
    def set_status(self, request_id: int, action: str, notes: Optional[str] = None) -> PurchaseRequest:
        if action not in ("approve", "reject"):
            raise ValidationError("Action must be 'approve' or 'reject'", field="action", value=action)
        request = self._get(request_id)

        apply_transition(self.db, PurchaseRequest, request_id, PR_WORKFLOW, action, {
            "approved_by": self.current_user.user_id,
            "approved_at": datetime.now(timezone.utc),
            "decision_notes": notes,
        })
        self.db.commit()
        self.db.refresh(request)
        logger.info(f"PR {request_id} {request.status} by user {self.current_user.user_id}")
        return request

    @authorize("pr.convert")
    def create_po_from_pr(
        self,
        request_id: int,
        supplier_id: int,
        unit_price: Optional[Decimal] = None,
        expected_delivery_date: Optional[date] = None,
        notes: Optional[str] = None,
    ) -> PurchaseOrder:
        """Turn an approved request into a draft PO and mark it converted"""
        request = self._get(request_id)
        if request.status != PRStatus.APPROVED.value:
            raise AlreadyConvertedError(
                f"Purchase request {request_id} is '{request.status}', only approved requests can be converted",
                current_status=request.status,
            )
        supplier = self._require(Supplier, supplier_id)
        item = self._require(Item, request.item_id)

        terms = CatalogService(self.db, self.current_user).supplier_terms(supplier.id, item.id)
        if unit_price is None:
            unit_price = terms.unit_price if terms else item.unit_price
        if expected_delivery_date is None:
            lead_time = terms.lead_time_days if terms else item.lead_time_days
            expected_delivery_date = date.today() + timedelta(days=lead_time or 0)
        unit_price = Decimal(str(unit_price or 0))

        po_number = next_document_number(self.db, PURCHASE_ORDER)

        try:
            apply_transition(self.db, PurchaseRequest, request_id, PR_WORKFLOW, "convert")
        except InvalidStateError as e:
            self.db.rollback()
            raise AlreadyConvertedError(e.message, **e.details)

        order = PurchaseOrder(
            po_number=po_number,
            purchase_request_id=request.id,
            supplier_id=supplier.id,
            item_id=request.item_id,
            warehouse_id=request.warehouse_id,
            quantity_ordered=request.quantity_requested,
            unit_price=unit_price,
            total_amount=unit_price * request.quantity_requested,
            expected_delivery_date=expected_delivery_date,
            status=POStatus.DRAFT.value,
            notes=notes,
            created_by=self.current_user.user_id,
        )
        try:
            self.db.add(order)
            self.db.commit()
        except IntegrityError:
            self.db.rollback()
            raise AlreadyConvertedError(
                f"Purchase request {request_id} already has a purchase order",
            )
        self.db.refresh(order)
        logger.info(f"PR {request_id} converted to {po_number}")
        return order

    def auto_create(self) -> AutoCreateResult:
        """
        Raise pending requests for every low location without one

        Each request is committed on its own. The partial unique index on
        pending (item, warehouse) pairs rejects the loser of an overlapping
        run, which is then counted as skipped.
        """
        result = AutoCreateResult()
        snapshots = planner.load_snapshots(self.db)
        result.checked = len(snapshots)

        open_pairs = {
            (item_id, warehouse_id)
            for item_id, warehouse_id in self.db.query(
                PurchaseRequest.item_id, PurchaseRequest.warehouse_id
            ).filter(PurchaseRequest.status == PRStatus.PENDING.value)
        }

        for signal in planner.low_stock_signals(snapshots):
            result.low += 1
            snapshot = signal.snapshot
            if (snapshot.item_id, snapshot.warehouse_id) in open_pairs:
                result.skipped += 1
                continue

            request = PurchaseRequest(
                item_id=snapshot.item_id,
                warehouse_id=snapshot.warehouse_id,
                preferred_supplier_id=snapshot.preferred_supplier_id,
                quantity_requested=signal.suggested_quantity,
                status=PRStatus.PENDING.value,
                source=PRSource.AUTOMATIC.value,
                urgency=signal.urgency.value,
                requested_by=self.current_user.user_id,
                notes=(
                    f"Raised automatically: stock {snapshot.current_stock} at or below "
                    f"effective minimum {signal.effective_minimum}"
                ),
            )
            try:
                self.db.add(request)
                self.db.commit()
            except IntegrityError:
                self.db.rollback()
                result.skipped += 1
                continue

            open_pairs.add((snapshot.item_id, snapshot.warehouse_id))
            result.created_ids.append(request.id)

        logger.info(
            f"Automatic PR run: checked={result.checked} low={result.low} "
            f"created={result.created} skipped={result.skipped}"
        )
        if result.created:
            self._notify_low_stock(result)
        return result

    def _notify_low_stock(self, result: AutoCreateResult) -> None:
        requests = self.db.query(PurchaseRequest).filter(
            PurchaseRequest.id.in_(result.created_ids)
        ).all()
        lines = [
            f"- {r.item.sku} in {r.warehouse.code}: {r.urgency} urgency, {r.quantity_requested} requested"
            for r in requests
        ]
        self.notifier.notify(
            Role.MANAGER.value,
            f"Low stock: {result.created} purchase request(s) raised",
            "The following purchase requests await approval:\n" + "\n".join(lines),
        )

    def _current_urgency(self, item_id: int, warehouse_id: int) -> Optional[str]:
        location = StockLedgerService(self.db).find_location(item_id, warehouse_id)
        if location is None:
            return None
        eff_min = planner.effective_minimum(location.min_stock, location.item.reorder_point)
        return planner.classify_urgency(location.current_stock, eff_min).value

    def _get(self, request_id: int) -> PurchaseRequest:
        request = self.db.get(PurchaseRequest, request_id)
        if request is None:
            raise NotFoundError("PurchaseRequest", request_id)
        return request

    def _require(self, model, record_id: int):
        record = self.db.get(model, record_id)
        if record is None:
            raise NotFoundError(model.__name__, record_id)
        return record
