"""
StockFlow Procurement Models
Purchase requests, purchase orders and goods receipt notes
"""
from enum import Enum

from sqlalchemy import (
    CheckConstraint, Column, Date, DateTime, ForeignKey, Index, Integer,
    Numeric, String, Text
)
from sqlalchemy.orm import relationship

from stockflow.core.database import Base
from stockflow.models.catalog import TimestampMixin


class PRStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    CONVERTED = "converted"


class PRSource(str, Enum):
    MANUAL = "manual"
    AUTOMATIC = "automatic"


class POStatus(str, Enum):
    DRAFT = "draft"
    SENT = "sent"
    ACKNOWLEDGED = "acknowledged"
    PARTIALLY_RECEIVED = "partially_received"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class CancellationReason(str, Enum):
    ADMIN_CANCELLED = "admin_cancelled"
    SUPPLIER_DECLINED = "supplier_declined"
    RECEIPT_REJECTED = "receipt_rejected"


class DelayStatus(str, Enum):
    NONE = "none"
    REQUESTED = "requested"
    APPROVED = "approved"
    REJECTED = "rejected"


class GRNStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


class PurchaseRequest(TimestampMixin, Base):
    """
    Purchase Request - internal request to replenish one item in one warehouse

    At most one pending request may exist per (item, warehouse); the partial
    unique index below is what stops overlapping automatic runs from
    raising the same request twice.
    """
    __tablename__ = "purchase_requests"

    id = Column(Integer, primary_key=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    preferred_supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"))
    quantity_requested = Column(Integer, nullable=False)

    status = Column(String(20), nullable=False, default=PRStatus.PENDING.value, index=True)
    source = Column(String(20), nullable=False, default=PRSource.MANUAL.value)
    urgency = Column(String(10), doc="Urgency at the time the request was raised")
    notes = Column(Text)
    decision_notes = Column(Text)

    requested_by = Column(Integer, doc="Null for requests raised by the automatic trigger")
    approved_by = Column(Integer)
    approved_at = Column(DateTime(timezone=True))

    item = relationship("Item")
    warehouse = relationship("Warehouse")
    preferred_supplier = relationship("Supplier")
    purchase_order = relationship("PurchaseOrder", back_populates="purchase_request", uselist=False)

    __table_args__ = (
        CheckConstraint("quantity_requested >= 1", name="quantity_positive"),
        Index(
            "uq_purchase_requests_open_pair",
            item_id, warehouse_id,
            unique=True,
            sqlite_where=status == PRStatus.PENDING.value,
            postgresql_where=status == PRStatus.PENDING.value,
        ),
    )


class PurchaseOrder(TimestampMixin, Base):
    """Purchase Order - commitment to a supplier"""
    __tablename__ = "purchase_orders"

    id = Column(Integer, primary_key=True)
    po_number = Column(String(20), nullable=False, unique=True)
    purchase_request_id = Column(
        Integer, ForeignKey("purchase_requests.id", ondelete="RESTRICT"), unique=True
    )
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)

    quantity_ordered = Column(Integer, nullable=False)
    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    total_amount = Column(Numeric(14, 2), nullable=False, default=0)
    expected_delivery_date = Column(Date)

    status = Column(String(30), nullable=False, default=POStatus.DRAFT.value, index=True)
    cancellation_reason = Column(String(30))
    notes = Column(Text)
    supplier_notes = Column(Text)

    # Supplier delivery delay request
    delay_status = Column(String(20), nullable=False, default=DelayStatus.NONE.value)
    delay_requested_date = Column(Date)
    delay_reason = Column(Text)

    created_by = Column(Integer)
    approved_by = Column(Integer)
    approved_at = Column(DateTime(timezone=True))
    responded_at = Column(DateTime(timezone=True))
    cancelled_by = Column(Integer)
    cancelled_at = Column(DateTime(timezone=True))

    purchase_request = relationship("PurchaseRequest", back_populates="purchase_order")
    supplier = relationship("Supplier")
    item = relationship("Item")
    warehouse = relationship("Warehouse")
    grn = relationship("GoodsReceiptNote", back_populates="purchase_order", uselist=False)

    __table_args__ = (
        CheckConstraint("quantity_ordered >= 1", name="quantity_positive"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
    )


class GoodsReceiptNote(TimestampMixin, Base):
    """
    Goods Receipt Note - physical receipt against an acknowledged PO

    notes is an append-only audit log; every decision adds a line.
    """
    __tablename__ = "goods_receipt_notes"

    id = Column(Integer, primary_key=True)
    grn_number = Column(String(20), nullable=False, unique=True)
    purchase_order_id = Column(
        Integer, ForeignKey("purchase_orders.id", ondelete="RESTRICT"), nullable=False, unique=True
    )
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False)

    quantity_ordered = Column(Integer, nullable=False, doc="Snapshot of the PO quantity")
    quantity_received = Column(Integer, nullable=False)
    batch_number = Column(String(50))
    expiry_date = Column(Date)

    status = Column(String(20), nullable=False, default=GRNStatus.PENDING.value, index=True)
    notes = Column(Text, nullable=False, default="")

    received_by = Column(Integer)
    approved_by = Column(Integer)
    approved_at = Column(DateTime(timezone=True))

    purchase_order = relationship("PurchaseOrder", back_populates="grn")
    item = relationship("Item")
    warehouse = relationship("Warehouse")

    __table_args__ = (
        CheckConstraint(
            "quantity_received >= 1 AND quantity_received <= quantity_ordered",
            name="quantity_received_in_range",
        ),
    )
