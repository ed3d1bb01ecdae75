"""
StockFlow Transfer Models
Stock movements between warehouses
"""
from enum import Enum

from sqlalchemy import CheckConstraint, Column, Date, DateTime, ForeignKey, Integer, String, Text
from sqlalchemy.orm import relationship

from stockflow.core.database import Base
from stockflow.models.catalog import TimestampMixin


class TransferStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class TransferPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class TransferOrder(TimestampMixin, Base):
    """Transfer Order - moves one item from one warehouse to another"""
    __tablename__ = "transfer_orders"

    id = Column(Integer, primary_key=True)
    transfer_number = Column(String(20), nullable=False, unique=True, doc="TO + 6 digit counter")
    from_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    to_warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)

    requested_quantity = Column(Integer, nullable=False)
    approved_quantity = Column(Integer)
    transferred_quantity = Column(Integer)

    status = Column(String(20), nullable=False, default=TransferStatus.PENDING.value, index=True)
    priority = Column(String(10), nullable=False, default=TransferPriority.MEDIUM.value)
    reason = Column(Text)
    notes = Column(Text)
    cancellation_reason = Column(Text)
    expected_date = Column(Date)

    requested_by = Column(Integer)
    requested_at = Column(DateTime(timezone=True))
    approved_by = Column(Integer)
    approved_at = Column(DateTime(timezone=True))
    completed_by = Column(Integer)
    completed_at = Column(DateTime(timezone=True))
    cancelled_by = Column(Integer)
    cancelled_at = Column(DateTime(timezone=True))

    from_warehouse = relationship("Warehouse", foreign_keys=[from_warehouse_id])
    to_warehouse = relationship("Warehouse", foreign_keys=[to_warehouse_id])
    item = relationship("Item")

    __table_args__ = (
        CheckConstraint("from_warehouse_id <> to_warehouse_id", name="distinct_warehouses"),
        CheckConstraint("requested_quantity >= 1", name="requested_positive"),
        CheckConstraint(
            "approved_quantity IS NULL OR (approved_quantity >= 1 AND approved_quantity <= requested_quantity)",
            name="approved_in_range",
        ),
        CheckConstraint(
            "transferred_quantity IS NULL OR (transferred_quantity >= 1 AND transferred_quantity <= approved_quantity)",
            name="transferred_in_range",
        ),
    )
