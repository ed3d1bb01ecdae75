"""
StockFlow Stock Models
Per-(warehouse, item) stock ledger records
"""
from sqlalchemy import (
    Boolean, CheckConstraint, Column, ForeignKey, Index, Integer, String
)
from sqlalchemy.orm import relationship

from stockflow.core.database import Base
from stockflow.models.catalog import TimestampMixin


def build_location_code(warehouse_code: str, aisle: str, rack: str, bin_code: str) -> str:
    """Location codes are derived, never entered"""
    return f"{warehouse_code}-{aisle}-{rack}-{bin_code}"


class StockLocation(TimestampMixin, Base):
    """
    Stock Location - the authoritative quantity for one item in one warehouse

    current_stock is written only by goods receipt approval, transfer
    completion and the opening balance at creation.
    """
    __tablename__ = "stock_locations"

    id = Column(Integer, primary_key=True)
    warehouse_id = Column(Integer, ForeignKey("warehouses.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)

    aisle = Column(String(10), nullable=False, default="A")
    rack = Column(String(10), nullable=False, default="01")
    bin = Column(String(10), nullable=False, default="01")
    location_code = Column(String(60), nullable=False, unique=True)

    current_stock = Column(Integer, nullable=False, default=0)
    min_stock = Column(Integer, nullable=False, default=0)
    max_stock = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    version = Column(Integer, nullable=False, default=0, doc="Bumped on every ledger write")

    warehouse = relationship("Warehouse", back_populates="locations")
    item = relationship("Item", back_populates="locations")

    __table_args__ = (
        CheckConstraint("current_stock >= 0", name="current_stock_non_negative"),
        CheckConstraint("min_stock >= 0", name="min_stock_non_negative"),
        CheckConstraint("max_stock >= 1", name="max_stock_positive"),
        Index(
            "uq_stock_locations_active_pair",
            warehouse_id, item_id,
            unique=True,
            sqlite_where=is_active.is_(True),
            postgresql_where=is_active.is_(True),
        ),
    )

    def regenerate_code(self) -> str:
        self.location_code = build_location_code(self.warehouse.code, self.aisle, self.rack, self.bin)
        return self.location_code
