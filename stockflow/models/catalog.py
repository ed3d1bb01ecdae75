"""
StockFlow Catalog Models
Reference data: categories, warehouses, suppliers, items and supplier terms
"""
from sqlalchemy import (
    Boolean, CheckConstraint, Column, DateTime, ForeignKey, Integer,
    Numeric, String, Text, UniqueConstraint
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from stockflow.core.database import Base


class TimestampMixin:
    created_at = Column(DateTime(timezone=True), server_default=func.current_timestamp(), doc="Record creation timestamp")
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.current_timestamp(),
        onupdate=func.current_timestamp(),
        doc="Last update timestamp"
    )


class Category(TimestampMixin, Base):
    """Item category"""
    __tablename__ = "categories"

    id = Column(Integer, primary_key=True)
    name = Column(String(100), nullable=False, unique=True)
    description = Column(Text)
    is_active = Column(Boolean, nullable=False, default=True)

    items = relationship("Item", back_populates="category")


class Warehouse(TimestampMixin, Base):
    """
    Physical warehouse

    The code prefixes every stock location code generated in this warehouse.
    """
    __tablename__ = "warehouses"

    id = Column(Integer, primary_key=True)
    code = Column(String(20), nullable=False, unique=True, doc="Short uppercase code, e.g. WH01")
    name = Column(String(100), nullable=False)
    address = Column(Text)
    capacity = Column(Integer, doc="Nominal capacity in units")
    is_active = Column(Boolean, nullable=False, default=True)

    locations = relationship("StockLocation", back_populates="warehouse")

    __table_args__ = (
        CheckConstraint("capacity IS NULL OR capacity >= 0", name="capacity_non_negative"),
    )


class Supplier(TimestampMixin, Base):
    """Supplier master; user_id links the supplier's portal identity"""
    __tablename__ = "suppliers"

    id = Column(Integer, primary_key=True)
    name = Column(String(150), nullable=False)
    contact_person = Column(String(100))
    email = Column(String(150))
    phone = Column(String(30))
    address = Column(Text)
    user_id = Column(Integer, index=True, doc="Identity user id of the supplier's portal account")
    is_active = Column(Boolean, nullable=False, default=True)

    supplier_items = relationship("SupplierItem", back_populates="supplier")


class Item(TimestampMixin, Base):
    """Stock item master"""
    __tablename__ = "items"

    id = Column(Integer, primary_key=True)
    sku = Column(String(50), nullable=False, unique=True)
    name = Column(String(150), nullable=False)
    description = Column(Text)
    category_id = Column(Integer, ForeignKey("categories.id", ondelete="RESTRICT"), nullable=False, index=True)
    unit_of_measure = Column(String(20), nullable=False, default="pcs")

    # Replenishment parameters
    lead_time_days = Column(Integer, nullable=False, default=0)
    daily_consumption_rate = Column(Numeric(10, 2), nullable=False, default=0)
    safety_stock = Column(Integer, nullable=False, default=0)
    reorder_point = Column(Integer, nullable=False, default=0, doc="Already includes safety stock")

    unit_price = Column(Numeric(12, 2), nullable=False, default=0)
    preferred_supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer)
    updated_by = Column(Integer)

    category = relationship("Category", back_populates="items")
    preferred_supplier = relationship("Supplier")
    locations = relationship("StockLocation", back_populates="item")

    __table_args__ = (
        CheckConstraint("lead_time_days >= 0", name="lead_time_non_negative"),
        CheckConstraint("daily_consumption_rate >= 0", name="consumption_non_negative"),
        CheckConstraint("safety_stock >= 0", name="safety_stock_non_negative"),
        CheckConstraint("reorder_point >= 0", name="reorder_point_non_negative"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
    )


class SupplierItem(TimestampMixin, Base):
    """A supplier's price and lead-time terms for one item"""
    __tablename__ = "supplier_items"

    id = Column(Integer, primary_key=True)
    supplier_id = Column(Integer, ForeignKey("suppliers.id", ondelete="RESTRICT"), nullable=False, index=True)
    item_id = Column(Integer, ForeignKey("items.id", ondelete="RESTRICT"), nullable=False, index=True)
    unit_price = Column(Numeric(12, 2), nullable=False)
    lead_time_days = Column(Integer, nullable=False, default=0)
    minimum_order_quantity = Column(Integer, nullable=False, default=1)
    is_preferred = Column(Boolean, nullable=False, default=False)
    is_active = Column(Boolean, nullable=False, default=True)

    supplier = relationship("Supplier", back_populates="supplier_items")
    item = relationship("Item")

    __table_args__ = (
        UniqueConstraint("supplier_id", "item_id", name="uq_supplier_items_supplier_item"),
        CheckConstraint("unit_price >= 0", name="unit_price_non_negative"),
        CheckConstraint("lead_time_days >= 0", name="lead_time_non_negative"),
        CheckConstraint("minimum_order_quantity >= 1", name="moq_positive"),
    )
