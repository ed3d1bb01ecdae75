"""
StockFlow Catalog Schemas
Request/response models for categories, warehouses, suppliers and items
"""
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


# Categories

class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    description: Optional[str] = None
    is_active: bool = True


class CategoryCreate(CategoryBase):
    pass


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None
    is_active: Optional[bool] = None


class CategoryResponse(CategoryBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Warehouses

class WarehouseBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=20, description="Warehouse code, stored uppercase")
    name: str = Field(..., min_length=1, max_length=100)
    address: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0, description="Nominal capacity in units")
    is_active: bool = True

    @field_validator("code")
    @classmethod
    def normalise_code(cls, v: str) -> str:
        code = v.strip().upper()
        if "-" in code:
            raise ValueError("Warehouse code cannot contain '-' (used as location separator)")
        return code


class WarehouseCreate(WarehouseBase):
    pass


class WarehouseUpdate(BaseModel):
    code: Optional[str] = Field(None, min_length=1, max_length=20)
    name: Optional[str] = Field(None, min_length=1, max_length=100)
    address: Optional[str] = None
    capacity: Optional[int] = Field(None, ge=0)
    is_active: Optional[bool] = None


class WarehouseResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    code: str
    name: str
    address: Optional[str] = None
    capacity: Optional[int] = None
    is_active: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Suppliers

class SupplierBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=150, description="Supplier name")
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=150, description="Order notifications are sent here")
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    user_id: Optional[int] = Field(None, description="Portal user that acts for this supplier")
    is_active: bool = True


class SupplierCreate(SupplierBase):
    pass


class SupplierUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    contact_person: Optional[str] = Field(None, max_length=100)
    email: Optional[str] = Field(None, max_length=150)
    phone: Optional[str] = Field(None, max_length=30)
    address: Optional[str] = None
    user_id: Optional[int] = None
    is_active: Optional[bool] = None


class SupplierResponse(SupplierBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Items

class ItemBase(BaseModel):
    sku: str = Field(..., min_length=1, max_length=50, description="Stock keeping unit")
    name: str = Field(..., min_length=1, max_length=150)
    description: Optional[str] = None
    category_id: int
    unit_of_measure: str = Field("pcs", max_length=20)
    lead_time_days: int = Field(0, ge=0)
    daily_consumption_rate: Decimal = Field(Decimal("0"), ge=0)
    safety_stock: int = Field(0, ge=0)
    reorder_point: int = Field(0, ge=0, description="Includes safety stock")
    unit_price: Decimal = Field(Decimal("0"), ge=0)
    preferred_supplier_id: Optional[int] = None
    is_active: bool = True


class ItemCreate(ItemBase):
    pass


class ItemUpdate(BaseModel):
    sku: Optional[str] = Field(None, min_length=1, max_length=50)
    name: Optional[str] = Field(None, min_length=1, max_length=150)
    description: Optional[str] = None
    category_id: Optional[int] = None
    unit_of_measure: Optional[str] = Field(None, max_length=20)
    lead_time_days: Optional[int] = Field(None, ge=0)
    daily_consumption_rate: Optional[Decimal] = Field(None, ge=0)
    safety_stock: Optional[int] = Field(None, ge=0)
    reorder_point: Optional[int] = Field(None, ge=0)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    preferred_supplier_id: Optional[int] = None
    is_active: Optional[bool] = None


class ItemResponse(ItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_by: Optional[int] = None
    updated_by: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Supplier items

class SupplierItemCreate(BaseModel):
    supplier_id: int
    item_id: int
    unit_price: Decimal = Field(..., ge=0)
    lead_time_days: int = Field(0, ge=0)
    minimum_order_quantity: int = Field(1, ge=1)
    is_preferred: bool = False
    is_active: bool = True


class SupplierItemUpdate(BaseModel):
    unit_price: Optional[Decimal] = Field(None, ge=0)
    lead_time_days: Optional[int] = Field(None, ge=0)
    minimum_order_quantity: Optional[int] = Field(None, ge=1)
    is_preferred: Optional[bool] = None
    is_active: Optional[bool] = None


class SupplierItemResponse(SupplierItemCreate):
    model_config = ConfigDict(from_attributes=True)

    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
