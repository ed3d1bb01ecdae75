"""
StockFlow Stock Schemas
Stock locations and the low-stock report
"""
from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StockLocationCreate(BaseModel):
    item_id: int
    warehouse_id: int
    aisle: Optional[str] = Field(None, max_length=10, description="Defaults to A")
    rack: Optional[str] = Field(None, max_length=10, description="Defaults to 01")
    bin: Optional[str] = Field(None, max_length=10, description="First free bin when omitted")
    current_stock: int = Field(0, ge=0, description="Opening balance")
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=1)

    @model_validator(mode="after")
    def check_thresholds(self):
        if self.min_stock is not None and self.max_stock is not None and self.max_stock < self.min_stock:
            raise ValueError("max_stock must not be below min_stock")
        return self


class StockLocationUpdate(BaseModel):
    """Placement and threshold changes; stock moves only through workflows"""
    aisle: Optional[str] = Field(None, max_length=10)
    rack: Optional[str] = Field(None, max_length=10)
    bin: Optional[str] = Field(None, max_length=10)
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=1)
    current_stock: Optional[int] = Field(None, description="Rejected if supplied")


class StockLocationResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    warehouse_id: int
    aisle: str
    rack: str
    bin: str
    location_code: str
    current_stock: int
    min_stock: int
    max_stock: int
    is_active: bool
    version: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ReorderSignalResponse(BaseModel):
    location_id: int
    item_id: int
    sku: str
    warehouse_id: int
    warehouse_code: str
    current_stock: int
    effective_minimum: int
    urgency: str
    is_low: bool
    suggested_quantity: int


class LowStockSummary(BaseModel):
    total_locations: int
    low_stock: int
    by_urgency: Dict[str, int]
    by_warehouse: Dict[str, int]


class LowStockReport(BaseModel):
    summary: LowStockSummary
    items: List[ReorderSignalResponse]
