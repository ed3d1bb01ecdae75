"""
StockFlow Transfer Schemas
"""
from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from stockflow.models import TransferPriority, TransferStatus
from stockflow.schemas.procurement import DecisionAction


class TransferCreate(BaseModel):
    from_warehouse_id: int
    to_warehouse_id: int
    item_id: int
    requested_quantity: int = Field(..., ge=1)
    priority: Optional[TransferPriority] = Field(None, description="Derived from source stock when omitted")
    reason: Optional[str] = None
    notes: Optional[str] = None
    expected_date: Optional[date] = None
    submit: bool = Field(True, description="Create as pending; false keeps it as a draft")

    @model_validator(mode="after")
    def check_warehouses(self):
        if self.from_warehouse_id == self.to_warehouse_id:
            raise ValueError("Source and destination warehouses must differ")
        return self


class TransferUpdate(BaseModel):
    requested_quantity: Optional[int] = Field(None, ge=1)
    priority: Optional[TransferPriority] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    expected_date: Optional[date] = None


class TransferDecision(BaseModel):
    action: DecisionAction
    approved_quantity: Optional[int] = Field(None, description="Defaults to the requested quantity")
    notes: Optional[str] = None


class TransferCompletion(BaseModel):
    transferred_quantity: Optional[int] = Field(None, description="Defaults to the approved quantity")
    notes: Optional[str] = None


class TransferCancel(BaseModel):
    reason: Optional[str] = None


class TransferResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    transfer_number: str
    from_warehouse_id: int
    to_warehouse_id: int
    item_id: int
    requested_quantity: int
    approved_quantity: Optional[int] = None
    transferred_quantity: Optional[int] = None
    status: TransferStatus
    priority: TransferPriority
    reason: Optional[str] = None
    notes: Optional[str] = None
    cancellation_reason: Optional[str] = None
    expected_date: Optional[date] = None
    requested_by: Optional[int] = None
    requested_at: Optional[datetime] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    completed_by: Optional[int] = None
    completed_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
