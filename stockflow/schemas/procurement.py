"""
StockFlow Procurement Schemas
Purchase requests, purchase orders and goods receipt notes
"""
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from stockflow.models import (
    CancellationReason, DelayStatus, GRNStatus, POStatus, PRSource, PRStatus
)


class DecisionAction(str, Enum):
    APPROVE = "approve"
    REJECT = "reject"


class SupplierAction(str, Enum):
    ACKNOWLEDGE = "acknowledge"
    DECLINE = "decline"


# Purchase requests

class PurchaseRequestCreate(BaseModel):
    item_id: int
    warehouse_id: int
    quantity_requested: int = Field(..., ge=1)
    preferred_supplier_id: Optional[int] = None
    notes: Optional[str] = None


class PurchaseRequestUpdate(BaseModel):
    quantity_requested: Optional[int] = Field(None, ge=1)
    preferred_supplier_id: Optional[int] = None
    notes: Optional[str] = None


class PurchaseRequestDecision(BaseModel):
    action: DecisionAction
    notes: Optional[str] = None


class ConvertToPurchaseOrder(BaseModel):
    supplier_id: int
    unit_price: Optional[Decimal] = Field(None, ge=0, description="Defaults to supplier terms, then item price")
    expected_delivery_date: Optional[date] = Field(None, description="Defaults to today plus lead time")
    notes: Optional[str] = None


class QuantityCheckRequest(BaseModel):
    item_id: int
    warehouse_id: int
    quantity: int


class QuantityCheckResponse(BaseModel):
    valid: bool
    current_stock: int
    max_stock: int
    effective_minimum: int
    suggested_quantity: int
    warnings: List[str] = []


class AutoCreateResponse(BaseModel):
    checked: int
    low: int
    created: int
    created_ids: List[int]
    skipped: int


class PurchaseRequestResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    item_id: int
    warehouse_id: int
    preferred_supplier_id: Optional[int] = None
    quantity_requested: int
    status: PRStatus
    source: PRSource
    urgency: Optional[str] = None
    notes: Optional[str] = None
    decision_notes: Optional[str] = None
    requested_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Purchase orders

class PurchaseOrderCreate(BaseModel):
    supplier_id: int
    item_id: int
    warehouse_id: int
    quantity_ordered: int = Field(..., ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None


class PurchaseOrderUpdate(BaseModel):
    quantity_ordered: Optional[int] = Field(None, ge=1)
    unit_price: Optional[Decimal] = Field(None, ge=0)
    expected_delivery_date: Optional[date] = None
    notes: Optional[str] = None


class PurchaseOrderCancel(BaseModel):
    reason: Optional[str] = None


class SupplierReply(BaseModel):
    action: SupplierAction
    notes: Optional[str] = None


class DelayRequest(BaseModel):
    new_date: date
    reason: str = Field(..., min_length=1)


class DelayDecision(BaseModel):
    approve: bool


class PurchaseOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    po_number: str
    purchase_request_id: Optional[int] = None
    supplier_id: int
    item_id: int
    warehouse_id: int
    quantity_ordered: int
    unit_price: Decimal
    total_amount: Decimal
    expected_delivery_date: Optional[date] = None
    status: POStatus
    cancellation_reason: Optional[CancellationReason] = None
    notes: Optional[str] = None
    supplier_notes: Optional[str] = None
    delay_status: DelayStatus
    delay_requested_date: Optional[date] = None
    delay_reason: Optional[str] = None
    created_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    responded_at: Optional[datetime] = None
    cancelled_by: Optional[int] = None
    cancelled_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# Goods receipts

class GoodsReceiptCreate(BaseModel):
    purchase_order_id: int
    quantity_received: int
    batch_number: Optional[str] = Field(None, max_length=50)
    expiry_date: Optional[date] = None
    notes: Optional[str] = None


class GoodsReceiptDecision(BaseModel):
    action: DecisionAction
    notes: Optional[str] = None


class GoodsReceiptResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    grn_number: str
    purchase_order_id: int
    item_id: int
    warehouse_id: int
    quantity_ordered: int
    quantity_received: int
    batch_number: Optional[str] = None
    expiry_date: Optional[date] = None
    status: GRNStatus
    notes: str = ""
    received_by: Optional[int] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
