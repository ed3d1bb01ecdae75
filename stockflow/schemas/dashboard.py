"""
StockFlow Dashboard Schemas
"""
from typing import Dict, List

from pydantic import BaseModel

from .stock import LowStockSummary, ReorderSignalResponse


class CatalogCounts(BaseModel):
    categories: int
    items: int
    suppliers: int
    warehouses: int
    stock_locations: int


class OpenWork(BaseModel):
    """Documents waiting on someone"""
    pending_purchase_requests: int
    orders_awaiting_supplier: int
    pending_goods_receipts: int


class DashboardSummary(BaseModel):
    role: str
    counts: CatalogCounts
    open_work: OpenWork
    transfer_orders: Dict[str, int]
    low_stock: LowStockSummary
    low_stock_locations: List[ReorderSignalResponse]
