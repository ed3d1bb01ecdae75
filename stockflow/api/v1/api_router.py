"""
Main API Router - Consolidates all module routes
"""

from fastapi import APIRouter

from stockflow.api.v1 import (
    automatic_trigger,
    categories,
    dashboard,
    goods_receipts,
    items,
    purchase_orders,
    purchase_requests,
    stock_locations,
    supplier_items,
    suppliers,
    transfers,
    warehouses,
)
from stockflow.schemas.common import ErrorResponse

# Domain errors share one body shape
api_router = APIRouter(responses={
    code: {"model": ErrorResponse} for code in (403, 404, 409)
})

# Catalog routes
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(suppliers.router, prefix="/suppliers", tags=["suppliers"])
api_router.include_router(supplier_items.router, prefix="/supplier-items", tags=["supplier-items"])
api_router.include_router(warehouses.router, prefix="/warehouses", tags=["warehouses"])

# Stock ledger routes
api_router.include_router(stock_locations.router, prefix="/stock-locations", tags=["stock-locations"])

# Procurement routes
api_router.include_router(purchase_requests.router, prefix="/purchase-requests", tags=["purchase-requests"])
api_router.include_router(purchase_orders.router, prefix="/purchase-orders", tags=["purchase-orders"])
api_router.include_router(goods_receipts.router, prefix="/grns", tags=["goods-receipts"])

# Transfer routes
api_router.include_router(transfers.router, prefix="/transfer-orders", tags=["transfer-orders"])

# Dashboard routes
api_router.include_router(dashboard.router, prefix="/dashboard", tags=["dashboard"])

# Automatic trigger routes
api_router.include_router(automatic_trigger.router, prefix="/automatic-trigger", tags=["automatic-trigger"])
