"""StockFlow v1 API endpoints"""

from . import (
    automatic_trigger, categories, goods_receipts, items, purchase_orders,
    purchase_requests, stock_locations, supplier_items, suppliers, transfers, warehouses
)

__all__ = [
    "automatic_trigger", "categories", "goods_receipts", "items", "purchase_orders",
    "purchase_requests", "stock_locations", "supplier_items", "suppliers", "transfers", "warehouses",
]
