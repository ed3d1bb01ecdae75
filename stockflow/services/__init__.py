"""
StockFlow Business Services
Stock ledger, replenishment planning and the procurement/transfer workflows
"""

from .catalog import CatalogService
from .goods_receipts import GoodsReceiptService
from .purchase_orders import PurchaseOrderService
from .purchase_requests import AutoCreateResult, PurchaseRequestService
from .stock_ledger import StockLedgerService
from .transfers import TransferService

__all__ = [
    "AutoCreateResult",
    "CatalogService",
    "GoodsReceiptService",
    "PurchaseOrderService",
    "PurchaseRequestService",
    "StockLedgerService",
    "TransferService",
]
