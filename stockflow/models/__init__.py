from stockflow.models.catalog import Category, Item, Supplier, SupplierItem, Warehouse
from stockflow.models.procurement import (
    CancellationReason, DelayStatus, GoodsReceiptNote, GRNStatus, POStatus,
    PRSource, PRStatus, PurchaseOrder, PurchaseRequest
)
from stockflow.models.sequence import DocumentSequence
from stockflow.models.stock import StockLocation, build_location_code
from stockflow.models.transfer import TransferOrder, TransferPriority, TransferStatus

__all__ = [
    "Category",
    "Item",
    "Supplier",
    "SupplierItem",
    "Warehouse",
    "StockLocation",
    "build_location_code",
    "PurchaseRequest",
    "PurchaseOrder",
    "GoodsReceiptNote",
    "PRStatus",
    "PRSource",
    "POStatus",
    "GRNStatus",
    "CancellationReason",
    "DelayStatus",
    "TransferOrder",
    "TransferStatus",
    "TransferPriority",
    "DocumentSequence",
]
