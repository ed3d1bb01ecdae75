"""
StockFlow Pydantic Schemas
Request/Response models for the StockFlow API
"""

from .common import ErrorResponse
from .dashboard import DashboardSummary
from .catalog import (
    CategoryCreate, CategoryResponse, CategoryUpdate,
    ItemCreate, ItemResponse, ItemUpdate,
    SupplierCreate, SupplierItemCreate, SupplierItemResponse, SupplierItemUpdate,
    SupplierResponse, SupplierUpdate,
    WarehouseCreate, WarehouseResponse, WarehouseUpdate
)
from .stock import (
    LowStockReport, StockLocationCreate, StockLocationResponse, StockLocationUpdate
)
from .procurement import (
    AutoCreateResponse, ConvertToPurchaseOrder, DecisionAction, DelayDecision, DelayRequest,
    GoodsReceiptCreate, GoodsReceiptDecision, GoodsReceiptResponse,
    PurchaseOrderCancel, PurchaseOrderCreate, PurchaseOrderResponse, PurchaseOrderUpdate,
    PurchaseRequestCreate, PurchaseRequestDecision, PurchaseRequestResponse, PurchaseRequestUpdate,
    QuantityCheckRequest, QuantityCheckResponse, SupplierAction
)
from .transfer import (
    TransferCancel, TransferCompletion, TransferCreate, TransferDecision,
    TransferResponse, TransferUpdate
)
