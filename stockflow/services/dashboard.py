"""
Dashboard Service
Headline counts for the landing page
"""
from typing import Any, Dict

from sqlalchemy import func
from sqlalchemy.orm import Session

from stockflow.core.permissions import authorize
from stockflow.core.security import Identity
from stockflow.models import (
    Category, GoodsReceiptNote, GRNStatus, Item, POStatus, PRStatus, PurchaseOrder,
    PurchaseRequest, StockLocation, Supplier, Warehouse
)
from stockflow.services import planner
from stockflow.services.transfers import TransferService


class DashboardService:
    """Read-only aggregate over the catalog, the ledger and the open workflows"""

    def __init__(self, db: Session, current_user: Identity):
        self.db = db
        self.current_user = current_user

    @authorize("dashboard.read")
    def summary(self) -> Dict[str, Any]:
        report = planner.low_stock_report(self.db)
        return {
            "role": self.current_user.role.value,
            "counts": {
                "categories": self.db.query(func.count(Category.id)).scalar(),
                "items": self.db.query(func.count(Item.id)).scalar(),
                "suppliers": self.db.query(func.count(Supplier.id)).scalar(),
                "warehouses": self.db.query(func.count(Warehouse.id)).scalar(),
                "stock_locations": self.db.query(func.count(StockLocation.id)).scalar(),
            },
            "open_work": {
                "pending_purchase_requests": self._count(PurchaseRequest, PRStatus.PENDING.value),
                "orders_awaiting_supplier": self._count(PurchaseOrder, POStatus.SENT.value),
                "pending_goods_receipts": self._count(GoodsReceiptNote, GRNStatus.PENDING.value),
            },
            "transfer_orders": TransferService(self.db, self.current_user).stats(),
            "low_stock": report["summary"],
            "low_stock_locations": report["items"],
        }

    def _count(self, model, status: str) -> int:
        return self.db.query(func.count(model.id)).filter(model.status == status).scalar()
