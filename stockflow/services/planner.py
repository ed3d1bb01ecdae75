"""
Replenishment Planner

The classification functions are pure: they take plain values and return
plain values, so the dashboard and the automatic trigger share one rule.
``load_snapshots`` is the only part that reads the database.
"""
from collections import Counter
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from stockflow.models import Item, StockLocation, Warehouse


class Urgency(str, Enum):
    URGENT = "urgent"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


URGENCY_RANK = {Urgency.URGENT: 0, Urgency.HIGH: 1, Urgency.MEDIUM: 2, Urgency.LOW: 3}


@dataclass(frozen=True)
class LocationSnapshot:
    location_id: int
    item_id: int
    warehouse_id: int
    current_stock: int
    min_stock: int
    max_stock: int
    reorder_point: int
    preferred_supplier_id: Optional[int] = None
    sku: str = ""
    warehouse_code: str = ""


@dataclass(frozen=True)
class ReorderSignal:
    snapshot: LocationSnapshot
    effective_minimum: int
    urgency: Urgency
    is_low: bool
    suggested_quantity: int

    def to_dict(self) -> Dict:
        return {
            "location_id": self.snapshot.location_id,
            "item_id": self.snapshot.item_id,
            "sku": self.snapshot.sku,
            "warehouse_id": self.snapshot.warehouse_id,
            "warehouse_code": self.snapshot.warehouse_code,
            "current_stock": self.snapshot.current_stock,
            "effective_minimum": self.effective_minimum,
            "urgency": self.urgency.value,
            "is_low": self.is_low,
            "suggested_quantity": self.suggested_quantity,
        }


def effective_minimum(min_stock: int, reorder_point: int) -> int:
    """Higher of the location minimum and the item reorder point.

    reorder_point already includes safety stock.
    """
    return max(min_stock or 0, reorder_point or 0)


def is_low(current_stock: int, eff_min: int) -> bool:
    return current_stock <= eff_min


def classify_urgency(current_stock: int, eff_min: int) -> Urgency:
    if current_stock == 0:
        return Urgency.URGENT
    if current_stock <= eff_min * 0.5:
        return Urgency.HIGH
    if current_stock <= eff_min:
        return Urgency.MEDIUM
    return Urgency.LOW


def suggested_quantity(current_stock: int, min_stock: int, max_stock: int, reorder_point: int) -> int:
    """Quantity that brings the location back up to its ceiling, at least 1"""
    target = max(max_stock, effective_minimum(min_stock, reorder_point))
    return max(target - current_stock, 1)


def evaluate_snapshot(snapshot: LocationSnapshot) -> ReorderSignal:
    eff_min = effective_minimum(snapshot.min_stock, snapshot.reorder_point)
    return ReorderSignal(
        snapshot=snapshot,
        effective_minimum=eff_min,
        urgency=classify_urgency(snapshot.current_stock, eff_min),
        is_low=is_low(snapshot.current_stock, eff_min),
        suggested_quantity=suggested_quantity(
            snapshot.current_stock, snapshot.min_stock, snapshot.max_stock, snapshot.reorder_point
        ),
    )


def evaluate(snapshots: Iterable[LocationSnapshot]) -> List[ReorderSignal]:
    return [evaluate_snapshot(s) for s in snapshots]


def low_stock_signals(snapshots: Iterable[LocationSnapshot]) -> List[ReorderSignal]:
    """Low signals, most urgent first"""
    signals = [s for s in evaluate(snapshots) if s.is_low]
    return sorted(signals, key=lambda s: (URGENCY_RANK[s.urgency], s.snapshot.current_stock))


def summarize(signals: Iterable[ReorderSignal]) -> Dict:
    signals = list(signals)
    low = [s for s in signals if s.is_low]
    by_urgency = Counter(s.urgency.value for s in low)
    by_warehouse = Counter(s.snapshot.warehouse_code for s in low)
    return {
        "total_locations": len(signals),
        "low_stock": len(low),
        "by_urgency": {u.value: by_urgency.get(u.value, 0) for u in Urgency},
        "by_warehouse": dict(by_warehouse),
    }


def load_snapshots(db: Session) -> List[LocationSnapshot]:
    """Active locations joined with their active items"""
    rows = db.query(
        StockLocation.id,
        StockLocation.item_id,
        StockLocation.warehouse_id,
        StockLocation.current_stock,
        StockLocation.min_stock,
        StockLocation.max_stock,
        Item.reorder_point,
        Item.preferred_supplier_id,
        Item.sku,
        Warehouse.code,
    ).join(Item, Item.id == StockLocation.item_id).join(
        Warehouse, Warehouse.id == StockLocation.warehouse_id
    ).filter(
        StockLocation.is_active.is_(True),
        Item.is_active.is_(True),
        Warehouse.is_active.is_(True),
    ).order_by(StockLocation.id).all()

    return [
        LocationSnapshot(
            location_id=row[0],
            item_id=row[1],
            warehouse_id=row[2],
            current_stock=row[3],
            min_stock=row[4],
            max_stock=row[5],
            reorder_point=row[6],
            preferred_supplier_id=row[7],
            sku=row[8],
            warehouse_code=row[9],
        )
        for row in rows
    ]


def low_stock_report(db: Session) -> Dict:
    snapshots = load_snapshots(db)
    signals = evaluate(snapshots)
    return {
        "summary": summarize(signals),
        "items": [s.to_dict() for s in low_stock_signals(snapshots)],
    }
