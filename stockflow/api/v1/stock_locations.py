"""Stock Location API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.permissions import check_permission
from stockflow.core.security import Identity
from stockflow.schemas.stock import (
    LowStockReport, StockLocationCreate, StockLocationResponse, StockLocationUpdate
)
from stockflow.services import planner
from stockflow.services.stock_ledger import StockLedgerService

router = APIRouter()


@router.get("", response_model=List[StockLocationResponse])
def list_locations(
    warehouse_id: Optional[int] = Query(None, description="Filter by warehouse"),
    item_id: Optional[int] = Query(None, description="Filter by item"),
    include_inactive: bool = Query(False, description="Include inactive locations"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return StockLedgerService(db, current_user).list_locations(
        warehouse_id=warehouse_id,
        item_id=item_id,
        include_inactive=include_inactive,
        skip=skip,
        limit=limit,
    )


@router.get("/low-stock", response_model=LowStockReport)
def low_stock(
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Low-stock report.

    Locations at or below their effective minimum, most urgent first, with
    counts per urgency and per warehouse.
    """
    check_permission("stock.read", current_user.role)
    return planner.low_stock_report(db)


@router.get("/{location_id}", response_model=StockLocationResponse)
def get_location(
    location_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return StockLedgerService(db, current_user).get_location(location_id)


@router.post("", response_model=StockLocationResponse, status_code=status.HTTP_201_CREATED)
def create_location(
    location_in: StockLocationCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Create a stock location for an item in a warehouse.

    Omitted thresholds fall back to the configured defaults.
    """
    data = location_in.model_dump(exclude_none=True)
    return StockLedgerService(db, current_user).create_location(data)


@router.put("/{location_id}", response_model=StockLocationResponse)
def update_location(
    location_id: int,
    location_update: StockLocationUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Update placement and thresholds.

    Changing aisle, rack or bin regenerates the location code. Stock cannot
    be set here.
    """
    return StockLedgerService(db, current_user).update_location(
        location_id, location_update.model_dump(exclude_unset=True)
    )


@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_location(
    location_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    StockLedgerService(db, current_user).delete_location(location_id)
