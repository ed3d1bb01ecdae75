"""Warehouse API endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.schemas.catalog import WarehouseCreate, WarehouseResponse, WarehouseUpdate
from stockflow.services.catalog import CatalogService

router = APIRouter()


@router.get("", response_model=List[WarehouseResponse])
def list_warehouses(
    include_inactive: bool = Query(False, description="Include inactive warehouses"),
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).list_warehouses(include_inactive=include_inactive)


@router.get("/{warehouse_id}", response_model=WarehouseResponse)
def get_warehouse(
    warehouse_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).get_warehouse(warehouse_id)


@router.post("", response_model=WarehouseResponse, status_code=status.HTTP_201_CREATED)
def create_warehouse(
    warehouse_in: WarehouseCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).create_warehouse(warehouse_in.model_dump())


@router.put("/{warehouse_id}", response_model=WarehouseResponse)
def update_warehouse(
    warehouse_id: int,
    warehouse_update: WarehouseUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Update warehouse details.

    The code can only change while the warehouse has no stock locations.
    """
    return CatalogService(db, current_user).update_warehouse(
        warehouse_id, warehouse_update.model_dump(exclude_unset=True)
    )


@router.delete("/{warehouse_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_warehouse(
    warehouse_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    CatalogService(db, current_user).delete_warehouse(warehouse_id)
