"""Supplier item terms API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.schemas.catalog import SupplierItemCreate, SupplierItemResponse, SupplierItemUpdate
from stockflow.services.catalog import CatalogService

router = APIRouter()


@router.get("", response_model=List[SupplierItemResponse])
def list_supplier_items(
    supplier_id: Optional[int] = Query(None, description="Filter by supplier"),
    item_id: Optional[int] = Query(None, description="Filter by item"),
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Active terms, preferred first then cheapest."""
    return CatalogService(db, current_user).list_supplier_items(supplier_id=supplier_id, item_id=item_id)


@router.post("", response_model=SupplierItemResponse, status_code=status.HTTP_201_CREATED)
def add_supplier_item(
    supplier_item_in: SupplierItemCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).add_supplier_item(supplier_item_in.model_dump())


@router.put("/{supplier_item_id}", response_model=SupplierItemResponse)
def update_supplier_item(
    supplier_item_id: int,
    supplier_item_update: SupplierItemUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).update_supplier_item(
        supplier_item_id, supplier_item_update.model_dump(exclude_unset=True)
    )


@router.delete("/{supplier_item_id}", status_code=status.HTTP_204_NO_CONTENT)
def remove_supplier_item(
    supplier_item_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    CatalogService(db, current_user).remove_supplier_item(supplier_item_id)
