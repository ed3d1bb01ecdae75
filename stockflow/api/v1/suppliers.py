"""Supplier API endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.schemas.catalog import SupplierCreate, SupplierResponse, SupplierUpdate
from stockflow.services.catalog import CatalogService

router = APIRouter()


@router.get("", response_model=List[SupplierResponse])
def list_suppliers(
    include_inactive: bool = Query(False, description="Include inactive suppliers"),
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).list_suppliers(include_inactive=include_inactive)


@router.get("/{supplier_id}", response_model=SupplierResponse)
def get_supplier(
    supplier_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).get_supplier(supplier_id)


@router.post("", response_model=SupplierResponse, status_code=status.HTTP_201_CREATED)
def create_supplier(
    supplier_in: SupplierCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).create_supplier(supplier_in.model_dump())


@router.put("/{supplier_id}", response_model=SupplierResponse)
def update_supplier(
    supplier_id: int,
    supplier_update: SupplierUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).update_supplier(
        supplier_id, supplier_update.model_dump(exclude_unset=True)
    )


@router.delete("/{supplier_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_supplier(
    supplier_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    CatalogService(db, current_user).delete_supplier(supplier_id)
