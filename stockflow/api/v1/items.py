"""Item API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.schemas.catalog import ItemCreate, ItemResponse, ItemUpdate
from stockflow.services.catalog import CatalogService

router = APIRouter()


@router.get("", response_model=List[ItemResponse])
def list_items(
    category_id: Optional[int] = Query(None, description="Filter by category"),
    search: Optional[str] = Query(None, description="Search in SKU/name"),
    include_inactive: bool = Query(False, description="Include inactive items"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).list_items(
        category_id=category_id,
        search=search,
        include_inactive=include_inactive,
        skip=skip,
        limit=limit,
    )


@router.get("/{item_id}", response_model=ItemResponse)
def get_item(
    item_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).get_item(item_id)


@router.get("/{item_id}/recommended-reorder-point")
def recommended_reorder_point(
    item_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Suggested reorder point for an item.

    Daily consumption over the lead time, plus safety stock.
    """
    item = CatalogService(db, current_user).get_item(item_id)
    return {
        "item_id": item.id,
        "reorder_point": item.reorder_point,
        "recommended_reorder_point": CatalogService.recommended_reorder_point(item),
    }


@router.post("", response_model=ItemResponse, status_code=status.HTTP_201_CREATED)
def create_item(
    item_in: ItemCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).create_item(item_in.model_dump())


@router.put("/{item_id}", response_model=ItemResponse)
def update_item(
    item_id: int,
    item_update: ItemUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).update_item(item_id, item_update.model_dump(exclude_unset=True))


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_item(
    item_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    CatalogService(db, current_user).delete_item(item_id)
