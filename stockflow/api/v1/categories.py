"""Category API endpoints"""

from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.schemas.catalog import CategoryCreate, CategoryResponse, CategoryUpdate
from stockflow.services.catalog import CatalogService

router = APIRouter()


@router.get("", response_model=List[CategoryResponse])
def list_categories(
    include_inactive: bool = Query(False, description="Include inactive categories"),
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).list_categories(include_inactive=include_inactive)


@router.get("/{category_id}", response_model=CategoryResponse)
def get_category(
    category_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).get_category(category_id)


@router.post("", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
def create_category(
    category_in: CategoryCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).create_category(category_in.model_dump())


@router.put("/{category_id}", response_model=CategoryResponse)
def update_category(
    category_id: int,
    category_update: CategoryUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return CatalogService(db, current_user).update_category(
        category_id, category_update.model_dump(exclude_unset=True)
    )


@router.delete("/{category_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_category(
    category_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Refused while items still reference the category."""
    CatalogService(db, current_user).delete_category(category_id)
