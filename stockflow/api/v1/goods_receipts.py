"""Goods Receipt Note API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.models import GRNStatus
from stockflow.schemas.procurement import (
    GoodsReceiptCreate, GoodsReceiptDecision, GoodsReceiptResponse
)
from stockflow.services.goods_receipts import GoodsReceiptService

router = APIRouter()


@router.get("", response_model=List[GoodsReceiptResponse])
def list_grns(
    status_filter: Optional[GRNStatus] = Query(None, alias="status", description="Filter by status"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return GoodsReceiptService(db, current_user).list_grns(
        status=status_filter.value if status_filter else None, skip=skip, limit=limit
    )


@router.get("/{grn_id}", response_model=GoodsReceiptResponse)
def get_grn(
    grn_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return GoodsReceiptService(db, current_user).get_grn(grn_id)


@router.post("", response_model=GoodsReceiptResponse, status_code=status.HTTP_201_CREATED)
def create_grn(
    grn_in: GoodsReceiptCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Record goods received against an acknowledged purchase order.

    One receipt per order; the order moves to partially_received.
    """
    return GoodsReceiptService(db, current_user).create_grn(
        purchase_order_id=grn_in.purchase_order_id,
        quantity_received=grn_in.quantity_received,
        batch_number=grn_in.batch_number,
        expiry_date=grn_in.expiry_date,
        notes=grn_in.notes,
    )


@router.post("/{grn_id}/decision", response_model=GoodsReceiptResponse)
def decide_grn(
    grn_id: int,
    decision: GoodsReceiptDecision,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Approve or reject a pending receipt.

    Approval adds the received quantity to stock and completes the order.
    """
    return GoodsReceiptService(db, current_user).approve(grn_id, decision.action.value, decision.notes)
