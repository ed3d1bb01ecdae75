"""Purchase Order API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.models import POStatus
from stockflow.schemas.procurement import (
    DelayDecision, DelayRequest, PurchaseOrderCancel, PurchaseOrderCreate,
    PurchaseOrderResponse, PurchaseOrderUpdate, SupplierReply
)
from stockflow.services.purchase_orders import PurchaseOrderService

router = APIRouter()


@router.get("", response_model=List[PurchaseOrderResponse])
def list_orders(
    status_filter: Optional[POStatus] = Query(None, alias="status", description="Filter by status"),
    supplier_id: Optional[int] = Query(None, description="Filter by supplier"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    List purchase orders.

    Supplier users only see orders addressed to them.
    """
    return PurchaseOrderService(db, current_user).list_orders(
        status=status_filter.value if status_filter else None,
        supplier_id=supplier_id,
        skip=skip,
        limit=limit,
    )


@router.get("/{order_id}", response_model=PurchaseOrderResponse)
def get_order(
    order_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseOrderService(db, current_user).get_order(order_id)


@router.post("", response_model=PurchaseOrderResponse, status_code=status.HTTP_201_CREATED)
def create_order(
    order_in: PurchaseOrderCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseOrderService(db, current_user).create_order(order_in.model_dump())


@router.put("/{order_id}", response_model=PurchaseOrderResponse)
def edit_order(
    order_id: int,
    order_update: PurchaseOrderUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Terms can change only while the order is draft or sent."""
    return PurchaseOrderService(db, current_user).edit_order(
        order_id, order_update.model_dump(exclude_unset=True)
    )


@router.post("/{order_id}/approve", response_model=PurchaseOrderResponse)
def approve_order(
    order_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Approve a draft and send it to the supplier."""
    return PurchaseOrderService(db, current_user).approve_order(order_id)


@router.post("/{order_id}/cancel", response_model=PurchaseOrderResponse)
def cancel_order(
    order_id: int,
    cancel_in: PurchaseOrderCancel,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseOrderService(db, current_user).cancel_order(order_id, cancel_in.reason)


@router.post("/{order_id}/respond", response_model=PurchaseOrderResponse)
def respond(
    order_id: int,
    reply: SupplierReply,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Supplier acknowledges or declines a sent order."""
    return PurchaseOrderService(db, current_user).respond(order_id, reply.action.value, reply.notes)


@router.post("/{order_id}/delay", response_model=PurchaseOrderResponse)
def request_delay(
    order_id: int,
    delay_in: DelayRequest,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseOrderService(db, current_user).request_delay(order_id, delay_in.new_date, delay_in.reason)


@router.post("/{order_id}/delay/decision", response_model=PurchaseOrderResponse)
def decide_delay(
    order_id: int,
    decision: DelayDecision,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseOrderService(db, current_user).decide_delay(order_id, decision.approve)
