"""Transfer Order API endpoints"""

from typing import Dict, List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.models import TransferPriority, TransferStatus
from stockflow.schemas.transfer import (
    TransferCancel, TransferCompletion, TransferCreate, TransferDecision,
    TransferResponse, TransferUpdate
)
from stockflow.services.transfers import TransferService

router = APIRouter()


@router.get("", response_model=List[TransferResponse])
def list_transfers(
    status_filter: Optional[TransferStatus] = Query(None, alias="status", description="Filter by status"),
    warehouse_id: Optional[int] = Query(None, description="Source or destination warehouse"),
    priority: Optional[TransferPriority] = Query(None, description="Filter by priority"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return TransferService(db, current_user).list_transfers(
        status=status_filter.value if status_filter else None,
        warehouse_id=warehouse_id,
        priority=priority.value if priority else None,
        skip=skip,
        limit=limit,
    )


@router.get("/stats", response_model=Dict[str, int])
def transfer_stats(
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Transfer counts per status."""
    return TransferService(db, current_user).stats()


@router.get("/{transfer_id}", response_model=TransferResponse)
def get_transfer(
    transfer_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return TransferService(db, current_user).get_transfer(transfer_id)


@router.post("", response_model=TransferResponse, status_code=status.HTTP_201_CREATED)
def create_transfer(
    transfer_in: TransferCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Request a stock transfer between warehouses.

    Priority defaults to the urgency of the source location's stock.
    """
    return TransferService(db, current_user).create_transfer(
        from_warehouse_id=transfer_in.from_warehouse_id,
        to_warehouse_id=transfer_in.to_warehouse_id,
        item_id=transfer_in.item_id,
        requested_quantity=transfer_in.requested_quantity,
        priority=transfer_in.priority.value if transfer_in.priority else None,
        reason=transfer_in.reason,
        notes=transfer_in.notes,
        expected_date=transfer_in.expected_date,
        submit=transfer_in.submit,
    )


@router.put("/{transfer_id}", response_model=TransferResponse)
def update_transfer(
    transfer_id: int,
    transfer_update: TransferUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return TransferService(db, current_user).update_transfer(
        transfer_id, transfer_update.model_dump(exclude_unset=True)
    )


@router.post("/{transfer_id}/submit", response_model=TransferResponse)
def submit_transfer(
    transfer_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return TransferService(db, current_user).submit(transfer_id)


@router.post("/{transfer_id}/decision", response_model=TransferResponse)
def decide_transfer(
    transfer_id: int,
    decision: TransferDecision,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return TransferService(db, current_user).decide(
        transfer_id,
        decision.action.value,
        approved_quantity=decision.approved_quantity,
        notes=decision.notes,
    )


@router.post("/{transfer_id}/complete", response_model=TransferResponse)
def complete_transfer(
    transfer_id: int,
    completion: TransferCompletion,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Record the physical move.

    Debits the source and credits the destination in one transaction.
    """
    return TransferService(db, current_user).complete(
        transfer_id,
        transferred_quantity=completion.transferred_quantity,
        notes=completion.notes,
    )


@router.post("/{transfer_id}/cancel", response_model=TransferResponse)
def cancel_transfer(
    transfer_id: int,
    cancel_in: TransferCancel,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return TransferService(db, current_user).cancel(transfer_id, cancel_in.reason)
