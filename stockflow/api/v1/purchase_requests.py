"""Purchase Request API endpoints"""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.permissions import check_permission
from stockflow.core.security import Identity
from stockflow.models import PRSource, PRStatus
from stockflow.schemas.procurement import (
    AutoCreateResponse, ConvertToPurchaseOrder, PurchaseOrderResponse, PurchaseRequestCreate,
    PurchaseRequestDecision, PurchaseRequestResponse, PurchaseRequestUpdate,
    QuantityCheckRequest, QuantityCheckResponse
)
from stockflow.services.purchase_requests import PurchaseRequestService

router = APIRouter()


@router.get("", response_model=List[PurchaseRequestResponse])
def list_requests(
    status_filter: Optional[PRStatus] = Query(None, alias="status", description="Filter by status"),
    warehouse_id: Optional[int] = Query(None, description="Filter by warehouse"),
    source: Optional[PRSource] = Query(None, description="manual or automatic"),
    skip: int = 0,
    limit: int = 100,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseRequestService(db, current_user).list_requests(
        status=status_filter.value if status_filter else None,
        warehouse_id=warehouse_id,
        source=source.value if source else None,
        skip=skip,
        limit=limit,
    )


@router.post("/validate-quantity", response_model=QuantityCheckResponse)
def validate_quantity(
    check_in: QuantityCheckRequest,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Check a proposed quantity against the location's ceiling."""
    return PurchaseRequestService(db, current_user).validate_quantity(
        check_in.item_id, check_in.warehouse_id, check_in.quantity
    )


@router.post("/auto-create", response_model=AutoCreateResponse)
def auto_create(
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Raise purchase requests for every low location now.

    Locations that already have a pending request are skipped.
    """
    check_permission("pr.auto_create", current_user.role)
    return PurchaseRequestService(db, current_user).auto_create().to_dict()


@router.get("/{request_id}", response_model=PurchaseRequestResponse)
def get_request(
    request_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseRequestService(db, current_user).get_request(request_id)


@router.post("", response_model=PurchaseRequestResponse, status_code=status.HTTP_201_CREATED)
def create_request(
    request_in: PurchaseRequestCreate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    return PurchaseRequestService(db, current_user).create_request(
        item_id=request_in.item_id,
        warehouse_id=request_in.warehouse_id,
        quantity=request_in.quantity_requested,
        preferred_supplier_id=request_in.preferred_supplier_id,
        notes=request_in.notes,
    )


@router.put("/{request_id}", response_model=PurchaseRequestResponse)
def edit_request(
    request_id: int,
    request_update: PurchaseRequestUpdate,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Only pending requests can be edited."""
    return PurchaseRequestService(db, current_user).edit_request(
        request_id, request_update.model_dump(exclude_unset=True)
    )


@router.delete("/{request_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_request(
    request_id: int,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    PurchaseRequestService(db, current_user).delete_request(request_id)


@router.post("/{request_id}/status", response_model=PurchaseRequestResponse)
def set_status(
    request_id: int,
    decision: PurchaseRequestDecision,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Approve or reject a pending request."""
    return PurchaseRequestService(db, current_user).set_status(
        request_id, decision.action.value, decision.notes
    )


@router.post(
    "/{request_id}/purchase-order",
    response_model=PurchaseOrderResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_po_from_pr(
    request_id: int,
    convert_in: ConvertToPurchaseOrder,
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Convert an approved request into a draft purchase order.

    Price and expected date default to the supplier's terms for the item.
    """
    return PurchaseRequestService(db, current_user).create_po_from_pr(
        request_id,
        supplier_id=convert_in.supplier_id,
        unit_price=convert_in.unit_price,
        expected_delivery_date=convert_in.expected_delivery_date,
        notes=convert_in.notes,
    )
