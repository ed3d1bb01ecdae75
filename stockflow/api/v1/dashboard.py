"""Dashboard API endpoints"""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from stockflow.api import deps
from stockflow.core.security import Identity
from stockflow.schemas.dashboard import DashboardSummary
from stockflow.services.dashboard import DashboardService

router = APIRouter()


@router.get("/summary", response_model=DashboardSummary)
def get_dashboard_summary(
    db: Session = Depends(deps.get_db),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """
    Landing page summary.

    Catalog counts, open procurement work, transfers per status and the
    current low-stock locations.
    """
    return DashboardService(db, current_user).summary()
