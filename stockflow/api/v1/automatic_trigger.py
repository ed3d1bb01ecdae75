"""Automatic trigger control endpoints"""

from fastapi import APIRouter, Depends

from stockflow.api import deps
from stockflow.core.permissions import check_permission
from stockflow.core.security import Identity
from stockflow.services.scheduler import AutomaticTriggerScheduler

router = APIRouter()


@router.get("/status")
def trigger_status(
    scheduler: AutomaticTriggerScheduler = Depends(deps.get_trigger_scheduler),
    current_user: Identity = Depends(deps.get_current_identity),
):
    check_permission("scheduler.control", current_user.role)
    return scheduler.status()


@router.post("/start")
def start_trigger(
    scheduler: AutomaticTriggerScheduler = Depends(deps.get_trigger_scheduler),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Start the interval loop; starting a running trigger is a no-op."""
    check_permission("scheduler.control", current_user.role)
    started = scheduler.start()
    return {"started": started, **scheduler.status()}


@router.post("/stop")
def stop_trigger(
    scheduler: AutomaticTriggerScheduler = Depends(deps.get_trigger_scheduler),
    current_user: Identity = Depends(deps.get_current_identity),
):
    check_permission("scheduler.control", current_user.role)
    stopped = scheduler.stop()
    return {"stopped": stopped, **scheduler.status()}


@router.post("/run")
def run_trigger(
    scheduler: AutomaticTriggerScheduler = Depends(deps.get_trigger_scheduler),
    current_user: Identity = Depends(deps.get_current_identity),
):
    """Run one detection pass now; failures are reported in the status, not raised."""
    check_permission("scheduler.control", current_user.role)
    result = scheduler.run_now()
    return {"result": result, **scheduler.status()}
