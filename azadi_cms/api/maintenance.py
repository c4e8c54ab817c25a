"""
Maintenance API endpoints.

Starts the automation run in the background and exposes its health
snapshot and log buffer.
"""
import logging

from fastapi import APIRouter, Depends, status
from starlette.responses import JSONResponse

from azadi_cms.api.deps import get_engine, require_admin
from azadi_cms.workers.maintenance import MaintenanceEngine, RunOutcome

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/run")
async def start_maintenance_run(
    engine: MaintenanceEngine = Depends(get_engine),
    admin_user: str = Depends(require_admin),
):
    outcome = engine.start_background()
    if outcome == RunOutcome.ALREADY_RUNNING:
        return JSONResponse(status_code=status.HTTP_409_CONFLICT, content={"status": outcome.value})
    logger.info("maintenance_run_started by=%s", admin_user)
    return JSONResponse(status_code=status.HTTP_202_ACCEPTED, content={"status": outcome.value})


@router.get("/health")
def get_maintenance_health(
    engine: MaintenanceEngine = Depends(get_engine),
    _admin: str = Depends(require_admin),
):
    body = engine.get_health().to_wire()
    body["running"] = engine.is_running
    return body


@router.get("/logs")
def get_maintenance_logs(
    engine: MaintenanceEngine = Depends(get_engine),
    _admin: str = Depends(require_admin),
):
    return [entry.to_wire() for entry in engine.log.snapshot()]
