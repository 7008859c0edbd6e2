"""
Reactor router.

Wired to:
- ReactorEngine for alert evaluation
- StorageBackend for the latest persisted alert list
"""

from fastapi import APIRouter, Depends

from opshealth.auth.dependencies import get_current_org_id
from opshealth.config import get_settings
from opshealth.engine.monitors import ModuleHealthScorer, ReactorEngine
from opshealth.storage import StorageBackend, get_storage
from opshealth.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.post("/run")
async def run_reactor(
    org_id: str = Depends(get_current_org_id),
    storage: StorageBackend = Depends(get_storage),
):
    """Evaluate every rule and replace the organization's alert list."""
    logger.info("reactor_run_requested", org_id=org_id)
    engine = ReactorEngine(storage, ModuleHealthScorer(storage, get_settings()))
    report = engine.run(org_id)
    return {"success": True, "data": report.model_dump(mode="json")}


@router.get("/alerts")
async def list_alerts(
    org_id: str = Depends(get_current_org_id),
    storage: StorageBackend = Depends(get_storage),
):
    """Alerts from the latest Reactor run, in evaluation order."""
    alerts = storage.read_alerts(org_id)
    return {
        "success": True,
        "data": [a.model_dump(mode="json") for a in alerts],
        "count": len(alerts),
    }
