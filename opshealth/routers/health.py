"""
Module health router.

Wired to:
- ModuleHealthScorer for per-module freshness scoring
"""

from typing import Optional

from fastapi import APIRouter, Depends

from opshealth.auth.dependencies import get_current_org_id
from opshealth.config import get_settings
from opshealth.engine.monitors import ModuleHealthScorer
from opshealth.models.enums import OperatingMode
from opshealth.storage import StorageBackend, get_storage
from opshealth.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


@router.get("/modules")
async def module_health(
    org_id: str = Depends(get_current_org_id),
    storage: StorageBackend = Depends(get_storage),
    mode: Optional[OperatingMode] = None,
):
    """
    Score module data freshness for the calling organization.

    The tenant's stored operating mode is used unless mode is given.
    """
    logger.info("module_health_requested", org_id=org_id, mode=mode.value if mode else None)
    report = ModuleHealthScorer(storage, get_settings()).compute_health(org_id, mode=mode)
    return {"success": True, "data": report.model_dump(mode="json")}
