"""
Financial snapshot router.

Wired to:
- SnapshotAggregator for on-demand period aggregation
- StorageBackend for the latest persisted snapshot
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from opshealth.auth.dependencies import get_current_org_id
from opshealth.config import get_settings
from opshealth.engine.snapshot_aggregator import InvalidSnapshotRequest, SnapshotAggregator
from opshealth.storage import StorageBackend, StorageError, get_storage
from opshealth.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class GenerateSnapshotRequest(BaseModel):
    """Generate snapshot request."""

    period_start: date = Field(..., description="First day of the period (inclusive)")
    period_end: date = Field(..., description="Last day of the period (inclusive)")
    period_type: str = Field(default="daily", description="Period tag, e.g. daily or weekly")


@router.post("/generate")
async def generate_snapshot(
    request: GenerateSnapshotRequest,
    org_id: str = Depends(get_current_org_id),
    storage: StorageBackend = Depends(get_storage),
):
    """Aggregate and persist the snapshot for one period."""
    logger.info(
        "snapshot_generate_requested",
        org_id=org_id,
        period_start=str(request.period_start),
        period_end=str(request.period_end),
        period_type=request.period_type,
    )

    aggregator = SnapshotAggregator(storage, get_settings())
    try:
        snapshot = aggregator.generate(
            org_id, request.period_start, request.period_end, request.period_type
        )
    except InvalidSnapshotRequest as e:
        raise HTTPException(status_code=400, detail=str(e))
    except StorageError as e:
        logger.error("snapshot_generate_failed", org_id=org_id, error=str(e))
        raise HTTPException(status_code=500, detail="Snapshot could not be persisted")

    return {"success": True, "data": snapshot.model_dump(mode="json")}


@router.get("/latest")
async def latest_snapshot(
    org_id: str = Depends(get_current_org_id),
    storage: StorageBackend = Depends(get_storage),
    period_type: Optional[str] = None,
):
    """Most recent persisted snapshot, optionally for one period type."""
    snapshot = storage.read_latest_snapshot(
        org_id, period_type.strip().lower() if period_type else None
    )
    if snapshot is None:
        raise HTTPException(status_code=404, detail="No snapshot generated yet")
    return {"success": True, "data": snapshot.model_dump(mode="json")}
