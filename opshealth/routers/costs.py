"""
Cost series router.

Wired to:
- PriceAnomalyDetector for price jump detection and series summaries
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from opshealth.auth.dependencies import get_current_org_id
from opshealth.engine.price_anomaly import PriceAnomalyDetector
from opshealth.models.costs import CostEntry
from opshealth.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class CostSeriesRequest(BaseModel):
    """One item's cost entries, most recent first."""

    item_id: str = Field(default="", description="Trackable item id")
    entries: list[CostEntry] = Field(default_factory=list)
    today: Optional[date] = Field(default=None, description="Reference date for YTD spend")


@router.post("/anomalies")
async def detect_anomalies(
    request: CostSeriesRequest,
    org_id: str = Depends(get_current_org_id),
):
    """Ids of entries priced more than 5% above their trailing average."""
    flagged = PriceAnomalyDetector().detect(request.entries)
    logger.info("price_anomalies_served", org_id=org_id, item_id=request.item_id, flagged=len(flagged))
    return {
        "success": True,
        "data": {
            "item_id": request.item_id,
            "flagged_ids": [e.id for e in request.entries if e.id in flagged],
        },
    }


@router.post("/summary")
async def cost_summary(
    request: CostSeriesRequest,
    org_id: str = Depends(get_current_org_id),
):
    """Spend, frequency and anomaly summary for one item."""
    summary = PriceAnomalyDetector().summarize(request.item_id, request.entries, request.today)
    return {"success": True, "data": summary.model_dump(mode="json")}
