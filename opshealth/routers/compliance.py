"""
Roster compliance router.

Wired to:
- FatigueAssessor for per-worker and roster-wide fatigue risk
"""

from typing import Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field

from opshealth.auth.dependencies import get_current_org_id
from opshealth.engine.fatigue import FatigueAssessor
from opshealth.models.enums import EmploymentType
from opshealth.models.roster import ShiftRecord, WorkerRoster
from opshealth.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


class FatigueRequest(BaseModel):
    """Single-worker fatigue assessment request."""

    worker_id: str = Field(..., min_length=1)
    employment_type: Optional[EmploymentType] = None
    classification: Optional[str] = None
    shifts: list[ShiftRecord] = Field(default_factory=list)


class RosterRequest(BaseModel):
    """Roster-wide assessment request."""

    workers: list[WorkerRoster] = Field(default_factory=list)


@router.post("/fatigue")
async def assess_fatigue(
    request: FatigueRequest,
    org_id: str = Depends(get_current_org_id),
):
    """Fatigue and compliance risk for one worker."""
    assessment = FatigueAssessor().assess(
        request.worker_id, request.shifts, request.employment_type, request.classification
    )
    logger.info(
        "fatigue_assessment_served",
        org_id=org_id,
        worker_id=request.worker_id,
        risk_level=assessment.risk_level.value,
    )
    return {"success": True, "data": assessment.model_dump(mode="json")}


@router.post("/roster")
async def assess_roster(
    request: RosterRequest,
    org_id: str = Depends(get_current_org_id),
):
    """Fatigue results for every worker plus the award compliance checklist."""
    result = FatigueAssessor().assess_roster(request.workers)
    logger.info("roster_assessment_served", org_id=org_id, workers=len(request.workers))
    return {"success": True, "data": result.model_dump(mode="json")}
