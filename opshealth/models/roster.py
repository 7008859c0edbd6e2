"""
Roster models for the fatigue and compliance assessor.

Shift records are read-only inputs; assessments are recomputed in full from
the current shift window on every call.
"""

from datetime import date, time
from typing import Optional

from pydantic import BaseModel, Field

from .enums import EmploymentType, FatigueRisk


class ShiftRecord(BaseModel):
    """
    One rostered shift.

    end_time earlier than start_time means the shift runs past midnight.
    """

    worker_id: str
    date: date
    start_time: time
    end_time: time
    break_minutes: int = Field(default=0, ge=0)


class ShiftGap(BaseModel):
    """Rest gap under the minimum between shifts on consecutive days."""

    date: date
    gap_hours: float


class LongShift(BaseModel):
    """Shift whose worked hours reach the long-shift threshold."""

    date: date
    hours: float


class BaseFatigueResult(BaseModel):
    """Outcome of the base consecutive-day / rest-gap / long-shift rules."""

    consecutive_days: int = 0
    longest_run_days: int = 0
    short_gaps: list[ShiftGap] = Field(default_factory=list)
    long_shifts: list[LongShift] = Field(default_factory=list)
    risk_level: FatigueRisk = FatigueRisk.LOW
    warnings: list[str] = Field(default_factory=list)


class FatigueAssessment(BaseModel):
    """
    Fatigue and compliance risk for one worker over a roster window.

    Attributes:
        worker_id: Worker assessed
        employment_type: Employment basis (context for minimum engagement)
        classification: Award classification (context only)
        consecutive_days: Run of worked days ending at the most recent shift
        max_consecutive_allowed: Hard limit on consecutive worked days
        short_gaps: Rest gaps under 10 hours between consecutive days
        long_shifts: Shifts of 10 worked hours or more
        total_weekly_hours: Worked hours across the window
        risk_level: LOW, MEDIUM or HIGH
        warnings: Base warnings followed by additional compliance warnings
    """

    worker_id: str
    employment_type: Optional[EmploymentType] = None
    classification: Optional[str] = None
    shift_count: int = 0
    consecutive_days: int = 0
    max_consecutive_allowed: int = 10
    short_gaps: list[ShiftGap] = Field(default_factory=list)
    long_shifts: list[LongShift] = Field(default_factory=list)
    total_weekly_hours: float = 0.0
    risk_level: FatigueRisk = FatigueRisk.LOW
    warnings: list[str] = Field(default_factory=list)


class WorkerRoster(BaseModel):
    """A worker's shifts for the active roster period plus context."""

    worker_id: str
    employment_type: Optional[EmploymentType] = None
    classification: Optional[str] = None
    shifts: list[ShiftRecord] = Field(default_factory=list)


class ComplianceCheck(BaseModel):
    """One roster-wide compliance checklist line."""

    label: str
    ok: bool


class RosterAssessment(BaseModel):
    """Fatigue results for every worker on a roster, with the checklist."""

    assessments: list[FatigueAssessment] = Field(default_factory=list)
    risk_counts: dict[str, int] = Field(default_factory=dict)
    checks: list[ComplianceCheck] = Field(default_factory=list)
