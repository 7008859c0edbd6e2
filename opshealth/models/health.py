"""
Module health models.

Both operating modes of the health scorer produce the same record shape, so
the Reactor and dashboards treat them uniformly.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from opshealth.utils.clock import utcnow

from .enums import FreshnessStatus, OperatingMode


class ModuleSignal(BaseModel):
    """
    Raw freshness signal for one module, before scoring.

    Attributes:
        module_key: Stable module identifier (e.g. "recipes")
        label: Human-readable module name
        last_data_at: Timestamp of the most recent record, None if none exist
        record_count: Number of records seen for the module
    """

    module_key: str
    label: str
    last_data_at: Optional[datetime] = None
    record_count: int = Field(default=0, ge=0)


class ModuleHealthRecord(BaseModel):
    """
    Scored freshness of one module for one organization.

    Status is a pure function of hours since last_data_at; score is a pure
    function of the hour band.
    """

    org_id: str
    module_key: str
    label: str
    score: int = Field(ge=0, le=100)
    status: FreshnessStatus
    last_data_at: Optional[datetime] = None
    record_count: int = Field(default=0, ge=0)
    hours_since: Optional[float] = None


class ModuleHealthReport(BaseModel):
    """Overall module health for an organization, as persisted and served."""

    org_id: str
    mode: OperatingMode
    overall_score: int = Field(ge=0, le=100)
    modules: list[ModuleHealthRecord] = Field(default_factory=list)
    stalest: list[ModuleHealthRecord] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    evaluated_at: datetime = Field(default_factory=utcnow)
