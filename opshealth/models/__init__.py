"""
Pydantic v2 data models for the operational health engine.

Model Organization:
    - enums: Enumeration types for consistent classification
    - snapshot: Period financial snapshot
    - health: Module freshness signals, records and reports
    - alerts: Reactor alerts, issue records and run reports
    - roster: Shift records and fatigue assessments
    - costs: Cost entries and cost series summaries

Usage:
    >>> from opshealth.models import FinancialSnapshot
    >>> snap = FinancialSnapshot(
    ...     org_id="org-1",
    ...     period_start=date(2026, 3, 2),
    ...     period_end=date(2026, 3, 2),
    ... )
"""

from .alerts import Alert, EcosystemEntry, IssueRecord, ReactorReport
from .costs import CostEntry, CostSeriesSummary
from .enums import (
    AlertLevel,
    ChannelOrigin,
    EcosystemState,
    EmploymentType,
    FatigueRisk,
    FreshnessStatus,
    MetricSource,
    OperatingMode,
)
from .health import ModuleHealthRecord, ModuleHealthReport, ModuleSignal
from .roster import (
    BaseFatigueResult,
    ComplianceCheck,
    FatigueAssessment,
    LongShift,
    RosterAssessment,
    ShiftGap,
    ShiftRecord,
    WorkerRoster,
)
from .snapshot import PCT_FIELDS, VALUE_FIELDS, FinancialSnapshot

__all__ = [
    # Enums
    "AlertLevel",
    "ChannelOrigin",
    "EcosystemState",
    "EmploymentType",
    "FatigueRisk",
    "FreshnessStatus",
    "MetricSource",
    "OperatingMode",
    # Snapshot
    "FinancialSnapshot",
    "PCT_FIELDS",
    "VALUE_FIELDS",
    # Health
    "ModuleHealthRecord",
    "ModuleHealthReport",
    "ModuleSignal",
    # Alerts
    "Alert",
    "EcosystemEntry",
    "IssueRecord",
    "ReactorReport",
    # Roster
    "BaseFatigueResult",
    "ComplianceCheck",
    "FatigueAssessment",
    "LongShift",
    "RosterAssessment",
    "ShiftGap",
    "ShiftRecord",
    "WorkerRoster",
    # Costs
    "CostEntry",
    "CostSeriesSummary",
]
