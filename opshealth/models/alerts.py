"""
Reactor alert models.

Alerts are recomputed in full on every Reactor run. Their order is the rule
evaluation order and is never re-sorted by level.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from opshealth.utils.clock import utcnow

from .enums import AlertLevel, EcosystemState
from .health import ModuleHealthRecord
from .snapshot import FinancialSnapshot


class Alert(BaseModel):
    """
    A single actionable flag raised by the Reactor.

    Attributes:
        id: Deterministic id of the rule/source that raised it
        level: info, warning or critical
        title: Short headline
        detail: Supporting figures or context
        source_module: Module the alert concerns (e.g. "labour", "recipes")
    """

    id: str
    level: AlertLevel
    title: str
    detail: str = ""
    source_module: str


class IssueRecord(BaseModel):
    """Unresolved upstream issue, owned and resolved outside this engine."""

    id: str
    title: str
    detail: str = ""
    severity: str = "medium"
    module: Optional[str] = None
    created_at: Optional[datetime] = None


class EcosystemEntry(BaseModel):
    """Module connection summary shown next to the alert list."""

    module_key: str
    label: str
    state: EcosystemState
    record_count: int = 0
    last_data_at: Optional[datetime] = None


class ReactorReport(BaseModel):
    """Everything one Reactor run looked at and produced."""

    org_id: str
    snapshot: Optional[FinancialSnapshot] = None
    audit_score: Optional[float] = None
    health_score: int = 0
    modules: list[ModuleHealthRecord] = Field(default_factory=list)
    ecosystem: list[EcosystemEntry] = Field(default_factory=list)
    alerts: list[Alert] = Field(default_factory=list)
    generated_at: datetime = Field(default_factory=utcnow)
