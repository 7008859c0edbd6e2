"""
Reactor: Operational Alert Engine.

Applies fixed threshold rules to the latest financial snapshot, module
health records, audit score and unresolved upstream issues, producing an
ordered list of alerts. Alerts keep rule-evaluation order; they are never
re-sorted by level.

Every run recomputes the list from scratch and replaces the org's previous
list. Alert ids are derived from the rule or source that raised them, so two
runs over identical inputs produce identical lists.

Version: reactor_v1
"""

from typing import Optional

import structlog

from opshealth.models.alerts import Alert, EcosystemEntry, IssueRecord, ReactorReport
from opshealth.models.enums import AlertLevel, EcosystemState, FreshnessStatus
from opshealth.models.health import ModuleHealthRecord
from opshealth.models.snapshot import FinancialSnapshot
from opshealth.storage.base import StorageBackend, StorageError

from .module_health import ModuleHealthScorer

logger = structlog.get_logger()


# Fixed rule thresholds (percent of revenue unless noted)
REACTOR_THRESHOLDS = {
    "labour_critical_pct": 32.0,
    "labour_warning_pct": 28.0,
    "food_cost_critical_pct": 35.0,
    "ops_supplies_warning_pct": 4.0,
    "net_profit_min_pct": 5.0,
    "audit_warning_below": 65.0,  # audit score, 0-100
    "audit_info_below": 80.0,
}

# Freshness status -> dashboard connection state
ECOSYSTEM_STATES = {
    FreshnessStatus.FRESH: EcosystemState.LIVE,
    FreshnessStatus.RECENT: EcosystemState.LIVE,
    FreshnessStatus.STALE: EcosystemState.STALE,
    FreshnessStatus.VERY_STALE: EcosystemState.STALE,
    FreshnessStatus.NO_DATA: EcosystemState.DISCONNECTED,
}

HIGH_ISSUE_SEVERITY = "high"


def ecosystem_for(modules: list[ModuleHealthRecord]) -> list[EcosystemEntry]:
    """Connection state per module, in module order."""
    return [
        EcosystemEntry(
            module_key=m.module_key,
            label=m.label,
            state=ECOSYSTEM_STATES[m.status],
            record_count=m.record_count,
            last_data_at=m.last_data_at,
        )
        for m in modules
    ]


def _financial_alerts(snapshot: FinancialSnapshot) -> list[Alert]:
    t = REACTOR_THRESHOLDS
    alerts = []

    labour_pct = snapshot.labour_pct
    if labour_pct > t["labour_critical_pct"]:
        alerts.append(Alert(
            id="labour-high",
            level=AlertLevel.CRITICAL,
            title="Labour high",
            detail=f"Labour at {labour_pct:.1f}% of revenue (limit {t['labour_critical_pct']:.0f}%)",
            source_module="labour",
        ))
    elif labour_pct > t["labour_warning_pct"]:
        alerts.append(Alert(
            id="labour-trending-high",
            level=AlertLevel.WARNING,
            title="Labour trending high",
            detail=f"Labour at {labour_pct:.1f}% of revenue (target {t['labour_warning_pct']:.0f}%)",
            source_module="labour",
        ))

    if snapshot.revenue_total > 0:
        food_pct = snapshot.food_cost_pct
        if food_pct > t["food_cost_critical_pct"]:
            alerts.append(Alert(
                id="food-cost-high",
                level=AlertLevel.CRITICAL,
                title="Food cost high",
                detail=f"Food cost at {food_pct:.1f}% of revenue (limit {t['food_cost_critical_pct']:.0f}%)",
                source_module="food_cost",
            ))

    if snapshot.ops_supplies_pct > t["ops_supplies_warning_pct"]:
        alerts.append(Alert(
            id="ops-supplies-high",
            level=AlertLevel.WARNING,
            title="Operating supplies high",
            detail=(
                f"Operating supplies at {snapshot.ops_supplies_pct:.1f}% of revenue "
                f"(target {t['ops_supplies_warning_pct']:.0f}%)"
            ),
            source_module="ops_supplies",
        ))

    if snapshot.net_profit_pct < t["net_profit_min_pct"]:
        alerts.append(Alert(
            id="net-profit-low",
            level=AlertLevel.CRITICAL,
            title="Net profit below target",
            detail=f"Net profit at {snapshot.net_profit_pct:.1f}% of revenue (minimum {t['net_profit_min_pct']:.0f}%)",
            source_module="financials",
        ))

    return alerts


def _audit_alerts(audit_score: float) -> list[Alert]:
    t = REACTOR_THRESHOLDS
    if audit_score < t["audit_warning_below"]:
        return [Alert(
            id="audit-score-low",
            level=AlertLevel.WARNING,
            title="Audit score low",
            detail=f"Latest audit scored {audit_score:.0f}/100",
            source_module="audit",
        )]
    if audit_score < t["audit_info_below"]:
        return [Alert(
            id="audit-score-below-target",
            level=AlertLevel.INFO,
            title="Audit score below target",
            detail=f"Latest audit scored {audit_score:.0f}/100 (target {t['audit_info_below']:.0f})",
            source_module="audit",
        )]
    return []


def _module_alerts(modules: list[ModuleHealthRecord]) -> list[Alert]:
    alerts = []
    for module in modules:
        state = ECOSYSTEM_STATES[module.status]
        if state == EcosystemState.STALE:
            detail = (
                f"Last data at {module.last_data_at.isoformat()}"
                if module.last_data_at
                else "Last data at unknown"
            )
            alerts.append(Alert(
                id=f"module-{module.module_key}",
                level=AlertLevel.CRITICAL,
                title=f"{module.label} data stale",
                detail=detail,
                source_module=module.module_key,
            ))
        elif state == EcosystemState.DISCONNECTED:
            alerts.append(Alert(
                id=f"module-{module.module_key}",
                level=AlertLevel.WARNING,
                title=f"{module.label} disconnected",
                detail="No data received yet",
                source_module=module.module_key,
            ))
    return alerts


def _issue_alerts(issues: list[IssueRecord]) -> list[Alert]:
    return [
        Alert(
            id=f"issue-{issue.id}",
            level=(
                AlertLevel.CRITICAL
                if (issue.severity or "").lower() == HIGH_ISSUE_SEVERITY
                else AlertLevel.WARNING
            ),
            title=issue.title,
            detail=issue.detail,
            source_module=issue.module or "issues",
        )
        for issue in issues
    ]


def evaluate_alerts(
    snapshot: Optional[FinancialSnapshot],
    modules: Optional[list[ModuleHealthRecord]],
    audit_score: Optional[float],
    issues: Optional[list[IssueRecord]],
) -> list[Alert]:
    """
    Apply every rule in order. Missing inputs skip the rules that need them.

    Args:
        snapshot: Latest financial snapshot, or None
        modules: Module health records, or None
        audit_score: Latest audit score, or None
        issues: Unresolved upstream issues, or None

    Returns:
        Alerts in rule-evaluation order
    """
    alerts = []
    if snapshot is not None:
        alerts.extend(_financial_alerts(snapshot))
    if audit_score is not None:
        alerts.extend(_audit_alerts(audit_score))
    if modules:
        alerts.extend(_module_alerts(modules))
    if issues:
        alerts.extend(_issue_alerts(issues))
    return alerts


class ReactorEngine:
    """
    Gathers Reactor inputs from storage, evaluates rules and persists alerts.

    Attributes:
        storage: Storage backend for inputs and the alert list
        health_scorer: Scorer used to refresh module health for the run

    Example:
        >>> reactor = ReactorEngine(storage=duckdb_storage)
        >>> report = reactor.run("org-1")
        >>> for alert in report.alerts:
        ...     print(alert.level, alert.title)
    """

    def __init__(
        self,
        storage: StorageBackend,
        health_scorer: Optional[ModuleHealthScorer] = None,
    ):
        self.storage = storage
        self.health_scorer = health_scorer or ModuleHealthScorer(storage)
        self.logger = structlog.get_logger()

    def _read_issues(self, org_id: str) -> list[IssueRecord]:
        """Unresolved issues; an unavailable issue store degrades to none."""
        try:
            return self.storage.read_unresolved_issues(org_id)
        except StorageError as e:
            self.logger.warning("reactor_issues_unavailable", org_id=org_id, error=str(e))
            return []

    def run(self, org_id: str) -> ReactorReport:
        """
        Run every rule for one organization and replace its alert list.

        Args:
            org_id: Organization to evaluate

        Returns:
            ReactorReport with the inputs considered and the alerts produced
        """
        snapshot = self.storage.read_latest_snapshot(org_id)
        health = self.health_scorer.compute_health(org_id)
        audit_score = self.storage.read_latest_audit_score(org_id)
        issues = self._read_issues(org_id)

        alerts = evaluate_alerts(snapshot, health.modules, audit_score, issues)
        self.storage.replace_alerts(org_id, alerts)

        report = ReactorReport(
            org_id=org_id,
            snapshot=snapshot,
            audit_score=audit_score,
            health_score=health.overall_score,
            modules=health.modules,
            ecosystem=ecosystem_for(health.modules),
            alerts=alerts,
        )

        self.logger.info(
            "reactor_completed",
            org_id=org_id,
            alerts=len(alerts),
            critical=sum(1 for a in alerts if a.level == AlertLevel.CRITICAL),
            has_snapshot=snapshot is not None,
            issues=len(issues),
        )
        return report
