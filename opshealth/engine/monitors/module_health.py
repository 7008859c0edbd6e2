"""
Module Health Scorer: Data Freshness Assessment.

Scores how fresh each operational module's data is from its latest record
timestamp. Freshness decays through fixed hour bands, each with a fixed
score; the overall score is the rounded mean of module scores.

Which modules are tracked depends on the tenant's operating mode:

- venue: a registry of named domain modules, each with one last-sync signal
- home_cook: raw activity tables, each with a count and latest timestamp

Both strategies yield the same ModuleSignal shape, so scoring, stalest-module
selection and recommendations are shared.

Version: module_health_v1
"""

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import structlog

from opshealth.config import Settings, get_settings
from opshealth.models.enums import FreshnessStatus, OperatingMode
from opshealth.models.health import ModuleHealthRecord, ModuleHealthReport, ModuleSignal
from opshealth.storage.base import ACTIVITY_TABLES, StorageBackend, StorageError
from opshealth.utils.clock import to_naive_utc, utcnow
from opshealth.utils.numbers import round_half_up

logger = structlog.get_logger()


# ============================================================================
# Freshness bands
# ============================================================================

# (max hours since last data, status, score), checked in order
FRESHNESS_BANDS = (
    (24, FreshnessStatus.FRESH, 100),
    (72, FreshnessStatus.RECENT, 75),
    (168, FreshnessStatus.STALE, 50),
    (336, FreshnessStatus.VERY_STALE, 25),
)

# Beyond the last band
EXPIRED_BAND = (FreshnessStatus.VERY_STALE, 10)

# last_data_at is null
NO_DATA_BAND = (FreshnessStatus.NO_DATA, 0)

STALEST_LIMIT = 3

# ============================================================================
# Module registries
# ============================================================================

# Venue mode: named domain modules fed by one last-sync signal each
VENUE_MODULES = {
    "recipes": "Recipes",
    "ingredients": "Ingredients",
    "safety_checks": "Food Safety",
    "labour": "Labour",
    "reservations": "Reservations",
    "pos_revenue": "POS / Revenue",
}

# Home-cook mode: raw activity tables scored directly
ACTIVITY_TABLE_LABELS = {
    "recipes": "Recipes",
    "pantry_items": "Pantry",
    "safety_logs": "Safety Logs",
    "prep_lists": "Prep Lists",
    "cleaning_completions": "Cleaning",
    "waste_logs": "Waste Logs",
}

# One sentence per actionable status; better standing gets none
RECOMMENDATION_TEMPLATES = {
    FreshnessStatus.NO_DATA: "No {label} data yet. Start logging {label} to bring this module online.",
    FreshnessStatus.VERY_STALE: "{label} has not been updated in over a week. Review and refresh it.",
    FreshnessStatus.STALE: "{label} data is going stale. Log recent activity to keep it current.",
}


def classify_freshness(
    last_data_at: Optional[datetime], now: datetime
) -> tuple[FreshnessStatus, int, Optional[float]]:
    """
    Map a last-data timestamp onto its freshness band.

    Args:
        last_data_at: Latest record timestamp, None when the module has no data
        now: Reference time

    Returns:
        (status, score, hours_since); hours_since is None for no_data

    Example:
        >>> classify_freshness(now - timedelta(hours=30), now)
        (FreshnessStatus.RECENT, 75, 30.0)
    """
    if last_data_at is None:
        status, score = NO_DATA_BAND
        return status, score, None

    hours_since = (to_naive_utc(now) - to_naive_utc(last_data_at)).total_seconds() / 3600
    for max_hours, status, score in FRESHNESS_BANDS:
        if hours_since <= max_hours:
            return status, score, hours_since

    status, score = EXPIRED_BAND
    return status, score, hours_since


def overall_score(records: list[ModuleHealthRecord]) -> int:
    """Mean module score rounded half-up; 0 when nothing is tracked."""
    if not records:
        return 0
    return int(round_half_up(sum(r.score for r in records) / len(records), 0))


def stalest_modules(
    records: list[ModuleHealthRecord], limit: int = STALEST_LIMIT
) -> list[ModuleHealthRecord]:
    """Lowest-scoring modules ascending; ties keep registry order."""
    return sorted(records, key=lambda r: r.score)[:limit]


def recommendations_for(records: list[ModuleHealthRecord]) -> list[str]:
    """One templated sentence per module whose status has a template."""
    lines = []
    for record in records:
        template = RECOMMENDATION_TEMPLATES.get(record.status)
        if template:
            lines.append(template.format(label=record.label))
    return lines


# ============================================================================
# Signal sources (one per operating mode)
# ============================================================================


class ModuleSignalSource(ABC):
    """Produces one ModuleSignal per tracked module, in registry order."""

    mode: OperatingMode

    def __init__(self, storage: StorageBackend):
        self.storage = storage

    @abstractmethod
    def collect(self, org_id: str) -> list[ModuleSignal]:
        """Gather freshness signals for every tracked module."""
        pass


class ModuleRegistrySource(ModuleSignalSource):
    """Venue mode: reads one last-sync row per registry module."""

    mode = OperatingMode.VENUE

    def collect(self, org_id: str) -> list[ModuleSignal]:
        try:
            rows = self.storage.read_module_sync(org_id)
        except StorageError as e:
            logger.warning("module_sync_unavailable", org_id=org_id, error=str(e))
            rows = []

        by_key = {row["module_key"]: row for row in rows}
        signals = []
        for module_key, label in VENUE_MODULES.items():
            row = by_key.get(module_key, {})
            signals.append(
                ModuleSignal(
                    module_key=module_key,
                    label=label,
                    last_data_at=to_naive_utc(row.get("last_sync_at")),
                    record_count=int(row.get("record_count") or 0),
                )
            )
        return signals


class DataTableSource(ModuleSignalSource):
    """Home-cook mode: count and latest timestamp per activity table."""

    mode = OperatingMode.HOME_COOK

    def collect(self, org_id: str) -> list[ModuleSignal]:
        signals = []
        for table in ACTIVITY_TABLES:
            try:
                count, latest = self.storage.read_table_activity(org_id, table)
            except StorageError as e:
                logger.warning("module_table_unavailable", org_id=org_id, table=table, error=str(e))
                count, latest = 0, None

            signals.append(
                ModuleSignal(
                    module_key=table,
                    label=ACTIVITY_TABLE_LABELS[table],
                    last_data_at=to_naive_utc(latest),
                    record_count=count,
                )
            )
        return signals


SIGNAL_SOURCES = {
    OperatingMode.VENUE: ModuleRegistrySource,
    OperatingMode.HOME_COOK: DataTableSource,
}


class ModuleHealthScorer:
    """
    Scores module data freshness for one organization.

    Attributes:
        storage: Storage backend for signals, mode flag and persisted records
        settings: Supplies the default operating mode

    Example:
        >>> scorer = ModuleHealthScorer(storage=duckdb_storage)
        >>> report = scorer.compute_health("org-1")
        >>> print(report.overall_score, [m.label for m in report.stalest])
    """

    def __init__(self, storage: StorageBackend, settings: Optional[Settings] = None):
        self.storage = storage
        self.settings = settings or get_settings()
        self.logger = structlog.get_logger()

    def resolve_mode(self, org_id: str) -> OperatingMode:
        """The tenant's stored operating mode, or the configured default."""
        mode = self.storage.read_operating_mode(org_id)
        return mode or OperatingMode(self.settings.default_operating_mode)

    def source_for(self, mode: OperatingMode) -> ModuleSignalSource:
        return SIGNAL_SOURCES[OperatingMode(mode)](self.storage)

    def score_signals(
        self, org_id: str, signals: list[ModuleSignal], now: datetime
    ) -> list[ModuleHealthRecord]:
        """Turn raw signals into scored records, preserving order."""
        records = []
        for signal in signals:
            status, score, hours_since = classify_freshness(signal.last_data_at, now)
            records.append(
                ModuleHealthRecord(
                    org_id=org_id,
                    module_key=signal.module_key,
                    label=signal.label,
                    score=score,
                    status=status,
                    last_data_at=signal.last_data_at,
                    record_count=signal.record_count,
                    hours_since=round_half_up(hours_since) if hours_since is not None else None,
                )
            )
        return records

    def compute_health(
        self,
        org_id: str,
        mode: Optional[OperatingMode] = None,
        now: Optional[datetime] = None,
    ) -> ModuleHealthReport:
        """
        Score every tracked module and persist the records.

        Args:
            org_id: Organization to score
            mode: Force an operating mode instead of reading the tenant flag
            now: Reference time (defaults to current UTC time)

        Returns:
            ModuleHealthReport with records, overall score, stalest modules
            and recommendations
        """
        now = to_naive_utc(now) if now is not None else utcnow()
        mode = OperatingMode(mode) if mode is not None else self.resolve_mode(org_id)

        signals = self.source_for(mode).collect(org_id)
        records = self.score_signals(org_id, signals, now)
        stalest = stalest_modules(records)

        report = ModuleHealthReport(
            org_id=org_id,
            mode=mode,
            overall_score=overall_score(records),
            modules=records,
            stalest=stalest,
            recommendations=recommendations_for(stalest),
            evaluated_at=now,
        )

        self.storage.write_module_health(org_id, records)

        self.logger.info(
            "module_health_computed",
            org_id=org_id,
            mode=mode.value,
            overall_score=report.overall_score,
            modules=len(records),
            stalest=[r.module_key for r in stalest],
        )
        return report
