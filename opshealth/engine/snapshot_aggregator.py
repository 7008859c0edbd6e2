"""
Snapshot Aggregator: Periodic P&L Reconciliation.

Merges two channels of financial data into one canonical FinancialSnapshot
per (org, period_start, period_end, period_type):

- direct: first-party event tables the org already owns (payments, shifts,
  overhead entries, waste logs, beverage pours, reservations)
- imported: pre-aggregated external totals tagged with a data_type

Per metric, the direct sum wins when it is non-zero; otherwise the imported
sum is used; otherwise 0. A direct metric that is genuinely zero is
indistinguishable from "no direct rows" and falls through to imported data.

Every source read is independent. A failing source is logged and counted as
empty so a partial snapshot is still produced.

Version: snapshot_aggregator_v1
"""

from datetime import date, datetime
from typing import Optional

import structlog

from opshealth.config import Settings, get_settings
from opshealth.models.enums import ChannelOrigin, MetricSource
from opshealth.models.snapshot import FinancialSnapshot
from opshealth.storage.base import StorageBackend, StorageError
from opshealth.utils.clock import utcnow
from opshealth.utils.numbers import round_half_up, safe_pct

logger = structlog.get_logger()


# ============================================================================
# Source registries
# ============================================================================

# Overhead categories that count as operating supplies rather than overhead
OPS_SUPPLY_CATEGORIES = frozenset({
    "Cleaning Chemicals",
    "Cleaning Materials",
    "Packaging & Takeaway",
    "Office Supplies",
    "Hospitality Supplies",
    "Smallwares & Utensils",
    "Plates & Glassware",
    "Miscellaneous Supplies",
})

# Waste log module -> snapshot metric
WASTE_MODULES = {
    "food": "cogs_waste_food",
    "beverage": "cogs_waste_beverage",
}

APPROVED_WASTE_STATUS = "approved"
COMPLETED_RESERVATION_STATUS = "COMPLETED"
PROCESSED_IMPORT_STATUS = "processed"

# Direct channel: source table -> metrics it yields and the reducer that sums it
DIRECT_SOURCES = {
    MetricSource.POS_PAYMENTS: {
        "metrics": ("revenue_total",),
        "reducer": "_reduce_payments",
    },
    MetricSource.POS_SHIFTS: {
        "metrics": ("labour_wages", "labour_super", "labour_overtime"),
        "reducer": "_reduce_shifts",
    },
    MetricSource.OVERHEAD_ENTRIES: {
        "metrics": ("overhead_total", "ops_supplies_total"),
        "reducer": "_reduce_overheads",
    },
    MetricSource.WASTE_LOGS: {
        "metrics": ("cogs_waste_food", "cogs_waste_beverage"),
        "reducer": "_reduce_waste",
    },
    MetricSource.BEV_POUR_EVENTS: {
        "metrics": ("cogs_beverage",),
        "reducer": "_reduce_pours",
    },
    MetricSource.RES_RESERVATIONS: {
        "metrics": ("covers_total",),
        "reducer": "_reduce_reservations",
    },
}

# Imported channel: data_type -> snapshot metric
IMPORT_DATA_TYPES = {
    "revenue": "revenue_total",
    "food_cost": "cogs_food",
    "bev_cost": "cogs_beverage",
    "food_waste": "cogs_waste_food",
    "bev_waste": "cogs_waste_beverage",
    "labour": "labour_total",
    "overhead": "overhead_total",
    "ops_supplies": "ops_supplies_total",
    "covers": "covers_total",
}

# Metrics resolved by the direct-else-imported merge rule
MERGED_METRICS = tuple(IMPORT_DATA_TYPES.values())

# The six primary cost centres behind data_completeness_pct
COMPLETENESS_METRICS = (
    "revenue_total",
    "cogs_food",
    "cogs_beverage",
    "labour_total",
    "overhead_total",
    "ops_supplies_total",
)


class InvalidSnapshotRequest(ValueError):
    """Raised for a missing organization id or malformed period bounds."""

    pass


class SnapshotAggregator:
    """
    Builds and persists periodic financial snapshots.

    Attributes:
        storage: Storage backend for source reads and snapshot writes
        settings: Labour estimation constants (hourly rate, super, overtime)

    Example:
        >>> aggregator = SnapshotAggregator(storage=duckdb_storage)
        >>> snap = aggregator.generate("org-1", date(2026, 3, 2), date(2026, 3, 8), "weekly")
        >>> print(snap.net_profit_pct, snap.data_completeness_pct)
    """

    def __init__(self, storage: StorageBackend, settings: Optional[Settings] = None):
        """
        Initialize the aggregator.

        Args:
            storage: Storage backend
            settings: Application settings (defaults to the cached instance)
        """
        self.storage = storage
        self.settings = settings or get_settings()
        self.logger = structlog.get_logger()

    def generate(
        self,
        org_id: str,
        period_start: date,
        period_end: date,
        period_type: str = "daily",
    ) -> FinancialSnapshot:
        """
        Aggregate, derive and persist the snapshot for one period.

        Args:
            org_id: Organization to aggregate
            period_start: First day of the period (inclusive)
            period_end: Last day of the period (inclusive)
            period_type: Period tag, e.g. "daily" or "weekly"

        Returns:
            The persisted FinancialSnapshot

        Raises:
            InvalidSnapshotRequest: If org_id or the period bounds are malformed
            StorageError: If the snapshot cannot be persisted even by plain insert
        """
        org_id, period_start, period_end, period_type = self._validate_request(
            org_id, period_start, period_end, period_type
        )

        direct = self.collect_direct(org_id, period_start, period_end)
        imported = self.collect_imported(org_id, period_start, period_end)
        snapshot = self.build_snapshot(
            org_id, period_start, period_end, period_type, direct, imported
        )

        persisted = self.storage.upsert_snapshot(snapshot)

        self.logger.info(
            "snapshot_generated",
            org_id=org_id,
            period_start=str(period_start),
            period_end=str(period_end),
            period_type=period_type,
            revenue_total=persisted.revenue_total,
            net_profit_pct=persisted.net_profit_pct,
            data_completeness_pct=persisted.data_completeness_pct,
        )
        return persisted

    # =========================================================================
    # Validation
    # =========================================================================

    @staticmethod
    def _validate_request(org_id, period_start, period_end, period_type):
        if not isinstance(org_id, str) or not org_id.strip():
            raise InvalidSnapshotRequest("org_id is required")

        bounds = []
        for name, value in (("period_start", period_start), ("period_end", period_end)):
            if isinstance(value, datetime):
                value = value.date()
            if not isinstance(value, date):
                raise InvalidSnapshotRequest(f"{name} must be a date, got {value!r}")
            bounds.append(value)
        start, end = bounds

        if start > end:
            raise InvalidSnapshotRequest(
                f"period_start {start.isoformat()} is after period_end {end.isoformat()}"
            )

        if not isinstance(period_type, str) or not period_type.strip():
            raise InvalidSnapshotRequest("period_type is required")

        return org_id.strip(), start, end, period_type.strip().lower()

    # =========================================================================
    # Channel collection
    # =========================================================================

    def _read_source(
        self, source: MetricSource, org_id: str, period_start: date, period_end: date
    ) -> list[dict]:
        """Read one source, degrading a failure to an empty record set."""
        try:
            return self.storage.read_source_records(source, org_id, period_start, period_end)
        except StorageError as e:
            self.logger.warning(
                "snapshot_source_failed",
                org_id=org_id,
                source=source.value,
                error=str(e),
            )
            return []

    def collect_direct(self, org_id: str, period_start: date, period_end: date) -> dict:
        """
        Sum every direct-channel metric for the period.

        Returns:
            Dict of metric name -> float, with labour_total derived from
            wages, super and overtime
        """
        totals = {}
        for source, spec in DIRECT_SOURCES.items():
            records = self._read_source(source, org_id, period_start, period_end)
            reducer = getattr(self, spec["reducer"])
            values = reducer(records)
            for metric in spec["metrics"]:
                totals[metric] = values.get(metric, 0.0)

        totals["cogs_food"] = 0.0
        totals["labour_total"] = (
            totals["labour_wages"] + totals["labour_super"] + totals["labour_overtime"]
        )
        return totals

    def collect_imported(self, org_id: str, period_start: date, period_end: date) -> dict:
        """
        Sum processed imports whose own period lies inside the requested one.

        Returns:
            Dict of metric name -> float for every known data_type
        """
        totals = {metric: 0.0 for metric in MERGED_METRICS}
        records = self._read_source(MetricSource.DATA_IMPORTS, org_id, period_start, period_end)
        for record in records:
            if record.get("status") != PROCESSED_IMPORT_STATUS:
                continue
            metric = IMPORT_DATA_TYPES.get(record.get("data_type"))
            if metric is None:
                continue
            totals[metric] += float(record.get("amount") or 0)
        return totals

    # =========================================================================
    # Reducers
    # =========================================================================

    @staticmethod
    def _reduce_payments(records: list[dict]) -> dict:
        revenue = 0.0
        for record in records:
            amount = abs(float(record.get("amount") or 0))
            revenue += -amount if record.get("is_refund") else amount
        return {"revenue_total": revenue}

    def _reduce_shifts(self, records: list[dict]) -> dict:
        rate = self.settings.avg_hourly_rate
        ordinary = self.settings.ordinary_hours_per_shift

        hours = 0.0
        overtime_hours = 0.0
        for record in records:
            shift_hours = float(record.get("hours") or 0)
            hours += shift_hours
            overtime_hours += max(0.0, shift_hours - ordinary)

        wages = hours * rate
        return {
            "labour_wages": wages,
            "labour_super": wages * self.settings.super_rate,
            "labour_overtime": overtime_hours * rate * self.settings.overtime_loading,
        }

    @staticmethod
    def _reduce_overheads(records: list[dict]) -> dict:
        overhead = 0.0
        ops_supplies = 0.0
        for record in records:
            amount = float(record.get("amount") or 0)
            if record.get("category_name") in OPS_SUPPLY_CATEGORIES:
                ops_supplies += amount
            else:
                overhead += amount
        return {"overhead_total": overhead, "ops_supplies_total": ops_supplies}

    @staticmethod
    def _reduce_waste(records: list[dict]) -> dict:
        totals = {metric: 0.0 for metric in WASTE_MODULES.values()}
        for record in records:
            if record.get("status") != APPROVED_WASTE_STATUS:
                continue
            metric = WASTE_MODULES.get(str(record.get("module") or "").lower())
            if metric:
                totals[metric] += float(record.get("cost") or 0)
        return totals

    @staticmethod
    def _reduce_pours(records: list[dict]) -> dict:
        return {"cogs_beverage": sum(float(r.get("cost_per_pour") or 0) for r in records)}

    @staticmethod
    def _reduce_reservations(records: list[dict]) -> dict:
        covers = sum(
            int(r.get("party_size") or 0)
            for r in records
            if r.get("status") == COMPLETED_RESERVATION_STATUS
        )
        return {"covers_total": float(covers)}

    # =========================================================================
    # Merge and derive
    # =========================================================================

    @staticmethod
    def merge_channels(direct: dict, imported: dict) -> tuple[dict, dict]:
        """
        Apply the direct-else-imported precedence to every merged metric.

        Returns:
            (values, sources) where sources maps metric -> ChannelOrigin value
        """
        values = {}
        sources = {}
        for metric in MERGED_METRICS:
            direct_value = direct.get(metric, 0.0)
            imported_value = imported.get(metric, 0.0)
            if direct_value != 0:
                values[metric], sources[metric] = direct_value, ChannelOrigin.DIRECT.value
            elif imported_value != 0:
                values[metric], sources[metric] = imported_value, ChannelOrigin.IMPORTED.value
            else:
                values[metric], sources[metric] = 0.0, ChannelOrigin.NONE.value
        return values, sources

    def build_snapshot(
        self,
        org_id: str,
        period_start: date,
        period_end: date,
        period_type: str,
        direct: dict,
        imported: dict,
    ) -> FinancialSnapshot:
        """
        Merge both channels and compute every derived figure.

        Derived figures are computed from the unrounded merged values; each
        output is rounded once as the snapshot is built.
        """
        merged, sources = self.merge_channels(direct, imported)

        revenue = merged["revenue_total"]
        # Revenue that stores as 0.00 must not produce ratios
        if round_half_up(revenue) == 0:
            revenue = 0.0
        labour = merged["labour_total"]
        overhead = merged["overhead_total"]
        ops_supplies = merged["ops_supplies_total"]
        covers = merged["covers_total"]

        gross_profit = revenue - (
            merged["cogs_food"]
            + merged["cogs_beverage"]
            + merged["cogs_waste_food"]
            + merged["cogs_waste_beverage"]
        )
        prime_cost = merged["cogs_food"] + merged["cogs_beverage"] + labour + ops_supplies
        net_profit = gross_profit - labour - ops_supplies - overhead

        completeness = sum(1 for metric in COMPLETENESS_METRICS if merged[metric] != 0)

        # Wage breakdown only exists for directly estimated labour; the stored
        # total is the sum of the stored parts
        if sources["labour_total"] == ChannelOrigin.DIRECT.value:
            wages = round_half_up(direct["labour_wages"])
            super_ = round_half_up(direct["labour_super"])
            overtime = round_half_up(direct["labour_overtime"])
            labour_total = round_half_up(wages + super_ + overtime)
        else:
            wages = super_ = overtime = 0.0
            labour_total = round_half_up(labour)

        return FinancialSnapshot(
            org_id=org_id,
            period_start=period_start,
            period_end=period_end,
            period_type=period_type,
            revenue_total=round_half_up(revenue),
            cogs_food=round_half_up(merged["cogs_food"]),
            cogs_beverage=round_half_up(merged["cogs_beverage"]),
            cogs_waste_food=round_half_up(merged["cogs_waste_food"]),
            cogs_waste_beverage=round_half_up(merged["cogs_waste_beverage"]),
            gross_profit=round_half_up(gross_profit),
            gross_margin_pct=round_half_up(safe_pct(gross_profit, revenue)),
            labour_wages=wages,
            labour_super=super_,
            labour_overtime=overtime,
            labour_total=labour_total,
            labour_pct=round_half_up(safe_pct(labour, revenue)),
            overhead_total=round_half_up(overhead),
            overhead_pct=round_half_up(safe_pct(overhead, revenue)),
            ops_supplies_total=round_half_up(ops_supplies),
            ops_supplies_pct=round_half_up(safe_pct(ops_supplies, revenue)),
            prime_cost=round_half_up(prime_cost),
            prime_cost_pct=round_half_up(safe_pct(prime_cost, revenue)),
            net_profit=round_half_up(net_profit),
            net_profit_pct=round_half_up(safe_pct(net_profit, revenue)),
            break_even_revenue=round_half_up(
                self.break_even(revenue, gross_profit, overhead + labour + ops_supplies)
            ),
            covers_total=round_half_up(covers),
            avg_spend_per_cover=round_half_up(revenue / covers) if covers > 0 else 0.0,
            data_completeness_pct=round_half_up(completeness / len(COMPLETENESS_METRICS) * 100),
            metric_sources=sources,
            generated_at=utcnow(),
        )

    @staticmethod
    def break_even(revenue: float, gross_profit: float, fixed_costs: float) -> float:
        """
        Revenue needed to cover fixed costs at the current contribution margin.

        A non-positive margin ratio has no finite break-even and returns 0.
        """
        if revenue <= 0:
            return 0.0
        ratio = gross_profit / revenue
        if ratio <= 0:
            return 0.0
        return fixed_costs / ratio
