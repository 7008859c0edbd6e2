"""
Abstract storage interface for the operational health engine.

Every engine component communicates only through persisted, re-readable
outputs. This module defines that contract so the DuckDB backend (and the
in-memory test double) are interchangeable:

- Source channel: time-stamped records landed by Metric Source Adapters
- Snapshots: period financial aggregates keyed by their natural key
- Health: operating-mode flags, last-sync signals, activity tables, scores
- Reactor: audit scores, unresolved issues, and the latest alert list
"""

from abc import ABC, abstractmethod
from datetime import date, datetime
from typing import Optional

from opshealth.models.alerts import Alert, IssueRecord
from opshealth.models.enums import MetricSource, OperatingMode
from opshealth.models.health import ModuleHealthRecord
from opshealth.models.snapshot import FinancialSnapshot

# Raw activity tables scored directly in home-cook mode
ACTIVITY_TABLES = (
    "recipes",
    "pantry_items",
    "safety_logs",
    "prep_lists",
    "cleaning_completions",
    "waste_logs",
)


class StorageError(Exception):
    """Base exception for all storage operation failures."""

    pass


class StorageBackend(ABC):
    """
    Abstract base class for all storage implementations.

    All reads are bounded, single-shot queries scoped to one organization.
    Implementations wrap driver failures in StorageError so callers can decide
    per call whether a failure is fatal or degrades to "no data".
    """

    # =========================================================================
    # Source channel
    # =========================================================================

    @abstractmethod
    def write_source_records(self, source: MetricSource, records: list[dict]) -> int:
        """
        Land raw records from a Metric Source Adapter.

        Args:
            source: Source table the records belong to
            records: Record dicts; each must carry org_id

        Returns:
            Count of records written

        Raises:
            StorageError: If the write fails
        """
        pass

    @abstractmethod
    def read_source_records(
        self,
        source: MetricSource,
        org_id: str,
        period_start: date,
        period_end: date,
    ) -> list[dict]:
        """
        Read one org's records for an inclusive date range.

        Imported records (DATA_IMPORTS) match when their own period lies
        inside the range; every other source matches on its record date.
        An empty list is a valid answer, not an error.

        Raises:
            StorageError: If the read fails
        """
        pass

    # =========================================================================
    # Snapshots
    # =========================================================================

    @abstractmethod
    def upsert_snapshot(self, snapshot: FinancialSnapshot) -> FinancialSnapshot:
        """
        Persist a snapshot keyed by (org_id, period_start, period_end, period_type).

        Uses the store's uniqueness constraint when available so the last
        writer wins; otherwise falls back to a plain insert, leaving duplicate
        rows that readers resolve by latest generated_at.

        Returns:
            The snapshot as written

        Raises:
            StorageError: If both the upsert and the fallback insert fail
        """
        pass

    @abstractmethod
    def read_snapshot(
        self,
        org_id: str,
        period_start: date,
        period_end: date,
        period_type: str,
    ) -> Optional[FinancialSnapshot]:
        """Read the most recently generated snapshot for one natural key."""
        pass

    @abstractmethod
    def read_latest_snapshot(
        self, org_id: str, period_type: Optional[str] = None
    ) -> Optional[FinancialSnapshot]:
        """Read the org's snapshot with the latest period_end, then generated_at."""
        pass

    @abstractmethod
    def count_snapshot_rows(
        self,
        org_id: str,
        period_start: date,
        period_end: date,
        period_type: str,
    ) -> int:
        """Count stored rows for one natural key (more than 1 only in degraded mode)."""
        pass

    # =========================================================================
    # Module health
    # =========================================================================

    @abstractmethod
    def write_operating_mode(self, org_id: str, mode: OperatingMode) -> None:
        """Store the tenant's operating-mode flag."""
        pass

    @abstractmethod
    def read_operating_mode(self, org_id: str) -> Optional[OperatingMode]:
        """Read the tenant's operating-mode flag, None when never set."""
        pass

    @abstractmethod
    def write_module_sync(
        self,
        org_id: str,
        module_key: str,
        last_sync_at: Optional[datetime],
        record_count: int,
    ) -> None:
        """Record the last-sync signal for one registry module."""
        pass

    @abstractmethod
    def read_module_sync(self, org_id: str) -> list[dict]:
        """Read all last-sync rows for an org: module_key, last_sync_at, record_count."""
        pass

    @abstractmethod
    def write_activity_records(self, table: str, records: list[dict]) -> int:
        """Insert rows into one of ACTIVITY_TABLES."""
        pass

    @abstractmethod
    def read_table_activity(
        self, org_id: str, table: str
    ) -> tuple[int, Optional[datetime]]:
        """
        Count an org's rows in an activity table and find the latest timestamp.

        Raises:
            StorageError: If table is not one of ACTIVITY_TABLES or the read fails
        """
        pass

    @abstractmethod
    def write_module_health(self, org_id: str, records: list[ModuleHealthRecord]) -> int:
        """Replace the org's persisted module health records."""
        pass

    @abstractmethod
    def read_module_health(self, org_id: str) -> list[ModuleHealthRecord]:
        """Read the org's persisted module health records."""
        pass

    # =========================================================================
    # Reactor inputs and outputs
    # =========================================================================

    @abstractmethod
    def write_audit_score(
        self, org_id: str, score: float, recorded_at: Optional[datetime] = None
    ) -> None:
        """Record an external audit score."""
        pass

    @abstractmethod
    def read_latest_audit_score(self, org_id: str) -> Optional[float]:
        """Read the most recent audit score, None when no audit exists."""
        pass

    @abstractmethod
    def write_issue(self, org_id: str, issue: IssueRecord, resolved: bool = False) -> str:
        """Record an upstream issue."""
        pass

    @abstractmethod
    def read_unresolved_issues(self, org_id: str) -> list[IssueRecord]:
        """
        Read unresolved upstream issues, oldest first.

        Raises:
            StorageError: If the issue store is unavailable for this tenant
        """
        pass

    @abstractmethod
    def replace_alerts(self, org_id: str, alerts: list[Alert]) -> int:
        """Replace the org's alert list with the latest Reactor output."""
        pass

    @abstractmethod
    def read_alerts(self, org_id: str) -> list[Alert]:
        """Read the org's latest alert list in evaluation order."""
        pass
