"""
Pytest configuration and shared fixtures for the opshealth test suite.

Provides model factories, an in-memory MockStorage implementing the full
StorageBackend contract, and API client fixtures (unit, integration, golden,
property-based).
"""

import os
import tempfile
import uuid as _uuid
from collections import defaultdict
from datetime import date, datetime, time, timedelta
from typing import Optional

import pytest
from fastapi.testclient import TestClient

# Set testing environment BEFORE importing the app. DuckDB creates the file.
_test_db_path = os.path.join(tempfile.gettempdir(), f"opshealth_test_{_uuid.uuid4().hex[:8]}.duckdb")
os.environ["TESTING"] = "true"
os.environ["DB_PATH"] = _test_db_path


# ---------------------------------------------------------------------------
# Pydantic model factories, shared across test suites
# ---------------------------------------------------------------------------

from opshealth.models.alerts import IssueRecord
from opshealth.models.costs import CostEntry
from opshealth.models.enums import FreshnessStatus, MetricSource, OperatingMode
from opshealth.models.health import ModuleHealthRecord
from opshealth.models.roster import ShiftRecord
from opshealth.models.snapshot import FinancialSnapshot
from opshealth.storage.base import ACTIVITY_TABLES, StorageBackend, StorageError
from opshealth.utils.clock import utcnow

NOW = datetime(2026, 3, 9, 12, 0, 0)
PERIOD_START = date(2026, 3, 2)
PERIOD_END = date(2026, 3, 8)


def make_snapshot(
    org_id: str = "org-test",
    revenue_total: float = 10000.0,
    labour_total: float = 2500.0,
    cogs_food: float = 3000.0,
    ops_supplies_total: float = 200.0,
    net_profit_pct: float = 12.0,
    **overrides,
) -> FinancialSnapshot:
    """Factory function for creating test FinancialSnapshot objects."""
    defaults = dict(
        org_id=org_id,
        period_start=PERIOD_START,
        period_end=PERIOD_END,
        period_type="weekly",
        revenue_total=revenue_total,
        cogs_food=cogs_food,
        labour_total=labour_total,
        labour_pct=labour_total / revenue_total * 100 if revenue_total else 0.0,
        ops_supplies_total=ops_supplies_total,
        ops_supplies_pct=ops_supplies_total / revenue_total * 100 if revenue_total else 0.0,
        net_profit_pct=net_profit_pct,
    )
    defaults.update(overrides)
    return FinancialSnapshot(**defaults)


def make_module(
    module_key: str = "recipes",
    label: str = "Recipes",
    status: FreshnessStatus = FreshnessStatus.FRESH,
    score: int = 100,
    last_data_at: Optional[datetime] = NOW,
    **overrides,
) -> ModuleHealthRecord:
    """Factory function for creating test ModuleHealthRecord objects."""
    defaults = dict(
        org_id="org-test",
        module_key=module_key,
        label=label,
        score=score,
        status=status,
        last_data_at=last_data_at,
        record_count=10 if last_data_at else 0,
        hours_since=None,
    )
    defaults.update(overrides)
    return ModuleHealthRecord(**defaults)


def make_issue(
    issue_id: str = "iss-1",
    severity: str = "medium",
    title: str = "Walk-in door seal torn",
    **overrides,
) -> IssueRecord:
    """Factory function for creating test IssueRecord objects."""
    defaults = dict(
        id=issue_id,
        title=title,
        detail="Reported by closing chef",
        severity=severity,
        module="safety_checks",
    )
    defaults.update(overrides)
    return IssueRecord(**defaults)


def make_shift(
    day: date,
    start: str = "09:00",
    end: str = "17:00",
    break_minutes: int = 0,
    worker_id: str = "w-1",
) -> ShiftRecord:
    """Factory function for creating test ShiftRecord objects from HH:MM strings."""
    return ShiftRecord(
        worker_id=worker_id,
        date=day,
        start_time=time.fromisoformat(start),
        end_time=time.fromisoformat(end),
        break_minutes=break_minutes,
    )


def make_cost_series(costs: list, start: datetime = NOW, spacing_days: int = 7) -> list[CostEntry]:
    """Cost entries most-recent-first, one every spacing_days going back from start."""
    return [
        CostEntry(id=f"c{i}", cost=cost, recorded_at=start - timedelta(days=spacing_days * i))
        for i, cost in enumerate(costs)
    ]


# ---------------------------------------------------------------------------
# In-memory storage
# ---------------------------------------------------------------------------

# Date attribute each source is filtered on
SOURCE_DATE_FIELDS = {
    MetricSource.POS_PAYMENTS: "created_at",
    MetricSource.POS_SHIFTS: "clock_in",
    MetricSource.OVERHEAD_ENTRIES: "entry_date",
    MetricSource.WASTE_LOGS: "shift_date",
    MetricSource.BEV_POUR_EVENTS: "shift_date",
    MetricSource.RES_RESERVATIONS: "reservation_date",
}


def _as_date(value):
    return value.date() if isinstance(value, datetime) else value


class MockStorage(StorageBackend):
    """
    In-memory StorageBackend for unit tests.

    Failure injection:
        fail_sources: sources whose reads raise StorageError
        fail_issues: unresolved-issue reads raise StorageError
        fail_snapshot_writes: every snapshot write raises StorageError
        enforce_snapshot_key: False keeps every write as a new row
    """

    def __init__(self, enforce_snapshot_key: bool = True):
        self.enforce_snapshot_key = enforce_snapshot_key
        self.fail_sources: set = set()
        self.fail_issues = False
        self.fail_snapshot_writes = False

        self._sources: dict = defaultdict(list)
        self._snapshots: list[FinancialSnapshot] = []
        self._modes: dict = {}
        self._sync: dict = defaultdict(dict)
        self._activity: dict = defaultdict(list)
        self._health: dict = {}
        self._audits: dict = defaultdict(list)
        self._issues: dict = defaultdict(list)
        self._alerts: dict = {}

    # --- Source channel ---
    def write_source_records(self, source, records):
        self._sources[source].extend(dict(r) for r in records)
        return len(records)

    def read_source_records(self, source, org_id, period_start, period_end):
        if source in self.fail_sources:
            raise StorageError(f"{source.value} unavailable")
        results = []
        for record in self._sources[source]:
            if record.get("org_id") != org_id:
                continue
            if source == MetricSource.DATA_IMPORTS:
                if record["period_start"] >= period_start and record["period_end"] <= period_end:
                    results.append(dict(record))
                continue
            day = _as_date(record[SOURCE_DATE_FIELDS[source]])
            if period_start <= day <= period_end:
                results.append(dict(record))
        return results

    # --- Snapshots ---
    def upsert_snapshot(self, snapshot):
        if self.fail_snapshot_writes:
            raise StorageError("snapshot store unavailable")
        if self.enforce_snapshot_key:
            self._snapshots = [s for s in self._snapshots if s.natural_key != snapshot.natural_key]
        self._snapshots.append(snapshot)
        return snapshot

    def _matching(self, org_id, period_start, period_end, period_type):
        key = (org_id, period_start, period_end, period_type)
        return [s for s in self._snapshots if s.natural_key == key]

    def read_snapshot(self, org_id, period_start, period_end, period_type):
        rows = self._matching(org_id, period_start, period_end, period_type)
        return max(rows, key=lambda s: s.generated_at) if rows else None

    def read_latest_snapshot(self, org_id, period_type=None):
        rows = [
            s for s in self._snapshots
            if s.org_id == org_id and (period_type is None or s.period_type == period_type)
        ]
        return max(rows, key=lambda s: (s.period_end, s.generated_at)) if rows else None

    def count_snapshot_rows(self, org_id, period_start, period_end, period_type):
        return len(self._matching(org_id, period_start, period_end, period_type))

    # --- Module health ---
    def write_operating_mode(self, org_id, mode):
        self._modes[org_id] = OperatingMode(mode)

    def read_operating_mode(self, org_id):
        return self._modes.get(org_id)

    def write_module_sync(self, org_id, module_key, last_sync_at, record_count):
        self._sync[org_id][module_key] = {
            "module_key": module_key,
            "last_sync_at": last_sync_at,
            "record_count": record_count,
        }

    def read_module_sync(self, org_id):
        return list(self._sync[org_id].values())

    def write_activity_records(self, table, records):
        if table not in ACTIVITY_TABLES:
            raise StorageError(f"Unknown activity table: {table}")
        self._activity[table].extend(dict(r) for r in records)
        return len(records)

    def read_table_activity(self, org_id, table):
        if table not in ACTIVITY_TABLES:
            raise StorageError(f"Unknown activity table: {table}")
        rows = [r for r in self._activity[table] if r["org_id"] == org_id]
        latest = max((r["created_at"] for r in rows), default=None)
        return len(rows), latest

    def write_module_health(self, org_id, records):
        self._health[org_id] = list(records)
        return len(records)

    def read_module_health(self, org_id):
        return list(self._health.get(org_id, []))

    # --- Reactor ---
    def write_audit_score(self, org_id, score, recorded_at=None):
        self._audits[org_id].append((recorded_at or utcnow(), score))

    def read_latest_audit_score(self, org_id):
        if not self._audits[org_id]:
            return None
        return max(self._audits[org_id], key=lambda a: a[0])[1]

    def write_issue(self, org_id, issue, resolved=False):
        self._issues[org_id].append((issue, resolved))
        return issue.id

    def read_unresolved_issues(self, org_id):
        if self.fail_issues:
            raise StorageError("issue store not provisioned")
        return [issue for issue, resolved in self._issues[org_id] if not resolved]

    def replace_alerts(self, org_id, alerts):
        self._alerts[org_id] = list(alerts)
        return len(alerts)

    def read_alerts(self, org_id):
        return list(self._alerts.get(org_id, []))


# ---------------------------------------------------------------------------
# Pytest fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def mock_storage():
    """Fresh MockStorage instance for each test."""
    return MockStorage()


@pytest.fixture
def now():
    """Fixed reference time for freshness scoring."""
    return NOW


@pytest.fixture
def sample_org_id():
    """Sample organization id."""
    return "org-test"


@pytest.fixture
def populated_storage(mock_storage, sample_org_id):
    """MockStorage with one week of direct and imported records for sample_org_id."""
    org = sample_org_id
    day = datetime.combine(PERIOD_START, time(12, 0))

    mock_storage.write_source_records(MetricSource.POS_PAYMENTS, [
        {"org_id": org, "amount": 6000.0, "is_refund": False, "created_at": day},
        {"org_id": org, "amount": 4200.0, "is_refund": False, "created_at": day + timedelta(days=3)},
        {"org_id": org, "amount": 200.0, "is_refund": True, "created_at": day + timedelta(days=4)},
    ])
    mock_storage.write_source_records(MetricSource.POS_SHIFTS, [
        {"org_id": org, "worker_id": "w-1", "hours": 8.0, "clock_in": day},
        {"org_id": org, "worker_id": "w-2", "hours": 7.0, "clock_in": day + timedelta(days=1)},
    ])
    mock_storage.write_source_records(MetricSource.OVERHEAD_ENTRIES, [
        {"org_id": org, "amount": 1500.0, "category_name": "Rent", "entry_date": PERIOD_START},
        {"org_id": org, "amount": 100.0, "category_name": "Cleaning Chemicals", "entry_date": PERIOD_START},
    ])
    mock_storage.write_source_records(MetricSource.WASTE_LOGS, [
        {"org_id": org, "module": "food", "status": "approved", "cost": 50.0, "shift_date": PERIOD_START},
        {"org_id": org, "module": "beverage", "status": "approved", "cost": 20.0, "shift_date": PERIOD_START},
        {"org_id": org, "module": "food", "status": "pending", "cost": 999.0, "shift_date": PERIOD_START},
    ])
    mock_storage.write_source_records(MetricSource.BEV_POUR_EVENTS, [
        {"org_id": org, "cost_per_pour": 2.5, "shift_date": PERIOD_START} for _ in range(100)
    ])
    mock_storage.write_source_records(MetricSource.RES_RESERVATIONS, [
        {"org_id": org, "party_size": 4, "status": "COMPLETED", "reservation_date": PERIOD_START},
        {"org_id": org, "party_size": 6, "status": "COMPLETED", "reservation_date": PERIOD_END},
        {"org_id": org, "party_size": 8, "status": "CANCELLED", "reservation_date": PERIOD_END},
    ])
    mock_storage.write_source_records(MetricSource.DATA_IMPORTS, [
        {
            "org_id": org, "data_type": "food_cost", "amount": 3000.0, "status": "processed",
            "period_start": PERIOD_START, "period_end": PERIOD_END,
        },
    ])
    return mock_storage


@pytest.fixture
def client():
    """FastAPI test client for integration tests."""
    from opshealth.main import app
    with TestClient(app) as c:
        yield c


@pytest.fixture
def auth_headers(sample_org_id):
    """Bearer headers carrying a real token for sample_org_id."""
    from opshealth.auth.jwt import create_org_token
    return {
        "Authorization": f"Bearer {create_org_token(sample_org_id)}",
        "X-Request-ID": str(_uuid.uuid4()),
    }
