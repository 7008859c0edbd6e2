"""
DuckDB storage implementation for the operational health engine.

Key features:
- Thread-local connections with lock-guarded, idempotent schema creation
- Declarative source-table registry shared by reads and writes
- Serialised natural-key upsert for snapshots, with a plain-insert
  fallback when the table has no key
- Errors wrapped in StorageError with structured logging
"""

import json
import threading
from contextlib import contextmanager
from datetime import date, datetime
from pathlib import Path
from typing import Any, Optional
from uuid import uuid4

import duckdb
import structlog

from opshealth.models.alerts import Alert, IssueRecord
from opshealth.models.enums import MetricSource, OperatingMode
from opshealth.models.health import ModuleHealthRecord
from opshealth.models.snapshot import VALUE_FIELDS, FinancialSnapshot
from opshealth.utils.clock import utcnow

from .base import ACTIVITY_TABLES, StorageBackend, StorageError

logger = structlog.get_logger(__name__)


# Source table layout: writable columns and the inclusive date predicate
SOURCE_TABLES: dict[MetricSource, dict[str, Any]] = {
    MetricSource.POS_PAYMENTS: {
        "columns": ["record_id", "org_id", "amount", "is_refund", "tip", "created_at"],
        "date_filter": "CAST(created_at AS DATE) BETWEEN ? AND ?",
    },
    MetricSource.POS_SHIFTS: {
        "columns": ["record_id", "org_id", "worker_id", "hours", "clock_in"],
        "date_filter": "CAST(clock_in AS DATE) BETWEEN ? AND ?",
    },
    MetricSource.OVERHEAD_ENTRIES: {
        "columns": ["record_id", "org_id", "amount", "category_name", "entry_date"],
        "date_filter": "entry_date BETWEEN ? AND ?",
    },
    MetricSource.WASTE_LOGS: {
        "columns": ["record_id", "org_id", "module", "status", "cost", "shift_date", "created_at"],
        "date_filter": "shift_date BETWEEN ? AND ?",
    },
    MetricSource.BEV_POUR_EVENTS: {
        "columns": ["record_id", "org_id", "cost_per_pour", "shift_date"],
        "date_filter": "shift_date BETWEEN ? AND ?",
    },
    MetricSource.RES_RESERVATIONS: {
        "columns": ["record_id", "org_id", "party_size", "status", "reservation_date"],
        "date_filter": "reservation_date BETWEEN ? AND ?",
    },
    MetricSource.DATA_IMPORTS: {
        "columns": ["record_id", "org_id", "data_type", "amount", "status", "period_start", "period_end"],
        "date_filter": "period_start >= ? AND period_end <= ?",
    },
}

SNAPSHOT_KEY = ("org_id", "period_start", "period_end", "period_type")
SNAPSHOT_COLUMNS = SNAPSHOT_KEY + VALUE_FIELDS + ("metric_sources", "generated_at")


class DuckDBStorage(StorageBackend):
    """
    DuckDB implementation of the storage backend.

    Attributes:
        db_path: Path to the DuckDB database file
        enforce_snapshot_key: Whether pnl_snapshots carries its natural-key
            constraint; without it snapshot writes run in degraded insert mode
        _local: Thread-local storage for per-thread connections
        _lock: Thread lock for schema operations
        _snapshot_lock: Serialises snapshot writes across threads
    """

    def __init__(self, db_path: str = "./data/opshealth.duckdb", enforce_snapshot_key: bool = True):
        """
        Initialize DuckDB storage backend.

        Args:
            db_path: Path to DuckDB database file
            enforce_snapshot_key: Create pnl_snapshots with a primary key on
                (org_id, period_start, period_end, period_type)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self.enforce_snapshot_key = enforce_snapshot_key

        self._local = threading.local()
        self._lock = threading.Lock()
        self._snapshot_lock = threading.Lock()
        self._initialized = False

        logger.info(
            "duckdb_storage_initialized",
            db_path=str(self.db_path),
            enforce_snapshot_key=enforce_snapshot_key,
        )

        self._initialize_schema()

    @contextmanager
    def _get_connection(self):
        """
        Get a thread-local DuckDB connection.

        Yields:
            DuckDB connection instance

        Raises:
            StorageError: If connection cannot be established
        """
        if not hasattr(self._local, "connection"):
            try:
                self._local.connection = duckdb.connect(str(self.db_path))
                logger.debug("duckdb_connection_created", thread_id=threading.get_ident())
            except duckdb.Error as e:
                logger.error("duckdb_connection_failed", error=str(e))
                raise StorageError(f"Failed to connect to DuckDB: {e}") from e

        yield self._local.connection

    @contextmanager
    def _transaction(self):
        """Run a block inside an explicit transaction, rolling back on error."""
        with self._get_connection() as conn:
            conn.begin()
            try:
                yield conn
            except Exception:
                conn.rollback()
                raise
            conn.commit()

    def _initialize_schema(self):
        """
        Create all tables. Idempotent and safe to call multiple times.

        Raises:
            StorageError: If schema creation fails
        """
        if self._initialized:
            return

        with self._lock:
            if self._initialized:
                return

            try:
                with self._get_connection() as conn:
                    # =========================================================
                    # Direct channel
                    # =========================================================

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS pos_payments (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            amount DOUBLE NOT NULL,
                            is_refund BOOLEAN NOT NULL DEFAULT FALSE,
                            tip DOUBLE,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS pos_shifts (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            worker_id VARCHAR,
                            hours DOUBLE,
                            clock_in TIMESTAMP NOT NULL
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS overhead_entries (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            amount DOUBLE,
                            category_name VARCHAR,
                            entry_date DATE NOT NULL
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS waste_logs (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            module VARCHAR NOT NULL,
                            status VARCHAR NOT NULL,
                            cost DOUBLE,
                            shift_date DATE NOT NULL,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS bev_pour_events (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            cost_per_pour DOUBLE,
                            shift_date DATE NOT NULL
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS res_reservations (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            party_size INTEGER,
                            status VARCHAR NOT NULL,
                            reservation_date DATE NOT NULL
                        )
                    """)

                    # =========================================================
                    # Imported channel
                    # =========================================================

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS data_imports (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            data_type VARCHAR NOT NULL,
                            amount DOUBLE,
                            status VARCHAR NOT NULL,
                            period_start DATE NOT NULL,
                            period_end DATE NOT NULL
                        )
                    """)

                    # =========================================================
                    # Snapshots
                    # =========================================================

                    value_columns = ",\n".join(
                        f"                            {name} DOUBLE NOT NULL DEFAULT 0"
                        for name in VALUE_FIELDS
                    )
                    key_constraint = (
                        ",\n                            PRIMARY KEY (org_id, period_start, period_end, period_type)"
                        if self.enforce_snapshot_key
                        else ""
                    )
                    conn.execute(f"""
                        CREATE TABLE IF NOT EXISTS pnl_snapshots (
                            org_id VARCHAR NOT NULL,
                            period_start DATE NOT NULL,
                            period_end DATE NOT NULL,
                            period_type VARCHAR NOT NULL,
{value_columns},
                            metric_sources JSON,
                            generated_at TIMESTAMP NOT NULL{key_constraint}
                        )
                    """)

                    # =========================================================
                    # Module health
                    # =========================================================

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS org_settings (
                            org_id VARCHAR PRIMARY KEY,
                            operating_mode VARCHAR NOT NULL,
                            updated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS module_sync_status (
                            org_id VARCHAR NOT NULL,
                            module_key VARCHAR NOT NULL,
                            last_sync_at TIMESTAMP,
                            record_count INTEGER NOT NULL DEFAULT 0,
                            PRIMARY KEY (org_id, module_key)
                        )
                    """)

                    for table in ACTIVITY_TABLES:
                        if table == "waste_logs":
                            continue
                        conn.execute(f"""
                            CREATE TABLE IF NOT EXISTS {table} (
                                record_id VARCHAR PRIMARY KEY,
                                org_id VARCHAR NOT NULL,
                                created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP,
                                payload JSON
                            )
                        """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS module_health (
                            org_id VARCHAR NOT NULL,
                            module_key VARCHAR NOT NULL,
                            label VARCHAR NOT NULL,
                            score INTEGER NOT NULL,
                            status VARCHAR NOT NULL,
                            last_data_at TIMESTAMP,
                            record_count INTEGER NOT NULL,
                            hours_since DOUBLE,
                            position INTEGER NOT NULL
                        )
                    """)

                    # =========================================================
                    # Reactor
                    # =========================================================

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS audit_scores (
                            record_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            overall_score DOUBLE NOT NULL,
                            recorded_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS ops_issues (
                            issue_id VARCHAR PRIMARY KEY,
                            org_id VARCHAR NOT NULL,
                            title VARCHAR NOT NULL,
                            detail VARCHAR,
                            severity VARCHAR NOT NULL,
                            module VARCHAR,
                            resolved BOOLEAN NOT NULL DEFAULT FALSE,
                            created_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    conn.execute("""
                        CREATE TABLE IF NOT EXISTS reactor_alerts (
                            org_id VARCHAR NOT NULL,
                            position INTEGER NOT NULL,
                            alert_id VARCHAR NOT NULL,
                            level VARCHAR NOT NULL,
                            title VARCHAR NOT NULL,
                            detail VARCHAR,
                            source_module VARCHAR NOT NULL,
                            generated_at TIMESTAMP NOT NULL DEFAULT CURRENT_TIMESTAMP
                        )
                    """)

                    self._initialized = True
                    logger.info("duckdb_schema_initialized")

            except duckdb.Error as e:
                logger.error("duckdb_schema_initialization_failed", error=str(e))
                raise StorageError(f"Failed to initialize schema: {e}") from e

    def clear_for_testing(self) -> None:
        """Delete every row from every table. For test isolation only."""
        tables = [source.value for source in SOURCE_TABLES] + [
            "pnl_snapshots", "org_settings", "module_sync_status", "module_health",
            "audit_scores", "ops_issues", "reactor_alerts",
        ] + [t for t in ACTIVITY_TABLES if t != "waste_logs"]
        with self._get_connection() as conn:
            for table in tables:
                conn.execute(f"DELETE FROM {table}")

    # =========================================================================
    # Source channel
    # =========================================================================

    def write_source_records(self, source: MetricSource, records: list[dict]) -> int:
        """Insert adapter records into a source table, assigning record ids."""
        if not records:
            return 0

        allowed = SOURCE_TABLES[source]["columns"]
        try:
            with self._transaction() as conn:
                for record in records:
                    row = {k: v for k, v in record.items() if k in allowed and v is not None}
                    row.setdefault("record_id", str(uuid4()))
                    columns = list(row.keys())
                    placeholders = ", ".join(["?"] * len(columns))
                    conn.execute(
                        f"INSERT INTO {source.value} ({', '.join(columns)}) VALUES ({placeholders})",
                        [row[c] for c in columns],
                    )
            logger.debug("source_records_written", source=source.value, count=len(records))
            return len(records)

        except duckdb.Error as e:
            logger.error("write_source_records_failed", source=source.value, error=str(e))
            raise StorageError(f"Failed to write {source.value} records: {e}") from e

    def read_source_records(
        self,
        source: MetricSource,
        org_id: str,
        period_start: date,
        period_end: date,
    ) -> list[dict]:
        """Read one org's source records for an inclusive date range."""
        spec = SOURCE_TABLES[source]
        columns = spec["columns"]
        query = (
            f"SELECT {', '.join(columns)} FROM {source.value} "
            f"WHERE org_id = ? AND {spec['date_filter']}"
        )
        try:
            with self._get_connection() as conn:
                rows = conn.execute(query, [org_id, period_start, period_end]).fetchall()
            records = [dict(zip(columns, row)) for row in rows]
            logger.debug("source_records_read", source=source.value, org_id=org_id, count=len(records))
            return records

        except duckdb.Error as e:
            logger.error("read_source_records_failed", source=source.value, org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read {source.value} records: {e}") from e

    # =========================================================================
    # Snapshots
    # =========================================================================

    def _snapshot_params(self, snapshot: FinancialSnapshot) -> list:
        data = snapshot.model_dump()
        data["metric_sources"] = json.dumps(snapshot.metric_sources, sort_keys=True)
        return [data[c] for c in SNAPSHOT_COLUMNS]

    def upsert_snapshot(self, snapshot: FinancialSnapshot) -> FinancialSnapshot:
        """
        Upsert on the natural key.

        Writes are serialised so concurrent regenerations of one period
        resolve to last-writer-wins instead of a transaction conflict. Only
        a missing conflict target (the keyless table of degraded mode)
        falls back to a plain insert; any other failure raises.
        """
        columns = ", ".join(SNAPSHOT_COLUMNS)
        placeholders = ", ".join(["?"] * len(SNAPSHOT_COLUMNS))
        updates = ", ".join(
            f"{c} = EXCLUDED.{c}" for c in SNAPSHOT_COLUMNS if c not in SNAPSHOT_KEY
        )
        params = self._snapshot_params(snapshot)

        with self._snapshot_lock, self._get_connection() as conn:
            try:
                conn.execute(
                    f"""
                    INSERT INTO pnl_snapshots ({columns}) VALUES ({placeholders})
                    ON CONFLICT (org_id, period_start, period_end, period_type)
                    DO UPDATE SET {updates}
                    """,
                    params,
                )
                logger.debug("snapshot_upserted", org_id=snapshot.org_id)
                return snapshot
            except duckdb.BinderException as e:
                logger.warning(
                    "snapshot_upsert_fallback",
                    org_id=snapshot.org_id,
                    period_start=str(snapshot.period_start),
                    period_end=str(snapshot.period_end),
                    error=str(e),
                )
            except duckdb.Error as e:
                logger.error("snapshot_upsert_failed", org_id=snapshot.org_id, error=str(e))
                raise StorageError(f"Failed to upsert snapshot: {e}") from e

            try:
                conn.execute(
                    f"INSERT INTO pnl_snapshots ({columns}) VALUES ({placeholders})",
                    params,
                )
                return snapshot
            except duckdb.Error as e:
                logger.error("snapshot_insert_failed", org_id=snapshot.org_id, error=str(e))
                raise StorageError(f"Failed to persist snapshot: {e}") from e

    def _row_to_snapshot(self, row: tuple) -> FinancialSnapshot:
        data = dict(zip(SNAPSHOT_COLUMNS, row))
        data["metric_sources"] = json.loads(data["metric_sources"]) if data["metric_sources"] else {}
        return FinancialSnapshot(**data)

    def _query_snapshots(self, where: str, params: list, limit: int = 1) -> list[FinancialSnapshot]:
        query = (
            f"SELECT {', '.join(SNAPSHOT_COLUMNS)} FROM pnl_snapshots WHERE {where} "
            "ORDER BY period_end DESC, generated_at DESC LIMIT ?"
        )
        try:
            with self._get_connection() as conn:
                rows = conn.execute(query, params + [limit]).fetchall()
            return [self._row_to_snapshot(row) for row in rows]
        except duckdb.Error as e:
            logger.error("read_snapshots_failed", error=str(e))
            raise StorageError(f"Failed to read snapshots: {e}") from e

    def read_snapshot(
        self,
        org_id: str,
        period_start: date,
        period_end: date,
        period_type: str,
    ) -> Optional[FinancialSnapshot]:
        """Read the latest-generated snapshot for one natural key."""
        rows = self._query_snapshots(
            "org_id = ? AND period_start = ? AND period_end = ? AND period_type = ?",
            [org_id, period_start, period_end, period_type],
        )
        return rows[0] if rows else None

    def read_latest_snapshot(
        self, org_id: str, period_type: Optional[str] = None
    ) -> Optional[FinancialSnapshot]:
        """Read the org's most recent snapshot, optionally for one period type."""
        where = "org_id = ?"
        params: list = [org_id]
        if period_type:
            where += " AND period_type = ?"
            params.append(period_type)
        rows = self._query_snapshots(where, params)
        return rows[0] if rows else None

    def count_snapshot_rows(
        self,
        org_id: str,
        period_start: date,
        period_end: date,
        period_type: str,
    ) -> int:
        """Count stored rows for one natural key."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    """
                    SELECT COUNT(*) FROM pnl_snapshots
                    WHERE org_id = ? AND period_start = ? AND period_end = ? AND period_type = ?
                    """,
                    [org_id, period_start, period_end, period_type],
                ).fetchone()
            return int(row[0])
        except duckdb.Error as e:
            raise StorageError(f"Failed to count snapshots: {e}") from e

    # =========================================================================
    # Module health
    # =========================================================================

    def write_operating_mode(self, org_id: str, mode: OperatingMode) -> None:
        """Store the tenant's operating-mode flag."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO org_settings (org_id, operating_mode, updated_at)
                    VALUES (?, ?, CURRENT_TIMESTAMP)
                    ON CONFLICT (org_id) DO UPDATE SET
                        operating_mode = EXCLUDED.operating_mode,
                        updated_at = EXCLUDED.updated_at
                    """,
                    [org_id, OperatingMode(mode).value],
                )
        except duckdb.Error as e:
            logger.error("write_operating_mode_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to write operating mode: {e}") from e

    def read_operating_mode(self, org_id: str) -> Optional[OperatingMode]:
        """Read the tenant's operating-mode flag."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT operating_mode FROM org_settings WHERE org_id = ?", [org_id]
                ).fetchone()
            return OperatingMode(row[0]) if row else None
        except duckdb.Error as e:
            logger.error("read_operating_mode_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read operating mode: {e}") from e

    def write_module_sync(
        self,
        org_id: str,
        module_key: str,
        last_sync_at: Optional[datetime],
        record_count: int,
    ) -> None:
        """Upsert the last-sync signal for one registry module."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO module_sync_status (org_id, module_key, last_sync_at, record_count)
                    VALUES (?, ?, ?, ?)
                    ON CONFLICT (org_id, module_key) DO UPDATE SET
                        last_sync_at = EXCLUDED.last_sync_at,
                        record_count = EXCLUDED.record_count
                    """,
                    [org_id, module_key, last_sync_at, record_count],
                )
        except duckdb.Error as e:
            logger.error("write_module_sync_failed", org_id=org_id, module_key=module_key, error=str(e))
            raise StorageError(f"Failed to write module sync: {e}") from e

    def read_module_sync(self, org_id: str) -> list[dict]:
        """Read all last-sync rows for an org."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT module_key, last_sync_at, record_count
                    FROM module_sync_status WHERE org_id = ?
                    """,
                    [org_id],
                ).fetchall()
            return [
                {"module_key": r[0], "last_sync_at": r[1], "record_count": r[2]}
                for r in rows
            ]
        except duckdb.Error as e:
            logger.error("read_module_sync_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read module sync: {e}") from e

    def write_activity_records(self, table: str, records: list[dict]) -> int:
        """Insert rows into an activity table."""
        if table not in ACTIVITY_TABLES:
            raise StorageError(f"Unknown activity table: {table}")
        if table == "waste_logs":
            return self.write_source_records(MetricSource.WASTE_LOGS, records)
        if not records:
            return 0

        try:
            with self._transaction() as conn:
                for record in records:
                    params = [
                        record.get("record_id") or str(uuid4()),
                        record["org_id"],
                        record.get("created_at") or utcnow(),
                        json.dumps(record.get("payload", {})),
                    ]
                    conn.execute(
                        f"INSERT INTO {table} (record_id, org_id, created_at, payload) VALUES (?, ?, ?, ?)",
                        params,
                    )
            return len(records)
        except duckdb.Error as e:
            logger.error("write_activity_records_failed", table=table, error=str(e))
            raise StorageError(f"Failed to write {table} records: {e}") from e

    def read_table_activity(
        self, org_id: str, table: str
    ) -> tuple[int, Optional[datetime]]:
        """Count rows and find the latest created_at for an activity table."""
        if table not in ACTIVITY_TABLES:
            raise StorageError(f"Unknown activity table: {table}")
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    f"SELECT COUNT(*), MAX(created_at) FROM {table} WHERE org_id = ?",
                    [org_id],
                ).fetchone()
            return int(row[0]), row[1]
        except duckdb.Error as e:
            logger.error("read_table_activity_failed", table=table, org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read {table} activity: {e}") from e

    def write_module_health(self, org_id: str, records: list[ModuleHealthRecord]) -> int:
        """Replace the org's module health records."""
        try:
            with self._transaction() as conn:
                conn.execute("DELETE FROM module_health WHERE org_id = ?", [org_id])
                for position, record in enumerate(records):
                    conn.execute(
                        """
                        INSERT INTO module_health (
                            org_id, module_key, label, score, status,
                            last_data_at, record_count, hours_since, position
                        ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            org_id,
                            record.module_key,
                            record.label,
                            record.score,
                            record.status.value,
                            record.last_data_at,
                            record.record_count,
                            record.hours_since,
                            position,
                        ],
                    )
            logger.debug("module_health_written", org_id=org_id, count=len(records))
            return len(records)
        except duckdb.Error as e:
            logger.error("write_module_health_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to write module health: {e}") from e

    def read_module_health(self, org_id: str) -> list[ModuleHealthRecord]:
        """Read the org's persisted module health records."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT module_key, label, score, status, last_data_at, record_count, hours_since
                    FROM module_health WHERE org_id = ? ORDER BY position
                    """,
                    [org_id],
                ).fetchall()
            return [
                ModuleHealthRecord(
                    org_id=org_id,
                    module_key=r[0],
                    label=r[1],
                    score=r[2],
                    status=r[3],
                    last_data_at=r[4],
                    record_count=r[5],
                    hours_since=r[6],
                )
                for r in rows
            ]
        except duckdb.Error as e:
            logger.error("read_module_health_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read module health: {e}") from e

    # =========================================================================
    # Reactor
    # =========================================================================

    def write_audit_score(
        self, org_id: str, score: float, recorded_at: Optional[datetime] = None
    ) -> None:
        """Record an external audit score."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO audit_scores (record_id, org_id, overall_score, recorded_at)
                    VALUES (?, ?, ?, ?)
                    """,
                    [str(uuid4()), org_id, score, recorded_at or utcnow()],
                )
        except duckdb.Error as e:
            logger.error("write_audit_score_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to write audit score: {e}") from e

    def read_latest_audit_score(self, org_id: str) -> Optional[float]:
        """Read the most recent audit score."""
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    """
                    SELECT overall_score FROM audit_scores
                    WHERE org_id = ? ORDER BY recorded_at DESC LIMIT 1
                    """,
                    [org_id],
                ).fetchone()
            return float(row[0]) if row else None
        except duckdb.Error as e:
            logger.error("read_audit_score_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read audit score: {e}") from e

    def write_issue(self, org_id: str, issue: IssueRecord, resolved: bool = False) -> str:
        """Record an upstream issue."""
        try:
            with self._get_connection() as conn:
                conn.execute(
                    """
                    INSERT INTO ops_issues (
                        issue_id, org_id, title, detail, severity, module, resolved, created_at
                    ) VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    [
                        issue.id,
                        org_id,
                        issue.title,
                        issue.detail,
                        issue.severity,
                        issue.module,
                        resolved,
                        issue.created_at or utcnow(),
                    ],
                )
            return issue.id
        except duckdb.Error as e:
            logger.error("write_issue_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to write issue: {e}") from e

    def read_unresolved_issues(self, org_id: str) -> list[IssueRecord]:
        """Read unresolved issues, oldest first."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT issue_id, title, detail, severity, module, created_at
                    FROM ops_issues
                    WHERE org_id = ? AND resolved = FALSE
                    ORDER BY created_at ASC, issue_id ASC
                    """,
                    [org_id],
                ).fetchall()
            return [
                IssueRecord(
                    id=r[0], title=r[1], detail=r[2] or "", severity=r[3], module=r[4], created_at=r[5]
                )
                for r in rows
            ]
        except duckdb.Error as e:
            logger.error("read_unresolved_issues_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read issues: {e}") from e

    def replace_alerts(self, org_id: str, alerts: list[Alert]) -> int:
        """Replace the org's alert list."""
        try:
            with self._transaction() as conn:
                conn.execute("DELETE FROM reactor_alerts WHERE org_id = ?", [org_id])
                for position, alert in enumerate(alerts):
                    conn.execute(
                        """
                        INSERT INTO reactor_alerts (
                            org_id, position, alert_id, level, title, detail, source_module
                        ) VALUES (?, ?, ?, ?, ?, ?, ?)
                        """,
                        [
                            org_id,
                            position,
                            alert.id,
                            alert.level.value,
                            alert.title,
                            alert.detail,
                            alert.source_module,
                        ],
                    )
            logger.debug("alerts_replaced", org_id=org_id, count=len(alerts))
            return len(alerts)
        except duckdb.Error as e:
            logger.error("replace_alerts_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to write alerts: {e}") from e

    def read_alerts(self, org_id: str) -> list[Alert]:
        """Read the org's alert list in evaluation order."""
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    """
                    SELECT alert_id, level, title, detail, source_module
                    FROM reactor_alerts WHERE org_id = ? ORDER BY position
                    """,
                    [org_id],
                ).fetchall()
            return [
                Alert(id=r[0], level=r[1], title=r[2], detail=r[3] or "", source_module=r[4])
                for r in rows
            ]
        except duckdb.Error as e:
            logger.error("read_alerts_failed", org_id=org_id, error=str(e))
            raise StorageError(f"Failed to read alerts: {e}") from e
