"""
Integration tests for the opshealth API.

Requests run through the real app, real bearer tokens and the DuckDB
storage configured by conftest. Every test starts from empty tables.

Endpoints tested:
- System: health
- Snapshots: generate, latest
- Health: module freshness in both modes
- Reactor: run, alerts
- Compliance: fatigue, roster
- Costs: anomalies, summary
"""

from datetime import datetime, time

import pytest

from opshealth.models.enums import MetricSource
from opshealth.storage import get_storage
from tests.conftest import PERIOD_END, PERIOD_START


@pytest.fixture(autouse=True)
def clean_storage():
    """Empty the shared DuckDB storage before each test."""
    storage = get_storage()
    storage.clear_for_testing()
    yield storage


def _seed_payments(storage, org_id, amount=5000.0):
    storage.write_source_records(MetricSource.POS_PAYMENTS, [
        {
            "org_id": org_id,
            "amount": amount,
            "is_refund": False,
            "created_at": datetime.combine(PERIOD_START, time(12, 0)),
        },
    ])


WEEK = {
    "period_start": PERIOD_START.isoformat(),
    "period_end": PERIOD_END.isoformat(),
    "period_type": "weekly",
}


class TestSystemEndpoints:
    """Health check and request tracing."""

    def test_health_check(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_request_id_is_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "req-123"})
        assert response.headers["X-Request-ID"] == "req-123"


class TestAuthentication:
    """Bearer token handling."""

    def test_missing_token_is_401(self, client):
        response = client.get("/api/v1/reactor/alerts")
        assert response.status_code == 401

    def test_garbage_token_is_401(self, client):
        response = client.get(
            "/api/v1/reactor/alerts", headers={"Authorization": "Bearer not-a-jwt"}
        )
        assert response.status_code == 401


class TestSnapshotEndpoints:
    """Snapshot generation and retrieval."""

    def test_generate_snapshot(self, client, auth_headers, clean_storage, sample_org_id):
        _seed_payments(clean_storage, sample_org_id)
        response = client.post("/api/v1/snapshots/generate", json=WEEK, headers=auth_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["data"]["revenue_total"] == 5000.0
        assert body["data"]["period_start"] == "2026-03-02"
        assert body["data"]["metric_sources"]["revenue_total"] == "direct"

    def test_generate_without_data_is_empty_snapshot(self, client, auth_headers):
        response = client.post("/api/v1/snapshots/generate", json=WEEK, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["data"]["data_completeness_pct"] == 0.0

    def test_inverted_period_is_400(self, client, auth_headers):
        payload = dict(WEEK, period_start=WEEK["period_end"], period_end=WEEK["period_start"])
        response = client.post("/api/v1/snapshots/generate", json=payload, headers=auth_headers)
        assert response.status_code == 400

    def test_malformed_date_is_422(self, client, auth_headers):
        payload = dict(WEEK, period_start="last tuesday")
        response = client.post("/api/v1/snapshots/generate", json=payload, headers=auth_headers)
        assert response.status_code == 422

    def test_latest_before_generate_is_404(self, client, auth_headers):
        response = client.get("/api/v1/snapshots/latest", headers=auth_headers)
        assert response.status_code == 404

    def test_latest_after_generate(self, client, auth_headers, clean_storage, sample_org_id):
        _seed_payments(clean_storage, sample_org_id, amount=1234.5)
        client.post("/api/v1/snapshots/generate", json=WEEK, headers=auth_headers)
        response = client.get(
            "/api/v1/snapshots/latest", params={"period_type": "weekly"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["data"]["revenue_total"] == 1234.5

    def test_regenerate_keeps_one_row(self, client, auth_headers, clean_storage, sample_org_id):
        client.post("/api/v1/snapshots/generate", json=WEEK, headers=auth_headers)
        client.post("/api/v1/snapshots/generate", json=WEEK, headers=auth_headers)
        assert clean_storage.count_snapshot_rows(sample_org_id, PERIOD_START, PERIOD_END, "weekly") == 1


class TestHealthEndpoints:
    """Module freshness scoring."""

    def test_venue_modules_for_empty_org(self, client, auth_headers):
        response = client.get("/api/v1/health/modules", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["mode"] == "venue"
        assert data["overall_score"] == 0
        assert len(data["stalest"]) == 3
        assert len(data["recommendations"]) == 3

    def test_home_cook_mode_override(self, client, auth_headers):
        response = client.get(
            "/api/v1/health/modules", params={"mode": "home_cook"}, headers=auth_headers
        )
        data = response.json()["data"]
        assert data["mode"] == "home_cook"
        assert [m["module_key"] for m in data["modules"]][0] == "recipes"
        assert len(data["modules"]) == 6

    def test_unknown_mode_is_422(self, client, auth_headers):
        response = client.get(
            "/api/v1/health/modules", params={"mode": "franchise"}, headers=auth_headers
        )
        assert response.status_code == 422


class TestReactorEndpoints:
    """Alert evaluation and listing."""

    def test_run_then_list_alerts(self, client, auth_headers, clean_storage, sample_org_id):
        clean_storage.write_audit_score(sample_org_id, 60.0)
        run = client.post("/api/v1/reactor/run", headers=auth_headers)
        assert run.status_code == 200
        produced = run.json()["data"]["alerts"]
        assert produced[0]["id"] == "audit-score-low"

        listed = client.get("/api/v1/reactor/alerts", headers=auth_headers).json()
        assert listed["count"] == len(produced)
        assert [a["id"] for a in listed["data"]] == [a["id"] for a in produced]

    def test_alerts_before_any_run_are_empty(self, client, auth_headers):
        body = client.get("/api/v1/reactor/alerts", headers=auth_headers).json()
        assert body["data"] == []
        assert body["count"] == 0


class TestComplianceEndpoints:
    """Fatigue and roster assessment."""

    def test_short_rest_gap(self, client, auth_headers):
        payload = {
            "worker_id": "w-1",
            "employment_type": "FULL_TIME",
            "shifts": [
                {"worker_id": "w-1", "date": "2026-03-02", "start_time": "14:00", "end_time": "22:00"},
                {"worker_id": "w-1", "date": "2026-03-03", "start_time": "06:00", "end_time": "14:00"},
            ],
        }
        response = client.post("/api/v1/compliance/fatigue", json=payload, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()["data"]
        assert data["risk_level"] == "MEDIUM"
        assert data["short_gaps"] == [{"date": "2026-03-03", "gap_hours": 8.0}]

    def test_roster_checklist(self, client, auth_headers):
        payload = {
            "workers": [
                {
                    "worker_id": "c-1",
                    "employment_type": "CASUAL",
                    "shifts": [
                        {"worker_id": "c-1", "date": "2026-03-02", "start_time": "10:00", "end_time": "12:00"},
                    ],
                },
            ],
        }
        response = client.post("/api/v1/compliance/roster", json=payload, headers=auth_headers)
        data = response.json()["data"]
        assert data["risk_counts"] == {"LOW": 0, "MEDIUM": 1, "HIGH": 0}
        checks = {c["label"]: c["ok"] for c in data["checks"]}
        assert checks["Minimum 3-hour engagement (casual/PT)"] is False


class TestCostEndpoints:
    """Price anomaly detection and cost summaries."""

    ENTRIES = [
        {"id": "inv-3", "cost": 130.0, "recorded_at": "2026-03-09T09:00:00"},
        {"id": "inv-2", "cost": 100.0, "recorded_at": "2026-03-02T09:00:00"},
        {"id": "inv-1", "cost": 100.0, "recorded_at": "2026-02-23T09:00:00"},
    ]

    def test_anomalies(self, client, auth_headers):
        response = client.post(
            "/api/v1/costs/anomalies",
            json={"item_id": "flour", "entries": self.ENTRIES},
            headers=auth_headers,
        )
        assert response.status_code == 200
        assert response.json()["data"] == {"item_id": "flour", "flagged_ids": ["inv-3"]}

    def test_summary(self, client, auth_headers):
        response = client.post(
            "/api/v1/costs/summary",
            json={"item_id": "flour", "entries": self.ENTRIES, "today": "2026-03-10"},
            headers=auth_headers,
        )
        data = response.json()["data"]
        assert data["ytd_spend"] == 330.0
        assert data["avg_frequency_days"] == 7
        assert data["flagged_ids"] == ["inv-3"]
