"""
Operational health engine core components.

- Snapshot aggregation: direct and imported channels merged into a periodic P&L
- Module health: per-module data freshness scoring
- Reactor: threshold alerts over snapshots, health, audits and issues
- Fatigue: roster fatigue and award compliance risk
- Price anomalies: cost jumps against a trailing average

Every component recomputes fully from its inputs on each call and talks to
other components only through storage.
"""

__all__ = [
    "FatigueAssessor",
    "InvalidSnapshotRequest",
    "ModuleHealthScorer",
    "PriceAnomalyDetector",
    "ReactorEngine",
    "SnapshotAggregator",
]

from opshealth.engine.fatigue import FatigueAssessor
from opshealth.engine.monitors import ModuleHealthScorer, ReactorEngine
from opshealth.engine.price_anomaly import PriceAnomalyDetector
from opshealth.engine.snapshot_aggregator import InvalidSnapshotRequest, SnapshotAggregator
