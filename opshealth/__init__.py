"""
Operational Health & Financial Reconciliation Engine.

Merges fragmented, multi-source operational data into trustworthy derived
metrics: period financial snapshots, module freshness scores, prioritized
alerts, roster fatigue assessments, and price anomaly flags.
"""

__version__ = "0.1.0"
