"""API routers for all endpoints."""

from opshealth.routers import compliance, costs, health, reactor, snapshots

__all__ = [
    "snapshots",
    "health",
    "reactor",
    "compliance",
    "costs",
]
