"""
Monitor Runtime Engine.

Components:
    ModuleHealthScorer: Scores per-module data freshness for a tenant
    ReactorEngine: Raises ordered threshold alerts from snapshots, module
        health, audit scores and upstream issues

Example:
    >>> from opshealth.engine.monitors import ModuleHealthScorer, ReactorEngine
    >>> health = ModuleHealthScorer(storage=storage).compute_health("org-1")
    >>> report = ReactorEngine(storage=storage).run("org-1")
"""

from .module_health import (
    FRESHNESS_BANDS,
    DataTableSource,
    ModuleHealthScorer,
    ModuleRegistrySource,
    ModuleSignalSource,
)
from .reactor import REACTOR_THRESHOLDS, ReactorEngine, evaluate_alerts

__all__ = [
    "FRESHNESS_BANDS",
    "DataTableSource",
    "ModuleHealthScorer",
    "ModuleRegistrySource",
    "ModuleSignalSource",
    "REACTOR_THRESHOLDS",
    "ReactorEngine",
    "evaluate_alerts",
]
