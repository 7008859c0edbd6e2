"""
Enumeration types for the operational health engine.

All enums inherit from str to ensure JSON serialization compatibility and so
that raw database values compare equal to members.
"""

from enum import Enum


class FreshnessStatus(str, Enum):
    """
    Freshness bucket for a tracked module, derived from hours since last data.

    Two distinct hour bands both map to VERY_STALE; they differ only in score.
    """

    FRESH = "fresh"
    RECENT = "recent"
    STALE = "stale"
    VERY_STALE = "very_stale"
    NO_DATA = "no_data"


class OperatingMode(str, Enum):
    """
    Per-tenant operating mode that selects how module health is gathered.

    VENUE scores the named domain-module registry from last-sync signals;
    HOME_COOK scores raw activity tables directly.
    """

    VENUE = "venue"
    HOME_COOK = "home_cook"


class EcosystemState(str, Enum):
    """Connection state of a module as presented on the Reactor dashboard."""

    LIVE = "live"
    STALE = "stale"
    DISCONNECTED = "disconnected"


class AlertLevel(str, Enum):
    """Reactor alert levels, lowest to highest."""

    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"


class FatigueRisk(str, Enum):
    """Qualitative roster fatigue risk."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class EmploymentType(str, Enum):
    """Employment basis of a rostered worker."""

    FULL_TIME = "FULL_TIME"
    PART_TIME = "PART_TIME"
    CASUAL = "CASUAL"


class MetricSource(str, Enum):
    """
    Source tables a Metric Source Adapter lands records into.

    Everything except DATA_IMPORTS is the direct (first-party) channel;
    DATA_IMPORTS holds pre-aggregated external totals.
    """

    POS_PAYMENTS = "pos_payments"
    POS_SHIFTS = "pos_shifts"
    OVERHEAD_ENTRIES = "overhead_entries"
    WASTE_LOGS = "waste_logs"
    BEV_POUR_EVENTS = "bev_pour_events"
    RES_RESERVATIONS = "res_reservations"
    DATA_IMPORTS = "data_imports"


class ChannelOrigin(str, Enum):
    """Which channel supplied a merged snapshot metric."""

    DIRECT = "direct"
    IMPORTED = "imported"
    NONE = "none"
