"""Cost series models for the price anomaly detector."""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field


class CostEntry(BaseModel):
    """One recorded cost for a trackable item (supplier invoice line, service visit)."""

    id: str
    cost: Optional[float] = None
    recorded_at: datetime


class CostSeriesSummary(BaseModel):
    """
    KPI summary of one item's cost series.

    Attributes:
        item_id: Trackable item the series belongs to
        entry_count: All entries in the series
        ytd_spend: Sum of costs recorded since 1 January of the reference year
        avg_frequency_days: Mean whole days between entries, None with < 2 entries
        flagged_ids: Entries flagged as price anomalies
    """

    item_id: str
    entry_count: int = 0
    ytd_spend: float = 0.0
    avg_frequency_days: Optional[int] = None
    flagged_ids: list[str] = Field(default_factory=list)
