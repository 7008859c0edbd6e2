"""
Price Anomaly Detector.

Flags cost entries that jump above the recent average for the same item.
Each entry is compared with the mean of up to six entries immediately older
than it; anything more than 5% above that mean is flagged. Presence in the
flagged set is the whole signal: no severity, no magnitude.

Entries are expected most-recent-first, the order cost histories are listed in.
"""

from datetime import date
from typing import Optional

import numpy as np
import structlog

from opshealth.models.costs import CostEntry, CostSeriesSummary
from opshealth.utils.numbers import round_half_up

logger = structlog.get_logger()


# Older entries averaged per comparison
LOOKBACK_ENTRIES = 6

# Flag when cost exceeds the trailing mean by more than this factor
TOLERANCE = 1.05

MIN_ENTRIES = 2


class PriceAnomalyDetector:
    """
    Detects price jumps in one item's cost history.

    Example:
        >>> detector = PriceAnomalyDetector()
        >>> detector.detect(entries)
        {'inv-2026-03'}
    """

    def detect(self, entries: list[CostEntry]) -> set[str]:
        """
        Flag entries whose cost exceeds the mean of the next six older ones by over 5%.

        Args:
            entries: Cost entries for one item, most recent first

        Returns:
            Set of flagged entry ids
        """
        priced = [e for e in entries if e.cost is not None and e.cost > 0]
        if len(priced) < MIN_ENTRIES:
            return set()

        costs = np.array([e.cost for e in priced], dtype=float)
        flagged = set()
        for i, entry in enumerate(priced):
            older = costs[i + 1 : i + 1 + LOOKBACK_ENTRIES]
            if older.size == 0:
                continue
            if costs[i] > float(np.mean(older)) * TOLERANCE:
                flagged.add(entry.id)

        if flagged:
            logger.debug("price_anomalies_flagged", entries=len(priced), flagged=len(flagged))
        return flagged

    def summarize(
        self,
        item_id: str,
        entries: list[CostEntry],
        today: Optional[date] = None,
    ) -> CostSeriesSummary:
        """
        Summarize one item's cost series.

        Args:
            item_id: Item the series belongs to
            entries: Cost entries, most recent first
            today: Reference date for year-to-date spend (defaults to today)

        Returns:
            CostSeriesSummary with spend, frequency and flagged ids
        """
        today = today or date.today()
        year_start = date(today.year, 1, 1)

        ytd_spend = sum(
            e.cost
            for e in entries
            if e.cost is not None and year_start <= e.recorded_at.date() <= today
        )

        avg_frequency_days = None
        if len(entries) >= MIN_ENTRIES:
            timestamps = sorted(e.recorded_at for e in entries)
            gaps = np.diff([(t - timestamps[0]).total_seconds() for t in timestamps]) / 86400
            avg_frequency_days = int(round_half_up(float(np.mean(gaps)), 0))

        flagged = self.detect(entries)
        return CostSeriesSummary(
            item_id=item_id,
            entry_count=len(entries),
            ytd_spend=round_half_up(ytd_spend),
            avg_frequency_days=avg_frequency_days,
            flagged_ids=[e.id for e in entries if e.id in flagged],
        )
