#!/usr/bin/env python3
"""
Run the period jobs for one organization: snapshot, module health, Reactor.

Meant for cron or manual backfills. Each step persists its output, so a
failed run can simply be repeated.

Usage:
    python scripts/run_period.py --org demo-venue --start 2026-03-02 --end 2026-03-08 --type weekly
"""

import argparse
import sys
from datetime import date
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from opshealth.config import get_settings
from opshealth.engine.monitors import ModuleHealthScorer, ReactorEngine
from opshealth.engine.snapshot_aggregator import InvalidSnapshotRequest, SnapshotAggregator
from opshealth.storage import get_storage
from opshealth.utils.logging import configure_logging


def main() -> int:
    parser = argparse.ArgumentParser(description="Aggregate a period and refresh alerts")
    parser.add_argument("--org", required=True, help="Organization id")
    parser.add_argument("--start", required=True, help="Period start (YYYY-MM-DD)")
    parser.add_argument("--end", required=True, help="Period end (YYYY-MM-DD)")
    parser.add_argument("--type", default="daily", dest="period_type", help="Period tag")
    args = parser.parse_args()

    configure_logging()
    settings = get_settings()
    storage = get_storage()

    try:
        snapshot = SnapshotAggregator(storage, settings).generate(
            args.org,
            date.fromisoformat(args.start),
            date.fromisoformat(args.end),
            args.period_type,
        )
    except (InvalidSnapshotRequest, ValueError) as e:
        print(f"Invalid request: {e}", file=sys.stderr)
        return 2

    scorer = ModuleHealthScorer(storage, settings)
    report = ReactorEngine(storage, scorer).run(args.org)

    print("\n" + "=" * 60)
    print(f"{args.org}  {snapshot.period_start} .. {snapshot.period_end} ({snapshot.period_type})")
    print("=" * 60)
    print(f"  Revenue          {snapshot.revenue_total:>12,.2f}")
    print(f"  Net profit       {snapshot.net_profit:>12,.2f}  ({snapshot.net_profit_pct:.1f}%)")
    print(f"  Labour           {snapshot.labour_total:>12,.2f}  ({snapshot.labour_pct:.1f}%)")
    print(f"  Completeness     {snapshot.data_completeness_pct:>11.0f}%")
    print(f"  Module health    {report.health_score:>12}")
    print(f"\n  Alerts ({len(report.alerts)}):")
    for alert in report.alerts:
        print(f"    [{alert.level.value:<8}] {alert.title}  {alert.detail}")
    print()
    return 0


if __name__ == "__main__":
    sys.exit(main())
