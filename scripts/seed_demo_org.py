#!/usr/bin/env python3
"""
Seed a demo organization with one week of venue activity.

Plays the Metric Source Adapter role: lands payments, shifts, overheads,
waste, beverage pours, reservations and a couple of imports, then the
module sync signals, an audit score and one open issue, so the snapshot,
health and Reactor endpoints have something to chew on.

Usage:
    python scripts/seed_demo_org.py
    python scripts/seed_demo_org.py --org demo-venue --end 2026-03-08
"""

import argparse
import random
import sys
from datetime import date, datetime, time, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

from opshealth.auth.jwt import create_org_token
from opshealth.models.alerts import IssueRecord
from opshealth.models.enums import MetricSource, OperatingMode
from opshealth.storage import get_storage
from opshealth.utils.clock import utcnow


def week_of_sources(org_id: str, end: date, rng: random.Random) -> dict:
    """Seven days of direct-channel records ending on end."""
    sources = {source: [] for source in MetricSource}
    for offset in range(7):
        day = end - timedelta(days=6 - offset)
        opening = datetime.combine(day, time(11, 0))

        for i in range(rng.randint(40, 70)):
            sources[MetricSource.POS_PAYMENTS].append({
                "org_id": org_id,
                "amount": round(rng.uniform(18, 95), 2),
                "is_refund": False,
                "tip": round(rng.uniform(0, 8), 2),
                "created_at": opening + timedelta(minutes=7 * i),
            })
        sources[MetricSource.POS_PAYMENTS].append({
            "org_id": org_id, "amount": 42.0, "is_refund": True, "created_at": opening,
        })

        for worker in range(5):
            sources[MetricSource.POS_SHIFTS].append({
                "org_id": org_id,
                "worker_id": f"w-{worker + 1}",
                "hours": rng.choice([6.0, 7.6, 8.0, 9.5]),
                "clock_in": opening,
            })

        sources[MetricSource.WASTE_LOGS].append({
            "org_id": org_id, "module": "food", "status": "approved",
            "cost": round(rng.uniform(20, 60), 2), "shift_date": day, "created_at": opening,
        })
        sources[MetricSource.BEV_POUR_EVENTS].extend(
            {"org_id": org_id, "cost_per_pour": round(rng.uniform(1.2, 3.5), 2), "shift_date": day}
            for _ in range(rng.randint(30, 60))
        )
        sources[MetricSource.RES_RESERVATIONS].extend(
            {"org_id": org_id, "party_size": rng.randint(2, 6), "status": "COMPLETED", "reservation_date": day}
            for _ in range(rng.randint(8, 16))
        )

    sources[MetricSource.OVERHEAD_ENTRIES] = [
        {"org_id": org_id, "amount": 1800.0, "category_name": "Rent", "entry_date": end},
        {"org_id": org_id, "amount": 240.0, "category_name": "Utilities", "entry_date": end},
        {"org_id": org_id, "amount": 95.0, "category_name": "Cleaning Chemicals", "entry_date": end},
        {"org_id": org_id, "amount": 60.0, "category_name": "Packaging & Takeaway", "entry_date": end},
    ]
    sources[MetricSource.DATA_IMPORTS] = [
        {
            "org_id": org_id, "data_type": "food_cost", "amount": 4200.0, "status": "processed",
            "period_start": end - timedelta(days=6), "period_end": end,
        },
    ]
    return sources


def main():
    parser = argparse.ArgumentParser(description="Seed a demo organization")
    parser.add_argument("--org", default="demo-venue", help="Organization id")
    parser.add_argument("--end", default=None, help="Last day of the seeded week (YYYY-MM-DD)")
    parser.add_argument("--seed", type=int, default=7, help="Random seed")
    args = parser.parse_args()

    end = date.fromisoformat(args.end) if args.end else utcnow().date()
    rng = random.Random(args.seed)
    storage = get_storage()

    for source, records in week_of_sources(args.org, end, rng).items():
        written = storage.write_source_records(source, records)
        print(f"  {source.value:<18} {written:>5} records")

    now = utcnow()
    storage.write_operating_mode(args.org, OperatingMode.VENUE)
    for module_key, hours_ago, count in [
        ("recipes", 6, 48),
        ("ingredients", 30, 212),
        ("safety_checks", 200, 90),
        ("labour", 2, 35),
        ("pos_revenue", 1, 410),
    ]:
        storage.write_module_sync(args.org, module_key, now - timedelta(hours=hours_ago), count)

    storage.write_audit_score(args.org, 72.0)
    storage.write_issue(args.org, IssueRecord(
        id="coolroom-temp",
        title="Coolroom temperature drift",
        detail="Coolroom 2 logged 6.5C twice this week",
        severity="high",
        module="safety_checks",
    ))

    print(f"\nSeeded {args.org} for the week ending {end.isoformat()}")
    print(f"Bearer token: {create_org_token(args.org)}")


if __name__ == "__main__":
    main()
