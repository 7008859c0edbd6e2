"""
Fatigue & Compliance Risk Assessor.

Assesses one worker's roster window for award fatigue rules:

- consecutive worked days (warn at 8, hard limit 10)
- rest gaps under 10 hours between shifts on consecutive days
- long shifts of 10 worked hours or more
- minimum engagement for casual and part-time staff
- weekly hours above 50
- split-shift spread above 12 hours on one day

The base rules set a LOW/MEDIUM/HIGH risk; the additional compliance checks
can only escalate LOW to MEDIUM, never lower it. Everything is recomputed
from the supplied shifts, so assessments are safe to run in parallel.
"""

from collections import defaultdict
from datetime import date, datetime, timedelta
from typing import Optional

import structlog

from opshealth.models.enums import EmploymentType, FatigueRisk
from opshealth.models.roster import (
    BaseFatigueResult,
    ComplianceCheck,
    FatigueAssessment,
    LongShift,
    RosterAssessment,
    ShiftGap,
    ShiftRecord,
    WorkerRoster,
)
from opshealth.utils.numbers import round_half_up

logger = structlog.get_logger()


FATIGUE_LIMITS = {
    "max_consecutive_days": 10,
    "consecutive_days_warning": 8,
    "min_rest_gap_hours": 10.0,
    "critical_rest_gap_hours": 8.0,
    "long_shift_hours": 10.0,
    "max_long_shifts": 4,
    "min_engagement_hours": 3.0,
    "max_weekly_hours": 50.0,
    "max_split_spread_hours": 12.0,
}

MIN_ENGAGEMENT_TYPES = frozenset({EmploymentType.CASUAL, EmploymentType.PART_TIME})

MINUTES_PER_DAY = 24 * 60


def _minute_of_day(value) -> int:
    return value.hour * 60 + value.minute


def worked_hours(shift: ShiftRecord) -> float:
    """
    Worked hours for one shift: wall-clock span less breaks, never negative.

    An end time earlier than the start time wraps past midnight.
    """
    start = _minute_of_day(shift.start_time)
    end = _minute_of_day(shift.end_time)
    if end < start:
        end += MINUTES_PER_DAY
    return max(0, end - start - shift.break_minutes) / 60


def _shift_end(shift: ShiftRecord) -> datetime:
    end = datetime.combine(shift.date, shift.end_time)
    if shift.end_time < shift.start_time:
        end += timedelta(days=1)
    return end


def _day_runs(days: list[date]) -> tuple[int, int]:
    """(trailing run, longest run) of consecutive calendar days in sorted distinct days."""
    if not days:
        return 0, 0
    longest = current = 1
    for prev, curr in zip(days, days[1:]):
        if (curr - prev).days == 1:
            current += 1
        else:
            current = 1
        longest = max(longest, current)
    return current, longest


def assess_base_fatigue(shifts: list[ShiftRecord]) -> BaseFatigueResult:
    """
    Base fatigue rules: consecutive days, rest gaps and long shifts.

    Args:
        shifts: One worker's shifts, in any order

    Returns:
        BaseFatigueResult with the trailing run as consecutive_days and the
        longest run driving warnings and risk
    """
    if not shifts:
        return BaseFatigueResult()

    limits = FATIGUE_LIMITS
    ordered = sorted(shifts, key=lambda s: (s.date, s.start_time))
    trailing, longest = _day_runs(sorted({s.date for s in ordered}))

    warnings = []
    if longest >= limits["max_consecutive_days"]:
        warnings.append(f"{longest} consecutive days - must have day off")
    elif longest >= limits["consecutive_days_warning"]:
        warnings.append(
            f"{longest} consecutive days - approaching limit of {limits['max_consecutive_days']}"
        )

    long_shifts = [
        LongShift(date=s.date, hours=round_half_up(worked_hours(s)))
        for s in ordered
        if worked_hours(s) >= limits["long_shift_hours"]
    ]

    short_gaps = []
    raw_gaps = []
    for prev, curr in zip(ordered, ordered[1:]):
        if (curr.date - prev.date).days != 1:
            continue
        gap = (datetime.combine(curr.date, curr.start_time) - _shift_end(prev)).total_seconds() / 3600
        if gap < limits["min_rest_gap_hours"]:
            raw_gaps.append(gap)
            short_gaps.append(ShiftGap(date=curr.date, gap_hours=round_half_up(gap)))

    if short_gaps:
        warnings.append(f"{len(short_gaps)} shift gap(s) under 10 hours")

    if longest >= limits["max_consecutive_days"] or any(
        g < limits["critical_rest_gap_hours"] for g in raw_gaps
    ):
        risk = FatigueRisk.HIGH
    elif (
        longest >= limits["consecutive_days_warning"]
        or short_gaps
        or len(long_shifts) > limits["max_long_shifts"]
    ):
        risk = FatigueRisk.MEDIUM
    else:
        risk = FatigueRisk.LOW

    return BaseFatigueResult(
        consecutive_days=trailing,
        longest_run_days=longest,
        short_gaps=short_gaps,
        long_shifts=long_shifts,
        risk_level=risk,
        warnings=warnings,
    )


def short_engagements(
    shifts: list[ShiftRecord], employment_type: Optional[EmploymentType]
) -> list[ShiftRecord]:
    """Shifts under the minimum engagement for casual and part-time workers."""
    if employment_type not in MIN_ENGAGEMENT_TYPES:
        return []
    return [s for s in shifts if worked_hours(s) < FATIGUE_LIMITS["min_engagement_hours"]]


def split_spreads(shifts: list[ShiftRecord]) -> dict[date, float]:
    """Hours between the earliest start and latest end per date with two or more shifts."""
    by_date = defaultdict(list)
    for shift in shifts:
        by_date[shift.date].append(shift)

    spreads = {}
    for day in sorted(by_date):
        day_shifts = by_date[day]
        if len(day_shifts) < 2:
            continue
        minutes = [_minute_of_day(s.start_time) for s in day_shifts]
        minutes += [_minute_of_day(s.end_time) for s in day_shifts]
        spreads[day] = (max(minutes) - min(minutes)) / 60
    return spreads


class FatigueAssessor:
    """
    Combines the base fatigue rules with award compliance checks.

    Example:
        >>> assessor = FatigueAssessor()
        >>> result = assessor.assess("w-1", shifts, EmploymentType.CASUAL, "Level 2")
        >>> print(result.risk_level, result.warnings)
    """

    def __init__(self):
        self.logger = structlog.get_logger()

    def assess(
        self,
        worker_id: str,
        shifts: list[ShiftRecord],
        employment_type: Optional[EmploymentType] = None,
        classification: Optional[str] = None,
    ) -> FatigueAssessment:
        """
        Assess one worker's roster window.

        Args:
            worker_id: Worker being assessed
            shifts: The worker's shifts for the window
            employment_type: Employment basis, used for minimum engagement
            classification: Award classification, carried as context

        Returns:
            FatigueAssessment with base warnings followed by compliance warnings
        """
        limits = FATIGUE_LIMITS
        base = assess_base_fatigue(shifts)
        total_hours = sum(worked_hours(s) for s in shifts)

        additional = []
        engagements = short_engagements(shifts, employment_type)
        if engagements:
            additional.append(f"{len(engagements)} shift(s) under 3hr minimum engagement")

        if total_hours > limits["max_weekly_hours"]:
            additional.append(f"{total_hours:.1f} weekly hours exceeds 50hr threshold")

        for day, spread in split_spreads(shifts).items():
            if spread > limits["max_split_spread_hours"]:
                additional.append(
                    f"Split shift on {day.isoformat()}: {spread:.1f}hr spread exceeds 12hr max"
                )

        risk = base.risk_level
        if additional and risk == FatigueRisk.LOW:
            risk = FatigueRisk.MEDIUM

        assessment = FatigueAssessment(
            worker_id=worker_id,
            employment_type=employment_type,
            classification=classification,
            shift_count=len(shifts),
            consecutive_days=base.consecutive_days,
            max_consecutive_allowed=limits["max_consecutive_days"],
            short_gaps=base.short_gaps,
            long_shifts=base.long_shifts,
            total_weekly_hours=round_half_up(total_hours),
            risk_level=risk,
            warnings=base.warnings + additional,
        )

        self.logger.debug(
            "fatigue_assessed",
            worker_id=worker_id,
            risk_level=risk.value,
            warnings=len(assessment.warnings),
        )
        return assessment

    def assess_roster(self, rosters: list[WorkerRoster]) -> RosterAssessment:
        """
        Assess every worker on a roster and build the compliance checklist.

        Args:
            rosters: One entry per worker with their shifts and context

        Returns:
            RosterAssessment with per-worker results, risk counts and checks
        """
        limits = FATIGUE_LIMITS
        assessments = [
            self.assess(r.worker_id, r.shifts, r.employment_type, r.classification)
            for r in rosters
        ]

        risk_counts = {level.value: 0 for level in FatigueRisk}
        for assessment in assessments:
            risk_counts[assessment.risk_level.value] += 1

        checks = [
            ComplianceCheck(
                label="10-hour break between shifts enforced",
                ok=risk_counts[FatigueRisk.HIGH.value] == 0,
            ),
            ComplianceCheck(
                label=f"Maximum {limits['max_consecutive_days']} consecutive days",
                ok=all(a.consecutive_days < limits["max_consecutive_days"] for a in assessments),
            ),
            ComplianceCheck(
                label="Minimum 3-hour engagement (casual/PT)",
                ok=not any(short_engagements(r.shifts, r.employment_type) for r in rosters),
            ),
            ComplianceCheck(
                label="Weekly hours under 50",
                ok=all(
                    sum(worked_hours(s) for s in r.shifts) <= limits["max_weekly_hours"]
                    for r in rosters
                ),
            ),
            ComplianceCheck(
                label="Split shift spread under 12 hours",
                ok=all(
                    spread <= limits["max_split_spread_hours"]
                    for r in rosters
                    for spread in split_spreads(r.shifts).values()
                ),
            ),
        ]

        self.logger.info(
            "roster_assessed",
            workers=len(assessments),
            high=risk_counts[FatigueRisk.HIGH.value],
            medium=risk_counts[FatigueRisk.MEDIUM.value],
        )
        return RosterAssessment(assessments=assessments, risk_counts=risk_counts, checks=checks)
