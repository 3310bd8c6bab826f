"""Partition worked hours into premium buckets.

Each record's hours are split twice:

1. regular (up to the standard daily hours) vs overtime (the remainder,
   taken from the end of the shift);
2. night vs day hours within each of those pools.

The day type (rest day, regular/special holiday) applies to all four
pools, so one record fills at most four leaf buckets. Multipliers are not
stored on the breakdown; :class:`~hris_payroll.calculators.types.PremiumRates`
derives them from the bucket key.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from decimal import Decimal

from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.time_segment import night_hours_between
from hris_payroll.calculators.types import (
    ZERO,
    HolidayType,
    PayrollBreakdown,
    PremiumKey,
    ResolvedDay,
    TimeSegment,
    round_hours,
)


class PremiumClassifier:
    """Builds a :class:`PayrollBreakdown` from a time segment and calendar flags."""

    def __init__(self, config: PayrollConfig):
        self.config = config

    @staticmethod
    def overtime_start(segment: TimeSegment, overtime_hours: Decimal) -> datetime:
        """Instant from which the last ``overtime_hours`` of worked time run.

        Walks back from clock-out over worked time only, so a break inside
        the tail pushes the start earlier by its length.
        """
        overtime = timedelta(seconds=float(overtime_hours * 3600))
        tail_start = segment.time_out - overtime
        if segment.break_window is not None:
            break_start, break_end = segment.break_window
            worked_after_break = segment.time_out - break_end
            if overtime > worked_after_break:
                tail_start = break_start - (overtime - worked_after_break)
        return max(tail_start, segment.time_in)

    def overtime_night_hours(self, segment: TimeSegment, overtime_hours: Decimal) -> Decimal:
        """Night hours inside the last ``overtime_hours`` of worked time."""
        if overtime_hours <= 0 or segment.night_differential_hours <= 0:
            return ZERO
        start_hour, end_hour = self.config.night_window
        hours = night_hours_between(
            self.overtime_start(segment, overtime_hours),
            segment.time_out,
            segment.time_out.tzinfo,
            start_hour,
            end_hour,
            exclude=segment.break_window,
        )
        return min(round_hours(hours), overtime_hours, segment.night_differential_hours)

    def classify(
        self,
        segment: TimeSegment,
        is_rest_day: bool,
        holiday_type: HolidayType = HolidayType.NONE,
        holiday_name: str | None = None,
        standard_daily_hours: Decimal | None = None,
    ) -> PayrollBreakdown:
        limit = standard_daily_hours or self.config.standard_daily_hours
        total = max(ZERO, segment.total_hours)
        night = min(max(ZERO, segment.night_differential_hours), total)

        regular = min(total, limit)
        overtime = total - regular

        night_overtime = self.overtime_night_hours(segment, overtime)
        night_regular = night - night_overtime
        if night_regular > regular:
            # Payroll-increment rounding can leave fewer hours than were clocked
            night_regular = regular
            night_overtime = min(overtime, night - regular)

        day = PremiumKey(is_rest_day=is_rest_day, holiday_type=holiday_type)
        pools = {
            day: regular - night_regular,
            PremiumKey(is_rest_day, holiday_type, False, True): night_regular,
            PremiumKey(is_rest_day, holiday_type, True, False): overtime - night_overtime,
            PremiumKey(is_rest_day, holiday_type, True, True): night_overtime,
        }
        return PayrollBreakdown(
            buckets={key: hours for key, hours in pools.items() if hours > 0},
            is_rest_day=is_rest_day,
            holiday_type=holiday_type,
            holiday_name=holiday_name,
        )

    def classify_day(
        self,
        segment: TimeSegment,
        day: ResolvedDay,
        standard_daily_hours: Decimal | None = None,
    ) -> PayrollBreakdown:
        """Classify using the resolver's view of the date."""
        return self.classify(
            segment,
            is_rest_day=day.is_rest_day,
            holiday_type=day.holiday_type,
            holiday_name=day.holiday.name if day.holiday else None,
            standard_daily_hours=standard_daily_hours,
        )
