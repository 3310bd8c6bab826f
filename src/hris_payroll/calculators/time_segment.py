"""Worked-time calculation for a single clock-in/clock-out pair."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone, tzinfo
from decimal import Decimal

from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.types import ZERO, ScheduleInfo, TimeSegment, round_hours

ONE_HOUR = timedelta(hours=1)
SECONDS_PER_HOUR = Decimal(3600)
HALF_HOUR = Decimal("0.5")


def round_to_payroll_increment(hours: Decimal) -> Decimal:
    """Snap hours to the payroll grid.

    Up to 15 minutes past the hour rounds down, 16 to 45 minutes rounds to
    the half hour, anything above 45 minutes rounds up to the next hour.
    """
    if hours <= 0:
        return ZERO
    whole = Decimal(int(hours))
    minutes = (hours - whole) * 60
    if minutes <= 15:
        return whole
    if minutes <= 45:
        return whole + HALF_HOUR
    return whole + 1


def _hours(delta: timedelta) -> Decimal:
    return Decimal(str(delta.total_seconds())) / SECONDS_PER_HOUR


def _whole_minutes(delta: timedelta) -> int:
    return max(0, int(delta.total_seconds() // 60))


def _overlap(a_start: datetime, a_end: datetime, b_start: datetime, b_end: datetime) -> timedelta:
    start = max(a_start, b_start)
    end = min(a_end, b_end)
    return end - start if end > start else timedelta(0)


def in_night_window(hour: int, start_hour: int, end_hour: int) -> bool:
    """Whether a local clock hour falls in [start_hour, end_hour), wrapping midnight."""
    if start_hour == end_hour:
        return False
    if start_hour > end_hour:
        return hour >= start_hour or hour < end_hour
    return start_hour <= hour < end_hour


def night_hours_between(
    start: datetime,
    end: datetime,
    tz: tzinfo,
    start_hour: int = 22,
    end_hour: int = 6,
    exclude: tuple[datetime, datetime] | None = None,
) -> Decimal:
    """Hours of [start, end) that fall in the night window, unrounded.

    The interval is walked in clock-hour-aligned pieces evaluated in ``tz``,
    so a span crossing midnight keeps accumulating past the date boundary.
    ``exclude`` removes a window (the scheduled break) from every piece.
    """
    total = timedelta(0)
    cursor = start.astimezone(timezone.utc)
    stop = end.astimezone(timezone.utc)
    while cursor < stop:
        local = cursor.astimezone(tz)
        boundary = local.replace(minute=0, second=0, microsecond=0) + ONE_HOUR
        piece_end = min(boundary.astimezone(timezone.utc), stop)
        if in_night_window(local.hour, start_hour, end_hour):
            piece = piece_end - cursor
            if exclude is not None:
                piece -= _overlap(cursor, piece_end, exclude[0], exclude[1])
            total += piece
        cursor = piece_end
    return _hours(total)


class TimeSegmentCalculator:
    """Computes total hours, lateness, undertime and night hours.

    Schedule times are anchored on the attendance work date (or the local
    date of clock-in) in the payroll zone. Shifts whose end is at or before
    their start run into the next day.
    """

    def __init__(self, config: PayrollConfig, tz: tzinfo):
        self.config = config
        self.tz = tz

    def localize(self, moment: datetime) -> datetime:
        """Naive datetimes are taken to be payroll-zone wall time."""
        if moment.tzinfo is None:
            return moment.replace(tzinfo=self.tz)
        return moment.astimezone(self.tz)

    def _at(self, day: date, clock: time) -> datetime:
        return datetime.combine(day, clock).replace(tzinfo=self.tz)

    def scheduled_window(self, schedule: ScheduleInfo, work_date: date) -> tuple[datetime, datetime]:
        start = self._at(work_date, schedule.shift_start)
        end = self._at(work_date, schedule.shift_end)
        if schedule.crosses_midnight:
            end += timedelta(days=1)
        return start, end

    def break_window(
        self, schedule: ScheduleInfo, work_date: date
    ) -> tuple[datetime, datetime] | None:
        if not schedule.has_break_window:
            return None
        shift_start, _ = self.scheduled_window(schedule, work_date)
        start = self._at(work_date, schedule.break_start)
        # A break clocked before the shift start belongs to the next morning
        if schedule.crosses_midnight and start < shift_start:
            start += timedelta(days=1)
        return start, start + timedelta(minutes=schedule.break_minutes)

    def compute(
        self,
        time_in: datetime,
        time_out: datetime,
        schedule: ScheduleInfo,
        work_date: date | None = None,
    ) -> TimeSegment:
        clock_in = self.localize(time_in)
        clock_out = self.localize(time_out)
        if clock_out < clock_in:
            clock_out = clock_in

        anchor = work_date or clock_in.date()
        sched_start, sched_end = self.scheduled_window(schedule, anchor)
        break_window = self.break_window(schedule, anchor)

        elapsed = _hours(clock_out - clock_in)
        taken_break = None
        if break_window is not None:
            break_hours = _hours(_overlap(clock_in, clock_out, *break_window))
            if break_hours > 0:
                taken_break = (max(clock_in, break_window[0]), min(clock_out, break_window[1]))
        elif schedule.break_duration and elapsed >= 4:
            break_hours = Decimal(schedule.break_duration) / 60
        else:
            break_hours = ZERO

        worked = max(ZERO, elapsed - break_hours)
        if self.config.flag("apply_payroll_increment"):
            worked = round_to_payroll_increment(worked)
        total_hours = round_hours(worked)

        start_hour, end_hour = self.config.night_window
        night = night_hours_between(
            clock_in, clock_out, self.tz, start_hour, end_hour, exclude=break_window
        )
        night_hours = min(round_hours(night), total_hours)

        scheduled_hours = schedule.scheduled_work_hours
        return TimeSegment(
            time_in=clock_in,
            time_out=clock_out,
            total_hours=total_hours,
            late_minutes=_whole_minutes(clock_in - sched_start),
            undertime_minutes=_whole_minutes(sched_end - clock_out),
            night_differential_hours=night_hours,
            scheduled_work_hours=scheduled_hours,
            is_undertime=total_hours < scheduled_hours - HALF_HOUR,
            is_halfday=total_hours < scheduled_hours / 2,
            break_window=taken_break,
        )
