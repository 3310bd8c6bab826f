"""Pytest fixtures for payroll calculator tests."""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Callable
from uuid import uuid4
from zoneinfo import ZoneInfo

import pytest

from hris_payroll.calculators.calendar_resolver import CalendarResolver
from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.types import (
    AttendanceRecord,
    EmployeeCompensation,
    HolidayInfo,
    HolidayType,
    ScheduleInfo,
)

MANILA = ZoneInfo("Asia/Manila")

# 2025-06-01 is a Sunday; 2025-06-02 a Monday
SUNDAY = date(2025, 6, 1)
MONDAY = date(2025, 6, 2)
INDEPENDENCE_DAY = date(2025, 6, 12)


@pytest.fixture
def tz() -> ZoneInfo:
    return MANILA


@pytest.fixture
def config() -> PayrollConfig:
    """Hardcoded defaults, as when no configuration rows exist."""
    return PayrollConfig.defaults(MONDAY)


@pytest.fixture
def at() -> Callable[..., datetime]:
    """Build a Manila wall-clock datetime: ``at(day, hour, minute=0)``."""

    def _at(day: date, hour: int, minute: int = 0) -> datetime:
        return datetime.combine(day, time(hour, minute)).replace(tzinfo=MANILA)

    return _at


@pytest.fixture
def day_schedule() -> ScheduleInfo:
    """08:00-17:00, Monday to Friday, lunch 12:00-13:00."""
    return ScheduleInfo(
        shift_start=time(8, 0),
        shift_end=time(17, 0),
        break_start=time(12, 0),
        break_end=time(13, 0),
        days_of_week=frozenset(range(5)),
    )


@pytest.fixture
def no_break_schedule() -> ScheduleInfo:
    """08:00-16:00, Monday to Friday, no break."""
    return ScheduleInfo(shift_start=time(8, 0), shift_end=time(16, 0))


@pytest.fixture
def night_schedule() -> ScheduleInfo:
    """22:00-06:00 overnight, Monday to Friday, break 02:00-03:00."""
    return ScheduleInfo(
        shift_start=time(22, 0),
        shift_end=time(6, 0),
        break_start=time(2, 0),
        break_end=time(3, 0),
    )


@pytest.fixture
def hourly_500() -> EmployeeCompensation:
    """Regular employee paid ₱500 an hour on an 8-hour day."""
    return EmployeeCompensation(
        employee_id=uuid4(),
        rate=Decimal("500"),
        rate_type="hourly",
        employment_type="regular",
    )


@pytest.fixture
def independence_day() -> HolidayInfo:
    return HolidayInfo(
        date=INDEPENDENCE_DAY,
        name="Independence Day",
        holiday_type=HolidayType.REGULAR,
    )


@pytest.fixture
def make_record() -> Callable[..., AttendanceRecord]:
    """Build an attendance record for an employee on a date."""

    def _make(employee_id, day: date, time_in=None, time_out=None, **flags) -> AttendanceRecord:
        return AttendanceRecord(
            attendance_id=uuid4(),
            employee_id=employee_id,
            date=day,
            time_in=time_in,
            time_out=time_out,
            **flags,
        )

    return _make


@pytest.fixture
def make_resolver() -> Callable[..., CalendarResolver]:
    def _make(holidays=(), schedules=None, overrides=None) -> CalendarResolver:
        return CalendarResolver(holidays, schedules=schedules, overrides=overrides)

    return _make
