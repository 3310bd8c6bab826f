"""Calendar and schedule lookups for one employee on one date.

All data is loaded up front (see :mod:`hris_payroll.services.input_loader`);
this module only looks things up.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import date, time
from typing import Iterable, Mapping
from uuid import UUID

from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.types import (
    EmployeeCompensation,
    HolidayInfo,
    HolidayType,
    ResolvedDay,
    ScheduleInfo,
    ScheduleOverride,
)

logger = logging.getLogger(__name__)

DEFAULT_SCHEDULE = ScheduleInfo(
    shift_start=time(8, 0),
    shift_end=time(16, 0),
    days_of_week=frozenset(range(5)),
    is_default=True,
)

OVERRIDE_TYPES = ("hours_per_day", "days_per_week", "monthly_working_days", "custom_rate")


def active_overrides(
    overrides: Iterable[ScheduleOverride], as_of: date
) -> dict[str, ScheduleOverride]:
    """Active override per type; the latest ``effective_from`` wins."""
    selected: dict[str, ScheduleOverride] = {}
    for override in overrides:
        if override.override_type not in OVERRIDE_TYPES or not override.is_active_on(as_of):
            continue
        current = selected.get(override.override_type)
        if current is None or override.effective_from > current.effective_from:
            selected[override.override_type] = override
    return selected


def apply_schedule_overrides(
    schedule: ScheduleInfo, overrides: Iterable[ScheduleOverride], as_of: date
) -> ScheduleInfo:
    """Apply a ``days_per_week`` override: work days become Monday + N-1."""
    days = active_overrides(overrides, as_of).get("days_per_week")
    if days is None:
        return schedule
    count = max(0, min(7, int(days.value)))
    return replace(schedule, days_of_week=frozenset(range(count)))


def apply_compensation_overrides(
    compensation: EmployeeCompensation,
    overrides: Iterable[ScheduleOverride],
    as_of: date,
) -> EmployeeCompensation:
    """Apply rate and hours overrides to contract terms."""
    active = active_overrides(overrides, as_of)
    changes = {}
    if "hours_per_day" in active:
        changes["standard_daily_hours"] = active["hours_per_day"].value
    if "monthly_working_days" in active:
        changes["monthly_working_days"] = active["monthly_working_days"].value
    if "custom_rate" in active:
        changes["rate"] = active["custom_rate"].value
    return replace(compensation, **changes) if changes else compensation


def is_entitled_holiday(
    employment_type: str | None, holiday_type: HolidayType, config: PayrollConfig
) -> bool:
    """Whether an employment type earns pay for the given holiday.

    Regular holidays go to every type listed in
    ``holiday_entitled_employment_types``; special holidays only to
    ``regular`` employees.
    """
    employment = (employment_type or "").strip().lower()
    if holiday_type is HolidayType.REGULAR:
        return employment in config.employment_types("holiday_entitled_employment_types")
    if holiday_type is HolidayType.SPECIAL:
        return employment == "regular"
    return False


class CalendarResolver:
    """Resolves holiday, rest-day and schedule facts for (employee, date)."""

    def __init__(
        self,
        holidays: Iterable[HolidayInfo],
        schedules: Mapping[UUID, ScheduleInfo] | None = None,
        overrides: Mapping[UUID, list[ScheduleOverride]] | None = None,
        default_schedule: ScheduleInfo = DEFAULT_SCHEDULE,
    ):
        self.schedules = dict(schedules or {})
        self.overrides = dict(overrides or {})
        self.default_schedule = default_schedule
        self.warnings: list[str] = []
        self._holidays: dict[date, HolidayInfo] = {}
        self._missing_logged: set[UUID] = set()

        for holiday in holidays:
            if not holiday.is_active or holiday.holiday_type is HolidayType.NONE:
                continue
            existing = self._holidays.get(holiday.date)
            if existing is not None:
                message = (
                    f"Multiple active holidays on {holiday.date}: using "
                    f"'{existing.name}', ignoring '{holiday.name}'"
                )
                logger.warning(message)
                self.warnings.append(message)
                continue
            self._holidays[holiday.date] = holiday

    def holiday_on(self, day: date) -> HolidayInfo | None:
        return self._holidays.get(day)

    def schedule_for(self, employee_id: UUID, as_of: date) -> tuple[ScheduleInfo, bool]:
        """Return the employee's schedule and whether one is on file."""
        schedule = self.schedules.get(employee_id)
        has_schedule = schedule is not None
        if schedule is None:
            if employee_id not in self._missing_logged:
                self._missing_logged.add(employee_id)
                logger.info("No schedule for employee %s, using default", employee_id)
            schedule = self.default_schedule
        schedule = apply_schedule_overrides(schedule, self.overrides.get(employee_id, ()), as_of)
        return schedule, has_schedule

    def resolve(self, employee_id: UUID, day: date, is_dayoff: bool = False) -> ResolvedDay:
        """Resolve one date. ``is_dayoff`` is the per-date rest-day override."""
        schedule, has_schedule = self.schedule_for(employee_id, day)
        warnings: tuple[str, ...] = ()
        if not has_schedule:
            warnings = (f"Employee {employee_id} has no schedule; default schedule used",)
        return ResolvedDay(
            date=day,
            schedule=schedule,
            holiday=self.holiday_on(day),
            is_rest_day=is_dayoff or not schedule.works_on(day),
            has_schedule=has_schedule,
            warnings=warnings,
        )
