"""Attendance service - clock-in and clock-out finalization."""

from __future__ import annotations

import logging
from datetime import date, datetime
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.calendar_resolver import (
    CalendarResolver,
    active_overrides,
    is_entitled_holiday,
)
from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.premium_classifier import PremiumClassifier
from hris_payroll.calculators.time_segment import TimeSegmentCalculator
from hris_payroll.calculators.types import ZERO, HolidayType
from hris_payroll.config import Settings, get_settings
from hris_payroll.models import Attendance, Employee
from hris_payroll.services.config_service import ConfigService
from hris_payroll.services.input_loader import InputLoader, to_override, to_schedule_info

logger = logging.getLogger(__name__)


class AttendanceService:
    """Service for attendance rows.

    Operations:
    - clock_in: Open a row, denormalizing the day's holiday flags
    - clock_out: Close a row and finalize it
    - finalize_attendance: Recompute every derived column of a closed row

    Finalization is a full recompute from time_in/time_out and the calendar,
    so running it again on an unchanged row writes the same values.
    """

    def __init__(
        self,
        session: AsyncSession,
        config: PayrollConfig | None = None,
        settings: Settings | None = None,
    ):
        self.session = session
        self.settings = settings or get_settings()
        self._config = config
        self.loader = InputLoader(session)

    async def _config_for(self, as_of: date) -> PayrollConfig:
        if self._config is not None:
            return self._config
        return await ConfigService(self.session).get_config(as_of)

    async def _resolver_for(self, employee: Employee, day: date) -> CalendarResolver:
        schedules = {}
        if employee.schedule is not None:
            schedules[employee.employee_id] = to_schedule_info(employee.schedule)
        return CalendarResolver(
            holidays=await self.loader.load_holidays(day, day),
            schedules=schedules,
            overrides={employee.employee_id: [to_override(o) for o in employee.overrides]},
        )

    async def get_attendance(self, attendance_id: UUID) -> Attendance | None:
        result = await self.session.execute(
            select(Attendance).where(Attendance.attendance_id == attendance_id)
        )
        return result.scalar_one_or_none()

    async def clock_in(
        self,
        employee_id: UUID,
        time_in: datetime,
        work_date: date | None = None,
        is_dayoff: bool = False,
    ) -> Attendance:
        """Open an attendance row for ``employee_id``."""
        employee = await self.loader.get_employee(employee_id)
        if time_in.tzinfo is None:
            time_in = time_in.replace(tzinfo=self.settings.tzinfo)
        work_date = work_date or time_in.astimezone(self.settings.tzinfo).date()

        resolver = await self._resolver_for(employee, work_date)
        day = resolver.resolve(employee_id, work_date, is_dayoff)

        row = Attendance(
            employee_id=employee_id,
            work_date=work_date,
            time_in=time_in,
            is_dayoff=is_dayoff,
            is_regular_holiday=day.holiday_type is HolidayType.REGULAR,
            is_special_holiday=day.holiday_type is HolidayType.SPECIAL,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def clock_out(self, attendance_id: UUID, time_out: datetime) -> dict[str, Any]:
        """Record ``time_out`` and finalize the row."""
        return await self.finalize_attendance(attendance_id, clock_out=time_out)

    async def finalize_attendance(
        self, attendance_id: UUID, clock_out: datetime | None = None
    ) -> dict[str, Any]:
        """Recompute and write back every derived column of one row.

        Returns the values written.
        """
        row = await self.get_attendance(attendance_id)
        if row is None:
            raise ValueError(f"Attendance {attendance_id} not found")

        time_out = clock_out or row.time_out
        if row.time_in is None or time_out is None:
            raise ValueError(f"Attendance {attendance_id} has not been clocked out")

        tz = self.settings.tzinfo
        config = await self._config_for(row.work_date)
        employee = await self.loader.get_employee(row.employee_id)
        resolver = await self._resolver_for(employee, row.work_date)
        day = resolver.resolve(row.employee_id, row.work_date, row.is_dayoff)

        holiday_type = day.holiday_type
        if holiday_type is HolidayType.NONE:
            if row.is_regular_holiday:
                holiday_type = HolidayType.REGULAR
            elif row.is_special_holiday:
                holiday_type = HolidayType.SPECIAL

        hours_override = active_overrides(
            [to_override(o) for o in employee.overrides], row.work_date
        ).get("hours_per_day")
        standard_hours = hours_override.value if hours_override else config.standard_daily_hours

        segment = TimeSegmentCalculator(config, tz).compute(
            row.time_in, time_out, day.schedule, work_date=row.work_date
        )
        breakdown = PremiumClassifier(config).classify(
            segment,
            is_rest_day=day.is_rest_day,
            holiday_type=holiday_type,
            holiday_name=day.holiday.name if day.holiday else None,
            standard_daily_hours=standard_hours,
        )

        values: dict[str, Any] = {
            "time_out": time_out,
            "is_regular_holiday": holiday_type is HolidayType.REGULAR,
            "is_special_holiday": holiday_type is HolidayType.SPECIAL,
            "total_hours": segment.total_hours,
            "late_minutes": segment.late_minutes,
            "undertime_minutes": segment.undertime_minutes,
            "night_differential_hours": segment.night_differential_hours,
            "rest_day_hours_worked": segment.total_hours if day.is_rest_day else ZERO,
            "is_late": segment.is_late,
            "is_undertime": segment.is_undertime,
            "is_halfday": segment.is_halfday,
            "is_entitled_holiday": is_entitled_holiday(
                employee.employment_type, holiday_type, config
            ),
            "payroll_breakdown": breakdown.to_dict(),
        }
        await self.session.execute(
            update(Attendance)
            .where(Attendance.attendance_id == attendance_id)
            .values(**values)
            .execution_options(synchronize_session="fetch")
        )
        await self.session.flush()

        logger.debug(
            "Finalized attendance %s: %s hours (%s night)",
            attendance_id,
            segment.total_hours,
            segment.night_differential_hours,
        )
        return values


__all__ = ["AttendanceService"]
