"""Read-only loading of everything a payroll calculation needs.

The calculators never query the database; this module turns ORM rows into
the plain dataclasses in :mod:`hris_payroll.calculators.types`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris_payroll.calculators.calendar_resolver import (
    apply_compensation_overrides,
)
from hris_payroll.calculators.earnings_calculator import PayrollInputError
from hris_payroll.calculators.engine import EmployeeInputs
from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.types import (
    AttendanceRecord,
    EmployeeCompensation,
    HolidayInfo,
    HolidayType,
    ScheduleInfo,
    ScheduleOverride,
)
from hris_payroll.models import (
    Attendance,
    Bonus,
    Contract,
    Deduction,
    Employee,
    EmployeeScheduleOverride,
    Holiday,
    Schedule,
)

logger = logging.getLogger(__name__)


class EmployeeNotFoundError(PayrollInputError):
    """Raised when an employee record does not exist."""

    def __init__(self, employee_id: UUID):
        super().__init__(employee_id, "employee_id", "employee not found")


class ContractNotFoundError(PayrollInputError):
    """Raised when an employee has no contract active on the date."""

    def __init__(self, employee_id: UUID, as_of: date):
        self.as_of = as_of
        super().__init__(employee_id, "contract", f"no active contract on {as_of}")


@dataclass
class PeriodInputs:
    """Inputs for a batch: shared calendar data plus per-employee data."""

    holidays: list[HolidayInfo] = field(default_factory=list)
    schedules: dict[UUID, ScheduleInfo] = field(default_factory=dict)
    overrides: dict[UUID, list[ScheduleOverride]] = field(default_factory=dict)
    employees: dict[UUID, EmployeeInputs] = field(default_factory=dict)
    errors: dict[UUID, PayrollInputError] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)


def to_schedule_info(schedule: Schedule) -> ScheduleInfo:
    return ScheduleInfo(
        shift_start=schedule.shift_start,
        shift_end=schedule.shift_end,
        break_start=schedule.break_start,
        break_end=schedule.break_end,
        break_duration=schedule.break_duration or 0,
        days_of_week=schedule.weekday_set(),
    )


def to_holiday_info(holiday: Holiday) -> HolidayInfo:
    return HolidayInfo(
        date=holiday.holiday_date,
        name=holiday.name,
        holiday_type=HolidayType(holiday.holiday_type),
        is_active=holiday.is_active,
    )


def to_override(row: EmployeeScheduleOverride) -> ScheduleOverride:
    return ScheduleOverride(
        override_type=row.override_type,
        value=Decimal(row.override_value),
        effective_from=row.effective_from,
        effective_until=row.effective_until,
    )


def to_attendance_record(row: Attendance) -> AttendanceRecord:
    return AttendanceRecord(
        attendance_id=row.attendance_id,
        employee_id=row.employee_id,
        date=row.work_date,
        time_in=row.time_in,
        time_out=row.time_out,
        is_dayoff=row.is_dayoff,
        is_regular_holiday=row.is_regular_holiday,
        is_special_holiday=row.is_special_holiday,
        on_leave=row.on_leave,
        leave_pay_percentage=row.leave_pay_percentage,
        total_hours=Decimal(row.total_hours or 0),
        late_minutes=row.late_minutes or 0,
        undertime_minutes=row.undertime_minutes or 0,
        night_differential_hours=Decimal(row.night_differential_hours or 0),
        rest_day_hours_worked=Decimal(row.rest_day_hours_worked or 0),
        is_undertime=row.is_undertime,
        is_halfday=row.is_halfday,
        is_entitled_holiday=row.is_entitled_holiday,
    )


class InputLoader:
    """Loads employees, contracts, calendar, attendance and ledgers."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_employee(self, employee_id: UUID) -> Employee:
        result = await self.session.execute(
            select(Employee)
            .where(Employee.employee_id == employee_id)
            .options(
                selectinload(Employee.schedule),
                selectinload(Employee.contracts),
                selectinload(Employee.overrides),
            )
        )
        employee = result.scalar_one_or_none()
        if employee is None:
            raise EmployeeNotFoundError(employee_id)
        return employee

    @staticmethod
    def active_contract(employee: Employee, as_of: date) -> Contract:
        contracts = [c for c in employee.contracts if c.is_active_on(as_of)]
        if not contracts:
            raise ContractNotFoundError(employee.employee_id, as_of)
        return max(contracts, key=lambda c: c.start_date)

    def compensation_for(
        self, employee: Employee, as_of: date, config: PayrollConfig | None = None
    ) -> EmployeeCompensation:
        """Contract terms on ``as_of`` with overrides applied."""
        config = config or PayrollConfig.defaults(as_of)
        contract = self.active_contract(employee, as_of)
        compensation = EmployeeCompensation(
            employee_id=employee.employee_id,
            rate=Decimal(contract.rate),
            rate_type=contract.rate_type,
            employment_type=employee.employment_type,
            standard_daily_hours=config.standard_daily_hours,
            monthly_working_days=config.monthly_working_days,
        )
        overrides = [to_override(o) for o in employee.overrides]
        return apply_compensation_overrides(compensation, overrides, as_of)

    async def load_holidays(self, start: date, end: date) -> list[HolidayInfo]:
        result = await self.session.execute(
            select(Holiday)
            .where(
                Holiday.holiday_date >= start,
                Holiday.holiday_date <= end,
                Holiday.is_active.is_(True),
            )
            .order_by(Holiday.holiday_date, Holiday.created_at)
        )
        return [to_holiday_info(h) for h in result.scalars()]

    async def load_attendance(
        self, employee_ids: list[UUID], start: date, end: date
    ) -> dict[UUID, list[AttendanceRecord]]:
        """Finalized rows plus unworked (holiday / leave) rows in the range."""
        result = await self.session.execute(
            select(Attendance)
            .where(
                Attendance.employee_id.in_(employee_ids),
                Attendance.work_date >= start,
                Attendance.work_date <= end,
            )
            .order_by(Attendance.work_date, Attendance.time_in)
        )
        records: dict[UUID, list[AttendanceRecord]] = {eid: [] for eid in employee_ids}
        for row in result.scalars():
            if row.time_in is not None and row.time_out is None:
                logger.info(
                    "Skipping open attendance %s for employee %s on %s",
                    row.attendance_id,
                    row.employee_id,
                    row.work_date,
                )
                continue
            records[row.employee_id].append(to_attendance_record(row))
        return records

    async def load_ledger(
        self, model: type[Bonus] | type[Deduction], employee_ids: list[UUID], start: date, end: date
    ) -> dict[UUID, dict[str, Decimal]]:
        """Per-employee sums grouped by type name."""
        type_column = model.bonus_type if model is Bonus else model.deduction_type
        result = await self.session.execute(
            select(model.employee_id, type_column, func.sum(model.amount))
            .where(
                model.employee_id.in_(employee_ids),
                model.effective_date >= start,
                model.effective_date <= end,
            )
            .group_by(model.employee_id, type_column)
        )
        sums: dict[UUID, dict[str, Decimal]] = {eid: {} for eid in employee_ids}
        for employee_id, type_name, total in result.all():
            sums[employee_id][type_name] = Decimal(str(total or 0))
        return sums

    async def load_period(
        self,
        employee_ids: list[UUID],
        start: date,
        end: date,
        config: PayrollConfig | None = None,
    ) -> PeriodInputs:
        """Load a batch. Per-employee input errors are collected, not raised."""
        inputs = PeriodInputs(holidays=await self.load_holidays(start, end))

        employees: list[Employee] = []
        for employee_id in employee_ids:
            try:
                employees.append(await self.get_employee(employee_id))
            except PayrollInputError as e:
                inputs.errors[employee_id] = e

        loaded_ids = [e.employee_id for e in employees]
        attendance = await self.load_attendance(loaded_ids, start, end)
        bonuses = await self.load_ledger(Bonus, loaded_ids, start, end)
        deductions = await self.load_ledger(Deduction, loaded_ids, start, end)

        for employee in employees:
            employee_id = employee.employee_id
            if employee.schedule is not None:
                inputs.schedules[employee_id] = to_schedule_info(employee.schedule)
            inputs.overrides[employee_id] = [to_override(o) for o in employee.overrides]
            try:
                compensation = self.compensation_for(employee, end, config)
            except PayrollInputError as e:
                inputs.errors[employee_id] = e
                continue
            inputs.employees[employee_id] = EmployeeInputs(
                compensation=compensation,
                attendance=attendance.get(employee_id, []),
                bonuses=bonuses.get(employee_id, {}),
                deductions=deductions.get(employee_id, {}),
            )
        return inputs
