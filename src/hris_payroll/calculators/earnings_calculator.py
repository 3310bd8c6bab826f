"""Earnings calculation from premium buckets."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from hris_payroll.calculators.calendar_resolver import is_entitled_holiday
from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.types import (
    ZERO,
    AttendanceRecord,
    EarningsResult,
    EmployeeCompensation,
    HolidayType,
    PayrollBreakdown,
    RateType,
)


class PayrollInputError(Exception):
    """Raised when employee data cannot be used for calculation."""

    def __init__(self, employee_id: UUID | None, field: str, message: str):
        self.employee_id = employee_id
        self.field = field
        super().__init__(f"Employee {employee_id}: {field}: {message}")


class UnsupportedRateTypeError(PayrollInputError):
    """Raised when a contract uses a rate type the engine does not know."""

    def __init__(self, employee_id: UUID | None, rate_type: str | None):
        self.rate_type = rate_type
        super().__init__(employee_id, "rate_type", f"unsupported rate type {rate_type!r}")


class InvalidRateError(PayrollInputError):
    """Raised when a contract rate is missing, zero or negative."""

    def __init__(self, employee_id: UUID | None, rate: Decimal | None):
        self.rate = rate
        super().__init__(employee_id, "rate", f"rate must be positive, got {rate}")


class EarningsCalculator:
    """Prices worked hours and paid absences.

    Hourly rate normalisation:
    - hourly: as-is
    - daily: rate / standard daily hours
    - monthly: rate / (monthly working days * standard daily hours)

    Intermediate figures are never rounded; callers round at the boundary.
    """

    def __init__(self, config: PayrollConfig):
        self.config = config
        self.rates = config.premium_rates

    # === Rate normalisation ===

    @staticmethod
    def rate_type(compensation: EmployeeCompensation) -> RateType:
        raw = (compensation.rate_type or "").strip().lower()
        try:
            return RateType(raw)
        except ValueError:
            raise UnsupportedRateTypeError(compensation.employee_id, compensation.rate_type) from None

    @staticmethod
    def validate(compensation: EmployeeCompensation) -> None:
        EarningsCalculator.rate_type(compensation)
        if compensation.rate is None or compensation.rate <= 0:
            raise InvalidRateError(compensation.employee_id, compensation.rate)
        if compensation.standard_daily_hours <= 0:
            raise PayrollInputError(
                compensation.employee_id, "standard_daily_hours", "must be positive"
            )
        if compensation.monthly_working_days <= 0:
            raise PayrollInputError(
                compensation.employee_id, "monthly_working_days", "must be positive"
            )

    def hourly_rate(self, compensation: EmployeeCompensation) -> Decimal:
        self.validate(compensation)
        rate_type = self.rate_type(compensation)
        if rate_type is RateType.HOURLY:
            return compensation.rate
        if rate_type is RateType.DAILY:
            return compensation.rate / compensation.standard_daily_hours
        return compensation.rate / (
            compensation.monthly_working_days * compensation.standard_daily_hours
        )

    def daily_rate(self, compensation: EmployeeCompensation) -> Decimal:
        self.validate(compensation)
        rate_type = self.rate_type(compensation)
        if rate_type is RateType.HOURLY:
            return compensation.rate * compensation.standard_daily_hours
        if rate_type is RateType.DAILY:
            return compensation.rate
        return compensation.rate / compensation.monthly_working_days

    # === Worked hours ===

    def calculate_earnings(
        self, compensation: EmployeeCompensation, breakdown: PayrollBreakdown
    ) -> EarningsResult:
        """Price every bucket of one breakdown.

        Plain-day regular hours are base pay, every overtime bucket is
        overtime pay and any other bucket with a multiplier other than 1 is
        holiday pay. Night hours additionally earn the night differential
        rate on the base hourly figure.
        """
        hourly = self.hourly_rate(compensation)
        base_pay = ZERO
        overtime_pay = ZERO
        holiday_pay = ZERO
        night_hours = ZERO

        for key, hours in breakdown.buckets.items():
            if hours <= 0:
                continue
            amount = hours * hourly * self.rates.multiplier(key)
            if key.is_overtime:
                overtime_pay += amount
            elif key.is_plain_day:
                base_pay += amount
            else:
                holiday_pay += amount
            if key.is_night_diff:
                night_hours += hours

        return EarningsResult(
            base_pay=base_pay,
            overtime_pay=overtime_pay,
            holiday_pay=holiday_pay,
            night_differential=night_hours * hourly * self.rates.night_differential,
        )

    # === Unworked paid days ===

    def holiday_not_worked_pay(
        self,
        compensation: EmployeeCompensation,
        record: AttendanceRecord,
        holiday_type: HolidayType | None = None,
    ) -> Decimal:
        """Daily pay for an entitled regular holiday with no clock-in."""
        if record.time_in is not None or record.is_dayoff:
            return ZERO
        if (holiday_type or record.holiday_type) is not HolidayType.REGULAR:
            return ZERO
        if not is_entitled_holiday(compensation.employment_type, HolidayType.REGULAR, self.config):
            return ZERO
        return self.daily_rate(compensation) * self.config.decimal(
            "holiday_regular_not_worked_multiplier"
        )

    def leave_pay(self, compensation: EmployeeCompensation, record: AttendanceRecord) -> Decimal:
        """Paid leave: daily rate times the leave pay percentage (default 100)."""
        if not record.on_leave or record.worked:
            return ZERO
        percentage = record.leave_pay_percentage
        if percentage is None:
            percentage = Decimal("100")
        return self.daily_rate(compensation) * max(ZERO, percentage) / Decimal("100")

    def calculate_record(
        self,
        compensation: EmployeeCompensation,
        record: AttendanceRecord,
        breakdown: PayrollBreakdown | None,
        holiday_type: HolidayType | None = None,
    ) -> EarningsResult:
        """Earnings for one attendance row, worked or not."""
        result = EarningsResult()
        if breakdown is not None:
            result = self.calculate_earnings(compensation, breakdown)
        not_worked = self.holiday_not_worked_pay(compensation, record, holiday_type)
        leave = self.leave_pay(compensation, record)
        if not_worked or leave:
            result = result + EarningsResult(
                holiday_pay=not_worked,
                holiday_not_worked_pay=not_worked,
                leave_pay=leave,
            )
        return result

    # === Attendance penalties ===

    def late_deduction(self, compensation: EmployeeCompensation, late_minutes: int) -> Decimal:
        """Late minutes times the daily rate times ``late_penalty_rate``."""
        if not self.config.flag("enable_late_deductions") or late_minutes <= 0:
            return ZERO
        if self.rate_type(compensation) is RateType.HOURLY:
            return ZERO
        return Decimal(late_minutes) * self.daily_rate(compensation) * self.config.decimal(
            "late_penalty_rate"
        )

    def undertime_deduction(
        self, compensation: EmployeeCompensation, undertime_minutes: int
    ) -> Decimal:
        if not self.config.flag("enable_undertime_deductions") or undertime_minutes <= 0:
            return ZERO
        if self.rate_type(compensation) is RateType.HOURLY:
            return ZERO
        per_minute = self.daily_rate(compensation) / (compensation.standard_daily_hours * 60)
        return (
            Decimal(undertime_minutes)
            * per_minute
            * self.config.decimal("undertime_deduction_rate")
        )
