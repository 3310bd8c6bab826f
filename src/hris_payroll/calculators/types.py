"""Type definitions for the attendance-to-payroll pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import date, datetime, time
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from itertools import product
from typing import Any
from uuid import UUID

ZERO = Decimal("0")
CENTS = Decimal("0.01")
HOURS_QUANT = Decimal("0.01")


def round_money(amount: Decimal) -> Decimal:
    """Round a monetary figure to centavos (half-up)."""
    return amount.quantize(CENTS, rounding=ROUND_HALF_UP)


def round_hours(hours: Decimal) -> Decimal:
    """Round an hour count to 2 decimal places (half-up)."""
    return hours.quantize(HOURS_QUANT, rounding=ROUND_HALF_UP)


class RateType(str, Enum):
    """How a contract rate is expressed."""

    HOURLY = "hourly"
    DAILY = "daily"
    MONTHLY = "monthly"


class HolidayType(str, Enum):
    """Statutory holiday category for a date."""

    NONE = "none"
    REGULAR = "regular"
    SPECIAL = "special"


class ConfigSource(str, Enum):
    """Where a configuration value came from."""

    DATABASE = "database"
    DEFAULT = "default"


class PayFrequency(str, Enum):
    """Pay period length, used to convert to monthly equivalents."""

    MONTHLY = "monthly"
    SEMI_MONTHLY = "semi-monthly"
    BI_WEEKLY = "bi-weekly"
    WEEKLY = "weekly"

    @property
    def periods_per_month(self) -> Decimal:
        return {
            PayFrequency.MONTHLY: Decimal("1"),
            PayFrequency.SEMI_MONTHLY: Decimal("2"),
            PayFrequency.BI_WEEKLY: Decimal("2.167"),
            PayFrequency.WEEKLY: Decimal("4.33"),
        }[self]


# ---------------------------------------------------------------------------
# Inputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class EmployeeCompensation:
    """Contract terms needed to price worked hours.

    ``standard_daily_hours`` and ``monthly_working_days`` are the effective
    values after schedule overrides have been applied.
    """

    employee_id: UUID
    rate: Decimal
    rate_type: str
    employment_type: str | None = None
    standard_daily_hours: Decimal = Decimal("8")
    monthly_working_days: Decimal = Decimal("22")

    @property
    def normalized_employment_type(self) -> str:
        return (self.employment_type or "").strip().lower()


@dataclass(frozen=True)
class ScheduleInfo:
    """A work schedule. ``days_of_week`` uses ``date.weekday()`` (Monday=0)."""

    shift_start: time
    shift_end: time
    break_start: time | None = None
    break_end: time | None = None
    break_duration: int = 0  # minutes
    days_of_week: frozenset[int] = frozenset(range(5))
    is_default: bool = False

    @property
    def crosses_midnight(self) -> bool:
        return self.shift_end <= self.shift_start

    @property
    def has_break_window(self) -> bool:
        return self.break_start is not None and self.break_end is not None

    @property
    def break_minutes(self) -> int:
        """Scheduled break length; the explicit window wins over ``break_duration``."""
        if self.has_break_window:
            start = self.break_start.hour * 60 + self.break_start.minute
            end = self.break_end.hour * 60 + self.break_end.minute
            if end < start:
                end += 24 * 60
            return end - start
        return self.break_duration or 0

    @property
    def shift_hours(self) -> Decimal:
        start = self.shift_start.hour * 60 + self.shift_start.minute
        end = self.shift_end.hour * 60 + self.shift_end.minute
        if self.crosses_midnight:
            end += 24 * 60
        return Decimal(end - start) / Decimal(60)

    @property
    def scheduled_work_hours(self) -> Decimal:
        return max(ZERO, self.shift_hours - Decimal(self.break_minutes) / Decimal(60))

    def works_on(self, day: date) -> bool:
        return day.weekday() in self.days_of_week


@dataclass(frozen=True)
class HolidayInfo:
    """A calendar holiday."""

    date: date
    name: str
    holiday_type: HolidayType
    is_active: bool = True


@dataclass(frozen=True)
class ScheduleOverride:
    """Per-employee override of schedule-derived terms."""

    override_type: str  # hours_per_day | days_per_week | monthly_working_days | custom_rate
    value: Decimal
    effective_from: date
    effective_until: date | None = None

    def is_active_on(self, as_of: date) -> bool:
        if self.effective_from > as_of:
            return False
        if self.effective_until is not None and self.effective_until < as_of:
            return False
        return True


@dataclass(frozen=True)
class ResolvedDay:
    """Calendar facts for one employee on one date."""

    date: date
    schedule: ScheduleInfo
    holiday: HolidayInfo | None
    is_rest_day: bool
    has_schedule: bool = True
    warnings: tuple[str, ...] = ()

    @property
    def holiday_type(self) -> HolidayType:
        return self.holiday.holiday_type if self.holiday else HolidayType.NONE


@dataclass
class AttendanceRecord:
    """One attendance row. Derived fields are filled in at clock-out."""

    attendance_id: UUID
    employee_id: UUID
    date: date
    time_in: datetime | None = None
    time_out: datetime | None = None
    is_dayoff: bool = False
    is_regular_holiday: bool = False
    is_special_holiday: bool = False
    on_leave: bool = False
    leave_pay_percentage: Decimal | None = None

    # Derived
    total_hours: Decimal = ZERO
    late_minutes: int = 0
    undertime_minutes: int = 0
    night_differential_hours: Decimal = ZERO
    rest_day_hours_worked: Decimal = ZERO
    is_undertime: bool = False
    is_halfday: bool = False
    is_entitled_holiday: bool = False

    @property
    def worked(self) -> bool:
        return self.time_in is not None and self.time_out is not None

    @property
    def holiday_type(self) -> HolidayType:
        if self.is_regular_holiday:
            return HolidayType.REGULAR
        if self.is_special_holiday:
            return HolidayType.SPECIAL
        return HolidayType.NONE


@dataclass(frozen=True)
class LedgerEntry:
    """A bonus or ad-hoc deduction sum for a period, grouped by type name."""

    type_name: str
    amount: Decimal


# ---------------------------------------------------------------------------
# Stage outputs
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class TimeSegment:
    """Worked-time facts for one clock-in/clock-out pair.

    ``time_in``/``time_out`` are timezone-aware in the payroll zone. A
    clock-out at or before clock-in is clamped to ``time_in`` (zero hours).
    """

    time_in: datetime
    time_out: datetime
    total_hours: Decimal
    late_minutes: int
    undertime_minutes: int
    night_differential_hours: Decimal
    scheduled_work_hours: Decimal
    is_undertime: bool
    is_halfday: bool
    # Scheduled break clipped to the clocked span; None when not taken
    break_window: tuple[datetime, datetime] | None = None

    @property
    def is_late(self) -> bool:
        return self.late_minutes > 0


_HOLIDAY_PART = {
    HolidayType.NONE: None,
    HolidayType.REGULAR: "regular_holiday",
    HolidayType.SPECIAL: "special_holiday",
}


@dataclass(frozen=True)
class PremiumKey:
    """The combination of conditions that applies to a block of worked hours.

    Every leaf bucket of a :class:`PayrollBreakdown` is keyed by one of these;
    the multiplier table is generated from the four axes.
    """

    is_rest_day: bool = False
    holiday_type: HolidayType = HolidayType.NONE
    is_overtime: bool = False
    is_night_diff: bool = False

    @property
    def is_holiday(self) -> bool:
        return self.holiday_type is not HolidayType.NONE

    @property
    def is_plain_day(self) -> bool:
        return not self.is_rest_day and not self.is_holiday

    @property
    def day_key(self) -> PremiumKey:
        """Same day type, regular (non-overtime, non-night) hours."""
        return PremiumKey(is_rest_day=self.is_rest_day, holiday_type=self.holiday_type)

    @property
    def day_name(self) -> str:
        """Name of the day-type combination, e.g. ``regular_holiday_rest_day``."""
        parts = [p for p in (_HOLIDAY_PART[self.holiday_type],) if p]
        if self.is_rest_day:
            parts.append("rest_day")
        return "_".join(parts) or "regular"

    @property
    def name(self) -> str:
        """Full bucket name, e.g. ``night_diff_regular_holiday_rest_day_overtime``."""
        parts: list[str] = []
        if self.is_night_diff:
            parts.append("night_diff")
        if not self.is_plain_day:
            parts.append(self.day_name)
        if self.is_overtime:
            parts.append("overtime")
        if not parts:
            return "regular"
        if parts == ["overtime"]:
            return "regular_overtime"
        return "_".join(parts)

    @classmethod
    def from_name(cls, name: str) -> PremiumKey:
        for key in cls.all_keys():
            if key.name == name:
                return key
        raise ValueError(f"Unknown premium bucket '{name}'")

    @classmethod
    def all_keys(cls) -> list[PremiumKey]:
        """Every combination of the four axes."""
        return [
            cls(is_rest_day=rest, holiday_type=holiday, is_overtime=ot, is_night_diff=nd)
            for rest, holiday, ot, nd in product(
                (False, True), tuple(HolidayType), (False, True), (False, True)
            )
        ]


@dataclass
class PayrollBreakdown:
    """Partition of one record's worked hours into premium buckets.

    ``buckets`` holds the leaves; each worked hour is in exactly one of them.
    Everything else is a view over the leaves.
    """

    buckets: dict[PremiumKey, Decimal] = field(default_factory=dict)
    is_rest_day: bool = False
    holiday_type: HolidayType = HolidayType.NONE
    holiday_name: str | None = None

    def hours(self, key: PremiumKey) -> Decimal:
        return self.buckets.get(key, ZERO)

    def _sum(self, predicate) -> Decimal:
        return sum((h for k, h in self.buckets.items() if predicate(k)), ZERO)

    @property
    def total_hours(self) -> Decimal:
        return self._sum(lambda k: True)

    @property
    def regular_hours(self) -> Decimal:
        """Non-overtime hours on a plain working day (night hours included)."""
        return self._sum(lambda k: k.is_plain_day and not k.is_overtime)

    @property
    def overtime_hours(self) -> Decimal:
        return self._sum(lambda k: k.is_overtime)

    @property
    def night_diff_hours(self) -> Decimal:
        return self._sum(lambda k: k.is_night_diff)

    @property
    def premium_stack_count(self) -> int:
        """How many of rest day / regular / special holiday / night diff hold."""
        count = int(self.is_rest_day)
        count += int(self.holiday_type is not HolidayType.NONE)
        count += int(self.night_diff_hours > 0)
        return count

    @property
    def edge_case_flags(self) -> dict[str, Any]:
        regular = self.holiday_type is HolidayType.REGULAR
        special = self.holiday_type is HolidayType.SPECIAL
        has_nd = self.night_diff_hours > 0
        has_ot = self.overtime_hours > 0
        return {
            "is_day_off": self.is_rest_day,
            "is_regular_holiday": regular,
            "is_special_holiday": special,
            "is_day_off_and_regular_holiday": self.is_rest_day and regular,
            "is_day_off_and_special_holiday": self.is_rest_day and special,
            "has_night_differential": has_nd,
            "has_overtime": has_ot,
            "has_multiple_premiums": self.premium_stack_count > 1,
            "is_ultimate_case_regular": self.is_rest_day and regular and has_nd and has_ot,
            "is_ultimate_case_special": self.is_rest_day and special and has_nd and has_ot,
            "premium_stack_count": self.premium_stack_count,
        }

    def to_dict(self) -> dict[str, Any]:
        """Nested JSON form stored alongside the attendance row."""

        def f(value: Decimal) -> float:
            return float(round_hours(value))

        overtime: dict[str, float] = {"total": f(self.overtime_hours)}
        for key in sorted(self.buckets, key=lambda k: k.name):
            if key.is_overtime:
                overtime[key.name] = f(self.buckets[key])

        holidays: dict[str, dict[str, float]] = {}
        for day_name in sorted({k.day_name for k in self.buckets if k.is_holiday}):
            on_day = [(k, h) for k, h in self.buckets.items() if k.day_name == day_name]
            holidays[day_name] = {
                "total": f(sum((h for _, h in on_day), ZERO)),
                "regular": f(sum((h for k, h in on_day if not k.is_overtime), ZERO)),
                "overtime": f(sum((h for k, h in on_day if k.is_overtime), ZERO)),
            }

        nd_regular = self._sum(lambda k: k.is_night_diff and not k.is_overtime)
        nd_overtime = self._sum(lambda k: k.is_night_diff and k.is_overtime)
        rest_total = self._sum(lambda k: k.is_rest_day)
        pure_rest = self._sum(lambda k: k.is_rest_day and not k.is_holiday and not k.is_overtime)

        return {
            "total_hours": f(self.total_hours),
            "regular_hours": f(self.regular_hours),
            "overtime": overtime,
            "premiums": {
                "night_differential": {
                    "total": f(self.night_diff_hours),
                    "regular": f(nd_regular),
                    "overtime": f(nd_overtime),
                },
                "rest_day": {"total": f(rest_total), "pure_rest_day": f(pure_rest)},
                "holidays": holidays,
            },
            "buckets": {k.name: str(self.buckets[k]) for k in sorted(self.buckets, key=lambda k: k.name)},
            "holiday_name": self.holiday_name,
            "edge_case_flags": self.edge_case_flags,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PayrollBreakdown:
        """Rebuild from :meth:`to_dict` output (only the leaf buckets are read)."""
        buckets = {
            PremiumKey.from_name(name): Decimal(value)
            for name, value in (data.get("buckets") or {}).items()
        }
        flags = data.get("edge_case_flags") or {}
        if flags.get("is_regular_holiday"):
            holiday_type = HolidayType.REGULAR
        elif flags.get("is_special_holiday"):
            holiday_type = HolidayType.SPECIAL
        else:
            holiday_type = HolidayType.NONE
        return cls(
            buckets=buckets,
            is_rest_day=bool(flags.get("is_day_off")),
            holiday_type=holiday_type,
            holiday_name=data.get("holiday_name"),
        )


@dataclass(frozen=True)
class EarningsResult:
    """Money breakdown for worked time. ``gross_pay`` is always the sum of parts."""

    base_pay: Decimal = ZERO
    overtime_pay: Decimal = ZERO
    holiday_pay: Decimal = ZERO
    night_differential: Decimal = ZERO
    leave_pay: Decimal = ZERO
    holiday_not_worked_pay: Decimal = ZERO  # included in holiday_pay

    @property
    def gross_pay(self) -> Decimal:
        return (
            self.base_pay
            + self.overtime_pay
            + self.holiday_pay
            + self.night_differential
            + self.leave_pay
        )

    def __add__(self, other: EarningsResult) -> EarningsResult:
        return EarningsResult(
            base_pay=self.base_pay + other.base_pay,
            overtime_pay=self.overtime_pay + other.overtime_pay,
            holiday_pay=self.holiday_pay + other.holiday_pay,
            night_differential=self.night_differential + other.night_differential,
            leave_pay=self.leave_pay + other.leave_pay,
            holiday_not_worked_pay=self.holiday_not_worked_pay + other.holiday_not_worked_pay,
        )

    def rounded(self) -> EarningsResult:
        return EarningsResult(
            base_pay=round_money(self.base_pay),
            overtime_pay=round_money(self.overtime_pay),
            holiday_pay=round_money(self.holiday_pay),
            night_differential=round_money(self.night_differential),
            leave_pay=round_money(self.leave_pay),
            holiday_not_worked_pay=round_money(self.holiday_not_worked_pay),
        )


@dataclass(frozen=True)
class ContributionResult:
    """One statutory contribution with its employee/employer split."""

    employee: Decimal
    employer: Decimal
    source: ConfigSource
    basis: Decimal = ZERO  # salary figure the contribution was looked up with

    @property
    def total(self) -> Decimal:
        return self.employee + self.employer

    @classmethod
    def none(cls, source: ConfigSource = ConfigSource.DEFAULT) -> ContributionResult:
        return cls(employee=ZERO, employer=ZERO, source=source)

    def scaled(self, divisor: Decimal) -> ContributionResult:
        return replace(self, employee=self.employee / divisor, employer=self.employer / divisor)


@dataclass(frozen=True)
class DeductionResult:
    """Employee-side deductions for a period, plus employer shares for reporting."""

    social_insurance: ContributionResult = field(default_factory=ContributionResult.none)
    health_insurance: ContributionResult = field(default_factory=ContributionResult.none)
    housing_fund: ContributionResult = field(default_factory=ContributionResult.none)
    income_tax: Decimal = ZERO
    income_tax_source: ConfigSource = ConfigSource.DEFAULT
    other_deductions: dict[str, Decimal] = field(default_factory=dict)
    late_deduction: Decimal = ZERO
    undertime_deduction: Decimal = ZERO

    @property
    def statutory_total(self) -> Decimal:
        return (
            self.social_insurance.employee
            + self.health_insurance.employee
            + self.housing_fund.employee
            + self.income_tax
        )

    @property
    def other_total(self) -> Decimal:
        return sum(self.other_deductions.values(), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return self.statutory_total + self.other_total + self.late_deduction + self.undertime_deduction

    @property
    def employer_total(self) -> Decimal:
        return (
            self.social_insurance.employer
            + self.health_insurance.employer
            + self.housing_fund.employer
        )

    @property
    def sources(self) -> dict[str, str]:
        return {
            "social_insurance": self.social_insurance.source.value,
            "health_insurance": self.health_insurance.source.value,
            "housing_fund": self.housing_fund.source.value,
            "income_tax": self.income_tax_source.value,
        }


# ---------------------------------------------------------------------------
# Rate tables
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class PremiumRates:
    """Multiplier factors that stack across the :class:`PremiumKey` axes.

    Day-type and overtime factors multiply; the night differential is an
    additive fraction of the base hourly rate and is kept out of
    :meth:`multiplier`.
    """

    overtime: Decimal = Decimal("1.25")
    regular_holiday: Decimal = Decimal("2.0")
    special_holiday: Decimal = Decimal("1.30")
    rest_day: Decimal = Decimal("1.30")
    night_differential: Decimal = Decimal("0.10")

    def day_multiplier(self, key: PremiumKey) -> Decimal:
        multiplier = Decimal("1")
        if key.is_rest_day:
            multiplier *= self.rest_day
        if key.holiday_type is HolidayType.REGULAR:
            multiplier *= self.regular_holiday
        elif key.holiday_type is HolidayType.SPECIAL:
            multiplier *= self.special_holiday
        return multiplier

    def multiplier(self, key: PremiumKey) -> Decimal:
        multiplier = self.day_multiplier(key)
        if key.is_overtime:
            multiplier *= self.overtime
        return multiplier


@dataclass(frozen=True)
class ContributionBracket:
    """Salary range mapped to flat employee/employer contribution amounts."""

    min_salary: Decimal
    max_salary: Decimal | None  # None = no upper limit
    employee: Decimal
    employer: Decimal

    def contains(self, salary: Decimal) -> bool:
        if salary < self.min_salary:
            return False
        return self.max_salary is None or salary <= self.max_salary


@dataclass(frozen=True)
class TaxBracket:
    """Income tax bracket: ``flat_amount`` plus ``rate`` on the excess over ``min_amount``."""

    min_amount: Decimal
    max_amount: Decimal | None  # None = no upper limit
    rate: Decimal
    flat_amount: Decimal = ZERO


# ---------------------------------------------------------------------------
# Payslip lines
# ---------------------------------------------------------------------------


class LineType(str, Enum):
    """Payslip line item types."""

    EARNING = "EARNING"
    BONUS = "BONUS"
    CONTRIBUTION = "CONTRIBUTION"
    TAX = "TAX"
    DEDUCTION = "DEDUCTION"
    EMPLOYER_CONTRIBUTION = "EMPLOYER_CONTRIBUTION"
    ROUNDING = "ROUNDING"


@dataclass
class PayslipLine:
    """A payslip line item, signed per :class:`LineType` conventions."""

    line_type: LineType
    code: str  # e.g. base_pay, sss, income_tax, or a ledger type name
    amount: Decimal

    quantity: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None

    def to_canonical_dict(self) -> dict[str, Any]:
        """Return canonical dict for hashing (deterministic ordering)."""
        return {
            "line_type": self.line_type.value,
            "code": self.code,
            "quantity": str(self.quantity) if self.quantity is not None else None,
            "rate": str(self.rate) if self.rate is not None else None,
            "amount": str(self.amount),
        }


def round_contribution(result: ContributionResult) -> ContributionResult:
    return replace(result, employee=round_money(result.employee), employer=round_money(result.employer))


def round_deductions(result: DeductionResult) -> DeductionResult:
    """Round every money figure of a deduction result to centavos."""
    return replace(
        result,
        social_insurance=round_contribution(result.social_insurance),
        health_insurance=round_contribution(result.health_insurance),
        housing_fund=round_contribution(result.housing_fund),
        income_tax=round_money(result.income_tax),
        other_deductions={k: round_money(v) for k, v in result.other_deductions.items()},
        late_deduction=round_money(result.late_deduction),
        undertime_deduction=round_money(result.undertime_deduction),
    )
