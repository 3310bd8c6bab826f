"""Per-employee payroll pipeline."""

from __future__ import annotations

import hashlib
import json
from dataclasses import dataclass, field
from datetime import date, tzinfo
from decimal import Decimal
from typing import Any
from uuid import UUID

from hris_payroll.calculators.calendar_resolver import CalendarResolver, is_entitled_holiday
from hris_payroll.calculators.deduction_calculator import StatutoryDeductionCalculator
from hris_payroll.calculators.earnings_calculator import EarningsCalculator
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.premium_classifier import PremiumClassifier
from hris_payroll.calculators.time_segment import TimeSegmentCalculator
from hris_payroll.calculators.types import (
    ZERO,
    AttendanceRecord,
    DeductionResult,
    EarningsResult,
    EmployeeCompensation,
    HolidayType,
    PayFrequency,
    PayrollBreakdown,
    PayslipLine,
    ResolvedDay,
    TimeSegment,
    round_deductions,
    round_money,
)

# Largest line-sum drift absorbed by a ROUNDING line
ROUNDING_TOLERANCE = Decimal("0.01")


class PayrollCalculationError(Exception):
    """Raised when a computed payslip fails its own consistency checks."""

    def __init__(self, employee_id: UUID, errors: list[str]):
        self.employee_id = employee_id
        self.errors = errors
        super().__init__(f"Employee {employee_id}: " + "; ".join(errors))


@dataclass
class EmployeeInputs:
    """Everything needed to compute one employee's payslip, already loaded."""

    compensation: EmployeeCompensation
    attendance: list[AttendanceRecord]
    bonuses: dict[str, Decimal] = field(default_factory=dict)
    deductions: dict[str, Decimal] = field(default_factory=dict)


@dataclass
class RecordResult:
    """Pipeline output for one attendance row."""

    record: AttendanceRecord
    day: ResolvedDay
    holiday_type: HolidayType
    segment: TimeSegment | None
    breakdown: PayrollBreakdown | None
    earnings: EarningsResult
    is_entitled_holiday: bool

    @property
    def rest_day_hours_worked(self) -> Decimal:
        if self.segment is None or not self.day.is_rest_day:
            return ZERO
        return self.segment.total_hours


@dataclass
class PayslipCalculation:
    """Result of calculating pay for one employee."""

    employee_id: UUID
    calculation_id: UUID
    period_start: date
    period_end: date
    earnings: EarningsResult
    deductions: DeductionResult
    bonuses: dict[str, Decimal]
    lines: list[PayslipLine]
    records: list[RecordResult]
    warnings: list[str]
    inputs_fingerprint: str
    rules_fingerprint: str

    @property
    def gross_pay(self) -> Decimal:
        return self.earnings.gross_pay

    @property
    def total_bonuses(self) -> Decimal:
        return sum(self.bonuses.values(), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return self.deductions.total_deductions

    @property
    def net_pay(self) -> Decimal:
        return self.gross_pay + self.total_bonuses - self.total_deductions

    @property
    def total_hours(self) -> Decimal:
        return sum((r.segment.total_hours for r in self.records if r.segment), ZERO)


class PayrollEngine:
    """Runs the calculation stages for one employee.

    Pipeline (stable order):
    1) Resolve calendar facts per attendance row
    2) Compute the time segment of each worked row
    3) Classify worked hours into premium buckets
    4) Price buckets, unworked holidays and paid leave
    5) Sum the period, round at the boundary
    6) Statutory and ad-hoc deductions on the period gross
    7) Build payslip lines and validate net = sum(lines)

    No I/O happens here; inputs arrive fully loaded.
    """

    def __init__(
        self,
        config: PayrollConfig,
        resolver: CalendarResolver,
        tz: tzinfo,
        pay_frequency: PayFrequency = PayFrequency.MONTHLY,
        engine_version: str = "1.0.0",
    ):
        self.config = config
        self.resolver = resolver
        self.tz = tz
        self.pay_frequency = pay_frequency
        self.engine_version = engine_version
        self.segments = TimeSegmentCalculator(config, tz)
        self.classifier = PremiumClassifier(config)
        self.earnings = EarningsCalculator(config)
        self.deductions = StatutoryDeductionCalculator(config, pay_frequency)

    def evaluate_record(
        self, compensation: EmployeeCompensation, record: AttendanceRecord
    ) -> RecordResult:
        """Run stages 1-4 for one attendance row."""
        day = self.resolver.resolve(record.employee_id, record.date, record.is_dayoff)
        holiday_type = day.holiday_type
        if holiday_type is HolidayType.NONE:
            holiday_type = record.holiday_type
        holiday_name = day.holiday.name if day.holiday else None

        segment = None
        breakdown = None
        if record.worked:
            segment = self.segments.compute(
                record.time_in, record.time_out, day.schedule, work_date=record.date
            )
            breakdown = self.classifier.classify(
                segment,
                is_rest_day=day.is_rest_day,
                holiday_type=holiday_type,
                holiday_name=holiday_name,
                standard_daily_hours=compensation.standard_daily_hours,
            )

        earnings = self.earnings.calculate_record(compensation, record, breakdown, holiday_type)
        return RecordResult(
            record=record,
            day=day,
            holiday_type=holiday_type,
            segment=segment,
            breakdown=breakdown,
            earnings=earnings,
            is_entitled_holiday=is_entitled_holiday(
                compensation.employment_type, holiday_type, self.config
            ),
        )

    def calculate_employee(
        self, inputs: EmployeeInputs, period_start: date, period_end: date
    ) -> PayslipCalculation:
        compensation = inputs.compensation
        self.earnings.validate(compensation)

        records = sorted(
            (r for r in inputs.attendance if period_start <= r.date <= period_end),
            key=lambda r: (r.date, r.time_in is None, r.time_in or r.date),
        )
        results = [self.evaluate_record(compensation, r) for r in records]

        warnings: list[str] = []
        for result in results:
            for warning in result.day.warnings:
                if warning not in warnings:
                    warnings.append(warning)

        earnings = sum((r.earnings for r in results), EarningsResult()).rounded()
        late_minutes = sum(r.segment.late_minutes for r in results if r.segment)
        undertime_minutes = sum(r.segment.undertime_minutes for r in results if r.segment)

        deductions = round_deductions(
            self.deductions.calculate_deductions(
                earnings.gross_pay,
                employee_id=compensation.employee_id,
                employment_type=compensation.employment_type,
                other_deductions=inputs.deductions,
                late_deduction=self.earnings.late_deduction(compensation, late_minutes),
                undertime_deduction=self.earnings.undertime_deduction(
                    compensation, undertime_minutes
                ),
            )
        )
        bonuses = {name: round_money(abs(amount)) for name, amount in inputs.bonuses.items()}

        lines = LineItemBuilder.build_lines(earnings, deductions, bonuses)
        errors = LineItemBuilder.validate_line_signs(lines)
        expected_net = round_money(
            earnings.gross_pay + sum(bonuses.values(), ZERO) - deductions.total_deductions
        )
        lines_gross = LineItemBuilder.calculate_gross_from_lines(lines)
        if lines_gross != earnings.gross_pay:
            errors.append(f"Earning lines sum to {lines_gross}, expected gross {earnings.gross_pay}")
        drift = expected_net - LineItemBuilder.calculate_net_from_lines(lines)
        if abs(drift) > ROUNDING_TOLERANCE:
            errors.append(
                f"Line items sum to {expected_net - drift}, expected net {expected_net}"
            )
        else:
            lines = LineItemBuilder.reconcile_rounding(lines, expected_net)
        if errors:
            raise PayrollCalculationError(compensation.employee_id, errors)
        if expected_net < 0:
            warnings.append(
                f"Employee {compensation.employee_id} has negative net pay {expected_net}"
            )

        inputs_fp = self._compute_inputs_fingerprint(inputs, results, period_start, period_end)
        rules_fp = self._compute_rules_fingerprint()
        return PayslipCalculation(
            employee_id=compensation.employee_id,
            calculation_id=self._generate_calculation_id(
                compensation.employee_id, period_start, period_end, inputs_fp, rules_fp
            ),
            period_start=period_start,
            period_end=period_end,
            earnings=earnings,
            deductions=deductions,
            bonuses=bonuses,
            lines=lines,
            records=results,
            warnings=warnings,
            inputs_fingerprint=inputs_fp,
            rules_fingerprint=rules_fp,
        )

    # === Fingerprints ===

    def _generate_calculation_id(
        self,
        employee_id: UUID,
        period_start: date,
        period_end: date,
        inputs_fingerprint: str,
        rules_fingerprint: str,
    ) -> UUID:
        """Generate deterministic calculation ID."""
        data = {
            "employee_id": str(employee_id),
            "period_start": str(period_start),
            "period_end": str(period_end),
            "engine_version": self.engine_version,
            "inputs_fingerprint": inputs_fingerprint,
            "rules_fingerprint": rules_fingerprint,
        }
        json_str = json.dumps(data, sort_keys=True)
        hash_bytes = hashlib.sha256(json_str.encode()).digest()
        return UUID(bytes=hash_bytes[:16])

    def _compute_inputs_fingerprint(
        self,
        inputs: EmployeeInputs,
        results: list[RecordResult],
        period_start: date,
        period_end: date,
    ) -> str:
        """Compute fingerprint of all inputs used in calculation."""
        comp = inputs.compensation
        data: dict[str, Any] = {
            "compensation": {
                "rate": str(comp.rate),
                "rate_type": comp.rate_type,
                "employment_type": comp.employment_type,
                "standard_daily_hours": str(comp.standard_daily_hours),
                "monthly_working_days": str(comp.monthly_working_days),
            },
            "attendance": [
                {
                    "attendance_id": str(r.attendance_id),
                    "date": str(r.date),
                    "time_in": r.time_in.isoformat() if r.time_in else None,
                    "time_out": r.time_out.isoformat() if r.time_out else None,
                    "is_dayoff": r.is_dayoff,
                    "is_regular_holiday": r.is_regular_holiday,
                    "is_special_holiday": r.is_special_holiday,
                    "on_leave": r.on_leave,
                    "leave_pay_percentage": (
                        str(r.leave_pay_percentage) if r.leave_pay_percentage is not None else None
                    ),
                }
                for r in sorted(inputs.attendance, key=lambda r: (r.date, str(r.attendance_id)))
                if period_start <= r.date <= period_end
            ],
            "calendar": [
                {
                    "date": str(r.day.date),
                    "holiday_type": r.holiday_type.value,
                    "is_rest_day": r.day.is_rest_day,
                    "shift": [str(r.day.schedule.shift_start), str(r.day.schedule.shift_end)],
                    "break_minutes": r.day.schedule.break_minutes,
                }
                for r in results
            ],
            "bonuses": {k: str(v) for k, v in inputs.bonuses.items()},
            "deductions": {k: str(v) for k, v in inputs.deductions.items()},
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    def _compute_rules_fingerprint(self) -> str:
        """Compute fingerprint of the configuration used in calculation."""
        data = {
            "config": self.config.fingerprint(),
            "pay_frequency": self.pay_frequency.value,
            "timezone": str(self.tz),
        }
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
