"""Pydantic schemas for payroll results handed to callers."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from hris_payroll.calculators.engine import PayslipCalculation
from hris_payroll.calculators.payroll_config import DEFAULTS, PayrollConfig, format_value
from hris_payroll.calculators.types import PayslipLine
from hris_payroll.services.payroll_service import PayrollRunResult, PayslipFailure


# ============================================================================
# Payslip schemas
# ============================================================================


class PayslipLineOut(BaseModel):
    """One line item of a payslip."""

    model_config = ConfigDict(from_attributes=True)

    line_type: str
    code: str
    amount: Decimal
    quantity: Decimal | None = None
    rate: Decimal | None = None
    explanation: str | None = None

    @classmethod
    def from_line(cls, line: PayslipLine) -> PayslipLineOut:
        return cls(
            line_type=line.line_type.value,
            code=line.code,
            amount=line.amount,
            quantity=line.quantity,
            rate=line.rate,
            explanation=line.explanation,
        )


class ContributionOut(BaseModel):
    """Employee and employer share of one statutory contribution."""

    employee: Decimal
    employer: Decimal
    source: str


class PayslipOut(BaseModel):
    """Schema for one employee's payslip."""

    employee_id: UUID
    calculation_id: UUID
    period_start: date
    period_end: date
    total_hours: Decimal

    base_pay: Decimal
    overtime_pay: Decimal
    holiday_pay: Decimal
    night_differential: Decimal
    leave_pay: Decimal
    gross_pay: Decimal
    bonuses: dict[str, Decimal] = Field(default_factory=dict)
    total_bonuses: Decimal

    social_insurance: ContributionOut
    health_insurance: ContributionOut
    housing_fund: ContributionOut
    income_tax: Decimal
    income_tax_source: str
    late_deduction: Decimal
    undertime_deduction: Decimal
    other_deductions: dict[str, Decimal] = Field(default_factory=dict)
    total_deductions: Decimal
    net_pay: Decimal

    lines: list[PayslipLineOut] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)
    inputs_fingerprint: str
    rules_fingerprint: str

    @classmethod
    def from_calculation(cls, calc: PayslipCalculation) -> PayslipOut:
        earnings = calc.earnings
        deductions = calc.deductions

        def contribution(result: Any) -> ContributionOut:
            return ContributionOut(
                employee=result.employee, employer=result.employer, source=result.source.value
            )

        return cls(
            employee_id=calc.employee_id,
            calculation_id=calc.calculation_id,
            period_start=calc.period_start,
            period_end=calc.period_end,
            total_hours=calc.total_hours,
            base_pay=earnings.base_pay,
            overtime_pay=earnings.overtime_pay,
            holiday_pay=earnings.holiday_pay,
            night_differential=earnings.night_differential,
            leave_pay=earnings.leave_pay,
            gross_pay=calc.gross_pay,
            bonuses=calc.bonuses,
            total_bonuses=calc.total_bonuses,
            social_insurance=contribution(deductions.social_insurance),
            health_insurance=contribution(deductions.health_insurance),
            housing_fund=contribution(deductions.housing_fund),
            income_tax=deductions.income_tax,
            income_tax_source=deductions.income_tax_source.value,
            late_deduction=deductions.late_deduction,
            undertime_deduction=deductions.undertime_deduction,
            other_deductions=deductions.other_deductions,
            total_deductions=calc.total_deductions,
            net_pay=calc.net_pay,
            lines=[PayslipLineOut.from_line(line) for line in calc.lines],
            warnings=calc.warnings,
            inputs_fingerprint=calc.inputs_fingerprint,
            rules_fingerprint=calc.rules_fingerprint,
        )


# ============================================================================
# Payroll run schemas
# ============================================================================


class PayslipFailureOut(BaseModel):
    """Schema for an employee the run could not pay."""

    model_config = ConfigDict(from_attributes=True)

    employee_id: UUID
    error_type: str
    message: str


class PayrollRunOut(BaseModel):
    """Schema for the result of a payroll generation run."""

    header_id: UUID | None = None
    period_start: date
    period_end: date
    cancelled: bool = False
    employee_count: int
    failure_count: int
    total_gross: Decimal
    total_deductions: Decimal
    total_net: Decimal
    payslips: list[PayslipOut] = Field(default_factory=list)
    failures: list[PayslipFailureOut] = Field(default_factory=list)
    warnings: list[str] = Field(default_factory=list)

    @classmethod
    def from_result(cls, result: PayrollRunResult) -> PayrollRunOut:
        return cls(
            header_id=result.header_id,
            period_start=result.period_start,
            period_end=result.period_end,
            cancelled=result.cancelled,
            employee_count=len(result.payslips),
            failure_count=len(result.failures),
            total_gross=result.total_gross,
            total_deductions=result.total_deductions,
            total_net=result.total_net,
            payslips=[PayslipOut.from_calculation(p) for p in result.payslips],
            failures=[_failure_out(f) for f in result.failures],
            warnings=result.warnings,
        )


def _failure_out(failure: PayslipFailure) -> PayslipFailureOut:
    return PayslipFailureOut.model_validate(failure)


# ============================================================================
# Configuration schemas
# ============================================================================


class ConfigEntryOut(BaseModel):
    """One resolved configuration key."""

    key: str
    value: str
    data_type: str
    source: str


def config_entries(config: PayrollConfig) -> list[ConfigEntryOut]:
    """Resolved configuration as display rows, sorted by key."""
    return [
        ConfigEntryOut(
            key=key,
            value=format_value(config.get(key), DEFAULTS[key][0]),
            data_type=DEFAULTS[key][0],
            source=config.source(key).value,
        )
        for key in sorted(DEFAULTS)
    ]
