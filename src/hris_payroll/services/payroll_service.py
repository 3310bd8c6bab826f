"""Payroll service - batch payslip generation for a pay period."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from hris_payroll.calculators.calendar_resolver import CalendarResolver
from hris_payroll.calculators.engine import PayrollEngine, PayslipCalculation
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.types import ZERO
from hris_payroll.config import Settings, get_settings
from hris_payroll.models import PayrollHeader, Payslip
from hris_payroll.services.config_service import ConfigService
from hris_payroll.services.input_loader import InputLoader

logger = logging.getLogger(__name__)


class DuplicatePayrollError(Exception):
    """Raised when a payroll already exists for the period."""

    def __init__(self, period_start: date, period_end: date, header_id: UUID):
        self.period_start = period_start
        self.period_end = period_end
        self.header_id = header_id
        super().__init__(
            f"Payroll for {period_start} to {period_end} already exists (header {header_id})"
        )


@dataclass
class PayslipFailure:
    """One employee the batch could not pay."""

    employee_id: UUID
    error_type: str
    message: str

    @classmethod
    def from_exception(cls, employee_id: UUID, exc: Exception) -> PayslipFailure:
        return cls(employee_id=employee_id, error_type=type(exc).__name__, message=str(exc))


@dataclass
class PayrollRunResult:
    """Outcome of one ``generate_payroll`` call."""

    period_start: date
    period_end: date
    header_id: UUID | None = None
    payslips: list[PayslipCalculation] = field(default_factory=list)
    failures: list[PayslipFailure] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def total_gross(self) -> Decimal:
        return sum((p.gross_pay for p in self.payslips), ZERO)

    @property
    def total_deductions(self) -> Decimal:
        return sum((p.total_deductions for p in self.payslips), ZERO)

    @property
    def total_net(self) -> Decimal:
        return sum((p.net_pay for p in self.payslips), ZERO)


def payslip_row(header_id: UUID, calc: PayslipCalculation) -> Payslip:
    """Map a calculation onto a payslip row."""
    earnings = calc.earnings
    deductions = calc.deductions
    return Payslip(
        payroll_header_id=header_id,
        employee_id=calc.employee_id,
        calculation_id=calc.calculation_id,
        total_hours=calc.total_hours,
        base_pay=earnings.base_pay,
        overtime_pay=earnings.overtime_pay,
        holiday_pay=earnings.holiday_pay,
        night_differential=earnings.night_differential,
        leave_pay=earnings.leave_pay,
        gross_pay=calc.gross_pay,
        total_bonuses=calc.total_bonuses,
        sss_employee=deductions.social_insurance.employee,
        sss_employer=deductions.social_insurance.employer,
        philhealth_employee=deductions.health_insurance.employee,
        philhealth_employer=deductions.health_insurance.employer,
        pagibig_employee=deductions.housing_fund.employee,
        pagibig_employer=deductions.housing_fund.employer,
        income_tax=deductions.income_tax,
        late_deduction=deductions.late_deduction,
        undertime_deduction=deductions.undertime_deduction,
        other_deductions=deductions.other_total,
        total_deductions=calc.total_deductions,
        net_pay=calc.net_pay,
        lines_json={
            "lines": [
                {**line.to_canonical_dict(), "line_hash": LineItemBuilder.compute_line_hash(line)}
                for line in calc.lines
            ],
            "sources": deductions.sources,
        },
        inputs_fingerprint=calc.inputs_fingerprint,
        rules_fingerprint=calc.rules_fingerprint,
    )


class PayrollService:
    """Generates payslips for a set of employees over one period.

    Operations:
    - generate_payroll: Load inputs, calculate concurrently, persist header + payslips
    - get_payroll: Load a header with its payslips

    Inputs are read up front through one session; calculation is pure and runs
    under a semaphore; the header and every successful payslip are flushed
    together and committed by the caller's session scope.
    """

    def __init__(self, session: AsyncSession, settings: Settings | None = None):
        self.session = session
        self.settings = settings or get_settings()

    async def get_payroll(self, header_id: UUID) -> PayrollHeader | None:
        result = await self.session.execute(
            select(PayrollHeader)
            .where(PayrollHeader.payroll_header_id == header_id)
            .options(selectinload(PayrollHeader.payslips))
        )
        return result.scalar_one_or_none()

    async def find_existing(self, start_date: date, end_date: date) -> PayrollHeader | None:
        result = await self.session.execute(
            select(PayrollHeader).where(
                PayrollHeader.period_start == start_date,
                PayrollHeader.period_end == end_date,
                PayrollHeader.is_deleted.is_(False),
            )
        )
        return result.scalars().first()

    async def generate_payroll(
        self,
        employee_ids: list[UUID],
        start_date: date,
        end_date: date,
        run_by: str | None = None,
        cancel_event: asyncio.Event | None = None,
        config: PayrollConfig | None = None,
    ) -> PayrollRunResult:
        """Generate payslips for ``employee_ids`` over ``start_date``..``end_date``.

        A failing employee is recorded in ``failures`` and the batch goes on.
        When ``cancel_event`` is set no further employee is started and
        nothing is persisted.

        Raises:
            ValueError: If the period is inverted
            DuplicatePayrollError: If a live payroll exists for the period
        """
        if end_date < start_date:
            raise ValueError(f"Period end {end_date} is before start {start_date}")

        existing = await self.find_existing(start_date, end_date)
        if existing is not None:
            raise DuplicatePayrollError(start_date, end_date, existing.payroll_header_id)

        employee_ids = list(dict.fromkeys(employee_ids))
        logger.info(
            "Generating payroll for %d employees, %s to %s", len(employee_ids), start_date, end_date
        )

        if config is None:
            config = await ConfigService(self.session).get_config(end_date)
        inputs = await InputLoader(self.session).load_period(
            employee_ids, start_date, end_date, config
        )

        resolver = CalendarResolver(inputs.holidays, inputs.schedules, inputs.overrides)
        engine = PayrollEngine(
            config,
            resolver,
            tz=self.settings.tzinfo,
            pay_frequency=self.settings.pay_frequency,
            engine_version=self.settings.engine_version,
        )

        result = PayrollRunResult(period_start=start_date, period_end=end_date)
        defaulted = config.defaulted_keys()
        if defaulted:
            result.warnings.append(
                "Configuration defaults used for: " + ", ".join(sorted(defaulted))
            )
        result.warnings.extend(resolver.warnings)

        for employee_id, error in inputs.errors.items():
            logger.warning("Skipping employee %s: %s", employee_id, error)
            result.failures.append(PayslipFailure.from_exception(employee_id, error))

        semaphore = asyncio.Semaphore(self.settings.concurrency)

        async def calculate(employee_id: UUID) -> PayslipCalculation | None:
            async with semaphore:
                if cancel_event is not None and cancel_event.is_set():
                    return None
                # Yield so a cancellation set by another task is seen
                await asyncio.sleep(0)
                if cancel_event is not None and cancel_event.is_set():
                    return None
                try:
                    return engine.calculate_employee(
                        inputs.employees[employee_id], start_date, end_date
                    )
                except Exception as e:
                    logger.exception("Payroll calculation failed for employee %s", employee_id)
                    result.failures.append(PayslipFailure.from_exception(employee_id, e))
                    return None

        to_calculate = [eid for eid in employee_ids if eid in inputs.employees]
        calculations = await asyncio.gather(*(calculate(eid) for eid in to_calculate))

        if cancel_event is not None and cancel_event.is_set():
            result.cancelled = True
            logger.warning(
                "Payroll for %s to %s cancelled; nothing persisted", start_date, end_date
            )
            return result

        for calc in calculations:
            if calc is None:
                continue
            result.payslips.append(calc)
            for warning in calc.warnings:
                if warning not in result.warnings:
                    result.warnings.append(warning)

        header = PayrollHeader(
            period_start=start_date,
            period_end=end_date,
            run_by=run_by,
            run_at=datetime.now(timezone.utc),
            pay_frequency=self.settings.pay_frequency.value,
            engine_version=self.settings.engine_version,
            employee_count=len(result.payslips),
            failure_count=len(result.failures),
            total_gross=result.total_gross,
            total_deductions=result.total_deductions,
            total_net=result.total_net,
            metadata_json={
                "warnings": result.warnings,
                "failures": [
                    {
                        "employee_id": str(f.employee_id),
                        "error_type": f.error_type,
                        "message": f.message,
                    }
                    for f in result.failures
                ],
                "config_as_of": str(config.as_of) if config.as_of else None,
            },
        )
        self.session.add(header)
        await self.session.flush()

        for calc in result.payslips:
            self.session.add(payslip_row(header.payroll_header_id, calc))
        await self.session.flush()

        result.header_id = header.payroll_header_id
        logger.info(
            "Payroll %s generated: %d payslips, %d failures, net %s",
            header.payroll_header_id,
            len(result.payslips),
            len(result.failures),
            result.total_net,
        )
        return result

    async def delete_payroll(self, header_id: UUID) -> PayrollHeader:
        """Soft-delete a payroll so the period can be generated again."""
        header = await self.get_payroll(header_id)
        if header is None:
            raise ValueError(f"Payroll {header_id} not found")
        header.is_deleted = True
        header.status = "deleted"
        await self.session.flush()
        return header
