"""Payroll configuration, ledger, header and payslip models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin

MONEY = Numeric(14, 2)


# ===== Configuration =====


class PayrollConfiguration(Base, TimestampMixin, UpdatedAtMixin):
    """Versioned key/value configuration row."""

    __tablename__ = "payroll_configuration"

    config_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    config_key: Mapped[str] = mapped_column(String, nullable=False)
    config_value: Mapped[str] = mapped_column(Text, nullable=False)
    data_type: Mapped[str] = mapped_column(String, nullable=False, default="string")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)
    expiry_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        UniqueConstraint("config_key", "effective_date", name="payroll_config_key_date_unique"),
        CheckConstraint(
            "data_type IN ('integer', 'decimal', 'boolean', 'string', 'json')",
            name="payroll_config_data_type_check",
        ),
        CheckConstraint(
            "expiry_date IS NULL OR expiry_date > effective_date",
            name="payroll_config_dates_check",
        ),
    )


# ===== Ledgers =====


class Bonus(Base, TimestampMixin):
    """Ad-hoc bonus for an employee."""

    __tablename__ = "bonuses"

    bonus_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    bonus_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (CheckConstraint("amount >= 0", name="bonus_amount_check"),)


class Deduction(Base, TimestampMixin):
    """Ad-hoc deduction for an employee (loan payments, cash advances, ...)."""

    __tablename__ = "deductions"

    deduction_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    deduction_type: Mapped[str] = mapped_column(String, nullable=False)
    amount: Mapped[Decimal] = mapped_column(MONEY, nullable=False)
    effective_date: Mapped[date] = mapped_column(Date, nullable=False)

    __table_args__ = (CheckConstraint("amount >= 0", name="deduction_amount_check"),)


# ===== Payroll runs =====


class PayrollHeader(Base, TimestampMixin):
    """One payroll generation run for a period."""

    __tablename__ = "payroll_header"

    payroll_header_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    period_start: Mapped[date] = mapped_column(Date, nullable=False)
    period_end: Mapped[date] = mapped_column(Date, nullable=False)
    run_by: Mapped[str | None] = mapped_column(String, nullable=True)
    run_at: Mapped[datetime] = mapped_column(nullable=False)
    pay_frequency: Mapped[str] = mapped_column(String, nullable=False)
    engine_version: Mapped[str] = mapped_column(String, nullable=False)
    status: Mapped[str] = mapped_column(String, nullable=False, default="generated")
    employee_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    failure_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_gross: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    total_net: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    metadata_json: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)

    __table_args__ = (
        CheckConstraint("period_end >= period_start", name="payroll_header_dates_check"),
        Index("payroll_header_period", "period_start", "period_end"),
    )

    payslips: Mapped[list[Payslip]] = relationship(
        back_populates="header",
        cascade="all, delete-orphan",
    )


class Payslip(Base, TimestampMixin):
    """One employee's totals for a payroll run."""

    __tablename__ = "payslip"

    payslip_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    payroll_header_id: Mapped[UUID] = mapped_column(
        ForeignKey("payroll_header.payroll_header_id", ondelete="CASCADE"),
        nullable=False,
    )
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    calculation_id: Mapped[UUID] = mapped_column(nullable=False)

    total_hours: Mapped[Decimal] = mapped_column(Numeric(8, 2), nullable=False, default=0)
    base_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    overtime_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    holiday_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    night_differential: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    leave_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    gross_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    total_bonuses: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)

    sss_employee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    sss_employer: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    philhealth_employee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    philhealth_employer: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    pagibig_employee: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    pagibig_employer: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    income_tax: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    late_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    undertime_deduction: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    other_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    total_deductions: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)
    net_pay: Mapped[Decimal] = mapped_column(MONEY, nullable=False, default=0)

    lines_json: Mapped[dict[str, Any]] = mapped_column(nullable=False, default=dict)
    inputs_fingerprint: Mapped[str] = mapped_column(String, nullable=False)
    rules_fingerprint: Mapped[str] = mapped_column(String, nullable=False)

    __table_args__ = (
        UniqueConstraint("payroll_header_id", "employee_id", name="payslip_header_employee_unique"),
    )

    header: Mapped[PayrollHeader] = relationship(back_populates="payslips")
