"""Employee, contract and schedule override models."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import TYPE_CHECKING
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Date, ForeignKey, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from hris_payroll.models.base import Base, TimestampMixin

if TYPE_CHECKING:
    from hris_payroll.models.schedule import Schedule


class Employee(Base, TimestampMixin):
    """Employee record (only the fields payroll reads)."""

    __tablename__ = "employees"

    employee_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    first_name: Mapped[str] = mapped_column(String, nullable=False)
    last_name: Mapped[str] = mapped_column(String, nullable=False)
    employment_type: Mapped[str | None] = mapped_column(String, nullable=True)
    status: Mapped[str] = mapped_column(String, nullable=False, default="active")
    schedule_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("schedules.schedule_id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    schedule: Mapped[Schedule | None] = relationship()
    contracts: Mapped[list[Contract]] = relationship(back_populates="employee")
    overrides: Mapped[list[EmployeeScheduleOverride]] = relationship(
        back_populates="employee"
    )

    @property
    def full_name(self) -> str:
        """Get full name."""
        return f"{self.first_name} {self.last_name}"


class Contract(Base, TimestampMixin):
    """Employment contract carrying the pay rate."""

    __tablename__ = "contracts"

    contract_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    rate_type: Mapped[str] = mapped_column(String, nullable=False)
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (CheckConstraint("rate > 0", name="contract_rate_positive"),)

    employee: Mapped[Employee] = relationship(back_populates="contracts")

    def is_active_on(self, as_of: date) -> bool:
        if self.start_date > as_of:
            return False
        return self.end_date is None or self.end_date >= as_of


class EmployeeScheduleOverride(Base, TimestampMixin):
    """Per-employee override of schedule-derived terms."""

    __tablename__ = "employee_schedule_overrides"

    override_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    override_type: Mapped[str] = mapped_column(String, nullable=False)
    override_value: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    effective_from: Mapped[date] = mapped_column(Date, nullable=False)
    effective_until: Mapped[date | None] = mapped_column(Date, nullable=True)

    __table_args__ = (
        CheckConstraint(
            "override_type IN ('hours_per_day', 'days_per_week', "
            "'monthly_working_days', 'custom_rate')",
            name="schedule_override_type_check",
        ),
        CheckConstraint(
            "effective_until IS NULL OR effective_until >= effective_from",
            name="schedule_override_dates_check",
        ),
    )

    employee: Mapped[Employee] = relationship(back_populates="overrides")
