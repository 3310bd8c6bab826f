"""Attendance model."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, Numeric
from sqlalchemy.orm import Mapped, mapped_column

from hris_payroll.models.base import Base, TimestampMixin, UpdatedAtMixin


class Attendance(Base, TimestampMixin, UpdatedAtMixin):
    """One clock-in/clock-out row.

    Created at clock-in with ``time_out`` null. Every derived column is
    rewritten together when the row is finalized.
    """

    __tablename__ = "attendance"

    attendance_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[UUID] = mapped_column(
        ForeignKey("employees.employee_id", ondelete="CASCADE"),
        nullable=False,
    )
    work_date: Mapped[date] = mapped_column(Date, nullable=False)
    time_in: Mapped[datetime | None] = mapped_column(nullable=True)
    time_out: Mapped[datetime | None] = mapped_column(nullable=True)

    is_dayoff: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_regular_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_special_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    on_leave: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    leave_pay_percentage: Mapped[Decimal | None] = mapped_column(Numeric(5, 2), nullable=True)

    # Derived at clock-out
    total_hours: Mapped[Decimal] = mapped_column(Numeric(6, 2), nullable=False, default=0)
    late_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    undertime_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    night_differential_hours: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=0
    )
    rest_day_hours_worked: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=0
    )
    is_late: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_undertime: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_halfday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_entitled_holiday: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    payroll_breakdown: Mapped[dict[str, Any] | None] = mapped_column(nullable=True)

    __table_args__ = (
        CheckConstraint("total_hours >= 0", name="attendance_total_hours_check"),
        Index("attendance_employee_date", "employee_id", "work_date"),
    )
