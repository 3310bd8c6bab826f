"""Work schedule and holiday calendar models."""

from __future__ import annotations

from datetime import date, time
from uuid import UUID, uuid4

from sqlalchemy import Boolean, CheckConstraint, Date, Index, Integer, String, Time, text
from sqlalchemy.orm import Mapped, mapped_column

from hris_payroll.models.base import Base, TimestampMixin


class Schedule(Base, TimestampMixin):
    """Shift definition. ``days_of_week`` is a comma list of weekday indices (Monday=0)."""

    __tablename__ = "schedules"

    schedule_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    name: Mapped[str] = mapped_column(String, nullable=False)
    shift_start: Mapped[time] = mapped_column(Time, nullable=False)
    shift_end: Mapped[time] = mapped_column(Time, nullable=False)
    break_start: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_end: Mapped[time | None] = mapped_column(Time, nullable=True)
    break_duration: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    days_of_week: Mapped[str] = mapped_column(String, nullable=False, default="0,1,2,3,4")

    __table_args__ = (
        CheckConstraint("break_duration >= 0", name="schedule_break_duration_check"),
    )

    def weekday_set(self) -> frozenset[int]:
        return frozenset(
            int(part) for part in (self.days_of_week or "").split(",") if part.strip()
        )


class Holiday(Base, TimestampMixin):
    """Calendar holiday. At most one active holiday per date."""

    __tablename__ = "holidays"

    holiday_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    holiday_date: Mapped[date] = mapped_column(Date, nullable=False)
    name: Mapped[str] = mapped_column(String, nullable=False)
    holiday_type: Mapped[str] = mapped_column(String, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    __table_args__ = (
        CheckConstraint(
            "holiday_type IN ('regular', 'special')",
            name="holiday_type_check",
        ),
        Index(
            "holidays_one_active_per_date",
            "holiday_date",
            unique=True,
            postgresql_where=text("is_active"),
            sqlite_where=text("is_active = 1"),
        ),
    )
