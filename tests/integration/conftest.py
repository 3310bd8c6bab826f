"""Integration test fixtures with a real (in-memory SQLite) database."""

from collections.abc import AsyncGenerator
from datetime import date, datetime, time
from decimal import Decimal
from uuid import UUID

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine
from sqlalchemy.pool import StaticPool

from hris_payroll.calculators.types import PayFrequency
from hris_payroll.config import Settings
from hris_payroll.models import (
    Base,
    Bonus,
    Contract,
    Deduction,
    Employee,
    EmployeeScheduleOverride,
    Holiday,
    Schedule,
)

TEST_DATABASE_URL = "sqlite+aiosqlite://"


@pytest.fixture
def settings() -> Settings:
    return Settings(
        database_url=TEST_DATABASE_URL,
        engine_version="1.0.0",
        timezone="Asia/Manila",
        pay_frequency=PayFrequency.MONTHLY,
        concurrency=4,
        log_level="INFO",
    )


@pytest_asyncio.fixture
async def test_engine():
    """Fresh in-memory database with every table created."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """Get database session for integration tests."""
    async with AsyncSession(test_engine, expire_on_commit=False) as session:
        yield session
        await session.rollback()


class Seeder:
    """Inserts the reference rows a payroll run reads."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def schedule(
        self,
        shift_start: time = time(8, 0),
        shift_end: time = time(17, 0),
        break_start: time | None = time(12, 0),
        break_end: time | None = time(13, 0),
        days_of_week: str = "0,1,2,3,4",
    ) -> Schedule:
        schedule = Schedule(
            name=f"{shift_start:%H%M}-{shift_end:%H%M}",
            shift_start=shift_start,
            shift_end=shift_end,
            break_start=break_start,
            break_end=break_end,
            days_of_week=days_of_week,
        )
        self.session.add(schedule)
        await self.session.flush()
        return schedule

    async def employee(
        self,
        rate: Decimal | None = Decimal("500"),
        rate_type: str = "hourly",
        employment_type: str = "regular",
        schedule: Schedule | None = None,
        contract_start: date = date(2025, 1, 1),
    ) -> Employee:
        """Employee with one contract (none when ``rate`` is None)."""
        employee = Employee(
            first_name="Juan",
            last_name="Dela Cruz",
            employment_type=employment_type,
            schedule_id=schedule.schedule_id if schedule else None,
        )
        self.session.add(employee)
        await self.session.flush()
        if rate is not None:
            self.session.add(
                Contract(
                    employee_id=employee.employee_id,
                    rate=rate,
                    rate_type=rate_type,
                    start_date=contract_start,
                )
            )
        await self.session.flush()
        return employee

    async def override(
        self, employee: Employee, override_type: str, value: str, effective_from: date
    ) -> EmployeeScheduleOverride:
        row = EmployeeScheduleOverride(
            employee_id=employee.employee_id,
            override_type=override_type,
            override_value=Decimal(value),
            effective_from=effective_from,
        )
        self.session.add(row)
        await self.session.flush()
        return row

    async def holiday(self, day: date, name: str, holiday_type: str = "regular") -> Holiday:
        holiday = Holiday(holiday_date=day, name=name, holiday_type=holiday_type)
        self.session.add(holiday)
        await self.session.flush()
        return holiday

    async def bonus(self, employee_id: UUID, bonus_type: str, amount: str, day: date) -> None:
        self.session.add(
            Bonus(employee_id=employee_id, bonus_type=bonus_type, amount=Decimal(amount), effective_date=day)
        )
        await self.session.flush()

    async def deduction(
        self, employee_id: UUID, deduction_type: str, amount: str, day: date
    ) -> None:
        self.session.add(
            Deduction(
                employee_id=employee_id,
                deduction_type=deduction_type,
                amount=Decimal(amount),
                effective_date=day,
            )
        )
        await self.session.flush()


@pytest.fixture
def seed(db_session) -> Seeder:
    return Seeder(db_session)


@pytest.fixture
def manila(settings):
    """Build a Manila wall-clock datetime: ``manila(day, hour, minute=0)``."""

    def _at(day: date, hour: int, minute: int = 0) -> datetime:
        return datetime.combine(day, time(hour, minute)).replace(tzinfo=settings.tzinfo)

    return _at
