"""Integration tests for versioned payroll configuration."""

from datetime import date
from decimal import Decimal

import pytest
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from hris_payroll.calculators.payroll_config import DEFAULTS, ConfigValueError
from hris_payroll.calculators.types import ConfigSource
from hris_payroll.models import Holiday, PayrollConfiguration
from hris_payroll.services import ConfigService

JAN_1 = date(2025, 1, 1)
MAR_1 = date(2025, 3, 1)


@pytest.fixture
def service(db_session):
    return ConfigService(db_session)


async def versions(session, key):
    result = await session.execute(
        select(PayrollConfiguration)
        .where(PayrollConfiguration.config_key == key)
        .order_by(PayrollConfiguration.effective_date)
    )
    return list(result.scalars())


class TestSetValue:
    """Test versioned writes."""

    async def test_value_is_used_from_effective_date(self, service):
        await service.set_value("overtime_multiplier", Decimal("1.5"), JAN_1)

        config = await service.get_config(date(2025, 6, 2))
        before = await service.get_config(date(2024, 12, 31))

        assert config.decimal("overtime_multiplier") == Decimal("1.5")
        assert config.source("overtime_multiplier") is ConfigSource.DATABASE
        assert before.source("overtime_multiplier") is ConfigSource.DEFAULT

    async def test_new_version_closes_previous(self, service, db_session):
        await service.set_value("overtime_multiplier", Decimal("1.5"), JAN_1)
        await service.set_value("overtime_multiplier", Decimal("1.4"), MAR_1)

        rows = await versions(db_session, "overtime_multiplier")

        assert [(r.config_value, r.effective_date, r.expiry_date) for r in rows] == [
            ("1.5", JAN_1, MAR_1),
            ("1.4", MAR_1, None),
        ]
        feb = await service.get_config(date(2025, 2, 15))
        assert feb.decimal("overtime_multiplier") == Decimal("1.5")
        assert (await service.get_config(MAR_1)).decimal("overtime_multiplier") == Decimal("1.4")

    async def test_backdated_version_ends_at_next(self, service, db_session):
        await service.set_value("overtime_multiplier", Decimal("1.4"), MAR_1)
        await service.set_value("overtime_multiplier", Decimal("1.5"), JAN_1)

        rows = await versions(db_session, "overtime_multiplier")

        assert rows[0].expiry_date == MAR_1
        assert rows[1].expiry_date is None

    async def test_same_date_updates_in_place(self, service, db_session):
        await service.set_value("enable_late_deductions", True, JAN_1)
        await service.set_value("enable_late_deductions", False, JAN_1)

        rows = await versions(db_session, "enable_late_deductions")

        assert len(rows) == 1
        assert rows[0].config_value == "false"

    async def test_json_value(self, service):
        table = [{"min": "0", "max": None, "employee": "100", "employer": "200"}]
        await service.set_value("sss_brackets", table, JAN_1)

        config = await service.get_config(MAR_1)

        assert config.sss_brackets[0].employee == Decimal("100")

    async def test_invalid_value_is_rejected(self, service):
        with pytest.raises(ConfigValueError):
            await service.set_value("night_start_hour", "ten", JAN_1)

    async def test_conflicting_data_type_is_rejected(self, service, db_session):
        with pytest.raises(ConfigValueError) as exc:
            await service.set_value("enable_late_deductions", "false", JAN_1, data_type="string")

        assert exc.value.expected == "boolean"
        assert await versions(db_session, "enable_late_deductions") == []

    async def test_unknown_key_needs_data_type(self, service):
        with pytest.raises(ValueError):
            await service.set_value("coffee_allowance", "100", JAN_1)

        row = await service.set_value("coffee_allowance", "100", JAN_1, data_type="decimal")
        assert row.data_type == "decimal"


class TestSeedDefaults:
    """Test seeding a fresh database."""

    async def test_seed_once(self, service):
        added = await service.seed_defaults(JAN_1)
        again = await service.seed_defaults(JAN_1)
        config = await service.get_config(MAR_1)

        assert added == len(DEFAULTS)
        assert again == 0
        assert config.defaulted_keys() == []
        assert config.values == (await service.get_config(JAN_1)).values

    async def test_seed_keeps_existing_keys(self, service, db_session):
        await service.set_value("pagibig_cap", Decimal("250"), JAN_1)

        added = await service.seed_defaults(JAN_1)

        assert added == len(DEFAULTS) - 1
        assert (await service.get_config(MAR_1)).decimal("pagibig_cap") == Decimal("250")


class TestHolidayCalendar:
    """Test the one-active-holiday-per-date rule."""

    async def test_second_active_holiday_is_rejected(self, seed, db_session):
        await seed.holiday(date(2025, 6, 12), "Independence Day")

        with pytest.raises(IntegrityError):
            await seed.holiday(date(2025, 6, 12), "Company Day", "special")

    async def test_inactive_duplicate_is_allowed(self, seed, db_session):
        await seed.holiday(date(2025, 6, 12), "Independence Day")
        db_session.add(
            Holiday(
                holiday_date=date(2025, 6, 12),
                name="Old Entry",
                holiday_type="special",
                is_active=False,
            )
        )
        await db_session.flush()

        rows = (await db_session.execute(select(Holiday))).scalars().all()
        assert len(rows) == 2
