"""Loading and versioning of payroll configuration rows."""

from __future__ import annotations

import logging
from datetime import date
from typing import Any

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from hris_payroll.calculators.payroll_config import (
    DATA_TYPES,
    DEFAULTS,
    ConfigRow,
    ConfigValueError,
    PayrollConfig,
    format_value,
    parse_value,
)
from hris_payroll.models import PayrollConfiguration

logger = logging.getLogger(__name__)


class ConfigService:
    """Reads and writes ``payroll_configuration`` rows.

    Each write creates a new version rather than editing a row in place: the
    previously open-ended version of the key is closed at the new
    effective date.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def load_rows(self, keys: list[str] | None = None) -> list[ConfigRow]:
        query = select(PayrollConfiguration).where(PayrollConfiguration.is_active.is_(True))
        if keys:
            query = query.where(PayrollConfiguration.config_key.in_(keys))
        result = await self.session.execute(query)
        return [
            ConfigRow(
                config_key=row.config_key,
                config_value=row.config_value,
                data_type=row.data_type,
                effective_date=row.effective_date,
                expiry_date=row.expiry_date,
                is_active=row.is_active,
            )
            for row in result.scalars()
        ]

    async def get_config(self, as_of: date) -> PayrollConfig:
        """Resolve the configuration effective on ``as_of``."""
        return PayrollConfig.from_rows(await self.load_rows(), as_of)

    async def set_value(
        self,
        key: str,
        value: Any,
        effective_date: date,
        data_type: str | None = None,
        description: str | None = None,
    ) -> PayrollConfiguration:
        """Record a new version of ``key`` effective from ``effective_date``."""
        if data_type is None:
            if key not in DEFAULTS:
                raise ValueError(f"Unknown configuration key '{key}'; data_type required")
            data_type = DEFAULTS[key][0]
        elif key in DEFAULTS and data_type != DEFAULTS[key][0]:
            raise ConfigValueError(key, data_type, str(value), expected=DEFAULTS[key][0])
        if data_type not in DATA_TYPES:
            raise ValueError(f"Unsupported data_type '{data_type}'")

        raw = value if isinstance(value, str) else format_value(value, data_type)
        # Reject values that would fail at calculation time
        parse_value(key, raw, data_type)

        result = await self.session.execute(
            select(PayrollConfiguration).where(
                PayrollConfiguration.config_key == key,
                PayrollConfiguration.is_active.is_(True),
            )
        )
        existing = list(result.scalars())

        for row in existing:
            if row.effective_date == effective_date:
                row.config_value = raw
                row.data_type = data_type
                if description is not None:
                    row.description = description
                await self.session.flush()
                return row

        next_start: date | None = None
        for row in existing:
            if row.effective_date < effective_date and (
                row.expiry_date is None or row.expiry_date > effective_date
            ):
                row.expiry_date = effective_date
            elif row.effective_date > effective_date:
                if next_start is None or row.effective_date < next_start:
                    next_start = row.effective_date

        row = PayrollConfiguration(
            config_key=key,
            config_value=raw,
            data_type=data_type,
            description=description,
            effective_date=effective_date,
            expiry_date=next_start,
            is_active=True,
        )
        self.session.add(row)
        await self.session.flush()
        logger.info("Configuration %s set to %s from %s", key, raw, effective_date)
        return row

    async def seed_defaults(self, effective_date: date) -> int:
        """Insert a row for every known key that has none. Returns rows added."""
        result = await self.session.execute(select(PayrollConfiguration.config_key).distinct())
        present = set(result.scalars())
        added = 0
        for key, (data_type, default) in DEFAULTS.items():
            if key in present:
                continue
            self.session.add(
                PayrollConfiguration(
                    config_key=key,
                    config_value=format_value(default, data_type),
                    data_type=data_type,
                    effective_date=effective_date,
                    is_active=True,
                )
            )
            added += 1
        await self.session.flush()
        if added:
            logger.info("Seeded %d default configuration rows", added)
        return added


__all__ = ["ConfigService", "ConfigValueError"]
