"""Versioned business configuration for payroll calculation.

Rows come from the ``payroll_configuration`` table (see
:mod:`hris_payroll.services.config_service`); every key has a hardcoded
default so a missing row never stops a payroll run. The resulting
:class:`PayrollConfig` is immutable and is handed to each calculator
explicitly.
"""

from __future__ import annotations

import hashlib
import json
import logging
from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any, Iterable

from hris_payroll.calculators.types import (
    ConfigSource,
    ContributionBracket,
    PremiumRates,
    TaxBracket,
)

logger = logging.getLogger(__name__)


class ConfigValueError(Exception):
    """Raised when a configuration value cannot be parsed as its data_type."""

    def __init__(self, key: str, data_type: str, raw_value: str, expected: str | None = None):
        self.key = key
        self.data_type = data_type
        self.raw_value = raw_value
        self.expected = expected
        if expected is not None:
            message = (
                f"Configuration '{key}' is stored as {data_type} but must be {expected}"
            )
        else:
            message = f"Configuration '{key}' has value {raw_value!r} that is not a valid {data_type}"
        super().__init__(message)


DATA_TYPES = ("integer", "decimal", "boolean", "string", "json")


def _sss_default_brackets() -> list[dict[str, Any]]:
    # 2025 table: +22.50 / +52.50 per ₱500 step, topped out at ₱20,250
    brackets: list[dict[str, Any]] = [
        {"min": "0", "max": "3249.99", "employee": "140", "employer": "325"}
    ]
    employee = Decimal("140")
    employer = Decimal("325")
    floor = Decimal("3250")
    while floor < Decimal("20250"):
        employee += Decimal("22.5")
        employer += Decimal("52.5")
        brackets.append(
            {
                "min": str(floor),
                "max": str(floor + Decimal("499.99")),
                "employee": str(employee),
                "employer": str(employer),
            }
        )
        floor += Decimal("500")
    brackets.append({"min": "20250", "max": None, "employee": "930", "employer": "2170"})
    return brackets


# BIR withholding table (monthly), effective 2023 onward
_INCOME_TAX_DEFAULT = [
    {"min": "0", "max": "20833", "rate": "0", "flat": "0"},
    {"min": "20833", "max": "33333", "rate": "0.15", "flat": "0"},
    {"min": "33333", "max": "66667", "rate": "0.20", "flat": "1875"},
    {"min": "66667", "max": "166667", "rate": "0.25", "flat": "8541.80"},
    {"min": "166667", "max": "666667", "rate": "0.30", "flat": "33541.80"},
    {"min": "666667", "max": None, "rate": "0.35", "flat": "183541.80"},
]


# key -> (data_type, default value already in parsed form)
DEFAULTS: dict[str, tuple[str, Any]] = {
    "standard_daily_hours": ("decimal", Decimal("8")),
    "monthly_working_days": ("decimal", Decimal("22")),
    "overtime_multiplier": ("decimal", Decimal("1.25")),
    "holiday_regular_multiplier": ("decimal", Decimal("2.0")),
    "holiday_special_multiplier": ("decimal", Decimal("1.30")),
    "dayoff_multiplier": ("decimal", Decimal("1.30")),
    "night_differential_rate": ("decimal", Decimal("0.10")),
    "night_start_hour": ("integer", 22),
    "night_end_hour": ("integer", 6),
    "holiday_regular_not_worked_multiplier": ("decimal", Decimal("1.0")),
    "late_penalty_rate": ("decimal", Decimal("0.00462")),
    "undertime_deduction_rate": ("decimal", Decimal("1.0")),
    "enable_late_deductions": ("boolean", False),
    "enable_undertime_deductions": ("boolean", False),
    "apply_payroll_increment": ("boolean", False),
    "holiday_entitled_employment_types": ("string", "regular,permanent"),
    "statutory_employment_types": ("string", "regular,permanent"),
    # Social insurance (SSS)
    "sss_brackets": ("json", _sss_default_brackets()),
    "sss_employee_rate": ("decimal", Decimal("0.05")),
    "sss_employer_rate": ("decimal", Decimal("0.10")),
    # Health insurance (PhilHealth)
    "philhealth_rate": ("decimal", Decimal("0.055")),
    "philhealth_employee_share": ("decimal", Decimal("0.5")),
    "philhealth_salary_floor": ("decimal", Decimal("10000")),
    "philhealth_salary_cap": ("decimal", Decimal("100000")),
    # Housing fund (Pag-IBIG / HDMF)
    "pagibig_threshold": ("decimal", Decimal("1500")),
    "pagibig_rate_low": ("decimal", Decimal("0.01")),
    "pagibig_rate_high": ("decimal", Decimal("0.02")),
    "pagibig_employer_rate": ("decimal", Decimal("0.02")),
    "pagibig_cap": ("decimal", Decimal("200")),
    # Withholding tax
    "income_tax_brackets": ("json", _INCOME_TAX_DEFAULT),
}


def parse_value(key: str, raw_value: str, data_type: str) -> Any:
    """Parse a stored text value according to its data_type tag."""
    raw = (raw_value or "").strip()
    try:
        if data_type == "integer":
            return int(raw)
        if data_type == "decimal":
            return Decimal(raw)
        if data_type == "boolean":
            lowered = raw.lower()
            if lowered in ("true", "1", "yes"):
                return True
            if lowered in ("false", "0", "no"):
                return False
            raise ValueError(raw)
        if data_type == "json":
            return json.loads(raw)
        if data_type == "string":
            return raw_value
    except (ValueError, InvalidOperation, json.JSONDecodeError) as e:
        raise ConfigValueError(key, data_type, raw_value) from e
    raise ConfigValueError(key, data_type, raw_value)


def format_value(value: Any, data_type: str) -> str:
    """Inverse of :func:`parse_value`, used when seeding rows."""
    if data_type == "boolean":
        return "true" if value else "false"
    if data_type == "json":
        return json.dumps(value, sort_keys=True)
    return str(value)


@dataclass(frozen=True)
class ConfigRow:
    """One versioned configuration row, decoupled from the ORM."""

    config_key: str
    config_value: str
    data_type: str
    effective_date: date
    expiry_date: date | None = None
    is_active: bool = True

    def is_effective_on(self, as_of: date) -> bool:
        if not self.is_active or self.effective_date > as_of:
            return False
        return self.expiry_date is None or self.expiry_date > as_of


def select_effective_rows(rows: Iterable[ConfigRow], as_of: date) -> dict[str, ConfigRow]:
    """Pick, per key, the effective row with the latest effective_date."""
    selected: dict[str, ConfigRow] = {}
    for row in rows:
        if not row.is_effective_on(as_of):
            continue
        current = selected.get(row.config_key)
        if current is None or row.effective_date > current.effective_date:
            selected[row.config_key] = row
    return selected


def _dec(value: Any) -> Decimal:
    return value if isinstance(value, Decimal) else Decimal(str(value))


def _optional_dec(value: Any) -> Decimal | None:
    if value is None or value == "" or value == "Infinity":
        return None
    return _dec(value)


@dataclass(frozen=True)
class PayrollConfig:
    """Resolved configuration values with their source.

    Build with :meth:`defaults` or :meth:`from_rows`; never mutated.
    """

    values: dict[str, Any]
    sources: dict[str, ConfigSource]
    as_of: date | None = None
    unknown_keys: tuple[str, ...] = field(default=())

    @classmethod
    def defaults(cls, as_of: date | None = None) -> PayrollConfig:
        return cls(
            values={key: default for key, (_, default) in DEFAULTS.items()},
            sources={key: ConfigSource.DEFAULT for key in DEFAULTS},
            as_of=as_of,
        )

    @classmethod
    def from_rows(cls, rows: Iterable[ConfigRow], as_of: date) -> PayrollConfig:
        """Resolve rows effective on ``as_of``, falling back to defaults per key."""
        selected = select_effective_rows(rows, as_of)
        values: dict[str, Any] = {}
        sources: dict[str, ConfigSource] = {}
        for key, (data_type, default) in DEFAULTS.items():
            row = selected.get(key)
            if row is None:
                values[key] = default
                sources[key] = ConfigSource.DEFAULT
            else:
                if row.data_type != data_type:
                    raise ConfigValueError(key, row.data_type, row.config_value, expected=data_type)
                values[key] = parse_value(key, row.config_value, data_type)
                sources[key] = ConfigSource.DATABASE
        unknown = tuple(sorted(set(selected) - set(DEFAULTS)))
        config = cls(values=values, sources=sources, as_of=as_of, unknown_keys=unknown)

        defaulted = config.defaulted_keys()
        if defaulted:
            logger.warning(
                "Payroll configuration falling back to defaults for %d key(s) as of %s: %s",
                len(defaulted),
                as_of,
                ", ".join(defaulted),
            )
        if unknown:
            logger.info("Ignoring unrecognised configuration keys: %s", ", ".join(unknown))
        return config

    def with_values(self, **overrides: Any) -> PayrollConfig:
        """Copy with some keys replaced (recorded as database-sourced)."""
        values = dict(self.values)
        sources = dict(self.sources)
        for key, value in overrides.items():
            if key not in DEFAULTS:
                raise KeyError(key)
            values[key] = value
            sources[key] = ConfigSource.DATABASE
        return PayrollConfig(values=values, sources=sources, as_of=self.as_of)

    def get(self, key: str) -> Any:
        return self.values[key]

    def source(self, key: str) -> ConfigSource:
        return self.sources[key]

    def decimal(self, key: str) -> Decimal:
        return _dec(self.values[key])

    def flag(self, key: str) -> bool:
        return bool(self.values[key])

    def employment_types(self, key: str) -> frozenset[str]:
        raw = self.values[key]
        if isinstance(raw, (list, tuple)):
            items = raw
        else:
            items = str(raw).split(",")
        return frozenset(item.strip().lower() for item in items if str(item).strip())

    def defaulted_keys(self) -> list[str]:
        return sorted(k for k, s in self.sources.items() if s is ConfigSource.DEFAULT)

    # --- Typed views -------------------------------------------------------

    @property
    def standard_daily_hours(self) -> Decimal:
        return self.decimal("standard_daily_hours")

    @property
    def monthly_working_days(self) -> Decimal:
        return self.decimal("monthly_working_days")

    @property
    def night_window(self) -> tuple[int, int]:
        return int(self.values["night_start_hour"]), int(self.values["night_end_hour"])

    @property
    def premium_rates(self) -> PremiumRates:
        return PremiumRates(
            overtime=self.decimal("overtime_multiplier"),
            regular_holiday=self.decimal("holiday_regular_multiplier"),
            special_holiday=self.decimal("holiday_special_multiplier"),
            rest_day=self.decimal("dayoff_multiplier"),
            night_differential=self.decimal("night_differential_rate"),
        )

    @property
    def sss_brackets(self) -> list[ContributionBracket]:
        brackets = [
            ContributionBracket(
                min_salary=_dec(b["min"]),
                max_salary=_optional_dec(b.get("max")),
                employee=_dec(b["employee"]),
                employer=_dec(b["employer"]),
            )
            for b in self.values["sss_brackets"] or []
        ]
        return sorted(brackets, key=lambda b: b.min_salary)

    @property
    def income_tax_brackets(self) -> list[TaxBracket]:
        brackets = [
            TaxBracket(
                min_amount=_dec(b["min"]),
                max_amount=_optional_dec(b.get("max")),
                rate=_dec(b["rate"]),
                flat_amount=_dec(b.get("flat", 0)),
            )
            for b in self.values["income_tax_brackets"] or []
        ]
        return sorted(brackets, key=lambda b: b.min_amount)

    def fingerprint(self) -> str:
        """Stable hash of every resolved value, used in calculation IDs."""
        data = {key: format_value(value, DEFAULTS[key][0]) for key, value in self.values.items()}
        json_str = json.dumps(data, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]
