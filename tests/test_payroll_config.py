"""Tests for versioned configuration resolution."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from hris_payroll.calculators.payroll_config import (
    DEFAULTS,
    ConfigRow,
    ConfigValueError,
    PayrollConfig,
    format_value,
    parse_value,
)
from hris_payroll.calculators.types import ConfigSource

AS_OF = date(2025, 6, 2)


def row(key, value, data_type="decimal", effective=date(2025, 1, 1), **kwargs) -> ConfigRow:
    return ConfigRow(
        config_key=key,
        config_value=value,
        data_type=data_type,
        effective_date=effective,
        **kwargs,
    )


class TestParseValue:
    """Test typed parsing of stored text values."""

    def test_types(self):
        assert parse_value("k", "8", "integer") == 8
        assert parse_value("k", "1.25", "decimal") == Decimal("1.25")
        assert parse_value("k", '[{"min": "0"}]', "json") == [{"min": "0"}]
        assert parse_value("k", "regular,permanent", "string") == "regular,permanent"

    @pytest.mark.parametrize("raw,expected", [("true", True), ("YES", True), ("0", False)])
    def test_booleans(self, raw, expected):
        assert parse_value("k", raw, "boolean") is expected

    @pytest.mark.parametrize(
        "raw,data_type",
        [("abc", "decimal"), ("1.5", "integer"), ("maybe", "boolean"), ("{", "json"), ("1", "blob")],
    )
    def test_invalid(self, raw, data_type):
        with pytest.raises(ConfigValueError) as exc:
            parse_value("overtime_multiplier", raw, data_type)

        assert exc.value.key == "overtime_multiplier"
        assert exc.value.raw_value == raw

    def test_format_value_inverts_parse(self):
        for key, (data_type, default) in DEFAULTS.items():
            assert parse_value(key, format_value(default, data_type), data_type) == default


class TestFromRows:
    """Test selection of effective rows."""

    def test_no_rows_uses_defaults(self, caplog):
        with caplog.at_level(logging.WARNING):
            config = PayrollConfig.from_rows([], AS_OF)

        assert config.values == PayrollConfig.defaults().values
        assert config.defaulted_keys() == sorted(DEFAULTS)
        assert "falling back to defaults" in caplog.text

    def test_latest_effective_row_wins(self):
        rows = [
            row("overtime_multiplier", "1.5", effective=date(2025, 1, 1)),
            row("overtime_multiplier", "1.4", effective=date(2025, 3, 1)),
            row("overtime_multiplier", "1.3", effective=date(2025, 7, 1)),
        ]

        assert PayrollConfig.from_rows(rows, AS_OF).decimal("overtime_multiplier") == Decimal("1.4")
        assert PayrollConfig.from_rows(rows, date(2025, 2, 1)).decimal(
            "overtime_multiplier"
        ) == Decimal("1.5")

    def test_expired_and_inactive_rows_are_ignored(self):
        rows = [
            row("overtime_multiplier", "1.5", expiry_date=AS_OF),
            row("dayoff_multiplier", "1.5", is_active=False),
        ]
        config = PayrollConfig.from_rows(rows, AS_OF)

        assert config.decimal("overtime_multiplier") == Decimal("1.25")
        assert config.decimal("dayoff_multiplier") == Decimal("1.30")
        assert config.source("overtime_multiplier") is ConfigSource.DEFAULT

    def test_row_valid_until_day_before_expiry(self):
        rows = [row("overtime_multiplier", "1.5", expiry_date=date(2025, 6, 3))]
        config = PayrollConfig.from_rows(rows, AS_OF)

        assert config.decimal("overtime_multiplier") == Decimal("1.5")
        assert config.source("overtime_multiplier") is ConfigSource.DATABASE

    def test_unknown_keys_are_recorded(self):
        config = PayrollConfig.from_rows([row("coffee_allowance", "100")], AS_OF)
        assert config.unknown_keys == ("coffee_allowance",)

    def test_bad_value_raises(self):
        with pytest.raises(ConfigValueError):
            PayrollConfig.from_rows([row("night_start_hour", "late", "integer")], AS_OF)

    def test_boolean_stored_as_string_is_rejected(self):
        with pytest.raises(ConfigValueError) as exc:
            PayrollConfig.from_rows([row("enable_late_deductions", "false", "string")], AS_OF)

        assert exc.value.key == "enable_late_deductions"
        assert exc.value.data_type == "string"
        assert exc.value.expected == "boolean"

    def test_table_stored_as_string_is_rejected(self):
        table = '[{"min": "0", "max": null, "employee": "100", "employer": "200"}]'

        with pytest.raises(ConfigValueError, match="sss_brackets"):
            PayrollConfig.from_rows([row("sss_brackets", table, "string")], AS_OF)

    def test_boolean_row_is_parsed_as_boolean(self):
        config = PayrollConfig.from_rows([row("enable_late_deductions", "false", "boolean")], AS_OF)

        assert config.flag("enable_late_deductions") is False

    def test_premium_rates_follow_rows(self):
        rows = [
            row("holiday_regular_multiplier", "2.5"),
            row("night_differential_rate", "0.15"),
        ]
        rates = PayrollConfig.from_rows(rows, AS_OF).premium_rates

        assert rates.regular_holiday == Decimal("2.5")
        assert rates.night_differential == Decimal("0.15")
        assert rates.overtime == Decimal("1.25")


class TestPayrollConfig:
    """Test accessors and fingerprints."""

    def test_with_values_marks_database_source(self, config):
        changed = config.with_values(overtime_multiplier=Decimal("1.5"))

        assert changed.source("overtime_multiplier") is ConfigSource.DATABASE
        assert config.source("overtime_multiplier") is ConfigSource.DEFAULT

    def test_with_values_rejects_unknown_key(self, config):
        with pytest.raises(KeyError):
            config.with_values(coffee_allowance=Decimal("100"))

    def test_employment_types(self, config):
        changed = config.with_values(statutory_employment_types=" Regular, Permanent ,")
        assert changed.employment_types("statutory_employment_types") == frozenset(
            {"regular", "permanent"}
        )

    def test_night_window(self, config):
        assert config.night_window == (22, 6)

    def test_fingerprint_is_stable(self, config):
        assert config.fingerprint() == PayrollConfig.defaults(date(2024, 1, 1)).fingerprint()

    def test_fingerprint_changes_with_values(self, config):
        changed = config.with_values(pagibig_cap=Decimal("250"))
        assert changed.fingerprint() != config.fingerprint()
