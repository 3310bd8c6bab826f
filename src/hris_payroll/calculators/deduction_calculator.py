"""Statutory deduction calculation using bracket tables from configuration."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Mapping
from uuid import UUID

from hris_payroll.calculators.payroll_config import PayrollConfig
from hris_payroll.calculators.types import (
    ZERO,
    ConfigSource,
    ContributionBracket,
    ContributionResult,
    DeductionResult,
    PayFrequency,
    TaxBracket,
)

THIRTEENTH_MONTH_EXEMPTION = Decimal("90000")
DEFAULT_EMPLOYMENT_TYPE = "regular"


@dataclass(frozen=True)
class ThirteenthMonthResult:
    amount: Decimal
    exempt: Decimal
    taxable: Decimal
    is_pro_rated: bool


class StatutoryDeductionCalculator:
    """Calculates government contributions and withholding tax.

    Tables are read from :class:`PayrollConfig`, which records for every key
    whether the value came from the database or a hardcoded default; each
    contribution carries that source.

    Contributions are looked up on the monthly equivalent of the period's
    gross pay and converted back to the pay period.
    """

    def __init__(
        self,
        config: PayrollConfig,
        pay_frequency: PayFrequency = PayFrequency.MONTHLY,
    ):
        self.config = config
        self.pay_frequency = pay_frequency

    def to_monthly(self, period_amount: Decimal) -> Decimal:
        return period_amount * self.pay_frequency.periods_per_month

    def from_monthly(self, monthly_amount: Decimal) -> Decimal:
        return monthly_amount / self.pay_frequency.periods_per_month

    def _source(self, *keys: str) -> ConfigSource:
        if any(self.config.source(k) is ConfigSource.DATABASE for k in keys):
            return ConfigSource.DATABASE
        return ConfigSource.DEFAULT

    # === Social insurance (SSS) ===

    @staticmethod
    def find_bracket(brackets: list[ContributionBracket], salary: Decimal) -> ContributionBracket:
        """Bracket for a salary; below the table uses the first, above it the last."""
        chosen = brackets[0]
        for bracket in brackets:
            if bracket.contains(salary):
                return bracket
            if bracket.min_salary <= salary:
                chosen = bracket
        return chosen

    def social_insurance(self, monthly_salary: Decimal) -> ContributionResult:
        if monthly_salary <= 0:
            return ContributionResult.none(self._source("sss_brackets"))

        brackets = self.config.sss_brackets
        brackets_from_db = self.config.source("sss_brackets") is ConfigSource.DATABASE
        rate_from_db = self._source("sss_employee_rate", "sss_employer_rate") is ConfigSource.DATABASE

        if brackets and (brackets_from_db or not rate_from_db):
            bracket = self.find_bracket(brackets, monthly_salary)
            return ContributionResult(
                employee=bracket.employee,
                employer=bracket.employer,
                source=self.config.source("sss_brackets"),
                basis=monthly_salary,
            )

        # No bracket table: flat percentage of salary
        return ContributionResult(
            employee=monthly_salary * self.config.decimal("sss_employee_rate"),
            employer=monthly_salary * self.config.decimal("sss_employer_rate"),
            source=self._source("sss_employee_rate", "sss_employer_rate"),
            basis=monthly_salary,
        )

    # === Health insurance (PhilHealth) ===

    def health_insurance(self, monthly_salary: Decimal) -> ContributionResult:
        source = self._source(
            "philhealth_rate",
            "philhealth_employee_share",
            "philhealth_salary_floor",
            "philhealth_salary_cap",
        )
        if monthly_salary <= 0:
            return ContributionResult.none(source)

        floor = self.config.decimal("philhealth_salary_floor")
        cap = self.config.decimal("philhealth_salary_cap")
        basis = min(max(monthly_salary, floor), cap)
        premium = basis * self.config.decimal("philhealth_rate")
        employee = premium * self.config.decimal("philhealth_employee_share")
        return ContributionResult(
            employee=employee,
            employer=premium - employee,
            source=source,
            basis=basis,
        )

    # === Housing fund (Pag-IBIG) ===

    def housing_fund(self, monthly_salary: Decimal) -> ContributionResult:
        source = self._source(
            "pagibig_threshold",
            "pagibig_rate_low",
            "pagibig_rate_high",
            "pagibig_employer_rate",
            "pagibig_cap",
        )
        if monthly_salary <= 0:
            return ContributionResult.none(source)

        if monthly_salary <= self.config.decimal("pagibig_threshold"):
            rate = self.config.decimal("pagibig_rate_low")
        else:
            rate = self.config.decimal("pagibig_rate_high")
        cap = self.config.decimal("pagibig_cap")
        return ContributionResult(
            employee=min(monthly_salary * rate, cap),
            employer=min(monthly_salary * self.config.decimal("pagibig_employer_rate"), cap),
            source=source,
            basis=monthly_salary,
        )

    # === Withholding tax ===

    @staticmethod
    def _calculate_bracket_tax(taxable: Decimal, brackets: list[TaxBracket]) -> Decimal:
        """Base amount of the bracket plus its rate on the excess over the floor."""
        if taxable <= 0 or not brackets:
            return ZERO
        chosen = brackets[0]
        for bracket in brackets:
            if taxable > bracket.min_amount:
                chosen = bracket
        tax = chosen.flat_amount + (taxable - chosen.min_amount) * chosen.rate
        return max(ZERO, tax)

    def income_tax(self, monthly_taxable: Decimal) -> Decimal:
        return self._calculate_bracket_tax(monthly_taxable, self.config.income_tax_brackets)

    # === Entry point ===

    def applies_statutory(self, employment_type: str | None) -> bool:
        """Missing employment types are treated as regular employment."""
        employment = (employment_type or DEFAULT_EMPLOYMENT_TYPE).strip().lower()
        return employment in self.config.employment_types("statutory_employment_types")

    def calculate_deductions(
        self,
        gross_pay: Decimal,
        employee_id: UUID | None = None,
        employment_type: str | None = DEFAULT_EMPLOYMENT_TYPE,
        other_deductions: Mapping[str, Decimal] | None = None,
        late_deduction: Decimal = ZERO,
        undertime_deduction: Decimal = ZERO,
    ) -> DeductionResult:
        """Deductions for one employee's period gross pay.

        Employee shares never exceed the gross they are computed from.
        """
        others = {name: abs(amount) for name, amount in (other_deductions or {}).items()}
        gross = max(ZERO, gross_pay)

        if not self.applies_statutory(employment_type):
            return DeductionResult(
                income_tax_source=self.config.source("income_tax_brackets"),
                other_deductions=others,
                late_deduction=late_deduction,
                undertime_deduction=undertime_deduction,
            )

        monthly = self.to_monthly(gross)
        sss = self.social_insurance(monthly)
        philhealth = self.health_insurance(monthly)
        pagibig = self.housing_fund(monthly)
        taxable = max(ZERO, monthly - sss.employee - philhealth.employee - pagibig.employee)
        tax = self.income_tax(taxable)

        divisor = self.pay_frequency.periods_per_month

        def per_period(result: ContributionResult) -> ContributionResult:
            scaled = result.scaled(divisor)
            if scaled.employee > gross:
                scaled = ContributionResult(gross, scaled.employer, scaled.source, scaled.basis)
            return scaled

        return DeductionResult(
            social_insurance=per_period(sss),
            health_insurance=per_period(philhealth),
            housing_fund=per_period(pagibig),
            income_tax=min(self.from_monthly(tax), gross),
            income_tax_source=self.config.source("income_tax_brackets"),
            other_deductions=others,
            late_deduction=late_deduction,
            undertime_deduction=undertime_deduction,
        )

    # === 13th month ===

    def calculate_thirteenth_month(
        self, basic_salary_total: Decimal, months_worked: Decimal
    ) -> ThirteenthMonthResult:
        """1/12 of basic salary, pro-rated below 12 months; ₱90,000 is exempt."""
        amount = max(ZERO, basic_salary_total) / 12
        months = max(ZERO, min(Decimal("12"), months_worked))
        is_pro_rated = months < 12
        if is_pro_rated:
            amount = amount * months / 12
        exempt = min(amount, THIRTEENTH_MONTH_EXEMPTION)
        return ThirteenthMonthResult(
            amount=amount,
            exempt=exempt,
            taxable=amount - exempt,
            is_pro_rated=is_pro_rated,
        )
