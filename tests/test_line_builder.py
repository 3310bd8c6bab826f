"""Tests for payslip line item builder."""

from decimal import Decimal

from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.types import (
    ConfigSource,
    ContributionResult,
    DeductionResult,
    EarningsResult,
    LineType,
    PayslipLine,
)


def contribution(employee: str, employer: str) -> ContributionResult:
    return ContributionResult(
        employee=Decimal(employee), employer=Decimal(employer), source=ConfigSource.DEFAULT
    )


class TestLineItemBuilder:
    """Test line item builder functionality."""

    def test_round_to_cents(self):
        """Test half-up rounding to centavos."""
        assert LineItemBuilder.round_to_cents(Decimal("10.125")) == Decimal("10.13")
        assert LineItemBuilder.round_to_cents(Decimal("10.124")) == Decimal("10.12")
        assert LineItemBuilder.round_to_cents(Decimal("10.135")) == Decimal("10.14")

    def test_create_earning_line(self):
        """Test creating earning line (positive amount)."""
        line = LineItemBuilder.create_earning_line(
            code="base_pay",
            amount=Decimal("4000.00"),
            quantity=Decimal("8"),
            rate=Decimal("500"),
            explanation="Regular hours",
        )

        assert line.line_type == LineType.EARNING
        assert line.amount == Decimal("4000.00")
        assert line.code == "base_pay"
        assert line.quantity == Decimal("8")

    def test_employee_side_lines_are_negative(self):
        """Contributions, tax and deductions are negative whatever sign is passed."""
        assert LineItemBuilder.create_contribution_line("sss", Decimal("930")).amount == Decimal(
            "-930.00"
        )
        assert LineItemBuilder.create_tax_line(Decimal("352.425")).amount == Decimal("-352.43")
        assert LineItemBuilder.create_deduction_line("loan", Decimal("-100")).amount == Decimal(
            "-100.00"
        )

    def test_employer_contribution_is_positive(self):
        line = LineItemBuilder.create_employer_contribution_line("sss", Decimal("-2170"))

        assert line.line_type == LineType.EMPLOYER_CONTRIBUTION
        assert line.amount == Decimal("2170.00")

    def test_create_rounding_line(self):
        """Rounding lines keep their sign."""
        line = LineItemBuilder.create_rounding_line(Decimal("-0.01"))

        assert line.line_type == LineType.ROUNDING
        assert line.amount == Decimal("-0.01")

    def test_calculate_net_excludes_employer_contributions(self):
        lines = [
            PayslipLine(LineType.EARNING, "base_pay", Decimal("4000.00")),
            PayslipLine(LineType.BONUS, "allowance", Decimal("300.00")),
            PayslipLine(LineType.CONTRIBUTION, "sss", Decimal("-185.00")),
            PayslipLine(LineType.EMPLOYER_CONTRIBUTION, "sss", Decimal("430.00")),
            PayslipLine(LineType.TAX, "income_tax", Decimal("-10.00")),
        ]

        assert LineItemBuilder.calculate_net_from_lines(lines) == Decimal("4105.00")
        assert LineItemBuilder.calculate_gross_from_lines(lines) == Decimal("4000.00")

    def test_validate_line_signs(self):
        valid = [
            PayslipLine(LineType.EARNING, "base_pay", Decimal("1000.00")),
            PayslipLine(LineType.DEDUCTION, "loan", Decimal("-100.00")),
            PayslipLine(LineType.ROUNDING, "rounding", Decimal("-0.01")),
        ]
        assert LineItemBuilder.validate_line_signs(valid) == []

        invalid = [
            PayslipLine(LineType.EARNING, "base_pay", Decimal("-1000.00")),
            PayslipLine(LineType.DEDUCTION, "loan", Decimal("100.00")),
        ]
        assert len(LineItemBuilder.validate_line_signs(invalid)) == 2

    def test_reconcile_rounding(self):
        lines = [PayslipLine(LineType.EARNING, "base_pay", Decimal("100.00"))]

        assert LineItemBuilder.reconcile_rounding(lines, Decimal("100.00")) == lines
        reconciled = LineItemBuilder.reconcile_rounding(lines, Decimal("100.01"))
        assert reconciled[-1].line_type == LineType.ROUNDING
        assert LineItemBuilder.calculate_net_from_lines(reconciled) == Decimal("100.01")

    def test_compute_line_hash_deterministic(self):
        """Test that line hash is deterministic."""
        line1 = PayslipLine(LineType.EARNING, "base_pay", Decimal("1000.00"), Decimal("8"))
        line2 = PayslipLine(LineType.EARNING, "base_pay", Decimal("1000.00"), Decimal("8"))

        assert LineItemBuilder.compute_line_hash(line1) == LineItemBuilder.compute_line_hash(line2)

    def test_compute_line_hash_different_for_different_data(self):
        line1 = PayslipLine(LineType.EARNING, "base_pay", Decimal("1000.00"))
        line2 = PayslipLine(LineType.EARNING, "base_pay", Decimal("1001.00"))

        assert LineItemBuilder.compute_line_hash(line1) != LineItemBuilder.compute_line_hash(line2)


class TestBuildLines:
    """Test assembling a payslip from earnings and deductions."""

    def test_order_and_skipped_zeros(self):
        earnings = EarningsResult(base_pay=Decimal("4000.00"), overtime_pay=Decimal("1250.00"))
        deductions = DeductionResult(
            social_insurance=contribution("930.00", "2170.00"),
            health_insurance=contribution("687.50", "687.50"),
            housing_fund=contribution("200.00", "200.00"),
            income_tax=Decimal("352.43"),
            other_deductions={"loan": Decimal("500.00")},
        )

        lines = LineItemBuilder.build_lines(earnings, deductions, {"allowance": Decimal("300.00")})

        assert [(l.line_type, l.code) for l in lines] == [
            (LineType.EARNING, "base_pay"),
            (LineType.EARNING, "overtime_pay"),
            (LineType.BONUS, "allowance"),
            (LineType.CONTRIBUTION, "sss"),
            (LineType.EMPLOYER_CONTRIBUTION, "sss"),
            (LineType.CONTRIBUTION, "philhealth"),
            (LineType.EMPLOYER_CONTRIBUTION, "philhealth"),
            (LineType.CONTRIBUTION, "pagibig"),
            (LineType.EMPLOYER_CONTRIBUTION, "pagibig"),
            (LineType.TAX, "income_tax"),
            (LineType.DEDUCTION, "loan"),
        ]

    def test_net_matches_results(self):
        earnings = EarningsResult(base_pay=Decimal("4000.00"), night_differential=Decimal("200.00"))
        deductions = DeductionResult(
            social_insurance=contribution("185.00", "430.00"),
            late_deduction=Decimal("18.48"),
            undertime_deduction=Decimal("50.00"),
        )

        lines = LineItemBuilder.build_lines(earnings, deductions, {})
        expected = earnings.gross_pay - deductions.total_deductions

        assert LineItemBuilder.calculate_net_from_lines(lines) == expected
        assert {l.code for l in lines if l.line_type == LineType.DEDUCTION} == {"late", "undertime"}

    def test_empty_results_have_no_lines(self):
        assert LineItemBuilder.build_lines(EarningsResult(), DeductionResult(), {}) == []
