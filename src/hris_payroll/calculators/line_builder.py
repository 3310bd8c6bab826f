"""Payslip line item builder with deterministic hashing."""

from __future__ import annotations

import hashlib
import json
from decimal import ROUND_HALF_UP, Decimal

from hris_payroll.calculators.types import (
    DeductionResult,
    EarningsResult,
    LineType,
    PayslipLine,
)


class LineItemBuilder:
    """Builds payslip line items.

    Sign conventions:
    - EARNING, BONUS: positive
    - CONTRIBUTION, TAX, DEDUCTION (employee side): negative
    - EMPLOYER_CONTRIBUTION: positive (liability, not part of net)
    - ROUNDING: either sign

    Amounts are rounded to centavos on the line; net pay is the sum of the
    lines, so a rounding line absorbs any drift against the expected net.
    """

    OUTPUT_PRECISION = Decimal("0.01")

    NET_TYPES = (
        LineType.EARNING,
        LineType.BONUS,
        LineType.CONTRIBUTION,
        LineType.TAX,
        LineType.DEDUCTION,
        LineType.ROUNDING,
    )

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (centavos)."""
        return amount.quantize(LineItemBuilder.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def compute_line_hash(line: PayslipLine) -> str:
        canonical = line.to_canonical_dict()
        json_str = json.dumps(canonical, sort_keys=True)
        return hashlib.sha256(json_str.encode()).hexdigest()[:32]

    @staticmethod
    def create_earning_line(
        code: str,
        amount: Decimal,
        quantity: Decimal | None = None,
        rate: Decimal | None = None,
        explanation: str | None = None,
    ) -> PayslipLine:
        """Create an earning line item (positive amount)."""
        return PayslipLine(
            line_type=LineType.EARNING,
            code=code,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
            quantity=quantity,
            rate=rate,
            explanation=explanation,
        )

    @staticmethod
    def create_bonus_line(code: str, amount: Decimal) -> PayslipLine:
        """Create a bonus line item (positive amount)."""
        return PayslipLine(
            line_type=LineType.BONUS,
            code=code,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
        )

    @staticmethod
    def create_contribution_line(
        code: str, amount: Decimal, explanation: str | None = None
    ) -> PayslipLine:
        """Create an employee contribution line item (negative amount)."""
        return PayslipLine(
            line_type=LineType.CONTRIBUTION,
            code=code,
            amount=-LineItemBuilder.round_to_cents(abs(amount)),
            explanation=explanation,
        )

    @staticmethod
    def create_employer_contribution_line(code: str, amount: Decimal) -> PayslipLine:
        """Create an employer contribution line item (positive amount, liability)."""
        return PayslipLine(
            line_type=LineType.EMPLOYER_CONTRIBUTION,
            code=code,
            amount=LineItemBuilder.round_to_cents(abs(amount)),
        )

    @staticmethod
    def create_tax_line(amount: Decimal, explanation: str | None = None) -> PayslipLine:
        """Create a withholding tax line item (negative amount)."""
        return PayslipLine(
            line_type=LineType.TAX,
            code="income_tax",
            amount=-LineItemBuilder.round_to_cents(abs(amount)),
            explanation=explanation,
        )

    @staticmethod
    def create_deduction_line(
        code: str, amount: Decimal, explanation: str | None = None
    ) -> PayslipLine:
        """Create a deduction line item (negative amount)."""
        return PayslipLine(
            line_type=LineType.DEDUCTION,
            code=code,
            amount=-LineItemBuilder.round_to_cents(abs(amount)),
            explanation=explanation,
        )

    @staticmethod
    def create_rounding_line(amount: Decimal) -> PayslipLine:
        return PayslipLine(
            line_type=LineType.ROUNDING,
            code="rounding",
            amount=LineItemBuilder.round_to_cents(amount),
            explanation="Rounding adjustment",
        )

    @staticmethod
    def build_lines(
        earnings: EarningsResult,
        deductions: DeductionResult,
        bonuses: dict[str, Decimal],
    ) -> list[PayslipLine]:
        """Payslip lines in a fixed order; zero amounts are skipped."""
        lines: list[PayslipLine] = []
        b = LineItemBuilder

        for code, amount in (
            ("base_pay", earnings.base_pay),
            ("overtime_pay", earnings.overtime_pay),
            ("holiday_pay", earnings.holiday_pay),
            ("night_differential", earnings.night_differential),
            ("leave_pay", earnings.leave_pay),
        ):
            if amount:
                lines.append(b.create_earning_line(code, amount))

        for code in sorted(bonuses):
            if bonuses[code]:
                lines.append(b.create_bonus_line(code, bonuses[code]))

        for code, contribution in (
            ("sss", deductions.social_insurance),
            ("philhealth", deductions.health_insurance),
            ("pagibig", deductions.housing_fund),
        ):
            if contribution.employee:
                lines.append(b.create_contribution_line(code, contribution.employee))
            if contribution.employer:
                lines.append(b.create_employer_contribution_line(code, contribution.employer))

        if deductions.income_tax:
            lines.append(b.create_tax_line(deductions.income_tax))
        if deductions.late_deduction:
            lines.append(b.create_deduction_line("late", deductions.late_deduction))
        if deductions.undertime_deduction:
            lines.append(b.create_deduction_line("undertime", deductions.undertime_deduction))
        for code in sorted(deductions.other_deductions):
            if deductions.other_deductions[code]:
                lines.append(b.create_deduction_line(code, deductions.other_deductions[code]))

        return lines

    @staticmethod
    def calculate_net_from_lines(lines: list[PayslipLine]) -> Decimal:
        """NET = every line except employer contributions."""
        net = Decimal("0")
        for line in lines:
            if line.line_type in LineItemBuilder.NET_TYPES:
                net += line.amount
        return LineItemBuilder.round_to_cents(net)

    @staticmethod
    def calculate_gross_from_lines(lines: list[PayslipLine]) -> Decimal:
        """GROSS = Σ(EARNING)."""
        gross = Decimal("0")
        for line in lines:
            if line.line_type == LineType.EARNING:
                gross += line.amount
        return LineItemBuilder.round_to_cents(gross)

    @staticmethod
    def reconcile_rounding(lines: list[PayslipLine], expected_net: Decimal) -> list[PayslipLine]:
        """Append a rounding line when the lines miss the expected net."""
        diff = expected_net - LineItemBuilder.calculate_net_from_lines(lines)
        if diff == 0:
            return lines
        return lines + [LineItemBuilder.create_rounding_line(diff)]

    @staticmethod
    def validate_line_signs(lines: list[PayslipLine]) -> list[str]:
        """Return error messages for lines whose sign breaks the convention."""
        errors: list[str] = []
        for i, line in enumerate(lines):
            if line.line_type in (LineType.EARNING, LineType.BONUS, LineType.EMPLOYER_CONTRIBUTION):
                if line.amount < 0:
                    errors.append(
                        f"Line {i} ({line.line_type.value} {line.code}) has negative amount "
                        f"{line.amount}, expected positive"
                    )
            elif line.line_type in (LineType.CONTRIBUTION, LineType.TAX, LineType.DEDUCTION):
                if line.amount > 0:
                    errors.append(
                        f"Line {i} ({line.line_type.value} {line.code}) has positive amount "
                        f"{line.amount}, expected negative"
                    )
        return errors
