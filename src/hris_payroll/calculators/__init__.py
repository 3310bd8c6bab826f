"""Pure calculation stages of the attendance-to-payroll pipeline."""

from hris_payroll.calculators.calendar_resolver import CalendarResolver, is_entitled_holiday
from hris_payroll.calculators.deduction_calculator import StatutoryDeductionCalculator
from hris_payroll.calculators.earnings_calculator import (
    EarningsCalculator,
    InvalidRateError,
    PayrollInputError,
    UnsupportedRateTypeError,
)
from hris_payroll.calculators.engine import EmployeeInputs, PayrollEngine, PayslipCalculation
from hris_payroll.calculators.line_builder import LineItemBuilder
from hris_payroll.calculators.payroll_config import ConfigValueError, PayrollConfig
from hris_payroll.calculators.premium_classifier import PremiumClassifier
from hris_payroll.calculators.time_segment import TimeSegmentCalculator

__all__ = [
    "CalendarResolver",
    "ConfigValueError",
    "EarningsCalculator",
    "EmployeeInputs",
    "InvalidRateError",
    "LineItemBuilder",
    "PayrollConfig",
    "PayrollEngine",
    "PayrollInputError",
    "PayslipCalculation",
    "PremiumClassifier",
    "StatutoryDeductionCalculator",
    "TimeSegmentCalculator",
    "UnsupportedRateTypeError",
    "is_entitled_holiday",
]
