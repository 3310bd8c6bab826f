"""Services that read and write the payroll stores."""

from hris_payroll.services.attendance_service import AttendanceService
from hris_payroll.services.config_service import ConfigService
from hris_payroll.services.input_loader import (
    ContractNotFoundError,
    EmployeeNotFoundError,
    InputLoader,
    PeriodInputs,
)
from hris_payroll.services.payroll_service import (
    DuplicatePayrollError,
    PayrollRunResult,
    PayrollService,
    PayslipFailure,
)

__all__ = [
    "AttendanceService",
    "ConfigService",
    "ContractNotFoundError",
    "DuplicatePayrollError",
    "EmployeeNotFoundError",
    "InputLoader",
    "PayrollRunResult",
    "PayrollService",
    "PayslipFailure",
    "PeriodInputs",
]
