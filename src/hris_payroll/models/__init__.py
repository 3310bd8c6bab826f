"""ORM models for the stores the payroll engine reads and writes."""

from hris_payroll.models.attendance import Attendance
from hris_payroll.models.base import Base
from hris_payroll.models.employee import Contract, Employee, EmployeeScheduleOverride
from hris_payroll.models.payroll import (
    Bonus,
    Deduction,
    PayrollConfiguration,
    PayrollHeader,
    Payslip,
)
from hris_payroll.models.schedule import Holiday, Schedule

__all__ = [
    "Attendance",
    "Base",
    "Bonus",
    "Contract",
    "Deduction",
    "Employee",
    "EmployeeScheduleOverride",
    "Holiday",
    "PayrollConfiguration",
    "PayrollHeader",
    "Payslip",
    "Schedule",
]
