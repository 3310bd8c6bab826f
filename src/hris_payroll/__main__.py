from hris_payroll.cli import main

main()
