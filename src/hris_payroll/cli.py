"""Payroll Command Line Interface.

Provides operator tools for:
- Payroll generation for a period
- Clock-out finalization of one attendance row
- Inspecting and seeding payroll configuration

Usage:
    python -m hris_payroll generate --start 2025-01-01 --end 2025-01-15 --employee ID
    python -m hris_payroll finalize --attendance-id ID
    python -m hris_payroll show-config --as-of 2025-01-15
    python -m hris_payroll seed-config --effective-date 2025-01-01
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from datetime import date
from typing import Any, Callable
from uuid import UUID

from hris_payroll.config import get_settings
from hris_payroll.database import dispose_db, get_session
from hris_payroll.schemas import PayrollRunOut, config_entries
from hris_payroll.services import (
    AttendanceService,
    ConfigService,
    DuplicatePayrollError,
    PayrollService,
)


def parse_date(s: str) -> date:
    """Parse ISO date string."""
    return date.fromisoformat(s)


def parse_uuid(s: str) -> UUID:
    """Parse UUID string."""
    return UUID(s)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


class PayrollCli:
    """Payroll Command Line Interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m hris_payroll",
            description="Attendance-to-payroll tools",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        # generate command
        generate = subparsers.add_parser(
            "generate",
            help="Generate payslips for a pay period",
        )
        generate.add_argument(
            "--start",
            type=parse_date,
            required=True,
            help="Period start (YYYY-MM-DD)",
        )
        generate.add_argument(
            "--end",
            type=parse_date,
            required=True,
            help="Period end, inclusive (YYYY-MM-DD)",
        )
        generate.add_argument(
            "--employee",
            type=parse_uuid,
            action="append",
            required=True,
            dest="employees",
            help="Employee ID (repeat for several)",
        )
        generate.add_argument(
            "--run-by",
            type=str,
            help="Operator name recorded on the payroll header",
        )

        # finalize command
        finalize = subparsers.add_parser(
            "finalize",
            help="Recompute derived fields of one attendance row",
        )
        finalize.add_argument(
            "--attendance-id",
            type=parse_uuid,
            required=True,
            help="Attendance row ID",
        )

        # show-config command
        show = subparsers.add_parser(
            "show-config",
            help="Print resolved payroll configuration with sources",
        )
        show.add_argument(
            "--as-of",
            type=parse_date,
            default=None,
            help="Resolve configuration as of this date (default: today)",
        )

        # seed-config command
        seed = subparsers.add_parser(
            "seed-config",
            help="Insert default rows for configuration keys that have none",
        )
        seed.add_argument(
            "--effective-date",
            type=parse_date,
            required=True,
            help="Effective date for the seeded rows",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        configure_logging(get_settings().log_level)

        handlers: dict[str, Callable[..., Any]] = {
            "generate": self._cmd_generate,
            "finalize": self._cmd_finalize,
            "show-config": self._cmd_show_config,
            "seed-config": self._cmd_seed_config,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1
        return asyncio.run(self._run_async(handler, parsed))

    async def _run_async(self, handler: Callable[..., Any], args: argparse.Namespace) -> int:
        try:
            return await handler(args)
        finally:
            await dispose_db()

    async def _cmd_generate(self, args: argparse.Namespace) -> int:
        """Generate payroll and print the run as JSON."""
        try:
            async with get_session() as session:
                result = await PayrollService(session).generate_payroll(
                    args.employees, args.start, args.end, run_by=args.run_by
                )
        except DuplicatePayrollError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

        print(PayrollRunOut.from_result(result).model_dump_json(indent=2))
        return 0 if not result.failures else 3

    async def _cmd_finalize(self, args: argparse.Namespace) -> int:
        """Re-run clock-out finalization."""
        try:
            async with get_session() as session:
                values = await AttendanceService(session).finalize_attendance(args.attendance_id)
        except ValueError as e:
            print(f"Error: {e}", file=sys.stderr)
            return 2

        print(json.dumps(values, indent=2, default=str))
        return 0

    async def _cmd_show_config(self, args: argparse.Namespace) -> int:
        """Print resolved configuration."""
        as_of = args.as_of or date.today()
        async with get_session() as session:
            config = await ConfigService(session).get_config(as_of)

        print(f"Payroll configuration as of {as_of}")
        for entry in config_entries(config):
            value = entry.value if len(entry.value) <= 60 else entry.value[:57] + "..."
            print(f"  {entry.key:<40} {value:<60} [{entry.source}]")
        return 0

    async def _cmd_seed_config(self, args: argparse.Namespace) -> int:
        """Insert default configuration rows."""
        async with get_session() as session:
            added = await ConfigService(session).seed_defaults(args.effective_date)
        print(f"Seeded {added} configuration row(s) effective {args.effective_date}")
        return 0


def main() -> None:
    """Main entry point."""
    cli = PayrollCli()
    sys.exit(cli.run())


if __name__ == "__main__":
    main()
