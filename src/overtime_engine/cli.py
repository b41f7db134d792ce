"""Overtime engine command line interface.

Provides operational tools for:
- Schema creation
- Batch calculation over a date range
- Timesheet inspection
- Weekly reports

Usage:
    python -m overtime_engine.cli init-db
    python -m overtime_engine.cli calculate --from 2024-01-01 --to 2024-01-31
    python -m overtime_engine.cli calculate --from 2024-01-01 --to 2024-01-07 --employee E001 --force
    python -m overtime_engine.cli timesheet --employee E001 --from 2024-01-01 --to 2024-01-07
    python -m overtime_engine.cli weekly-report --from 2024-01-01 --to 2024-01-14
"""

from __future__ import annotations

import argparse
import asyncio
import contextlib
import logging
import signal
import sys
from collections.abc import Awaitable, Callable
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from overtime_engine.config import get_settings
from overtime_engine.database import create_schema, get_engine
from overtime_engine.services.reconciliation import TimesheetReconciler
from overtime_engine.services.sql_sources import (
    SqlLedgerStore,
    SqlPayConfigSource,
    SqlPunchSource,
)
from overtime_engine.services.weekly_report import WeeklyReportService

logger = logging.getLogger(__name__)


def parse_date(s: str) -> date:
    """Parse YYYY-MM-DD date string."""
    try:
        return date.fromisoformat(s)
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date (expected YYYY-MM-DD): {s}")


class OvertimeCli:
    """Overtime engine command line interface."""

    def __init__(self) -> None:
        self.parser = self._build_parser()

    def _build_parser(self) -> argparse.ArgumentParser:
        """Build argument parser."""
        parser = argparse.ArgumentParser(
            prog="python -m overtime_engine.cli",
            description="Overtime calculation tools",
        )
        parser.add_argument(
            "--database-url",
            type=str,
            help="Async SQLAlchemy URL (default: DATABASE_URL setting)",
        )
        subparsers = parser.add_subparsers(dest="command", help="Commands")

        subparsers.add_parser("init-db", help="Create the engine's tables")

        # calculate command
        calculate = subparsers.add_parser(
            "calculate",
            help="Calculate ledger rows for a date range",
        )
        calculate.add_argument(
            "--from",
            dest="from_date",
            type=parse_date,
            required=True,
            help="First work date (YYYY-MM-DD)",
        )
        calculate.add_argument(
            "--to",
            dest="to_date",
            type=parse_date,
            required=True,
            help="Last work date (YYYY-MM-DD)",
        )
        calculate.add_argument(
            "--employee",
            dest="employees",
            action="append",
            help="Employee code (repeatable; default: all configured employees)",
        )
        calculate.add_argument(
            "--force",
            action="store_true",
            help="Recalculate days that are already calculated",
        )

        # timesheet command
        timesheet = subparsers.add_parser(
            "timesheet",
            help="Show ledger rows for one employee",
        )
        timesheet.add_argument("--employee", required=True, help="Employee code")
        timesheet.add_argument("--from", dest="from_date", type=parse_date, required=True)
        timesheet.add_argument("--to", dest="to_date", type=parse_date, required=True)

        # weekly-report command
        report = subparsers.add_parser(
            "weekly-report",
            help="Show weekly bucket totals",
        )
        report.add_argument("--from", dest="from_date", type=parse_date, required=True)
        report.add_argument("--to", dest="to_date", type=parse_date, required=True)
        report.add_argument("--employee", dest="employees", action="append")
        report.add_argument(
            "--no-daily",
            action="store_true",
            help="Omit the daily breakdown",
        )

        return parser

    def run(self, args: list[str] | None = None) -> int:
        """Run the CLI with given arguments."""
        parsed = self.parser.parse_args(args)

        if not parsed.command:
            self.parser.print_help()
            return 1

        # Dispatch to command handler
        handlers: dict[str, Callable[[argparse.Namespace], Awaitable[int]]] = {
            "init-db": self._cmd_init_db,
            "calculate": self._cmd_calculate,
            "timesheet": self._cmd_timesheet,
            "weekly-report": self._cmd_weekly_report,
        }

        handler = handlers.get(parsed.command)
        if handler is None:
            print(f"Unknown command: {parsed.command}", file=sys.stderr)
            return 1

        if getattr(parsed, "from_date", None) and parsed.from_date > parsed.to_date:
            print("ERROR: --from must be on or before --to", file=sys.stderr)
            return 2

        return asyncio.run(self._with_engine(handler, parsed))

    async def _with_engine(
        self,
        handler: Callable[[argparse.Namespace], Awaitable[int]],
        args: argparse.Namespace,
    ) -> int:
        self.engine = get_engine(args.database_url)
        self.session_factory = async_sessionmaker(
            self.engine,
            class_=AsyncSession,
            expire_on_commit=False,
            autoflush=False,
        )
        try:
            return await handler(args)
        finally:
            await self.engine.dispose()

    async def _cmd_init_db(self, args: argparse.Namespace) -> int:
        """Create tables."""
        await create_schema(self.engine)
        print("Schema created.")
        return 0

    async def _cmd_calculate(self, args: argparse.Namespace) -> int:
        """Run a reconciliation batch; Ctrl-C stops it between employee-days."""
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        with contextlib.suppress(NotImplementedError, RuntimeError):
            loop.add_signal_handler(signal.SIGINT, cancel_event.set)

        try:
            async with self.session_factory() as session:
                reconciler = TimesheetReconciler(
                    punches=SqlPunchSource(session),
                    configs=SqlPayConfigSource(session),
                    ledger=SqlLedgerStore(session, autocommit=True),
                )
                result = await reconciler.reconcile(
                    args.from_date,
                    args.to_date,
                    employee_ids=args.employees,
                    force_recalculate=args.force,
                    cancel_event=cancel_event,
                )
                await session.commit()
        finally:
            with contextlib.suppress(NotImplementedError, RuntimeError):
                loop.remove_signal_handler(signal.SIGINT)

        print(result.message)
        for error in result.errors:
            print(f"  - {error}")
        return 0 if result.success else 1

    async def _cmd_timesheet(self, args: argparse.Namespace) -> int:
        """Print ledger rows for one employee."""
        async with self.session_factory() as session:
            days = await SqlLedgerStore(session).list_range(
                args.employee, args.from_date, args.to_date
            )

        print(f"Timesheet for {args.employee}: {args.from_date} to {args.to_date}")
        print("=" * 78)
        print(f"{'Date':<12}{'Day':<11}{'Reg':>6}{'WdOT':>6}{'WeOT':>6}{'Total pay':>12}  Status")
        for day in days:
            if day.calculation_error:
                state = f"error: {day.calculation_error}"
            elif day.is_locked:
                state = day.ot_entry_mode or ""
            else:
                state = "ok" if day.is_calculated else "pending"
            print(
                f"{day.work_date.isoformat():<12}{day.day_of_week:<11}"
                f"{day.regular_minutes:>6}{day.weekday_ot_minutes:>6}{day.weekend_ot_minutes:>6}"
                f"{day.total_pay:>12,.2f}  {state}"
            )
        if not days:
            print("  (no rows)")
        return 0

    async def _cmd_weekly_report(self, args: argparse.Namespace) -> int:
        """Print weekly totals."""
        async with self.session_factory() as session:
            service = WeeklyReportService(SqlLedgerStore(session), SqlPayConfigSource(session))
            summaries = await service.generate(
                args.from_date,
                args.to_date,
                employee_ids=args.employees,
                include_daily_breakdown=not args.no_daily,
            )

        for summary in summaries:
            name = f" ({summary.employee_name})" if summary.employee_name else ""
            print(f"{summary.employee_id}{name}: {summary.week_start} to {summary.week_end}")
            for day in summary.days:
                print(f"    {day.work_date.isoformat()} {day.day_of_week:<10} {day.total_pay:>10,.2f}")
            print(
                f"  Regular {summary.regular_hours}h  Weekday OT {summary.weekday_ot_hours}h  "
                f"Weekend OT {summary.weekend_ot_hours}h  Total {summary.total_pay:,.2f}"
            )
        if not summaries:
            print("No employees to report.")
        return 0


def main() -> int:
    """CLI entry point."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    cli = OvertimeCli()
    return cli.run()


if __name__ == "__main__":
    sys.exit(main())
