"""Weekly aggregation of ledger rows per employee."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, timedelta
from decimal import ROUND_HALF_UP, Decimal

from overtime_engine.calculators.calendar import week_start
from overtime_engine.services.sources import LedgerDay, LedgerStore, PayConfigSource

HOURS_PRECISION = Decimal("0.01")


def minutes_to_hours(minutes: int) -> Decimal:
    return (Decimal(minutes) / Decimal("60")).quantize(HOURS_PRECISION, rounding=ROUND_HALF_UP)


@dataclass
class WeeklySummary:
    """Bucket totals for one employee over one week."""

    employee_id: str
    employee_name: str | None
    week_start: date
    week_end: date
    regular_hours: Decimal = Decimal("0.00")
    weekday_ot_hours: Decimal = Decimal("0.00")
    weekend_ot_hours: Decimal = Decimal("0.00")
    total_hours: Decimal = Decimal("0.00")
    regular_pay: Decimal = Decimal("0.00")
    weekday_ot_pay: Decimal = Decimal("0.00")
    weekend_ot_pay: Decimal = Decimal("0.00")
    total_pay: Decimal = Decimal("0.00")
    days_worked: int = 0
    days: list[LedgerDay] = field(default_factory=list)


def summarize(
    employee_id: str,
    employee_name: str | None,
    period_start: date,
    period_end: date,
    rows: list[LedgerDay],
    include_daily_breakdown: bool = True,
) -> WeeklySummary:
    """Total a list of ledger rows into one summary."""
    regular = sum(r.regular_minutes for r in rows)
    weekday_ot = sum(r.weekday_ot_minutes for r in rows)
    weekend_ot = sum(r.weekend_ot_minutes for r in rows)
    worked = sum(r.total_worked_minutes for r in rows)
    return WeeklySummary(
        employee_id=employee_id,
        employee_name=employee_name,
        week_start=period_start,
        week_end=period_end,
        regular_hours=minutes_to_hours(regular),
        weekday_ot_hours=minutes_to_hours(weekday_ot),
        weekend_ot_hours=minutes_to_hours(weekend_ot),
        total_hours=minutes_to_hours(worked),
        regular_pay=sum((r.regular_pay for r in rows), Decimal("0.00")),
        weekday_ot_pay=sum((r.weekday_ot_pay for r in rows), Decimal("0.00")),
        weekend_ot_pay=sum((r.weekend_ot_pay for r in rows), Decimal("0.00")),
        total_pay=sum((r.total_pay for r in rows), Decimal("0.00")),
        days_worked=sum(1 for r in rows if r.total_worked_minutes > 0),
        days=sorted(rows, key=lambda r: r.work_date) if include_daily_breakdown else [],
    )


class WeeklyReportService:
    """Groups ledger rows into weeks using each employee's week start day."""

    def __init__(self, ledger: LedgerStore, configs: PayConfigSource):
        self.ledger = ledger
        self.configs = configs

    async def generate(
        self,
        from_date: date,
        to_date: date,
        employee_ids: Iterable[str] | None = None,
        include_daily_breakdown: bool = True,
    ) -> list[WeeklySummary]:
        """Weekly summaries for each employee, ordered by employee then week.

        Weeks are clipped to [from_date, to_date]. An employee without a pay
        configuration is summarized over the whole range as one period.
        """
        if from_date > to_date:
            raise ValueError(
                f"from_date {from_date.isoformat()} is after to_date {to_date.isoformat()}"
            )
        if employee_ids is None:
            employee_ids = await self.configs.list_employee_ids()

        summaries: list[WeeklySummary] = []
        for employee_id in employee_ids:
            config = await self.configs.get(employee_id)
            rows = await self.ledger.list_range(employee_id, from_date, to_date)

            if config is None:
                summaries.append(
                    summarize(employee_id, None, from_date, to_date, rows, include_daily_breakdown)
                )
                continue

            weeks: dict[date, list[LedgerDay]] = {}
            for row in rows:
                key = week_start(row.work_date, config.week_start_day).date()
                weeks.setdefault(key, []).append(row)

            for start in sorted(weeks):
                summaries.append(
                    summarize(
                        employee_id,
                        config.employee_name,
                        max(start, from_date),
                        min(start + timedelta(days=6), to_date),
                        weeks[start],
                        include_daily_breakdown,
                    )
                )

        return summaries
