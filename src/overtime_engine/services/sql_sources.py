"""SQLAlchemy implementations of the engine's storage protocols."""

from __future__ import annotations

from datetime import date, datetime, time, timedelta
from typing import Any
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from overtime_engine.calculators.types import PayConfig, PunchRecord
from overtime_engine.models import EmployeePayConfig, Punch, TimesheetDay
from overtime_engine.services.sources import LedgerDay

_PAY_CONFIG_COLUMNS = (
    "employee_id",
    "employee_name",
    "pay_type",
    "regular_hourly_rate",
    "daily_rate",
    "monthly_salary",
    "weekday_ot_rate_type",
    "weekday_ot_fixed_rate",
    "weekday_ot_multiplier",
    "weekend_ot_rate_type",
    "weekend_ot_fixed_rate",
    "weekend_ot_multiplier",
    "week_start_day",
    "weekend_days",
    "workday_start",
    "workday_end",
    "ot_start_time",
    "minimum_daily_hours_for_pay",
)


def pay_config_from_row(row: EmployeePayConfig) -> PayConfig:
    """Convert an ORM row into the engine's PayConfig record."""
    return PayConfig.build(**{name: getattr(row, name) for name in _PAY_CONFIG_COLUMNS})


def pay_config_to_values(config: PayConfig) -> dict[str, Any]:
    """Column values for persisting a PayConfig."""
    values = {name: getattr(config, name) for name in _PAY_CONFIG_COLUMNS}
    values["pay_type"] = config.pay_type.value
    values["weekday_ot_rate_type"] = config.weekday_ot_rate_type.value
    values["weekend_ot_rate_type"] = config.weekend_ot_rate_type.value
    values["weekend_days"] = config.weekend_days_csv()
    return values


def ledger_day_from_row(row: TimesheetDay) -> LedgerDay:
    """Convert an ORM row into a LedgerDay."""
    return LedgerDay(
        row_id=row.timesheet_day_id,
        employee_id=row.employee_id,
        work_date=row.work_date,
        day_of_week=row.day_of_week,
        is_weekend=row.is_weekend,
        first_punch_in=row.first_punch_in,
        last_punch_out=row.last_punch_out,
        total_worked_minutes=row.total_worked_minutes,
        regular_minutes=row.regular_minutes,
        weekday_ot_minutes=row.weekday_ot_minutes,
        weekend_ot_minutes=row.weekend_ot_minutes,
        regular_pay=row.regular_pay,
        weekday_ot_pay=row.weekday_ot_pay,
        weekend_ot_pay=row.weekend_ot_pay,
        total_pay=row.total_pay,
        hourly_rate_regular=row.hourly_rate_regular,
        hourly_rate_weekday_ot=row.hourly_rate_weekday_ot,
        hourly_rate_weekend_ot=row.hourly_rate_weekend_ot,
        is_calculated=row.is_calculated,
        calculation_error=row.calculation_error,
        ot_entry_mode=row.ot_entry_mode,
        calculated_at=row.calculated_at,
    )


class SqlPunchSource:
    """Punches read from the punch table."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get_punches(self, employee_id: str, work_date: date) -> list[PunchRecord]:
        day_start = datetime.combine(work_date, time.min)
        result = await self.session.execute(
            select(Punch)
            .where(
                Punch.employee_id == employee_id,
                Punch.punch_time >= day_start,
                Punch.punch_time < day_start + timedelta(days=1),
            )
            .order_by(Punch.punch_time)
        )
        return [
            PunchRecord(
                employee_id=row.employee_id,
                timestamp=row.punch_time,
                raw_mode=row.raw_mode,
                clock_id=row.clock_id,
            )
            for row in result.scalars()
        ]


class SqlPayConfigSource:
    """Pay configurations read from employee_pay_config."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def get(self, employee_id: str) -> PayConfig | None:
        result = await self.session.execute(
            select(EmployeePayConfig).where(EmployeePayConfig.employee_id == employee_id)
        )
        row = result.scalar_one_or_none()
        return pay_config_from_row(row) if row is not None else None

    async def list_employee_ids(self) -> list[str]:
        result = await self.session.execute(
            select(EmployeePayConfig.employee_id).order_by(EmployeePayConfig.employee_id)
        )
        return list(result.scalars())


class SqlLedgerStore:
    """Ledger rows stored in timesheet_day.

    Every write is a single INSERT or UPDATE inside a savepoint, so a failed
    write leaves the session usable for the next day. With autocommit=True each
    write is committed immediately, so every employee-day is its own transaction.
    """

    def __init__(self, session: AsyncSession, autocommit: bool = False):
        self.session = session
        self.autocommit = autocommit

    async def _commit(self) -> None:
        if self.autocommit:
            await self.session.commit()

    async def _load(self, row_id: UUID) -> TimesheetDay:
        result = await self.session.execute(
            select(TimesheetDay)
            .where(TimesheetDay.timesheet_day_id == row_id)
            .execution_options(populate_existing=True)
        )
        return result.scalar_one()

    async def get(self, employee_id: str, work_date: date) -> LedgerDay | None:
        result = await self.session.execute(
            select(TimesheetDay)
            .where(
                TimesheetDay.employee_id == employee_id,
                TimesheetDay.work_date == work_date,
            )
            .execution_options(populate_existing=True)
        )
        row = result.scalar_one_or_none()
        return ledger_day_from_row(row) if row is not None else None

    async def insert(self, day: LedgerDay) -> LedgerDay:
        row = TimesheetDay(
            employee_id=day.employee_id,
            work_date=day.work_date,
            ot_entry_mode=day.ot_entry_mode,
            **day.calculation_fields(),
        )
        async with self.session.begin_nested():
            self.session.add(row)
            await self.session.flush()
        stored = ledger_day_from_row(row)
        await self._commit()
        return stored

    async def update(self, row_id: UUID, changes: dict[str, Any]) -> LedgerDay:
        async with self.session.begin_nested():
            await self.session.execute(
                update(TimesheetDay)
                .where(TimesheetDay.timesheet_day_id == row_id)
                .values(**changes)
            )
            row = await self._load(row_id)
        stored = ledger_day_from_row(row)
        await self._commit()
        return stored

    async def list_range(
        self, employee_id: str, from_date: date, to_date: date
    ) -> list[LedgerDay]:
        result = await self.session.execute(
            select(TimesheetDay)
            .where(
                TimesheetDay.employee_id == employee_id,
                TimesheetDay.work_date >= from_date,
                TimesheetDay.work_date <= to_date,
            )
            .order_by(TimesheetDay.work_date)
        )
        return [ledger_day_from_row(row) for row in result.scalars()]

    async def list_employee_range(
        self, from_date: date, to_date: date
    ) -> list[LedgerDay]:
        """Rows for every employee in the range, ordered by employee then date."""
        result = await self.session.execute(
            select(TimesheetDay)
            .where(
                TimesheetDay.work_date >= from_date,
                TimesheetDay.work_date <= to_date,
            )
            .order_by(TimesheetDay.employee_id, TimesheetDay.work_date)
        )
        return [ledger_day_from_row(row) for row in result.scalars()]
