"""Pytest fixtures for overtime engine tests."""

from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime, timedelta, timezone
from typing import Any
from uuid import uuid4

import pytest

from overtime_engine.calculators.calendar import parse_time_on_date
from overtime_engine.calculators.types import PayConfig, PunchRecord
from overtime_engine.services.reconciliation import TimesheetReconciler
from overtime_engine.services.sources import EmployeeDirectory, LedgerDay


class FakePunchSource:
    """In-memory PunchSource."""

    def __init__(self) -> None:
        self.punches: dict[tuple[str, date], list[PunchRecord]] = {}
        self.calls = 0
        self.failing: dict[tuple[str, date], Exception] = {}

    def add(self, employee_id: str, work_date: date, *entries: str | tuple[str, str]) -> None:
        """Add punches as "HH:MM" strings or ("HH:MM", raw_mode) pairs."""
        for entry in entries:
            stamp, mode = entry if isinstance(entry, tuple) else (entry, None)
            self.punches.setdefault((employee_id, work_date), []).append(
                PunchRecord(
                    employee_id=employee_id,
                    timestamp=parse_time_on_date(work_date, stamp),
                    raw_mode=mode,
                )
            )

    def fail_on(self, employee_id: str, work_date: date, error: Exception) -> None:
        self.failing[(employee_id, work_date)] = error

    async def get_punches(self, employee_id: str, work_date: date) -> list[PunchRecord]:
        self.calls += 1
        if (employee_id, work_date) in self.failing:
            raise self.failing[(employee_id, work_date)]
        return list(self.punches.get((employee_id, work_date), []))


class FakePayConfigSource:
    """In-memory PayConfigSource that counts reads."""

    def __init__(self, *configs: PayConfig) -> None:
        self.configs = {c.employee_id: c for c in configs}
        self.get_calls = 0
        self.list_calls = 0

    async def get(self, employee_id: str) -> PayConfig | None:
        self.get_calls += 1
        return self.configs.get(employee_id)

    async def list_employee_ids(self) -> list[str]:
        self.list_calls += 1
        return sorted(self.configs)


class FakeLedgerStore:
    """In-memory LedgerStore keyed by (employee_id, work_date)."""

    def __init__(self) -> None:
        self.rows: dict[tuple[str, date], LedgerDay] = {}
        self.inserts = 0
        self.updates = 0

    def seed(self, day: LedgerDay) -> LedgerDay:
        stored = replace(day, row_id=day.row_id or uuid4())
        self.rows[(day.employee_id, day.work_date)] = stored
        return stored

    async def get(self, employee_id: str, work_date: date) -> LedgerDay | None:
        return self.rows.get((employee_id, work_date))

    async def insert(self, day: LedgerDay) -> LedgerDay:
        self.inserts += 1
        return self.seed(day)

    async def update(self, row_id: Any, changes: dict[str, Any]) -> LedgerDay:
        self.updates += 1
        for key, row in self.rows.items():
            if row.row_id == row_id:
                self.rows[key] = replace(row, **changes)
                return self.rows[key]
        raise KeyError(row_id)

    async def list_range(self, employee_id: str, from_date: date, to_date: date) -> list[LedgerDay]:
        return sorted(
            (
                row
                for (emp, work_date), row in self.rows.items()
                if emp == employee_id and from_date <= work_date <= to_date
            ),
            key=lambda r: r.work_date,
        )


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self) -> None:
        self.now = datetime(2024, 2, 1, 8, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        self.now += timedelta(seconds=1)
        return self.now


def build_config(**overrides: Any) -> PayConfig:
    values: dict[str, Any] = {
        "employee_id": "E001",
        "employee_name": "Alice Example",
        "pay_type": "Hourly",
        "regular_hourly_rate": "20.00",
        "weekday_ot_rate_type": "multiplier",
        "weekday_ot_multiplier": "1.5",
        "weekend_ot_rate_type": "fixed",
        "weekend_ot_fixed_rate": "40.00",
        "week_start_day": "Sunday",
        "weekend_days": "Friday,Saturday",
        "workday_start": "09:00",
        "workday_end": "17:00",
        "ot_start_time": "17:00",
    }
    values.update(overrides)
    return PayConfig.build(**values)


@pytest.fixture
def make_config():
    """Factory for PayConfig with hourly defaults: 20.00 regular, 30.00 weekday OT, 40.00 weekend OT."""
    return build_config


@pytest.fixture
def hourly_config() -> PayConfig:
    return build_config()


@pytest.fixture
def punch_source() -> FakePunchSource:
    return FakePunchSource()


@pytest.fixture
def config_source(hourly_config: PayConfig) -> FakePayConfigSource:
    return FakePayConfigSource(hourly_config)


@pytest.fixture
def ledger() -> FakeLedgerStore:
    return FakeLedgerStore()


@pytest.fixture
def clock() -> TickingClock:
    return TickingClock()


@pytest.fixture
def directory() -> EmployeeDirectory:
    return EmployeeDirectory()


@pytest.fixture
def reconciler(
    punch_source: FakePunchSource,
    config_source: FakePayConfigSource,
    ledger: FakeLedgerStore,
    directory: EmployeeDirectory,
    clock: TickingClock,
) -> TimesheetReconciler:
    return TimesheetReconciler(
        punches=punch_source,
        configs=config_source,
        ledger=ledger,
        directory=directory,
        clock=clock,
    )
