"""Tests for the timesheet reconciler.

Covers the per-day contract: idempotent skip, override locks, error
recording in place, and batch-level isolation of failures.
"""

from __future__ import annotations

import asyncio
from datetime import date, datetime
from decimal import Decimal

import pytest

from overtime_engine.calculators.bucket_calculator import BucketCalculator
from overtime_engine.services.reconciliation import (
    DayOutcome,
    ReconciliationResult,
    TimesheetReconciler,
)
from overtime_engine.services.sources import LedgerDay

MONDAY = date(2024, 1, 8)
TUESDAY = date(2024, 1, 9)
WEDNESDAY = date(2024, 1, 10)
FRIDAY = date(2024, 1, 12)


class CountingCalculator(BucketCalculator):
    calls = 0

    @staticmethod
    def calculate(work_date, spans, config):
        CountingCalculator.calls += 1
        return BucketCalculator.calculate(work_date, spans, config)


@pytest.fixture
def counting_reconciler(punch_source, config_source, ledger, directory, clock):
    CountingCalculator.calls = 0
    return TimesheetReconciler(
        punches=punch_source,
        configs=config_source,
        ledger=ledger,
        directory=directory,
        clock=clock,
        calculator=CountingCalculator,
    )


def locked_day(mode: str, work_date: date = MONDAY, is_calculated: bool = True) -> LedgerDay:
    return LedgerDay(
        employee_id="E001",
        work_date=work_date,
        day_of_week="Monday",
        regular_minutes=100,
        regular_pay=Decimal("999.99"),
        total_pay=Decimal("999.99"),
        total_worked_minutes=100,
        is_calculated=is_calculated,
        ot_entry_mode=mode,
    )


class TestCalculateDay:
    """Single employee-day calculation."""

    async def test_new_day_is_inserted(self, reconciler, punch_source, ledger, hourly_config, clock):
        punch_source.add("E001", MONDAY, "09:00", "18:30")

        day = await reconciler.calculate_day("E001", MONDAY, hourly_config)

        assert ledger.inserts == 1
        assert ledger.rows[("E001", MONDAY)] == day
        assert day.is_calculated
        assert day.calculation_error is None
        assert day.day_of_week == "Monday"
        assert not day.is_weekend
        assert day.first_punch_in == datetime(2024, 1, 8, 9, 0)
        assert day.last_punch_out == datetime(2024, 1, 8, 18, 30)
        assert day.total_worked_minutes == 570
        assert day.regular_minutes == 480
        assert day.weekday_ot_minutes == 90
        assert day.weekend_ot_minutes == 0
        assert day.total_pay == Decimal("205.00")
        assert day.hourly_rate_regular == Decimal("20.0000")
        assert day.hourly_rate_weekday_ot == Decimal("30.0000")
        assert day.hourly_rate_weekend_ot == Decimal("40.0000")
        assert day.calculated_at == clock.now

    async def test_weekend_day(self, reconciler, punch_source, hourly_config):
        punch_source.add("E001", FRIDAY, "10:00", "16:00")

        day = await reconciler.calculate_day("E001", FRIDAY, hourly_config)

        assert day.is_weekend
        assert day.day_of_week == "Friday"
        assert day.regular_minutes == 0
        assert day.weekday_ot_minutes == 0
        assert day.weekend_ot_minutes == 360
        assert day.total_pay == Decimal("240.00")

    async def test_day_without_punches(self, reconciler, hourly_config):
        day = await reconciler.calculate_day("E001", MONDAY, hourly_config)

        assert day.is_calculated
        assert day.first_punch_in is None
        assert day.total_worked_minutes == 0
        assert day.total_pay == Decimal("0.00")

    async def test_second_run_is_a_noop(
        self, counting_reconciler, punch_source, ledger, hourly_config
    ):
        punch_source.add("E001", MONDAY, "09:00", "17:00")

        first = await counting_reconciler.calculate_day("E001", MONDAY, hourly_config)
        second = await counting_reconciler.calculate_day("E001", MONDAY, hourly_config)

        assert second == first
        assert second.calculated_at == first.calculated_at
        assert CountingCalculator.calls == 1
        assert punch_source.calls == 1
        assert ledger.updates == 0

    async def test_force_recalculates(self, reconciler, punch_source, ledger, hourly_config):
        punch_source.add("E001", MONDAY, "09:00", "17:00")
        first = await reconciler.calculate_day("E001", MONDAY, hourly_config)

        punch_source.add("E001", MONDAY, "18:30")
        second = await reconciler.calculate_day(
            "E001", MONDAY, hourly_config, force_recalculate=True
        )

        assert ledger.updates == 1
        assert second.row_id == first.row_id
        assert second.weekday_ot_minutes == 90
        assert second.total_pay == Decimal("205.00")
        assert second.calculated_at > first.calculated_at

    async def test_uncalculated_row_is_retried(self, reconciler, punch_source, ledger, hourly_config):
        stored = ledger.seed(
            LedgerDay(
                employee_id="E001",
                work_date=MONDAY,
                day_of_week="Monday",
                calculation_error="clock offline",
            )
        )
        punch_source.add("E001", MONDAY, "09:00", "17:00")

        day = await reconciler.calculate_day("E001", MONDAY, hourly_config)

        assert day.row_id == stored.row_id
        assert day.is_calculated
        assert day.calculation_error is None
        assert day.total_pay == Decimal("160.00")


class TestOverrideLock:
    """Manual and adjusted rows are never overwritten."""

    @pytest.mark.parametrize("mode", ["manual", "adjusted"])
    @pytest.mark.parametrize("force", [True, False])
    async def test_locked_row_unchanged(self, reconciler, punch_source, ledger, mode, force):
        seeded = ledger.seed(locked_day(mode))
        punch_source.add("E001", MONDAY, "09:00", "18:30")

        result = await reconciler.reconcile(MONDAY, MONDAY, force_recalculate=force)

        assert ledger.rows[("E001", MONDAY)] == seeded
        assert ledger.updates == 0
        assert result.days_failed == 0
        if force:
            assert result.days_locked == 1
            assert result.days_calculated == 0

    async def test_uncalculated_locked_row_unchanged(self, reconciler, punch_source, ledger):
        seeded = ledger.seed(locked_day("manual", is_calculated=False))
        punch_source.add("E001", MONDAY, "09:00", "18:30")

        result = await reconciler.reconcile(MONDAY, MONDAY)

        assert ledger.rows[("E001", MONDAY)] == seeded
        assert result.days_locked == 1

    async def test_locked_row_survives_punch_failure(self, reconciler, punch_source, ledger):
        seeded = ledger.seed(locked_day("manual"))
        punch_source.fail_on("E001", MONDAY, RuntimeError("clock offline"))

        result = await reconciler.reconcile(MONDAY, MONDAY, force_recalculate=True)

        assert ledger.rows[("E001", MONDAY)] == seeded
        assert ledger.updates == 0
        assert punch_source.calls == 0
        assert result.days_locked == 1
        assert result.days_failed == 0
        assert result.success

    async def test_auto_mode_is_not_locked(self, reconciler, punch_source, ledger):
        ledger.seed(locked_day("auto"))
        punch_source.add("E001", MONDAY, "09:00", "17:00")

        await reconciler.reconcile(MONDAY, MONDAY, force_recalculate=True)

        assert ledger.rows[("E001", MONDAY)].total_pay == Decimal("160.00")


class TestFailures:
    """Per-day failures are recorded and isolated."""

    async def test_failed_day_does_not_abort_batch(self, reconciler, punch_source, ledger):
        punch_source.add("E001", MONDAY, "09:00", "17:00")
        punch_source.add("E001", WEDNESDAY, "09:00", "17:00")
        punch_source.fail_on("E001", TUESDAY, RuntimeError("clock offline"))

        result = await reconciler.reconcile(MONDAY, WEDNESDAY)

        assert result.days_calculated == 2
        assert result.days_failed == 1
        assert result.errors == ["E001 on 2024-01-09: clock offline"]
        assert result.message == "Calculated 2 days, 1 failed"
        assert not result.success
        assert ledger.rows[("E001", WEDNESDAY)].is_calculated

    async def test_first_failure_persists_row(self, reconciler, punch_source, ledger):
        punch_source.fail_on("E001", TUESDAY, RuntimeError("clock offline"))

        await reconciler.reconcile(TUESDAY, TUESDAY)

        row = ledger.rows[("E001", TUESDAY)]
        assert not row.is_calculated
        assert row.calculation_error == "clock offline"
        assert row.day_of_week == "Tuesday"
        assert row.total_pay == Decimal("0.00")

    async def test_failure_keeps_existing_financials(self, reconciler, punch_source, ledger):
        ledger.seed(
            LedgerDay(
                employee_id="E001",
                work_date=TUESDAY,
                day_of_week="Tuesday",
                regular_minutes=480,
                regular_pay=Decimal("160.00"),
                total_pay=Decimal("160.00"),
                is_calculated=True,
            )
        )
        punch_source.fail_on("E001", TUESDAY, RuntimeError("clock offline"))

        result = await reconciler.reconcile(TUESDAY, TUESDAY, force_recalculate=True)

        row = ledger.rows[("E001", TUESDAY)]
        assert result.days_failed == 1
        assert not row.is_calculated
        assert row.calculation_error == "clock offline"
        assert row.regular_minutes == 480
        assert row.total_pay == Decimal("160.00")

    async def test_calculate_day_reraises(self, reconciler, punch_source, hourly_config):
        punch_source.fail_on("E001", MONDAY, RuntimeError("clock offline"))

        with pytest.raises(RuntimeError, match="clock offline"):
            await reconciler.calculate_day("E001", MONDAY, hourly_config)

    async def test_malformed_time_is_a_day_failure(
        self, reconciler, config_source, punch_source, ledger, make_config
    ):
        config_source.configs["E001"] = make_config(ot_start_time="5pm")
        punch_source.add("E001", MONDAY, "09:00", "17:00")

        result = await reconciler.reconcile(MONDAY, TUESDAY)

        assert result.days_failed == 2
        assert result.days_calculated == 0
        assert "5pm" in ledger.rows[("E001", MONDAY)].calculation_error


class TestConfiguration:
    """Missing and invalid configurations skip the employee."""

    async def test_missing_config(self, reconciler, ledger):
        result = await reconciler.reconcile(MONDAY, TUESDAY, employee_ids=["E404"])

        assert result.errors == ["Pay configuration not found for employee E404"]
        assert result.days_calculated == 0
        assert result.days_failed == 0
        assert ledger.rows == {}
        assert not result.success

    async def test_invalid_config_skips_only_that_employee(
        self, reconciler, config_source, punch_source, ledger, make_config
    ):
        config_source.configs["E002"] = make_config(employee_id="E002", regular_hourly_rate="0")
        punch_source.add("E001", MONDAY, "09:00", "17:00")
        punch_source.add("E002", MONDAY, "09:00", "17:00")

        result = await reconciler.reconcile(MONDAY, MONDAY)

        assert result.days_calculated == 1
        assert len(result.errors) == 1
        assert result.errors[0].startswith("Invalid pay configuration for employee E002")
        assert ("E002", MONDAY) not in ledger.rows
        assert ("E001", MONDAY) in ledger.rows

    async def test_config_read_once_per_batch(self, reconciler, config_source):
        await reconciler.reconcile(MONDAY, date(2024, 1, 14), employee_ids=["E001"])

        assert config_source.get_calls == 1

    async def test_employee_list_is_cached(
        self, reconciler, config_source, directory, make_config
    ):
        await reconciler.reconcile(MONDAY, MONDAY)
        config_source.configs["E002"] = make_config(employee_id="E002")
        result = await reconciler.reconcile(MONDAY, MONDAY)

        assert config_source.list_calls == 1
        assert result.days_calculated == 1

        directory.invalidate()
        result = await reconciler.reconcile(MONDAY, MONDAY)

        assert config_source.list_calls == 2
        assert result.days_calculated == 2


class TestBatch:
    """Batch-level behavior of reconcile()."""

    async def test_reversed_range_raises(self, reconciler):
        with pytest.raises(ValueError):
            await reconciler.reconcile(TUESDAY, MONDAY)

    async def test_every_day_in_range(self, reconciler, ledger):
        result = await reconciler.reconcile(MONDAY, date(2024, 1, 14))

        assert result.days_calculated == 7
        assert result.success
        assert len(ledger.rows) == 7

    async def test_unchanged_days_counted_as_calculated(self, reconciler):
        await reconciler.reconcile(MONDAY, TUESDAY)
        result = await reconciler.reconcile(MONDAY, TUESDAY)

        assert result.days_calculated == 2
        assert result.days_unchanged == 2

    async def test_cancel_before_start(self, reconciler, ledger):
        cancel = asyncio.Event()
        cancel.set()

        result = await reconciler.reconcile(MONDAY, WEDNESDAY, cancel_event=cancel)

        assert result.cancelled
        assert result.days_calculated == 0
        assert ledger.rows == {}
        assert "(cancelled)" in result.message

    async def test_cancel_keeps_completed_days(self, reconciler, punch_source, ledger):
        cancel = asyncio.Event()
        real_get_punches = punch_source.get_punches

        async def get_punches(employee_id, work_date):
            punches = await real_get_punches(employee_id, work_date)
            if punch_source.calls == 2:
                cancel.set()
            return punches

        punch_source.get_punches = get_punches

        result = await reconciler.reconcile(MONDAY, FRIDAY, cancel_event=cancel)

        assert result.cancelled
        assert result.days_calculated == 2
        assert sorted(d for _, d in ledger.rows) == [MONDAY, TUESDAY]


class TestReconciliationResult:
    def test_record_outcomes(self):
        result = ReconciliationResult()
        for outcome in (
            DayOutcome.CALCULATED,
            DayOutcome.UNCHANGED,
            DayOutcome.LOCKED,
            DayOutcome.FAILED,
        ):
            result.record(outcome)

        assert result.days_calculated == 2
        assert result.days_unchanged == 1
        assert result.days_locked == 1
        assert result.days_failed == 1
        assert result.message == "Calculated 2 days, 1 failed, 1 locked"
