"""Timesheet reconciliation: turns punches into daily ledger rows."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from enum import Enum
from typing import Any

from overtime_engine.calculators.bucket_calculator import BucketCalculator
from overtime_engine.calculators.calendar import date_range, day_name, is_weekend_day
from overtime_engine.calculators.punches import build_day_spans
from overtime_engine.calculators.types import PayConfig
from overtime_engine.services.sources import (
    ConfigurationInvalidError,
    ConfigurationMissingError,
    EmployeeDirectory,
    LedgerDay,
    LedgerStore,
    PayConfigCache,
    PayConfigSource,
    PunchSource,
)

logger = logging.getLogger(__name__)


class DayOutcome(str, Enum):
    """How a single employee-day ended."""

    CALCULATED = "calculated"
    UNCHANGED = "unchanged"
    LOCKED = "locked"
    FAILED = "failed"


@dataclass
class ReconciliationResult:
    """Batch-level report of a reconcile run.

    Unchanged days (already calculated, no force) count as calculated.
    Locked days are reported separately and never as failures.
    """

    days_calculated: int = 0
    days_failed: int = 0
    days_locked: int = 0
    days_unchanged: int = 0
    errors: list[str] = field(default_factory=list)
    cancelled: bool = False

    @property
    def success(self) -> bool:
        return not self.errors and not self.cancelled

    @property
    def message(self) -> str:
        message = f"Calculated {self.days_calculated} days, {self.days_failed} failed"
        if self.days_locked:
            message += f", {self.days_locked} locked"
        if self.cancelled:
            message += " (cancelled)"
        return message

    def record(self, outcome: DayOutcome) -> None:
        if outcome == DayOutcome.CALCULATED:
            self.days_calculated += 1
        elif outcome == DayOutcome.UNCHANGED:
            self.days_calculated += 1
            self.days_unchanged += 1
        elif outcome == DayOutcome.LOCKED:
            self.days_locked += 1
        else:
            self.days_failed += 1


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TimesheetReconciler:
    """Calculates ledger rows for employees over a date range.

    Per employee-day:
    1. Already calculated and not forced: return the stored row
    2. Row locked by a manual/adjusted entry: return it unchanged
    3. Fetch punches and build the worked span
    4. Split into buckets and price them
    5. Insert or update the row as calculated

    A failure in steps 3-4 is written to the row (is_calculated=False,
    calculation_error set) and re-raised; reconcile() counts it and moves on.
    """

    def __init__(
        self,
        punches: PunchSource,
        configs: PayConfigSource,
        ledger: LedgerStore,
        directory: EmployeeDirectory | None = None,
        clock: Callable[[], datetime] | None = None,
        calculator: type[BucketCalculator] = BucketCalculator,
    ):
        self.punches = punches
        self.configs = configs
        self.ledger = ledger
        self.directory = directory or EmployeeDirectory()
        self.clock = clock or _utcnow
        self.calculator = calculator

    async def reconcile(
        self,
        from_date: date,
        to_date: date,
        employee_ids: Iterable[str] | None = None,
        force_recalculate: bool = False,
        cancel_event: asyncio.Event | None = None,
    ) -> ReconciliationResult:
        """Calculate every employee-day in [from_date, to_date].

        Args:
            from_date: First work date (inclusive)
            to_date: Last work date (inclusive)
            employee_ids: Employees to process; all configured employees if None
            force_recalculate: Recompute days that are already calculated
            cancel_event: Stops the batch between employee-days once set

        Raises:
            ValueError: If from_date is after to_date
        """
        if from_date > to_date:
            raise ValueError(
                f"from_date {from_date.isoformat()} is after to_date {to_date.isoformat()}"
            )

        if employee_ids is None:
            employee_ids = await self.directory.employee_ids(self.configs)
        employee_ids = list(employee_ids)

        logger.info(
            "Reconciling %d employees from %s to %s (force_recalculate=%s)",
            len(employee_ids),
            from_date.isoformat(),
            to_date.isoformat(),
            force_recalculate,
        )

        result = ReconciliationResult()
        configs = PayConfigCache(self.configs)

        for employee_id in employee_ids:
            if cancel_event is not None and cancel_event.is_set():
                result.cancelled = True
                break

            try:
                config = await configs.require(employee_id)
            except (ConfigurationMissingError, ConfigurationInvalidError) as exc:
                logger.warning("Skipping employee %s: %s", employee_id, exc)
                result.errors.append(str(exc))
                continue

            for work_date in date_range(from_date, to_date):
                if cancel_event is not None and cancel_event.is_set():
                    result.cancelled = True
                    break
                try:
                    _, outcome = await self._calculate_day(
                        employee_id, work_date, config, force_recalculate
                    )
                except Exception as exc:
                    logger.exception(
                        "Calculation failed for %s on %s", employee_id, work_date.isoformat()
                    )
                    result.record(DayOutcome.FAILED)
                    result.errors.append(f"{employee_id} on {work_date.isoformat()}: {exc}")
                    continue
                result.record(outcome)

            if result.cancelled:
                break

        if result.cancelled:
            logger.info("Reconciliation cancelled: %s", result.message)
        else:
            logger.info("Reconciliation finished: %s", result.message)
        return result

    async def calculate_day(
        self,
        employee_id: str,
        work_date: date,
        config: PayConfig,
        force_recalculate: bool = False,
    ) -> LedgerDay:
        """Calculate and store one employee-day, returning the stored row."""
        day, _ = await self._calculate_day(employee_id, work_date, config, force_recalculate)
        return day

    async def _calculate_day(
        self,
        employee_id: str,
        work_date: date,
        config: PayConfig,
        force_recalculate: bool,
    ) -> tuple[LedgerDay, DayOutcome]:
        existing = await self.ledger.get(employee_id, work_date)
        if existing is not None and existing.is_calculated and not force_recalculate:
            return existing, DayOutcome.UNCHANGED

        if existing is not None and existing.is_locked:
            logger.debug(
                "Skipping locked day %s on %s (%s)",
                employee_id,
                work_date.isoformat(),
                existing.ot_entry_mode,
            )
            return existing, DayOutcome.LOCKED

        try:
            punches = await self.punches.get_punches(employee_id, work_date)
            day_spans = build_day_spans(punches)
            buckets = self.calculator.calculate(work_date, day_spans.spans, config)
            rates = self.calculator.effective_rates(config)
        except Exception as exc:
            await self._record_failure(existing, employee_id, work_date, config, exc)
            raise

        changes: dict[str, Any] = {
            "day_of_week": day_name(work_date),
            "is_weekend": is_weekend_day(work_date, config.weekend_days),
            "first_punch_in": day_spans.first_punch_in,
            "last_punch_out": day_spans.last_punch_out,
            "total_worked_minutes": self.calculator.total_worked_minutes(day_spans.spans),
            "regular_minutes": buckets.regular_minutes,
            "weekday_ot_minutes": buckets.weekday_ot_minutes,
            "weekend_ot_minutes": buckets.weekend_ot_minutes,
            "regular_pay": buckets.regular_pay,
            "weekday_ot_pay": buckets.weekday_ot_pay,
            "weekend_ot_pay": buckets.weekend_ot_pay,
            "total_pay": buckets.total_pay,
            "hourly_rate_regular": rates.regular,
            "hourly_rate_weekday_ot": rates.weekday_ot,
            "hourly_rate_weekend_ot": rates.weekend_ot,
            "is_calculated": True,
            "calculation_error": None,
            "calculated_at": self.clock(),
        }

        if existing is not None:
            stored = await self.ledger.update(existing.row_id, changes)
        else:
            stored = await self.ledger.insert(
                LedgerDay(employee_id=employee_id, work_date=work_date, **changes)
            )
        return stored, DayOutcome.CALCULATED

    async def _record_failure(
        self,
        existing: LedgerDay | None,
        employee_id: str,
        work_date: date,
        config: PayConfig,
        error: Exception,
    ) -> None:
        """Mark the day as failed, keeping any stored minutes and pay."""
        changes: dict[str, Any] = {
            "is_calculated": False,
            "calculation_error": str(error) or type(error).__name__,
            "calculated_at": self.clock(),
        }
        try:
            if existing is not None:
                await self.ledger.update(existing.row_id, changes)
            else:
                await self.ledger.insert(
                    LedgerDay(
                        employee_id=employee_id,
                        work_date=work_date,
                        day_of_week=day_name(work_date),
                        is_weekend=is_weekend_day(work_date, config.weekend_days),
                        **changes,
                    )
                )
        except Exception:
            logger.exception(
                "Could not record calculation error for %s on %s",
                employee_id,
                work_date.isoformat(),
            )
