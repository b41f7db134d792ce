"""Pay configuration service: employee configs, site defaults, workweek settings."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, timedelta
from decimal import Decimal
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from overtime_engine.calculators.bucket_calculator import BucketCalculator
from overtime_engine.calculators.calendar import parse_weekend_days
from overtime_engine.calculators.types import WEEKDAY_NAMES, PayConfig, PayType, RateType
from overtime_engine.config import get_settings
from overtime_engine.models import EmployeePayConfig, SitePayConfig
from overtime_engine.services.reconciliation import TimesheetReconciler
from overtime_engine.services.sources import (
    ConfigurationInvalidError,
    ConfigurationMissingError,
    EmployeeDirectory,
)
from overtime_engine.services.sql_sources import (
    SqlLedgerStore,
    SqlPayConfigSource,
    SqlPunchSource,
    pay_config_from_row,
    pay_config_to_values,
)

logger = logging.getLogger(__name__)

# Fields a partial update may change
UPDATABLE_FIELDS = frozenset(
    {
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
    }
)


class SiteConfigurationMissingError(Exception):
    """No site pay configuration exists for a site code."""

    def __init__(self, site_code: str):
        self.site_code = site_code
        super().__init__(f"Site pay configuration not found for site {site_code}")


@dataclass(frozen=True)
class WorkweekSettings:
    """Calendar settings for one employee or for a site default.

    Exactly one of employee_id or site_code selects the target.
    """

    week_start_day: str
    weekend_days: frozenset[str]
    workday_start: str
    workday_end: str
    ot_start_time: str
    minimum_daily_hours_for_pay: Decimal | None = None
    employee_id: str | None = None
    site_code: str | None = None


class PayConfigService:
    """Reads and writes pay configurations.

    Rate changes trigger a forced recalculation of the employee's recent
    ledger so stored pay reflects the new rates.
    """

    def __init__(
        self,
        session: AsyncSession,
        reconciler_factory: Callable[[], TimesheetReconciler] | None = None,
        directory: EmployeeDirectory | None = None,
    ):
        self.session = session
        self.source = SqlPayConfigSource(session)
        self.reconciler_factory = reconciler_factory or self._default_reconciler
        self.directory = directory

    def _default_reconciler(self) -> TimesheetReconciler:
        return TimesheetReconciler(
            punches=SqlPunchSource(self.session),
            configs=self.source,
            ledger=SqlLedgerStore(self.session),
        )

    async def _get_row(self, employee_id: str) -> EmployeePayConfig | None:
        result = await self.session.execute(
            select(EmployeePayConfig).where(EmployeePayConfig.employee_id == employee_id)
        )
        return result.scalar_one_or_none()

    async def get_site_row(self, site_code: str) -> SitePayConfig | None:
        result = await self.session.execute(
            select(SitePayConfig).where(SitePayConfig.site_code == site_code)
        )
        return result.scalar_one_or_none()

    async def get_config(self, employee_id: str) -> PayConfig | None:
        return await self.source.get(employee_id)

    async def list_configs(self) -> list[PayConfig]:
        result = await self.session.execute(
            select(EmployeePayConfig).order_by(EmployeePayConfig.employee_id)
        )
        return [pay_config_from_row(row) for row in result.scalars()]

    async def upsert_config(self, config: PayConfig) -> PayConfig:
        """Create or replace an employee's configuration.

        Raises:
            ConfigurationInvalidError: If the config fails validation
        """
        validation = BucketCalculator.validate_config(config)
        if not validation.valid:
            raise ConfigurationInvalidError(config.employee_id, validation.errors)

        values = pay_config_to_values(config)
        row = await self._get_row(config.employee_id)
        if row is None:
            row = EmployeePayConfig(**values)
            self.session.add(row)
            if self.directory is not None:
                self.directory.invalidate()
        else:
            for key, value in values.items():
                setattr(row, key, value)

        await self.session.flush()
        logger.info("Saved pay configuration for %s", config.employee_id)
        return pay_config_from_row(row)

    async def update_config(
        self,
        employee_id: str,
        changes: dict[str, Any],
        recalculate_days: int | None = None,
        today: date | None = None,
    ) -> PayConfig:
        """Merge partial changes into an existing config and recalculate.

        The last ``recalculate_days`` days of the employee's ledger are
        recalculated with force. A failed recalculation is logged and does not
        fail the update.

        Raises:
            ConfigurationMissingError: If the employee has no configuration
            ConfigurationInvalidError: If the merged config fails validation
        """
        existing = await self.get_config(employee_id)
        if existing is None:
            raise ConfigurationMissingError(employee_id)

        unknown = set(changes) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Unknown pay configuration fields: {', '.join(sorted(unknown))}")

        values = pay_config_to_values(existing)
        values.update(changes)
        values["employee_id"] = employee_id
        updated = await self.upsert_config(PayConfig.build(**values))

        if recalculate_days is None:
            recalculate_days = get_settings().recalculate_days_on_config_change
        if recalculate_days > 0:
            await self._recalculate(employee_id, recalculate_days, today or date.today())

        return updated

    async def _recalculate(self, employee_id: str, days: int, today: date) -> None:
        from_date = today - timedelta(days=days)
        logger.info(
            "Recalculating %s from %s to %s after configuration change",
            employee_id,
            from_date.isoformat(),
            today.isoformat(),
        )
        try:
            result = await self.reconciler_factory().reconcile(
                from_date,
                today,
                employee_ids=[employee_id],
                force_recalculate=True,
            )
        except Exception:
            logger.warning(
                "Recalculation after configuration change failed for %s",
                employee_id,
                exc_info=True,
            )
            return
        if result.days_failed:
            logger.warning(
                "Recalculation for %s finished with errors: %s", employee_id, result.message
            )

    async def update_workweek_settings(self, settings: WorkweekSettings) -> None:
        """Update calendar settings for one employee or for a site.

        Raises:
            ConfigurationMissingError: If the employee has no configuration
            SiteConfigurationMissingError: If the site has no configuration
            ConfigurationInvalidError: If no weekend days are given
            ValueError: If neither employee_id nor site_code is given
        """
        target = settings.employee_id or settings.site_code
        if target is None:
            raise ValueError("Either employee_id or site_code is required")

        weekend_days = parse_weekend_days(settings.weekend_days)
        if not weekend_days:
            raise ConfigurationInvalidError(target, ["Weekend days must be specified"])
        if settings.week_start_day not in WEEKDAY_NAMES:
            raise ConfigurationInvalidError(
                target, [f"Unknown week start day: {settings.week_start_day}"]
            )
        weekend_csv = ",".join(d for d in WEEKDAY_NAMES if d in weekend_days)

        if settings.employee_id is not None:
            row = await self._get_row(settings.employee_id)
            if row is None:
                raise ConfigurationMissingError(settings.employee_id)
            if settings.minimum_daily_hours_for_pay is not None:
                row.minimum_daily_hours_for_pay = settings.minimum_daily_hours_for_pay
        else:
            row = await self.get_site_row(settings.site_code)
            if row is None:
                raise SiteConfigurationMissingError(settings.site_code)

        row.week_start_day = settings.week_start_day
        row.weekend_days = weekend_csv
        row.workday_start = settings.workday_start
        row.workday_end = settings.workday_end
        row.ot_start_time = settings.ot_start_time
        await self.session.flush()
        logger.info("Updated workweek settings for %s", target)

    async def config_from_site_defaults(self, employee_id: str, site_code: str) -> PayConfig:
        """Build (without saving) an employee config seeded from site defaults."""
        site = await self.get_site_row(site_code)
        if site is None:
            raise SiteConfigurationMissingError(site_code)
        return PayConfig.build(
            employee_id=employee_id,
            pay_type=PayType.HOURLY,
            regular_hourly_rate=site.default_hourly_rate,
            weekday_ot_rate_type=RateType.MULTIPLIER,
            weekday_ot_multiplier=site.default_weekday_ot_multiplier,
            weekend_ot_rate_type=RateType.MULTIPLIER,
            weekend_ot_multiplier=site.default_weekend_ot_multiplier,
            week_start_day=site.week_start_day,
            weekend_days=site.weekend_days,
            workday_start=site.workday_start,
            workday_end=site.workday_end,
            ot_start_time=site.ot_start_time,
        )

    async def delete_config(self, employee_id: str) -> bool:
        """Delete an employee's configuration. Ledger rows are kept."""
        result = await self.session.execute(
            delete(EmployeePayConfig).where(EmployeePayConfig.employee_id == employee_id)
        )
        await self.session.flush()
        deleted = (result.rowcount or 0) > 0
        if deleted and self.directory is not None:
            self.directory.invalidate()
        return deleted
