"""Overtime engine services."""

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
from overtime_engine.services.reconciliation import (
    DayOutcome,
    ReconciliationResult,
    TimesheetReconciler,
)
from overtime_engine.services.pay_config_service import (
    PayConfigService,
    SiteConfigurationMissingError,
    WorkweekSettings,
)
from overtime_engine.services.weekly_report import WeeklyReportService, WeeklySummary

__all__ = [
    "ConfigurationInvalidError",
    "ConfigurationMissingError",
    "DayOutcome",
    "EmployeeDirectory",
    "LedgerDay",
    "LedgerStore",
    "PayConfigCache",
    "PayConfigService",
    "PayConfigSource",
    "PunchSource",
    "ReconciliationResult",
    "SiteConfigurationMissingError",
    "TimesheetReconciler",
    "WeeklyReportService",
    "WeeklySummary",
    "WorkweekSettings",
]
