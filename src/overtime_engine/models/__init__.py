"""ORM models."""

from overtime_engine.models.base import Base, TimestampMixin
from overtime_engine.models.pay_config import EmployeePayConfig, SitePayConfig
from overtime_engine.models.timesheet import Punch, TimesheetDay

__all__ = [
    "Base",
    "TimestampMixin",
    "EmployeePayConfig",
    "SitePayConfig",
    "Punch",
    "TimesheetDay",
]
