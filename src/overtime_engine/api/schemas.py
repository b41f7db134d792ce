"""Pydantic schemas for API request/response models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from typing import ClassVar, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from overtime_engine.calculators.calendar import parse_time_of_day
from overtime_engine.calculators.types import WEEKDAY_NAMES, PayConfig
from overtime_engine.services.sources import LedgerDay
from overtime_engine.services.weekly_report import WeeklySummary, minutes_to_hours

WeekdayName = Literal[
    "Sunday", "Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday"
]
TIME_OF_DAY_PATTERN = r"^\d{1,2}(:\d{1,2}){0,2}$"
TIME_OF_DAY_FIELDS = ("workday_start", "workday_end", "ot_start_time")


def _ordered_days(days: frozenset[str]) -> list[str]:
    return [d for d in WEEKDAY_NAMES if d in days]


def _check_time_of_day(value: str | None) -> str | None:
    if value is not None:
        parse_time_of_day(value)
    return value


# ============================================================================
# Common
# ============================================================================


class ErrorResponse(BaseModel):
    """Error body returned by exception handlers."""

    detail: str
    code: str
    errors: list[str] | None = None


class MessageResponse(BaseModel):
    success: bool
    message: str


# ============================================================================
# Calculation
# ============================================================================


class CalculationRequest(BaseModel):
    """Calculate ledger rows for a date range."""

    employee_code: str | None = None
    from_date: date
    to_date: date
    force_recalculate: bool = False


class EmployeeCalculationRequest(BaseModel):
    """Calculate ledger rows for one employee (code taken from the path)."""

    from_date: date
    to_date: date
    force_recalculate: bool = False


class CalculationResponse(BaseModel):
    success: bool
    message: str
    days_calculated: int
    days_failed: int
    days_locked: int = 0
    errors: list[str] | None = None


# ============================================================================
# Timesheet
# ============================================================================


class TimesheetDayResponse(BaseModel):
    """One ledger row."""

    employee_code: str
    work_date: date
    day_of_week: str
    is_weekend: bool
    first_punch_in: datetime | None = None
    last_punch_out: datetime | None = None
    total_worked_minutes: int
    regular_minutes: int
    weekday_ot_minutes: int
    weekend_ot_minutes: int
    regular_pay: Decimal
    weekday_ot_pay: Decimal
    weekend_ot_pay: Decimal
    total_pay: Decimal
    hourly_rate_regular: Decimal
    hourly_rate_weekday_ot: Decimal
    hourly_rate_weekend_ot: Decimal
    is_calculated: bool
    calculation_error: str | None = None
    ot_entry_mode: str | None = None
    calculated_at: datetime | None = None

    @classmethod
    def from_ledger(cls, day: LedgerDay) -> TimesheetDayResponse:
        values = day.calculation_fields()
        return cls(
            employee_code=day.employee_id,
            work_date=day.work_date,
            ot_entry_mode=day.ot_entry_mode,
            **values,
        )


class TimesheetResponse(BaseModel):
    employee_code: str
    from_date: date
    to_date: date
    days: list[TimesheetDayResponse]


# ============================================================================
# Pay configuration
# ============================================================================


class PayConfigResponse(BaseModel):
    """An employee's pay configuration."""

    employee_code: str
    employee_name: str | None = None
    pay_type: str
    regular_hourly_rate: Decimal
    daily_rate: Decimal | None = None
    monthly_salary: Decimal | None = None
    weekday_ot_rate_type: str
    weekday_ot_fixed_rate: Decimal | None = None
    weekday_ot_multiplier: Decimal | None = None
    weekend_ot_rate_type: str
    weekend_ot_fixed_rate: Decimal | None = None
    weekend_ot_multiplier: Decimal | None = None
    week_start_day: str
    weekend_days: list[str]
    workday_start: str
    workday_end: str
    ot_start_time: str
    minimum_daily_hours_for_pay: Decimal

    @classmethod
    def from_config(cls, config: PayConfig) -> PayConfigResponse:
        return cls(
            employee_code=config.employee_id,
            employee_name=config.employee_name,
            pay_type=config.pay_type.value,
            regular_hourly_rate=config.regular_hourly_rate,
            daily_rate=config.daily_rate,
            monthly_salary=config.monthly_salary,
            weekday_ot_rate_type=config.weekday_ot_rate_type.value,
            weekday_ot_fixed_rate=config.weekday_ot_fixed_rate,
            weekday_ot_multiplier=config.weekday_ot_multiplier,
            weekend_ot_rate_type=config.weekend_ot_rate_type.value,
            weekend_ot_fixed_rate=config.weekend_ot_fixed_rate,
            weekend_ot_multiplier=config.weekend_ot_multiplier,
            week_start_day=config.week_start_day,
            weekend_days=_ordered_days(config.weekend_days),
            workday_start=config.workday_start,
            workday_end=config.workday_end,
            ot_start_time=config.ot_start_time,
            minimum_daily_hours_for_pay=config.minimum_daily_hours_for_pay,
        )


class PayConfigUpdate(BaseModel):
    """Partial update of an employee's pay configuration.

    Only fields present in the request body are changed.
    """

    employee_name: str | None = None
    pay_type: Literal["Hourly", "Daily", "Monthly"] | None = None
    regular_hourly_rate: Decimal | None = None
    daily_rate: Decimal | None = None
    monthly_salary: Decimal | None = None
    weekday_ot_rate_type: Literal["fixed", "multiplier"] | None = None
    weekday_ot_fixed_rate: Decimal | None = None
    weekday_ot_multiplier: Decimal | None = None
    weekend_ot_rate_type: Literal["fixed", "multiplier"] | None = None
    weekend_ot_fixed_rate: Decimal | None = None
    weekend_ot_multiplier: Decimal | None = None
    week_start_day: WeekdayName | None = None
    weekend_days: list[WeekdayName] | None = None
    workday_start: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    workday_end: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    ot_start_time: str | None = Field(default=None, pattern=TIME_OF_DAY_PATTERN)
    minimum_daily_hours_for_pay: Decimal | None = None

    # Columns that always hold a value; an explicit null cannot be stored
    NOT_NULLABLE: ClassVar[frozenset[str]] = frozenset(
        {
            "pay_type",
            "regular_hourly_rate",
            "weekday_ot_rate_type",
            "weekend_ot_rate_type",
            "week_start_day",
            "weekend_days",
            "workday_start",
            "workday_end",
            "ot_start_time",
            "minimum_daily_hours_for_pay",
        }
    )

    @field_validator(*TIME_OF_DAY_FIELDS)
    @classmethod
    def check_time_of_day(cls, value: str | None) -> str | None:
        return _check_time_of_day(value)

    @model_validator(mode="after")
    def check_not_null(self) -> PayConfigUpdate:
        cleared = sorted(
            name
            for name in self.model_fields_set & self.NOT_NULLABLE
            if getattr(self, name) is None
        )
        if cleared:
            raise ValueError(f"Fields cannot be null: {', '.join(cleared)}")
        return self


class WorkweekSettingsRequest(BaseModel):
    """Calendar settings for one employee or one site."""

    employee_code: str | None = None
    site_code: str | None = None
    week_start_day: WeekdayName
    weekend_days: list[WeekdayName] = Field(min_length=1)
    workday_start: str = Field(pattern=TIME_OF_DAY_PATTERN)
    workday_end: str = Field(pattern=TIME_OF_DAY_PATTERN)
    ot_start_time: str = Field(pattern=TIME_OF_DAY_PATTERN)
    minimum_daily_hours_for_pay: Decimal | None = None

    @field_validator(*TIME_OF_DAY_FIELDS)
    @classmethod
    def check_time_of_day(cls, value: str | None) -> str | None:
        return _check_time_of_day(value)

    @model_validator(mode="after")
    def check_target(self) -> WorkweekSettingsRequest:
        if bool(self.employee_code) == bool(self.site_code):
            raise ValueError("Exactly one of employee_code or site_code is required")
        return self


# ============================================================================
# Reports
# ============================================================================


class WeeklyDayRow(BaseModel):
    work_date: date
    day_of_week: str
    regular_hours: Decimal
    weekday_ot_hours: Decimal
    weekend_ot_hours: Decimal
    total_hours: Decimal
    regular_pay: Decimal
    weekday_ot_pay: Decimal
    weekend_ot_pay: Decimal
    total_pay: Decimal


class WeeklySummaryResponse(BaseModel):
    """Bucket totals for one employee-week."""

    employee_code: str
    employee_name: str | None = None
    week_start: date
    week_end: date
    regular_hours: Decimal
    weekday_ot_hours: Decimal
    weekend_ot_hours: Decimal
    total_hours: Decimal
    regular_pay: Decimal
    weekday_ot_pay: Decimal
    weekend_ot_pay: Decimal
    total_pay: Decimal
    days_worked: int
    days: list[WeeklyDayRow] = Field(default_factory=list)

    @classmethod
    def from_summary(cls, summary: WeeklySummary) -> WeeklySummaryResponse:
        return cls(
            employee_code=summary.employee_id,
            employee_name=summary.employee_name,
            week_start=summary.week_start,
            week_end=summary.week_end,
            regular_hours=summary.regular_hours,
            weekday_ot_hours=summary.weekday_ot_hours,
            weekend_ot_hours=summary.weekend_ot_hours,
            total_hours=summary.total_hours,
            regular_pay=summary.regular_pay,
            weekday_ot_pay=summary.weekday_ot_pay,
            weekend_ot_pay=summary.weekend_ot_pay,
            total_pay=summary.total_pay,
            days_worked=summary.days_worked,
            days=[
                WeeklyDayRow(
                    work_date=day.work_date,
                    day_of_week=day.day_of_week,
                    regular_hours=minutes_to_hours(day.regular_minutes),
                    weekday_ot_hours=minutes_to_hours(day.weekday_ot_minutes),
                    weekend_ot_hours=minutes_to_hours(day.weekend_ot_minutes),
                    total_hours=minutes_to_hours(day.total_worked_minutes),
                    regular_pay=day.regular_pay,
                    weekday_ot_pay=day.weekday_ot_pay,
                    weekend_ot_pay=day.weekend_ot_pay,
                    total_pay=day.total_pay,
                )
                for day in summary.days
            ],
        )
