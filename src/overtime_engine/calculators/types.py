"""Type definitions for the overtime calculation pipeline."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Any

WEEKDAY_NAMES: tuple[str, ...] = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)


class PayType(str, Enum):
    """How an employee's base pay is expressed."""

    HOURLY = "Hourly"
    DAILY = "Daily"
    MONTHLY = "Monthly"


class RateType(str, Enum):
    """How an overtime bucket rate is derived."""

    FIXED = "fixed"
    MULTIPLIER = "multiplier"


class PunchType(str, Enum):
    """Direction of a clock punch."""

    IN = "IN"
    OUT = "OUT"


class OtEntryMode(str, Enum):
    """Who owns the financial fields of a ledger row."""

    AUTO = "auto"
    MANUAL = "manual"
    ADJUSTED = "adjusted"


def _to_decimal(value: Any) -> Decimal | None:
    if value is None or value == "":
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def parse_weekend_days(weekend_days: str | Iterable[str] | None) -> frozenset[str]:
    """Normalize a comma-separated string or iterable of names to a set."""
    if weekend_days is None:
        return frozenset()
    if isinstance(weekend_days, str):
        weekend_days = weekend_days.split(",")
    return frozenset(d.strip() for d in weekend_days if d and d.strip())


@dataclass(frozen=True)
class PayConfig:
    """Per-employee pay and weekly calendar configuration.

    Constructed at the storage boundary. Amounts are normalized to Decimal and
    weekend days to a frozenset of names; times of day stay as the configured
    "HH:MM[:SS]" strings and are parsed per work date by the calendar.
    """

    employee_id: str
    pay_type: PayType
    regular_hourly_rate: Decimal

    weekday_ot_rate_type: RateType = RateType.MULTIPLIER
    weekday_ot_fixed_rate: Decimal | None = None
    weekday_ot_multiplier: Decimal | None = None

    weekend_ot_rate_type: RateType = RateType.MULTIPLIER
    weekend_ot_fixed_rate: Decimal | None = None
    weekend_ot_multiplier: Decimal | None = None

    week_start_day: str = "Sunday"
    weekend_days: frozenset[str] = field(default_factory=frozenset)
    workday_start: str = "09:00:00"
    workday_end: str = "17:00:00"
    ot_start_time: str = "17:00:00"
    minimum_daily_hours_for_pay: Decimal = Decimal("0")

    # Only consulted for the matching pay type
    daily_rate: Decimal | None = None
    monthly_salary: Decimal | None = None

    employee_name: str | None = None

    @classmethod
    def build(cls, **values: Any) -> PayConfig:
        """Build a config from loosely typed values (ORM row, request body)."""
        for key in (
            "regular_hourly_rate",
            "weekday_ot_fixed_rate",
            "weekday_ot_multiplier",
            "weekend_ot_fixed_rate",
            "weekend_ot_multiplier",
            "minimum_daily_hours_for_pay",
            "daily_rate",
            "monthly_salary",
        ):
            if key in values:
                values[key] = _to_decimal(values[key])
        if values.get("regular_hourly_rate") is None:
            values["regular_hourly_rate"] = Decimal("0")
        if values.get("minimum_daily_hours_for_pay") is None:
            values.pop("minimum_daily_hours_for_pay", None)
        values["pay_type"] = PayType(values.get("pay_type") or PayType.HOURLY)
        for key in ("weekday_ot_rate_type", "weekend_ot_rate_type"):
            if values.get(key) is not None:
                values[key] = RateType(values[key])
            else:
                values.pop(key, None)
        if "weekend_days" in values:
            values["weekend_days"] = parse_weekend_days(values["weekend_days"])
        return cls(**values)

    def weekend_days_csv(self) -> str:
        """Weekend days in week order as a comma-separated string."""
        return ",".join(d for d in WEEKDAY_NAMES if d in self.weekend_days)


@dataclass(frozen=True)
class PunchRecord:
    """A raw clock punch as synced from the attendance device."""

    employee_id: str
    timestamp: datetime
    raw_mode: str | None = None
    clock_id: int | None = None


@dataclass(frozen=True)
class InferredPunch:
    """A punch after direction inference."""

    timestamp: datetime
    punch_type: PunchType


@dataclass(frozen=True)
class WorkedSpan:
    """A contiguous worked interval (first IN to last OUT)."""

    start: datetime
    end: datetime
    duration_minutes: int


@dataclass(frozen=True)
class DaySpans:
    """Span builder output for one employee-day."""

    spans: list[WorkedSpan] = field(default_factory=list)
    first_punch_in: datetime | None = None
    last_punch_out: datetime | None = None


@dataclass(frozen=True)
class EffectiveRates:
    """Hourly rates applied to each bucket."""

    regular: Decimal
    weekday_ot: Decimal
    weekend_ot: Decimal


@dataclass(frozen=True)
class BucketResult:
    """Minutes and pay per bucket for one work date."""

    regular_minutes: int
    weekday_ot_minutes: int
    weekend_ot_minutes: int
    regular_pay: Decimal
    weekday_ot_pay: Decimal
    weekend_ot_pay: Decimal
    total_pay: Decimal

    @property
    def bucket_minutes(self) -> int:
        return self.regular_minutes + self.weekday_ot_minutes + self.weekend_ot_minutes


@dataclass
class ValidationResult:
    """Outcome of validating a pay configuration."""

    valid: bool
    errors: list[str] = field(default_factory=list)
