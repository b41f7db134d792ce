"""Employee and site pay configuration models."""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import CheckConstraint, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from overtime_engine.models.base import Base, TimestampMixin

_WEEKDAYS_SQL = (
    "('Sunday', 'Monday', 'Tuesday', 'Wednesday', 'Thursday', 'Friday', 'Saturday')"
)


class EmployeePayConfig(Base, TimestampMixin):
    """Pay rates and weekly calendar for one employee."""

    __tablename__ = "employee_pay_config"

    employee_pay_config_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    employee_name: Mapped[str | None] = mapped_column(String(200), nullable=True)

    pay_type: Mapped[str] = mapped_column(String(20), nullable=False, default="Hourly")
    regular_hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    daily_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)
    monthly_salary: Mapped[Decimal | None] = mapped_column(Numeric(12, 2), nullable=True)

    weekday_ot_rate_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="multiplier"
    )
    weekday_ot_fixed_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    weekday_ot_multiplier: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)

    weekend_ot_rate_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default="multiplier"
    )
    weekend_ot_fixed_rate: Mapped[Decimal | None] = mapped_column(Numeric(12, 4), nullable=True)
    weekend_ot_multiplier: Mapped[Decimal | None] = mapped_column(Numeric(6, 2), nullable=True)

    week_start_day: Mapped[str] = mapped_column(String(10), nullable=False, default="Sunday")
    weekend_days: Mapped[str] = mapped_column(
        String(100), nullable=False, default="Friday,Saturday"
    )
    workday_start: Mapped[str] = mapped_column(String(8), nullable=False, default="09:00:00")
    workday_end: Mapped[str] = mapped_column(String(8), nullable=False, default="17:00:00")
    ot_start_time: Mapped[str] = mapped_column(String(8), nullable=False, default="17:00:00")
    minimum_daily_hours_for_pay: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), nullable=False, default=Decimal("0")
    )

    __table_args__ = (
        CheckConstraint(
            "pay_type IN ('Hourly', 'Daily', 'Monthly')",
            name="employee_pay_config_pay_type_check",
        ),
        CheckConstraint(
            "weekday_ot_rate_type IN ('fixed', 'multiplier')",
            name="employee_pay_config_weekday_rate_type_check",
        ),
        CheckConstraint(
            "weekend_ot_rate_type IN ('fixed', 'multiplier')",
            name="employee_pay_config_weekend_rate_type_check",
        ),
        CheckConstraint(
            f"week_start_day IN {_WEEKDAYS_SQL}",
            name="employee_pay_config_week_start_check",
        ),
    )


class SitePayConfig(Base, TimestampMixin):
    """Default calendar and rates for employees of a site."""

    __tablename__ = "site_pay_config"

    site_pay_config_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    site_code: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    site_name: Mapped[str] = mapped_column(String(200), nullable=False)

    week_start_day: Mapped[str] = mapped_column(String(10), nullable=False, default="Sunday")
    weekend_days: Mapped[str] = mapped_column(
        String(100), nullable=False, default="Friday,Saturday"
    )
    workday_start: Mapped[str] = mapped_column(String(8), nullable=False, default="09:00:00")
    workday_end: Mapped[str] = mapped_column(String(8), nullable=False, default="17:00:00")
    ot_start_time: Mapped[str] = mapped_column(String(8), nullable=False, default="17:00:00")

    default_hourly_rate: Mapped[Decimal] = mapped_column(Numeric(12, 4), nullable=False)
    default_weekday_ot_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("1.5")
    )
    default_weekend_ot_multiplier: Mapped[Decimal] = mapped_column(
        Numeric(6, 2), nullable=False, default=Decimal("2.0")
    )

    __table_args__ = (
        CheckConstraint(
            f"week_start_day IN {_WEEKDAYS_SQL}",
            name="site_pay_config_week_start_check",
        ),
    )
