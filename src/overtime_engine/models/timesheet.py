"""Punch and timesheet ledger models."""

from __future__ import annotations

from datetime import date, datetime
from decimal import Decimal
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Date,
    DateTime,
    Index,
    Integer,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from overtime_engine.models.base import Base, TimestampMixin


class Punch(Base, TimestampMixin):
    """Raw clock punch synced from the attendance device.

    Punch times are device-local wall clock times (no time zone).
    """

    __tablename__ = "punch"

    punch_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    punch_time: Mapped[datetime] = mapped_column(DateTime(timezone=False), nullable=False)
    raw_mode: Mapped[str | None] = mapped_column(String(20), nullable=True)
    clock_id: Mapped[int | None] = mapped_column(Integer, nullable=True)

    __table_args__ = (
        Index("ix_punch_employee_time", "employee_id", "punch_time"),
    )


class TimesheetDay(Base, TimestampMixin):
    """Daily ledger row: minutes and pay per bucket for one employee-date."""

    __tablename__ = "timesheet_day"

    timesheet_day_id: Mapped[UUID] = mapped_column(primary_key=True, default=uuid4)
    employee_id: Mapped[str] = mapped_column(String(50), nullable=False)
    work_date: Mapped[date] = mapped_column(Date, nullable=False)

    is_weekend: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    day_of_week: Mapped[str] = mapped_column(String(10), nullable=False)

    first_punch_in: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    last_punch_out: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=False), nullable=True
    )

    total_worked_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    regular_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekday_ot_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    weekend_ot_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    regular_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    weekday_ot_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    weekend_ot_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)
    total_pay: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False, default=0)

    # Rates used at calculation time (audit trail)
    hourly_rate_regular: Mapped[Decimal] = mapped_column(
        Numeric(12, 4), nullable=False, default=0
    )
    hourly_rate_weekday_ot: Mapped[Decimal] = mapped_column(
        Numeric(12, 4), nullable=False, default=0
    )
    hourly_rate_weekend_ot: Mapped[Decimal] = mapped_column(
        Numeric(12, 4), nullable=False, default=0
    )

    is_calculated: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    calculation_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    ot_entry_mode: Mapped[str | None] = mapped_column(String(20), nullable=True, default="auto")
    calculated_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("employee_id", "work_date", name="timesheet_day_employee_date_unique"),
        CheckConstraint(
            "ot_entry_mode IS NULL OR ot_entry_mode IN ('auto', 'manual', 'adjusted')",
            name="timesheet_day_ot_entry_mode_check",
        ),
    )
