"""Storage contract for the overtime engine.

The engine reads punches and pay configuration and reads/writes ledger rows
through the protocols below. SQLAlchemy implementations live in
``sql_sources``; tests use in-memory fakes.
"""

from __future__ import annotations

from dataclasses import dataclass, fields
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Protocol

from overtime_engine.calculators.bucket_calculator import BucketCalculator
from overtime_engine.calculators.types import OtEntryMode, PayConfig, PunchRecord


class ConfigurationMissingError(Exception):
    """No pay configuration exists for an employee."""

    def __init__(self, employee_id: str):
        self.employee_id = employee_id
        super().__init__(f"Pay configuration not found for employee {employee_id}")


class ConfigurationInvalidError(Exception):
    """An employee's pay configuration fails validation."""

    def __init__(self, employee_id: str, errors: list[str]):
        self.employee_id = employee_id
        self.errors = list(errors)
        super().__init__(
            f"Invalid pay configuration for employee {employee_id}: {'; '.join(errors)}"
        )


@dataclass(frozen=True)
class LedgerDay:
    """One (employee, work date) ledger row as seen by the engine."""

    employee_id: str
    work_date: date
    day_of_week: str
    is_weekend: bool = False

    first_punch_in: datetime | None = None
    last_punch_out: datetime | None = None

    total_worked_minutes: int = 0
    regular_minutes: int = 0
    weekday_ot_minutes: int = 0
    weekend_ot_minutes: int = 0

    regular_pay: Decimal = Decimal("0.00")
    weekday_ot_pay: Decimal = Decimal("0.00")
    weekend_ot_pay: Decimal = Decimal("0.00")
    total_pay: Decimal = Decimal("0.00")

    hourly_rate_regular: Decimal = Decimal("0")
    hourly_rate_weekday_ot: Decimal = Decimal("0")
    hourly_rate_weekend_ot: Decimal = Decimal("0")

    is_calculated: bool = False
    calculation_error: str | None = None
    ot_entry_mode: str | None = OtEntryMode.AUTO.value
    calculated_at: datetime | None = None

    row_id: Any = None

    # Never written by a recalculation
    IDENTITY_FIELDS = ("row_id", "employee_id", "work_date", "ot_entry_mode")

    @property
    def is_locked(self) -> bool:
        """True when an administrator owns the financial fields."""
        return self.ot_entry_mode is not None and self.ot_entry_mode != OtEntryMode.AUTO.value

    def calculation_fields(self) -> dict[str, Any]:
        """Fields a recalculation may overwrite."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in self.IDENTITY_FIELDS
        }


class PunchSource(Protocol):
    """Read-only access to raw clock punches."""

    async def get_punches(self, employee_id: str, work_date: date) -> list[PunchRecord]:
        """All punches of one employee whose timestamp falls on work_date."""
        ...


class PayConfigSource(Protocol):
    """Read access to per-employee pay configuration."""

    async def get(self, employee_id: str) -> PayConfig | None:
        ...

    async def list_employee_ids(self) -> list[str]:
        """Employees that have a pay configuration."""
        ...


class LedgerStore(Protocol):
    """Read/write access to the daily ledger."""

    async def get(self, employee_id: str, work_date: date) -> LedgerDay | None:
        ...

    async def insert(self, day: LedgerDay) -> LedgerDay:
        ...

    async def update(self, row_id: Any, changes: dict[str, Any]) -> LedgerDay:
        """Apply a partial update and return the stored row."""
        ...

    async def list_range(
        self, employee_id: str, from_date: date, to_date: date
    ) -> list[LedgerDay]:
        """Rows for one employee in [from_date, to_date], ordered by date."""
        ...


class PayConfigCache:
    """Pay configurations memoized for the lifetime of one batch."""

    def __init__(self, source: PayConfigSource):
        self._source = source
        self._entries: dict[str, PayConfig | None] = {}

    async def get(self, employee_id: str) -> PayConfig | None:
        if employee_id not in self._entries:
            self._entries[employee_id] = await self._source.get(employee_id)
        return self._entries[employee_id]

    async def require(self, employee_id: str) -> PayConfig:
        """Return a valid config or raise the matching configuration error."""
        config = await self.get(employee_id)
        if config is None:
            raise ConfigurationMissingError(employee_id)
        validation = BucketCalculator.validate_config(config)
        if not validation.valid:
            raise ConfigurationInvalidError(employee_id, validation.errors)
        return config


class EmployeeDirectory:
    """Cached list of employees with a pay configuration.

    Loaded lazily from the given source on first use and shared across
    batches. Call invalidate() after adding or deleting a configuration so the
    next batch sees the change.
    """

    def __init__(self) -> None:
        self._employee_ids: list[str] | None = None

    async def employee_ids(self, source: PayConfigSource) -> list[str]:
        if self._employee_ids is None:
            await self.refresh(source)
        return list(self._employee_ids or [])

    async def refresh(self, source: PayConfigSource) -> list[str]:
        self._employee_ids = sorted(await source.list_employee_ids())
        return list(self._employee_ids)

    def invalidate(self) -> None:
        self._employee_ids = None
