"""Weekly calendar helpers: day names, weekends, week boundaries, times of day."""

from __future__ import annotations

from collections.abc import Iterable, Iterator
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal

from overtime_engine.calculators.types import WEEKDAY_NAMES, parse_weekend_days

END_OF_DAY = time(23, 59, 59, 999000)


def _as_date(value: date | datetime) -> date:
    if isinstance(value, datetime):
        return value.date()
    return value


def day_index(value: date | datetime) -> int:
    """Day of week with Sunday = 0."""
    return (value.weekday() + 1) % 7


def day_name(value: date | datetime) -> str:
    """Name of the day of week, e.g. "Monday"."""
    return WEEKDAY_NAMES[day_index(value)]


def is_weekend_day(value: date | datetime, weekend_days: str | Iterable[str]) -> bool:
    """Check if a date falls on one of the configured weekend days."""
    return day_name(value) in parse_weekend_days(weekend_days)


def week_start(value: date | datetime, week_start_day: str) -> datetime:
    """Midnight of the most recent ``week_start_day`` on or before ``value``.

    Raises:
        ValueError: If ``week_start_day`` is not a weekday name
    """
    target = WEEKDAY_NAMES.index(week_start_day)
    days_back = (day_index(value) - target) % 7
    start = _as_date(value) - timedelta(days=days_back)
    return datetime.combine(start, time.min)


def week_end(value: date | datetime, week_start_day: str) -> datetime:
    """Last millisecond of the week that contains ``value``."""
    start = week_start(value, week_start_day)
    return datetime.combine(start.date() + timedelta(days=6), END_OF_DAY)


def week_dates(start: date | datetime) -> list[date]:
    """The seven dates of the week beginning at ``start``."""
    first = _as_date(start)
    return [first + timedelta(days=i) for i in range(7)]


def parse_time_of_day(time_str: str) -> time:
    """Parse "HH", "HH:MM" or "HH:MM:SS"; missing components default to 0.

    Raises:
        ValueError: If the string is empty, has too many parts or is out of range
    """
    if time_str is None or not str(time_str).strip():
        raise ValueError("Time of day is empty")
    parts = str(time_str).strip().split(":")
    if len(parts) > 3:
        raise ValueError(f"Invalid time of day: {time_str!r}")
    try:
        numbers = [int(p) for p in parts]
    except ValueError:
        raise ValueError(f"Invalid time of day: {time_str!r}") from None
    numbers += [0] * (3 - len(numbers))
    hours, minutes, seconds = numbers
    return time(hours, minutes, seconds)


def parse_time_on_date(value: date | datetime, time_str: str) -> datetime:
    """Combine a work date with a configured time of day."""
    return datetime.combine(_as_date(value), parse_time_of_day(time_str))


def end_of_day(value: date | datetime) -> datetime:
    """23:59:59.999 on the given date."""
    return datetime.combine(_as_date(value), END_OF_DAY)


def minutes_between(start: datetime, end: datetime) -> int:
    """Whole minutes from start to end, rounded half up."""
    seconds = Decimal(str((end - start).total_seconds()))
    return int((seconds / 60).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def date_range(from_date: date, to_date: date) -> Iterator[date]:
    """Yield each date from ``from_date`` to ``to_date`` inclusive."""
    current = from_date
    while current <= to_date:
        yield current
        current += timedelta(days=1)
