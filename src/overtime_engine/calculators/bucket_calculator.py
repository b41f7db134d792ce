"""Three-bucket overtime calculator: regular, weekday OT, weekend OT."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import date, datetime
from decimal import ROUND_HALF_UP, Decimal

from overtime_engine.calculators.calendar import (
    end_of_day,
    is_weekend_day,
    minutes_between,
    parse_time_on_date,
)
from overtime_engine.calculators.types import (
    BucketResult,
    EffectiveRates,
    PayConfig,
    PayType,
    RateType,
    ValidationResult,
    WorkedSpan,
)


class BucketCalculator:
    """Splits worked time into pay buckets and prices each bucket.

    Bucket rules:
    - Weekend day: every worked minute is weekend OT
    - Workday: [workday_start, ot_start) is regular, [ot_start, end of day] is
      weekday OT; time before workday_start earns nothing

    Pay types:
    - Hourly: minutes / 60 x bucket rate
    - Daily: minutes / 480 x daily rate (x OT multiplier); fixed OT rates ignored
    - Monthly: hourly equivalent of monthly_salary / 176, then as Hourly

    Rounding:
    - Buckets are priced with unrounded rates
    - Rates recorded on the ledger are rounded to 4 decimals
    - Each bucket's pay rounded half up to cents
    - total_pay is the sum of the rounded buckets
    """

    PRECISION = Decimal("0.0001")
    OUTPUT_PRECISION = Decimal("0.01")

    HOURS_PER_DAY = Decimal("8")
    MINUTES_PER_DAY = Decimal("480")
    MONTHLY_HOURS = Decimal("176")  # 22 working days x 8 hours
    DEFAULT_MULTIPLIER = Decimal("1.0")

    @staticmethod
    def round_to_cents(amount: Decimal) -> Decimal:
        """Round amount to 2 decimal places (cents)."""
        return amount.quantize(BucketCalculator.OUTPUT_PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def round_rate(rate: Decimal) -> Decimal:
        """Round a rate to internal precision."""
        return rate.quantize(BucketCalculator.PRECISION, rounding=ROUND_HALF_UP)

    @staticmethod
    def overlap_minutes(
        span: tuple[datetime, datetime],
        window: tuple[datetime, datetime],
    ) -> int:
        """Minutes two ranges share; 0 when they do not intersect."""
        start = max(span[0], window[0])
        end = min(span[1], window[1])
        if start >= end:
            return 0
        return max(0, minutes_between(start, end))

    @staticmethod
    def total_worked_minutes(spans: Iterable[WorkedSpan]) -> int:
        """Sum of span durations."""
        return sum(span.duration_minutes for span in spans)

    @staticmethod
    def _ot_rate(
        base: Decimal,
        rate_type: RateType,
        fixed_rate: Decimal | None,
        multiplier: Decimal | None,
    ) -> Decimal:
        if rate_type == RateType.FIXED:
            return fixed_rate or Decimal("0")
        return base * (multiplier or BucketCalculator.DEFAULT_MULTIPLIER)

    @staticmethod
    def resolve_rates(config: PayConfig) -> EffectiveRates:
        """Resolve hourly rates from the regular rate and OT rate models."""
        regular = config.regular_hourly_rate
        return EffectiveRates(
            regular=regular,
            weekday_ot=BucketCalculator._ot_rate(
                regular,
                config.weekday_ot_rate_type,
                config.weekday_ot_fixed_rate,
                config.weekday_ot_multiplier,
            ),
            weekend_ot=BucketCalculator._ot_rate(
                regular,
                config.weekend_ot_rate_type,
                config.weekend_ot_fixed_rate,
                config.weekend_ot_multiplier,
            ),
        )

    @staticmethod
    def daily_rate(config: PayConfig) -> Decimal:
        """Daily rate, falling back to an 8-hour day at the regular rate."""
        if config.daily_rate is not None:
            return config.daily_rate
        return config.regular_hourly_rate * BucketCalculator.HOURS_PER_DAY

    @staticmethod
    def monthly_salary(config: PayConfig) -> Decimal:
        """Monthly salary, falling back to 176 hours at the regular rate."""
        if config.monthly_salary is not None:
            return config.monthly_salary
        return config.regular_hourly_rate * BucketCalculator.MONTHLY_HOURS

    @staticmethod
    def pricing_rates(config: PayConfig) -> EffectiveRates:
        """Unrounded hourly rates used for the config's pay type."""
        calc = BucketCalculator
        if config.pay_type == PayType.MONTHLY:
            hourly = calc.monthly_salary(config) / calc.MONTHLY_HOURS
            rates = EffectiveRates(
                regular=hourly,
                weekday_ot=calc._ot_rate(
                    hourly,
                    config.weekday_ot_rate_type,
                    config.weekday_ot_fixed_rate,
                    config.weekday_ot_multiplier,
                ),
                weekend_ot=calc._ot_rate(
                    hourly,
                    config.weekend_ot_rate_type,
                    config.weekend_ot_fixed_rate,
                    config.weekend_ot_multiplier,
                ),
            )
        elif config.pay_type == PayType.DAILY:
            hourly = calc.daily_rate(config) / calc.HOURS_PER_DAY
            rates = EffectiveRates(
                regular=hourly,
                weekday_ot=hourly * (config.weekday_ot_multiplier or calc.DEFAULT_MULTIPLIER),
                weekend_ot=hourly * (config.weekend_ot_multiplier or calc.DEFAULT_MULTIPLIER),
            )
        else:
            rates = calc.resolve_rates(config)
        return rates

    @staticmethod
    def effective_rates(config: PayConfig) -> EffectiveRates:
        """Pricing rates rounded to 4 decimals, as recorded on the ledger for audit."""
        calc = BucketCalculator
        rates = calc.pricing_rates(config)
        return EffectiveRates(
            regular=calc.round_rate(rates.regular),
            weekday_ot=calc.round_rate(rates.weekday_ot),
            weekend_ot=calc.round_rate(rates.weekend_ot),
        )

    @staticmethod
    def _price(minutes: int, config: PayConfig, rate: Decimal, multiplier: Decimal | None) -> Decimal:
        """Pay for one bucket before rounding."""
        if config.pay_type == PayType.DAILY:
            days = Decimal(minutes) / BucketCalculator.MINUTES_PER_DAY
            factor = Decimal("1") if multiplier is None else multiplier
            return days * BucketCalculator.daily_rate(config) * factor
        return Decimal(minutes) / Decimal("60") * rate

    @staticmethod
    def calculate(
        work_date: date,
        spans: Iterable[WorkedSpan],
        config: PayConfig,
    ) -> BucketResult:
        """Split worked spans into buckets and calculate pay.

        Args:
            work_date: The calendar date being calculated
            spans: Worked spans on that date
            config: The employee's pay configuration

        Returns:
            Minutes and pay per bucket

        Raises:
            ValueError: If a configured time of day is malformed
        """
        calc = BucketCalculator
        is_weekend = is_weekend_day(work_date, config.weekend_days)

        work_start = parse_time_on_date(work_date, config.workday_start)
        ot_start = parse_time_on_date(work_date, config.ot_start_time)
        day_end = end_of_day(work_date)

        regular_minutes = 0
        weekday_ot_minutes = 0
        weekend_ot_minutes = 0

        for span in spans:
            worked = (span.start, span.end)
            if is_weekend:
                weekend_ot_minutes += calc.overlap_minutes(worked, worked)
            else:
                regular_minutes += calc.overlap_minutes(worked, (work_start, ot_start))
                weekday_ot_minutes += calc.overlap_minutes(worked, (ot_start, day_end))

        rates = calc.pricing_rates(config)
        daily_ot = config.pay_type == PayType.DAILY
        regular_pay = calc.round_to_cents(
            calc._price(regular_minutes, config, rates.regular, None)
        )
        weekday_ot_pay = calc.round_to_cents(
            calc._price(
                weekday_ot_minutes,
                config,
                rates.weekday_ot,
                (config.weekday_ot_multiplier or calc.DEFAULT_MULTIPLIER) if daily_ot else None,
            )
        )
        weekend_ot_pay = calc.round_to_cents(
            calc._price(
                weekend_ot_minutes,
                config,
                rates.weekend_ot,
                (config.weekend_ot_multiplier or calc.DEFAULT_MULTIPLIER) if daily_ot else None,
            )
        )

        return BucketResult(
            regular_minutes=regular_minutes,
            weekday_ot_minutes=weekday_ot_minutes,
            weekend_ot_minutes=weekend_ot_minutes,
            regular_pay=regular_pay,
            weekday_ot_pay=weekday_ot_pay,
            weekend_ot_pay=weekend_ot_pay,
            total_pay=regular_pay + weekday_ot_pay + weekend_ot_pay,
        )

    @staticmethod
    def validate_config(config: PayConfig) -> ValidationResult:
        """Validate a pay configuration without modifying it.

        Returns a result with every rule violation (empty if valid).
        """
        errors: list[str] = []

        if config.regular_hourly_rate is None or config.regular_hourly_rate <= 0:
            errors.append("Regular hourly rate must be greater than 0")

        if config.weekday_ot_rate_type == RateType.FIXED:
            if not config.weekday_ot_fixed_rate or config.weekday_ot_fixed_rate <= 0:
                errors.append('Weekday OT rate must be specified when rate type is "fixed"')
        elif not config.weekday_ot_multiplier or config.weekday_ot_multiplier <= 0:
            errors.append('Weekday OT multiplier must be specified when rate type is "multiplier"')

        if config.weekend_ot_rate_type == RateType.FIXED:
            if not config.weekend_ot_fixed_rate or config.weekend_ot_fixed_rate <= 0:
                errors.append('Weekend OT rate must be specified when rate type is "fixed"')
        elif not config.weekend_ot_multiplier or config.weekend_ot_multiplier <= 0:
            errors.append('Weekend OT multiplier must be specified when rate type is "multiplier"')

        if not config.weekend_days:
            errors.append("Weekend days must be specified")

        return ValidationResult(valid=not errors, errors=errors)
