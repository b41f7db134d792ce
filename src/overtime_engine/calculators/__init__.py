"""Pure overtime calculation pipeline."""

from overtime_engine.calculators.bucket_calculator import BucketCalculator
from overtime_engine.calculators.punches import build_day_spans, infer_punch_type
from overtime_engine.calculators.types import (
    BucketResult,
    DaySpans,
    EffectiveRates,
    OtEntryMode,
    PayConfig,
    PayType,
    PunchRecord,
    PunchType,
    RateType,
    ValidationResult,
    WorkedSpan,
)

__all__ = [
    "BucketCalculator",
    "BucketResult",
    "DaySpans",
    "EffectiveRates",
    "OtEntryMode",
    "PayConfig",
    "PayType",
    "PunchRecord",
    "PunchType",
    "RateType",
    "ValidationResult",
    "WorkedSpan",
    "build_day_spans",
    "infer_punch_type",
]
