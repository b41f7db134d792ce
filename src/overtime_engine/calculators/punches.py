"""Punch direction inference and span building.

Both rules are lossy and must stay stable: payroll discrepancies
are traced back to them.

Inference (only when the device tag is not a literal IN/OUT):
- 06:00-11:59 -> IN
- 14:00-20:59 -> OUT
- otherwise IN before noon, OUT from noon on

Span building (one envelope per day):
- the first punch inferred IN opens the span
- the last punch inferred OUT after it closes the span; if there is none, the
  chronologically last punch after the opener closes it, whatever its type
- lunch breaks and other inner cycles are not split out
"""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from overtime_engine.calculators.calendar import minutes_between
from overtime_engine.calculators.types import (
    DaySpans,
    InferredPunch,
    PunchRecord,
    PunchType,
    WorkedSpan,
)


def infer_punch_type(timestamp: datetime, raw_mode: str | int | None) -> PunchType:
    """Resolve the direction of a punch whose device tag may be unreliable."""
    if raw_mode is not None:
        tag = str(raw_mode).strip().upper()
        if tag == PunchType.IN.value:
            return PunchType.IN
        if tag == PunchType.OUT.value:
            return PunchType.OUT

    hour = timestamp.hour
    if 6 <= hour < 12:
        return PunchType.IN
    if 14 <= hour <= 20:
        return PunchType.OUT
    return PunchType.IN if hour < 12 else PunchType.OUT


def infer_punches(punches: Iterable[PunchRecord]) -> list[InferredPunch]:
    """Sort punches ascending and infer each direction."""
    ordered = sorted(punches, key=lambda p: p.timestamp)
    return [
        InferredPunch(timestamp=p.timestamp, punch_type=infer_punch_type(p.timestamp, p.raw_mode))
        for p in ordered
    ]


def build_day_spans(punches: Iterable[PunchRecord]) -> DaySpans:
    """Reduce one employee-day of punches to at most one worked span."""
    inferred = infer_punches(punches)
    if not inferred:
        return DaySpans()

    first_in_index = next(
        (i for i, p in enumerate(inferred) if p.punch_type == PunchType.IN),
        None,
    )
    if first_in_index is None:
        # Nothing usable; a lone punch is still kept for the record
        if len(inferred) == 1:
            return DaySpans(first_punch_in=inferred[0].timestamp)
        return DaySpans()

    first_in = inferred[first_in_index].timestamp
    after = [p for p in inferred[first_in_index + 1:] if p.timestamp > first_in]
    if not after:
        return DaySpans(first_punch_in=first_in)

    outs = [p for p in after if p.punch_type == PunchType.OUT]
    last_out = (outs[-1] if outs else after[-1]).timestamp

    spans: list[WorkedSpan] = []
    if last_out > first_in:
        spans.append(
            WorkedSpan(
                start=first_in,
                end=last_out,
                duration_minutes=minutes_between(first_in, last_out),
            )
        )
    return DaySpans(spans=spans, first_punch_in=first_in, last_punch_out=last_out)
