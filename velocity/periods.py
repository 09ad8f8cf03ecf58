"""
Reporting periods and hour bucketing.

Periods are indexed oldest-first: index 0 is the oldest week/month and the
last index is the current one. Every client carries one bucket per period.
"""

from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

import pandas as pd

from .records import PeriodDescriptor, RawTimeEntry

logger = logging.getLogger(__name__)


# =============================================================================
# PERIOD DESCRIPTORS
# =============================================================================

def _week_label(start: date, end: date) -> str:
    return f"{start:%b} {start.day} - {end:%b} {end.day}, {end.year}"

def _month_label(start: date, end: date) -> str:
    return f"{start:%B %Y}"

def _periods(freq: str, count: int, today: Optional[date], label) -> List[PeriodDescriptor]:
    if count < 1:
        raise ValueError(f"Period count must be positive, got {count}")
    end = pd.Timestamp(today or date.today())
    out: List[PeriodDescriptor] = []
    for i, p in enumerate(pd.period_range(end=end, periods=count, freq=freq)):
        start, stop = p.start_time.date(), p.end_time.date()
        out.append(PeriodDescriptor(period_index=i, from_date=start, to_date=stop, label=label(start, stop)))
    return out

def weekly_periods(count: int = 8, today: Optional[date] = None) -> List[PeriodDescriptor]:
    """Monday-Sunday weeks; the newest one is the week containing `today`."""
    return _periods("W-SUN", count, today, _week_label)

def monthly_periods(count: int = 6, today: Optional[date] = None) -> List[PeriodDescriptor]:
    """Calendar months; the newest one is the month containing `today`."""
    return _periods("M", count, today, _month_label)


def validate_periods(periods: Sequence[PeriodDescriptor]) -> None:
    """
    Raise ValueError unless periods are indexed 0..n-1, oldest first,
    contiguous and non-overlapping.
    """
    if not periods:
        raise ValueError("At least one period is required")
    for i, p in enumerate(periods):
        if p.period_index != i:
            raise ValueError(f"Period at position {i} has index {p.period_index}")
        if p.to_date < p.from_date:
            raise ValueError(f"Period {i} ends before it starts ({p.from_date} > {p.to_date})")
        if i and p.from_date != periods[i - 1].to_date + timedelta(days=1):
            raise ValueError(
                f"Period {i} starts {p.from_date}, expected {periods[i - 1].to_date + timedelta(days=1)}"
            )


# =============================================================================
# HOUR BUCKETS
# =============================================================================

def bucket_hours(
    entries: Iterable[Tuple[RawTimeEntry, str]],
    period_count: int,
) -> Tuple[Dict[str, List[float]], int]:
    """
    Sum hours per canonical client into `period_count` buckets.

    Hours for the same client and period accumulate across projects. Missing or
    negative hours count as zero. Entries whose period index falls outside the
    run are dropped and counted.

    Returns (buckets keyed by client in first-seen order, skipped entry count).
    """
    rows = [
        {"Client": name, "Period_Index": e.period_index, "Hours": e.total_hours}
        for e, name in entries
    ]
    if not rows:
        return {}, 0

    df = pd.DataFrame(rows)
    df["Hours"] = pd.to_numeric(df["Hours"], errors="coerce").fillna(0).clip(lower=0)
    idx = pd.to_numeric(df["Period_Index"], errors="coerce")

    in_range = idx.between(0, period_count - 1) & (idx == idx.round())
    skipped = int((~in_range).sum())
    if skipped:
        logger.warning("Skipped %d time entries outside periods 0..%d", skipped, period_count - 1)

    df = df.loc[in_range].copy()
    df["Period_Index"] = idx[in_range].astype(int)

    buckets: Dict[str, List[float]] = {name: [0.0] * period_count for name in pd.unique(df["Client"])}
    sums = df.groupby(["Client", "Period_Index"])["Hours"].sum()
    for (name, period_index), hours in sums.items():
        buckets[name][period_index] = float(hours)

    return buckets, skipped
