"""
Reporting Service - statistics over leftover preparations.

Pure functions over an already-fetched collection: resolve a time window,
keep the records created inside it, then derive status counters, a daily
trend and a per-drug-family distribution for the dashboard.
"""

from __future__ import annotations
import calendar
from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from decimal import ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Dict, Iterable, List, Optional, Union

import pandas as pd

from oncogest_core.models import LeftoverPreparation

TOP_FAMILIES = 10
CUSTOM_DEFAULT_DAYS = 30
MONDAY = 0
ONE_DECIMAL = Decimal("0.1")


class TimeWindow(Enum):
    WEEK = "week"
    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"
    CUSTOM = "custom"


# =============================================================================
# DATA CLASSES
# =============================================================================

@dataclass(frozen=True)
class DateWindow:
    """Inclusive [start, end] interval on created_at."""
    selector: TimeWindow
    start: datetime
    end: datetime

    def contains(self, moment: Optional[datetime]) -> bool:
        return moment is not None and self.start <= moment <= self.end


@dataclass
class StatusCounts:
    total: int = 0
    used: int = 0
    resolved: int = 0
    expired: int = 0
    pending: int = 0

    @property
    def utilized(self) -> int:
        return self.used

    def percentage(self, value: int) -> float:
        """Share of total as a percentage with one decimal, halves rounded up; 0.0 when empty."""
        if self.total == 0:
            return 0.0
        share = Decimal(value * 100) / Decimal(self.total)
        return float(share.quantize(ONE_DECIMAL, rounding=ROUND_HALF_UP))

    @property
    def utilization_rate(self) -> float:
        return self.percentage(self.used)


@dataclass
class TrendBucket:
    date: str
    total: int
    used: int
    resolved: int


@dataclass
class FamilyBucket:
    name: str
    total: int
    used: int


@dataclass
class PreparationReport:
    """Everything the statistics dashboard renders for one window."""
    window: DateWindow
    counts: StatusCounts
    records: List[LeftoverPreparation] = field(default_factory=list)
    trend: List[TrendBucket] = field(default_factory=list)
    distribution: List[FamilyBucket] = field(default_factory=list)

    @property
    def has_data(self) -> bool:
        return self.counts.total > 0

    def status_breakdown(self) -> List[Dict[str, Union[str, int]]]:
        """Non-zero status slices for a pie chart."""
        slices = [
            ("Utilized", self.counts.utilized),
            ("Resolved", self.counts.resolved),
            ("Pending", self.counts.pending),
            ("Expired", self.counts.expired),
        ]
        return [{"name": name, "value": value} for name, value in slices if value > 0]


# =============================================================================
# WINDOW RESOLUTION
# =============================================================================

def _start_of_day(day: date) -> datetime:
    return datetime.combine(day, time.min)


def _end_of_day(day: date) -> datetime:
    return datetime.combine(day, time.max)


def _as_start(value: Union[date, datetime]) -> datetime:
    return value if isinstance(value, datetime) else _start_of_day(value)


def _as_end(value: Union[date, datetime]) -> datetime:
    # A bare calendar date covers the whole day
    return value if isinstance(value, datetime) else _end_of_day(value)


def resolve_window(
    selector: Union[TimeWindow, str],
    now: Optional[datetime] = None,
    custom_start: Optional[Union[date, datetime]] = None,
    custom_end: Optional[Union[date, datetime]] = None,
    week_starts_on: int = MONDAY,
) -> DateWindow:
    """
    Turn a window selector into concrete bounds relative to now.

    Args:
        selector: week | month | quarter | year | custom
        now: Reference moment (default: datetime.now())
        custom_start: Start for the custom window
        custom_end: End for the custom window
        week_starts_on: First weekday of the week (0 = Monday)
    """
    selector = TimeWindow(selector)
    now = now or datetime.now()
    today = now.date()

    if selector is TimeWindow.WEEK:
        first = today - timedelta(days=(today.weekday() - week_starts_on) % 7)
        return DateWindow(selector, _start_of_day(first), _end_of_day(first + timedelta(days=6)))

    if selector is TimeWindow.MONTH:
        last_day = calendar.monthrange(today.year, today.month)[1]
        return DateWindow(
            selector,
            _start_of_day(today.replace(day=1)),
            _end_of_day(today.replace(day=last_day)),
        )

    if selector is TimeWindow.QUARTER:
        # Rolling three months, month arithmetic clamps the day
        start = (pd.Timestamp(now) - pd.DateOffset(months=3)).to_pydatetime()
        return DateWindow(selector, start, now)

    if selector is TimeWindow.YEAR:
        return DateWindow(
            selector,
            _start_of_day(date(today.year, 1, 1)),
            _end_of_day(date(today.year, 12, 31)),
        )

    # Each missing bound defaults on its own
    start = _as_start(custom_start) if custom_start else now - timedelta(days=CUSTOM_DEFAULT_DAYS)
    end = _as_end(custom_end) if custom_end else now
    return DateWindow(selector, start, end)


def filter_window(
    records: Iterable[LeftoverPreparation],
    window: DateWindow,
) -> List[LeftoverPreparation]:
    return [r for r in records if window.contains(r.created_at)]


# =============================================================================
# AGGREGATIONS
# =============================================================================

def compute_counts(
    records: List[LeftoverPreparation],
    today: Optional[date] = None,
) -> StatusCounts:
    """Status counters; expiry is compared by calendar date."""
    today = today or date.today()
    open_records = [r for r in records if not r.used and not r.resolved]

    return StatusCounts(
        total=len(records),
        used=sum(1 for r in records if r.used),
        resolved=sum(1 for r in records if r.resolved),
        expired=sum(1 for r in open_records if r.expiry_date is not None and r.expiry_date < today),
        pending=sum(1 for r in open_records if r.expiry_date is not None and r.expiry_date >= today),
    )


def _to_frame(records: List[LeftoverPreparation]) -> pd.DataFrame:
    return pd.DataFrame({
        "created_at": pd.to_datetime([r.created_at for r in records]),
        "family": [r.drug_family for r in records],
        "used": [bool(r.used) for r in records],
        "resolved": [bool(r.resolved) for r in records],
    })


def trend_projection(records: List[LeftoverPreparation]) -> List[TrendBucket]:
    """One bucket per calendar day of created_at, ascending."""
    if not records:
        return []

    df = _to_frame(records)
    df["date"] = df["created_at"].dt.strftime("%Y-%m-%d")
    daily = df.groupby("date", sort=True).agg(
        total=("used", "size"),
        used=("used", "sum"),
        resolved=("resolved", "sum"),
    )

    return [
        TrendBucket(date=day, total=int(row.total), used=int(row.used), resolved=int(row.resolved))
        for day, row in daily.iterrows()
    ]


def distribution_projection(
    records: List[LeftoverPreparation],
    top_n: int = TOP_FAMILIES,
) -> List[FamilyBucket]:
    """Totals per drug family, largest first; ties keep first-seen order."""
    if not records:
        return []

    df = _to_frame(records)
    families = (
        df.groupby("family", sort=False)
        .agg(total=("used", "size"), used=("used", "sum"))
        .sort_values("total", ascending=False, kind="mergesort")
        .head(top_n)
    )

    return [
        FamilyBucket(name=name, total=int(row.total), used=int(row.used))
        for name, row in families.iterrows()
    ]


def build_report(
    records: Iterable[LeftoverPreparation],
    selector: Union[TimeWindow, str] = TimeWindow.MONTH,
    now: Optional[datetime] = None,
    custom_start: Optional[Union[date, datetime]] = None,
    custom_end: Optional[Union[date, datetime]] = None,
) -> PreparationReport:
    """
    Build the full dashboard report for one window.

    Args:
        records: Complete preparation collection
        selector: Window selector
        now: Reference moment (default: datetime.now())
        custom_start: Start for the custom window
        custom_end: End for the custom window

    Returns:
        PreparationReport; an empty window yields zero counters and no buckets
    """
    now = now or datetime.now()
    window = resolve_window(selector, now, custom_start, custom_end)
    included = filter_window(records, window)

    return PreparationReport(
        window=window,
        counts=compute_counts(included, today=now.date()),
        records=included,
        trend=trend_projection(included),
        distribution=distribution_projection(included),
    )
