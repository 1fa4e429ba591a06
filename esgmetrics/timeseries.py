"""Calendar bucketing of dated rows into dense month and quarter series."""

from dataclasses import dataclass
from datetime import date, datetime, tzinfo
from typing import Any, Callable, Iterable, List, Optional, Sequence, Tuple, TypeVar

from .aggregation import coerce_measure

T = TypeVar("T")

Month = Tuple[int, int]


@dataclass(frozen=True)
class MonthBucket:
    year: int
    month: int
    count: int
    total: float

    @property
    def key(self) -> str:
        return month_key(self.year, self.month)


@dataclass(frozen=True)
class QuarterBucket:
    year: int
    quarter: int
    count: int
    total: float

    @property
    def key(self) -> str:
        return f"{self.year:04d}-Q{self.quarter}"


def month_key(year: int, month: int) -> str:
    return f"{year:04d}-{month:02d}"


def to_reporting_date(value: Optional[Any], tz: Optional[tzinfo] = None) -> Optional[date]:
    """
    Resolve a date or datetime to a calendar date in the reporting timezone.

    Aware datetimes are converted to ``tz``; naive datetimes are taken to be
    in the reporting timezone already.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        if value.tzinfo is not None and tz is not None:
            value = value.astimezone(tz)
        return value.date()
    if isinstance(value, date):
        return value
    raise TypeError(f"expected date or datetime, got {type(value).__name__}")


def shift_month(year: int, month: int, offset: int) -> Month:
    """Move ``offset`` months from (year, month), wrapping across years."""
    index = year * 12 + (month - 1) + offset
    return index // 12, index % 12 + 1


def trailing_months(reference: Any, count: int, tz: Optional[tzinfo] = None) -> List[Month]:
    """Return ``count`` months ending at the reference month, oldest first."""
    if count <= 0:
        return []
    ref = to_reporting_date(reference, tz)
    return [shift_month(ref.year, ref.month, -offset) for offset in range(count - 1, -1, -1)]


def calendar_months(year: int) -> List[Month]:
    return [(year, month) for month in range(1, 13)]


def months_between(start: Any, end: Any, tz: Optional[tzinfo] = None) -> List[Month]:
    """Every calendar month touched by the closed period [start, end]."""
    first = to_reporting_date(start, tz)
    last = to_reporting_date(end, tz)
    if first > last:
        return []
    span = (last.year - first.year) * 12 + (last.month - first.month)
    return [shift_month(first.year, first.month, offset) for offset in range(span + 1)]


def group_by_month(
    rows: Iterable[T],
    date_of: Callable[[T], Any],
    months: Sequence[Month],
    tz: Optional[tzinfo] = None,
) -> List[Tuple[int, int, List[T]]]:
    """
    Split rows into the given months.

    Every requested month is present in the output, in the order given, even
    when no row falls into it. Rows without a date or outside the months are
    left out.
    """
    buckets = {month: [] for month in months}
    for row in rows:
        day = to_reporting_date(date_of(row), tz)
        if day is None:
            continue
        bucket = buckets.get((day.year, day.month))
        if bucket is not None:
            bucket.append(row)
    return [(year, month, buckets[(year, month)]) for year, month in months]


def bucket_by_month(
    rows: Iterable[T],
    date_of: Callable[[T], Any],
    months: Sequence[Month],
    measure_of: Optional[Callable[[T], Any]] = None,
    tz: Optional[tzinfo] = None,
) -> List[MonthBucket]:
    """Count (and optionally sum a measure of) rows per month, densely."""
    return [
        MonthBucket(year=year, month=month, count=len(members), total=_total(members, measure_of))
        for year, month, members in group_by_month(rows, date_of, months, tz)
    ]


def bucket_by_quarter(
    rows: Iterable[T],
    date_of: Callable[[T], Any],
    year: int,
    measure_of: Optional[Callable[[T], Any]] = None,
    tz: Optional[tzinfo] = None,
) -> List[QuarterBucket]:
    """Four calendar quarters of ``year``, built from its monthly buckets."""
    monthly = bucket_by_month(rows, date_of, calendar_months(year), measure_of, tz)
    quarters = []
    for quarter in range(4):
        members = monthly[quarter * 3:quarter * 3 + 3]
        quarters.append(
            QuarterBucket(
                year=year,
                quarter=quarter + 1,
                count=sum(bucket.count for bucket in members),
                total=sum(bucket.total for bucket in members),
            )
        )
    return quarters


def _total(rows: Sequence[T], measure_of: Optional[Callable[[T], Any]]) -> float:
    if measure_of is None:
        return 0.0
    return sum(coerce_measure(measure_of(row)) or 0.0 for row in rows)


def elapsed_days(start: datetime, end: datetime) -> float:
    """Days from ``start`` to ``end``, never negative; naive and aware values are compared by wall time."""
    if start.tzinfo is None and end.tzinfo is not None:
        end = end.replace(tzinfo=None)
    elif start.tzinfo is not None and end.tzinfo is None:
        start = start.replace(tzinfo=None)
    return max((end - start).total_seconds() / 86400, 0.0)
