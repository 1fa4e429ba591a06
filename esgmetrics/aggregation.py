"""Metric aggregation primitives shared by every report."""

from dataclasses import dataclass
from decimal import ROUND_HALF_UP, Decimal
from math import isfinite
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .models import UNSPECIFIED

T = TypeVar("T")


@dataclass(frozen=True)
class MeasureSum:
    """Sum of a numeric measure plus how many rows lacked it."""

    total: float
    present: int
    missing: int

    @property
    def count(self) -> int:
        return self.present + self.missing

    @property
    def completeness_percent(self) -> float:
        return safe_rate(self.present, self.count)


def category_key(value: Optional[str], default: str = UNSPECIFIED) -> str:
    """Return a grouping key, mapping missing or blank values to ``default``."""
    if value is None:
        return default
    text = str(value).strip()
    return text if text else default


def coerce_measure(value: Any) -> Optional[float]:
    """Return ``value`` as a float, or None when it is not a usable number."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", "."))
        except ValueError:
            return None
    else:
        return None
    return number if isfinite(number) else None


def sum_measure(
    rows: Iterable[T],
    measure_of: Callable[[T], Any],
    zero_is_missing: bool = False,
) -> MeasureSum:
    """
    Sum a measure over rows.

    Missing or malformed values contribute zero to the total and are counted
    in ``missing``; they are never dropped from the row count. With
    ``zero_is_missing`` a recorded zero is treated as not filled in.
    """
    total = 0.0
    present = 0
    missing = 0
    for row in rows:
        value = coerce_measure(measure_of(row))
        if value is None or (zero_is_missing and value == 0):
            missing += 1
            continue
        total += value
        present += 1
    return MeasureSum(total=total, present=present, missing=missing)


def count_by(
    rows: Iterable[T],
    key_of: Callable[[T], Optional[str]],
    default: str = UNSPECIFIED,
) -> Dict[str, int]:
    """Count rows per category, keeping first-seen key order."""
    counts: Dict[str, int] = {}
    for row in rows:
        key = category_key(key_of(row), default)
        counts[key] = counts.get(key, 0) + 1
    return counts


def distribution(counts: Dict[str, int]) -> List[Dict[str, Any]]:
    """Turn a count mapping into chart-ready ``{"name", "value"}`` entries."""
    return [{"name": key, "value": value} for key, value in counts.items()]


def safe_rate(part: float, total: float) -> float:
    """Percentage of ``part`` in ``total``; 0 when there is no denominator."""
    return (part / total) * 100 if total else 0.0


def safe_average(total: float, count: int) -> float:
    return total / count if count > 0 else 0.0


def round_half_up(value: float, digits: int = 1) -> float:
    """Round like a presentation layer would (2.25 -> 2.3, -2.25 -> -2.3)."""
    quantum = Decimal(1).scaleb(-digits)
    return float(Decimal(str(value)).quantize(quantum, rounding=ROUND_HALF_UP))


def data_quality(completeness_percent: float) -> str:
    if completeness_percent >= 90:
        return "high"
    if completeness_percent >= 70:
        return "medium"
    return "low"
