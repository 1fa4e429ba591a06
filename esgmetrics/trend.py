"""Period-over-period comparison and benchmark classification."""

from dataclasses import dataclass
from datetime import date, timedelta
from typing import Tuple

from .errors import ConfigurationError, InvalidPeriodError


def percent_change(current: float, previous: float) -> float:
    """
    Signed percentage change from ``previous`` to ``current``.

    Without a positive baseline the change is +100 when something happened in
    the current period and 0 otherwise (a product rule, not a derived
    quantity).
    """
    if previous > 0:
        return ((current - previous) / previous) * 100
    return 100.0 if current > 0 else 0.0


def trend_direction(current: float, previous: float) -> str:
    if current > previous:
        return "up"
    if current < previous:
        return "down"
    return "stable"


def previous_period(start_date: date, end_date: date) -> Tuple[date, date]:
    """
    Return the window of the same length ending right before ``start_date``.

    The returned end is exclusive: rows dated ``start_date`` belong to the
    current period only.
    """
    if start_date > end_date:
        raise InvalidPeriodError(f"period start {start_date} is after its end {end_date}")
    length = (end_date - start_date).days
    return start_date - timedelta(days=length), start_date


@dataclass(frozen=True)
class BenchmarkTiers:
    """
    Ordered performance tiers relative to a benchmark.

    A value lands in the first tier whose multiplier times the benchmark it
    reaches; below every multiplier it gets ``below_label``.
    """

    excellent: float = 1.2
    good: float = 1.0
    attention: float = 0.6
    excellent_label: str = "Excelente"
    good_label: str = "Bom"
    attention_label: str = "Atenção"
    below_label: str = "Crítico"

    def __post_init__(self):
        if not self.excellent >= self.good >= self.attention >= 0:
            raise ConfigurationError(
                "benchmark tier multipliers must be descending and non-negative: "
                f"{self.excellent}, {self.good}, {self.attention}"
            )

    @property
    def labels(self) -> Tuple[str, str, str, str]:
        return (self.excellent_label, self.good_label, self.attention_label, self.below_label)


def classify(value: float, benchmark: float, tiers: BenchmarkTiers = BenchmarkTiers()) -> str:
    """Classify ``value`` against ``benchmark`` into one of the tier labels."""
    if value >= benchmark * tiers.excellent:
        return tiers.excellent_label
    if value >= benchmark * tiers.good:
        return tiers.good_label
    if value >= benchmark * tiers.attention:
        return tiers.attention_label
    return tiers.below_label


def performance_vs_benchmark(value: float, benchmark: float) -> float:
    """How far above (+) or below (-) the benchmark a value is, in percent."""
    if benchmark <= 0:
        return 0.0
    return ((value / benchmark) - 1) * 100
