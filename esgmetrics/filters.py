"""Report filters applied before aggregation."""

from dataclasses import dataclass
from datetime import date
from typing import Any, Callable, Dict, Iterable, List, Optional, TypeVar

from .aggregation import category_key
from .errors import InvalidFilterError
from .timeseries import to_reporting_date

T = TypeVar("T")


@dataclass(frozen=True)
class ReportFilters:
    """
    Optional exact-match and range predicates.

    ``location``, ``department`` and ``position`` match descriptive attributes
    exactly, so passing the unspecified label selects rows that lack them.
    The date range is inclusive and applies to rows; the measure range is
    inclusive and applies to rolled-up entity totals.
    """

    location: Optional[str] = None
    department: Optional[str] = None
    position: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    min_measure: Optional[float] = None
    max_measure: Optional[float] = None

    def __post_init__(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise InvalidFilterError(f"start_date {self.start_date} is after end_date {self.end_date}")
        if (
            self.min_measure is not None
            and self.max_measure is not None
            and self.min_measure > self.max_measure
        ):
            raise InvalidFilterError(f"min_measure {self.min_measure} is above max_measure {self.max_measure}")

    def attribute_criteria(self) -> Dict[str, str]:
        criteria = {
            "location": self.location,
            "department": self.department,
            "position": self.position,
        }
        return {name: value for name, value in criteria.items() if value is not None}

    def matches_date(self, value: Any, tz=None) -> bool:
        if self.start_date is None and self.end_date is None:
            return True
        day = to_reporting_date(value, tz)
        if day is None:
            return False
        if self.start_date is not None and day < self.start_date:
            return False
        if self.end_date is not None and day > self.end_date:
            return False
        return True

    def matches_attributes(self, attributes_of: Callable[[str], Optional[str]]) -> bool:
        return all(
            category_key(attributes_of(name)) == expected
            for name, expected in self.attribute_criteria().items()
        )

    def matches_measure(self, value: float) -> bool:
        if self.min_measure is not None and value < self.min_measure:
            return False
        if self.max_measure is not None and value > self.max_measure:
            return False
        return True


def filter_by_date(rows: Iterable[T], date_of: Callable[[T], Any], filters: ReportFilters, tz=None) -> List[T]:
    return [row for row in rows if filters.matches_date(date_of(row), tz)]
