"""Entity roll-up and multi-dimension grouped reports."""

from dataclasses import dataclass, field
from typing import (
    Any,
    Callable,
    Dict,
    Iterable,
    List,
    Mapping,
    Optional,
    Sequence,
    TypeVar,
)

from .aggregation import category_key, coerce_measure, round_half_up, safe_average
from .models import UNSPECIFIED

T = TypeVar("T")


@dataclass(frozen=True)
class EntityRollup:
    """All transaction rows of one entity folded into a single record."""

    entity_id: str
    total: float
    record_count: int
    missing_count: int = 0
    last_date: Optional[Any] = None
    attributes: Mapping[str, Optional[str]] = field(default_factory=dict)

    def attribute(self, name: str) -> Optional[str]:
        return self.attributes.get(name)


@dataclass(frozen=True)
class GroupTotal:
    key: str
    total: float
    count: int

    @property
    def average(self) -> float:
        return safe_average(self.total, self.count)


@dataclass(frozen=True)
class GroupedReport:
    """One sorted table per dimension plus the grand total they all add up to."""

    total: float
    record_count: int
    groups: Mapping[str, Sequence[GroupTotal]]

    def to_dict(self) -> Dict[str, Any]:
        # Averages are presented with one decimal, half-up.
        return {
            "total": self.total,
            "record_count": self.record_count,
            "average": round_half_up(safe_average(self.total, self.record_count)),
            "groups": {
                dimension: [
                    {
                        "key": group.key,
                        "total": group.total,
                        "average": round_half_up(group.average),
                        "count": group.count,
                    }
                    for group in rows
                ]
                for dimension, rows in self.groups.items()
            },
        }


def rollup_entities(
    rows: Iterable[T],
    entity_of: Callable[[T], str],
    measure_of: Callable[[T], Any],
    attributes_of: Optional[Callable[[T], Mapping[str, Optional[str]]]] = None,
    date_of: Optional[Callable[[T], Any]] = None,
    seeds: Optional[Mapping[str, Mapping[str, Optional[str]]]] = None,
) -> List[EntityRollup]:
    """
    Fold transaction-like rows into one record per entity.

    Measures are summed (missing ones count as zero and are tallied). The
    descriptive attributes start from ``seeds`` and are overwritten, field by
    field, by non-empty values of the entity's rows from oldest to newest,
    so the most recent description wins. Seeded entities without rows are
    kept with a zero total. Output follows seed order, then first-seen order.
    """
    states: Dict[str, Dict[str, Any]] = {}
    for entity_id, attributes in (seeds or {}).items():
        states[entity_id] = _new_state(attributes)

    indexed = list(enumerate(rows))
    if date_of is not None:
        # Undated rows sort first so any dated row overrides them.
        indexed.sort(key=lambda item: _date_sort_key(date_of(item[1]), item[0]))

    for _, row in indexed:
        entity_id = entity_of(row)
        state = states.get(entity_id)
        if state is None:
            state = states[entity_id] = _new_state({})

        value = coerce_measure(measure_of(row))
        if value is None:
            state["missing"] += 1
        else:
            state["total"] += value
        state["count"] += 1

        if date_of is not None:
            row_date = date_of(row)
            if row_date is not None:
                state["last_date"] = row_date
        if attributes_of is not None:
            for name, attr_value in attributes_of(row).items():
                if attr_value is not None and str(attr_value).strip():
                    state["attributes"][name] = attr_value

    return [
        EntityRollup(
            entity_id=entity_id,
            total=state["total"],
            record_count=state["count"],
            missing_count=state["missing"],
            last_date=state["last_date"],
            attributes=dict(state["attributes"]),
        )
        for entity_id, state in states.items()
    ]


def group_totals(
    items: Iterable[T],
    key_of: Callable[[T], Optional[str]],
    measure_of: Callable[[T], Any],
    default: str = UNSPECIFIED,
) -> List[GroupTotal]:
    """Sum a measure per key, sorted by total descending (ties keep first-seen order)."""
    totals: Dict[str, List[float]] = {}
    for item in items:
        key = category_key(key_of(item), default)
        bucket = totals.setdefault(key, [0.0, 0])
        bucket[0] += coerce_measure(measure_of(item)) or 0.0
        bucket[1] += 1

    groups = [GroupTotal(key=key, total=total, count=int(count)) for key, (total, count) in totals.items()]
    groups.sort(key=lambda group: group.total, reverse=True)
    return groups


def build_grouped_report(
    items: Sequence[T],
    dimensions: Mapping[str, Callable[[T], Optional[str]]],
    measure_of: Callable[[T], Any],
    default: str = UNSPECIFIED,
) -> GroupedReport:
    """Group the same items by several independent dimensions."""
    items = list(items)
    grand_total = sum(coerce_measure(measure_of(item)) or 0.0 for item in items)
    return GroupedReport(
        total=grand_total,
        record_count=len(items),
        groups={
            name: group_totals(items, key_of, measure_of, default)
            for name, key_of in dimensions.items()
        },
    )


def _new_state(attributes: Mapping[str, Optional[str]]) -> Dict[str, Any]:
    return {
        "total": 0.0,
        "count": 0,
        "missing": 0,
        "last_date": None,
        "attributes": dict(attributes),
    }


def _date_sort_key(value: Any, index: int):
    if value is None:
        return (0, "", index)
    return (1, value.isoformat(), index)
