"""Training hours analytics (GRI 404-1) and the grouped training hours report."""

from datetime import date, datetime, timezone, tzinfo
from typing import Dict, List, Optional, Sequence

from .aggregation import (
    data_quality,
    round_half_up,
    safe_average,
    safe_rate,
    sum_measure,
)
from .filters import ReportFilters, filter_by_date
from .grouping import EntityRollup, build_grouped_report, group_totals, rollup_entities
from .models import UNCATEGORIZED, UNSPECIFIED, Employee, TrainingRecord
from .timeseries import bucket_by_month, months_between
from .trend import BenchmarkTiers, classify, percent_change, performance_vs_benchmark

MALE_LABELS = {"masculino", "male", "m"}
FEMALE_LABELS = {"feminino", "female", "f"}

REPORT_DIMENSIONS = ("location", "department", "position")


def compute_training_hours_metrics(
    employees: Sequence[Employee],
    trainings: Sequence[TrainingRecord],
    previous_trainings: Sequence[TrainingRecord] = (),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    benchmark: float = 40.0,
    tiers: BenchmarkTiers = BenchmarkTiers(),
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    top_n: int = 10,
) -> Dict:
    """
    Compute training hours per employee for a period.

    ``employees`` is the active roster and the denominator of every per
    employee average. Trainings of people outside the roster still count in
    the totals and show up as their own entities in the breakdowns, so each
    breakdown adds up to ``total_training_hours``.
    """
    trainings = list(trainings)
    total_employees = len(employees)

    # Sessions recorded without a positive duration are incomplete data.
    hours = sum_measure(trainings, _hours, zero_is_missing=True)
    total_hours = hours.total
    avg_hours = safe_average(total_hours, total_employees)
    completeness = hours.completeness_percent
    quality = data_quality(completeness)

    rollups = _rollup_employees(employees, trainings)
    roster_ids = {employee.id for employee in employees}
    roster_rollups = [rollup for rollup in rollups if rollup.entity_id in roster_ids]

    by_gender = _gender_breakdown(rollups)
    by_department = [
        {
            "department": group.key,
            "total_hours": group.total,
            "avg_hours": round_half_up(group.average),
            "employee_count": group.count,
            "percentage_of_total": round_half_up(safe_rate(group.total, total_hours)),
        }
        for group in group_totals(rollups, lambda r: r.attribute("department"), _rollup_total)
    ]
    by_role = [
        {
            "role": group.key,
            "total_hours": group.total,
            "avg_hours": round_half_up(group.average),
            "employee_count": group.count,
        }
        for group in group_totals(rollups, lambda r: r.attribute("position"), _rollup_total)
    ]
    by_category = [
        {
            "category": group.key,
            "total_hours": group.total,
            "training_count": group.count,
            "avg_hours_per_training": round_half_up(group.average),
            "percentage_of_total": round_half_up(safe_rate(group.total, total_hours)),
        }
        for group in group_totals(trainings, lambda t: t.category, _hours, default=UNCATEGORIZED)
    ]

    mandatory = sum_measure((t for t in trainings if t.is_mandatory), _hours)
    optional = sum_measure((t for t in trainings if not t.is_mandatory), _hours)

    monthly_trend = []
    if start_date is not None and end_date is not None:
        for bucket in bucket_by_month(
            trainings, lambda t: t.completion_date, months_between(start_date, end_date, tz), _hours, tz
        ):
            monthly_trend.append(
                {
                    "month": bucket.key,
                    "total_hours": bucket.total,
                    "avg_hours_per_employee": round_half_up(safe_average(bucket.total, total_employees)),
                    "trainings_completed": bucket.count,
                }
            )

    previous_total = sum_measure(previous_trainings, _hours).total
    previous_avg = safe_average(previous_total, total_employees)
    change = percent_change(avg_hours, previous_avg)

    without_training = [rollup for rollup in roster_rollups if rollup.record_count == 0]
    ranked = sorted(roster_rollups, key=_rollup_total, reverse=True)
    trained = [rollup for rollup in ranked if rollup.total > 0]

    missing_data: List[str] = []
    recommendations: List[str] = []
    if quality == "low":
        missing_data.append("Duração de treinamentos incompleta (<70%)")
        recommendations.append("Atualizar campo duration_hours em todos os treinamentos")
    if by_gender["men"]["employee_count"] == 0 and by_gender["women"]["employee_count"] == 0:
        missing_data.append("Dados de gênero ausentes")
        recommendations.append("Preencher campo gender na tabela employees")
    if len(by_department) == 1 and by_department[0]["department"] == UNSPECIFIED:
        missing_data.append("Departamentos não categorizados")
        recommendations.append("Atualizar campo department para todos os funcionários")

    calculated_at = now or datetime.now(timezone.utc)

    return {
        "period": {
            "start": start_date.isoformat() if start_date else None,
            "end": end_date.isoformat() if end_date else None,
        },
        "total_training_hours": total_hours,
        "total_employees": total_employees,
        "average_hours_per_employee": round_half_up(avg_hours),
        "data_quality": quality,
        "trainings_with_duration": hours.present,
        "trainings_without_duration": hours.missing,
        "data_completeness_percent": round_half_up(completeness),
        "by_gender": by_gender,
        "by_department": by_department,
        "by_category": by_category,
        "by_role": by_role,
        "mandatory_vs_optional": {
            "mandatory": {
                "total_hours": mandatory.total,
                "training_count": mandatory.count,
                "percentage": round_half_up(safe_rate(mandatory.total, total_hours)),
            },
            "optional": {
                "total_hours": optional.total,
                "training_count": optional.count,
                "percentage": round_half_up(safe_rate(optional.total, total_hours)),
            },
        },
        "monthly_trend": monthly_trend,
        "comparison": {
            "previous_period_avg": round_half_up(previous_avg),
            "change_percentage": round_half_up(change),
            "is_improving": change > 0,
        },
        "employees_without_training": {
            "count": len(without_training),
            "percentage": round_half_up(safe_rate(len(without_training), total_employees)),
            "employee_list": [
                {
                    "id": rollup.entity_id,
                    "name": rollup.attribute("name"),
                    "department": rollup.attribute("department") or UNSPECIFIED,
                    "hire_date": rollup.attribute("hire_date"),
                }
                for rollup in without_training[:top_n]
            ],
        },
        "top_employees": [_employee_summary(rollup) for rollup in ranked[:top_n]],
        "bottom_employees": [_employee_summary(rollup) for rollup in reversed(trained[-top_n:])],
        "performance_classification": classify(avg_hours, benchmark, tiers),
        "sector_benchmark": benchmark,
        "performance_vs_benchmark": round_half_up(performance_vs_benchmark(avg_hours, benchmark)),
        "gri_404_1_compliance": {
            "is_compliant": not missing_data,
            "missing_data": missing_data,
            "recommendations": recommendations,
        },
        "calculation_date": calculated_at.isoformat(),
    }


def build_training_hours_report(
    employees: Sequence[Employee],
    trainings: Sequence[TrainingRecord],
    filters: Optional[ReportFilters] = None,
    tz: Optional[tzinfo] = None,
) -> Dict:
    """
    Training hours per employee grouped by location, department and position.

    Sessions are filtered by date first, folded into one record per employee,
    then narrowed by the attribute and hours filters before grouping.
    """
    filters = filters or ReportFilters()
    sessions = filter_by_date(trainings, lambda t: t.completion_date, filters, tz)
    rollups = _rollup_employees(employees, sessions)
    selected = [
        rollup
        for rollup in rollups
        if filters.matches_attributes(rollup.attribute) and filters.matches_measure(rollup.total)
    ]

    report = build_grouped_report(
        selected,
        {name: _attribute_getter(name) for name in REPORT_DIMENSIONS},
        _rollup_total,
    ).to_dict()

    incomplete = sum(rollup.missing_count for rollup in selected)
    return {
        "filters": {
            "location": filters.location,
            "department": filters.department,
            "position": filters.position,
            "start_date": filters.start_date.isoformat() if filters.start_date else None,
            "end_date": filters.end_date.isoformat() if filters.end_date else None,
            "min_hours": filters.min_measure,
            "max_hours": filters.max_measure,
        },
        "summary": {
            "total_hours": report["total"],
            "employee_count": report["record_count"],
            "average_hours": report["average"],
            "sessions": sum(rollup.record_count for rollup in selected),
            "sessions_without_duration": incomplete,
        },
        "by_location": report["groups"]["location"],
        "by_department": report["groups"]["department"],
        "by_position": report["groups"]["position"],
        "employees": [
            {
                "id": rollup.entity_id,
                "name": rollup.attribute("name") or UNSPECIFIED,
                "location": rollup.attribute("location") or UNSPECIFIED,
                "department": rollup.attribute("department") or UNSPECIFIED,
                "position": rollup.attribute("position") or UNSPECIFIED,
                "total_hours": rollup.total,
                "sessions": rollup.record_count,
                "last_training": rollup.last_date.isoformat() if rollup.last_date else None,
            }
            for rollup in sorted(selected, key=_rollup_total, reverse=True)
        ],
    }


def normalize_gender(value: Optional[str]) -> str:
    gender = (value or "").strip().lower()
    if gender in MALE_LABELS:
        return "men"
    if gender in FEMALE_LABELS:
        return "women"
    return "other"


def _hours(training: TrainingRecord):
    return training.duration_hours


def _rollup_total(rollup: EntityRollup) -> float:
    return rollup.total


def _attribute_getter(name: str):
    return lambda rollup: rollup.attribute(name)


def _rollup_employees(
    employees: Sequence[Employee],
    trainings: Sequence[TrainingRecord],
) -> List[EntityRollup]:
    seeds = {
        employee.id: {
            "name": employee.full_name,
            "gender": employee.gender,
            "location": employee.location,
            "department": employee.department,
            "position": employee.position,
            "hire_date": employee.hire_date.isoformat() if employee.hire_date else None,
        }
        for employee in employees
    }
    return rollup_entities(
        trainings,
        entity_of=lambda t: t.employee_id,
        measure_of=_hours,
        attributes_of=lambda t: {
            "name": t.employee_name,
            "location": t.location,
            "department": t.department,
            "position": t.position,
        },
        date_of=lambda t: t.completion_date,
        seeds=seeds,
    )


def _gender_breakdown(rollups: Sequence[EntityRollup]) -> Dict[str, Dict]:
    stats = {label: {"total_hours": 0.0, "employee_count": 0} for label in ("men", "women", "other")}
    for rollup in rollups:
        bucket = stats[normalize_gender(rollup.attribute("gender"))]
        bucket["total_hours"] += rollup.total
        bucket["employee_count"] += 1
    for bucket in stats.values():
        bucket["avg_hours"] = round_half_up(safe_average(bucket["total_hours"], bucket["employee_count"]))
    return stats


def _employee_summary(rollup: EntityRollup) -> Dict:
    return {
        "id": rollup.entity_id,
        "name": rollup.attribute("name"),
        "total_hours": rollup.total,
        "trainings_completed": rollup.record_count,
    }
