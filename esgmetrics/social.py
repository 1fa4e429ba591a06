"""Social pillar analytics: projects, safety, workforce and audits."""

from datetime import tzinfo
from typing import Dict, Iterable, Optional

from .aggregation import (
    coerce_measure,
    count_by,
    distribution,
    round_half_up,
    safe_average,
    safe_rate,
    sum_measure,
)
from .filters import ReportFilters, filter_by_date
from .models import Audit, Employee, SafetyIncident, SocialProject
from .timeseries import bucket_by_month, bucket_by_quarter, calendar_months
from .training import normalize_gender

ACTIVE_PROJECT_STATUSES = {"Ativo", "Em Andamento"}
COMPLETED_PROJECT_STATUSES = {"Concluído", "Finalizado"}
ACTIVE_EMPLOYEE_STATUS = "Ativo"


def compute_social_project_metrics(projects: Iterable[SocialProject]) -> Dict:
    """
    Investment totals of social projects.

    ``budget_utilization`` is invested / budgeted in percent and is allowed
    to exceed 100 when projects overspend.
    """
    projects = list(projects)
    total_projects = len(projects)
    investment = sum_measure(projects, lambda p: p.invested_amount)
    budget = sum_measure(projects, lambda p: p.budget)
    beneficiaries = sum_measure(projects, lambda p: p.beneficiaries)

    return {
        "total_projects": total_projects,
        "active_projects": sum(1 for p in projects if p.status in ACTIVE_PROJECT_STATUSES),
        "completed_projects": sum(1 for p in projects if p.status in COMPLETED_PROJECT_STATUSES),
        "total_investment": investment.total,
        "total_budget": budget.total,
        "average_investment": round_half_up(safe_average(investment.total, total_projects), 2),
        "budget_utilization": round_half_up(safe_rate(investment.total, budget.total)),
        "total_beneficiaries": int(beneficiaries.total),
        "by_status": distribution(count_by(projects, lambda p: p.status)),
        "data_completeness": {
            "projects_without_budget": budget.missing,
            "projects_without_investment": investment.missing,
        },
    }


def compute_safety_metrics(
    incidents: Iterable[SafetyIncident],
    year: int,
    tz: Optional[tzinfo] = None,
) -> Dict:
    """
    Incident counts for one calendar year.

    Frequency and severity rates need hours worked, which the store does not
    record; they are returned as None and listed under ``unimplemented``
    instead of being reported as zero.
    """
    incidents = list(incidents)
    days_lost = sum_measure(incidents, _days_lost)

    monthly = [
        {
            "month": bucket.month,
            "key": bucket.key,
            "incidents": bucket.count,
            "days_lost": bucket.total,
        }
        for bucket in bucket_by_month(incidents, _incident_date, calendar_months(year), _days_lost, tz)
    ]
    quarterly = [
        {"quarter": bucket.key, "incidents": bucket.count, "days_lost": bucket.total}
        for bucket in bucket_by_quarter(incidents, _incident_date, year, _days_lost, tz)
    ]

    return {
        "year": year,
        "total_incidents": len(incidents),
        "lost_time_incidents": sum(1 for i in incidents if (coerce_measure(i.days_lost) or 0) > 0),
        "total_days_lost": days_lost.total,
        "incidents_without_days_lost": days_lost.missing,
        "by_severity": distribution(count_by(incidents, lambda i: i.severity)),
        "by_type": distribution(count_by(incidents, lambda i: i.incident_type)),
        "monthly": monthly,
        "quarterly": quarterly,
        "ltifr": None,
        "severity_rate": None,
        "unimplemented": ["ltifr", "severity_rate"],
    }


def compute_workforce_stats(employees: Iterable[Employee]) -> Dict:
    employees = list(employees)
    gender_counts = {"men": 0, "women": 0, "other": 0}
    for employee in employees:
        gender_counts[normalize_gender(employee.gender)] += 1

    active = sum(1 for e in employees if e.status == ACTIVE_EMPLOYEE_STATUS)
    return {
        "total_employees": len(employees),
        "active_employees": active,
        "active_rate": round_half_up(safe_rate(active, len(employees))),
        "by_department": count_by(employees, lambda e: e.department),
        "by_location": count_by(employees, lambda e: e.location),
        "by_gender": gender_counts,
        "turnover_rate": None,
        "unimplemented": ["turnover_rate"],
    }


def compute_audit_report_stats(
    audits: Iterable[Audit],
    filters: Optional[ReportFilters] = None,
    year: Optional[int] = None,
    tz: Optional[tzinfo] = None,
) -> Dict:
    """Audit counts by status and type, optionally with the quarters of ``year``."""
    filters = filters or ReportFilters()
    selected = filter_by_date(audits, lambda a: a.start_date, filters, tz)

    result = {
        "total": len(selected),
        "by_status": count_by(selected, lambda a: a.status),
        "by_type": count_by(selected, lambda a: a.audit_type),
    }
    if year is not None:
        result["by_quarter"] = [
            {"quarter": bucket.key, "audits": bucket.count}
            for bucket in bucket_by_quarter(selected, lambda a: a.start_date, year, tz=tz)
        ]
    return result


def _incident_date(incident: SafetyIncident):
    return incident.incident_date


def _days_lost(incident: SafetyIncident):
    return incident.days_lost
