"""Non-conformity and quality management analytics."""

from datetime import datetime, timezone, tzinfo
from typing import Dict, Iterable, Optional, Sequence

from .aggregation import (
    category_key,
    count_by,
    distribution,
    round_half_up,
    safe_average,
    safe_rate,
)
from .models import ActionPlan, NonConformity, QualityRisk
from .timeseries import elapsed_days, group_by_month, shift_month, to_reporting_date, trailing_months
from .trend import percent_change, trend_direction

CRITICAL_SEVERITY = "Crítica"
CLOSED_STATUS = "Fechada"

SEVERITY_ALIASES = {
    "Media": "Média",
    "Critica": "Crítica",
    "critical": "Crítica",
    "major": "Alta",
    "minor": "Média",
    "observation": "Baixa",
}
RESOLVED_STATUSES = {"Resolvida", "Fechada", "Encerrada", "Aprovada", "closed"}
OPEN_STATUSES = {"Aberta", "Pendente", "Em Andamento", "Em Tratamento", "open", "in_progress"}

TREND_MONTHS = 6
RECENT_LIMIT = 5


def normalize_severity(severity: Optional[str]) -> str:
    key = category_key(severity)
    return SEVERITY_ALIASES.get(key, key)


def is_resolved(status: Optional[str]) -> bool:
    return status in RESOLVED_STATUSES


def is_open(status: Optional[str]) -> bool:
    return status in OPEN_STATUSES


def compute_non_conformity_dashboard(
    non_conformities: Iterable[NonConformity],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Dict:
    """Headline numbers, distributions and a six month trend of non-conformities."""
    ncs = sorted(non_conformities, key=lambda nc: nc.created_at, reverse=True)
    now = now or datetime.now(timezone.utc)
    today = to_reporting_date(now, tz)

    current_month = (today.year, today.month)
    last_month = shift_month(today.year, today.month, -1)
    (_, _, last_rows), (_, _, current_rows) = group_by_month(
        ncs, lambda nc: nc.created_at, [last_month, current_month], tz
    )
    current_count = len(current_rows)
    last_count = len(last_rows)

    monthly = []
    for year, month, rows in group_by_month(
        ncs, lambda nc: nc.created_at, trailing_months(now, TREND_MONTHS, tz), tz
    ):
        monthly.append(
            {
                "month": f"{year:04d}-{month:02d}",
                "total": len(rows),
                "critical": sum(1 for nc in rows if normalize_severity(nc.severity) == CRITICAL_SEVERITY),
                "closed": sum(1 for nc in rows if nc.status == CLOSED_STATUS),
            }
        )

    total = len(ncs)
    closed = [nc for nc in ncs if nc.status == CLOSED_STATUS]
    overdue = [
        nc for nc in ncs
        if nc.due_date is not None and nc.status != CLOSED_STATUS and nc.due_date < today
    ]
    resolution_days = [
        elapsed_days(nc.created_at, nc.completion_date) for nc in closed if nc.completion_date is not None
    ]

    return {
        "metrics": {
            "total": total,
            "current_month": current_count,
            "last_month": last_count,
            "trend": round_half_up(percent_change(current_count, last_count)),
            "resolution_rate": round_half_up(safe_rate(len(closed), total)),
            "overdue": len(overdue),
            "avg_resolution_time": int(round_half_up(safe_average(sum(resolution_days), len(resolution_days)), 0)),
            "critical": sum(
                1 for nc in ncs
                if normalize_severity(nc.severity) == CRITICAL_SEVERITY and nc.status != CLOSED_STATUS
            ),
        },
        "charts": {
            "severity": distribution(count_by(ncs, lambda nc: normalize_severity(nc.severity))),
            "status": distribution(count_by(ncs, lambda nc: nc.status)),
            "source": distribution(count_by(ncs, lambda nc: nc.source)),
            "monthly": monthly,
        },
        "recent": [_nc_summary(nc) for nc in ncs[:RECENT_LIMIT]],
    }


def compute_non_conformity_stats(non_conformities: Iterable[NonConformity]) -> Dict:
    ncs = list(non_conformities)
    return {
        "total": len(ncs),
        "by_severity": count_by(ncs, lambda nc: normalize_severity(nc.severity)),
        "by_status": count_by(ncs, lambda nc: nc.status),
    }


def compute_quality_dashboard(
    non_conformities: Iterable[NonConformity],
    action_plans: Sequence[ActionPlan],
    risks: Sequence[QualityRisk],
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
) -> Dict:
    """
    Quality score and workload overview.

    The score starts from the resolution rate (100 without any NC) and loses
    5 points per overdue action and 3 per active critical risk, clamped to
    0..100.
    """
    ncs = list(non_conformities)
    now = now or datetime.now(timezone.utc)
    today = to_reporting_date(now, tz)

    total = len(ncs)
    open_count = sum(1 for nc in ncs if is_open(nc.status))
    resolved = [nc for nc in ncs if is_resolved(nc.status)]
    critical_risks = sum(1 for risk in risks if risk.level == "Crítico" and risk.status == "Ativo")

    overdue_from_counters = sum(plan.overdue_items for plan in action_plans)
    overdue_from_dates = sum(
        1 for plan in action_plans
        if plan.status != "Concluída" and plan.due_date is not None and plan.due_date < today
    )
    overdue_actions = max(overdue_from_counters, overdue_from_dates)

    resolution_days = [
        elapsed_days(nc.created_at, nc.completion_date) for nc in resolved if nc.completion_date is not None
    ]

    months = trailing_months(now, 2, tz)
    (_, _, previous_rows), (_, _, current_rows) = group_by_month(ncs, lambda nc: nc.created_at, months, tz)

    resolution_rate = safe_rate(len(resolved), total) if total else 100.0
    raw_score = round_half_up(resolution_rate - overdue_actions * 5 - critical_risks * 3, 0)
    quality_score = int(max(0, min(100, raw_score)))

    return {
        "metrics": {
            "total_ncs": total,
            "open_ncs": open_count,
            "resolved_ncs": len(resolved),
            "total_risks": len(risks),
            "critical_risks": critical_risks,
            "action_plans": len(action_plans),
            "overdue_actions": overdue_actions,
            "quality_score": quality_score,
            "avg_resolution_time": round_half_up(safe_average(sum(resolution_days), len(resolution_days))),
            "trend_direction": trend_direction(len(current_rows), len(previous_rows)),
            "change_percentage": int(round_half_up(percent_change(len(current_rows), len(previous_rows)), 0)),
        },
        "recent": [
            _nc_summary(nc) for nc in sorted(ncs, key=lambda nc: nc.created_at, reverse=True)[:10]
        ],
        "plans_progress": compute_action_plan_progress(action_plans),
    }


def compute_action_plan_progress(action_plans: Iterable[ActionPlan]) -> list:
    plans = sorted(
        action_plans,
        key=lambda plan: plan.updated_at.isoformat() if plan.updated_at else "",
        reverse=True,
    )
    return [
        {
            "id": plan.id,
            "title": plan.title,
            "status": plan.status,
            "total_items": plan.total_items,
            "completed_items": plan.completed_items,
            "avg_progress": int(round_half_up(safe_rate(plan.completed_items, plan.total_items), 0)),
            "overdue_items": plan.overdue_items,
        }
        for plan in plans
    ]


def _nc_summary(nc: NonConformity) -> Dict:
    return {
        "id": nc.id,
        "title": nc.title,
        "severity": normalize_severity(nc.severity),
        "status": category_key(nc.status),
        "created_at": nc.created_at.isoformat(),
    }
