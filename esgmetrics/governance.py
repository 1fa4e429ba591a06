"""Governance pillar analytics: the ethics channel (GRI 2-26)."""

from calendar import monthrange
from datetime import date, datetime, timezone, tzinfo
from math import floor
from typing import Callable, Dict, Iterable, List, Optional, Tuple

from .aggregation import category_key, count_by, round_half_up, safe_average, safe_rate
from .models import WhistleblowerReport
from .timeseries import elapsed_days, group_by_month, month_key, shift_month, to_reporting_date, trailing_months
from .trend import BenchmarkTiers, percent_change

CLOSED_REPORT_STATUSES = {"Resolvida", "Fechada", "Arquivada"}
RESOLVED_WITH_ACTION_STATUS = "Resolvida"
ARCHIVED_STATUS = "Arquivada"
INVESTIGATION_STATUS = "Em Investigação"
AWAITING_ACTION_STATUS = "Aguardando Ação"
CRITICAL_PRIORITY = "Crítica"

TREND_MONTHS = 12
OVERDUE_DAYS = 90
FAST_RESOLUTION_DAYS = 30
RECURRENCE_MONTHS = 6
RECURRENCE_THRESHOLD = 3
CATEGORY_TREND_THRESHOLD = 10.0
TARGET_RESOLUTION_RATE = 85.0
TOP_CATEGORIES = 5
RANKED_CATEGORIES = 3


def is_closed(status: Optional[str]) -> bool:
    return status in CLOSED_REPORT_STATUSES


def resolution_days(report: WhistleblowerReport) -> Optional[int]:
    """Whole days from creation to closing, or None while the report has no closing time."""
    if report.closed_at is None:
        return None
    return floor(elapsed_days(report.created_at, report.closed_at))


def compute_whistleblower_metrics(
    reports: Iterable[WhistleblowerReport],
    previous_reports: Iterable[WhistleblowerReport] = (),
    employee_count: int = 0,
    now: Optional[datetime] = None,
    tz: Optional[tzinfo] = None,
    tiers: BenchmarkTiers = BenchmarkTiers(),
    target_resolution_rate: float = TARGET_RESOLUTION_RATE,
) -> Dict:
    """
    Ethics channel metrics for one period, compared with the period before it.

    Reports count as closed by status; resolution times only use closed
    reports that carry a closing timestamp. ``employee_count`` is the active
    headcount the channel utilization is measured against.
    """
    reports = list(reports)
    previous_reports = list(previous_reports)
    now = now or datetime.now(timezone.utc)
    today = to_reporting_date(now, tz)

    total = len(reports)
    closed = [r for r in reports if is_closed(r.status)]
    open_reports = [r for r in reports if not is_closed(r.status)]
    times = sorted(d for d in (resolution_days(r) for r in closed) if d is not None)
    resolution_rate = safe_rate(len(closed), total)
    avg_days = safe_average(sum(times), len(times))
    anonymous = sum(1 for r in reports if r.is_anonymous)

    previous_total = len(previous_reports)
    previous_closed = sum(1 for r in previous_reports if is_closed(r.status))
    previous_rate = safe_rate(previous_closed, previous_total)
    previous_by_category = count_by(previous_reports, lambda r: r.category)

    by_category = _category_breakdown(reports, total)
    under_30 = sum(1 for d in times if d < FAST_RESOLUTION_DAYS)

    return {
        "total_reports": total,
        "total_reports_current_year": sum(
            1 for r in reports if to_reporting_date(r.created_at, tz).year == today.year
        ),
        "open_reports": len(open_reports),
        "resolved_reports": len(closed),
        "anonymous_reports": anonymous,
        "anonymous_percentage": round_half_up(safe_rate(anonymous, total)),
        "resolution_rate": round_half_up(resolution_rate),
        "avg_resolution_days": round_half_up(avg_days),
        "by_status": [
            {"status": status, "count": count, "percentage": round_half_up(safe_rate(count, total))}
            for status, count in count_by(reports, lambda r: r.status).items()
        ],
        "by_category": by_category,
        "by_priority": [
            {
                "priority": priority,
                "count": len(rows),
                "percentage": round_half_up(safe_rate(len(rows), total)),
                "avg_resolution_days": round_half_up(_average_resolution(rows)),
            }
            for priority, rows in _grouped(reports, lambda r: r.priority)
        ],
        "monthly_trend": _monthly_trend(reports, now, tz),
        "resolution_metrics": {
            "resolution_rate": round_half_up(resolution_rate),
            "avg_resolution_days": round_half_up(avg_days),
            "median_resolution_days": times[len(times) // 2] if times else 0,
            "overdue_reports": sum(
                1 for r in open_reports if floor(elapsed_days(r.created_at, now)) > OVERDUE_DAYS
            ),
            "resolved_under_30_days": under_30,
            "resolved_30_to_90_days": sum(1 for d in times if FAST_RESOLUTION_DAYS <= d <= OVERDUE_DAYS),
            "resolved_over_90_days": sum(1 for d in times if d > OVERDUE_DAYS),
        },
        "comparison": {
            "previous_period_total": previous_total,
            "change_percentage": round_half_up(percent_change(total, previous_total)),
            "is_improving": total < previous_total or resolution_rate > previous_rate,
            "previous_resolution_rate": round_half_up(previous_rate),
            "resolution_rate_change": round_half_up(resolution_rate - previous_rate if previous_rate > 0 else 0.0),
        },
        "top_categories": [
            {
                "category": entry["category"],
                "count": entry["count"],
                "percentage": entry["percentage"],
                "trend": _category_trend(entry["count"], previous_by_category.get(entry["category"], 0)),
            }
            for entry in by_category[:TOP_CATEGORIES]
        ],
        "recurrence": _recurrence(reports, today, tz),
        "performance_classification": classify_channel_performance(resolution_rate, avg_days, tiers),
        "compliance": _compliance(total, by_category, resolution_rate, avg_days, employee_count),
        "resolution_effectiveness": {
            "target_resolution_rate": target_resolution_rate,
            "actual_resolution_rate": round_half_up(resolution_rate),
            "is_meeting_target": resolution_rate >= target_resolution_rate,
            "gap_to_target": round_half_up(target_resolution_rate - resolution_rate),
            "resolved_under_30_days_percentage": round_half_up(safe_rate(under_30, len(closed))),
            "resolved_with_action": sum(1 for r in reports if r.status == RESOLVED_WITH_ACTION_STATUS),
            "resolved_without_action": sum(1 for r in reports if r.status == ARCHIVED_STATUS),
            "funnel": {
                "received": total,
                "under_investigation": sum(1 for r in reports if r.status == INVESTIGATION_STATUS),
                "awaiting_action": sum(1 for r in reports if r.status == AWAITING_ACTION_STATUS),
                "resolved": len(closed),
                "conversion_rate": round_half_up(resolution_rate),
            },
            "speed_score": round_half_up(min(100.0, safe_rate(under_30, len(closed)) * 1.5)),
            "backlog_trend": _backlog_trend(len(open_reports), previous_total - previous_closed),
            **_ranked_categories(reports),
        },
        "calculation_date": now.isoformat(),
    }


def classify_channel_performance(
    resolution_rate: float,
    avg_resolution_days: float,
    tiers: BenchmarkTiers = BenchmarkTiers(),
) -> str:
    """Tier label from the resolution rate and the average days to resolve."""
    if resolution_rate >= 90 and avg_resolution_days <= 30:
        return tiers.excellent_label
    if resolution_rate >= 80 and avg_resolution_days <= 60:
        return tiers.good_label
    if resolution_rate >= 60 or avg_resolution_days <= OVERDUE_DAYS:
        return tiers.attention_label
    return tiers.below_label


def _grouped(
    reports: List[WhistleblowerReport],
    key_of: Callable[[WhistleblowerReport], Optional[str]],
) -> List[Tuple[str, List[WhistleblowerReport]]]:
    """Reports per key, largest group first; ties keep first-seen order."""
    groups: Dict[str, List[WhistleblowerReport]] = {}
    for report in reports:
        groups.setdefault(category_key(key_of(report)), []).append(report)
    return sorted(groups.items(), key=lambda item: len(item[1]), reverse=True)


def _average_resolution(reports: List[WhistleblowerReport]) -> float:
    days = [d for d in (resolution_days(r) for r in reports if is_closed(r.status)) if d is not None]
    return safe_average(sum(days), len(days))


def _category_breakdown(reports: List[WhistleblowerReport], total: int) -> List[Dict]:
    return [
        {
            "category": category,
            "count": len(rows),
            "percentage": round_half_up(safe_rate(len(rows), total)),
            "avg_resolution_days": round_half_up(_average_resolution(rows)),
            "critical_count": sum(1 for r in rows if r.priority == CRITICAL_PRIORITY),
        }
        for category, rows in _grouped(reports, lambda r: r.category)
    ]


def _monthly_trend(reports: List[WhistleblowerReport], now: datetime, tz: Optional[tzinfo]) -> List[Dict]:
    trend = []
    for year, month, rows in group_by_month(
        reports, lambda r: r.created_at, trailing_months(now, TREND_MONTHS, tz), tz
    ):
        resolved = [
            r for r in rows
            if r.closed_at is not None and _month_of(r.closed_at, tz) == (year, month)
        ]
        days = [resolution_days(r) for r in resolved]
        trend.append(
            {
                "month": month_key(year, month),
                "reports_received": len(rows),
                "reports_resolved": len(resolved),
                "reports_open": sum(1 for r in rows if not is_closed(r.status)),
                "avg_resolution_days": round_half_up(safe_average(sum(days), len(days))),
            }
        )
    return trend


def _month_of(value: datetime, tz: Optional[tzinfo]) -> Tuple[int, int]:
    day = to_reporting_date(value, tz)
    return day.year, day.month


def _category_trend(current: int, previous: int) -> str:
    if previous <= 0:
        return "stable"
    change = percent_change(current, previous)
    if change > CATEGORY_TREND_THRESHOLD:
        return "increasing"
    if change < -CATEGORY_TREND_THRESHOLD:
        return "decreasing"
    return "stable"


def _recurrence(reports: List[WhistleblowerReport], today: date, tz: Optional[tzinfo]) -> Dict:
    year, month = shift_month(today.year, today.month, -RECURRENCE_MONTHS)
    cutoff = date(year, month, min(today.day, monthrange(year, month)[1]))
    recent = [r for r in reports if to_reporting_date(r.created_at, tz) >= cutoff]
    systemic = [
        {"category": category, "count": count}
        for category, count in count_by(recent, lambda r: r.category).items()
        if count >= RECURRENCE_THRESHOLD
    ]
    return {
        "recurring_categories": systemic,
        "systemic_issues_count": len(systemic),
    }


def _compliance(
    total: int,
    by_category: List[Dict],
    resolution_rate: float,
    avg_days: float,
    employee_count: int,
) -> Dict:
    missing = []
    if total == 0:
        missing.append("Nenhuma denúncia registrada no período")
    if employee_count <= 0:
        missing.append("Número de funcionários não disponível")

    recommendations = []
    if resolution_rate < 70:
        recommendations.append("Aumentar a taxa de resolução das denúncias")
    if avg_days > OVERDUE_DAYS:
        recommendations.append("Reduzir o tempo médio de resolução")
    if total == 0:
        recommendations.append("Divulgar o canal de denúncias aos colaboradores")

    return {
        "gri_2_26": total > 0 and bool(by_category),
        "iso_37001": resolution_rate >= 70 and avg_days <= OVERDUE_DAYS,
        "channel_utilization_rate": round_half_up(safe_rate(total, employee_count), 2),
        "missing_data": missing,
        "recommendations": recommendations,
    }


def _backlog_trend(open_now: int, open_before: int) -> str:
    if open_now < open_before:
        return "improving"
    if open_now > open_before:
        return "worsening"
    return "stable"


def _ranked_categories(reports: List[WhistleblowerReport]) -> Dict:
    rates = [
        {
            "category": category,
            "resolution_rate": round_half_up(safe_rate(sum(1 for r in rows if is_closed(r.status)), len(rows))),
            "count": len(rows),
        }
        for category, rows in _grouped(reports, lambda r: r.category)
        if len(rows) >= 2
    ]
    rates.sort(key=lambda entry: entry["resolution_rate"], reverse=True)
    return {
        "best_categories": rates[:RANKED_CATEGORIES],
        "worst_categories": list(reversed(rates[-RANKED_CATEGORIES:])),
    }
