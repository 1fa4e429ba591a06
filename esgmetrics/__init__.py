"""esgmetrics - tenant-scoped ESG aggregate metrics."""

from .aggregation import (
    category_key,
    coerce_measure,
    count_by,
    round_half_up,
    safe_average,
    safe_rate,
    sum_measure,
)
from .config import Settings
from .filters import ReportFilters
from .governance import compute_whistleblower_metrics
from .grouping import build_grouped_report, group_totals, rollup_entities
from .investment import compute_sustainable_investment
from .quality import (
    compute_non_conformity_dashboard,
    compute_non_conformity_stats,
    compute_quality_dashboard,
)
from .service import AnalyticsService
from .social import (
    compute_audit_report_stats,
    compute_safety_metrics,
    compute_social_project_metrics,
    compute_workforce_stats,
)
from .timeseries import bucket_by_month, bucket_by_quarter, trailing_months
from .training import build_training_hours_report, compute_training_hours_metrics
from .trend import BenchmarkTiers, classify, percent_change

__all__ = [
    "AnalyticsService",
    "Settings",
    "ReportFilters",
    "BenchmarkTiers",
    "category_key",
    "coerce_measure",
    "count_by",
    "sum_measure",
    "safe_rate",
    "safe_average",
    "round_half_up",
    "bucket_by_month",
    "bucket_by_quarter",
    "trailing_months",
    "percent_change",
    "classify",
    "rollup_entities",
    "group_totals",
    "build_grouped_report",
    "compute_training_hours_metrics",
    "build_training_hours_report",
    "compute_non_conformity_dashboard",
    "compute_non_conformity_stats",
    "compute_quality_dashboard",
    "compute_social_project_metrics",
    "compute_safety_metrics",
    "compute_workforce_stats",
    "compute_audit_report_stats",
    "compute_whistleblower_metrics",
    "compute_sustainable_investment",
]

__version__ = "0.1.0"
