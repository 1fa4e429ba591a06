"""Application service orchestrating row sources and pure analytics."""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Callable, Dict, Iterable, Optional, Sequence, TypeVar

from .config import Settings
from .errors import InvalidPeriodError, TenantMismatchError
from .filters import ReportFilters
from .governance import compute_whistleblower_metrics
from .investment import compute_sustainable_investment
from .ports import RowSource
from .quality import (
    compute_non_conformity_dashboard,
    compute_non_conformity_stats,
    compute_quality_dashboard,
)
from .social import (
    compute_audit_report_stats,
    compute_safety_metrics,
    compute_social_project_metrics,
    compute_workforce_stats,
)
from .timeseries import to_reporting_date
from .training import build_training_hours_report, compute_training_hours_metrics
from .trend import previous_period

logger = logging.getLogger(__name__)

R = TypeVar("R")


class AnalyticsService:
    """Facade service that exposes metric methods independent of web frameworks.

    Each call reads its own snapshot of rows and returns a fresh result;
    nothing is cached between calls. Row source failures propagate unchanged.
    """

    def __init__(self, repo: RowSource, settings: Optional[Settings] = None):
        self.repo = repo
        self.settings = settings or Settings()

    def get_training_hours_metrics(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        now = now or datetime.now(timezone.utc)
        start, end = self._normalize_period(start_date, end_date, now)
        prev_start, prev_end = previous_period(start, end)

        employees = self._fetch(self.repo.fetch_employees, tenant_id)
        trainings = self._fetch(self.repo.fetch_training_records, tenant_id, start, end)
        # The previous window's end is exclusive.
        previous = [
            training
            for training in self._fetch(self.repo.fetch_training_records, tenant_id, prev_start, prev_end)
            if training.completion_date < prev_end
        ]

        result = compute_training_hours_metrics(
            employees,
            trainings,
            previous,
            start_date=start,
            end_date=end,
            benchmark=self.settings.training_benchmark_hours,
            tiers=self.settings.benchmark_tiers,
            now=now,
            tz=self.settings.tzinfo,
        )
        if result["trainings_without_duration"]:
            logger.warning(
                "tenant %s: %d of %d trainings have no duration",
                tenant_id,
                result["trainings_without_duration"],
                len(trainings),
            )
        return result

    def get_training_hours_report(self, tenant_id: str, filters: Optional[ReportFilters] = None) -> Dict:
        """Grouped report over every session matching ``filters``; no dates means no date bound."""
        filters = filters or ReportFilters()
        employees = self._fetch(self.repo.fetch_employees, tenant_id)
        trainings = self._fetch(
            self.repo.fetch_training_records, tenant_id, filters.start_date, filters.end_date
        )
        return build_training_hours_report(employees, trainings, filters, tz=self.settings.tzinfo)

    def get_non_conformity_dashboard(self, tenant_id: str, now: Optional[datetime] = None) -> Dict:
        ncs = self._fetch(self.repo.fetch_non_conformities, tenant_id)
        return compute_non_conformity_dashboard(ncs, now=now, tz=self.settings.tzinfo)

    def get_non_conformity_stats(self, tenant_id: str) -> Dict:
        ncs = self._fetch(self.repo.fetch_non_conformities, tenant_id)
        return compute_non_conformity_stats(ncs)

    def get_quality_dashboard(self, tenant_id: str, now: Optional[datetime] = None) -> Dict:
        ncs = self._fetch(self.repo.fetch_non_conformities, tenant_id)
        plans = self._fetch(self.repo.fetch_action_plans, tenant_id)
        risks = self._fetch(self.repo.fetch_quality_risks, tenant_id)
        return compute_quality_dashboard(ncs, plans, risks, now=now, tz=self.settings.tzinfo)

    def get_social_project_metrics(self, tenant_id: str) -> Dict:
        projects = self._fetch(self.repo.fetch_social_projects, tenant_id)
        return compute_social_project_metrics(projects)

    def get_safety_metrics(self, tenant_id: str, year: Optional[int] = None) -> Dict:
        if year is None:
            year = to_reporting_date(datetime.now(timezone.utc), self.settings.tzinfo).year
        incidents = self._fetch(
            self.repo.fetch_safety_incidents, tenant_id, date(year, 1, 1), date(year, 12, 31)
        )
        return compute_safety_metrics(incidents, year, tz=self.settings.tzinfo)

    def get_workforce_stats(self, tenant_id: str) -> Dict:
        employees = self._fetch(self.repo.fetch_employees, tenant_id, active_only=False)
        return compute_workforce_stats(employees)

    def get_audit_report_stats(
        self,
        tenant_id: str,
        filters: Optional[ReportFilters] = None,
        year: Optional[int] = None,
    ) -> Dict:
        audits = self._fetch(self.repo.fetch_audits, tenant_id)
        return compute_audit_report_stats(audits, filters, year=year, tz=self.settings.tzinfo)

    def get_whistleblower_metrics(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        now = now or datetime.now(timezone.utc)
        start, end = self._normalize_period(start_date, end_date, now)
        prev_start, prev_end = previous_period(start, end)

        reports = self._fetch(self.repo.fetch_whistleblower_reports, tenant_id, start, end)
        previous = self._fetch(
            self.repo.fetch_whistleblower_reports, tenant_id, prev_start, prev_end - timedelta(days=1)
        )
        employees = self._fetch(self.repo.fetch_employees, tenant_id)
        return compute_whistleblower_metrics(
            reports,
            previous,
            employee_count=len(employees),
            now=now,
            tz=self.settings.tzinfo,
            tiers=self.settings.benchmark_tiers,
        )

    def get_sustainable_investment(
        self,
        tenant_id: str,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        annual_revenue: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> Dict:
        """Investment of projects started in the period; ``annual_revenue`` comes from the caller."""
        now = now or datetime.now(timezone.utc)
        start, end = self._normalize_period(start_date, end_date, now)
        prev_start, prev_end = previous_period(start, end)

        projects = self._fetch(self.repo.fetch_social_projects, tenant_id, start, end)
        previous = self._fetch(
            self.repo.fetch_social_projects, tenant_id, prev_start, prev_end - timedelta(days=1)
        )
        result = compute_sustainable_investment(projects, previous, annual_revenue=annual_revenue)
        if result["data_completeness"]["projects_without_investment"]:
            logger.warning(
                "tenant %s: %d of %d projects have no invested amount",
                tenant_id,
                result["data_completeness"]["projects_without_investment"],
                len(projects),
            )
        return result

    def _fetch(self, fetch: Callable[..., Iterable[R]], tenant_id: str, *args, **kwargs) -> Sequence[R]:
        if not tenant_id or not str(tenant_id).strip():
            raise ValueError("tenant_id is required")
        rows = list(fetch(tenant_id, *args, **kwargs))
        for row in rows:
            if row.tenant_id != tenant_id:
                raise TenantMismatchError(tenant_id, row.tenant_id)
        logger.debug("tenant %s: %s returned %d rows", tenant_id, getattr(fetch, "__name__", fetch), len(rows))
        return rows

    def _normalize_period(
        self,
        start_date: Optional[date],
        end_date: Optional[date],
        now: datetime,
    ) -> tuple[date, date]:
        if end_date is None:
            end_date = to_reporting_date(now, self.settings.tzinfo)
        if start_date is None:
            start_date = end_date - timedelta(days=self.settings.default_period_days)
        if start_date > end_date:
            raise InvalidPeriodError(f"period start {start_date} is after its end {end_date}")
        return start_date, end_date
